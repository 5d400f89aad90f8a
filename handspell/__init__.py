"""
HandSpell

从手部关键点流中识别手语指拼字母与控制手势，并匹配常用短语。
"""

__version__ = "0.1.0"
