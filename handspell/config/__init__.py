"""
HandSpell 配置
"""
