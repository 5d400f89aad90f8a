"""
错误类型定义
"""


class HandSpellError(Exception):
    """所有 HandSpell 错误的基类"""


class InitializationError(HandSpellError):
    """关键点后端加载失败，可重新调用 initialize() 重试"""


class DegenerateInputError(HandSpellError):
    """关键点数据的归一化参考距离为零，无法计算特征"""


class LandmarkFormatError(HandSpellError):
    """关键点数据格式不符合 21 点约定"""


class PreconditionError(HandSpellError):
    """后端未就绪时发起了识别请求"""
