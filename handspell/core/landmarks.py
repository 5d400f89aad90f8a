"""
手部关键点数据约定
定义 21 个关键点的索引，并在边界处校验外部输入
"""

import math
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Sequence

import numpy as np

from .errors import LandmarkFormatError


NUM_LANDMARKS = 21


class LandmarkIndex(IntEnum):
    """MediaPipe 手部 21 个关键点索引"""
    WRIST = 0

    # 大拇指
    THUMB_CMC = 1
    THUMB_MCP = 2
    THUMB_IP = 3
    THUMB_TIP = 4

    # 食指
    INDEX_MCP = 5
    INDEX_PIP = 6
    INDEX_DIP = 7
    INDEX_TIP = 8

    # 中指
    MIDDLE_MCP = 9
    MIDDLE_PIP = 10
    MIDDLE_DIP = 11
    MIDDLE_TIP = 12

    # 无名指
    RING_MCP = 13
    RING_PIP = 14
    RING_DIP = 15
    RING_TIP = 16

    # 小指
    PINKY_MCP = 17
    PINKY_PIP = 18
    PINKY_DIP = 19
    PINKY_TIP = 20


# 手指定义：(指尖, DIP, PIP, 指根)；拇指指根取 CMC
FINGER_INDICES = {
    "thumb": (4, 3, 2, 1),
    "index": (8, 7, 6, 5),
    "middle": (12, 11, 10, 9),
    "ring": (16, 15, 14, 13),
    "pinky": (20, 19, 18, 17)
}

# 骨骼连接定义（用于绘制）
HAND_CONNECTIONS = [
    (0, 1), (1, 2), (2, 3), (3, 4),        # 大拇指
    (0, 5), (5, 6), (6, 7), (7, 8),        # 食指
    (0, 9), (9, 10), (10, 11), (11, 12),   # 中指
    (0, 13), (13, 14), (14, 15), (15, 16), # 无名指
    (0, 17), (17, 18), (18, 19), (19, 20), # 小指
    (5, 9), (9, 13), (13, 17)              # 手掌横向连接
]


def _coerce_point(point: Any) -> Sequence[float]:
    """把单个关键点转换为 (x, y, z)，支持元组和带 x/y/z 属性的对象"""
    if hasattr(point, "x") and hasattr(point, "y"):
        return (point.x, point.y, getattr(point, "z", 0.0))

    try:
        values = tuple(point)
    except TypeError:
        raise LandmarkFormatError(f"无法解析关键点: {point!r}") from None

    if len(values) == 2:
        return (values[0], values[1], 0.0)
    if len(values) == 3:
        return values
    raise LandmarkFormatError(f"关键点维度应为 2 或 3，实际为 {len(values)}")


@dataclass(frozen=True, eq=False)
class LandmarkFrame:
    """
    单帧单手的关键点

    landmarks 为只读的 21x3 数组，坐标按图像宽高归一化，z 为相对深度。
    """
    landmarks: np.ndarray

    @classmethod
    def from_points(cls, points: Any) -> "LandmarkFrame":
        """
        校验外部关键点数据并创建帧

        Args:
            points: 21 个关键点，每个为 (x, y)、(x, y, z) 或带 x/y/z 属性的对象

        Raises:
            LandmarkFormatError: 数量、维度或数值不合法
        """
        if points is None:
            raise LandmarkFormatError("关键点数据为空")

        if isinstance(points, np.ndarray):
            if points.ndim != 2 or points.shape[0] != NUM_LANDMARKS or points.shape[1] not in (2, 3):
                raise LandmarkFormatError(f"关键点数组形状不合法: {points.shape}")
            rows = points.tolist()
        else:
            try:
                rows = list(points)
            except TypeError:
                raise LandmarkFormatError(f"关键点数据不可迭代: {type(points).__name__}") from None

        if not rows:
            raise LandmarkFormatError("关键点数据为空")
        if len(rows) != NUM_LANDMARKS:
            raise LandmarkFormatError(f"需要 {NUM_LANDMARKS} 个关键点，实际为 {len(rows)}")

        coords = []
        for point in rows:
            x, y, z = _coerce_point(point)
            try:
                xyz = (float(x), float(y), float(z))
            except (TypeError, ValueError, OverflowError):
                raise LandmarkFormatError(f"关键点坐标不是数值: {point!r}") from None
            if not all(math.isfinite(v) for v in xyz):
                raise LandmarkFormatError(f"关键点坐标非有限值: {xyz}")
            coords.append(xyz)

        arr = np.array(coords, dtype=np.float64)
        arr.flags.writeable = False
        return cls(landmarks=arr)

    def point(self, index: int) -> np.ndarray:
        """获取指定索引的关键点 (x, y, z)"""
        return self.landmarks[index]

    @property
    def wrist(self) -> np.ndarray:
        """手腕位置"""
        return self.landmarks[LandmarkIndex.WRIST]

    def get_finger_tip(self, finger: str) -> np.ndarray:
        """获取指尖位置"""
        tip_idx = FINGER_INDICES[finger][0]
        return self.landmarks[tip_idx]

    def to_list(self):
        """转换为列表（用于 JSON 序列化）"""
        return self.landmarks.tolist()
