"""
手部特征提取模块
从单帧关键点计算几何/布尔特征，供手势规则使用
"""

from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional

import numpy as np

from .errors import DegenerateInputError
from .landmarks import LandmarkFrame, LandmarkIndex as L
from ..config.settings import FeatureThresholds


@dataclass(frozen=True)
class HandFeatureSet:
    """
    单帧手部特征

    伸展比例均以手腕到中指根的距离归一化；接近类判定使用归一化图像坐标。
    所有字段都有默认值，便于单独构造用于规则测试。
    """

    # 伸展比例
    thumb_extension: float = 0.0
    index_extension: float = 0.0
    middle_extension: float = 0.0
    ring_extension: float = 0.0
    pinky_extension: float = 0.0
    finger_extension: float = 0.0  # 四指平均

    # 手指伸展
    is_index_extended: bool = False
    is_middle_extended: bool = False
    is_ring_extended: bool = False
    is_pinky_extended: bool = False
    are_all_fingers_extended: bool = False
    are_fingers_closed: bool = False

    # 拇指朝向
    is_thumb_up: bool = False
    is_thumb_sideways: bool = False
    is_thumb_down: bool = False
    is_thumb_in_front: bool = False
    thumb_tuck_count: int = 0

    # 指尖接近
    index_middle_close: bool = False
    is_thumb_index_close: bool = False
    fingers_close: bool = False
    fingertips_touch_thumb: bool = False
    index_middle_crossed: bool = False

    # 整体手型
    is_curved_hand: bool = False
    hand_curvature: float = 0.0
    is_wrist_rotated: bool = False
    is_l_shape: bool = False
    is_index_pointing_up: bool = False
    is_hand_pointing_down: bool = False
    is_index_hooked: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _distance(a: np.ndarray, b: np.ndarray) -> float:
    """XY 平面距离"""
    return float(np.linalg.norm(a[:2] - b[:2]))


class FeatureExtractor:
    """
    特征提取器
    纯函数式：相同输入总是得到相同的 HandFeatureSet
    """

    def __init__(self, thresholds: Optional[FeatureThresholds] = None):
        self.thresholds = thresholds or FeatureThresholds()

    def extract(self, frame: LandmarkFrame) -> HandFeatureSet:
        """
        计算一帧的手部特征

        Args:
            frame: 已校验的 21 点关键点

        Returns:
            HandFeatureSet

        Raises:
            DegenerateInputError: 手腕到中指根距离接近 0
        """
        t = self.thresholds
        lm = frame.landmarks

        wrist = lm[L.WRIST]
        hand_size = _distance(wrist, lm[L.MIDDLE_MCP])
        if hand_size < t.min_reference_distance:
            raise DegenerateInputError(f"手腕到中指根距离过小: {hand_size:.2e}")

        def extension(base: int, tip: int) -> float:
            return _distance(lm[base], lm[tip]) / hand_size

        thumb_ext = extension(L.THUMB_CMC, L.THUMB_TIP)
        index_ext = extension(L.INDEX_MCP, L.INDEX_TIP)
        middle_ext = extension(L.MIDDLE_MCP, L.MIDDLE_TIP)
        ring_ext = extension(L.RING_MCP, L.RING_TIP)
        pinky_ext = extension(L.PINKY_MCP, L.PINKY_TIP)

        is_index_extended = index_ext > t.extension_ratio
        is_middle_extended = middle_ext > t.extension_ratio
        is_ring_extended = ring_ext > t.extension_ratio
        is_pinky_extended = pinky_ext > t.extension_ratio

        thumb_tip = lm[L.THUMB_TIP]
        index_tip = lm[L.INDEX_TIP]
        middle_tip = lm[L.MIDDLE_TIP]
        ring_tip = lm[L.RING_TIP]
        pinky_tip = lm[L.PINKY_TIP]

        thumb_out = thumb_ext > t.thumb_extension_min
        is_thumb_up = thumb_tip[1] < wrist[1] - t.thumb_offset and thumb_out
        is_thumb_sideways = abs(thumb_tip[0] - wrist[0]) > t.thumb_offset and thumb_out
        is_thumb_down = thumb_tip[1] > wrist[1] + t.thumb_offset and thumb_out

        index_middle_dist = _distance(index_tip, middle_tip)
        middle_ring_dist = _distance(middle_tip, ring_tip)
        ring_pinky_dist = _distance(ring_tip, pinky_tip)

        index_middle_close = index_middle_dist < t.index_middle_close
        is_thumb_index_close = _distance(thumb_tip, index_tip) < t.thumb_index_close
        fingers_close = (index_middle_dist < t.adjacent_tips_close and
                         middle_ring_dist < t.adjacent_tips_close and
                         ring_pinky_dist < t.adjacent_tips_close)
        fingertips_touch_thumb = (
            _distance(thumb_tip, index_tip) < t.thumb_touch_distance and
            _distance(thumb_tip, middle_tip) < t.thumb_touch_distance
        )

        # 食指与中指的左右顺序相对指根发生翻转即为交叉
        tip_order = index_tip[0] - middle_tip[0]
        base_order = lm[L.INDEX_MCP][0] - lm[L.MIDDLE_MCP][0]
        index_middle_crossed = tip_order * base_order < 0

        tips = (index_tip, middle_tip, ring_tip, pinky_tip)
        closed = sum(1 for tip in tips if _distance(tip, wrist) < t.closed_tip_distance)
        are_fingers_closed = closed >= t.closed_min_fingers

        is_index_hooked = (t.hook_extension_min < index_ext <= t.extension_ratio and
                           index_tip[1] < lm[L.INDEX_MCP][1])

        return HandFeatureSet(
            thumb_extension=thumb_ext,
            index_extension=index_ext,
            middle_extension=middle_ext,
            ring_extension=ring_ext,
            pinky_extension=pinky_ext,
            finger_extension=(index_ext + middle_ext + ring_ext + pinky_ext) / 4,
            is_index_extended=is_index_extended,
            is_middle_extended=is_middle_extended,
            is_ring_extended=is_ring_extended,
            is_pinky_extended=is_pinky_extended,
            are_all_fingers_extended=(is_index_extended and is_middle_extended and
                                      is_ring_extended and is_pinky_extended),
            are_fingers_closed=are_fingers_closed,
            is_thumb_up=bool(is_thumb_up),
            is_thumb_sideways=bool(is_thumb_sideways),
            is_thumb_down=bool(is_thumb_down),
            is_thumb_in_front=self._is_thumb_in_front(lm),
            thumb_tuck_count=self._thumb_tuck_count(lm),
            index_middle_close=index_middle_close,
            is_thumb_index_close=is_thumb_index_close,
            fingers_close=fingers_close,
            fingertips_touch_thumb=fingertips_touch_thumb,
            index_middle_crossed=bool(index_middle_crossed),
            is_curved_hand=self._is_curved(lm),
            hand_curvature=self._hand_curvature(lm),
            is_wrist_rotated=bool(abs(wrist[2] - lm[L.MIDDLE_MCP][2]) > t.wrist_rotation_depth),
            is_l_shape=self.is_l_shape(frame),
            is_index_pointing_up=bool(index_tip[1] < wrist[1] - t.l_shape_index_raise),
            is_hand_pointing_down=bool(index_tip[1] > wrist[1] + t.pointing_down_margin),
            is_index_hooked=bool(is_index_hooked),
        )

    def is_l_shape(self, frame: LandmarkFrame) -> bool:
        """拇指接近水平，同时食指指尖明显高于手腕"""
        t = self.thresholds
        lm = frame.landmarks
        thumb_horizontal = abs(lm[L.THUMB_TIP][1] - lm[L.THUMB_CMC][1]) < t.l_shape_thumb_tolerance
        index_vertical = lm[L.INDEX_TIP][1] < lm[L.WRIST][1] - t.l_shape_index_raise
        return bool(thumb_horizontal and index_vertical)

    def _is_curved(self, lm: np.ndarray) -> bool:
        """C 手型：四个指尖都高于指根平均高度，且指尖高度有一定落差"""
        knuckle_y = np.mean(lm[[L.INDEX_MCP, L.MIDDLE_MCP, L.RING_MCP, L.PINKY_MCP], 1])
        tips_y = lm[[L.INDEX_TIP, L.MIDDLE_TIP, L.RING_TIP, L.PINKY_TIP], 1]

        # y 轴向下，高于即 y 更小
        above = bool(np.all(tips_y < knuckle_y))
        spread = abs(lm[L.INDEX_TIP][1] - lm[L.PINKY_TIP][1]) > self.thresholds.curvature_spread
        return bool(above and spread)

    def _hand_curvature(self, lm: np.ndarray) -> float:
        """指尖高度方差，放大后截断到 [0, 1]"""
        tips_y = lm[[L.INDEX_TIP, L.MIDDLE_TIP, L.RING_TIP, L.PINKY_TIP], 1]
        variance = float(np.var(tips_y))
        return min(max(variance * self.thresholds.curvature_scale, 0.0), 1.0)

    def _thumb_tuck_count(self, lm: np.ndarray) -> int:
        """拇指指尖向小指方向越过了几个指根（食指、中指、无名指）"""
        direction = np.sign(lm[L.PINKY_MCP][0] - lm[L.INDEX_MCP][0])
        if direction == 0:
            return 0

        thumb_x = lm[L.THUMB_TIP][0]
        knuckles = (L.INDEX_MCP, L.MIDDLE_MCP, L.RING_MCP)
        return sum(1 for idx in knuckles if (thumb_x - lm[idx][0]) * direction > 0)

    def _is_thumb_in_front(self, lm: np.ndarray) -> bool:
        """拇指指尖比食指、中指中节更靠近镜头（z 越小越近）"""
        pip_depth = (lm[L.INDEX_PIP][2] + lm[L.MIDDLE_PIP][2]) / 2
        return bool(lm[L.THUMB_TIP][2] < pip_depth)
