"""
关键点提供者
封装 MediaPipe Hands，把视频帧转换为 21 个归一化关键点
"""

import logging
from typing import Any, List, Optional, Protocol, Sequence, Tuple, runtime_checkable

import cv2
import numpy as np

from .landmarks import HAND_CONNECTIONS, LandmarkFrame
from ..config.settings import ProviderConfig


logger = logging.getLogger(__name__)

Point = Tuple[float, float, float]


@runtime_checkable
class LandmarkProvider(Protocol):
    """关键点提供者协议"""

    def load(self) -> None:
        """加载后端（可能很慢，只会被调用一次）"""
        ...

    def detect(self, frame: Any) -> Optional[Sequence[Point]]:
        """返回一只手的 21 个关键点，没有手时返回 None 或空列表"""
        ...

    def close(self) -> None:
        """释放资源"""
        ...


class MediaPipeLandmarkProvider:
    """
    MediaPipe Hands 关键点提供者
    视频模式，只跟踪一只手
    """

    def __init__(self, config: Optional[ProviderConfig] = None):
        self.config = config or ProviderConfig()
        self._hands = None

    @property
    def loaded(self) -> bool:
        return self._hands is not None

    def load(self) -> None:
        """创建 MediaPipe Hands 实例"""
        if self._hands is not None:
            return

        import mediapipe as mp

        self._hands = mp.solutions.hands.Hands(
            static_image_mode=False,
            max_num_hands=self.config.max_num_hands,
            min_detection_confidence=self.config.min_detection_confidence,
            min_tracking_confidence=self.config.min_tracking_confidence,
            model_complexity=self.config.model_complexity
        )
        logger.info("MediaPipe Hands 已加载 (model_complexity=%d)", self.config.model_complexity)

    def detect(self, frame: np.ndarray) -> Optional[List[Point]]:
        """
        检测手部关键点

        Args:
            frame: BGR 格式图像

        Returns:
            第一只手的 21 个 (x, y, z)，没有手时返回 None
        """
        if self._hands is None:
            return None

        # 转换颜色空间 BGR -> RGB
        image_rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
        results = self._hands.process(image_rgb)

        if not results.multi_hand_landmarks:
            return None

        hand_landmarks = results.multi_hand_landmarks[0]
        return [(lm.x, lm.y, lm.z) for lm in hand_landmarks.landmark]

    def close(self):
        """释放资源"""
        if self._hands is not None:
            self._hands.close()
            self._hands = None

    def __enter__(self):
        self.load()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


def draw_landmarks(
    image: np.ndarray,
    frame: Optional[LandmarkFrame],
    color: Tuple[int, int, int] = (0, 255, 255),  # 青色
    thickness: int = 2,
    circle_radius: int = 4
) -> np.ndarray:
    """
    在图像上绘制手部关键点

    Args:
        image: 原始图像
        frame: 关键点，为 None 时原样返回副本

    Returns:
        绘制后的图像
    """
    output = image.copy()
    if frame is None:
        return output

    height, width = image.shape[:2]
    pixels = [(int(x * width), int(y * height)) for x, y, _ in frame.landmarks]

    for start_idx, end_idx in HAND_CONNECTIONS:
        cv2.line(output, pixels[start_idx], pixels[end_idx], color, thickness)

    for i, point in enumerate(pixels):
        # 指尖用不同颜色
        if i in (4, 8, 12, 16, 20):
            cv2.circle(output, point, circle_radius + 2, (0, 255, 0), -1)
        else:
            cv2.circle(output, point, circle_radius, color, -1)

    return output
