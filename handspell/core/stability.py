"""
手势稳定化模块
负责置信度门限、滞回保持、手势缓冲区维护与过期清理
"""

import logging
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Deque, Optional, Tuple

from .gesture import GestureCandidate
from ..config.settings import StabilityConfig


logger = logging.getLogger(__name__)


class StabilityState(Enum):
    """稳定化状态"""
    NO_HAND = "no_hand"             # 当前帧没有检测到手
    HAND_PRESENT = "hand_present"   # 当前帧检测到手


@dataclass(frozen=True)
class GestureBufferEntry:
    """缓冲区条目"""
    symbol: str
    timestamp: float  # 毫秒

    def to_dict(self):
        return {"symbol": self.symbol, "timestamp": self.timestamp}


class StabilityFilter:
    """
    稳定化过滤器

    - 无手：清除过期条目，清空当前稳定手势，输出 None
    - 有手且置信度超过门限：更新稳定手势并写入缓冲区
    - 有手但置信度不足：保持上一次的稳定手势（滞回）
    """

    def __init__(self, config: Optional[StabilityConfig] = None):
        self.config = config or StabilityConfig()

        self.state = StabilityState.NO_HAND
        self._last_symbol: Optional[str] = None
        self._buffer: Deque[GestureBufferEntry] = deque(maxlen=self.config.buffer_capacity)

    @property
    def last_symbol(self) -> Optional[str]:
        return self._last_symbol

    def entries(self) -> Tuple[GestureBufferEntry, ...]:
        """缓冲区快照（按时间顺序）"""
        return tuple(self._buffer)

    def update(
        self,
        candidate: Optional[GestureCandidate],
        hand_present: bool,
        now: float
    ) -> Optional[str]:
        """
        处理一帧的分类结果

        Args:
            candidate: 分类器给出的最佳候选，可能为 None
            hand_present: 当前帧是否检测到手
            now: 当前时间（毫秒）

        Returns:
            本帧输出的稳定手势
        """
        if not hand_present:
            if self.state != StabilityState.NO_HAND:
                logger.debug("手部丢失，清空稳定手势 %s", self._last_symbol)
            self.state = StabilityState.NO_HAND
            self.purge_stale(now)
            self._last_symbol = None
            return None

        self.state = StabilityState.HAND_PRESENT

        if candidate is not None and candidate.confidence > self.config.confidence_threshold:
            if candidate.symbol != self._last_symbol:
                logger.debug("稳定手势 %s -> %s (%.2f)",
                             self._last_symbol, candidate.symbol, candidate.confidence)
            self._last_symbol = candidate.symbol
            # deque 满时自动淘汰最旧条目
            self._buffer.append(GestureBufferEntry(candidate.symbol, now))
            return candidate.symbol

        return self._last_symbol

    def purge_stale(self, now: float) -> int:
        """清除早于过期时长的条目，返回清除数量"""
        horizon = self.config.stale_horizon_ms
        kept = [e for e in self._buffer if now - e.timestamp < horizon]
        removed = len(self._buffer) - len(kept)
        if removed:
            self._buffer.clear()
            self._buffer.extend(kept)
        return removed

    def reset(self):
        """重置状态"""
        self.state = StabilityState.NO_HAND
        self._last_symbol = None
        self._buffer.clear()
