"""
短语匹配模块
在最近的手势序列中查找词典里的短语，带冷却时间
"""

import logging
from collections import deque
from itertools import groupby
from typing import Deque, Iterable, Mapping, Optional, Tuple

from .gesture import DELETE, SPACE
from .stability import GestureBufferEntry
from ..config.settings import PhraseConfig


logger = logging.getLogger(__name__)


def build_sequence(symbols: Iterable[str]) -> str:
    """
    把手势序列拼成匹配用的字符串

    Space 记为空格，Delete 删除前一个字符。
    """
    chars = []
    for symbol in symbols:
        if symbol == SPACE:
            chars.append(" ")
        elif symbol == DELETE:
            if chars:
                chars.pop()
        else:
            chars.append(symbol)
    return "".join(chars)


def collapse_runs(text: str) -> str:
    """合并连续重复字符，例如 HHELLLO -> HELO"""
    return "".join(ch for ch, _ in groupby(text))


class PhraseMatcher:
    """
    短语匹配器

    取缓冲区最近 window 个手势拼接成序列，按词典顺序查找第一个
    作为子串出现的键。匹配成功后进入冷却。
    """

    def __init__(self, config: Optional[PhraseConfig] = None):
        self.config = config or PhraseConfig()

        # 词典在运行期不可变
        self._phrases: Tuple[Tuple[str, str], ...] = tuple(self.config.phrases.items())
        self._history: Deque[str] = deque(maxlen=self.config.history_capacity)
        self._last_emit_time: Optional[float] = None

    @property
    def phrases(self) -> Mapping[str, str]:
        return dict(self._phrases)

    @property
    def last_emit_time(self) -> Optional[float]:
        return self._last_emit_time

    def in_cooldown(self, now: float) -> bool:
        if self._last_emit_time is None:
            return False
        return now - self._last_emit_time < self.config.cooldown_ms

    def check(self, entries: Iterable[GestureBufferEntry], now: float) -> Optional[str]:
        """
        检查最近的手势是否构成短语

        Args:
            entries: 缓冲区条目（按时间顺序）
            now: 当前时间（毫秒）

        Returns:
            匹配到的短语；冷却中或未匹配时返回 None
        """
        if self.in_cooldown(now):
            return None

        recent = [e.symbol for e in list(entries)[-self.config.window:] if e.symbol]
        if not recent:
            return None

        sequence = build_sequence(recent)
        if self.config.collapse_repeats:
            sequence = collapse_runs(sequence)

        for key, value in self._phrases:
            target = collapse_runs(key) if self.config.collapse_repeats else key
            if target and target in sequence:
                self._last_emit_time = now
                self._history.append(value)
                logger.info("识别到短语: %s (序列=%s)", value, sequence)
                return value

        return None

    def history(self) -> Tuple[str, ...]:
        """最近输出的短语"""
        return tuple(self._history)

    def current_sentence(self) -> str:
        """把最近的短语拼成一句话"""
        return " ".join(self._history)

    def reset(self):
        """清空短语历史；冷却计时不受影响，两次输出间隔始终不小于 cooldown_ms"""
        self._history.clear()
