"""
文本合成模块
把逐帧的稳定手势转换为显示文本（字母、空格、删除）与短语行
"""

import logging
from typing import Optional

from .gesture import DELETE, SPACE
from ..config.settings import ComposerConfig


logger = logging.getLogger(__name__)


class TextComposer:
    """
    文本合成器

    手势需要持续 commit_delay_ms 才会写入文本；手势变化或消失会重新计时，
    同一次保持只写入一次。
    """

    def __init__(self, config: Optional[ComposerConfig] = None):
        self.config = config or ComposerConfig()

        self.text = ""
        self.phrase_text = ""

        self._pending: Optional[str] = None
        self._pending_since = 0.0
        self._committed = False

    @property
    def is_composing(self) -> bool:
        """是否有手势正在等待写入"""
        return self._pending is not None and not self._committed

    def feed(self, symbol: Optional[str], now: float) -> Optional[str]:
        """
        输入一帧的稳定手势

        Args:
            symbol: 稳定手势或 None
            now: 当前时间（毫秒）

        Returns:
            本帧写入文本的手势，未写入时返回 None
        """
        if symbol != self._pending:
            self._pending = symbol
            self._pending_since = now
            self._committed = False
            return None

        if symbol is None or self._committed:
            return None

        if now - self._pending_since < self.config.commit_delay_ms:
            return None

        self._apply(symbol)
        self._committed = True
        return symbol

    def _apply(self, symbol: str):
        if symbol == SPACE:
            self.text += " "
        elif symbol == DELETE:
            self.text = self.text[:-1]
        else:
            self.text += symbol
        logger.debug("文本更新: %r", self.text)

    def add_phrase(self, phrase: str) -> bool:
        """追加短语；短语行已经以该短语结尾时忽略"""
        phrase = phrase.strip()
        if not phrase or self.phrase_text.strip().endswith(phrase):
            return False
        self.phrase_text = f"{self.phrase_text} {phrase}" if self.phrase_text else phrase
        return True

    def clear(self):
        """清空文本"""
        self.text = ""
        self.phrase_text = ""
        self._pending = None
        self._committed = False

    def to_dict(self):
        return {
            "text": self.text,
            "phrases": self.phrase_text,
            "composing": self.is_composing
        }
