"""
手语检测器
持有关键点后端与会话状态，按帧串联 特征提取 -> 手势分类 -> 稳定化 -> 短语匹配
"""

import logging
import threading
import time
from concurrent.futures import CancelledError, Future
from concurrent.futures import TimeoutError as FutureTimeoutError
from enum import Enum
from typing import Any, Optional, Tuple

from .errors import (
    DegenerateInputError,
    InitializationError,
    LandmarkFormatError,
    PreconditionError,
)
from .features import FeatureExtractor, HandFeatureSet
from .gesture import GestureCandidate, GestureClassifier
from .landmarks import LandmarkFrame
from .phrases import PhraseMatcher
from .provider import LandmarkProvider
from .stability import GestureBufferEntry, StabilityFilter
from ..config.settings import Config, default_config


logger = logging.getLogger(__name__)


def _now_ms() -> float:
    return time.time() * 1000


class DetectorStatus(Enum):
    """后端初始化状态"""
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


class SignDetector:
    """
    手语检测器

    一个实例对应一条识别流水线。初始化可重复调用，并发调用共享同一次加载；
    逐帧调用通过互斥锁串行执行，保证状态转换顺序。
    """

    def __init__(
        self,
        provider: LandmarkProvider,
        config: Optional[Config] = None,
        classifier: Optional[GestureClassifier] = None
    ):
        self.config = config or default_config
        self.provider = provider

        self.extractor = FeatureExtractor(self.config.features)
        self.classifier = classifier or GestureClassifier()
        self._stability = StabilityFilter(self.config.stability)
        self._phrases = PhraseMatcher(self.config.phrases)

        self._status = DetectorStatus.IDLE
        self._init_lock = threading.Lock()
        self._init_future: Optional[Future] = None
        self.last_error: Optional[InitializationError] = None

        # 保护稳定化与短语状态
        self._state_lock = threading.RLock()

        # 最近一帧的中间结果（调试用）
        self.last_frame: Optional[LandmarkFrame] = None
        self.last_features: Optional[HandFeatureSet] = None
        self.last_candidate: Optional[GestureCandidate] = None

    # ------------------------------------------------------------------
    # 生命周期
    # ------------------------------------------------------------------

    @property
    def status(self) -> DetectorStatus:
        return self._status

    @property
    def is_ready(self) -> bool:
        return self._status == DetectorStatus.READY

    def start_initialize(self) -> Future:
        """
        启动后端初始化，返回共享的 Future

        已就绪时返回已完成的 Future；正在加载时返回同一个 Future。
        """
        with self._init_lock:
            if self._status == DetectorStatus.READY:
                done: Future = Future()
                done.set_result(None)
                return done

            if self._init_future is not None:
                return self._init_future

            future: Future = Future()
            self._init_future = future
            self._status = DetectorStatus.LOADING
            self.last_error = None

        logger.info("开始加载关键点后端...")
        thread = threading.Thread(target=self._load_backend, args=(future,), daemon=True)
        thread.start()
        return future

    def _load_backend(self, future: Future):
        # 进入运行态后 Future 不能再被取消，所有等待者得到同一个结果
        if not future.set_running_or_notify_cancel():
            with self._init_lock:
                if self._init_future is future:
                    self._init_future = None
                    self._status = DetectorStatus.IDLE
            logger.info("关键点后端加载在开始前被取消")
            return

        error: Optional[InitializationError] = None
        try:
            self.provider.load()
        except Exception as e:
            error = InitializationError(f"关键点后端加载失败: {e}")
            error.__cause__ = e

        with self._init_lock:
            # dispose() 会清空 _init_future，此次加载结果作废
            superseded = self._init_future is not future
            if superseded:
                if (error is None and self._init_future is None and
                        self._status != DetectorStatus.READY):
                    self.provider.close()
            elif error is not None:
                self._status = DetectorStatus.FAILED
                self._init_future = None
                self.last_error = error
            else:
                self._status = DetectorStatus.READY
                self._init_future = None

        if superseded:
            logger.info("检测器已释放，丢弃本次加载结果")
            future.set_exception(InitializationError("关键点后端加载已被 dispose 取消"))
            return

        if error is not None:
            logger.error("%s", error)
            future.set_exception(error)
            return

        logger.info("关键点后端加载完成")
        future.set_result(None)

    def initialize(self, timeout: Optional[float] = None) -> bool:
        """
        初始化后端（阻塞）

        Args:
            timeout: 等待秒数，None 表示一直等待

        Returns:
            是否就绪；失败、超时后可再次调用重试，超时不会中断正在进行的加载
        """
        future = self.start_initialize()
        try:
            future.result(timeout)
        except (InitializationError, FutureTimeoutError, CancelledError):
            return False
        return True

    def ensure_ready(self):
        """后端未就绪时抛出 PreconditionError"""
        if self._status != DetectorStatus.READY:
            raise PreconditionError(f"检测器未就绪: {self._status.value}")

    def dispose(self):
        """释放后端并回到初始状态"""
        with self._init_lock:
            self.provider.close()
            self._status = DetectorStatus.IDLE
            self._init_future = None
        logger.info("检测器已释放")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.dispose()
        return False

    # ------------------------------------------------------------------
    # 逐帧识别
    # ------------------------------------------------------------------

    def detect_and_classify(self, frame: Any, now: Optional[float] = None) -> Optional[str]:
        """
        处理一帧视频

        后端未就绪时直接返回 None，不改变任何状态。

        Args:
            frame: 交给关键点提供者的视频帧
            now: 当前时间（毫秒），默认使用系统时间

        Returns:
            本帧的稳定手势或 None
        """
        if self._status != DetectorStatus.READY:
            return None

        try:
            points = self.provider.detect(frame)
        except Exception as e:
            logger.warning("关键点检测异常，按无手处理: %s", e)
            points = None

        return self.process_landmarks(points, now)

    def process_landmarks(self, points: Any, now: Optional[float] = None) -> Optional[str]:
        """
        用外部提供的关键点运行流水线

        points 为空、格式错误或退化时按无手处理。
        """
        if now is None:
            now = _now_ms()

        with self._state_lock:
            features = self._extract(points)
            if features is None:
                self.last_candidate = None
                return self._stability.update(None, False, now)

            candidate = self.classifier.classify(features)
            self.last_candidate = candidate
            return self._stability.update(candidate, True, now)

    def _extract(self, points: Any) -> Optional[HandFeatureSet]:
        self.last_frame = None
        self.last_features = None

        if points is None:
            return None

        try:
            frame = LandmarkFrame.from_points(points)
        except LandmarkFormatError as e:
            logger.debug("关键点格式错误，按无手处理: %s", e)
            return None

        try:
            features = self.extractor.extract(frame)
        except DegenerateInputError as e:
            logger.debug("退化的关键点数据，按无手处理: %s", e)
            return None

        self.last_frame = frame
        self.last_features = features
        return features

    # ------------------------------------------------------------------
    # 短语与状态
    # ------------------------------------------------------------------

    def check_for_phrases(self, now: Optional[float] = None) -> Optional[str]:
        """检查最近的手势是否构成短语（带冷却）"""
        if now is None:
            now = _now_ms()
        with self._state_lock:
            return self._phrases.check(self._stability.entries(), now)

    def current_sentence(self) -> str:
        with self._state_lock:
            return self._phrases.current_sentence()

    def phrase_history(self) -> Tuple[str, ...]:
        with self._state_lock:
            return self._phrases.history()

    def buffer_snapshot(self) -> Tuple[GestureBufferEntry, ...]:
        with self._state_lock:
            return self._stability.entries()

    @property
    def last_symbol(self) -> Optional[str]:
        with self._state_lock:
            return self._stability.last_symbol

    def reset(self):
        """清空缓冲区、稳定手势与短语历史；短语冷却计时保留"""
        with self._state_lock:
            self._stability.reset()
            self._phrases.reset()
            self.last_frame = None
            self.last_features = None
            self.last_candidate = None
        logger.info("识别状态已重置")
