"""
WebSocket 服务模块
读取摄像头画面，推送识别出的手势、短语与合成文本
"""

import asyncio
import json
import logging
import time
from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional, Set

import cv2
import websockets

from . import __version__
from .config.settings import Config, default_config
from .core.composer import TextComposer
from .core.detector import SignDetector
from .core.errors import InitializationError
from .core.provider import MediaPipeLandmarkProvider


logger = logging.getLogger(__name__)


def _now_ms() -> float:
    return time.time() * 1000


@dataclass
class WebSocketMessage:
    """WebSocket 消息结构"""
    type: str
    timestamp: float
    data: Dict[str, Any]

    def to_json(self) -> str:
        return json.dumps(asdict(self), ensure_ascii=False)

    @classmethod
    def from_json(cls, json_str: str) -> "WebSocketMessage":
        data = json.loads(json_str)
        return cls(
            type=data.get("type", ""),
            timestamp=data.get("timestamp", 0.0),
            data=data.get("data") or {}
        )


class SignServer:
    """
    HandSpell WebSocket 服务器
    整合摄像头采集、手语识别和文本合成
    """

    def __init__(self, config: Optional[Config] = None, detector: Optional[SignDetector] = None):
        self.config = config or default_config

        self.detector = detector or SignDetector(
            MediaPipeLandmarkProvider(self.config.provider),
            self.config
        )
        self.composer = TextComposer(self.config.composer)
        self.camera: Optional[cv2.VideoCapture] = None

        # WebSocket 连接
        self._clients: Set[Any] = set()

        # 运行状态
        self._running = False
        self._processing_task: Optional[asyncio.Task] = None
        self._last_symbol: Optional[str] = None

        # 统计信息
        self._frame_count = 0
        self._start_time = 0.0

    async def start(self):
        """启动服务：初始化后端并打开摄像头"""
        logger.info("正在初始化组件...")

        future = self.detector.start_initialize()
        try:
            # shield: 超时只放弃本次等待，共享的加载任务继续进行
            await asyncio.wait_for(
                asyncio.shield(asyncio.wrap_future(future)),
                self.config.server.init_timeout
            )
        except InitializationError as e:
            await self._broadcast_status()
            raise RuntimeError(f"关键点后端初始化失败: {e}") from e
        except asyncio.TimeoutError as e:
            raise RuntimeError(
                f"关键点后端初始化超时 ({self.config.server.init_timeout}s)"
            ) from e

        self.camera = cv2.VideoCapture(self.config.camera.device_id)
        if not self.camera.isOpened():
            raise RuntimeError(f"无法打开摄像头 {self.config.camera.device_id}")
        self.camera.set(cv2.CAP_PROP_FRAME_WIDTH, self.config.camera.width)
        self.camera.set(cv2.CAP_PROP_FRAME_HEIGHT, self.config.camera.height)

        self._running = True
        self._start_time = time.time()
        logger.info("组件初始化完成")

    async def stop(self):
        """停止服务"""
        logger.info("正在停止服务...")
        self._running = False

        if self._processing_task:
            self._processing_task.cancel()
            try:
                await self._processing_task
            except asyncio.CancelledError:
                pass

        for client in self._clients.copy():
            await client.close()

        if self.camera is not None:
            self.camera.release()
            self.camera = None

        self.detector.dispose()
        logger.info("服务已停止")

    def process_frame(self, image, now: float) -> Dict[str, Any]:
        """
        处理一帧，返回需要广播的更新

        Returns:
            {"symbol": 变化后的手势或缺省, "phrase": 短语或 None, "committed": 写入文本的手势或 None}
        """
        updates: Dict[str, Any] = {"phrase": None, "committed": None}

        symbol = self.detector.detect_and_classify(image, now)
        if symbol != self._last_symbol:
            self._last_symbol = symbol
            updates["symbol"] = symbol

        updates["committed"] = self.composer.feed(symbol, now)

        if symbol is not None:
            phrase = self.detector.check_for_phrases(now)
            if phrase:
                self.composer.add_phrase(phrase)
                updates["phrase"] = phrase

        return updates

    async def _process_frames(self):
        """帧处理主循环"""
        logger.info("开始帧处理...")
        loop = asyncio.get_running_loop()

        while self._running:
            ok, image = await loop.run_in_executor(None, self.camera.read)
            if not ok:
                await asyncio.sleep(0.01)
                continue

            if self.config.camera.mirror:
                image = cv2.flip(image, 1)

            self._frame_count += 1
            now = _now_ms()
            updates = self.process_frame(image, now)

            if "symbol" in updates:
                await self._send_all("symbol", {
                    "symbol": updates["symbol"],
                    "candidate": (self.detector.last_candidate.to_dict()
                                  if self.detector.last_candidate else None)
                })

            if updates["phrase"]:
                await self._send_all("phrase", {
                    "phrase": updates["phrase"],
                    "sentence": self.detector.current_sentence()
                })

            if updates["committed"] or updates["phrase"]:
                await self._send_all("text", self.composer.to_dict())

            # 让出事件循环
            await asyncio.sleep(0.001)

    async def _send_all(self, msg_type: str, data: Dict[str, Any]):
        message = WebSocketMessage(type=msg_type, timestamp=_now_ms(), data=data)
        await self._broadcast(message.to_json())

    async def _broadcast(self, message: str):
        """广播消息到所有客户端"""
        if not self._clients:
            return

        # 并发发送
        await asyncio.gather(
            *[client.send(message) for client in self._clients.copy()],
            return_exceptions=True
        )

    def status_data(self) -> Dict[str, Any]:
        error = self.detector.last_error
        return {
            "status": self.detector.status.value,
            "error": str(error) if error else None,
            "symbol": self._last_symbol,
            "frames": self._frame_count,
            "buffer": [e.to_dict() for e in self.detector.buffer_snapshot()],
            "sentence": self.detector.current_sentence()
        }

    async def _broadcast_status(self):
        await self._send_all("status", self.status_data())

    async def handle_client(self, websocket):
        """处理客户端连接"""
        client_id = id(websocket)
        logger.info("客户端已连接: %s", client_id)

        self._clients.add(websocket)

        welcome = WebSocketMessage(
            type="connected",
            timestamp=_now_ms(),
            data={
                "message": "Welcome to HandSpell",
                "version": __version__,
                "config": {
                    "confidence_threshold": self.config.stability.confidence_threshold,
                    "phrases": list(self.config.phrases.phrases.values())
                }
            }
        )
        await websocket.send(welcome.to_json())

        try:
            async for message in websocket:
                reply = self.handle_message(message)
                if reply is not None:
                    await websocket.send(reply.to_json())
        except websockets.exceptions.ConnectionClosed:
            pass
        finally:
            self._clients.discard(websocket)
            logger.info("客户端已断开: %s", client_id)

    def handle_message(self, message: str) -> Optional[WebSocketMessage]:
        """处理客户端消息，返回需要回复的消息"""
        try:
            request = WebSocketMessage.from_json(message)
        except (ValueError, AttributeError):
            logger.warning("无效的 JSON 消息: %s", message)
            return None

        now = _now_ms()

        if request.type == "ping":
            return WebSocketMessage(type="pong", timestamp=now, data={})

        if request.type == "reset":
            self.detector.reset()
            self.composer.clear()
            self._last_symbol = None
            return WebSocketMessage(type="status", timestamp=now, data=self.status_data())

        if request.type == "clear_text":
            self.composer.clear()
            return WebSocketMessage(type="text", timestamp=now, data=self.composer.to_dict())

        if request.type == "get_status":
            return WebSocketMessage(type="status", timestamp=now, data=self.status_data())

        logger.warning("未知的消息类型: %s", request.type)
        return None

    async def run(self):
        """运行服务器"""
        await self.start()

        self._processing_task = asyncio.create_task(self._process_frames())

        host, port = self.config.server.host, self.config.server.port
        logger.info("WebSocket 服务器启动: ws://%s:%d", host, port)

        async with websockets.serve(self.handle_client, host, port):
            while self._running:
                await asyncio.sleep(5)

                if self._frame_count > 0:
                    elapsed = time.time() - self._start_time
                    fps = self._frame_count / elapsed if elapsed > 0 else 0
                    logger.info("帧数: %d, FPS: %.1f, 客户端: %d",
                                self._frame_count, fps, len(self._clients))
