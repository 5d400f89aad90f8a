#!/usr/bin/env python3
"""
HandSpell - 手语指拼识别服务
主入口文件

用法:
    python -m handspell.main              # 启动 WebSocket 服务器
    python -m handspell.main --debug      # 启动调试预览窗口
"""

import argparse
import asyncio
import logging
import time

import cv2

from .config.settings import Config, StabilityConfig, load_phrases
from .core.composer import TextComposer
from .core.detector import SignDetector
from .core.errors import PreconditionError
from .core.provider import MediaPipeLandmarkProvider, draw_landmarks


logger = logging.getLogger(__name__)


# 调试模式下摄像头连续读取失败的上限
MAX_READ_FAILURES = 100


def read_frame(camera, mirror: bool, retry_delay: float = 0.01):
    """读取一帧；读取失败时短暂休眠后返回 None"""
    ok, image = camera.read()
    if not ok:
        time.sleep(retry_delay)
        return None
    if mirror:
        image = cv2.flip(image, 1)
    return image


def run_debug_mode(config: Config):
    """
    调试模式：显示预览窗口，不启动 WebSocket 服务器
    用于测试手势识别效果
    """
    logger.info("HandSpell 调试模式，按 'q' 退出，按 'c' 清空文本，按 'r' 重置")

    detector = SignDetector(MediaPipeLandmarkProvider(config.provider), config)
    composer = TextComposer(config.composer)

    detector.initialize(timeout=config.server.init_timeout)
    try:
        detector.ensure_ready()
    except PreconditionError as e:
        logger.error("无法启动调试模式: %s (%s)", e, detector.last_error)
        return

    camera = cv2.VideoCapture(config.camera.device_id)
    if not camera.isOpened():
        logger.error("无法打开摄像头 %d", config.camera.device_id)
        detector.dispose()
        return

    try:
        failures = 0
        while True:
            image = read_frame(camera, config.camera.mirror)
            if image is None:
                failures += 1
                if failures >= MAX_READ_FAILURES:
                    logger.error("摄像头连续 %d 次读取失败，退出调试模式", failures)
                    break
                continue
            failures = 0

            now = time.time() * 1000
            symbol = detector.detect_and_classify(image, now)
            composer.feed(symbol, now)

            phrase = detector.check_for_phrases(now) if symbol else None
            if phrase:
                composer.add_phrase(phrase)

            output = draw_landmarks(image, detector.last_frame)

            candidate = detector.last_candidate
            info_lines = [
                f"Symbol: {symbol or '-'}",
                f"Candidate: {candidate.symbol} {candidate.confidence:.2f}" if candidate else "Candidate: -",
                f"Text: {composer.text}",
                f"Phrases: {composer.phrase_text}",
            ]

            y_offset = 30
            for line in info_lines:
                cv2.putText(output, line, (10, y_offset),
                            cv2.FONT_HERSHEY_SIMPLEX, 0.6, (0, 255, 0), 2)
                y_offset += 25

            cv2.imshow("HandSpell Debug", output)

            key = cv2.waitKey(1) & 0xFF
            if key == ord('q'):
                break
            elif key == ord('c'):
                composer.clear()
            elif key == ord('r'):
                detector.reset()
                composer.clear()

    finally:
        camera.release()
        detector.dispose()
        cv2.destroyAllWindows()
        logger.info("调试模式结束")


def run_server_mode(config: Config):
    """
    服务器模式：启动 WebSocket 服务器
    """
    from .server import SignServer

    server = SignServer(config)

    async def serve():
        try:
            await server.run()
        finally:
            await server.stop()

    try:
        asyncio.run(serve())
    except KeyboardInterrupt:
        logger.info("收到中断信号")


def build_config(args: argparse.Namespace) -> Config:
    """根据命令行参数创建配置"""
    config = Config()
    config.server.host = args.host
    config.server.port = args.port
    config.camera.device_id = args.camera
    config.log_level = args.log_level
    config.debug = args.debug

    if args.threshold is not None:
        config.stability = StabilityConfig(
            confidence_threshold=args.threshold,
            buffer_capacity=config.stability.buffer_capacity,
            stale_horizon_ms=config.stability.stale_horizon_ms
        )

    if args.phrases:
        config.phrases.phrases = load_phrases(args.phrases)

    return config


def main():
    """主函数"""
    parser = argparse.ArgumentParser(
        description="HandSpell - 手语指拼识别服务",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
示例:
    handspell                      启动 WebSocket 服务器
    handspell --debug              启动调试预览窗口
    handspell --threshold 0.7      提高置信度门限
    handspell --phrases my.json    使用自定义短语词典
        """
    )

    parser.add_argument(
        "--debug", "-d",
        action="store_true",
        help="启动调试模式（预览窗口）"
    )

    parser.add_argument(
        "--host",
        type=str,
        default="127.0.0.1",
        help="服务器主机地址 (默认: 127.0.0.1)"
    )

    parser.add_argument(
        "--port", "-p",
        type=int,
        default=8765,
        help="服务器端口 (默认: 8765)"
    )

    parser.add_argument(
        "--camera", "-c",
        type=int,
        default=0,
        help="摄像头设备 ID (默认: 0)"
    )

    parser.add_argument(
        "--threshold", "-t",
        type=float,
        default=None,
        help="置信度门限，取值 (0, 1] (默认: 0.65)"
    )

    parser.add_argument(
        "--phrases",
        type=str,
        default=None,
        help="短语词典 JSON 文件"
    )

    parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="日志级别 (默认: INFO)"
    )

    args = parser.parse_args()

    try:
        config = build_config(args)
    except (OSError, ValueError) as e:
        parser.error(str(e))

    logging.basicConfig(
        level=getattr(logging, config.log_level),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    )

    if args.debug:
        run_debug_mode(config)
    else:
        run_server_mode(config)


if __name__ == "__main__":
    main()
