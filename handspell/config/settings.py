"""
HandSpell 配置文件
包含特征阈值、稳定化参数、短语词典、服务器配置等
"""

import json
from collections import OrderedDict
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Union


# 默认短语词典（键为手势序列，顺序即扫描顺序）
DEFAULT_PHRASES: Dict[str, str] = OrderedDict([
    ("HELLO", "Hello"),
    ("GOODBYE", "Goodbye"),
    ("THANK", "Thank you"),
    ("PLEASE", "Please"),
    ("YES", "Yes"),
    ("NO", "No"),
    ("HELP", "Help"),
    ("SORRY", "Sorry"),
    ("LOVE", "Love"),
    ("WANT", "Want"),
    ("NEED", "Need"),
    ("HOW", "How are you?"),
    ("NAME", "What is your name?"),
    ("MY NAME", "My name is"),
    ("NICE MEET", "Nice to meet you"),
    ("LEARN", "I am learning sign language"),
    ("UNDERSTAND", "I understand"),
    ("NOT UNDERSTAND", "I don't understand"),
    ("AGAIN", "Please repeat"),
])


@dataclass
class FeatureThresholds:
    """手部特征提取阈值配置"""

    # 手指伸展：指根到指尖距离 / 手腕到中指根距离
    extension_ratio: float = 0.6
    thumb_extension_min: float = 0.5

    # 握拳：指尖到手腕的距离（归一化图像坐标）
    closed_tip_distance: float = 0.2
    closed_min_fingers: int = 3

    # 拇指朝向：相对手腕的偏移
    thumb_offset: float = 0.1

    # 指尖接近判定
    index_middle_close: float = 0.06
    thumb_index_close: float = 0.05
    adjacent_tips_close: float = 0.07
    thumb_touch_distance: float = 0.06

    # 弯曲手型（C 手型）
    curvature_spread: float = 0.05
    curvature_scale: float = 100.0

    # 手腕旋转：手腕与中指根的深度差
    wrist_rotation_depth: float = 0.05

    # L 手型
    l_shape_thumb_tolerance: float = 0.05
    l_shape_index_raise: float = 0.1

    # 手指朝下
    pointing_down_margin: float = 0.05

    # 食指钩状（X 手型）伸展区间
    hook_extension_min: float = 0.3

    # 参考距离下限，小于此值视为损坏数据
    min_reference_distance: float = 1e-6


@dataclass
class StabilityConfig:
    """稳定化配置"""

    confidence_threshold: float = 0.65  # 候选手势需超过此置信度才能覆盖输出
    buffer_capacity: int = 10           # 手势缓冲区容量
    stale_horizon_ms: int = 2000        # 手部丢失后清除早于此时长的条目

    def __post_init__(self):
        if not 0.0 < self.confidence_threshold <= 1.0:
            raise ValueError(
                f"confidence_threshold 必须在 (0, 1] 范围内: {self.confidence_threshold}"
            )
        if self.buffer_capacity < 1:
            raise ValueError(f"buffer_capacity 必须 >= 1: {self.buffer_capacity}")
        if self.stale_horizon_ms < 0:
            raise ValueError(f"stale_horizon_ms 不能为负: {self.stale_horizon_ms}")


@dataclass
class PhraseConfig:
    """短语匹配配置"""

    cooldown_ms: int = 3000        # 两次短语输出的最小间隔
    window: int = 5                # 参与匹配的最近手势数
    history_capacity: int = 5      # 短语历史容量
    collapse_repeats: bool = False # 是否把连续重复的手势视为一次

    phrases: Dict[str, str] = field(default_factory=lambda: OrderedDict(DEFAULT_PHRASES))

    def __post_init__(self):
        if self.cooldown_ms < 0:
            raise ValueError(f"cooldown_ms 不能为负: {self.cooldown_ms}")
        if self.window < 1:
            raise ValueError(f"window 必须 >= 1: {self.window}")
        if self.history_capacity < 1:
            raise ValueError(f"history_capacity 必须 >= 1: {self.history_capacity}")


@dataclass
class ProviderConfig:
    """MediaPipe Hands 配置"""

    max_num_hands: int = 1
    min_detection_confidence: float = 0.5
    min_tracking_confidence: float = 0.5
    model_complexity: int = 1  # 0=lite, 1=full


@dataclass
class ComposerConfig:
    """文本合成配置"""

    commit_delay_ms: int = 800  # 手势保持多久后写入文本


@dataclass
class ServerConfig:
    """WebSocket 服务器配置"""

    host: str = "127.0.0.1"
    port: int = 8765

    init_timeout: float = 30.0  # 后端初始化超时（秒）


@dataclass
class CameraConfig:
    """摄像头配置"""

    device_id: int = 0               # 摄像头设备ID
    width: int = 640                 # 分辨率宽度
    height: int = 480                # 分辨率高度
    mirror: bool = True              # 是否镜像（自拍模式）


@dataclass
class Config:
    """主配置类，整合所有配置"""

    features: FeatureThresholds = field(default_factory=FeatureThresholds)
    stability: StabilityConfig = field(default_factory=StabilityConfig)
    phrases: PhraseConfig = field(default_factory=PhraseConfig)
    provider: ProviderConfig = field(default_factory=ProviderConfig)
    composer: ComposerConfig = field(default_factory=ComposerConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    camera: CameraConfig = field(default_factory=CameraConfig)

    # 调试选项
    debug: bool = False
    log_level: str = "INFO"


def load_phrases(path: Union[str, Path]) -> Dict[str, str]:
    """
    从 JSON 文件加载短语词典

    文件内容为一个对象，键为手势序列，值为短语；保持文件中的顺序。
    """
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f, object_pairs_hook=OrderedDict)

    if not isinstance(data, dict):
        raise ValueError(f"短语文件必须是 JSON 对象: {path}")

    phrases = OrderedDict()
    for key, value in data.items():
        if not isinstance(value, str):
            raise ValueError(f"短语值必须是字符串: {key!r}")
        phrases[key.upper()] = value
    return phrases


# 创建默认配置实例
default_config = Config()
