"""
手势识别模块
基于规则表对手部特征打分，选出最可能的字母/控制手势
"""

from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Tuple

from .features import HandFeatureSet


# 指拼字母表：26 个字母 + 空格 + 删除
SPACE = "Space"
DELETE = "Delete"
ALPHABET: Tuple[str, ...] = tuple("ABCDEFGHIJKLMNOPQRSTUVWXYZ") + (SPACE, DELETE)


@dataclass(frozen=True)
class GestureCandidate:
    """候选手势"""
    symbol: str
    confidence: float

    def to_dict(self):
        return {"symbol": self.symbol, "confidence": self.confidence}


Predicate = Callable[[HandFeatureSet], bool]
Scorer = Callable[[HandFeatureSet], float]


@dataclass(frozen=True)
class GestureRule:
    """一条规则：判定条件 + 置信度公式"""
    symbol: str
    predicate: Predicate
    scorer: Scorer

    def evaluate(self, f: HandFeatureSet) -> Optional[GestureCandidate]:
        if not self.predicate(f):
            return None
        return GestureCandidate(self.symbol, _clamp01(self.scorer(f)))


def _clamp01(value: float) -> float:
    return min(max(float(value), 0.0), 1.0)


def _only(f: HandFeatureSet, index=False, middle=False, ring=False, pinky=False) -> bool:
    """四指伸展状态是否恰好为给定组合"""
    return (f.is_index_extended == index and f.is_middle_extended == middle and
            f.is_ring_extended == ring and f.is_pinky_extended == pinky)


def _constant(value: float) -> Scorer:
    return lambda f: value


# 默认规则表，顺序只影响置信度完全相同时的取舍（先注册者胜）
DEFAULT_RULES: List[GestureRule] = [
    # A: 握拳，拇指竖起
    GestureRule(
        "A",
        lambda f: f.is_thumb_up and f.are_fingers_closed and not f.is_pinky_extended,
        lambda f: 0.8 * f.thumb_extension,
    ),
    # B: 四指伸直并拢
    GestureRule(
        "B",
        lambda f: f.are_all_fingers_extended and f.fingers_close,
        lambda f: 0.8 * f.finger_extension,
    ),
    # C: 弯曲成 C 形
    GestureRule(
        "C",
        lambda f: f.is_curved_hand and not f.are_all_fingers_extended,
        lambda f: 0.8 * f.hand_curvature,
    ),
    # D: 仅食指伸出
    GestureRule(
        "D",
        lambda f: _only(f, index=True),
        lambda f: 0.8 * f.index_extension,
    ),
    # E: 四指蜷曲，拇指收起
    GestureRule(
        "E",
        lambda f: f.are_fingers_closed and not f.is_thumb_up,
        _constant(0.7),
    ),
    # F: 拇指食指相触，其余三指伸出
    GestureRule(
        "F",
        lambda f: (f.is_thumb_index_close and f.is_middle_extended and
                   f.is_ring_extended and f.is_pinky_extended),
        _constant(0.75),
    ),
    # G: 食指前指，拇指横向
    GestureRule(
        "G",
        lambda f: f.is_index_extended and not f.is_middle_extended and f.is_thumb_sideways,
        lambda f: 0.7 * f.index_extension,
    ),
    # H: 食指中指并拢伸出
    GestureRule(
        "H",
        lambda f: _only(f, index=True, middle=True) and f.index_middle_close,
        _constant(0.75),
    ),
    # I: 仅小指伸出
    GestureRule(
        "I",
        lambda f: _only(f, pinky=True),
        lambda f: 0.8 * f.pinky_extension,
    ),
    # J: I 手型加手腕旋转（静态近似）
    GestureRule(
        "J",
        lambda f: _only(f, pinky=True) and f.is_wrist_rotated,
        _constant(0.65),
    ),
    # K: 食指中指分开伸出
    GestureRule(
        "K",
        lambda f: _only(f, index=True, middle=True) and not f.index_middle_close,
        _constant(0.7),
    ),
    # L: 拇指与食指成 L 形
    GestureRule(
        "L",
        lambda f: _only(f, index=True) and f.is_thumb_sideways and f.is_l_shape,
        _constant(0.8),
    ),
    # M: 拇指压在三指之下
    GestureRule(
        "M",
        lambda f: (f.are_fingers_closed and not f.is_thumb_up and
                   not f.is_thumb_in_front and f.thumb_tuck_count >= 3),
        _constant(0.74),
    ),
    # N: 拇指压在两指之下
    GestureRule(
        "N",
        lambda f: (f.are_fingers_closed and not f.is_thumb_up and
                   not f.is_thumb_in_front and f.thumb_tuck_count == 2),
        _constant(0.74),
    ),
    # O: 指尖与拇指相触成圆
    GestureRule(
        "O",
        lambda f: f.fingertips_touch_thumb and not f.are_all_fingers_extended,
        _constant(0.78),
    ),
    # P: K 手型朝下
    GestureRule(
        "P",
        lambda f: _only(f, index=True, middle=True) and f.is_hand_pointing_down,
        _constant(0.78),
    ),
    # Q: 拇指与食指朝下
    GestureRule(
        "Q",
        lambda f: (f.is_index_extended and not f.is_middle_extended and
                   f.thumb_extension > 0.5 and f.is_hand_pointing_down),
        lambda f: 0.85 * f.index_extension,
    ),
    # R: 食指中指交叉
    GestureRule(
        "R",
        lambda f: _only(f, index=True, middle=True) and f.index_middle_crossed,
        _constant(0.82),
    ),
    # S: 握拳，拇指横压在指前
    GestureRule(
        "S",
        lambda f: (f.are_fingers_closed and not f.is_thumb_up and
                   f.is_thumb_in_front and f.thumb_tuck_count >= 1),
        _constant(0.76),
    ),
    # T: 拇指夹在食指与中指之间
    GestureRule(
        "T",
        lambda f: (f.are_fingers_closed and not f.is_thumb_up and
                   not f.is_thumb_in_front and f.thumb_tuck_count == 1),
        _constant(0.74),
    ),
    # U: 食指中指并拢向上
    GestureRule(
        "U",
        lambda f: (_only(f, index=True, middle=True) and f.index_middle_close and
                   f.is_index_pointing_up),
        _constant(0.8),
    ),
    # V: 食指中指分开，拇指收起
    GestureRule(
        "V",
        lambda f: (_only(f, index=True, middle=True) and not f.index_middle_close and
                   f.thumb_extension <= 0.5),
        _constant(0.75),
    ),
    # W: 三指伸出
    GestureRule(
        "W",
        lambda f: _only(f, index=True, middle=True, ring=True),
        lambda f: 0.8 * (f.index_extension + f.middle_extension + f.ring_extension) / 3,
    ),
    # X: 食指弯成钩
    GestureRule(
        "X",
        lambda f: (f.is_index_hooked and not f.is_middle_extended and
                   not f.is_ring_extended and not f.is_pinky_extended),
        _constant(0.72),
    ),
    # Y: 拇指与小指伸出
    GestureRule(
        "Y",
        lambda f: _only(f, pinky=True) and f.is_thumb_sideways,
        lambda f: 0.9 * f.pinky_extension,
    ),
    # Z: 食指伸出加手腕旋转（静态近似）
    GestureRule(
        "Z",
        lambda f: _only(f, index=True) and f.is_wrist_rotated,
        _constant(0.65),
    ),
    # Space: 五指张开
    GestureRule(
        SPACE,
        lambda f: (f.are_all_fingers_extended and not f.fingers_close and
                   f.thumb_extension > 0.5),
        lambda f: 0.8 * f.finger_extension,
    ),
    # Delete: 握拳，拇指朝下
    GestureRule(
        DELETE,
        lambda f: f.is_thumb_down and f.are_fingers_closed,
        _constant(0.8),
    ),
]


class GestureClassifier:
    """
    手势分类器
    逐条评估规则表，每条成立的规则产生一个候选，取置信度最高者
    """

    def __init__(self, rules: Optional[Iterable[GestureRule]] = None):
        self._rules: List[GestureRule] = list(DEFAULT_RULES if rules is None else rules)

    @property
    def rules(self) -> Tuple[GestureRule, ...]:
        return tuple(self._rules)

    def register(self, rule: GestureRule) -> None:
        """追加一条规则（排在已有规则之后）"""
        if rule.symbol not in ALPHABET:
            raise ValueError(f"未知的手势符号: {rule.symbol!r}")
        self._rules.append(rule)

    def score_all(self, features: HandFeatureSet) -> List[GestureCandidate]:
        """按规则顺序返回所有成立的候选"""
        candidates = []
        for rule in self._rules:
            candidate = rule.evaluate(features)
            if candidate is not None:
                candidates.append(candidate)
        return candidates

    def classify(self, features: HandFeatureSet) -> Optional[GestureCandidate]:
        """
        对手部特征进行分类

        Returns:
            置信度最高的候选；没有规则成立时返回 None
        """
        best: Optional[GestureCandidate] = None
        for candidate in self.score_all(features):
            # 严格大于：平局时保留先注册的规则
            if best is None or candidate.confidence > best.confidence:
                best = candidate
        return best
