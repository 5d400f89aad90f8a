"""
HandSpell 核心模块
包含关键点约定、特征提取、手势分类、稳定化、短语匹配等核心功能
"""

from .composer import TextComposer
from .detector import DetectorStatus, SignDetector
from .errors import (
    DegenerateInputError,
    HandSpellError,
    InitializationError,
    LandmarkFormatError,
    PreconditionError,
)
from .features import FeatureExtractor, HandFeatureSet
from .gesture import ALPHABET, GestureCandidate, GestureClassifier, GestureRule
from .landmarks import LandmarkFrame, LandmarkIndex
from .phrases import PhraseMatcher
from .provider import LandmarkProvider, MediaPipeLandmarkProvider
from .stability import GestureBufferEntry, StabilityFilter

__all__ = [
    "ALPHABET",
    "DegenerateInputError",
    "DetectorStatus",
    "FeatureExtractor",
    "GestureBufferEntry",
    "GestureCandidate",
    "GestureClassifier",
    "GestureRule",
    "HandFeatureSet",
    "HandSpellError",
    "InitializationError",
    "LandmarkFormatError",
    "LandmarkFrame",
    "LandmarkIndex",
    "LandmarkProvider",
    "MediaPipeLandmarkProvider",
    "PhraseMatcher",
    "PreconditionError",
    "SignDetector",
    "StabilityFilter",
    "TextComposer",
]
