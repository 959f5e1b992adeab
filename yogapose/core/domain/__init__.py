"""
Domain Models

Pure data structures representing pose sample collection concepts.
No external dependencies - just Python dataclasses and enums.
"""

from .pose import (
    CocoKeypoint,
    Keypoint,
    DetectedPose,
    NUM_KEYPOINTS,
    FEATURE_LENGTH,
    SKELETON_CONNECTIONS,
)
from .dataset import PoseLabel, FeatureVector, SENTINEL, EXPORT_FILENAME, REFERENCE_IMAGES
from .source import SourceKind, SourceStatus
from .errors import (
    CollectorError,
    DetectorUnavailable,
    SourceAcquisitionFailed,
    NoActiveSource,
    UnknownPoseLabel,
    InvalidCapture,
    EmptyExport,
)

__all__ = [
    "CocoKeypoint",
    "Keypoint",
    "DetectedPose",
    "NUM_KEYPOINTS",
    "FEATURE_LENGTH",
    "SKELETON_CONNECTIONS",
    "PoseLabel",
    "FeatureVector",
    "SENTINEL",
    "EXPORT_FILENAME",
    "REFERENCE_IMAGES",
    "SourceKind",
    "SourceStatus",
    "CollectorError",
    "DetectorUnavailable",
    "SourceAcquisitionFailed",
    "NoActiveSource",
    "UnknownPoseLabel",
    "InvalidCapture",
    "EmptyExport",
]
