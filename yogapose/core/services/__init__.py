"""
Services Layer

Business logic services for pose sample collection.
These services orchestrate domain models and external dependencies.

The MediaPipe-backed PoseDetector lives in .pose_detector and is imported
on demand, so the rest of the layer works without the model installed.
"""

from .base import KeypointDetector
from .normalizer import normalize, CONFIDENCE_THRESHOLD
from .keypoint_slot import KeypointSlot
from .dataset_store import DatasetStore
from .frame_sources import (
    FrameSource,
    CameraSource,
    StaticImageSource,
    VideoFileSource,
    FrameSourceManager,
    decode_image,
)
from .skeleton_renderer import RenderSurface, SkeletonRenderer
from .detection_loop import DetectionLoop
from .collector_session import CollectorSession, load_detector_into

__all__ = [
    "KeypointDetector",
    "normalize",
    "CONFIDENCE_THRESHOLD",
    "KeypointSlot",
    "DatasetStore",
    "FrameSource",
    "CameraSource",
    "StaticImageSource",
    "VideoFileSource",
    "FrameSourceManager",
    "decode_image",
    "RenderSurface",
    "SkeletonRenderer",
    "DetectionLoop",
    "CollectorSession",
    "load_detector_into",
]
