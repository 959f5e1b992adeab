"""
Keypoint Normalizer

Converts pixel-space keypoints into a fixed-length, resolution-independent
feature vector.
"""

from typing import Sequence

from ..domain.pose import Keypoint
from ..domain.dataset import FeatureVector, SENTINEL

# Keypoints at or below this confidence are treated as not detected
CONFIDENCE_THRESHOLD = 0.3


def _clamp(value: float, lo: float = 0.0, hi: float = 1.0) -> float:
    return max(lo, min(hi, value))


def normalize(
    keypoints: Sequence[Keypoint],
    frame_width: int,
    frame_height: int,
) -> FeatureVector:
    """
    Normalize one pose's keypoints against the frame dimensions.

    Each keypoint contributes an (x, y) pair in input order:
    (x / width, y / height) clamped into [0, 1] when its confidence is above
    CONFIDENCE_THRESHOLD, otherwise the (-1, -1) sentinel.

    Args:
        keypoints: Keypoints in detector order
        frame_width: Frame width in pixels
        frame_height: Frame height in pixels

    Returns:
        Feature vector of length 2 * len(keypoints)

    Raises:
        ValueError: If a frame dimension is not positive
    """
    if frame_width <= 0 or frame_height <= 0:
        raise ValueError(
            f"Frame dimensions must be positive, got {frame_width}x{frame_height}"
        )

    vector: FeatureVector = []
    for kp in keypoints:
        if kp.is_confident(CONFIDENCE_THRESHOLD):
            vector.append(_clamp(kp.x / frame_width))
            vector.append(_clamp(kp.y / frame_height))
        else:
            vector.append(SENTINEL)
            vector.append(SENTINEL)
    return vector
