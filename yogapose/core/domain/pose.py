"""
Pose Domain Models

Data structures for representing detected human body keypoints.

Keypoints follow the 17-point COCO ordering (the layout MoveNet emits):
https://cocodataset.org/#keypoints-2020
"""
from dataclasses import dataclass
from enum import IntEnum


class CocoKeypoint(IntEnum):
    """
    COCO keypoint indices.

    The order is fixed: feature vectors are built in this order and
    downstream consumers must not reorder them.
    """
    # Face
    NOSE = 0
    LEFT_EYE = 1
    RIGHT_EYE = 2
    LEFT_EAR = 3
    RIGHT_EAR = 4

    # Upper body
    LEFT_SHOULDER = 5
    RIGHT_SHOULDER = 6
    LEFT_ELBOW = 7
    RIGHT_ELBOW = 8
    LEFT_WRIST = 9
    RIGHT_WRIST = 10

    # Lower body
    LEFT_HIP = 11
    RIGHT_HIP = 12
    LEFT_KNEE = 13
    RIGHT_KNEE = 14
    LEFT_ANKLE = 15
    RIGHT_ANKLE = 16


# Number of keypoints per detected pose
NUM_KEYPOINTS = len(CocoKeypoint)

# Length of a normalized feature vector: one (x, y) pair per keypoint
FEATURE_LENGTH = 2 * NUM_KEYPOINTS

# Bones drawn between keypoints
SKELETON_CONNECTIONS: list[tuple[int, int]] = [
    # Torso
    (5, 6), (5, 11), (6, 12), (11, 12),

    # Left arm
    (5, 7), (7, 9),

    # Right arm
    (6, 8), (8, 10),

    # Left leg
    (11, 13), (13, 15),

    # Right leg
    (12, 14), (14, 16),

    # Face
    (0, 1), (0, 2), (1, 3), (2, 4),
]


@dataclass(frozen=True)
class Keypoint:
    """
    A single detected keypoint.

    Attributes:
        x: Horizontal position in pixels (frame space)
        y: Vertical position in pixels (frame space)
        confidence: Detection confidence (0.0 to 1.0)
    """
    x: float
    y: float
    confidence: float

    def is_confident(self, threshold: float) -> bool:
        """Check if keypoint confidence is strictly above threshold."""
        return self.confidence > threshold

    def to_pixel(self) -> tuple[int, int]:
        """Integer pixel position for drawing."""
        return (int(round(self.x)), int(round(self.y)))


@dataclass(frozen=True)
class DetectedPose:
    """
    One candidate pose returned by the detector.

    Attributes:
        keypoints: NUM_KEYPOINTS keypoints in CocoKeypoint order
        score: Overall detection score
    """
    keypoints: tuple[Keypoint, ...]
    score: float = 0.0
