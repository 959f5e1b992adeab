"""
Dataset Domain Models

Pose class labels and the feature vector type stored in the training dataset.
"""

from enum import Enum
from typing import Optional

# A normalized, fixed-length encoding of one detected pose:
# interleaved (x_norm, y_norm) pairs in CocoKeypoint order.
FeatureVector = list[float]

# Fixed encoding for an undetected or low-confidence keypoint
SENTINEL = -1.0

# Name of the exported dataset file
EXPORT_FILENAME = "yoga_training_data.json"


class PoseLabel(str, Enum):
    """
    Closed set of yoga pose classes samples can be tagged with.

    Declaration order is the export order.
    """
    TREE = "Tree"
    COBRA = "Cobra"
    WARRIOR = "Warrior"
    DOWNWARD_DOG = "DownwardDog"
    BRIDGE = "Bridge"
    TRIANGLE = "Triangle"

    @classmethod
    def parse(cls, value: "str | PoseLabel") -> Optional["PoseLabel"]:
        """Look up a label by its value, or None if unknown."""
        try:
            return cls(value)
        except ValueError:
            return None


# Reference image file per pose, relative to the configured reference directory
REFERENCE_IMAGES: dict[PoseLabel, str] = {
    PoseLabel.TREE: "tree.jpg",
    PoseLabel.COBRA: "cobra.jpg",
    PoseLabel.WARRIOR: "warrior.jpg",
    PoseLabel.DOWNWARD_DOG: "downward_dog.jpg",
    PoseLabel.BRIDGE: "bridge.jpg",
    PoseLabel.TRIANGLE: "triangle.jpg",
}
