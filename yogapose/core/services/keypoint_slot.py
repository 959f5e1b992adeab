"""
Latest Keypoints Slot

One-slot cell holding the most recent normalized feature vector.
The detection loop publishes into it; capture reads from it.
"""

from typing import Optional

from ..domain.dataset import FeatureVector


class KeypointSlot:
    """
    Overwrite-on-publish cell for the latest feature vector.

    An empty vector means "no pose on the last detected frame".
    Readers always get a copy, so a later publish never changes
    a vector that was already handed out.
    """

    def __init__(self) -> None:
        self._vector: FeatureVector = []
        self._frame_number: int = 0

    def publish(self, vector: Optional[FeatureVector]) -> None:
        """Replace the slot content (None or [] clears it)."""
        self._vector = list(vector) if vector else []
        self._frame_number += 1

    def clear(self) -> None:
        """Drop the current vector."""
        self._vector = []

    def read(self) -> FeatureVector:
        """Copy of the latest vector (possibly empty)."""
        return list(self._vector)

    @property
    def has_pose(self) -> bool:
        return bool(self._vector)

    @property
    def frame_number(self) -> int:
        """How many times the slot has been published to."""
        return self._frame_number
