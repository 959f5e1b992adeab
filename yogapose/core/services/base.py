"""
Detector Interface

Model adapter contract, so the pose stack can be swapped without touching
the detection loop.
"""

from typing import Protocol

import numpy as np

from ..domain.pose import DetectedPose


class KeypointDetector(Protocol):
    """
    What the detection loop needs from a pose model.

    estimate() takes a BGR frame and returns candidate poses ranked best
    first; an empty list means no person was found.

    Streamed frames (camera, playing video) may be tracked from one frame to
    the next. A still frame (uploaded image, paused video) is detected from
    scratch, so nothing from the previous frames leaks into its keypoints.
    """

    async def estimate(self, frame: np.ndarray, still: bool = False) -> list[DetectedPose]: ...

    def close(self) -> None: ...
