"""
Skeleton Renderer

Draws frames and pose skeletons onto the output surface clients preview.
"""

from typing import Optional, Sequence

import cv2
import numpy as np

from ..domain.pose import Keypoint, SKELETON_CONNECTIONS
from .normalizer import CONFIDENCE_THRESHOLD

# #4CAF50 in BGR
SKELETON_COLOR = (80, 175, 76)
POINT_RADIUS = 5
LINE_THICKNESS = 2


class RenderSurface:
    """
    The output image shown to the user.

    Dimensions are set from the active source's native resolution.
    When mirrored, the finished image is flipped horizontally (live camera
    only); keypoints are always drawn in raw frame coordinates first.
    """

    def __init__(self) -> None:
        self.width = 0
        self.height = 0
        self.mirrored = False
        self.image: Optional[np.ndarray] = None

    def setup(self, width: int, height: int, mirrored: bool = False) -> None:
        """Size the surface for a newly activated source and blank it."""
        self.width = width
        self.height = height
        self.mirrored = mirrored
        self.image = None

    def reset(self) -> None:
        """Collapse the surface to 0x0 (no active source)."""
        self.setup(0, 0, False)

    def to_jpeg(self, quality: int = 80) -> Optional[bytes]:
        """Encode the current image, or None if nothing was rendered yet."""
        if self.image is None:
            return None
        ok, buf = cv2.imencode(".jpg", self.image, [cv2.IMWRITE_JPEG_QUALITY, quality])
        if not ok:
            return None
        return buf.tobytes()


class SkeletonRenderer:
    """
    Renders a frame plus optional skeleton overlay onto a RenderSurface.

    Only keypoints above CONFIDENCE_THRESHOLD are drawn, and a bone is
    drawn only when both of its ends are.
    """

    def __init__(
        self,
        color: tuple[int, int, int] = SKELETON_COLOR,
        point_radius: int = POINT_RADIUS,
        line_thickness: int = LINE_THICKNESS,
    ):
        self.color = color
        self.point_radius = point_radius
        self.line_thickness = line_thickness

    def render(
        self,
        surface: RenderSurface,
        frame: np.ndarray,
        keypoints: Optional[Sequence[Keypoint]] = None,
    ) -> np.ndarray:
        """
        Overwrite the surface with the frame and skeleton.

        Args:
            surface: Target surface
            frame: BGR frame (not modified)
            keypoints: Keypoints to overlay, or None for the bare frame

        Returns:
            The rendered image
        """
        image = frame.copy()
        if surface.width and surface.height:
            h, w = image.shape[:2]
            if (w, h) != (surface.width, surface.height):
                image = cv2.resize(image, (surface.width, surface.height))

        if keypoints:
            self.draw_skeleton(image, keypoints)

        if surface.mirrored:
            image = cv2.flip(image, 1)

        surface.image = image
        return image

    def draw_skeleton(self, image: np.ndarray, keypoints: Sequence[Keypoint]) -> None:
        """Draw points and bones in place."""
        for kp in keypoints:
            if kp.is_confident(CONFIDENCE_THRESHOLD):
                cv2.circle(image, kp.to_pixel(), self.point_radius, self.color, -1)

        for start_idx, end_idx in SKELETON_CONNECTIONS:
            if max(start_idx, end_idx) >= len(keypoints):
                continue
            start = keypoints[start_idx]
            end = keypoints[end_idx]

            if start.is_confident(CONFIDENCE_THRESHOLD) and end.is_confident(CONFIDENCE_THRESHOLD):
                cv2.line(image, start.to_pixel(), end.to_pixel(), self.color, self.line_thickness)
