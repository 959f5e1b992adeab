"""
Pose Detector Service

Wrapper around MediaPipe Pose for detecting body keypoints in frames.
Handles all MediaPipe-specific logic and converts to our domain models.

MediaPipe returns 33 BlazePose landmarks; we keep the 17 that make up the
COCO layout so feature vectors have a fixed 34-value shape.

Note: MediaPipe's type stubs are incomplete, so we use type: ignore comments
for mp.solutions access. This is a known issue with the mediapipe package.
"""

import asyncio
import threading
from typing import Any, Optional

import cv2
import mediapipe as mp
import numpy as np

from ..domain.pose import CocoKeypoint, DetectedPose, Keypoint


# BlazePose landmark index for each COCO keypoint
BLAZEPOSE_TO_COCO: dict[CocoKeypoint, int] = {
    CocoKeypoint.NOSE: 0,
    CocoKeypoint.LEFT_EYE: 2,
    CocoKeypoint.RIGHT_EYE: 5,
    CocoKeypoint.LEFT_EAR: 7,
    CocoKeypoint.RIGHT_EAR: 8,
    CocoKeypoint.LEFT_SHOULDER: 11,
    CocoKeypoint.RIGHT_SHOULDER: 12,
    CocoKeypoint.LEFT_ELBOW: 13,
    CocoKeypoint.RIGHT_ELBOW: 14,
    CocoKeypoint.LEFT_WRIST: 15,
    CocoKeypoint.RIGHT_WRIST: 16,
    CocoKeypoint.LEFT_HIP: 23,
    CocoKeypoint.RIGHT_HIP: 24,
    CocoKeypoint.LEFT_KNEE: 25,
    CocoKeypoint.RIGHT_KNEE: 26,
    CocoKeypoint.LEFT_ANKLE: 27,
    CocoKeypoint.RIGHT_ANKLE: 28,
}


class PoseDetector:
    """
    Detects a single human pose using MediaPipe Pose.

    Usage:
        detector = PoseDetector()

        poses = await detector.estimate(frame)
        if poses:
            print(poses[0].keypoints)

        # Cleanup
        detector.close()

    Or use as context manager:
        with PoseDetector() as detector:
            poses = detector.detect_pose(frame)
    """

    # MediaPipe solutions (type stubs are incomplete, so we store as Any)
    _mp_pose: Any

    def __init__(
        self,
        model_complexity: int = 1,
        min_detection_confidence: float = 0.5,
        min_tracking_confidence: float = 0.5,
    ):
        """
        Initialize the pose detector.

        Args:
            model_complexity: 0 (lite), 1 (full) or 2 (heavy).
            min_detection_confidence: Person detector threshold.
            min_tracking_confidence: Landmark tracker threshold before re-detecting.
        """
        # MediaPipe's type stubs don't include solutions, but it exists at runtime
        self._mp_pose = mp.solutions.pose  # type: ignore[attr-defined]

        # Streamed frames: tracks the person across frames and smooths landmarks
        self.pose = self._mp_pose.Pose(
            static_image_mode=False,
            model_complexity=model_complexity,
            smooth_landmarks=True,
            enable_segmentation=False,
            min_detection_confidence=min_detection_confidence,
            min_tracking_confidence=min_tracking_confidence,
        )
        # Unrelated stills: detects from scratch on every call
        self.still_pose = self._mp_pose.Pose(
            static_image_mode=True,
            model_complexity=model_complexity,
            enable_segmentation=False,
            min_detection_confidence=min_detection_confidence,
        )
        # One inference at a time; a cancelled caller may still be running
        self._lock = threading.Lock()

    def __enter__(self) -> "PoseDetector":
        """Context manager entry."""
        return self

    def __exit__(
        self,
        exc_type: Optional[type],
        exc_val: Optional[BaseException],
        exc_tb: Optional[Any]
    ) -> None:
        """Close the model on exit."""
        self.close()

    def close(self) -> None:
        """Release MediaPipe resources."""
        with self._lock:
            self.pose.close()
            self.still_pose.close()

    # -------------------------------------------------------------------------
    # Core Detection Methods
    # -------------------------------------------------------------------------

    def detect_pose(self, image: np.ndarray, still: bool = False) -> list[DetectedPose]:
        """
        Detect pose in a single BGR image (blocking).

        MediaPipe Pose tracks one person, so the result has zero or one entry.

        Args:
            image: BGR image (OpenCV format)
            still: Use the static-image model (no state from earlier frames)

        Returns:
            Candidate poses with keypoints in pixel coordinates
        """
        h, w = image.shape[:2]

        # MediaPipe expects RGB
        if len(image.shape) == 3 and image.shape[2] == 3:
            image_rgb = cv2.cvtColor(image, cv2.COLOR_BGR2RGB)
        else:
            image_rgb = image

        model = self.still_pose if still else self.pose
        with self._lock:
            results = model.process(image_rgb)

        if not results.pose_landmarks:
            return []

        keypoints = self._convert_landmarks(results.pose_landmarks.landmark, w, h)
        score = sum(kp.confidence for kp in keypoints) / len(keypoints)
        return [DetectedPose(keypoints=keypoints, score=score)]

    async def estimate(self, frame: np.ndarray, still: bool = False) -> list[DetectedPose]:
        """Run detect_pose off the event loop."""
        return await asyncio.to_thread(self.detect_pose, frame, still)

    # -------------------------------------------------------------------------
    # Private Helper Methods
    # -------------------------------------------------------------------------

    def _convert_landmarks(
        self,
        mp_landmarks: Any,
        width: int,
        height: int,
    ) -> tuple[Keypoint, ...]:
        """Convert MediaPipe landmarks to COCO-ordered pixel keypoints."""
        keypoints = []

        for part in CocoKeypoint:
            mp_lm = mp_landmarks[BLAZEPOSE_TO_COCO[part]]
            keypoints.append(Keypoint(
                x=float(mp_lm.x) * width,
                y=float(mp_lm.y) * height,
                confidence=float(mp_lm.visibility),
            ))

        return tuple(keypoints)
