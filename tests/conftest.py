"""
Shared fixtures: a fake pose detector, a fake cv2.VideoCapture and small
frame helpers, so tests run without a camera or the MediaPipe model.
"""

from typing import Optional

import cv2
import numpy as np
import pytest

from yogapose.core.domain import DetectedPose, Keypoint, NUM_KEYPOINTS


def make_frame(width: int = 64, height: int = 48, value: int = 0) -> np.ndarray:
    return np.full((height, width, 3), value, dtype=np.uint8)


def make_pose(
    width: int = 64,
    height: int = 48,
    confidence: float = 0.9,
    num_keypoints: int = NUM_KEYPOINTS,
) -> DetectedPose:
    """A pose whose keypoints are spread inside a width x height frame."""
    keypoints = tuple(
        Keypoint(
            x=(i + 1) * width / (num_keypoints + 1),
            y=(num_keypoints - i) * height / (num_keypoints + 1),
            confidence=confidence,
        )
        for i in range(num_keypoints)
    )
    return DetectedPose(keypoints=keypoints, score=confidence)


def encode_png(frame: np.ndarray) -> bytes:
    ok, buf = cv2.imencode(".png", frame)
    assert ok
    return buf.tobytes()


class FakeDetector:
    """Returns a fixed list of poses for every frame."""

    def __init__(self, poses: Optional[list] = None):
        self.poses = poses if poses is not None else []
        self.calls = 0
        self.frames: list = []
        self.stills: list[bool] = []
        self.closed = False

    async def estimate(self, frame, still=False):
        self.calls += 1
        self.frames.append(frame)
        self.stills.append(still)
        return list(self.poses)

    def close(self):
        self.closed = True


class FakeCapture:
    """
    Stand-in for cv2.VideoCapture over a list of frames.

    All instances append to a shared event log so tests can check the
    order in which captures are opened and released.
    """

    def __init__(self, frames, opened=True, fps=10.0, events=None, name="capture"):
        self.frames = list(frames)
        self.opened = opened
        self.fps = fps
        self.position = 0
        self.released = False
        self.events = events if events is not None else []
        self.name = name
        self.events.append(("open", name))

    def isOpened(self):
        return self.opened and not self.released

    def get(self, prop):
        if not self.frames:
            return 0
        h, w = self.frames[0].shape[:2]
        if prop == cv2.CAP_PROP_FRAME_WIDTH:
            return float(w)
        if prop == cv2.CAP_PROP_FRAME_HEIGHT:
            return float(h)
        if prop == cv2.CAP_PROP_FPS:
            return self.fps
        return 0.0

    def set(self, prop, value):
        if prop == cv2.CAP_PROP_POS_FRAMES:
            self.position = int(value)
        return True

    def grab(self):
        if self.released or self.position >= len(self.frames):
            return False
        self.position += 1
        return True

    def read(self):
        if self.released or self.position >= len(self.frames):
            return False, None
        frame = self.frames[self.position]
        self.position += 1
        return True, frame

    def release(self):
        if not self.released:
            self.released = True
            self.events.append(("release", self.name))


class FakeClock:
    def __init__(self, now: float = 100.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def events():
    return []


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def detector():
    return FakeDetector([make_pose()])
