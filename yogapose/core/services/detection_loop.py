"""
Detection Loop

Cooperative task that samples the active source every tick, runs the pose
detector, renders the skeleton overlay and publishes the latest normalized
keypoints.
"""

import asyncio
import contextlib
import logging
from typing import Optional

import numpy as np

from ..domain.dataset import FeatureVector
from ..domain.errors import DetectorUnavailable
from .base import KeypointDetector
from .frame_sources import FrameSourceManager
from .keypoint_slot import KeypointSlot
from .normalizer import normalize
from .skeleton_renderer import RenderSurface, SkeletonRenderer

logger = logging.getLogger(__name__)


class DetectionLoop:
    """
    Runs detect-and-render on every tick while started.

    The loop is the only writer of the keypoint slot. All work happens on
    the event loop; the awaits inside a step (detector inference) are the
    only suspension points besides the tick sleep.

    Usage:
        loop = DetectionLoop(sources, slot, surface)
        loop.detector = PoseDetector()
        loop.start()
        ...
        await loop.stop()
    """

    def __init__(
        self,
        sources: FrameSourceManager,
        slot: KeypointSlot,
        surface: RenderSurface,
        renderer: Optional[SkeletonRenderer] = None,
        detector: Optional[KeypointDetector] = None,
        tick_interval: float = 1 / 30,
    ):
        self.sources = sources
        self.slot = slot
        self.surface = surface
        self.renderer = renderer or SkeletonRenderer()
        self.detector = detector
        self.tick_interval = tick_interval
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    # -------------------------------------------------------------------------
    # Single steps
    # -------------------------------------------------------------------------

    async def step(self) -> bool:
        """
        One tick of the loop.

        Returns:
            True if a frame was detected and rendered, False if the step
            waited (detector not loaded, or no frame to sample)
        """
        if self.detector is None:
            return False

        frame = await self.sources.current_frame()
        if frame is None:
            return False

        await self.detect_once(frame, still=False)
        return True

    async def detect_once(self, frame: np.ndarray, still: bool = True) -> FeatureVector:
        """
        Render a frame, detect on it and publish the result.

        Used directly for still images and for the frame a video was
        paused on. Those frames are unrelated to whatever was detected
        before, so by default the detector starts from scratch.

        Args:
            frame: BGR frame
            still: False for consecutive frames of a live stream

        Returns:
            The published feature vector (empty when no pose was found)

        Raises:
            DetectorUnavailable: If no detector is attached
        """
        detector = self.detector
        if detector is None:
            raise DetectorUnavailable()

        poses = await detector.estimate(frame, still=still)
        height, width = frame.shape[:2]

        if poses:
            # Highest-ranked candidate only
            keypoints = poses[0].keypoints
            vector = normalize(keypoints, width, height)
            self.renderer.render(self.surface, frame, keypoints)
        else:
            vector = []
            self.renderer.render(self.surface, frame)

        self.slot.publish(vector)
        return vector

    def render_only(self, frame: np.ndarray) -> None:
        """Show a frame without detecting on it."""
        self.renderer.render(self.surface, frame)

    # -------------------------------------------------------------------------
    # Scheduling
    # -------------------------------------------------------------------------

    def start(self) -> None:
        """Schedule the loop on the running event loop (no-op if running)."""
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="detection-loop")
        logger.info("Detection loop started")

    async def stop(self) -> None:
        """Cancel the loop and wait until no step can run any more."""
        task = self._task
        self._task = None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        logger.info("Detection loop stopped")

    async def _run(self) -> None:
        loop = asyncio.get_running_loop()
        while True:
            started = loop.time()
            try:
                await self.step()
            except Exception as e:
                logger.error(f"Detection step failed: {e}")
                self.slot.clear()
            elapsed = loop.time() - started
            await asyncio.sleep(max(0.0, self.tick_interval - elapsed))
