"""
Collector Session Service

High-level service that ties frame sources, the detection loop and the
dataset store together into the user actions of a collection session.

This is the main entry point used by the API layer.
"""

import asyncio
import logging
from typing import Optional

from ..domain.dataset import FeatureVector, PoseLabel
from ..domain.errors import NoActiveSource, SourceAcquisitionFailed
from ..domain.source import SourceStatus
from .base import KeypointDetector
from .dataset_store import DatasetStore
from .detection_loop import DetectionLoop
from .frame_sources import FrameSource, FrameSourceManager, VideoFileSource
from .keypoint_slot import KeypointSlot
from .skeleton_renderer import RenderSurface, SkeletonRenderer

logger = logging.getLogger(__name__)


class CollectorSession:
    """
    One labeling session: a single active source, a detection loop and an
    in-memory dataset.

    This service:
    1. Switches between camera, image and video sources
    2. Keeps the latest normalized keypoints up to date
    3. Captures them under a pose label
    4. Exports the collected dataset

    Source switches are serialized: the loop is stopped and the previous
    source released before the next one is acquired. The keypoint slot is
    cleared on every switch, so a capture never picks up keypoints from a
    source that is no longer active.

    Usage:
        session = CollectorSession()
        session.attach_detector(PoseDetector())

        await session.select_camera(0)
        session.capture(PoseLabel.TREE)
        payload = session.export()

        await session.close()
    """

    def __init__(
        self,
        sources: Optional[FrameSourceManager] = None,
        dataset: Optional[DatasetStore] = None,
        detector: Optional[KeypointDetector] = None,
        renderer: Optional[SkeletonRenderer] = None,
        tick_interval: float = 1 / 30,
    ):
        """
        Initialize the session.

        Args:
            sources: Frame source manager (default: OpenCV-backed)
            dataset: Dataset store (default: all pose labels)
            detector: Pose detector, or None until the model is loaded
            renderer: Skeleton renderer
            tick_interval: Seconds between detection loop ticks
        """
        self.sources = sources or FrameSourceManager()
        self.dataset = dataset or DatasetStore()
        self.slot = KeypointSlot()
        self.surface = RenderSurface()
        self.loop = DetectionLoop(
            self.sources,
            self.slot,
            self.surface,
            renderer=renderer,
            detector=detector,
            tick_interval=tick_interval,
        )
        self._switch_lock = asyncio.Lock()

    # -------------------------------------------------------------------------
    # Detector
    # -------------------------------------------------------------------------

    @property
    def detector(self) -> Optional[KeypointDetector]:
        return self.loop.detector

    @property
    def detector_ready(self) -> bool:
        return self.loop.detector is not None

    def attach_detector(self, detector: KeypointDetector) -> None:
        """Hand the loaded model to the loop; waiting steps start detecting."""
        self.loop.detector = detector
        logger.info("Pose detector attached")

    # -------------------------------------------------------------------------
    # Source switching
    # -------------------------------------------------------------------------

    @property
    def status(self) -> Optional[SourceStatus]:
        return self.sources.status()

    async def _release_current(self) -> None:
        await self.loop.stop()
        self.sources.teardown()
        self.slot.clear()
        self.surface.reset()

    def _prepare_surface(self, source: FrameSource) -> None:
        self.surface.setup(source.width, source.height, mirrored=source.mirrored)

    async def select_camera(self, device_index: int = 0) -> SourceStatus:
        """
        Switch to the live camera and start continuous detection.

        Raises:
            SourceAcquisitionFailed: If the camera cannot be opened; the
                session is left with no active source
        """
        async with self._switch_lock:
            await self._release_current()
            try:
                source = await self.sources.activate_camera(device_index)
            except SourceAcquisitionFailed as e:
                logger.error(f"Camera error: {e}")
                raise
            self._prepare_surface(source)
            self.loop.start()
            return source.status()

    async def upload_image(self, data: bytes) -> FeatureVector:
        """
        Switch to an uploaded still image and detect on it once.

        Returns:
            Feature vector for the image (empty if no pose was found or the
            detector is not loaded yet)
        """
        async with self._switch_lock:
            await self._release_current()
            try:
                source = self.sources.activate_image(data)
            except SourceAcquisitionFailed as e:
                logger.error(f"Image upload rejected: {e}")
                raise
            self._prepare_surface(source)

            if not self.detector_ready:
                logger.warning("Image loaded before the pose model; showing it without detection")
                self.loop.render_only(source.image)
                return []

            return await self.loop.detect_once(source.image)

    async def upload_video(self, path: str, owns_file: bool = True) -> SourceStatus:
        """
        Switch to a video file and start continuous detection while it plays.

        Args:
            path: Video file path
            owns_file: Delete the file once the source is released
        """
        async with self._switch_lock:
            await self._release_current()
            try:
                source = await self.sources.activate_video(path, owns_file=owns_file)
            except SourceAcquisitionFailed as e:
                logger.error(f"Video upload rejected: {e}")
                raise
            self._prepare_surface(source)
            self.loop.start()
            return source.status()

    async def toggle_pause(self) -> SourceStatus:
        """
        Pause or resume the active video.

        On pause the frame on screen is detected once more, so the latest
        keypoints match what the user sees.

        Raises:
            NoActiveSource: If the active source is not a video
        """
        async with self._switch_lock:
            source = self.sources.active
            if not isinstance(source, VideoFileSource):
                raise NoActiveSource("No video is loaded")

            if source.paused:
                source.play()
                logger.info("Video resumed")
            else:
                source.pause()
                logger.info("Video paused")
                if source.last_frame is not None and self.detector_ready:
                    await self.loop.detect_once(source.last_frame)

            return source.status()

    async def teardown(self) -> None:
        """Stop detection and release the active source."""
        async with self._switch_lock:
            await self._release_current()

    # -------------------------------------------------------------------------
    # Dataset actions
    # -------------------------------------------------------------------------

    def latest_keypoints(self) -> FeatureVector:
        return self.slot.read()

    def capture(self, label: "PoseLabel | str") -> int:
        """
        Store the latest keypoints under a label.

        Returns:
            New sample count for the label

        Raises:
            UnknownPoseLabel: For labels outside the pose set
            InvalidCapture: If no complete detection is available
        """
        return self.dataset.capture(label, self.slot.read())

    def export(self) -> bytes:
        """
        Serialized dataset (JSON).

        Raises:
            EmptyExport: If nothing was captured yet
        """
        return self.dataset.export_json()

    def counts(self) -> dict[PoseLabel, int]:
        return self.dataset.counts_by_label()

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def close(self) -> None:
        """Release the source and the detector."""
        await self.teardown()
        detector = self.loop.detector
        self.loop.detector = None
        if detector is not None:
            detector.close()

    def describe(self) -> dict:
        """Small summary for logs and health checks."""
        status = self.status
        return {
            "detector_ready": self.detector_ready,
            "source": status.kind.value if status else None,
            "loop_running": self.loop.running,
            "total_samples": self.dataset.total_samples,
        }


async def load_detector_into(session: CollectorSession, factory) -> None:
    """
    Build a detector off the event loop and attach it to the session.

    Model loading can take a while; the loop simply waits until it is done.
    """
    try:
        detector = await asyncio.to_thread(factory)
    except Exception as e:
        logger.error(f"Error loading pose model: {e}")
        return
    session.attach_detector(detector)
