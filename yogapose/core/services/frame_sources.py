"""
Frame Source Manager

Owns the single active visual input (live camera, static image or video
file) and gives the detection loop a uniform "current frame" accessor.
"""

import asyncio
import logging
import os
import threading
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Optional, Union

import cv2
import numpy as np

from ..domain.errors import SourceAcquisitionFailed
from ..domain.source import SourceKind, SourceStatus

logger = logging.getLogger(__name__)

# Used when a video file does not report its frame rate
DEFAULT_VIDEO_FPS = 30.0


class FrameSource(ABC):
    """
    One activated visual input.

    Width and height are the native frame size and stay fixed for the
    lifetime of the activation. Each variant releases its own resources.
    """

    kind: SourceKind
    width: int
    height: int
    mirrored: bool = False

    @property
    def paused(self) -> bool:
        return False

    @abstractmethod
    def current_frame(self) -> Optional[np.ndarray]:
        """Frame to sample now, or None if this source should not be sampled."""

    @abstractmethod
    def release(self) -> None:
        """Free the underlying resource handle."""

    def status(self) -> SourceStatus:
        return SourceStatus(
            kind=self.kind,
            width=self.width,
            height=self.height,
            mirrored=self.mirrored,
            paused=self.paused,
        )


class CameraSource(FrameSource):
    """Live camera stream. Rendered mirrored."""

    kind = SourceKind.CAMERA
    mirrored = True

    def __init__(self, capture: Any, first_frame: np.ndarray, device_index: int = 0):
        self.capture = capture
        self.device_index = device_index
        self.height, self.width = first_frame.shape[:2]
        self._released = False
        self._lock = threading.Lock()

    def current_frame(self) -> Optional[np.ndarray]:
        with self._lock:
            if self._released:
                return None
            ok, frame = self.capture.read()
        if not ok:
            logger.warning(f"Camera {self.device_index} returned no frame")
            return None
        return frame

    def release(self) -> None:
        with self._lock:
            if not self._released:
                self._released = True
                self.capture.release()


class StaticImageSource(FrameSource):
    """A decoded still image. Always yields the same frame."""

    kind = SourceKind.IMAGE

    def __init__(self, image: np.ndarray):
        self.image: Optional[np.ndarray] = image
        self.height, self.width = image.shape[:2]

    def current_frame(self) -> Optional[np.ndarray]:
        return self.image

    def release(self) -> None:
        self.image = None


class VideoFileSource(FrameSource):
    """
    A video file with playback state.

    While playing, frames follow the file's frame rate on a playback clock:
    frames we fell behind on are skipped, and asking again before the next
    frame is due returns the previous one. Paused or ended videos yield no
    frame; last_frame keeps the frame that was on screen.
    """

    kind = SourceKind.VIDEO

    def __init__(
        self,
        capture: Any,
        path: str,
        width: int,
        height: int,
        fps: float,
        owns_file: bool = False,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.capture = capture
        self.path = path
        self.width = width
        self.height = height
        self.fps = fps if fps and fps > 0 else DEFAULT_VIDEO_FPS
        self.owns_file = owns_file
        self.last_frame: Optional[np.ndarray] = None
        self.ended = False
        self._clock = clock
        self._paused = False
        self._frames_read = 0
        self._origin = clock()
        self._released = False
        # Guards the capture; reads run on worker threads
        self._lock = threading.Lock()

    @property
    def paused(self) -> bool:
        return self._paused

    def pause(self) -> None:
        self._paused = True

    def play(self) -> None:
        """Resume playback; an ended video restarts from the beginning."""
        with self._lock:
            if self._released:
                return
            if self.ended:
                self.capture.set(cv2.CAP_PROP_POS_FRAMES, 0)
                self._frames_read = 0
                self.ended = False
            # Re-anchor the clock so playback continues where it stopped
            self._origin = self._clock() - self._frames_read / self.fps
            self._paused = False

    def _finish(self) -> None:
        self.ended = True
        self._paused = True
        logger.info(f"Video ended after {self._frames_read} frames: {self.path}")

    def current_frame(self) -> Optional[np.ndarray]:
        with self._lock:
            if self._paused or self._released:
                return None

            due = int((self._clock() - self._origin) * self.fps)
            if due < self._frames_read and self.last_frame is not None:
                return self.last_frame

            while self._frames_read < due:
                if not self.capture.grab():
                    self._finish()
                    return None
                self._frames_read += 1

            ok, frame = self.capture.read()
            if not ok:
                self._finish()
                return None

            self._frames_read += 1
            self.last_frame = frame
            return frame

    def release(self) -> None:
        with self._lock:
            if self._released:
                return
            self._paused = True
            self._released = True
            self.capture.release()
        if self.owns_file and os.path.exists(self.path):
            os.unlink(self.path)


ActiveSource = Union[CameraSource, StaticImageSource, VideoFileSource]


def decode_image(data: bytes) -> Optional[np.ndarray]:
    """Decode JPEG/PNG bytes into a BGR image, or None."""
    if not data:
        return None
    nparr = np.frombuffer(data, np.uint8)
    return cv2.imdecode(nparr, cv2.IMREAD_COLOR)


class FrameSourceManager:
    """
    Keeps exactly one frame source active.

    Every activation tears the previous source down before acquiring the
    new one. A failed activation leaves no active source.

    Usage:
        sources = FrameSourceManager()
        await sources.activate_camera(0)
        frame = await sources.current_frame()
        sources.teardown()
    """

    def __init__(
        self,
        capture_factory: Callable[..., Any] = cv2.VideoCapture,
        camera_warmup_seconds: float = 0.5,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            capture_factory: Opens a camera index or video path (cv2.VideoCapture)
            camera_warmup_seconds: Delay after the first camera frame before sampling
            clock: Monotonic clock driving video playback
        """
        self.capture_factory = capture_factory
        self.camera_warmup_seconds = camera_warmup_seconds
        self.clock = clock
        self.active: Optional[ActiveSource] = None

    # -------------------------------------------------------------------------
    # Activation
    # -------------------------------------------------------------------------

    async def activate(self, kind: SourceKind, data: Any) -> ActiveSource:
        """
        Activate a source of the given kind.

        Args:
            kind: Source kind
            data: Camera device index, encoded image bytes, or video path

        Raises:
            SourceAcquisitionFailed: If the source could not be opened
        """
        if kind is SourceKind.CAMERA:
            return await self.activate_camera(int(data or 0))
        if kind is SourceKind.IMAGE:
            return self.activate_image(data)
        if kind is SourceKind.VIDEO:
            return await self.activate_video(str(data))
        raise ValueError(f"Unsupported source kind: {kind}")

    async def activate_camera(self, device_index: int = 0) -> CameraSource:
        """Open a camera and wait for its stream to deliver a frame."""
        self.teardown()

        capture = await asyncio.to_thread(self.capture_factory, device_index)
        try:
            if not capture.isOpened():
                raise SourceAcquisitionFailed(
                    f"Cannot access camera {device_index}. "
                    "Check device permissions or whether another app is using the camera."
                )

            ok, frame = await asyncio.to_thread(capture.read)
            if not ok or frame is None:
                raise SourceAcquisitionFailed(f"Camera {device_index} opened but delivered no frames")

            # Let exposure and white balance settle before sampling
            if self.camera_warmup_seconds > 0:
                await asyncio.sleep(self.camera_warmup_seconds)
        except BaseException:
            # Failed or cancelled: never leave a half-open camera behind
            capture.release()
            raise

        source = CameraSource(capture, frame, device_index)
        self.active = source
        logger.info(f"Camera {device_index} active ({source.width}x{source.height})")
        return source

    def activate_image(self, data: bytes) -> StaticImageSource:
        """Decode an uploaded image and make it the active source."""
        self.teardown()

        image = decode_image(data)
        if image is None:
            raise SourceAcquisitionFailed("Could not decode image")

        source = StaticImageSource(image)
        self.active = source
        logger.info(f"Image active ({source.width}x{source.height})")
        return source

    async def activate_video(self, path: str, owns_file: bool = False) -> VideoFileSource:
        """
        Open a video file and start it playing.

        Args:
            path: Video file path
            owns_file: Delete the file when the source is released
        """
        self.teardown()

        capture = await asyncio.to_thread(self.capture_factory, path)
        width = height = 0
        fps = 0.0
        if capture.isOpened():
            width = int(capture.get(cv2.CAP_PROP_FRAME_WIDTH))
            height = int(capture.get(cv2.CAP_PROP_FRAME_HEIGHT))
            fps = float(capture.get(cv2.CAP_PROP_FPS))

        if width <= 0 or height <= 0:
            capture.release()
            if owns_file and os.path.exists(path):
                os.unlink(path)
            raise SourceAcquisitionFailed(f"Could not open video: {os.path.basename(path)}")

        source = VideoFileSource(
            capture, path, width, height, fps,
            owns_file=owns_file,
            clock=self.clock,
        )
        self.active = source
        logger.info(f"Video active ({width}x{height} @ {source.fps:.1f} fps)")
        return source

    # -------------------------------------------------------------------------
    # Access and teardown
    # -------------------------------------------------------------------------

    async def current_frame(self) -> Optional[np.ndarray]:
        """
        Current frame of the active source, or None.

        Camera and video reads block until the device or decoder delivers,
        so they run on a worker thread.
        """
        source = self.active
        if source is None:
            return None
        if isinstance(source, StaticImageSource):
            return source.current_frame()
        return await asyncio.to_thread(source.current_frame)

    def status(self) -> Optional[SourceStatus]:
        return self.active.status() if self.active else None

    def teardown(self) -> None:
        """Release the active source, if any."""
        source = self.active
        self.active = None
        if source is not None:
            source.release()
            logger.info(f"Released {source.kind.value} source")
