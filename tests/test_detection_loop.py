import asyncio

import cv2
import numpy as np
import pytest

from yogapose.core.domain import DetectorUnavailable, FEATURE_LENGTH
from yogapose.core.services import (
    DetectionLoop,
    FrameSourceManager,
    KeypointSlot,
    RenderSurface,
    SkeletonRenderer,
)

from conftest import FakeDetector, make_frame, make_pose, encode_png


def build_loop(detector=None, frame=None, mirrored=False):
    sources = FrameSourceManager(camera_warmup_seconds=0)
    surface = RenderSurface()
    if frame is not None:
        source = sources.activate_image(encode_png(frame))
        surface.setup(source.width, source.height, mirrored=mirrored)
    slot = KeypointSlot()
    loop = DetectionLoop(sources, slot, surface, detector=detector, tick_interval=0.001)
    return loop, slot, surface


class ExplodingDetector(FakeDetector):
    async def estimate(self, frame, still=False):
        self.calls += 1
        raise RuntimeError("inference crashed")


# =============================================================================
# Single steps
# =============================================================================

def test_step_waits_while_detector_is_not_loaded():
    loop, slot, surface = build_loop(detector=None, frame=make_frame())

    assert asyncio.run(loop.step()) is False
    assert slot.frame_number == 0
    assert surface.image is None


def test_step_waits_without_active_source():
    detector = FakeDetector([make_pose()])
    loop, slot, _ = build_loop(detector=detector)

    assert asyncio.run(loop.step()) is False
    assert detector.calls == 0
    assert slot.frame_number == 0


def test_step_publishes_normalized_keypoints_and_renders():
    detector = FakeDetector([make_pose(width=64, height=48)])
    loop, slot, surface = build_loop(detector=detector, frame=make_frame(64, 48))

    assert asyncio.run(loop.step()) is True

    vector = slot.read()
    assert len(vector) == FEATURE_LENGTH
    assert all(0.0 <= v <= 1.0 for v in vector)
    assert surface.image is not None
    assert surface.image.shape[:2] == (48, 64)


def test_step_without_pose_publishes_empty_vector():
    loop, slot, surface = build_loop(detector=FakeDetector([]), frame=make_frame())
    slot.publish([0.5] * FEATURE_LENGTH)

    asyncio.run(loop.step())

    assert slot.read() == []
    assert not slot.has_pose
    assert slot.frame_number == 2
    assert surface.image is not None


def test_only_first_candidate_is_used():
    first = make_pose(confidence=0.9)
    second = make_pose(confidence=0.1)
    loop, slot, _ = build_loop(detector=FakeDetector([first, second]), frame=make_frame())

    asyncio.run(loop.step())

    assert -1.0 not in slot.read()


def test_detect_once_requires_detector():
    loop, _, _ = build_loop(detector=None)
    with pytest.raises(DetectorUnavailable):
        asyncio.run(loop.detect_once(make_frame()))


def test_render_only_leaves_slot_untouched():
    loop, slot, surface = build_loop(detector=None, frame=make_frame(value=9))
    loop.render_only(make_frame(value=9))
    assert surface.image is not None
    assert slot.frame_number == 0


def test_mirrored_surface_flips_after_drawing():
    frame = make_frame(64, 48)
    pose = make_pose(width=64, height=48)
    renderer = SkeletonRenderer()

    plain = RenderSurface()
    plain.setup(64, 48, mirrored=False)
    renderer.render(plain, frame, pose.keypoints)

    mirrored = RenderSurface()
    mirrored.setup(64, 48, mirrored=True)
    renderer.render(mirrored, frame, pose.keypoints)

    assert np.array_equal(mirrored.image, cv2.flip(plain.image, 1))
    # The input frame is never drawn on
    assert not frame.any()


def test_surface_encodes_jpeg_once_rendered():
    surface = RenderSurface()
    assert surface.to_jpeg() is None

    surface.setup(64, 48)
    SkeletonRenderer().render(surface, make_frame(64, 48))
    payload = surface.to_jpeg(quality=70)

    assert payload[:2] == b"\xff\xd8"
    surface.reset()
    assert (surface.width, surface.height, surface.image) == (0, 0, None)


# =============================================================================
# Scheduling
# =============================================================================

async def wait_for_publish(slot, count, timeout=2.0):
    async def poll():
        while slot.frame_number < count:
            await asyncio.sleep(0.001)
    await asyncio.wait_for(poll(), timeout)


def test_started_loop_detects_until_stopped():
    detector = FakeDetector([make_pose()])
    loop, slot, _ = build_loop(detector=detector, frame=make_frame())

    async def scenario():
        loop.start()
        assert loop.running
        await wait_for_publish(slot, 3)
        await loop.stop()
        published = slot.frame_number
        await asyncio.sleep(0.02)
        return published

    published = asyncio.run(scenario())

    assert not loop.running
    assert slot.frame_number == published
    assert slot.has_pose


def test_loop_survives_failing_step_and_clears_slot():
    detector = ExplodingDetector()
    loop, slot, _ = build_loop(detector=detector, frame=make_frame())
    slot.publish([0.5] * FEATURE_LENGTH)

    async def scenario():
        loop.start()
        while detector.calls < 2:
            await asyncio.sleep(0.001)
        await loop.stop()

    asyncio.run(asyncio.wait_for(scenario(), 2.0))

    assert slot.read() == []


def test_stop_without_start_is_harmless():
    loop, _, _ = build_loop()
    asyncio.run(loop.stop())
    assert not loop.running


def test_stream_steps_track_and_one_shot_detections_start_fresh():
    detector = FakeDetector([make_pose()])
    loop, _, _ = build_loop(detector=detector, frame=make_frame())

    asyncio.run(loop.step())
    asyncio.run(loop.detect_once(make_frame()))

    assert detector.stills == [False, True]
