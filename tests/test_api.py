import json

import pytest
from fastapi.testclient import TestClient

from yogapose.config import Settings
from yogapose.core.domain import FEATURE_LENGTH
from yogapose.core.services import CollectorSession, FrameSourceManager
from yogapose.main import create_app

from conftest import FakeCapture, FakeDetector, make_frame, make_pose, encode_png


@pytest.fixture
def detector():
    return FakeDetector([make_pose(64, 48)])


@pytest.fixture
def camera_opens():
    return {"ok": True}


@pytest.fixture
def client(tmp_path, detector, camera_opens):
    def factory(target):
        return FakeCapture(
            [make_frame(64, 48, value=i) for i in range(3)],
            opened=camera_opens["ok"],
        )

    settings = Settings(
        load_detector=False,
        camera_warmup_seconds=0,
        preview_fps=50,
        reference_image_dir=str(tmp_path),
    )
    session = CollectorSession(
        sources=FrameSourceManager(capture_factory=factory, camera_warmup_seconds=0),
        detector=detector,
        tick_interval=0.001,
    )
    app = create_app(settings=settings, session=session)
    with TestClient(app) as test_client:
        yield test_client


def upload_image(client, payload=None, content_type="image/png"):
    payload = payload if payload is not None else encode_png(make_frame(64, 48))
    return client.post(
        "/api/source/image",
        files={"image": ("pose.png", payload, content_type)},
    )


# =============================================================================
# Health and poses
# =============================================================================

def test_root_and_health(client):
    root = client.get("/").json()
    assert root["health"] == "/api/health"

    health = client.get("/api/health").json()
    assert health == {
        "status": "healthy",
        "version": "1.0.0",
        "detector_ready": True,
        "source": None,
        "loop_running": False,
        "total_samples": 0,
    }


def test_health_reports_session_state(client):
    upload_image(client)
    client.post("/api/dataset/capture", json={"pose": "Bridge"})

    health = client.get("/api/health").json()

    assert health["source"] == "image"
    assert health["loop_running"] is False
    assert health["total_samples"] == 1


def test_pose_list_has_every_class_with_zero_counts(client):
    body = client.get("/api/poses").json()
    assert [p["pose"] for p in body["poses"]] == [
        "Tree", "Cobra", "Warrior", "DownwardDog", "Bridge", "Triangle"
    ]
    assert all(p["samples"] == 0 for p in body["poses"])
    assert body["total_samples"] == 0


def test_reference_image_served_when_present(client, tmp_path):
    (tmp_path / "tree.jpg").write_bytes(encode_png(make_frame()))

    assert client.get("/api/poses/Tree/reference").status_code == 200
    assert client.get("/api/poses/Cobra/reference").status_code == 404
    assert client.get("/api/poses/Lotus/reference").status_code == 422


# =============================================================================
# Sources
# =============================================================================

def test_image_upload_detects_and_reports_source(client):
    response = upload_image(client)

    assert response.status_code == 200
    body = response.json()
    assert body["has_pose"] is True
    assert body["message"] == "Image Ready. Save Pose."
    assert body["source"]["kind"] == "image"
    assert (body["source"]["width"], body["source"]["height"]) == (64, 48)

    keypoints = client.get("/api/keypoints").json()
    assert keypoints["has_pose"] is True
    assert len(keypoints["features"]) == FEATURE_LENGTH


def test_image_without_pose_reports_it(client, detector):
    detector.poses = []
    body = upload_image(client).json()
    assert body["has_pose"] is False
    assert "no pose" in body["message"]


def test_wrong_media_type_is_rejected(client):
    response = upload_image(client, b"hello", content_type="text/plain")
    assert response.status_code == 415


def test_undecodable_image_returns_400_and_clears_source(client):
    upload_image(client)
    response = upload_image(client, b"not really a png")

    assert response.status_code == 400
    assert response.json()["detail"] == "Could not decode image"
    assert client.get("/api/source").json()["active"] is False


def test_camera_unavailable_returns_503(client, camera_opens):
    camera_opens["ok"] = False
    response = client.post("/api/source/camera", json={"device_index": 1})

    assert response.status_code == 503
    assert "Cannot access camera 1" in response.json()["detail"]
    assert client.get("/api/source").json()["active"] is False


def test_camera_switch_and_release(client):
    response = client.post("/api/source/camera")

    assert response.status_code == 200
    body = response.json()
    assert body["kind"] == "camera"
    assert body["mirrored"] is True

    released = client.delete("/api/source").json()
    assert released["active"] is False
    assert client.get("/api/keypoints").json() == {"has_pose": False, "features": []}


def test_toggle_without_video_is_a_conflict(client):
    assert client.post("/api/source/video/toggle").status_code == 409


def test_video_upload_requires_video_type(client):
    response = client.post(
        "/api/source/video",
        files={"video": ("clip.txt", b"frames", "text/plain")},
    )
    assert response.status_code == 415


def test_video_upload_plays_and_toggles(client):
    response = client.post(
        "/api/source/video",
        files={"video": ("clip.mp4", b"frames", "video/mp4")},
    )
    assert response.status_code == 200
    assert response.json()["kind"] == "video"
    assert response.json()["paused"] is False

    paused = client.post("/api/source/video/toggle").json()
    assert paused["paused"] is True

    resumed = client.post("/api/source/video/toggle").json()
    assert resumed["paused"] is False


# =============================================================================
# Output
# =============================================================================

def test_frame_is_404_until_something_is_rendered(client):
    assert client.get("/api/frame").status_code == 404

    upload_image(client)
    response = client.get("/api/frame")

    assert response.status_code == 200
    assert response.headers["content-type"] == "image/jpeg"
    assert response.content[:2] == b"\xff\xd8"


# =============================================================================
# Dataset
# =============================================================================

def test_capture_without_detection_is_a_conflict(client):
    response = client.post("/api/dataset/capture", json={"pose": "Tree"})

    assert response.status_code == 409
    assert "Expected 34 features, got 0" in response.json()["detail"]
    assert client.get("/api/dataset").json()["total_samples"] == 0


def test_capture_unknown_pose_is_rejected(client):
    upload_image(client)
    response = client.post("/api/dataset/capture", json={"pose": "Lotus"})
    assert response.status_code == 422


def test_capture_then_export(client):
    upload_image(client)

    first = client.post("/api/dataset/capture", json={"pose": "Tree"}).json()
    client.post("/api/dataset/capture", json={"pose": "Tree"})
    client.post("/api/dataset/capture", json={"pose": "Cobra"})

    assert first == {"success": True, "pose": "Tree", "samples": 1, "total_samples": 1}

    summary = client.get("/api/dataset").json()
    assert summary["counts"]["Tree"] == 2
    assert summary["counts"]["Cobra"] == 1
    assert summary["counts"]["Bridge"] == 0
    assert summary["total_samples"] == 3

    response = client.get("/api/dataset/export")
    assert response.status_code == 200
    assert response.headers["content-disposition"] == 'attachment; filename="yoga_training_data.json"'

    entries = json.loads(response.content)
    assert [e["pose"] for e in entries] == ["Tree", "Cobra"]
    assert [len(e["samples"]) for e in entries] == [2, 1]
    assert all(len(s) == FEATURE_LENGTH for e in entries for s in e["samples"])

    assert client.get("/api/dataset/export").content == response.content


def test_export_of_empty_dataset_is_a_conflict(client):
    response = client.get("/api/dataset/export")
    assert response.status_code == 409
    assert response.json()["detail"] == "No data collected yet!"


# =============================================================================
# WebSocket
# =============================================================================

def receive_until(websocket, msg_type, limit=50):
    for _ in range(limit):
        message = websocket.receive_json()
        if message["type"] == msg_type:
            return message
    raise AssertionError(f"no {msg_type} message received")


def test_websocket_streams_previews_and_captures(client):
    upload_image(client)

    with client.websocket_connect("/ws/preview") as websocket:
        started = websocket.receive_json()
        assert started["type"] == "session_started"
        assert "Tree" in started["data"]["poses"]

        preview = receive_until(websocket, "preview")
        assert preview["data"]["has_pose"] is True
        assert preview["data"]["frame_base64"]

        websocket.send_json({"type": "capture", "data": {"pose": "Warrior"}})
        result = receive_until(websocket, "capture_result")
        assert result["data"]["samples"] == 1

        websocket.send_json({"type": "capture", "data": {"pose": "Lotus"}})
        assert "Unknown pose label" in receive_until(websocket, "error")["data"]["error"]

        websocket.send_json({"type": "end_session"})
        receive_until(websocket, "session_ended")

    assert client.get("/api/dataset").json()["counts"]["Warrior"] == 1


def test_websocket_rejects_malformed_capture_and_stays_open(client):
    upload_image(client)

    with client.websocket_connect("/ws/preview") as websocket:
        receive_until(websocket, "session_started")

        websocket.send_json({"type": "capture", "data": "Tree"})
        error = receive_until(websocket, "error")
        assert "'pose' field" in error["data"]["error"]

        # Connection is still usable after the bad message
        websocket.send_json({"type": "capture", "data": {"pose": "Tree"}})
        assert receive_until(websocket, "capture_result")["data"]["samples"] == 1

        websocket.send_json({"type": "end_session"})
        receive_until(websocket, "session_ended")

    assert client.get("/api/dataset").json()["counts"]["Tree"] == 1
