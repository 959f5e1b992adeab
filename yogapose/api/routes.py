"""
REST API Routes

FastAPI routes for pose sample collection.
Handles HTTP requests for switching frame sources, capturing samples and
exporting the dataset.
"""

import os
import logging
import tempfile
from pathlib import Path
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Request, UploadFile, File
from fastapi.responses import FileResponse, Response

from .schemas import (
    PoseLabelEnum,
    PoseCountSchema,
    PoseListResponse,
    KeypointsResponse,
    SourceKindEnum,
    CameraRequest,
    SourceStatusResponse,
    ImageUploadResponse,
    CaptureRequest,
    CaptureResponse,
    DatasetSummaryResponse,
    ExportEntrySchema,
    HealthResponse,
)
from ..config import Settings
from ..core.domain import (
    PoseLabel,
    REFERENCE_IMAGES,
    EXPORT_FILENAME,
    SourceAcquisitionFailed,
    NoActiveSource,
    UnknownPoseLabel,
    InvalidCapture,
    EmptyExport,
)
from ..core.services import CollectorSession

# Configure logging
logger = logging.getLogger(__name__)

# Create router
router = APIRouter()

VERSION = "1.0.0"


# =============================================================================
# Dependencies
# =============================================================================

def get_session(request: Request) -> CollectorSession:
    """The collection session owned by the running app."""
    return request.app.state.session


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def _source_status(session: CollectorSession) -> SourceStatusResponse:
    status = session.status
    if status is None:
        return SourceStatusResponse(active=False, detector_ready=session.detector_ready)
    return SourceStatusResponse(
        active=True,
        kind=SourceKindEnum(status.kind.value),
        width=status.width,
        height=status.height,
        mirrored=status.mirrored,
        paused=status.paused,
        detector_ready=session.detector_ready,
    )


def _require_media_type(upload: UploadFile, prefix: str) -> None:
    content_type = upload.content_type or ""
    if not content_type.startswith(prefix):
        raise HTTPException(
            status_code=415,
            detail=f"Expected a {prefix}* file, got {content_type or 'unknown type'}",
        )


# =============================================================================
# Health Check
# =============================================================================

@router.get(
    "/health",
    response_model=HealthResponse,
    tags=["Health"],
    summary="Health check endpoint"
)
async def health_check(session: CollectorSession = Depends(get_session)) -> HealthResponse:
    """
    Check if the API is running and whether the pose model is loaded.
    """
    summary = session.describe()
    return HealthResponse(
        status="healthy",
        version=VERSION,
        detector_ready=summary["detector_ready"],
        source=SourceKindEnum(summary["source"]) if summary["source"] else None,
        loop_running=summary["loop_running"],
        total_samples=summary["total_samples"],
    )


# =============================================================================
# Poses
# =============================================================================

@router.get(
    "/poses",
    response_model=PoseListResponse,
    tags=["Poses"],
    summary="List pose classes with sample counts"
)
async def list_poses(session: CollectorSession = Depends(get_session)) -> PoseListResponse:
    counts = session.counts()
    poses = [
        PoseCountSchema(
            pose=PoseLabelEnum(label.value),
            samples=count,
            reference_image=f"/api/poses/{label.value}/reference",
        )
        for label, count in counts.items()
    ]
    return PoseListResponse(poses=poses, total_samples=sum(counts.values()))


@router.get(
    "/poses/{pose}/reference",
    tags=["Poses"],
    summary="Reference image for a pose",
    response_class=FileResponse,
)
async def pose_reference(
    pose: PoseLabelEnum,
    settings: Settings = Depends(get_settings),
) -> FileResponse:
    """
    Example photo of the pose, to help the user get into position.
    """
    filename = REFERENCE_IMAGES.get(PoseLabel(pose.value))
    path = Path(settings.reference_image_dir) / filename if filename else None
    if path is None or not path.is_file():
        raise HTTPException(status_code=404, detail="Reference image not available")
    return FileResponse(path)


# =============================================================================
# Frame Sources
# =============================================================================

@router.get(
    "/source",
    response_model=SourceStatusResponse,
    tags=["Frame Source"],
    summary="Active frame source"
)
async def get_source(session: CollectorSession = Depends(get_session)) -> SourceStatusResponse:
    return _source_status(session)


@router.post(
    "/source/camera",
    response_model=SourceStatusResponse,
    tags=["Frame Source"],
    summary="Switch to the live camera"
)
async def select_camera(
    request: Optional[CameraRequest] = None,
    session: CollectorSession = Depends(get_session),
    settings: Settings = Depends(get_settings),
) -> SourceStatusResponse:
    """
    Open the camera and start continuous detection.

    If the camera cannot be opened the session stays without a source;
    select the camera again to retry.
    """
    device_index = settings.camera_index
    if request is not None and request.device_index is not None:
        device_index = request.device_index
    try:
        await session.select_camera(device_index)
    except SourceAcquisitionFailed as e:
        raise HTTPException(status_code=503, detail=str(e))
    return _source_status(session)


@router.post(
    "/source/image",
    response_model=ImageUploadResponse,
    tags=["Frame Source"],
    summary="Upload an image and detect once"
)
async def upload_image(
    image: UploadFile = File(..., description="Image file (JPEG, PNG)"),
    session: CollectorSession = Depends(get_session),
) -> ImageUploadResponse:
    """
    Show an uploaded image and run pose detection on it once.
    """
    _require_media_type(image, "image/")
    data = await image.read()

    try:
        features = await session.upload_image(data)
    except SourceAcquisitionFailed as e:
        raise HTTPException(status_code=400, detail=str(e))

    if not session.detector_ready:
        message = "Image loaded. Pose model is still loading; upload again once it is ready."
    elif features:
        message = "Image Ready. Save Pose."
    else:
        message = "Image loaded, but no pose was detected."

    return ImageUploadResponse(
        source=_source_status(session),
        has_pose=bool(features),
        message=message,
    )


@router.post(
    "/source/video",
    response_model=SourceStatusResponse,
    tags=["Frame Source"],
    summary="Upload a video and detect while it plays"
)
async def upload_video(
    video: UploadFile = File(..., description="Video file (MP4, MOV, WEBM)"),
    session: CollectorSession = Depends(get_session),
) -> SourceStatusResponse:
    """
    Play an uploaded video with continuous detection.

    Pause it to capture the frame on screen.
    """
    _require_media_type(video, "video/")

    # The video source deletes the temp file when it is released
    suffix = os.path.splitext(video.filename or ".mp4")[1]
    with tempfile.NamedTemporaryFile(delete=False, suffix=suffix) as temp_file:
        temp_path = temp_file.name
        temp_file.write(await video.read())

    try:
        await session.upload_video(temp_path, owns_file=True)
    except SourceAcquisitionFailed as e:
        raise HTTPException(status_code=400, detail=str(e))

    return _source_status(session)


@router.post(
    "/source/video/toggle",
    response_model=SourceStatusResponse,
    tags=["Frame Source"],
    summary="Pause or resume the video"
)
async def toggle_video(session: CollectorSession = Depends(get_session)) -> SourceStatusResponse:
    try:
        await session.toggle_pause()
    except NoActiveSource as e:
        raise HTTPException(status_code=409, detail=str(e))
    return _source_status(session)


@router.delete(
    "/source",
    response_model=SourceStatusResponse,
    tags=["Frame Source"],
    summary="Release the active source"
)
async def clear_source(session: CollectorSession = Depends(get_session)) -> SourceStatusResponse:
    await session.teardown()
    return _source_status(session)


# =============================================================================
# Output surface
# =============================================================================

@router.get(
    "/frame",
    tags=["Output"],
    summary="Latest rendered frame (JPEG)",
    response_class=Response,
)
async def latest_frame(
    session: CollectorSession = Depends(get_session),
    settings: Settings = Depends(get_settings),
) -> Response:
    jpeg = session.surface.to_jpeg(settings.jpeg_quality)
    if jpeg is None:
        raise HTTPException(status_code=404, detail="Nothing rendered yet")
    return Response(content=jpeg, media_type="image/jpeg")


@router.get(
    "/keypoints",
    response_model=KeypointsResponse,
    tags=["Output"],
    summary="Latest normalized keypoints"
)
async def latest_keypoints(session: CollectorSession = Depends(get_session)) -> KeypointsResponse:
    features = session.latest_keypoints()
    return KeypointsResponse(has_pose=bool(features), features=features)


# =============================================================================
# Dataset
# =============================================================================

@router.post(
    "/dataset/capture",
    response_model=CaptureResponse,
    tags=["Dataset"],
    summary="Capture the current keypoints"
)
async def capture_pose(
    request: CaptureRequest,
    session: CollectorSession = Depends(get_session),
) -> CaptureResponse:
    """
    Store the latest detected keypoints as a sample of the given pose.

    Fails with 409 when the current frame has no complete detection.
    """
    try:
        samples = session.capture(request.pose.value)
    except InvalidCapture as e:
        logger.warning(f"Capture rejected: {e}")
        raise HTTPException(status_code=409, detail=str(e))
    except UnknownPoseLabel as e:
        raise HTTPException(status_code=422, detail=str(e))

    return CaptureResponse(
        success=True,
        pose=request.pose,
        samples=samples,
        total_samples=session.dataset.total_samples,
    )


@router.get(
    "/dataset",
    response_model=DatasetSummaryResponse,
    tags=["Dataset"],
    summary="Sample counts"
)
async def dataset_summary(session: CollectorSession = Depends(get_session)) -> DatasetSummaryResponse:
    counts = session.counts()
    return DatasetSummaryResponse(
        counts={label.value: count for label, count in counts.items()},
        total_samples=sum(counts.values()),
    )


@router.get(
    "/dataset/export",
    tags=["Dataset"],
    summary="Download the collected dataset",
    response_class=Response,
    responses={
        200: {"model": List[ExportEntrySchema], "description": "JSON attachment"},
        409: {"description": "No data collected yet"},
    },
)
async def export_dataset(session: CollectorSession = Depends(get_session)) -> Response:
    """
    Download every captured sample as `yoga_training_data.json`.

    Poses without samples are left out. Exporting does not clear the dataset.
    """
    try:
        payload = session.export()
    except EmptyExport as e:
        raise HTTPException(status_code=409, detail=str(e))

    return Response(
        content=payload,
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{EXPORT_FILENAME}"'},
    )

