"""
API Schemas

Pydantic models for request/response validation.
"""

from .pose import (
    PoseLabelEnum,
    PoseCountSchema,
    PoseListResponse,
    KeypointsResponse,
    WebSocketMessageType,
    WebSocketMessage,
    PreviewMessage,
)

from .collection import (
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

__all__ = [
    # Pose schemas
    "PoseLabelEnum",
    "PoseCountSchema",
    "PoseListResponse",
    "KeypointsResponse",
    "WebSocketMessageType",
    "WebSocketMessage",
    "PreviewMessage",
    # Collection schemas
    "SourceKindEnum",
    "CameraRequest",
    "SourceStatusResponse",
    "ImageUploadResponse",
    "CaptureRequest",
    "CaptureResponse",
    "DatasetSummaryResponse",
    "ExportEntrySchema",
    "HealthResponse",
]
