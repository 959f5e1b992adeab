"""
Collection API Schemas

Pydantic models for frame sources, captures and dataset export.
"""

from pydantic import BaseModel, Field
from typing import Optional, List, Dict
from enum import Enum

from .pose import PoseLabelEnum


class SourceKindEnum(str, Enum):
    """Frame source kinds for API."""
    CAMERA = "camera"
    IMAGE = "image"
    VIDEO = "video"


class CameraRequest(BaseModel):
    """
    Request to switch to a live camera.
    """
    device_index: Optional[int] = Field(None, ge=0, description="Camera index (default from settings)")


class SourceStatusResponse(BaseModel):
    """
    State of the active frame source.
    """
    active: bool = Field(..., description="Whether a source is active")
    kind: Optional[SourceKindEnum] = Field(None, description="Active source kind")
    width: int = Field(0, ge=0, description="Native frame width")
    height: int = Field(0, ge=0, description="Native frame height")
    mirrored: bool = Field(False, description="Rendered mirrored (camera only)")
    paused: bool = Field(False, description="Video paused")
    detector_ready: bool = Field(..., description="Whether the pose model is loaded")

    class Config:
        json_schema_extra = {
            "example": {
                "active": True,
                "kind": "video",
                "width": 1280,
                "height": 720,
                "mirrored": False,
                "paused": True,
                "detector_ready": True
            }
        }


class ImageUploadResponse(BaseModel):
    """
    Result of uploading an image (detected once).
    """
    source: SourceStatusResponse
    has_pose: bool = Field(..., description="Whether a pose was found in the image")
    message: str = Field(..., description="User-facing status message")


class CaptureRequest(BaseModel):
    """
    Request to store the latest keypoints under a pose.
    """
    pose: PoseLabelEnum = Field(..., description="Pose class to file the sample under")

    class Config:
        json_schema_extra = {
            "example": {"pose": "Tree"}
        }


class CaptureResponse(BaseModel):
    """
    Result of a successful capture.
    """
    success: bool = Field(..., description="Whether the sample was stored")
    pose: PoseLabelEnum = Field(..., description="Pose the sample was stored under")
    samples: int = Field(..., ge=0, description="Samples now stored for this pose")
    total_samples: int = Field(..., ge=0, description="Samples across all poses")


class DatasetSummaryResponse(BaseModel):
    """
    Sample counts per pose.
    """
    counts: Dict[str, int] = Field(..., description="Samples per pose (zero counts included)")
    total_samples: int = Field(..., ge=0, description="Samples across all poses")


class ExportEntrySchema(BaseModel):
    """
    One element of the exported JSON array.
    """
    pose: PoseLabelEnum = Field(..., description="Pose class")
    samples: List[List[float]] = Field(..., description="Feature vectors in capture order")


class HealthResponse(BaseModel):
    """
    Health check response.
    """
    status: str = Field(..., description="API status")
    version: str = Field(..., description="API version")
    detector_ready: bool = Field(..., description="Whether the pose model is loaded")
    source: Optional[SourceKindEnum] = Field(None, description="Active source kind")
    loop_running: bool = Field(False, description="Whether continuous detection is running")
    total_samples: int = Field(0, ge=0, description="Samples across all poses")
