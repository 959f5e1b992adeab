"""
Pose API Schemas

Pydantic models for pose-related API requests and responses.
These define the JSON structure for communication with frontend.
"""

from pydantic import BaseModel, Field
from typing import Optional, List
from enum import Enum


class PoseLabelEnum(str, Enum):
    """Pose classes for API."""
    TREE = "Tree"
    COBRA = "Cobra"
    WARRIOR = "Warrior"
    DOWNWARD_DOG = "DownwardDog"
    BRIDGE = "Bridge"
    TRIANGLE = "Triangle"


class PoseCountSchema(BaseModel):
    """
    Number of samples collected for one pose.
    """
    pose: PoseLabelEnum = Field(..., description="Pose class")
    samples: int = Field(..., ge=0, description="Samples captured so far")
    reference_image: Optional[str] = Field(None, description="URL of the reference image")


class PoseListResponse(BaseModel):
    """
    All pose classes with their sample counts.
    """
    poses: List[PoseCountSchema] = Field(..., description="Pose classes in export order")
    total_samples: int = Field(..., ge=0, description="Samples across all poses")


class KeypointsResponse(BaseModel):
    """
    Latest normalized keypoints published by the detection loop.

    Empty when the last detected frame had no pose.
    """
    has_pose: bool = Field(..., description="Whether a complete detection is available")
    features: List[float] = Field(default_factory=list, description="Interleaved (x, y) pairs; -1 = not detected")

    class Config:
        json_schema_extra = {
            "example": {
                "has_pose": True,
                "features": [0.51, 0.18, 0.53, 0.16, -1, -1]
            }
        }


# =============================================================================
# WebSocket Message Schemas
# =============================================================================

class WebSocketMessageType(str, Enum):
    """Types of WebSocket messages."""
    # Client -> Server
    CAPTURE = "capture"                # Capture latest keypoints under a pose
    END_SESSION = "end_session"        # Close the preview stream

    # Server -> Client
    PREVIEW = "preview"                # Rendered frame + keypoint status
    CAPTURE_RESULT = "capture_result"  # Result of a capture request
    ERROR = "error"                    # Error message
    SESSION_STARTED = "session_started"
    SESSION_ENDED = "session_ended"


class WebSocketMessage(BaseModel):
    """
    Base WebSocket message structure.

    All WebSocket communication uses this format.
    """
    type: WebSocketMessageType = Field(..., description="Message type")
    data: dict = Field(default_factory=dict, description="Message payload")
    timestamp: int = Field(..., description="Unix timestamp in milliseconds")

    class Config:
        json_schema_extra = {
            "example": {
                "type": "capture",
                "data": {"pose": "Tree"},
                "timestamp": 1704067200000
            }
        }


class PreviewMessage(BaseModel):
    """
    WebSocket payload with the current rendered frame.

    Sent from backend to frontend at the preview rate.
    """
    frame_base64: Optional[str] = Field(None, description="Rendered frame as base64 JPEG")
    width: int = Field(0, ge=0, description="Frame width in pixels")
    height: int = Field(0, ge=0, description="Frame height in pixels")
    mirrored: bool = Field(False, description="Whether the frame is shown mirrored")
    has_pose: bool = Field(False, description="Whether a complete detection is available")
    counts: dict[str, int] = Field(default_factory=dict, description="Samples per pose")
