"""
Application Settings

Defaults come from the dataclass; every field can be overridden with a
YOGAPOSE_* environment variable (a .env file in the working directory is
loaded first, without overriding variables already set).
"""

import os
from dataclasses import dataclass, field
from typing import Optional

from dotenv import load_dotenv


def _env_or(name: str, default: str) -> str:
    v = os.getenv(name)
    return v if v is not None and v != "" else default


def _as_bool(v: str) -> bool:
    return v.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "INFO"
    reload: bool = False
    cors_origins: list[str] = field(default_factory=lambda: ["*"])

    # Frame sources
    camera_index: int = 0
    camera_warmup_seconds: float = 0.5  # after the first frame arrives
    target_fps: float = 30.0  # detection loop tick rate

    # Preview
    preview_fps: float = 10.0  # WebSocket preview push rate
    jpeg_quality: int = 80

    # Pose model
    model_complexity: int = 0  # 0 = lite, fastest
    min_detection_confidence: float = 0.5
    min_tracking_confidence: float = 0.5
    load_detector: bool = True

    # Directory holding reference images (tree.jpg, cobra.jpg, ...)
    reference_image_dir: str = "images"

    @property
    def tick_interval(self) -> float:
        return 1.0 / max(1.0, self.target_fps)

    @property
    def preview_interval(self) -> float:
        return 1.0 / max(0.5, self.preview_fps)


def load_settings(dotenv_path: Optional[str] = None) -> Settings:
    """Build Settings from the environment."""
    load_dotenv(dotenv_path=dotenv_path or os.getenv("YOGAPOSE_DOTENV", ".env"), override=False)
    d = Settings()
    origins = _env_or("YOGAPOSE_CORS_ORIGINS", ",".join(d.cors_origins))
    return Settings(
        host=_env_or("YOGAPOSE_HOST", d.host),
        port=int(_env_or("YOGAPOSE_PORT", str(d.port))),
        log_level=_env_or("YOGAPOSE_LOG_LEVEL", d.log_level).upper(),
        reload=_as_bool(_env_or("YOGAPOSE_RELOAD", str(d.reload))),
        cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
        camera_index=int(_env_or("YOGAPOSE_CAMERA_INDEX", str(d.camera_index))),
        camera_warmup_seconds=float(_env_or("YOGAPOSE_CAMERA_WARMUP_SECONDS", str(d.camera_warmup_seconds))),
        target_fps=float(_env_or("YOGAPOSE_TARGET_FPS", str(d.target_fps))),
        preview_fps=float(_env_or("YOGAPOSE_PREVIEW_FPS", str(d.preview_fps))),
        jpeg_quality=int(_env_or("YOGAPOSE_JPEG_QUALITY", str(d.jpeg_quality))),
        model_complexity=int(_env_or("YOGAPOSE_MODEL_COMPLEXITY", str(d.model_complexity))),
        min_detection_confidence=float(
            _env_or("YOGAPOSE_MIN_DETECTION_CONFIDENCE", str(d.min_detection_confidence))
        ),
        min_tracking_confidence=float(
            _env_or("YOGAPOSE_MIN_TRACKING_CONFIDENCE", str(d.min_tracking_confidence))
        ),
        load_detector=_as_bool(_env_or("YOGAPOSE_LOAD_DETECTOR", str(d.load_detector))),
        reference_image_dir=_env_or("YOGAPOSE_REFERENCE_IMAGE_DIR", d.reference_image_dir),
    )
