"""
Yoga Pose Collector API

FastAPI application for collecting labeled yoga pose samples with live
pose detection.

Run with:
    yogapose
    # or
    uvicorn yogapose.main:app --reload --host 0.0.0.0 --port 8000

API docs available at:
    http://localhost:8000/docs (Swagger UI)
    http://localhost:8000/redoc (ReDoc)
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, Callable, Optional
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.routes import router as api_router, VERSION
from .api.websocket import websocket_endpoint
from .config import Settings, load_settings
from .core.services import CollectorSession, FrameSourceManager, load_detector_into

logger = logging.getLogger(__name__)


# =============================================================================
# Logging Configuration
# =============================================================================

def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


# =============================================================================
# Pose model
# =============================================================================

def mediapipe_detector_factory(settings: Settings) -> Callable[[], Any]:
    """Deferred MediaPipe detector construction for the lifespan loader."""
    def build():
        from .core.services.pose_detector import PoseDetector
        return PoseDetector(
            model_complexity=settings.model_complexity,
            min_detection_confidence=settings.min_detection_confidence,
            min_tracking_confidence=settings.min_tracking_confidence,
        )
    return build


def build_session(settings: Settings) -> CollectorSession:
    return CollectorSession(
        sources=FrameSourceManager(camera_warmup_seconds=settings.camera_warmup_seconds),
        tick_interval=settings.tick_interval,
    )


# =============================================================================
# App factory
# =============================================================================

def create_app(
    settings: Optional[Settings] = None,
    session: Optional[CollectorSession] = None,
    detector_factory: Optional[Callable[[], Any]] = None,
) -> FastAPI:
    """
    Build the FastAPI app.

    Args:
        settings: Settings (default: from environment)
        session: Collection session (default: OpenCV sources, no detector yet)
        detector_factory: Builds the pose detector at startup
            (default: MediaPipe, unless settings.load_detector is False)
    """
    settings = settings or load_settings()
    session = session or build_session(settings)
    if detector_factory is None and settings.load_detector:
        detector_factory = mediapipe_detector_factory(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Application lifespan handler.

        Starts loading the pose model in the background so the API is
        usable right away; the detection loop waits until it is ready.
        """
        # Startup
        logger.info(" Yoga Pose Collector starting up...")
        logger.info(f" API docs: http://{settings.host}:{settings.port}/docs")
        logger.info(f" WebSocket: ws://{settings.host}:{settings.port}/ws/preview")

        loader = None
        if detector_factory is not None and not session.detector_ready:
            logger.info(" Loading pose model...")
            loader = asyncio.create_task(load_detector_into(session, detector_factory))

        yield  # App runs here

        # Shutdown
        logger.info(" Yoga Pose Collector shutting down...")
        if loader is not None and not loader.done():
            loader.cancel()
        await session.close()

    app = FastAPI(
        title="Yoga Pose Collector API",
        description="""
    **Labeled Yoga Pose Sample Collector**

    Live pose detection over a camera, an image or a video, with one-click
    capture of normalized keypoints into a training dataset.

    ## Workflow

    1. Pick a source: `POST /api/source/camera`, `/api/source/image` or `/api/source/video`
    2. Watch the preview (`GET /api/frame` or `WS /ws/preview`)
    3. Capture the pose: `POST /api/dataset/capture`
    4. Download the dataset: `GET /api/dataset/export`

    ## Export Format
```json
    [
        {"pose": "Tree", "samples": [[0.51, 0.18, ..., -1, -1]]}
    ]
```
    """,
        version=VERSION,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    app.state.settings = settings
    app.state.session = session

    # =========================================================================
    # CORS Middleware
    # =========================================================================

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # =========================================================================
    # Routes
    # =========================================================================

    # Include REST API routes
    app.include_router(api_router, prefix="/api")

    # WebSocket endpoint
    app.websocket("/ws/preview")(websocket_endpoint)

    @app.get("/", tags=["Root"])
    async def root():
        """
        Root endpoint - API information.
        """
        return {
            "name": "Yoga Pose Collector API",
            "version": VERSION,
            "description": "Labeled yoga pose sample collector",
            "docs": "/docs",
            "health": "/api/health",
            "websocket": f"ws://{settings.host}:{settings.port}/ws/preview"
        }

    return app


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    import uvicorn

    settings = load_settings()
    configure_logging(settings.log_level)
    uvicorn.run(
        "yogapose.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.reload,
        log_level=settings.log_level.lower(),
    )


# Module-level app for `uvicorn yogapose.main:app`
_settings = load_settings()
configure_logging(_settings.log_level)
app = create_app(_settings)


# =============================================================================
# Run directly (for development)
# =============================================================================

if __name__ == "__main__":
    run()
