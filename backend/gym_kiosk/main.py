from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from typing import Optional
import logging
import os

from gym_kiosk import __version__
from gym_kiosk.routes import classes, kiosk, members
from gym_kiosk.services.attendance import AttendanceRecorder
from gym_kiosk.services.detection import DetectionRunner
from gym_kiosk.services.embeddings import EmbeddingService
from gym_kiosk.services.media_service import MediaService
from gym_kiosk.services.member_repository import InMemoryMemberRepository, MemberRepository
from gym_kiosk.services.model_loader import DetectorLoader
from gym_kiosk.websocket.manager import ConnectionManager
from gym_kiosk.utils.config import settings
from gym_kiosk.utils.logger import setup_logging

setup_logging(log_dir=settings.LOG_DIR)
logger = logging.getLogger(__name__)


def build_repository() -> MemberRepository:
    if not os.path.exists(settings.FIREBASE_CREDENTIALS):
        logger.warning(f"Firebase credentials not found at {settings.FIREBASE_CREDENTIALS}")
        logger.warning("Member data will be kept in memory only")
        return InMemoryMemberRepository()

    from gym_kiosk.services.firebase_service import FirestoreMemberRepository
    return FirestoreMemberRepository(settings.FIREBASE_CREDENTIALS, settings.PROJECT_ID)


def create_app(
    repository: Optional[MemberRepository] = None,
    detector_loader: Optional[DetectorLoader] = None,
    media: Optional[MediaService] = None
) -> FastAPI:

    @asynccontextmanager
    async def lifespan(app: FastAPI):

        logger.info("Starting Gym Kiosk Backend...")

        app.state.repository = repository if repository is not None else build_repository()
        app.state.media = media if media is not None else MediaService()
        app.state.detector_loader = detector_loader if detector_loader is not None else DetectorLoader.from_settings(settings)
        app.state.embedding_service = EmbeddingService(
            app.state.repository,
            embedding_size=settings.EMBEDDING_SIZE
        )
        app.state.recorder = AttendanceRecorder(
            app.state.repository,
            cooldown_minutes=settings.CHECKIN_COOLDOWN_MINUTES,
            lead_minutes=settings.CHECKIN_LEAD_MINUTES
        )
        app.state.detection = DetectionRunner(
            app.state.detector_loader,
            timeout=settings.DETECTOR_TIMEOUT_SECONDS
        )
        app.state.ws_manager = ConnectionManager()

        if await app.state.detector_loader.initialize():
            logger.info("All services initialized successfully!")
        else:
            logger.warning("Server starting without face detection")

        yield

        logger.info("Shutting down services...")

    app = FastAPI(
        title="Gym Kiosk API",
        version=__version__,
        lifespan=lifespan
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(kiosk.router, prefix="/api", tags=["Kiosk"])
    app.include_router(members.router, prefix="/api", tags=["Members"])
    app.include_router(classes.router, prefix="/api", tags=["Classes"])

    @app.get("/")
    async def root():
        return {
            "status": "online",
            "service": "Gym Kiosk Backend",
            "version": __version__,
            "models": {
                "face_detector": app.state.detector_loader.ready,
                "firestore": not isinstance(app.state.repository, InMemoryMemberRepository),
                "cloudinary": app.state.media.enabled
            }
        }

    @app.websocket("/ws/checkins")
    async def websocket_endpoint(websocket: WebSocket):
        """Live feed of kiosk check-ins and enrollments"""
        await app.state.ws_manager.connect(websocket)
        try:
            while True:
                data = await websocket.receive_text()
                logger.info(f"Received from client: {data}")
        except WebSocketDisconnect:
            app.state.ws_manager.disconnect(websocket)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    os.makedirs("models", exist_ok=True)

    uvicorn.run(
        "gym_kiosk.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG
    )
