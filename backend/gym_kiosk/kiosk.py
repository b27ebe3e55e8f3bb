"""Run a check-in kiosk against a local camera: ``python -m gym_kiosk.kiosk``."""
import asyncio
import logging
import signal

from gym_kiosk.main import build_repository
from gym_kiosk.services.attendance import AttendanceRecorder
from gym_kiosk.services.camera import Camera
from gym_kiosk.services.embeddings import EmbeddingService
from gym_kiosk.services.kiosk_session import KioskSession
from gym_kiosk.services.model_loader import DetectorLoader
from gym_kiosk.utils.config import settings

logger = logging.getLogger(__name__)


async def log_check_in(face, result):
    logger.info(f"{face.label}: {result.status.value} (confidence {face.confidence:.2f})")


async def log_unknown(face):
    logger.info(f"Unknown face at ({face.box.x:.2f}, {face.box.y:.2f}), enrollment required")


async def run_kiosk(camera_index: int = settings.KIOSK_CAMERA_INDEX):
    loader = DetectorLoader.from_settings(settings)
    if not await loader.initialize():
        logger.error("Face detection models not available, kiosk not started")
        return

    repository = build_repository()
    session = KioskSession(
        camera=Camera(camera_index),
        detector=loader.detector,
        embeddings=EmbeddingService(repository, embedding_size=settings.EMBEDDING_SIZE),
        recorder=AttendanceRecorder(
            repository,
            cooldown_minutes=settings.CHECKIN_COOLDOWN_MINUTES,
            lead_minutes=settings.CHECKIN_LEAD_MINUTES
        ),
        interval=settings.KIOSK_POLL_INTERVAL,
        detector_timeout=settings.DETECTOR_TIMEOUT_SECONDS,
        threshold=settings.MATCH_THRESHOLD,
        on_check_in=log_check_in,
        on_unknown=log_unknown
    )

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)

    await session.start()
    try:
        await stop.wait()
    finally:
        await session.stop()


if __name__ == "__main__":
    asyncio.run(run_kiosk())
