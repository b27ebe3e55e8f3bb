import asyncio
import logging
import os
from typing import Callable, Optional

from gym_kiosk.exceptions import ModelsNotReadyError

logger = logging.getLogger(__name__)


class DetectorLoader:
    """
    Owns the face detector's lifecycle.

    ``initialize()`` loads the models once; concurrent callers wait on the
    same load. A failed load leaves the loader not ready so a later call
    can retry.
    """

    def __init__(self, factory: Callable[[], object], model_path: Optional[str] = None):
        self._factory = factory
        self._model_path = model_path
        self._detector = None
        self._lock = asyncio.Lock()

    @classmethod
    def from_settings(cls, settings) -> "DetectorLoader":
        def build():
            from gym_kiosk.services.face_detector import FaceDetector
            return FaceDetector(settings.FACE_MODEL_PATH, embedding_size=settings.EMBEDDING_SIZE)

        return cls(build, model_path=settings.FACE_MODEL_PATH)

    @classmethod
    def preloaded(cls, detector) -> "DetectorLoader":
        loader = cls(lambda: detector)
        loader._detector = detector
        return loader

    @property
    def ready(self) -> bool:
        return self._detector is not None

    @property
    def detector(self):
        if self._detector is None:
            raise ModelsNotReadyError("Face detection models are not loaded")
        return self._detector

    def detect(self, frame):
        return self.detector.detect(frame)

    async def initialize(self) -> bool:
        if self._detector is not None:
            return True

        async with self._lock:
            if self._detector is not None:
                return True

            if self._model_path and not os.path.exists(self._model_path):
                logger.warning(f"Face model not found at {self._model_path}")
                return False

            try:
                logger.info("Loading face detection models...")
                self._detector = await asyncio.to_thread(self._factory)
                logger.info("Face detection models loaded successfully!")
            except Exception as e:
                logger.error(f"Failed to load face detection models: {str(e)}", exc_info=True)
                return False

        return True
