import asyncio
import logging
from typing import List, Optional

from gym_kiosk.models.face import DetectedFace

logger = logging.getLogger(__name__)


class DetectionRunner:
    """
    Runs detector calls off the event loop, one at a time.

    A timeout only stops the caller from waiting: the worker thread keeps
    the detector until its call returns, and until then every new frame is
    skipped instead of starting a second call.
    """

    def __init__(self, detector, timeout: float = 5.0):
        self.detector = detector
        self.timeout = timeout
        self._pending: Optional[asyncio.Future] = None

    @property
    def busy(self) -> bool:
        return self._pending is not None and not self._pending.done()

    async def detect(self, frame) -> List[DetectedFace]:
        if self.busy:
            logger.debug("Detector still busy with an earlier frame, skipping")
            return []

        self._pending = asyncio.ensure_future(asyncio.to_thread(self.detector.detect, frame))
        self._pending.add_done_callback(self._finished)

        try:
            return await asyncio.wait_for(asyncio.shield(self._pending), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Detector timed out after {self.timeout}s, skipping frame")
        except Exception as e:
            logger.error(f"Detector failed: {str(e)}")
        return []

    @staticmethod
    def _finished(future: asyncio.Future):
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            logger.debug(f"Detector call ended with {type(error).__name__}")
