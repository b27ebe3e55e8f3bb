import asyncio
import logging
from typing import Awaitable, Callable, List, Optional, Set

from gym_kiosk.exceptions import InvalidEmbeddingError
from gym_kiosk.models.face import DetectedFace, KnownFace, MatchedFace, UnknownFace
from gym_kiosk.models.member import MemberEmbedding, MembershipStatus
from gym_kiosk.services.attendance import AttendanceRecorder, CheckInResult, CheckInStatus
from gym_kiosk.services.detection import DetectionRunner
from gym_kiosk.services.embeddings import EmbeddingService
from gym_kiosk.services.matcher import MATCH_THRESHOLD, match_faces

logger = logging.getLogger(__name__)

CANDIDATE_STATUSES = (MembershipStatus.ACTIVE, MembershipStatus.TRIAL)


class KioskSession:
    """
    Single camera check-in loop.

    Every ``interval`` seconds one frame is read and sent to the detector;
    while a call is still running, including one that timed out, new
    ticks skip detection instead of starting another call. The embedding
    snapshot is fetched at start and on ``refresh_members()``.
    """

    def __init__(
        self,
        camera,
        detector,
        embeddings: EmbeddingService,
        recorder: AttendanceRecorder,
        interval: float = 0.5,
        detector_timeout: float = 5.0,
        threshold: float = MATCH_THRESHOLD,
        auto_check_in: bool = True,
        on_check_in: Optional[Callable[[KnownFace, CheckInResult], Awaitable[None]]] = None,
        on_unknown: Optional[Callable[[UnknownFace], Awaitable[None]]] = None
    ):
        self.camera = camera
        self.detector = detector
        self.embeddings = embeddings
        self.recorder = recorder
        self.interval = interval
        self.detector_timeout = detector_timeout
        self.threshold = threshold
        self.auto_check_in = auto_check_in
        self.on_check_in = on_check_in
        self.on_unknown = on_unknown

        self.members: List[MemberEmbedding] = []
        self.checked_in: Set[str] = set()
        self.last_faces: List[MatchedFace] = []
        self._active = False
        self._task: Optional[asyncio.Task] = None
        self._runner = DetectionRunner(detector, detector_timeout)

    @property
    def active(self) -> bool:
        return self._active

    async def refresh_members(self):
        self.members = await self.embeddings.list_embeddings(CANDIDATE_STATUSES)
        logger.info(f"Kiosk loaded {len(self.members)} member(s)")

    async def start(self):
        if self._active:
            return
        await asyncio.to_thread(self.camera.open)
        await self.refresh_members()
        self._active = True
        self._task = asyncio.create_task(self._run())
        logger.info("Kiosk session started")

    async def stop(self):
        self._active = False
        task, self._task = self._task, None
        if task is not None and task is not asyncio.current_task():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        await asyncio.to_thread(self.camera.release)
        logger.info("Kiosk session stopped")

    async def wait(self):
        if self._task is not None:
            await self._task

    async def _run(self):
        while self._active:
            try:
                await self.process_frame()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Kiosk frame error: {str(e)}", exc_info=True)
            await asyncio.sleep(self.interval)

    async def detect(self, frame) -> List[DetectedFace]:
        return await self._runner.detect(frame)

    async def process_frame(self) -> List[MatchedFace]:
        frame = await asyncio.to_thread(self.camera.read)
        if frame is None:
            return []

        detected = await self.detect(frame)
        if not self._active:
            # stopped while the detector was running
            return []

        try:
            faces = match_faces(detected, self.members, self.threshold)
        except InvalidEmbeddingError as e:
            logger.error(f"Skipping frame: {str(e)}")
            return []

        self.last_faces = faces
        for face in faces:
            if not self._active:
                break
            if face.is_unknown:
                if self.on_unknown is not None:
                    await self.on_unknown(face)
            elif self.auto_check_in and face.member_id not in self.checked_in:
                await self.check_in(face)

        return faces

    async def check_in(self, face: KnownFace) -> CheckInResult:
        result = await asyncio.to_thread(self.recorder.record_check_in, face.member_id)

        if result.status in (CheckInStatus.SUCCESS, CheckInStatus.ALREADY_CHECKED_IN):
            self.checked_in.add(face.member_id)

        if result.success:
            try:
                await self.embeddings.update_embedding(face.member_id, face.descriptor)
            except InvalidEmbeddingError as e:
                logger.error(f"Embedding not updated for {face.member_id}: {str(e)}")

        if self.on_check_in is not None:
            await self.on_check_in(face, result)
        return result
