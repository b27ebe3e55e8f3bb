from fastapi import APIRouter, Request, HTTPException
from datetime import datetime
import numpy as np
import asyncio
import binascii
import cv2
import logging
from time import time

from gym_kiosk.exceptions import InvalidEmbeddingError
from gym_kiosk.models.kiosk import (
    CheckInRequest,
    CheckInResponse,
    DetectRequest,
    DetectResponse,
    EnrollRequest,
    EnrollResponse,
    MemberSummary,
)
from gym_kiosk.services.attendance import CheckInStatus
from gym_kiosk.services.enrollment import FIRST_VISIT_CLASS, enroll_member
from gym_kiosk.services.kiosk_session import CANDIDATE_STATUSES
from gym_kiosk.services.matcher import match_faces
from gym_kiosk.services.media_service import decode_data_url
from gym_kiosk.services.schedule import day_of_week, find_current_class
from gym_kiosk.utils.config import settings

logger = logging.getLogger(__name__)
router = APIRouter()


def decode_frame(image: str) -> np.ndarray:
    try:
        contents = decode_data_url(image)
    except (binascii.Error, ValueError):
        raise HTTPException(status_code=400, detail="Invalid image encoding")

    nparr = np.frombuffer(contents, np.uint8)
    frame = cv2.imdecode(nparr, cv2.IMREAD_COLOR)
    if frame is None:
        raise HTTPException(status_code=400, detail="Invalid image format")
    return frame


@router.post("/kiosk/detect", response_model=DetectResponse)
async def detect_faces(request: Request, body: DetectRequest):
    try:
        begin = time()

        loader = request.app.state.detector_loader
        if not loader.ready:
            raise HTTPException(
                status_code=503,
                detail="Face detection models not available."
            )

        frame = decode_frame(body.image)

        detected = await request.app.state.detection.detect(frame)
        time_after_detect = time()

        members = await request.app.state.embedding_service.list_embeddings(CANDIDATE_STATUSES)
        faces = match_faces(detected, members, settings.MATCH_THRESHOLD)

        now = datetime.now()
        repository = request.app.state.repository
        current = find_current_class(
            repository.list_classes(day_of_week(now)),
            now,
            settings.DETECT_LEAD_MINUTES
        )

        logger.info({
            "time_total": time() - begin,
            "time_detect": time_after_detect - begin,
            "faces": len(faces),
            "known": sum(not f.is_unknown for f in faces)
        })

        return DetectResponse(
            faces=faces,
            current_class=current.name if current else None,
            timestamp=now.isoformat()
        )

    except HTTPException:
        raise
    except InvalidEmbeddingError as e:
        logger.error(f"Embedding configuration error: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))
    except Exception as e:
        logger.error(f"Detection error: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=500,
            detail=f"Detection failed: {str(e)}"
        )


@router.post("/kiosk/checkin", response_model=CheckInResponse)
async def check_in(request: Request, body: CheckInRequest):
    try:
        embedding_service = request.app.state.embedding_service
        if body.descriptor is not None:
            embedding_service.validate(body.descriptor)

        result = await asyncio.to_thread(
            request.app.state.recorder.record_check_in,
            body.member_id
        )

        if result.status == CheckInStatus.NOT_FOUND:
            raise HTTPException(status_code=404, detail="Member not found")
        if result.status == CheckInStatus.ALREADY_CHECKED_IN:
            raise HTTPException(status_code=409, detail="Member already checked in")

        embedding_status = None
        if body.descriptor is not None:
            status = await embedding_service.update_embedding(body.member_id, body.descriptor)
            embedding_status = status.value

        member = result.member
        summary = MemberSummary(
            id=member.id,
            first_name=member.first_name,
            last_name=member.last_name,
            belt_rank=member.belt_rank,
            profile_image=member.profile_image,
            class_name=result.record.class_name
        )

        await request.app.state.ws_manager.broadcast({
            "type": "check_in",
            "data": {
                **summary.model_dump(mode="json"),
                "check_in_time": result.record.check_in_time.isoformat()
            }
        })

        return CheckInResponse(success=True, member=summary, embedding_status=embedding_status)

    except HTTPException:
        raise
    except InvalidEmbeddingError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except Exception as e:
        logger.error(f"Check-in error: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Check-in failed")


@router.post("/kiosk/enroll", response_model=EnrollResponse, status_code=201)
async def enroll(request: Request, body: EnrollRequest):
    try:
        member = await asyncio.to_thread(
            enroll_member,
            request.app.state.repository,
            request.app.state.media,
            body,
            settings.EMBEDDING_SIZE
        )

        summary = MemberSummary(
            id=member.id,
            first_name=member.first_name,
            last_name=member.last_name,
            belt_rank=member.belt_rank,
            profile_image=member.profile_image,
            class_name=FIRST_VISIT_CLASS
        )

        await request.app.state.ws_manager.broadcast({
            "type": "enrollment",
            "data": summary.model_dump(mode="json")
        })

        return EnrollResponse(success=True, member=summary)

    except InvalidEmbeddingError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except Exception as e:
        logger.error(f"Enrollment error: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Enrollment failed")
