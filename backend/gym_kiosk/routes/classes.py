from fastapi import APIRouter, Request, Response, HTTPException, Depends, Query
from pydantic import ValidationError
from datetime import datetime
from typing import List, Optional
import logging

from gym_kiosk.models.member import ClassSession, ClassUpdate
from gym_kiosk.services.schedule import build_timetable
from gym_kiosk.utils.auth import verify_token
from gym_kiosk.utils.config import settings

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/classes", response_model=List[ClassSession])
async def get_classes(
    request: Request,
    day_of_week: Optional[int] = Query(None, ge=0, le=6),
    user_id: str = Depends(verify_token)
):
    try:
        return request.app.state.repository.list_classes(day_of_week)
    except Exception as e:
        logger.error(f"Class retrieval error: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/classes", response_model=ClassSession, status_code=201)
async def create_class(
    request: Request,
    session: ClassSession,
    user_id: str = Depends(verify_token)
):
    try:
        return request.app.state.repository.create_class(session)
    except Exception as e:
        logger.error(f"Class creation error: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))


@router.put("/classes/{class_id}", response_model=ClassSession)
async def update_class(
    request: Request,
    class_id: str,
    body: ClassUpdate,
    user_id: str = Depends(verify_token)
):
    try:
        session = request.app.state.repository.update_class(
            class_id,
            body.model_dump(exclude_unset=True)
        )
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except Exception as e:
        logger.error(f"Class update error: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to update class")

    if session is None:
        raise HTTPException(status_code=404, detail="Class not found")
    return session


@router.delete("/classes/{class_id}")
async def delete_class(request: Request, class_id: str, user_id: str = Depends(verify_token)):
    try:
        deleted = request.app.state.repository.delete_class(class_id)
    except Exception as e:
        logger.error(f"Class deletion error: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to delete class")

    if not deleted:
        raise HTTPException(status_code=404, detail="Class not found")
    return {"status": "success", "class_id": class_id}


@router.get("/timetable")
async def get_timetable(request: Request, response: Response):
    """Public weekly timetable, grouped by day, for embedding on the gym website"""
    try:
        classes = request.app.state.repository.list_classes()
    except Exception as e:
        logger.error(f"Timetable fetch error: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to fetch timetable")

    response.headers["Cache-Control"] = "public, max-age=300"
    return {
        "gym": settings.GYM_NAME,
        "location": settings.GYM_LOCATION,
        "last_updated": datetime.now().isoformat(),
        "timetable": build_timetable(classes)
    }
