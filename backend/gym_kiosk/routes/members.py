from fastapi import APIRouter, Request, HTTPException, Depends, Query
from pydantic import BaseModel, ValidationError
from datetime import datetime
from typing import List, Optional
import asyncio
import logging

from gym_kiosk.exceptions import InvalidEmbeddingError
from gym_kiosk.models.kiosk import EmbeddingUpdateRequest
from gym_kiosk.models.member import Member, MemberCreate, MembershipStatus, MemberUpdate
from gym_kiosk.services.embeddings import UpdateStatus
from gym_kiosk.utils.auth import verify_token

logger = logging.getLogger(__name__)
router = APIRouter()


def matches_search(member: Member, search: str) -> bool:
    needle = search.lower()
    return any(
        needle in (value or "").lower()
        for value in (member.first_name, member.last_name, member.email)
    )


class EmbeddingEntry(BaseModel):
    id: str
    first_name: str
    last_name: str
    face_embedding: Optional[List[float]]


class EmbeddingListResponse(BaseModel):
    members: List[EmbeddingEntry]


class EmbeddingUpdateResponse(BaseModel):
    success: bool
    status: UpdateStatus
    message: str


@router.get("/members", response_model=List[Member])
async def list_members(
    request: Request,
    search: Optional[str] = None,
    status: Optional[MembershipStatus] = None,
    limit: int = Query(100, ge=1, le=1000),
    user_id: str = Depends(verify_token)
):
    try:
        statuses = [status] if status is not None else None
        members = await asyncio.to_thread(request.app.state.repository.list_members, statuses)
    except Exception as e:
        logger.error(f"Fetch members error: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to fetch members")

    if search:
        members = [m for m in members if matches_search(m, search)]
    members.sort(key=lambda m: m.join_date, reverse=True)
    return members[:limit]


@router.post("/members", response_model=Member, status_code=201)
async def create_member(
    request: Request,
    body: MemberCreate,
    user_id: str = Depends(verify_token)
):
    try:
        member = Member(
            **body.model_dump(exclude={"join_date", "profile_image"}),
            join_date=body.join_date or datetime.now()
        )
        if body.profile_image:
            member.profile_image = await asyncio.to_thread(
                request.app.state.media.store_profile_image,
                body.profile_image,
                member.id
            )
        return await asyncio.to_thread(request.app.state.repository.create_member, member)
    except Exception as e:
        logger.error(f"Create member error: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to create member")


@router.get("/members/embeddings", response_model=EmbeddingListResponse)
async def get_embeddings(request: Request, user_id: str = Depends(verify_token)):
    try:
        entries = await request.app.state.embedding_service.list_embeddings()
        return EmbeddingListResponse(members=[
            EmbeddingEntry(
                id=e.member_id,
                first_name=e.first_name,
                last_name=e.last_name,
                face_embedding=e.embedding
            )
            for e in entries
        ])
    except Exception as e:
        logger.error(f"Error fetching member embeddings: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to fetch embeddings")


@router.post("/members/embeddings", response_model=EmbeddingUpdateResponse)
async def update_embedding(
    request: Request,
    body: EmbeddingUpdateRequest,
    user_id: str = Depends(verify_token)
):
    try:
        status = await request.app.state.embedding_service.update_embedding(
            body.member_id,
            body.embedding
        )
    except InvalidEmbeddingError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except Exception as e:
        logger.error(f"Error storing embedding: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to store embedding")

    if status == UpdateStatus.NOT_FOUND:
        raise HTTPException(status_code=404, detail="Member not found")

    message = "Embedding updated (learned)" if status == UpdateStatus.LEARNED else "Embedding stored"
    return EmbeddingUpdateResponse(success=True, status=status, message=message)


@router.get("/members/{member_id}", response_model=Member)
async def get_member(request: Request, member_id: str, user_id: str = Depends(verify_token)):
    member = request.app.state.repository.get_member(member_id)
    if member is None:
        raise HTTPException(status_code=404, detail="Member not found")
    return member


@router.patch("/members/{member_id}", response_model=Member)
async def update_member(
    request: Request,
    member_id: str,
    body: MemberUpdate,
    user_id: str = Depends(verify_token)
):
    changes = body.model_dump(mode="json", exclude_unset=True)
    try:
        member = await asyncio.to_thread(
            request.app.state.repository.update_member,
            member_id,
            changes
        )
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except Exception as e:
        logger.error(f"Error updating member: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to update member")

    if member is None:
        raise HTTPException(status_code=404, detail="Member not found")
    return member


@router.delete("/members/{member_id}")
async def delete_member(request: Request, member_id: str, user_id: str = Depends(verify_token)):
    try:
        deleted = request.app.state.repository.delete_member(member_id)
    except Exception as e:
        logger.error(f"Error deleting member: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to delete member")

    if not deleted:
        raise HTTPException(status_code=404, detail="Member not found")
    return {"status": "success", "member_id": member_id}
