from pydantic import BaseModel, Field
from typing import Annotated, List, Optional, Union

from .face import KnownFace, UnknownFace
from .member import BeltRank


class DetectRequest(BaseModel):
    image: str


class DetectResponse(BaseModel):
    faces: List[Annotated[Union[KnownFace, UnknownFace], Field(discriminator="kind")]]
    current_class: Optional[str] = None
    timestamp: str


class CheckInRequest(BaseModel):
    member_id: str = Field(min_length=1)
    descriptor: Optional[List[float]] = None


class MemberSummary(BaseModel):
    id: str
    first_name: str
    last_name: str
    belt_rank: BeltRank
    profile_image: Optional[str] = None
    class_name: Optional[str] = None


class CheckInResponse(BaseModel):
    success: bool
    member: MemberSummary
    embedding_status: Optional[str] = None


class EnrollRequest(BaseModel):
    first_name: str = Field(min_length=1)
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    profile_image: Optional[str] = None
    descriptor: Optional[List[float]] = None


class EnrollResponse(BaseModel):
    success: bool
    member: MemberSummary


class EmbeddingUpdateRequest(BaseModel):
    member_id: str = Field(min_length=1)
    embedding: List[float]
