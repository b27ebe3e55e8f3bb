import uuid
from datetime import datetime
from enum import Enum
from pydantic import BaseModel, Field
from typing import List, Optional


def new_id() -> str:
    return uuid.uuid4().hex


class MembershipStatus(str, Enum):
    ACTIVE = "active"
    PENDING = "pending"
    OVERDUE = "overdue"
    INACTIVE = "inactive"
    TRIAL = "trial"
    CANCELLED = "cancelled"


class BeltRank(str, Enum):
    WHITE = "white"
    BLUE = "blue"
    PURPLE = "purple"
    BROWN = "brown"
    BLACK = "black"


class Member(BaseModel):
    id: str = Field(default_factory=new_id)
    first_name: str = Field(min_length=1)
    last_name: str = ""
    email: Optional[str] = None
    phone: Optional[str] = None
    status: MembershipStatus = MembershipStatus.TRIAL
    belt_rank: BeltRank = BeltRank.WHITE
    programs: List[str] = Field(default_factory=list)
    profile_image: Optional[str] = None
    notes: Optional[str] = None
    face_embedding: Optional[List[float]] = None
    attendance_count: int = 0
    last_check_in: Optional[datetime] = None
    join_date: datetime = Field(default_factory=datetime.now)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class MemberEmbedding(BaseModel):
    member_id: str
    first_name: str = ""
    last_name: str = ""
    embedding: Optional[List[float]] = None

    @property
    def label(self) -> str:
        return f"{self.first_name} {self.last_name}".strip() or self.member_id


class ClassSession(BaseModel):
    id: str = Field(default_factory=new_id)
    name: str = Field(min_length=1)
    description: Optional[str] = None
    day_of_week: int = Field(ge=0, le=6)  # 0 = Sunday
    start_time: str = Field(pattern=r"^([01]\d|2[0-3]):[0-5]\d$")
    duration_minutes: int = Field(default=60, gt=0)
    coach: Optional[str] = None
    level: Optional[str] = None
    program_type: Optional[str] = None
    max_capacity: Optional[int] = None
    is_active: bool = True


class CheckInMethod(str, Enum):
    MANUAL = "manual"
    FACIAL = "facial"
    QR = "qr"


class AttendanceRecord(BaseModel):
    id: str = Field(default_factory=new_id)
    member_id: str
    class_id: Optional[str] = None
    class_name: Optional[str] = None
    check_in_time: datetime = Field(default_factory=datetime.now)
    check_in_method: CheckInMethod = CheckInMethod.MANUAL


class MemberCreate(BaseModel):
    first_name: str = Field(min_length=1)
    last_name: str = ""
    email: Optional[str] = None
    phone: Optional[str] = None
    status: MembershipStatus = MembershipStatus.TRIAL
    belt_rank: BeltRank = BeltRank.WHITE
    programs: List[str] = Field(default_factory=lambda: ["Trial"])
    join_date: Optional[datetime] = None
    profile_image: Optional[str] = None
    notes: Optional[str] = None


class MemberUpdate(BaseModel):
    """Partial member update; only fields sent by the client are applied."""

    first_name: Optional[str] = Field(None, min_length=1)
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    status: Optional[MembershipStatus] = None
    belt_rank: Optional[BeltRank] = None
    programs: Optional[List[str]] = None
    profile_image: Optional[str] = None
    notes: Optional[str] = None


class ClassUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    day_of_week: Optional[int] = Field(None, ge=0, le=6)
    start_time: Optional[str] = Field(None, pattern=r"^([01]\d|2[0-3]):[0-5]\d$")
    duration_minutes: Optional[int] = Field(None, gt=0)
    coach: Optional[str] = None
    level: Optional[str] = None
    program_type: Optional[str] = None
    max_capacity: Optional[int] = None
    is_active: Optional[bool] = None
