from pydantic import BaseModel, FiniteFloat, Field
from typing import List, Literal, Union


class BoundingBox(BaseModel):
    # normalized to the frame size
    x: float = Field(ge=0.0, le=1.0)
    y: float = Field(ge=0.0, le=1.0)
    width: float = Field(ge=0.0, le=1.0)
    height: float = Field(ge=0.0, le=1.0)


class DetectedFace(BaseModel):
    box: BoundingBox
    descriptor: List[FiniteFloat]


class KnownFace(BaseModel):
    kind: Literal["known"] = "known"
    box: BoundingBox
    descriptor: List[FiniteFloat]
    member_id: str
    label: str
    confidence: float
    distance: float

    @property
    def is_unknown(self) -> bool:
        return False


class UnknownFace(BaseModel):
    kind: Literal["unknown"] = "unknown"
    box: BoundingBox
    descriptor: List[FiniteFloat]
    label: str = "Unknown"

    @property
    def is_unknown(self) -> bool:
        return True

    @property
    def confidence(self) -> float:
        return 0.0


MatchedFace = Union[KnownFace, UnknownFace]
