"""
Classroom schemas for LessonRoom.

Defines Pydantic models for classrooms and enrollment:
- Classroom with its join PIN and enrolled students
- JoinResult returned by PIN enrollment
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator

PIN_LENGTH = 6
NAME_MAX_LENGTH = 100
DESCRIPTION_MAX_LENGTH = 500


def validate_pin(v: str) -> str:
    """A PIN is exactly six ASCII digits."""
    if len(v) != PIN_LENGTH or not (v.isascii() and v.isdigit()):
        raise ValueError(f"PIN must be exactly {PIN_LENGTH} digits")
    return v


class Classroom(BaseModel):
    id: str
    name: str = Field(..., min_length=1, max_length=NAME_MAX_LENGTH)
    description: Optional[str] = Field(None, max_length=DESCRIPTION_MAX_LENGTH)
    teacher_id: str
    pin: str
    student_ids: list[str] = []  # join order, no duplicates
    created_at: datetime
    updated_at: datetime

    @field_validator("name", "description", mode="before")
    @classmethod
    def strip_text(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("pin")
    @classmethod
    def pin_valid(cls, v):
        return validate_pin(v)

    @property
    def student_count(self) -> int:
        return len(self.student_ids)

    def has_student(self, student_id: str) -> bool:
        return student_id in self.student_ids


class EnrollmentStatus(str, Enum):
    JOINED = "joined"
    ALREADY_ENROLLED = "already_enrolled"


class JoinResult(BaseModel):
    """Outcome of join_by_pin. Joining twice is a no-op, not a failure."""
    classroom: Classroom
    status: EnrollmentStatus

    @property
    def already_enrolled(self) -> bool:
        return self.status == EnrollmentStatus.ALREADY_ENROLLED
