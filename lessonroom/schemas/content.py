"""
Content schemas for LessonRoom.

Lessons and assignments belong to exactly one classroom. Blob references
(video, notes, documents) are opaque strings from the storage collaborator,
kept exactly as given (a blank reference means none).
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from .submission import Submission


def _strip_or_none(v):
    if isinstance(v, str):
        v = v.strip()
        return v or None
    return v


def _blank_to_none(v):
    if isinstance(v, str) and not v.strip():
        return None
    return v


class Lesson(BaseModel):
    id: str
    classroom_id: str
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    video_ref: Optional[str] = None   # upload reference or external URL
    notes_ref: Optional[str] = None
    order: int = 0                    # sort key, ties break by created_at
    created_at: datetime
    updated_at: datetime

    @field_validator("title", mode="before")
    @classmethod
    def strip_title(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("description", mode="before")
    @classmethod
    def strip_description(cls, v):
        return _strip_or_none(v)

    @field_validator("video_ref", "notes_ref", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        return _blank_to_none(v)

    @property
    def has_video(self) -> bool:
        return self.video_ref is not None

    @property
    def has_notes(self) -> bool:
        return self.notes_ref is not None


class Assignment(BaseModel):
    id: str
    classroom_id: str
    lesson_id: Optional[str] = None  # weak link, nulled when the lesson goes
    title: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    document_ref: Optional[str] = None
    due_date: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    @field_validator("title", "description", mode="before")
    @classmethod
    def strip_text(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("lesson_id", "document_ref", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        return _blank_to_none(v)


class AssignmentView(BaseModel):
    """Assignment as seen by a caller; students also get their own submission."""
    assignment: Assignment
    submission: Optional[Submission] = None
