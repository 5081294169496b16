"""
Submission schemas for LessonRoom.

A submission moves Unsubmitted -> Submitted -> Graded, and any resubmission
returns it to Submitted with the grade discarded. `version` increments on
every resubmission and guards grading against a concurrent resubmit.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, model_validator

GRADE_MIN = 0
GRADE_MAX = 100


class SubmissionStatus(str, Enum):
    UNSUBMITTED = "unsubmitted"
    SUBMITTED = "submitted"
    GRADED = "graded"


class Submission(BaseModel):
    id: str
    assignment_id: str
    student_id: str
    content: Optional[str] = None
    document_ref: Optional[str] = None
    submitted_at: datetime
    grade: Optional[int] = Field(None, ge=GRADE_MIN, le=GRADE_MAX)
    feedback: Optional[str] = None
    graded_at: Optional[datetime] = None
    version: int = Field(1, ge=1)

    @model_validator(mode="after")
    def has_payload(self):
        if not self.content and not self.document_ref:
            raise ValueError("Submission needs content or a document")
        return self

    @property
    def status(self) -> SubmissionStatus:
        if self.grade is None:
            return SubmissionStatus.SUBMITTED
        return SubmissionStatus.GRADED
