"""
Progress tracking schemas for LessonRoom.

VideoProgress holds one student's watch state for one video lesson.
"""

import math
from datetime import datetime

from pydantic import BaseModel, Field, computed_field

DEFAULT_COMPLETION_THRESHOLD = 0.9


def round_half_up(value: float) -> int:
    """Round .5 away from zero for non-negative values (not banker's rounding)."""
    return int(math.floor(value + 0.5))


def progress_percentage(watched_seconds: float, total_seconds: float) -> int:
    """Whole-number percentage watched, clamped to [0, 100]."""
    if total_seconds <= 0:
        return 0
    percent = round_half_up(100 * watched_seconds / total_seconds)
    return max(0, min(100, percent))


class VideoProgress(BaseModel):
    student_id: str
    lesson_id: str
    classroom_id: str
    watched_duration_seconds: float = Field(0.0, ge=0)
    total_duration_seconds: float = Field(..., gt=0)
    is_completed: bool = False
    last_watched_at: datetime

    @computed_field
    @property
    def progress_percentage(self) -> int:
        return progress_percentage(
            self.watched_duration_seconds, self.total_duration_seconds
        )
