"""
Statistics schemas for LessonRoom.

Read-only snapshots produced by StatisticsAggregator:
- Per-lesson progress rows
- Per-student roll-ups
- Classroom-wide overview
"""

from datetime import datetime
from typing import Optional

import pandas as pd
from pydantic import BaseModel, Field


class LessonInfo(BaseModel):
    lesson_id: str
    title: str
    order: int
    has_video: bool
    has_notes: bool


class LessonProgressRow(BaseModel):
    lesson: LessonInfo
    watched_duration_seconds: Optional[float] = None
    total_duration_seconds: Optional[float] = None
    progress_percentage: int = Field(0, ge=0, le=100)
    is_completed: bool = False
    last_watched_at: Optional[datetime] = None

    @property
    def started(self) -> bool:
        return self.last_watched_at is not None


class StudentStatistics(BaseModel):
    student_id: str
    completed_videos: int = Field(0, ge=0)
    total_videos: int = Field(0, ge=0)
    completion_percentage: int = Field(0, ge=0, le=100)
    average_progress: int = Field(0, ge=0, le=100)
    lesson_progress: list[LessonProgressRow] = []


class OverallStatistics(BaseModel):
    total_students: int = 0
    total_lessons: int = 0
    total_videos: int = 0
    average_completion: int = Field(0, ge=0, le=100)


class ClassroomStatistics(BaseModel):
    classroom_id: str
    classroom_name: str
    overall: OverallStatistics
    students: list[StudentStatistics] = []
    lessons: list[LessonInfo] = []
    generated_at: datetime

    def for_student(self, student_id: str) -> Optional[StudentStatistics]:
        for stats in self.students:
            if stats.student_id == student_id:
                return stats
        return None

    def to_frame(self) -> pd.DataFrame:
        """One row per enrolled student, suitable for CSV export."""
        columns = [
            "student_id",
            "completed_videos",
            "total_videos",
            "completion_percentage",
            "average_progress",
        ]
        rows = [s.model_dump(include=set(columns)) for s in self.students]
        return pd.DataFrame(rows, columns=columns)
