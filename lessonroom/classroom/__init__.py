"""
LessonRoom Classroom - Runtime components over the classroom database.

This module provides:
- ClassroomDatabase: SQLite store with single-writer transactions
- ClassroomRegistry: Classrooms, PINs and enrollment
- ContentCatalog: Lessons and assignments
- SubmissionLedger: Submissions and grading
- ProgressTracker: Video watch progress
- StatisticsAggregator: Completion statistics
- ClassroomEngine: All of the above over one database
"""

from .database import (
    ClassroomDatabase,
    SCHEMA_VERSION,
    utc_now,
)

from .registry import ClassroomRegistry

from .catalog import ContentCatalog, UNSET

from .submissions import SubmissionLedger

from .progress import ProgressTracker, reaches_threshold

from .statistics import (
    StatisticsAggregator,
    compute_classroom_statistics,
    compute_student_statistics,
)

from .engine import ClassroomEngine

__all__ = [
    # Database
    "ClassroomDatabase",
    "SCHEMA_VERSION",
    "utc_now",
    # Registry
    "ClassroomRegistry",
    # Catalog
    "ContentCatalog",
    "UNSET",
    # Submissions
    "SubmissionLedger",
    # Progress
    "ProgressTracker",
    "reaches_threshold",
    # Statistics
    "StatisticsAggregator",
    "compute_classroom_statistics",
    "compute_student_statistics",
    # Engine
    "ClassroomEngine",
]
