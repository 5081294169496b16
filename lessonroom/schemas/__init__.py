"""
LessonRoom Schemas - Pydantic models for the classroom engine.

This module exports all schema classes for:
- Identity: acting principal and roles
- Classroom: classrooms, PINs, enrollment results
- Content: lessons and assignments
- Submission: submissions and their grading status
- Progress: video watch progress
- Statistics: per-student and per-classroom roll-ups
"""

# Identity schemas
from .identity import (
    Role,
    Principal,
)

# Classroom schemas
from .classroom import (
    Classroom,
    EnrollmentStatus,
    JoinResult,
    PIN_LENGTH,
    validate_pin,
)

# Submission schemas
from .submission import (
    Submission,
    SubmissionStatus,
    GRADE_MIN,
    GRADE_MAX,
)

# Content schemas
from .content import (
    Lesson,
    Assignment,
    AssignmentView,
)

# Progress schemas
from .progress import (
    VideoProgress,
    DEFAULT_COMPLETION_THRESHOLD,
    progress_percentage,
    round_half_up,
)

# Statistics schemas
from .statistics import (
    LessonInfo,
    LessonProgressRow,
    StudentStatistics,
    OverallStatistics,
    ClassroomStatistics,
)

__all__ = [
    # Identity
    'Role',
    'Principal',
    # Classroom
    'Classroom',
    'EnrollmentStatus',
    'JoinResult',
    'PIN_LENGTH',
    'validate_pin',
    # Submission
    'Submission',
    'SubmissionStatus',
    'GRADE_MIN',
    'GRADE_MAX',
    # Content
    'Lesson',
    'Assignment',
    'AssignmentView',
    # Progress
    'VideoProgress',
    'DEFAULT_COMPLETION_THRESHOLD',
    'progress_percentage',
    'round_half_up',
    # Statistics
    'LessonInfo',
    'LessonProgressRow',
    'StudentStatistics',
    'OverallStatistics',
    'ClassroomStatistics',
]
