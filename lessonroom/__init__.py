"""
LessonRoom - Classroom content and progress engine.

Tracks classrooms, lessons, assignments, submissions and video progress,
and rolls progress up into completion statistics.
"""

from lessonroom.classroom import ClassroomEngine
from lessonroom.errors import (
    LessonRoomError,
    NotFoundError,
    ForbiddenError,
    InvalidArgumentError,
    ResourceExhaustedError,
    ConflictError,
)
from lessonroom.utils import EngineConfig, load_config

__version__ = "0.1.0"

__all__ = [
    "ClassroomEngine",
    "EngineConfig",
    "load_config",
    "LessonRoomError",
    "NotFoundError",
    "ForbiddenError",
    "InvalidArgumentError",
    "ResourceExhaustedError",
    "ConflictError",
]
