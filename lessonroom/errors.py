"""
Error kinds raised by LessonRoom components.

Every failure reaches the caller as one of these, carrying a readable
message. Joining a classroom twice is reported through JoinResult instead.
"""


class LessonRoomError(Exception):
    """Base class for all engine errors."""
    kind = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(LessonRoomError):
    kind = "not_found"


class ForbiddenError(LessonRoomError):
    kind = "forbidden"


class InvalidArgumentError(LessonRoomError, ValueError):
    kind = "invalid_argument"


class ResourceExhaustedError(LessonRoomError):
    kind = "resource_exhausted"


class ConflictError(LessonRoomError):
    kind = "conflict"
