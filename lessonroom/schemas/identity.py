"""
Identity schemas for LessonRoom.

The engine does not authenticate anyone. Callers hand in a Principal
describing who is acting, and each operation authorizes against its role
and ownership.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class Role(str, Enum):
    STUDENT = "student"
    TEACHER = "teacher"
    ADMIN = "admin"


class Principal(BaseModel):
    """Opaque reference to the acting user."""
    id: str = Field(..., min_length=1)
    role: Role
    display_name: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN
