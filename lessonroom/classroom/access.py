"""
Authorization checks shared by the classroom components.

Roles come from the caller's Principal; ownership comes from the classroom.
Admins pass every check.
"""

from lessonroom.errors import ForbiddenError
from lessonroom.schemas import Classroom, Principal, Role


def require_role(actor: Principal, *roles: Role, action: str):
    """Raise ForbiddenError unless the actor holds one of roles (or is admin)."""
    if actor.is_admin or actor.role in roles:
        return
    allowed = " or ".join(r.value for r in roles)
    raise ForbiddenError(f"Only a {allowed} can {action}")


def is_owner(actor: Principal, classroom: Classroom) -> bool:
    return actor.role == Role.TEACHER and classroom.teacher_id == actor.id


def is_member(actor: Principal, classroom: Classroom) -> bool:
    return actor.role == Role.STUDENT and classroom.has_student(actor.id)


def require_owner(actor: Principal, classroom: Classroom, action: str):
    """Owning teacher or admin."""
    if actor.is_admin or is_owner(actor, classroom):
        return
    raise ForbiddenError(f"Only the classroom teacher can {action}")


def require_access(actor: Principal, classroom: Classroom, action: str):
    """Owning teacher, enrolled student, or admin."""
    if actor.is_admin or is_owner(actor, classroom) or is_member(actor, classroom):
        return
    raise ForbiddenError(f"Access denied: cannot {action}")
