"""
ClassroomRegistry - Classrooms, join PINs and enrollment.

PINs are six random digits, unique across existing classrooms. The
is-this-PIN-taken check and the insert run in the same write transaction,
and a UNIQUE index on classrooms.pin backs it up.
"""

import logging
import sqlite3
from typing import Optional

from pydantic import ValidationError

from lessonroom.errors import (
    ForbiddenError,
    InvalidArgumentError,
    NotFoundError,
    ResourceExhaustedError,
)
from lessonroom.schemas import (
    Classroom,
    EnrollmentStatus,
    JoinResult,
    Principal,
    Role,
    validate_pin,
)
from lessonroom.utils import DEFAULT_PIN_MAX_ATTEMPTS, PinGenerator, random_pin

from .access import require_access, require_owner, require_role
from .database import (
    ClassroomDatabase,
    load_classroom,
    new_id,
    require_classroom,
    row_to_classroom,
    to_text,
)

logger = logging.getLogger(__name__)


class ClassroomRegistry:
    """
    Create, look up, rename and delete classrooms; enroll students by PIN.
    """

    def __init__(
        self,
        db: ClassroomDatabase,
        pin_generator: Optional[PinGenerator] = None,
        pin_max_attempts: int = DEFAULT_PIN_MAX_ATTEMPTS,
    ):
        """
        Initialize registry.

        Args:
            db: Shared classroom database
            pin_generator: Returns a candidate PIN (default: uniform random)
            pin_max_attempts: Collisions tolerated before giving up
        """
        if pin_max_attempts < 1:
            raise InvalidArgumentError("pin_max_attempts must be at least 1")
        self.db = db
        self.pin_generator = pin_generator or random_pin
        self.pin_max_attempts = pin_max_attempts

    # -------------------------------------------------------------------------
    # Creation and deletion
    # -------------------------------------------------------------------------

    def create_classroom(
        self,
        actor: Principal,
        name: str,
        description: Optional[str] = None,
    ) -> Classroom:
        """
        Create a classroom owned by the acting teacher.

        Raises:
            ForbiddenError: Actor is not a teacher
            InvalidArgumentError: Name missing or too long
            ResourceExhaustedError: No free PIN found within pin_max_attempts
        """
        require_role(actor, Role.TEACHER, action="create classrooms")
        if not name or not name.strip():
            raise InvalidArgumentError("Classroom name is required")

        for attempt in range(1, self.pin_max_attempts + 1):
            pin = self.pin_generator()
            now = self.db.now()
            try:
                classroom = Classroom(
                    id=new_id(),
                    name=name,
                    description=description,
                    teacher_id=actor.id,
                    pin=pin,
                    created_at=now,
                    updated_at=now,
                )
            except ValidationError as e:
                raise InvalidArgumentError(f"Invalid classroom: {e}") from e

            try:
                with self.db.transaction() as conn:
                    if self._pin_in_use(conn, pin):
                        classroom = None
                    else:
                        conn.execute(
                            """INSERT INTO classrooms
                               (id, name, description, teacher_id, pin, created_at, updated_at)
                               VALUES (?, ?, ?, ?, ?, ?, ?)""",
                            (classroom.id, classroom.name, classroom.description,
                             classroom.teacher_id, classroom.pin,
                             to_text(now), to_text(now))
                        )
            except sqlite3.IntegrityError:
                classroom = None

            if classroom is not None:
                logger.info(f"Created classroom {classroom.id} ({classroom.name!r}) for teacher {actor.id}")
                return classroom

            logger.warning(f"PIN collision (attempt {attempt}/{self.pin_max_attempts})")

        raise ResourceExhaustedError(
            f"Could not allocate a unique PIN after {self.pin_max_attempts} attempts"
        )

    def delete_classroom(self, actor: Principal, classroom_id: str):
        """Delete a classroom with all its lessons, assignments, submissions and progress."""
        with self.db.transaction() as conn:
            classroom = require_classroom(conn, classroom_id)
            require_owner(actor, classroom, "delete this classroom")

            progress = conn.execute(
                "DELETE FROM video_progress WHERE classroom_id = ?", (classroom_id,)
            ).rowcount
            submissions = conn.execute(
                """DELETE FROM submissions WHERE assignment_id IN
                   (SELECT id FROM assignments WHERE classroom_id = ?)""",
                (classroom_id,)
            ).rowcount
            assignments = conn.execute(
                "DELETE FROM assignments WHERE classroom_id = ?", (classroom_id,)
            ).rowcount
            lessons = conn.execute(
                "DELETE FROM lessons WHERE classroom_id = ?", (classroom_id,)
            ).rowcount
            conn.execute(
                "DELETE FROM classroom_students WHERE classroom_id = ?", (classroom_id,)
            )
            conn.execute("DELETE FROM classrooms WHERE id = ?", (classroom_id,))

        logger.info(
            f"Deleted classroom {classroom_id}: {lessons} lessons, {assignments} assignments, "
            f"{submissions} submissions, {progress} progress records"
        )

    def rename_classroom(
        self,
        actor: Principal,
        classroom_id: str,
        name: str,
        description: Optional[str] = None,
    ) -> Classroom:
        """Change the name (and optionally the description) of a classroom."""
        with self.db.transaction() as conn:
            classroom = require_classroom(conn, classroom_id)
            require_owner(actor, classroom, "rename this classroom")

            update = {"name": name, "updated_at": self.db.now()}
            if description is not None:
                update["description"] = description
            try:
                renamed = Classroom.model_validate({**classroom.model_dump(), **update})
            except ValidationError as e:
                raise InvalidArgumentError(f"Invalid classroom: {e}") from e

            conn.execute(
                """UPDATE classrooms SET name = ?, description = ?, updated_at = ?
                   WHERE id = ?""",
                (renamed.name, renamed.description, to_text(renamed.updated_at), classroom_id)
            )
            return renamed

    # -------------------------------------------------------------------------
    # Enrollment
    # -------------------------------------------------------------------------

    def join_by_pin(self, actor: Principal, pin: str) -> JoinResult:
        """
        Enroll the acting student in the classroom holding this PIN.

        Joining a classroom the student is already in changes nothing and
        returns status ALREADY_ENROLLED.
        """
        if actor.role != Role.STUDENT:
            raise ForbiddenError("Only students can join classrooms")
        try:
            pin = validate_pin((pin or "").strip())
        except ValueError as e:
            raise InvalidArgumentError(str(e)) from e

        with self.db.transaction() as conn:
            row = conn.execute(
                "SELECT * FROM classrooms WHERE pin = ?", (pin,)
            ).fetchone()
            if not row:
                raise NotFoundError("Invalid PIN. Classroom not found")

            classroom_id = row["id"]
            enrolled = conn.execute(
                """SELECT 1 FROM classroom_students
                   WHERE classroom_id = ? AND student_id = ?""",
                (classroom_id, actor.id)
            ).fetchone()
            if enrolled:
                return JoinResult(
                    classroom=row_to_classroom(conn, row),
                    status=EnrollmentStatus.ALREADY_ENROLLED,
                )

            now = to_text(self.db.now())
            conn.execute(
                """INSERT INTO classroom_students (classroom_id, student_id, joined_at)
                   VALUES (?, ?, ?)""",
                (classroom_id, actor.id, now)
            )
            conn.execute(
                "UPDATE classrooms SET updated_at = ? WHERE id = ?", (now, classroom_id)
            )
            classroom = load_classroom(conn, classroom_id)

        logger.info(f"Student {actor.id} joined classroom {classroom_id}")
        return JoinResult(classroom=classroom, status=EnrollmentStatus.JOINED)

    def unenroll(self, actor: Principal, classroom_id: str, student_id: str) -> Classroom:
        """
        Remove a student from a classroom.

        The classroom teacher (or an admin) may remove anyone; a student may
        only remove themself. Submissions and progress are kept.
        """
        with self.db.transaction() as conn:
            classroom = require_classroom(conn, classroom_id)
            leaving_self = actor.role == Role.STUDENT and actor.id == student_id
            if not leaving_self:
                require_owner(actor, classroom, "remove students")
            if not classroom.has_student(student_id):
                raise NotFoundError("Student not found in this classroom")

            now = to_text(self.db.now())
            conn.execute(
                """DELETE FROM classroom_students
                   WHERE classroom_id = ? AND student_id = ?""",
                (classroom_id, student_id)
            )
            conn.execute(
                "UPDATE classrooms SET updated_at = ? WHERE id = ?", (now, classroom_id)
            )
            classroom = load_classroom(conn, classroom_id)

        logger.info(f"Student {student_id} left classroom {classroom_id}")
        return classroom

    # -------------------------------------------------------------------------
    # Lookup
    # -------------------------------------------------------------------------

    def get_classroom(self, actor: Principal, classroom_id: str) -> Classroom:
        """Get a classroom visible to its teacher, its students and admins."""
        with self.db.snapshot() as conn:
            classroom = require_classroom(conn, classroom_id)
        require_access(actor, classroom, "view this classroom")
        return classroom

    def find_by_pin(self, pin: str) -> Optional[Classroom]:
        """PIN index lookup."""
        with self.db.snapshot() as conn:
            row = conn.execute(
                "SELECT * FROM classrooms WHERE pin = ?", (pin,)
            ).fetchone()
            return row_to_classroom(conn, row) if row else None

    def list_teacher_classrooms(self, actor: Principal) -> list[Classroom]:
        """Classrooms owned by the acting teacher, newest first. Admins see all."""
        require_role(actor, Role.TEACHER, action="list owned classrooms")
        with self.db.snapshot() as conn:
            if actor.is_admin:
                cursor = conn.execute(
                    "SELECT * FROM classrooms ORDER BY created_at DESC, rowid DESC"
                )
            else:
                cursor = conn.execute(
                    """SELECT * FROM classrooms WHERE teacher_id = ?
                       ORDER BY created_at DESC, rowid DESC""",
                    (actor.id,)
                )
            return [row_to_classroom(conn, row) for row in cursor.fetchall()]

    def list_student_classrooms(self, actor: Principal) -> list[Classroom]:
        """Classrooms the acting student is enrolled in, newest first."""
        if actor.role != Role.STUDENT:
            raise ForbiddenError("Only students can list joined classrooms")
        with self.db.snapshot() as conn:
            cursor = conn.execute(
                """SELECT c.* FROM classrooms c
                   JOIN classroom_students s ON s.classroom_id = c.id
                   WHERE s.student_id = ?
                   ORDER BY c.created_at DESC, c.rowid DESC""",
                (actor.id,)
            )
            return [row_to_classroom(conn, row) for row in cursor.fetchall()]

    def active_pins(self) -> set[str]:
        with self.db.snapshot() as conn:
            return {row["pin"] for row in conn.execute("SELECT pin FROM classrooms")}

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    @staticmethod
    def _pin_in_use(conn: sqlite3.Connection, pin: str) -> bool:
        row = conn.execute(
            "SELECT 1 FROM classrooms WHERE pin = ?", (pin,)
        ).fetchone()
        return row is not None
