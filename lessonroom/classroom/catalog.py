"""
ContentCatalog - Lessons and assignments of a classroom.

Provides:
- Lesson CRUD with (order, created_at) ordering
- Assignment CRUD with an optional weak link to a lesson
- Lesson deletion that unlinks assignments instead of deleting them
"""

import logging
import sqlite3
from datetime import datetime
from typing import Optional

from pydantic import ValidationError

from lessonroom.errors import InvalidArgumentError
from lessonroom.schemas import (
    Assignment,
    AssignmentView,
    Lesson,
    Principal,
    Role,
)

from .access import is_member, require_access, require_owner
from .database import (
    ClassroomDatabase,
    load_lessons,
    new_id,
    require_assignment,
    require_classroom,
    require_lesson,
    row_to_assignment,
    row_to_submission,
    to_text,
)

logger = logging.getLogger(__name__)

# Marks "argument not supplied" where None means "clear the field"
UNSET = object()


def _build(model, **fields):
    try:
        return model(**fields)
    except ValidationError as e:
        raise InvalidArgumentError(f"Invalid {model.__name__.lower()}: {e}") from e


class ContentCatalog:
    """
    Manage the lessons and assignments owned by classrooms.

    Writes require the classroom teacher (or an admin); reads also allow
    enrolled students.
    """

    def __init__(self, db: ClassroomDatabase):
        self.db = db

    # -------------------------------------------------------------------------
    # Lessons
    # -------------------------------------------------------------------------

    def create_lesson(
        self,
        actor: Principal,
        classroom_id: str,
        title: str,
        description: Optional[str] = None,
        video_ref: Optional[str] = None,
        notes_ref: Optional[str] = None,
        order: int = 0,
    ) -> Lesson:
        """
        Add a lesson to a classroom.

        Args:
            actor: Acting principal (classroom teacher or admin)
            classroom_id: Owning classroom
            title: Lesson title
            description: Optional text
            video_ref: Blob reference or URL of the lesson video
            notes_ref: Blob reference of the lesson notes
            order: Sort key; lessons with equal order keep creation order

        Returns:
            The stored Lesson
        """
        with self.db.transaction() as conn:
            classroom = require_classroom(conn, classroom_id)
            require_owner(actor, classroom, "create lessons")

            now = self.db.now()
            lesson = _build(
                Lesson,
                id=new_id(),
                classroom_id=classroom_id,
                title=title,
                description=description,
                video_ref=video_ref,
                notes_ref=notes_ref,
                order=order,
                created_at=now,
                updated_at=now,
            )
            conn.execute(
                """INSERT INTO lessons
                   (id, classroom_id, title, description, video_ref, notes_ref,
                    position, created_at, updated_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (lesson.id, lesson.classroom_id, lesson.title, lesson.description,
                 lesson.video_ref, lesson.notes_ref, lesson.order,
                 to_text(now), to_text(now))
            )

        logger.info(f"Created lesson {lesson.id} in classroom {classroom_id}")
        return lesson

    def update_lesson(
        self,
        actor: Principal,
        lesson_id: str,
        title=UNSET,
        description=UNSET,
        video_ref=UNSET,
        notes_ref=UNSET,
        order=UNSET,
    ) -> Lesson:
        """
        Change the supplied fields of a lesson.

        Passing None for description, video_ref or notes_ref clears it.
        """
        changes = {
            name: value
            for name, value in (
                ("title", title),
                ("description", description),
                ("video_ref", video_ref),
                ("notes_ref", notes_ref),
                ("order", order),
            )
            if value is not UNSET
        }

        with self.db.transaction() as conn:
            lesson = require_lesson(conn, lesson_id)
            classroom = require_classroom(conn, lesson.classroom_id)
            require_owner(actor, classroom, "update lessons")

            updated = _build(
                Lesson,
                **{**lesson.model_dump(), **changes, "updated_at": self.db.now()},
            )
            conn.execute(
                """UPDATE lessons SET title = ?, description = ?, video_ref = ?,
                   notes_ref = ?, position = ?, updated_at = ?
                   WHERE id = ?""",
                (updated.title, updated.description, updated.video_ref,
                 updated.notes_ref, updated.order, to_text(updated.updated_at),
                 lesson_id)
            )
            return updated

    def delete_lesson(self, actor: Principal, lesson_id: str):
        """
        Delete a lesson.

        Assignments linked to it stay and lose the link; watch progress for
        the lesson is deleted with it.
        """
        with self.db.transaction() as conn:
            lesson = require_lesson(conn, lesson_id)
            classroom = require_classroom(conn, lesson.classroom_id)
            require_owner(actor, classroom, "delete lessons")

            now = to_text(self.db.now())
            unlinked = conn.execute(
                """UPDATE assignments SET lesson_id = NULL, updated_at = ?
                   WHERE lesson_id = ?""",
                (now, lesson_id)
            ).rowcount
            conn.execute("DELETE FROM video_progress WHERE lesson_id = ?", (lesson_id,))
            conn.execute("DELETE FROM lessons WHERE id = ?", (lesson_id,))

        logger.info(f"Deleted lesson {lesson_id} (unlinked {unlinked} assignments)")

    def get_lesson(self, actor: Principal, lesson_id: str) -> Lesson:
        with self.db.snapshot() as conn:
            lesson = require_lesson(conn, lesson_id)
            classroom = require_classroom(conn, lesson.classroom_id)
        require_access(actor, classroom, "view this lesson")
        return lesson

    def list_lessons(self, actor: Principal, classroom_id: str) -> list[Lesson]:
        """Lessons of a classroom ordered by (order, created_at)."""
        with self.db.snapshot() as conn:
            classroom = require_classroom(conn, classroom_id)
            require_access(actor, classroom, "view lessons")
            return load_lessons(conn, classroom_id)

    # -------------------------------------------------------------------------
    # Assignments
    # -------------------------------------------------------------------------

    def create_assignment(
        self,
        actor: Principal,
        classroom_id: str,
        title: str,
        description: str,
        lesson_id: Optional[str] = None,
        document_ref: Optional[str] = None,
        due_date: Optional[datetime] = None,
    ) -> Assignment:
        """
        Add an assignment to a classroom, optionally linked to one of its lessons.

        Raises:
            NotFoundError: Classroom or linked lesson does not exist
            InvalidArgumentError: Linked lesson belongs to another classroom,
                or title/description missing
        """
        with self.db.transaction() as conn:
            classroom = require_classroom(conn, classroom_id)
            require_owner(actor, classroom, "create assignments")
            if lesson_id:
                self._check_lesson_link(conn, classroom_id, lesson_id)

            now = self.db.now()
            assignment = _build(
                Assignment,
                id=new_id(),
                classroom_id=classroom_id,
                lesson_id=lesson_id,
                title=title,
                description=description,
                document_ref=document_ref,
                due_date=due_date,
                created_at=now,
                updated_at=now,
            )
            conn.execute(
                """INSERT INTO assignments
                   (id, classroom_id, lesson_id, title, description, document_ref,
                    due_date, created_at, updated_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (assignment.id, classroom_id, assignment.lesson_id, assignment.title,
                 assignment.description, assignment.document_ref,
                 to_text(assignment.due_date), to_text(now), to_text(now))
            )

        logger.info(f"Created assignment {assignment.id} in classroom {classroom_id}")
        return assignment

    def delete_assignment(self, actor: Principal, assignment_id: str):
        """Delete an assignment and every submission to it."""
        with self.db.transaction() as conn:
            assignment = require_assignment(conn, assignment_id)
            classroom = require_classroom(conn, assignment.classroom_id)
            require_owner(actor, classroom, "delete assignments")

            removed = conn.execute(
                "DELETE FROM submissions WHERE assignment_id = ?", (assignment_id,)
            ).rowcount
            conn.execute("DELETE FROM assignments WHERE id = ?", (assignment_id,))

        logger.info(f"Deleted assignment {assignment_id} ({removed} submissions)")

    def list_assignments(self, actor: Principal, classroom_id: str) -> list[Assignment]:
        """Assignments of a classroom by due date (undated last), then creation."""
        with self.db.snapshot() as conn:
            classroom = require_classroom(conn, classroom_id)
            require_access(actor, classroom, "view assignments")
            cursor = conn.execute(
                """SELECT * FROM assignments
                   WHERE classroom_id = ?
                   ORDER BY due_date IS NULL, due_date, created_at, rowid""",
                (classroom_id,)
            )
            return [row_to_assignment(row) for row in cursor.fetchall()]

    def get_assignment(self, actor: Principal, assignment_id: str) -> AssignmentView:
        """Get an assignment; an enrolled student also sees their own submission."""
        with self.db.snapshot() as conn:
            assignment = require_assignment(conn, assignment_id)
            classroom = require_classroom(conn, assignment.classroom_id)
            require_access(actor, classroom, "view this assignment")

            submission = None
            if actor.role == Role.STUDENT and is_member(actor, classroom):
                row = conn.execute(
                    """SELECT * FROM submissions
                       WHERE assignment_id = ? AND student_id = ?""",
                    (assignment_id, actor.id)
                ).fetchone()
                submission = row_to_submission(row) if row else None

        return AssignmentView(assignment=assignment, submission=submission)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    @staticmethod
    def _check_lesson_link(conn: sqlite3.Connection, classroom_id: str, lesson_id: str):
        lesson = require_lesson(conn, lesson_id)
        if lesson.classroom_id != classroom_id:
            raise InvalidArgumentError("Linked lesson belongs to a different classroom")
