"""
ProgressTracker - Track how far each student has watched each video lesson.

Reports may arrive out of order or from several playback sessions at
once, so the stored watched duration only ever grows:
- watched_duration_seconds = max(stored, incoming)
- total_duration_seconds and last_watched_at take the incoming values
- is_completed is recomputed from the merged duration and never reverts
"""

import logging
import math
from typing import Optional

from lessonroom.errors import ForbiddenError, InvalidArgumentError, NotFoundError
from lessonroom.schemas import (
    DEFAULT_COMPLETION_THRESHOLD,
    Principal,
    Role,
    VideoProgress,
)

from .access import is_member, require_owner
from .database import (
    ClassroomDatabase,
    load_lesson,
    require_classroom,
    require_lesson,
    row_to_progress,
    to_text,
)

logger = logging.getLogger(__name__)


def reaches_threshold(watched_seconds: float, total_seconds: float, threshold: float) -> bool:
    """True once watched/total is at or above the completion threshold."""
    return watched_seconds / total_seconds >= threshold


def _check_duration(name: str, value, allow_zero: bool) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidArgumentError(f"{name} must be a number")
    if not math.isfinite(value):
        raise InvalidArgumentError(f"{name} must be finite")
    if value < 0 or (value == 0 and not allow_zero):
        bound = "zero or more" if allow_zero else "greater than zero"
        raise InvalidArgumentError(f"{name} must be {bound}")
    return float(value)


class ProgressTracker:
    """
    Record and read video watch progress per (student, lesson).
    """

    def __init__(
        self,
        db: ClassroomDatabase,
        completion_threshold: float = DEFAULT_COMPLETION_THRESHOLD,
    ):
        """
        Initialize progress tracker.

        Args:
            db: Shared classroom database
            completion_threshold: Watched/total ratio that counts as completed
        """
        if not 0 < completion_threshold <= 1:
            raise InvalidArgumentError("completion_threshold must be in (0, 1]")
        self.db = db
        self.completion_threshold = completion_threshold

    # -------------------------------------------------------------------------
    # Reporting
    # -------------------------------------------------------------------------

    def report_progress(
        self,
        actor: Principal,
        lesson_id: str,
        watched_duration_seconds: float,
        total_duration_seconds: float,
    ) -> VideoProgress:
        """
        Merge a watch-progress report from the acting student.

        Raises:
            InvalidArgumentError: Negative or non-finite watched duration,
                or a total duration that is not positive
            NotFoundError: Lesson missing, or actor not enrolled in its classroom
        """
        watched = _check_duration("watched_duration_seconds", watched_duration_seconds, allow_zero=True)
        total = _check_duration("total_duration_seconds", total_duration_seconds, allow_zero=False)

        with self.db.transaction() as conn:
            lesson = load_lesson(conn, lesson_id)
            if lesson is None:
                raise NotFoundError("Lesson not found")
            classroom = require_classroom(conn, lesson.classroom_id)
            if not is_member(actor, classroom):
                raise NotFoundError("Lesson not found in any classroom you are enrolled in")

            row = conn.execute(
                """SELECT * FROM video_progress
                   WHERE student_id = ? AND lesson_id = ?""",
                (actor.id, lesson_id)
            ).fetchone()
            previous = row_to_progress(row) if row else None

            merged = watched
            completed = False
            if previous is not None:
                merged = max(previous.watched_duration_seconds, watched)
                completed = previous.is_completed
            completed = completed or reaches_threshold(merged, total, self.completion_threshold)
            now = to_text(self.db.now())

            conn.execute(
                """INSERT INTO video_progress
                   (student_id, lesson_id, classroom_id, watched_seconds,
                    total_seconds, is_completed, last_watched_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?)
                   ON CONFLICT(student_id, lesson_id) DO UPDATE SET
                     watched_seconds = excluded.watched_seconds,
                     total_seconds = excluded.total_seconds,
                     is_completed = excluded.is_completed,
                     last_watched_at = excluded.last_watched_at""",
                (actor.id, lesson_id, classroom.id, merged, total, int(completed), now)
            )
            progress = self._load(conn, actor.id, lesson_id)

        logger.debug(
            f"Progress {actor.id}/{lesson_id}: reported {watched:.1f}s, "
            f"stored {progress.watched_duration_seconds:.1f}/{total:.1f}s"
        )
        if progress.is_completed and not (previous and previous.is_completed):
            logger.info(f"Student {actor.id} completed lesson {lesson_id}")
        return progress

    # -------------------------------------------------------------------------
    # Reading
    # -------------------------------------------------------------------------

    def get_progress(
        self,
        actor: Principal,
        lesson_id: str,
        student_id: Optional[str] = None,
    ) -> Optional[VideoProgress]:
        """
        Progress of one student on one lesson, or None if not started.

        Students read their own; the classroom teacher names the student.
        """
        with self.db.snapshot() as conn:
            lesson = require_lesson(conn, lesson_id)
            classroom = require_classroom(conn, lesson.classroom_id)
            if actor.role == Role.STUDENT:
                if student_id not in (None, actor.id):
                    raise ForbiddenError("Students can only view their own progress")
                if not is_member(actor, classroom):
                    raise NotFoundError("Lesson not found in any classroom you are enrolled in")
                student_id = actor.id
            else:
                require_owner(actor, classroom, "view student progress")
                if not student_id:
                    raise InvalidArgumentError("student_id is required")
            return self._load(conn, student_id, lesson_id)

    def list_progress(
        self,
        actor: Principal,
        classroom_id: str,
        student_id: Optional[str] = None,
    ) -> list[VideoProgress]:
        """All progress records in a classroom, optionally for one student."""
        with self.db.snapshot() as conn:
            classroom = require_classroom(conn, classroom_id)
            if actor.role == Role.STUDENT:
                if student_id not in (None, actor.id) or not is_member(actor, classroom):
                    raise ForbiddenError("Students can only view their own progress")
                student_id = actor.id
            else:
                require_owner(actor, classroom, "view student progress")

            query = "SELECT * FROM video_progress WHERE classroom_id = ?"
            params: tuple = (classroom_id,)
            if student_id:
                query += " AND student_id = ?"
                params += (student_id,)
            cursor = conn.execute(query + " ORDER BY student_id, last_watched_at", params)
            return [row_to_progress(row) for row in cursor.fetchall()]

    @staticmethod
    def _load(conn, student_id: str, lesson_id: str) -> Optional[VideoProgress]:
        row = conn.execute(
            """SELECT * FROM video_progress
               WHERE student_id = ? AND lesson_id = ?""",
            (student_id, lesson_id)
        ).fetchone()
        return row_to_progress(row) if row else None
