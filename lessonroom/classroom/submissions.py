"""
SubmissionLedger - Student submissions and their grading.

One submission per (assignment, student). Content and document references
are stored exactly as sent. Submitting again updates the record in place;
a field left out (or blank) keeps its stored value, and any grade is always
discarded, even when the new content is identical. Each resubmission bumps
`version`; grade() can pin the version it reviewed and fails with
ConflictError if a resubmission landed in between.
"""

import logging
import sqlite3
from typing import Optional

from lessonroom.errors import (
    ConflictError,
    ForbiddenError,
    InvalidArgumentError,
    NotFoundError,
)
from lessonroom.schemas import (
    GRADE_MAX,
    GRADE_MIN,
    Principal,
    Role,
    Submission,
    SubmissionStatus,
)

from .access import is_member, require_owner
from .database import (
    ClassroomDatabase,
    new_id,
    require_assignment,
    require_classroom,
    row_to_submission,
    to_text,
)

logger = logging.getLogger(__name__)


def _given(text: Optional[str]) -> Optional[str]:
    """The text as received, or None when it is missing or blank."""
    if text is None or not text.strip():
        return None
    return text


class SubmissionLedger:
    """
    Submit, resubmit, grade and list assignment submissions.
    """

    def __init__(self, db: ClassroomDatabase):
        self.db = db

    # -------------------------------------------------------------------------
    # Student side
    # -------------------------------------------------------------------------

    def submit(
        self,
        actor: Principal,
        assignment_id: str,
        content: Optional[str] = None,
        document_ref: Optional[str] = None,
    ) -> Submission:
        """
        Submit (or resubmit) work for an assignment.

        Args:
            actor: Enrolled student
            assignment_id: Target assignment
            content: Typed answer, stored verbatim
            document_ref: Blob reference of an uploaded document, stored verbatim

        On resubmission a missing or blank field keeps its stored value.

        Returns:
            The stored Submission, ungraded

        Raises:
            InvalidArgumentError: Neither content nor document given
            NotFoundError: Assignment does not exist
            ForbiddenError: Actor is not enrolled in the assignment's classroom
        """
        content = _given(content)
        document_ref = _given(document_ref)
        if content is None and document_ref is None:
            raise InvalidArgumentError("Submission needs content or a document")

        with self.db.transaction() as conn:
            assignment = require_assignment(conn, assignment_id)
            classroom = require_classroom(conn, assignment.classroom_id)
            if not is_member(actor, classroom):
                raise ForbiddenError("Only enrolled students can submit assignments")

            now = to_text(self.db.now())
            existing = self._find(conn, assignment_id, actor.id)
            if existing is None:
                submission_id = new_id()
                conn.execute(
                    """INSERT INTO submissions
                       (id, assignment_id, student_id, content, document_ref,
                        submitted_at, version)
                       VALUES (?, ?, ?, ?, ?, ?, 1)""",
                    (submission_id, assignment_id, actor.id, content, document_ref, now)
                )
            else:
                submission_id = existing.id
                conn.execute(
                    """UPDATE submissions SET
                         content = COALESCE(?, content),
                         document_ref = COALESCE(?, document_ref),
                         submitted_at = ?,
                         grade = NULL,
                         feedback = NULL,
                         graded_at = NULL,
                         version = version + 1
                       WHERE id = ?""",
                    (content, document_ref, now, submission_id)
                )
            submission = self._load(conn, submission_id)

        if existing is None:
            logger.info(f"Student {actor.id} submitted assignment {assignment_id}")
        else:
            logger.info(
                f"Student {actor.id} resubmitted assignment {assignment_id} "
                f"(version {submission.version}, previous grade cleared)"
            )
        return submission

    def get_submission(
        self,
        actor: Principal,
        assignment_id: str,
        student_id: Optional[str] = None,
    ) -> Optional[Submission]:
        """
        Get one student's submission, or None if they have not submitted.

        Students may only read their own; the teacher names the student.
        """
        student_id = self._resolve_student(actor, student_id)
        with self.db.snapshot() as conn:
            assignment = require_assignment(conn, assignment_id)
            classroom = require_classroom(conn, assignment.classroom_id)
            if actor.role == Role.STUDENT:
                if not is_member(actor, classroom):
                    raise ForbiddenError("Access denied: cannot view this submission")
            else:
                require_owner(actor, classroom, "view submissions")
            return self._find(conn, assignment_id, student_id)

    def submission_status(
        self,
        actor: Principal,
        assignment_id: str,
        student_id: Optional[str] = None,
    ) -> SubmissionStatus:
        submission = self.get_submission(actor, assignment_id, student_id)
        if submission is None:
            return SubmissionStatus.UNSUBMITTED
        return submission.status

    # -------------------------------------------------------------------------
    # Teacher side
    # -------------------------------------------------------------------------

    def grade(
        self,
        actor: Principal,
        submission_id: str,
        grade: int,
        feedback: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> Submission:
        """
        Grade a submission. Grading again overwrites the previous grade.

        Args:
            actor: Classroom teacher or admin
            submission_id: Submission to grade
            grade: Integer score 0-100
            feedback: Optional comment
            expected_version: Version the grader reviewed; if given and the
                submission has since been resubmitted, ConflictError is raised

        Raises:
            InvalidArgumentError: Grade not an integer in range
            NotFoundError: Submission does not exist
            ForbiddenError: Actor does not own the classroom
            ConflictError: Submission changed since expected_version
        """
        if isinstance(grade, bool) or not isinstance(grade, int):
            raise InvalidArgumentError("Grade must be a whole number")
        if not GRADE_MIN <= grade <= GRADE_MAX:
            raise InvalidArgumentError(f"Grade must be between {GRADE_MIN} and {GRADE_MAX}")

        with self.db.transaction() as conn:
            submission = self._load(conn, submission_id)
            assignment = require_assignment(conn, submission.assignment_id)
            classroom = require_classroom(conn, assignment.classroom_id)
            require_owner(actor, classroom, "grade submissions")

            if expected_version is not None and expected_version != submission.version:
                logger.warning(
                    f"Grade for submission {submission_id} rejected: "
                    f"expected version {expected_version}, found {submission.version}"
                )
                raise ConflictError(
                    "Submission was resubmitted since it was reviewed; reload and grade again"
                )

            conn.execute(
                """UPDATE submissions SET grade = ?, feedback = ?, graded_at = ?
                   WHERE id = ?""",
                (grade, _given(feedback), to_text(self.db.now()), submission_id)
            )
            graded = self._load(conn, submission_id)

        logger.info(f"Graded submission {submission_id}: {grade}")
        return graded

    def list_submissions(self, actor: Principal, assignment_id: str) -> list[Submission]:
        """All submissions to an assignment, oldest submission first."""
        with self.db.snapshot() as conn:
            assignment = require_assignment(conn, assignment_id)
            classroom = require_classroom(conn, assignment.classroom_id)
            require_owner(actor, classroom, "view submissions")
            cursor = conn.execute(
                """SELECT * FROM submissions
                   WHERE assignment_id = ?
                   ORDER BY submitted_at, rowid""",
                (assignment_id,)
            )
            return [row_to_submission(row) for row in cursor.fetchall()]

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    @staticmethod
    def _resolve_student(actor: Principal, student_id: Optional[str]) -> str:
        if actor.role == Role.STUDENT:
            if student_id is not None and student_id != actor.id:
                raise ForbiddenError("Students can only view their own submissions")
            return actor.id
        if not student_id:
            raise InvalidArgumentError("student_id is required")
        return student_id

    @staticmethod
    def _find(conn: sqlite3.Connection, assignment_id: str, student_id: str) -> Optional[Submission]:
        row = conn.execute(
            """SELECT * FROM submissions
               WHERE assignment_id = ? AND student_id = ?""",
            (assignment_id, student_id)
        ).fetchone()
        return row_to_submission(row) if row else None

    @staticmethod
    def _load(conn: sqlite3.Connection, submission_id: str) -> Submission:
        row = conn.execute(
            "SELECT * FROM submissions WHERE id = ?", (submission_id,)
        ).fetchone()
        if not row:
            raise NotFoundError("Submission not found")
        return row_to_submission(row)
