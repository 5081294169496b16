"""
ClassroomDatabase - The single authoritative store behind every component.

Holds one SQLite connection (a file path or ":memory:") behind a re-entrant
lock. Writers go through transaction(), which is the single-writer section:
BEGIN IMMEDIATE ... COMMIT, rolled back on any exception, so each
operation either fully applies or leaves nothing behind.

Also provides the row -> schema conversions shared by the components.
"""

import logging
import sqlite3
import threading
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Iterator, Optional

from lessonroom.errors import NotFoundError
from lessonroom.schemas import (
    Assignment,
    Classroom,
    Lesson,
    Submission,
    VideoProgress,
)

logger = logging.getLogger(__name__)

SCHEMA_VERSION = "1"
MEMORY_DB = ":memory:"

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return uuid.uuid4().hex


# -----------------------------------------------------------------------------
# SQLite Schema
# -----------------------------------------------------------------------------

SCHEMA = """
-- Classrooms; pin is the unique join index
CREATE TABLE IF NOT EXISTS classrooms (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    description TEXT,
    teacher_id TEXT NOT NULL,
    pin TEXT NOT NULL,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

-- Enrollment
CREATE TABLE IF NOT EXISTS classroom_students (
    classroom_id TEXT NOT NULL REFERENCES classrooms(id) ON DELETE CASCADE,
    student_id TEXT NOT NULL,
    joined_at TEXT NOT NULL,
    PRIMARY KEY (classroom_id, student_id)
);

-- Lessons
CREATE TABLE IF NOT EXISTS lessons (
    id TEXT PRIMARY KEY,
    classroom_id TEXT NOT NULL REFERENCES classrooms(id) ON DELETE CASCADE,
    title TEXT NOT NULL,
    description TEXT,
    video_ref TEXT,
    notes_ref TEXT,
    position INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

-- Assignments; lesson_id is a weak link
CREATE TABLE IF NOT EXISTS assignments (
    id TEXT PRIMARY KEY,
    classroom_id TEXT NOT NULL REFERENCES classrooms(id) ON DELETE CASCADE,
    lesson_id TEXT REFERENCES lessons(id) ON DELETE SET NULL,
    title TEXT NOT NULL,
    description TEXT NOT NULL,
    document_ref TEXT,
    due_date TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

-- Submissions, one per (assignment, student)
CREATE TABLE IF NOT EXISTS submissions (
    id TEXT PRIMARY KEY,
    assignment_id TEXT NOT NULL REFERENCES assignments(id) ON DELETE CASCADE,
    student_id TEXT NOT NULL,
    content TEXT,
    document_ref TEXT,
    submitted_at TEXT NOT NULL,
    grade INTEGER CHECK (grade IS NULL OR (grade >= 0 AND grade <= 100)),
    feedback TEXT,
    graded_at TEXT,
    version INTEGER NOT NULL DEFAULT 1
);

-- Video watch progress, one per (student, lesson)
CREATE TABLE IF NOT EXISTS video_progress (
    student_id TEXT NOT NULL,
    lesson_id TEXT NOT NULL REFERENCES lessons(id) ON DELETE CASCADE,
    classroom_id TEXT NOT NULL REFERENCES classrooms(id) ON DELETE CASCADE,
    watched_seconds REAL NOT NULL DEFAULT 0,
    total_seconds REAL NOT NULL,
    is_completed INTEGER NOT NULL DEFAULT 0,
    last_watched_at TEXT NOT NULL,
    PRIMARY KEY (student_id, lesson_id)
);

-- Indexes
CREATE UNIQUE INDEX IF NOT EXISTS idx_classrooms_pin ON classrooms(pin);
CREATE INDEX IF NOT EXISTS idx_classrooms_teacher ON classrooms(teacher_id);
CREATE INDEX IF NOT EXISTS idx_students_student ON classroom_students(student_id);
CREATE INDEX IF NOT EXISTS idx_lessons_classroom ON lessons(classroom_id, position);
CREATE INDEX IF NOT EXISTS idx_assignments_classroom ON assignments(classroom_id);
CREATE INDEX IF NOT EXISTS idx_assignments_lesson ON assignments(lesson_id);
CREATE UNIQUE INDEX IF NOT EXISTS idx_submissions_pair
ON submissions(assignment_id, student_id);
CREATE INDEX IF NOT EXISTS idx_progress_classroom ON video_progress(classroom_id, student_id);

-- Metadata table
CREATE TABLE IF NOT EXISTS metadata (
    key TEXT PRIMARY KEY,
    value TEXT
);
"""


# -----------------------------------------------------------------------------
# Value conversion
# -----------------------------------------------------------------------------

def to_text(value: Optional[datetime]) -> Optional[str]:
    """ISO-8601 text; aware values are normalized to UTC so text order is time order."""
    if value is None:
        return None
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.isoformat()


def from_text(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


class ClassroomDatabase:
    """
    SQLite-backed store shared by the classroom components.

    Thread-safe: one connection, one re-entrant lock. Nested transaction()
    calls join the outer transaction.
    """

    def __init__(self, db_path: str | Path = MEMORY_DB, clock: Optional[Clock] = None):
        """
        Open (and if needed create) the database.

        Args:
            db_path: Path to the database file, or ":memory:"
            clock: Returns the current time (default: UTC now)
        """
        self.db_path = str(db_path)
        self.clock = clock or utc_now
        if self.db_path != MEMORY_DB:
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

        self._lock = threading.RLock()
        self._depth = 0
        self._conn = sqlite3.connect(
            self.db_path,
            check_same_thread=False,
            isolation_level=None,
        )
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA foreign_keys = ON")
        self._ensure_schema()
        logger.debug(f"Opened classroom database at {self.db_path}")

    def _ensure_schema(self):
        """Create tables and indexes if they don't exist."""
        with self._lock:
            self._conn.executescript(SCHEMA)
            self._conn.execute(
                "INSERT OR IGNORE INTO metadata (key, value) VALUES ('schema_version', ?)",
                (SCHEMA_VERSION,)
            )

    def close(self):
        with self._lock:
            self._conn.close()

    def now(self) -> datetime:
        return self.clock()

    # -------------------------------------------------------------------------
    # Transactions
    # -------------------------------------------------------------------------

    @contextmanager
    def _scope(self, begin: str) -> Iterator[sqlite3.Connection]:
        with self._lock:
            if self._depth:
                yield self._conn
                return

            self._conn.execute(begin)
            self._depth += 1
            try:
                yield self._conn
            except BaseException:
                self._conn.execute("ROLLBACK")
                raise
            else:
                self._conn.execute("COMMIT")
            finally:
                self._depth -= 1

    def transaction(self):
        """Single-writer, all-or-nothing write scope."""
        return self._scope("BEGIN IMMEDIATE")

    def snapshot(self):
        """Consistent read scope."""
        return self._scope("BEGIN")

    # -------------------------------------------------------------------------
    # Metadata
    # -------------------------------------------------------------------------

    def get_metadata(self, key: str) -> Optional[str]:
        """Get metadata value by key."""
        with self.snapshot() as conn:
            row = conn.execute(
                "SELECT value FROM metadata WHERE key = ?", (key,)
            ).fetchone()
            return row["value"] if row else None


# -----------------------------------------------------------------------------
# Loaders shared by the components (call inside a transaction or snapshot)
# -----------------------------------------------------------------------------

def load_student_ids(conn: sqlite3.Connection, classroom_id: str) -> list[str]:
    cursor = conn.execute(
        """SELECT student_id FROM classroom_students
           WHERE classroom_id = ?
           ORDER BY joined_at, rowid""",
        (classroom_id,)
    )
    return [row["student_id"] for row in cursor.fetchall()]


def row_to_classroom(conn: sqlite3.Connection, row: sqlite3.Row) -> Classroom:
    return Classroom(
        id=row["id"],
        name=row["name"],
        description=row["description"],
        teacher_id=row["teacher_id"],
        pin=row["pin"],
        student_ids=load_student_ids(conn, row["id"]),
        created_at=from_text(row["created_at"]),
        updated_at=from_text(row["updated_at"]),
    )


def load_classroom(conn: sqlite3.Connection, classroom_id: str) -> Optional[Classroom]:
    row = conn.execute(
        "SELECT * FROM classrooms WHERE id = ?", (classroom_id,)
    ).fetchone()
    return row_to_classroom(conn, row) if row else None


def row_to_lesson(row: sqlite3.Row) -> Lesson:
    return Lesson(
        id=row["id"],
        classroom_id=row["classroom_id"],
        title=row["title"],
        description=row["description"],
        video_ref=row["video_ref"],
        notes_ref=row["notes_ref"],
        order=row["position"],
        created_at=from_text(row["created_at"]),
        updated_at=from_text(row["updated_at"]),
    )


def load_lesson(conn: sqlite3.Connection, lesson_id: str) -> Optional[Lesson]:
    row = conn.execute(
        "SELECT * FROM lessons WHERE id = ?", (lesson_id,)
    ).fetchone()
    return row_to_lesson(row) if row else None


def load_lessons(conn: sqlite3.Connection, classroom_id: str) -> list[Lesson]:
    """Lessons of a classroom ordered by (order, created_at)."""
    cursor = conn.execute(
        """SELECT * FROM lessons
           WHERE classroom_id = ?
           ORDER BY position, created_at, rowid""",
        (classroom_id,)
    )
    return [row_to_lesson(row) for row in cursor.fetchall()]


def row_to_assignment(row: sqlite3.Row) -> Assignment:
    return Assignment(
        id=row["id"],
        classroom_id=row["classroom_id"],
        lesson_id=row["lesson_id"],
        title=row["title"],
        description=row["description"],
        document_ref=row["document_ref"],
        due_date=from_text(row["due_date"]),
        created_at=from_text(row["created_at"]),
        updated_at=from_text(row["updated_at"]),
    )


def load_assignment(conn: sqlite3.Connection, assignment_id: str) -> Optional[Assignment]:
    row = conn.execute(
        "SELECT * FROM assignments WHERE id = ?", (assignment_id,)
    ).fetchone()
    return row_to_assignment(row) if row else None


def row_to_submission(row: sqlite3.Row) -> Submission:
    return Submission(
        id=row["id"],
        assignment_id=row["assignment_id"],
        student_id=row["student_id"],
        content=row["content"],
        document_ref=row["document_ref"],
        submitted_at=from_text(row["submitted_at"]),
        grade=row["grade"],
        feedback=row["feedback"],
        graded_at=from_text(row["graded_at"]),
        version=row["version"],
    )


def row_to_progress(row: sqlite3.Row) -> VideoProgress:
    return VideoProgress(
        student_id=row["student_id"],
        lesson_id=row["lesson_id"],
        classroom_id=row["classroom_id"],
        watched_duration_seconds=row["watched_seconds"],
        total_duration_seconds=row["total_seconds"],
        is_completed=bool(row["is_completed"]),
        last_watched_at=from_text(row["last_watched_at"]),
    )


# -----------------------------------------------------------------------------
# Lookups that fail with NotFoundError
# -----------------------------------------------------------------------------

def require_classroom(conn: sqlite3.Connection, classroom_id: str) -> Classroom:
    classroom = load_classroom(conn, classroom_id)
    if classroom is None:
        raise NotFoundError("Classroom not found")
    return classroom


def require_lesson(conn: sqlite3.Connection, lesson_id: str) -> Lesson:
    lesson = load_lesson(conn, lesson_id)
    if lesson is None:
        raise NotFoundError("Lesson not found")
    return lesson


def require_assignment(conn: sqlite3.Connection, assignment_id: str) -> Assignment:
    assignment = load_assignment(conn, assignment_id)
    if assignment is None:
        raise NotFoundError("Assignment not found")
    return assignment
