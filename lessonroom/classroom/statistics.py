"""
StatisticsAggregator - Roll watch progress up into completion statistics.

Read-only. Each call takes one snapshot of the classroom's lessons,
students and progress records, then computes everything from it in
memory with the pure functions below.

Only lessons with a video count:
- total_videos: lessons with a video
- completed_videos: video lessons the student has completed
- completion_percentage: completed / total, 0 when there are no videos
- average_progress: mean per-lesson percentage, unstarted lessons count 0
- average_completion: mean completion_percentage over enrolled students
"""

from datetime import datetime
from typing import Iterable, Optional

from lessonroom.errors import ForbiddenError, NotFoundError
from lessonroom.schemas import (
    Classroom,
    ClassroomStatistics,
    Lesson,
    LessonInfo,
    LessonProgressRow,
    OverallStatistics,
    Principal,
    Role,
    StudentStatistics,
    VideoProgress,
    round_half_up,
)

from .access import require_owner
from .database import (
    ClassroomDatabase,
    load_lessons,
    require_classroom,
    row_to_progress,
)


def lesson_info(lesson: Lesson) -> LessonInfo:
    return LessonInfo(
        lesson_id=lesson.id,
        title=lesson.title,
        order=lesson.order,
        has_video=lesson.has_video,
        has_notes=lesson.has_notes,
    )


def _percent(part: float, whole: float) -> int:
    if whole <= 0:
        return 0
    return max(0, min(100, round_half_up(100 * part / whole)))


def compute_student_statistics(
    student_id: str,
    lessons: list[Lesson],
    progress_by_lesson: dict[str, VideoProgress],
) -> StudentStatistics:
    """
    Statistics for one student.

    Args:
        student_id: Student being summarized
        lessons: All lessons of the classroom, in display order
        progress_by_lesson: The student's progress records keyed by lesson id
    """
    rows = []
    completed = 0
    percent_sum = 0
    video_lessons = 0

    for lesson in lessons:
        progress = progress_by_lesson.get(lesson.id)
        if progress is None:
            row = LessonProgressRow(lesson=lesson_info(lesson))
        else:
            row = LessonProgressRow(
                lesson=lesson_info(lesson),
                watched_duration_seconds=progress.watched_duration_seconds,
                total_duration_seconds=progress.total_duration_seconds,
                progress_percentage=progress.progress_percentage,
                is_completed=progress.is_completed,
                last_watched_at=progress.last_watched_at,
            )
        rows.append(row)

        if lesson.has_video:
            video_lessons += 1
            percent_sum += row.progress_percentage
            if row.is_completed:
                completed += 1

    return StudentStatistics(
        student_id=student_id,
        completed_videos=completed,
        total_videos=video_lessons,
        completion_percentage=_percent(completed, video_lessons),
        average_progress=round_half_up(percent_sum / video_lessons) if video_lessons else 0,
        lesson_progress=rows,
    )


def compute_classroom_statistics(
    classroom: Classroom,
    lessons: list[Lesson],
    progress_records: Iterable[VideoProgress],
    generated_at: datetime,
) -> ClassroomStatistics:
    """Statistics for every enrolled student plus the classroom overview."""
    by_student: dict[str, dict[str, VideoProgress]] = {}
    for progress in progress_records:
        by_student.setdefault(progress.student_id, {})[progress.lesson_id] = progress

    students = [
        compute_student_statistics(student_id, lessons, by_student.get(student_id, {}))
        for student_id in classroom.student_ids
    ]

    average_completion = 0
    if students:
        total = sum(s.completion_percentage for s in students)
        average_completion = round_half_up(total / len(students))

    return ClassroomStatistics(
        classroom_id=classroom.id,
        classroom_name=classroom.name,
        overall=OverallStatistics(
            total_students=len(students),
            total_lessons=len(lessons),
            total_videos=sum(1 for lesson in lessons if lesson.has_video),
            average_completion=average_completion,
        ),
        students=students,
        lessons=[lesson_info(lesson) for lesson in lessons],
        generated_at=generated_at,
    )


class StatisticsAggregator:
    """
    Compute per-student and per-classroom statistics on demand.

    Holds no state of its own; results may trail concurrent writes by
    whatever committed after the snapshot was taken.
    """

    def __init__(self, db: ClassroomDatabase):
        self.db = db

    def _snapshot(self, classroom_id: str, student_id: Optional[str] = None):
        with self.db.snapshot() as conn:
            classroom = require_classroom(conn, classroom_id)
            lessons = load_lessons(conn, classroom_id)
            query = "SELECT * FROM video_progress WHERE classroom_id = ?"
            params: tuple = (classroom_id,)
            if student_id is not None:
                query += " AND student_id = ?"
                params += (student_id,)
            progress = [row_to_progress(row) for row in conn.execute(query, params)]
        return classroom, lessons, progress

    def classroom_statistics(self, actor: Principal, classroom_id: str) -> ClassroomStatistics:
        """Statistics for the whole classroom (teacher or admin)."""
        classroom, lessons, progress = self._snapshot(classroom_id)
        require_owner(actor, classroom, "view statistics")
        return compute_classroom_statistics(classroom, lessons, progress, self.db.now())

    def student_statistics(
        self,
        actor: Principal,
        classroom_id: str,
        student_id: str,
    ) -> StudentStatistics:
        """Statistics for one enrolled student (their teacher, an admin, or themself)."""
        classroom, lessons, progress = self._snapshot(classroom_id, student_id)
        if actor.role == Role.STUDENT:
            if actor.id != student_id:
                raise ForbiddenError("Students can only view their own statistics")
        else:
            require_owner(actor, classroom, "view student statistics")
        if not classroom.has_student(student_id):
            raise NotFoundError("Student not found in this classroom")

        return compute_student_statistics(
            student_id, lessons, {p.lesson_id: p for p in progress}
        )
