#!/usr/bin/env python3
"""
export_statistics.py - Export a classroom's video statistics as CSV.

Reads the classroom database named by the engine configuration and writes
one row per enrolled student (completed videos, completion percentage,
average progress). Runs with admin rights.

Usage:
  python scripts/export_statistics.py CLASSROOM_ID
  python scripts/export_statistics.py CLASSROOM_ID --config lessonroom.yaml --output stats.csv
  python scripts/export_statistics.py CLASSROOM_ID --lessons
"""

import argparse
import logging
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

import pandas as pd

from lessonroom import ClassroomEngine, LessonRoomError, load_config
from lessonroom.schemas import ClassroomStatistics, Principal, Role

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

EXPORT_PRINCIPAL = Principal(id="statistics-export", role=Role.ADMIN, display_name="Statistics export")


def lesson_frame(stats: ClassroomStatistics) -> pd.DataFrame:
    """One row per (student, lesson) with that lesson's progress."""
    rows = []
    for student in stats.students:
        for row in student.lesson_progress:
            rows.append({
                "student_id": student.student_id,
                "lesson_id": row.lesson.lesson_id,
                "lesson_title": row.lesson.title,
                "has_video": row.lesson.has_video,
                "progress_percentage": row.progress_percentage,
                "is_completed": row.is_completed,
                "last_watched_at": row.last_watched_at,
            })
    return pd.DataFrame(rows)


def main():
    parser = argparse.ArgumentParser(description="Export classroom statistics as CSV")
    parser.add_argument("classroom_id", help="Classroom to export")
    parser.add_argument("--config", type=Path, default=None,
                        help="YAML engine configuration")
    parser.add_argument("--database", type=str, default=None,
                        help="Database path (overrides configuration)")
    parser.add_argument("--output", type=Path, default=None,
                        help="CSV file (default: stdout)")
    parser.add_argument("--lessons", action="store_true",
                        help="Export per-lesson rows instead of per-student totals")
    args = parser.parse_args()

    overrides = {"database_path": args.database} if args.database else {}
    config = load_config(args.config, **overrides)
    logging.getLogger().setLevel(config.log_level)

    with ClassroomEngine(config) as engine:
        try:
            stats = engine.statistics.classroom_statistics(EXPORT_PRINCIPAL, args.classroom_id)
        except LessonRoomError as e:
            logger.error(f"Export failed ({e.kind}): {e.message}")
            sys.exit(1)

    df = lesson_frame(stats) if args.lessons else stats.to_frame()
    logger.info(
        f"{stats.classroom_name}: {stats.overall.total_students} students, "
        f"{stats.overall.total_videos} videos, average completion {stats.overall.average_completion}%"
    )

    if args.output:
        args.output.parent.mkdir(parents=True, exist_ok=True)
        df.to_csv(args.output, index=False)
        logger.info(f"Wrote {len(df)} rows to {args.output}")
    else:
        df.to_csv(sys.stdout, index=False)


if __name__ == "__main__":
    main()
