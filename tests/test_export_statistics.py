"""
Tests for scripts/export_statistics.py.
"""

import importlib.util
import sys
from pathlib import Path

import pandas as pd

from lessonroom import ClassroomEngine
from lessonroom.schemas import Principal, Role
from lessonroom.utils import EngineConfig

SCRIPT = Path(__file__).parent.parent / "scripts" / "export_statistics.py"


def _load_script():
    spec = importlib.util.spec_from_file_location("export_statistics", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def _seed(db_path: Path) -> str:
    teacher = Principal(id="t1", role=Role.TEACHER)
    alice = Principal(id="s-alice", role=Role.STUDENT)
    with ClassroomEngine(EngineConfig(database_path=str(db_path))) as engine:
        room = engine.registry.create_classroom(teacher, "Math101")
        engine.registry.join_by_pin(alice, room.pin)
        first = engine.catalog.create_lesson(teacher, room.id, "L1", video_ref="v1.mp4")
        second = engine.catalog.create_lesson(teacher, room.id, "L2", video_ref="v2.mp4")
        engine.progress.report_progress(alice, first.id, 100, 100)
        engine.progress.report_progress(alice, second.id, 40, 100)
    return room.id


class TestExportStatistics:

    def test_student_csv(self, tmp_path, monkeypatch):
        db_path = tmp_path / "classroom.db"
        classroom_id = _seed(db_path)
        output = tmp_path / "out" / "stats.csv"
        monkeypatch.setattr(sys, "argv", [
            "export_statistics.py", classroom_id,
            "--database", str(db_path), "--output", str(output),
        ])
        _load_script().main()

        df = pd.read_csv(output, dtype={"student_id": str})
        assert list(df["student_id"]) == ["s-alice"]
        assert int(df.loc[0, "completion_percentage"]) == 50
        assert int(df.loc[0, "average_progress"]) == 70

    def test_lesson_rows(self, tmp_path, monkeypatch):
        db_path = tmp_path / "classroom.db"
        classroom_id = _seed(db_path)
        output = tmp_path / "lessons.csv"
        monkeypatch.setattr(sys, "argv", [
            "export_statistics.py", classroom_id, "--lessons",
            "--database", str(db_path), "--output", str(output),
        ])
        _load_script().main()

        df = pd.read_csv(output)
        assert list(df["lesson_title"]) == ["L1", "L2"]
        assert list(df["progress_percentage"]) == [100, 40]
