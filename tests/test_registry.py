"""
ClassroomRegistry tests: classroom lifecycle, PIN allocation, enrollment.
"""

import itertools
import threading

import pytest

from lessonroom.classroom import ClassroomEngine
from lessonroom.errors import (
    ForbiddenError,
    InvalidArgumentError,
    NotFoundError,
    ResourceExhaustedError,
)
from lessonroom.schemas import EnrollmentStatus
from lessonroom.utils import EngineConfig


class TestCreateClassroom:

    def test_create(self, engine, teacher):
        room = engine.registry.create_classroom(teacher, "  Math101 ", "Algebra")
        assert room.name == "Math101"
        assert room.teacher_id == teacher.id
        assert len(room.pin) == 6 and room.pin.isdigit()
        assert room.student_ids == []
        assert engine.registry.find_by_pin(room.pin).id == room.id

    def test_student_cannot_create(self, engine, alice):
        with pytest.raises(ForbiddenError):
            engine.registry.create_classroom(alice, "Sneaky")

    def test_admin_can_create(self, engine, admin):
        room = engine.registry.create_classroom(admin, "Staff room")
        assert room.teacher_id == admin.id

    def test_name_required(self, engine, teacher):
        with pytest.raises(InvalidArgumentError):
            engine.registry.create_classroom(teacher, "   ")

    def test_name_too_long(self, engine, teacher):
        with pytest.raises(InvalidArgumentError):
            engine.registry.create_classroom(teacher, "x" * 101)

    def test_pins_unique(self, engine, teacher):
        rooms = [engine.registry.create_classroom(teacher, f"Room {i}") for i in range(25)]
        pins = [room.pin for room in rooms]
        assert len(set(pins)) == len(pins)
        assert engine.registry.active_pins() == set(pins)


class TestPinAllocation:

    def _engine(self, clock, pins, attempts=10):
        source = iter(pins)
        return ClassroomEngine(
            EngineConfig(pin_max_attempts=attempts),
            clock=clock,
            pin_generator=lambda: next(source),
        )

    def test_retries_on_collision(self, clock, teacher):
        engine = self._engine(clock, ["111111", "111111", "111111", "222222"])
        first = engine.registry.create_classroom(teacher, "A")
        second = engine.registry.create_classroom(teacher, "B")
        assert first.pin == "111111"
        assert second.pin == "222222"
        engine.close()

    def test_exhausted(self, clock, teacher):
        engine = self._engine(clock, itertools.repeat("424242"), attempts=3)
        engine.registry.create_classroom(teacher, "A")
        with pytest.raises(ResourceExhaustedError):
            engine.registry.create_classroom(teacher, "B")
        assert len(engine.registry.list_teacher_classrooms(teacher)) == 1
        engine.close()

    def test_pin_reusable_after_delete(self, clock, teacher):
        engine = self._engine(clock, itertools.repeat("555555"))
        first = engine.registry.create_classroom(teacher, "A")
        engine.registry.delete_classroom(teacher, first.id)
        second = engine.registry.create_classroom(teacher, "B")
        assert second.pin == "555555"
        engine.close()

    def test_concurrent_creates_single_pin_space(self, clock, teacher):
        engine = ClassroomEngine(clock=clock, pin_generator=lambda: "777777")
        barrier = threading.Barrier(2)
        created, failed = [], []

        def create(name):
            barrier.wait()
            try:
                created.append(engine.registry.create_classroom(teacher, name))
            except ResourceExhaustedError as e:
                failed.append(e)

        threads = [threading.Thread(target=create, args=(n,)) for n in ("A", "B")]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(created) == 1
        assert len(failed) == 1
        assert engine.registry.active_pins() == {"777777"}
        engine.close()

    def test_invalid_attempt_budget(self, engine):
        from lessonroom.classroom import ClassroomRegistry
        with pytest.raises(InvalidArgumentError):
            ClassroomRegistry(engine.db, pin_max_attempts=0)


class TestJoinByPin:

    def test_join(self, engine, classroom, alice):
        result = engine.registry.join_by_pin(alice, classroom.pin)
        assert result.status == EnrollmentStatus.JOINED
        assert result.classroom.student_ids == [alice.id]

    def test_join_twice_is_idempotent(self, engine, classroom, alice):
        engine.registry.join_by_pin(alice, classroom.pin)
        again = engine.registry.join_by_pin(alice, classroom.pin)
        assert again.already_enrolled
        assert again.classroom.student_ids.count(alice.id) == 1

    def test_join_order_kept(self, engine, classroom, alice, bob):
        engine.registry.join_by_pin(bob, classroom.pin)
        result = engine.registry.join_by_pin(alice, classroom.pin)
        assert result.classroom.student_ids == [bob.id, alice.id]

    def test_unknown_pin(self, engine, classroom, alice):
        unused = "000000" if classroom.pin != "000000" else "000001"
        with pytest.raises(NotFoundError):
            engine.registry.join_by_pin(alice, unused)

    def test_malformed_pin(self, engine, alice):
        with pytest.raises(InvalidArgumentError):
            engine.registry.join_by_pin(alice, "12ab")

    def test_pin_whitespace_ignored(self, engine, classroom, alice):
        result = engine.registry.join_by_pin(alice, f" {classroom.pin} ")
        assert result.status == EnrollmentStatus.JOINED

    def test_teacher_cannot_join(self, engine, classroom, other_teacher):
        with pytest.raises(ForbiddenError):
            engine.registry.join_by_pin(other_teacher, classroom.pin)


class TestClassroomAccess:

    def test_get_classroom(self, engine, enrolled, teacher, alice, admin, other_teacher):
        assert engine.registry.get_classroom(teacher, enrolled.id).id == enrolled.id
        assert engine.registry.get_classroom(alice, enrolled.id).id == enrolled.id
        assert engine.registry.get_classroom(admin, enrolled.id).id == enrolled.id
        with pytest.raises(ForbiddenError):
            engine.registry.get_classroom(other_teacher, enrolled.id)

    def test_get_missing(self, engine, teacher):
        with pytest.raises(NotFoundError):
            engine.registry.get_classroom(teacher, "nope")

    def test_lists(self, engine, teacher, other_teacher, alice):
        first = engine.registry.create_classroom(teacher, "First")
        second = engine.registry.create_classroom(teacher, "Second")
        engine.registry.create_classroom(other_teacher, "Elsewhere")
        engine.registry.join_by_pin(alice, first.pin)

        owned = engine.registry.list_teacher_classrooms(teacher)
        assert [room.name for room in owned] == ["Second", "First"]
        joined = engine.registry.list_student_classrooms(alice)
        assert [room.id for room in joined] == [first.id]
        with pytest.raises(ForbiddenError):
            engine.registry.list_student_classrooms(teacher)
        assert second.id in {room.id for room in owned}

    def test_rename(self, engine, classroom, teacher, alice):
        renamed = engine.registry.rename_classroom(teacher, classroom.id, "Math 102")
        assert renamed.name == "Math 102"
        assert renamed.description == "Algebra basics"
        assert renamed.pin == classroom.pin
        with pytest.raises(ForbiddenError):
            engine.registry.rename_classroom(alice, classroom.id, "Mine now")
        with pytest.raises(InvalidArgumentError):
            engine.registry.rename_classroom(teacher, classroom.id, "")


class TestUnenroll:

    def test_student_leaves(self, engine, enrolled, alice, bob):
        room = engine.registry.unenroll(alice, enrolled.id, alice.id)
        assert room.student_ids == [bob.id]

    def test_student_cannot_remove_others(self, engine, enrolled, alice, bob):
        with pytest.raises(ForbiddenError):
            engine.registry.unenroll(alice, enrolled.id, bob.id)

    def test_teacher_removes(self, engine, enrolled, teacher, alice):
        room = engine.registry.unenroll(teacher, enrolled.id, alice.id)
        assert not room.has_student(alice.id)

    def test_not_enrolled(self, engine, classroom, teacher):
        with pytest.raises(NotFoundError):
            engine.registry.unenroll(teacher, classroom.id, "ghost")


class TestDeleteClassroom:

    def test_delete_cascades(self, engine, enrolled, teacher, alice):
        lesson = engine.catalog.create_lesson(teacher, enrolled.id, "Intro", video_ref="v/intro.mp4")
        assignment = engine.catalog.create_assignment(teacher, enrolled.id, "HW1", "Solve", lesson_id=lesson.id)
        engine.submissions.submit(alice, assignment.id, content="42")
        engine.progress.report_progress(alice, lesson.id, 10, 100)

        engine.registry.delete_classroom(teacher, enrolled.id)

        with pytest.raises(NotFoundError):
            engine.registry.get_classroom(teacher, enrolled.id)
        with engine.db.snapshot() as conn:
            for table in ("lessons", "assignments", "submissions", "video_progress", "classroom_students"):
                count = conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]
                assert count == 0, table
        assert engine.registry.find_by_pin(enrolled.pin) is None

    def test_only_owner_or_admin(self, engine, classroom, other_teacher, alice, admin):
        with pytest.raises(ForbiddenError):
            engine.registry.delete_classroom(other_teacher, classroom.id)
        with pytest.raises(ForbiddenError):
            engine.registry.delete_classroom(alice, classroom.id)
        engine.registry.delete_classroom(admin, classroom.id)
        assert engine.registry.active_pins() == set()

    def test_delete_missing(self, engine, teacher):
        with pytest.raises(NotFoundError):
            engine.registry.delete_classroom(teacher, "nope")
