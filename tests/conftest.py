"""
Shared fixtures for LessonRoom tests.
"""

import threading
from datetime import datetime, timedelta, timezone

import pytest

from lessonroom.classroom import ClassroomEngine
from lessonroom.schemas import Principal, Role


class FakeClock:
    """Deterministic clock; every reading is one second after the last."""

    def __init__(self, start: datetime = datetime(2026, 1, 5, 9, 0, tzinfo=timezone.utc)):
        self.current = start
        self._lock = threading.Lock()

    def __call__(self) -> datetime:
        with self._lock:
            self.current += timedelta(seconds=1)
            return self.current


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def engine(clock):
    engine = ClassroomEngine(clock=clock)
    yield engine
    engine.close()


@pytest.fixture
def teacher():
    return Principal(id="t-ada", role=Role.TEACHER, display_name="Ada")


@pytest.fixture
def other_teacher():
    return Principal(id="t-grace", role=Role.TEACHER, display_name="Grace")


@pytest.fixture
def admin():
    return Principal(id="root", role=Role.ADMIN)


@pytest.fixture
def alice():
    return Principal(id="s-alice", role=Role.STUDENT, display_name="Alice")


@pytest.fixture
def bob():
    return Principal(id="s-bob", role=Role.STUDENT, display_name="Bob")


@pytest.fixture
def classroom(engine, teacher):
    return engine.registry.create_classroom(teacher, "Math101", "Algebra basics")


@pytest.fixture
def enrolled(engine, classroom, alice, bob):
    """Classroom with alice and bob joined."""
    engine.registry.join_by_pin(alice, classroom.pin)
    engine.registry.join_by_pin(bob, classroom.pin)
    return engine.registry.get_classroom(alice, classroom.id)
