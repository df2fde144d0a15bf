from __future__ import annotations

import pytest

from class_register.backup.sink import DirectoryBackupSink
from class_register.container import build_container
from class_register.storage.local_adapter import LocalAdapter

# 2025-03-03 08:00:00 UTC
START_MS = 1740988800000


class TickingClock:
    """Deterministic clock: every call advances by ``step`` milliseconds."""

    def __init__(self, start: int = START_MS, step: int = 1000):
        self.now = start
        self.step = step

    def __call__(self) -> int:
        self.now += self.step
        return self.now

    def advance_days(self, days: int) -> None:
        self.now += days * 24 * 60 * 60 * 1000


@pytest.fixture
def clock():
    return TickingClock()


@pytest.fixture
def adapter():
    return LocalAdapter()


@pytest.fixture
def sink(tmp_path):
    return DirectoryBackupSink(tmp_path / "backups")


@pytest.fixture
def container(adapter, sink, clock):
    return build_container(adapter=adapter, sink=sink, clock=clock)


@pytest.fixture
def add_student(container):
    def _add(number: int, name: str, class_name: str = "6-1", grade: int = 6, active: bool = True):
        return container.student_service.add_student(
            {"number": number, "name": name, "class_name": class_name, "grade": grade, "active": active}
        )

    return _add
