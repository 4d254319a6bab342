from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from src.gatepass.gatepass.directory.memory_directory_repository import InMemoryDirectoryRepository
from src.gatepass.gatepass.directory.model import Employee, Student
from src.gatepass.gatepass.gate_passes.memory_gate_pass_repository import InMemoryGatePassRepository
from src.gatepass.gatepass.gate_passes.query import GatePassQueryService
from src.gatepass.gatepass.gate_passes.service import GatePassService


class FakeClock:
    """Returns a fixed start time, one minute later on every call."""

    def __init__(self, start: datetime = datetime(2026, 2, 1, 8, 0, 0), step: timedelta = timedelta(minutes=1)):
        self.current = start
        self.step = step

    def __call__(self) -> datetime:
        value = self.current
        self.current = self.current + self.step
        return value


@pytest.fixture
def directory():
    return InMemoryDirectoryRepository(
        students=[
            Student(student_id=1, class_id=5, name="Aarav Sharma", admission_number="ADM-1001", phone="9876500001"),
            Student(student_id=2, class_id=5, name="Diya Patel", admission_number="ADM-1002"),
            Student(student_id=3, class_id=6, name="Kabir Singh", admission_number="ADM-2001"),
        ],
        employees=[
            Employee(employee_id=10, name="Meera Iyer", phone="9811100001", designation="Teacher"),
        ],
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def passes_repo(clock):
    return InMemoryGatePassRepository(clock=clock)


@pytest.fixture
def service(passes_repo, directory, clock):
    return GatePassService(passes_repo, directory, clock=clock)


@pytest.fixture
def query(passes_repo, directory):
    return GatePassQueryService(passes_repo, directory)
