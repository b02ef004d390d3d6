# ruff: noqa: TC003
from __future__ import annotations

import uuid
from typing import Protocol, runtime_checkable

from timecore.models.policy import EmployeeGroupData


@runtime_checkable
class EmployeeDirectory(Protocol):
    """Interface for the organisation directory that supplies employee attributes."""

    def get_employee(self, employee_id: uuid.UUID) -> EmployeeGroupData | None:
        """Fetch employee attributes. Returns None if not found."""
        ...

    def list_employees(self) -> list[EmployeeGroupData]:
        """List all employees."""
        ...


class InMemoryEmployeeDirectory:
    """In-memory stub implementation for development."""

    def __init__(self) -> None:
        self._employees: dict[uuid.UUID, EmployeeGroupData] = {}

    def seed(self, employee: EmployeeGroupData) -> None:
        """Seed an employee for testing."""
        self._employees[employee.employee_id] = employee

    def get_employee(self, employee_id: uuid.UUID) -> EmployeeGroupData | None:
        """Fetch employee attributes. Returns None if not found."""
        return self._employees.get(employee_id)

    def list_employees(self) -> list[EmployeeGroupData]:
        """List all employees."""
        return list(self._employees.values())


_employee_directory: EmployeeDirectory = InMemoryEmployeeDirectory()


def get_employee_directory() -> EmployeeDirectory:
    """Return the active employee directory."""
    return _employee_directory


def set_employee_directory(directory: EmployeeDirectory) -> None:
    """Override the directory (for testing or production wiring)."""
    global _employee_directory
    _employee_directory = directory
