# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Self

from pydantic import AwareDatetime, Field, model_validator

from timecore import clock
from timecore.config import get_settings
from timecore.exceptions import BusinessRuleError, Violation
from timecore.models.base import DomainModel, _uuid_factory
from timecore.models.enums import BreakType, TimeEntryStatus

# Longest permitted break per type, in minutes.
MAX_BREAK_MINUTES: dict[BreakType, int] = {
    BreakType.LUNCH: 120,
    BreakType.SHORT_BREAK: 30,
    BreakType.PERSONAL: 60,
}


def elapsed_minutes(start: datetime, end: datetime) -> int:
    """Whole minutes between two instants, rounded half up."""
    seconds = Decimal(str((end - start).total_seconds()))
    return int((seconds / 60).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class BreakEntry(DomainModel):
    """A pause inside a time entry. Open while ``end_time`` is unset."""

    id: uuid.UUID = Field(default_factory=_uuid_factory)
    time_entry_id: uuid.UUID
    break_type: BreakType
    start_time: AwareDatetime
    end_time: AwareDatetime | None = None
    duration_minutes: int | None = Field(default=None, ge=0)
    paid: bool

    @model_validator(mode="after")
    def _validate_business_rules(self) -> Self:
        violations = check_break_entry(self)
        if violations:
            raise BusinessRuleError.from_violations(violations)
        return self


def break_minutes(entry: BreakEntry) -> int:
    """Elapsed minutes of a break; zero while it is still open."""
    if entry.end_time is None:
        return 0
    return elapsed_minutes(entry.start_time, entry.end_time)


def check_break_entry(entry: BreakEntry) -> list[Violation]:
    violations: list[Violation] = []
    if entry.end_time is None:
        return violations

    if entry.end_time <= entry.start_time:
        violations.append(
            Violation(field="end_time", rule="chronology", message="Break end time must be after start time")
        )
        return violations

    if entry.end_time > clock.now():
        violations.append(
            Violation(field="end_time", rule="not_future", message="Break end time cannot be in the future")
        )

    minutes = break_minutes(entry)
    cap = MAX_BREAK_MINUTES[entry.break_type]
    if minutes > cap:
        violations.append(
            Violation(
                field="end_time",
                rule="max_break_duration",
                message=f"{entry.break_type.value} break cannot exceed {cap} minutes",
            )
        )

    if entry.duration_minutes is not None and entry.duration_minutes != minutes:
        violations.append(
            Violation(
                field="duration_minutes",
                rule="duration_mismatch",
                message="Break duration does not match its start and end times",
            )
        )
    return violations


class TimeEntry(DomainModel):
    """A clock-in/clock-out span that exclusively owns its breaks."""

    id: uuid.UUID = Field(default_factory=_uuid_factory)
    employee_id: uuid.UUID
    clock_in: AwareDatetime
    clock_out: AwareDatetime | None = None
    breaks: tuple[BreakEntry, ...] = ()
    status: TimeEntryStatus
    manual_entry: bool = False
    approved_by: uuid.UUID | None = None
    approved_at: AwareDatetime | None = None
    notes: str | None = Field(default=None, max_length=1000)
    total_hours: Decimal | None = Field(default=None, ge=0)
    regular_hours: Decimal | None = Field(default=None, ge=0)
    overtime_hours: Decimal | None = Field(default=None, ge=0)
    double_time_hours: Decimal | None = Field(default=None, ge=0)

    @model_validator(mode="after")
    def _validate_business_rules(self) -> Self:
        violations = check_time_entry(self)
        if violations:
            raise BusinessRuleError.from_violations(violations)
        return self


def check_time_entry(entry: TimeEntry) -> list[Violation]:
    """Validate a time entry together with all of its breaks."""
    violations: list[Violation] = []
    current = clock.now()

    if entry.clock_in > current:
        violations.append(
            Violation(field="clock_in", rule="not_future", message="Clock in time cannot be in the future")
        )
    if entry.clock_out is not None and entry.clock_out > current:
        violations.append(
            Violation(field="clock_out", rule="not_future", message="Clock out time cannot be in the future")
        )
    if entry.clock_out is not None and entry.clock_out <= entry.clock_in:
        violations.append(
            Violation(field="clock_out", rule="chronology", message="Clock out time must be after clock in time")
        )

    violations.extend(_check_break_sequence(entry, current))

    if entry.manual_entry and not (entry.notes and entry.notes.strip()):
        violations.append(
            Violation(field="notes", rule="manual_notes", message="Manual entries require notes explaining the reason")
        )
    if entry.status == TimeEntryStatus.PENDING_APPROVAL and not entry.manual_entry:
        violations.append(
            Violation(
                field="status", rule="pending_manual", message="Only manual entries can have pending approval status"
            )
        )
    if entry.status == TimeEntryStatus.COMPLETED and entry.clock_out is None:
        violations.append(
            Violation(field="status", rule="completed_clock_out", message="Completed entries must have clock out time")
        )
    if entry.status == TimeEntryStatus.ACTIVE and entry.clock_out is not None:
        violations.append(
            Violation(field="status", rule="active_clock_out", message="Active entries cannot have clock out time")
        )

    if entry.approved_by is not None and entry.approved_at is None:
        violations.append(
            Violation(
                field="approved_at", rule="approval_pair", message="Approved entries must have approval timestamp"
            )
        )
    if entry.approved_at is not None and entry.approved_by is None:
        violations.append(
            Violation(field="approved_by", rule="approval_pair", message="Approval timestamp requires approver ID")
        )

    if entry.clock_out is not None:
        max_span = timedelta(hours=get_settings().max_entry_hours)
        if entry.clock_out - entry.clock_in > max_span:
            violations.append(
                Violation(
                    field="clock_out",
                    rule="max_span",
                    message=f"Time entry cannot exceed {get_settings().max_entry_hours} hours",
                )
            )
    return violations


def _check_break_sequence(entry: TimeEntry, current: datetime) -> list[Violation]:
    violations: list[Violation] = []
    for item in entry.breaks:
        if item.time_entry_id != entry.id:
            violations.append(
                Violation(field="breaks", rule="parent", message="Break belongs to a different time entry")
            )
        if item.start_time < entry.clock_in:
            violations.append(
                Violation(field="breaks", rule="within_entry", message="Break cannot start before clock in time")
            )
        if entry.clock_out is not None and item.end_time is not None and item.end_time > entry.clock_out:
            violations.append(
                Violation(field="breaks", rule="within_entry", message="Break cannot end after clock out time")
            )
        if item.start_time > current:
            violations.append(
                Violation(field="breaks", rule="not_future", message="Break start time cannot be in the future")
            )

    open_breaks = [item for item in entry.breaks if item.end_time is None]
    if len(open_breaks) > 1:
        violations.append(Violation(field="breaks", rule="single_open", message="Only one break can be open at a time"))
    if open_breaks and entry.clock_out is not None:
        violations.append(
            Violation(field="breaks", rule="open_at_clock_out", message="Clocked out entries cannot have an open break")
        )

    ordered = sorted(entry.breaks, key=lambda item: item.start_time)
    for previous, following in zip(ordered, ordered[1:], strict=False):
        if previous.end_time is None or previous.end_time > following.start_time:
            violations.append(Violation(field="breaks", rule="overlap", message="Break periods cannot overlap"))
            break
    return violations
