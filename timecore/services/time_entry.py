"""Time entry lifecycle: clock in, breaks, clock out and manual-entry approval.

Every transition returns a new ``TimeEntry``; the whole aggregate (entry and
breaks) is re-validated on each change, so a rejected transition leaves the
caller's snapshot untouched.
"""

from __future__ import annotations

import logging
import uuid
from typing import TYPE_CHECKING

from timecore import clock
from timecore.exceptions import BusinessRuleError, NotFoundError
from timecore.models.enums import BreakType, TimeEntryStatus
from timecore.models.time_entry import BreakEntry, TimeEntry, break_minutes, elapsed_minutes
from timecore.services.time_calculation import TimeCalculationEngine

if TYPE_CHECKING:
    from datetime import datetime

    from timecore.models.overtime import OvertimeRules

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


def is_active(entry: TimeEntry) -> bool:
    return entry.status == TimeEntryStatus.ACTIVE and entry.clock_out is None


def get_active_break(entry: TimeEntry) -> BreakEntry | None:
    """The open break, if any. At most one break is open at a time."""
    return next((item for item in entry.breaks if item.end_time is None), None)


def has_active_break(entry: TimeEntry) -> bool:
    return get_active_break(entry) is not None


def requires_approval(entry: TimeEntry) -> bool:
    return entry.manual_entry and entry.status == TimeEntryStatus.PENDING_APPROVAL


def break_duration_minutes(item: BreakEntry) -> int:
    """Minutes of a break, measured up to now while it is still open."""
    if item.end_time is None:
        return max(0, elapsed_minutes(item.start_time, clock.now()))
    return break_minutes(item)


def total_break_minutes(entry: TimeEntry) -> int:
    return sum(break_minutes(item) for item in entry.breaks)


def paid_break_minutes(entry: TimeEntry) -> int:
    return sum(break_minutes(item) for item in entry.breaks if item.paid)


def unpaid_break_minutes(entry: TimeEntry) -> int:
    return sum(break_minutes(item) for item in entry.breaks if not item.paid)


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------


def _with_derived_hours(entry: TimeEntry, rules: OvertimeRules | None) -> TimeEntry:
    hours = TimeCalculationEngine(rules).calculate_time_entry_hours(entry)
    return entry.evolve(
        total_hours=hours.total_hours,
        regular_hours=hours.regular_hours,
        overtime_hours=hours.overtime_hours,
        double_time_hours=hours.double_time_hours,
    )


def create_clock_in(employee_id: uuid.UUID, at: datetime | None = None) -> TimeEntry:
    """Start an ACTIVE entry at ``at`` (defaults to now)."""
    entry = TimeEntry.create(
        employee_id=employee_id,
        clock_in=at or clock.now(),
        status=TimeEntryStatus.ACTIVE,
    )
    logger.info("Employee %s clocked in at %s (entry %s)", employee_id, entry.clock_in, entry.id)
    return entry


def create_manual_entry(
    employee_id: uuid.UUID,
    clock_in: datetime,
    clock_out: datetime,
    notes: str,
    rules: OvertimeRules | None = None,
) -> TimeEntry:
    """Record a span after the fact. Manual entries wait for approval."""
    entry = TimeEntry.create(
        employee_id=employee_id,
        clock_in=clock_in,
        clock_out=clock_out,
        status=TimeEntryStatus.PENDING_APPROVAL,
        manual_entry=True,
        notes=notes,
    )
    entry = _with_derived_hours(entry, rules)
    logger.info("Manual entry %s recorded for employee %s (%s hours)", entry.id, employee_id, entry.total_hours)
    return entry


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------


def _ensure_open_for_breaks(entry: TimeEntry) -> None:
    if entry.status == TimeEntryStatus.COMPLETED:
        msg = "Cannot change breaks on a completed time entry"
        raise BusinessRuleError(msg)


def add_break(
    entry: TimeEntry,
    break_type: BreakType,
    start_time: datetime,
    end_time: datetime | None = None,
    paid: bool = False,
    rules: OvertimeRules | None = None,
) -> TimeEntry:
    """Append a break and re-validate the whole entry.

    A clocked-out entry has its hours re-derived under ``rules``; pass the
    rules the entry was recorded with.
    """
    _ensure_open_for_breaks(entry)
    new_break = BreakEntry.create(
        time_entry_id=entry.id,
        break_type=break_type,
        start_time=start_time,
        end_time=end_time,
        duration_minutes=None,
        paid=paid,
    )
    if new_break.end_time is not None:
        new_break = new_break.evolve(duration_minutes=break_minutes(new_break))

    updated = entry.evolve(breaks=(*entry.breaks, new_break))
    if updated.clock_out is not None:
        updated = _with_derived_hours(updated, rules)
    logger.info("Break %s (%s) added to entry %s", new_break.id, break_type, entry.id)
    return updated


def end_break(
    entry: TimeEntry,
    break_id: uuid.UUID,
    at: datetime | None = None,
    rules: OvertimeRules | None = None,
) -> TimeEntry:
    """Close an open break at ``at`` (defaults to now)."""
    _ensure_open_for_breaks(entry)
    target = next((item for item in entry.breaks if item.id == break_id), None)
    if target is None:
        msg = f"Break {break_id} not found on time entry {entry.id}"
        raise NotFoundError(msg)
    if target.end_time is not None:
        msg = "Break has already ended"
        raise BusinessRuleError(msg)

    ended = target.evolve(end_time=at or clock.now())
    ended = ended.evolve(duration_minutes=break_minutes(ended))
    updated = entry.evolve(breaks=tuple(ended if item.id == break_id else item for item in entry.breaks))
    if updated.clock_out is not None:
        updated = _with_derived_hours(updated, rules)
    logger.info("Break %s on entry %s ended after %d minutes", break_id, entry.id, ended.duration_minutes)
    return updated


def clock_out(entry: TimeEntry, at: datetime | None = None, rules: OvertimeRules | None = None) -> TimeEntry:
    """Close the entry and compute its hours. Returns a COMPLETED copy."""
    if entry.clock_out is not None:
        msg = "Employee is already clocked out"
        raise BusinessRuleError(msg)
    if has_active_break(entry):
        msg = "Cannot clock out while on break"
        raise BusinessRuleError(msg)

    completed = entry.evolve(clock_out=at or clock.now(), status=TimeEntryStatus.COMPLETED)
    completed = _with_derived_hours(completed, rules)
    logger.info("Entry %s clocked out with %s hours", entry.id, completed.total_hours)
    return completed


def approve_time_entry(entry: TimeEntry, approver_id: uuid.UUID, at: datetime | None = None) -> TimeEntry:
    """Approve a pending manual entry. Returns a COMPLETED copy."""
    if not requires_approval(entry):
        msg = "Time entry does not require approval"
        raise BusinessRuleError(msg)

    approved = entry.evolve(
        status=TimeEntryStatus.COMPLETED,
        approved_by=approver_id,
        approved_at=at or clock.now(),
    )
    logger.info("Entry %s approved by %s", entry.id, approver_id)
    return approved
