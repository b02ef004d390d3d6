# ruff: noqa: TC003
from __future__ import annotations

from datetime import date
from decimal import Decimal

from pydantic import BaseModel

# ---------------------------------------------------------------------------
# Hour breakdowns
# ---------------------------------------------------------------------------


class HoursSplit(BaseModel):
    """Worked hours split into pay tiers."""

    regular_hours: Decimal
    overtime_hours: Decimal
    double_time_hours: Decimal


class EntryHours(HoursSplit):
    """Hours derived from a single time entry. Break times are in minutes."""

    total_hours: Decimal
    total_break_minutes: int
    paid_break_minutes: int
    unpaid_break_minutes: int


class DailyHours(HoursSplit):
    """All entries clocked in on one calendar day, tiered as a single total."""

    day: date
    total_hours: Decimal
    break_minutes: int
    entry_count: int


class WeeklyHours(HoursSplit):
    """A Sunday-start week, after weekly reclassification."""

    week_start: date
    week_end: date
    total_hours: Decimal
    break_minutes: int
    days: list[DailyHours]


class PayPeriodHours(HoursSplit):
    period_start: date
    period_end: date
    total_hours: Decimal
    weeks: list[WeeklyHours]


class WeightedHours(BaseModel):
    """Hours multiplied by their tier's pay multiplier."""

    regular: Decimal
    overtime: Decimal
    double_time: Decimal
    total: Decimal


class BreakDeductions(BaseModel):
    total_break_minutes: int
    paid_break_minutes: int
    unpaid_break_minutes: int
    deductible_minutes: int


# ---------------------------------------------------------------------------
# Supplementary reports
# ---------------------------------------------------------------------------


class OvertimeDetection(BaseModel):
    has_daily_overtime: bool
    has_weekly_overtime: bool
    daily_hours: Decimal
    weekly_hours: Decimal
    overtime_hours: Decimal


class BreakImpact(BaseModel):
    """Gross versus paid work time of an entry, in hours."""

    total_work_hours: Decimal
    paid_work_hours: Decimal
    break_adjustment_hours: Decimal
