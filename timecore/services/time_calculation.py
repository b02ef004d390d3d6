"""Time calculation engine: worked hours and overtime tiers for entries, days, weeks and pay periods.

The engine is stateless apart from its ``OvertimeRules``. All hour values are
``Decimal`` rounded half-up to two places; tiers are derived by subtraction
so ``regular + overtime + double_time`` always equals the tiered total.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from datetime import date, timedelta
from decimal import Decimal
from typing import Any

from timecore.models.base import round_hours
from timecore.models.overtime import OvertimeRules
from timecore.models.time_entry import BreakEntry, TimeEntry, break_minutes
from timecore.schemas.time import (
    BreakDeductions,
    BreakImpact,
    DailyHours,
    EntryHours,
    HoursSplit,
    OvertimeDetection,
    PayPeriodHours,
    WeeklyHours,
    WeightedHours,
)

logger = logging.getLogger(__name__)

_ZERO = Decimal("0")
_SECONDS_PER_MINUTE = Decimal(60)
_MINUTES_PER_HOUR = Decimal(60)


def week_start(day: date) -> date:
    """Sunday on or before ``day``."""
    return day - timedelta(days=(day.weekday() + 1) % 7)


def entry_day(entry: TimeEntry) -> date:
    """Calendar day an entry belongs to: its clock-in date in the entry's own offset."""
    return entry.clock_in.date()


class TimeCalculationEngine:
    """Turns time entries into regular, overtime and double-time hours."""

    def __init__(self, rules: OvertimeRules | None = None) -> None:
        self.rules = rules if rules is not None else OvertimeRules.from_settings()

    def with_rules(self, **overrides: Any) -> TimeCalculationEngine:
        """Return a new engine whose rules have ``overrides`` applied."""
        return TimeCalculationEngine(self.rules.evolve(**overrides))

    # -----------------------------------------------------------------------
    # Tiering
    # -----------------------------------------------------------------------

    def calculate_daily_overtime(self, total_hours: Decimal | int | float) -> HoursSplit:
        """Split one day's worked hours into regular, overtime and double-time."""
        hours = round_hours(total_hours)
        daily = round_hours(self.rules.daily_overtime_threshold)

        regular = min(hours, daily)
        double_time = _ZERO
        if self.rules.double_time_threshold is not None:
            double_threshold = round_hours(self.rules.double_time_threshold)
            double_time = max(_ZERO, hours - double_threshold)
        overtime = max(_ZERO, hours - regular - double_time)

        return HoursSplit(
            regular_hours=round_hours(regular),
            overtime_hours=round_hours(overtime),
            double_time_hours=round_hours(double_time),
        )

    # -----------------------------------------------------------------------
    # Single entry
    # -----------------------------------------------------------------------

    def calculate_time_entry_hours(self, entry: TimeEntry) -> EntryHours:
        """Worked hours of one entry, net of unpaid breaks. An open entry counts zero."""
        deductions = self.calculate_break_deductions(entry.breaks)
        if entry.clock_out is None:
            return EntryHours(
                regular_hours=_ZERO,
                overtime_hours=_ZERO,
                double_time_hours=_ZERO,
                total_hours=_ZERO,
                total_break_minutes=deductions.total_break_minutes,
                paid_break_minutes=deductions.paid_break_minutes,
                unpaid_break_minutes=deductions.unpaid_break_minutes,
            )

        span_minutes = Decimal(str((entry.clock_out - entry.clock_in).total_seconds())) / _SECONDS_PER_MINUTE
        worked_minutes = span_minutes - deductions.deductible_minutes
        worked_hours = round_hours(max(_ZERO, worked_minutes) / _MINUTES_PER_HOUR)
        split = self.calculate_daily_overtime(worked_hours)

        logger.debug("Entry %s: %s worked hours (%s)", entry.id, worked_hours, split)
        return EntryHours(
            regular_hours=split.regular_hours,
            overtime_hours=split.overtime_hours,
            double_time_hours=split.double_time_hours,
            total_hours=worked_hours,
            total_break_minutes=deductions.total_break_minutes,
            paid_break_minutes=deductions.paid_break_minutes,
            unpaid_break_minutes=deductions.unpaid_break_minutes,
        )

    def calculate_break_deductions(self, breaks: Iterable[BreakEntry]) -> BreakDeductions:
        """Total, paid and unpaid break minutes. Only unpaid time is deductible."""
        total = paid = unpaid = 0
        for item in breaks:
            minutes = break_minutes(item)
            total += minutes
            if item.paid:
                paid += minutes
            else:
                unpaid += minutes
        return BreakDeductions(
            total_break_minutes=total,
            paid_break_minutes=paid,
            unpaid_break_minutes=unpaid,
            deductible_minutes=unpaid,
        )

    def calculate_break_impact(self, entry: TimeEntry) -> BreakImpact:
        if entry.clock_out is None:
            return BreakImpact(total_work_hours=_ZERO, paid_work_hours=_ZERO, break_adjustment_hours=_ZERO)

        span_minutes = Decimal(str((entry.clock_out - entry.clock_in).total_seconds())) / _SECONDS_PER_MINUTE
        unpaid = Decimal(self.calculate_break_deductions(entry.breaks).unpaid_break_minutes)
        return BreakImpact(
            total_work_hours=round_hours(span_minutes / _MINUTES_PER_HOUR),
            paid_work_hours=round_hours((span_minutes - unpaid) / _MINUTES_PER_HOUR),
            break_adjustment_hours=round_hours(unpaid / _MINUTES_PER_HOUR),
        )

    # -----------------------------------------------------------------------
    # Aggregates
    # -----------------------------------------------------------------------

    def calculate_daily_hours(self, entries: Iterable[TimeEntry], day: date) -> DailyHours:
        """Sum every entry clocked in on ``day`` and tier the sum once."""
        day_entries = [entry for entry in entries if entry_day(entry) == day]

        total_hours = _ZERO
        break_total = 0
        for entry in day_entries:
            calculation = self.calculate_time_entry_hours(entry)
            total_hours += calculation.total_hours
            break_total += calculation.total_break_minutes

        split = self.calculate_daily_overtime(total_hours)
        return DailyHours(
            day=day,
            regular_hours=split.regular_hours,
            overtime_hours=split.overtime_hours,
            double_time_hours=split.double_time_hours,
            total_hours=round_hours(total_hours),
            break_minutes=break_total,
            entry_count=len(day_entries),
        )

    def calculate_weekly_hours(self, entries: Iterable[TimeEntry], start: date) -> WeeklyHours:
        """Seven daily aggregates from the Sunday on or before ``start``.

        Regular hours above the weekly threshold are moved to overtime. The
        comparison uses daily regular totals, which are already capped by the
        daily threshold, so daily overtime never counts toward the weekly one.
        """
        first_day = week_start(start)
        last_day = first_day + timedelta(days=6)
        week_entries = [entry for entry in entries if first_day <= entry_day(entry) <= last_day]

        days = [self.calculate_daily_hours(week_entries, first_day + timedelta(days=offset)) for offset in range(7)]
        regular = sum((d.regular_hours for d in days), _ZERO)
        overtime = sum((d.overtime_hours for d in days), _ZERO)
        double_time = sum((d.double_time_hours for d in days), _ZERO)
        total = sum((d.total_hours for d in days), _ZERO)

        weekly_threshold = round_hours(self.rules.weekly_overtime_threshold)
        if regular > weekly_threshold:
            excess = regular - weekly_threshold
            regular = weekly_threshold
            overtime += excess
            logger.debug("Week of %s: %s regular hours reclassified as overtime", first_day, excess)

        return WeeklyHours(
            week_start=first_day,
            week_end=last_day,
            regular_hours=round_hours(regular),
            overtime_hours=round_hours(overtime),
            double_time_hours=round_hours(double_time),
            total_hours=round_hours(total),
            break_minutes=sum(d.break_minutes for d in days),
            days=days,
        )

    def calculate_pay_period_hours(
        self,
        entries: Iterable[TimeEntry],
        period_start: date,
        period_end: date,
    ) -> PayPeriodHours:
        """Week-aligned buckets from the week containing ``period_start``.

        Entries clocked in outside the period are excluded, so the first and
        last weeks may be partial.
        """
        period_entries = [entry for entry in entries if period_start <= entry_day(entry) <= period_end]

        weeks: list[WeeklyHours] = []
        current = week_start(period_start)
        while current <= period_end:
            weeks.append(self.calculate_weekly_hours(period_entries, current))
            current += timedelta(days=7)

        return PayPeriodHours(
            period_start=period_start,
            period_end=period_end,
            regular_hours=round_hours(sum((w.regular_hours for w in weeks), _ZERO)),
            overtime_hours=round_hours(sum((w.overtime_hours for w in weeks), _ZERO)),
            double_time_hours=round_hours(sum((w.double_time_hours for w in weeks), _ZERO)),
            total_hours=round_hours(sum((w.total_hours for w in weeks), _ZERO)),
            weeks=weeks,
        )

    # -----------------------------------------------------------------------
    # Reports
    # -----------------------------------------------------------------------

    def detect_overtime(self, entries: Sequence[TimeEntry], day: date) -> OvertimeDetection:
        daily = self.calculate_daily_hours(entries, day)
        weekly = self.calculate_weekly_hours(entries, day)
        return OvertimeDetection(
            has_daily_overtime=daily.overtime_hours > 0 or daily.double_time_hours > 0,
            has_weekly_overtime=weekly.overtime_hours > 0,
            daily_hours=daily.total_hours,
            weekly_hours=weekly.total_hours,
            overtime_hours=daily.overtime_hours + daily.double_time_hours,
        )

    def calculate_weighted_hours(self, split: HoursSplit) -> WeightedHours:
        """Hours times their multiplier, for payroll export. No currency involved."""
        overtime_multiplier = self.rules.overtime_multiplier
        double_multiplier = self.rules.double_time_multiplier or overtime_multiplier
        regular = round_hours(split.regular_hours)
        overtime = round_hours(split.overtime_hours * overtime_multiplier)
        double_time = round_hours(split.double_time_hours * double_multiplier)
        return WeightedHours(
            regular=regular,
            overtime=overtime,
            double_time=double_time,
            total=regular + overtime + double_time,
        )
