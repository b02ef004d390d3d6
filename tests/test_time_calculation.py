"""Tests for the time calculation engine: tiering, entry hours and weekly aggregation."""

from __future__ import annotations

import uuid
from datetime import UTC, date, datetime
from decimal import Decimal

import pytest

from timecore.exceptions import BusinessRuleError
from timecore.models.base import round_hours
from timecore.models.enums import BreakType
from timecore.models.overtime import OvertimeRules
from timecore.models.time_entry import TimeEntry
from timecore.schemas.time import HoursSplit
from timecore.services.time_calculation import TimeCalculationEngine, week_start
from timecore.services.time_entry import add_break, clock_out, create_clock_in

EMPLOYEE_ID = uuid.UUID("00000000-0000-0000-0000-000000000101")


def _dt(day: int, hour: int, minute: int = 0, month: int = 10) -> datetime:
    return datetime(2025, month, day, hour, minute, tzinfo=UTC)


def _worked(
    day: int,
    start: int,
    end: int,
    breaks: tuple[tuple[BreakType, datetime, datetime, bool], ...] = (),
    month: int = 10,
) -> TimeEntry:
    entry = create_clock_in(EMPLOYEE_ID, at=_dt(day, start, month=month))
    for break_type, break_start, break_end, paid in breaks:
        entry = add_break(entry, break_type, break_start, break_end, paid=paid)
    return clock_out(entry, at=_dt(day, end, month=month))


@pytest.fixture
def engine() -> TimeCalculationEngine:
    return TimeCalculationEngine()


# ---------------------------------------------------------------------------
# Daily tiering
# ---------------------------------------------------------------------------


class TestDailyOvertime:
    @pytest.mark.parametrize(
        ("hours", "regular", "overtime", "double_time"),
        [
            ("0", "0", "0", "0"),
            ("7.5", "7.5", "0", "0"),
            ("8", "8", "0", "0"),
            ("9", "8", "1", "0"),
            ("12", "8", "4", "0"),
            ("12.5", "8", "4", "0.5"),
            ("14", "8", "4", "2"),
        ],
    )
    def test_tiers(
        self, engine: TimeCalculationEngine, hours: str, regular: str, overtime: str, double_time: str
    ) -> None:
        split = engine.calculate_daily_overtime(Decimal(hours))
        assert split.regular_hours == Decimal(regular)
        assert split.overtime_hours == Decimal(overtime)
        assert split.double_time_hours == Decimal(double_time)

    @pytest.mark.parametrize("hours", ["0.01", "3.33", "8.01", "11.99", "12.01", "16.67", "23.99"])
    def test_tiers_add_up_to_total(self, engine: TimeCalculationEngine, hours: str) -> None:
        split = engine.calculate_daily_overtime(Decimal(hours))
        assert split.regular_hours + split.overtime_hours + split.double_time_hours == round_hours(Decimal(hours))

    def test_without_double_time_tier(self, engine: TimeCalculationEngine) -> None:
        split = engine.with_rules(double_time_threshold=None).calculate_daily_overtime(Decimal("14"))
        assert split.overtime_hours == Decimal("6")
        assert split.double_time_hours == Decimal("0")

    def test_with_rules_leaves_engine_untouched(self, engine: TimeCalculationEngine) -> None:
        engine.with_rules(daily_overtime_threshold=Decimal("10"))
        assert engine.rules.daily_overtime_threshold == Decimal("8")

    def test_double_time_threshold_must_exceed_daily(self) -> None:
        with pytest.raises(BusinessRuleError, match="Double time threshold must be greater"):
            OvertimeRules.create(daily_overtime_threshold=Decimal("12"), double_time_threshold=Decimal("10"))

    def test_double_time_multiplier_must_exceed_overtime(self) -> None:
        with pytest.raises(BusinessRuleError, match="Double time multiplier must be greater"):
            OvertimeRules.create(overtime_multiplier=Decimal("2"), double_time_multiplier=Decimal("1.5"))


# ---------------------------------------------------------------------------
# Single entry
# ---------------------------------------------------------------------------


class TestEntryHours:
    def test_unpaid_lunch_is_deducted(self, engine: TimeCalculationEngine) -> None:
        entry = _worked(27, 9, 19, ((BreakType.LUNCH, _dt(27, 12), _dt(27, 13), False),))
        hours = engine.calculate_time_entry_hours(entry)
        assert hours.total_hours == Decimal("9")
        assert hours.regular_hours == Decimal("8")
        assert hours.overtime_hours == Decimal("1")
        assert hours.double_time_hours == Decimal("0")
        assert hours.unpaid_break_minutes == 60

    def test_long_day_reaches_double_time(self, engine: TimeCalculationEngine) -> None:
        hours = engine.calculate_time_entry_hours(_worked(27, 9, 23))
        assert hours.total_hours == Decimal("14")
        assert (hours.regular_hours, hours.overtime_hours, hours.double_time_hours) == (
            Decimal("8"),
            Decimal("4"),
            Decimal("2"),
        )

    def test_paid_break_not_deducted(self, engine: TimeCalculationEngine) -> None:
        entry = _worked(27, 9, 17, ((BreakType.SHORT_BREAK, _dt(27, 10), _dt(27, 10, 15), True),))
        hours = engine.calculate_time_entry_hours(entry)
        assert hours.total_hours == Decimal("8")
        assert hours.paid_break_minutes == 15
        assert hours.total_break_minutes == 15

    def test_open_entry_counts_zero(self, engine: TimeCalculationEngine) -> None:
        hours = engine.calculate_time_entry_hours(create_clock_in(EMPLOYEE_ID, at=_dt(27, 9)))
        assert hours.total_hours == Decimal("0")
        assert hours.regular_hours == Decimal("0")

    def test_hours_round_to_two_places(self, engine: TimeCalculationEngine) -> None:
        entry = clock_out(create_clock_in(EMPLOYEE_ID, at=_dt(27, 9)), at=_dt(27, 9, 20))
        assert engine.calculate_time_entry_hours(entry).total_hours == Decimal("0.33")

    def test_break_impact(self, engine: TimeCalculationEngine) -> None:
        entry = _worked(27, 9, 19, ((BreakType.LUNCH, _dt(27, 12), _dt(27, 13), False),))
        impact = engine.calculate_break_impact(entry)
        assert impact.total_work_hours == Decimal("10")
        assert impact.paid_work_hours == Decimal("9")
        assert impact.break_adjustment_hours == Decimal("1")

    def test_break_deductions(self, engine: TimeCalculationEngine) -> None:
        entry = _worked(
            27,
            9,
            17,
            (
                (BreakType.SHORT_BREAK, _dt(27, 10), _dt(27, 10, 15), True),
                (BreakType.LUNCH, _dt(27, 12), _dt(27, 12, 45), False),
            ),
        )
        deductions = engine.calculate_break_deductions(entry.breaks)
        assert deductions.total_break_minutes == 60
        assert deductions.paid_break_minutes == 15
        assert deductions.unpaid_break_minutes == 45
        assert deductions.deductible_minutes == 45


# ---------------------------------------------------------------------------
# Aggregates
# ---------------------------------------------------------------------------


class TestWeekStart:
    @pytest.mark.parametrize(
        ("day", "expected"),
        [
            (date(2025, 10, 26), date(2025, 10, 26)),
            (date(2025, 10, 27), date(2025, 10, 26)),
            (date(2025, 11, 1), date(2025, 10, 26)),
            (date(2025, 11, 2), date(2025, 11, 2)),
        ],
    )
    def test_week_starts_on_sunday(self, day: date, expected: date) -> None:
        assert week_start(day) == expected


class TestAggregates:
    def test_daily_hours_tier_the_day_total(self, engine: TimeCalculationEngine) -> None:
        entries = [_worked(27, 8, 12), _worked(27, 13, 19), _worked(28, 9, 17)]
        daily = engine.calculate_daily_hours(entries, date(2025, 10, 27))
        assert daily.entry_count == 2
        assert daily.total_hours == Decimal("10")
        assert daily.regular_hours == Decimal("8")
        assert daily.overtime_hours == Decimal("2")

    def test_five_nine_hour_days(self, engine: TimeCalculationEngine) -> None:
        entries = [_worked(day, 9, 18) for day in range(27, 32)]
        weekly = engine.calculate_weekly_hours(entries, date(2025, 10, 29))
        assert weekly.week_start == date(2025, 10, 26)
        assert weekly.week_end == date(2025, 11, 1)
        assert weekly.total_hours == Decimal("45")
        assert weekly.regular_hours == Decimal("40")
        assert weekly.overtime_hours == Decimal("5")
        assert len(weekly.days) == 7

    def test_regular_hours_over_weekly_threshold_become_overtime(self, engine: TimeCalculationEngine) -> None:
        entries = [_worked(day, 8, 16) for day in range(26, 32)]
        weekly = engine.calculate_weekly_hours(entries, date(2025, 10, 26))
        assert weekly.total_hours == Decimal("48")
        assert weekly.regular_hours == Decimal("40")
        assert weekly.overtime_hours == Decimal("8")

    def test_weekly_ignores_other_weeks(self, engine: TimeCalculationEngine) -> None:
        entries = [_worked(27, 9, 17), _worked(2, 9, 17, month=11)]
        weekly = engine.calculate_weekly_hours(entries, date(2025, 10, 27))
        assert weekly.total_hours == Decimal("8")

    def test_pay_period_in_week_buckets(self, engine: TimeCalculationEngine) -> None:
        entries = [_worked(21, 9, 18), _worked(28, 9, 18), _worked(1, 9, 18, month=11)]
        period = engine.calculate_pay_period_hours(entries, date(2025, 10, 20), date(2025, 10, 31))
        assert [week.week_start for week in period.weeks] == [date(2025, 10, 19), date(2025, 10, 26)]
        assert period.total_hours == Decimal("18")
        assert period.regular_hours == Decimal("16")
        assert period.overtime_hours == Decimal("2")

    def test_detect_overtime(self, engine: TimeCalculationEngine) -> None:
        entries = [_worked(27, 9, 18), _worked(28, 9, 17)]
        detection = engine.detect_overtime(entries, date(2025, 10, 27))
        assert detection.has_daily_overtime
        # Weekly overtime includes the day's tiered overtime hours.
        assert detection.has_weekly_overtime
        assert detection.daily_hours == Decimal("9")
        assert detection.weekly_hours == Decimal("17")
        assert detection.overtime_hours == Decimal("1")

    def test_detect_weekly_overtime_without_daily(self, engine: TimeCalculationEngine) -> None:
        entries = [_worked(day, 8, 16) for day in range(26, 32)]
        detection = engine.detect_overtime(entries, date(2025, 10, 31))
        assert not detection.has_daily_overtime
        assert detection.has_weekly_overtime
        assert detection.daily_hours == Decimal("8")
        assert detection.weekly_hours == Decimal("48")
        assert detection.overtime_hours == Decimal("0")

    def test_weighted_hours(self, engine: TimeCalculationEngine) -> None:
        split = HoursSplit(regular_hours=Decimal("8"), overtime_hours=Decimal("2"), double_time_hours=Decimal("1"))
        weighted = engine.calculate_weighted_hours(split)
        assert weighted.regular == Decimal("8")
        assert weighted.overtime == Decimal("3")
        assert weighted.double_time == Decimal("2")
        assert weighted.total == Decimal("13")
