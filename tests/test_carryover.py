"""Tests for the year-end carryover run."""

from __future__ import annotations

import uuid
from datetime import UTC, date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any

import pytest

from timecore.clock import FixedClock, SystemClock, set_clock
from timecore.models.enums import AccrualPeriod, TransactionType
from timecore.services.accrual import run_due_accruals
from timecore.services.balance import create_balance, replay_transactions
from timecore.services.balance_store import InMemoryBalanceStore
from timecore.services.carryover import run_year_end_carryover

if TYPE_CHECKING:
    from collections.abc import Iterator

    from timecore.models.balance import LeaveBalance

EMPLOYEE_ID = uuid.UUID("00000000-0000-0000-0000-000000000101")
OTHER_EMPLOYEE_ID = uuid.UUID("00000000-0000-0000-0000-000000000102")
ADMIN_ID = uuid.UUID("00000000-0000-0000-0000-000000000201")
NEW_YEAR = date(2026, 1, 1)


@pytest.fixture(autouse=True)
def _new_year_clock() -> Iterator[None]:
    """Carryover runs on the first days of the year."""
    set_clock(FixedClock(datetime(2026, 1, 2, 6, 0, tzinfo=UTC)))
    yield
    set_clock(SystemClock())


def _make_balance(**overrides: Any) -> LeaveBalance:
    return create_balance(
        overrides.pop("employee_id", EMPLOYEE_ID),
        overrides.pop("leave_type_id", "VACATION"),
        Decimal("8"),
        AccrualPeriod.MONTHLY,
        overrides.pop("effective_date", date(2025, 1, 1)),
        current_balance=overrides.pop("current_balance", Decimal("120")),
        max_balance=overrides.pop("max_balance", Decimal("200")),
        carryover_limit=overrides.pop("carryover_limit", Decimal("80")),
        last_accrual_date=date(2025, 12, 1),
    )


@pytest.fixture
def store() -> InMemoryBalanceStore:
    return InMemoryBalanceStore()


class TestCarryoverWithLimit:
    def test_excess_is_forfeited(self, store: InMemoryBalanceStore) -> None:
        old = store.add(_make_balance())
        result = run_year_end_carryover(store, NEW_YEAR, created_by=ADMIN_ID)

        assert result.carryovers_processed == 1
        assert result.total_carried == Decimal("80")
        assert result.total_forfeited == Decimal("40")

        closed = store.get(old.id)
        assert closed.closed_on == date(2025, 12, 31)
        assert closed.current_balance == Decimal("120")
        assert closed.version == 2

        (carried,) = store.list_balances()
        assert carried.id != old.id
        assert carried.current_balance == Decimal("80")
        assert carried.effective_date == NEW_YEAR
        assert carried.year_to_date_accrued == Decimal("0")
        assert carried.version == 1

        (txn,) = store.list_transactions(carried.id)
        assert txn.transaction_type == TransactionType.CARRYOVER
        assert txn.amount == Decimal("80")
        assert txn.transaction_date == NEW_YEAR
        assert txn.created_by == ADMIN_ID

    def test_details_describe_each_rollover(self, store: InMemoryBalanceStore) -> None:
        old = store.add(_make_balance())
        result = run_year_end_carryover(store, NEW_YEAR)
        (detail,) = result.details
        assert detail["previous_balance_id"] == str(old.id)
        assert detail["carried"] == "80"
        assert detail["forfeited"] == "40"


class TestCarryoverWithoutLimit:
    def test_everything_carries(self, store: InMemoryBalanceStore) -> None:
        store.add(_make_balance(current_balance=Decimal("150"), carryover_limit=None))
        result = run_year_end_carryover(store, NEW_YEAR)
        assert result.total_carried == Decimal("150")
        assert result.total_forfeited == Decimal("0")

    def test_under_limit_carries_in_full(self, store: InMemoryBalanceStore) -> None:
        store.add(_make_balance(current_balance=Decimal("40")))
        result = run_year_end_carryover(store, NEW_YEAR)
        assert result.total_carried == Decimal("40")
        assert result.total_forfeited == Decimal("0")


class TestCarryoverIdempotent:
    def test_second_run_skips_carried_balances(self, store: InMemoryBalanceStore) -> None:
        store.add(_make_balance())
        store.add(_make_balance(employee_id=OTHER_EMPLOYEE_ID, current_balance=Decimal("10")))

        first = run_year_end_carryover(store, NEW_YEAR)
        second = run_year_end_carryover(store, NEW_YEAR)

        assert first.carryovers_processed == 2
        assert second.carryovers_processed == 0
        assert second.skipped == 2
        assert len(store.list_balances()) == 2
        assert len(store.list_balances(include_closed=True)) == 4

    def test_balance_effective_on_new_year_skipped(self, store: InMemoryBalanceStore) -> None:
        store.add(_make_balance(effective_date=NEW_YEAR))
        result = run_year_end_carryover(store, NEW_YEAR)
        assert result.skipped == 1
        assert result.carryovers_processed == 0


class TestAfterCarryover:
    def test_closed_balances_no_longer_accrue(self, store: InMemoryBalanceStore) -> None:
        old = store.add(_make_balance())
        run_year_end_carryover(store, NEW_YEAR)

        result = run_due_accruals(store, date(2026, 1, 2))
        assert result.processed == 1
        assert store.get(old.id).current_balance == Decimal("120")

    def test_new_snapshot_replays_from_carryover_line(self, store: InMemoryBalanceStore) -> None:
        store.add(_make_balance())
        run_year_end_carryover(store, NEW_YEAR)
        (carried,) = store.list_balances()

        opening = carried.evolve(current_balance=Decimal("0"))
        replayed = replay_transactions(opening, store.list_transactions(carried.id))
        assert replayed.current_balance == carried.current_balance
