"""Tests for the balance store and the accrual, usage and adjustment jobs."""

from __future__ import annotations

import logging
import uuid
from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING, Any

import pytest

from timecore.exceptions import InsufficientBalanceError, NotFoundError, StaleSnapshotError
from timecore.models.enums import AccrualPeriod, TransactionType
from timecore.services.accrual import SYSTEM_ACTOR, record_adjustment, record_usage, run_due_accruals
from timecore.services.balance import apply_usage, create_accrual_transaction, create_balance, replay_transactions
from timecore.services.balance_store import BalanceStore, InMemoryBalanceStore

if TYPE_CHECKING:
    from timecore.models.balance import LeaveBalance

EMPLOYEE_ID = uuid.UUID("00000000-0000-0000-0000-000000000101")
OTHER_EMPLOYEE_ID = uuid.UUID("00000000-0000-0000-0000-000000000102")
MANAGER_ID = uuid.UUID("00000000-0000-0000-0000-000000000201")
REQUEST_ID = uuid.UUID("00000000-0000-0000-0000-000000000301")


def _make_balance(**overrides: Any) -> LeaveBalance:
    return create_balance(
        overrides.pop("employee_id", EMPLOYEE_ID),
        overrides.pop("leave_type_id", "VACATION"),
        overrides.pop("accrual_rate", Decimal("8")),
        overrides.pop("accrual_period", AccrualPeriod.MONTHLY),
        overrides.pop("effective_date", date(2025, 1, 1)),
        current_balance=overrides.pop("current_balance", Decimal("40")),
        max_balance=overrides.pop("max_balance", Decimal("200")),
        last_accrual_date=overrides.pop("last_accrual_date", date(2025, 10, 1)),
        **overrides,
    )


@pytest.fixture
def store() -> InMemoryBalanceStore:
    return InMemoryBalanceStore()


class _FailingStore(InMemoryBalanceStore):
    """Store whose writes for one balance always lose the version race."""

    def __init__(self, failing_id: uuid.UUID) -> None:
        super().__init__()
        self.failing_id = failing_id

    def save(self, balance: LeaveBalance, expected_version: int) -> LeaveBalance:
        if balance.id == self.failing_id:
            msg = f"Leave balance {balance.id} was modified concurrently"
            raise StaleSnapshotError(msg)
        return super().save(balance, expected_version)


# ---------------------------------------------------------------------------
# InMemoryBalanceStore
# ---------------------------------------------------------------------------


class TestBalanceStore:
    def test_satisfies_protocol(self, store: InMemoryBalanceStore) -> None:
        assert isinstance(store, BalanceStore)

    def test_add_and_get(self, store: InMemoryBalanceStore) -> None:
        balance = store.add(_make_balance())
        assert store.get(balance.id) == balance
        assert store.list_transactions(balance.id) == []

    def test_add_resets_version(self, store: InMemoryBalanceStore) -> None:
        stored = store.add(_make_balance().evolve(version=3))
        assert stored.version == 1

    def test_add_duplicate_rejected(self, store: InMemoryBalanceStore) -> None:
        balance = store.add(_make_balance())
        with pytest.raises(StaleSnapshotError, match="already exists"):
            store.add(balance)

    def test_get_unknown(self, store: InMemoryBalanceStore) -> None:
        with pytest.raises(NotFoundError):
            store.get(uuid.uuid4())

    def test_save_bumps_version(self, store: InMemoryBalanceStore) -> None:
        balance = store.add(_make_balance())
        saved = store.save(apply_usage(balance, Decimal("8")), expected_version=1)
        assert saved.version == 2
        assert store.get(balance.id).current_balance == Decimal("32")

    def test_save_from_stale_snapshot_rejected(self, store: InMemoryBalanceStore) -> None:
        snapshot = store.add(_make_balance())
        store.save(apply_usage(snapshot, Decimal("8")), expected_version=snapshot.version)
        with pytest.raises(StaleSnapshotError, match="is at version 2"):
            store.save(apply_usage(snapshot, Decimal("16")), expected_version=snapshot.version)
        assert store.get(snapshot.id).current_balance == Decimal("32")

    def test_transaction_for_unknown_balance(self, store: InMemoryBalanceStore) -> None:
        txn = create_accrual_transaction(uuid.uuid4(), Decimal("8"), "Monthly", date(2025, 11, 1), SYSTEM_ACTOR)
        with pytest.raises(NotFoundError):
            store.append_transaction(txn)

    def test_list_filters(self, store: InMemoryBalanceStore) -> None:
        vacation = store.add(_make_balance())
        sick = store.add(_make_balance(leave_type_id="SICK"))
        other = store.add(_make_balance(employee_id=OTHER_EMPLOYEE_ID))

        assert {b.id for b in store.list_balances(employee_id=EMPLOYEE_ID)} == {vacation.id, sick.id}
        assert {b.id for b in store.list_balances(leave_type_id="VACATION")} == {vacation.id, other.id}
        assert len(store.list_balances()) == 3


# ---------------------------------------------------------------------------
# Scheduled accruals
# ---------------------------------------------------------------------------


class TestRunDueAccruals:
    def test_accrues_due_balances_only(self, store: InMemoryBalanceStore) -> None:
        due = store.add(_make_balance())
        not_due = store.add(_make_balance(leave_type_id="SICK", last_accrual_date=date(2025, 10, 20)))
        full = store.add(_make_balance(leave_type_id="PERSONAL", current_balance=Decimal("200")))

        result = run_due_accruals(store, date(2025, 11, 3))

        assert result.processed == 3
        assert result.accrued == 1
        assert result.skipped == 2
        assert result.errors == 0
        assert result.total_accrued == Decimal("8")

        updated = store.get(due.id)
        assert updated.current_balance == Decimal("48")
        assert updated.last_accrual_date == date(2025, 11, 1)
        assert updated.version == 2
        assert store.get(not_due.id).version == 1
        assert store.get(full.id).version == 1

        (txn,) = store.list_transactions(due.id)
        assert txn.transaction_type == TransactionType.ACCRUAL
        assert txn.amount == Decimal("8")
        assert txn.transaction_date == date(2025, 11, 1)
        assert txn.created_by == SYSTEM_ACTOR

    def test_rerun_does_not_accrue_twice(self, store: InMemoryBalanceStore) -> None:
        balance = store.add(_make_balance())
        run_due_accruals(store, date(2025, 11, 3))
        second = run_due_accruals(store, date(2025, 11, 3))
        assert second.accrued == 0
        assert store.get(balance.id).current_balance == Decimal("48")
        assert len(store.list_transactions(balance.id)) == 1

    def test_dry_run_changes_nothing(self, store: InMemoryBalanceStore) -> None:
        balance = store.add(_make_balance())
        result = run_due_accruals(store, date(2025, 11, 3), dry_run=True)
        assert result.dry_run
        assert result.accrued == 1
        assert result.details[0]["new_balance"] == "48"
        assert store.get(balance.id).current_balance == Decimal("40")
        assert store.list_transactions(balance.id) == []

    def test_accrual_capped_at_maximum(self, store: InMemoryBalanceStore) -> None:
        balance = store.add(_make_balance(current_balance=Decimal("196")))
        result = run_due_accruals(store, date(2025, 11, 3))
        assert result.total_accrued == Decimal("4")
        assert store.get(balance.id).current_balance == Decimal("200")

    def test_zero_rate_skipped(self, store: InMemoryBalanceStore) -> None:
        store.add(_make_balance(accrual_rate=Decimal("0")))
        result = run_due_accruals(store, date(2025, 11, 3))
        assert result.skipped == 1
        assert result.accrued == 0

    def test_filter_by_employee(self, store: InMemoryBalanceStore) -> None:
        store.add(_make_balance())
        other = store.add(_make_balance(employee_id=OTHER_EMPLOYEE_ID))
        result = run_due_accruals(store, date(2025, 11, 3), employee_id=OTHER_EMPLOYEE_ID)
        assert result.processed == 1
        assert result.details[0]["balance_id"] == str(other.id)

    def test_defaults_to_today(self, store: InMemoryBalanceStore) -> None:
        store.add(_make_balance())
        result = run_due_accruals(store)
        assert result.target_date == date(2025, 11, 3)
        assert result.accrued == 1

    def test_failure_is_isolated(self, caplog: pytest.LogCaptureFixture) -> None:
        failing = _make_balance(leave_type_id="SICK")
        store = _FailingStore(failing.id)
        healthy = store.add(_make_balance())
        store.add(failing)

        with caplog.at_level(logging.ERROR, logger="timecore.services.accrual"):
            result = run_due_accruals(store, date(2025, 11, 3))

        assert result.errors == 1
        assert result.accrued == 1
        assert store.get(healthy.id).current_balance == Decimal("48")
        assert store.list_transactions(failing.id) == []
        assert f"Accrual failed for balance {failing.id}" in caplog.text


# ---------------------------------------------------------------------------
# Usage and adjustments
# ---------------------------------------------------------------------------


class TestRecordUsage:
    def test_usage_debits_and_logs(self, store: InMemoryBalanceStore) -> None:
        balance = store.add(_make_balance())
        updated = record_usage(store, balance.id, Decimal("16"), created_by=MANAGER_ID, request_id=REQUEST_ID)

        assert updated.current_balance == Decimal("24")
        assert updated.year_to_date_used == Decimal("16")
        assert updated.version == 2

        (txn,) = store.list_transactions(balance.id)
        assert txn.amount == Decimal("-16")
        assert txn.related_request_id == REQUEST_ID
        assert txn.transaction_date == date(2025, 11, 3)
        assert txn.description == f"Leave usage for request {REQUEST_ID}"

    def test_usage_over_balance_changes_nothing(self, store: InMemoryBalanceStore) -> None:
        balance = store.add(_make_balance())
        with pytest.raises(InsufficientBalanceError):
            record_usage(store, balance.id, Decimal("50"), created_by=MANAGER_ID)
        assert store.get(balance.id) == balance
        assert store.list_transactions(balance.id) == []

    def test_usage_on_unknown_balance(self, store: InMemoryBalanceStore) -> None:
        with pytest.raises(NotFoundError):
            record_usage(store, uuid.uuid4(), Decimal("8"), created_by=MANAGER_ID)


class TestRecordAdjustment:
    def test_adjustment_records_reason(self, store: InMemoryBalanceStore) -> None:
        balance = store.add(_make_balance())
        updated = record_adjustment(store, balance.id, Decimal("4"), "Missed accrual", created_by=MANAGER_ID)
        assert updated.current_balance == Decimal("44")

        (txn,) = store.list_transactions(balance.id)
        assert txn.transaction_type == TransactionType.ADJUSTMENT
        assert txn.description == f"Manual adjustment by {MANAGER_ID}: Missed accrual"


class TestLedgerConsistency:
    def test_replayed_ledger_matches_stored_balance(self, store: InMemoryBalanceStore) -> None:
        opening = store.add(_make_balance())
        run_due_accruals(store, date(2025, 11, 3))
        record_usage(store, opening.id, Decimal("20"), created_by=MANAGER_ID)
        record_adjustment(store, opening.id, Decimal("-3.5"), "Rounding correction", created_by=MANAGER_ID)

        stored = store.get(opening.id)
        replayed = replay_transactions(opening, store.list_transactions(opening.id))
        assert replayed.current_balance == stored.current_balance == Decimal("24.5")
        assert replayed.year_to_date_used == stored.year_to_date_used
        assert replayed.last_accrual_date == stored.last_accrual_date
