# ruff: noqa: TC003
"""Persistence boundary for leave balances and their ledger.

Balances are recomputed from snapshots, so two writers working from the
same snapshot would lose one update. ``save`` therefore takes the version
the caller read and rejects the write if another writer got there first.
"""

from __future__ import annotations

import threading
import uuid
from typing import Protocol, runtime_checkable

from timecore.exceptions import NotFoundError, StaleSnapshotError
from timecore.models.balance import AccrualTransaction, LeaveBalance


@runtime_checkable
class BalanceStore(Protocol):
    """Interface for the store that persists balances and transactions."""

    def get(self, balance_id: uuid.UUID) -> LeaveBalance:
        """Fetch a balance. Raises NotFoundError if it does not exist."""
        ...

    def list_balances(
        self,
        employee_id: uuid.UUID | None = None,
        leave_type_id: str | None = None,
        include_closed: bool = False,
    ) -> list[LeaveBalance]:
        """List balances, optionally filtered."""
        ...

    def add(self, balance: LeaveBalance) -> LeaveBalance:
        """Insert a new balance at version 1."""
        ...

    def save(self, balance: LeaveBalance, expected_version: int) -> LeaveBalance:
        """Replace a balance if its stored version still equals ``expected_version``."""
        ...

    def append_transaction(self, txn: AccrualTransaction) -> AccrualTransaction:
        """Append a ledger line."""
        ...

    def list_transactions(self, balance_id: uuid.UUID) -> list[AccrualTransaction]:
        """Ledger lines of a balance in the order they were appended."""
        ...


class InMemoryBalanceStore:
    """In-memory stub implementation. Writes are serialized under one lock."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._balances: dict[uuid.UUID, LeaveBalance] = {}
        self._transactions: dict[uuid.UUID, list[AccrualTransaction]] = {}

    def get(self, balance_id: uuid.UUID) -> LeaveBalance:
        balance = self._balances.get(balance_id)
        if balance is None:
            msg = f"Leave balance {balance_id} not found"
            raise NotFoundError(msg)
        return balance

    def list_balances(
        self,
        employee_id: uuid.UUID | None = None,
        leave_type_id: str | None = None,
        include_closed: bool = False,
    ) -> list[LeaveBalance]:
        return [
            b
            for b in self._balances.values()
            if (employee_id is None or b.employee_id == employee_id)
            and (leave_type_id is None or b.leave_type_id == leave_type_id)
            and (include_closed or b.closed_on is None)
        ]

    def add(self, balance: LeaveBalance) -> LeaveBalance:
        with self._lock:
            if balance.id in self._balances:
                msg = f"Leave balance {balance.id} already exists"
                raise StaleSnapshotError(msg)
            stored = balance if balance.version == 1 else balance.evolve(version=1)
            self._balances[stored.id] = stored
            self._transactions.setdefault(stored.id, [])
            return stored

    def save(self, balance: LeaveBalance, expected_version: int) -> LeaveBalance:
        with self._lock:
            current = self.get(balance.id)
            if current.version != expected_version:
                msg = (
                    f"Leave balance {balance.id} is at version {current.version}, "
                    f"write was based on version {expected_version}"
                )
                raise StaleSnapshotError(msg)
            stored = balance.evolve(version=expected_version + 1)
            self._balances[stored.id] = stored
            return stored

    def append_transaction(self, txn: AccrualTransaction) -> AccrualTransaction:
        with self._lock:
            if txn.leave_balance_id not in self._balances:
                msg = f"Leave balance {txn.leave_balance_id} not found"
                raise NotFoundError(msg)
            self._transactions[txn.leave_balance_id].append(txn)
            return txn

    def list_transactions(self, balance_id: uuid.UUID) -> list[AccrualTransaction]:
        return list(self._transactions.get(balance_id, []))
