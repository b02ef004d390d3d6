"""Ledger jobs: scheduled accruals, recorded usage and manual adjustments.

Each job reads a snapshot from the balance store, applies the pure balance
operation, writes the new snapshot back with an optimistic version check
and appends the matching ledger line.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING

from timecore import clock
from timecore.exceptions import AppError
from timecore.services.balance import (
    apply_accrual,
    apply_adjustment,
    apply_usage,
    calculate_next_accrual_date,
    create_accrual_transaction,
    create_adjustment_transaction,
    create_usage_transaction,
    is_accrual_due,
    is_at_maximum,
)

if TYPE_CHECKING:
    from timecore.models.balance import LeaveBalance
    from timecore.services.balance_store import BalanceStore

logger = logging.getLogger(__name__)

SYSTEM_ACTOR = uuid.UUID(int=0)

# ---------------------------------------------------------------------------
# Result dataclasses
# ---------------------------------------------------------------------------


@dataclass
class AccrualRunResult:
    """Summary of a scheduled accrual run."""

    target_date: date
    dry_run: bool = False
    processed: int = 0
    accrued: int = 0
    skipped: int = 0
    errors: int = 0
    total_accrued: Decimal = Decimal("0")
    details: list[dict[str, object]] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Scheduled accrual
# ---------------------------------------------------------------------------


def _accrue_one(store: BalanceStore, balance: LeaveBalance, dry_run: bool) -> LeaveBalance:
    accrual_date = calculate_next_accrual_date(balance)
    updated = apply_accrual(balance, balance.accrual_rate, accrual_date)
    txn = create_accrual_transaction(
        balance.id,
        balance.accrual_rate,
        f"Automatic accrual for {accrual_date.isoformat()}",
        accrual_date,
        SYSTEM_ACTOR,
    )
    if dry_run:
        return updated

    saved = store.save(updated, expected_version=balance.version)
    store.append_transaction(txn)
    return saved


def run_due_accruals(
    store: BalanceStore,
    process_date: date | None = None,
    *,
    employee_id: uuid.UUID | None = None,
    leave_type_id: str | None = None,
    dry_run: bool = False,
) -> AccrualRunResult:
    """Post one period's accrual to every open balance that is due on ``process_date``.

    Balances at their maximum or with a zero rate are skipped. A failure on
    one balance is logged and counted; the run continues.
    """
    target_date = process_date or clock.today()
    result = AccrualRunResult(target_date=target_date, dry_run=dry_run)

    for balance in store.list_balances(employee_id=employee_id, leave_type_id=leave_type_id):
        result.processed += 1
        if not is_accrual_due(balance, target_date) or is_at_maximum(balance) or balance.accrual_rate <= 0:
            result.skipped += 1
            continue

        try:
            updated = _accrue_one(store, balance, dry_run)
        except AppError:
            logger.exception("Accrual failed for balance %s", balance.id)
            result.errors += 1
            continue

        result.accrued += 1
        result.total_accrued += updated.current_balance - balance.current_balance
        result.details.append(
            {
                "balance_id": str(balance.id),
                "employee_id": str(balance.employee_id),
                "leave_type_id": balance.leave_type_id,
                "accrued": str(updated.current_balance - balance.current_balance),
                "new_balance": str(updated.current_balance),
            }
        )

    logger.info(
        "Accrual run for %s%s: processed=%d accrued=%d skipped=%d errors=%d",
        target_date,
        " (dry run)" if dry_run else "",
        result.processed,
        result.accrued,
        result.skipped,
        result.errors,
    )
    return result


# ---------------------------------------------------------------------------
# Usage and adjustments
# ---------------------------------------------------------------------------


def record_usage(
    store: BalanceStore,
    balance_id: uuid.UUID,
    hours: Decimal,
    *,
    created_by: uuid.UUID,
    request_id: uuid.UUID | None = None,
    on: date | None = None,
) -> LeaveBalance:
    """Debit approved leave from a stored balance and log the usage line."""
    balance = store.get(balance_id)
    updated = apply_usage(balance, hours)
    description = f"Leave usage for request {request_id}" if request_id else "Leave usage"
    txn = create_usage_transaction(
        balance_id,
        hours,
        description,
        on or clock.today(),
        created_by,
        related_request_id=request_id,
    )

    saved = store.save(updated, expected_version=balance.version)
    store.append_transaction(txn)
    logger.info("Recorded %s hours of usage on balance %s", hours, balance_id)
    return saved


def record_adjustment(
    store: BalanceStore,
    balance_id: uuid.UUID,
    amount: Decimal,
    reason: str,
    *,
    created_by: uuid.UUID,
    on: date | None = None,
) -> LeaveBalance:
    """Apply a signed manual correction and log it with its reason."""
    balance = store.get(balance_id)
    updated = apply_adjustment(balance, amount)
    txn = create_adjustment_transaction(
        balance_id,
        amount,
        f"Manual adjustment by {created_by}: {reason}",
        on or clock.today(),
        created_by,
    )

    saved = store.save(updated, expected_version=balance.version)
    store.append_transaction(txn)
    logger.info("Adjusted balance %s by %s (%s)", balance_id, amount, reason)
    return saved
