"""Year-end carryover: roll each open balance into a new effective-dated snapshot.

The prior year's snapshot is closed rather than reset so its ledger stays
intact. The new snapshot starts with the carried amount, recorded as a
CARRYOVER line; anything above the carryover limit is forfeited.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal
from typing import TYPE_CHECKING

from timecore.exceptions import AppError
from timecore.services.accrual import SYSTEM_ACTOR
from timecore.services.balance import (
    apply_year_end_carryover,
    calculate_forfeiture,
    close_balance,
    create_carryover_transaction,
)

if TYPE_CHECKING:
    import uuid

    from timecore.models.balance import LeaveBalance
    from timecore.services.balance_store import BalanceStore

logger = logging.getLogger(__name__)


@dataclass
class CarryoverRunResult:
    """Result of a year-end carryover run."""

    target_date: date
    carryovers_processed: int = 0
    skipped: int = 0
    errors: int = 0
    total_carried: Decimal = Decimal("0")
    total_forfeited: Decimal = Decimal("0")
    details: list[dict[str, object]] = field(default_factory=list)


def _carry_one(
    store: BalanceStore,
    balance: LeaveBalance,
    new_year_date: date,
    created_by: uuid.UUID,
) -> LeaveBalance:
    carried = apply_year_end_carryover(balance, new_year_date)
    closed = close_balance(balance, new_year_date - timedelta(days=1))
    txn = create_carryover_transaction(
        carried.id,
        carried.current_balance,
        f"Year-end carryover from balance {balance.id}",
        new_year_date,
        created_by,
    )

    store.save(closed, expected_version=balance.version)
    stored = store.add(carried)
    store.append_transaction(txn)
    return stored


def run_year_end_carryover(
    store: BalanceStore,
    new_year_date: date,
    *,
    created_by: uuid.UUID = SYSTEM_ACTOR,
) -> CarryoverRunResult:
    """Carry every open balance that took effect before ``new_year_date``.

    Balances already effective on or after that date are skipped, so a run
    can be repeated safely. Per-balance failures are logged and counted.
    """
    result = CarryoverRunResult(target_date=new_year_date)

    for balance in store.list_balances():
        if balance.effective_date >= new_year_date:
            result.skipped += 1
            continue

        forfeited = calculate_forfeiture(balance)
        try:
            carried = _carry_one(store, balance, new_year_date, created_by)
        except AppError:
            logger.exception("Carryover failed for balance %s", balance.id)
            result.errors += 1
            continue

        result.carryovers_processed += 1
        result.total_carried += carried.current_balance
        result.total_forfeited += forfeited
        result.details.append(
            {
                "previous_balance_id": str(balance.id),
                "new_balance_id": str(carried.id),
                "employee_id": str(balance.employee_id),
                "leave_type_id": balance.leave_type_id,
                "carried": str(carried.current_balance),
                "forfeited": str(forfeited),
            }
        )
        if forfeited > 0:
            logger.info("Balance %s forfeited %s at year end", balance.id, forfeited)

    logger.info(
        "Carryover run for %s: processed=%d skipped=%d errors=%d",
        new_year_date,
        result.carryovers_processed,
        result.skipped,
        result.errors,
    )
    return result
