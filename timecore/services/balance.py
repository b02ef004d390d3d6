"""Leave balance arithmetic and the accrual-transaction ledger.

Balances are snapshots: every operation returns a new ``LeaveBalance``.
Accruals cap at ``max_balance`` instead of failing, adjustments floor at
zero, and usage beyond the current balance raises
``InsufficientBalanceError``.
"""

from __future__ import annotations

import logging
import uuid
from calendar import monthrange
from collections.abc import Iterable
from datetime import date, timedelta
from decimal import ROUND_FLOOR, Decimal

from timecore import clock
from timecore.exceptions import BusinessRuleError, InsufficientBalanceError
from timecore.models.balance import AccrualTransaction, LeaveBalance
from timecore.models.base import round_hours
from timecore.models.enums import AccrualPeriod, TransactionType
from timecore.schemas.balance import BalanceSummary, TransactionSummary

logger = logging.getLogger(__name__)

_ZERO = Decimal("0")

# Accrual periods per elapsed calendar month, used for projections.
_PERIODS_PER_MONTH: dict[AccrualPeriod, Decimal] = {
    AccrualPeriod.MONTHLY: Decimal("1"),
    AccrualPeriod.BIWEEKLY: Decimal("2.17"),
    AccrualPeriod.ANNUAL: Decimal("1") / Decimal("12"),
    AccrualPeriod.PER_PAY_PERIOD: Decimal("2"),
}

_DAYS_PER_YEAR = Decimal("365.25")
_BIWEEKLY_DAYS = 14

# ---------------------------------------------------------------------------
# Date helpers
# ---------------------------------------------------------------------------


def months_between(start: date, end: date) -> int:
    """Calendar-month distance, ignoring the day of month."""
    return (end.year - start.year) * 12 + end.month - start.month


def add_months(day: date, months: int) -> date:
    """Shift by whole months, clamping to the last day of a shorter month."""
    month_index = day.month - 1 + months
    year = day.year + month_index // 12
    month = month_index % 12 + 1
    _, days_in_month = monthrange(year, month)
    return date(year, month, min(day.day, days_in_month))


# ---------------------------------------------------------------------------
# Transactions
# ---------------------------------------------------------------------------


def create_accrual_transaction(
    balance_id: uuid.UUID,
    amount: Decimal,
    description: str,
    transaction_date: date,
    created_by: uuid.UUID,
) -> AccrualTransaction:
    return AccrualTransaction.create(
        leave_balance_id=balance_id,
        transaction_type=TransactionType.ACCRUAL,
        amount=amount,
        description=description,
        transaction_date=transaction_date,
        created_by=created_by,
    )


def create_usage_transaction(
    balance_id: uuid.UUID,
    amount: Decimal,
    description: str,
    transaction_date: date,
    created_by: uuid.UUID,
    related_request_id: uuid.UUID | None = None,
) -> AccrualTransaction:
    """Usage is recorded as a negative amount; pass the hours used as a positive number."""
    return AccrualTransaction.create(
        leave_balance_id=balance_id,
        transaction_type=TransactionType.USAGE,
        amount=-abs(Decimal(amount)),
        description=description,
        transaction_date=transaction_date,
        related_request_id=related_request_id,
        created_by=created_by,
    )


def create_adjustment_transaction(
    balance_id: uuid.UUID,
    amount: Decimal,
    description: str,
    transaction_date: date,
    created_by: uuid.UUID,
) -> AccrualTransaction:
    return AccrualTransaction.create(
        leave_balance_id=balance_id,
        transaction_type=TransactionType.ADJUSTMENT,
        amount=amount,
        description=description,
        transaction_date=transaction_date,
        created_by=created_by,
    )


def create_carryover_transaction(
    balance_id: uuid.UUID,
    amount: Decimal,
    description: str,
    transaction_date: date,
    created_by: uuid.UUID,
) -> AccrualTransaction:
    return AccrualTransaction.create(
        leave_balance_id=balance_id,
        transaction_type=TransactionType.CARRYOVER,
        amount=amount,
        description=description,
        transaction_date=transaction_date,
        created_by=created_by,
    )


def transaction_summary(transactions: Iterable[AccrualTransaction]) -> TransactionSummary:
    totals: dict[TransactionType, Decimal] = dict.fromkeys(TransactionType, _ZERO)
    count = 0
    for txn in transactions:
        totals[txn.transaction_type] += txn.amount
        count += 1
    return TransactionSummary(count=count, net_amount=sum(totals.values(), _ZERO), totals=totals)


# ---------------------------------------------------------------------------
# Balance construction and queries
# ---------------------------------------------------------------------------


def create_balance(
    employee_id: uuid.UUID,
    leave_type_id: str,
    accrual_rate: Decimal,
    accrual_period: AccrualPeriod,
    effective_date: date,
    *,
    current_balance: Decimal = _ZERO,
    max_balance: Decimal | None = None,
    carryover_limit: Decimal | None = None,
    last_accrual_date: date | None = None,
) -> LeaveBalance:
    """Open a balance for an employee and leave type, usually on first accrual."""
    return LeaveBalance.create(
        employee_id=employee_id,
        leave_type_id=leave_type_id,
        current_balance=current_balance,
        accrual_rate=accrual_rate,
        accrual_period=accrual_period,
        max_balance=max_balance,
        carryover_limit=carryover_limit,
        last_accrual_date=last_accrual_date or effective_date,
        effective_date=effective_date,
    )


def is_closed(balance: LeaveBalance) -> bool:
    return balance.closed_on is not None


def has_sufficient_balance(balance: LeaveBalance, amount: Decimal) -> bool:
    return balance.current_balance >= amount


def is_at_maximum(balance: LeaveBalance) -> bool:
    return balance.max_balance is not None and balance.current_balance >= balance.max_balance


def available_accrual_capacity(balance: LeaveBalance) -> Decimal | None:
    """Room left below the maximum, or None when the balance is uncapped."""
    if balance.max_balance is None:
        return None
    return max(_ZERO, balance.max_balance - balance.current_balance)


def _cap(balance: LeaveBalance, amount: Decimal) -> Decimal:
    if balance.max_balance is not None:
        return min(amount, balance.max_balance)
    return amount


def _ensure_open(balance: LeaveBalance) -> None:
    if is_closed(balance):
        msg = f"Leave balance {balance.id} was closed on {balance.closed_on}"
        raise BusinessRuleError(msg)


def _ensure_positive(amount: Decimal, what: str) -> None:
    if amount <= 0:
        msg = f"{what} amount must be positive"
        raise BusinessRuleError(msg)


# ---------------------------------------------------------------------------
# Balance transitions
# ---------------------------------------------------------------------------


def apply_accrual(balance: LeaveBalance, amount: Decimal, accrual_date: date) -> LeaveBalance:
    """Credit ``amount``; anything above ``max_balance`` is silently dropped."""
    _ensure_open(balance)
    amount = Decimal(amount)
    _ensure_positive(amount, "Accrual")

    new_balance = _cap(balance, balance.current_balance + amount)
    if new_balance < balance.current_balance + amount:
        logger.info(
            "Accrual on balance %s capped at maximum %s (requested +%s)", balance.id, balance.max_balance, amount
        )
    return balance.evolve(
        current_balance=new_balance,
        last_accrual_date=accrual_date,
        year_to_date_accrued=balance.year_to_date_accrued + amount,
    )


def apply_usage(balance: LeaveBalance, amount: Decimal) -> LeaveBalance:
    """Debit ``amount``. Using exactly the current balance leaves zero."""
    _ensure_open(balance)
    amount = Decimal(amount)
    _ensure_positive(amount, "Usage")
    if not has_sufficient_balance(balance, amount):
        raise InsufficientBalanceError(requested=amount, available=balance.current_balance)

    return balance.evolve(
        current_balance=balance.current_balance - amount,
        year_to_date_used=balance.year_to_date_used + amount,
    )


def apply_adjustment(balance: LeaveBalance, amount: Decimal) -> LeaveBalance:
    """Add a signed correction, floored at zero and capped at the maximum.

    Year-to-date counters are not touched.
    """
    _ensure_open(balance)
    new_balance = _cap(balance, max(_ZERO, balance.current_balance + Decimal(amount)))
    return balance.evolve(current_balance=new_balance)


def apply_transaction(balance: LeaveBalance, txn: AccrualTransaction) -> LeaveBalance:
    """Apply one ledger line to the snapshot it was posted against.

    A CARRYOVER line sets the opening balance of a new year: the balance
    becomes the carried amount and year-to-date counters reset.
    """
    if txn.leave_balance_id != balance.id:
        msg = f"Transaction {txn.id} belongs to balance {txn.leave_balance_id}, not {balance.id}"
        raise BusinessRuleError(msg)

    match txn.transaction_type:
        case TransactionType.ACCRUAL:
            return apply_accrual(balance, txn.amount, txn.transaction_date)
        case TransactionType.USAGE:
            return apply_usage(balance, -txn.amount)
        case TransactionType.ADJUSTMENT:
            return apply_adjustment(balance, txn.amount)
        case TransactionType.CARRYOVER:
            _ensure_open(balance)
            return balance.evolve(
                current_balance=_cap(balance, txn.amount),
                year_to_date_used=_ZERO,
                year_to_date_accrued=_ZERO,
            )


def replay_transactions(opening: LeaveBalance, transactions: Iterable[AccrualTransaction]) -> LeaveBalance:
    """Fold an ordered ledger onto an opening snapshot."""
    balance = opening
    for txn in transactions:
        balance = apply_transaction(balance, txn)
    return balance


# ---------------------------------------------------------------------------
# Projection and scheduling
# ---------------------------------------------------------------------------


def calculate_projected_balance(balance: LeaveBalance, future_date: date) -> Decimal:
    """Balance expected on ``future_date`` at the current rate, capped at the maximum."""
    months = months_between(balance.last_accrual_date, future_date)
    projected_accrual = max(_ZERO, months * _PERIODS_PER_MONTH[balance.accrual_period] * balance.accrual_rate)
    return round_hours(_cap(balance, balance.current_balance + projected_accrual))


def calculate_accrual_for_period(balance: LeaveBalance, start: date, end: date) -> Decimal:
    """Amount the balance's rate earns between two dates. Never negative."""
    days = (end - start).days
    match balance.accrual_period:
        case AccrualPeriod.MONTHLY:
            amount = months_between(start, end) * balance.accrual_rate
        case AccrualPeriod.BIWEEKLY | AccrualPeriod.PER_PAY_PERIOD:
            periods = (Decimal(days) / _BIWEEKLY_DAYS).to_integral_value(rounding=ROUND_FLOOR)
            amount = periods * balance.accrual_rate
        case AccrualPeriod.ANNUAL:
            amount = Decimal(days) / _DAYS_PER_YEAR * balance.accrual_rate
    return round_hours(max(_ZERO, amount))


def calculate_next_accrual_date(balance: LeaveBalance) -> date:
    last = balance.last_accrual_date
    match balance.accrual_period:
        case AccrualPeriod.MONTHLY:
            return add_months(last, 1)
        case AccrualPeriod.BIWEEKLY | AccrualPeriod.PER_PAY_PERIOD:
            return last + timedelta(days=_BIWEEKLY_DAYS)
        case AccrualPeriod.ANNUAL:
            return add_months(last, 12)


def is_accrual_due(balance: LeaveBalance, on: date | None = None) -> bool:
    return (on or clock.today()) >= calculate_next_accrual_date(balance)


# ---------------------------------------------------------------------------
# Year end
# ---------------------------------------------------------------------------


def calculate_carryover_amount(balance: LeaveBalance) -> Decimal:
    if balance.carryover_limit is None:
        return balance.current_balance
    return min(balance.current_balance, balance.carryover_limit)


def calculate_forfeiture(balance: LeaveBalance) -> Decimal:
    if balance.carryover_limit is None:
        return _ZERO
    return max(_ZERO, balance.current_balance - balance.carryover_limit)


def apply_year_end_carryover(balance: LeaveBalance, new_year_date: date) -> LeaveBalance:
    """Open next year's snapshot holding the carried amount.

    The prior snapshot is left as it was so its ledger stays intact; close
    it with ``close_balance``.
    """
    _ensure_open(balance)
    if new_year_date <= balance.effective_date:
        msg = "Carryover date must be after the balance's effective date"
        raise BusinessRuleError(msg)

    carried = balance.evolve(
        id=uuid.uuid4(),
        current_balance=calculate_carryover_amount(balance),
        year_to_date_used=_ZERO,
        year_to_date_accrued=_ZERO,
        effective_date=new_year_date,
        version=1,
    )
    logger.info(
        "Balance %s carried %s into %s as %s (forfeited %s)",
        balance.id,
        carried.current_balance,
        new_year_date,
        carried.id,
        calculate_forfeiture(balance),
    )
    return carried


def close_balance(balance: LeaveBalance, closed_on: date) -> LeaveBalance:
    """Mark a snapshot as superseded. Closed balances accept no further activity."""
    _ensure_open(balance)
    return balance.evolve(closed_on=closed_on)


def balance_summary(balance: LeaveBalance, on: date | None = None) -> BalanceSummary:
    today = on or clock.today()
    next_accrual = calculate_next_accrual_date(balance)
    capacity = available_accrual_capacity(balance)
    next_amount = balance.accrual_rate if capacity is None else min(balance.accrual_rate, capacity)
    return BalanceSummary(
        balance_id=balance.id,
        current=balance.current_balance,
        year_to_date_used=balance.year_to_date_used,
        year_to_date_accrued=balance.year_to_date_accrued,
        projected_end_of_year=calculate_projected_balance(balance, date(today.year, 12, 31)),
        available_for_use=balance.current_balance,
        next_accrual_date=next_accrual,
        next_accrual_amount=next_amount,
        is_at_maximum=is_at_maximum(balance),
    )
