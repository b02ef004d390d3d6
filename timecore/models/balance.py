# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Self

from pydantic import AwareDatetime, Field, field_validator, model_validator

from timecore import clock
from timecore.exceptions import BusinessRuleError, Violation
from timecore.models.base import DomainModel, _uuid_factory
from timecore.models.enums import AccrualPeriod, TransactionType


def _now() -> datetime:
    return clock.now()


class AccrualTransaction(DomainModel):
    """Append-only ledger line against a leave balance. ``amount`` is signed."""

    id: uuid.UUID = Field(default_factory=_uuid_factory)
    leave_balance_id: uuid.UUID
    transaction_type: TransactionType
    amount: Decimal
    description: str = Field(min_length=1, max_length=500)
    transaction_date: date
    related_request_id: uuid.UUID | None = None
    created_by: uuid.UUID
    created_at: AwareDatetime = Field(default_factory=_now)

    @field_validator("description")
    @classmethod
    def _strip_description(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            msg = "Description cannot be blank"
            raise ValueError(msg)
        return stripped

    @model_validator(mode="after")
    def _validate_business_rules(self) -> Self:
        violations = check_accrual_transaction(self)
        if violations:
            raise BusinessRuleError.from_violations(violations)
        return self


def check_accrual_transaction(txn: AccrualTransaction) -> list[Violation]:
    violations: list[Violation] = []
    if txn.transaction_type == TransactionType.USAGE and txn.amount >= 0:
        violations.append(
            Violation(field="amount", rule="usage_sign", message="Usage transactions must have negative amounts")
        )
    if txn.transaction_type == TransactionType.ACCRUAL and txn.amount <= 0:
        violations.append(
            Violation(field="amount", rule="accrual_sign", message="Accrual transactions must have positive amounts")
        )
    if txn.transaction_type == TransactionType.CARRYOVER and txn.amount < 0:
        violations.append(
            Violation(field="amount", rule="carryover_sign", message="Carryover transactions cannot be negative")
        )
    if txn.transaction_date > clock.today():
        violations.append(
            Violation(
                field="transaction_date", rule="not_future", message="Transaction date cannot be in the future"
            )
        )
    return violations


class LeaveBalance(DomainModel):
    """Leave entitlement for one employee, leave type and year.

    ``closed_on`` is set when year-end rollover replaces this snapshot; a
    closed balance accepts no further ledger activity. ``version`` is owned
    by the balance store and used for optimistic write checks.
    """

    id: uuid.UUID = Field(default_factory=_uuid_factory)
    employee_id: uuid.UUID
    leave_type_id: str = Field(min_length=1, max_length=50)
    current_balance: Decimal = Field(ge=0)
    accrual_rate: Decimal = Field(ge=0)
    accrual_period: AccrualPeriod
    max_balance: Decimal | None = Field(default=None, ge=0)
    carryover_limit: Decimal | None = Field(default=None, ge=0)
    last_accrual_date: date
    year_to_date_used: Decimal = Field(default=Decimal("0"), ge=0)
    year_to_date_accrued: Decimal = Field(default=Decimal("0"), ge=0)
    effective_date: date
    closed_on: date | None = None
    version: int = Field(default=1, ge=1)

    @model_validator(mode="after")
    def _validate_business_rules(self) -> Self:
        violations = check_leave_balance(self)
        if violations:
            raise BusinessRuleError.from_violations(violations)
        return self


def check_leave_balance(balance: LeaveBalance) -> list[Violation]:
    violations: list[Violation] = []
    if balance.max_balance is not None and balance.current_balance > balance.max_balance:
        violations.append(
            Violation(
                field="current_balance", rule="max_balance", message="Current balance cannot exceed maximum balance"
            )
        )
    if (
        balance.max_balance is not None
        and balance.carryover_limit is not None
        and balance.carryover_limit > balance.max_balance
    ):
        violations.append(
            Violation(
                field="carryover_limit",
                rule="carryover_limit",
                message="Carryover limit cannot exceed maximum balance",
            )
        )
    if balance.effective_date > clock.today():
        violations.append(
            Violation(field="effective_date", rule="not_future", message="Effective date cannot be in the future")
        )
    if balance.closed_on is not None and balance.closed_on < balance.effective_date:
        violations.append(
            Violation(field="closed_on", rule="chronology", message="Balance cannot close before its effective date")
        )
    return violations
