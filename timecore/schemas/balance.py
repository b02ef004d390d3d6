# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import date
from decimal import Decimal

from pydantic import BaseModel

from timecore.models.enums import TransactionType


class BalanceSummary(BaseModel):
    """Snapshot of a leave balance with end-of-year projection."""

    balance_id: uuid.UUID
    current: Decimal
    year_to_date_used: Decimal
    year_to_date_accrued: Decimal
    projected_end_of_year: Decimal
    available_for_use: Decimal
    next_accrual_date: date
    next_accrual_amount: Decimal
    is_at_maximum: bool


class TransactionSummary(BaseModel):
    """Totals of a ledger, grouped by transaction type."""

    count: int
    net_amount: Decimal
    totals: dict[TransactionType, Decimal]
