# ruff: noqa: TC003
from __future__ import annotations

import uuid

from pydantic import BaseModel

from timecore.models.enums import ConflictType
from timecore.models.request import BlackoutPeriod


class ValidationResult(BaseModel):
    """Outcome of a non-raising rule check."""

    is_valid: bool
    violations: list[str] = []
    warnings: list[str] = []


class DateConflict(BaseModel):
    """One existing request that collides with a candidate request."""

    request_id: uuid.UUID
    conflict_type: ConflictType


class BlackoutCheck(BaseModel):
    is_blocked: bool
    conflicting_periods: list[BlackoutPeriod] = []


class SubmissionCheck(BaseModel):
    """Everything that stands between a leave request and submission."""

    is_valid: bool
    violations: list[str] = []
    warnings: list[str] = []
    conflicts: list[DateConflict] = []
    blackout: BlackoutCheck
    business_days: int
