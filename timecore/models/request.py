# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Self

from pydantic import AwareDatetime, Field, field_validator, model_validator

from timecore import clock
from timecore.config import get_settings
from timecore.exceptions import BusinessRuleError, Violation
from timecore.models.base import DomainModel, _uuid_factory
from timecore.models.enums import RequestStatus


def _now() -> datetime:
    return clock.now()


class LeaveType(DomainModel):
    """Reference data describing a kind of leave."""

    id: uuid.UUID = Field(default_factory=_uuid_factory)
    name: str = Field(min_length=1, max_length=100)
    code: str = Field(min_length=1, max_length=10, pattern=r"^[A-Za-z0-9_]+$")
    paid: bool
    requires_approval: bool
    max_consecutive_days: int | None = Field(default=None, ge=1)
    advance_notice_days: int | None = Field(default=None, ge=0)
    allows_partial_days: bool
    accrual_based: bool
    description: str | None = Field(default=None, max_length=500)
    is_active: bool = True

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        return value.strip()

    @field_validator("code")
    @classmethod
    def _upper_code(cls, value: str) -> str:
        return value.strip().upper()


class BlackoutPeriod(DomainModel):
    """Inclusive date window during which leave is disallowed or flagged."""

    start_date: date
    end_date: date
    description: str = Field(default="", max_length=500)

    @model_validator(mode="after")
    def _validate_window(self) -> Self:
        if self.end_date < self.start_date:
            raise BusinessRuleError(
                "Blackout period cannot end before it starts",
                [Violation(field="end_date", rule="chronology", message="Blackout period cannot end before it starts")],
            )
        return self


class LeaveRequest(DomainModel):
    """A requested absence and its approval state."""

    id: uuid.UUID = Field(default_factory=_uuid_factory)
    employee_id: uuid.UUID
    leave_type_id: str = Field(min_length=1, max_length=50)
    start_date: date
    end_date: date
    total_days: Decimal = Field(ge=0)
    total_hours: Decimal = Field(ge=0)
    reason: str | None = Field(default=None, max_length=1000)
    status: RequestStatus = RequestStatus.PENDING
    submitted_at: AwareDatetime = Field(default_factory=_now)
    reviewed_by: uuid.UUID | None = None
    reviewed_at: AwareDatetime | None = None
    review_notes: str | None = Field(default=None, max_length=1000)
    attachments: tuple[str, ...] = ()

    @model_validator(mode="after")
    def _validate_business_rules(self) -> Self:
        violations = check_leave_request(self)
        if violations:
            raise BusinessRuleError.from_violations(violations)
        return self


def check_leave_request(request: LeaveRequest) -> list[Violation]:
    """Business rules for a leave request.

    The past-date tolerance is measured from the submission time rather than
    from "now", so a stored request stays loadable after its start date.
    """
    violations: list[Violation] = []
    if request.start_date >= request.end_date:
        violations.append(
            Violation(field="end_date", rule="chronology", message="End date must be after start date")
        )

    tolerance = timedelta(days=get_settings().past_request_tolerance_days)
    if request.start_date < (request.submitted_at - tolerance).date():
        violations.append(
            Violation(field="start_date", rule="not_past", message="Leave request cannot be for past dates")
        )

    if request.total_days <= 0:
        violations.append(Violation(field="total_days", rule="positive", message="Total days must be positive"))
    if request.total_hours <= 0:
        violations.append(Violation(field="total_hours", rule="positive", message="Total hours must be positive"))

    if request.status in (RequestStatus.APPROVED, RequestStatus.DENIED) and (
        request.reviewed_by is None or request.reviewed_at is None
    ):
        violations.append(
            Violation(
                field="reviewed_by",
                rule="reviewer_required",
                message="Reviewed requests must have reviewer and review date",
            )
        )
    if request.status == RequestStatus.DENIED and not (request.review_notes and request.review_notes.strip()):
        violations.append(
            Violation(
                field="review_notes",
                rule="denial_notes",
                message="Denied requests must have review notes explaining the reason",
            )
        )
    return violations
