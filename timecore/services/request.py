"""Leave request lifecycle and the checks run before a request is accepted."""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable
from datetime import date, timedelta
from decimal import Decimal
from typing import TYPE_CHECKING

from timecore import clock
from timecore.config import get_settings
from timecore.exceptions import BusinessRuleError
from timecore.models.enums import ConflictType, RequestStatus
from timecore.models.request import BlackoutPeriod, LeaveRequest, LeaveType
from timecore.schemas.request import BlackoutCheck, DateConflict, SubmissionCheck, ValidationResult
from timecore.services.balance import has_sufficient_balance
from timecore.services.policy import usage_restrictions
from timecore.services.policy_engine import validate_policy_usage

if TYPE_CHECKING:
    from datetime import datetime

    from timecore.models.balance import LeaveBalance
    from timecore.models.policy import EmployeeGroupData, LeavePolicy

logger = logging.getLogger(__name__)

_INACTIVE_STATUSES = frozenset({RequestStatus.DENIED, RequestStatus.CANCELLED})

# ---------------------------------------------------------------------------
# State machine
# ---------------------------------------------------------------------------


def create_leave_request(
    employee_id: uuid.UUID,
    leave_type_id: str,
    start_date: date,
    end_date: date,
    total_days: Decimal,
    total_hours: Decimal,
    *,
    reason: str | None = None,
    attachments: Iterable[str] = (),
    submitted_at: datetime | None = None,
) -> LeaveRequest:
    """Submit a new PENDING request."""
    request = LeaveRequest.create(
        employee_id=employee_id,
        leave_type_id=leave_type_id,
        start_date=start_date,
        end_date=end_date,
        total_days=total_days,
        total_hours=total_hours,
        reason=reason,
        status=RequestStatus.PENDING,
        submitted_at=submitted_at or clock.now(),
        attachments=tuple(attachments),
    )
    logger.info(
        "Leave request %s submitted by %s for %s..%s", request.id, employee_id, start_date, end_date
    )
    return request


def _ensure_pending(request: LeaveRequest, action: str) -> None:
    if request.status != RequestStatus.PENDING:
        msg = f"Cannot {action} request with status {request.status}"
        raise BusinessRuleError(msg)


def approve_request(
    request: LeaveRequest,
    reviewer_id: uuid.UUID,
    notes: str | None = None,
    at: datetime | None = None,
) -> LeaveRequest:
    _ensure_pending(request, "approve")
    approved = request.evolve(
        status=RequestStatus.APPROVED,
        reviewed_by=reviewer_id,
        reviewed_at=at or clock.now(),
        review_notes=notes,
    )
    logger.info("Leave request %s approved by %s", request.id, reviewer_id)
    return approved


def deny_request(
    request: LeaveRequest,
    reviewer_id: uuid.UUID,
    notes: str,
    at: datetime | None = None,
) -> LeaveRequest:
    """Deny a pending request. A reason is mandatory."""
    _ensure_pending(request, "deny")
    if not notes or not notes.strip():
        msg = "Denied requests must have review notes explaining the reason"
        raise BusinessRuleError(msg)
    denied = request.evolve(
        status=RequestStatus.DENIED,
        reviewed_by=reviewer_id,
        reviewed_at=at or clock.now(),
        review_notes=notes,
    )
    logger.info("Leave request %s denied by %s", request.id, reviewer_id)
    return denied


def cancel_request(request: LeaveRequest) -> LeaveRequest:
    """Withdraw a pending or approved request before it starts."""
    if request.status not in (RequestStatus.PENDING, RequestStatus.APPROVED):
        msg = f"Cannot cancel request with status {request.status}"
        raise BusinessRuleError(msg)
    if clock.today() >= request.start_date:
        msg = "Cannot cancel a request whose start date has passed"
        raise BusinessRuleError(msg)

    cancelled = request.evolve(status=RequestStatus.CANCELLED)
    logger.info("Leave request %s cancelled", request.id)
    return cancelled


# ---------------------------------------------------------------------------
# Date checks
# ---------------------------------------------------------------------------


def _ranges_intersect(start_a: date, end_a: date, start_b: date, end_b: date) -> bool:
    return start_a <= end_b and start_b <= end_a


def _conflict_type(request: LeaveRequest, other: LeaveRequest, adjacency_days: int) -> ConflictType | None:
    if request.start_date == other.start_date and request.end_date == other.end_date:
        return ConflictType.SAME_DATES
    if _ranges_intersect(request.start_date, request.end_date, other.start_date, other.end_date):
        return ConflictType.OVERLAP
    gap = max((other.start_date - request.end_date).days, (request.start_date - other.end_date).days)
    if 0 < gap <= adjacency_days:
        return ConflictType.ADJACENT
    return None


def check_date_conflict(request: LeaveRequest, existing: Iterable[LeaveRequest]) -> list[DateConflict]:
    """Existing requests of the same employee that collide with ``request``.

    The request itself and denied or cancelled requests never conflict.
    """
    adjacency_days = get_settings().adjacency_days
    conflicts = []
    for other in existing:
        if other.id == request.id or other.employee_id != request.employee_id or other.status in _INACTIVE_STATUSES:
            continue
        conflict_type = _conflict_type(request, other, adjacency_days)
        if conflict_type is not None:
            conflicts.append(DateConflict(request_id=other.id, conflict_type=conflict_type))
    return conflicts


def is_in_blackout_period(request: LeaveRequest, periods: Iterable[BlackoutPeriod]) -> BlackoutCheck:
    conflicting = [
        period
        for period in periods
        if _ranges_intersect(request.start_date, request.end_date, period.start_date, period.end_date)
    ]
    return BlackoutCheck(is_blocked=bool(conflicting), conflicting_periods=conflicting)


def advance_notice_days(request: LeaveRequest) -> int:
    """Whole days between submission and the first day of leave."""
    return (request.start_date - request.submitted_at.date()).days


def validate_advance_notice(request: LeaveRequest, required_days: int) -> bool:
    return advance_notice_days(request) >= required_days


def validate_max_consecutive_days(request: LeaveRequest, max_days: int) -> bool:
    return request.total_days <= max_days


def calculate_business_days(request: LeaveRequest) -> int:
    """Weekdays from start to end, both inclusive."""
    count = 0
    current = request.start_date
    while current <= request.end_date:
        if current.weekday() < 5:
            count += 1
        current += timedelta(days=1)
    return count


# ---------------------------------------------------------------------------
# Leave type rules
# ---------------------------------------------------------------------------


def validate_against_leave_type(request: LeaveRequest, leave_type: LeaveType) -> ValidationResult:
    violations: list[str] = []

    if leave_type.max_consecutive_days is not None and not validate_max_consecutive_days(
        request, leave_type.max_consecutive_days
    ):
        violations.append(
            f"Leave request exceeds maximum consecutive days limit of {leave_type.max_consecutive_days}"
        )
    if leave_type.advance_notice_days and not validate_advance_notice(request, leave_type.advance_notice_days):
        violations.append(
            f"Leave request does not meet advance notice requirement of {leave_type.advance_notice_days} days"
        )
    if not leave_type.allows_partial_days and request.total_hours % get_settings().hours_per_day != 0:
        violations.append("This leave type does not allow partial day requests")
    if not leave_type.is_active:
        violations.append("This leave type is currently inactive")

    return ValidationResult(is_valid=not violations, violations=violations)


def can_leave_type_be_used(leave_type: LeaveType, accrual_balance: Decimal | None = None) -> bool:
    """Whether an employee holding ``accrual_balance`` may request this leave type at all."""
    if not leave_type.is_active:
        return False
    if leave_type.accrual_based and (accrual_balance is None or accrual_balance <= 0):
        return False
    return True


# ---------------------------------------------------------------------------
# Submission
# ---------------------------------------------------------------------------


def evaluate_submission(
    request: LeaveRequest,
    leave_type: LeaveType,
    existing: Iterable[LeaveRequest] = (),
    *,
    blackout_periods: Iterable[BlackoutPeriod] = (),
    balance: LeaveBalance | None = None,
    policy: LeavePolicy | None = None,
    employee: EmployeeGroupData | None = None,
) -> SubmissionCheck:
    """Run every check a new request must pass and report all findings at once.

    Adjacent requests and advance-notice shortfalls under a policy are
    warnings; everything else is a violation.
    """
    result = validate_against_leave_type(request, leave_type)
    violations = list(result.violations)
    warnings = list(result.warnings)

    conflicts = check_date_conflict(request, existing)
    for conflict in conflicts:
        if conflict.conflict_type == ConflictType.ADJACENT:
            warnings.append(f"Leave request is adjacent to existing request {conflict.request_id}")
        else:
            violations.append(f"Leave request overlaps with existing request {conflict.request_id}")

    periods = list(blackout_periods)
    if policy is not None:
        periods.extend(usage_restrictions(policy).blackout_periods)
    blackout = is_in_blackout_period(request, periods)
    for period in blackout.conflicting_periods:
        violations.append(
            f"Leave request falls within blackout period {period.start_date}..{period.end_date}"
        )

    if leave_type.accrual_based:
        if balance is None:
            violations.append("No leave balance found for this leave type")
        elif not has_sufficient_balance(balance, request.total_hours):
            violations.append(
                f"Insufficient leave balance. Available: {balance.current_balance} hours, "
                f"Requested: {request.total_hours} hours"
            )

    if policy is not None and employee is not None:
        usage = validate_policy_usage(policy, employee, request.total_days, request.start_date)
        violations.extend(usage.violations)
        warnings.extend(usage.warnings)

    if violations:
        logger.debug("Leave request %s failed %d submission checks", request.id, len(violations))
    return SubmissionCheck(
        is_valid=not violations,
        violations=violations,
        warnings=warnings,
        conflicts=conflicts,
        blackout=blackout,
        business_days=calculate_business_days(request),
    )
