# ruff: noqa: TC001, TC003
from __future__ import annotations

import uuid
from decimal import Decimal

from pydantic import BaseModel

from timecore.models.policy import LeavePolicy, OvertimePolicy
from timecore.models.request import BlackoutPeriod

# ---------------------------------------------------------------------------
# Applicability
# ---------------------------------------------------------------------------


class ApplicabilityResult(BaseModel):
    """Whether a policy applies to an employee and, if so, whether they qualify.

    ``reasons`` lists every failing eligibility rule, not just the first.
    """

    is_applicable: bool
    is_eligible: bool
    reasons: list[str] = []


class IneligiblePolicy(BaseModel):
    policy: LeavePolicy
    reasons: list[str]


class ApplicablePolicies(BaseModel):
    """Leave policies whose group matches the employee, split by eligibility."""

    applicable: list[LeavePolicy] = []
    ineligible: list[IneligiblePolicy] = []


class EmployeeGroupPolicies(BaseModel):
    leave_policies: list[LeavePolicy] = []
    overtime_policy: OvertimePolicy | None = None


class UsageRestrictions(BaseModel):
    """Active usage rules of a leave policy, parsed by type."""

    max_consecutive_days: int | None = None
    advance_notice_days: int | None = None
    minimum_increment: Decimal | None = None
    blackout_periods: list[BlackoutPeriod] = []


class UsageValidationResult(BaseModel):
    """Advance-notice shortfalls are warnings; everything else is a violation."""

    is_valid: bool
    violations: list[str] = []
    warnings: list[str] = []


# ---------------------------------------------------------------------------
# Configuration analysis
# ---------------------------------------------------------------------------


class PolicyConflict(BaseModel):
    first_policy_id: uuid.UUID
    second_policy_id: uuid.UUID
    leave_type_id: str
    reason: str


class GroupCoverage(BaseModel):
    employee_id: uuid.UUID
    covered_leave_types: list[str]


class CoverageGap(BaseModel):
    employee_id: uuid.UUID
    uncovered_leave_types: list[str]


class ConfigurationReport(BaseModel):
    conflicts: list[PolicyConflict] = []
    coverage: list[GroupCoverage] = []
    gaps: list[CoverageGap] = []

    @property
    def is_clean(self) -> bool:
        return not self.conflicts and not self.gaps


class IneligibleEmployee(BaseModel):
    employee_id: uuid.UUID
    reasons: list[str]


class PolicyImpact(BaseModel):
    """Who a leave policy would reach if adopted as configured."""

    policy_id: uuid.UUID
    affected_employee_ids: list[uuid.UUID] = []
    eligible_employee_ids: list[uuid.UUID] = []
    ineligible_employees: list[IneligibleEmployee] = []
