"""Policy application engine: matching policies to employees and analysing policy sets."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from decimal import Decimal
from itertools import combinations
from typing import TYPE_CHECKING

from timecore import clock
from timecore.config import get_settings
from timecore.exceptions import NotFoundError
from timecore.models.policy import EmployeeGroupData, LeavePolicy, OvertimePolicy
from timecore.schemas.policy import (
    ApplicablePolicies,
    ConfigurationReport,
    CoverageGap,
    EmployeeGroupPolicies,
    GroupCoverage,
    IneligibleEmployee,
    IneligiblePolicy,
    PolicyConflict,
    PolicyImpact,
    UsageValidationResult,
)
from timecore.services.employee import EmployeeDirectory, get_employee_directory
from timecore.services.policy import (
    evaluate_eligibility,
    is_leave_policy_applicable,
    is_overtime_policy_applicable,
    matches_employee_group,
    usage_restrictions,
)

if TYPE_CHECKING:
    import uuid
    from datetime import date

logger = logging.getLogger(__name__)


def specificity(policy: LeavePolicy) -> int:
    """Eligibility rules plus applicable groups. Higher means more targeted."""
    return len(policy.eligibility_rules) + len(policy.applicable_groups)


# ---------------------------------------------------------------------------
# Matching
# ---------------------------------------------------------------------------


def find_applicable_leave_policies(
    policies: Iterable[LeavePolicy],
    employee: EmployeeGroupData,
    leave_type_id: str | None = None,
    on: date | None = None,
) -> ApplicablePolicies:
    """Policies that apply to the employee, split into eligible and ineligible.

    Policies outside their window or the employee's groups are left out entirely.
    """
    result = ApplicablePolicies()
    for policy in policies:
        if leave_type_id is not None and policy.leave_type_id != leave_type_id:
            continue
        applicability = is_leave_policy_applicable(policy, employee, on)
        if applicability.is_applicable and applicability.is_eligible:
            result.applicable.append(policy)
        elif applicability.is_applicable:
            result.ineligible.append(IneligiblePolicy(policy=policy, reasons=applicability.reasons))
    return result


def find_best_leave_policy_match(
    policies: Iterable[LeavePolicy],
    employee: EmployeeGroupData,
    leave_type_id: str,
    on: date | None = None,
) -> LeavePolicy | None:
    """The most specific applicable policy; the earliest one wins a tie."""
    applicable = find_applicable_leave_policies(policies, employee, leave_type_id, on).applicable
    if not applicable:
        return None
    return max(applicable, key=specificity)


def find_applicable_overtime_policy(
    policies: Iterable[OvertimePolicy],
    employee: EmployeeGroupData,
    on: date | None = None,
) -> OvertimePolicy | None:
    """First overtime policy, in input order, that applies to the employee."""
    for policy in policies:
        if is_overtime_policy_applicable(policy, employee, on).is_applicable:
            return policy
    return None


def get_employee_group_policies(
    leave_policies: Iterable[LeavePolicy],
    overtime_policies: Iterable[OvertimePolicy],
    employee: EmployeeGroupData,
    on: date | None = None,
) -> EmployeeGroupPolicies:
    return EmployeeGroupPolicies(
        leave_policies=find_applicable_leave_policies(leave_policies, employee, on=on).applicable,
        overtime_policy=find_applicable_overtime_policy(overtime_policies, employee, on),
    )


# ---------------------------------------------------------------------------
# Usage
# ---------------------------------------------------------------------------


def validate_policy_usage(
    policy: LeavePolicy,
    employee: EmployeeGroupData,
    requested_days: Decimal | int,
    request_date: date | None = None,
) -> UsageValidationResult:
    """Check a request of ``requested_days`` starting ``request_date`` against the policy.

    Falling short of the advance notice is only a warning.
    """
    applicability = is_leave_policy_applicable(policy, employee)
    if not applicability.is_applicable or not applicability.is_eligible:
        return UsageValidationResult(is_valid=False, violations=applicability.reasons)

    violations: list[str] = []
    warnings: list[str] = []
    requested = Decimal(requested_days)
    restrictions = usage_restrictions(policy)

    if restrictions.max_consecutive_days and requested > restrictions.max_consecutive_days:
        violations.append(
            f"Requested {requested} days exceeds maximum consecutive days limit of "
            f"{restrictions.max_consecutive_days}"
        )
    if restrictions.minimum_increment and requested % restrictions.minimum_increment != 0:
        violations.append(f"Requested days must be in increments of {restrictions.minimum_increment}")
    if restrictions.advance_notice_days:
        notice = ((request_date or clock.today()) - clock.today()).days
        if notice < restrictions.advance_notice_days:
            warnings.append(f"Advance notice of {restrictions.advance_notice_days} days is recommended")

    return UsageValidationResult(is_valid=not violations, violations=violations, warnings=warnings)


# ---------------------------------------------------------------------------
# Configuration analysis
# ---------------------------------------------------------------------------


def _groups_overlap(first: LeavePolicy, second: LeavePolicy) -> bool:
    if not first.applicable_groups or not second.applicable_groups:
        return True
    return bool(set(first.applicable_groups) & set(second.applicable_groups))


def find_policy_conflicts(policies: Sequence[LeavePolicy]) -> list[PolicyConflict]:
    """Pairs of policies for the same leave type whose groups overlap.

    A policy without groups is universal and overlaps every other.
    """
    conflicts = []
    for first, second in combinations(policies, 2):
        if first.leave_type_id == second.leave_type_id and _groups_overlap(first, second):
            conflicts.append(
                PolicyConflict(
                    first_policy_id=first.id,
                    second_policy_id=second.id,
                    leave_type_id=first.leave_type_id,
                    reason=(
                        f"Both policies apply to the same leave type ({first.leave_type_id}) "
                        "and have overlapping groups"
                    ),
                )
            )
    return conflicts


def validate_policy_configuration(
    policies: Sequence[LeavePolicy],
    employees: Iterable[EmployeeGroupData],
    on: date | None = None,
) -> ConfigurationReport:
    """Conflicting policy pairs, plus per-employee coverage of the expected leave types."""
    expected = get_settings().expected_leave_types
    report = ConfigurationReport(conflicts=find_policy_conflicts(policies))

    for employee in employees:
        applicable = find_applicable_leave_policies(policies, employee, on=on).applicable
        covered = list(dict.fromkeys(policy.leave_type_id for policy in applicable))
        report.coverage.append(GroupCoverage(employee_id=employee.employee_id, covered_leave_types=covered))

        uncovered = [leave_type for leave_type in expected if leave_type not in covered]
        if uncovered:
            report.gaps.append(CoverageGap(employee_id=employee.employee_id, uncovered_leave_types=uncovered))

    logger.debug(
        "Policy configuration: %d conflicts, %d coverage gaps", len(report.conflicts), len(report.gaps)
    )
    return report


def calculate_policy_impact(policy: LeavePolicy, employees: Iterable[EmployeeGroupData]) -> PolicyImpact:
    """Who the policy reaches by group, and which of them qualify.

    The effective window is not considered, so a policy can be assessed
    before it takes effect.
    """
    impact = PolicyImpact(policy_id=policy.id)
    for employee in employees:
        if not matches_employee_group(policy, employee):
            continue
        impact.affected_employee_ids.append(employee.employee_id)
        reasons = evaluate_eligibility(policy, employee)
        if reasons:
            impact.ineligible_employees.append(IneligibleEmployee(employee_id=employee.employee_id, reasons=reasons))
        else:
            impact.eligible_employee_ids.append(employee.employee_id)
    return impact


# ---------------------------------------------------------------------------
# Directory-backed helpers
# ---------------------------------------------------------------------------


def resolve_employee_policies(
    employee_id: uuid.UUID,
    leave_policies: Iterable[LeavePolicy],
    overtime_policies: Iterable[OvertimePolicy],
    directory: EmployeeDirectory | None = None,
    on: date | None = None,
) -> EmployeeGroupPolicies:
    """Look the employee up in the directory and return the policies that apply."""
    if directory is None:
        directory = get_employee_directory()
    employee = directory.get_employee(employee_id)
    if employee is None:
        msg = f"Employee {employee_id} not found"
        raise NotFoundError(msg)
    return get_employee_group_policies(leave_policies, overtime_policies, employee, on)


def analyze_policy_adoption(policy: LeavePolicy, directory: EmployeeDirectory | None = None) -> PolicyImpact:
    """Impact of a policy across every employee in the directory."""
    if directory is None:
        directory = get_employee_directory()
    impact = calculate_policy_impact(policy, directory.list_employees())
    logger.info(
        "Policy %s would reach %d employees (%d eligible)",
        policy.id,
        len(impact.affected_employee_ids),
        len(impact.eligible_employee_ids),
    )
    return impact
