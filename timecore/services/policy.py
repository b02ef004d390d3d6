"""Policy rule evaluation: effectiveness, group matching, eligibility and usage rules."""

from __future__ import annotations

from typing import TYPE_CHECKING

from timecore import clock
from timecore.models.enums import EligibilityRuleType, RuleOperator, UsageRuleType
from timecore.models.overtime import OvertimeRules
from timecore.models.policy import (
    AccrualRule,
    EligibilityRule,
    EmployeeGroupData,
    LeavePolicy,
    OvertimePolicy,
    parse_blackout_periods,
    parse_decimal,
)
from timecore.schemas.policy import ApplicabilityResult, UsageRestrictions

if TYPE_CHECKING:
    from datetime import date

NOT_EFFECTIVE = "Policy is not currently effective"
NOT_IN_GROUP = "Employee is not in an applicable group for this policy"

# ---------------------------------------------------------------------------
# Eligibility rules
# ---------------------------------------------------------------------------


def employee_attribute(rule: EligibilityRule, employee: EmployeeGroupData) -> str | int | None:
    """The employee value a rule compares against, or None when it is missing."""
    match rule.rule_type:
        case EligibilityRuleType.TENURE:
            return employee.tenure_days
        case EligibilityRuleType.EMPLOYMENT_TYPE:
            return employee.employment_type
        case EligibilityRuleType.DEPARTMENT:
            return employee.department_id
        case EligibilityRuleType.CUSTOM:
            return employee.attributes.get(rule.attribute or "")


def evaluate_rule(rule: EligibilityRule, employee_value: str | int | None) -> bool:
    """Apply the rule's operator. A missing employee value never satisfies a rule."""
    if employee_value is None:
        return False
    text = str(employee_value).strip()

    match rule.operator:
        case RuleOperator.EQUALS:
            return text == rule.value.strip()
        case RuleOperator.GREATER_THAN | RuleOperator.LESS_THAN:
            actual, expected = parse_decimal(text), parse_decimal(rule.value)
            if actual is None or expected is None:
                return False
            return actual > expected if rule.operator == RuleOperator.GREATER_THAN else actual < expected
        case RuleOperator.IN:
            return text in _value_list(rule.value)
        case RuleOperator.NOT_IN:
            return text not in _value_list(rule.value)
    return False


def _value_list(value: str) -> list[str]:
    return [item.strip() for item in value.split(",")]


# ---------------------------------------------------------------------------
# Applicability
# ---------------------------------------------------------------------------


def is_policy_effective(policy: LeavePolicy | OvertimePolicy, on: date | None = None) -> bool:
    """Active and inside its effective window (both ends inclusive)."""
    day = on or clock.today()
    if not policy.is_active:
        return False
    if day < policy.effective_date:
        return False
    return policy.end_date is None or day <= policy.end_date


def matches_employee_group(policy: LeavePolicy | OvertimePolicy, employee: EmployeeGroupData) -> bool:
    """An empty group list is universal. A group matches by department, employment
    type, a case-insensitive job-title fragment or explicit membership.
    """
    if not policy.applicable_groups:
        return True
    for group in policy.applicable_groups:
        if employee.department_id == group or employee.employment_type == group:
            return True
        if employee.job_title and group.lower() in employee.job_title.lower():
            return True
        if group in employee.groups:
            return True
    return False


def evaluate_eligibility(policy: LeavePolicy | OvertimePolicy, employee: EmployeeGroupData) -> list[str]:
    """Reasons for every failing eligibility rule. Empty means eligible."""
    if isinstance(policy, OvertimePolicy):
        return []
    return [
        f"Employee does not meet eligibility requirement: {rule.description}"
        for rule in policy.eligibility_rules
        if not evaluate_rule(rule, employee_attribute(rule, employee))
    ]


def is_leave_policy_applicable(
    policy: LeavePolicy,
    employee: EmployeeGroupData,
    on: date | None = None,
) -> ApplicabilityResult:
    if not is_policy_effective(policy, on):
        return ApplicabilityResult(is_applicable=False, is_eligible=False, reasons=[NOT_EFFECTIVE])
    if not matches_employee_group(policy, employee):
        return ApplicabilityResult(is_applicable=False, is_eligible=False, reasons=[NOT_IN_GROUP])

    reasons = evaluate_eligibility(policy, employee)
    return ApplicabilityResult(is_applicable=True, is_eligible=not reasons, reasons=reasons)


def is_overtime_policy_applicable(
    policy: OvertimePolicy,
    employee: EmployeeGroupData,
    on: date | None = None,
) -> ApplicabilityResult:
    if not is_policy_effective(policy, on):
        return ApplicabilityResult(is_applicable=False, is_eligible=False, reasons=[NOT_EFFECTIVE])
    if not matches_employee_group(policy, employee):
        return ApplicabilityResult(is_applicable=False, is_eligible=False, reasons=[NOT_IN_GROUP])
    return ApplicabilityResult(is_applicable=True, is_eligible=True)


# ---------------------------------------------------------------------------
# Rule extraction
# ---------------------------------------------------------------------------


def usage_restrictions(policy: LeavePolicy) -> UsageRestrictions:
    """Active usage rules parsed by type. A later rule of the same type wins,
    except blackout windows, which accumulate.
    """
    restrictions = UsageRestrictions()
    for rule in policy.usage_rules:
        if not rule.is_active:
            continue
        match rule.rule_type:
            case UsageRuleType.MAX_CONSECUTIVE_DAYS:
                restrictions.max_consecutive_days = int(parse_decimal(rule.value) or 0)
            case UsageRuleType.ADVANCE_NOTICE:
                restrictions.advance_notice_days = int(parse_decimal(rule.value) or 0)
            case UsageRuleType.MINIMUM_INCREMENT:
                restrictions.minimum_increment = parse_decimal(rule.value)
            case UsageRuleType.BLACKOUT_PERIOD:
                restrictions.blackout_periods.extend(parse_blackout_periods(rule.value))
    return restrictions


def applicable_accrual_rule(policy: LeavePolicy, employee: EmployeeGroupData | None = None) -> AccrualRule | None:
    """First accrual rule whose waiting period the employee has served.

    Without an employee the first rule is returned.
    """
    for rule in policy.accrual_rules:
        if employee is None or employee.tenure_days >= (rule.waiting_period_days or 0):
            return rule
    return None


def overtime_rules_for(policy: OvertimePolicy) -> OvertimeRules:
    """Engine configuration taken from an overtime policy."""
    return OvertimeRules.create(
        daily_overtime_threshold=policy.daily_overtime_threshold,
        weekly_overtime_threshold=policy.weekly_overtime_threshold,
        overtime_multiplier=policy.overtime_multiplier,
        double_time_threshold=policy.double_time_threshold,
        double_time_multiplier=policy.double_time_multiplier,
    )
