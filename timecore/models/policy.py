# ruff: noqa: TC003
from __future__ import annotations

import uuid
from collections.abc import Mapping
from datetime import date
from decimal import Decimal, InvalidOperation
from types import MappingProxyType
from typing import Annotated, Any, Literal, Self

from pydantic import AfterValidator, BeforeValidator, Field, PlainSerializer, TypeAdapter, model_validator
from pydantic import ValidationError as PydanticValidationError

from timecore.exceptions import BusinessRuleError, ValidationError, Violation
from timecore.models.base import DomainModel, _uuid_factory
from timecore.models.enums import (
    AccrualPeriod,
    EligibilityRuleType,
    RuleOperator,
    UsageRuleType,
)
from timecore.models.overtime import check_overtime_thresholds
from timecore.models.request import BlackoutPeriod


def _coerce_rule_value(value: Any) -> Any:
    # Rule values arrive as strings or numbers; they are stored as strings.
    if isinstance(value, bool):
        return value
    if isinstance(value, int | float | Decimal):
        return str(value)
    return value


RuleValue = Annotated[str, BeforeValidator(_coerce_rule_value), Field(min_length=1, max_length=2000)]

# Read-only after construction.
AttributeMap = Annotated[
    Mapping[str, str],
    AfterValidator(lambda value: MappingProxyType(dict(value))),
    PlainSerializer(dict),
]


def parse_decimal(value: str) -> Decimal | None:
    """Parse a numeric rule value, returning None when it is not a finite number."""
    try:
        number = Decimal(value.strip())
    except InvalidOperation:
        return None
    return number if number.is_finite() else None


def parse_blackout_periods(value: str) -> tuple[BlackoutPeriod, ...]:
    """Parse ``YYYY-MM-DD/YYYY-MM-DD`` windows separated by commas."""
    periods = []
    for chunk in value.split(","):
        chunk = chunk.strip()
        if not chunk:
            continue
        start_text, sep, end_text = chunk.partition("/")
        if not sep:
            msg = f"Blackout window {chunk!r} must be written as start/end"
            raise ValueError(msg)
        start, end = date.fromisoformat(start_text.strip()), date.fromisoformat(end_text.strip())
        periods.append(BlackoutPeriod.create(start_date=start, end_date=end, description=chunk))
    return tuple(periods)


# ---------------------------------------------------------------------------
# Rule objects
# ---------------------------------------------------------------------------


class EligibilityRule(DomainModel):
    """Comparison of one employee attribute against a configured value.

    ``attribute`` names the key in ``EmployeeGroupData.attributes`` for
    CUSTOM rules and is ignored by the other rule types.
    """

    id: uuid.UUID = Field(default_factory=_uuid_factory)
    rule_type: EligibilityRuleType
    operator: RuleOperator
    value: RuleValue
    attribute: str | None = Field(default=None, max_length=100)
    description: str = Field(min_length=1, max_length=500)

    @model_validator(mode="after")
    def _validate_business_rules(self) -> Self:
        violations = check_eligibility_rule(self)
        if violations:
            raise BusinessRuleError.from_violations(violations)
        return self


def check_eligibility_rule(rule: EligibilityRule) -> list[Violation]:
    violations: list[Violation] = []
    if rule.rule_type == EligibilityRuleType.CUSTOM and not rule.attribute:
        violations.append(
            Violation(field="attribute", rule="custom_attribute", message="Custom rules must name an attribute")
        )
    if rule.operator in (RuleOperator.GREATER_THAN, RuleOperator.LESS_THAN) and parse_decimal(rule.value) is None:
        violations.append(
            Violation(field="value", rule="numeric_value", message="Comparison rules require a numeric value")
        )
    return violations


class AccrualRule(DomainModel):
    id: uuid.UUID = Field(default_factory=_uuid_factory)
    accrual_rate: Decimal = Field(ge=0)
    accrual_period: AccrualPeriod
    max_balance: Decimal | None = Field(default=None, ge=0)
    carryover_limit: Decimal | None = Field(default=None, ge=0)
    waiting_period_days: int | None = Field(default=None, ge=0)
    description: str = Field(min_length=1, max_length=500)

    @model_validator(mode="after")
    def _validate_business_rules(self) -> Self:
        if (
            self.max_balance is not None
            and self.carryover_limit is not None
            and self.carryover_limit > self.max_balance
        ):
            raise BusinessRuleError(
                "Carryover limit cannot exceed maximum balance",
                [
                    Violation(
                        field="carryover_limit",
                        rule="carryover_limit",
                        message="Carryover limit cannot exceed maximum balance",
                    )
                ],
            )
        return self


class UsageRule(DomainModel):
    """Restriction on how leave under a policy may be taken.

    ``value`` is interpreted per ``rule_type``: whole days for
    MAX_CONSECUTIVE_DAYS and ADVANCE_NOTICE, hours for MINIMUM_INCREMENT,
    and comma-separated ``start/end`` ISO date windows for BLACKOUT_PERIOD.
    """

    id: uuid.UUID = Field(default_factory=_uuid_factory)
    rule_type: UsageRuleType
    value: RuleValue
    description: str = Field(min_length=1, max_length=500)
    is_active: bool = True

    @model_validator(mode="after")
    def _validate_business_rules(self) -> Self:
        violations = check_usage_rule(self)
        if violations:
            raise BusinessRuleError.from_violations(violations)
        return self


def check_usage_rule(rule: UsageRule) -> list[Violation]:
    if rule.rule_type == UsageRuleType.BLACKOUT_PERIOD:
        try:
            parse_blackout_periods(rule.value)
        except (ValueError, BusinessRuleError, ValidationError):
            return [
                Violation(
                    field="value",
                    rule="blackout_format",
                    message="Blackout periods must be comma-separated YYYY-MM-DD/YYYY-MM-DD windows",
                )
            ]
        return []

    number = parse_decimal(rule.value)
    if rule.rule_type == UsageRuleType.MINIMUM_INCREMENT:
        if number is None or number <= 0:
            return [
                Violation(field="value", rule="positive_number", message="Minimum increment must be a positive number")
            ]
        return []

    minimum = 1 if rule.rule_type == UsageRuleType.MAX_CONSECUTIVE_DAYS else 0
    if number is None or number != number.to_integral_value() or number < minimum:
        return [
            Violation(
                field="value",
                rule="whole_days",
                message=f"{rule.rule_type.value} must be a whole number of days of at least {minimum}",
            )
        ]
    return []


# ---------------------------------------------------------------------------
# Policies
# ---------------------------------------------------------------------------


def _check_window(effective_date: date, end_date: date | None) -> list[Violation]:
    if end_date is not None and effective_date >= end_date:
        return [Violation(field="end_date", rule="chronology", message="End date must be after effective date")]
    return []


class LeavePolicy(DomainModel):
    kind: Literal["LEAVE"] = "LEAVE"
    id: uuid.UUID = Field(default_factory=_uuid_factory)
    name: str = Field(min_length=1, max_length=200)
    leave_type_id: str = Field(min_length=1, max_length=50)
    eligibility_rules: tuple[EligibilityRule, ...] = ()
    accrual_rules: tuple[AccrualRule, ...]
    usage_rules: tuple[UsageRule, ...] = ()
    effective_date: date
    end_date: date | None = None
    applicable_groups: tuple[str, ...] = ()
    description: str | None = Field(default=None, max_length=1000)
    is_active: bool = True

    @model_validator(mode="after")
    def _validate_business_rules(self) -> Self:
        violations = _check_window(self.effective_date, self.end_date)
        if not self.accrual_rules:
            violations.append(
                Violation(
                    field="accrual_rules", rule="accrual_required", message="Policy must have at least one accrual rule"
                )
            )
        if violations:
            raise BusinessRuleError.from_violations(violations)
        return self


class OvertimePolicy(DomainModel):
    kind: Literal["OVERTIME"] = "OVERTIME"
    id: uuid.UUID = Field(default_factory=_uuid_factory)
    name: str = Field(min_length=1, max_length=200)
    daily_overtime_threshold: Decimal = Field(ge=0)
    weekly_overtime_threshold: Decimal = Field(ge=0)
    overtime_multiplier: Decimal = Field(ge=1)
    double_time_threshold: Decimal | None = Field(default=None, ge=0)
    double_time_multiplier: Decimal | None = Field(default=None, ge=1)
    applicable_groups: tuple[str, ...] = ()
    effective_date: date
    end_date: date | None = None
    description: str | None = Field(default=None, max_length=1000)
    is_active: bool = True

    @model_validator(mode="after")
    def _validate_business_rules(self) -> Self:
        violations = _check_window(self.effective_date, self.end_date)
        violations.extend(
            check_overtime_thresholds(
                self.daily_overtime_threshold,
                self.overtime_multiplier,
                self.double_time_threshold,
                self.double_time_multiplier,
            )
        )
        if violations:
            raise BusinessRuleError.from_violations(violations)
        return self


Policy = Annotated[LeavePolicy | OvertimePolicy, Field(discriminator="kind")]

_policy_adapter: TypeAdapter[LeavePolicy | OvertimePolicy] = TypeAdapter(Policy)


def policy_from_dict(data: dict[str, Any]) -> LeavePolicy | OvertimePolicy:
    """Build either policy kind from serialized data, dispatching on ``kind``."""
    try:
        return _policy_adapter.validate_python(data)
    except PydanticValidationError as exc:
        raise ValidationError.from_pydantic("Policy", exc) from exc


# ---------------------------------------------------------------------------
# Employee attributes
# ---------------------------------------------------------------------------


class EmployeeGroupData(DomainModel):
    """Employee attributes supplied by the organisation directory."""

    employee_id: uuid.UUID
    department_id: str | None = None
    employment_type: str
    job_title: str | None = None
    start_date: date
    tenure_days: int = Field(ge=0)
    manager_id: uuid.UUID | None = None
    groups: tuple[str, ...] = ()
    attributes: AttributeMap = Field(default_factory=lambda: MappingProxyType({}))
