from __future__ import annotations

from decimal import Decimal
from typing import Self

from pydantic import Field, model_validator

from timecore.config import get_settings
from timecore.exceptions import BusinessRuleError, Violation
from timecore.models.base import DomainModel


def check_overtime_thresholds(
    daily_threshold: Decimal,
    overtime_multiplier: Decimal,
    double_time_threshold: Decimal | None,
    double_time_multiplier: Decimal | None,
) -> list[Violation]:
    """Cross-field checks shared by ``OvertimeRules`` and ``OvertimePolicy``."""
    violations: list[Violation] = []
    if double_time_threshold is not None and double_time_threshold <= daily_threshold:
        violations.append(
            Violation(
                field="double_time_threshold",
                rule="threshold_order",
                message="Double time threshold must be greater than daily overtime threshold",
            )
        )
    if double_time_multiplier is not None and double_time_multiplier <= overtime_multiplier:
        violations.append(
            Violation(
                field="double_time_multiplier",
                rule="multiplier_order",
                message="Double time multiplier must be greater than overtime multiplier",
            )
        )
    return violations


class OvertimeRules(DomainModel):
    """Thresholds (hours) and multipliers the time calculation engine applies."""

    daily_overtime_threshold: Decimal = Field(default=Decimal("8"), ge=0)
    weekly_overtime_threshold: Decimal = Field(default=Decimal("40"), ge=0)
    overtime_multiplier: Decimal = Field(default=Decimal("1.5"), ge=1)
    double_time_threshold: Decimal | None = Field(default=Decimal("12"), ge=0)
    double_time_multiplier: Decimal | None = Field(default=Decimal("2.0"), ge=1)

    @model_validator(mode="after")
    def _validate_order(self) -> Self:
        violations = check_overtime_thresholds(
            self.daily_overtime_threshold,
            self.overtime_multiplier,
            self.double_time_threshold,
            self.double_time_multiplier,
        )
        if violations:
            raise BusinessRuleError.from_violations(violations)
        return self

    @classmethod
    def from_settings(cls) -> OvertimeRules:
        """Default rules from library settings."""
        settings = get_settings()
        return cls.create(
            daily_overtime_threshold=settings.default_daily_overtime_threshold,
            weekly_overtime_threshold=settings.default_weekly_overtime_threshold,
            overtime_multiplier=settings.default_overtime_multiplier,
            double_time_threshold=settings.default_double_time_threshold,
            double_time_multiplier=settings.default_double_time_multiplier,
        )
