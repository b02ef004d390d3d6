from __future__ import annotations

import enum


class BreakType(enum.StrEnum):
    """Kind of pause inside a time entry."""

    LUNCH = "LUNCH"
    SHORT_BREAK = "SHORT_BREAK"
    PERSONAL = "PERSONAL"


class TimeEntryStatus(enum.StrEnum):
    """Lifecycle of a clock-in/clock-out span."""

    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    PENDING_APPROVAL = "PENDING_APPROVAL"


class TransactionType(enum.StrEnum):
    """Type of ledger line affecting a leave balance."""

    ACCRUAL = "ACCRUAL"
    USAGE = "USAGE"
    ADJUSTMENT = "ADJUSTMENT"
    CARRYOVER = "CARRYOVER"


class AccrualPeriod(enum.StrEnum):
    """How often a balance accrues."""

    MONTHLY = "MONTHLY"
    BIWEEKLY = "BIWEEKLY"
    ANNUAL = "ANNUAL"
    PER_PAY_PERIOD = "PER_PAY_PERIOD"


class RequestStatus(enum.StrEnum):
    """State machine for leave requests."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    DENIED = "DENIED"
    CANCELLED = "CANCELLED"


class ConflictType(enum.StrEnum):
    """How two leave requests collide, in priority order."""

    SAME_DATES = "SAME_DATES"
    OVERLAP = "OVERLAP"
    ADJACENT = "ADJACENT"


class EligibilityRuleType(enum.StrEnum):
    """Employee attribute an eligibility rule inspects."""

    TENURE = "TENURE"
    EMPLOYMENT_TYPE = "EMPLOYMENT_TYPE"
    DEPARTMENT = "DEPARTMENT"
    CUSTOM = "CUSTOM"


class RuleOperator(enum.StrEnum):
    """Comparison applied by an eligibility rule."""

    EQUALS = "EQUALS"
    GREATER_THAN = "GREATER_THAN"
    LESS_THAN = "LESS_THAN"
    IN = "IN"
    NOT_IN = "NOT_IN"


class UsageRuleType(enum.StrEnum):
    """Restriction a usage rule places on leave requests."""

    MAX_CONSECUTIVE_DAYS = "MAX_CONSECUTIVE_DAYS"
    ADVANCE_NOTICE = "ADVANCE_NOTICE"
    BLACKOUT_PERIOD = "BLACKOUT_PERIOD"
    MINIMUM_INCREMENT = "MINIMUM_INCREMENT"


class PolicyKind(enum.StrEnum):
    """Discriminator for the policy union."""

    LEAVE = "LEAVE"
    OVERTIME = "OVERTIME"
