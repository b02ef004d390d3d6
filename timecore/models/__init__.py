from timecore.models.balance import AccrualTransaction, LeaveBalance
from timecore.models.base import DomainModel, round_hours
from timecore.models.enums import (
    AccrualPeriod,
    BreakType,
    ConflictType,
    EligibilityRuleType,
    PolicyKind,
    RequestStatus,
    RuleOperator,
    TimeEntryStatus,
    TransactionType,
    UsageRuleType,
)
from timecore.models.overtime import OvertimeRules
from timecore.models.policy import (
    AccrualRule,
    EligibilityRule,
    EmployeeGroupData,
    LeavePolicy,
    OvertimePolicy,
    Policy,
    UsageRule,
    policy_from_dict,
)
from timecore.models.request import BlackoutPeriod, LeaveRequest, LeaveType
from timecore.models.time_entry import BreakEntry, TimeEntry

__all__ = [
    "AccrualPeriod",
    "AccrualRule",
    "AccrualTransaction",
    "BlackoutPeriod",
    "BreakEntry",
    "BreakType",
    "ConflictType",
    "DomainModel",
    "EligibilityRule",
    "EligibilityRuleType",
    "EmployeeGroupData",
    "LeaveBalance",
    "LeavePolicy",
    "LeaveRequest",
    "LeaveType",
    "OvertimePolicy",
    "OvertimeRules",
    "Policy",
    "PolicyKind",
    "RequestStatus",
    "RuleOperator",
    "TimeEntry",
    "TimeEntryStatus",
    "TransactionType",
    "UsageRule",
    "UsageRuleType",
    "policy_from_dict",
    "round_hours",
]
