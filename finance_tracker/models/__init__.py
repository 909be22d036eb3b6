"""
Data Models Package

This package contains all Pydantic models used in the Finance Tracker.
All data flowing through the system must conform to these schemas.
"""

from finance_tracker.models.transaction import (
    INVESTMENT_TAG,
    SELF_PERSON,
    SETTLEMENT_TAG,
    Transaction,
    TransactionType,
    new_id,
    utc_now,
)
from finance_tracker.models.budget import (
    Budget,
    BudgetCategory,
    BudgetType,
    CustomWindow,
    InvestmentGoal,
    MonthlyWindow,
    TagCategoryMapping,
)
from finance_tracker.models.reports import (
    BudgetOverview,
    BudgetProgress,
    CategorySummary,
    DateWindow,
    Dashboard,
    FinancialTotals,
    GoalProgress,
    MonthlyComparison,
    PeriodTotals,
    PersonBalance,
    RankedBudget,
    SeriesPoint,
    Snapshot,
    TagTotal,
)
from finance_tracker.models.backup import (
    BACKUP_VERSION,
    BackupData,
    RestoreMode,
    TrackerSettings,
)
from finance_tracker.models.validation import ValidationIssue, ValidationResult
from finance_tracker.models.query import QueryResult, TransactionQuery
from finance_tracker.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Transaction models
    "INVESTMENT_TAG",
    "SELF_PERSON",
    "SETTLEMENT_TAG",
    "Transaction",
    "TransactionType",
    "new_id",
    "utc_now",
    # Budget models
    "Budget",
    "BudgetCategory",
    "BudgetType",
    "CustomWindow",
    "InvestmentGoal",
    "MonthlyWindow",
    "TagCategoryMapping",
    # Derived results
    "BudgetOverview",
    "BudgetProgress",
    "CategorySummary",
    "DateWindow",
    "Dashboard",
    "FinancialTotals",
    "GoalProgress",
    "MonthlyComparison",
    "PeriodTotals",
    "PersonBalance",
    "RankedBudget",
    "SeriesPoint",
    "Snapshot",
    "TagTotal",
    # Backup models
    "BACKUP_VERSION",
    "BackupData",
    "RestoreMode",
    "TrackerSettings",
    # Validation / query models
    "ValidationIssue",
    "ValidationResult",
    "QueryResult",
    "TransactionQuery",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
