"""Validation package."""

from finance_tracker.validation.validator import (
    BudgetValidationError,
    BudgetValidator,
    TransactionValidationError,
    TransactionValidator,
    ValidationFailedError,
    get_user_friendly_summary,
)

__all__ = [
    "BudgetValidationError",
    "BudgetValidator",
    "TransactionValidationError",
    "TransactionValidator",
    "ValidationFailedError",
    "get_user_friendly_summary",
]
