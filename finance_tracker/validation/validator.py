"""
Two-Stage Validation Pipeline

DESIGN DECISION: Validation happens in two distinct stages:

STAGE 1 - SCHEMA VALIDATION:
- Required field presence (name, tag, type, amount)
- Amounts must be integers; floats, bools and numeric strings are
  rejected, never rounded or converted
- Budget amount must be positive, custom range must not be inverted
- This catches malformed input before anything is stored

STAGE 2 - VOCABULARY VALIDATION:
- Tag and person are checked against the user's settings
- Future dates and unusually large amounts are flagged
- Everything here is a warning: an unknown tag is allowed, the user
  is only told about it

IMPORTANT: Validation NEVER silently fixes issues.
It reports them for the caller to show.
"""

import re
from datetime import date, datetime, timedelta
from typing import Any, Mapping, Optional, Union

from pydantic import BaseModel, ValidationError

from finance_tracker.config import AppSettings, get_settings
from finance_tracker.engines.dates import as_datetime
from finance_tracker.models.backup import TrackerSettings
from finance_tracker.models.budget import MONTH_PATTERN, Budget, BudgetType, InvestmentGoal
from finance_tracker.models.transaction import SELF_PERSON, Transaction, TransactionType, utc_now
from finance_tracker.models.validation import ValidationIssue, ValidationResult


RawInput = Union[Mapping[str, Any], BaseModel]


class ValidationFailedError(Exception):
    """Input failed schema validation. Carries the full result."""

    def __init__(self, result: ValidationResult):
        self.result = result
        errors = [i.message for i in result.issues if i.severity == "error"]
        super().__init__(f"{result.entity_type} is invalid: {'; '.join(errors)}")


class TransactionValidationError(ValidationFailedError):
    pass


class BudgetValidationError(ValidationFailedError):
    pass


def _as_dict(data: RawInput) -> dict[str, Any]:
    if isinstance(data, BaseModel):
        return data.model_dump(by_alias=True)
    return dict(data)


def _lookup(data: Mapping[str, Any], field: str, alias: Optional[str] = None) -> Any:
    """Value under the field name or its camelCase alias, else None."""
    if field in data:
        return data[field]
    if alias and alias in data:
        return data[alias]
    return None


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _is_integer(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _pydantic_issues(error: ValidationError, reported: set[str]) -> list[ValidationIssue]:
    """Turn pydantic errors into issues, skipping fields already reported."""
    issues = []
    for err in error.errors():
        field = ".".join(str(part) for part in err["loc"]) or "input"
        if field.split(".")[0] in reported:
            continue
        issues.append(ValidationIssue(
            field=field,
            issue_type="invalid_value",
            message=f"{field}: {err['msg']}",
            severity="error",
        ))
    return issues


def _has_errors(issues: list[ValidationIssue]) -> bool:
    return any(issue.severity == "error" for issue in issues)


class TransactionValidator:
    """
    Validates transaction input through a two-stage pipeline.

    Stage 1: Schema validation
    Stage 2: Vocabulary validation against the user's settings
    """

    def __init__(self, settings: Optional[AppSettings] = None):
        self._settings = settings or get_settings().app

    def _validate_schema(
        self,
        data: Mapping[str, Any],
    ) -> tuple[bool, list[ValidationIssue]]:
        """
        Stage 1: Schema validation.

        Returns: (is_valid, list_of_issues)
        """
        issues = []

        amount = _lookup(data, "amount")
        if amount is None:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="missing",
                message="Amount is required",
                severity="error",
            ))
        elif not _is_integer(amount):
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_type",
                message=f"Amount must be a whole number, got {amount!r}",
                severity="error",
                suggested_fix="Enter the amount without decimals",
            ))
        elif amount < 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Amount cannot be negative",
                severity="error",
                suggested_fix="Use the transaction type to record money going out",
            ))

        transaction_type = _lookup(data, "type")
        valid_types = {t.value for t in TransactionType}
        if isinstance(transaction_type, TransactionType):
            transaction_type = transaction_type.value
        if transaction_type not in valid_types:
            issues.append(ValidationIssue(
                field="type",
                issue_type="missing" if transaction_type is None else "invalid_value",
                message="Type must be 'income' or 'expense'",
                severity="error",
            ))

        for field in ("name", "tag"):
            if _is_blank(_lookup(data, field)):
                issues.append(ValidationIssue(
                    field=field,
                    issue_type="missing",
                    message=f"{field.capitalize()} is required",
                    severity="error",
                ))

        if "person" in data and _is_blank(data["person"]):
            issues.append(ValidationIssue(
                field="person",
                issue_type="missing",
                message="Person cannot be blank",
                severity="error",
                suggested_fix=f"Use '{SELF_PERSON}' for transactions without a counterparty",
            ))

        if not _has_errors(issues):
            try:
                Transaction.model_validate(data)
            except ValidationError as e:
                issues.extend(_pydantic_issues(e, reported={i.field for i in issues}))

        return not _has_errors(issues), issues

    def _validate_vocabulary(
        self,
        transaction: Transaction,
        vocabulary: Optional[TrackerSettings],
        now: datetime,
    ) -> tuple[bool, list[ValidationIssue]]:
        """
        Stage 2: Vocabulary validation.

        Returns: (is_valid, list_of_issues)
        """
        issues = []

        if vocabulary is not None and not vocabulary.is_empty:
            if vocabulary.tags and transaction.tag not in vocabulary.tags:
                issues.append(ValidationIssue(
                    field="tag",
                    issue_type="unknown_tag",
                    message=f"Tag '{transaction.tag}' is not in your tag list",
                    severity="warning",
                    suggested_fix="Add it in settings to reuse it later",
                ))
            if (
                transaction.has_counterparty
                and vocabulary.names
                and transaction.person not in vocabulary.names
            ):
                issues.append(ValidationIssue(
                    field="person",
                    issue_type="unknown_person",
                    message=f"Person '{transaction.person}' is not in your names list",
                    severity="warning",
                    suggested_fix="Add them in settings to reuse the name later",
                ))

        max_future = now + timedelta(days=self._settings.future_date_tolerance_days)
        if transaction.occurred_at > max_future:
            issues.append(ValidationIssue(
                field="occurred_at",
                issue_type="future_date",
                message=f"Date ({transaction.occurred_at:%Y-%m-%d}) is in the future",
                severity="warning",
                suggested_fix="Please verify the date is correct",
            ))

        if transaction.amount > self._settings.max_transaction_amount:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="suspicious_value",
                message=f"Amount ({transaction.amount:,}) seems unusually high",
                severity="warning",
                suggested_fix="Please verify this amount is correct",
            ))
        elif transaction.amount == 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="suspicious_value",
                message="Amount is zero",
                severity="warning",
            ))

        return not issues, issues

    def validate(
        self,
        data: RawInput,
        vocabulary: Optional[TrackerSettings] = None,
        now: Optional[datetime] = None,
    ) -> ValidationResult:
        """
        Run full two-stage validation pipeline.

        Args:
            data: Raw transaction fields (snake_case or camelCase keys)
            vocabulary: The user's tags and names; None skips those checks
            now: Reference time for the future-date check

        Returns:
            ValidationResult with all issues found
        """
        data = _as_dict(data)
        schema_valid, issues = self._validate_schema(data)

        # Only run stage 2 if stage 1 passes
        vocabulary_valid = False
        if schema_valid:
            transaction = Transaction.model_validate(data)
            vocabulary_valid, vocabulary_issues = self._validate_vocabulary(
                transaction, vocabulary, now or utc_now()
            )
            issues.extend(vocabulary_issues)

        return ValidationResult(
            entity_type="transaction",
            schema_valid=schema_valid,
            vocabulary_valid=vocabulary_valid,
            issues=issues,
        )

    def build(
        self,
        data: RawInput,
        vocabulary: Optional[TrackerSettings] = None,
        now: Optional[datetime] = None,
    ) -> tuple[Transaction, ValidationResult]:
        """
        Validate and construct the transaction.

        Raises:
            TransactionValidationError: If schema validation fails
        """
        result = self.validate(data, vocabulary, now)
        if not result.is_valid:
            raise TransactionValidationError(result)
        return Transaction.model_validate(_as_dict(data)), result


class BudgetValidator:
    """
    Validates budget and investment goal input.

    Budgets must have a positive amount when created; stored budgets
    with a zero amount still load, so this check lives here and not
    on the model.
    """

    def _validate_schema(
        self,
        data: Mapping[str, Any],
    ) -> tuple[bool, list[ValidationIssue]]:
        issues = []

        if _is_blank(_lookup(data, "name")):
            issues.append(ValidationIssue(
                field="name",
                issue_type="missing",
                message="Budget name is required",
                severity="error",
            ))

        amount = _lookup(data, "amount")
        if amount is None:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="missing",
                message="Budget amount is required",
                severity="error",
            ))
        elif not _is_integer(amount):
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_type",
                message=f"Budget amount must be a whole number, got {amount!r}",
                severity="error",
            ))
        elif amount <= 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Budget amount must be greater than zero",
                severity="error",
            ))

        window = _lookup(data, "window")
        flat = window if isinstance(window, Mapping) else data
        budget_type = _lookup(flat, "type") or BudgetType.MONTHLY.value
        if isinstance(budget_type, BudgetType):
            budget_type = budget_type.value

        if budget_type == BudgetType.MONTHLY.value:
            month = _lookup(flat, "month")
            if month not in (None, "") and not (
                isinstance(month, str) and re.match(MONTH_PATTERN, month)
            ):
                issues.append(ValidationIssue(
                    field="month",
                    issue_type="invalid_value",
                    message=f"Month must look like YYYY-MM, got {month!r}",
                    severity="error",
                ))
        elif budget_type == BudgetType.CUSTOM.value:
            start = _lookup(flat, "start_date", "startDate")
            end = _lookup(flat, "end_date", "endDate")
            try:
                start_date = date.fromisoformat(start) if isinstance(start, str) and start else start
                end_date = date.fromisoformat(end) if isinstance(end, str) and end else end
            except ValueError:
                issues.append(ValidationIssue(
                    field="window",
                    issue_type="invalid_value",
                    message="Start and end dates must look like YYYY-MM-DD",
                    severity="error",
                ))
            else:
                if start_date and end_date and as_datetime(end_date) < as_datetime(start_date):
                    issues.append(ValidationIssue(
                        field="end_date",
                        issue_type="inconsistent",
                        message="End date is before start date",
                        severity="error",
                        suggested_fix="Swap the dates or pick a later end date",
                    ))
        else:
            issues.append(ValidationIssue(
                field="type",
                issue_type="invalid_value",
                message="Budget type must be 'monthly' or 'custom'",
                severity="error",
            ))

        if not _has_errors(issues):
            try:
                Budget.model_validate(data)
            except ValidationError as e:
                issues.extend(_pydantic_issues(e, reported={i.field for i in issues}))

        return not _has_errors(issues), issues

    def _validate_vocabulary(
        self,
        tags: list[str],
        vocabulary: Optional[TrackerSettings],
    ) -> tuple[bool, list[ValidationIssue]]:
        issues = []
        if vocabulary is not None and vocabulary.tags:
            unknown = [tag for tag in tags if tag not in vocabulary.tags]
            if unknown:
                issues.append(ValidationIssue(
                    field="tags",
                    issue_type="unknown_tag",
                    message=f"Tags not in your tag list: {', '.join(unknown)}",
                    severity="warning",
                    suggested_fix="No transaction will match them until they are used",
                ))
        return not issues, issues

    def validate(
        self,
        data: RawInput,
        vocabulary: Optional[TrackerSettings] = None,
    ) -> ValidationResult:
        data = _as_dict(data)
        schema_valid, issues = self._validate_schema(data)

        vocabulary_valid = False
        if schema_valid:
            budget = Budget.model_validate(data)
            vocabulary_valid, vocabulary_issues = self._validate_vocabulary(
                budget.tags, vocabulary
            )
            issues.extend(vocabulary_issues)

        return ValidationResult(
            entity_type="budget",
            schema_valid=schema_valid,
            vocabulary_valid=vocabulary_valid,
            issues=issues,
        )

    def build(
        self,
        data: RawInput,
        vocabulary: Optional[TrackerSettings] = None,
    ) -> tuple[Budget, ValidationResult]:
        """
        Validate and construct the budget.

        Raises:
            BudgetValidationError: If schema validation fails
        """
        result = self.validate(data, vocabulary)
        if not result.is_valid:
            raise BudgetValidationError(result)
        return Budget.model_validate(_as_dict(data)), result

    def validate_goal(self, data: RawInput) -> ValidationResult:
        """Investment goals need a name and a positive whole-number target."""
        data = _as_dict(data)
        issues = []

        if _is_blank(_lookup(data, "name")):
            issues.append(ValidationIssue(
                field="name",
                issue_type="missing",
                message="Goal name is required",
                severity="error",
            ))

        target = _lookup(data, "target_amount", "targetAmount")
        if not _is_integer(target) or target <= 0:
            issues.append(ValidationIssue(
                field="target_amount",
                issue_type="invalid_value",
                message="Target amount must be a whole number greater than zero",
                severity="error",
            ))

        current = _lookup(data, "current_amount", "currentAmount")
        if current is not None and (not _is_integer(current) or current < 0):
            issues.append(ValidationIssue(
                field="current_amount",
                issue_type="invalid_value",
                message="Current amount must be a whole number, zero or more",
                severity="error",
            ))

        if not _has_errors(issues):
            try:
                InvestmentGoal.model_validate(data)
            except ValidationError as e:
                issues.extend(_pydantic_issues(e, reported={i.field for i in issues}))

        schema_valid = not _has_errors(issues)
        return ValidationResult(
            entity_type="investment_goal",
            schema_valid=schema_valid,
            vocabulary_valid=schema_valid,
            issues=issues,
        )

    def build_goal(self, data: RawInput) -> tuple[InvestmentGoal, ValidationResult]:
        result = self.validate_goal(data)
        if not result.is_valid:
            raise BudgetValidationError(result)
        return InvestmentGoal.model_validate(_as_dict(data)), result


def get_user_friendly_summary(result: ValidationResult) -> str:
    """
    Generate a readable summary of validation results.

    This is what we show to the user next to the form.
    """
    if result.is_valid and not result.warnings:
        return "All checks passed."

    lines = []

    if not result.schema_valid:
        lines.append("Please fix the following:")
        for issue in result.issues:
            if issue.severity == "error":
                lines.append(f"   • {issue.message}")
                if issue.suggested_fix:
                    lines.append(f"     {issue.suggested_fix}")

    if result.warnings:
        if lines:
            lines.append("")
        lines.append("Please verify the following:")
        for warning in result.warnings:
            lines.append(f"   • {warning}")

    if result.is_valid:
        lines.append("")
        lines.append("You can still save, but please check the above.")

    return "\n".join(lines)
