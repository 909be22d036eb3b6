"""
Validation Models

Validation NEVER fixes input. It reports what is wrong so the caller
can show it to the user.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from finance_tracker.models.transaction import utc_now


class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value', 'unknown_tag')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
    )
    suggested_fix: Optional[str] = None


class ValidationResult(BaseModel):
    """
    Result of the two-stage validation.

    Stage 1: Schema validation (types, required fields, ranges)
    Stage 2: Vocabulary validation (tag/person known to the settings)
    """

    entity_type: str
    validated_at: datetime = Field(default_factory=utc_now)

    schema_valid: bool
    vocabulary_valid: bool

    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        """Vocabulary problems never block a save; schema problems always do."""
        return self.schema_valid

    @property
    def has_errors(self) -> bool:
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        return sum(1 for issue in self.issues if issue.severity == "error")

    @property
    def warnings(self) -> list[str]:
        return [issue.message for issue in self.issues if issue.severity == "warning"]
