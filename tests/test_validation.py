"""
Tests for the two-stage validation pipeline
"""

import pytest
from datetime import datetime

from finance_tracker.config import AppSettings
from finance_tracker.models import Budget, TrackerSettings, TransactionType
from finance_tracker.validation import (
    BudgetValidationError,
    BudgetValidator,
    TransactionValidationError,
    TransactionValidator,
    get_user_friendly_summary,
)


NOW = datetime(2024, 6, 15, 12, 0)


@pytest.fixture
def validator():
    return TransactionValidator(AppSettings(max_transaction_amount=100_000, future_date_tolerance_days=7))


@pytest.fixture
def vocabulary():
    return TrackerSettings(tags=["Food", "Rent"], names=["Myself", "John"])


def tx_data(**overrides):
    data = {
        "amount": 500,
        "type": "expense",
        "name": "Lunch",
        "tag": "Food",
        "person": "Myself",
        "occurred_at": datetime(2024, 6, 14, 13, 0),
    }
    data.update(overrides)
    return data


class TestTransactionSchemaValidation:
    """Stage 1: schema checks block the save."""

    def test_valid_transaction_passes(self, validator, vocabulary):
        """Test that clean input yields no issues."""
        result = validator.validate(tx_data(), vocabulary, now=NOW)
        assert result.is_valid
        assert result.vocabulary_valid
        assert result.issues == []

    def test_missing_amount(self, validator):
        """Test that amount is required."""
        data = tx_data()
        del data["amount"]
        result = validator.validate(data, now=NOW)
        assert not result.is_valid
        assert result.issues[0].field == "amount"
        assert result.issues[0].issue_type == "missing"

    @pytest.mark.parametrize("amount", [12.5, 12.0, "12", True])
    def test_non_integer_amount_rejected(self, validator, amount):
        """Test that amounts are never coerced."""
        result = validator.validate(tx_data(amount=amount), now=NOW)
        assert not result.is_valid
        assert any(i.issue_type == "invalid_type" for i in result.issues)

    def test_negative_amount_rejected(self, validator):
        """Test that a negative amount is an error with a hint."""
        result = validator.validate(tx_data(amount=-5), now=NOW)
        assert not result.is_valid
        assert result.issues[0].suggested_fix

    def test_bad_type_rejected(self, validator):
        """Test that type must be income or expense."""
        result = validator.validate(tx_data(type="transfer"), now=NOW)
        assert not result.is_valid
        assert result.issues[0].field == "type"

    def test_blank_name_and_tag(self, validator):
        """Test that both blank fields are reported at once."""
        result = validator.validate(tx_data(name="  ", tag=""), now=NOW)
        assert not result.is_valid
        assert {i.field for i in result.issues} == {"name", "tag"}
        assert not result.vocabulary_valid

    def test_camel_case_input(self, validator):
        """Test that the backup layout is accepted."""
        data = tx_data()
        data["occurredAt"] = data.pop("occurred_at").isoformat() + "Z"
        result = validator.validate(data, now=NOW)
        assert result.is_valid

    def test_build_raises_with_result(self, validator):
        """Test that build raises and carries the result."""
        with pytest.raises(TransactionValidationError) as exc_info:
            validator.build(tx_data(amount=None), now=NOW)
        assert exc_info.value.result.error_count == 1
        assert "Amount is required" in str(exc_info.value)

    def test_build_returns_transaction(self, validator):
        """Test that build returns the constructed transaction."""
        transaction, result = validator.build(tx_data(id="t1"), now=NOW)
        assert transaction.id == "t1"
        assert transaction.type == TransactionType.EXPENSE
        assert result.is_valid


class TestTransactionVocabularyValidation:
    """Stage 2: vocabulary checks only warn."""

    def test_unknown_tag_is_a_warning(self, validator, vocabulary):
        """Test that an unknown tag does not block the save."""
        result = validator.validate(tx_data(tag="Gadgets"), vocabulary, now=NOW)
        assert result.is_valid
        assert not result.vocabulary_valid
        assert result.issues[0].issue_type == "unknown_tag"

    def test_unknown_person_is_a_warning(self, validator, vocabulary):
        """Test that an unknown counterparty is flagged."""
        result = validator.validate(tx_data(person="Stranger"), vocabulary, now=NOW)
        assert result.is_valid
        assert [i.issue_type for i in result.issues] == ["unknown_person"]

    def test_empty_vocabulary_skips_checks(self, validator):
        """Test that a fresh install does not warn about everything."""
        result = validator.validate(tx_data(tag="Anything"), TrackerSettings(), now=NOW)
        assert result.issues == []

    def test_future_date_warning(self, validator):
        """Test that dates beyond the tolerance are flagged."""
        result = validator.validate(tx_data(occurred_at=datetime(2024, 7, 1)), now=NOW)
        assert result.is_valid
        assert result.issues[0].issue_type == "future_date"

    def test_near_future_date_allowed(self, validator):
        """Test that dates within the tolerance pass quietly."""
        result = validator.validate(tx_data(occurred_at=datetime(2024, 6, 20)), now=NOW)
        assert result.issues == []

    def test_large_amount_warning(self, validator):
        """Test that unusually large amounts are flagged, not rejected."""
        result = validator.validate(tx_data(amount=100_001), now=NOW)
        assert result.is_valid
        assert result.issues[0].issue_type == "suspicious_value"

    def test_zero_amount_warning(self, validator):
        """Test that a zero amount is flagged."""
        result = validator.validate(tx_data(amount=0), now=NOW)
        assert result.is_valid
        assert result.warnings == ["Amount is zero"]


class TestBudgetValidator:
    """Tests for BudgetValidator."""

    def test_valid_monthly_budget(self):
        """Test that a monthly budget builds."""
        budget, result = BudgetValidator().build(
            {"name": "Food", "amount": 5000, "tags": ["Food"], "month": "2024-06"}
        )
        assert isinstance(budget, Budget)
        assert budget.window.month == "2024-06"
        assert result.is_valid

    def test_zero_amount_rejected(self):
        """Test that new budgets need a positive amount."""
        result = BudgetValidator().validate({"name": "Food", "amount": 0})
        assert not result.is_valid
        assert result.issues[0].field == "amount"

    def test_bad_month_rejected(self):
        """Test that month must be YYYY-MM."""
        result = BudgetValidator().validate({"name": "Food", "amount": 10, "month": "June"})
        assert not result.is_valid
        assert result.issues[0].field == "month"

    def test_inverted_custom_range_rejected(self):
        """Test that the end date cannot precede the start date."""
        result = BudgetValidator().validate({
            "name": "Trip",
            "amount": 100,
            "type": "custom",
            "startDate": "2024-06-10",
            "endDate": "2024-06-01",
        })
        assert not result.is_valid
        assert result.issues[0].issue_type == "inconsistent"

    def test_unknown_type_rejected(self):
        """Test that budget type is restricted."""
        result = BudgetValidator().validate({"name": "X", "amount": 10, "type": "weekly"})
        assert not result.is_valid
        assert result.issues[0].field == "type"

    def test_unknown_tags_warn(self, vocabulary):
        """Test that unmatched tags are a warning."""
        result = BudgetValidator().validate(
            {"name": "Fun", "amount": 10, "tags": ["Food", "Cinema"]}, vocabulary
        )
        assert result.is_valid
        assert "Cinema" in result.warnings[0]

    def test_build_raises(self):
        """Test that build raises on schema errors."""
        with pytest.raises(BudgetValidationError):
            BudgetValidator().build({"name": "", "amount": 10})

    def test_goal_validation(self):
        """Test that goals need a positive whole-number target."""
        validator = BudgetValidator()
        goal, _ = validator.build_goal({"name": "House", "targetAmount": 1000})
        assert goal.target_amount == 1000

        with pytest.raises(BudgetValidationError):
            validator.build_goal({"name": "House", "targetAmount": 0})
        assert not validator.validate_goal({"name": "House", "target_amount": 10.5}).is_valid


class TestUserFriendlySummary:
    """Tests for get_user_friendly_summary."""

    def test_all_clear(self, validator):
        """Test the message for a clean result."""
        result = validator.validate(tx_data(), now=NOW)
        assert get_user_friendly_summary(result) == "All checks passed."

    def test_errors_listed(self, validator):
        """Test that errors and fixes are listed."""
        summary = get_user_friendly_summary(validator.validate(tx_data(amount=-1), now=NOW))
        assert "Please fix the following:" in summary
        assert "Amount cannot be negative" in summary

    def test_warnings_still_saveable(self, validator):
        """Test that warnings end with the can-still-save note."""
        summary = get_user_friendly_summary(validator.validate(tx_data(amount=0), now=NOW))
        assert "Please verify the following:" in summary
        assert summary.endswith("You can still save, but please check the above.")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
