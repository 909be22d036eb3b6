"""
Derived Result Models

Everything in this module is computed from transactions and budgets
on demand. None of it is persisted.
"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field

from finance_tracker.models.budget import Budget, BudgetCategory
from finance_tracker.models.transaction import Transaction


# =============================================================================
# LEDGER
# =============================================================================

class PersonBalance(BaseModel):
    """
    Ledger position against one counterparty.

    total_owed: expenses recorded against the person (they owe the user)
    total_owing: income recorded against the person (the user owes them)
    """
    name: str
    total_owed: int = 0
    total_owing: int = 0
    transactions: list[Transaction] = Field(
        default_factory=list,
        description="The person's transactions, newest first",
    )

    @property
    def net_balance(self) -> int:
        """Positive when the counterparty owes the user."""
        return self.total_owed - self.total_owing

    @property
    def is_settled(self) -> bool:
        return self.net_balance == 0


# =============================================================================
# SUMMARY
# =============================================================================

class FinancialTotals(BaseModel):
    """Point-in-time aggregates over an (optionally windowed) transaction list."""
    income: int = 0
    expenses: int = 0
    investments: int = 0
    settlement_income: int = 0
    settlement_expenses: int = 0
    transaction_count: int = 0

    @property
    def settlement(self) -> int:
        """Net amount owed TO the user by counterparties."""
        return self.settlement_expenses - self.settlement_income

    @property
    def balance(self) -> int:
        return self.income - self.expenses

    @property
    def net_worth(self) -> int:
        return self.balance + self.investments + self.settlement


class Snapshot(BaseModel):
    balance: int = 0
    investments: int = 0
    settlement: int = 0
    net_worth: int = 0


class SeriesPoint(BaseModel):
    """End-of-day running totals for one calendar date."""
    date: date
    balance: int
    investments: int
    settlement: int
    net_worth: int


class PeriodTotals(BaseModel):
    start: datetime
    end: datetime
    income: int = 0
    expenses: int = 0
    count: int = 0

    @property
    def balance(self) -> int:
        return self.income - self.expenses


class MonthlyComparison(BaseModel):
    period: str = Field(..., description="Year-month, YYYY-MM")
    label: str = Field(..., description="Abbreviated month name")
    income: int = 0
    expenses: int = 0
    balance: int = 0


class TagTotal(BaseModel):
    tag: str
    total: int


# =============================================================================
# BUDGETS
# =============================================================================

class DateWindow(BaseModel):
    """Inclusive datetime window."""
    start: datetime
    end: datetime

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment <= self.end


class BudgetProgress(BaseModel):
    """
    Consumption of one budget as of a reference date.

    percentage and pace_ratio are floats so that a zero-amount budget
    can report infinity instead of raising.
    """
    spent: int
    amount: int
    percentage: float
    is_over_budget: bool
    days_left: int
    daily_burn_rate: float
    projected_spend: float
    pace_ratio: float
    overspend_probability: int = Field(..., ge=0, le=100)

    @property
    def remaining(self) -> int:
        return self.amount - self.spent


class RankedBudget(BaseModel):
    budget: Budget
    progress: BudgetProgress


class CategorySummary(BaseModel):
    category: BudgetCategory
    spent: int = 0
    budget: int = 0
    percentage: int = 0


class GoalProgress(BaseModel):
    goal_id: str
    invested: int
    target: int
    percentage: int
    remaining: int
    is_achieved: bool
    monthly_target: Optional[int] = None


# =============================================================================
# VIEWS
# =============================================================================

class Dashboard(BaseModel):
    """Everything the dashboard shows, computed in one pass over storage."""
    generated_at: datetime
    snapshot: Snapshot
    totals: FinancialTotals
    series: list[SeriesPoint]
    has_enough_data: bool
    current_month: PeriodTotals
    monthly: list[MonthlyComparison]
    breakdown: list[TagTotal]
    people: list[PersonBalance]


class BudgetOverview(BaseModel):
    reference_date: date
    budgets: list[RankedBudget]
    categories: dict[BudgetCategory, CategorySummary]
    goals: list[GoalProgress] = Field(default_factory=list)

    @property
    def over_budget(self) -> list[RankedBudget]:
        return [r for r in self.budgets if r.progress.is_over_budget]
