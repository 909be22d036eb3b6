"""
Budget Engine

Matches expenses to budgets by tag and date window, then projects how
likely the budget is to be overspent at the current burn rate.

Days left and burn rate are measured against the calendar month that
contains the reference date, even for custom-range budgets. A budget
ending mid-month therefore reports more days left than it really has.
"""

import math
from datetime import date
from typing import Iterable, Mapping

from finance_tracker.engines.dates import (
    ONE_DAY,
    as_datetime,
    days_in_month,
    end_of_day,
    format_month,
    month_end,
    month_start,
    parse_month,
    round_half_up,
    start_of_day,
)
from finance_tracker.models.budget import (
    Budget,
    BudgetCategory,
    CustomWindow,
    InvestmentGoal,
    MonthlyWindow,
)
from finance_tracker.models.reports import (
    BudgetProgress,
    CategorySummary,
    DateWindow,
    GoalProgress,
    RankedBudget,
)
from finance_tracker.models.transaction import Transaction


# (pace ratio strictly above, probability), checked top-down
OVERSPEND_STEPS = (
    (1.5, 95),
    (1.2, 80),
    (1.0, 65),
    (0.8, 30),
    (0.6, 10),
)
BASELINE_PROBABILITY = 5


def resolve_window(budget: Budget, reference_date: date) -> DateWindow:
    """
    The inclusive datetime window a budget covers.

    monthly: the budget's own month if set, else the reference month.
    custom: start_date 00:00 through end_date 23:59:59.999999; a missing
        bound falls back to the reference month's start or end.
    """
    reference = as_datetime(reference_date)
    ref_start = month_start(reference.year, reference.month)
    ref_end = month_end(reference.year, reference.month)

    window = budget.window
    if isinstance(window, MonthlyWindow):
        if window.month:
            year, month = parse_month(window.month)
            return DateWindow(start=month_start(year, month), end=month_end(year, month))
        return DateWindow(start=ref_start, end=ref_end)

    if isinstance(window, CustomWindow):
        start = start_of_day(window.start_date) if window.start_date else ref_start
        end = end_of_day(window.end_date) if window.end_date else ref_end
        return DateWindow(start=start, end=end)

    raise TypeError(f"Unsupported budget window: {window!r}")


def spent(budget: Budget, transactions: Iterable[Transaction], reference_date: date) -> int:
    """Sum of matching expenses inside the budget's window."""
    window = resolve_window(budget, reference_date)
    return sum(
        t.amount
        for t in transactions
        if t.is_expense
        and window.contains(t.occurred_at)
        and budget.applies_to_tag(t.tag)
    )


def overspend_probability(spent_amount: int, is_over_budget: bool, pace_ratio: float) -> int:
    """Discrete risk score (0-100) from the projected pace."""
    if is_over_budget:
        return 100
    if spent_amount == 0:
        return 0
    for threshold, probability in OVERSPEND_STEPS:
        if pace_ratio > threshold:
            return probability
    return BASELINE_PROBABILITY


def _ratio(numerator: float, denominator: int) -> float:
    """numerator / denominator, with a non-positive denominator yielding inf (or 0 for 0)."""
    if denominator > 0:
        return numerator / denominator
    return math.inf if numerator > 0 else 0.0


def progress(
    budget: Budget,
    transactions: Iterable[Transaction],
    reference_date: date,
) -> BudgetProgress:
    """
    Spend, burn rate and overspend risk as of `reference_date`.

    A budget with a non-positive amount (possible only in malformed
    stored data) reports infinite percentage/pace once anything is spent.
    """
    reference = as_datetime(reference_date)
    spent_amount = spent(budget, transactions, reference)

    raw_percentage = _ratio(spent_amount * 100, budget.amount)
    percentage = (
        float(round_half_up(raw_percentage)) if math.isfinite(raw_percentage) else raw_percentage
    )
    is_over_budget = spent_amount > budget.amount

    month_days = days_in_month(reference.year, reference.month)
    remaining_time = month_end(reference.year, reference.month) - reference
    days_left = max(1, math.ceil(remaining_time / ONE_DAY))

    daily_burn_rate = spent_amount / max(1, reference.day)
    projected_spend = daily_burn_rate * month_days
    pace_ratio = _ratio(projected_spend, budget.amount)

    return BudgetProgress(
        spent=spent_amount,
        amount=budget.amount,
        percentage=percentage,
        is_over_budget=is_over_budget,
        days_left=days_left,
        daily_burn_rate=daily_burn_rate,
        projected_spend=projected_spend,
        pace_ratio=pace_ratio,
        overspend_probability=overspend_probability(spent_amount, is_over_budget, pace_ratio),
    )


def rank_budgets(
    budgets: Iterable[Budget],
    transactions: Iterable[Transaction],
    reference_date: date,
) -> list[RankedBudget]:
    """Budgets in display order: over budget first, then by percentage descending."""
    transactions = list(transactions)
    ranked = [
        RankedBudget(budget=b, progress=progress(b, transactions, reference_date))
        for b in budgets
    ]
    ranked.sort(key=lambda r: (not r.progress.is_over_budget, -r.progress.percentage))
    return ranked


def effective_category(
    budget: Budget,
    tag_category_map: Mapping[str, BudgetCategory],
) -> BudgetCategory:
    """The budget's own category, else the category of its first mapped tag, else needs."""
    if budget.category is not None:
        return budget.category
    for tag in budget.tags:
        if tag in tag_category_map:
            return BudgetCategory(tag_category_map[tag])
    return BudgetCategory.NEEDS


def _applies_to_month(budget: Budget, month: str) -> bool:
    window = budget.window
    return isinstance(window, MonthlyWindow) and (window.month is None or window.month == month)


def category_summary(
    budgets: Iterable[Budget],
    transactions: Iterable[Transaction],
    tag_category_map: Mapping[str, BudgetCategory],
    reference_date: date,
) -> dict[BudgetCategory, CategorySummary]:
    """
    Budgeted vs spent per category for the reference month.

    Only monthly budgets covering the reference month are counted.
    """
    reference = as_datetime(reference_date)
    month = format_month(reference.year, reference.month)
    transactions = list(transactions)

    summary = {category: CategorySummary(category=category) for category in BudgetCategory}
    for budget in budgets:
        if not _applies_to_month(budget, month):
            continue
        row = summary[effective_category(budget, tag_category_map)]
        row.budget += budget.amount
        row.spent += spent(budget, transactions, reference)

    for row in summary.values():
        row.percentage = round_half_up(row.spent / row.budget * 100) if row.budget > 0 else 0
    return summary


def goal_progress(goal: InvestmentGoal, transactions: Iterable[Transaction]) -> GoalProgress:
    """Progress toward an investment goal from its tagged expenses."""
    tracked = set(goal.tags)
    invested = goal.current_amount + sum(
        t.amount for t in transactions if t.is_expense and t.tag in tracked
    )
    percentage = round_half_up(invested / goal.target_amount * 100) if goal.target_amount > 0 else 0
    return GoalProgress(
        goal_id=goal.id,
        invested=invested,
        target=goal.target_amount,
        percentage=percentage,
        remaining=max(0, goal.target_amount - invested),
        is_achieved=goal.target_amount > 0 and invested >= goal.target_amount,
        monthly_target=goal.monthly_target,
    )
