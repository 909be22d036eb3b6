"""
Budget and Investment Goal Models

A budget is a spending limit for a set of tags over a time window.
The window is either a calendar month or an explicit date range.

DESIGN DECISION: The window is a tagged union (MonthlyWindow |
CustomWindow) rather than one object with mutually exclusive optional
fields. The backup format stores it flat (`type`, `month`, `startDate`,
`endDate`), so budgets are folded on load and flattened on dump.
"""

from datetime import date
from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_serializer,
    model_validator,
)
from pydantic.alias_generators import to_camel

from finance_tracker.models.transaction import UtcDatetime, new_id, utc_now


MONTH_PATTERN = r"^\d{4}-(0[1-9]|1[0-2])$"


class BudgetCategory(str, Enum):
    """
    Budget grouping used only by the category summary.

    Matching transactions to budgets is done by tag, never by category.
    """
    NEEDS = "needs"
    WANTS = "wants"
    INVESTMENT = "investment"


class BudgetType(str, Enum):
    MONTHLY = "monthly"
    CUSTOM = "custom"


class MonthlyWindow(BaseModel):
    """A calendar month. `month` of None means "the reference month"."""
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    type: Literal["monthly"] = "monthly"
    month: Optional[str] = Field(
        default=None,
        pattern=MONTH_PATTERN,
        description="Year-month, YYYY-MM",
    )


class CustomWindow(BaseModel):
    """An explicit, inclusive date range. Missing bounds fall back to the reference month."""
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    type: Literal["custom"] = "custom"
    start_date: Optional[date] = None
    end_date: Optional[date] = None


BudgetWindow = Annotated[
    Union[MonthlyWindow, CustomWindow],
    Field(discriminator="type"),
]

# Flat keys (alias and field name) that belong to the window
_WINDOW_KEYS = ("month", "startDate", "start_date", "endDate", "end_date")


class Budget(BaseModel):
    """
    A spending limit tied to a set of tags.

    `amount` is only required to be positive when a budget is created
    (see BudgetValidator); persisted budgets with a zero amount still
    load so that malformed data cannot break reads.
    """
    model_config = ConfigDict(
        frozen=True,
        str_strip_whitespace=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    id: str = Field(default_factory=new_id, min_length=1)
    name: str = Field(..., max_length=200)
    amount: Annotated[int, Field(strict=True)] = Field(
        ...,
        description="Spending limit in the smallest currency unit",
    )
    tags: list[str] = Field(
        default_factory=list,
        description="Tags this budget applies to; empty means all tags",
    )
    category: Optional[BudgetCategory] = Field(
        default=None,
        description="Grouping for the category summary; None resolves via tag map",
    )
    window: BudgetWindow = Field(default_factory=MonthlyWindow)
    created_at: UtcDatetime = Field(default_factory=utc_now, validate_default=True)
    color: Optional[str] = Field(default=None, max_length=20)

    @model_validator(mode="before")
    @classmethod
    def fold_flat_window(cls, data: Any) -> Any:
        """Accept the flat backup layout and build the window from it."""
        if not isinstance(data, dict) or "window" in data:
            return data

        data = dict(data)
        budget_type = data.pop("type", BudgetType.MONTHLY.value)
        if isinstance(budget_type, BudgetType):
            budget_type = budget_type.value

        window: dict[str, Any] = {"type": budget_type}
        for key in _WINDOW_KEYS:
            if key in data:
                value = data.pop(key)
                # Stored budgets carry empty strings for unused fields
                if value not in (None, ""):
                    window[key] = value
        if budget_type == BudgetType.MONTHLY.value:
            window.pop("startDate", None)
            window.pop("start_date", None)
            window.pop("endDate", None)
            window.pop("end_date", None)
        else:
            window.pop("month", None)

        data["window"] = window
        return data

    @field_validator("tags")
    @classmethod
    def strip_tags(cls, v: list[str]) -> list[str]:
        return [tag.strip() for tag in v if tag.strip()]

    @model_serializer(mode="wrap")
    def flatten_window(self, handler) -> dict[str, Any]:
        data = handler(self)
        window = data.pop("window", None) or {}
        data.update(window)
        return data

    @property
    def type(self) -> BudgetType:
        return BudgetType(self.window.type)

    @property
    def is_monthly(self) -> bool:
        return isinstance(self.window, MonthlyWindow)

    def applies_to_tag(self, tag: str) -> bool:
        """Empty tag set matches every tag."""
        return not self.tags or tag in self.tags


class TagCategoryMapping(BaseModel):
    """One row of the tag → budget category map."""
    tag: str = Field(..., min_length=1)
    category: BudgetCategory = BudgetCategory.NEEDS


class InvestmentGoal(BaseModel):
    """
    A savings/investment target tracked through tagged expenses.

    Progress counts `current_amount` (invested before tracking started)
    plus every expense carrying one of `tags`.
    """
    model_config = ConfigDict(
        frozen=True,
        str_strip_whitespace=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    id: str = Field(default_factory=new_id, min_length=1)
    name: str = Field(..., max_length=200)
    target_amount: Annotated[int, Field(strict=True)]
    current_amount: Annotated[int, Field(strict=True)] = 0
    tags: list[str] = Field(default_factory=list)
    monthly_target: Optional[int] = None
    deadline: Optional[date] = None
    created_at: UtcDatetime = Field(default_factory=utc_now, validate_default=True)
    color: Optional[str] = Field(default=None, max_length=20)
