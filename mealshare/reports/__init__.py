"""Reports package: spending series, currency formatting and period archives."""

from mealshare.reports.periods import (
    archive_period,
    carry_over_balances,
    period_scope,
)
from mealshare.reports.spending import (
    cumulative_spend,
    format_currency,
    format_currency_short,
    monthly_spend,
)

__all__ = [
    "archive_period",
    "carry_over_balances",
    "period_scope",
    "cumulative_spend",
    "format_currency",
    "format_currency_short",
    "monthly_spend",
]
