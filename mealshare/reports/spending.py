"""
Spending Reports

Chart-ready series computed from grocery records. These are plain
lists; drawing them is left to whatever renders the dashboard.
"""

from collections import defaultdict
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional

from mealshare.config import get_settings
from mealshare.models.household import GroceryItem
from mealshare.models.summary import ZERO


def monthly_spend(groceries: Iterable[GroceryItem], year: int) -> list[Decimal]:
    """Grocery totals for each month of `year`, January first."""
    totals = [ZERO] * 12
    for item in groceries:
        if item.date.year == year:
            totals[item.date.month - 1] += item.amount
    return totals


def cumulative_spend(groceries: Iterable[GroceryItem]) -> list[tuple[date, Decimal]]:
    """Running total of grocery spending, one point per day with purchases."""
    daily: dict[date, Decimal] = defaultdict(lambda: ZERO)
    for item in groceries:
        daily[item.date] += item.amount

    series = []
    running = ZERO
    for day in sorted(daily):
        running += daily[day]
        series.append((day, running))
    return series


def format_currency(amount: Decimal, currency: Optional[str] = None) -> str:
    """Format an amount like 'AED 1,234.56'."""
    currency = currency or get_settings().app.currency
    rounded = Decimal(amount).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    return f"{currency} {rounded:,.2f}"


def format_currency_short(amount: Decimal, currency: Optional[str] = None) -> str:
    """Format an amount without decimals, like 'AED 1,235'."""
    currency = currency or get_settings().app.currency
    rounded = Decimal(amount).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return f"{currency} {rounded:,.0f}"
