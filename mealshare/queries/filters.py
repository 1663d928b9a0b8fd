"""
Grocery Filtering

DESIGN DECISION: Filtering is a plain predicate scan.
A household's grocery history is a few thousand rows at most, so
there is no index. Every criterion left unset is skipped; every
criterion that is set must match (logical AND).

Used by the dashboard list, the individual-account view and CSV export.
"""

from datetime import date
from decimal import Decimal
from typing import Iterable, Optional, Sequence

from mealshare.models.household import (
    UNKNOWN_MEMBER_LABEL,
    GroceryItem,
    Member,
)
from mealshare.models.summary import (
    ZERO,
    GroceryFilter,
    IndividualAccount,
)


def matches(item: GroceryItem, criteria: GroceryFilter) -> bool:
    """Check one grocery item against every active criterion."""
    if criteria.start_date and item.date < criteria.start_date:
        return False
    if criteria.end_date and item.date > criteria.end_date:
        return False
    if criteria.min_amount is not None and item.amount < criteria.min_amount:
        return False
    if criteria.max_amount is not None and item.amount > criteria.max_amount:
        return False
    if criteria.purchaser_id and item.purchaser_id != criteria.purchaser_id:
        return False
    return True


def filter_groceries(
    groceries: Iterable[GroceryItem],
    criteria: GroceryFilter,
) -> list[GroceryItem]:
    """
    Return the grocery items that satisfy all active criteria.

    Input order is preserved. An inverted date or amount range
    simply matches nothing.
    """
    return [item for item in groceries if matches(item, criteria)]


def individual_account(
    groceries: Iterable[GroceryItem],
    member_id: str,
    members: Optional[Sequence[Member]] = None,
) -> IndividualAccount:
    """One member's grocery purchases and their total."""
    items = filter_groceries(groceries, GroceryFilter(purchaser_id=member_id))

    name = UNKNOWN_MEMBER_LABEL
    for member in members or []:
        if member.id == member_id:
            name = member.label
            break

    return IndividualAccount(
        member_id=member_id,
        name=name,
        groceries=items,
        total_paid=sum((item.amount for item in items), ZERO),
    )


def grocery_to_dict(item: GroceryItem, purchaser_name: Optional[str] = None) -> dict:
    """Convert a grocery item to a plain dictionary for tables and charts."""
    return {
        "id": item.id,
        "description": item.description,
        "amount": str(item.amount),
        "date": item.date.isoformat(),
        "purchaser_id": item.purchaser_id,
        "purchaser_name": purchaser_name,
    }


def describe_filter(criteria: GroceryFilter) -> str:
    """Human-readable description of the active criteria."""
    parts = ["Groceries"]
    if criteria.start_date or criteria.end_date:
        parts.append(_date_range_str(criteria.start_date, criteria.end_date))
    amount_str = _amount_range_str(criteria.min_amount, criteria.max_amount)
    if amount_str:
        parts.append(amount_str)
    if criteria.purchaser_id:
        parts.append(f"bought by {criteria.purchaser_id}")
    return " | ".join(parts)


def _amount_range_str(
    min_amount: Optional[Decimal],
    max_amount: Optional[Decimal],
) -> str:
    if min_amount is not None and max_amount is not None:
        return f"amount {min_amount:.2f}-{max_amount:.2f}"
    elif min_amount is not None:
        return f"amount from {min_amount:.2f}"
    elif max_amount is not None:
        return f"amount up to {max_amount:.2f}"
    return ""


def _date_range_str(
    date_from: Optional[date],
    date_to: Optional[date],
) -> str:
    """Format date range for description."""
    if date_from and date_to:
        if date_from == date_to:
            return f"on {date_from.strftime('%d %b %Y')}"
        elif date_from.month == date_to.month and date_from.year == date_to.year:
            return f"in {date_from.strftime('%B %Y')}"
        elif date_from.year == date_to.year:
            return f"from {date_from.strftime('%b')} to {date_to.strftime('%b %Y')}"
        else:
            return f"from {date_from.strftime('%b %Y')} to {date_to.strftime('%b %Y')}"
    elif date_from:
        return f"from {date_from.strftime('%d %b %Y')}"
    elif date_to:
        return f"until {date_to.strftime('%d %b %Y')}"
    return ""
