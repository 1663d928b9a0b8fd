"""Grocery filtering package."""

from mealshare.queries.filters import (
    describe_filter,
    filter_groceries,
    grocery_to_dict,
    individual_account,
    matches,
)

__all__ = [
    "describe_filter",
    "filter_groceries",
    "grocery_to_dict",
    "individual_account",
    "matches",
]
