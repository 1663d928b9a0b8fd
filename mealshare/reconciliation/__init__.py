"""Balance reconciliation package."""

from mealshare.reconciliation.engine import (
    average_expense,
    reconcile,
    scoped_deposits,
    scoped_groceries,
)

__all__ = [
    "average_expense",
    "reconcile",
    "scoped_deposits",
    "scoped_groceries",
]
