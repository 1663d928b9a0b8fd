"""
Tests for grocery filtering and the individual-account view.
"""

import pytest
from datetime import date
from decimal import Decimal

from mealshare.models.household import GroceryItem, Member
from mealshare.models.summary import GroceryFilter
from mealshare.queries import (
    describe_filter,
    filter_groceries,
    grocery_to_dict,
    individual_account,
    matches,
)


GROCERIES = [
    GroceryItem(id="g1", description="Rice", amount=Decimal("42.50"), date=date(2024, 6, 28), purchaser_id="a"),
    GroceryItem(id="g2", description="Milk", amount=Decimal("6.25"), date=date(2024, 7, 1), purchaser_id="b"),
    GroceryItem(id="g3", description="Lamb", amount=Decimal("95.00"), date=date(2024, 7, 15), purchaser_id="a"),
    GroceryItem(id="g4", description="Bread", amount=Decimal("10.00"), date=date(2024, 7, 31), purchaser_id="a"),
    GroceryItem(id="g5", description="Dates", amount=Decimal("30.00"), date=date(2024, 8, 1), purchaser_id="c"),
]

MEMBERS = [
    Member(id="a", name="Amina"),
    Member(id="b", name="Bilal"),
    Member(id="c", name="Chen", active=False),
]


def ids(items):
    return [item.id for item in items]


class TestFilterGroceries:
    """Tests for filter_groceries."""

    def test_empty_filter_returns_everything(self):
        """Test that unset criteria are not applied."""
        assert ids(filter_groceries(GROCERIES, GroceryFilter())) == ["g1", "g2", "g3", "g4", "g5"]

    def test_date_range_is_inclusive(self):
        """Test both date bounds are inclusive."""
        criteria = GroceryFilter(start_date=date(2024, 7, 1), end_date=date(2024, 7, 31))
        assert ids(filter_groceries(GROCERIES, criteria)) == ["g2", "g3", "g4"]

    def test_amount_range(self):
        """Test min and max amount bounds."""
        criteria = GroceryFilter(min_amount=Decimal("10"), max_amount=Decimal("42.50"))
        assert ids(filter_groceries(GROCERIES, criteria)) == ["g1", "g4", "g5"]

    def test_purchaser(self):
        """Test single purchaser filter."""
        criteria = GroceryFilter(purchaser_id="a")
        assert ids(filter_groceries(GROCERIES, criteria)) == ["g1", "g3", "g4"]

    def test_filter_is_idempotent(self):
        """Test filtering twice with the same criteria changes nothing."""
        criteria = GroceryFilter(start_date=date(2024, 7, 1), end_date=date(2024, 7, 31))
        once = filter_groceries(GROCERIES, criteria)
        twice = filter_groceries(once, criteria)
        assert once == twice

    def test_filter_composition(self):
        """Test combined criteria keep exactly the records passing every predicate."""
        criteria = GroceryFilter(
            start_date=date(2024, 7, 1),
            end_date=date(2024, 8, 31),
            min_amount=Decimal("10"),
            purchaser_id="a",
        )
        result = filter_groceries(GROCERIES, criteria)
        assert ids(result) == ["g3", "g4"]

        for item in GROCERIES:
            passes_all = (
                date(2024, 7, 1) <= item.date <= date(2024, 8, 31)
                and item.amount >= Decimal("10")
                and item.purchaser_id == "a"
            )
            assert (item in result) == passes_all

    def test_inverted_date_range_returns_empty(self):
        """Test start after end yields nothing, not an error."""
        criteria = GroceryFilter(start_date=date(2024, 8, 1), end_date=date(2024, 7, 1))
        assert filter_groceries(GROCERIES, criteria) == []

    def test_inverted_amount_range_returns_empty(self):
        """Test min above max yields nothing."""
        criteria = GroceryFilter(min_amount=Decimal("50"), max_amount=Decimal("10"))
        assert filter_groceries(GROCERIES, criteria) == []

    def test_zero_min_amount_is_applied(self):
        """Test that a zero bound is a real bound, not 'unset'."""
        criteria = GroceryFilter(max_amount=Decimal("0"))
        assert filter_groceries(GROCERIES, criteria) == []

    def test_matches_single_item(self):
        """Test matches on one record."""
        assert matches(GROCERIES[0], GroceryFilter(purchaser_id="a")) is True
        assert matches(GROCERIES[1], GroceryFilter(purchaser_id="a")) is False


class TestIndividualAccount:
    """Tests for the individual-account view."""

    def test_individual_account(self):
        """Test one member's purchases and total."""
        account = individual_account(GROCERIES, "a", MEMBERS)
        assert account.name == "Amina"
        assert ids(account.groceries) == ["g1", "g3", "g4"]
        assert account.total_paid == Decimal("147.50")

    def test_removed_member_label(self):
        """Test a retired member keeps their records under a removed label."""
        account = individual_account(GROCERIES, "c", MEMBERS)
        assert account.name == "Chen (removed)"
        assert account.total_paid == Decimal("30.00")

    def test_unknown_member(self):
        """Test an unknown member gets an empty account."""
        account = individual_account(GROCERIES, "nobody", MEMBERS)
        assert account.name == "Unknown member"
        assert account.groceries == []
        assert account.total_paid == Decimal("0")


class TestFilterHelpers:
    """Tests for description and conversion helpers."""

    def test_describe_filter_full(self):
        """Test a description with every criterion set."""
        criteria = GroceryFilter(
            start_date=date(2024, 7, 1),
            end_date=date(2024, 7, 31),
            min_amount=Decimal("10"),
            max_amount=Decimal("50"),
            purchaser_id="a",
        )
        assert describe_filter(criteria) == (
            "Groceries | in July 2024 | amount 10.00-50.00 | bought by a"
        )

    def test_describe_filter_empty(self):
        """Test the description of an empty filter."""
        assert describe_filter(GroceryFilter()) == "Groceries"

    def test_describe_filter_open_ranges(self):
        """Test one-sided ranges."""
        criteria = GroceryFilter(start_date=date(2024, 7, 5), max_amount=Decimal("20"))
        assert describe_filter(criteria) == "Groceries | from 05 Jul 2024 | amount up to 20.00"

    def test_grocery_to_dict(self):
        """Test plain dictionary conversion."""
        row = grocery_to_dict(GROCERIES[0], purchaser_name="Amina")
        assert row == {
            "id": "g1",
            "description": "Rice",
            "amount": "42.50",
            "date": "2024-06-28",
            "purchaser_id": "a",
            "purchaser_name": "Amina",
        }


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
