"""
Tests for grocery CSV import and export.
"""

import pytest
from datetime import date
from decimal import Decimal

from mealshare.models.household import GroceryItem, Member
from mealshare.services.csv_io import (
    EXPORT_COLUMNS,
    CSVFormatError,
    export_groceries_csv,
    parse_day_first_date,
    parse_grocery_csv,
)
from mealshare.validation import RecordValidator


MEMBERS = [
    Member(id="a", name="Amina"),
    Member(id="b", name="Bilal"),
    Member(id="c", name="Chen", active=False),
]


@pytest.fixture
def validator() -> RecordValidator:
    return RecordValidator(
        max_record_amount=Decimal("1000"),
        future_date_tolerance_days=7,
        today=date(2024, 7, 20),
    )


class TestParseDayFirstDate:
    """Tests for DD-MM-YYYY date parsing."""

    def test_dash_and_slash(self):
        assert parse_day_first_date("03-07-2024") == date(2024, 7, 3)
        assert parse_day_first_date("03/07/2024") == date(2024, 7, 3)

    def test_two_digit_year(self):
        """Test that two-digit years mean 20YY."""
        assert parse_day_first_date("31-12-23") == date(2023, 12, 31)

    def test_impossible_date(self):
        with pytest.raises(ValueError, match="Invalid date value"):
            parse_day_first_date("31-02-2024")

    def test_wrong_shape(self):
        with pytest.raises(ValueError, match="Expected DD-MM-YYYY"):
            parse_day_first_date("2024.07.03")


class TestParseGroceryCSV:
    """Tests for parse_grocery_csv."""

    def test_valid_file(self, validator):
        """Test a clean file imports every row."""
        text = (
            "Date,Item,Price,Purchased By\n"
            "03-07-2024,Rice 5kg,42.50,Amina\n"
            "04-07-2024,Milk,6.25,bilal\n"
        )
        result = parse_grocery_csv(text, MEMBERS, validator=validator)

        assert result.imported_count == 2
        assert result.rejected_count == 0
        first = result.items[0]
        assert first.description == "Rice 5kg"
        assert first.amount == Decimal("42.50")
        assert first.date == date(2024, 7, 3)
        assert first.purchaser_id == "a"
        assert result.items[1].purchaser_id == "b"

    def test_alternate_headers(self, validator):
        """Test 'name' and 'amount' header spellings in any order."""
        text = "purchased by,amount,name,date\nAmina,10,Bread,01/07/2024\n"
        result = parse_grocery_csv(text, MEMBERS, validator=validator)
        assert result.imported_count == 1
        assert result.items[0].description == "Bread"

    def test_bad_rows_are_reported_with_row_numbers(self, validator):
        """Test one bad row does not sink the file."""
        text = (
            "date,item,price,purchased by\n"
            "03-07-2024,Rice,42.50,Amina\n"
            "04-07-2024,Milk,abc,Amina\n"
            "99-99-2024,Eggs,8,Amina\n"
            "05-07-2024,Tea,4,Chen\n"
            "06-07-2024,,4,Amina\n"
            "07-07-2024,Oil,-3,Amina\n"
        )
        result = parse_grocery_csv(text, MEMBERS, validator=validator)

        assert result.imported_count == 1
        assert result.rejected_count == 5
        assert result.issues[0].message.startswith("Row 3: ")
        assert result.issues[0].field == "amount"
        assert result.issues[1].field == "date"
        assert result.issues[2].issue_type == "unknown_member"
        assert result.issues[3].issue_type == "missing"
        assert result.issues[4].row == 7

    def test_blank_lines_are_skipped(self, validator):
        text = "date,item,price,purchased by\n\n03-07-2024,Rice,42.50,Amina\n,,,\n"
        result = parse_grocery_csv(text, MEMBERS, validator=validator)
        assert result.imported_count == 1
        assert result.issues == []

    def test_missing_headers(self, validator):
        """Test a file without the required columns is refused outright."""
        with pytest.raises(CSVFormatError):
            parse_grocery_csv("date,item,price\n03-07-2024,Rice,42.50\n", MEMBERS, validator=validator)

    def test_empty_file(self, validator):
        with pytest.raises(CSVFormatError):
            parse_grocery_csv("", MEMBERS, validator=validator)

    def test_row_limit(self, validator):
        """Test files over the row limit are refused."""
        text = "date,item,price,purchased by\n" + "03-07-2024,Rice,1,Amina\n" * 3
        with pytest.raises(CSVFormatError, match="more than 2 rows"):
            parse_grocery_csv(text, MEMBERS, validator=validator, max_rows=2)


class TestExportGroceriesCSV:
    """Tests for export_groceries_csv."""

    def test_export(self):
        """Test rows, ordering and purchaser labels."""
        groceries = [
            GroceryItem(description="Rice", amount=Decimal("42.5"), date=date(2024, 7, 3), purchaser_id="a"),
            GroceryItem(description="Tea, green", amount=Decimal("4"), date=date(2024, 7, 5), purchaser_id="c"),
            GroceryItem(description="Salt", amount=Decimal("1"), date=date(2024, 7, 6), purchaser_id="zzz"),
        ]
        text = export_groceries_csv(groceries, MEMBERS)

        lines = text.splitlines()
        assert lines[0] == ",".join(EXPORT_COLUMNS)
        assert lines[1] == "2024-07-03,Rice,42.50,Amina"
        assert lines[2] == '2024-07-05,"Tea, green",4.00,Chen (removed)'
        assert lines[3] == "2024-07-06,Salt,1.00,Unknown member"

    def test_export_empty(self):
        assert export_groceries_csv([], MEMBERS) == "date,item,amount,purchased by\n"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
