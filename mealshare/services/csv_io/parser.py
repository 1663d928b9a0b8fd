"""
Grocery CSV Import

Accepts the spreadsheet layout households already keep:

    Date,Item,Price,Purchased By
    03-07-2024,Rice 5kg,42.50,Amina

Rules:
- Headers are case-insensitive. 'item' or 'name', 'price' or 'amount'.
- Dates are day first: DD-MM-YYYY or DD/MM/YYYY. Two-digit years mean 20YY.
- 'Purchased By' must name a current member (case-insensitive).

DESIGN DECISION: One bad row never sinks the whole file.
Each bad row is reported with its spreadsheet row number and the good
rows are returned. Only a file we cannot read at all (no header,
missing columns, too many rows) raises CSVFormatError.
"""

import csv
import io
import re
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Optional, Sequence

from pydantic import BaseModel, Field

from mealshare.config import get_settings
from mealshare.models.household import GroceryItem, Member, RecordType
from mealshare.models.summary import RecordIssue
from mealshare.validation import RecordValidator


DATE_HEADER = "date"
ITEM_HEADERS = ("item", "name")
AMOUNT_HEADERS = ("price", "amount")
PURCHASER_HEADER = "purchased by"

_DATE_SEPARATORS = re.compile(r"[-/]")


class CSVFormatError(Exception):
    """The file cannot be read as a grocery CSV at all."""
    pass


class CSVImportResult(BaseModel):
    """Rows that were read, and what was wrong with the rest."""

    items: list[GroceryItem] = Field(default_factory=list)
    issues: list[RecordIssue] = Field(default_factory=list)

    @property
    def imported_count(self) -> int:
        return len(self.items)

    @property
    def rejected_count(self) -> int:
        return len({issue.row for issue in self.issues if issue.is_error})


def _find_column(headers: list[str], candidates: Sequence[str]) -> int:
    for candidate in candidates:
        if candidate in headers:
            return headers.index(candidate)
    return -1


def parse_day_first_date(value: str) -> date:
    """
    Parse DD-MM-YYYY, DD/MM/YYYY or DD-MM-YY.

    Raises:
        ValueError: If the value is not a real calendar date
    """
    parts = _DATE_SEPARATORS.split(value.strip())
    if len(parts) != 3:
        raise ValueError(f"Invalid date format '{value}'. Expected DD-MM-YYYY.")
    day, month, year = (part.strip() for part in parts)
    if len(year) == 2:
        year = f"20{year}"
    try:
        return date(int(year), int(month), int(day))
    except ValueError:
        raise ValueError(f"Invalid date value '{value}'.")


def _row_issue(row: int, field: str, issue_type: str, message: str) -> RecordIssue:
    return RecordIssue(
        record_type=RecordType.GROCERY,
        row=row,
        field=field,
        issue_type=issue_type,
        message=f"Row {row}: {message}",
        severity="error",
    )


def parse_grocery_csv(
    text: str,
    members: Sequence[Member],
    validator: Optional[RecordValidator] = None,
    max_rows: Optional[int] = None,
) -> CSVImportResult:
    """
    Parse grocery rows from CSV text.

    Args:
        text: Full CSV content
        members: Household members; only active ones can be named as purchaser
        validator: Record validator for the amount/date checks
        max_rows: Upper bound on data rows (defaults to AppSettings.max_csv_rows)

    Returns:
        CSVImportResult with parsed items and per-row issues

    Raises:
        CSVFormatError: If the header is missing or incomplete, or the file is too long
    """
    validator = validator or RecordValidator()
    if max_rows is None:
        max_rows = get_settings().app.max_csv_rows

    reader = csv.reader(io.StringIO(text.strip()))
    try:
        header_row = next(reader)
    except StopIteration:
        raise CSVFormatError("CSV file is empty or has no header row.")

    headers = [h.strip().lower() for h in header_row]
    date_idx = _find_column(headers, (DATE_HEADER,))
    item_idx = _find_column(headers, ITEM_HEADERS)
    amount_idx = _find_column(headers, AMOUNT_HEADERS)
    purchaser_idx = _find_column(headers, (PURCHASER_HEADER,))

    if -1 in (date_idx, item_idx, amount_idx, purchaser_idx):
        raise CSVFormatError(
            "CSV must contain 'date', 'item' (or 'name'), "
            "'price' (or 'amount'), and 'purchased by' headers."
        )

    roster = {m.name.casefold(): m for m in members if m.active}
    result = CSVImportResult()
    data_rows = 0

    for values in reader:
        row = reader.line_num
        if not any(value.strip() for value in values):
            continue

        data_rows += 1
        if data_rows > max_rows:
            raise CSVFormatError(f"CSV has more than {max_rows} rows.")

        def cell(index: int) -> str:
            return values[index].strip() if index < len(values) else ""

        raw_date, description = cell(date_idx), cell(item_idx)
        raw_amount, purchaser_name = cell(amount_idx), cell(purchaser_idx)

        if not description or not purchaser_name:
            result.issues.append(_row_issue(row, "record", "missing", "Missing item or purchaser."))
            continue

        try:
            amount = Decimal(raw_amount)
            if not amount.is_finite():
                raise InvalidOperation
        except InvalidOperation:
            result.issues.append(_row_issue(
                row, "amount", "invalid_format", f"Invalid amount '{raw_amount}'."
            ))
            continue

        if not raw_date:
            result.issues.append(_row_issue(row, "date", "missing", "Missing date."))
            continue
        try:
            day = parse_day_first_date(raw_date)
        except ValueError as e:
            result.issues.append(_row_issue(row, "date", "invalid_format", str(e)))
            continue

        purchaser = roster.get(purchaser_name.casefold())
        if purchaser is None:
            result.issues.append(_row_issue(
                row, "purchaser", "unknown_member",
                f"'{purchaser_name}' is not a member of this household."
            ))
            continue

        item, issues = validator.validate_grocery(
            {
                "description": description,
                "amount": amount,
                "date": day,
                "purchaser_id": purchaser.id,
            },
            members,
            row=row,
        )
        result.issues.extend(issues)
        if item is not None:
            result.items.append(item)

    return result
