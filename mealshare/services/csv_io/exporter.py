"""
Grocery CSV Export

Writes groceries (usually the filtered dashboard list) in the same
column layout the importer reads, with ISO dates so the file sorts
correctly in any spreadsheet.
"""

import csv
import io
from typing import Iterable, Sequence

from mealshare.models.household import UNKNOWN_MEMBER_LABEL, GroceryItem, Member


EXPORT_COLUMNS = ["date", "item", "amount", "purchased by"]


def export_groceries_csv(
    groceries: Iterable[GroceryItem],
    members: Sequence[Member],
) -> str:
    """Render groceries as CSV text, one row per item."""
    labels = {member.id: member.label for member in members}

    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(EXPORT_COLUMNS)
    for item in groceries:
        writer.writerow([
            item.date.isoformat(),
            item.description,
            f"{item.amount:.2f}",
            labels.get(item.purchaser_id, UNKNOWN_MEMBER_LABEL),
        ])
    return buffer.getvalue()
