"""CSV import/export for grocery records."""

from mealshare.services.csv_io.exporter import EXPORT_COLUMNS, export_groceries_csv
from mealshare.services.csv_io.parser import (
    CSVFormatError,
    CSVImportResult,
    parse_day_first_date,
    parse_grocery_csv,
)

__all__ = [
    "EXPORT_COLUMNS",
    "export_groceries_csv",
    "CSVFormatError",
    "CSVImportResult",
    "parse_day_first_date",
    "parse_grocery_csv",
]
