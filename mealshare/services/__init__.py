"""Services package."""

from mealshare.services.csv_io import (
    CSVFormatError,
    CSVImportResult,
    export_groceries_csv,
    parse_grocery_csv,
)
from mealshare.services.storage import (
    AuditStorageInterface,
    ConnectionError,
    DuplicateError,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsHouseholdStorage,
    HouseholdStorageInterface,
    InMemoryAuditStorage,
    InMemoryHouseholdStorage,
    NotFoundError,
    StorageError,
)

__all__ = [
    # CSV services
    "CSVFormatError",
    "CSVImportResult",
    "export_groceries_csv",
    "parse_grocery_csv",
    # Storage services
    "AuditStorageInterface",
    "ConnectionError",
    "DuplicateError",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsHouseholdStorage",
    "HouseholdStorageInterface",
    "InMemoryAuditStorage",
    "InMemoryHouseholdStorage",
    "NotFoundError",
    "StorageError",
]
