"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Google Sheets is the persistent backend; the in-memory backend serves
tests and unconfigured installs.
"""

from mealshare.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    DuplicateError,
    HouseholdStorageInterface,
    NotFoundError,
    StorageError,
)
from mealshare.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsHouseholdStorage,
)
from mealshare.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryHouseholdStorage,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "HouseholdStorageInterface",
    # Exceptions
    "ConnectionError",
    "DuplicateError",
    "NotFoundError",
    "StorageError",
    # Google Sheets implementation
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsHouseholdStorage",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryHouseholdStorage",
]
