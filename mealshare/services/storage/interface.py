"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Swap Google Sheets for a real database later
2. Use in-memory storage for testing
3. Keep the balance engine decoupled from storage entirely

Fetch methods return RAW rows (plain dicts), not models. Rows are
turned into models by RecordValidator so that malformed data is
reported instead of crashing a fetch or being silently dropped.

Every method takes the household id explicitly. There is no
"current household" anywhere in the storage layer.
"""

from abc import ABC, abstractmethod
from typing import Iterable
from uuid import UUID

from mealshare.models.audit import AuditEvent
from mealshare.models.household import Deposit, GroceryItem, Member


class HouseholdStorageInterface(ABC):
    """
    Abstract interface for household record storage.

    Concurrent writers are not coordinated: the last write wins.
    """

    @abstractmethod
    async def fetch_members(self, household_id: str) -> list[dict]:
        """Raw member rows for a household, in insertion order."""
        pass

    @abstractmethod
    async def fetch_groceries(self, household_id: str) -> list[dict]:
        """Raw grocery rows for a household."""
        pass

    @abstractmethod
    async def fetch_deposits(self, household_id: str) -> list[dict]:
        """Raw deposit rows for a household."""
        pass

    @abstractmethod
    async def save_member(self, household_id: str, member: Member) -> bool:
        """
        Add a member.

        Raises:
            DuplicateError: If a member with the same id exists
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def update_member(self, household_id: str, member: Member) -> bool:
        """
        Replace a member's stored fields.

        Raises:
            NotFoundError: If the member doesn't exist
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def save_grocery(self, household_id: str, item: GroceryItem) -> bool:
        """Add a grocery item."""
        pass

    @abstractmethod
    async def update_grocery(self, household_id: str, item: GroceryItem) -> bool:
        """
        Replace a grocery item's stored fields.

        Raises:
            NotFoundError: If the item doesn't exist
        """
        pass

    @abstractmethod
    async def delete_grocery(self, household_id: str, grocery_id: str) -> bool:
        """
        Delete a grocery item.

        Returns:
            True if deleted, False if no such item
        """
        pass

    @abstractmethod
    async def save_deposit(self, household_id: str, deposit: Deposit) -> bool:
        """Add a deposit."""
        pass

    @abstractmethod
    async def update_deposit(self, household_id: str, deposit: Deposit) -> bool:
        """
        Replace a deposit's stored fields.

        Raises:
            NotFoundError: If the deposit doesn't exist
        """
        pass

    @abstractmethod
    async def delete_deposit(self, household_id: str, deposit_id: str) -> bool:
        """
        Delete a deposit.

        Returns:
            True if deleted, False if no such deposit
        """
        pass

    async def save_groceries(
        self,
        household_id: str,
        items: Iterable[GroceryItem],
    ) -> int:
        """Add several grocery items. Returns how many were saved."""
        saved = 0
        for item in items:
            if await self.save_grocery(household_id, item):
                saved += 1
        return saved


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event to the log."""
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """All events from one user action, in chronological order."""
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        household_id: str,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Most recent events for a household, newest first."""
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
