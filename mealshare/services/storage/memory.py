"""
In-Memory Storage

Keeps rows as JSON-shaped dicts, exactly what a document store would
hand back, so that the validation path is exercised the same way it
is against a real backend. Used by tests and as the fallback when no
spreadsheet is configured.
"""

from collections import defaultdict
from typing import Optional
from uuid import UUID

from mealshare.models.audit import AuditEvent
from mealshare.models.household import Deposit, GroceryItem, Member
from mealshare.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    HouseholdStorageInterface,
    NotFoundError,
)


def _index_of(rows: list[dict], record_id: str) -> Optional[int]:
    for idx, row in enumerate(rows):
        if row.get("id") == record_id:
            return idx
    return None


def _replace(rows: list[dict], record, label: str) -> bool:
    idx = _index_of(rows, record.id)
    if idx is None:
        raise NotFoundError(f"{label} not found: {record.id}")
    rows[idx] = record.model_dump(mode="json")
    return True


class InMemoryHouseholdStorage(HouseholdStorageInterface):
    """Household storage backed by plain lists, keyed by household id."""

    def __init__(self):
        self._members: dict[str, list[dict]] = defaultdict(list)
        self._groceries: dict[str, list[dict]] = defaultdict(list)
        self._deposits: dict[str, list[dict]] = defaultdict(list)

    def load_raw(
        self,
        household_id: str,
        members: Optional[list[dict]] = None,
        groceries: Optional[list[dict]] = None,
        deposits: Optional[list[dict]] = None,
    ) -> None:
        """Seed rows as-is, without validation (e.g. imported legacy data)."""
        self._members[household_id].extend(dict(row) for row in members or [])
        self._groceries[household_id].extend(dict(row) for row in groceries or [])
        self._deposits[household_id].extend(dict(row) for row in deposits or [])

    async def fetch_members(self, household_id: str) -> list[dict]:
        return [dict(row) for row in self._members.get(household_id, [])]

    async def fetch_groceries(self, household_id: str) -> list[dict]:
        return [dict(row) for row in self._groceries.get(household_id, [])]

    async def fetch_deposits(self, household_id: str) -> list[dict]:
        return [dict(row) for row in self._deposits.get(household_id, [])]

    async def save_member(self, household_id: str, member: Member) -> bool:
        rows = self._members[household_id]
        if _index_of(rows, member.id) is not None:
            raise DuplicateError(f"Member already exists: {member.id}")
        rows.append(member.model_dump(mode="json"))
        return True

    async def update_member(self, household_id: str, member: Member) -> bool:
        return _replace(self._members[household_id], member, "Member")

    async def save_grocery(self, household_id: str, item: GroceryItem) -> bool:
        rows = self._groceries[household_id]
        if _index_of(rows, item.id) is not None:
            raise DuplicateError(f"Grocery item already exists: {item.id}")
        rows.append(item.model_dump(mode="json"))
        return True

    async def update_grocery(self, household_id: str, item: GroceryItem) -> bool:
        return _replace(self._groceries[household_id], item, "Grocery item")

    async def delete_grocery(self, household_id: str, grocery_id: str) -> bool:
        rows = self._groceries[household_id]
        idx = _index_of(rows, grocery_id)
        if idx is None:
            return False
        del rows[idx]
        return True

    async def save_deposit(self, household_id: str, deposit: Deposit) -> bool:
        rows = self._deposits[household_id]
        if _index_of(rows, deposit.id) is not None:
            raise DuplicateError(f"Deposit already exists: {deposit.id}")
        rows.append(deposit.model_dump(mode="json"))
        return True

    async def update_deposit(self, household_id: str, deposit: Deposit) -> bool:
        return _replace(self._deposits[household_id], deposit, "Deposit")

    async def delete_deposit(self, household_id: str, deposit_id: str) -> bool:
        rows = self._deposits[household_id]
        idx = _index_of(rows, deposit_id)
        if idx is None:
            return False
        del rows[idx]
        return True


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only audit log kept in a list."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    @property
    def events(self) -> list[AuditEvent]:
        return list(self._events)

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [e for e in self._events if e.correlation_id == correlation_id]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        household_id: str,
        limit: int = 100,
    ) -> list[AuditEvent]:
        events = [e for e in self._events if e.household_id == household_id]
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
