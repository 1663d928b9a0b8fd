"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is the household's storage backend because:
1. Housemates can look at the raw records directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)
4. Easy to export/migrate later

TRADEOFFS:
- Not suitable for high-volume data (a household is small)
- No transactions: concurrent edits are last-write-wins
- Limited query capabilities (we filter in Python)

One worksheet per record type. Every row carries a household_id column
so several households can share a spreadsheet.
"""

import json
from datetime import datetime
from typing import Optional
from uuid import UUID

import gspread
import structlog
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from mealshare.config import get_settings
from mealshare.models.audit import AuditEvent, AuditEventType, AuditSeverity
from mealshare.models.household import Deposit, GroceryItem, Member
from mealshare.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    DuplicateError,
    HouseholdStorageInterface,
    NotFoundError,
    StorageError,
)


logger = structlog.get_logger(__name__)


MEMBER_COLUMNS = ["household_id", "id", "name", "email", "is_manager", "active"]
GROCERY_COLUMNS = ["household_id", "id", "description", "amount", "date", "purchaser_id"]
DEPOSIT_COLUMNS = ["household_id", "id", "amount", "date", "member_id"]

AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "household_id",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
]


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def _get_or_create(self, title: str, columns: list[str], rows: int) -> gspread.Worksheet:
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(title=title, rows=rows, cols=len(columns))
            sheet.append_row(columns)
        return sheet

    def get_members_sheet(self) -> gspread.Worksheet:
        return self._get_or_create(self._settings.members_sheet_name, MEMBER_COLUMNS, 200)

    def get_groceries_sheet(self) -> gspread.Worksheet:
        return self._get_or_create(self._settings.groceries_sheet_name, GROCERY_COLUMNS, 2000)

    def get_deposits_sheet(self) -> gspread.Worksheet:
        return self._get_or_create(self._settings.deposits_sheet_name, DEPOSIT_COLUMNS, 1000)

    def get_audit_sheet(self) -> gspread.Worksheet:
        # More rows for audit log
        return self._get_or_create(self._settings.audit_sheet_name, AUDIT_COLUMNS, 5000)


def _row_to_dict(row: list, columns: list[str]) -> dict:
    """
    Map a sheet row onto column names.

    Blank cells are left out so model defaults apply. A blank required
    cell therefore shows up as a 'missing' validation issue.
    """
    record = {}
    for idx, column in enumerate(columns):
        if column == "household_id":
            continue
        value = row[idx] if idx < len(row) else ""
        if value != "":
            record[column] = value
    return record


def _member_to_row(household_id: str, member: Member) -> list:
    return [
        household_id,
        member.id,
        member.name,
        member.email or "",
        str(member.is_manager),
        str(member.active),
    ]


def _grocery_to_row(household_id: str, item: GroceryItem) -> list:
    return [
        household_id,
        item.id,
        item.description,
        str(item.amount),
        item.date.isoformat(),
        item.purchaser_id,
    ]


def _deposit_to_row(household_id: str, deposit: Deposit) -> list:
    return [
        household_id,
        deposit.id,
        str(deposit.amount),
        deposit.date.isoformat(),
        deposit.member_id,
    ]


class GoogleSheetsHouseholdStorage(HouseholdStorageInterface):
    """
    Google Sheets implementation of household storage.

    Rows come back as raw dicts of strings; parsing and validation is the
    caller's job (see RecordValidator).
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _fetch(self, sheet: gspread.Worksheet, columns: list[str], household_id: str) -> list[dict]:
        all_rows = sheet.get_all_values()[1:]  # Skip header
        return [
            _row_to_dict(row, columns)
            for row in all_rows
            if row and row[0] == household_id
        ]

    def _find_row(self, sheet: gspread.Worksheet, household_id: str, record_id: str) -> Optional[int]:
        all_rows = sheet.get_all_values()
        for idx, row in enumerate(all_rows[1:], start=2):  # Start from 2 (row 1 is header)
            if len(row) > 1 and row[0] == household_id and row[1] == record_id:
                return idx
        return None

    def _append(self, sheet: gspread.Worksheet, household_id: str, record_id: str, row: list) -> bool:
        if self._find_row(sheet, household_id, record_id) is not None:
            raise DuplicateError(f"Record already exists: {record_id}")
        sheet.append_row(row, value_input_option="RAW")
        return True

    def _update(self, sheet: gspread.Worksheet, household_id: str, record_id: str, row: list, label: str) -> bool:
        idx = self._find_row(sheet, household_id, record_id)
        if idx is None:
            raise NotFoundError(f"{label} not found: {record_id}")

        for col_idx, value in enumerate(row, start=1):
            sheet.update_cell(idx, col_idx, value)
        return True

    def _delete(self, sheet: gspread.Worksheet, household_id: str, record_id: str) -> bool:
        idx = self._find_row(sheet, household_id, record_id)
        if idx is None:
            return False
        sheet.delete_rows(idx)
        return True

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def fetch_members(self, household_id: str) -> list[dict]:
        try:
            return self._fetch(self._client.get_members_sheet(), MEMBER_COLUMNS, household_id)
        except Exception as e:
            raise StorageError(f"Failed to fetch members: {e}")

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def fetch_groceries(self, household_id: str) -> list[dict]:
        try:
            return self._fetch(self._client.get_groceries_sheet(), GROCERY_COLUMNS, household_id)
        except Exception as e:
            raise StorageError(f"Failed to fetch groceries: {e}")

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def fetch_deposits(self, household_id: str) -> list[dict]:
        try:
            return self._fetch(self._client.get_deposits_sheet(), DEPOSIT_COLUMNS, household_id)
        except Exception as e:
            raise StorageError(f"Failed to fetch deposits: {e}")

    async def save_member(self, household_id: str, member: Member) -> bool:
        try:
            return self._append(
                self._client.get_members_sheet(),
                household_id,
                member.id,
                _member_to_row(household_id, member),
            )
        except DuplicateError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to save member: {e}")

    async def update_member(self, household_id: str, member: Member) -> bool:
        try:
            return self._update(
                self._client.get_members_sheet(),
                household_id,
                member.id,
                _member_to_row(household_id, member),
                "Member",
            )
        except NotFoundError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update member: {e}")

    async def save_grocery(self, household_id: str, item: GroceryItem) -> bool:
        try:
            return self._append(
                self._client.get_groceries_sheet(),
                household_id,
                item.id,
                _grocery_to_row(household_id, item),
            )
        except DuplicateError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to save grocery item: {e}")

    async def save_groceries(self, household_id: str, items) -> int:
        """Bulk append in one API call (CSV import)."""
        rows = [_grocery_to_row(household_id, item) for item in items]
        if not rows:
            return 0
        try:
            self._client.get_groceries_sheet().append_rows(rows, value_input_option="RAW")
            return len(rows)
        except Exception as e:
            raise StorageError(f"Failed to save grocery items: {e}")

    async def update_grocery(self, household_id: str, item: GroceryItem) -> bool:
        try:
            return self._update(
                self._client.get_groceries_sheet(),
                household_id,
                item.id,
                _grocery_to_row(household_id, item),
                "Grocery item",
            )
        except NotFoundError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update grocery item: {e}")

    async def delete_grocery(self, household_id: str, grocery_id: str) -> bool:
        try:
            return self._delete(self._client.get_groceries_sheet(), household_id, grocery_id)
        except Exception as e:
            raise StorageError(f"Failed to delete grocery item: {e}")

    async def save_deposit(self, household_id: str, deposit: Deposit) -> bool:
        try:
            return self._append(
                self._client.get_deposits_sheet(),
                household_id,
                deposit.id,
                _deposit_to_row(household_id, deposit),
            )
        except DuplicateError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to save deposit: {e}")

    async def update_deposit(self, household_id: str, deposit: Deposit) -> bool:
        try:
            return self._update(
                self._client.get_deposits_sheet(),
                household_id,
                deposit.id,
                _deposit_to_row(household_id, deposit),
                "Deposit",
            )
        except NotFoundError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update deposit: {e}")

    async def delete_deposit(self, household_id: str, deposit_id: str) -> bool:
        try:
            return self._delete(self._client.get_deposits_sheet(), household_id, deposit_id)
        except Exception as e:
            raise StorageError(f"Failed to delete deposit: {e}")


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_event(self, row: list) -> AuditEvent:
        """Convert a spreadsheet row to an AuditEvent."""
        def safe_get(index: int, default: str = "") -> str:
            try:
                return row[index] if row[index] else default
            except IndexError:
                return default

        return AuditEvent(
            event_id=UUID(safe_get(0)),
            timestamp=datetime.fromisoformat(safe_get(1)),
            event_type=AuditEventType(safe_get(2)),
            severity=AuditSeverity(safe_get(3)),
            household_id=safe_get(4) or None,
            entity_type=safe_get(5) or None,
            entity_id=safe_get(6) or None,
            correlation_id=UUID(safe_get(7)) if safe_get(7) else None,
            description=safe_get(8),
            details=json.loads(safe_get(9)) if safe_get(9) else {},
            error_message=safe_get(10) or None,
        )

    def _read_events(self, keep) -> list[AuditEvent]:
        sheet = self._client.get_audit_sheet()
        events = []
        for row in sheet.get_all_values()[1:]:
            if not row or not row[0] or not keep(row):
                continue
            try:
                events.append(self._row_to_event(row))
            except (ValueError, json.JSONDecodeError) as e:
                logger.warning("audit_row_unreadable", event_id=row[0], error=str(e))
        return events

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            sheet = self._client.get_audit_sheet()
            sheet.append_row(event.to_sheets_row(), value_input_option="RAW")
            return True
        except Exception as e:
            raise StorageError(f"Failed to write audit event: {e}")

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        try:
            events = self._read_events(
                lambda row: len(row) > 7 and row[7] == str(correlation_id)
            )
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        household_id: str,
        limit: int = 100,
    ) -> list[AuditEvent]:
        try:
            events = self._read_events(
                lambda row: len(row) > 4 and row[4] == household_id
            )
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")
        # Newest first
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
