"""
Main Orchestrator for Mealshare

This module ties together all the components and defines the
end-to-end flows for:
1. Dashboard (fetch → validate → reconcile → summary + issues)
2. Record writes (validate → save → audit)
3. Views over the data (individual account, filters, CSV, periods)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Fetching is async, computing is not. The engine only ever sees a
  complete, validated snapshot.
- A record that fails validation is never written
- Every write is audited

This is the "glue" that ensures the system works correctly
even when individual components might behave unexpectedly.
"""

import asyncio
from datetime import date
from decimal import Decimal
from typing import Mapping, Optional
from uuid import UUID

import structlog

from mealshare.audit import AuditLogger, configure_logging, create_correlation_id
from mealshare.config import get_settings
from mealshare.models.audit import AuditEventBuilder
from mealshare.models.household import Deposit, GroceryItem, Member, Period
from mealshare.models.summary import (
    GroceryFilter,
    IndividualAccount,
    PeriodArchive,
    ReconciliationResult,
    ReconciliationScope,
    RecordIssue,
    SnapshotValidation,
)
from mealshare.queries import describe_filter, filter_groceries, grocery_to_dict
from mealshare.queries import individual_account as build_individual_account
from mealshare.reconciliation import reconcile
from mealshare.reports import archive_period as build_archive
from mealshare.reports import carry_over_balances, monthly_spend
from mealshare.services.csv_io import CSVImportResult, export_groceries_csv, parse_grocery_csv
from mealshare.services.storage import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsHouseholdStorage,
    HouseholdStorageInterface,
    InMemoryAuditStorage,
    InMemoryHouseholdStorage,
    NotFoundError,
    StorageError,
)
from mealshare.validation import RecordValidator


logger = structlog.get_logger(__name__)


class RecordRejectedError(ValueError):
    """A record failed validation and was not written."""

    def __init__(self, issues: list[RecordIssue]):
        self.issues = issues
        super().__init__("; ".join(issue.message for issue in issues))


def _blocks_write(issue: RecordIssue) -> bool:
    # Orphans are tolerated on read, never created on write
    return issue.is_error or issue.issue_type == "unknown_member"


def _changed_fields(before: dict, after: dict) -> dict[str, dict]:
    return {
        key: {"from": before.get(key), "to": value}
        for key, value in after.items()
        if before.get(key) != value
    }


def _edited(record, **fields) -> dict:
    """The record's fields with every non-None keyword applied on top."""
    raw = record.model_dump()
    raw.update({key: value for key, value in fields.items() if value is not None})
    return raw


class HouseholdFlow:
    """
    Orchestrates every operation on one storage backend.

    Households are addressed by id on every call; the flow holds no
    per-household state.
    """

    def __init__(
        self,
        storage: HouseholdStorageInterface,
        validator: Optional[RecordValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._storage = storage
        self._validator = validator or RecordValidator()
        self._audit_logger = audit_logger or AuditLogger()

    # -------------------------------------------------------------------------
    # Loading
    # -------------------------------------------------------------------------

    async def load_snapshot(
        self,
        household_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> SnapshotValidation:
        """
        Fetch all three collections concurrently and validate them.

        Raises:
            StorageError: If any fetch fails. Nothing is computed from a
                partial fetch.
        """
        try:
            members, groceries, deposits = await asyncio.gather(
                self._storage.fetch_members(household_id),
                self._storage.fetch_groceries(household_id),
                self._storage.fetch_deposits(household_id),
            )
        except StorageError as e:
            await self._audit_logger.log_storage_error(
                operation="fetch_household",
                error_message=str(e),
                household_id=household_id,
                correlation_id=correlation_id,
            )
            raise

        return self._validator.validate_snapshot(household_id, members, groceries, deposits)

    async def _active_members(self, household_id: str) -> list[Member]:
        validation = await self.load_snapshot(household_id)
        return validation.snapshot.roster

    async def load_summary(
        self,
        household_id: str,
        scope: Optional[ReconciliationScope] = None,
        opening_balances: Optional[Mapping[str, Decimal]] = None,
        correlation_id: Optional[UUID] = None,
    ) -> ReconciliationResult:
        """
        Compute the household summary.

        Rejected records are reported next to the summary rather than
        failing the whole dashboard. Check `result.is_partial`.
        """
        correlation_id = correlation_id or create_correlation_id()
        validation = await self.load_snapshot(household_id, correlation_id)

        if validation.has_errors:
            await self._audit_logger.log_records_rejected(
                household_id=household_id,
                issues=[
                    issue.model_dump(mode="json")
                    for issue in validation.issues
                    if issue.is_error
                ],
                correlation_id=correlation_id,
            )

        summary = reconcile(validation.snapshot, scope, opening_balances)

        await self._audit_logger.log(AuditEventBuilder.summary_computed(
            household_id=household_id,
            member_count=summary.member_count,
            total_grocery_cost=str(summary.total_grocery_cost),
            total_deposits=str(summary.total_deposits),
            correlation_id=correlation_id,
        ))

        return ReconciliationResult(summary=summary, issues=validation.issues)

    # -------------------------------------------------------------------------
    # Members
    # -------------------------------------------------------------------------

    async def add_member(
        self,
        household_id: str,
        name: str,
        email: Optional[str] = None,
        is_manager: bool = False,
        correlation_id: Optional[UUID] = None,
    ) -> Member:
        """
        Add a member to the household.

        Raises:
            pydantic.ValidationError: If the name or email is invalid
            DuplicateError: If the generated id collides
        """
        member = Member(name=name, email=email, is_manager=is_manager)
        await self._storage.save_member(household_id, member)
        await self._audit_logger.log_member_added(
            household_id=household_id,
            member_id=member.id,
            name=member.name,
            correlation_id=correlation_id,
        )
        return member

    async def retire_member(
        self,
        household_id: str,
        member_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> Member:
        """
        Remove a member from the roster.

        Their records stay on file and show up as orphans in the summary.

        Raises:
            NotFoundError: If no such member exists
        """
        validation = await self.load_snapshot(household_id, correlation_id)
        member = next(
            (m for m in validation.snapshot.members if m.id == member_id),
            None,
        )
        if member is None:
            raise NotFoundError(f"Member not found: {member_id}")
        if not member.active:
            return member

        retired = member.model_copy(update={"active": False})
        await self._storage.update_member(household_id, retired)
        await self._audit_logger.log_member_retired(
            household_id=household_id,
            member_id=member_id,
            name=member.name,
            correlation_id=correlation_id,
        )
        return retired

    async def update_member(
        self,
        household_id: str,
        member_id: str,
        name: Optional[str] = None,
        email: Optional[str] = None,
        is_manager: Optional[bool] = None,
        correlation_id: Optional[UUID] = None,
    ) -> Member:
        """
        Change a member's name, contact or manager flag.

        Arguments left as None keep their stored value.

        Raises:
            NotFoundError: If no such member exists
            pydantic.ValidationError: If the new name or email is invalid
        """
        validation = await self.load_snapshot(household_id, correlation_id)
        member = next(
            (m for m in validation.snapshot.members if m.id == member_id),
            None,
        )
        if member is None:
            raise NotFoundError(f"Member not found: {member_id}")

        updated = Member.model_validate(
            _edited(member, name=name, email=email, is_manager=is_manager)
        )
        await self._storage.update_member(household_id, updated)
        await self._audit_logger.log(AuditEventBuilder.member_updated(
            household_id=household_id,
            member_id=member_id,
            changes=_changed_fields(
                member.model_dump(mode="json"), updated.model_dump(mode="json")
            ),
            correlation_id=correlation_id,
        ))
        return updated

    # -------------------------------------------------------------------------
    # Groceries and deposits
    # -------------------------------------------------------------------------

    async def add_grocery(
        self,
        household_id: str,
        description: str,
        amount: Decimal,
        date: date,
        purchaser_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[GroceryItem, list[RecordIssue]]:
        """
        Record a purchase.

        Returns:
            (item, warnings) - warnings are advisory and did not block the save

        Raises:
            RecordRejectedError: If the record is invalid or the purchaser
                is not a current member
        """
        members = await self._active_members(household_id)
        item, issues = self._validator.validate_grocery(
            {
                "description": description,
                "amount": amount,
                "date": date,
                "purchaser_id": purchaser_id,
            },
            members,
        )
        blocking = [issue for issue in issues if _blocks_write(issue)]
        if item is None or blocking:
            raise RecordRejectedError(blocking)

        await self._storage.save_grocery(household_id, item)
        await self._audit_logger.log_grocery_added(
            household_id=household_id,
            grocery_id=item.id,
            description=item.description,
            amount=str(item.amount),
            purchaser_id=item.purchaser_id,
            correlation_id=correlation_id,
        )
        return item, issues

    async def update_grocery(
        self,
        household_id: str,
        grocery_id: str,
        description: Optional[str] = None,
        amount: Optional[Decimal] = None,
        date: Optional[date] = None,
        purchaser_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[GroceryItem, list[RecordIssue]]:
        """
        Edit a purchase. Arguments left as None keep their stored value.

        The edited record goes through the same checks as a new one.

        Raises:
            NotFoundError: If no such grocery item exists
            RecordRejectedError: If the edited record is invalid or the
                purchaser is not a current member
        """
        snapshot = (await self.load_snapshot(household_id, correlation_id)).snapshot
        existing = next((g for g in snapshot.groceries if g.id == grocery_id), None)
        if existing is None:
            raise NotFoundError(f"Grocery item not found: {grocery_id}")

        item, issues = self._validator.validate_grocery(
            _edited(
                existing,
                description=description,
                amount=amount,
                date=date,
                purchaser_id=purchaser_id,
            ),
            snapshot.roster,
        )
        blocking = [issue for issue in issues if _blocks_write(issue)]
        if item is None or blocking:
            raise RecordRejectedError(blocking)

        await self._storage.update_grocery(household_id, item)
        await self._audit_logger.log(AuditEventBuilder.grocery_updated(
            household_id=household_id,
            grocery_id=grocery_id,
            changes=_changed_fields(grocery_to_dict(existing), grocery_to_dict(item)),
            correlation_id=correlation_id,
        ))
        return item, issues

    async def delete_grocery(
        self,
        household_id: str,
        grocery_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        deleted = await self._storage.delete_grocery(household_id, grocery_id)
        if deleted:
            await self._audit_logger.log(AuditEventBuilder.grocery_deleted(
                household_id=household_id,
                grocery_id=grocery_id,
                correlation_id=correlation_id,
            ))
        return deleted

    async def add_deposit(
        self,
        household_id: str,
        amount: Decimal,
        date: date,
        member_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[Deposit, list[RecordIssue]]:
        """
        Record money a member paid into the shared pool.

        Raises:
            RecordRejectedError: If the record is invalid or the member
                is not a current member
        """
        members = await self._active_members(household_id)
        deposit, issues = self._validator.validate_deposit(
            {"amount": amount, "date": date, "member_id": member_id},
            members,
        )
        blocking = [issue for issue in issues if _blocks_write(issue)]
        if deposit is None or blocking:
            raise RecordRejectedError(blocking)

        await self._storage.save_deposit(household_id, deposit)
        await self._audit_logger.log_deposit_added(
            household_id=household_id,
            deposit_id=deposit.id,
            amount=str(deposit.amount),
            member_id=deposit.member_id,
            correlation_id=correlation_id,
        )
        return deposit, issues

    async def update_deposit(
        self,
        household_id: str,
        deposit_id: str,
        amount: Optional[Decimal] = None,
        date: Optional[date] = None,
        member_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[Deposit, list[RecordIssue]]:
        """
        Edit a deposit. Arguments left as None keep their stored value.

        Raises:
            NotFoundError: If no such deposit exists
            RecordRejectedError: If the edited record is invalid or the
                member is not a current member
        """
        snapshot = (await self.load_snapshot(household_id, correlation_id)).snapshot
        existing = next((d for d in snapshot.deposits if d.id == deposit_id), None)
        if existing is None:
            raise NotFoundError(f"Deposit not found: {deposit_id}")

        deposit, issues = self._validator.validate_deposit(
            _edited(existing, amount=amount, date=date, member_id=member_id),
            snapshot.roster,
        )
        blocking = [issue for issue in issues if _blocks_write(issue)]
        if deposit is None or blocking:
            raise RecordRejectedError(blocking)

        await self._storage.update_deposit(household_id, deposit)
        await self._audit_logger.log(AuditEventBuilder.deposit_updated(
            household_id=household_id,
            deposit_id=deposit_id,
            changes=_changed_fields(
                existing.model_dump(mode="json"), deposit.model_dump(mode="json")
            ),
            correlation_id=correlation_id,
        ))
        return deposit, issues

    async def delete_deposit(
        self,
        household_id: str,
        deposit_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        deleted = await self._storage.delete_deposit(household_id, deposit_id)
        if deleted:
            await self._audit_logger.log(AuditEventBuilder.deposit_deleted(
                household_id=household_id,
                deposit_id=deposit_id,
                correlation_id=correlation_id,
            ))
        return deleted

    # -------------------------------------------------------------------------
    # Views
    # -------------------------------------------------------------------------

    async def individual_account(
        self,
        household_id: str,
        member_id: str,
    ) -> IndividualAccount:
        """One member's purchases and their total."""
        validation = await self.load_snapshot(household_id)
        snapshot = validation.snapshot
        return build_individual_account(snapshot.groceries, member_id, snapshot.members)

    async def filtered_groceries(
        self,
        household_id: str,
        criteria: GroceryFilter,
    ) -> list[GroceryItem]:
        validation = await self.load_snapshot(household_id)
        return filter_groceries(validation.snapshot.groceries, criteria)

    async def spending_by_month(self, household_id: str, year: int) -> list[Decimal]:
        """Twelve monthly grocery totals for `year`."""
        validation = await self.load_snapshot(household_id)
        return monthly_spend(validation.snapshot.groceries, year)

    # -------------------------------------------------------------------------
    # CSV
    # -------------------------------------------------------------------------

    async def import_groceries_csv(
        self,
        household_id: str,
        text: str,
        correlation_id: Optional[UUID] = None,
    ) -> CSVImportResult:
        """
        Import groceries from CSV text.

        Good rows are saved, bad rows are reported back.

        Raises:
            CSVFormatError: If the file cannot be read at all
        """
        correlation_id = correlation_id or create_correlation_id()
        members = await self._active_members(household_id)
        result = parse_grocery_csv(text, members, validator=self._validator)

        if result.items:
            await self._storage.save_groceries(household_id, result.items)

        await self._audit_logger.log(AuditEventBuilder.csv_imported(
            household_id=household_id,
            imported=result.imported_count,
            rejected=result.rejected_count,
            correlation_id=correlation_id,
        ))
        return result

    async def export_groceries_csv(
        self,
        household_id: str,
        criteria: Optional[GroceryFilter] = None,
        correlation_id: Optional[UUID] = None,
    ) -> str:
        """Export (optionally filtered) groceries as CSV text."""
        criteria = criteria or GroceryFilter()
        validation = await self.load_snapshot(household_id, correlation_id)
        snapshot = validation.snapshot
        groceries = filter_groceries(snapshot.groceries, criteria)

        text = export_groceries_csv(groceries, snapshot.members)

        await self._audit_logger.log(AuditEventBuilder.csv_exported(
            household_id=household_id,
            row_count=len(groceries),
            criteria=describe_filter(criteria),
            correlation_id=correlation_id,
        ))
        return text

    # -------------------------------------------------------------------------
    # Periods
    # -------------------------------------------------------------------------

    async def archive_period(
        self,
        household_id: str,
        period: Period,
        transfer_balances: bool = True,
        opening_balances: Optional[Mapping[str, Decimal]] = None,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[PeriodArchive, dict[str, Decimal]]:
        """
        Close a period.

        Returns:
            (archive, next_opening_balances) - pass the balances to
            load_summary for the following period
        """
        correlation_id = correlation_id or create_correlation_id()
        validation = await self.load_snapshot(household_id, correlation_id)

        archive = build_archive(validation.snapshot, period, opening_balances)
        next_balances = carry_over_balances(archive, transfer_balances)

        await self._audit_logger.log(AuditEventBuilder.period_archived(
            household_id=household_id,
            archive_id=archive.id,
            period_name=period.name,
            transfer_balances=transfer_balances,
            correlation_id=correlation_id,
        ))
        return archive, next_balances


def create_app_components(
    use_storage: bool = True,
) -> tuple[HouseholdFlow, Optional[GoogleSheetsClient]]:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to initialize Google Sheets storage.
                    Set to False to run entirely in memory.

    Returns:
        (household_flow, sheets_client)
    """
    configure_logging(get_settings().app.log_level)

    sheets_client = None

    if use_storage:
        try:
            sheets_client = GoogleSheetsClient()
            storage = GoogleSheetsHouseholdStorage(sheets_client)
            audit_logger = AuditLogger(GoogleSheetsAuditStorage(sheets_client))
        except Exception as e:
            # Storage not configured - continue in memory
            logger.warning("storage_not_configured", error=str(e))
            sheets_client = None
            storage = InMemoryHouseholdStorage()
            audit_logger = AuditLogger(InMemoryAuditStorage())
    else:
        storage = InMemoryHouseholdStorage()
        audit_logger = AuditLogger(InMemoryAuditStorage())

    flow = HouseholdFlow(storage=storage, audit_logger=audit_logger)
    return flow, sheets_client
