"""
Two-Stage Record Validation

Upstream data (storage rows, CSV rows, form input) arrives as raw
mappings. Before the balance engine sees anything, each record goes
through two stages:

STAGE 1 - SCHEMA VALIDATION:
- Required fields present
- Amount parses as a finite, non-negative number with at most 2 decimals
- Date parses as a real calendar date
- Ids unique within their collection
A record failing stage 1 is REJECTED and reported as an error.

STAGE 2 - SEMANTIC VALIDATION:
- Purchaser/depositor exists in the household
- Date is not far in the future
- Amount is not absurdly large
Stage 2 findings are warnings. The record is kept.

IMPORTANT: Validation NEVER silently fixes issues.
An unreadable amount is never turned into zero; the record is rejected
and the issue is returned alongside whatever could be read.
"""

from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Iterable, Optional, Sequence, TypeVar

from pydantic import BaseModel, ValidationError

from mealshare.config import get_settings
from mealshare.models.household import (
    Deposit,
    GroceryItem,
    HouseholdSnapshot,
    Member,
    RecordType,
)
from mealshare.models.summary import RecordIssue, SnapshotValidation


Model = TypeVar("Model", bound=BaseModel)


_ISSUE_TYPES = {
    "missing": "missing",
    "decimal_parsing": "invalid_format",
    "decimal_type": "invalid_format",
    "decimal_max_places": "invalid_format",
    "finite_number": "invalid_value",
    "date_parsing": "invalid_format",
    "date_from_datetime_parsing": "invalid_format",
    "date_type": "invalid_format",
    "greater_than_equal": "invalid_value",
    "string_too_short": "missing",
}


class RecordValidator:
    """
    Validates raw household records through a two-stage pipeline.

    Thresholds come from AppSettings unless given explicitly.
    """

    def __init__(
        self,
        max_record_amount: Optional[Decimal] = None,
        future_date_tolerance_days: Optional[int] = None,
        today: Optional[date] = None,
    ):
        """
        Initialize validator.

        Args:
            max_record_amount: Amounts above this get a warning
            future_date_tolerance_days: Days ahead a date may be without a warning
            today: Reference date for the future-date check (defaults to today)
        """
        if max_record_amount is None or future_date_tolerance_days is None:
            app_settings = get_settings().app
            if max_record_amount is None:
                max_record_amount = Decimal(str(app_settings.max_record_amount))
            if future_date_tolerance_days is None:
                future_date_tolerance_days = app_settings.future_date_tolerance_days

        self._max_amount = Decimal(str(max_record_amount))
        self._future_days = future_date_tolerance_days
        self._today = today

    # -------------------------------------------------------------------------
    # Stage 1
    # -------------------------------------------------------------------------

    def _parse(
        self,
        model: type[Model],
        record_type: RecordType,
        raw: Any,
        row: Optional[int],
    ) -> tuple[Optional[Model], list[RecordIssue]]:
        """Parse one raw record, turning pydantic errors into issues."""
        if isinstance(raw, model):
            return raw, []

        record_id = None
        if isinstance(raw, dict) and raw.get("id") not in (None, ""):
            record_id = str(raw["id"])

        try:
            return model.model_validate(raw), []
        except ValidationError as e:
            issues = []
            for error in e.errors():
                field = ".".join(str(part) for part in error["loc"]) or "record"
                issues.append(RecordIssue(
                    record_type=record_type,
                    record_id=record_id,
                    row=row,
                    field=field,
                    issue_type=_ISSUE_TYPES.get(error["type"], "invalid_value"),
                    message=f"{record_type.value.capitalize()} {field}: {error['msg']}",
                    severity="error",
                ))
            return None, issues

    def _parse_collection(
        self,
        model: type[Model],
        record_type: RecordType,
        raw_records: Iterable[Any],
    ) -> tuple[list[tuple[int, Model]], list[RecordIssue]]:
        """Parse a collection; accepted records come back with their row index."""
        accepted: list[tuple[int, Model]] = []
        issues: list[RecordIssue] = []
        seen_ids: set[str] = set()

        for row, raw in enumerate(raw_records):
            record, record_issues = self._parse(model, record_type, raw, row)
            issues.extend(record_issues)
            if record is None:
                continue

            if record.id in seen_ids:
                issues.append(RecordIssue(
                    record_type=record_type,
                    record_id=record.id,
                    row=row,
                    field="id",
                    issue_type="duplicate",
                    message=f"Duplicate {record_type.value} id {record.id}; later copy ignored",
                    severity="error",
                ))
                continue

            seen_ids.add(record.id)
            accepted.append((row, record))

        return accepted, issues

    # -------------------------------------------------------------------------
    # Stage 2
    # -------------------------------------------------------------------------

    def _check_semantics(
        self,
        record_type: RecordType,
        record_id: str,
        row: Optional[int],
        amount: Decimal,
        day: date,
        member_id: str,
        known_member_ids: set[str],
    ) -> list[RecordIssue]:
        issues = []

        if member_id not in known_member_ids:
            issues.append(RecordIssue(
                record_type=record_type,
                record_id=record_id,
                row=row,
                field="member",
                issue_type="unknown_member",
                message=(
                    f"{record_type.value.capitalize()} {record_id} belongs to "
                    f"unknown member {member_id}"
                ),
                severity="warning",
            ))

        today = self._today or date.today()
        if day > today + timedelta(days=self._future_days):
            issues.append(RecordIssue(
                record_type=record_type,
                record_id=record_id,
                row=row,
                field="date",
                issue_type="future_date",
                message=f"{record_type.value.capitalize()} date ({day}) is in the future",
                severity="warning",
            ))

        if amount > self._max_amount:
            issues.append(RecordIssue(
                record_type=record_type,
                record_id=record_id,
                row=row,
                field="amount",
                issue_type="suspicious_value",
                message=f"Amount ({amount:,.2f}) seems unusually high",
                severity="warning",
            ))

        return issues

    def check_grocery(
        self,
        item: GroceryItem,
        members: Sequence[Member],
        row: Optional[int] = None,
    ) -> list[RecordIssue]:
        """Stage 2 checks for one grocery item."""
        return self._check_semantics(
            RecordType.GROCERY, item.id, row, item.amount, item.date,
            item.purchaser_id, {m.id for m in members},
        )

    def check_deposit(
        self,
        deposit: Deposit,
        members: Sequence[Member],
        row: Optional[int] = None,
    ) -> list[RecordIssue]:
        """Stage 2 checks for one deposit."""
        return self._check_semantics(
            RecordType.DEPOSIT, deposit.id, row, deposit.amount, deposit.date,
            deposit.member_id, {m.id for m in members},
        )

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def validate_grocery(
        self,
        raw: Any,
        members: Sequence[Member],
        row: Optional[int] = None,
    ) -> tuple[Optional[GroceryItem], list[RecordIssue]]:
        """Run both stages on a single grocery record."""
        item, issues = self._parse(GroceryItem, RecordType.GROCERY, raw, row)
        if item is not None:
            issues.extend(self.check_grocery(item, members, row))
        return item, issues

    def validate_deposit(
        self,
        raw: Any,
        members: Sequence[Member],
        row: Optional[int] = None,
    ) -> tuple[Optional[Deposit], list[RecordIssue]]:
        """Run both stages on a single deposit record."""
        deposit, issues = self._parse(Deposit, RecordType.DEPOSIT, raw, row)
        if deposit is not None:
            issues.extend(self.check_deposit(deposit, members, row))
        return deposit, issues

    def validate_snapshot(
        self,
        household_id: str,
        members: Iterable[Any],
        groceries: Iterable[Any],
        deposits: Iterable[Any],
    ) -> SnapshotValidation:
        """
        Validate raw collections and build a snapshot of the accepted records.

        Args:
            household_id: Household the collections were fetched for
            members, groceries, deposits: Raw records (mappings or models)

        Returns:
            SnapshotValidation with the partial snapshot and all issues
        """
        parsed_members, issues = self._parse_collection(
            Member, RecordType.MEMBER, members
        )
        parsed_groceries, grocery_issues = self._parse_collection(
            GroceryItem, RecordType.GROCERY, groceries
        )
        parsed_deposits, deposit_issues = self._parse_collection(
            Deposit, RecordType.DEPOSIT, deposits
        )
        issues.extend(grocery_issues)
        issues.extend(deposit_issues)

        accepted_members = [member for _, member in parsed_members]
        for row, item in parsed_groceries:
            issues.extend(self.check_grocery(item, accepted_members, row))
        for row, deposit in parsed_deposits:
            issues.extend(self.check_deposit(deposit, accepted_members, row))

        snapshot = HouseholdSnapshot(
            household_id=household_id,
            members=accepted_members,
            groceries=[item for _, item in parsed_groceries],
            deposits=[deposit for _, deposit in parsed_deposits],
        )
        return SnapshotValidation(snapshot=snapshot, issues=issues)

    def get_user_friendly_summary(self, result: SnapshotValidation) -> str:
        """Short text for the dashboard banner."""
        if not result.issues:
            return "All records loaded."

        lines = []
        if result.has_errors:
            lines.append(
                f"{result.error_count} record problem(s) found; "
                "the totals below leave those records out:"
            )
            for issue in result.issues:
                if issue.is_error:
                    lines.append(f"   - {issue.message}")

        if result.warnings:
            lines.append("")
            lines.append("Please check the following:")
            for warning in result.warnings:
                lines.append(f"   - {warning}")

        return "\n".join(lines).strip()
