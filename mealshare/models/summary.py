"""
Derived Models

Everything in this module is computed, never entered by a user:
balance summaries, filter criteria, validation issues and period archives.

DESIGN DECISION: Summaries are explicit, frozen and versioned.
Consumers (tables, charts, CSV, PDF) read these types and never the
storage rows, so a storage change cannot silently change a report.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from mealshare.models.household import (
    Deposit,
    GroceryItem,
    HouseholdSnapshot,
    Member,
    Period,
    RecordType,
    new_record_id,
)


SUMMARY_SCHEMA_VERSION = 1

ZERO = Decimal("0")


# =============================================================================
# SCOPE AND FILTERS
# =============================================================================

class ReconciliationScope(BaseModel):
    """
    Narrows which records a reconciliation counts.

    Date bounds are inclusive. member_id narrows both purchases and
    deposits to one member; the roster used for the per-person share
    is always the whole household.
    """
    model_config = ConfigDict(frozen=True)

    start_date: Optional[date] = None
    end_date: Optional[date] = None
    member_id: Optional[str] = None

    @property
    def is_inverted(self) -> bool:
        """True when start is after end, which matches nothing."""
        return (
            self.start_date is not None
            and self.end_date is not None
            and self.start_date > self.end_date
        )

    def includes_date(self, day: date) -> bool:
        if self.start_date and day < self.start_date:
            return False
        if self.end_date and day > self.end_date:
            return False
        return True

    def includes_member(self, member_id: str) -> bool:
        return not self.member_id or self.member_id == member_id


class GroceryFilter(BaseModel):
    """
    Criteria for the grocery list and CSV export.

    Unset criteria are ignored; set criteria must all match.
    """
    model_config = ConfigDict(frozen=True)

    start_date: Optional[date] = None
    end_date: Optional[date] = None
    min_amount: Optional[Decimal] = Field(default=None, ge=0)
    max_amount: Optional[Decimal] = Field(default=None, ge=0)
    purchaser_id: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return (
            self.start_date is None
            and self.end_date is None
            and self.min_amount is None
            and self.max_amount is None
            and not self.purchaser_id
        )


# =============================================================================
# SUMMARIES
# =============================================================================

class MemberSummary(BaseModel):
    """One member's position in the shared pool."""
    model_config = ConfigDict(frozen=True)

    member_id: str
    name: str
    total_purchase: Decimal = ZERO
    total_deposit: Decimal = ZERO
    share: Decimal = Field(
        default=ZERO,
        description="Equal share of the household's grocery cost"
    )
    opening_balance: Decimal = Field(
        default=ZERO,
        description="Balance carried over from the previous period"
    )
    balance: Decimal = Field(
        default=ZERO,
        description="Positive: the household owes the member. Negative: the member owes."
    )

    @property
    def is_creditor(self) -> bool:
        return self.balance > 0


class HouseholdSummary(BaseModel):
    """
    Totals and per-member balances for one household and scope.

    Balance policy: balance = opening_balance + total_deposit - share.
    A member's own purchases do not offset their balance directly; they
    only raise everyone's share through the household total.
    """
    model_config = ConfigDict(frozen=True)

    schema_version: int = SUMMARY_SCHEMA_VERSION
    household_id: str
    scope: ReconciliationScope = Field(default_factory=ReconciliationScope)

    member_count: int = Field(default=0, ge=0)
    total_grocery_cost: Decimal = ZERO
    total_deposits: Decimal = ZERO
    average_expense: Decimal = ZERO
    members: list[MemberSummary] = Field(default_factory=list)

    # Records owned by removed or unknown members
    unassigned_purchase_total: Decimal = ZERO
    unassigned_deposit_total: Decimal = ZERO

    @property
    def total_balance(self) -> Decimal:
        """Cash left in the pool: deposits minus grocery cost."""
        return self.total_deposits - self.total_grocery_cost

    @property
    def balance_sum(self) -> Decimal:
        return sum((m.balance for m in self.members), ZERO)

    def for_member(self, member_id: str) -> Optional[MemberSummary]:
        for summary in self.members:
            if summary.member_id == member_id:
                return summary
        return None


class IndividualAccount(BaseModel):
    """One member's purchases and what they add up to."""
    model_config = ConfigDict(frozen=True)

    member_id: str
    name: str
    groceries: list[GroceryItem] = Field(default_factory=list)
    total_paid: Decimal = ZERO


# =============================================================================
# VALIDATION
# =============================================================================

class RecordIssue(BaseModel):
    """A problem found in one upstream record."""

    record_type: RecordType
    record_id: Optional[str] = Field(
        default=None,
        description="Id of the offending record, when it could be read"
    )
    row: Optional[int] = Field(
        default=None,
        description="Position in the source collection or file"
    )
    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="e.g. 'invalid_value', 'missing', 'unknown_member', 'duplicate'"
    )
    message: str
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
    )

    @property
    def is_error(self) -> bool:
        return self.severity == "error"


class SnapshotValidation(BaseModel):
    """Accepted records plus every issue found while reading them."""

    snapshot: HouseholdSnapshot
    issues: list[RecordIssue] = Field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        return any(issue.is_error for issue in self.issues)

    @property
    def error_count(self) -> int:
        return sum(1 for issue in self.issues if issue.is_error)

    @property
    def warnings(self) -> list[str]:
        return [issue.message for issue in self.issues if issue.severity == "warning"]


class ReconciliationResult(BaseModel):
    """
    What the dashboard receives: a summary and the issues behind it.

    If `is_partial` is True some records were rejected and the totals
    only cover what could be read. The caller decides whether to show them.
    """

    summary: HouseholdSummary
    issues: list[RecordIssue] = Field(default_factory=list)
    computed_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def is_partial(self) -> bool:
        return any(issue.is_error for issue in self.issues)


# =============================================================================
# ARCHIVES
# =============================================================================

class PeriodArchive(BaseModel):
    """A closed period: its records and final summary, frozen."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_record_id)
    archived_at: datetime = Field(default_factory=datetime.utcnow)
    period: Period
    members: list[Member] = Field(default_factory=list)
    groceries: list[GroceryItem] = Field(default_factory=list)
    deposits: list[Deposit] = Field(default_factory=list)
    summary: HouseholdSummary

    @model_validator(mode='after')
    def validate_scope(self) -> 'PeriodArchive':
        scope = self.summary.scope
        if (
            scope.start_date != self.period.start_date
            or scope.end_date != self.period.end_date
        ):
            raise ValueError("Archive summary must cover exactly the archived period")
        return self

    def snapshot(self) -> HouseholdSnapshot:
        return HouseholdSnapshot(
            household_id=self.summary.household_id,
            members=self.members,
            groceries=self.groceries,
            deposits=self.deposits,
        )
