"""
Household Record Models

These are the records a household keeps: who lives there (members),
what was bought for the shared kitchen (grocery items), and what was
paid into the common pool (deposits).

DESIGN DECISION: Records are validated on the way in.
Amounts are Decimal, never float, and are never silently coerced.
A record that cannot be parsed is rejected, not zeroed.

Field names follow Python conventions, but the camelCase keys used by
older exports (purchaserId, userId, name) are accepted on input so that
historical data can be loaded without a migration step.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional
from uuid import uuid4

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


UNKNOWN_MEMBER_LABEL = "Unknown member"

# Record fields are named `date`, which shadows the type inside the class body
CalendarDate = date


def new_record_id() -> str:
    """Generate a fresh record identifier."""
    return uuid4().hex


def _to_calendar_date(value: Any) -> Any:
    """
    Reduce datetime-like input to a calendar date.

    Stored dates are sometimes full ISO timestamps
    (e.g. "2024-07-01T00:00:00.000Z"); only the day matters here.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, str):
        value = value.strip()
        if "T" in value:
            return value.split("T", 1)[0]
    return value


# =============================================================================
# ENUMS
# =============================================================================

class RecordType(str, Enum):
    """Kinds of household records."""
    MEMBER = "member"
    GROCERY = "grocery"
    DEPOSIT = "deposit"


class PeriodType(str, Enum):
    """Length of an accounting period."""
    MONTHLY = "monthly"
    WEEKLY = "weekly"


# =============================================================================
# RECORDS
# =============================================================================

class Member(BaseModel):
    """
    A household participant.

    Members are never hard-deleted. Retiring a member sets active=False;
    their purchases and deposits stay on file but no longer count
    toward any member's balance.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(
        default_factory=new_record_id,
        min_length=1,
        description="Unique member identifier"
    )
    name: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Display name"
    )
    email: Optional[str] = Field(
        default=None,
        max_length=200,
        description="Contact email"
    )
    is_manager: bool = Field(
        default=False,
        description="Designated household manager"
    )
    active: bool = Field(
        default=True,
        description="False once the member has been retired"
    )

    @property
    def label(self) -> str:
        """Name to show next to records this member owns."""
        return self.name if self.active else f"{self.name} (removed)"


class GroceryItem(BaseModel):
    """A single grocery purchase made by one member for the household."""
    model_config = ConfigDict(str_strip_whitespace=True, populate_by_name=True)

    id: str = Field(
        default_factory=new_record_id,
        min_length=1,
    )
    description: str = Field(
        ...,
        min_length=1,
        max_length=200,
        validation_alias=AliasChoices("description", "name", "item"),
        description="What was bought"
    )
    amount: Decimal = Field(
        ...,
        ge=0,
        decimal_places=2,
        description="Amount paid"
    )
    date: CalendarDate = Field(
        ...,
        description="Day of purchase"
    )
    purchaser_id: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("purchaser_id", "purchaserId"),
        description="Member who paid"
    )

    @field_validator("date", mode="before")
    @classmethod
    def strip_time(cls, v: Any) -> Any:
        return _to_calendar_date(v)


class Deposit(BaseModel):
    """Money paid into the shared pool by one member."""
    model_config = ConfigDict(str_strip_whitespace=True, populate_by_name=True)

    id: str = Field(
        default_factory=new_record_id,
        min_length=1,
    )
    amount: Decimal = Field(
        ...,
        ge=0,
        decimal_places=2,
        description="Amount deposited"
    )
    date: CalendarDate = Field(
        ...,
        description="Day of deposit"
    )
    member_id: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("member_id", "userId", "participantId"),
        description="Member who deposited"
    )

    @field_validator("date", mode="before")
    @classmethod
    def strip_time(cls, v: Any) -> Any:
        return _to_calendar_date(v)


class HouseholdSnapshot(BaseModel):
    """
    Everything the balance engine needs for one household.

    CRITICAL: A snapshot is a read-only view.
    Writes go through storage and a new snapshot is fetched afterwards.
    """
    model_config = ConfigDict(frozen=True)

    household_id: str = Field(
        ...,
        min_length=1,
        description="Household the records belong to"
    )
    members: list[Member] = Field(default_factory=list)
    groceries: list[GroceryItem] = Field(default_factory=list)
    deposits: list[Deposit] = Field(default_factory=list)

    @property
    def roster(self) -> list[Member]:
        """Active members, in the order they were added."""
        return [m for m in self.members if m.active]

    def member_label(self, member_id: str) -> str:
        """Display name for a member id, including removed and unknown members."""
        for member in self.members:
            if member.id == member_id:
                return member.label
        return UNKNOWN_MEMBER_LABEL


# =============================================================================
# PERIODS
# =============================================================================

class Period(BaseModel):
    """An accounting period, e.g. one calendar month of shared meals."""
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="e.g. 'July 2024'"
    )
    period_type: PeriodType = Field(default=PeriodType.MONTHLY)
    start_date: date
    end_date: date

    @model_validator(mode='after')
    def validate_dates(self) -> 'Period':
        if self.end_date < self.start_date:
            raise ValueError("Period end cannot be before start")
        return self

    @classmethod
    def current_month(cls, today: date) -> 'Period':
        """The calendar month containing `today`, named like 'July 2024'."""
        start = today.replace(day=1)
        if start.month == 12:
            next_month = start.replace(year=start.year + 1, month=1)
        else:
            next_month = start.replace(month=start.month + 1)
        end = date.fromordinal(next_month.toordinal() - 1)
        return cls(
            name=f"{today.strftime('%B')} {today.year}",
            period_type=PeriodType.MONTHLY,
            start_date=start,
            end_date=end,
        )
