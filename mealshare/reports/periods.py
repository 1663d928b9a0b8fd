"""
Period Archives

A household works in periods (usually a calendar month). Closing a
period freezes its records and final balances into a PeriodArchive;
the next period can optionally start from those closing balances.
"""

from decimal import Decimal
from typing import Mapping, Optional

from mealshare.models.household import HouseholdSnapshot, Period
from mealshare.models.summary import PeriodArchive, ReconciliationScope
from mealshare.reconciliation import reconcile, scoped_deposits, scoped_groceries


def period_scope(period: Period) -> ReconciliationScope:
    return ReconciliationScope(start_date=period.start_date, end_date=period.end_date)


def archive_period(
    snapshot: HouseholdSnapshot,
    period: Period,
    opening_balances: Optional[Mapping[str, Decimal]] = None,
) -> PeriodArchive:
    """
    Close a period.

    Only records dated inside the period are kept in the archive.
    The summary is computed over exactly those records.
    """
    scope = period_scope(period)
    summary = reconcile(snapshot, scope, opening_balances)
    return PeriodArchive(
        period=period,
        members=list(snapshot.members),
        groceries=scoped_groceries(snapshot.groceries, scope),
        deposits=scoped_deposits(snapshot.deposits, scope),
        summary=summary,
    )


def carry_over_balances(
    archive: PeriodArchive,
    transfer_balances: bool = True,
) -> dict[str, Decimal]:
    """
    Opening balances for the period after `archive`.

    Returns an empty mapping when balances are not transferred,
    i.e. everyone starts the new period at zero.
    """
    if not transfer_balances:
        return {}
    return {
        member.member_id: member.balance
        for member in archive.summary.members
    }
