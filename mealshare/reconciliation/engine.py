"""
Balance Reconciliation Engine

DESIGN DECISION: Reconciliation is a PURE function of its inputs.
It takes a HouseholdSnapshot that was already fetched and validated,
and returns a HouseholdSummary. It never touches storage, settings
or the clock, so it can be tested with plain lists.

BALANCE POLICY (equal share against deposits):

    share   = total grocery cost / number of active members
    balance = opening balance + total deposited - share

A member's own grocery purchases are NOT credited back to them.
Purchases only matter through the household total, which everyone
shares equally. The alternative "reimbursement" policy
(balance = purchases + deposits - share) is deliberately not offered;
two formulas for the same balance would make every report ambiguous.

Consequence: with no carry-over and no records from removed members,
the balances of all members add up to total deposits minus total
grocery cost.
"""

from collections import defaultdict
from decimal import Decimal
from typing import Callable, Iterable, Mapping, Optional, TypeVar

from mealshare.models.household import Deposit, GroceryItem, HouseholdSnapshot
from mealshare.models.summary import (
    ZERO,
    HouseholdSummary,
    MemberSummary,
    ReconciliationScope,
)


Record = TypeVar("Record", GroceryItem, Deposit)


def _total(amounts: Iterable[Decimal]) -> Decimal:
    return sum(amounts, ZERO)


def _totals_by_member(
    records: Iterable[Record],
    member_of: Callable[[Record], str],
) -> dict[str, Decimal]:
    totals: dict[str, Decimal] = defaultdict(lambda: ZERO)
    for record in records:
        totals[member_of(record)] += record.amount
    return totals


def scoped_groceries(
    groceries: Iterable[GroceryItem],
    scope: ReconciliationScope,
) -> list[GroceryItem]:
    """Grocery items inside the scope's date range and member."""
    if scope.is_inverted:
        return []
    return [
        item for item in groceries
        if scope.includes_date(item.date) and scope.includes_member(item.purchaser_id)
    ]


def scoped_deposits(
    deposits: Iterable[Deposit],
    scope: ReconciliationScope,
) -> list[Deposit]:
    """Deposits inside the scope's date range and member."""
    if scope.is_inverted:
        return []
    return [
        deposit for deposit in deposits
        if scope.includes_date(deposit.date) and scope.includes_member(deposit.member_id)
    ]


def average_expense(total_grocery_cost: Decimal, member_count: int) -> Decimal:
    """Per-person share. Zero when the household has no members."""
    if member_count <= 0:
        return ZERO
    return total_grocery_cost / member_count


def reconcile(
    snapshot: HouseholdSnapshot,
    scope: Optional[ReconciliationScope] = None,
    opening_balances: Optional[Mapping[str, Decimal]] = None,
) -> HouseholdSummary:
    """
    Compute totals and per-member balances for a household.

    Args:
        snapshot: Members, groceries and deposits of one household
        scope: Optional date range and/or single member to count
        opening_balances: Carry-over per member id from a closed period

    Returns:
        HouseholdSummary with members in roster order.
        Empty input gives zeroed totals, never an error.
    """
    scope = scope or ReconciliationScope()
    opening_balances = opening_balances or {}

    groceries = scoped_groceries(snapshot.groceries, scope)
    deposits = scoped_deposits(snapshot.deposits, scope)

    total_grocery_cost = _total(item.amount for item in groceries)
    total_deposits = _total(deposit.amount for deposit in deposits)

    roster = snapshot.roster
    share = average_expense(total_grocery_cost, len(roster))

    purchases = _totals_by_member(groceries, lambda item: item.purchaser_id)
    deposited = _totals_by_member(deposits, lambda deposit: deposit.member_id)

    summaries = []
    for member in roster:
        total_purchase = purchases.get(member.id, ZERO)
        total_deposit = deposited.get(member.id, ZERO)
        opening = Decimal(str(opening_balances.get(member.id, ZERO)))
        summaries.append(MemberSummary(
            member_id=member.id,
            name=member.name,
            total_purchase=total_purchase,
            total_deposit=total_deposit,
            share=share,
            opening_balance=opening,
            balance=opening + total_deposit - share,
        ))

    roster_ids = {member.id for member in roster}
    unassigned_purchases = _total(
        amount for member_id, amount in purchases.items()
        if member_id not in roster_ids
    )
    unassigned_deposits = _total(
        amount for member_id, amount in deposited.items()
        if member_id not in roster_ids
    )

    return HouseholdSummary(
        household_id=snapshot.household_id,
        scope=scope,
        member_count=len(roster),
        total_grocery_cost=total_grocery_cost,
        total_deposits=total_deposits,
        average_expense=share,
        members=summaries,
        unassigned_purchase_total=unassigned_purchases,
        unassigned_deposit_total=unassigned_deposits,
    )
