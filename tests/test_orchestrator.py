"""
Integration tests for HouseholdFlow using in-memory storage.
"""

import asyncio

import pytest
from datetime import date
from decimal import Decimal

from mealshare.audit import AuditLogger
from mealshare.models.audit import AuditEventType
from mealshare.models.household import Period
from mealshare.models.summary import GroceryFilter, ReconciliationScope
from mealshare.orchestrator import HouseholdFlow, RecordRejectedError, create_app_components
from mealshare.services.csv_io import CSVFormatError
from mealshare.services.storage import (
    InMemoryAuditStorage,
    InMemoryHouseholdStorage,
    NotFoundError,
    StorageError,
)
from mealshare.validation import RecordValidator


DAY = date(2024, 7, 10)


class UnreachableStorage(InMemoryHouseholdStorage):
    async def fetch_deposits(self, household_id: str) -> list[dict]:
        raise StorageError("connection reset")


def make_flow(storage=None):
    storage = storage or InMemoryHouseholdStorage()
    audit_storage = InMemoryAuditStorage()
    flow = HouseholdFlow(
        storage=storage,
        validator=RecordValidator(
            max_record_amount=Decimal("1000"),
            future_date_tolerance_days=7,
            today=date(2024, 7, 20),
        ),
        audit_logger=AuditLogger(audit_storage),
    )
    return flow, storage, audit_storage


async def seed_three_members(flow: HouseholdFlow) -> dict[str, str]:
    ids = {}
    for name in ("A", "B", "C"):
        member = await flow.add_member("h1", name)
        ids[name] = member.id
    await flow.add_grocery("h1", "Rice", Decimal("30"), DAY, ids["A"])
    await flow.add_grocery("h1", "Lamb", Decimal("60"), DAY, ids["B"])
    await flow.add_deposit("h1", Decimal("50"), DAY, ids["A"])
    await flow.add_deposit("h1", Decimal("20"), DAY, ids["B"])
    await flow.add_deposit("h1", Decimal("10"), DAY, ids["C"])
    return ids


class TestLoadSummary:
    """Tests for the fetch → validate → reconcile flow."""

    def test_three_member_household(self):
        flow, _, _ = make_flow()

        async def run():
            ids = await seed_three_members(flow)
            return ids, await flow.load_summary("h1")

        ids, result = asyncio.run(run())
        summary = result.summary

        assert result.is_partial is False
        assert summary.total_grocery_cost == Decimal("90")
        assert summary.average_expense == Decimal("30")
        assert [m.name for m in summary.members] == ["A", "B", "C"]
        assert summary.for_member(ids["A"]).balance == Decimal("20")
        assert summary.for_member(ids["B"]).balance == Decimal("-10")
        assert summary.for_member(ids["C"]).balance == Decimal("-20")

    def test_bad_rows_give_partial_result(self):
        """Test rejected rows are reported next to a partial summary."""
        flow, storage, audit_storage = make_flow()
        storage.load_raw(
            "h1",
            members=[{"id": "a", "name": "A"}],
            groceries=[
                {"id": "g1", "description": "Rice", "amount": "10", "date": "2024-07-01", "purchaser_id": "a"},
                {"id": "g2", "description": "Milk", "amount": "", "date": "2024-07-01", "purchaser_id": "a"},
            ],
        )

        result = asyncio.run(flow.load_summary("h1"))

        assert result.is_partial is True
        assert result.summary.total_grocery_cost == Decimal("10")
        event_types = [e.event_type for e in audit_storage.events]
        assert AuditEventType.RECORDS_REJECTED in event_types
        assert event_types[-1] == AuditEventType.SUMMARY_COMPUTED

    def test_fetch_failure_is_raised_and_audited(self):
        """Test nothing is computed from a failed fetch."""
        flow, _, audit_storage = make_flow(UnreachableStorage())

        with pytest.raises(StorageError):
            asyncio.run(flow.load_summary("h1"))

        assert audit_storage.events[-1].event_type == AuditEventType.STORAGE_ERROR

    def test_scope_is_passed_through(self):
        flow, _, _ = make_flow()

        async def run():
            ids = await seed_three_members(flow)
            scope = ReconciliationScope(member_id=ids["A"])
            return await flow.load_summary("h1", scope=scope)

        result = asyncio.run(run())
        assert result.summary.total_grocery_cost == Decimal("30")
        assert result.summary.member_count == 3


class TestWrites:
    """Tests for member, grocery and deposit writes."""

    def test_grocery_for_unknown_member_is_rejected(self):
        flow, storage, _ = make_flow()

        with pytest.raises(RecordRejectedError) as exc_info:
            asyncio.run(flow.add_grocery("h1", "Rice", Decimal("10"), DAY, "ghost"))

        assert exc_info.value.issues[0].issue_type == "unknown_member"
        assert asyncio.run(storage.fetch_groceries("h1")) == []

    def test_invalid_amount_is_rejected(self):
        flow, _, _ = make_flow()

        async def run():
            member = await flow.add_member("h1", "A")
            await flow.add_deposit("h1", Decimal("-5"), DAY, member.id)

        with pytest.raises(RecordRejectedError):
            asyncio.run(run())

    def test_warnings_do_not_block(self):
        flow, _, _ = make_flow()

        async def run():
            member = await flow.add_member("h1", "A")
            return await flow.add_grocery("h1", "Freezer", Decimal("1500"), DAY, member.id)

        item, issues = asyncio.run(run())
        assert item.amount == Decimal("1500")
        assert [issue.issue_type for issue in issues] == ["suspicious_value"]

    def test_retire_member_orphans_records(self):
        """Test a retired member's records move to the unassigned totals."""
        flow, _, audit_storage = make_flow()

        async def run():
            ids = await seed_three_members(flow)
            await flow.retire_member("h1", ids["C"])
            return ids, await flow.load_summary("h1")

        ids, result = asyncio.run(run())
        summary = result.summary

        assert summary.member_count == 2
        assert summary.for_member(ids["C"]) is None
        assert summary.unassigned_deposit_total == Decimal("10")
        assert summary.average_expense == Decimal("45")
        assert AuditEventType.MEMBER_RETIRED in [e.event_type for e in audit_storage.events]

    def test_retire_unknown_member(self):
        flow, _, _ = make_flow()
        with pytest.raises(NotFoundError):
            asyncio.run(flow.retire_member("h1", "ghost"))

    def test_retired_member_cannot_buy(self):
        flow, _, _ = make_flow()

        async def run():
            member = await flow.add_member("h1", "A")
            await flow.retire_member("h1", member.id)
            await flow.add_grocery("h1", "Rice", Decimal("10"), DAY, member.id)

        with pytest.raises(RecordRejectedError):
            asyncio.run(run())

    def test_delete_records(self):
        flow, _, audit_storage = make_flow()

        async def run():
            member = await flow.add_member("h1", "A")
            item, _ = await flow.add_grocery("h1", "Rice", Decimal("10"), DAY, member.id)
            deposit, _ = await flow.add_deposit("h1", Decimal("10"), DAY, member.id)
            return (
                await flow.delete_grocery("h1", item.id),
                await flow.delete_grocery("h1", item.id),
                await flow.delete_deposit("h1", deposit.id),
                await flow.load_summary("h1"),
            )

        first, second, deposit_deleted, result = asyncio.run(run())
        assert (first, second, deposit_deleted) == (True, False, True)
        assert result.summary.total_grocery_cost == Decimal("0")
        event_types = [e.event_type for e in audit_storage.events]
        assert event_types.count(AuditEventType.GROCERY_DELETED) == 1
        assert AuditEventType.DEPOSIT_DELETED in event_types


class TestEdits:
    """Tests for editing members, groceries and deposits."""

    def test_update_grocery_moves_balance(self):
        """Test re-assigning a purchase changes who paid for it."""
        flow, _, audit_storage = make_flow()

        async def run():
            ids = await seed_three_members(flow)
            lamb = (await flow.filtered_groceries("h1", GroceryFilter(purchaser_id=ids["B"])))[0]
            item, issues = await flow.update_grocery(
                "h1", lamb.id, amount=Decimal("90"), purchaser_id=ids["C"],
            )
            return ids, lamb, item, issues, await flow.load_summary("h1")

        ids, lamb, item, issues, result = asyncio.run(run())
        summary = result.summary

        assert item.id == lamb.id
        assert item.description == "Lamb"
        assert issues == []
        assert summary.total_grocery_cost == Decimal("120")
        assert summary.for_member(ids["B"]).total_purchase == Decimal("0")
        assert summary.for_member(ids["C"]).total_purchase == Decimal("90")

        event = next(e for e in audit_storage.events if e.event_type == AuditEventType.GROCERY_UPDATED)
        assert event.entity_id == lamb.id
        assert set(event.details["changes"]) == {"amount", "purchaser_id"}
        assert event.details["changes"]["amount"] == {"from": "60", "to": "90"}

    def test_update_grocery_rejects_bad_edit(self):
        """Test an invalid edit leaves the stored record untouched."""
        flow, storage, _ = make_flow()

        async def run():
            member = await flow.add_member("h1", "A")
            item, _ = await flow.add_grocery("h1", "Rice", Decimal("10"), DAY, member.id)
            return item

        item = asyncio.run(run())

        with pytest.raises(RecordRejectedError):
            asyncio.run(flow.update_grocery("h1", item.id, amount=Decimal("-1")))
        with pytest.raises(RecordRejectedError) as exc_info:
            asyncio.run(flow.update_grocery("h1", item.id, purchaser_id="ghost"))

        assert exc_info.value.issues[0].issue_type == "unknown_member"
        assert asyncio.run(storage.fetch_groceries("h1"))[0]["amount"] == "10"

    def test_update_missing_grocery(self):
        flow, _, _ = make_flow()
        with pytest.raises(NotFoundError):
            asyncio.run(flow.update_grocery("h1", "nope", amount=Decimal("5")))

    def test_update_deposit(self):
        flow, _, audit_storage = make_flow()

        async def run():
            member = await flow.add_member("h1", "A")
            deposit, _ = await flow.add_deposit("h1", Decimal("50"), DAY, member.id)
            updated, _ = await flow.update_deposit("h1", deposit.id, amount=Decimal("75"))
            return updated, await flow.load_summary("h1")

        updated, result = asyncio.run(run())
        assert updated.amount == Decimal("75")
        assert updated.date == DAY
        assert result.summary.total_deposits == Decimal("75")
        assert AuditEventType.DEPOSIT_UPDATED in [e.event_type for e in audit_storage.events]

    def test_update_deposit_for_retired_member_is_rejected(self):
        flow, _, _ = make_flow()

        async def run():
            ids = await seed_three_members(flow)
            await flow.retire_member("h1", ids["C"])
            deposits = await flow.load_snapshot("h1")
            deposit = deposits.snapshot.deposits[0]
            await flow.update_deposit("h1", deposit.id, member_id=ids["C"])

        with pytest.raises(RecordRejectedError):
            asyncio.run(run())

    def test_update_member(self):
        """Test renaming keeps the id and the member's records."""
        flow, _, audit_storage = make_flow()

        async def run():
            ids = await seed_three_members(flow)
            renamed = await flow.update_member("h1", ids["A"], name="Amina", email="amina@example.com")
            return ids, renamed, await flow.load_summary("h1")

        ids, renamed, result = asyncio.run(run())
        assert renamed.id == ids["A"]
        assert renamed.email == "amina@example.com"
        assert renamed.is_manager is False
        assert result.summary.for_member(ids["A"]).name == "Amina"
        assert result.summary.for_member(ids["A"]).balance == Decimal("20")

        event = audit_storage.events[-2]
        assert event.event_type == AuditEventType.MEMBER_UPDATED
        assert set(event.details["changes"]) == {"name", "email"}

    def test_update_missing_member(self):
        flow, _, _ = make_flow()
        with pytest.raises(NotFoundError):
            asyncio.run(flow.update_member("h1", "ghost", name="Nobody"))


class TestViews:
    """Tests for individual account, filters, CSV and periods."""

    def test_individual_account(self):
        flow, _, _ = make_flow()

        async def run():
            ids = await seed_three_members(flow)
            return await flow.individual_account("h1", ids["B"])

        account = asyncio.run(run())
        assert account.name == "B"
        assert account.total_paid == Decimal("60")

    def test_filtered_groceries(self):
        flow, _, _ = make_flow()

        async def run():
            await seed_three_members(flow)
            return await flow.filtered_groceries("h1", GroceryFilter(min_amount=Decimal("50")))

        items = asyncio.run(run())
        assert [item.description for item in items] == ["Lamb"]

    def test_spending_by_month(self):
        flow, _, _ = make_flow()

        async def run():
            await seed_three_members(flow)
            return await flow.spending_by_month("h1", 2024)

        totals = asyncio.run(run())
        assert totals[6] == Decimal("90")

    def test_csv_round_trip(self):
        """Test import saves good rows and export writes them back out."""
        flow, _, audit_storage = make_flow()
        text = (
            "date,item,price,purchased by\n"
            "03-07-2024,Rice,42.50,Amina\n"
            "04-07-2024,Milk,oops,Amina\n"
        )

        async def run():
            await flow.add_member("h1", "Amina")
            imported = await flow.import_groceries_csv("h1", text)
            exported = await flow.export_groceries_csv("h1")
            return imported, exported

        imported, exported = asyncio.run(run())
        assert imported.imported_count == 1
        assert imported.rejected_count == 1
        assert exported.splitlines()[1] == "2024-07-03,Rice,42.50,Amina"

        event_types = [e.event_type for e in audit_storage.events]
        assert AuditEventType.CSV_IMPORTED in event_types
        assert AuditEventType.CSV_EXPORTED in event_types

    def test_csv_without_headers(self):
        flow, _, _ = make_flow()
        with pytest.raises(CSVFormatError):
            asyncio.run(flow.import_groceries_csv("h1", "a,b,c\n1,2,3\n"))

    def test_archive_period(self):
        flow, _, audit_storage = make_flow()
        july = Period(name="July 2024", start_date=date(2024, 7, 1), end_date=date(2024, 7, 31))

        async def run():
            ids = await seed_three_members(flow)
            archive, balances = await flow.archive_period("h1", july)
            return ids, archive, balances

        ids, archive, balances = asyncio.run(run())
        assert archive.summary.total_grocery_cost == Decimal("90")
        assert balances[ids["A"]] == Decimal("20")
        assert audit_storage.events[-1].event_type == AuditEventType.PERIOD_ARCHIVED


class TestAppComponents:
    """Tests for the component factory."""

    def test_in_memory_components(self):
        flow, sheets_client = create_app_components(use_storage=False)
        assert isinstance(flow, HouseholdFlow)
        assert sheets_client is None


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
