"""
Data Models Package

Pydantic models for household records, derived summaries and audit events.
All data flowing through the system must conform to these schemas.
"""

from mealshare.models.household import (
    UNKNOWN_MEMBER_LABEL,
    Deposit,
    GroceryItem,
    HouseholdSnapshot,
    Member,
    Period,
    PeriodType,
    RecordType,
    new_record_id,
)
from mealshare.models.summary import (
    SUMMARY_SCHEMA_VERSION,
    GroceryFilter,
    HouseholdSummary,
    IndividualAccount,
    MemberSummary,
    PeriodArchive,
    ReconciliationResult,
    ReconciliationScope,
    RecordIssue,
    SnapshotValidation,
)
from mealshare.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Records
    "UNKNOWN_MEMBER_LABEL",
    "Deposit",
    "GroceryItem",
    "HouseholdSnapshot",
    "Member",
    "Period",
    "PeriodType",
    "RecordType",
    "new_record_id",
    # Derived
    "SUMMARY_SCHEMA_VERSION",
    "GroceryFilter",
    "HouseholdSummary",
    "IndividualAccount",
    "MemberSummary",
    "PeriodArchive",
    "ReconciliationResult",
    "ReconciliationScope",
    "RecordIssue",
    "SnapshotValidation",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
