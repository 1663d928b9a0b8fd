"""
Audit Models

Every change to a household's records is logged, along with every
balance computation and every batch of rejected records. This gives:
1. A history members can check when a balance looks wrong
2. Debugging information when upstream data is malformed
3. A way to reconstruct who changed what, and when

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Roster
    MEMBER_ADDED = "member_added"
    MEMBER_RETIRED = "member_retired"
    MEMBER_UPDATED = "member_updated"

    # Records
    GROCERY_ADDED = "grocery_added"
    GROCERY_UPDATED = "grocery_updated"
    GROCERY_DELETED = "grocery_deleted"
    DEPOSIT_ADDED = "deposit_added"
    DEPOSIT_UPDATED = "deposit_updated"
    DEPOSIT_DELETED = "deposit_deleted"

    # Computation
    SUMMARY_COMPUTED = "summary_computed"
    RECORDS_REJECTED = "records_rejected"

    # Bulk transfer
    CSV_IMPORTED = "csv_imported"
    CSV_EXPORTED = "csv_exported"

    # Periods
    PERIOD_ARCHIVED = "period_archived"

    # System events
    STORAGE_ERROR = "storage_error"
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the event occurred (UTC)"
    )

    # Classification
    event_type: AuditEventType
    severity: AuditSeverity = Field(default=AuditSeverity.INFO)

    # Context
    household_id: Optional[str] = Field(
        default=None,
        description="Household the event belongs to"
    )
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'member', 'grocery', 'deposit', 'period')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate events from one user action"
    )

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)

    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "household_id": self.household_id,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row for the audit worksheet.

        Columns: [event_id, timestamp, event_type, severity, household_id,
        entity_type, entity_id, correlation_id, description, details_json,
        error_message]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.household_id or "",
            self.entity_type or "",
            self.entity_id or "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_message or "",
        ]


class AuditEventBuilder:
    """
    Builds audit events for the common actions.

    Usage:
        event = AuditEventBuilder.grocery_added(household_id, grocery_id, ...)
    """

    @staticmethod
    def member_added(
        household_id: str,
        member_id: str,
        name: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MEMBER_ADDED,
            household_id=household_id,
            entity_type="member",
            entity_id=member_id,
            correlation_id=correlation_id,
            description=f"Member added: {name}",
            details={"name": name},
        )

    @staticmethod
    def member_retired(
        household_id: str,
        member_id: str,
        name: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MEMBER_RETIRED,
            household_id=household_id,
            entity_type="member",
            entity_id=member_id,
            correlation_id=correlation_id,
            description=f"Member retired: {name}",
            details={"name": name},
        )

    @staticmethod
    def member_updated(
        household_id: str,
        member_id: str,
        changes: dict[str, dict],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MEMBER_UPDATED,
            household_id=household_id,
            entity_type="member",
            entity_id=member_id,
            correlation_id=correlation_id,
            description=f"Member updated: {', '.join(changes) or 'no changes'}",
            details={"changes": changes},
        )

    @staticmethod
    def grocery_added(
        household_id: str,
        grocery_id: str,
        description: str,
        amount: str,
        purchaser_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.GROCERY_ADDED,
            household_id=household_id,
            entity_type="grocery",
            entity_id=grocery_id,
            correlation_id=correlation_id,
            description=f"Grocery added: {description} - {amount}",
            details={
                "description": description,
                "amount": amount,
                "purchaser_id": purchaser_id,
            },
        )

    @staticmethod
    def grocery_updated(
        household_id: str,
        grocery_id: str,
        changes: dict[str, dict],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        """`changes` maps each edited field to its {"from": ..., "to": ...} values."""
        return AuditEvent(
            event_type=AuditEventType.GROCERY_UPDATED,
            household_id=household_id,
            entity_type="grocery",
            entity_id=grocery_id,
            correlation_id=correlation_id,
            description=f"Grocery updated: {', '.join(changes) or 'no changes'}",
            details={"changes": changes},
        )

    @staticmethod
    def grocery_deleted(
        household_id: str,
        grocery_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.GROCERY_DELETED,
            household_id=household_id,
            entity_type="grocery",
            entity_id=grocery_id,
            correlation_id=correlation_id,
            description="Grocery entry deleted",
        )

    @staticmethod
    def deposit_added(
        household_id: str,
        deposit_id: str,
        amount: str,
        member_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DEPOSIT_ADDED,
            household_id=household_id,
            entity_type="deposit",
            entity_id=deposit_id,
            correlation_id=correlation_id,
            description=f"Deposit added: {amount}",
            details={
                "amount": amount,
                "member_id": member_id,
            },
        )

    @staticmethod
    def deposit_updated(
        household_id: str,
        deposit_id: str,
        changes: dict[str, dict],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DEPOSIT_UPDATED,
            household_id=household_id,
            entity_type="deposit",
            entity_id=deposit_id,
            correlation_id=correlation_id,
            description=f"Deposit updated: {', '.join(changes) or 'no changes'}",
            details={"changes": changes},
        )

    @staticmethod
    def deposit_deleted(
        household_id: str,
        deposit_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DEPOSIT_DELETED,
            household_id=household_id,
            entity_type="deposit",
            entity_id=deposit_id,
            correlation_id=correlation_id,
            description="Deposit deleted",
        )

    @staticmethod
    def summary_computed(
        household_id: str,
        member_count: int,
        total_grocery_cost: str,
        total_deposits: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SUMMARY_COMPUTED,
            severity=AuditSeverity.DEBUG,
            household_id=household_id,
            entity_type="summary",
            correlation_id=correlation_id,
            description=f"Balances computed for {member_count} members",
            details={
                "member_count": member_count,
                "total_grocery_cost": total_grocery_cost,
                "total_deposits": total_deposits,
            },
        )

    @staticmethod
    def records_rejected(
        household_id: str,
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORDS_REJECTED,
            severity=AuditSeverity.WARNING,
            household_id=household_id,
            correlation_id=correlation_id,
            description=f"{len(issues)} record issues found while loading household data",
            details={"issues": issues},
        )

    @staticmethod
    def csv_imported(
        household_id: str,
        imported: int,
        rejected: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CSV_IMPORTED,
            severity=AuditSeverity.WARNING if rejected else AuditSeverity.INFO,
            household_id=household_id,
            entity_type="grocery",
            correlation_id=correlation_id,
            description=f"CSV import: {imported} rows imported, {rejected} rejected",
            details={"imported": imported, "rejected": rejected},
        )

    @staticmethod
    def csv_exported(
        household_id: str,
        row_count: int,
        criteria: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CSV_EXPORTED,
            household_id=household_id,
            entity_type="grocery",
            correlation_id=correlation_id,
            description=f"CSV export: {row_count} rows",
            details={"row_count": row_count, "criteria": criteria},
        )

    @staticmethod
    def period_archived(
        household_id: str,
        archive_id: str,
        period_name: str,
        transfer_balances: bool,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PERIOD_ARCHIVED,
            household_id=household_id,
            entity_type="period",
            entity_id=archive_id,
            correlation_id=correlation_id,
            description=f"Period archived: {period_name}",
            details={
                "period_name": period_name,
                "transfer_balances": transfer_balances,
            },
        )

    @staticmethod
    def storage_error(
        operation: str,
        error_message: str,
        household_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORAGE_ERROR,
            severity=AuditSeverity.ERROR,
            household_id=household_id,
            correlation_id=correlation_id,
            description=f"Storage error during {operation}",
            error_message=error_message,
            details={"operation": operation},
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
