"""
Audit Logger

DESIGN DECISION: Every write to household records is logged.
This provides:
1. Complete traceability of who added or removed what
2. Debugging capability when a balance looks wrong
3. A history housemates can read back

The audit logger:
- Is async to not block main flow
- Gracefully handles failures (doesn't crash the app if logging fails)
- Supports correlation IDs to trace related events
"""

import logging
from typing import Optional
from uuid import UUID, uuid4

import structlog

from mealshare.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from mealshare.services.storage import AuditStorageInterface


def configure_logging(log_level: Optional[str] = None) -> None:
    """
    Configure structlog for local JSON logging.

    Args:
        log_level: Standard library level name. When given, the root
            logger is set up at that level as well.
    """
    if log_level:
        logging.basicConfig(
            format="%(message)s",
            level=getattr(logging, log_level.upper(), logging.INFO),
        )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer()
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


configure_logging()


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage (for persistence and household visibility)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("mealshare.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        elif event.severity == AuditSeverity.DEBUG:
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_member_added(
        self,
        household_id: str,
        member_id: str,
        name: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.member_added(
            household_id=household_id,
            member_id=member_id,
            name=name,
            correlation_id=correlation_id,
        ))

    async def log_member_retired(
        self,
        household_id: str,
        member_id: str,
        name: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.member_retired(
            household_id=household_id,
            member_id=member_id,
            name=name,
            correlation_id=correlation_id,
        ))

    async def log_grocery_added(
        self,
        household_id: str,
        grocery_id: str,
        description: str,
        amount: str,
        purchaser_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.grocery_added(
            household_id=household_id,
            grocery_id=grocery_id,
            description=description,
            amount=amount,
            purchaser_id=purchaser_id,
            correlation_id=correlation_id,
        ))

    async def log_deposit_added(
        self,
        household_id: str,
        deposit_id: str,
        amount: str,
        member_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.deposit_added(
            household_id=household_id,
            deposit_id=deposit_id,
            amount=amount,
            member_id=member_id,
            correlation_id=correlation_id,
        ))

    async def log_records_rejected(
        self,
        household_id: str,
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log records that failed validation and were left out."""
        await self.log(AuditEventBuilder.records_rejected(
            household_id=household_id,
            issues=issues,
            correlation_id=correlation_id,
        ))

    async def log_storage_error(
        self,
        operation: str,
        error_message: str,
        household_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.storage_error(
            operation=operation,
            error_message=error_message,
            household_id=household_id,
            correlation_id=correlation_id,
        ))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        await self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., a CSV import).
    Pass it through all subsequent operations.
    """
    return uuid4()
