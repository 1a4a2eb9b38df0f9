"""
Audit Logger

DESIGN DECISION: Every significant action in the system is logged.
This provides:
1. Complete traceability of provisioning decisions
2. A distinct diagnostic for each failure kind, even when the
   client only ever sees "not found"
3. Debugging capability

The audit logger:
- Is async so it fits the flows that call it
- Gracefully handles storage failures (logs them, never crashes the request)
- Supports correlation IDs to trace the events of one request
"""

import logging
from typing import Any, Optional
from uuid import UUID, uuid4

import structlog

from budgetal.models.audit import AuditEvent, AuditEventBuilder, AuditEventType
from budgetal.services.storage import AuditStorageInterface


def configure_logging(level: str = "INFO") -> None:
    """Configure stdlib logging and structlog to emit JSON lines."""
    logging.basicConfig(format="%(message)s", level=getattr(logging, level.upper(), logging.INFO))
    logging.getLogger().setLevel(getattr(logging, level.upper(), logging.INFO))

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
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
    2. Audit storage (for persistence), when configured
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
        self._logger = structlog.get_logger("budgetal.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        elif event.severity.value == "debug":
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

    async def log_budget_found(
        self,
        budget_id: int,
        user_id: int,
        year: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.budget_found(
            budget_id=budget_id,
            user_id=user_id,
            year=year,
            correlation_id=correlation_id,
        ))

    async def log_budget_provisioned(
        self,
        budget_id: int,
        user_id: int,
        year: int,
        item_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log creation of a new annual budget and its default items."""
        await self.log(AuditEventBuilder.budget_provisioned(
            budget_id=budget_id,
            user_id=user_id,
            year=year,
            item_count=item_count,
            correlation_id=correlation_id,
        ))

    async def log_provisioning_race_resolved(
        self,
        budget_id: int,
        user_id: int,
        year: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log that another writer created the budget first."""
        await self.log(AuditEventBuilder.provisioning_race_resolved(
            budget_id=budget_id,
            user_id=user_id,
            year=year,
            correlation_id=correlation_id,
        ))

    async def log_year_rejected(
        self,
        user_id: int,
        requested_year: Any,
        kind: str,
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.year_rejected(
            user_id=user_id,
            requested_year=requested_year,
            kind=kind,
            reason=reason,
            correlation_id=correlation_id,
        ))

    async def log_item_changed(
        self,
        event_type: AuditEventType,
        item_id: int,
        budget_id: int,
        user_id: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an item create, update or delete."""
        await self.log(AuditEventBuilder.item_changed(
            event_type=event_type,
            item_id=item_id,
            budget_id=budget_id,
            user_id=user_id,
            correlation_id=correlation_id,
        ))

    async def log_item_access_denied(
        self,
        user_id: int,
        entity_type: str,
        entity_id: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.item_access_denied(
            user_id=user_id,
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
        ))

    async def log_statistics_computed(
        self,
        user_id: int,
        year: int,
        month: int,
        transaction_count: int,
        category_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.statistics_computed(
            user_id=user_id,
            year=year,
            month=month,
            transaction_count=transaction_count,
            category_count=category_count,
            correlation_id=correlation_id,
        ))

    async def log_statistics_rejected(
        self,
        user_id: int,
        requested: str,
        kind: str,
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.statistics_rejected(
            user_id=user_id,
            requested=requested,
            kind=kind,
            reason=reason,
            correlation_id=correlation_id,
        ))

    async def log_unauthorized(
        self,
        path: str,
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a request rejected by the authentication boundary."""
        await self.log(AuditEventBuilder.unauthorized(
            path=path,
            reason=reason,
            correlation_id=correlation_id,
        ))

    async def log_storage_failure(
        self,
        operation: str,
        error: Exception,
        user_id: Optional[int] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.storage_failure(
            operation=operation,
            error=error,
            user_id=user_id,
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

    Use this at the start of a request.
    Pass it through all subsequent operations.
    """
    return uuid4()
