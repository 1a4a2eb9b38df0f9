"""
Audit Models for Budgetal

Every significant action in the system is logged for audit purposes.
This provides:
1. Complete traceability of all provisioning decisions
2. Debugging information when things go wrong
3. A distinct diagnostic for every failure kind, even when the
   HTTP response collapses them into one status code

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
    # Provisioning
    BUDGET_FOUND = "budget_found"
    BUDGET_PROVISIONED = "budget_provisioned"
    PROVISIONING_RACE_RESOLVED = "provisioning_race_resolved"
    YEAR_REJECTED = "year_rejected"

    # Item management
    ITEM_CREATED = "item_created"
    ITEM_UPDATED = "item_updated"
    ITEM_DELETED = "item_deleted"
    ITEM_ACCESS_DENIED = "item_access_denied"

    # Statistics
    STATISTICS_COMPUTED = "statistics_computed"
    STATISTICS_REJECTED = "statistics_rejected"

    # Boundary
    UNAUTHORIZED = "unauthorized"

    # System events
    STORAGE_FAILURE = "storage_failure"
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

    This is the core unit of our audit trail.
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

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - who and what is this about?
    user_id: Optional[int] = Field(
        default=None,
        description="User the request was made for"
    )
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'annual_budget', 'annual_budget_item')"
    )
    entity_id: Optional[int] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate the events of one request"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "user_id": self.user_id,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
        }

    def to_row(self) -> dict:
        """
        Convert to a flat row for table storage.

        `details` is JSON-encoded; ids are stringified.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp,
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "user_id": self.user_id,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details_json": json.dumps(self.details, default=str) if self.details else "",
            "error_code": self.error_code,
            "error_message": self.error_message,
        }

    @classmethod
    def from_row(cls, row: dict) -> "AuditEvent":
        details_json = row.get("details_json")
        return cls(
            event_id=UUID(row["event_id"]),
            timestamp=row["timestamp"],
            event_type=AuditEventType(row["event_type"]),
            severity=AuditSeverity(row["severity"]),
            user_id=row.get("user_id"),
            entity_type=row.get("entity_type"),
            entity_id=row.get("entity_id"),
            correlation_id=UUID(row["correlation_id"]) if row.get("correlation_id") else None,
            description=row["description"],
            details=json.loads(details_json) if details_json else {},
            error_code=row.get("error_code"),
            error_message=row.get("error_message"),
        )


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.budget_provisioned(budget_id, user_id, 2017, 3, cid)
        event = AuditEventBuilder.year_rejected(user_id, "abcd", "malformed", cid)
    """

    @staticmethod
    def budget_found(
        budget_id: int,
        user_id: int,
        year: int,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BUDGET_FOUND,
            severity=AuditSeverity.DEBUG,
            user_id=user_id,
            entity_type="annual_budget",
            entity_id=budget_id,
            correlation_id=correlation_id,
            description=f"Existing annual budget found for {year}",
            details={"year": year},
        )

    @staticmethod
    def budget_provisioned(
        budget_id: int,
        user_id: int,
        year: int,
        item_count: int,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BUDGET_PROVISIONED,
            user_id=user_id,
            entity_type="annual_budget",
            entity_id=budget_id,
            correlation_id=correlation_id,
            description=f"Annual budget for {year} created with {item_count} default items",
            details={
                "year": year,
                "item_count": item_count,
            },
        )

    @staticmethod
    def provisioning_race_resolved(
        budget_id: int,
        user_id: int,
        year: int,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PROVISIONING_RACE_RESOLVED,
            severity=AuditSeverity.WARNING,
            user_id=user_id,
            entity_type="annual_budget",
            entity_id=budget_id,
            correlation_id=correlation_id,
            description=f"Annual budget for {year} was created concurrently; using existing one",
            details={"year": year},
        )

    @staticmethod
    def year_rejected(
        user_id: int,
        requested_year: Any,
        kind: str,
        reason: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.YEAR_REJECTED,
            severity=AuditSeverity.WARNING,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Annual budget year rejected ({kind})",
            details={
                "requested_year": str(requested_year),
                "kind": kind,
            },
            error_code=kind,
            error_message=reason,
        )

    @staticmethod
    def item_changed(
        event_type: AuditEventType,
        item_id: int,
        budget_id: int,
        user_id: int,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        action = event_type.value.split("_", 1)[1]
        return AuditEvent(
            event_type=event_type,
            user_id=user_id,
            entity_type="annual_budget_item",
            entity_id=item_id,
            correlation_id=correlation_id,
            description=f"Annual budget item {action}",
            details={"annual_budget_id": budget_id},
        )

    @staticmethod
    def item_access_denied(
        user_id: int,
        entity_type: str,
        entity_id: int,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ITEM_ACCESS_DENIED,
            severity=AuditSeverity.WARNING,
            user_id=user_id,
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=f"{entity_type} {entity_id} is missing or owned by another user",
        )

    @staticmethod
    def statistics_computed(
        user_id: int,
        year: int,
        month: int,
        transaction_count: int,
        category_count: int,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STATISTICS_COMPUTED,
            severity=AuditSeverity.DEBUG,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Monthly statistics for {year}-{month:02d}: {category_count} categories",
            details={
                "year": year,
                "month": month,
                "transaction_count": transaction_count,
                "category_count": category_count,
            },
        )

    @staticmethod
    def statistics_rejected(
        user_id: int,
        requested: str,
        kind: str,
        reason: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STATISTICS_REJECTED,
            severity=AuditSeverity.WARNING,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Monthly statistics period rejected ({kind})",
            details={
                "requested": requested,
                "kind": kind,
            },
            error_code=kind,
            error_message=reason,
        )

    @staticmethod
    def unauthorized(
        path: str,
        reason: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.UNAUTHORIZED,
            severity=AuditSeverity.WARNING,
            correlation_id=correlation_id,
            description="Unauthenticated request",
            details={"path": path},
            error_message=reason,
        )

    @staticmethod
    def storage_failure(
        operation: str,
        error: Exception,
        user_id: Optional[int] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORAGE_FAILURE,
            severity=AuditSeverity.ERROR,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Storage failure during {operation}",
            details={"operation": operation},
            error_code=type(error).__name__,
            error_message=str(error),
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
