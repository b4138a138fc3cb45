"""
Audit Models for Commute Ledger

Every write and every report is logged for audit purposes.
This provides:
1. Traceability of who-owes-whom numbers back to the commutes
2. Debugging information when the datastore misbehaves
3. A history of deletions, which the datastore itself forgets

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Records
    PERSON_CREATED = "person_created"
    PERSON_DELETED = "person_deleted"
    CAR_CREATED = "car_created"
    CAR_DELETED = "car_deleted"
    COMMUTE_CREATED = "commute_created"
    COMMUTE_DELETED = "commute_deleted"
    DELETE_REJECTED = "delete_rejected"

    # Validation
    VALIDATION_FAILED = "validation_failed"

    # Reports
    SETTLEMENT_COMPUTED = "settlement_computed"
    REPORT_EXPORTED = "report_exported"

    # System events
    SYSTEM_ERROR = "system_error"
    STORAGE_ERROR = "storage_error"


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
        default_factory=utc_now,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # Context - what record is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity ('person', 'car', 'commute', 'settlement')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="Record id, or month key for settlements"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = None

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(default_factory=dict)

    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, entity_type, entity_id,
         correlation_id, description, details_json, error_message, is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.entity_type or "",
            self.entity_id or "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.record_created("car", car.id, car.name)
        event = AuditEventBuilder.report_exported("2024-01", filename)
    """

    @staticmethod
    def record_created(
        entity_type: str,
        entity_id: int,
        label: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType(f"{entity_type}_created"),
            entity_type=entity_type,
            entity_id=str(entity_id),
            correlation_id=correlation_id,
            description=f"{entity_type.capitalize()} created: {label}",
            details=details or {},
            is_user_action=True,
        )

    @staticmethod
    def record_deleted(
        entity_type: str,
        entity_id: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType(f"{entity_type}_deleted"),
            entity_type=entity_type,
            entity_id=str(entity_id),
            correlation_id=correlation_id,
            description=f"{entity_type.capitalize()} {entity_id} deleted",
            is_user_action=True,
        )

    @staticmethod
    def delete_rejected(
        entity_type: str,
        entity_id: int,
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DELETE_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type=entity_type,
            entity_id=str(entity_id),
            correlation_id=correlation_id,
            description=f"Delete of {entity_type} {entity_id} rejected",
            details={"reason": reason},
            is_user_action=True,
        )

    @staticmethod
    def validation_failed(
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="commute",
            correlation_id=correlation_id,
            description=f"Commute validation failed with {len(issues)} issues",
            details={"issues": issues},
        )

    @staticmethod
    def settlement_computed(
        month: str,
        commute_count: int,
        net_edge_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SETTLEMENT_COMPUTED,
            severity=AuditSeverity.DEBUG,
            entity_type="settlement",
            entity_id=month,
            correlation_id=correlation_id,
            description=f"Settlement for {month} computed from {commute_count} commutes",
            details={
                "commute_count": commute_count,
                "net_edge_count": net_edge_count,
            },
        )

    @staticmethod
    def report_exported(
        month: str,
        filename: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REPORT_EXPORTED,
            entity_type="settlement",
            entity_id=month,
            correlation_id=correlation_id,
            description=f"Report exported: {filename}",
            details={"filename": filename},
            is_user_action=True,
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

    @staticmethod
    def storage_error(
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORAGE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"Storage error during {operation}",
            error_message=error_message,
            details={"operation": operation},
            correlation_id=correlation_id,
        )
