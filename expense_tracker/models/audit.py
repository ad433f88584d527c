"""
Audit Models for Expense Tracker

Every significant action in the system is logged for audit purposes.
This provides:
1. Traceability of every mutation of an expense
2. Visibility into rejected and denied requests
3. A record of what the OCR pipeline did (and dropped)

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from expense_tracker.models.expense import utcnow


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Expense lifecycle
    EXPENSE_CREATED = "expense_created"
    EXPENSE_UPDATED = "expense_updated"
    EXPENSE_DELETED = "expense_deleted"

    # Rejections
    CATEGORY_REJECTED = "category_rejected"
    ACCESS_DENIED = "access_denied"

    # Query operations
    LISTING_EXECUTED = "listing_executed"
    SUMMARY_EXECUTED = "summary_executed"

    # OCR ingestion
    OCR_EVENT_RECEIVED = "ocr_event_received"
    OCR_EXPENSE_CREATED = "ocr_expense_created"
    OCR_EVENT_DROPPED = "ocr_event_dropped"

    # System events
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

    This is the core unit of our audit trail.
    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=utcnow,
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

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'expense', 'ocr_job', 'query')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Who triggered it
    owner_id: Optional[str] = Field(
        default=None,
        description="Caller on whose behalf the action ran"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one OCR ingestion)"
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
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "owner_id": self.owner_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, entity_type, entity_id,
         owner_id, correlation_id, description, details_json, error_message]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.entity_type or "",
            self.entity_id or "",
            self.owner_id or "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_message or "",
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.expense_created(expense_id, owner_id, "12.50", None)
        event = AuditEventBuilder.access_denied(expense_id, owner_id, "forbidden")
    """

    @staticmethod
    def expense_created(
        expense_id: str,
        owner_id: str,
        amount: str,
        category: Optional[str],
        from_ocr: bool = False,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_CREATED,
            entity_type="expense",
            entity_id=expense_id,
            owner_id=owner_id,
            correlation_id=correlation_id,
            description=f"Expense created: {amount}",
            details={
                "amount": amount,
                "category": category,
                "from_ocr": from_ocr,
            },
        )

    @staticmethod
    def expense_updated(
        expense_id: str,
        owner_id: str,
        fields: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_UPDATED,
            entity_type="expense",
            entity_id=expense_id,
            owner_id=owner_id,
            correlation_id=correlation_id,
            description=f"Expense updated: {', '.join(fields) or 'no fields'}",
            details={
                "fields": fields,
            },
        )

    @staticmethod
    def expense_deleted(
        expense_id: str,
        owner_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_DELETED,
            entity_type="expense",
            entity_id=expense_id,
            owner_id=owner_id,
            correlation_id=correlation_id,
            description="Expense deleted",
        )

    @staticmethod
    def category_rejected(
        slug: str,
        owner_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CATEGORY_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="category",
            entity_id=slug,
            owner_id=owner_id,
            correlation_id=correlation_id,
            description=f"Unknown category rejected: {slug}",
        )

    @staticmethod
    def access_denied(
        expense_id: str,
        owner_id: str,
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ACCESS_DENIED,
            severity=AuditSeverity.WARNING,
            entity_type="expense",
            entity_id=expense_id,
            owner_id=owner_id,
            correlation_id=correlation_id,
            description=f"Access to expense denied ({reason})",
            details={
                "reason": reason,
            },
        )

    @staticmethod
    def listing_executed(
        owner_id: str,
        page: int,
        returned: int,
        total: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LISTING_EXECUTED,
            entity_type="query",
            owner_id=owner_id,
            correlation_id=correlation_id,
            description=f"Listing page {page}: {returned} of {total} expenses",
            details={
                "page": page,
                "returned": returned,
                "total": total,
            },
        )

    @staticmethod
    def summary_executed(
        owner_id: str,
        count: int,
        group_by: Optional[str],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SUMMARY_EXECUTED,
            entity_type="query",
            owner_id=owner_id,
            correlation_id=correlation_id,
            description=f"Summary over {count} expenses",
            details={
                "count": count,
                "group_by": group_by,
            },
        )

    @staticmethod
    def ocr_event_received(
        job_id: str,
        owner_id: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.OCR_EVENT_RECEIVED,
            entity_type="ocr_job",
            entity_id=job_id,
            owner_id=owner_id,
            correlation_id=correlation_id,
            description=f"OCR completed event received for job {job_id}",
        )

    @staticmethod
    def ocr_expense_created(
        job_id: str,
        expense_id: str,
        owner_id: str,
        confidence: float,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.OCR_EXPENSE_CREATED,
            entity_type="ocr_job",
            entity_id=job_id,
            owner_id=owner_id,
            correlation_id=correlation_id,
            description=f"Expense {expense_id} created from OCR job {job_id}",
            details={
                "expense_id": expense_id,
                "confidence": confidence,
            },
        )

    @staticmethod
    def ocr_event_dropped(
        job_id: Optional[str],
        error_type: str,
        error_message: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.OCR_EVENT_DROPPED,
            severity=AuditSeverity.ERROR,
            entity_type="ocr_job",
            entity_id=job_id,
            correlation_id=correlation_id,
            description=f"OCR event dropped: {error_type}",
            error_message=error_message,
            details={
                "error_type": error_type,
            },
        )

    @staticmethod
    def storage_error(
        operation: str,
        error_message: str,
        owner_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORAGE_ERROR,
            severity=AuditSeverity.ERROR,
            owner_id=owner_id,
            correlation_id=correlation_id,
            description=f"Storage error during {operation}",
            error_message=error_message,
            details={
                "operation": operation,
            },
        )
