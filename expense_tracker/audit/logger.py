"""
Audit Logger

DESIGN DECISION: Every mutation of an expense, every rejected or denied
request and every OCR ingestion outcome leaves an audit record.

The audit logger:
- Always writes a structured local log line
- Optionally persists the event through an AuditStorageInterface
- Never lets a persistence failure break the request that produced it
- Carries correlation IDs so related events can be traced together
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from expense_tracker.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from expense_tracker.services.storage import AuditStorageInterface


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
        structlog.processors.JSONRenderer(),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events to:
    1. Structured local log (always)
    2. Audit storage (when one is configured)
    """

    def __init__(self, storage: Optional[AuditStorageInterface] = None):
        """
        Args:
            storage: Backend for persistence. If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger(__name__)

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Returns True if the storage write succeeded (or no storage is configured).
        """
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage is None:
            return True

        try:
            return await self._storage.append_event(event)
        except Exception as e:
            self._logger.error(
                "audit_storage_failed",
                error=str(e),
                event_id=str(event.event_id),
            )
            return False

    async def log_expense_created(
        self,
        expense_id: str,
        owner_id: str,
        amount: str,
        category: Optional[str],
        from_ocr: bool = False,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.expense_created(
            expense_id=expense_id,
            owner_id=owner_id,
            amount=amount,
            category=category,
            from_ocr=from_ocr,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_expense_updated(
        self,
        expense_id: str,
        owner_id: str,
        fields: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.expense_updated(
            expense_id=expense_id,
            owner_id=owner_id,
            fields=fields,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_expense_deleted(
        self,
        expense_id: str,
        owner_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(
            AuditEventBuilder.expense_deleted(
                expense_id=expense_id,
                owner_id=owner_id,
                correlation_id=correlation_id,
            )
        )

    async def log_category_rejected(
        self,
        slug: str,
        owner_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a payload that referenced a category that does not exist."""
        await self.log(
            AuditEventBuilder.category_rejected(
                slug=slug,
                owner_id=owner_id,
                correlation_id=correlation_id,
            )
        )

    async def log_access_denied(
        self,
        expense_id: str,
        owner_id: str,
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a single-record request that failed the ownership guard."""
        await self.log(
            AuditEventBuilder.access_denied(
                expense_id=expense_id,
                owner_id=owner_id,
                reason=reason,
                correlation_id=correlation_id,
            )
        )

    async def log_listing_executed(
        self,
        owner_id: str,
        page: int,
        returned: int,
        total: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(
            AuditEventBuilder.listing_executed(
                owner_id=owner_id,
                page=page,
                returned=returned,
                total=total,
                correlation_id=correlation_id,
            )
        )

    async def log_summary_executed(
        self,
        owner_id: str,
        count: int,
        group_by: Optional[str],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(
            AuditEventBuilder.summary_executed(
                owner_id=owner_id,
                count=count,
                group_by=group_by,
                correlation_id=correlation_id,
            )
        )

    async def log_ocr_event_received(
        self,
        job_id: str,
        owner_id: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(
            AuditEventBuilder.ocr_event_received(
                job_id=job_id,
                owner_id=owner_id,
                correlation_id=correlation_id,
            )
        )

    async def log_ocr_expense_created(
        self,
        job_id: str,
        expense_id: str,
        owner_id: str,
        confidence: float,
        correlation_id: UUID,
    ) -> None:
        """Log an expense that was materialized from an OCR job."""
        await self.log(
            AuditEventBuilder.ocr_expense_created(
                job_id=job_id,
                expense_id=expense_id,
                owner_id=owner_id,
                confidence=confidence,
                correlation_id=correlation_id,
            )
        )

    async def log_ocr_event_dropped(
        self,
        job_id: Optional[str],
        error_type: str,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        """Log an OCR event that could not be turned into an expense."""
        await self.log(
            AuditEventBuilder.ocr_event_dropped(
                job_id=job_id,
                error_type=error_type,
                error_message=error_message,
                correlation_id=correlation_id,
            )
        )

    async def log_storage_error(
        self,
        operation: str,
        error_message: str,
        owner_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(
            AuditEventBuilder.storage_error(
                operation=operation,
                error_message=error_message,
                owner_id=owner_id,
                correlation_id=correlation_id,
            )
        )


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a request or an OCR ingestion and pass it
    through every subsequent operation.
    """
    return uuid4()
