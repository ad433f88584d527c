"""
OCR Completed Event Handler

Turns an 'ocr.completed' message from the extraction pipeline into an
expense owned by the user named in the message.

IMPORTANT: OCR output is PROPOSED data. It goes through the same request
model and the same category validation as an interactive create. An
event that fails is logged, audited and dropped. It is processed at most
once and never retried.

Extracted amounts are rounded half-up to whole cents before validation.
"""

from decimal import ROUND_HALF_UP
from typing import TYPE_CHECKING, Any, Optional, Union
from uuid import UUID

import structlog

from expense_tracker.audit import AuditLogger, create_correlation_id
from expense_tracker.models.expense import (
    CENT,
    ExpenseCreate,
    ExpenseView,
    OcrCompletedEvent,
    OcrProvenance,
)
from expense_tracker.validation import ValidationFailedError

if TYPE_CHECKING:
    from expense_tracker.orchestrator import ExpenseFlow


logger = structlog.get_logger(__name__)

DEFAULT_OCR_DESCRIPTION = "OCR Scanned Receipt"


def _peek_job_id(payload: Union[dict, OcrCompletedEvent]) -> Optional[str]:
    if isinstance(payload, OcrCompletedEvent):
        return payload.job_id
    job_id = payload.get("jobId", payload.get("job_id")) if isinstance(payload, dict) else None
    return str(job_id) if job_id is not None else None


class OcrEventHandler:
    """
    Consumes OCR completion events.

    Usage:
        handler = OcrEventHandler(expense_flow, audit_logger)
        view = await handler.handle_ocr_completed(message)
    """

    def __init__(
        self,
        expense_flow: "ExpenseFlow",
        audit_logger: Optional[AuditLogger] = None,
        fallback_description: Optional[str] = None,
    ):
        self._expense_flow = expense_flow
        self._audit_logger = audit_logger
        self._fallback_description = fallback_description or DEFAULT_OCR_DESCRIPTION

    async def handle_ocr_completed(
        self,
        payload: Union[dict[str, Any], OcrCompletedEvent],
    ) -> Optional[ExpenseView]:
        """
        Handle one 'ocr.completed' message.

        Returns:
            The created expense, or None if the event was dropped.
            Never raises.
        """
        correlation_id = create_correlation_id()
        job_id = _peek_job_id(payload)
        logger.info("ocr_event_received", job_id=job_id)

        try:
            event = (
                payload
                if isinstance(payload, OcrCompletedEvent)
                else OcrCompletedEvent.model_validate(payload)
            )
            if self._audit_logger:
                await self._audit_logger.log_ocr_event_received(
                    job_id=event.job_id,
                    owner_id=event.user_id,
                    correlation_id=correlation_id,
                )
            expense = await self._create_expense(event, correlation_id)
        except Exception as e:
            logger.error(
                "ocr_event_dropped",
                job_id=job_id,
                error_type=type(e).__name__,
                error=str(e),
                exc_info=True,
            )
            if self._audit_logger:
                await self._audit_logger.log_ocr_event_dropped(
                    job_id=job_id,
                    error_type=type(e).__name__,
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            return None

        logger.info(
            "ocr_expense_created",
            job_id=event.job_id,
            expense_id=expense.id,
            confidence=event.expense_data.confidence,
        )
        if self._audit_logger:
            await self._audit_logger.log_ocr_expense_created(
                job_id=event.job_id,
                expense_id=expense.id,
                owner_id=event.user_id,
                confidence=event.expense_data.confidence,
                correlation_id=correlation_id,
            )
        return expense

    async def _create_expense(self, event: OcrCompletedEvent, correlation_id: UUID) -> ExpenseView:
        data = event.expense_data
        if data.amount is None or data.amount <= 0:
            raise ValidationFailedError(field="amount", message="Invalid amount from OCR result")

        payload = ExpenseCreate(
            description=(data.description or "").strip() or self._fallback_description,
            amount=data.amount.quantize(CENT, rounding=ROUND_HALF_UP),
            category=data.category,
            spent_at=data.spent_at,
        )
        provenance = OcrProvenance(job_id=event.job_id, confidence=data.confidence)

        return await self._expense_flow.create(
            payload,
            owner_id=event.user_id,
            provenance=provenance,
            correlation_id=correlation_id,
        )
