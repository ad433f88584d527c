"""
Core Data Models for Expense Tracker

These models define the strict schemas for all data flowing through the system.
They are designed to:
1. Enforce type safety at runtime
2. Keep money in Decimal from input to output
3. Be serializable for storage and logging
4. Give the query engine one normalized shape to work with

DESIGN DECISION: Timestamps are normalized ONCE, at the model boundary.
Timezone-aware input is converted to naive UTC; from then on the stored
calendar fields are used as-is (bucketing never re-localizes).
"""

from datetime import date, datetime, time, timezone
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, Optional
from uuid import uuid4

from pydantic import (
    AfterValidator,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    field_validator,
)


UNCATEGORIZED = "uncategorized"

CENT = Decimal("0.01")


def utcnow() -> datetime:
    """Current time as naive UTC, the single time reference of the system."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def normalize_timestamp(value: Any) -> Any:
    """
    Coerce ISO-8601 strings, dates and datetimes into naive UTC datetimes.

    A bare date means midnight of that day. Anything else is passed through
    so pydantic reports the type error.
    """
    if value is None:
        return None

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, time.min)
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.strip())
        except ValueError:
            raise ValueError(f"Invalid ISO-8601 timestamp: {value!r}")
    else:
        return value

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def _quantize_amount(value: Decimal) -> Decimal:
    return value.quantize(CENT)


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


Timestamp = Annotated[datetime, BeforeValidator(normalize_timestamp)]

Money = Annotated[
    Decimal,
    Field(gt=0, max_digits=12, decimal_places=2),
    AfterValidator(_quantize_amount),
]

Description = Annotated[str, Field(min_length=1, max_length=500)]

# A blank slug reads as no category.
CategorySlug = Annotated[
    Optional[Annotated[str, Field(max_length=50)]],
    BeforeValidator(_blank_to_none),
]


# =============================================================================
# ENUMS
# =============================================================================

class GroupByPeriod(str, Enum):
    """
    Time granularity for the summary series.

    Every key format is zero-padded and ordered most-significant first,
    so plain string comparison orders the buckets chronologically.
    """
    DAY = "day"        # YYYY-MM-DD
    WEEK = "week"      # YYYY-MM-DD of the Sunday starting the week
    MONTH = "month"    # YYYY-MM
    YEAR = "year"      # YYYY


# =============================================================================
# REFERENCE DATA
# =============================================================================

class Category(BaseModel):
    """
    Shared, read-only reference data.

    Seeded once at deployment; the slug is the immutable identifier
    that expenses point at.
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    slug: str = Field(
        ...,
        min_length=1,
        max_length=50,
        pattern="^[a-z0-9_-]+$",
        description="Unique category identifier"
    )
    name: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Display name"
    )


# =============================================================================
# CORE EXPENSE MODEL
# =============================================================================

class Expense(BaseModel):
    """
    A stored expense record.

    CRITICAL: owner_id is bound to the authenticated caller at creation
    and never changes afterwards. Updates only ever touch the fields
    listed in ExpenseUpdate.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    # Identity
    id: str = Field(
        default_factory=lambda: str(uuid4()),
        min_length=1,
        description="Opaque unique expense ID"
    )
    owner_id: str = Field(
        ...,
        min_length=1,
        description="Identifier of the caller that owns this expense"
    )

    # Payload
    description: str = Field(
        ...,
        min_length=1,
        max_length=500,
        description="What the money was spent on"
    )
    amount: Money
    category: CategorySlug = None
    spent_at: Timestamp = Field(
        ...,
        description="When the expense was made"
    )

    # Timestamps
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    # Provenance (automated extraction)
    is_from_ocr: bool = Field(
        default=False,
        description="Created by the OCR ingestion path rather than a user request"
    )
    ocr_confidence: Optional[float] = Field(
        default=None,
        ge=0.0,
        le=100.0,
        description="Extraction confidence reported by OCR, in percent"
    )
    ocr_job_id: Optional[str] = Field(
        default=None,
        max_length=100,
        description="OCR job that produced this expense"
    )


class ExpenseCreate(BaseModel):
    """Fields a caller supplies to create an expense."""
    model_config = ConfigDict(str_strip_whitespace=True, populate_by_name=True)

    description: str = Field(..., min_length=1, max_length=500)
    amount: Money
    category: CategorySlug = None
    spent_at: Timestamp = Field(..., alias="spentAt")


class ExpenseUpdate(BaseModel):
    """
    Partial update.

    Only fields that carry a value are applied; blank description and
    spentAt are ignored. Category is the exception: sending it explicitly
    as null clears it.
    """
    model_config = ConfigDict(str_strip_whitespace=True, populate_by_name=True)

    description: Annotated[Optional[Description], BeforeValidator(_blank_to_none)] = None
    amount: Optional[Money] = None
    category: CategorySlug = None
    spent_at: Annotated[Optional[Timestamp], BeforeValidator(_blank_to_none)] = Field(
        default=None, alias="spentAt"
    )

    def changes(self) -> dict[str, Any]:
        """Field values to write onto the stored expense."""
        updates: dict[str, Any] = {}
        if self.description is not None:
            updates["description"] = self.description
        if self.amount is not None:
            updates["amount"] = self.amount
        if "category" in self.model_fields_set:
            updates["category"] = self.category
        if self.spent_at is not None:
            updates["spent_at"] = self.spent_at
        return updates


class OcrProvenance(BaseModel):
    """Marks an expense as produced by automated extraction."""

    job_id: str = Field(..., min_length=1, max_length=100)
    confidence: float = Field(..., ge=0.0, le=100.0)


# =============================================================================
# QUERY MODELS
# =============================================================================

class ExpenseFilter(BaseModel):
    """
    Normalized predicate handed to the storage layer.

    owner_id is mandatory and always comes from the authenticated caller.
    Date bounds are inclusive. from > to simply matches nothing.
    """
    model_config = ConfigDict(frozen=True)

    owner_id: str = Field(..., min_length=1)
    spent_from: Optional[Timestamp] = None
    spent_to: Optional[Timestamp] = None
    category: Optional[str] = None

    def matches(self, expense: Expense) -> bool:
        """Evaluate the predicate in Python, for backends without a query language."""
        if expense.owner_id != self.owner_id:
            return False
        if self.category is not None and expense.category != self.category:
            return False
        if self.spent_from is not None and expense.spent_at < self.spent_from:
            return False
        if self.spent_to is not None and expense.spent_at > self.spent_to:
            return False
        return True


class ListingQuery(BaseModel):
    """Listing request: date range, category and page selection."""
    model_config = ConfigDict(str_strip_whitespace=True, populate_by_name=True)

    spent_from: Optional[Timestamp] = Field(default=None, alias="from")
    spent_to: Optional[Timestamp] = Field(default=None, alias="to")
    category: CategorySlug = None
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1, le=100)


class SummaryQuery(BaseModel):
    """Summary request: date range and optional time grouping."""
    model_config = ConfigDict(populate_by_name=True)

    spent_from: Optional[Timestamp] = Field(default=None, alias="from")
    spent_to: Optional[Timestamp] = Field(default=None, alias="to")
    group_by: Optional[GroupByPeriod] = Field(default=None, alias="groupBy")

    @field_validator("group_by", mode="before")
    @classmethod
    def ignore_unknown_grouping(cls, v: Any) -> Any:
        """An unrecognized grouping means no series, not a rejected request."""
        if isinstance(v, str):
            normalized = v.strip().lower()
            valid = {period.value for period in GroupByPeriod}
            return normalized if normalized in valid else None
        return v


class PageWindow(BaseModel):
    """Slice of the ordered result set to fetch."""
    model_config = ConfigDict(frozen=True)

    page: int = Field(..., ge=1)
    offset: int = Field(..., ge=0)
    limit: int = Field(..., ge=1)


class PageMeta(BaseModel):
    """Describes one page of a listing."""

    total: int = Field(..., ge=0)
    page: int = Field(..., ge=1)
    limit: int = Field(..., ge=1)
    total_pages: int = Field(..., ge=0)
    generated_at: datetime = Field(default_factory=utcnow)


# =============================================================================
# OUTPUT MODELS
# =============================================================================

class ExpenseView(BaseModel):
    """
    What callers get back for an expense.

    Built only through project_expense() so the outward shape stays
    explicit and independent of the storage model.
    """

    id: str
    owner_id: str
    description: str
    amount: Decimal
    category: Optional[str]
    spent_at: datetime
    created_at: datetime
    updated_at: datetime
    is_from_ocr: bool
    ocr_confidence: Optional[float]
    ocr_job_id: Optional[str]


def project_expense(expense: Expense) -> ExpenseView:
    """Project a stored expense onto its outward representation."""
    return ExpenseView(
        id=expense.id,
        owner_id=expense.owner_id,
        description=expense.description,
        amount=expense.amount.quantize(CENT),
        category=expense.category,
        spent_at=expense.spent_at,
        created_at=expense.created_at,
        updated_at=expense.updated_at,
        is_from_ocr=expense.is_from_ocr,
        ocr_confidence=expense.ocr_confidence,
        ocr_job_id=expense.ocr_job_id,
    )


class ExpensePage(BaseModel):
    """One page of a listing."""

    data: list[ExpenseView] = Field(default_factory=list)
    meta: PageMeta


class DeletionResult(BaseModel):
    """Acknowledgement of a deleted expense."""

    id: str
    message: str = "Expense deleted successfully"


class CategoryTotal(BaseModel):
    """Sum and count of one category bucket."""

    category: str
    total: Decimal
    count: int = Field(..., ge=0)


class PeriodTotal(BaseModel):
    """Sum and count of one time bucket."""

    period: str
    total: Decimal
    count: int = Field(..., ge=0)


class SummaryResult(BaseModel):
    """
    Aggregate view of a set of expenses.

    INVARIANT: total == sum of by_category totals, since every expense
    lands in exactly one category bucket (uncategorized included).
    by_time_period is None unless a grouping was requested.
    """

    total: Decimal = Field(default=Decimal("0.00"))
    count: int = Field(default=0, ge=0)
    by_category: list[CategoryTotal] = Field(default_factory=list)
    by_time_period: Optional[list[PeriodTotal]] = None


# =============================================================================
# INGESTION MODELS
# =============================================================================

class OcrExpenseData(BaseModel):
    """
    Expense fields as reported by the OCR pipeline.

    This is PROPOSED data. It is validated again through ExpenseCreate
    before anything is stored.
    """
    model_config = ConfigDict(populate_by_name=True)

    amount: Optional[Decimal] = None
    description: Optional[str] = None
    spent_at: Timestamp = Field(..., alias="spentAt")
    category: Optional[str] = None
    confidence: float = Field(default=0.0, ge=0.0, le=100.0)


class OcrCompletedEvent(BaseModel):
    """Inbound 'ocr.completed' message."""
    model_config = ConfigDict(populate_by_name=True)

    job_id: str = Field(..., min_length=1, alias="jobId")
    user_id: str = Field(..., min_length=1, alias="userId")
    expense_data: OcrExpenseData = Field(..., alias="expenseData")
    file_url: Optional[str] = Field(default=None, alias="fileUrl")

    @field_validator("job_id", "user_id", mode="before")
    @classmethod
    def coerce_identifier(cls, v: Any) -> Any:
        """Accept numeric identifiers from producers that send them unquoted."""
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v
