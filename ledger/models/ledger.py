"""
Core Data Models for the Personal Ledger

These models define the strict schemas for all data flowing through the engine.
They are designed to:
1. Enforce type safety at runtime
2. Provide clear validation error messages
3. Serialize to the camelCase JSON layout the dashboard persists

DESIGN DECISION: Stored records are frozen. Only the LedgerStore replaces
them (via model_copy), so a caller holding a reference can never mutate
ledger state behind the store's back.
"""

from datetime import date, datetime, time, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional, Union
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_serializer,
    field_validator,
)
from pydantic.alias_generators import to_camel


def new_id() -> str:
    """Mint a collision-free record id."""
    return str(uuid4())


def as_utc_datetime(value: Union[date, datetime]) -> datetime:
    """
    Normalize a timestamp to an aware UTC datetime.

    A bare date is read as midnight UTC, a naive datetime as UTC.
    """
    if not isinstance(value, datetime):
        return datetime.combine(value, time.min, tzinfo=timezone.utc)
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def amount_to_json(amount: Decimal) -> Union[float, str]:
    """
    JSON form of an amount.

    A JSON number whenever a float holds the amount exactly, which covers
    every everyday amount. Otherwise the decimal string, so nothing is
    rounded away on the write-through and reload round trip.
    """
    as_float = float(amount)
    if Decimal(repr(as_float)) == amount:
        return as_float
    return str(amount)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionType(str, Enum):
    """
    Direction of a transaction.

    The amount is always positive; the type carries the sign. The same
    values name the two independent category namespaces.
    """
    INCOME = "income"
    EXPENSE = "expense"


# =============================================================================
# BASE CONFIG
# =============================================================================

class WireModel(BaseModel):
    """Base for records persisted with camelCase keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


class RecordModel(WireModel):
    """Base for frozen records owned by the store."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        frozen=True,
    )


# =============================================================================
# LEDGER RECORDS
# =============================================================================

class Account(RecordModel):
    """
    A money container (bank account, wallet, savings pot).

    color and icon are opaque UI tokens (e.g. 'bg-violet-500', 'wallet').
    """

    id: str = Field(
        default_factory=new_id,
        min_length=1,
        description="Unique account ID"
    )
    name: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Display name"
    )
    color: str = Field(
        default="",
        description="UI color token"
    )
    icon: str = Field(
        default="",
        description="UI icon token"
    )


class Transaction(RecordModel):
    """
    A single income or expense record.

    CRITICAL: transfer_id, when present, names the sibling of a transfer
    pair. The store guarantees the sibling exists and points back.
    """

    id: str = Field(
        default_factory=new_id,
        min_length=1,
        description="Unique transaction ID"
    )
    account_id: str = Field(
        ...,
        min_length=1,
        description="Owning account"
    )
    type: TransactionType
    description: str = Field(
        default="",
        description="Free text shown in the register"
    )
    amount: Decimal = Field(
        ...,
        gt=0,
        description="Positive amount; type carries the sign"
    )
    category: str = Field(
        ...,
        description="Category name within the namespace of `type`"
    )
    created_at: datetime = Field(
        ...,
        description="Booking timestamp (UTC)"
    )
    transfer_id: Optional[str] = Field(
        default=None,
        description="ID of the other half of a transfer pair"
    )

    @field_validator('created_at', mode='before')
    @classmethod
    def normalize_created_at(cls, v):
        """Accept dates and naive datetimes, store aware UTC."""
        if isinstance(v, (date, datetime)):
            return as_utc_datetime(v)
        return v

    @field_validator('created_at')
    @classmethod
    def ensure_utc(cls, v: datetime) -> datetime:
        return as_utc_datetime(v)

    @field_serializer('amount', when_used='json')
    def serialize_amount(self, amount: Decimal) -> Union[float, str]:
        return amount_to_json(amount)

    @property
    def booked_on(self) -> date:
        """Calendar date the record is booked on."""
        return self.created_at.date()

    @property
    def is_transfer(self) -> bool:
        return self.transfer_id is not None

    @property
    def signed_amount(self) -> Decimal:
        """Amount with the sign implied by the type."""
        if self.type == TransactionType.INCOME:
            return self.amount
        return -self.amount


class TransactionTemplate(RecordModel):
    """A saved preset for quickly entering a recurring record."""

    id: str = Field(
        default_factory=new_id,
        min_length=1,
    )
    type: TransactionType
    description: str = ""
    amount: Decimal = Field(..., gt=0)
    category: str = ""

    @field_serializer('amount', when_used='json')
    def serialize_amount(self, amount: Decimal) -> Union[float, str]:
        return amount_to_json(amount)


class Categories(RecordModel):
    """
    The two category namespaces.

    Each namespace is kept sorted; names are unique case-insensitively.
    """

    income: tuple[str, ...] = ()
    expense: tuple[str, ...] = ()

    def names(self, type_: TransactionType) -> tuple[str, ...]:
        """Get the namespace for a transaction type."""
        return self.income if type_ == TransactionType.INCOME else self.expense

    def find(self, type_: TransactionType, name: str) -> Optional[str]:
        """Case-insensitive lookup; returns the stored spelling."""
        wanted = name.strip().lower()
        for existing in self.names(type_):
            if existing.lower() == wanted:
                return existing
        return None

    def with_names(
        self,
        type_: TransactionType,
        names: list[str],
    ) -> "Categories":
        """Return a copy with one namespace replaced (sorted)."""
        return self.model_copy(update={type_.value: tuple(sorted(names))})


# =============================================================================
# DRAFTS - Input for records that do not exist yet
# =============================================================================

class AccountDraft(WireModel):
    """Fields for a new account; the store mints the id."""

    name: str = Field(..., min_length=1, max_length=200)
    color: str = ""
    icon: str = ""


class TransactionDraft(WireModel):
    """
    Fields for a new transaction; the store mints the id.

    The amount is not range-checked here so the store can report a
    non-positive amount as InvalidAmountError.
    """

    account_id: str
    type: TransactionType
    description: str = ""
    amount: Decimal
    category: str
    created_at: datetime

    @field_validator('created_at', mode='before')
    @classmethod
    def normalize_created_at(cls, v):
        if isinstance(v, (date, datetime)):
            return as_utc_datetime(v)
        return v

    @field_validator('created_at')
    @classmethod
    def ensure_utc(cls, v: datetime) -> datetime:
        return as_utc_datetime(v)


# =============================================================================
# ANALYTICS MODELS
# =============================================================================

class CategoryTotal(BaseModel):
    """One slice of the per-category expense breakdown."""

    category: str
    total: Decimal


class DailyTotals(BaseModel):
    """Cumulative income and expense through a day, inclusive."""

    day: int = Field(..., ge=1, le=31)
    income: Decimal
    expense: Decimal


class MonthlySummary(BaseModel):
    """
    Headline figures of one account for one month.

    income applies the salary attribution rule; transactions are the
    records booked in the calendar month, newest first.
    """

    account_id: str
    year: int
    month: int = Field(..., ge=1, le=12)
    income: Decimal
    expense: Decimal
    transactions: list[Transaction] = Field(default_factory=list)

    @property
    def net(self) -> Decimal:
        return self.income - self.expense


# =============================================================================
# BUNDLE - Export/import document
# =============================================================================

class LedgerBundle(WireModel):
    """
    The whole ledger as one document.

    Import replaces every collection wholesale with the bundle content.
    """

    accounts: list[Account]
    transactions: list[Transaction]
    categories: Categories
    templates: list[TransactionTemplate] = Field(default_factory=list)
    active_account_id: Optional[str] = None


# =============================================================================
# IMPORT VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single problem found in an import document."""

    field: str = Field(
        ...,
        description="Location of the issue (e.g. 'transactions[3].accountId')"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g. 'schema', 'dangling_account', 'unresolved_transfer')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning)$",
        description="Errors reject the import; warnings are repaired"
    )


class ImportValidationResult(BaseModel):
    """
    Result of the two-stage import validation.

    Stage 1: Schema validation (JSON, required fields, types)
    Stage 2: Referential validation (accounts and transfer links resolve)
    """

    schema_valid: bool
    referential_valid: bool
    issues: list[ValidationIssue] = Field(default_factory=list)
    bundle: Optional[LedgerBundle] = Field(
        default=None,
        description="The parsed bundle with warnings repaired (None if stage 1 failed)"
    )

    @property
    def is_valid(self) -> bool:
        return self.schema_valid and self.referential_valid

    @property
    def errors(self) -> list[ValidationIssue]:
        return [i for i in self.issues if i.severity == "error"]

    @property
    def warnings(self) -> list[str]:
        return [i.message for i in self.issues if i.severity == "warning"]
