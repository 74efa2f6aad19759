"""
Audit Models for the Personal Ledger

Every committed mutation of the ledger produces one LedgerEvent.
This provides:
1. Traceability of what changed and when
2. Debugging information when a cascade misbehaves
3. A record of destructive user choices (delete both vs. delete one)

DESIGN DECISION: Events describe committed state changes only. A rejected
operation raises to the caller and leaves no event behind.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class LedgerEventType(str, Enum):
    """Types of ledger changes we audit."""
    # Accounts
    ACCOUNT_CREATED = "account_created"
    ACCOUNT_UPDATED = "account_updated"
    ACCOUNT_DELETED = "account_deleted"
    ACTIVE_ACCOUNT_CHANGED = "active_account_changed"

    # Transactions
    TRANSACTION_ADDED = "transaction_added"
    TRANSACTION_UPDATED = "transaction_updated"
    TRANSACTION_DELETED = "transaction_deleted"

    # Transfers
    TRANSFER_CREATED = "transfer_created"
    TRANSFER_DELETED = "transfer_deleted"
    TRANSFER_UNLINKED = "transfer_unlinked"

    # Categories
    CATEGORY_ADDED = "category_added"
    CATEGORY_RENAMED = "category_renamed"
    CATEGORY_DELETED = "category_deleted"

    # Templates
    TEMPLATE_ADDED = "template_added"
    TEMPLATE_DELETED = "template_deleted"

    # Whole-ledger operations
    LEDGER_LOADED = "ledger_loaded"
    LEDGER_IMPORTED = "ledger_imported"
    LEDGER_EXPORTED = "ledger_exported"
    LEDGER_RESET = "ledger_reset"
    IMPORT_REJECTED = "import_rejected"

    # Persistence
    PERSISTENCE_FAILED = "persistence_failed"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class LedgerEvent(BaseModel):
    """A single audit event."""

    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    event_type: LedgerEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # What entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g. 'account', 'transaction', 'category')"
    )
    entity_id: Optional[str] = None

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(default_factory=dict)

    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }


class LedgerEventBuilder:
    """
    Helper class to build ledger events with common patterns.

    Usage:
        event = LedgerEventBuilder.account_created(account_id, name)
        event = LedgerEventBuilder.transfer_deleted(ids, policy="both")
    """

    @staticmethod
    def account_created(account_id: str, name: str) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.ACCOUNT_CREATED,
            entity_type="account",
            entity_id=account_id,
            description=f"Account created: {name}",
            details={"name": name},
        )

    @staticmethod
    def account_updated(account_id: str, name: str) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.ACCOUNT_UPDATED,
            entity_type="account",
            entity_id=account_id,
            description=f"Account updated: {name}",
            details={"name": name},
        )

    @staticmethod
    def account_deleted(
        account_id: str,
        removed_transactions: int,
        unlinked_transactions: int,
    ) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.ACCOUNT_DELETED,
            severity=AuditSeverity.WARNING,
            entity_type="account",
            entity_id=account_id,
            description=(
                f"Account deleted with {removed_transactions} transactions"
            ),
            details={
                "removed_transactions": removed_transactions,
                "unlinked_transactions": unlinked_transactions,
            },
        )

    @staticmethod
    def active_account_changed(
        account_id: Optional[str],
        previous_id: Optional[str],
    ) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.ACTIVE_ACCOUNT_CHANGED,
            entity_type="account",
            entity_id=account_id,
            description="Active account changed",
            details={"previous_id": previous_id},
        )

    @staticmethod
    def transaction_added(
        transaction_id: str,
        account_id: str,
        type_: str,
        amount: str,
    ) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.TRANSACTION_ADDED,
            entity_type="transaction",
            entity_id=transaction_id,
            description=f"{type_.capitalize()} of {amount} added",
            details={
                "account_id": account_id,
                "type": type_,
                "amount": amount,
            },
        )

    @staticmethod
    def transaction_updated(transaction_id: str) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.TRANSACTION_UPDATED,
            entity_type="transaction",
            entity_id=transaction_id,
            description="Transaction updated",
        )

    @staticmethod
    def transactions_deleted(
        transaction_ids: list[str],
        unlinked_ids: list[str],
    ) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.TRANSACTION_DELETED,
            entity_type="transaction",
            entity_id=transaction_ids[0] if len(transaction_ids) == 1 else None,
            description=f"{len(transaction_ids)} transaction(s) deleted",
            details={
                "transaction_ids": transaction_ids,
                "unlinked_ids": unlinked_ids,
            },
        )

    @staticmethod
    def transfer_created(
        expense_id: str,
        income_id: str,
        amount: str,
    ) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.TRANSFER_CREATED,
            entity_type="transfer",
            entity_id=expense_id,
            description=f"Transfer of {amount} created",
            details={
                "expense_id": expense_id,
                "income_id": income_id,
                "amount": amount,
            },
        )

    @staticmethod
    def transfer_deleted(transaction_ids: list[str], policy: str) -> LedgerEvent:
        event_type = (
            LedgerEventType.TRANSFER_DELETED
            if policy == "both"
            else LedgerEventType.TRANSFER_UNLINKED
        )
        return LedgerEvent(
            event_type=event_type,
            severity=AuditSeverity.WARNING,
            entity_type="transfer",
            entity_id=transaction_ids[0],
            description=f"Transfer deleted (policy: {policy})",
            details={
                "transaction_ids": transaction_ids,
                "policy": policy,
            },
        )

    @staticmethod
    def category_added(type_: str, name: str) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.CATEGORY_ADDED,
            entity_type="category",
            entity_id=name,
            description=f"Category added to {type_}: {name}",
            details={"type": type_},
        )

    @staticmethod
    def category_renamed(
        type_: str,
        old_name: str,
        new_name: str,
        rewritten: int,
    ) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.CATEGORY_RENAMED,
            entity_type="category",
            entity_id=new_name,
            description=f"Category renamed: {old_name} -> {new_name}",
            details={
                "type": type_,
                "old_name": old_name,
                "rewritten_transactions": rewritten,
            },
        )

    @staticmethod
    def category_deleted(
        type_: str,
        name: str,
        fallback: str,
        reassigned: int,
    ) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.CATEGORY_DELETED,
            severity=AuditSeverity.WARNING,
            entity_type="category",
            entity_id=name,
            description=f"Category deleted from {type_}: {name}",
            details={
                "type": type_,
                "fallback": fallback,
                "reassigned_transactions": reassigned,
            },
        )

    @staticmethod
    def template_added(template_id: str, description: str) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.TEMPLATE_ADDED,
            entity_type="template",
            entity_id=template_id,
            description=f"Template added: {description}",
        )

    @staticmethod
    def template_deleted(template_id: str) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.TEMPLATE_DELETED,
            entity_type="template",
            entity_id=template_id,
            description="Template deleted",
        )

    @staticmethod
    def ledger_loaded(counts: dict[str, int]) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.LEDGER_LOADED,
            entity_type="ledger",
            description="Ledger loaded from storage",
            details=counts,
        )

    @staticmethod
    def ledger_imported(counts: dict[str, int], warnings: list[str]) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.LEDGER_IMPORTED,
            severity=AuditSeverity.WARNING if warnings else AuditSeverity.INFO,
            entity_type="ledger",
            description="Ledger replaced from import bundle",
            details={**counts, "warnings": warnings},
        )

    @staticmethod
    def ledger_exported(counts: dict[str, int]) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.LEDGER_EXPORTED,
            entity_type="ledger",
            description="Ledger exported",
            details=counts,
        )

    @staticmethod
    def ledger_reset() -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.LEDGER_RESET,
            severity=AuditSeverity.WARNING,
            entity_type="ledger",
            description="Ledger reset to an empty state",
        )

    @staticmethod
    def import_rejected(issues: list[dict]) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.IMPORT_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="ledger",
            description=f"Import rejected with {len(issues)} issues",
            details={"issues": issues},
        )

    @staticmethod
    def persistence_failed(keys: list[str], error_message: str) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.PERSISTENCE_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="ledger",
            description="Writing ledger collections failed",
            error_message=error_message,
            details={"keys": keys},
        )
