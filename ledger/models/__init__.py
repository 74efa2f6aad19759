"""
Data Models Package

This package contains all Pydantic models used by the ledger engine.
All data flowing through the engine must conform to these schemas.
"""

from ledger.models.ledger import (
    Account,
    AccountDraft,
    Categories,
    CategoryTotal,
    DailyTotals,
    ImportValidationResult,
    LedgerBundle,
    MonthlySummary,
    Transaction,
    TransactionDraft,
    TransactionTemplate,
    TransactionType,
    ValidationIssue,
    amount_to_json,
    as_utc_datetime,
    new_id,
)
from ledger.models.audit import (
    AuditSeverity,
    LedgerEvent,
    LedgerEventBuilder,
    LedgerEventType,
)

__all__ = [
    # Ledger models
    "Account",
    "AccountDraft",
    "Categories",
    "CategoryTotal",
    "DailyTotals",
    "ImportValidationResult",
    "LedgerBundle",
    "MonthlySummary",
    "Transaction",
    "TransactionDraft",
    "TransactionTemplate",
    "TransactionType",
    "ValidationIssue",
    "amount_to_json",
    "as_utc_datetime",
    "new_id",
    # Audit models
    "AuditSeverity",
    "LedgerEvent",
    "LedgerEventBuilder",
    "LedgerEventType",
]
