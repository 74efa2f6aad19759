"""Ledger engine: the store and the rule layers built on it."""

from ledger.engine.accounts import AccountManager
from ledger.engine.categories import CategoryManager
from ledger.engine.errors import (
    DuplicateCategoryError,
    EmptyCategoryNameError,
    InvalidAmountError,
    InvalidReferenceError,
    LastAccountError,
    LedgerError,
    LinkedTransferError,
    MalformedImportError,
    ProtectedCategoryError,
    SameAccountError,
    TransferShapeError,
)
from ledger.engine.store import LedgerStore
from ledger.engine.transfers import DeletePolicy, TransferCoordinator

__all__ = [
    # Store and managers
    "AccountManager",
    "CategoryManager",
    "DeletePolicy",
    "LedgerStore",
    "TransferCoordinator",
    # Errors
    "DuplicateCategoryError",
    "EmptyCategoryNameError",
    "InvalidAmountError",
    "InvalidReferenceError",
    "LastAccountError",
    "LedgerError",
    "LinkedTransferError",
    "MalformedImportError",
    "ProtectedCategoryError",
    "SameAccountError",
    "TransferShapeError",
]
