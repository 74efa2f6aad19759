"""
Ledger Error Taxonomy

Every error here is a local, recoverable condition raised to the caller,
which is expected to turn it into a user-visible message. A rejected
operation never leaves a partial change behind.
"""

from typing import Optional


class LedgerError(Exception):
    """Base exception for ledger rule violations."""
    pass


class InvalidReferenceError(LedgerError):
    """An id or name does not resolve to a live record."""

    def __init__(self, kind: str, reference: str, message: Optional[str] = None):
        self.kind = kind
        self.reference = reference
        super().__init__(message or f"Unknown {kind}: {reference}")


class InvalidAmountError(LedgerError):
    """Amounts must be strictly positive."""
    pass


class SameAccountError(LedgerError):
    """A transfer needs two different accounts."""
    pass


class DuplicateCategoryError(LedgerError):
    """A category with this name (ignoring case) already exists."""

    def __init__(self, type_: str, name: str):
        self.type = type_
        self.name = name
        super().__init__(f"Category '{name}' already exists in {type_}")


class ProtectedCategoryError(LedgerError):
    """The fallback and transfer categories are reserved."""

    def __init__(self, name: str, message: Optional[str] = None):
        self.name = name
        super().__init__(message or f"Category '{name}' is reserved")


class EmptyCategoryNameError(LedgerError):
    """Category names cannot be blank."""
    pass


class LastAccountError(LedgerError):
    """The last remaining account cannot be deleted."""
    pass


class TransferShapeError(LedgerError):
    """A transfer pair must be one expense and one income with the same timestamp."""
    pass


class LinkedTransferError(LedgerError):
    """Transfer halves are edited by deleting and recreating the pair."""
    pass


class MalformedImportError(LedgerError):
    """An import document failed validation."""

    def __init__(self, issues: list):
        self.issues = issues
        summary = "; ".join(
            f"{issue.field}: {issue.message}" for issue in issues[:5]
        )
        more = f" (+{len(issues) - 5} more)" if len(issues) > 5 else ""
        super().__init__(f"Malformed import: {summary}{more}")
