"""
Category Lifecycle Manager

Categories live in two independent namespaces (income and expense).
Names are unique case-insensitively and each namespace is kept sorted.

CRITICAL RULES:
- The fallback category cannot be renamed or deleted; it absorbs the
  transactions of deleted categories
- The transfer category is reserved for transfer pairs
- Renames and deletes cascade to the transactions of the same type in
  the same commit as the namespace change
"""

from typing import Optional

from ledger.audit import AuditLogger
from ledger.engine.errors import (
    DuplicateCategoryError,
    EmptyCategoryNameError,
    InvalidReferenceError,
    ProtectedCategoryError,
)
from ledger.engine.store import LedgerStore
from ledger.models.audit import LedgerEvent, LedgerEventBuilder
from ledger.models.ledger import TransactionType


class CategoryManager:
    """Applies the category rules on top of the store."""

    def __init__(self, store: LedgerStore, audit_logger: Optional[AuditLogger] = None):
        self._store = store
        self._audit = audit_logger

    @property
    def fallback(self) -> str:
        return self._store.settings.fallback_category

    def list_categories(self, type_: TransactionType) -> list[str]:
        return list(self._store.categories.names(type_))

    def add_category(self, type_: TransactionType, name: str) -> str:
        """
        Add a category to one namespace.

        Returns the stored (trimmed) name.
        """
        name = self._clean(name)
        self._check_not_reserved(name)

        categories = self._store.categories
        if categories.find(type_, name) is not None:
            raise DuplicateCategoryError(type_.value, name)

        self._store.apply_category_change(type_, [*categories.names(type_), name], {})
        self._log(LedgerEventBuilder.category_added(type_.value, name))
        return name

    def rename_category(self, type_: TransactionType, old: str, new: str) -> str:
        """
        Rename a category and rewrite every transaction of that type using it.

        Renaming to a case-insensitively equal name changes nothing.
        Returns the name the category has afterwards.
        """
        categories = self._store.categories
        current = categories.find(type_, old)
        if current is None:
            raise InvalidReferenceError("category", old)
        if self._is_fallback(current):
            raise ProtectedCategoryError(
                current, f"The fallback category '{current}' cannot be renamed"
            )

        new = self._clean(new)
        if new.lower() == current.lower():
            return current
        self._check_not_reserved(new)
        if categories.find(type_, new) is not None:
            raise DuplicateCategoryError(type_.value, new)

        names = [new if n == current else n for n in categories.names(type_)]
        rewritten = self._store.apply_category_change(type_, names, {current: new})

        self._log(LedgerEventBuilder.category_renamed(type_.value, current, new, rewritten))
        return new

    def delete_category(self, type_: TransactionType, name: str) -> int:
        """
        Delete a category, moving its transactions to the fallback.

        Returns how many transactions were reassigned.
        """
        if self._is_fallback(name):
            raise ProtectedCategoryError(
                name, f"The fallback category '{self.fallback}' cannot be deleted"
            )
        categories = self._store.categories
        current = categories.find(type_, name)
        if current is None:
            raise InvalidReferenceError("category", name)

        names = [n for n in categories.names(type_) if n != current]
        # Reassign to the fallback as the namespace spells it
        target = categories.find(type_, self.fallback)
        if target is None:
            target = self.fallback
            names.append(target)

        reassigned = self._store.apply_category_change(
            type_, names, {current: target}
        )
        self._log(LedgerEventBuilder.category_deleted(
            type_.value, current, target, reassigned
        ))
        return reassigned

    def _clean(self, name: str) -> str:
        name = (name or "").strip()
        if not name:
            raise EmptyCategoryNameError("Category name cannot be empty")
        return name

    def _is_fallback(self, name: str) -> bool:
        return name.strip().lower() == self.fallback.lower()

    def _check_not_reserved(self, name: str) -> None:
        reserved = self._store.settings.transfer_category
        if name.lower() == reserved.lower():
            raise ProtectedCategoryError(
                name, f"'{reserved}' is reserved for transfers"
            )

    def _log(self, event: LedgerEvent) -> None:
        if self._audit:
            self._audit.log(event)
