"""
Ledger Service

This module ties the engine components together around one store:
- TransferCoordinator (transfer pairs)
- CategoryManager (category namespaces and cascades)
- AccountManager (accounts and the active selection)
- MonthlyAnalytics (read-only monthly views)
- LedgerBackup (export and validated import)

DESIGN DECISION: The service is an explicit object constructed once and
passed by reference. There is no module-level ledger; two services over two
key-value stores are fully independent.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional, Union

from ledger.analytics import MonthlyAnalytics
from ledger.audit import AuditLogger
from ledger.backup import LedgerBackup
from ledger.config import Settings, get_settings
from ledger.engine import (
    AccountManager,
    CategoryManager,
    InvalidReferenceError,
    LedgerStore,
    TransferCoordinator,
)
from ledger.models.ledger import (
    Transaction,
    TransactionDraft,
    TransactionType,
)
from ledger.services.storage import KeyValueStore, create_key_value_store


class LedgerService:
    """
    Facade over the ledger engine.

    The component properties expose the full API; the methods here cover
    the everyday flows of a register view.
    """

    def __init__(
        self,
        store: LedgerStore,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._audit_logger = audit_logger
        self._transfers = TransferCoordinator(store, audit_logger)
        self._categories = CategoryManager(store, audit_logger)
        self._accounts = AccountManager(store)
        self._analytics = MonthlyAnalytics(store)
        self._backup = LedgerBackup(store, audit_logger=audit_logger)

    @property
    def store(self) -> LedgerStore:
        return self._store

    @property
    def transfers(self) -> TransferCoordinator:
        return self._transfers

    @property
    def categories(self) -> CategoryManager:
        return self._categories

    @property
    def accounts(self) -> AccountManager:
        return self._accounts

    @property
    def analytics(self) -> MonthlyAnalytics:
        return self._analytics

    @property
    def backup(self) -> LedgerBackup:
        return self._backup

    @property
    def audit_logger(self) -> Optional[AuditLogger]:
        return self._audit_logger

    @property
    def needs_initial_setup(self) -> bool:
        """True until the first account exists."""
        return not self._store.accounts

    def record(
        self,
        account_id: str,
        type_: TransactionType,
        amount: Union[Decimal, int, float, str],
        category: str,
        created_at: Union[date, datetime],
        description: str = "",
    ) -> Transaction:
        """Record an ordinary income or expense."""
        return self._store.add_transaction(TransactionDraft(
            account_id=account_id,
            type=type_,
            description=description,
            amount=Decimal(str(amount)),
            category=category,
            created_at=created_at,
        ))

    def record_from_template(
        self,
        template_id: str,
        account_id: str,
        created_at: Union[date, datetime],
    ) -> Transaction:
        """Record a transaction prefilled from a saved template."""
        template = next(
            (t for t in self._store.templates if t.id == template_id),
            None,
        )
        if template is None:
            raise InvalidReferenceError("template", template_id)
        return self.record(
            account_id=account_id,
            type_=template.type,
            amount=template.amount,
            category=template.category,
            created_at=created_at,
            description=template.description,
        )


def create_ledger_service(
    settings: Optional[Settings] = None,
    storage: Optional[KeyValueStore] = None,
    load: bool = True,
) -> LedgerService:
    """
    Factory function to create a ready-to-use ledger service.

    Args:
        settings: Root settings; defaults to the cached environment settings.
        storage: Key-value store to persist through. Built from the storage
                 settings when omitted.
        load: Whether to load the persisted ledger immediately.
    """
    settings = settings or get_settings()
    if storage is None:
        storage = create_key_value_store(settings.storage)
    audit_logger = AuditLogger()

    store = LedgerStore(storage, settings=settings.ledger, audit_logger=audit_logger)
    if load:
        store.load()
    return LedgerService(store, audit_logger)
