"""
Ledger Store

DESIGN DECISION: The store is the single owner and the only mutator of the
ledger collections (accounts, transactions, categories, templates and the
active-account selection). Managers are thin rule layers on top of it.

Every mutation follows the same shape:
1. Validate against the current state (raise before touching anything)
2. Build the new collections
3. Swap them in (the in-memory commit)
4. Write each affected collection, whole, to the key-value store

Step 3 happens in one assignment per collection, so a caller can never
observe half of a transfer pair or half of a category cascade.

INVARIANTS kept on every commit:
- Every transaction references a live account
- transfer_id links are mutual; removing one half clears the other's link
- The fallback category exists in the expense namespace
"""

from decimal import Decimal
from typing import Iterable, Optional

from pydantic import TypeAdapter, ValidationError

from ledger.audit import AuditLogger
from ledger.config import LedgerSettings, get_settings
from ledger.engine.errors import (
    InvalidAmountError,
    InvalidReferenceError,
    LastAccountError,
    LinkedTransferError,
    SameAccountError,
    TransferShapeError,
)
from ledger.models.audit import LedgerEvent, LedgerEventBuilder
from ledger.models.ledger import (
    Account,
    AccountDraft,
    Categories,
    LedgerBundle,
    Transaction,
    TransactionDraft,
    TransactionTemplate,
    TransactionType,
    new_id,
)
from ledger.services.storage import (
    KeyValueStore,
    StorageError,
    StorageReadError,
)


# Keys of the persisted collections (the storage may scope them further)
ACCOUNTS_KEY = "accounts"
TRANSACTIONS_KEY = "transactions"
CATEGORIES_KEY = "categories"
TEMPLATES_KEY = "templates"
ACTIVE_ACCOUNT_KEY = "activeAccountId"

_ACCOUNTS = TypeAdapter(list[Account])
_TRANSACTIONS = TypeAdapter(list[Transaction])
_CATEGORIES = TypeAdapter(Categories)
_TEMPLATES = TypeAdapter(list[TransactionTemplate])
_ACTIVE_ACCOUNT = TypeAdapter(Optional[str])

_UNSET = object()


class LedgerStore:
    """
    In-memory ledger with write-through persistence.

    Reads are synchronous and always reflect the latest commit. Returned
    records are frozen; returned lists are copies.
    """

    def __init__(
        self,
        storage: KeyValueStore,
        settings: Optional[LedgerSettings] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._storage = storage
        self._settings = settings or get_settings().ledger
        self._audit = audit_logger

        self._accounts: list[Account] = []
        self._transactions: list[Transaction] = []
        self._categories = self._with_fallback(Categories())
        self._templates: list[TransactionTemplate] = []
        self._active_account_id: Optional[str] = None

    # =========================================================================
    # READ ACCESSORS
    # =========================================================================

    @property
    def settings(self) -> LedgerSettings:
        return self._settings

    @property
    def accounts(self) -> list[Account]:
        return list(self._accounts)

    @property
    def transactions(self) -> list[Transaction]:
        return list(self._transactions)

    @property
    def categories(self) -> Categories:
        return self._categories

    @property
    def templates(self) -> list[TransactionTemplate]:
        return list(self._templates)

    @property
    def active_account_id(self) -> Optional[str]:
        return self._active_account_id

    def get_account(self, account_id: str) -> Optional[Account]:
        for account in self._accounts:
            if account.id == account_id:
                return account
        return None

    def get_transaction(self, transaction_id: str) -> Optional[Transaction]:
        for transaction in self._transactions:
            if transaction.id == transaction_id:
                return transaction
        return None

    def require_account(self, account_id: str) -> Account:
        account = self.get_account(account_id)
        if account is None:
            raise InvalidReferenceError("account", account_id)
        return account

    def require_transaction(self, transaction_id: str) -> Transaction:
        transaction = self.get_transaction(transaction_id)
        if transaction is None:
            raise InvalidReferenceError("transaction", transaction_id)
        return transaction

    def transactions_for(self, account_id: str) -> list[Transaction]:
        """All transactions of one account, in insertion order."""
        return [t for t in self._transactions if t.account_id == account_id]

    def snapshot(self) -> LedgerBundle:
        """The whole ledger as one bundle."""
        return LedgerBundle(
            accounts=self.accounts,
            transactions=self.transactions,
            categories=self._categories,
            templates=self.templates,
            active_account_id=self._active_account_id,
        )

    # =========================================================================
    # LOADING
    # =========================================================================

    def load(self) -> None:
        """
        Replace the in-memory state with what the key-value store holds.

        Missing keys yield empty collections. A value that cannot be
        decoded raises StorageReadError.
        """
        accounts = self._read(ACCOUNTS_KEY, _ACCOUNTS, [])
        transactions = self._read(TRANSACTIONS_KEY, _TRANSACTIONS, [])
        categories = self._read(CATEGORIES_KEY, _CATEGORIES, Categories())
        templates = self._read(TEMPLATES_KEY, _TEMPLATES, [])
        active_id = self._read(ACTIVE_ACCOUNT_KEY, _ACTIVE_ACCOUNT, None)

        self._accounts = accounts
        self._transactions = transactions
        self._categories = self._with_fallback(categories)
        self._templates = templates
        self._active_account_id = self._resolve_active(active_id, accounts)

        self._log(LedgerEventBuilder.ledger_loaded(self._counts()))

    def _read(self, key: str, adapter: TypeAdapter, default):
        raw = self._storage.get(key)
        if raw is None:
            return default
        try:
            return adapter.validate_json(raw)
        except ValidationError as e:
            raise StorageReadError(f"Stored value under '{key}' is invalid: {e}")

    # =========================================================================
    # TRANSACTIONS
    # =========================================================================

    def add_transaction(
        self,
        draft: TransactionDraft,
        peer: Optional[TransactionDraft] = None,
    ) -> Transaction:
        """
        Insert a transaction, or a linked transfer pair when peer is given.

        Both halves of a pair are committed together. Returns the record
        built from `draft`; its transfer_id names the peer.
        """
        self._check_draft(draft)
        record = Transaction(id=new_id(), **draft.model_dump())

        if peer is None:
            self._commit(transactions=[*self._transactions, record])
            self._log_added(record)
            return record

        self._check_draft(peer)
        self._check_transfer_shape(draft, peer)

        peer_record = Transaction(
            id=new_id(),
            transfer_id=record.id,
            **peer.model_dump(),
        )
        record = record.model_copy(update={"transfer_id": peer_record.id})

        self._commit(transactions=[*self._transactions, record, peer_record])
        self._log_added(record)
        self._log_added(peer_record)
        return record

    def update_transaction(self, updated: Transaction) -> Transaction:
        """
        Replace a transaction by id.

        The id and the transfer linkage cannot change here. Linked transfer
        halves are rejected; delete and recreate the pair instead.

        The record is validated again, since model_copy(update=...) skips
        the field validators (created_at ends up aware UTC).
        """
        existing = self.require_transaction(updated.id)
        if existing.transfer_id is not None:
            raise LinkedTransferError(
                "Transfers cannot be edited; delete and recreate the transfer"
            )
        self.require_account(updated.account_id)
        self._check_amount(updated.amount)

        replacement = Transaction.model_validate({**dict(updated), "transfer_id": None})
        self._commit(transactions=[
            replacement if t.id == existing.id else t
            for t in self._transactions
        ])
        self._log(LedgerEventBuilder.transaction_updated(replacement.id))
        return replacement

    def delete_transaction(self, transaction_id: str) -> Transaction:
        """
        Remove exactly one transaction.

        If it was half of a transfer, the surviving sibling becomes an
        ordinary record (its transfer_id is cleared in the same commit).
        """
        return self.delete_transactions([transaction_id])[0]

    def delete_transactions(self, transaction_ids: Iterable[str]) -> list[Transaction]:
        """Remove several transactions in one commit."""
        ids = list(dict.fromkeys(transaction_ids))
        removed = [self.require_transaction(tid) for tid in ids]

        remaining, unlinked = self._without(set(ids), self._transactions)
        self._commit(transactions=remaining)
        self._log(LedgerEventBuilder.transactions_deleted(ids, unlinked))
        return removed

    # =========================================================================
    # ACCOUNTS
    # =========================================================================

    def add_account(self, draft: AccountDraft) -> Account:
        account = Account(id=new_id(), **draft.model_dump())
        self._commit(accounts=[*self._accounts, account])
        self._log(LedgerEventBuilder.account_created(account.id, account.name))
        return account

    def update_account(self, updated: Account) -> Account:
        self.require_account(updated.id)
        updated = Account.model_validate(dict(updated))
        self._commit(accounts=[
            updated if a.id == updated.id else a
            for a in self._accounts
        ])
        self._log(LedgerEventBuilder.account_updated(updated.id, updated.name))
        return updated

    def delete_account(self, account_id: str) -> list[Transaction]:
        """
        Remove an account together with all of its transactions.

        Transfer siblings held by other accounts survive, unlinked. When the
        deleted account was active, the first remaining account becomes
        active in the same commit. Returns the removed transactions.
        """
        if len(self._accounts) <= 1:
            raise LastAccountError("The last remaining account cannot be deleted")
        self.require_account(account_id)

        removed = self.transactions_for(account_id)
        remaining, unlinked = self._without(
            {t.id for t in removed},
            self._transactions,
        )
        accounts = [a for a in self._accounts if a.id != account_id]

        previous = self._active_account_id
        if previous == account_id:
            self._commit(
                accounts=accounts,
                transactions=remaining,
                active_account_id=accounts[0].id,
            )
        else:
            self._commit(accounts=accounts, transactions=remaining)

        self._log(LedgerEventBuilder.account_deleted(
            account_id, len(removed), len(unlinked)
        ))
        if self._active_account_id != previous:
            self._log(LedgerEventBuilder.active_account_changed(
                self._active_account_id, previous
            ))
        return removed

    def set_active_account(self, account_id: Optional[str]) -> None:
        """Select the active account (None only when no account exists)."""
        if account_id is None:
            if self._accounts:
                raise InvalidReferenceError(
                    "account", "None", "An active account must be selected"
                )
        else:
            self.require_account(account_id)

        previous = self._active_account_id
        if previous == account_id:
            return
        self._commit(active_account_id=account_id)
        self._log(LedgerEventBuilder.active_account_changed(account_id, previous))

    # =========================================================================
    # CATEGORIES
    # =========================================================================

    def apply_category_change(
        self,
        type_: TransactionType,
        names: list[str],
        reassign: dict[str, str],
    ) -> int:
        """
        Replace one category namespace and recategorize in one commit.

        Every transaction of `type_` whose category is a key of `reassign`
        is rewritten to the mapped name. Returns how many were rewritten.
        """
        rewritten = 0
        transactions = []
        for t in self._transactions:
            if t.type == type_ and t.category in reassign:
                t = t.model_copy(update={"category": reassign[t.category]})
                rewritten += 1
            transactions.append(t)

        categories = self._with_fallback(self._categories.with_names(type_, names))
        if rewritten:
            self._commit(categories=categories, transactions=transactions)
        else:
            self._commit(categories=categories)
        return rewritten

    # =========================================================================
    # TEMPLATES
    # =========================================================================

    def add_template(
        self,
        type_: TransactionType,
        description: str,
        amount: Decimal,
        category: str,
    ) -> TransactionTemplate:
        self._check_amount(amount)
        template = TransactionTemplate(
            id=new_id(),
            type=type_,
            description=description,
            amount=amount,
            category=category,
        )
        self._commit(templates=[template, *self._templates])
        self._log(LedgerEventBuilder.template_added(template.id, template.description))
        return template

    def delete_template(self, template_id: str) -> None:
        if not any(t.id == template_id for t in self._templates):
            raise InvalidReferenceError("template", template_id)
        self._commit(templates=[t for t in self._templates if t.id != template_id])
        self._log(LedgerEventBuilder.template_deleted(template_id))

    # =========================================================================
    # WHOLE-LEDGER OPERATIONS
    # =========================================================================

    def replace_all(self, bundle: LedgerBundle) -> None:
        """Replace every collection with a (validated) bundle."""
        self._commit(
            accounts=list(bundle.accounts),
            transactions=list(bundle.transactions),
            categories=self._with_fallback(bundle.categories),
            templates=list(bundle.templates),
            active_account_id=self._resolve_active(
                bundle.active_account_id, bundle.accounts
            ),
        )

    def reset(self) -> None:
        """Drop all ledger data; only the fallback category remains."""
        self._commit(
            accounts=[],
            transactions=[],
            categories=self._with_fallback(Categories()),
            templates=[],
            active_account_id=None,
        )
        self._log(LedgerEventBuilder.ledger_reset())

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _check_amount(self, amount: Decimal) -> None:
        if amount is None or amount <= 0:
            raise InvalidAmountError(f"Amount must be positive, got {amount}")

    def _check_draft(self, draft: TransactionDraft) -> None:
        self.require_account(draft.account_id)
        self._check_amount(draft.amount)

    def _check_transfer_shape(
        self,
        draft: TransactionDraft,
        peer: TransactionDraft,
    ) -> None:
        if draft.account_id == peer.account_id:
            raise SameAccountError("A transfer needs two different accounts")
        if {draft.type, peer.type} != {TransactionType.INCOME, TransactionType.EXPENSE}:
            raise TransferShapeError("A transfer pairs one expense with one income")
        if draft.created_at != peer.created_at:
            raise TransferShapeError("Both halves of a transfer share one timestamp")
        if draft.amount != peer.amount:
            raise TransferShapeError("Both halves of a transfer move the same amount")

    @staticmethod
    def _without(
        ids: set[str],
        transactions: list[Transaction],
    ) -> tuple[list[Transaction], list[str]]:
        """Drop `ids` and clear links pointing at them. Returns (kept, unlinked ids)."""
        kept = []
        unlinked = []
        for t in transactions:
            if t.id in ids:
                continue
            if t.transfer_id is not None and t.transfer_id in ids:
                t = t.model_copy(update={"transfer_id": None})
                unlinked.append(t.id)
            kept.append(t)
        return kept, unlinked

    def _with_fallback(self, categories: Categories) -> Categories:
        """Sorted namespaces with the fallback present in the expense one."""
        fallback = self._settings.fallback_category
        expense = list(categories.expense)
        if categories.find(TransactionType.EXPENSE, fallback) is None:
            expense.append(fallback)
        return (
            categories
            .with_names(TransactionType.INCOME, list(categories.income))
            .with_names(TransactionType.EXPENSE, expense)
        )

    @staticmethod
    def _resolve_active(
        active_id: Optional[str],
        accounts: list[Account],
    ) -> Optional[str]:
        if active_id and any(a.id == active_id for a in accounts):
            return active_id
        return accounts[0].id if accounts else None

    def _commit(
        self,
        accounts: Optional[list[Account]] = None,
        transactions: Optional[list[Transaction]] = None,
        categories: Optional[Categories] = None,
        templates: Optional[list[TransactionTemplate]] = None,
        active_account_id=_UNSET,
    ) -> None:
        """Swap in new collections, then write each of them through."""
        writes: list[tuple[str, bytes]] = []

        if accounts is not None:
            self._accounts = accounts
            writes.append((ACCOUNTS_KEY, _ACCOUNTS.dump_json(accounts, by_alias=True)))
        if transactions is not None:
            self._transactions = transactions
            writes.append((
                TRANSACTIONS_KEY,
                _TRANSACTIONS.dump_json(transactions, by_alias=True, exclude_none=True),
            ))
        if categories is not None:
            self._categories = categories
            writes.append((CATEGORIES_KEY, _CATEGORIES.dump_json(categories, by_alias=True)))
        if templates is not None:
            self._templates = templates
            writes.append((TEMPLATES_KEY, _TEMPLATES.dump_json(templates, by_alias=True)))
        if active_account_id is not _UNSET:
            self._active_account_id = active_account_id
            writes.append((ACTIVE_ACCOUNT_KEY, _ACTIVE_ACCOUNT.dump_json(active_account_id)))

        self._persist(writes)

    def _persist(self, writes: list[tuple[str, bytes]]) -> None:
        try:
            for key, value in writes:
                self._storage.set(key, value)
        except StorageError as e:
            self._log(LedgerEventBuilder.persistence_failed(
                [key for key, _ in writes], str(e)
            ))
            raise

    def _counts(self) -> dict[str, int]:
        return {
            "accounts": len(self._accounts),
            "transactions": len(self._transactions),
            "templates": len(self._templates),
            "income_categories": len(self._categories.income),
            "expense_categories": len(self._categories.expense),
        }

    def _log_added(self, record: Transaction) -> None:
        self._log(LedgerEventBuilder.transaction_added(
            record.id, record.account_id, record.type.value, str(record.amount)
        ))

    def _log(self, event: LedgerEvent) -> None:
        if self._audit:
            self._audit.log(event)
