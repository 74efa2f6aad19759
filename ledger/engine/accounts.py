"""
Account Lifecycle Manager

Accounts are created, edited and deleted here; the active-account
selection follows them:
- A new account becomes the active one
- Deleting the active account fails over to the first remaining one
- The last account cannot be deleted
"""

from decimal import Decimal
from typing import Optional

from ledger.engine.store import LedgerStore
from ledger.models.ledger import Account, AccountDraft, Transaction


class AccountManager:
    """Account rules on top of the store."""

    def __init__(self, store: LedgerStore):
        self._store = store

    def add_account(self, name: str, color: str = "", icon: str = "") -> Account:
        account = self._store.add_account(AccountDraft(name=name, color=color, icon=icon))
        self._store.set_active_account(account.id)
        return account

    def update_account(self, account: Account) -> Account:
        return self._store.update_account(account)

    def delete_account(self, account_id: str) -> list[Transaction]:
        """
        Delete an account and all of its transactions.

        Returns the removed transactions. The store moves the active
        selection along in the same commit.

        Raises:
            LastAccountError: this is the only account
            InvalidReferenceError: the account does not exist
        """
        return self._store.delete_account(account_id)

    def active_account(self) -> Optional[Account]:
        active_id = self._store.active_account_id
        return self._store.get_account(active_id) if active_id else None

    def set_active_account(self, account_id: str) -> Account:
        account = self._store.require_account(account_id)
        self._store.set_active_account(account.id)
        return account

    def balance(self, account_id: str) -> Decimal:
        """All-time income minus expense of one account."""
        self._store.require_account(account_id)
        return sum(
            (t.signed_amount for t in self._store.transactions_for(account_id)),
            Decimal("0"),
        )
