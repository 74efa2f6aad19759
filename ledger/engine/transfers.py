"""
Transfer Coordinator

A transfer is two transactions that move money between accounts:
- an expense on the source account
- an income on the destination account

Both are stamped with the same timestamp, carry the reserved transfer
category and name each other through transfer_id.

DESIGN DECISION: Deleting half of a transfer is an explicit choice.
The caller picks one of two named operations (or a DeletePolicy):
1. delete_transfer_both removes the pair in one commit
2. delete_transfer_single removes one half; the survivor becomes an
   ordinary unpaired record
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional, Union

from ledger.audit import AuditLogger
from ledger.engine.errors import InvalidAmountError, SameAccountError
from ledger.engine.store import LedgerStore
from ledger.models.audit import LedgerEvent, LedgerEventBuilder
from ledger.models.ledger import (
    Transaction,
    TransactionDraft,
    TransactionType,
    as_utc_datetime,
)


class DeletePolicy(str, Enum):
    """What to do with the sibling when one half of a transfer is deleted."""
    BOTH = "both"
    SINGLE = "single"


class TransferCoordinator:
    """Creates and deletes transfer pairs through the store."""

    def __init__(self, store: LedgerStore, audit_logger: Optional[AuditLogger] = None):
        self._store = store
        self._audit = audit_logger

    def create_transfer(
        self,
        from_account_id: str,
        to_account_id: str,
        amount: Decimal,
        booked_at: Union[date, datetime],
        description: Optional[str] = None,
    ) -> tuple[Transaction, Transaction]:
        """
        Move `amount` from one account to another.

        Returns:
            (expense on the source, income on the destination)

        Raises:
            SameAccountError: source and destination are the same account
            InvalidAmountError: amount is not positive
            InvalidReferenceError: either account does not exist
        """
        if from_account_id == to_account_id:
            raise SameAccountError("Cannot transfer to the same account")
        amount = Decimal(str(amount))
        if amount <= 0:
            raise InvalidAmountError(f"Transfer amount must be positive, got {amount}")

        source = self._store.require_account(from_account_id)
        destination = self._store.require_account(to_account_id)

        settings = self._store.settings
        created_at = as_utc_datetime(booked_at)

        expense = TransactionDraft(
            account_id=source.id,
            type=TransactionType.EXPENSE,
            description=description or f"{settings.transfer_out_prefix} {destination.name}",
            amount=amount,
            category=settings.transfer_category,
            created_at=created_at,
        )
        income = TransactionDraft(
            account_id=destination.id,
            type=TransactionType.INCOME,
            description=description or f"{settings.transfer_in_prefix} {source.name}",
            amount=amount,
            category=settings.transfer_category,
            created_at=created_at,
        )

        expense_record = self._store.add_transaction(expense, peer=income)
        income_record = self._store.get_transaction(expense_record.transfer_id)

        self._log(LedgerEventBuilder.transfer_created(
            expense_record.id, income_record.id, str(amount)
        ))
        return expense_record, income_record

    def sibling_of(self, transaction_id: str) -> Optional[Transaction]:
        """The other half of a transfer pair, or None for ordinary records."""
        transaction = self._store.require_transaction(transaction_id)
        if transaction.transfer_id is None:
            return None
        return self._store.get_transaction(transaction.transfer_id)

    def delete_transfer_both(self, transaction_id: str) -> list[Transaction]:
        """Remove the record and its sibling in one commit."""
        sibling = self.sibling_of(transaction_id)
        if sibling is None:
            return [self._store.delete_transaction(transaction_id)]

        removed = self._store.delete_transactions([transaction_id, sibling.id])
        self._log(LedgerEventBuilder.transfer_deleted(
            [t.id for t in removed], DeletePolicy.BOTH.value
        ))
        return removed

    def delete_transfer_single(self, transaction_id: str) -> list[Transaction]:
        """Remove only this record; the sibling survives unlinked."""
        sibling = self.sibling_of(transaction_id)
        removed = self._store.delete_transaction(transaction_id)
        if sibling is not None:
            self._log(LedgerEventBuilder.transfer_deleted(
                [removed.id, sibling.id], DeletePolicy.SINGLE.value
            ))
        return [removed]

    def delete_transfer(
        self,
        transaction_id: str,
        policy: Union[DeletePolicy, str] = DeletePolicy.BOTH,
    ) -> list[Transaction]:
        """
        Delete a record under an explicit policy.

        An unlinked record is always a plain single delete.
        """
        policy = DeletePolicy(policy)
        if policy == DeletePolicy.BOTH:
            return self.delete_transfer_both(transaction_id)
        return self.delete_transfer_single(transaction_id)

    def _log(self, event: LedgerEvent) -> None:
        if self._audit:
            self._audit.log(event)
