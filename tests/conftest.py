"""Shared fixtures for the ledger tests."""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from ledger.audit import AuditLogger
from ledger.config import LedgerSettings
from ledger.engine import LedgerStore
from ledger.models import TransactionDraft, TransactionType
from ledger.service import LedgerService
from ledger.services.storage import InMemoryKeyValueStore


def at(year: int, month: int, day: int, hour: int = 12) -> datetime:
    """An aware UTC timestamp."""
    return datetime(year, month, day, hour, tzinfo=timezone.utc)


def draft(
    account_id: str,
    type_: TransactionType = TransactionType.EXPENSE,
    amount: str = "10.00",
    category: str = "Food",
    created_at: datetime = None,
    description: str = "",
) -> TransactionDraft:
    return TransactionDraft(
        account_id=account_id,
        type=type_,
        amount=Decimal(amount),
        category=category,
        created_at=created_at or at(2024, 3, 10),
        description=description,
    )


@pytest.fixture
def settings():
    return LedgerSettings(
        fallback_category="Other",
        transfer_category="Transfer",
        salary_keywords="gehalt,lohn,salary",
        salary_cutoff_day=25,
    )


@pytest.fixture
def kv():
    return InMemoryKeyValueStore()


@pytest.fixture
def audit_logger():
    return AuditLogger()


@pytest.fixture
def store(kv, settings, audit_logger):
    return LedgerStore(kv, settings=settings, audit_logger=audit_logger)


@pytest.fixture
def service(store, audit_logger):
    return LedgerService(store, audit_logger)


@pytest.fixture
def two_accounts(service):
    """(checking, savings); checking is active."""
    checking = service.accounts.add_account("Checking", "bg-violet-500", "wallet")
    savings = service.accounts.add_account("Savings", "bg-green-500", "savings")
    service.accounts.set_active_account(checking.id)
    return checking, savings
