"""
Personal Ledger Engine

Multi-account income/expense bookkeeping with linked transfers, two
category namespaces and monthly analytics, persisted through a small
key-value store.

Typical use:
    service = create_ledger_service()
    checking = service.accounts.add_account("Checking")
"""

from ledger.service import LedgerService, create_ledger_service

__version__ = "0.1.0"

__all__ = ["LedgerService", "create_ledger_service", "__version__"]
