"""
Backup Export and Import

Export wraps the whole ledger in a versioned envelope:

    {"backupType": "auri", "version": 1, "data": {accounts, transactions, ...}}

Import accepts that envelope or a bare bundle, validates it (see
ledger.validation) and replaces every collection wholesale. A rejected
document leaves the store untouched.
"""

import json
from typing import Any, Optional

from ledger.audit import AuditLogger
from ledger.engine.errors import MalformedImportError
from ledger.engine.store import LedgerStore
from ledger.models.audit import LedgerEvent, LedgerEventBuilder
from ledger.models.ledger import ImportValidationResult, LedgerBundle
from ledger.validation import BACKUP_TYPE, BACKUP_VERSION, ImportValidator


class LedgerBackup:
    """Moves the ledger in and out of backup documents."""

    def __init__(
        self,
        store: LedgerStore,
        validator: Optional[ImportValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._validator = validator or ImportValidator()
        self._audit = audit_logger

    def export_bundle(self) -> LedgerBundle:
        return self._store.snapshot()

    def export_document(self) -> dict[str, Any]:
        """The ledger as a JSON-ready backup envelope."""
        bundle = self.export_bundle()
        self._log(LedgerEventBuilder.ledger_exported(_counts(bundle)))
        return {
            "backupType": BACKUP_TYPE,
            "version": BACKUP_VERSION,
            "data": bundle.model_dump(mode="json", by_alias=True, exclude_none=True),
        }

    def export_json(self, indent: Optional[int] = 2) -> str:
        return json.dumps(self.export_document(), indent=indent, ensure_ascii=False)

    def import_document(self, document: Any) -> ImportValidationResult:
        """
        Replace the ledger with the content of a backup document.

        Args:
            document: JSON text/bytes or a decoded dict (envelope or bare bundle)

        Returns:
            The validation result; its warnings name the repairs applied

        Raises:
            MalformedImportError: the document failed validation
        """
        result = self._validator.validate(document)
        if not result.is_valid:
            self._log(LedgerEventBuilder.import_rejected(
                [issue.model_dump() for issue in result.errors]
            ))
            raise MalformedImportError(result.errors)

        self._store.replace_all(result.bundle)
        self._log(LedgerEventBuilder.ledger_imported(
            _counts(result.bundle), result.warnings
        ))
        return result

    def _log(self, event: LedgerEvent) -> None:
        if self._audit:
            self._audit.log(event)


def _counts(bundle: LedgerBundle) -> dict[str, int]:
    return {
        "accounts": len(bundle.accounts),
        "transactions": len(bundle.transactions),
        "templates": len(bundle.templates),
    }
