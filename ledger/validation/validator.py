"""
Two-Stage Import Validation

DESIGN DECISION: An import document is checked in two distinct stages:

STAGE 1 - SCHEMA VALIDATION:
- The document is JSON (or an already decoded dict)
- A backup envelope, if present, is one we understand ("auri", or the
  ledger section of a full "all" backup)
- Every record has its required fields with valid types
- This catches truncated files and documents from other tools

STAGE 2 - REFERENTIAL VALIDATION:
- Record ids are unique
- Category names are unique per namespace, ignoring case
- Every transaction's accountId names an imported account
- Every transferId names a sibling that points back and completes the pair
- This catches documents that would break the store's invariants

Stage 2 only runs when stage 1 passed.

The only finding that is repaired instead of rejected is a transferId that
does not resolve at all. Older versions left those behind on "delete only
this one"; the import clears them and reports a warning.
"""

import json
from typing import Any, Optional

from pydantic import ValidationError

from ledger.models.ledger import (
    ImportValidationResult,
    LedgerBundle,
    Transaction,
    TransactionType,
    ValidationIssue,
)


BACKUP_TYPE = "auri"
FULL_BACKUP_TYPE = "all"
BACKUP_VERSION = 1


def _location(loc: tuple) -> str:
    """('transactions', 3, 'accountId') -> 'transactions[3].accountId'"""
    text = ""
    for part in loc:
        if isinstance(part, int):
            text += f"[{part}]"
        else:
            text += f".{part}" if text else str(part)
    return text or "document"


class ImportValidator:
    """
    Validates an import document through a two-stage pipeline.

    Stage 1: Schema validation (pydantic)
    Stage 2: Referential validation (ids, account references, transfer links)
    """

    def _unwrap(self, document: Any) -> tuple[Any, list[ValidationIssue]]:
        """Decode JSON and strip the backup envelope, if any."""
        if isinstance(document, (bytes, bytearray)):
            try:
                document = document.decode("utf-8")
            except UnicodeDecodeError as e:
                return None, [ValidationIssue(
                    field="document",
                    issue_type="encoding",
                    message=f"Document is not UTF-8 text: {e}",
                    severity="error",
                )]
        if isinstance(document, str):
            try:
                document = json.loads(document)
            except json.JSONDecodeError as e:
                return None, [ValidationIssue(
                    field="document",
                    issue_type="invalid_json",
                    message=f"Document is not valid JSON: {e.msg} (line {e.lineno})",
                    severity="error",
                )]

        if not isinstance(document, dict):
            return None, [ValidationIssue(
                field="document",
                issue_type="schema",
                message="Document must be a JSON object",
                severity="error",
            )]

        if "backupType" not in document:
            return document, []

        issues = []
        backup_type = document.get("backupType")
        if backup_type not in (BACKUP_TYPE, FULL_BACKUP_TYPE):
            issues.append(ValidationIssue(
                field="backupType",
                issue_type="unsupported_backup",
                message=f"Unsupported backup type: {document.get('backupType')!r}",
                severity="error",
            ))
        version = document.get("version")
        if not isinstance(version, int) or version > BACKUP_VERSION:
            issues.append(ValidationIssue(
                field="version",
                issue_type="unsupported_backup",
                message=f"Unsupported backup version: {version!r}",
                severity="error",
            ))
        if "data" not in document:
            issues.append(ValidationIssue(
                field="data",
                issue_type="missing",
                message="Backup envelope has no data",
                severity="error",
            ))
        if issues:
            return None, issues

        data = document["data"]
        if backup_type == FULL_BACKUP_TYPE:
            # Full backups carry one section per module; only the ledger's is read
            if not isinstance(data, dict) or BACKUP_TYPE not in data:
                return None, [ValidationIssue(
                    field=f"data.{BACKUP_TYPE}",
                    issue_type="missing",
                    message="Full backup has no ledger section",
                    severity="error",
                )]
            data = data[BACKUP_TYPE]
        return data, []

    def _validate_schema(self, document: Any) -> tuple[Optional[LedgerBundle], list[ValidationIssue]]:
        """
        Stage 1: Schema validation.

        Returns: (bundle or None, list_of_issues)
        """
        data, issues = self._unwrap(document)
        if issues:
            return None, issues

        try:
            return LedgerBundle.model_validate(data), []
        except ValidationError as e:
            return None, [
                ValidationIssue(
                    field=_location(error["loc"]),
                    issue_type="schema",
                    message=error["msg"],
                    severity="error",
                )
                for error in e.errors()
            ]

    def _validate_references(
        self,
        bundle: LedgerBundle,
    ) -> tuple[LedgerBundle, list[ValidationIssue]]:
        """
        Stage 2: Referential validation.

        Returns: (bundle with unresolved transfer links cleared, list_of_issues)
        """
        issues = []

        account_ids = set()
        for i, account in enumerate(bundle.accounts):
            if account.id in account_ids:
                issues.append(ValidationIssue(
                    field=f"accounts[{i}].id",
                    issue_type="duplicate_id",
                    message=f"Account id {account.id} appears more than once",
                    severity="error",
                ))
            account_ids.add(account.id)

        by_id: dict[str, Transaction] = {}
        for i, t in enumerate(bundle.transactions):
            if t.id in by_id:
                issues.append(ValidationIssue(
                    field=f"transactions[{i}].id",
                    issue_type="duplicate_id",
                    message=f"Transaction id {t.id} appears more than once",
                    severity="error",
                ))
            by_id[t.id] = t

        for type_ in TransactionType:
            seen: dict[str, str] = {}
            for i, name in enumerate(bundle.categories.names(type_)):
                key = name.lower()
                if key in seen:
                    issues.append(ValidationIssue(
                        field=f"categories.{type_.value}[{i}]",
                        issue_type="duplicate_category",
                        message=(
                            f"Category '{name}' duplicates '{seen[key]}' "
                            f"in {type_.value} (names ignore case)"
                        ),
                        severity="error",
                    ))
                else:
                    seen[key] = name

        transactions = []
        for i, t in enumerate(bundle.transactions):
            if t.account_id not in account_ids:
                issues.append(ValidationIssue(
                    field=f"transactions[{i}].accountId",
                    issue_type="dangling_account",
                    message=f"Transaction {t.id} references unknown account {t.account_id}",
                    severity="error",
                ))

            if t.transfer_id is not None:
                sibling = by_id.get(t.transfer_id)
                if sibling is None:
                    issues.append(ValidationIssue(
                        field=f"transactions[{i}].transferId",
                        issue_type="unresolved_transfer",
                        message=(
                            f"Transaction {t.id} links to missing transfer "
                            f"{t.transfer_id}; the link was cleared"
                        ),
                        severity="warning",
                    ))
                    t = t.model_copy(update={"transfer_id": None})
                else:
                    problem = self._transfer_problem(t, sibling)
                    if problem:
                        issues.append(ValidationIssue(
                            field=f"transactions[{i}].transferId",
                            issue_type="invalid_transfer",
                            message=f"Transaction {t.id}: {problem}",
                            severity="error",
                        ))
            transactions.append(t)

        if bundle.active_account_id and bundle.active_account_id not in account_ids:
            issues.append(ValidationIssue(
                field="activeAccountId",
                issue_type="dangling_account",
                message=(
                    f"Active account {bundle.active_account_id} does not exist; "
                    "the first account is selected instead"
                ),
                severity="warning",
            ))

        return bundle.model_copy(update={"transactions": transactions}), issues

    @staticmethod
    def _transfer_problem(t: Transaction, sibling: Transaction) -> str:
        if sibling.id == t.id:
            return "transfer links to itself"
        if sibling.transfer_id != t.id:
            return f"transfer sibling {sibling.id} does not link back"
        if sibling.type == t.type:
            return "both halves of the transfer have the same type"
        if sibling.account_id == t.account_id:
            return "both halves of the transfer are on the same account"
        if sibling.created_at != t.created_at:
            return "the halves of the transfer have different timestamps"
        return ""

    def validate(self, document: Any) -> ImportValidationResult:
        """
        Run the full two-stage validation pipeline.

        Args:
            document: JSON text/bytes, or an already decoded dict. Either a
                      backup envelope or a bare bundle.

        Returns:
            ImportValidationResult with all issues found and, when the
            schema stage passed, the repaired bundle
        """
        bundle, issues = self._validate_schema(document)
        schema_valid = bundle is not None

        referential_valid = False
        if schema_valid:
            bundle, reference_issues = self._validate_references(bundle)
            issues.extend(reference_issues)
            referential_valid = not any(i.severity == "error" for i in reference_issues)

        return ImportValidationResult(
            schema_valid=schema_valid,
            referential_valid=referential_valid,
            issues=issues,
            bundle=bundle,
        )
