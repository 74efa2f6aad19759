"""Tests for backup export and validated import."""

import json
from datetime import date
from decimal import Decimal

import pytest

from ledger.engine import LedgerStore, MalformedImportError
from ledger.models import LedgerEventType, TransactionType
from ledger.service import LedgerService
from ledger.services.storage import InMemoryKeyValueStore
from ledger.validation import ImportValidator
from tests.conftest import at


def bundle_dict(**overrides):
    data = {
        "accounts": [
            {"id": "a1", "name": "Checking", "color": "bg-violet-500", "icon": "wallet"},
            {"id": "a2", "name": "Savings"},
        ],
        "transactions": [
            {
                "id": "t1", "accountId": "a1", "type": "expense", "description": "To Savings",
                "amount": 50, "category": "Transfer",
                "createdAt": "2024-03-05T00:00:00.000Z", "transferId": "t2",
            },
            {
                "id": "t2", "accountId": "a2", "type": "income", "description": "From Checking",
                "amount": 50, "category": "Transfer",
                "createdAt": "2024-03-05T00:00:00.000Z", "transferId": "t1",
            },
            {
                "id": "t3", "accountId": "a1", "type": "expense", "description": "Coffee",
                "amount": 3.5, "category": "Food", "createdAt": "2024-03-06T09:30:00.000Z",
            },
        ],
        "categories": {"income": ["Salary"], "expense": ["Food", "Other"]},
        "templates": [],
        "activeAccountId": "a2",
    }
    data.update(overrides)
    return data


@pytest.fixture
def populated(service, two_accounts):
    checking, savings = two_accounts
    service.categories.add_category(TransactionType.EXPENSE, "Food")
    service.record(checking.id, TransactionType.EXPENSE, "3.50", "Food", at(2024, 3, 6), "Coffee")
    service.transfers.create_transfer(checking.id, savings.id, Decimal("50"), date(2024, 3, 5))
    service.store.add_template(TransactionType.EXPENSE, "Rent", Decimal("800"), "Rent")
    return service


def fresh_service(settings):
    return LedgerService(LedgerStore(InMemoryKeyValueStore(), settings=settings))


class TestExport:
    """Tests for the export document."""

    def test_envelope(self, populated):
        """Test the versioned backup envelope."""
        document = populated.backup.export_document()
        assert document["backupType"] == "auri"
        assert document["version"] == 1
        data = document["data"]
        assert set(data) == {"accounts", "transactions", "categories", "templates", "activeAccountId"}
        assert data["categories"]["expense"] == ["Food", "Other"]

    def test_transfer_ids_exported(self, populated):
        """Test that only transfer halves carry transferId."""
        transactions = populated.backup.export_document()["data"]["transactions"]
        linked = [t for t in transactions if "transferId" in t]
        assert len(linked) == 2
        assert linked[0]["transferId"] == linked[1]["id"]

    def test_export_json_is_text(self, populated):
        """Test that the JSON export parses back."""
        assert json.loads(populated.backup.export_json())["backupType"] == "auri"


class TestImport:
    """Tests for importing documents."""

    def test_round_trip(self, populated, settings):
        """Test that export then import reproduces the ledger."""
        target = fresh_service(settings)
        target.backup.import_document(populated.backup.export_json())

        assert target.store.accounts == populated.store.accounts
        assert target.store.transactions == populated.store.transactions
        assert target.store.categories == populated.store.categories
        assert target.store.templates == populated.store.templates
        assert target.store.active_account_id == populated.store.active_account_id

    def test_bare_bundle_accepted(self, service):
        """Test importing a bundle without envelope."""
        result = service.backup.import_document(bundle_dict())
        assert result.is_valid
        assert [a.id for a in service.store.accounts] == ["a1", "a2"]
        assert service.store.active_account_id == "a2"
        assert service.store.get_transaction("t1").transfer_id == "t2"

    def test_import_replaces_everything(self, populated):
        """Test that import is wholesale, not a merge."""
        populated.backup.import_document({"backupType": "auri", "version": 1, "data": bundle_dict()})
        assert {t.id for t in populated.store.transactions} == {"t1", "t2", "t3"}
        assert populated.store.templates == []

    def test_unresolved_transfer_is_cleared(self, service):
        """Test that a link to a missing sibling is repaired with a warning."""
        data = bundle_dict()
        data["transactions"] = [data["transactions"][0], data["transactions"][2]]
        result = service.backup.import_document(data)
        assert result.warnings
        assert service.store.get_transaction("t1").transfer_id is None

    def test_dangling_account_rejected(self, populated):
        """Test that a transaction on an unknown account rejects the import."""
        before = populated.store.transactions
        data = bundle_dict()
        data["transactions"][2]["accountId"] = "ghost"
        with pytest.raises(MalformedImportError) as exc_info:
            populated.backup.import_document(data)
        assert exc_info.value.issues[0].field == "transactions[2].accountId"
        assert populated.store.transactions == before

    def test_non_mutual_transfer_rejected(self, service):
        """Test that a one-sided link is an error."""
        data = bundle_dict()
        data["transactions"][1]["transferId"] = "t3"
        with pytest.raises(MalformedImportError):
            service.backup.import_document(data)

    def test_same_type_transfer_rejected(self, service):
        """Test that both halves must differ in type."""
        data = bundle_dict()
        data["transactions"][1]["type"] = "expense"
        with pytest.raises(MalformedImportError):
            service.backup.import_document(data)

    def test_invalid_json_rejected(self, service, audit_logger):
        """Test that broken JSON is rejected and logged."""
        with pytest.raises(MalformedImportError):
            service.backup.import_document("{broken")
        assert audit_logger.recent_events[-1].event_type == LedgerEventType.IMPORT_REJECTED

    def test_missing_fields_rejected(self, service):
        """Test schema errors name the offending field."""
        data = bundle_dict()
        del data["transactions"][0]["amount"]
        with pytest.raises(MalformedImportError) as exc_info:
            service.backup.import_document(data)
        assert exc_info.value.issues[0].field == "transactions[0].amount"

    def test_full_backup_reads_ledger_section(self, service):
        """Test that a full backup imports its ledger part and ignores the rest."""
        document = {
            "backupType": "all",
            "version": 1,
            "data": {"memo": [{"id": "m1", "text": "note"}], "auri": bundle_dict()},
        }
        result = service.backup.import_document(json.dumps(document))
        assert result.is_valid
        assert [a.id for a in service.store.accounts] == ["a1", "a2"]
        assert service.store.get_transaction("t2").transfer_id == "t1"

    def test_full_backup_without_ledger_section_rejected(self, populated):
        """Test that a full backup lacking the ledger part changes nothing."""
        before = populated.store.snapshot()
        with pytest.raises(MalformedImportError) as exc_info:
            populated.backup.import_document(
                {"backupType": "all", "version": 1, "data": {"memo": []}}
            )
        assert exc_info.value.issues[0].field == "data.auri"
        assert populated.store.snapshot() == before

    def test_unknown_backup_type_rejected(self, service):
        """Test that envelopes of other tools are refused."""
        with pytest.raises(MalformedImportError):
            service.backup.import_document({"backupType": "memo", "version": 1, "data": bundle_dict()})


class TestImportValidator:
    """Tests for the validator stages in isolation."""

    def test_stage_two_skipped_when_schema_fails(self):
        """Test that referential checks need a parsed bundle."""
        result = ImportValidator().validate({"accounts": "nope"})
        assert not result.schema_valid
        assert not result.referential_valid
        assert result.bundle is None

    def test_stale_active_account_is_warning(self):
        """Test that a missing active account is repaired, not rejected."""
        result = ImportValidator().validate(bundle_dict(activeAccountId="ghost"))
        assert result.is_valid
        assert any("ghost" in w for w in result.warnings)

    def test_duplicate_ids_rejected(self):
        """Test that ids must be unique."""
        data = bundle_dict()
        data["accounts"].append({"id": "a1", "name": "Clone"})
        result = ImportValidator().validate(data)
        assert not result.is_valid
        assert result.errors[0].issue_type == "duplicate_id"

    def test_case_duplicate_categories_rejected(self):
        """Test that category names must be unique per namespace, ignoring case."""
        result = ImportValidator().validate(
            bundle_dict(categories={"income": ["Salary"], "expense": ["Miete", "miete", "Other"]})
        )
        assert not result.is_valid
        assert [(e.issue_type, e.field) for e in result.errors] == [
            ("duplicate_category", "categories.expense[1]"),
        ]

    def test_same_name_in_both_namespaces_allowed(self):
        """Test that the namespaces are checked independently."""
        result = ImportValidator().validate(
            bundle_dict(categories={"income": ["Gifts"], "expense": ["gifts", "Other"]})
        )
        assert result.is_valid

    def test_imported_fallback_spelling_is_kept(self, service):
        """Test that a differently cased fallback absorbs deleted categories."""
        service.backup.import_document(
            bundle_dict(categories={"income": [], "expense": ["Food", "other"]})
        )
        assert service.categories.list_categories(TransactionType.EXPENSE) == ["Food", "other"]

        assert service.categories.delete_category(TransactionType.EXPENSE, "Food") == 1
        assert service.store.get_transaction("t3").category == "other"
        assert service.categories.list_categories(TransactionType.EXPENSE) == ["other"]
