"""Tests for the LedgerStore: primitives, invariants and write-through."""

import json
from datetime import date, datetime, timezone
from decimal import Decimal

import pytest
from pydantic import ValidationError

from ledger.engine import (
    InvalidAmountError,
    InvalidReferenceError,
    LastAccountError,
    LedgerStore,
    LinkedTransferError,
    SameAccountError,
    TransferShapeError,
)
from ledger.models import (
    AccountDraft,
    Categories,
    LedgerBundle,
    LedgerEventType,
    TransactionType,
)
from ledger.services.storage import (
    InMemoryKeyValueStore,
    KeyValueStore,
    StorageReadError,
    StorageWriteError,
)
from tests.conftest import at, draft


class FailingKeyValueStore(KeyValueStore):
    """Reads work; every write fails."""

    def get(self, key):
        return None

    def set(self, key, value):
        raise StorageWriteError(f"cannot write {key}")

    def delete(self, key):
        raise StorageWriteError(f"cannot delete {key}")


@pytest.fixture
def accounts(store):
    a = store.add_account(AccountDraft(name="Checking"))
    b = store.add_account(AccountDraft(name="Savings"))
    return a, b


def pair(store, a, b, amount="50.00"):
    expense = draft(a.id, TransactionType.EXPENSE, amount, "Transfer")
    income = draft(b.id, TransactionType.INCOME, amount, "Transfer")
    first = store.add_transaction(expense, peer=income)
    return first, store.get_transaction(first.transfer_id)


class TestAddTransaction:
    """Tests for inserting records."""

    def test_add_plain_transaction(self, store, accounts):
        """Test that a record gets an id and is readable immediately."""
        a, _ = accounts
        t = store.add_transaction(draft(a.id))
        assert store.get_transaction(t.id) == t
        assert t.transfer_id is None
        assert store.transactions_for(a.id) == [t]

    def test_add_rejects_unknown_account(self, store, accounts):
        """Test that a dangling account id is rejected."""
        with pytest.raises(InvalidReferenceError):
            store.add_transaction(draft("missing"))
        assert store.transactions == []

    @pytest.mark.parametrize("amount", ["0", "-1"])
    def test_add_rejects_non_positive_amount(self, store, accounts, amount):
        """Test that zero and negative amounts are rejected."""
        a, _ = accounts
        with pytest.raises(InvalidAmountError):
            store.add_transaction(draft(a.id, amount=amount))
        assert store.transactions == []

    def test_add_pair_links_both_halves(self, store, accounts):
        """Test that a peer is inserted in the same commit and mutually linked."""
        a, b = accounts
        first, second = pair(store, a, b)
        assert first.transfer_id == second.id
        assert second.transfer_id == first.id
        assert len(store.transactions) == 2

    def test_pair_on_same_account_rejected(self, store, accounts):
        """Test that both halves on one account are rejected."""
        a, _ = accounts
        with pytest.raises(SameAccountError):
            store.add_transaction(
                draft(a.id, TransactionType.EXPENSE),
                peer=draft(a.id, TransactionType.INCOME),
            )
        assert store.transactions == []

    def test_pair_with_same_type_rejected(self, store, accounts):
        """Test that a pair must be one expense and one income."""
        a, b = accounts
        with pytest.raises(TransferShapeError):
            store.add_transaction(
                draft(a.id, TransactionType.EXPENSE),
                peer=draft(b.id, TransactionType.EXPENSE),
            )

    def test_pair_with_different_timestamps_rejected(self, store, accounts):
        """Test that both halves share one timestamp."""
        a, b = accounts
        with pytest.raises(TransferShapeError):
            store.add_transaction(
                draft(a.id, TransactionType.EXPENSE, created_at=at(2024, 3, 1)),
                peer=draft(b.id, TransactionType.INCOME, created_at=at(2024, 3, 2)),
            )


class TestUpdateTransaction:
    """Tests for replacing records."""

    def test_update_replaces_in_place(self, store, accounts):
        """Test that fields change and the position is kept."""
        a, _ = accounts
        first = store.add_transaction(draft(a.id, description="one"))
        second = store.add_transaction(draft(a.id, description="two"))
        updated = store.update_transaction(
            first.model_copy(update={"description": "changed", "amount": Decimal("99")})
        )
        assert [t.id for t in store.transactions] == [first.id, second.id]
        assert store.get_transaction(first.id).description == "changed"
        assert updated.amount == Decimal("99")

    def test_update_cannot_add_a_link(self, store, accounts):
        """Test that transfer linkage cannot be introduced through an update."""
        a, _ = accounts
        t = store.add_transaction(draft(a.id))
        updated = store.update_transaction(t.model_copy(update={"transfer_id": "x"}))
        assert updated.transfer_id is None

    def test_update_linked_record_rejected(self, store, accounts):
        """Test that transfer halves are not editable."""
        a, b = accounts
        first, _ = pair(store, a, b)
        with pytest.raises(LinkedTransferError):
            store.update_transaction(first.model_copy(update={"description": "x"}))

    def test_update_unknown_rejected(self, store, accounts):
        """Test that updating a missing record fails."""
        a, _ = accounts
        t = store.add_transaction(draft(a.id))
        store.delete_transaction(t.id)
        with pytest.raises(InvalidReferenceError):
            store.update_transaction(t)

    def test_update_to_unknown_account_rejected(self, store, accounts):
        """Test that an update cannot create a dangling account reference."""
        a, _ = accounts
        t = store.add_transaction(draft(a.id))
        with pytest.raises(InvalidReferenceError):
            store.update_transaction(t.model_copy(update={"account_id": "missing"}))

    def test_update_normalizes_bare_date(self, store, accounts):
        """Test that an edit to a plain date is stored as midnight UTC."""
        a, _ = accounts
        t = store.add_transaction(draft(a.id))
        updated = store.update_transaction(t.model_copy(update={"created_at": date(2024, 3, 6)}))
        assert updated.created_at == datetime(2024, 3, 6, tzinfo=timezone.utc)
        assert store.get_transaction(t.id).booked_on == date(2024, 3, 6)

    def test_update_normalizes_naive_datetime(self, store, accounts):
        """Test that a naive edit is read as UTC."""
        a, _ = accounts
        t = store.add_transaction(draft(a.id))
        updated = store.update_transaction(
            t.model_copy(update={"created_at": datetime(2024, 3, 6, 18, 30)})
        )
        assert updated.created_at.tzinfo is not None
        assert updated.created_at == datetime(2024, 3, 6, 18, 30, tzinfo=timezone.utc)

    def test_update_rejects_invalid_fields(self, store, accounts):
        """Test that an edit goes through the same field checks as a new record."""
        a, _ = accounts
        t = store.add_transaction(draft(a.id))
        with pytest.raises(ValidationError):
            store.update_transaction(t.model_copy(update={"type": "transfer"}))
        assert store.transactions == [t]


class TestDeleteTransaction:
    """Tests for removing records."""

    def test_delete_single_half_unlinks_sibling(self, store, accounts):
        """Test that removing one half clears the sibling's link in the same commit."""
        a, b = accounts
        first, second = pair(store, a, b)
        store.delete_transaction(first.id)
        survivor = store.get_transaction(second.id)
        assert store.get_transaction(first.id) is None
        assert survivor.transfer_id is None

    def test_delete_several(self, store, accounts):
        """Test that several records go in one commit."""
        a, b = accounts
        first, second = pair(store, a, b)
        removed = store.delete_transactions([first.id, second.id])
        assert {t.id for t in removed} == {first.id, second.id}
        assert store.transactions == []

    def test_delete_unknown_rejected(self, store, accounts):
        """Test that deleting a missing id fails without changes."""
        a, _ = accounts
        store.add_transaction(draft(a.id))
        with pytest.raises(InvalidReferenceError):
            store.delete_transactions(["missing"])
        assert len(store.transactions) == 1


class TestAccounts:
    """Tests for account primitives."""

    def test_delete_account_cascades(self, store, accounts):
        """Test that an account's transactions go with it and siblings survive unlinked."""
        a, b = accounts
        store.add_transaction(draft(a.id))
        _, income = pair(store, a, b)
        removed = store.delete_account(a.id)
        assert len(removed) == 2
        assert store.get_account(a.id) is None
        assert store.transactions == [income.model_copy(update={"transfer_id": None})]

    def test_delete_last_account_rejected(self, store):
        """Test that the only account cannot be deleted."""
        a = store.add_account(AccountDraft(name="Only"))
        with pytest.raises(LastAccountError):
            store.delete_account(a.id)
        assert store.accounts == [a]

    def test_update_account(self, store, accounts):
        """Test in-place account updates."""
        a, _ = accounts
        store.update_account(a.model_copy(update={"name": "Main"}))
        assert store.get_account(a.id).name == "Main"

    def test_update_account_rejects_blank_name(self, store, accounts):
        """Test that an edited account is validated like a new one."""
        a, _ = accounts
        with pytest.raises(ValidationError):
            store.update_account(a.model_copy(update={"name": "   "}))
        assert store.get_account(a.id).name == "Checking"

    def test_delete_active_account_moves_selection_in_one_commit(self, store, kv, accounts):
        """Test that the failover is written together with the deletion."""
        a, b = accounts
        store.set_active_account(a.id)
        before = kv.write_count
        store.delete_account(a.id)
        assert store.active_account_id == b.id
        assert json.loads(kv.get("activeAccountId")) == b.id
        # accounts, transactions and the selection; no second commit
        assert kv.write_count == before + 3

    def test_delete_inactive_account_keeps_selection(self, store, kv, accounts):
        """Test that only the collections touched are written."""
        a, b = accounts
        store.set_active_account(a.id)
        before = kv.write_count
        store.delete_account(b.id)
        assert store.active_account_id == a.id
        assert kv.write_count == before + 2

    def test_set_active_account_validates(self, store, accounts):
        """Test that the active account must exist."""
        with pytest.raises(InvalidReferenceError):
            store.set_active_account("missing")


class TestPersistence:
    """Tests for write-through and loading."""

    def test_each_mutation_writes_through(self, store, kv, accounts):
        """Test that committed collections are stored as camelCase JSON."""
        a, _ = accounts
        store.add_transaction(draft(a.id, amount="12.50"))
        stored = json.loads(kv.get("transactions"))
        assert stored[0]["accountId"] == a.id
        assert stored[0]["amount"] == 12.5
        assert [acc["name"] for acc in json.loads(kv.get("accounts"))] == ["Checking", "Savings"]

    def test_only_changed_collections_are_written(self, store, kv, accounts):
        """Test that adding a record does not rewrite accounts."""
        a, _ = accounts
        before = kv.write_count
        store.add_transaction(draft(a.id))
        assert kv.write_count == before + 1

    def test_reload_round_trip(self, store, kv, settings, accounts):
        """Test that a fresh store sees the committed state."""
        a, b = accounts
        first, second = pair(store, a, b)
        store.set_active_account(b.id)
        store.add_template(TransactionType.EXPENSE, "Rent", Decimal("800"), "Rent")

        reloaded = LedgerStore(kv, settings=settings)
        reloaded.load()
        assert reloaded.accounts == store.accounts
        assert reloaded.transactions == store.transactions
        assert reloaded.templates == store.templates
        assert reloaded.active_account_id == b.id

    def test_long_amounts_survive_reload(self, store, kv, settings, accounts):
        """Test that amounts beyond float precision are stored exactly."""
        a, _ = accounts
        exact = Decimal("12345678901234567.89")
        store.add_transaction(draft(a.id, amount=str(exact)))
        assert json.loads(kv.get("transactions"))[0]["amount"] == str(exact)

        reloaded = LedgerStore(kv, settings=settings)
        reloaded.load()
        assert reloaded.transactions[0].amount == exact

    def test_load_empty_storage(self, kv, settings):
        """Test that missing keys yield empty collections plus the fallback."""
        store = LedgerStore(kv, settings=settings)
        store.load()
        assert store.accounts == []
        assert store.transactions == []
        assert store.categories.expense == ("Other",)
        assert store.active_account_id is None

    def test_load_adds_missing_fallback(self, settings):
        """Test that the fallback category is present after load."""
        kv = InMemoryKeyValueStore({
            "categories": json.dumps({"income": ["Salary"], "expense": ["Food"]}).encode(),
        })
        store = LedgerStore(kv, settings=settings)
        store.load()
        assert store.categories.expense == ("Food", "Other")
        assert store.categories.income == ("Salary",)

    def test_load_repairs_stale_active_account(self, settings):
        """Test that a missing active id falls back to the first account."""
        kv = InMemoryKeyValueStore({
            "accounts": json.dumps([{"id": "a1", "name": "Checking"}]).encode(),
            "activeAccountId": b'"gone"',
        })
        store = LedgerStore(kv, settings=settings)
        store.load()
        assert store.active_account_id == "a1"

    def test_load_corrupt_value(self, settings):
        """Test that undecodable data is reported, not silently dropped."""
        kv = InMemoryKeyValueStore({"accounts": b"{not json"})
        store = LedgerStore(kv, settings=settings)
        with pytest.raises(StorageReadError):
            store.load()

    def test_write_failure_keeps_memory_commit(self, settings, audit_logger):
        """Test that a failed write raises while the in-memory state stands."""
        store = LedgerStore(FailingKeyValueStore(), settings=settings, audit_logger=audit_logger)
        with pytest.raises(StorageWriteError):
            store.add_account(AccountDraft(name="Checking"))
        assert [a.name for a in store.accounts] == ["Checking"]
        last = audit_logger.recent_events[-1]
        assert last.event_type == LedgerEventType.PERSISTENCE_FAILED


class TestWholeLedger:
    """Tests for replace_all, reset and templates."""

    def test_replace_all(self, store, kv, accounts):
        """Test that every collection is replaced."""
        bundle = LedgerBundle.model_validate({
            "accounts": [{"id": "x", "name": "Imported"}],
            "transactions": [],
            "categories": {"income": [], "expense": ["Food"]},
        })
        store.replace_all(bundle)
        assert [a.id for a in store.accounts] == ["x"]
        assert store.transactions == []
        assert store.categories.expense == ("Food", "Other")
        assert store.active_account_id == "x"
        assert json.loads(kv.get("activeAccountId")) == "x"

    def test_reset(self, store, accounts):
        """Test that reset empties the ledger but keeps the fallback."""
        a, _ = accounts
        store.add_transaction(draft(a.id))
        store.reset()
        assert store.accounts == []
        assert store.transactions == []
        assert store.categories == Categories(expense=("Other",))
        assert store.active_account_id is None

    def test_templates(self, store):
        """Test adding and deleting templates."""
        template = store.add_template(TransactionType.EXPENSE, "Rent", Decimal("800"), "Rent")
        assert store.templates == [template]
        store.delete_template(template.id)
        assert store.templates == []
        with pytest.raises(InvalidReferenceError):
            store.delete_template(template.id)

    def test_template_amount_must_be_positive(self, store):
        """Test that templates share the amount rule."""
        with pytest.raises(InvalidAmountError):
            store.add_template(TransactionType.EXPENSE, "Rent", Decimal("0"), "Rent")
