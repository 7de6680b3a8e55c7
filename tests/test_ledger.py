"""Tests for LedgerService: balances and budgets across transaction mutations."""

import random
import sqlite3
import threading
from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from conftest import OTHER_USER, USER, amount_of, balance_of
from fintrack.errors import NotFoundError, ValidationError
from fintrack.models import AccountType, TransactionType
from fintrack.services import LedgerService


def _expense(ledger, seeded, amount, budget_id=None, **kwargs):
    return ledger.create_transaction(
        user_id=USER,
        account_id=seeded.account.id,
        category_id=seeded.groceries.id,
        description=kwargs.pop("description", "Weekly shop"),
        amount=amount,
        budget_id=budget_id,
        **kwargs,
    )


def _update(ledger, txn, **changes):
    fields = {
        "account_id": txn.account_id,
        "category_id": txn.category_id,
        "description": txn.description,
        "amount": txn.amount,
        "transaction_date": txn.transaction_date,
        "note": txn.note,
        "budget_id": txn.budget_id,
    }
    fields.update(changes)
    return ledger.update_transaction(txn.id, **fields)


class TestCreateTransaction:
    """Tests for posting new transactions."""

    def test_expense_reduces_balance(self, repo, ledger, seeded):
        txn = _expense(ledger, seeded, "200.00")

        assert txn.id is not None
        assert txn.transaction_type == TransactionType.EXPENSE
        assert balance_of(repo, seeded.account.id) == Decimal("800.00")

    def test_income_increases_balance(self, repo, ledger, seeded):
        txn = ledger.create_transaction(
            user_id=USER,
            account_id=seeded.account.id,
            category_id=seeded.salary.id,
            description="October salary",
            amount=Decimal("1500.50"),
        )

        assert txn.transaction_type == TransactionType.INCOME
        assert balance_of(repo, seeded.account.id) == Decimal("2500.50")

    def test_type_comes_from_category(self, ledger, seeded):
        txn = ledger.create_transaction(
            user_id=USER,
            account_id=seeded.account.id,
            category_id=seeded.salary.id,
            description="Bonus",
            amount=10,
        )
        assert ledger.get_transaction(txn.id).transaction_type == TransactionType.INCOME

    def test_budget_is_charged(self, repo, ledger, seeded):
        _expense(ledger, seeded, "100.00", budget_id=seeded.budget_b.id)

        assert amount_of(repo, seeded.budget_b.id) == Decimal("400.00")

    def test_budget_is_charged_for_income_too(self, repo, ledger, seeded):
        ledger.create_transaction(
            user_id=USER,
            account_id=seeded.account.id,
            category_id=seeded.salary.id,
            description="Refund",
            amount="50",
            budget_id=seeded.budget_b.id,
        )

        assert balance_of(repo, seeded.account.id) == Decimal("1050.00")
        assert amount_of(repo, seeded.budget_b.id) == Decimal("450.00")

    def test_float_amounts_keep_cents(self, repo, ledger, seeded):
        _expense(ledger, seeded, 0.1)
        _expense(ledger, seeded, 0.2)

        assert balance_of(repo, seeded.account.id) == Decimal("999.70")

    def test_defaults_date_to_now(self, ledger, seeded):
        txn = _expense(ledger, seeded, "1")
        assert txn.transaction_date.tzinfo is not None

    def test_audit_entry(self, ledger, seeded, audit):
        _expense(ledger, seeded, "5", description="Coffee")
        assert audit.entries == [(USER, "New transaction 'Coffee' created")]

    def test_missing_category(self, ledger, seeded):
        with pytest.raises(NotFoundError) as exc_info:
            ledger.create_transaction(
                user_id=USER,
                account_id=seeded.account.id,
                category_id=999,
                description="x",
                amount=1,
            )
        assert exc_info.value.entity == "Category"

    def test_missing_account(self, ledger, seeded):
        with pytest.raises(NotFoundError, match="Account 999 not found"):
            ledger.create_transaction(
                user_id=USER,
                account_id=999,
                category_id=seeded.groceries.id,
                description="x",
                amount=1,
            )

    def test_missing_budget_leaves_account_untouched(self, repo, ledger, seeded):
        with pytest.raises(NotFoundError):
            _expense(ledger, seeded, "10", budget_id=999)

        assert balance_of(repo, seeded.account.id) == Decimal("1000.00")
        assert ledger.get_transactions(USER) == []

    def test_other_users_account_is_not_found(self, repo, ledger, seeded):
        foreign = repo.accounts.create(OTHER_USER, "Theirs", AccountType.CASH)

        with pytest.raises(NotFoundError):
            ledger.create_transaction(
                user_id=USER,
                account_id=foreign.id,
                category_id=seeded.groceries.id,
                description="x",
                amount=1,
            )

    @pytest.mark.parametrize("amount", [0, -5, "abc", None, float("nan")])
    def test_rejects_bad_amount(self, ledger, seeded, amount):
        with pytest.raises(ValidationError):
            _expense(ledger, seeded, amount)

    def test_rejects_empty_description(self, ledger, seeded):
        with pytest.raises(ValidationError):
            _expense(ledger, seeded, "1", description="   ")


class TestUpdateTransaction:
    """Tests for amending transactions."""

    def test_amount_change_same_account(self, repo, ledger, seeded):
        txn = _expense(ledger, seeded, "200.00")

        _update(ledger, txn, amount=Decimal("350.00"))

        assert balance_of(repo, seeded.account.id) == Decimal("650.00")

    def test_amount_change_applies_difference_to_budget(self, repo, ledger, seeded):
        txn = _expense(ledger, seeded, "100.00", budget_id=seeded.budget_b.id)

        _update(ledger, txn, amount=Decimal("130.00"))

        assert balance_of(repo, seeded.account.id) == Decimal("870.00")
        assert amount_of(repo, seeded.budget_b.id) == Decimal("370.00")

    def test_amount_decrease_income(self, repo, ledger, seeded):
        txn = ledger.create_transaction(
            user_id=USER,
            account_id=seeded.account.id,
            category_id=seeded.salary.id,
            description="Salary",
            amount="300",
        )

        _update(ledger, txn, amount=Decimal("100"))

        assert balance_of(repo, seeded.account.id) == Decimal("1100.00")

    def test_move_between_accounts(self, repo, ledger, seeded):
        keep = _expense(ledger, seeded, "40.00", description="Stays")
        moved = _expense(ledger, seeded, "60.00", description="Moves")
        assert balance_of(repo, seeded.account.id) == Decimal("900.00")

        _update(ledger, moved, account_id=seeded.savings.id)

        assert balance_of(repo, seeded.account.id) == Decimal("960.00")
        assert balance_of(repo, seeded.savings.id) == Decimal("190.00")
        assert ledger.get_transaction(keep.id).account_id == seeded.account.id

    def test_move_account_and_change_amount(self, repo, ledger, seeded):
        txn = _expense(ledger, seeded, "60.00")

        _update(ledger, txn, account_id=seeded.savings.id, amount=Decimal("80.00"))

        assert balance_of(repo, seeded.account.id) == Decimal("1000.00")
        assert balance_of(repo, seeded.savings.id) == Decimal("170.00")

    def test_reassign_budget(self, repo, ledger, seeded):
        txn = _expense(ledger, seeded, "100.00", budget_id=seeded.budget_b.id)
        assert amount_of(repo, seeded.budget_b.id) == Decimal("400.00")

        _update(ledger, txn, budget_id=seeded.budget_c.id)

        assert amount_of(repo, seeded.budget_b.id) == Decimal("500.00")
        assert amount_of(repo, seeded.budget_c.id) == Decimal("200.00")
        assert balance_of(repo, seeded.account.id) == Decimal("900.00")

    def test_reassign_budget_and_change_amount(self, repo, ledger, seeded):
        txn = _expense(ledger, seeded, "100.00", budget_id=seeded.budget_b.id)

        _update(ledger, txn, budget_id=seeded.budget_c.id, amount=Decimal("20.00"))

        assert amount_of(repo, seeded.budget_b.id) == Decimal("500.00")
        assert amount_of(repo, seeded.budget_c.id) == Decimal("280.00")

    def test_attach_budget(self, repo, ledger, seeded):
        txn = _expense(ledger, seeded, "75.00")

        _update(ledger, txn, budget_id=seeded.budget_c.id)

        assert amount_of(repo, seeded.budget_c.id) == Decimal("225.00")

    def test_detach_budget(self, repo, ledger, seeded):
        txn = _expense(ledger, seeded, "75.00", budget_id=seeded.budget_c.id)

        _update(ledger, txn, budget_id=None)

        assert amount_of(repo, seeded.budget_c.id) == Decimal("300.00")
        assert ledger.get_transaction(txn.id).budget_id is None

    def test_description_only_changes_nothing_else(self, repo, ledger, seeded, audit):
        txn = _expense(ledger, seeded, "10.00", budget_id=seeded.budget_b.id)

        updated = _update(ledger, txn, description="Corner shop", note="cash")

        assert updated.description == "Corner shop"
        assert ledger.get_transaction(txn.id).note == "cash"
        assert balance_of(repo, seeded.account.id) == Decimal("990.00")
        assert amount_of(repo, seeded.budget_b.id) == Decimal("490.00")
        assert audit.messages[-1] == "Transaction 'Corner shop' updated"

    def test_category_change_keeps_type(self, repo, ledger, seeded):
        txn = _expense(ledger, seeded, "10.00")

        _update(ledger, txn, category_id=seeded.salary.id)

        stored = ledger.get_transaction(txn.id)
        assert stored.category_id == seeded.salary.id
        assert stored.transaction_type == TransactionType.EXPENSE
        assert balance_of(repo, seeded.account.id) == Decimal("990.00")

    def test_missing_transaction(self, ledger, seeded):
        with pytest.raises(NotFoundError):
            ledger.update_transaction(
                999,
                account_id=seeded.account.id,
                category_id=seeded.groceries.id,
                description="x",
                amount=1,
                transaction_date=datetime.now(timezone.utc),
            )

    def test_missing_new_category(self, repo, ledger, seeded):
        txn = _expense(ledger, seeded, "10.00")

        with pytest.raises(NotFoundError):
            _update(ledger, txn, category_id=999, amount=Decimal("50"))

        assert balance_of(repo, seeded.account.id) == Decimal("990.00")

    def test_missing_new_account_rolls_back(self, repo, ledger, seeded):
        txn = _expense(ledger, seeded, "10.00")

        with pytest.raises(NotFoundError):
            _update(ledger, txn, account_id=999)

        assert balance_of(repo, seeded.account.id) == Decimal("990.00")
        assert ledger.get_transaction(txn.id).account_id == seeded.account.id


class TestDeleteTransaction:
    """Tests for removing transactions."""

    def test_scenario_create_update_delete(self, repo, ledger, seeded, audit):
        txn = _expense(ledger, seeded, "200.00", description="Groceries run")
        assert balance_of(repo, seeded.account.id) == Decimal("800.00")

        _update(ledger, txn, amount=Decimal("350.00"))
        assert balance_of(repo, seeded.account.id) == Decimal("650.00")

        ledger.delete_transaction(txn.id)
        assert balance_of(repo, seeded.account.id) == Decimal("1000.00")
        assert audit.messages == [
            "New transaction 'Groceries run' created",
            "Transaction 'Groceries run' updated",
            "Transaction 'Groceries run' removed",
        ]

    def test_restores_budget(self, repo, ledger, seeded):
        txn = _expense(ledger, seeded, "120.00", budget_id=seeded.budget_b.id)

        ledger.delete_transaction(txn.id)

        assert amount_of(repo, seeded.budget_b.id) == Decimal("500.00")
        with pytest.raises(NotFoundError):
            ledger.get_transaction(txn.id)

    def test_income(self, repo, ledger, seeded):
        txn = ledger.create_transaction(
            user_id=USER,
            account_id=seeded.account.id,
            category_id=seeded.salary.id,
            description="Gift",
            amount="25",
        )

        ledger.delete_transaction(txn.id)

        assert balance_of(repo, seeded.account.id) == Decimal("1000.00")

    def test_missing(self, ledger, seeded):
        with pytest.raises(NotFoundError):
            ledger.delete_transaction(12345)


class TestAtomicity:
    """Tests that a failed step leaves no partial mutation."""

    def test_budget_write_failure_rolls_back_create(self, repo, ledger, seeded, monkeypatch):
        def fail(*args, **kwargs):
            raise sqlite3.OperationalError("disk I/O error")

        monkeypatch.setattr(repo.budgets, "set_amount", fail)

        with pytest.raises(sqlite3.OperationalError, match="disk I/O error"):
            _expense(ledger, seeded, "100.00", budget_id=seeded.budget_b.id)

        assert balance_of(repo, seeded.account.id) == Decimal("1000.00")
        assert amount_of(repo, seeded.budget_b.id) == Decimal("500.00")
        assert ledger.get_transactions(USER) == []

    def test_row_write_failure_rolls_back_update(self, repo, ledger, seeded, monkeypatch):
        txn = _expense(ledger, seeded, "100.00", budget_id=seeded.budget_b.id)

        def fail(*args, **kwargs):
            raise sqlite3.IntegrityError("constraint failed")

        monkeypatch.setattr(repo.transactions, "update", fail)

        with pytest.raises(sqlite3.IntegrityError):
            _update(ledger, txn, amount=Decimal("400.00"), budget_id=seeded.budget_c.id)

        assert balance_of(repo, seeded.account.id) == Decimal("900.00")
        assert amount_of(repo, seeded.budget_b.id) == Decimal("400.00")
        assert amount_of(repo, seeded.budget_c.id) == Decimal("300.00")

    def test_no_audit_entry_on_failure(self, ledger, seeded, audit):
        with pytest.raises(NotFoundError):
            _expense(ledger, seeded, "10", budget_id=999)
        assert audit.entries == []

    def test_audit_failure_does_not_fail_mutation(self, repo, seeded):
        class BrokenAudit:
            def log(self, user_id, message):
                raise RuntimeError("sink down")

        ledger = LedgerService(repo, BrokenAudit())
        txn = _expense(ledger, seeded, "10")

        assert ledger.get_transaction(txn.id).amount == Decimal("10")
        assert balance_of(repo, seeded.account.id) == Decimal("990.00")


class TestConservation:
    """Balance and budget figures always match the surviving transactions."""

    def test_random_sequence(self, repo, ledger, seeded):
        rng = random.Random(42)
        accounts = [seeded.account.id, seeded.savings.id]
        budgets = [None, seeded.budget_b.id, seeded.budget_c.id]
        categories = [seeded.groceries.id, seeded.rent.id, seeded.salary.id]
        live = []

        for _ in range(60):
            action = rng.choice(["create", "create", "update", "delete"])
            if action == "create" or not live:
                txn = ledger.create_transaction(
                    user_id=USER,
                    account_id=rng.choice(accounts),
                    category_id=rng.choice(categories),
                    description="random",
                    amount=Decimal(rng.randint(1, 50000)) / 100,
                    budget_id=rng.choice(budgets),
                )
                live.append(txn.id)
            elif action == "update":
                txn = ledger.get_transaction(rng.choice(live))
                _update(
                    ledger,
                    txn,
                    account_id=rng.choice(accounts),
                    budget_id=rng.choice(budgets),
                    amount=Decimal(rng.randint(1, 50000)) / 100,
                )
            else:
                txn_id = rng.choice(live)
                ledger.delete_transaction(txn_id)
                live.remove(txn_id)

        survivors = [ledger.get_transaction(txn_id) for txn_id in live]
        opening = {seeded.account.id: Decimal("1000.00"), seeded.savings.id: Decimal("250.00")}
        targets = {seeded.budget_b.id: Decimal("500.00"), seeded.budget_c.id: Decimal("300.00")}

        for account_id, opening_balance in opening.items():
            expected = opening_balance + sum(
                (t.signed_amount for t in survivors if t.account_id == account_id),
                Decimal("0"),
            )
            assert balance_of(repo, account_id) == expected

        for budget_id, target in targets.items():
            expected = target - sum(
                (t.amount for t in survivors if t.budget_id == budget_id), Decimal("0")
            )
            assert amount_of(repo, budget_id) == expected

    def test_concurrent_creates_do_not_lose_updates(self, repo, ledger, seeded):
        errors = []

        def worker():
            try:
                for _ in range(15):
                    _expense(ledger, seeded, "1.00", budget_id=seeded.budget_b.id)
            except Exception as e:  # pragma: no cover - reported below
                errors.append(e)

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert errors == []
        assert balance_of(repo, seeded.account.id) == Decimal("940.00")
        assert amount_of(repo, seeded.budget_b.id) == Decimal("440.00")


class TestQueries:
    """Tests for listing and aggregates."""

    @pytest.fixture
    def history(self, ledger, seeded):
        tz = timezone.utc
        return [
            _expense(ledger, seeded, "10", description="Bakery",
                     transaction_date=datetime(2026, 1, 5, 9, tzinfo=tz)),
            _expense(ledger, seeded, "20", description="Supermarket",
                     transaction_date=datetime(2026, 1, 20, 18, tzinfo=tz),
                     budget_id=seeded.budget_b.id),
            ledger.create_transaction(
                user_id=USER, account_id=seeded.savings.id,
                category_id=seeded.salary.id, description="Salary",
                amount="1000", transaction_date=datetime(2026, 2, 1, 8, tzinfo=tz),
            ),
            ledger.create_transaction(
                user_id=USER, account_id=seeded.account.id,
                category_id=seeded.rent.id, description="Rent",
                amount="400", transaction_date=datetime(2026, 2, 2, 8, tzinfo=tz),
            ),
        ]

    def test_newest_first(self, ledger, history):
        listed = ledger.get_transactions(USER)
        assert [t.description for t in listed] == ["Rent", "Salary", "Supermarket", "Bakery"]

    def test_pagination(self, ledger, history):
        first = ledger.get_transactions(USER, page=1, limit=3)
        second = ledger.get_transactions(USER, page=2, limit=3)
        assert len(first) == 3
        assert [t.description for t in second] == ["Bakery"]

    def test_filters(self, ledger, seeded, history):
        assert [t.description for t in ledger.get_transactions(USER, description="market")] == [
            "Supermarket"
        ]
        assert len(ledger.get_transactions(USER, account_id=seeded.savings.id)) == 1
        assert len(ledger.get_transactions(USER, category_id=seeded.groceries.id)) == 2
        assert len(ledger.get_transactions(USER, budget_id=seeded.budget_b.id)) == 1
        january = ledger.get_transactions(
            USER, start_date=date(2026, 1, 1), end_date=date(2026, 1, 31)
        )
        assert {t.description for t in january} == {"Bakery", "Supermarket"}
        assert ledger.get_transactions(OTHER_USER) == []

    def test_end_date_is_inclusive(self, ledger, history):
        listed = ledger.get_transactions(USER, end_date=date(2026, 1, 20))
        assert {t.description for t in listed} == {"Bakery", "Supermarket"}

    def test_invalid_range(self, ledger, history):
        with pytest.raises(ValidationError):
            ledger.get_transactions(USER, start_date=date(2026, 2, 1), end_date=date(2026, 1, 1))

    def test_aggregate(self, ledger, history):
        totals = ledger.get_aggregate(USER)
        assert totals == {
            "total_income": Decimal("1000"),
            "total_expenses": Decimal("430"),
            "net_income": Decimal("570"),
        }

        february = ledger.get_aggregate(USER, date(2026, 2, 1), date(2026, 2, 28))
        assert february["total_expenses"] == Decimal("400")

    def test_spending_by_category(self, ledger, history):
        assert ledger.get_spending_by_category(USER) == [
            {"category": "Rent", "amount": Decimal("400")},
            {"category": "Groceries", "amount": Decimal("30")},
        ]
