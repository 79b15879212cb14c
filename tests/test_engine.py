import threading
from datetime import date
from decimal import Decimal

import pytest

from bookkeeping.config import DEFAULT_CONFIG
from bookkeeping.engine import VoucherEngine
from bookkeeping.models import BalanceSide, VoucherDraft, VoucherStatus, VoucherType
from bookkeeping.registry import LedgerRegistry
from bookkeeping.utils import NotFoundError, ValidationError, VoucherStateError


def _book():
    registry = LedgerRegistry()
    registry.create_ledger("Cash", "cash-in-hand", 50000)
    registry.create_ledger("Sales Accounts", "sales-accounts")
    registry.create_ledger("Purchase Accounts", "purchase-accounts")
    registry.create_ledger("Ravi Traders", "sundry-debtors")
    registry.create_ledger("Mehta Supplies", "sundry-creditors")
    registry.create_ledger("HDFC Bank", "bank-accounts")
    registry.create_ledger("Rent", "indirect-expenses")
    return registry, VoucherEngine(registry, DEFAULT_CONFIG)


def _balance(registry, name):
    return registry.find_by_name(name).current_balance


def _cash_sale(amount=135000, day="2024-12-26"):
    return VoucherDraft(
        type="sales",
        date=day,
        party_ledger_id="Cash",
        narration="Counter sales",
        items=[
            {"ledger_id": "Sales Accounts", "type": "credit", "amount": amount},
            {"ledger_id": "Cash", "type": "debit", "amount": amount},
        ],
    )


def test_post_cash_sale_updates_balances():
    registry, engine = _book()
    draft = _cash_sale()
    result = engine.post(draft)

    voucher = result.voucher
    assert draft.status is VoucherStatus.POSTED
    assert voucher.id == 1
    assert voucher.voucher_number == "SAL/0001"
    assert voucher.status is VoucherStatus.POSTED
    assert voucher.date == date(2024, 12, 26)
    assert voucher.total_amount == Decimal("135000.00")
    assert _balance(registry, "Cash") == Decimal("185000.00")
    assert _balance(registry, "Sales Accounts") == Decimal("-135000.00")
    assert result.balances == {
        2: Decimal("-135000.00"),
        1: Decimal("185000.00"),
    }
    assert engine.vouchers == [voucher]


def test_posted_lines_sum_to_zero():
    registry, engine = _book()
    engine.post(_cash_sale())
    engine.post(
        VoucherDraft(
            type="payment",
            date="2024-12-27",
            party_ledger_id="Mehta Supplies",
            items=[
                {"ledger_id": "Mehta Supplies", "type": "debit", "amount": "1200.50"},
                {"ledger_id": "Cash", "type": "credit", "amount": "1000"},
                {"ledger_id": "HDFC Bank", "type": "credit", "amount": "200.50"},
            ],
        )
    )
    for voucher in engine.vouchers:
        assert sum(item.signed_amount for item in voucher.items) == 0
    assert sum(l.current_balance - l.opening_balance for l in registry.list_ledgers()) == 0


def test_unbalanced_voucher_is_rejected():
    registry, engine = _book()
    draft = VoucherDraft(
        type="journal",
        date="2024-12-26",
        items=[
            {"ledger_id": "Rent", "type": "debit", "amount": 100},
            {"ledger_id": "Cash", "type": "credit", "amount": "99.50"},
        ],
    )
    with pytest.raises(ValidationError) as excinfo:
        engine.post(draft)
    assert draft.status is VoucherStatus.REJECTED
    assert excinfo.value.code == "VALIDATION_FAILED"
    assert "Debit and credit amounts must be equal" in excinfo.value.message
    assert "0.50" in excinfo.value.message
    assert _balance(registry, "Cash") == Decimal("50000.00")
    assert _balance(registry, "Rent") == Decimal("0.00")
    assert engine.vouchers == []


def test_difference_within_tolerance_is_accepted():
    registry, engine = _book()
    engine.post(
        VoucherDraft(
            type="journal",
            date="2024-12-26",
            items=[
                {"ledger_id": "Rent", "type": "debit", "amount": "100.00"},
                {"ledger_id": "Cash", "type": "credit", "amount": "99.99"},
            ],
        )
    )
    assert _balance(registry, "Rent") == Decimal("100.00")
    assert _balance(registry, "Cash") == Decimal("49900.01")


def test_validation_reports_every_failure():
    _, engine = _book()
    errors = engine.validate(VoucherDraft(type="sales", date="", items=[]))
    fields = {e.field for e in errors}
    assert fields == {"date", "items", "party_ledger_id"}

    errors = engine.validate(VoucherDraft(type="barter", date="2024-13-01"))
    fields = {e.field for e in errors}
    assert {"type", "date", "items"} <= fields


def test_blank_and_zero_rows_are_dropped():
    registry, engine = _book()
    result = engine.post(
        VoucherDraft(
            type="receipt",
            date="2024-12-28",
            party_ledger_id="Ravi Traders",
            items=[
                {"ledger": "Cash", "debit": 500},
                {"ledger": "Ravi Traders", "credit": 500},
                {"ledger_id": "", "amount": ""},
                {"ledger_id": "Rent", "type": "debit", "amount": 0},
            ],
        )
    )
    assert len(result.voucher.items) == 2
    assert result.voucher.voucher_number == "RCT/0001"
    assert _balance(registry, "Ravi Traders") == Decimal("-500.00")
    assert registry.activity_count(registry.find_by_name("Rent").id) == 0


def test_line_errors_are_reported():
    _, engine = _book()
    errors = engine.validate(
        VoucherDraft(
            type="journal",
            date="2024-12-28",
            items=[
                {"ledger_id": "Rent", "type": "debit", "amount": -10},
                {"ledger_id": "Petty Cash", "type": "credit", "amount": 10},
                {"ledger_id": "Cash", "type": "sideways", "amount": 10},
                {"type": "debit", "amount": 10},
            ],
        )
    )
    fields = [e.field for e in errors]
    assert "items[0].amount" in fields
    assert "items[1].ledger_id" in fields
    assert "items[2].type" in fields
    assert "items[3].ledger_id" in fields


def test_party_must_belong_to_allowed_group():
    _, engine = _book()
    draft = VoucherDraft(
        type="receipt",
        date="2024-12-28",
        party_ledger_id="Sales Accounts",
        items=[
            {"ledger_id": "Cash", "type": "debit", "amount": 10},
            {"ledger_id": "Sales Accounts", "type": "credit", "amount": 10},
        ],
    )
    errors = engine.validate(draft)
    assert [e.field for e in errors] == ["party_ledger_id"]
    assert "Sundry Debtors" in errors[0].message


def test_inactive_ledger_cannot_be_posted_to():
    registry, engine = _book()
    old = registry.create_ledger("Old Rent", "indirect-expenses")
    registry.deactivate_ledger(old.id)
    errors = engine.validate(
        VoucherDraft(
            type="journal",
            date="2024-12-28",
            items=[
                {"ledger_id": old.id, "type": "debit", "amount": 10},
                {"ledger_id": "Cash", "type": "credit", "amount": 10},
            ],
        )
    )
    assert errors[0].field == "items[0].ledger_id"
    assert "inactive" in errors[0].message


def test_duplicate_voucher_number_is_rejected():
    _, engine = _book()
    first = _cash_sale()
    first.voucher_number = "INV-1"
    engine.post(first)
    second = _cash_sale(100)
    second.voucher_number = "INV-1"
    with pytest.raises(ValidationError) as excinfo:
        engine.post(second)
    assert excinfo.value.errors[0].field == "voucher_number"


def test_missing_ledger_leaves_balances_untouched():
    registry, engine = _book()
    before = {l.id: l.current_balance for l in registry.list_ledgers()}
    draft = VoucherDraft(
        type="journal",
        date="2024-12-28",
        items=[
            {"ledger_id": "Cash", "type": "credit", "amount": 10},
            {"ledger_id": 404, "type": "debit", "amount": 10},
        ],
    )
    with pytest.raises(ValidationError):
        engine.post(draft)
    assert {l.id: l.current_balance for l in registry.list_ledgers()} == before


def test_failed_apply_rolls_back_applied_lines(monkeypatch):
    registry, engine = _book()
    original = registry.apply_delta
    calls = []

    def flaky(ledger_id, amount):
        calls.append(ledger_id)
        if len(calls) == 2:
            raise RuntimeError("storage unavailable")
        return original(ledger_id, amount)

    monkeypatch.setattr(registry, "apply_delta", flaky)
    with pytest.raises(RuntimeError):
        engine.post(_cash_sale())

    assert _balance(registry, "Cash") == Decimal("50000.00")
    assert _balance(registry, "Sales Accounts") == Decimal("0.00")
    assert not registry.has_activity(registry.find_by_name("Sales Accounts").id)
    assert engine.vouchers == []


def test_reverse_voucher_restores_balances():
    registry, engine = _book()
    posted = engine.post(_cash_sale()).voucher
    result = engine.reverse_voucher(posted.id, "Entered twice")

    reversal = result.voucher
    assert reversal.reverses_id == posted.id
    assert reversal.type is VoucherType.SALES
    assert reversal.date == posted.date
    assert reversal.items[0].side is BalanceSide.DEBIT
    assert posted.status is VoucherStatus.REVERSED
    assert posted.reversed_by_id == reversal.id
    assert result.updated_vouchers == [posted]
    assert _balance(registry, "Cash") == Decimal("50000.00")
    assert _balance(registry, "Sales Accounts") == Decimal("0.00")

    with pytest.raises(VoucherStateError):
        engine.reverse_voucher(posted.id, "again")
    with pytest.raises(VoucherStateError):
        engine.reverse_voucher(reversal.id, "undo the undo")
    with pytest.raises(NotFoundError):
        engine.reverse_voucher(99, "missing")


def test_correct_voucher_supersedes_original():
    registry, engine = _book()
    posted = engine.post(_cash_sale()).voucher
    reversal, correction = engine.correct_voucher(posted.id, _cash_sale(130000), "Wrong amount")

    assert posted.status is VoucherStatus.SUPERSEDED
    assert posted.reversed_by_id == reversal.voucher.id
    assert correction.voucher.status is VoucherStatus.POSTED
    assert correction.voucher.voucher_number == "SAL/0003"
    assert correction.voucher.reason.startswith("Correction of SAL/0001")
    assert _balance(registry, "Cash") == Decimal("180000.00")
    assert _balance(registry, "Sales Accounts") == Decimal("-130000.00")


def test_invalid_correction_changes_nothing():
    registry, engine = _book()
    posted = engine.post(_cash_sale()).voucher
    bad = _cash_sale(130000)
    bad.items[0]["amount"] = 1
    with pytest.raises(ValidationError):
        engine.correct_voucher(posted.id, bad, "Wrong amount")
    assert posted.status is VoucherStatus.POSTED
    assert len(engine.vouchers) == 1
    assert _balance(registry, "Cash") == Decimal("185000.00")


def test_merge_ledger_transfers_balance_and_deactivates():
    registry, engine = _book()
    engine.post(
        VoucherDraft(
            type="sales",
            date="2024-12-26",
            party_ledger_id="Ravi Traders",
            items=[
                {"ledger_id": "Ravi Traders", "type": "debit", "amount": 1000},
                {"ledger_id": "Sales Accounts", "type": "credit", "amount": 1000},
            ],
        )
    )
    source = registry.find_by_name("Ravi Traders")
    target = registry.create_ledger("Ravi Traders Pvt Ltd", "sundry-debtors")

    result = engine.merge_ledger(source.id, target.id, "2024-12-31")

    assert result.voucher.type is VoucherType.JOURNAL
    assert result.voucher.voucher_number == "JRN/0001"
    assert source.current_balance == Decimal("0.00")
    assert target.current_balance == Decimal("1000.00")
    assert not source.is_active
    assert source.merged_into == target.id


def test_concurrent_postings_do_not_lose_updates():
    registry, engine = _book()
    errors = []

    def worker():
        try:
            for _ in range(25):
                engine.post(_cash_sale(10))
        except Exception as exc:
            errors.append(exc)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    assert _balance(registry, "Cash") == Decimal("52000.00")
    assert _balance(registry, "Sales Accounts") == Decimal("-2000.00")
    numbers = [v.voucher_number for v in engine.vouchers]
    assert len(set(numbers)) == 200


def test_oversized_amount_is_a_field_error():
    _, engine = _book()
    errors = engine.validate(
        VoucherDraft(
            type="journal",
            date="2024-12-28",
            items=[
                {"ledger_id": "Cash", "type": "debit", "amount": "1e30"},
                {"ledger_id": "Rent", "type": "credit", "amount": 10},
            ],
        )
    )
    assert "items[0].amount" in [e.field for e in errors]


def test_reversal_touching_merged_ledger_is_rejected():
    registry, engine = _book()
    posted = engine.post(
        VoucherDraft(
            type="sales",
            date="2024-12-26",
            party_ledger_id="Ravi Traders",
            items=[
                {"ledger_id": "Ravi Traders", "type": "debit", "amount": 1000},
                {"ledger_id": "Sales Accounts", "type": "credit", "amount": 1000},
            ],
        )
    ).voucher
    source = registry.find_by_name("Ravi Traders")
    target = registry.create_ledger("Ravi Traders Pvt Ltd", "sundry-debtors")
    engine.merge_ledger(source.id, target.id, "2024-12-31")

    with pytest.raises(ValidationError) as excinfo:
        engine.reverse_voucher(posted.id, "oops")
    assert [e.field for e in excinfo.value.errors] == ["items[0].ledger_id"]
    assert posted.status is VoucherStatus.POSTED
    assert source.current_balance == Decimal("0.00")
    assert target.current_balance == Decimal("1000.00")
    assert len(engine.vouchers) == 2


def test_bad_dates_on_reverse_and_merge_are_field_errors():
    registry, engine = _book()
    posted = engine.post(_cash_sale()).voucher
    with pytest.raises(ValidationError) as excinfo:
        engine.reverse_voucher(posted.id, "oops", "not-a-date")
    assert excinfo.value.errors[0].field == "date"
    assert posted.status is VoucherStatus.POSTED

    cash = registry.find_by_name("Cash")
    bank = registry.find_by_name("HDFC Bank")
    with pytest.raises(ValidationError) as excinfo:
        engine.merge_ledger(cash.id, bank.id, "2024-13-45")
    assert excinfo.value.errors[0].field == "date"
    assert cash.is_active
    assert cash.current_balance == Decimal("185000.00")
