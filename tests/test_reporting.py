from datetime import date
from decimal import Decimal

from bookkeeping.config import DEFAULT_CONFIG
from bookkeeping.engine import VoucherEngine
from bookkeeping.models import VoucherDraft, VoucherType
from bookkeeping.registry import LedgerRegistry
from bookkeeping.reporting import (
    OPENING_DIFFERENCE_LABEL,
    balance_sheet,
    dashboard_metrics,
    day_book,
    profit_and_loss,
    trial_balance,
)


def _book(cash_opening=50000):
    registry = LedgerRegistry()
    registry.create_ledger("Cash", "cash-in-hand", cash_opening)
    registry.create_ledger("Sales Accounts", "sales-accounts")
    registry.create_ledger("Purchase Accounts", "purchase-accounts")
    registry.create_ledger("Mehta Supplies", "sundry-creditors")
    registry.create_ledger("Ravi Traders", "sundry-debtors")
    registry.create_ledger("Rent", "indirect-expenses")
    return registry, VoucherEngine(registry, DEFAULT_CONFIG)


def _post(engine, vtype, day, party, *lines):
    return engine.post(
        VoucherDraft(
            type=vtype,
            date=day,
            party_ledger_id=party,
            items=[
                {"ledger_id": ledger, "type": side, "amount": amount}
                for ledger, side, amount in lines
            ],
        )
    ).voucher


def _cash_sale(engine, amount=135000, day="2024-12-26"):
    return _post(
        engine, "sales", day, "Cash",
        ("Sales Accounts", "credit", amount),
        ("Cash", "debit", amount),
    )


def _rows(report):
    return {row.name: (row.debit, row.credit) for row in report.rows}


def test_trial_balance_for_cash_sale():
    registry, engine = _book()
    _cash_sale(engine)

    report = trial_balance(registry, engine.vouchers)

    rows = _rows(report)
    assert rows["Cash"] == (Decimal("185000.00"), Decimal("0"))
    assert rows["Sales Accounts"] == (Decimal("0"), Decimal("135000.00"))
    assert rows[OPENING_DIFFERENCE_LABEL] == (Decimal("0"), Decimal("50000.00"))
    assert report.total_debit == report.total_credit == Decimal("185000.00")
    assert report.balanced
    assert [w.code for w in report.warnings] == ["OPENING_BALANCE_DIFFERENCE"]


def test_trial_balance_balances_for_zero_opening_book():
    registry, engine = _book(cash_opening=0)
    _cash_sale(engine, 1000)
    _post(
        engine, "purchase", "2024-12-27", "Mehta Supplies",
        ("Purchase Accounts", "debit", 400),
        ("Mehta Supplies", "credit", 400),
    )
    report = trial_balance(registry, engine.vouchers)
    assert report.total_debit == report.total_credit == Decimal("1400.00")
    assert report.warnings == []
    assert OPENING_DIFFERENCE_LABEL not in _rows(report)


def test_trial_balance_flags_drift_from_history():
    registry, engine = _book(cash_opening=0)
    _cash_sale(engine, 1000)
    registry.find_by_name("Cash").current_balance += Decimal("5")

    report = trial_balance(registry, engine.vouchers)

    codes = [w.code for w in report.warnings]
    assert "LEDGER_BALANCE_DRIFT" in codes
    assert "TRIAL_BALANCE_MISMATCH" in codes
    assert not report.balanced


def test_trial_balance_as_of_replays_history():
    registry, engine = _book(cash_opening=0)
    _cash_sale(engine, 1000, "2024-12-01")
    _cash_sale(engine, 500, "2024-12-20")

    report = trial_balance(registry, engine.vouchers, as_of="2024-12-10")

    assert report.as_of == date(2024, 12, 10)
    assert _rows(report)["Cash"] == (Decimal("1000.00"), Decimal("0"))
    assert report.total_debit == report.total_credit == Decimal("1000.00")


def test_balance_sheet_identity_holds():
    registry, engine = _book()
    _cash_sale(engine)
    _post(
        engine, "purchase", "2024-12-27", "Mehta Supplies",
        ("Purchase Accounts", "debit", 20000),
        ("Mehta Supplies", "credit", 20000),
    )
    _post(
        engine, "journal", "2024-12-28", None,
        ("Rent", "debit", 5000),
        ("Cash", "credit", 5000),
    )

    sheet = balance_sheet(registry, engine.vouchers)

    assert sheet.balanced
    assert sheet.total_assets == Decimal("180000.00")
    assert sheet.total_liabilities == Decimal("20000.00")
    equity = {line.name: line.amount for line in sheet.equity}
    assert equity["Profit & Loss A/c"] == Decimal("110000.00")
    assert equity[OPENING_DIFFERENCE_LABEL] == Decimal("50000.00")
    assert sheet.total_assets == sheet.total_liabilities + sheet.total_equity
    assert [w.code for w in sheet.warnings] == ["OPENING_BALANCE_DIFFERENCE"]


def test_balance_sheet_capital_is_credit_positive():
    registry = LedgerRegistry()
    registry.create_ledger("Cash", "cash-in-hand", 10000)
    registry.create_ledger("Owner Capital", "capital-account", -10000)

    sheet = balance_sheet(registry)

    assert sheet.equity[0].name == "Owner Capital"
    assert sheet.equity[0].amount == Decimal("10000.00")
    assert sheet.balanced
    assert sheet.warnings == []


def test_reports_are_idempotent_and_read_only():
    registry, engine = _book()
    _cash_sale(engine)
    before = [ledger.to_dict() for ledger in registry.list_ledgers(active_only=False)]

    first = trial_balance(registry, engine.vouchers).to_dict()
    second = trial_balance(registry, engine.vouchers).to_dict()
    assert first == second
    assert balance_sheet(registry).to_dict() == balance_sheet(registry).to_dict()
    assert day_book(registry, engine.vouchers).to_dict() == day_book(registry, engine.vouchers).to_dict()
    assert [ledger.to_dict() for ledger in registry.list_ledgers(active_only=False)] == before


def test_day_book_filters_by_type():
    registry, engine = _book()
    sale = _cash_sale(engine)
    _post(
        engine, "purchase", "2024-12-27", "Mehta Supplies",
        ("Purchase Accounts", "debit", 20000),
        ("Mehta Supplies", "credit", 20000),
    )

    book = day_book(registry, engine.vouchers, "2024-12-01", "2024-12-31", "sales")

    assert len(book.rows) == 2
    assert {row.voucher_id for row in book.rows} == {sale.id}
    assert book.voucher_type is VoucherType.SALES
    assert book.total_debit == book.total_credit == Decimal("135000.00")
    assert book.balanced

    everything = day_book(registry, engine.vouchers, voucher_type="all")
    assert len(everything.rows) == 4
    assert [row.date for row in everything.rows] == sorted(row.date for row in everything.rows)


def test_day_book_respects_date_range():
    registry, engine = _book()
    _cash_sale(engine, 100, "2024-11-30")
    _cash_sale(engine, 200, "2024-12-01")
    book = day_book(registry, engine.vouchers, start="2024-12-01")
    assert book.total_debit == Decimal("200.00")


def test_profit_and_loss_excludes_reversed_vouchers():
    registry, engine = _book()
    _cash_sale(engine)
    mistake = _cash_sale(engine, 999)
    engine.reverse_voucher(mistake.id, "duplicate")
    _post(
        engine, "purchase", "2024-12-27", "Mehta Supplies",
        ("Purchase Accounts", "debit", 20000),
        ("Mehta Supplies", "credit", 20000),
    )
    _post(
        engine, "journal", "2024-12-28", None,
        ("Rent", "debit", 5000),
        ("Cash", "credit", 5000),
    )

    pnl = profit_and_loss(registry, engine.vouchers)

    assert pnl.total_income == Decimal("135000.00")
    assert pnl.total_expenses == Decimal("25000.00")
    assert pnl.gross_profit == Decimal("115000.00")
    assert pnl.net_profit == Decimal("110000.00")
    sales = next(s for s in pnl.income if s.category == "Sales Accounts")
    assert [(line.name, line.amount) for line in sales.items] == [("Cash", Decimal("135000.00"))]


def test_profit_and_loss_nets_returns_and_uses_period_movement():
    registry, engine = _book()
    _post(
        engine, "sales", "2024-12-05", "Ravi Traders",
        ("Ravi Traders", "debit", 10000),
        ("Sales Accounts", "credit", 10000),
    )
    _post(
        engine, "credit-note", "2024-12-10", "Ravi Traders",
        ("Sales Accounts", "debit", 1500),
        ("Ravi Traders", "credit", 1500),
    )
    _post(engine, "journal", "2024-11-15", None, ("Rent", "debit", 700), ("Cash", "credit", 700))
    _post(engine, "journal", "2024-12-15", None, ("Rent", "debit", 300), ("Cash", "credit", 300))

    pnl = profit_and_loss(registry, engine.vouchers, "2024-12-01", "2024-12-31")

    sales = next(s for s in pnl.income if s.category == "Sales Accounts")
    assert sales.total == Decimal("8500.00")
    rent = next(s for s in pnl.expenses if s.category == "Indirect Expenses")
    assert rent.total == Decimal("300.00")
    assert pnl.net_profit == Decimal("8200.00")


def test_dashboard_metrics():
    registry, engine = _book()
    _post(
        engine, "sales", "2024-12-26", "Ravi Traders",
        ("Ravi Traders", "debit", 10000),
        ("Sales Accounts", "credit", 10000),
    )
    _post(
        engine, "purchase", "2024-12-26", "Mehta Supplies",
        ("Purchase Accounts", "debit", 4000),
        ("Mehta Supplies", "credit", 4000),
    )

    metrics = dashboard_metrics(registry, engine.vouchers, as_of="2024-12-26")

    assert metrics.total_sales == Decimal("10000.00")
    assert metrics.total_purchases == Decimal("4000.00")
    assert metrics.total_receivables == Decimal("10000.00")
    assert metrics.total_payables == Decimal("4000.00")
    assert metrics.cash_in_hand == Decimal("50000.00")
    assert metrics.bank_balance == Decimal("0")
    assert metrics.today_transactions == 2
    assert metrics.to_dict()["report"] == "dashboard"


def test_reports_on_empty_book_do_not_raise():
    registry = LedgerRegistry()
    assert trial_balance(registry, []).balanced
    assert balance_sheet(registry, []).balanced
    assert profit_and_loss(registry, []).net_profit == 0
    assert day_book(registry, []).rows == []
