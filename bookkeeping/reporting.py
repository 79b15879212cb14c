#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Financial statements derived from ledger balances and posted vouchers.

Every function here is read-only: it never mutates the registry or the
vouchers it is given, and it never raises on empty or inconsistent books.
Failed self-checks come back as ``IntegrityWarning`` records on the report.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from bookkeeping.models import GroupNature, Ledger, LedgerGroup, Voucher, VoucherStatus, VoucherType
from bookkeeping.registry import LedgerRegistry
from bookkeeping.utils import IntegrityWarning, ZERO, parse_date, to_jsonable


logger = logging.getLogger(__name__)

DEFAULT_TOLERANCE = Decimal("0.01")
OPENING_DIFFERENCE_LABEL = "Difference in Opening Balances"

ASSET_SECTIONS: Tuple[Tuple[str, Tuple[LedgerGroup, ...]], ...] = (
    (
        "Current Assets",
        (
            LedgerGroup.CASH_IN_HAND,
            LedgerGroup.BANK_ACCOUNTS,
            LedgerGroup.SUNDRY_DEBTORS,
            LedgerGroup.CURRENT_ASSETS,
        ),
    ),
    ("Fixed Assets", (LedgerGroup.FIXED_ASSETS,)),
)

LIABILITY_SECTIONS: Tuple[Tuple[str, Tuple[LedgerGroup, ...]], ...] = (
    ("Current Liabilities", (LedgerGroup.SUNDRY_CREDITORS, LedgerGroup.CURRENT_LIABILITIES)),
)


@dataclass
class ReportLine:
    name: str
    amount: Decimal
    ledger_id: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "amount": self.amount, "ledger_id": self.ledger_id}


@dataclass
class ReportSection:
    category: str
    items: List[ReportLine] = field(default_factory=list)

    @property
    def total(self) -> Decimal:
        return sum((item.amount for item in self.items), ZERO)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "category": self.category,
            "items": [item.to_dict() for item in self.items],
            "total": self.total,
        }


@dataclass
class TrialBalanceRow:
    ledger_id: Optional[int]
    name: str
    group: Optional[LedgerGroup]
    debit: Decimal
    credit: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ledger_id": self.ledger_id,
            "name": self.name,
            "group": self.group.value if self.group else None,
            "debit": self.debit,
            "credit": self.credit,
        }


@dataclass
class TrialBalance:
    as_of: Optional[date]
    rows: List[TrialBalanceRow]
    total_debit: Decimal
    total_credit: Decimal
    opening_difference: Decimal
    balanced: bool
    warnings: List[IntegrityWarning] = field(default_factory=list)

    report_type = "trial_balance"

    def to_dict(self) -> Dict[str, Any]:
        return to_jsonable(
            {
                "report": self.report_type,
                "as_of": self.as_of,
                "ledgers": [row.to_dict() for row in self.rows],
                "total_debit": self.total_debit,
                "total_credit": self.total_credit,
                "opening_difference": self.opening_difference,
                "balanced": self.balanced,
                "warnings": [w.to_dict() for w in self.warnings],
            }
        )


@dataclass
class BalanceSheet:
    as_of: Optional[date]
    assets: List[ReportSection]
    liabilities: List[ReportSection]
    equity: List[ReportLine]
    balanced: bool
    warnings: List[IntegrityWarning] = field(default_factory=list)

    report_type = "balance_sheet"

    @property
    def total_assets(self) -> Decimal:
        return sum((section.total for section in self.assets), ZERO)

    @property
    def total_liabilities(self) -> Decimal:
        return sum((section.total for section in self.liabilities), ZERO)

    @property
    def total_equity(self) -> Decimal:
        return sum((line.amount for line in self.equity), ZERO)

    def to_dict(self) -> Dict[str, Any]:
        return to_jsonable(
            {
                "report": self.report_type,
                "as_of": self.as_of,
                "assets": [s.to_dict() for s in self.assets],
                "liabilities": [s.to_dict() for s in self.liabilities],
                "equity": [line.to_dict() for line in self.equity],
                "total_assets": self.total_assets,
                "total_liabilities": self.total_liabilities,
                "total_equity": self.total_equity,
                "balanced": self.balanced,
                "warnings": [w.to_dict() for w in self.warnings],
            }
        )


@dataclass
class ProfitAndLoss:
    start: Optional[date]
    end: Optional[date]
    income: List[ReportSection]
    expenses: List[ReportSection]

    report_type = "profit_and_loss"

    @property
    def total_income(self) -> Decimal:
        return sum((s.total for s in self.income), ZERO)

    @property
    def total_expenses(self) -> Decimal:
        return sum((s.total for s in self.expenses), ZERO)

    @property
    def gross_profit(self) -> Decimal:
        direct_income = sum(
            (s.total for s in self.income if s.category in ("Sales Accounts", "Direct Incomes")),
            ZERO,
        )
        direct_expense = sum(
            (s.total for s in self.expenses if s.category in ("Purchase Accounts", "Direct Expenses")),
            ZERO,
        )
        return direct_income - direct_expense

    @property
    def net_profit(self) -> Decimal:
        return self.total_income - self.total_expenses

    def to_dict(self) -> Dict[str, Any]:
        return to_jsonable(
            {
                "report": self.report_type,
                "start": self.start,
                "end": self.end,
                "income": [s.to_dict() for s in self.income],
                "expenses": [s.to_dict() for s in self.expenses],
                "total_income": self.total_income,
                "total_expenses": self.total_expenses,
                "gross_profit": self.gross_profit,
                "net_profit": self.net_profit,
            }
        )


@dataclass
class DayBookRow:
    date: date
    voucher_id: int
    voucher_number: str
    voucher_type: VoucherType
    party: Optional[str]
    status: VoucherStatus
    ledger_id: int
    ledger: str
    particulars: Optional[str]
    narration: Optional[str]
    debit: Decimal
    credit: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date,
            "voucher_id": self.voucher_id,
            "voucher_number": self.voucher_number,
            "voucher_type": self.voucher_type.value,
            "party": self.party,
            "status": self.status.value,
            "ledger_id": self.ledger_id,
            "ledger": self.ledger,
            "particulars": self.particulars,
            "narration": self.narration,
            "debit": self.debit,
            "credit": self.credit,
        }


@dataclass
class DayBook:
    start: Optional[date]
    end: Optional[date]
    voucher_type: Optional[VoucherType]
    rows: List[DayBookRow]
    warnings: List[IntegrityWarning] = field(default_factory=list)

    report_type = "day_book"

    @property
    def total_debit(self) -> Decimal:
        return sum((row.debit for row in self.rows), ZERO)

    @property
    def total_credit(self) -> Decimal:
        return sum((row.credit for row in self.rows), ZERO)

    @property
    def balanced(self) -> bool:
        return abs(self.total_debit - self.total_credit) <= DEFAULT_TOLERANCE

    def to_dict(self) -> Dict[str, Any]:
        return to_jsonable(
            {
                "report": self.report_type,
                "start": self.start,
                "end": self.end,
                "voucher_type": self.voucher_type.value if self.voucher_type else None,
                "transactions": [row.to_dict() for row in self.rows],
                "total_debit": self.total_debit,
                "total_credit": self.total_credit,
                "balanced": self.balanced,
                "warnings": [w.to_dict() for w in self.warnings],
            }
        )


@dataclass
class DashboardMetrics:
    as_of: date
    total_sales: Decimal
    total_purchases: Decimal
    total_receivables: Decimal
    total_payables: Decimal
    cash_in_hand: Decimal
    bank_balance: Decimal
    today_transactions: int
    voucher_count: int

    report_type = "dashboard"

    def to_dict(self) -> Dict[str, Any]:
        return to_jsonable(
            {
                "report": self.report_type,
                "as_of": self.as_of,
                "total_sales": self.total_sales,
                "total_purchases": self.total_purchases,
                "total_receivables": self.total_receivables,
                "total_payables": self.total_payables,
                "cash_in_hand": self.cash_in_hand,
                "bank_balance": self.bank_balance,
                "today_transactions": self.today_transactions,
                "voucher_count": self.voucher_count,
            }
        )


# ----------------------------------------------------------------------
# helpers


def _optional_date(value: Any) -> Optional[date]:
    return parse_date(value) if value else None


def _in_range(day: Optional[date], start: Optional[date], end: Optional[date]) -> bool:
    if day is None:
        return False
    return (start is None or day >= start) and (end is None or day <= end)


def _applied(vouchers: Optional[Iterable[Voucher]]) -> List[Voucher]:
    return [v for v in (vouchers or []) if v.status.applied]


def _effective(vouchers: Optional[Iterable[Voucher]]) -> List[Voucher]:
    """Vouchers still standing: posted, not reversed, and not reversals themselves."""
    return [
        v for v in (vouchers or [])
        if v.status is VoucherStatus.POSTED and v.reverses_id is None
    ]


def _all_ledgers(registry: LedgerRegistry) -> List[Ledger]:
    return registry.list_ledgers(active_only=False)


def _ledger_name(registry: LedgerRegistry, ledger_id: Optional[int]) -> Optional[str]:
    if ledger_id is None:
        return None
    if ledger_id in registry:
        return registry.get_ledger(ledger_id).name
    return f"#{ledger_id}"


def _replay(
    registry: LedgerRegistry,
    vouchers: Iterable[Voucher],
    as_of: Optional[date],
    warnings: List[IntegrityWarning],
) -> Dict[int, Decimal]:
    """Opening balances plus every applied line dated on or before ``as_of``."""
    balances = {ledger.id: ledger.opening_balance for ledger in _all_ledgers(registry)}
    for voucher in _applied(vouchers):
        if as_of is not None and (voucher.date is None or voucher.date > as_of):
            continue
        for item in voucher.items:
            if item.ledger_id not in balances:
                warnings.append(
                    IntegrityWarning(
                        "UNKNOWN_LEDGER",
                        f"Voucher {voucher.voucher_number} references unknown ledger {item.ledger_id}",
                        {"voucher_id": voucher.id, "ledger_id": item.ledger_id},
                    )
                )
                continue
            balances[item.ledger_id] += item.signed_amount
    return balances


def _balances(
    registry: LedgerRegistry,
    vouchers: Optional[Sequence[Voucher]],
    as_of: Optional[date],
    warnings: List[IntegrityWarning],
    tolerance: Decimal,
) -> Dict[int, Decimal]:
    current = {ledger.id: ledger.current_balance for ledger in _all_ledgers(registry)}
    if vouchers is None:
        return current
    replayed = _replay(registry, vouchers, None, warnings)
    for ledger_id, expected in replayed.items():
        if abs(current[ledger_id] - expected) > tolerance:
            warnings.append(
                IntegrityWarning(
                    "LEDGER_BALANCE_DRIFT",
                    f"{_ledger_name(registry, ledger_id)}: balance {current[ledger_id]} "
                    f"does not match posted history {expected}",
                    {"ledger_id": ledger_id, "current": current[ledger_id], "expected": expected},
                )
            )
    if as_of is None:
        return current
    return _replay(registry, vouchers, as_of, [])


def _opening_difference(registry: LedgerRegistry) -> Decimal:
    return sum((ledger.opening_balance for ledger in _all_ledgers(registry)), ZERO)


def _log_warnings(report: str, warnings: List[IntegrityWarning]) -> None:
    for warning in warnings:
        logger.warning(
            "%s: %s", report, warning.message, extra={"warning_code": warning.code}
        )


def _visible(ledger: Ledger, balance: Decimal) -> bool:
    return ledger.is_active or balance != ZERO


# ----------------------------------------------------------------------
# reports


def trial_balance(
    registry: LedgerRegistry,
    vouchers: Optional[Sequence[Voucher]] = None,
    as_of: Any = None,
    tolerance: Decimal = DEFAULT_TOLERANCE,
) -> TrialBalance:
    """Split every ledger balance into debit and credit columns.

    With ``vouchers`` the registry balances are cross-checked against the
    posted history; with ``as_of`` as well, balances are replayed up to
    that date instead of read from the registry.
    """
    warnings: List[IntegrityWarning] = []
    cutoff = _optional_date(as_of)
    balances = _balances(registry, vouchers, cutoff, warnings, tolerance)

    rows: List[TrialBalanceRow] = []
    for ledger in _all_ledgers(registry):
        balance = balances.get(ledger.id, ZERO)
        if not _visible(ledger, balance):
            continue
        rows.append(
            TrialBalanceRow(
                ledger_id=ledger.id,
                name=ledger.name,
                group=ledger.group,
                debit=balance if balance >= ZERO else ZERO,
                credit=-balance if balance < ZERO else ZERO,
            )
        )

    opening_difference = _opening_difference(registry)
    if opening_difference != ZERO:
        rows.append(
            TrialBalanceRow(
                ledger_id=None,
                name=OPENING_DIFFERENCE_LABEL,
                group=None,
                debit=-opening_difference if opening_difference < ZERO else ZERO,
                credit=opening_difference if opening_difference > ZERO else ZERO,
            )
        )
        warnings.append(
            IntegrityWarning(
                "OPENING_BALANCE_DIFFERENCE",
                f"Opening balances differ by {opening_difference}",
                {"difference": opening_difference},
            )
        )

    total_debit = sum((row.debit for row in rows), ZERO)
    total_credit = sum((row.credit for row in rows), ZERO)
    balanced = abs(total_debit - total_credit) <= tolerance
    if not balanced:
        warnings.append(
            IntegrityWarning(
                "TRIAL_BALANCE_MISMATCH",
                f"Trial balance does not agree: debit {total_debit}, credit {total_credit}",
                {
                    "total_debit": total_debit,
                    "total_credit": total_credit,
                    "difference": total_debit - total_credit,
                },
            )
        )
    _log_warnings("trial balance", warnings)
    return TrialBalance(
        as_of=cutoff,
        rows=rows,
        total_debit=total_debit,
        total_credit=total_credit,
        opening_difference=opening_difference,
        balanced=balanced,
        warnings=warnings,
    )


def balance_sheet(
    registry: LedgerRegistry,
    vouchers: Optional[Sequence[Voucher]] = None,
    as_of: Any = None,
    tolerance: Decimal = DEFAULT_TOLERANCE,
) -> BalanceSheet:
    warnings: List[IntegrityWarning] = []
    cutoff = _optional_date(as_of)
    balances = _balances(registry, vouchers, cutoff, warnings, tolerance)
    ledgers = [
        ledger for ledger in _all_ledgers(registry)
        if _visible(ledger, balances.get(ledger.id, ZERO))
    ]

    def sections(layout, sign: int) -> List[ReportSection]:
        result = []
        for category, groups in layout:
            items = [
                ReportLine(ledger.name, sign * balances.get(ledger.id, ZERO), ledger.id)
                for ledger in ledgers
                if ledger.group in groups
            ]
            result.append(ReportSection(category, items))
        return result

    assets = sections(ASSET_SECTIONS, 1)
    liabilities = sections(LIABILITY_SECTIONS, -1)

    equity = [
        ReportLine(ledger.name, -balances.get(ledger.id, ZERO), ledger.id)
        for ledger in ledgers
        if ledger.group is LedgerGroup.CAPITAL_ACCOUNT
    ]
    retained = -sum(
        (
            balances.get(ledger.id, ZERO)
            for ledger in _all_ledgers(registry)
            if ledger.group.nature in (GroupNature.INCOME, GroupNature.EXPENSE)
        ),
        ZERO,
    )
    equity.append(ReportLine("Profit & Loss A/c", retained))
    opening_difference = _opening_difference(registry)
    if opening_difference != ZERO:
        equity.append(ReportLine(OPENING_DIFFERENCE_LABEL, opening_difference))
        warnings.append(
            IntegrityWarning(
                "OPENING_BALANCE_DIFFERENCE",
                f"Opening balances differ by {opening_difference}",
                {"difference": opening_difference},
            )
        )

    sheet = BalanceSheet(
        as_of=cutoff,
        assets=assets,
        liabilities=liabilities,
        equity=equity,
        balanced=True,
        warnings=warnings,
    )
    difference = sheet.total_assets - sheet.total_liabilities - sheet.total_equity
    if abs(difference) > tolerance:
        sheet.balanced = False
        warnings.append(
            IntegrityWarning(
                "BALANCE_SHEET_MISMATCH",
                f"Assets {sheet.total_assets} do not equal liabilities "
                f"{sheet.total_liabilities} plus equity {sheet.total_equity}",
                {"difference": difference},
            )
        )
    _log_warnings("balance sheet", warnings)
    return sheet


def _party_totals(
    registry: LedgerRegistry, vouchers: Iterable[Voucher], vtype: VoucherType
) -> List[ReportLine]:
    totals: Dict[Optional[int], Decimal] = {}
    for voucher in vouchers:
        if voucher.type is vtype:
            totals[voucher.party_ledger_id] = totals.get(voucher.party_ledger_id, ZERO) + voucher.total_amount
    return [
        ReportLine(_ledger_name(registry, party_id) or "(no party)", amount, party_id)
        for party_id, amount in totals.items()
    ]


def _ledger_movement(
    registry: LedgerRegistry,
    vouchers: Iterable[Voucher],
    groups: Tuple[LedgerGroup, ...],
    start: Optional[date],
    end: Optional[date],
    sign: int,
) -> List[ReportLine]:
    ledgers = [ledger for ledger in _all_ledgers(registry) if ledger.group in groups]
    if start is None and end is None:
        amounts = {ledger.id: ledger.current_balance for ledger in ledgers}
    else:
        amounts = {
            ledger.id: ledger.opening_balance if start is None else ZERO
            for ledger in ledgers
        }
        for voucher in _applied(vouchers):
            if not _in_range(voucher.date, start, end):
                continue
            for item in voucher.items:
                if item.ledger_id in amounts:
                    amounts[item.ledger_id] += item.signed_amount
    return [
        ReportLine(ledger.name, sign * amounts[ledger.id], ledger.id)
        for ledger in ledgers
        if ledger.is_active or amounts[ledger.id] != ZERO
    ]


def profit_and_loss(
    registry: LedgerRegistry,
    vouchers: Optional[Sequence[Voucher]] = None,
    start: Any = None,
    end: Any = None,
) -> ProfitAndLoss:
    """Sales and purchase voucher totals plus income and expense ledger balances.

    Reversed and superseded vouchers, and the reversals themselves, do not
    count towards the voucher totals. Credit and debit notes reduce sales
    and purchases respectively.
    """
    start_date = _optional_date(start)
    end_date = _optional_date(end)
    vouchers = list(vouchers or [])
    standing = [v for v in _effective(vouchers) if _in_range(v.date, start_date, end_date)]

    sales = _party_totals(registry, standing, VoucherType.SALES)
    returns = sum((v.total_amount for v in standing if v.type is VoucherType.CREDIT_NOTE), ZERO)
    if returns:
        sales.append(ReportLine("Less: Sales Returns", -returns))
    purchases = _party_totals(registry, standing, VoucherType.PURCHASE)
    purchase_returns = sum((v.total_amount for v in standing if v.type is VoucherType.DEBIT_NOTE), ZERO)
    if purchase_returns:
        purchases.append(ReportLine("Less: Purchase Returns", -purchase_returns))

    def movement(group: LedgerGroup, sign: int) -> List[ReportLine]:
        return _ledger_movement(registry, vouchers, (group,), start_date, end_date, sign)

    income = [
        ReportSection("Sales Accounts", sales),
        ReportSection("Direct Incomes", movement(LedgerGroup.DIRECT_INCOMES, -1)),
        ReportSection("Indirect Incomes", movement(LedgerGroup.INDIRECT_INCOMES, -1)),
    ]
    expenses = [
        ReportSection("Purchase Accounts", purchases),
        ReportSection("Direct Expenses", movement(LedgerGroup.DIRECT_EXPENSES, 1)),
        ReportSection("Indirect Expenses", movement(LedgerGroup.INDIRECT_EXPENSES, 1)),
    ]
    return ProfitAndLoss(start=start_date, end=end_date, income=income, expenses=expenses)


def day_book(
    registry: LedgerRegistry,
    vouchers: Optional[Sequence[Voucher]] = None,
    start: Any = None,
    end: Any = None,
    voucher_type: Any = None,
) -> DayBook:
    """One row per line item of every posted voucher in the range.

    Filters select whole vouchers; ``balanced`` is reported, never warned on.
    """
    start_date = _optional_date(start)
    end_date = _optional_date(end)
    vtype = VoucherType.parse(voucher_type) if voucher_type and voucher_type != "all" else None
    selected = sorted(
        (
            v for v in _applied(vouchers)
            if _in_range(v.date, start_date, end_date) and (vtype is None or v.type is vtype)
        ),
        key=lambda v: (v.date, v.id or 0),
    )
    rows = [
        DayBookRow(
            date=voucher.date,
            voucher_id=voucher.id,
            voucher_number=voucher.voucher_number,
            voucher_type=voucher.type,
            party=_ledger_name(registry, voucher.party_ledger_id),
            status=voucher.status,
            ledger_id=item.ledger_id,
            ledger=_ledger_name(registry, item.ledger_id),
            particulars=item.particulars,
            narration=voucher.narration,
            debit=item.debit,
            credit=item.credit,
        )
        for voucher in selected
        for item in voucher.items
    ]
    return DayBook(start=start_date, end=end_date, voucher_type=vtype, rows=rows)


def dashboard_metrics(
    registry: LedgerRegistry,
    vouchers: Optional[Sequence[Voucher]] = None,
    as_of: Any = None,
) -> DashboardMetrics:
    today = _optional_date(as_of) or date.today()
    standing = _effective(vouchers)

    def group_total(*groups: LedgerGroup) -> Decimal:
        return sum(
            (ledger.current_balance for ledger in _all_ledgers(registry) if ledger.group in groups),
            ZERO,
        )

    return DashboardMetrics(
        as_of=today,
        total_sales=sum((v.total_amount for v in standing if v.type is VoucherType.SALES), ZERO),
        total_purchases=sum((v.total_amount for v in standing if v.type is VoucherType.PURCHASE), ZERO),
        total_receivables=group_total(LedgerGroup.SUNDRY_DEBTORS),
        total_payables=-group_total(LedgerGroup.SUNDRY_CREDITORS),
        cash_in_hand=group_total(LedgerGroup.CASH_IN_HAND),
        bank_balance=group_total(LedgerGroup.BANK_ACCOUNTS),
        today_transactions=sum(1 for v in standing if v.date == today),
        voucher_count=len(standing),
    )
