#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Write report records to Excel workbooks."""

from __future__ import annotations

import logging
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, List, Sequence

import openpyxl
from openpyxl.styles import Font

from bookkeeping.reporting import BalanceSheet, DayBook, ProfitAndLoss, ReportSection, TrialBalance
from bookkeeping.utils import BookkeepingError


logger = logging.getLogger(__name__)

BOLD = Font(bold=True)
MONEY_FORMAT = "#,##0.00"


def _cell_value(value: Any) -> Any:
    if isinstance(value, Decimal):
        return float(value)
    return value


def _append(sheet, values: Sequence[Any], bold: bool = False) -> None:
    sheet.append([_cell_value(v) for v in values])
    for cell in sheet[sheet.max_row]:
        if isinstance(cell.value, float):
            cell.number_format = MONEY_FORMAT
        if bold:
            cell.font = BOLD


def _write_trial_balance(sheet, report: TrialBalance) -> None:
    _append(sheet, ["Particulars", "Group", "Debit", "Credit"], bold=True)
    for row in report.rows:
        _append(sheet, [row.name, row.group.label if row.group else "", row.debit, row.credit])
    _append(sheet, ["Total", "", report.total_debit, report.total_credit], bold=True)


def _write_sections(sheet, title: str, sections: List[ReportSection]) -> Decimal:
    _append(sheet, [title], bold=True)
    grand = Decimal("0")
    for section in sections:
        _append(sheet, [section.category, "", section.total], bold=True)
        for item in section.items:
            _append(sheet, ["", item.name, item.amount])
        grand += section.total
    return grand


def _write_balance_sheet(sheet, report: BalanceSheet) -> None:
    _append(sheet, ["Category", "Particulars", "Amount"], bold=True)
    _write_sections(sheet, "Assets", report.assets)
    _append(sheet, ["Total Assets", "", report.total_assets], bold=True)
    _write_sections(sheet, "Liabilities", report.liabilities)
    _append(sheet, ["Total Liabilities", "", report.total_liabilities], bold=True)
    _append(sheet, ["Equity"], bold=True)
    for line in report.equity:
        _append(sheet, ["", line.name, line.amount])
    _append(sheet, ["Total Equity", "", report.total_equity], bold=True)


def _write_profit_and_loss(sheet, report: ProfitAndLoss) -> None:
    _append(sheet, ["Category", "Particulars", "Amount"], bold=True)
    _write_sections(sheet, "Income", report.income)
    _append(sheet, ["Total Income", "", report.total_income], bold=True)
    _write_sections(sheet, "Expenses", report.expenses)
    _append(sheet, ["Total Expenses", "", report.total_expenses], bold=True)
    _append(sheet, ["Gross Profit", "", report.gross_profit], bold=True)
    _append(sheet, ["Net Profit", "", report.net_profit], bold=True)


def _write_day_book(sheet, report: DayBook) -> None:
    _append(
        sheet,
        ["Date", "Voucher No.", "Type", "Party", "Particulars", "Debit", "Credit"],
        bold=True,
    )
    for row in report.rows:
        _append(
            sheet,
            [
                row.date.isoformat(),
                row.voucher_number,
                row.voucher_type.value,
                row.party or "",
                row.ledger,
                row.debit,
                row.credit,
            ],
        )
    _append(sheet, ["Total", "", "", "", "", report.total_debit, report.total_credit], bold=True)


_WRITERS = {
    TrialBalance: ("Trial Balance", _write_trial_balance),
    BalanceSheet: ("Balance Sheet", _write_balance_sheet),
    ProfitAndLoss: ("Profit & Loss", _write_profit_and_loss),
    DayBook: ("Day Book", _write_day_book),
}


def export_report(report: Any, path: str) -> Dict[str, Any]:
    """Write ``report`` to a new ``.xlsx`` workbook at ``path``."""
    entry = _WRITERS.get(type(report))
    if entry is None:
        raise BookkeepingError(
            "EXPORT_UNSUPPORTED",
            f"Cannot export {type(report).__name__} to Excel",
        )
    title, writer = entry
    wb = openpyxl.Workbook()
    sheet = wb.active
    sheet.title = title.replace("&", "and")
    writer(sheet, report)
    for column in ("A", "B", "C", "D", "E", "F", "G"):
        sheet.column_dimensions[column].width = 22

    out_path = Path(path)
    wb.save(out_path)
    logger.info("report exported", extra={"path": str(out_path), "rows": sheet.max_row})
    return {"status": "success", "output": str(out_path), "sheet": sheet.title, "rows": sheet.max_row}
