#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""bookkeeping report command."""

from __future__ import annotations

from bookkeeping.database import get_db, open_book
from bookkeeping.exports import export_report
from bookkeeping.reporting import (
    balance_sheet,
    dashboard_metrics,
    day_book,
    profit_and_loss,
    trial_balance,
)
from bookkeeping.tax import invoice_summary
from bookkeeping.utils import BookkeepingError, print_json


REPORTS = ["trial-balance", "balance-sheet", "profit-loss", "day-book", "dashboard", "invoice"]


def add_parser(subparsers, parents):
    parser = subparsers.add_parser("report", help="Generate a report", parents=parents)
    parser.add_argument("kind", choices=REPORTS, help="Report to generate")
    parser.add_argument("--from", dest="start", help="Start date (YYYY-MM-DD)")
    parser.add_argument("--to", dest="end", help="End date (YYYY-MM-DD)")
    parser.add_argument("--as-of", dest="as_of", help="Balances as of date (YYYY-MM-DD)")
    parser.add_argument("--type", dest="voucher_type", help="Day Book voucher type filter")
    parser.add_argument("--voucher-id", type=int, help="Voucher for the invoice preview")
    parser.add_argument("--seller-gstin", help="Seller GSTIN, used to pick IGST or CGST/SGST")
    parser.add_argument("--output", help="Write the report to this .xlsx file")
    parser.set_defaults(func=run)
    return parser


def _build(args, engine):
    registry = engine.registry
    vouchers = engine.vouchers
    tolerance = engine.tolerance
    if args.kind == "trial-balance":
        return trial_balance(registry, vouchers, args.as_of, tolerance)
    if args.kind == "balance-sheet":
        return balance_sheet(registry, vouchers, args.as_of, tolerance)
    if args.kind == "profit-loss":
        return profit_and_loss(registry, vouchers, args.start, args.end)
    if args.kind == "day-book":
        return day_book(registry, vouchers, args.start, args.end, args.voucher_type)
    if args.kind == "dashboard":
        return dashboard_metrics(registry, vouchers, args.as_of)
    if args.voucher_id is None:
        raise BookkeepingError("MISSING_ARGUMENT", "--voucher-id is required for the invoice report")
    voucher = engine.get_voucher(args.voucher_id)
    return invoice_summary(voucher, registry, engine.config["gst_rate"], args.seller_gstin)


def run(args):
    with get_db(args.db_path) as conn:
        engine = open_book(conn, args.config)
    try:
        report = _build(args, engine)
    except ValueError as exc:
        raise BookkeepingError("INVALID_FILTER", str(exc)) from exc

    payload = report if isinstance(report, dict) else report.to_dict()
    if args.output:
        if isinstance(report, dict) or args.kind == "dashboard":
            raise BookkeepingError("EXPORT_UNSUPPORTED", f"{args.kind} cannot be exported to Excel")
        payload = {"report": payload, "export": export_report(report, args.output)}
    print_json(payload)
