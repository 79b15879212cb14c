#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""bookkeeping query command."""

from __future__ import annotations

from bookkeeping.database import get_db, open_book
from bookkeeping.utils import BookkeepingError, print_json


def add_parser(subparsers, parents):
    parser = subparsers.add_parser("query", help="Query vouchers", parents=parents)
    sub = parser.add_subparsers(dest="query_cmd")

    vouchers = sub.add_parser("vouchers", help="List vouchers", parents=parents)
    vouchers.add_argument("--type", dest="voucher_type", help="Voucher type")
    vouchers.add_argument("--status", help="posted, reversed or superseded")
    vouchers.add_argument("--from", dest="start", help="Start date (YYYY-MM-DD)")
    vouchers.add_argument("--to", dest="end", help="End date (YYYY-MM-DD)")
    vouchers.set_defaults(func=run_vouchers)

    voucher = sub.add_parser("voucher", help="Show one voucher", parents=parents)
    voucher.add_argument("voucher_id", type=int, help="Voucher id")
    voucher.set_defaults(func=run_voucher)

    return parser


def run_vouchers(args):
    with get_db(args.db_path) as conn:
        engine = open_book(conn, args.config)
    try:
        rows = engine.list_vouchers(args.voucher_type, args.start, args.end, args.status)
    except ValueError as exc:
        raise BookkeepingError("INVALID_FILTER", str(exc)) from exc
    print_json(
        {
            "count": len(rows),
            "vouchers": [
                {
                    "id": v.id,
                    "voucher_number": v.voucher_number,
                    "type": v.type.value,
                    "date": v.date,
                    "party": engine.registry.get_ledger(v.party_ledger_id).name
                    if v.party_ledger_id
                    else None,
                    "total_amount": v.total_amount,
                    "status": v.status.value,
                    "narration": v.narration,
                }
                for v in rows
            ],
        }
    )


def run_voucher(args):
    with get_db(args.db_path) as conn:
        engine = open_book(conn, args.config)
    voucher = engine.get_voucher(args.voucher_id)
    data = voucher.to_dict()
    for item in data["items"]:
        item["ledger"] = engine.registry.get_ledger(item["ledger_id"]).name
    print_json({"voucher": data})
