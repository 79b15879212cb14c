#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""bookkeeping ledger command."""

from __future__ import annotations

from bookkeeping.database import get_db, open_book, save_ledger, save_posting
from bookkeeping.utils import BookkeepingError, load_json_input, print_json


def add_parser(subparsers, parents):
    parser = subparsers.add_parser("ledger", help="Ledger masters", parents=parents)
    sub = parser.add_subparsers(dest="ledger_cmd")

    list_parser = sub.add_parser("list", help="List ledgers", parents=parents)
    list_parser.add_argument("--group", help="Ledger group (slug or label)")
    list_parser.add_argument("--all", dest="include_inactive", action="store_true", help="Include inactive ledgers")
    list_parser.set_defaults(func=run_list)

    add_parser = sub.add_parser("add", help="Create a ledger from JSON on stdin", parents=parents)
    add_parser.set_defaults(func=run_add)

    deactivate = sub.add_parser("deactivate", help="Deactivate a ledger", parents=parents)
    deactivate.add_argument("ledger", help="Ledger id or name")
    deactivate.add_argument("--replacement", help="Ledger id or name that takes over the balance")
    deactivate.add_argument("--date", help="Date of the balance transfer (YYYY-MM-DD)")
    deactivate.set_defaults(func=run_deactivate)

    return parser


def run_list(args):
    with get_db(args.db_path) as conn:
        engine = open_book(conn, args.config)
    try:
        ledgers = engine.registry.list_ledgers(group=args.group, active_only=not args.include_inactive)
    except ValueError as exc:
        raise BookkeepingError("INVALID_FILTER", str(exc)) from exc
    print_json({"ledgers": [ledger.to_dict() for ledger in ledgers]})


def run_add(args):
    data = load_json_input()
    contact = {key: data[key] for key in ("address", "phone", "gstin", "email") if data.get(key)}
    with get_db(args.db_path) as conn:
        engine = open_book(conn, args.config)
        ledger = engine.registry.create_ledger(
            data.get("name"),
            data.get("group"),
            data.get("opening_balance", 0),
            **contact,
        )
        save_ledger(conn, ledger)
    print_json({"status": "success", "ledger": ledger.to_dict()})


def run_deactivate(args):
    transfer = None
    with get_db(args.db_path) as conn:
        engine = open_book(conn, args.config)
        ledger = engine.registry.resolve(args.ledger)
        if args.replacement:
            replacement = engine.registry.resolve(args.replacement)
            result = engine.merge_ledger(ledger.id, replacement.id, args.date)
            if result is not None:
                save_posting(conn, result)
                transfer = result.voucher.to_dict()
            save_ledger(conn, replacement)
        else:
            engine.registry.deactivate_ledger(ledger.id)
        save_ledger(conn, ledger)

    print_json(
        {
            "status": "success",
            "ledger": ledger.to_dict(),
            "transfer_voucher": transfer,
        }
    )
