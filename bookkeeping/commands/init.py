#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""bookkeeping init command."""

from __future__ import annotations

import json
from pathlib import Path

from bookkeeping.database import get_db, open_book, save_ledger
from bookkeeping.utils import BookkeepingError, print_json


DEFAULT_LEDGERS = Path(__file__).resolve().parent.parent / "data" / "default_ledgers.json"


def add_parser(subparsers, parents):
    parser = subparsers.add_parser("init", help="Create the book and default ledgers", parents=parents)
    parser.add_argument("--empty", action="store_true", help="Skip the default ledgers")
    parser.set_defaults(func=run)
    return parser


def run(args):
    ledgers = []
    if not args.empty:
        if not DEFAULT_LEDGERS.exists():
            raise BookkeepingError("NOT_FOUND", f"Default ledger file missing: {DEFAULT_LEDGERS}")
        ledgers = json.loads(DEFAULT_LEDGERS.read_text(encoding="utf-8"))

    created = []
    with get_db(args.db_path) as conn:
        engine = open_book(conn, args.config)
        for item in ledgers:
            if engine.registry.find_by_name(item["name"]) is not None:
                continue
            ledger = engine.registry.create_ledger(
                item["name"], item["group"], item.get("opening_balance", 0)
            )
            save_ledger(conn, ledger)
            created.append(ledger.name)

    print_json(
        {
            "status": "success",
            "message": "Book initialised",
            "db_path": args.db_path,
            "ledgers_created": created,
        }
    )
