#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""bookkeeping record command."""

from __future__ import annotations

from bookkeeping.database import get_db, open_book, save_posting
from bookkeeping.models import VoucherDraft
from bookkeeping.utils import load_json_input, print_json


def add_parser(subparsers, parents):
    parser = subparsers.add_parser("record", help="Post a voucher from JSON on stdin", parents=parents)
    parser.add_argument("--dry-run", action="store_true", help="Validate only, do not post")
    parser.set_defaults(func=run)
    return parser


def run(args):
    draft = VoucherDraft.from_dict(load_json_input())
    with get_db(args.db_path) as conn:
        engine = open_book(conn, args.config)
        if args.dry_run:
            errors = engine.validate(draft)
            print_json(
                {
                    "status": "invalid" if errors else "valid",
                    "errors": [e.to_dict() for e in errors],
                }
            )
            return
        result = engine.post(draft)
        save_posting(conn, result)

    print_json(
        {
            "status": "posted",
            "voucher_id": result.voucher.id,
            "voucher_number": result.voucher.voucher_number,
            "message": "Voucher posted, ledger balances updated",
            **result.to_dict(),
        }
    )
