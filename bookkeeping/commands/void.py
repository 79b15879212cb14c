#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""bookkeeping void command."""

from __future__ import annotations

from bookkeeping.database import get_db, open_book, save_posting
from bookkeeping.utils import print_json


def add_parser(subparsers, parents):
    parser = subparsers.add_parser("void", help="Reverse a posted voucher", parents=parents)
    parser.add_argument("voucher_id", type=int, help="Voucher id")
    parser.add_argument("--reason", required=True, help="Reason for the reversal")
    parser.add_argument("--date", help="Reversal date (defaults to the original date)")
    parser.set_defaults(func=run)
    return parser


def run(args):
    with get_db(args.db_path) as conn:
        engine = open_book(conn, args.config)
        result = engine.reverse_voucher(args.voucher_id, args.reason, args.date)
        save_posting(conn, result)

    print_json(
        {
            "original_voucher_id": args.voucher_id,
            "reversal_voucher_id": result.voucher.id,
            "reversal_voucher_number": result.voucher.voucher_number,
            "status": "reversed",
            "message": "Voucher reversed by a contra-entry voucher",
        }
    )
