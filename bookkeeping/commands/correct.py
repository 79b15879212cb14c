#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""bookkeeping correct command."""

from __future__ import annotations

from bookkeeping.database import get_db, open_book, save_posting
from bookkeeping.models import VoucherDraft
from bookkeeping.utils import load_json_input, print_json


def add_parser(subparsers, parents):
    parser = subparsers.add_parser(
        "correct",
        help="Supersede a posted voucher with a replacement from JSON on stdin",
        parents=parents,
    )
    parser.add_argument("voucher_id", type=int, help="Voucher id")
    parser.add_argument("--reason", required=True, help="Reason for the correction")
    parser.set_defaults(func=run)
    return parser


def run(args):
    draft = VoucherDraft.from_dict(load_json_input())
    with get_db(args.db_path) as conn:
        engine = open_book(conn, args.config)
        reversal, correction = engine.correct_voucher(args.voucher_id, draft, args.reason)
        save_posting(conn, reversal)
        save_posting(conn, correction)

    print_json(
        {
            "original_voucher_id": args.voucher_id,
            "status": "superseded",
            "reversal_voucher_id": reversal.voucher.id,
            "correction_voucher_id": correction.voucher.id,
            "correction_voucher_number": correction.voucher.voucher_number,
            "balances": correction.to_dict()["balances"],
        }
    )
