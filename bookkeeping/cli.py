#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Main CLI for bookkeeping."""

from __future__ import annotations

import argparse
import logging

from bookkeeping import commands
from bookkeeping.config import load_config
from bookkeeping.logging_config import configure_logging
from bookkeeping.utils import BookkeepingError, handle_error


logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bookkeeping",
        description="Double-entry voucher bookkeeping CLI",
    )
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--db-path", default=None, help="Database path (defaults to the config db_path)")
    common.add_argument("--config", dest="config_path", default=None, help="JSON config file")

    subparsers = parser.add_subparsers(dest="command")

    commands.add_init_parser(subparsers, [common])
    commands.add_ledger_parser(subparsers, [common])
    commands.add_record_parser(subparsers, [common])
    commands.add_void_parser(subparsers, [common])
    commands.add_correct_parser(subparsers, [common])
    commands.add_query_parser(subparsers, [common])
    commands.add_report_parser(subparsers, [common])

    return parser


def main(argv=None):
    configure_logging()
    parser = build_parser()
    args = parser.parse_args(argv)
    if not hasattr(args, "func"):
        parser.print_help()
        return
    try:
        args.config = load_config(args.config_path)
        if not args.db_path:
            args.db_path = args.config["db_path"]
        args.func(args)
    except BookkeepingError as exc:
        logger.debug("command failed", extra={"code": exc.code})
        handle_error(exc)


if __name__ == "__main__":
    main()
