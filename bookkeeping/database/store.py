#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Persist and hydrate a book: ledgers, posted vouchers and balances.

Writes happen inside the caller's ``get_db`` transaction, so a posting and
the balances it touched are committed together or not at all.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from bookkeeping.config import load_config
from bookkeeping.engine import PostingResult, VoucherEngine
from bookkeeping.models import (
    BalanceSide,
    Ledger,
    LedgerGroup,
    Voucher,
    VoucherLineItem,
    VoucherStatus,
    VoucherType,
)
from bookkeeping.registry import LedgerRegistry


logger = logging.getLogger(__name__)


def _row_to_ledger(row: sqlite3.Row) -> Ledger:
    return Ledger(
        id=row["id"],
        name=row["name"],
        group=LedgerGroup(row["group_slug"]),
        opening_balance=Decimal(row["opening_balance"]),
        current_balance=Decimal(row["current_balance"]),
        is_active=bool(row["is_active"]),
        merged_into=row["merged_into"],
        address=row["address"],
        phone=row["phone"],
        gstin=row["gstin"],
        email=row["email"],
    )


def load_registry(conn: sqlite3.Connection, places: int = 2) -> LedgerRegistry:
    registry = LedgerRegistry(places=places)
    activity = {
        row["ledger_id"]: row["lines"]
        for row in conn.execute(
            "SELECT ledger_id, COUNT(*) AS lines FROM voucher_lines GROUP BY ledger_id"
        ).fetchall()
    }
    for row in conn.execute("SELECT * FROM ledgers ORDER BY id").fetchall():
        registry.load(_row_to_ledger(row), activity.get(row["id"], 0))
    return registry


def load_vouchers(conn: sqlite3.Connection) -> List[Voucher]:
    lines: Dict[int, List[VoucherLineItem]] = {}
    for row in conn.execute(
        "SELECT * FROM voucher_lines ORDER BY voucher_id, line_no"
    ).fetchall():
        lines.setdefault(row["voucher_id"], []).append(
            VoucherLineItem(
                ledger_id=row["ledger_id"],
                side=BalanceSide(row["side"]),
                amount=Decimal(row["amount"]),
                particulars=row["particulars"],
            )
        )
    vouchers = []
    for row in conn.execute("SELECT * FROM vouchers ORDER BY id").fetchall():
        vouchers.append(
            Voucher(
                id=row["id"],
                voucher_number=row["voucher_number"],
                type=VoucherType(row["type"]),
                date=date.fromisoformat(row["date"]),
                party_ledger_id=row["party_ledger_id"],
                narration=row["narration"],
                items=lines.get(row["id"], []),
                total_amount=Decimal(row["total_amount"]),
                status=VoucherStatus(row["status"]),
                reverses_id=row["reverses_id"],
                reversed_by_id=row["reversed_by_id"],
                reason=row["reason"],
                created_at=datetime.fromisoformat(row["created_at"]) if row["created_at"] else None,
            )
        )
    return vouchers


def open_book(conn: sqlite3.Connection, config: Optional[Dict[str, Any]] = None) -> VoucherEngine:
    """Hydrate an engine (registry plus posted history) from the database."""
    config = config if config is not None else load_config()
    engine = VoucherEngine(load_registry(conn, int(config["currency_places"])), config)
    for voucher in load_vouchers(conn):
        engine.load_voucher(voucher)
    logger.debug(
        "book opened",
        extra={"ledgers": len(engine.registry), "vouchers": len(engine.vouchers)},
    )
    return engine


def save_ledger(conn: sqlite3.Connection, ledger: Ledger) -> None:
    conn.execute(
        """
        INSERT INTO ledgers (
          id, name, group_slug, opening_balance, current_balance,
          is_active, merged_into, address, phone, gstin, email
        )
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        ON CONFLICT(id) DO UPDATE SET
          name = excluded.name,
          group_slug = excluded.group_slug,
          current_balance = excluded.current_balance,
          is_active = excluded.is_active,
          merged_into = excluded.merged_into,
          address = excluded.address,
          phone = excluded.phone,
          gstin = excluded.gstin,
          email = excluded.email
        """,
        (
            ledger.id,
            ledger.name,
            ledger.group.value,
            str(ledger.opening_balance),
            str(ledger.current_balance),
            1 if ledger.is_active else 0,
            ledger.merged_into,
            ledger.address,
            ledger.phone,
            ledger.gstin,
            ledger.email,
        ),
    )


def save_voucher(conn: sqlite3.Connection, voucher: Voucher) -> None:
    exists = conn.execute("SELECT 1 FROM vouchers WHERE id = ?", (voucher.id,)).fetchone()
    if exists:
        conn.execute(
            "UPDATE vouchers SET status = ?, reversed_by_id = ?, reason = ? WHERE id = ?",
            (voucher.status.value, voucher.reversed_by_id, voucher.reason, voucher.id),
        )
        return
    conn.execute(
        """
        INSERT INTO vouchers (
          id, voucher_number, type, date, party_ledger_id, narration,
          total_amount, status, reverses_id, reversed_by_id, reason, created_at
        )
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (
            voucher.id,
            voucher.voucher_number,
            voucher.type.value,
            voucher.date.isoformat(),
            voucher.party_ledger_id,
            voucher.narration,
            str(voucher.total_amount),
            voucher.status.value,
            voucher.reverses_id,
            voucher.reversed_by_id,
            voucher.reason,
            voucher.created_at.isoformat() if voucher.created_at else None,
        ),
    )
    conn.executemany(
        """
        INSERT INTO voucher_lines (voucher_id, line_no, ledger_id, side, amount, particulars)
        VALUES (?, ?, ?, ?, ?, ?)
        """,
        [
            (voucher.id, line_no, item.ledger_id, item.side.value, str(item.amount), item.particulars)
            for line_no, item in enumerate(voucher.items, start=1)
        ],
    )


def save_posting(conn: sqlite3.Connection, result: PostingResult) -> None:
    """Write a posted voucher, any vouchers it changed, and the touched balances."""
    save_voucher(conn, result.voucher)
    for voucher in result.updated_vouchers:
        save_voucher(conn, voucher)
    conn.executemany(
        "UPDATE ledgers SET current_balance = ? WHERE id = ?",
        [(str(balance), ledger_id) for ledger_id, balance in result.balances.items()],
    )
