#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Database schema for bookkeeping."""

from __future__ import annotations

import sqlite3


SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS ledgers (
  id INTEGER PRIMARY KEY,
  name TEXT NOT NULL UNIQUE COLLATE NOCASE,
  group_slug TEXT NOT NULL,
  opening_balance TEXT NOT NULL DEFAULT '0.00',
  current_balance TEXT NOT NULL DEFAULT '0.00',
  is_active INTEGER NOT NULL DEFAULT 1,
  merged_into INTEGER,
  address TEXT,
  phone TEXT,
  gstin TEXT,
  email TEXT,
  created_at TEXT DEFAULT CURRENT_TIMESTAMP,
  FOREIGN KEY (merged_into) REFERENCES ledgers(id)
);

CREATE INDEX IF NOT EXISTS idx_ledgers_group ON ledgers(group_slug);

CREATE TABLE IF NOT EXISTS vouchers (
  id INTEGER PRIMARY KEY,
  voucher_number TEXT NOT NULL UNIQUE,
  type TEXT NOT NULL,
  date TEXT NOT NULL,
  party_ledger_id INTEGER,
  narration TEXT,
  total_amount TEXT NOT NULL,
  status TEXT NOT NULL DEFAULT 'posted',
  reverses_id INTEGER,
  reversed_by_id INTEGER,
  reason TEXT,
  created_at TEXT,
  FOREIGN KEY (party_ledger_id) REFERENCES ledgers(id),
  FOREIGN KEY (reverses_id) REFERENCES vouchers(id),
  FOREIGN KEY (reversed_by_id) REFERENCES vouchers(id)
);

CREATE INDEX IF NOT EXISTS idx_vouchers_date ON vouchers(date);
CREATE INDEX IF NOT EXISTS idx_vouchers_type ON vouchers(type);

CREATE TABLE IF NOT EXISTS voucher_lines (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  voucher_id INTEGER NOT NULL,
  line_no INTEGER NOT NULL,
  ledger_id INTEGER NOT NULL,
  side TEXT NOT NULL CHECK (side IN ('debit', 'credit')),
  amount TEXT NOT NULL,
  particulars TEXT,
  UNIQUE (voucher_id, line_no),
  FOREIGN KEY (voucher_id) REFERENCES vouchers(id),
  FOREIGN KEY (ledger_id) REFERENCES ledgers(id)
);

CREATE INDEX IF NOT EXISTS idx_voucher_lines_ledger ON voucher_lines(ledger_id);
"""


def init_db(conn: sqlite3.Connection) -> None:
    conn.executescript(SCHEMA_SQL)
