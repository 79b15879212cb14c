#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Book configuration: JSON file merged over built-in defaults."""

from __future__ import annotations

import json
import os
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, Optional

from bookkeeping.utils import ConfigError


DEFAULT_CONFIG: Dict[str, Any] = {
    "currency": "INR",
    "currency_places": 2,
    "balance_tolerance": "0.01",
    "gst_rate": "18",
    "db_path": "./books.db",
    "voucher_prefixes": {
        "sales": "SAL",
        "purchase": "PUR",
        "receipt": "RCT",
        "payment": "PMT",
        "journal": "JRN",
        "contra": "CTR",
        "credit-note": "CRN",
        "debit-note": "DBN",
    },
}

CONFIG_ENV = "BOOKKEEPING_CONFIG"
DB_PATH_ENV = "BOOKKEEPING_DB_PATH"


def _default_config_path() -> Path:
    return Path(__file__).resolve().parent / "data" / "config.json"


def load_config(path: Optional[str] = None) -> Dict[str, Any]:
    config_path = Path(path or os.environ.get(CONFIG_ENV) or _default_config_path())
    merged = dict(DEFAULT_CONFIG)
    merged["voucher_prefixes"] = dict(DEFAULT_CONFIG["voucher_prefixes"])
    if config_path.exists():
        try:
            data = json.loads(config_path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise ConfigError(f"Invalid config JSON in {config_path}: {exc}") from exc
        if not isinstance(data, dict):
            raise ConfigError(f"Config must be a JSON object: {config_path}")
        prefixes = data.pop("voucher_prefixes", None)
        merged.update(data)
        if isinstance(prefixes, dict):
            merged["voucher_prefixes"].update(prefixes)

    if os.environ.get(DB_PATH_ENV):
        merged["db_path"] = os.environ[DB_PATH_ENV]

    try:
        merged["balance_tolerance"] = Decimal(str(merged["balance_tolerance"]))
        merged["gst_rate"] = Decimal(str(merged["gst_rate"]))
        merged["currency_places"] = int(merged["currency_places"])
    except (ArithmeticError, ValueError, TypeError) as exc:
        raise ConfigError(f"Invalid numeric config value: {exc}") from exc
    if merged["balance_tolerance"] < 0:
        raise ConfigError("balance_tolerance must not be negative")
    return merged
