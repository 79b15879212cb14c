#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Errors, money helpers and JSON I/O shared by the bookkeeping core and CLI."""

from __future__ import annotations

import json
import sys
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from enum import Enum
from typing import Any, Dict, List, Optional


ZERO = Decimal("0")


@dataclass
class BookkeepingError(Exception):
    code: str
    message: str
    details: Optional[Dict[str, Any]] = None

    def __str__(self) -> str:
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "error": True,
            "code": self.code,
            "message": self.message,
        }
        if self.details:
            payload["details"] = self.details
        return payload


@dataclass
class FieldError:
    field: str
    message: str

    def to_dict(self) -> Dict[str, str]:
        return {"field": self.field, "message": self.message}


class ValidationError(BookkeepingError):
    """Pre-posting failure; carries every failing rule, not just the first."""

    def __init__(self, errors: List[FieldError], message: Optional[str] = None):
        self.errors = list(errors)
        text = message or "; ".join(f"{e.field}: {e.message}" for e in self.errors)
        super().__init__(
            "VALIDATION_FAILED",
            text,
            {"errors": [e.to_dict() for e in self.errors]},
        )


class NotFoundError(BookkeepingError):
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__("NOT_FOUND", message, details)


class DuplicateNameError(BookkeepingError):
    def __init__(self, name: str):
        super().__init__("DUPLICATE_NAME", f"Ledger already exists: {name}", {"name": name})


class HasActivityError(BookkeepingError):
    def __init__(self, ledger_id: int, activity: int):
        super().__init__(
            "HAS_ACTIVITY",
            f"Ledger {ledger_id} has {activity} posted line(s); supply a replacement ledger",
            {"ledger_id": ledger_id, "posted_lines": activity},
        )


class VoucherStateError(BookkeepingError):
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__("VOUCHER_STATUS_INVALID", message, details)


class ConfigError(BookkeepingError):
    def __init__(self, message: str):
        super().__init__("CONFIG_INVALID", message)


@dataclass
class IntegrityWarning:
    """A failed report self-check. Attached to reports, never raised."""

    code: str
    message: str
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": to_jsonable(self.details)}


def to_amount(value: Any, places: int = 2) -> Decimal:
    """Parse a money value into a Decimal rounded half-up to ``places``.

    Floats go through ``str`` so 0.1 stays 0.1. Raises ValueError on junk.
    """
    if value is None or value == "":
        return ZERO.quantize(_exponent(places))
    if isinstance(value, bool):
        raise ValueError(f"invalid amount: {value!r}")
    if isinstance(value, float):
        value = repr(value)
    try:
        amount = Decimal(str(value).strip().replace(",", ""))
        if not amount.is_finite():
            raise ValueError(f"invalid amount: {value!r}")
        return amount.quantize(_exponent(places), rounding=ROUND_HALF_UP)
    except InvalidOperation as exc:
        raise ValueError(f"invalid amount: {value!r}") from exc


def _exponent(places: int) -> Decimal:
    return Decimal(1).scaleb(-places)


def parse_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not value or not isinstance(value, str):
        raise ValueError(f"invalid date: {value!r}")
    text = value.strip()
    if len(text) > 10:
        return datetime.fromisoformat(text).date()
    return date.fromisoformat(text)


def to_jsonable(value: Any) -> Any:
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {str(k): to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v) for v in value]
    return value


def load_json_input() -> Dict[str, Any]:
    """Load JSON object from stdin."""
    try:
        data = json.load(sys.stdin)
    except json.JSONDecodeError as exc:
        raise BookkeepingError(
            code="INVALID_JSON",
            message=f"Invalid JSON input: {exc}",
        ) from exc

    if not isinstance(data, dict):
        raise BookkeepingError(
            code="INVALID_JSON",
            message="Input must be a JSON object",
        )
    return data


def print_json(data: Dict[str, Any]) -> None:
    print(json.dumps(to_jsonable(data), ensure_ascii=False, indent=2))


def print_error(err: BookkeepingError) -> None:
    print_json(err.to_dict())


def handle_error(err: BookkeepingError) -> None:
    print_error(err)
    sys.exit(1)
