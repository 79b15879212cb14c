#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Voucher models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List

from bookkeeping.models.group import BalanceSide


class VoucherType(Enum):
    SALES = "sales"
    PURCHASE = "purchase"
    RECEIPT = "receipt"
    PAYMENT = "payment"
    JOURNAL = "journal"
    CONTRA = "contra"
    CREDIT_NOTE = "credit-note"
    DEBIT_NOTE = "debit-note"

    @property
    def title(self) -> str:
        return _TITLES[self]

    @property
    def requires_party(self) -> bool:
        return self not in (VoucherType.JOURNAL, VoucherType.CONTRA)

    @classmethod
    def parse(cls, token) -> "VoucherType":
        """Accept a member, value, member name or title ("sales", "SALES", "Sales Voucher")."""
        if isinstance(token, cls):
            return token
        if isinstance(token, str) and token.strip():
            key = token.strip().lower()
            for vtype in cls:
                if key in (vtype.value, vtype.name.lower(), vtype.title.lower()):
                    return vtype
        raise ValueError(f"unknown voucher type: {token!r}")


_TITLES = {
    VoucherType.SALES: "Sales Voucher",
    VoucherType.PURCHASE: "Purchase Voucher",
    VoucherType.RECEIPT: "Receipt Voucher",
    VoucherType.PAYMENT: "Payment Voucher",
    VoucherType.JOURNAL: "Journal Voucher",
    VoucherType.CONTRA: "Contra Voucher",
    VoucherType.CREDIT_NOTE: "Credit Note",
    VoucherType.DEBIT_NOTE: "Debit Note",
}


class VoucherStatus(Enum):
    DRAFT = "draft"
    POSTED = "posted"
    REJECTED = "rejected"
    REVERSED = "reversed"
    SUPERSEDED = "superseded"

    @property
    def applied(self) -> bool:
        """Whether the voucher's lines are part of ledger balances."""
        return self in (VoucherStatus.POSTED, VoucherStatus.REVERSED, VoucherStatus.SUPERSEDED)


@dataclass
class VoucherLineItem:
    ledger_id: int
    side: BalanceSide
    amount: Decimal
    particulars: str | None = None

    @property
    def signed_amount(self) -> Decimal:
        return self.amount if self.side is BalanceSide.DEBIT else -self.amount

    @property
    def debit(self) -> Decimal:
        return self.amount if self.side is BalanceSide.DEBIT else Decimal("0.00")

    @property
    def credit(self) -> Decimal:
        return self.amount if self.side is BalanceSide.CREDIT else Decimal("0.00")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ledger_id": self.ledger_id,
            "type": self.side.value,
            "amount": self.amount,
            "particulars": self.particulars,
        }


@dataclass
class Voucher:
    id: int | None = None
    voucher_number: str | None = None
    type: VoucherType = VoucherType.JOURNAL
    date: date | None = None
    party_ledger_id: int | None = None
    narration: str | None = None
    items: List[VoucherLineItem] = field(default_factory=list)
    total_amount: Decimal = Decimal("0.00")
    status: VoucherStatus = VoucherStatus.DRAFT
    reverses_id: int | None = None
    reversed_by_id: int | None = None
    reason: str | None = None
    created_at: datetime | None = None

    @property
    def total_debit(self) -> Decimal:
        return sum((item.debit for item in self.items), Decimal("0.00"))

    @property
    def total_credit(self) -> Decimal:
        return sum((item.credit for item in self.items), Decimal("0.00"))

    def is_balanced(self, tolerance: Decimal = Decimal("0.01")) -> bool:
        return abs(self.total_debit - self.total_credit) <= tolerance

    def ledger_ids(self) -> List[int]:
        seen: List[int] = []
        for item in self.items:
            if item.ledger_id not in seen:
                seen.append(item.ledger_id)
        return seen

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "voucher_number": self.voucher_number,
            "type": self.type.value,
            "date": self.date,
            "party_ledger_id": self.party_ledger_id,
            "narration": self.narration,
            "items": [item.to_dict() for item in self.items],
            "total_amount": self.total_amount,
            "status": self.status.value,
            "reverses_id": self.reverses_id,
            "reversed_by_id": self.reversed_by_id,
            "reason": self.reason,
            "created_at": self.created_at,
        }


@dataclass
class VoucherDraft:
    """Candidate voucher as submitted by a form; values are not yet validated."""

    type: Any
    date: Any = None
    party_ledger_id: Any = None
    items: List[Any] = field(default_factory=list)
    narration: str | None = None
    voucher_number: str | None = None
    status: VoucherStatus = VoucherStatus.DRAFT

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VoucherDraft":
        return cls(
            type=data.get("type") or data.get("type_id"),
            date=data.get("date"),
            party_ledger_id=data.get("party_ledger_id", data.get("party")),
            items=list(data.get("items") or data.get("entries") or []),
            narration=data.get("narration"),
            voucher_number=data.get("voucher_number") or data.get("voucherNumber"),
        )
