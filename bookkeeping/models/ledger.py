#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Ledger model."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict

from bookkeeping.models.group import BalanceSide, LedgerGroup


@dataclass
class Ledger:
    id: int | None
    name: str
    group: LedgerGroup
    opening_balance: Decimal = Decimal("0.00")
    current_balance: Decimal = Decimal("0.00")
    is_active: bool = True
    merged_into: int | None = None
    address: str | None = None
    phone: str | None = None
    gstin: str | None = None
    email: str | None = None

    @property
    def balance_side(self) -> BalanceSide:
        return BalanceSide.CREDIT if self.current_balance < 0 else BalanceSide.DEBIT

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "group": self.group.value,
            "group_label": self.group.label,
            "opening_balance": self.opening_balance,
            "current_balance": self.current_balance,
            "is_active": self.is_active,
            "merged_into": self.merged_into,
            "address": self.address,
            "phone": self.phone,
            "gstin": self.gstin,
            "email": self.email,
        }
