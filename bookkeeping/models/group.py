#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Ledger group reference data."""

from __future__ import annotations

from enum import Enum
from typing import Dict, Tuple


class BalanceSide(Enum):
    DEBIT = "debit"
    CREDIT = "credit"

    @property
    def sign(self) -> int:
        return 1 if self is BalanceSide.DEBIT else -1

    def opposite(self) -> "BalanceSide":
        return BalanceSide.CREDIT if self is BalanceSide.DEBIT else BalanceSide.DEBIT


class GroupNature(Enum):
    ASSET = "asset"
    LIABILITY = "liability"
    EQUITY = "equity"
    INCOME = "income"
    EXPENSE = "expense"


class LedgerGroup(Enum):
    SUNDRY_DEBTORS = "sundry-debtors"
    SUNDRY_CREDITORS = "sundry-creditors"
    BANK_ACCOUNTS = "bank-accounts"
    CASH_IN_HAND = "cash-in-hand"
    SALES_ACCOUNTS = "sales-accounts"
    PURCHASE_ACCOUNTS = "purchase-accounts"
    DIRECT_EXPENSES = "direct-expenses"
    INDIRECT_EXPENSES = "indirect-expenses"
    DIRECT_INCOMES = "direct-incomes"
    INDIRECT_INCOMES = "indirect-incomes"
    FIXED_ASSETS = "fixed-assets"
    CURRENT_ASSETS = "current-assets"
    CURRENT_LIABILITIES = "current-liabilities"
    CAPITAL_ACCOUNT = "capital-account"

    @property
    def label(self) -> str:
        return _GROUP_INFO[self][0]

    @property
    def nature(self) -> GroupNature:
        return _GROUP_INFO[self][1]

    @property
    def normal_side(self) -> BalanceSide:
        return _NORMAL_SIDE[self.nature]

    @property
    def is_party(self) -> bool:
        return self in (LedgerGroup.SUNDRY_DEBTORS, LedgerGroup.SUNDRY_CREDITORS)

    @classmethod
    def parse(cls, token) -> "LedgerGroup":
        """Accept a member, slug, label or member name ("Sales Accounts", "sales-accounts", ...)."""
        if isinstance(token, cls):
            return token
        if not isinstance(token, str) or not token.strip():
            raise ValueError(f"unknown ledger group: {token!r}")
        key = token.strip().lower()
        for group in cls:
            if key in (group.value, group.label.lower(), group.name.lower()):
                return group
        raise ValueError(f"unknown ledger group: {token!r}")


_GROUP_INFO: Dict[LedgerGroup, Tuple[str, GroupNature]] = {
    LedgerGroup.SUNDRY_DEBTORS: ("Sundry Debtors", GroupNature.ASSET),
    LedgerGroup.SUNDRY_CREDITORS: ("Sundry Creditors", GroupNature.LIABILITY),
    LedgerGroup.BANK_ACCOUNTS: ("Bank Accounts", GroupNature.ASSET),
    LedgerGroup.CASH_IN_HAND: ("Cash-in-Hand", GroupNature.ASSET),
    LedgerGroup.SALES_ACCOUNTS: ("Sales Accounts", GroupNature.INCOME),
    LedgerGroup.PURCHASE_ACCOUNTS: ("Purchase Accounts", GroupNature.EXPENSE),
    LedgerGroup.DIRECT_EXPENSES: ("Direct Expenses", GroupNature.EXPENSE),
    LedgerGroup.INDIRECT_EXPENSES: ("Indirect Expenses", GroupNature.EXPENSE),
    LedgerGroup.DIRECT_INCOMES: ("Direct Incomes", GroupNature.INCOME),
    LedgerGroup.INDIRECT_INCOMES: ("Indirect Incomes", GroupNature.INCOME),
    LedgerGroup.FIXED_ASSETS: ("Fixed Assets", GroupNature.ASSET),
    LedgerGroup.CURRENT_ASSETS: ("Current Assets", GroupNature.ASSET),
    LedgerGroup.CURRENT_LIABILITIES: ("Current Liabilities", GroupNature.LIABILITY),
    LedgerGroup.CAPITAL_ACCOUNT: ("Capital Account", GroupNature.EQUITY),
}

# Normal balance side per nature
_NORMAL_SIDE: Dict[GroupNature, BalanceSide] = {
    GroupNature.ASSET: BalanceSide.DEBIT,
    GroupNature.LIABILITY: BalanceSide.CREDIT,
    GroupNature.EQUITY: BalanceSide.CREDIT,
    GroupNature.INCOME: BalanceSide.CREDIT,
    GroupNature.EXPENSE: BalanceSide.DEBIT,
}
