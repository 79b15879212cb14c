#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Ledger registry: the book's accounts and their running balances.

Balances change only through ``apply_delta``, which the voucher engine calls
while posting. Everything else here is creation, lookup and soft
deactivation.
"""

from __future__ import annotations

import logging
import threading
from decimal import Decimal
from typing import Any, Dict, List, Optional

from bookkeeping.models import Ledger, LedgerGroup
from bookkeeping.utils import (
    DuplicateNameError,
    FieldError,
    HasActivityError,
    NotFoundError,
    ValidationError,
    ZERO,
    to_amount,
)


logger = logging.getLogger(__name__)


def _name_key(name: str) -> str:
    return " ".join(name.split()).casefold()


class LedgerRegistry:
    def __init__(self, places: int = 2):
        self.places = places
        self.lock = threading.RLock()
        self._ledgers: Dict[int, Ledger] = {}
        self._names: Dict[str, int] = {}
        self._activity: Dict[int, int] = {}
        self._next_id = 1

    def __len__(self) -> int:
        return len(self._ledgers)

    def __contains__(self, ledger_id: object) -> bool:
        return ledger_id in self._ledgers

    def create_ledger(
        self,
        name: str,
        group: Any,
        opening_balance: Any = 0,
        **contact: Optional[str],
    ) -> Ledger:
        errors: List[FieldError] = []
        clean_name = " ".join((name or "").split())
        if not clean_name:
            errors.append(FieldError("name", "Ledger name is required"))
        try:
            ledger_group = LedgerGroup.parse(group)
        except ValueError as exc:
            errors.append(FieldError("group", str(exc)))
        try:
            opening = to_amount(opening_balance, self.places)
        except ValueError as exc:
            errors.append(FieldError("opening_balance", str(exc)))
        unknown = set(contact) - {"address", "phone", "gstin", "email"}
        if unknown:
            errors.append(FieldError("contact", f"unknown fields: {', '.join(sorted(unknown))}"))
        if errors:
            raise ValidationError(errors)

        with self.lock:
            if _name_key(clean_name) in self._names:
                raise DuplicateNameError(clean_name)
            ledger = Ledger(
                id=self._next_id,
                name=clean_name,
                group=ledger_group,
                opening_balance=opening,
                current_balance=opening,
                **contact,
            )
            self._store(ledger, 0)
        logger.info("ledger created", extra={"ledger_id": ledger.id, "ledger_name": ledger.name})
        return ledger

    def load(self, ledger: Ledger, activity: int = 0) -> Ledger:
        """Register an already persisted ledger (id and balances kept as is)."""
        if ledger.id is None:
            raise ValueError("persisted ledger must have an id")
        with self.lock:
            if ledger.id in self._ledgers:
                raise DuplicateNameError(ledger.name)
            if _name_key(ledger.name) in self._names:
                raise DuplicateNameError(ledger.name)
            self._store(ledger, activity)
        return ledger

    def _store(self, ledger: Ledger, activity: int) -> None:
        self._ledgers[ledger.id] = ledger
        self._names[_name_key(ledger.name)] = ledger.id
        self._activity[ledger.id] = activity
        self._next_id = max(self._next_id, ledger.id + 1)

    def get_ledger(self, ledger_id: int) -> Ledger:
        ledger = self._ledgers.get(ledger_id)
        if ledger is None:
            raise NotFoundError(f"Ledger not found: {ledger_id}", {"ledger_id": ledger_id})
        return ledger

    def find_by_name(self, name: str) -> Optional[Ledger]:
        ledger_id = self._names.get(_name_key(name or ""))
        return self._ledgers.get(ledger_id) if ledger_id is not None else None

    def resolve(self, token: Any) -> Ledger:
        """Look a ledger up by id, numeric string or name."""
        if isinstance(token, bool):
            raise NotFoundError(f"Ledger not found: {token!r}")
        if isinstance(token, int):
            return self.get_ledger(token)
        if isinstance(token, str):
            text = token.strip()
            if text.isdigit() and int(text) in self._ledgers:
                return self._ledgers[int(text)]
            ledger = self.find_by_name(text)
            if ledger is not None:
                return ledger
        raise NotFoundError(f"Ledger not found: {token!r}", {"ledger": str(token)})

    def list_ledgers(self, group: Any = None, active_only: bool = True) -> List[Ledger]:
        wanted = LedgerGroup.parse(group) if group is not None else None
        return [
            ledger
            for _, ledger in sorted(self._ledgers.items())
            if (not active_only or ledger.is_active)
            and (wanted is None or ledger.group is wanted)
        ]

    def activity_count(self, ledger_id: int) -> int:
        self.get_ledger(ledger_id)
        return self._activity.get(ledger_id, 0)

    def has_activity(self, ledger_id: int) -> bool:
        return self.activity_count(ledger_id) > 0

    def apply_delta(self, ledger_id: int, signed_amount: Decimal) -> Decimal:
        """Add a posted line's signed amount to the ledger. Engine use only."""
        with self.lock:
            ledger = self.get_ledger(ledger_id)
            ledger.current_balance += signed_amount
            self._activity[ledger_id] = self._activity.get(ledger_id, 0) + 1
            return ledger.current_balance

    def revert_delta(self, ledger_id: int, signed_amount: Decimal) -> None:
        """Undo an ``apply_delta`` during a failed posting."""
        with self.lock:
            ledger = self.get_ledger(ledger_id)
            ledger.current_balance -= signed_amount
            self._activity[ledger_id] = max(self._activity.get(ledger_id, 0) - 1, 0)

    def deactivate_ledger(self, ledger_id: int, replacement_id: Optional[int] = None) -> Ledger:
        with self.lock:
            ledger = self.get_ledger(ledger_id)
            activity = self._activity.get(ledger_id, 0)
            if replacement_id is None:
                if activity:
                    raise HasActivityError(ledger_id, activity)
                if ledger.current_balance != ZERO:
                    raise ValidationError(
                        [FieldError("replacement_id", "Ledger carries an opening balance; supply a replacement ledger")]
                    )
            else:
                replacement = self.get_ledger(replacement_id)
                errors: List[FieldError] = []
                if replacement.id == ledger.id:
                    errors.append(FieldError("replacement_id", "A ledger cannot replace itself"))
                if not replacement.is_active:
                    errors.append(FieldError("replacement_id", "Replacement ledger is inactive"))
                if ledger.current_balance != ZERO:
                    errors.append(FieldError("current_balance", "Transfer the balance before deactivating"))
                if errors:
                    raise ValidationError(errors)
                ledger.merged_into = replacement.id
            ledger.is_active = False
        logger.info(
            "ledger deactivated",
            extra={"ledger_id": ledger_id, "replacement_id": replacement_id},
        )
        return ledger
