#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Voucher ledger engine: validation and atomic posting of vouchers."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Tuple

from bookkeeping.config import load_config
from bookkeeping.models import (
    BalanceSide,
    LedgerGroup,
    Voucher,
    VoucherDraft,
    VoucherLineItem,
    VoucherStatus,
    VoucherType,
)
from bookkeeping.registry import LedgerRegistry
from bookkeeping.utils import (
    FieldError,
    NotFoundError,
    ValidationError,
    VoucherStateError,
    ZERO,
    parse_date,
    to_amount,
)


logger = logging.getLogger(__name__)


PARTY_GROUPS: Dict[VoucherType, Tuple[LedgerGroup, ...]] = {
    VoucherType.SALES: (
        LedgerGroup.SUNDRY_DEBTORS,
        LedgerGroup.CASH_IN_HAND,
        LedgerGroup.BANK_ACCOUNTS,
    ),
    VoucherType.PURCHASE: (
        LedgerGroup.SUNDRY_CREDITORS,
        LedgerGroup.CASH_IN_HAND,
        LedgerGroup.BANK_ACCOUNTS,
    ),
    VoucherType.RECEIPT: (LedgerGroup.SUNDRY_DEBTORS, LedgerGroup.SUNDRY_CREDITORS),
    VoucherType.PAYMENT: (LedgerGroup.SUNDRY_CREDITORS, LedgerGroup.SUNDRY_DEBTORS),
    VoucherType.CREDIT_NOTE: (LedgerGroup.SUNDRY_DEBTORS,),
    VoucherType.DEBIT_NOTE: (LedgerGroup.SUNDRY_CREDITORS,),
}

_SIDE_ALIASES = {
    "debit": BalanceSide.DEBIT,
    "dr": BalanceSide.DEBIT,
    "credit": BalanceSide.CREDIT,
    "cr": BalanceSide.CREDIT,
}


def _parse_side(token: Any) -> BalanceSide:
    if isinstance(token, BalanceSide):
        return token
    if isinstance(token, str) and token.strip().lower() in _SIDE_ALIASES:
        return _SIDE_ALIASES[token.strip().lower()]
    raise ValueError(f"line type must be debit or credit, got {token!r}")


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _option_date(value: Any) -> date:
    try:
        return parse_date(value)
    except ValueError:
        raise ValidationError([FieldError("date", f"Invalid date: {value!r}")]) from None


@dataclass
class PostingResult:
    """What storage must persist after a posting: the voucher and touched balances."""

    voucher: Voucher
    balances: Dict[int, Decimal]
    updated_vouchers: List[Voucher] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "voucher": self.voucher.to_dict(),
            "balances": [
                {"ledger_id": ledger_id, "current_balance": balance}
                for ledger_id, balance in self.balances.items()
            ],
            "updated_vouchers": [
                {"id": v.id, "status": v.status.value, "reversed_by_id": v.reversed_by_id}
                for v in self.updated_vouchers
            ],
        }


class VoucherEngine:
    def __init__(self, registry: LedgerRegistry, config: Optional[Dict[str, Any]] = None):
        self.registry = registry
        self.config = config if config is not None else load_config()
        self.tolerance: Decimal = Decimal(str(self.config["balance_tolerance"]))
        self.places: int = int(self.config["currency_places"])
        self.prefixes: Dict[str, str] = dict(self.config["voucher_prefixes"])
        self._vouchers: Dict[int, Voucher] = {}
        self._numbers: Dict[str, int] = {}
        self._next_id = 1

    # ------------------------------------------------------------------
    # history

    @property
    def vouchers(self) -> List[Voucher]:
        return [self._vouchers[key] for key in sorted(self._vouchers)]

    def get_voucher(self, voucher_id: int) -> Voucher:
        voucher = self._vouchers.get(voucher_id)
        if voucher is None:
            raise NotFoundError(f"Voucher not found: {voucher_id}", {"voucher_id": voucher_id})
        return voucher

    def list_vouchers(
        self,
        voucher_type: Any = None,
        start: Any = None,
        end: Any = None,
        status: Any = None,
    ) -> List[Voucher]:
        vtype = VoucherType.parse(voucher_type) if voucher_type else None
        wanted_status = VoucherStatus(status) if status else None
        start_date = parse_date(start) if start else None
        end_date = parse_date(end) if end else None
        rows = [
            v
            for v in self._vouchers.values()
            if (vtype is None or v.type is vtype)
            and (wanted_status is None or v.status is wanted_status)
            and (start_date is None or v.date >= start_date)
            and (end_date is None or v.date <= end_date)
        ]
        return sorted(rows, key=lambda v: (v.date, v.id))

    def load_voucher(self, voucher: Voucher) -> None:
        """Register a persisted voucher; its effects are already in the balances."""
        if voucher.id is None:
            raise ValueError("persisted voucher must have an id")
        self._vouchers[voucher.id] = voucher
        if voucher.voucher_number:
            self._numbers[voucher.voucher_number] = voucher.id
        self._next_id = max(self._next_id, voucher.id + 1)

    # ------------------------------------------------------------------
    # validation

    def validate(self, draft: VoucherDraft) -> List[FieldError]:
        _, errors = self._build(draft)
        return errors

    def _build(self, draft: VoucherDraft) -> Tuple[Optional[Voucher], List[FieldError]]:
        errors: List[FieldError] = []

        vtype: Optional[VoucherType] = None
        try:
            vtype = VoucherType.parse(draft.type)
        except ValueError as exc:
            errors.append(FieldError("type", str(exc)))

        voucher_date: Optional[date] = None
        if _is_blank(draft.date):
            errors.append(FieldError("date", "Date is required"))
        else:
            try:
                voucher_date = parse_date(draft.date)
            except ValueError:
                errors.append(FieldError("date", f"Invalid date: {draft.date!r}"))

        lines = self._build_lines(draft.items, errors)
        if not lines and not any(e.field.startswith("items[") for e in errors):
            errors.append(FieldError("items", "At least one ledger entry is required"))

        party_id = self._check_party(vtype, draft.party_ledger_id, errors)

        total_debit = sum((line.debit for line in lines), ZERO)
        total_credit = sum((line.credit for line in lines), ZERO)
        difference = total_debit - total_credit
        if lines and abs(difference) > self.tolerance:
            errors.append(
                FieldError(
                    "items",
                    f"Debit and credit amounts must be equal "
                    f"(debit {total_debit}, credit {total_credit}, difference {difference})",
                )
            )

        number = (draft.voucher_number or "").strip() or None
        if number and number in self._numbers:
            errors.append(FieldError("voucher_number", f"Voucher number already used: {number}"))

        if errors:
            return None, errors
        return (
            Voucher(
                voucher_number=number,
                type=vtype,
                date=voucher_date,
                party_ledger_id=party_id,
                narration=draft.narration,
                items=lines,
                total_amount=total_debit,
                status=VoucherStatus.DRAFT,
            ),
            errors,
        )

    def _build_lines(self, items: Iterable[Any], errors: List[FieldError]) -> List[VoucherLineItem]:
        lines: List[VoucherLineItem] = []
        for idx, raw in enumerate(items or []):
            prefix = f"items[{idx}]"
            if isinstance(raw, VoucherLineItem):
                token, amount_raw, side_raw, particulars = (
                    raw.ledger_id, raw.amount, raw.side, raw.particulars,
                )
            elif isinstance(raw, dict):
                token = raw.get("ledger_id", raw.get("ledger"))
                amount_raw = raw.get("amount")
                side_raw = raw.get("type", raw.get("side"))
                particulars = raw.get("particulars")
                if amount_raw is None and side_raw is None:
                    # {"ledger": ..., "debit": 100} style rows
                    if raw.get("debit") not in (None, "", 0):
                        amount_raw, side_raw = raw.get("debit"), BalanceSide.DEBIT
                    elif raw.get("credit") not in (None, "", 0):
                        amount_raw, side_raw = raw.get("credit"), BalanceSide.CREDIT
            else:
                errors.append(FieldError(prefix, "Line item must be an object"))
                continue

            if _is_blank(token) and _is_blank(amount_raw):
                continue
            try:
                amount = to_amount(amount_raw, self.places)
            except ValueError:
                errors.append(FieldError(f"{prefix}.amount", f"Invalid amount: {amount_raw!r}"))
                continue
            if amount == ZERO:
                continue
            if amount < ZERO:
                errors.append(FieldError(f"{prefix}.amount", "Amount must be positive"))
                continue
            if _is_blank(token):
                errors.append(FieldError(f"{prefix}.ledger_id", "Ledger is required"))
                continue
            try:
                side = _parse_side(side_raw)
            except ValueError as exc:
                errors.append(FieldError(f"{prefix}.type", str(exc)))
                continue
            try:
                ledger = self.registry.resolve(token)
            except NotFoundError:
                errors.append(FieldError(f"{prefix}.ledger_id", f"Ledger not found: {token!r}"))
                continue
            if not ledger.is_active:
                errors.append(FieldError(f"{prefix}.ledger_id", f"Ledger is inactive: {ledger.name}"))
                continue
            lines.append(VoucherLineItem(ledger.id, side, amount, particulars))
        return lines

    def _check_party(
        self, vtype: Optional[VoucherType], token: Any, errors: List[FieldError]
    ) -> Optional[int]:
        if _is_blank(token):
            if vtype is not None and vtype.requires_party:
                errors.append(FieldError("party_ledger_id", "Party account is required"))
            return None
        try:
            party = self.registry.resolve(token)
        except NotFoundError:
            errors.append(FieldError("party_ledger_id", f"Ledger not found: {token!r}"))
            return None
        if not party.is_active:
            errors.append(FieldError("party_ledger_id", f"Ledger is inactive: {party.name}"))
        allowed = PARTY_GROUPS.get(vtype) if vtype is not None else None
        if allowed and party.group not in allowed:
            labels = ", ".join(group.label for group in allowed)
            errors.append(
                FieldError(
                    "party_ledger_id",
                    f"{vtype.title} party must belong to {labels}; {party.name} is in {party.group.label}",
                )
            )
        return party.id

    # ------------------------------------------------------------------
    # posting

    def post(self, draft: VoucherDraft) -> PostingResult:
        with self.registry.lock:
            voucher, errors = self._build(draft)
            if errors:
                draft.status = VoucherStatus.REJECTED
                logger.warning(
                    "voucher rejected",
                    extra={"errors": [e.to_dict() for e in errors]},
                )
                raise ValidationError(errors)
            result = self._commit(voucher)
            draft.status = VoucherStatus.POSTED
            return result

    def _commit(self, voucher: Voucher) -> PostingResult:
        balances = self._apply(voucher.items)
        voucher.id = self._next_id
        self._next_id += 1
        if not voucher.voucher_number:
            voucher.voucher_number = self._next_number(voucher.type)
        voucher.total_amount = voucher.total_debit
        voucher.status = VoucherStatus.POSTED
        voucher.created_at = datetime.now()
        self._vouchers[voucher.id] = voucher
        self._numbers[voucher.voucher_number] = voucher.id
        logger.info(
            "voucher posted",
            extra={
                "voucher_id": voucher.id,
                "voucher_number": voucher.voucher_number,
                "total_amount": str(voucher.total_amount),
            },
        )
        return PostingResult(voucher=voucher, balances=balances)

    def _apply(self, items: List[VoucherLineItem]) -> Dict[int, Decimal]:
        # Resolve every ledger before touching any balance.
        for item in items:
            self.registry.get_ledger(item.ledger_id)
        applied: List[VoucherLineItem] = []
        try:
            for item in items:
                self.registry.apply_delta(item.ledger_id, item.signed_amount)
                applied.append(item)
        except Exception:
            for item in reversed(applied):
                self.registry.revert_delta(item.ledger_id, item.signed_amount)
            raise
        return {
            ledger_id: self.registry.get_ledger(ledger_id).current_balance
            for ledger_id in dict.fromkeys(item.ledger_id for item in items)
        }

    def _rollback(self, result: PostingResult) -> None:
        voucher = result.voucher
        for item in reversed(voucher.items):
            self.registry.revert_delta(item.ledger_id, item.signed_amount)
        self._vouchers.pop(voucher.id, None)
        self._numbers.pop(voucher.voucher_number, None)

    def _next_number(self, vtype: VoucherType) -> str:
        prefix = self.prefixes.get(vtype.value, vtype.value.upper())
        seq = sum(1 for v in self._vouchers.values() if v.type is vtype) + 1
        number = f"{prefix}/{seq:04d}"
        while number in self._numbers:
            seq += 1
            number = f"{prefix}/{seq:04d}"
        return number

    # ------------------------------------------------------------------
    # corrections

    def reverse_voucher(
        self,
        voucher_id: int,
        reason: str,
        date: Any = None,
        *,
        status: VoucherStatus = VoucherStatus.REVERSED,
    ) -> PostingResult:
        with self.registry.lock:
            original = self._reversible(voucher_id)
            inactive = [
                FieldError(
                    f"items[{index}].ledger_id",
                    f"Ledger {ledger.name!r} is inactive",
                )
                for index, ledger in enumerate(
                    self.registry.get_ledger(item.ledger_id) for item in original.items
                )
                if not ledger.is_active
            ]
            if inactive:
                raise ValidationError(inactive)
            reversal = Voucher(
                type=original.type,
                date=_option_date(date) if date else original.date,
                party_ledger_id=original.party_ledger_id,
                narration=f"Reversal of {original.voucher_number}: {reason}".strip(),
                items=[
                    VoucherLineItem(
                        item.ledger_id,
                        item.side.opposite(),
                        item.amount,
                        f"Reversal: {item.particulars or ''}".strip(),
                    )
                    for item in original.items
                ],
                reverses_id=original.id,
                reason=reason,
            )
            result = self._commit(reversal)
            original.status = status
            original.reversed_by_id = reversal.id
            original.reason = reason
            result.updated_vouchers.append(original)
        logger.info(
            "voucher reversed",
            extra={"voucher_id": voucher_id, "reversal_id": reversal.id, "status": status.value},
        )
        return result

    def _reversible(self, voucher_id: int) -> Voucher:
        original = self.get_voucher(voucher_id)
        if original.status is not VoucherStatus.POSTED:
            raise VoucherStateError(
                f"Only posted vouchers can be reversed; voucher {voucher_id} is {original.status.value}",
                {"voucher_id": voucher_id, "status": original.status.value},
            )
        if original.reverses_id is not None:
            raise VoucherStateError(
                f"Voucher {voucher_id} is itself a reversal",
                {"voucher_id": voucher_id, "reverses_id": original.reverses_id},
            )
        return original

    def correct_voucher(
        self, voucher_id: int, draft: VoucherDraft, reason: str
    ) -> Tuple[PostingResult, PostingResult]:
        """Supersede a posted voucher: reverse it, then post the replacement."""
        with self.registry.lock:
            original = self._reversible(voucher_id)
            replacement, errors = self._build(draft)
            if errors:
                draft.status = VoucherStatus.REJECTED
                logger.warning(
                    "correction rejected",
                    extra={"voucher_id": voucher_id, "errors": [e.to_dict() for e in errors]},
                )
                raise ValidationError(errors)
            reversal = self.reverse_voucher(
                voucher_id, reason, original.date, status=VoucherStatus.SUPERSEDED
            )
            try:
                correction = self._commit(replacement)
            except Exception:
                self._rollback(reversal)
                original.status = VoucherStatus.POSTED
                original.reversed_by_id = None
                original.reason = None
                raise
            correction.voucher.reason = f"Correction of {original.voucher_number}: {reason}"
            draft.status = VoucherStatus.POSTED
        return reversal, correction

    def merge_ledger(
        self, source_id: int, target_id: int, date: Any = None
    ) -> Optional[PostingResult]:
        """Move ``source``'s balance into ``target`` and deactivate ``source``."""
        with self.registry.lock:
            source = self.registry.get_ledger(source_id)
            target = self.registry.get_ledger(target_id)
            errors: List[FieldError] = []
            if source.id == target.id:
                errors.append(FieldError("replacement_id", "A ledger cannot replace itself"))
            if not target.is_active:
                errors.append(FieldError("replacement_id", "Replacement ledger is inactive"))
            if not source.is_active:
                errors.append(FieldError("ledger_id", "Ledger is already inactive"))
            if errors:
                raise ValidationError(errors)

            result = None
            balance = source.current_balance
            if balance != ZERO:
                source_side = BalanceSide.CREDIT if balance > ZERO else BalanceSide.DEBIT
                amount = abs(balance)
                transfer = Voucher(
                    type=VoucherType.JOURNAL,
                    date=_option_date(date) if date else datetime.now().date(),
                    narration=f"Balance transfer from {source.name} to {target.name}",
                    items=[
                        VoucherLineItem(source.id, source_side, amount, "Balance transfer"),
                        VoucherLineItem(target.id, source_side.opposite(), amount, "Balance transfer"),
                    ],
                )
                result = self._commit(transfer)
            self.registry.deactivate_ledger(source.id, target.id)
        return result
