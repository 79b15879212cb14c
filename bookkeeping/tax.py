#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Flat-rate GST split for invoice previews.

Illustrative only: one rate for the whole invoice, halved into CGST and
SGST for intra-state supplies or charged in full as IGST otherwise.
"""

from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Optional

from bookkeeping.config import DEFAULT_CONFIG
from bookkeeping.models import Voucher
from bookkeeping.registry import LedgerRegistry
from bookkeeping.utils import ZERO, to_amount


HUNDRED = Decimal("100")
CENT = Decimal("0.01")


def gst_split(
    amount: Any,
    rate: Any = None,
    interstate: bool = False,
) -> Dict[str, Decimal]:
    subtotal = to_amount(amount)
    gst_rate = Decimal(str(rate if rate is not None else DEFAULT_CONFIG["gst_rate"]))
    if gst_rate < ZERO:
        raise ValueError(f"GST rate must not be negative: {rate!r}")
    if interstate:
        igst = (subtotal * gst_rate / HUNDRED).quantize(CENT, rounding=ROUND_HALF_UP)
        cgst = sgst = ZERO.quantize(CENT)
    else:
        cgst = (subtotal * gst_rate / 2 / HUNDRED).quantize(CENT, rounding=ROUND_HALF_UP)
        sgst = cgst
        igst = ZERO.quantize(CENT)
    return {
        "subtotal": subtotal,
        "rate": gst_rate,
        "cgst": cgst,
        "sgst": sgst,
        "igst": igst,
        "total": subtotal + cgst + sgst + igst,
    }


def invoice_summary(
    voucher: Voucher,
    registry: LedgerRegistry,
    rate: Any = None,
    seller_gstin: Optional[str] = None,
) -> Dict[str, Any]:
    """Tax-invoice figures for a voucher, treating its total as the taxable value.

    Supplies are inter-state when both GSTINs are known and their two-digit
    state codes differ.
    """
    party = registry.get_ledger(voucher.party_ledger_id) if voucher.party_ledger_id else None
    buyer_gstin = party.gstin if party else None
    interstate = bool(
        seller_gstin and buyer_gstin and seller_gstin[:2] != buyer_gstin[:2]
    )
    split = gst_split(voucher.total_amount, rate, interstate=interstate)
    return {
        "voucher_id": voucher.id,
        "voucher_number": voucher.voucher_number,
        "date": voucher.date,
        "party": party.name if party else None,
        "buyer_gstin": buyer_gstin,
        "seller_gstin": seller_gstin,
        "interstate": interstate,
        **split,
    }
