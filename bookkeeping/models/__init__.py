from .group import BalanceSide, GroupNature, LedgerGroup
from .ledger import Ledger
from .voucher import Voucher, VoucherDraft, VoucherLineItem, VoucherStatus, VoucherType

__all__ = [
    "BalanceSide",
    "GroupNature",
    "Ledger",
    "LedgerGroup",
    "Voucher",
    "VoucherDraft",
    "VoucherLineItem",
    "VoucherStatus",
    "VoucherType",
]
