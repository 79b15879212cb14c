from .connection import get_db
from .schema import init_db
from .store import open_book, save_ledger, save_posting, save_voucher

__all__ = ["get_db", "init_db", "open_book", "save_ledger", "save_posting", "save_voucher"]
