from .init import add_parser as add_init_parser
from .ledger import add_parser as add_ledger_parser
from .record import add_parser as add_record_parser
from .void import add_parser as add_void_parser
from .correct import add_parser as add_correct_parser
from .query import add_parser as add_query_parser
from .report import add_parser as add_report_parser

__all__ = [
    "add_init_parser",
    "add_ledger_parser",
    "add_record_parser",
    "add_void_parser",
    "add_correct_parser",
    "add_query_parser",
    "add_report_parser",
]
