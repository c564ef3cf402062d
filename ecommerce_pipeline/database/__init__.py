"""SQLite schema management, bulk loading and read-only reports."""

from .schema import connect, create_tables, reset_database, table_row_counts
from .loader import insert_rows, load_database, load_tables, parse_tables, transaction
from .reports import run_reports, format_report

__all__ = [
    "connect",
    "create_tables",
    "reset_database",
    "table_row_counts",
    "insert_rows",
    "load_database",
    "load_tables",
    "parse_tables",
    "transaction",
    "run_reports",
    "format_report",
]
