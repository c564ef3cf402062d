"""
Schema management for the SQLite store.

The schema is recreated from scratch before every load (full refresh): the
five tables are dropped in reverse dependency order and created again with
their primary and foreign keys.

Foreign-key rules:
- deleting a customer cascades to its orders
- deleting an order cascades to its order items and payment
- deleting a product that an order item references is rejected (RESTRICT)

SQLite ships with foreign-key enforcement switched off, so every connection
opened here turns it on and reads the setting back before anything is
written.
"""

import logging
import os
import sqlite3
from typing import Dict, List

from ..data_generator.schemas import TABLE_ORDER
from ..exceptions import DataFileError, StoreConfigurationError

logger = logging.getLogger(__name__)


# =============================================================================
# DDL
# =============================================================================

TABLE_DDL: Dict[str, str] = {
    "customers": """
        CREATE TABLE customers (
            customer_id INTEGER PRIMARY KEY,
            name TEXT NOT NULL,
            email TEXT NOT NULL,
            signup_date TEXT NOT NULL,
            country TEXT NOT NULL
        )""",
    "products": """
        CREATE TABLE products (
            product_id INTEGER PRIMARY KEY,
            product_name TEXT NOT NULL,
            category TEXT NOT NULL,
            price REAL NOT NULL,
            stock_quantity INTEGER NOT NULL
        )""",
    "orders": """
        CREATE TABLE orders (
            order_id INTEGER PRIMARY KEY,
            customer_id INTEGER NOT NULL,
            order_date TEXT NOT NULL,
            total_amount REAL NOT NULL,
            FOREIGN KEY (customer_id) REFERENCES customers(customer_id)
                ON DELETE CASCADE ON UPDATE CASCADE
        )""",
    "order_items": """
        CREATE TABLE order_items (
            order_item_id INTEGER PRIMARY KEY,
            order_id INTEGER NOT NULL,
            product_id INTEGER NOT NULL,
            quantity INTEGER NOT NULL,
            unit_price REAL NOT NULL,
            FOREIGN KEY (order_id) REFERENCES orders(order_id)
                ON DELETE CASCADE ON UPDATE CASCADE,
            FOREIGN KEY (product_id) REFERENCES products(product_id)
                ON DELETE RESTRICT ON UPDATE CASCADE
        )""",
    "payments": """
        CREATE TABLE payments (
            payment_id INTEGER PRIMARY KEY,
            order_id INTEGER NOT NULL,
            payment_method TEXT NOT NULL,
            payment_status TEXT NOT NULL,
            payment_date TEXT NOT NULL,
            FOREIGN KEY (order_id) REFERENCES orders(order_id)
                ON DELETE CASCADE ON UPDATE CASCADE
        )""",
}


# =============================================================================
# CONNECTION
# =============================================================================

def enable_foreign_keys(conn: sqlite3.Connection) -> None:
    """
    Turn on foreign-key enforcement and confirm it took effect.

    Raises:
        StoreConfigurationError: if the pragma cannot be confirmed
    """
    conn.execute("PRAGMA foreign_keys = ON")
    row = conn.execute("PRAGMA foreign_keys").fetchone()
    if row is None or row[0] != 1:
        raise StoreConfigurationError(
            "Foreign-key enforcement could not be enabled on the store connection"
        )


def connect(db_path: str) -> sqlite3.Connection:
    """
    Open the store with foreign keys enforced.

    The connection runs in autocommit mode (``isolation_level=None``);
    transactions are opened explicitly by the loader.
    """
    try:
        conn = sqlite3.connect(db_path, isolation_level=None)
    except sqlite3.Error as e:
        raise DataFileError(f"Cannot open database {db_path}: {e}") from e

    try:
        enable_foreign_keys(conn)
    except Exception:
        conn.close()
        raise

    logger.info(f"Opened database {db_path} with foreign keys enabled")
    return conn


def reset_database(db_path: str) -> None:
    """Delete a previous store file so the next load starts from nothing."""
    if db_path == ":memory:":
        return
    parent = os.path.dirname(os.path.abspath(db_path))
    try:
        os.makedirs(parent, exist_ok=True)
        if os.path.exists(db_path):
            os.remove(db_path)
            logger.info(f"Removed existing database {db_path}")
    except OSError as e:
        raise DataFileError(f"Cannot reset database file {db_path}: {e}") from e


# =============================================================================
# SCHEMA
# =============================================================================

def drop_tables(conn: sqlite3.Connection) -> None:
    """Drop all pipeline tables, children first."""
    for table in reversed(TABLE_ORDER):
        conn.execute(f"DROP TABLE IF EXISTS {table}")


def create_tables(conn: sqlite3.Connection) -> None:
    """
    Recreate the five tables, destroying any existing data.

    Safe to call repeatedly: each call leaves the same empty schema.
    """
    enable_foreign_keys(conn)

    logger.info("Creating tables...")
    conn.execute("BEGIN")
    try:
        drop_tables(conn)
        for table in TABLE_ORDER:
            conn.execute(TABLE_DDL[table])
        conn.execute("COMMIT")
    except Exception:
        conn.execute("ROLLBACK")
        raise
    logger.info(f"Created tables: {', '.join(TABLE_ORDER)}")


def list_tables(conn: sqlite3.Connection) -> List[str]:
    rows = conn.execute(
        "SELECT name FROM sqlite_master WHERE type = 'table' ORDER BY name"
    ).fetchall()
    return [row[0] for row in rows]


def table_row_counts(conn: sqlite3.Connection) -> Dict[str, int]:
    """Row count of every pipeline table, in dependency order."""
    return {
        table: conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]
        for table in TABLE_ORDER
    }
