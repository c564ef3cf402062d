"""
Bulk loader: CSV hand-off files -> SQLite store.

Steps:
1. Parse the five CSV files into typed rows (concurrently, read-only)
2. Reset the store file, connect with foreign keys enforced
3. Recreate the schema
4. Insert each table in dependency order, one transaction per table

Atomicity is per table. If any row of a table fails, every row of that
table is rolled back and the error propagates; tables committed earlier in
the run stay loaded. The connection is always closed, and a failure while
closing is logged without hiding the error that ended the load.

Usage:
    python -m ecommerce_pipeline.database.loader --data-dir data --db-path ecommerce.db
"""

import logging
import os
import sqlite3
import sys
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from decimal import Decimal
from typing import Any, Dict, Iterator, List, Optional, Sequence

import click
from pydantic import ValidationError
from tqdm import tqdm

from ..config import PipelineConfig
from ..data_generator.schemas import TABLE_MODELS, TABLE_ORDER
from ..exceptions import ConstraintViolation, DataFileError, LoadError, PipelineError
from ..utils.csv_utils import TableCodec, read_csv
from .schema import connect, create_tables, reset_database, table_row_counts

logger = logging.getLogger(__name__)


# =============================================================================
# CONFIGURATION - typed column layout of each CSV file
# =============================================================================

COLUMN_TYPES: Dict[str, Dict[str, str]] = {
    "customers": {
        "customer_id": "integer",
        "name": "text",
        "email": "text",
        "signup_date": "text",
        "country": "text",
    },
    "products": {
        "product_id": "integer",
        "product_name": "text",
        "category": "text",
        "price": "decimal",
        "stock_quantity": "integer",
    },
    "orders": {
        "order_id": "integer",
        "customer_id": "integer",
        "order_date": "text",
        "total_amount": "decimal",
    },
    "order_items": {
        "order_item_id": "integer",
        "order_id": "integer",
        "product_id": "integer",
        "quantity": "integer",
        "unit_price": "decimal",
    },
    "payments": {
        "payment_id": "integer",
        "order_id": "integer",
        "payment_method": "text",
        "payment_status": "text",
        "payment_date": "text",
    },
}

# Built once at import; a bad layout fails here, not on the first row.
TABLE_CODECS: Dict[str, TableCodec] = {
    table: TableCodec(table, TABLE_MODELS[table].columns(), COLUMN_TYPES[table])
    for table in TABLE_ORDER
}


# =============================================================================
# PARSING
# =============================================================================

def csv_path(data_dir: str, table: str) -> str:
    return os.path.join(data_dir, f"{table}.csv")


def parse_table(data_dir: str, table: str) -> List[Dict[str, Any]]:
    """Parse one table's CSV file; a missing file is fatal."""
    path = csv_path(data_dir, table)
    if not os.path.exists(path):
        raise DataFileError(f"Missing data file for {table}: {path}")
    return read_csv(path, TABLE_CODECS[table])


def parse_tables(data_dir: str, max_workers: int = len(TABLE_ORDER)) -> Dict[str, List[Dict[str, Any]]]:
    """
    Parse all CSV files concurrently.

    The reads are independent, so they run in a thread pool. Results are
    returned in dependency order regardless of completion order.
    """
    logger.info(f"Loading CSV data from {data_dir}...")

    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = {
            table: executor.submit(parse_table, data_dir, table)
            for table in TABLE_ORDER
        }
        tables = {table: futures[table].result() for table in TABLE_ORDER}

    logger.info("CSV data loaded.")
    return tables


# =============================================================================
# INSERTING
# =============================================================================

@contextmanager
def transaction(conn: sqlite3.Connection, table: str) -> Iterator[sqlite3.Connection]:
    """
    Explicit transaction scope for one table.

    Commits when the block finishes, rolls back on any exception raised
    inside it and re-raises that exception.
    """
    conn.execute("BEGIN")
    try:
        yield conn
        conn.execute("COMMIT")
    except BaseException:
        try:
            conn.execute("ROLLBACK")
            logger.warning(f"Rolled back all {table} rows from this run")
        except sqlite3.Error as rollback_error:
            logger.error(f"Rollback of {table} failed: {rollback_error}")
        raise


def build_insert_sql(table: str, columns: Sequence[str]) -> str:
    placeholders = ", ".join("?" for _ in columns)
    return f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({placeholders})"


def _db_value(value: Any) -> Any:
    # sqlite3 has no Decimal adapter; the REAL columns take floats.
    if isinstance(value, Decimal):
        return float(value)
    return value


def insert_rows(
    conn: sqlite3.Connection,
    table: str,
    columns: Sequence[str],
    rows: Sequence[Dict[str, Any]],
    show_progress: bool = False,
) -> int:
    """
    Insert all rows of one table inside a single transaction.

    Args:
        conn: Store connection with foreign keys enabled
        table: Target table
        columns: Column order of the INSERT statement
        rows: Typed rows keyed by column name
        show_progress: Show a tqdm progress bar

    Returns:
        Number of rows inserted (0 when the table was skipped)

    Raises:
        ConstraintViolation: a row broke a key constraint; the table is rolled back
        LoadError: any other store error; the table is rolled back
    """
    if not rows:
        logger.warning(f"No rows to insert for {table}. Skipping.")
        return 0

    sql = build_insert_sql(table, columns)

    with transaction(conn, table):
        for index, row in enumerate(tqdm(rows, desc=table, disable=not show_progress)):
            params = [_db_value(row[column]) for column in columns]
            try:
                conn.execute(sql, params)
            except sqlite3.IntegrityError as e:
                raise ConstraintViolation(table, index, row, str(e)) from e
            except sqlite3.Error as e:
                raise LoadError(table, index, row, str(e)) from e

    logger.info(f"Inserted {len(rows)} rows into {table}")
    return len(rows)


def load_tables(
    conn: sqlite3.Connection,
    tables: Dict[str, Sequence[Dict[str, Any]]],
    show_progress: bool = False,
) -> Dict[str, int]:
    """Insert parsed tables strictly in dependency order, one at a time."""
    counts = {}
    for table in TABLE_ORDER:
        logger.info(f"Inserting {table}...")
        counts[table] = insert_rows(
            conn, table, TABLE_MODELS[table].columns(), tables.get(table, []),
            show_progress=show_progress,
        )
    return counts


def load_database(
    data_dir: str,
    db_path: str,
    show_progress: bool = False,
) -> Dict[str, int]:
    """
    Full refresh of the store from the CSV files in ``data_dir``.

    Returns:
        Row count per table after the load
    """
    tables = parse_tables(data_dir)

    reset_database(db_path)
    conn: Optional[sqlite3.Connection] = None
    failed = False
    try:
        conn = connect(db_path)
        create_tables(conn)
        load_tables(conn, tables, show_progress=show_progress)
        counts = table_row_counts(conn)
        logger.info("Database population completed successfully.")
        return counts
    except BaseException:
        failed = True
        raise
    finally:
        if conn is not None:
            try:
                conn.close()
                logger.info(f"Closed database connection at {db_path}.")
            except sqlite3.Error as close_error:
                logger.error(f"Error closing database connection: {close_error}")
                if not failed:
                    raise DataFileError(
                        f"Cannot close database {db_path}: {close_error}"
                    ) from close_error


# =============================================================================
# CLI Interface
# =============================================================================

@click.command()
@click.option('--data-dir', '-d', default=None, help='Directory with the CSV files')
@click.option('--db-path', default=None, help='SQLite database file to (re)create')
@click.option('--progress/--no-progress', default=False, help='Show per-table progress bars')
def main(data_dir, db_path, progress):
    """Recreate the SQLite schema and bulk-load the CSV files into it."""
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    try:
        config = PipelineConfig.from_env(data_dir=data_dir, db_path=db_path)
        counts = load_database(config.data_dir, config.db_path, show_progress=progress)
    except (PipelineError, ValidationError) as e:
        logger.error(f"Failed to set up ecommerce database: {e}")
        sys.exit(1)

    for table, count in counts.items():
        logger.info(f"  {table}: {count} rows")


if __name__ == '__main__':
    main()
