"""
Read-only analytical reports over the loaded store.

The report runner never writes: it opens the database through a
``mode=ro`` URI and only issues SELECT statements.
"""

import logging
import os
import sqlite3
from pathlib import Path
from typing import Any, Dict, List

from ..exceptions import DataFileError

logger = logging.getLogger(__name__)


REPORTS: Dict[str, str] = {
    "Recent Orders With Details": """
        SELECT
            c.name AS customer_name,
            c.country,
            DATE(o.order_date) AS order_date,
            ROUND(o.total_amount, 2) AS order_total_amount,
            GROUP_CONCAT(p.product_name || ' (qty: ' || oi.quantity || ')', '; ')
                AS products_ordered,
            COALESCE(pay.payment_status, 'Unknown') AS payment_status
        FROM orders o
        INNER JOIN customers c ON c.customer_id = o.customer_id
        INNER JOIN order_items oi ON oi.order_id = o.order_id
        INNER JOIN products p ON p.product_id = oi.product_id
        LEFT JOIN payments pay ON pay.order_id = o.order_id
        GROUP BY o.order_id, c.customer_id, pay.payment_status
        ORDER BY o.order_date DESC
        LIMIT 25
    """,
    "Top 10 Customers by Total Spending": """
        SELECT
            c.customer_id,
            c.name AS customer_name,
            c.country,
            ROUND(SUM(o.total_amount), 2) AS total_spent,
            COUNT(DISTINCT o.order_id) AS order_count
        FROM customers c
        INNER JOIN orders o ON o.customer_id = c.customer_id
        GROUP BY c.customer_id
        ORDER BY total_spent DESC
        LIMIT 10
    """,
    "Most Popular Products by Quantity Sold": """
        SELECT
            p.product_id,
            p.product_name,
            p.category,
            SUM(oi.quantity) AS total_quantity_sold,
            ROUND(SUM(oi.quantity * oi.unit_price), 2) AS total_revenue
        FROM products p
        INNER JOIN order_items oi ON oi.product_id = p.product_id
        GROUP BY p.product_id
        ORDER BY total_quantity_sold DESC
        LIMIT 10
    """,
    "Monthly Sales Revenue": """
        SELECT
            STRFTIME('%Y-%m', order_date) AS month,
            ROUND(SUM(total_amount), 2) AS total_revenue,
            COUNT(*) AS total_orders
        FROM orders
        GROUP BY month
        ORDER BY month DESC
    """,
}


def connect_read_only(db_path: str) -> sqlite3.Connection:
    """Open an existing store without write access."""
    if not os.path.exists(db_path):
        raise DataFileError(f"Database not found: {db_path}")
    uri = f"{Path(db_path).resolve().as_uri()}?mode=ro"
    try:
        conn = sqlite3.connect(uri, uri=True)
    except sqlite3.Error as e:
        raise DataFileError(f"Cannot open database {db_path}: {e}") from e
    conn.row_factory = sqlite3.Row
    return conn


def run_reports(db_path: str) -> Dict[str, List[Dict[str, Any]]]:
    """
    Run every report query.

    Returns:
        Mapping of report title to its result rows
    """
    conn = connect_read_only(db_path)
    try:
        logger.info("Running analytics queries...")
        return {
            title: [dict(row) for row in conn.execute(sql).fetchall()]
            for title, sql in REPORTS.items()
        }
    finally:
        conn.close()


def format_report(title: str, rows: List[Dict[str, Any]]) -> str:
    """Render report rows as a plain-text table."""
    lines = [f"=== {title} ==="]
    if not rows:
        lines.append("No results.")
        return "\n".join(lines)

    columns = list(rows[0])
    widths = {
        col: max(len(col), *(len(str(row[col])) for row in rows))
        for col in columns
    }
    lines.append(" | ".join(col.ljust(widths[col]) for col in columns))
    lines.append("-+-".join("-" * widths[col] for col in columns))
    for row in rows:
        lines.append(" | ".join(str(row[col]).ljust(widths[col]) for col in columns))
    return "\n".join(lines)
