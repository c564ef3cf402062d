"""
Data Quality Validators

Checks that a generated dataset is safe to hand to the loader.
The loader's foreign keys would reject a broken dataset anyway, but these
checks report every problem at once, with counts, before anything is
written.

We implement checks at multiple levels:
1. Null checks (required fields present)
2. Uniqueness and dense 1-based ids
3. Range checks (values within expected bounds)
4. Referential integrity (foreign keys exist)
5. Business rules (order totals, no empty orders, payment dates)
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence

from ..data_generator.schemas import PaymentMethod, PaymentStatus, ProductCategory
from ..exceptions import DataQualityError
from ..utils.csv_utils import parse_timestamp

logger = logging.getLogger(__name__)

TOTAL_TOLERANCE = Decimal("0.01")
PAYMENT_WINDOW_DAYS = 7


class CheckSeverity(Enum):
    """Severity levels for data quality issues."""
    WARNING = "warning"   # Log but continue
    ERROR = "error"       # Fail the run
    INFO = "info"         # Informational only


@dataclass
class QualityCheckResult:
    """Result of a data quality check."""
    check_name: str
    passed: bool
    severity: CheckSeverity
    message: str
    failed_count: int = 0
    total_count: int = 0
    failed_percentage: float = 0.0

    def __str__(self):
        status = "PASSED" if self.passed else "FAILED"
        return (f"{status} [{self.severity.value.upper()}] {self.check_name}: "
                f"{self.message} ({self.failed_count}/{self.total_count} = "
                f"{self.failed_percentage:.2f}%)")


def _get(record: Any, column: str) -> Any:
    if isinstance(record, dict):
        return record.get(column)
    return getattr(record, column, None)


def _plain(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


class DataQualityValidator:
    """
    Data quality validator for one table of in-memory records.

    Records may be pydantic models or dicts keyed by column name.

    Usage:
        validator = DataQualityValidator(orders, "orders")
        validator.check_unique(["order_id"])

        if not validator.all_passed():
            raise DataQualityError("Quality checks failed")
    """

    def __init__(self, records: Sequence[Any], table_name: str = "unknown"):
        self.records = list(records)
        self.table_name = table_name
        self.results: List[QualityCheckResult] = []

    @property
    def total_count(self) -> int:
        return len(self.records)

    def _record(
        self,
        check_name: str,
        failed_count: int,
        severity: CheckSeverity,
        message: str,
    ) -> QualityCheckResult:
        result = QualityCheckResult(
            check_name=check_name,
            passed=failed_count == 0,
            severity=severity,
            message=message,
            failed_count=failed_count,
            total_count=self.total_count,
            failed_percentage=(failed_count / self.total_count * 100
                               if self.total_count > 0 else 0),
        )
        self.results.append(result)
        return result

    def check_not_null(
        self,
        columns: List[str],
        severity: CheckSeverity = CheckSeverity.ERROR
    ) -> List[QualityCheckResult]:
        """
        Check that specified columns have no null or empty values.

        Args:
            columns: Column names to check
            severity: How to treat failures

        Returns:
            List of check results
        """
        results = []
        for col_name in columns:
            null_count = sum(1 for r in self.records if _get(r, col_name) in (None, ""))
            results.append(self._record(
                f"not_null_{col_name}", null_count, severity,
                f"Null check for '{col_name}'",
            ))
        return results

    def check_unique(
        self,
        columns: List[str],
        severity: CheckSeverity = CheckSeverity.ERROR
    ) -> QualityCheckResult:
        """Check that specified columns form a unique key."""
        keys = [tuple(_get(r, c) for c in columns) for r in self.records]
        duplicate_count = len(keys) - len(set(keys))
        return self._record(
            f"unique_{'+'.join(columns)}", duplicate_count, severity,
            f"Uniqueness check for {columns}",
        )

    def check_sequential_ids(
        self,
        column: str,
        severity: CheckSeverity = CheckSeverity.ERROR
    ) -> QualityCheckResult:
        """Check that ids run 1..N in record order, without gaps or reuse."""
        out_of_place = sum(
            1 for position, r in enumerate(self.records, start=1)
            if _get(r, column) != position
        )
        return self._record(
            f"sequential_{column}", out_of_place, severity,
            f"Values in '{column}' must be contiguous starting at 1",
        )

    def check_values_in_set(
        self,
        column: str,
        valid_values: Iterable,
        severity: CheckSeverity = CheckSeverity.ERROR
    ) -> QualityCheckResult:
        """Check that column values are within a set of valid values."""
        allowed = {_plain(v) for v in valid_values}
        invalid_count = sum(1 for r in self.records if _plain(_get(r, column)) not in allowed)
        return self._record(
            f"valid_values_{column}", invalid_count, severity,
            f"Values in '{column}' must be one of {sorted(allowed)}",
        )

    def check_range(
        self,
        column: str,
        min_value: Optional[float] = None,
        max_value: Optional[float] = None,
        severity: CheckSeverity = CheckSeverity.ERROR
    ) -> QualityCheckResult:
        """
        Check that numeric column values fall within a range.

        Args:
            column: Column to check
            min_value: Minimum allowed value (inclusive)
            max_value: Maximum allowed value (inclusive)
            severity: How to treat failures

        Returns:
            Check result
        """
        def in_range(value) -> bool:
            if value is None:
                return False
            if min_value is not None and value < min_value:
                return False
            if max_value is not None and value > max_value:
                return False
            return True

        invalid_count = sum(1 for r in self.records if not in_range(_get(r, column)))
        return self._record(
            f"range_{column}", invalid_count, severity,
            f"Values in '{column}' must be in range [{min_value}, {max_value}]",
        )

    def check_referential_integrity(
        self,
        column: str,
        reference_records: Sequence[Any],
        reference_column: str,
        severity: CheckSeverity = CheckSeverity.ERROR
    ) -> QualityCheckResult:
        """
        Check that foreign key values exist in the reference table.

        Args:
            column: Foreign key column in this table
            reference_records: Records of the referenced table
            reference_column: Primary key column in the referenced table
            severity: How to treat failures

        Returns:
            Check result
        """
        pk_values = {_get(r, reference_column) for r in reference_records}
        orphan_count = sum(1 for r in self.records if _get(r, column) not in pk_values)
        return self._record(
            f"ref_integrity_{column}", orphan_count, severity,
            f"Foreign key '{column}' must exist in reference table",
        )

    def check_row_count(
        self,
        min_count: int = 1,
        max_count: Optional[int] = None,
        severity: CheckSeverity = CheckSeverity.ERROR
    ) -> QualityCheckResult:
        """Check that the table has the expected number of rows."""
        count = self.total_count
        passed = count >= min_count
        if max_count is not None:
            passed = passed and count <= max_count

        range_desc = f">= {min_count}"
        if max_count is not None:
            range_desc = f"[{min_count}, {max_count}]"

        result = QualityCheckResult(
            check_name="row_count",
            passed=passed,
            severity=severity,
            message=f"Row count ({count}) must be {range_desc}",
            failed_count=0 if passed else 1,
            total_count=count
        )
        self.results.append(result)
        return result

    def check_order_totals(
        self,
        order_items: Sequence[Any],
        tolerance: Decimal = TOTAL_TOLERANCE,
        severity: CheckSeverity = CheckSeverity.ERROR
    ) -> QualityCheckResult:
        """Check that each order's total equals the sum of its line totals."""
        sums: Dict[Any, Decimal] = defaultdict(lambda: Decimal("0"))
        for item in order_items:
            sums[_get(item, "order_id")] += (
                Decimal(str(_get(item, "quantity"))) * Decimal(str(_get(item, "unit_price")))
            )

        mismatched = 0
        for order in self.records:
            expected = sums[_get(order, "order_id")].quantize(Decimal("0.01"))
            actual = Decimal(str(_get(order, "total_amount")))
            if abs(actual - expected) > tolerance:
                mismatched += 1

        return self._record(
            "order_totals", mismatched, severity,
            f"total_amount must equal the sum of quantity x unit_price (tolerance {tolerance})",
        )

    def check_has_children(
        self,
        column: str,
        child_records: Sequence[Any],
        child_column: str,
        severity: CheckSeverity = CheckSeverity.ERROR
    ) -> QualityCheckResult:
        """Check that every record is referenced by at least one child record."""
        referenced = {_get(r, child_column) for r in child_records}
        childless = sum(1 for r in self.records if _get(r, column) not in referenced)
        return self._record(
            f"has_children_{child_column}", childless, severity,
            f"Every '{column}' must be referenced by at least one child row",
        )

    def check_payment_dates(
        self,
        orders: Sequence[Any],
        window_days: int = PAYMENT_WINDOW_DAYS,
        severity: CheckSeverity = CheckSeverity.ERROR
    ) -> QualityCheckResult:
        """
        Check payment dates against their order dates.

        Pending payments must carry the order date itself; other payments
        must fall within ``window_days`` after it.
        """
        order_dates = {_get(o, "order_id"): _as_datetime(_get(o, "order_date")) for o in orders}
        window_seconds = window_days * 24 * 60 * 60

        invalid = 0
        for payment in self.records:
            order_date = order_dates.get(_get(payment, "order_id"))
            payment_date = _as_datetime(_get(payment, "payment_date"))
            if order_date is None or payment_date is None:
                invalid += 1
                continue
            delta = (payment_date - order_date).total_seconds()
            if _plain(_get(payment, "payment_status")) == PaymentStatus.PENDING.value:
                if delta != 0:
                    invalid += 1
            elif not 0 <= delta <= window_seconds:
                invalid += 1

        return self._record(
            "payment_dates", invalid, severity,
            f"payment_date must equal order_date when pending, else fall within "
            f"{window_days} days after it",
        )

    def all_passed(self, include_warnings: bool = False) -> bool:
        """
        Check if all quality checks passed.

        Args:
            include_warnings: If True, warnings count as failures

        Returns:
            True if all checks passed
        """
        for result in self.results:
            if not result.passed:
                if result.severity == CheckSeverity.ERROR:
                    return False
                if include_warnings and result.severity == CheckSeverity.WARNING:
                    return False
        return True

    def failed_checks(self) -> List[QualityCheckResult]:
        return [r for r in self.results
                if not r.passed and r.severity == CheckSeverity.ERROR]

    def get_summary(self) -> str:
        """Get a summary of all check results."""
        lines = [f"Data Quality Report for {self.table_name}"]
        lines.append("=" * 50)
        lines.append(f"Total rows: {self.total_count}")
        lines.append("")

        passed_count = sum(1 for r in self.results if r.passed)
        lines.append(f"Checks passed: {passed_count}/{len(self.results)}")
        lines.append("")

        for result in self.results:
            lines.append(str(result))

        return "\n".join(lines)

    def log_results(self):
        """Log all results using the logging module."""
        logger.info(f"Data Quality Results for {self.table_name}")

        for result in self.results:
            if result.passed:
                logger.info(str(result))
            elif result.severity == CheckSeverity.WARNING:
                logger.warning(str(result))
            else:
                logger.error(str(result))


def _as_datetime(value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    return parse_timestamp(str(value))


# =============================================================================
# PRE-BUILT VALIDATION SUITES
# =============================================================================

def validate_customers(customers: Sequence[Any]) -> DataQualityValidator:
    """Run standard validation suite for customers table."""
    validator = DataQualityValidator(customers, "customers")

    validator.check_not_null(["customer_id", "name", "email", "signup_date", "country"])
    validator.check_sequential_ids("customer_id")
    validator.check_unique(["email"], severity=CheckSeverity.WARNING)

    return validator


def validate_products(products: Sequence[Any]) -> DataQualityValidator:
    """Run standard validation suite for products table."""
    validator = DataQualityValidator(products, "products")

    validator.check_not_null(["product_id", "product_name", "category", "price"])
    validator.check_sequential_ids("product_id")
    validator.check_values_in_set("category", ProductCategory)
    validator.check_range("price", min_value=Decimal("0.01"))
    validator.check_range("stock_quantity", min_value=0)

    return validator


def validate_orders(
    orders: Sequence[Any],
    customers: Sequence[Any],
    order_items: Sequence[Any],
) -> DataQualityValidator:
    """Run standard validation suite for orders table."""
    validator = DataQualityValidator(orders, "orders")

    validator.check_not_null(["order_id", "customer_id", "order_date", "total_amount"])
    validator.check_sequential_ids("order_id")
    validator.check_range("total_amount", min_value=0)
    validator.check_referential_integrity("customer_id", customers, "customer_id")
    validator.check_has_children("order_id", order_items, "order_id")
    validator.check_order_totals(order_items)

    return validator


def validate_order_items(
    order_items: Sequence[Any],
    orders: Sequence[Any],
    products: Sequence[Any],
) -> DataQualityValidator:
    """Run standard validation suite for order_items table."""
    validator = DataQualityValidator(order_items, "order_items")

    validator.check_not_null(["order_item_id", "order_id", "product_id", "quantity", "unit_price"])
    validator.check_sequential_ids("order_item_id")
    validator.check_range("quantity", min_value=1, max_value=5)
    validator.check_range("unit_price", min_value=Decimal("0.01"))
    validator.check_referential_integrity("order_id", orders, "order_id")
    validator.check_referential_integrity("product_id", products, "product_id")

    return validator


def validate_payments(payments: Sequence[Any], orders: Sequence[Any]) -> DataQualityValidator:
    """Run standard validation suite for payments table."""
    validator = DataQualityValidator(payments, "payments")

    validator.check_not_null(["payment_id", "order_id", "payment_method", "payment_status"])
    validator.check_sequential_ids("payment_id")
    validator.check_unique(["order_id"])
    validator.check_values_in_set("payment_method", PaymentMethod)
    validator.check_values_in_set("payment_status", PaymentStatus)
    validator.check_referential_integrity("order_id", orders, "order_id")
    validator.check_payment_dates(orders)

    return validator


def validate_dataset(dataset: Dict[str, Sequence[Any]]) -> List[DataQualityValidator]:
    """Run every table suite over a generated dataset."""
    customers = dataset.get("customers", [])
    products = dataset.get("products", [])
    orders = dataset.get("orders", [])
    order_items = dataset.get("order_items", [])
    payments = dataset.get("payments", [])

    return [
        validate_customers(customers),
        validate_products(products),
        validate_orders(orders, customers, order_items),
        validate_order_items(order_items, orders, products),
        validate_payments(payments, orders),
    ]


def raise_for_failures(validators: Iterable[DataQualityValidator]) -> None:
    """Raise ``DataQualityError`` listing every failed ERROR check."""
    failures = [
        f"{v.table_name}: {r.check_name}"
        for v in validators
        for r in v.failed_checks()
    ]
    if failures:
        raise DataQualityError(f"Data quality checks failed: {', '.join(failures)}")
