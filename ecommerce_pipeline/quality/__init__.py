"""Data quality validators package."""

from .validators import (
    DataQualityValidator,
    QualityCheckResult,
    CheckSeverity,
    validate_customers,
    validate_products,
    validate_orders,
    validate_order_items,
    validate_payments,
    validate_dataset,
    raise_for_failures,
)

__all__ = [
    "DataQualityValidator",
    "QualityCheckResult",
    "CheckSeverity",
    "validate_customers",
    "validate_products",
    "validate_orders",
    "validate_order_items",
    "validate_payments",
    "validate_dataset",
    "raise_for_failures",
]
