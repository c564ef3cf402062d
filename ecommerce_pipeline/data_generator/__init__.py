"""Data generator package for creating the synthetic e-commerce dataset."""

from .generator import EcommerceDataGenerator, generate_dataset, random_count
from .schemas import (
    Customer,
    Product,
    Order,
    OrderItem,
    Payment,
    ProductCategory,
    PaymentMethod,
    PaymentStatus,
    TABLE_MODELS,
    TABLE_ORDER,
)
from .sequence import IdSequence

__all__ = [
    "EcommerceDataGenerator",
    "generate_dataset",
    "random_count",
    "IdSequence",
    "Customer",
    "Product",
    "Order",
    "OrderItem",
    "Payment",
    "ProductCategory",
    "PaymentMethod",
    "PaymentStatus",
    "TABLE_MODELS",
    "TABLE_ORDER",
]
