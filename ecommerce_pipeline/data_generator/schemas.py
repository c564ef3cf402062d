"""
Data schemas for the generated e-commerce dataset.

Each model mirrors one table of the relational store. The declared field
order is the canonical column order, used for the CSV header and for the
INSERT statement of that table.

Models are frozen: a record is created once per generation run and never
updated afterwards.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Tuple, Type

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ProductCategory(str, Enum):
    """Product categories in our e-commerce store."""
    ELECTRONICS = "Electronics"
    HOME_KITCHEN = "Home & Kitchen"
    BOOKS = "Books"
    CLOTHING = "Clothing"
    SPORTS_OUTDOORS = "Sports & Outdoors"
    BEAUTY = "Beauty"
    TOYS = "Toys"
    AUTOMOTIVE = "Automotive"


class PaymentMethod(str, Enum):
    """Supported payment methods."""
    CREDIT_CARD = "Credit Card"
    DEBIT_CARD = "Debit Card"
    PAYPAL = "PayPal"
    BANK_TRANSFER = "Bank Transfer"
    GIFT_CARD = "Gift Card"


class PaymentStatus(str, Enum):
    """Possible states of a payment."""
    COMPLETED = "Completed"
    PENDING = "Pending"
    FAILED = "Failed"


class _Record(BaseModel):
    model_config = ConfigDict(frozen=True)

    @classmethod
    def columns(cls) -> Tuple[str, ...]:
        """Ordered column names for this table."""
        return tuple(cls.model_fields)


class Customer(_Record):
    """A registered shopper. Has no outgoing references."""
    customer_id: int = Field(..., ge=1, description="Dense 1-based identifier")
    name: str = Field(..., description="Customer's full name")
    email: str = Field(..., description="Customer's email address, lower-cased")
    signup_date: date = Field(..., description="Date the account was created")
    country: str = Field(..., description="Customer's country name")

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, v: str) -> str:
        return v.lower()


class Product(_Record):
    """An item in the catalog."""
    product_id: int = Field(..., ge=1)
    product_name: str
    category: ProductCategory
    price: Decimal = Field(..., gt=0, decimal_places=2, description="Current unit price")
    stock_quantity: int = Field(..., ge=0, description="Current inventory level")


class Order(_Record):
    """
    A purchase placed by a customer.

    ``total_amount`` is derived from the order's line items and is only set
    once, after every item has been assigned.
    """
    order_id: int = Field(..., ge=1)
    customer_id: int = Field(..., ge=1, description="Reference to the customer")
    order_date: datetime = Field(..., description="When the order was placed (UTC)")
    total_amount: Decimal = Field(Decimal("0.00"), ge=0, description="Sum of line totals")


class OrderItem(_Record):
    """Order line item. ``unit_price`` is a snapshot of the product price."""
    order_item_id: int = Field(..., ge=1)
    order_id: int = Field(..., ge=1)
    product_id: int = Field(..., ge=1)
    quantity: int = Field(..., ge=1, le=5)
    unit_price: Decimal = Field(..., gt=0)

    @property
    def line_total(self) -> Decimal:
        return self.quantity * self.unit_price


class Payment(_Record):
    """The single payment attached to an order."""
    payment_id: int = Field(..., ge=1)
    order_id: int = Field(..., ge=1)
    payment_method: PaymentMethod
    payment_status: PaymentStatus
    payment_date: datetime


# Tables in foreign-key dependency order (parents first).
TABLE_MODELS: Dict[str, Type[_Record]] = {
    "customers": Customer,
    "products": Product,
    "orders": Order,
    "order_items": OrderItem,
    "payments": Payment,
}

TABLE_ORDER: List[str] = list(TABLE_MODELS)
