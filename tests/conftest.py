"""
Pytest configuration and shared fixtures.

Fixtures are reusable test components that provide:
- A seeded generator and the dataset it produces
- CSV hand-off files in a temporary data directory
- SQLite database paths and open connections

Use fixtures to avoid repeating setup code in each test.
"""

import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))


FIXED_NOW = datetime(2024, 6, 15, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def make_generator():
    """Factory for seeded generators with a fixed reference time."""
    from ecommerce_pipeline.data_generator.generator import EcommerceDataGenerator

    def factory(**kwargs):
        kwargs.setdefault("seed", 1234)
        kwargs.setdefault("now", FIXED_NOW)
        kwargs.setdefault("show_progress", False)
        return EcommerceDataGenerator(**kwargs)

    return factory


@pytest.fixture
def generator(make_generator):
    """A small generated dataset with a skewed item distribution."""
    gen = make_generator(num_customers=20, num_products=15, num_orders=30, num_order_items=80)
    gen.generate_all()
    return gen


@pytest.fixture
def dataset(generator):
    """Mapping of table name to generated records."""
    return generator.dataset()


@pytest.fixture
def data_dir(tmp_path, generator):
    """Temporary directory holding the generated CSV files."""
    path = tmp_path / "data"
    generator.save_to_csv(str(path))
    return path


@pytest.fixture
def db_path(tmp_path):
    """Path for a fresh SQLite database file."""
    return str(tmp_path / "ecommerce.db")


@pytest.fixture
def conn(db_path):
    """Open connection with foreign keys on and the empty schema created."""
    from ecommerce_pipeline.database.schema import connect, create_tables

    connection = connect(db_path)
    create_tables(connection)
    yield connection
    connection.close()


@pytest.fixture
def sample_customers_rows():
    """Typed customer rows as produced by the CSV parser."""
    return [
        {
            "customer_id": 1,
            "name": "John Doe",
            "email": "john.doe@example.com",
            "signup_date": "2023-01-15",
            "country": "Germany",
        },
        {
            "customer_id": 2,
            "name": "Jane Smith",
            "email": "jane.smith@example.com",
            "signup_date": "2023-06-20",
            "country": "Korea, Republic of",
        },
    ]


@pytest.fixture
def sample_products_rows():
    """Typed product rows as produced by the CSV parser."""
    from decimal import Decimal

    return [
        {
            "product_id": 1,
            "product_name": "Sony Headphones Echo",
            "category": "Electronics",
            "price": Decimal("199.99"),
            "stock_quantity": 100,
        },
        {
            "product_id": 2,
            "product_name": "Penguin Fiction Novel \"Dune\"",
            "category": "Books",
            "price": Decimal("12.50"),
            "stock_quantity": 0,
        },
    ]


@pytest.fixture
def sample_orders_rows():
    """Typed order rows referencing the sample customers."""
    from decimal import Decimal

    return [
        {
            "order_id": 1,
            "customer_id": 1,
            "order_date": "2024-05-01T10:30:00.000Z",
            "total_amount": Decimal("412.48"),
        },
        {
            "order_id": 2,
            "customer_id": 2,
            "order_date": "2024-05-03T08:15:00.000Z",
            "total_amount": Decimal("12.50"),
        },
    ]


@pytest.fixture
def sample_order_items_rows():
    """Typed order item rows referencing the sample orders and products."""
    from decimal import Decimal

    return [
        {"order_item_id": 1, "order_id": 1, "product_id": 1, "quantity": 2, "unit_price": Decimal("199.99")},
        {"order_item_id": 2, "order_id": 1, "product_id": 2, "quantity": 1, "unit_price": Decimal("12.50")},
        {"order_item_id": 3, "order_id": 2, "product_id": 2, "quantity": 1, "unit_price": Decimal("12.50")},
    ]


@pytest.fixture
def sample_payments_rows():
    """Typed payment rows, one per sample order."""
    return [
        {
            "payment_id": 1,
            "order_id": 1,
            "payment_method": "PayPal",
            "payment_status": "Completed",
            "payment_date": "2024-05-02T09:00:00.000Z",
        },
        {
            "payment_id": 2,
            "order_id": 2,
            "payment_method": "Gift Card",
            "payment_status": "Pending",
            "payment_date": "2024-05-03T08:15:00.000Z",
        },
    ]


@pytest.fixture
def sample_tables(sample_customers_rows, sample_products_rows, sample_orders_rows,
                  sample_order_items_rows, sample_payments_rows):
    """All sample rows keyed by table, in dependency order."""
    return {
        "customers": sample_customers_rows,
        "products": sample_products_rows,
        "orders": sample_orders_rows,
        "order_items": sample_order_items_rows,
        "payments": sample_payments_rows,
    }
