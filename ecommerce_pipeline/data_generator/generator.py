"""
E-commerce Data Generator

This module generates the synthetic dataset loaded by the pipeline.
It creates interconnected datasets that keep referential integrity:
- Customers who make purchases
- Products available in a catalog
- Orders placed by existing customers
- Order items linking every order to existing products
- Exactly one payment per order

Order totals are derived from the order items. Items are assigned in two
passes: every order first receives exactly one item (no empty orders), then
extra items are spread over random orders until the requested item count is
reached. Totals accumulate item by item and are fixed once all items exist.

Usage:
    python -m ecommerce_pipeline.data_generator.generator --output data --seed 42
"""

import logging
import os
import random
import sys
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Dict, List, Optional

import click
from faker import Faker
from pydantic import ValidationError
from tqdm import tqdm

from ..config import PipelineConfig
from ..exceptions import GenerationError, PipelineError
from ..utils.csv_utils import write_csv
from .schemas import (
    TABLE_MODELS,
    Customer,
    Order,
    OrderItem,
    Payment,
    PaymentMethod,
    PaymentStatus,
    Product,
    ProductCategory,
)
from .sequence import IdSequence

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")

SIGNUP_WINDOW_DAYS = 730
ORDER_WINDOW_DAYS = 365
PAYMENT_WINDOW = timedelta(days=7)
QUANTITY_RANGE = (1, 5)
STOCK_RANGE = (0, 500)
DEFAULT_MAX_ITEMS_PER_ORDER = 10


# =============================================================================
# CONFIGURATION - Product templates for realistic data
# =============================================================================

PRODUCT_TEMPLATES = {
    ProductCategory.ELECTRONICS: {
        "brands": ["Samsung", "Sony", "LG", "Philips", "Xiaomi"],
        "products": [
            ("Headphones", 29, 349),
            ("Smart Watch", 99, 499),
            ("Speaker", 49, 399),
            ("Tablet", 199, 500),
        ],
    },
    ProductCategory.HOME_KITCHEN: {
        "brands": ["IKEA", "Bosch", "Tefal", "KitchenAid"],
        "products": [
            ("Coffee Machine", 49, 399),
            ("Lamp", 19, 149),
            ("Knife Set", 25, 199),
            ("Blender", 39, 249),
        ],
    },
    ProductCategory.BOOKS: {
        "brands": ["Penguin", "HarperCollins", "Macmillan", "Hachette"],
        "products": [
            ("Fiction Novel", 10, 29),
            ("Technical Manual", 29, 89),
            ("Cookbook", 15, 45),
            ("Biography", 14, 34),
        ],
    },
    ProductCategory.CLOTHING: {
        "brands": ["Nike", "Zara", "Levi's", "Uniqlo"],
        "products": [
            ("T-Shirt", 15, 59),
            ("Jeans", 39, 129),
            ("Jacket", 59, 249),
            ("Hoodie", 35, 99),
        ],
    },
    ProductCategory.SPORTS_OUTDOORS: {
        "brands": ["Adidas", "Puma", "Decathlon", "Columbia"],
        "products": [
            ("Running Shoes", 59, 199),
            ("Yoga Mat", 15, 79),
            ("Tent", 79, 449),
            ("Tennis Racket", 29, 199),
        ],
    },
    ProductCategory.BEAUTY: {
        "brands": ["L'Oreal", "Nivea", "Dove", "Clinique"],
        "products": [
            ("Face Cream", 10, 89),
            ("Perfume", 29, 149),
            ("Makeup Kit", 19, 99),
            ("Hair Dryer", 19, 129),
        ],
    },
    ProductCategory.TOYS: {
        "brands": ["LEGO", "Hasbro", "Mattel", "Playmobil"],
        "products": [
            ("Building Blocks Set", 19, 149),
            ("Board Game", 15, 69),
            ("Puzzle", 10, 39),
            ("Remote Control Car", 29, 149),
        ],
    },
    ProductCategory.AUTOMOTIVE: {
        "brands": ["Bosch", "Michelin", "Castrol", "Thule"],
        "products": [
            ("Wiper Blades", 12, 49),
            ("Engine Oil 5L", 25, 79),
            ("Roof Box", 199, 500),
            ("Dash Camera", 49, 249),
        ],
    },
}


def random_count(rng: random.Random, minimum: int, maximum: int) -> int:
    """Draw a record count uniformly from ``[minimum, maximum]``."""
    if minimum > maximum:
        raise GenerationError(
            f"Invalid record range: minimum {minimum} exceeds maximum {maximum}"
        )
    return rng.randint(max(minimum, 0), max(maximum, 0))


def _normalize_count(name: str, value: int) -> int:
    if value < 0:
        logger.warning(f"Negative {name} count ({value}) clamped to 0")
        return 0
    return value


def _truncate_to_millis(value: datetime) -> datetime:
    return value.replace(microsecond=value.microsecond // 1000 * 1000)


class EcommerceDataGenerator:
    """
    Generates a referentially consistent e-commerce dataset.

    Counts left as ``None`` are drawn from ``[record_min, record_max]``.
    All randomness flows from a single ``random.Random``: pass ``rng`` or
    ``seed`` for reproducible output; otherwise the source is OS-seeded.
    Faker is seeded from that same source.

    Attributes:
        num_customers: Number of customer records to generate
        num_products: Number of product records to generate
        num_orders: Number of order records to generate
        num_order_items: Requested number of order items (raised to at
            least ``num_orders`` and capped by ``max_items_per_order``)
        now: Reference time; orders fall within the year before it
    """

    def __init__(
        self,
        num_customers: Optional[int] = None,
        num_products: Optional[int] = None,
        num_orders: Optional[int] = None,
        num_order_items: Optional[int] = None,
        record_min: int = 50,
        record_max: int = 100,
        max_items_per_order: int = DEFAULT_MAX_ITEMS_PER_ORDER,
        rng: Optional[random.Random] = None,
        seed: Optional[int] = None,
        now: Optional[datetime] = None,
        show_progress: bool = True,
    ):
        if max_items_per_order < 1:
            raise GenerationError(
                f"max_items_per_order must be at least 1, got {max_items_per_order}"
            )

        self.rng = rng or random.Random(seed)
        self.fake = Faker()
        self.fake.seed_instance(self.rng.getrandbits(64))

        def resolve(name: str, value: Optional[int]) -> int:
            if value is None:
                return random_count(self.rng, record_min, record_max)
            return _normalize_count(name, value)

        self.num_customers = resolve("customer", num_customers)
        self.num_products = resolve("product", num_products)
        self.num_orders = resolve("order", num_orders)
        self.num_order_items = max(resolve("order item", num_order_items), self.num_orders)
        self.max_items_per_order = max_items_per_order

        now = now or datetime.now(timezone.utc)
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        self.now = _truncate_to_millis(now)
        self.show_progress = show_progress

        self._reset()

    def _reset(self) -> None:
        """Discard earlier output so ids restart in a fresh dataset."""
        # Storage for generated data
        self.customers: List[Customer] = []
        self.products: List[Product] = []
        self.orders: List[Order] = []
        self.order_items: List[OrderItem] = []
        self.payments: List[Payment] = []

        # Running totals per order_id, filled while items are assigned
        self._order_totals: Dict[int, Decimal] = {}
        self._items_per_order: Dict[int, int] = {}

    def generate_all(self) -> Dict[str, list]:
        """
        Generate all datasets in dependency order.

        Returns:
            Mapping of table name to its records, parents first
        """
        if self.num_orders and not self.num_customers:
            raise GenerationError(
                f"Cannot generate {self.num_orders} orders without any customers"
            )
        if self.num_orders and not self.num_products:
            raise GenerationError(
                f"Cannot fill {self.num_orders} orders without any products"
            )

        logger.info("Starting data generation...")
        self._reset()

        # Order matters! Products and customers must exist before orders
        self._generate_customers()
        self._generate_products()
        self._generate_orders()
        self._generate_order_items()
        self._finalize_order_totals()
        self._generate_payments()

        dataset = self.dataset()
        for table, records in dataset.items():
            logger.info(f"Generated {len(records)} {table}")
        return dataset

    def dataset(self) -> Dict[str, list]:
        return {
            "customers": self.customers,
            "products": self.products,
            "orders": self.orders,
            "order_items": self.order_items,
            "payments": self.payments,
        }

    def _progress(self, count: int, desc: str):
        return tqdm(range(count), desc=desc, disable=not self.show_progress)

    def _generate_customers(self) -> None:
        """Generate customer records."""
        ids = IdSequence()

        for _ in self._progress(self.num_customers, "Customers"):
            days_ago = self.rng.randint(0, SIGNUP_WINDOW_DAYS)
            self.customers.append(Customer(
                customer_id=ids.next_id(),
                name=self.fake.name(),
                email=self.fake.email(),
                signup_date=self.now.date() - timedelta(days=days_ago),
                country=self.fake.country(),
            ))

    def _generate_products(self) -> None:
        """Generate the product catalog from the category templates."""
        ids = IdSequence()
        categories = list(ProductCategory)

        for _ in self._progress(self.num_products, "Products"):
            category = self.rng.choice(categories)
            template = PRODUCT_TEMPLATES[category]
            brand = self.rng.choice(template["brands"])
            product_name, min_price, max_price = self.rng.choice(template["products"])

            price = Decimal(str(round(self.rng.uniform(min_price, max_price), 2))).quantize(CENT)

            self.products.append(Product(
                product_id=ids.next_id(),
                product_name=f"{brand} {product_name} {self.fake.word().title()}",
                category=category,
                price=price,
                stock_quantity=self.rng.randint(*STOCK_RANGE),
            ))

    def _generate_orders(self) -> None:
        """
        Generate orders for random existing customers.

        ``customer_id`` is drawn uniformly from ``[1, num_customers]`` and the
        order date from the trailing ``ORDER_WINDOW_DAYS`` before ``now``.
        Totals stay at zero until ``_finalize_order_totals``.
        """
        ids = IdSequence()
        window_seconds = ORDER_WINDOW_DAYS * 24 * 60 * 60

        for _ in self._progress(self.num_orders, "Orders"):
            offset = timedelta(seconds=self.rng.uniform(0, window_seconds))
            order = Order(
                order_id=ids.next_id(),
                customer_id=self.rng.randint(1, self.num_customers),
                order_date=_truncate_to_millis(self.now - offset),
            )
            self.orders.append(order)
            self._order_totals[order.order_id] = Decimal("0.00")
            self._items_per_order[order.order_id] = 0

    def _item_target(self) -> int:
        if not self.orders:
            return 0
        target = max(self.num_order_items, len(self.orders))
        capacity = len(self.orders) * self.max_items_per_order
        if target > capacity:
            logger.warning(
                f"Requested {target} order items exceeds the cap of "
                f"{self.max_items_per_order} per order; generating {capacity}"
            )
            target = capacity
        return target

    def _generate_order_items(self) -> None:
        """
        Assign line items to orders in two passes.

        1. Guarantee pass: one item for every order, in order id order.
        2. Top-up pass: extra items for uniformly random orders that are
           still below ``max_items_per_order``.
        """
        ids = IdSequence()
        target = self._item_target()

        with tqdm(total=target, desc="Order items", disable=not self.show_progress) as bar:
            for order in self.orders:
                self._add_order_item(ids, order)
                bar.update(1)

            eligible = [o for o in self.orders
                        if self._items_per_order[o.order_id] < self.max_items_per_order]
            while len(self.order_items) < target:
                index = self.rng.randrange(len(eligible))
                order = eligible[index]
                self._add_order_item(ids, order)
                bar.update(1)

                if self._items_per_order[order.order_id] >= self.max_items_per_order:
                    eligible[index] = eligible[-1]
                    eligible.pop()

    def _add_order_item(self, ids: IdSequence, order: Order) -> None:
        product = self.rng.choice(self.products)
        item = OrderItem(
            order_item_id=ids.next_id(),
            order_id=order.order_id,
            product_id=product.product_id,
            quantity=self.rng.randint(*QUANTITY_RANGE),
            unit_price=product.price,
        )
        self.order_items.append(item)
        self._order_totals[order.order_id] += item.line_total
        self._items_per_order[order.order_id] += 1

    def _finalize_order_totals(self) -> None:
        """Fix every order's total to the rounded sum of its line items."""
        self.orders = [
            order.model_copy(update={
                "total_amount": self._order_totals[order.order_id].quantize(CENT)
            })
            for order in self.orders
        ]

    def _generate_payments(self) -> None:
        """
        Generate exactly one payment per order, in order id order.

        Pending payments are dated at the order time; completed and failed
        payments fall within ``PAYMENT_WINDOW`` after it.
        """
        ids = IdSequence()
        statuses = list(PaymentStatus)
        methods = list(PaymentMethod)
        window_millis = int(PAYMENT_WINDOW.total_seconds() * 1000)

        for order in self.orders:
            status = self.rng.choice(statuses)
            if status == PaymentStatus.PENDING:
                payment_date = order.order_date
            else:
                payment_date = order.order_date + timedelta(
                    milliseconds=self.rng.randint(0, window_millis)
                )

            self.payments.append(Payment(
                payment_id=ids.next_id(),
                order_id=order.order_id,
                payment_method=self.rng.choice(methods),
                payment_status=status,
                payment_date=payment_date,
            ))

    def save_to_csv(self, output_dir: str) -> Dict[str, str]:
        """
        Save all generated data to CSV files, one per table.

        Empty tables still get a header-only file so the loader sees every
        table.

        Args:
            output_dir: Directory to save CSV files

        Returns:
            Dictionary mapping table names to file paths
        """
        os.makedirs(output_dir, exist_ok=True)

        files = {}
        for name, records in self.dataset().items():
            filepath = os.path.join(output_dir, f"{name}.csv")
            write_csv(filepath, TABLE_MODELS[name].columns(), records)
            files[name] = filepath
            logger.info(f"Saved {name}.csv ({len(records)} records)")

        return files


def generate_dataset(config: PipelineConfig, output_dir: Optional[str] = None,
                     show_progress: bool = True) -> EcommerceDataGenerator:
    """Generate a dataset from ``config`` and write it to ``output_dir``."""
    generator = EcommerceDataGenerator(
        record_min=config.record_min,
        record_max=config.record_max,
        max_items_per_order=config.max_items_per_order,
        seed=config.seed,
        show_progress=show_progress,
    )
    generator.generate_all()
    generator.save_to_csv(output_dir or config.data_dir)
    return generator


# =============================================================================
# CLI Interface
# =============================================================================

@click.command()
@click.option('--output', '-o', default=None, help='Output directory for CSV files')
@click.option('--min-records', type=int, default=None, help='Lower bound for random record counts')
@click.option('--max-records', type=int, default=None, help='Upper bound for random record counts')
@click.option('--items-cap', type=int, default=None, help='Maximum line items per order')
@click.option('--seed', '-s', type=int, default=None, help='Random seed for reproducibility')
@click.option('--validate/--no-validate', default=True, help='Run data quality checks')
def main(output, min_records, max_records, items_cap, seed, validate):
    """
    Generate the synthetic e-commerce dataset as CSV files.

    Example:
        python -m ecommerce_pipeline.data_generator.generator --output data --seed 42
    """
    from ..quality.validators import raise_for_failures, validate_dataset

    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    try:
        config = PipelineConfig.from_env(
            data_dir=output,
            record_min=min_records,
            record_max=max_records,
            max_items_per_order=items_cap,
            seed=seed,
        )
        generator = generate_dataset(config)
        if validate:
            validators = validate_dataset(generator.dataset())
            for validator in validators:
                validator.log_results()
            raise_for_failures(validators)
    except (PipelineError, ValidationError) as e:
        logger.error(f"Failed to generate synthetic data: {e}")
        sys.exit(1)

    logger.info(f"Data generation complete, files saved to {os.path.abspath(config.data_dir)}")


if __name__ == '__main__':
    main()
