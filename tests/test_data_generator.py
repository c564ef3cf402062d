"""Tests for the data generator module."""

import random
from collections import Counter, defaultdict
from datetime import date, timedelta
from decimal import Decimal

import pytest
from pydantic import ValidationError


class TestEcommerceDataGenerator:
    """Tests for the EcommerceDataGenerator class."""

    def test_generator_initialization(self, make_generator):
        """Test that explicit counts are kept and nothing is generated yet."""
        generator = make_generator(num_customers=100, num_products=50, num_orders=200)

        assert generator.num_customers == 100
        assert generator.num_products == 50
        assert generator.num_orders == 200
        assert generator.num_order_items >= 200
        assert len(generator.customers) == 0  # Not yet generated

    def test_counts_drawn_from_record_range(self, make_generator):
        """Test that missing counts are drawn from the configured range."""
        generator = make_generator(record_min=50, record_max=100)

        for count in (generator.num_customers, generator.num_products, generator.num_orders):
            assert 50 <= count <= 100
        assert generator.num_order_items >= generator.num_orders

    def test_generate_customers(self, generator):
        """Test customer generation."""
        assert len(generator.customers) == 20

        customer = generator.customers[0]
        assert customer.customer_id == 1
        assert customer.name
        assert customer.email == customer.email.lower()
        assert customer.country

        today = generator.now.date()
        for c in generator.customers:
            assert today - timedelta(days=730) <= c.signup_date <= today
            assert isinstance(c.signup_date, date)

    def test_generate_products(self, generator):
        """Test product generation."""
        from ecommerce_pipeline.data_generator.schemas import ProductCategory

        assert len(generator.products) == 15

        for product in generator.products:
            assert isinstance(product.category, ProductCategory)
            assert Decimal("10") <= product.price <= Decimal("500")
            assert product.price == product.price.quantize(Decimal("0.01"))
            assert 0 <= product.stock_quantity <= 500

    def test_ids_are_contiguous_from_one(self, dataset):
        """Test that every table numbers its rows 1..N."""
        id_columns = {
            "customers": "customer_id",
            "products": "product_id",
            "orders": "order_id",
            "order_items": "order_item_id",
            "payments": "payment_id",
        }
        for table, column in id_columns.items():
            ids = [getattr(r, column) for r in dataset[table]]
            assert ids == list(range(1, len(ids) + 1)), table

    def test_referential_integrity(self, dataset):
        """Test that no child row references a missing parent."""
        customer_ids = {c.customer_id for c in dataset["customers"]}
        product_ids = {p.product_id for p in dataset["products"]}
        order_ids = {o.order_id for o in dataset["orders"]}

        for order in dataset["orders"]:
            assert order.customer_id in customer_ids
        for item in dataset["order_items"]:
            assert item.order_id in order_ids
            assert item.product_id in product_ids
        for payment in dataset["payments"]:
            assert payment.order_id in order_ids

    def test_order_totals_match_items(self, dataset):
        """Test that total_amount equals the sum of quantity x unit_price."""
        sums = defaultdict(Decimal)
        for item in dataset["order_items"]:
            sums[item.order_id] += item.quantity * item.unit_price

        for order in dataset["orders"]:
            assert order.total_amount == sums[order.order_id].quantize(Decimal("0.01"))

    def test_every_order_has_an_item(self, dataset):
        """Test that no order is left without line items."""
        items_per_order = Counter(item.order_id for item in dataset["order_items"])
        for order in dataset["orders"]:
            assert items_per_order[order.order_id] >= 1

    def test_unit_price_is_product_snapshot(self, dataset):
        """Test that each item carries its product's price."""
        prices = {p.product_id: p.price for p in dataset["products"]}
        for item in dataset["order_items"]:
            assert item.unit_price == prices[item.product_id]
            assert 1 <= item.quantity <= 5

    def test_order_dates_within_trailing_year(self, generator):
        """Test that orders fall within the year before the reference time."""
        earliest = generator.now - timedelta(days=365)
        for order in generator.orders:
            assert earliest <= order.order_date <= generator.now
            assert order.order_date.microsecond % 1000 == 0

    def test_one_payment_per_order(self, dataset):
        """Test that payments map 1:1 onto orders in order id order."""
        assert [p.order_id for p in dataset["payments"]] == [o.order_id for o in dataset["orders"]]

    def test_payment_dates(self, dataset):
        """Test the pending rule and the seven day payment window."""
        from ecommerce_pipeline.data_generator.schemas import PaymentStatus

        orders = {o.order_id: o for o in dataset["orders"]}
        for payment in dataset["payments"]:
            order_date = orders[payment.order_id].order_date
            if payment.payment_status == PaymentStatus.PENDING:
                assert payment.payment_date == order_date
            else:
                assert order_date <= payment.payment_date <= order_date + timedelta(days=7)

    def test_pending_payment_date_equals_order_date(self, make_generator):
        """Test the pending rule over a larger run so every status occurs."""
        from ecommerce_pipeline.data_generator.schemas import PaymentStatus

        generator = make_generator(num_customers=10, num_products=10, num_orders=200)
        dataset = generator.generate_all()

        orders = {o.order_id: o for o in dataset["orders"]}
        pending = [p for p in dataset["payments"] if p.payment_status == PaymentStatus.PENDING]
        assert pending
        for payment in pending:
            assert payment.payment_date == orders[payment.order_id].order_date

    def test_small_scenario(self, make_generator):
        """5 customers, 3 products, 4 orders, 4 items: one item per order."""
        generator = make_generator(
            num_customers=5, num_products=3, num_orders=4, num_order_items=4
        )
        dataset = generator.generate_all()

        assert len(dataset["orders"]) == 4
        assert len(dataset["order_items"]) == 4
        assert sorted(item.order_id for item in dataset["order_items"]) == [1, 2, 3, 4]

        for order in dataset["orders"]:
            items = [i for i in dataset["order_items"] if i.order_id == order.order_id]
            expected = sum(i.quantity * i.unit_price for i in items)
            assert order.total_amount == expected.quantize(Decimal("0.01"))

    def test_item_count_raised_to_order_count(self, make_generator):
        """Test that fewer requested items than orders still fills every order."""
        generator = make_generator(
            num_customers=5, num_products=5, num_orders=10, num_order_items=3
        )
        dataset = generator.generate_all()

        assert len(dataset["order_items"]) == 10
        assert {i.order_id for i in dataset["order_items"]} == set(range(1, 11))

    def test_items_per_order_cap(self, make_generator):
        """Test that the top-up pass respects max_items_per_order."""
        generator = make_generator(
            num_customers=5, num_products=5, num_orders=4, num_order_items=100,
            max_items_per_order=3,
        )
        dataset = generator.generate_all()

        # 4 orders x 3 items is the most the cap allows
        assert len(dataset["order_items"]) == 12
        counts = Counter(i.order_id for i in dataset["order_items"])
        assert all(count == 3 for count in counts.values())

    def test_same_seed_same_dataset(self, make_generator):
        """Test that a fixed seed reproduces the dataset exactly."""
        first = make_generator(seed=99, num_customers=8, num_products=6, num_orders=10).generate_all()
        second = make_generator(seed=99, num_customers=8, num_products=6, num_orders=10).generate_all()

        assert first == second

    def test_injected_rng(self, make_generator):
        """Test that an injected random source drives generation."""
        first = make_generator(seed=None, rng=random.Random(5), num_customers=3,
                               num_products=3, num_orders=3).generate_all()
        second = make_generator(seed=None, rng=random.Random(5), num_customers=3,
                                num_products=3, num_orders=3).generate_all()

        assert first == second

    def test_zero_counts_give_empty_tables(self, make_generator):
        """Test that zero counts produce well-formed empty sequences."""
        generator = make_generator(
            num_customers=0, num_products=0, num_orders=0, num_order_items=0
        )
        dataset = generator.generate_all()

        assert all(records == [] for records in dataset.values())

    def test_negative_counts_are_clamped(self, make_generator):
        """Test that negative counts are normalised to zero instead of failing."""
        generator = make_generator(num_customers=-5, num_products=3, num_orders=0)

        assert generator.num_customers == 0
        dataset = generator.generate_all()
        assert dataset["customers"] == []
        assert len(dataset["products"]) == 3

    def test_orders_without_customers_fail(self, make_generator):
        """Test that orders cannot be generated with no customer to own them."""
        from ecommerce_pipeline.exceptions import GenerationError

        generator = make_generator(num_customers=0, num_products=3, num_orders=2)

        with pytest.raises(GenerationError, match="customers"):
            generator.generate_all()

    def test_orders_without_products_fail(self, make_generator):
        """Test that orders cannot be filled with no products."""
        from ecommerce_pipeline.exceptions import GenerationError

        generator = make_generator(num_customers=3, num_products=0, num_orders=2)

        with pytest.raises(GenerationError, match="products"):
            generator.generate_all()

    def test_generate_all_twice_starts_fresh(self, make_generator):
        """Test that a second run replaces the first instead of appending to it."""
        generator = make_generator(num_customers=4, num_products=3, num_orders=5)
        generator.generate_all()
        dataset = generator.generate_all()

        assert len(dataset["customers"]) == 4
        assert len(dataset["orders"]) == 5
        assert len(dataset["payments"]) == 5
        item_ids = [i.order_item_id for i in dataset["order_items"]]
        assert item_ids == list(range(1, len(item_ids) + 1))

        sums = defaultdict(Decimal)
        for item in dataset["order_items"]:
            sums[item.order_id] += item.line_total
        for order in dataset["orders"]:
            assert order.total_amount == sums[order.order_id].quantize(Decimal("0.01"))

    def test_save_to_csv(self, generator, tmp_path):
        """Test saving data to CSV files."""
        files = generator.save_to_csv(str(tmp_path))

        assert set(files) == {"customers", "products", "orders", "order_items", "payments"}
        for table, path in files.items():
            with open(path, encoding="utf-8") as f:
                lines = f.read().splitlines()
            assert lines[0] == ",".join(generator.dataset()[table][0].columns())

    def test_save_to_csv_writes_header_for_empty_tables(self, make_generator, tmp_path):
        """Test that empty tables still produce a header-only file."""
        generator = make_generator(
            num_customers=0, num_products=0, num_orders=0, num_order_items=0
        )
        generator.generate_all()
        files = generator.save_to_csv(str(tmp_path))

        with open(files["payments"], encoding="utf-8") as f:
            assert f.read() == "payment_id,order_id,payment_method,payment_status,payment_date\n"


class TestRandomCount:
    """Tests for random_count."""

    def test_within_bounds(self):
        from ecommerce_pipeline.data_generator.generator import random_count

        rng = random.Random(0)
        for _ in range(100):
            assert 50 <= random_count(rng, 50, 100) <= 100

    def test_malformed_range(self):
        from ecommerce_pipeline.data_generator.generator import random_count
        from ecommerce_pipeline.exceptions import GenerationError

        with pytest.raises(GenerationError):
            random_count(random.Random(0), 10, 5)


class TestIdSequence:
    """Tests for the per-run id counter."""

    def test_sequence_starts_at_one(self):
        from ecommerce_pipeline.data_generator.sequence import IdSequence

        ids = IdSequence()
        assert [ids.next_id() for _ in range(3)] == [1, 2, 3]
        assert ids.issued == 3

    def test_sequences_are_independent(self):
        from ecommerce_pipeline.data_generator.sequence import IdSequence

        first, second = IdSequence(), IdSequence()
        first.next_id()
        first.next_id()

        assert second.next_id() == 1


class TestSchemas:
    """Tests for Pydantic schema validation."""

    def test_customer_email_lowercased(self):
        """Test that emails are stored lower-cased."""
        from ecommerce_pipeline.data_generator.schemas import Customer

        customer = Customer(
            customer_id=1,
            name="John Doe",
            email="John.Doe@Example.COM",
            signup_date=date(2024, 1, 15),
            country="Germany",
        )

        assert customer.email == "john.doe@example.com"

    def test_records_are_frozen(self):
        """Test that records cannot be changed after creation."""
        from ecommerce_pipeline.data_generator.schemas import Product, ProductCategory

        product = Product(
            product_id=1,
            product_name="LEGO Board Game Quest",
            category=ProductCategory.TOYS,
            price=Decimal("19.99"),
            stock_quantity=10,
        )

        with pytest.raises(ValidationError):
            product.price = Decimal("1.00")

    def test_quantity_bounds(self):
        """Test that quantities outside 1..5 are rejected."""
        from ecommerce_pipeline.data_generator.schemas import OrderItem

        with pytest.raises(ValidationError):
            OrderItem(order_item_id=1, order_id=1, product_id=1, quantity=0,
                      unit_price=Decimal("5.00"))

    def test_column_order(self):
        """Test that model field order defines the column order."""
        from ecommerce_pipeline.data_generator.schemas import Order, Payment

        assert Order.columns() == ("order_id", "customer_id", "order_date", "total_amount")
        assert Payment.columns() == (
            "payment_id", "order_id", "payment_method", "payment_status", "payment_date"
        )
