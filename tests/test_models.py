"""Tests for entity value handling."""

import uuid
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from stressedout.models import Order, Product, Review, User, clamp_rating, to_money


class TestMoney:
    """Tests for fixed-point price handling."""

    @pytest.mark.parametrize("value, expected", [
        (Decimal("1.005"), Decimal("1.01")),
        (19.99, Decimal("19.99")),
        ("7", Decimal("7.00")),
        (0.1 + 0.2, Decimal("0.30")),
    ])
    def test_to_money(self, value, expected):
        assert to_money(value) == expected

    def test_negative_price_rejected(self):
        with pytest.raises(ValueError):
            Product(name="Broken", description="x", price="-1.00")


class TestOrder:
    """Tests for Order construction."""

    def test_for_product_prices_from_product(self):
        user = User(name="Alice", address="1 Elm St")
        product = Product(name="Lamp", description="Bright", price="19.99")

        order = Order.for_product(user, product, 3, datetime.now(timezone.utc))

        assert order.total_price == Decimal("59.97")
        assert order.user_id == user.id
        assert order.product_id == product.id

    def test_zero_quantity_rejected(self):
        with pytest.raises(ValueError):
            Order(uuid.uuid4(), uuid.uuid4(), 0, Decimal("0"), datetime.now(timezone.utc))

    def test_from_row_parses_sqlite_values(self):
        """Text ids, numeric floats and ISO dates should come back typed."""
        order_id, user_id, product_id = uuid.uuid4(), uuid.uuid4(), uuid.uuid4()
        row = {
            "id": str(order_id),
            "user_id": str(user_id),
            "product_id": str(product_id),
            "quantity": 2,
            "total_price": 39.98,
            "date": "2024-03-01T12:30:00+00:00",
        }

        order = Order.from_row(row)

        assert order.id == order_id
        assert order.total_price == Decimal("39.98")
        assert order.date == datetime(2024, 3, 1, 12, 30, tzinfo=timezone.utc)


class TestReview:
    """Tests for Review rating bounds."""

    @pytest.mark.parametrize("value, expected", [(0, 1), (1, 1), (55, 55), (100, 100), (250, 100)])
    def test_clamp_rating(self, value, expected):
        assert clamp_rating(value) == expected

    def test_rating_clamped_on_construction(self):
        review = Review(product_id=uuid.uuid4(), user_id=uuid.uuid4(), rating=0, content="meh")
        assert review.rating == 1

    def test_to_row_uses_string_ids(self):
        review = Review(product_id=uuid.uuid4(), user_id=uuid.uuid4(), rating=42, content="ok")
        row = review.to_row()
        assert row[0] == str(review.id)
        assert all(isinstance(value, str) for value in row[:3])
