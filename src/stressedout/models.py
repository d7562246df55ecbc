"""
Entity model for the four-table shop schema.

Users and Products are created by the first seeding phase; Orders and Reviews
reference them and are created either by the second seeding phase or by the
write workload. Nothing in this project updates or deletes a row.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Mapping


# =============================================================================
# Constants
# =============================================================================

CENTS = Decimal("0.01")

RATING_MIN = 1
RATING_MAX = 100


# =============================================================================
# Value Helpers
# =============================================================================

def to_money(value: Any) -> Decimal:
    """Round a price-like value to two decimal places (NUMERIC(10,2))."""
    if not isinstance(value, Decimal):
        # floats come back from SQLite; go through str to avoid binary noise
        value = Decimal(str(value))
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def clamp_rating(value: int) -> int:
    """Clamp a rating into [RATING_MIN, RATING_MAX]."""
    return max(RATING_MIN, min(RATING_MAX, int(value)))


def to_uuid(value: Any) -> uuid.UUID:
    if isinstance(value, uuid.UUID):
        return value
    return uuid.UUID(str(value))


def to_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


# =============================================================================
# Entities
# =============================================================================

@dataclass
class User:
    """A shopper. Has-many orders and reviews (not materialized)."""
    name: str
    address: str
    id: uuid.UUID = field(default_factory=uuid.uuid4)

    TABLE = "users"
    COLUMNS = ("id", "name", "address")

    def to_row(self) -> tuple:
        return (str(self.id), self.name, self.address)

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "User":
        return cls(id=to_uuid(row["id"]), name=row["name"], address=row["address"])


@dataclass
class Product:
    """A catalog item with a fixed-point price."""
    name: str
    description: str
    price: Decimal
    id: uuid.UUID = field(default_factory=uuid.uuid4)

    TABLE = "products"
    COLUMNS = ("id", "name", "description", "price")

    def __post_init__(self):
        self.price = to_money(self.price)
        if self.price < 0:
            raise ValueError(f"product price must be >= 0, got {self.price}")

    def to_row(self) -> tuple:
        return (str(self.id), self.name, self.description, self.price)

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Product":
        return cls(
            id=to_uuid(row["id"]),
            name=row["name"],
            description=row["description"],
            price=row["price"],
        )


@dataclass
class Order:
    """A purchase of `quantity` units of one product by one user."""
    user_id: uuid.UUID
    product_id: uuid.UUID
    quantity: int
    total_price: Decimal
    date: datetime
    id: uuid.UUID = field(default_factory=uuid.uuid4)

    TABLE = "orders"
    COLUMNS = ("id", "user_id", "product_id", "quantity", "total_price", "date")

    def __post_init__(self):
        if self.quantity < 1:
            raise ValueError(f"order quantity must be >= 1, got {self.quantity}")
        self.total_price = to_money(self.total_price)

    @classmethod
    def for_product(
        cls, user: User, product: Product, quantity: int, date: datetime
    ) -> "Order":
        """Build an order priced from the product's price at creation time."""
        return cls(
            user_id=user.id,
            product_id=product.id,
            quantity=quantity,
            total_price=to_money(quantity * product.price),
            date=date,
        )

    def to_row(self) -> tuple:
        return (
            str(self.id),
            str(self.user_id),
            str(self.product_id),
            self.quantity,
            self.total_price,
            self.date,
        )

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Order":
        return cls(
            id=to_uuid(row["id"]),
            user_id=to_uuid(row["user_id"]),
            product_id=to_uuid(row["product_id"]),
            quantity=int(row["quantity"]),
            total_price=row["total_price"],
            date=to_datetime(row["date"]),
        )


@dataclass
class Review:
    """A rating in [1, 100] with free text, by one user for one product."""
    product_id: uuid.UUID
    user_id: uuid.UUID
    rating: int
    content: str
    id: uuid.UUID = field(default_factory=uuid.uuid4)

    TABLE = "reviews"
    COLUMNS = ("id", "product_id", "user_id", "rating", "content")

    def __post_init__(self):
        self.rating = clamp_rating(self.rating)

    def to_row(self) -> tuple:
        return (str(self.id), str(self.product_id), str(self.user_id), self.rating, self.content)

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Review":
        return cls(
            id=to_uuid(row["id"]),
            product_id=to_uuid(row["product_id"]),
            user_id=to_uuid(row["user_id"]),
            rating=int(row["rating"]),
            content=row["content"],
        )
