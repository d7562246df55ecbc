"""
Random content for seeded and workload-created rows.

The seeding and workload code only talks to the ContentSource protocol, so the
Faker-backed implementation can be swapped for anything that produces names,
prices and text.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Protocol

from faker import Faker

from stressedout.models import to_money


class ContentSource(Protocol):
    """Capability the generators need for randomized row content."""

    def name(self) -> str: ...

    def address(self) -> str: ...

    def product_name(self) -> str: ...

    def product_description(self) -> str: ...

    def price(self, low: float, high: float) -> Decimal: ...

    def number(self, low: int, high: int) -> int: ...

    def paragraph(self) -> str: ...

    def date_between(self, start: datetime, end: datetime) -> datetime: ...


class FakerContent:
    """ContentSource backed by Faker; pass a seed for reproducible output."""

    def __init__(self, seed: int | None = None, locale: str = "en_US"):
        self.fake = Faker(locale)
        if seed is not None:
            self.fake.seed_instance(seed)

    def name(self) -> str:
        return self.fake.name()

    def address(self) -> str:
        return f"{self.fake.street_address()}, {self.fake.city()}, {self.fake.country()}"

    def product_name(self) -> str:
        adjective, noun = self.fake.words(nb=2)
        return f"{adjective.capitalize()} {noun.capitalize()} {self.fake.color_name()}"

    def product_description(self) -> str:
        return self.fake.sentence(nb_words=12)

    def price(self, low: float, high: float) -> Decimal:
        return to_money(self.fake.random.uniform(low, high))

    def number(self, low: int, high: int) -> int:
        return self.fake.random_int(min=low, max=high)

    def paragraph(self) -> str:
        # one paragraph, three sentences of ten words
        return " ".join(self.fake.sentence(nb_words=10, variable_nb_words=False) for _ in range(3))

    def date_between(self, start: datetime, end: datetime) -> datetime:
        return self.fake.date_time_between(start_date=start, end_date=end, tzinfo=timezone.utc)
