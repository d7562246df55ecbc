"""
Seed the shop database with synthetic users, products, orders and reviews.

Phases run in foreign-key order: users and products first, then orders and
reviews referencing them. Dependent rows pick their user and product from the
in-memory sets generated in the same run (never from the store), so every
reference points to a row this run inserted.

Each phase goes out as one bulk insert, so a failure leaves none of that
phase behind. --batch-size splits phases into smaller transactions instead;
then a failing batch stops its phase with the earlier batches kept. Either
way the failure is logged, recorded in the SeedReport and the next phase
still runs.

Run with no workload traffic against the same tables.

Usage:
    # Default volume: 2,000 users, 100 products, 30,000 orders, 10,000 reviews
    STRESSEDOUT_BACKEND=sqlite SQLITE_PATH=data/shop.db \
        uv run python -m stressedout.seed --setup-schema

    # Small test run
    STRESSEDOUT_BACKEND=sqlite SQLITE_PATH=data/shop_test.db \
        uv run python -m stressedout.seed \
        --setup-schema \
        --users 50 --products 10 --orders 500 --reviews 200 \
        --seed 42
"""

import argparse
import logging
import random
import sys
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Iterable, Iterator, TypeVar

from stressedout.config import configure_logging, load_settings
from stressedout.content import ContentSource, FakerContent
from stressedout.errors import ConfigMissingError, NotFoundError, StoreError
from stressedout.models import RATING_MAX, RATING_MIN, Order, Product, Review, User
from stressedout.schema import setup_database
from stressedout.store import StoreClient

logger = logging.getLogger(__name__)

T = TypeVar("T")


# =============================================================================
# Configuration & Constants
# =============================================================================

DEFAULT_USERS = 2000
DEFAULT_PRODUCTS = 100
DEFAULT_ORDERS = 30000
DEFAULT_REVIEWS = 10000

# None: one bulk insert per phase
DEFAULT_BATCH_SIZE: int | None = None

PRICE_MIN = 1
PRICE_MAX = 1000
QUANTITY_MIN = 1
QUANTITY_MAX = 10
ORDER_HISTORY_DAYS = 365


@dataclass
class SeedCounts:
    """How many rows each phase generates."""
    users: int = DEFAULT_USERS
    products: int = DEFAULT_PRODUCTS
    orders: int = DEFAULT_ORDERS
    reviews: int = DEFAULT_REVIEWS


@dataclass
class PhaseResult:
    """Outcome of one seeding phase."""
    name: str
    requested: int
    inserted: int = 0
    error: str | None = None
    elapsed: float = 0.0

    @property
    def ok(self) -> bool:
        return self.error is None and self.inserted == self.requested


@dataclass
class SeedReport:
    """Per-phase outcome of a seeding run."""
    phases: list[PhaseResult] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return all(phase.ok for phase in self.phases)

    @property
    def failed_phases(self) -> list[str]:
        return [phase.name for phase in self.phases if not phase.ok]

    def phase(self, name: str) -> PhaseResult:
        for phase in self.phases:
            if phase.name == name:
                return phase
        raise KeyError(name)

    def summary(self) -> str:
        lines = []
        for phase in self.phases:
            status = "ok" if phase.ok else f"FAILED ({phase.error})"
            lines.append(f"{phase.name}: {phase.inserted:,}/{phase.requested:,} {status}")
        return "\n".join(lines)


# =============================================================================
# Entity Creation
# =============================================================================

def create_user(content: ContentSource) -> User:
    return User(name=content.name(), address=content.address())


def create_product(content: ContentSource) -> Product:
    return Product(
        name=content.product_name(),
        description=content.product_description(),
        price=content.price(PRICE_MIN, PRICE_MAX),
    )


def create_order(
    content: ContentSource,
    rng: random.Random,
    users: list[User],
    products: list[Product],
    start: datetime,
    end: datetime,
) -> Order:
    """Order for a uniformly chosen user and product, dated within [start, end]."""
    user = rng.choice(users)
    product = rng.choice(products)
    quantity = content.number(QUANTITY_MIN, QUANTITY_MAX)
    return Order.for_product(user, product, quantity, content.date_between(start, end))


def create_review(
    content: ContentSource,
    rng: random.Random,
    users: list[User],
    products: list[Product],
) -> Review:
    """Review for a uniformly chosen user and product."""
    user = rng.choice(users)
    product = rng.choice(products)
    return Review(
        product_id=product.id,
        user_id=user.id,
        rating=content.number(RATING_MIN, RATING_MAX),
        content=content.paragraph(),
    )


def batched(items: Iterable[T], size: int | None) -> Iterator[list[T]]:
    """Yield lists of up to size items; size None yields everything as one list."""
    batch: list[T] = []
    for item in items:
        batch.append(item)
        if size is not None and len(batch) >= size:
            yield batch
            batch = []
    if batch:
        yield batch


# =============================================================================
# Seeder
# =============================================================================

class Seeder:
    """Runs the four seeding phases against one store."""

    def __init__(
        self,
        store: StoreClient,
        content: ContentSource,
        rng: random.Random | None = None,
        batch_size: int | None = DEFAULT_BATCH_SIZE,
    ):
        if batch_size is not None and batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {batch_size}")
        self.store = store
        self.content = content
        self.rng = rng or random.Random()
        self.batch_size = batch_size

    def insert_phase(self, name: str, model, entities: Iterable, requested: int) -> PhaseResult:
        """Bulk insert entities batch by batch, stopping at the first failed batch."""
        result = PhaseResult(name=name, requested=requested)
        start_time = time.time()

        try:
            for batch in batched(entities, self.batch_size):
                self.store.bulk_insert(model.TABLE, model.COLUMNS, [e.to_row() for e in batch])
                result.inserted += len(batch)
                logger.debug(f"{name}: {result.inserted:,}/{requested:,}")
        except StoreError as e:
            result.error = f"{type(e).__name__}: {e}"
            logger.error(f"Error inserting {name} after {result.inserted:,} rows: {e}")

        result.elapsed = time.time() - start_time
        if result.error is None:
            rate = result.inserted / result.elapsed if result.elapsed > 0 else 0
            logger.info(f"Inserted {result.inserted:,} {name} in {result.elapsed:.1f}s ({rate:.0f} rows/sec)")
        return result

    def _missing_parents(self, name: str, requested: int, users: list, products: list) -> PhaseResult:
        missing = "users" if not users else "products"
        error = NotFoundError(f"no seeded {missing} to reference")
        logger.error(f"Skipping {name}: {error}")
        return PhaseResult(name=name, requested=requested, error=f"NotFoundError: {error}")

    def run(self, counts: SeedCounts | None = None) -> SeedReport:
        """Seed all four tables and report what each phase achieved."""
        counts = counts or SeedCounts()
        report = SeedReport()

        users = [create_user(self.content) for _ in range(counts.users)]
        phase = self.insert_phase("users", User, users, counts.users)
        report.phases.append(phase)
        # only rows that actually landed may be referenced
        users = users[:phase.inserted]

        products = [create_product(self.content) for _ in range(counts.products)]
        phase = self.insert_phase("products", Product, products, counts.products)
        report.phases.append(phase)
        products = products[:phase.inserted]

        if counts.orders and not (users and products):
            report.phases.append(self._missing_parents("orders", counts.orders, users, products))
        else:
            end = datetime.now(timezone.utc)
            start = end - timedelta(days=ORDER_HISTORY_DAYS)
            orders = (
                create_order(self.content, self.rng, users, products, start, end)
                for _ in range(counts.orders)
            )
            report.phases.append(self.insert_phase("orders", Order, orders, counts.orders))

        if counts.reviews and not (users and products):
            report.phases.append(self._missing_parents("reviews", counts.reviews, users, products))
        else:
            reviews = (
                create_review(self.content, self.rng, users, products)
                for _ in range(counts.reviews)
            )
            report.phases.append(self.insert_phase("reviews", Review, reviews, counts.reviews))

        if report.ok:
            logger.info("Database seeded successfully")
        else:
            logger.error(f"Seeding incomplete, failed phases: {', '.join(report.failed_phases)}")
        return report


def seed_database(
    store: StoreClient,
    content: ContentSource,
    counts: SeedCounts | None = None,
    batch_size: int | None = DEFAULT_BATCH_SIZE,
    seed: int | None = None,
) -> SeedReport:
    """Convenience wrapper: build a Seeder and run it once."""
    rng = random.Random(seed) if seed is not None else random.Random()
    return Seeder(store, content, rng, batch_size).run(counts)


# =============================================================================
# Main Entry Point
# =============================================================================

def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Seed the shop database with synthetic users, products, orders and reviews"
    )
    parser.add_argument("--users", "-u", type=int, default=DEFAULT_USERS,
                        help=f"Number of users (default: {DEFAULT_USERS})")
    parser.add_argument("--products", "-p", type=int, default=DEFAULT_PRODUCTS,
                        help=f"Number of products (default: {DEFAULT_PRODUCTS})")
    parser.add_argument("--orders", "-o", type=int, default=DEFAULT_ORDERS,
                        help=f"Number of orders (default: {DEFAULT_ORDERS})")
    parser.add_argument("--reviews", "-r", type=int, default=DEFAULT_REVIEWS,
                        help=f"Number of reviews (default: {DEFAULT_REVIEWS})")
    parser.add_argument("--batch-size", "-b", type=int, default=DEFAULT_BATCH_SIZE,
                        help="Rows per bulk insert (default: whole phase in one insert)")
    parser.add_argument("--seed", "-s", type=int, default=None,
                        help="Random seed for reproducible content")
    parser.add_argument("--setup-schema", action="store_true",
                        help="Create the tables before seeding")
    args = parser.parse_args(argv)

    for flag in ("users", "products", "orders", "reviews"):
        if getattr(args, flag) < 0:
            parser.error(f"--{flag} must be >= 0")
    if args.batch_size is not None and args.batch_size < 1:
        parser.error("--batch-size must be >= 1")

    try:
        settings = load_settings()
    except (ConfigMissingError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2
    configure_logging(settings.log_level)

    counts = SeedCounts(args.users, args.products, args.orders, args.reviews)

    print("=" * 60)
    print("Shop Seed Generator")
    print("=" * 60)
    print(f"Backend:           {settings.backend}")
    print(f"Users:             {counts.users:,}")
    print(f"Products:          {counts.products:,}")
    print(f"Orders:            {counts.orders:,}")
    print(f"Reviews:           {counts.reviews:,}")
    print(f"Batch size:        {args.batch_size or 'whole phase'}")
    print(f"Seed:              {args.seed if args.seed is not None else 'random'}")
    print()

    store = StoreClient.from_settings(settings)
    try:
        if args.setup_schema:
            failed = setup_database(store)
            if failed:
                print(f"Schema setup failed: {', '.join(failed)}")
                return 1

        start_time = time.time()
        report = seed_database(
            store,
            FakerContent(seed=args.seed),
            counts,
            batch_size=args.batch_size,
            seed=args.seed,
        )
        total_time = time.time() - start_time
    finally:
        store.close()

    total_rows = sum(phase.inserted for phase in report.phases)

    print()
    print("=" * 60)
    print("Summary")
    print("=" * 60)
    print(report.summary())
    print(f"Total rows:        {total_rows:,}")
    print(f"Total time:        {total_time:.1f}s")
    if total_time > 0:
        print(f"Rate:              {total_rows / total_time:.0f} rows/sec")

    return 0 if report.ok else 1


if __name__ == "__main__":
    sys.exit(main())
