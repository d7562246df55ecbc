"""Tests for the read and write workloads."""

from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone

import pytest

from stressedout.content import FakerContent
from stressedout.errors import BackendError, NotFoundError
from stressedout.models import Order, Product, Review, User
from stressedout.seed import SeedCounts, Seeder
from stressedout.store import ConnectionPool, StoreClient
from stressedout.workload import read_product_summary, write_purchase


def insert_all(store, *entities):
    for entity in entities:
        store.insert(entity)


@pytest.fixture
def shop(store):
    """Two users, one product with two orders by the same user and one review."""
    alice = User(name="Alice", address="1 Elm St")
    bob = User(name="Bob", address="2 Oak St")
    lamp = Product(name="Lamp", description="Bright", price="20.00")
    now = datetime.now(timezone.utc)
    insert_all(
        store,
        alice,
        bob,
        lamp,
        Order.for_product(alice, lamp, 1, now),
        Order.for_product(alice, lamp, 2, now),
        Review(product_id=lamp.id, user_id=bob.id, rating=80, content="Nice lamp"),
    )
    return {"alice": alice, "bob": bob, "lamp": lamp}


class TestReadProductSummary:
    """Tests for read_product_summary."""

    def test_empty_products_raises_not_found(self, store, recording):
        """Should raise before issuing any dependent query."""
        recorder = recording(store)

        with pytest.raises(NotFoundError):
            read_product_summary(recorder)

        assert len(recorder.calls) == 1

    def test_product_without_orders(self, store):
        """Counts should be zero and reviews empty."""
        product = Product(name="Mug", description="Ceramic", price="5.00")
        store.insert(product)

        summary = read_product_summary(store)

        assert summary.product == product
        assert summary.order_count == 0
        assert summary.unique_user_count == 0
        assert summary.reviews == []

    def test_counts_and_reviews(self, shop, store):
        """Should count orders, distinct buyers and list reviews with usernames."""
        summary = read_product_summary(store)

        assert summary.product == shop["lamp"]
        assert summary.order_count == 2
        assert summary.unique_user_count == 1
        assert len(summary.reviews) == 1
        review = summary.reviews[0]
        assert (review.username, review.rating, review.content) == ("Bob", 80, "Nice lamp")

    def test_dependent_queries_use_sampled_id(self, shop, store, recording):
        recorder = recording(store)

        read_product_summary(recorder)

        assert [call for call, _ in recorder.calls] == ["query_one", "query_one", "query_one", "query_many"]


class TestWritePurchase:
    """Tests for write_purchase."""

    def test_persists_order_and_review(self, shop, store, content, count_rows):
        """The stored order and review should match the returned receipt."""
        receipt = write_purchase(store, content)

        assert count_rows("orders") == 3
        assert count_rows("reviews") == 2
        order = Order.from_row(store.query_one(
            "SELECT id, user_id, product_id, quantity, total_price, date FROM orders WHERE id = ?",
            (str(receipt.order.id),),
        ))
        assert order.product_id == shop["lamp"].id
        assert order.user_id == receipt.user.id
        assert 1 <= order.quantity <= 5
        assert order.total_price == receipt.order.total_price == order.quantity * shop["lamp"].price
        review = Review.from_row(store.query_one(
            "SELECT id, product_id, user_id, rating, content FROM reviews WHERE id = ?",
            (str(receipt.review.id),),
        ))
        assert review == receipt.review
        assert review.user_id == receipt.user.id
        assert 1 <= review.rating <= 100

    def test_empty_users_aborts_before_insert(self, store, content, recording, count_rows):
        """An empty user sample should raise NotFoundError with no writes."""
        store.insert(Product(name="Mug", description="Ceramic", price="5.00"))
        recorder = recording(store)

        with pytest.raises(NotFoundError):
            write_purchase(recorder, content)

        assert recorder.writes() == []
        assert count_rows("orders") == 0
        assert count_rows("reviews") == 0

    def test_empty_products_aborts_before_insert(self, store, content, recording):
        store.insert(User(name="Alice", address="1 Elm St"))
        recorder = recording(store)

        with pytest.raises(NotFoundError):
            write_purchase(recorder, content)

        assert recorder.writes() == []

    def test_order_inserted_before_review(self, shop, store, content, recording):
        recorder = recording(store)

        write_purchase(recorder, content)

        assert recorder.writes() == [("insert", "orders"), ("insert", "reviews")]

    def test_saturated_pool_raises_backend_error(self, shop, store, content, count_rows):
        """With no free connection the write should fail, not write a partial purchase."""
        store.pool.timeout = 0.05
        held = [store.pool.checkout() for _ in range(store.pool.max_size)]
        try:
            with pytest.raises(BackendError):
                write_purchase(store, content)
        finally:
            for conn in held:
                store.pool.release(conn)

        assert count_rows("orders") == 2


class TestConcurrentWorkload:
    """Reads and writes sharing one store client from many threads."""

    WORKERS = 16
    CALLS = 120

    @pytest.fixture
    def shared_store(self, store, content):
        report = Seeder(store, content, batch_size=None).run(SeedCounts(30, 8, 60, 20))
        assert report.ok, report.summary()
        # fewer connections than workers, so callers queue on the pool
        shared = StoreClient(ConnectionPool(store.dialect.connect, max_size=4), store.dialect)
        yield shared
        shared.close()

    def test_mixed_traffic_counts_exactly(self, shared_store, count_rows):
        """Every write should land exactly once and no call should fail."""
        def call(i):
            if i % 2:
                return write_purchase(shared_store, FakerContent(seed=i))
            return read_product_summary(shared_store)

        with ThreadPoolExecutor(max_workers=self.WORKERS) as executor:
            results = list(executor.map(call, range(self.CALLS)))

        writes = self.CALLS // 2
        assert len(results) == self.CALLS
        assert count_rows("orders") == 60 + writes
        assert count_rows("reviews") == 20 + writes
        assert shared_store.pool.size <= 4
        assert shared_store.pool.in_use == 0
