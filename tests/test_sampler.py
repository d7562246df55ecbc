"""Tests for random row sampling."""

import pytest

from stressedout.errors import BackendError, NotFoundError
from stressedout.models import Product, User
from stressedout.sampler import Sample, random_row_query, sample_random


class TestSample:
    """Tests for the Sample wrapper."""

    def test_missing_sample_is_falsy_and_refuses_unwrap(self):
        sample = Sample.missing("users")

        assert not sample
        assert sample.table == "users"
        with pytest.raises(NotFoundError, match="users"):
            sample.unwrap()

    def test_found_sample_unwraps_entity(self):
        user = User(name="Bob", address="2 Oak St")
        sample = Sample.found(user, "users")

        assert sample
        assert sample.unwrap() is user
        assert repr(sample) == "Sample(users, found)"


class TestSampleRandom:
    """Tests for sample_random against a live store."""

    def test_empty_table_returns_missing(self, store):
        """Should return a missing sample instead of raising."""
        sample = sample_random(store, Product)

        assert not sample
        with pytest.raises(NotFoundError):
            sample.unwrap()

    def test_sampled_row_comes_from_table(self, store):
        """The sampled entity should be one of the stored rows."""
        users = [User(name=f"user {i}", address="x") for i in range(20)]
        store.bulk_insert(User.TABLE, User.COLUMNS, [u.to_row() for u in users])

        sampled = sample_random(store, User).unwrap()

        assert sampled in users

    def test_repeated_samples_vary(self, store):
        """Sampling many times should not return the same row every time."""
        users = [User(name=f"user {i}", address="x") for i in range(20)]
        store.bulk_insert(User.TABLE, User.COLUMNS, [u.to_row() for u in users])

        seen = {sample_random(store, User).unwrap().id for _ in range(50)}

        assert len(seen) > 1

    def test_product_price_survives_round_trip(self, store):
        product = Product(name="Lamp", description="Bright", price="19.99")
        store.insert(product)

        assert sample_random(store, Product).unwrap() == product

    def test_backend_error_propagates(self, store):
        """Pool exhaustion is not an empty sample."""
        store.pool.timeout = 0.05
        held = [store.pool.checkout() for _ in range(store.pool.max_size)]
        try:
            with pytest.raises(BackendError):
                sample_random(store, User)
        finally:
            for conn in held:
                store.pool.release(conn)

    def test_random_row_query_selects_model_columns(self):
        assert random_row_query(User) == "SELECT id, name, address FROM users ORDER BY RANDOM() LIMIT 1"
