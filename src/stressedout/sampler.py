"""
Uniform random sampling of one stored row.

Sampling uses the backend's ORDER BY RANDOM() LIMIT 1 rather than pulling ids
to the client, since the tables hold tens of thousands of rows.

The result is a Sample: either a found entity or a missing marker. The entity
is only reachable through unwrap(), which raises NotFoundError when the sample
is missing, so an empty sample cannot flow into a dependent write.
"""

import logging
from typing import Generic, TypeVar

from stressedout.errors import NotFoundError
from stressedout.store import StoreClient

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Sample(Generic[T]):
    """Discriminated outcome of sampling one table."""

    __slots__ = ("_entity", "_table")

    def __init__(self, entity: T | None, table: str):
        self._entity = entity
        self._table = table

    @classmethod
    def found(cls, entity: T, table: str) -> "Sample[T]":
        return cls(entity, table)

    @classmethod
    def missing(cls, table: str) -> "Sample[T]":
        return cls(None, table)

    @property
    def table(self) -> str:
        return self._table

    def __bool__(self) -> bool:
        return self._entity is not None

    def unwrap(self) -> T:
        """Return the sampled entity or raise NotFoundError."""
        if self._entity is None:
            raise NotFoundError(f"no row sampled from {self._table}")
        return self._entity

    def __repr__(self) -> str:
        state = "found" if self else "missing"
        return f"Sample({self._table}, {state})"


def random_row_query(model) -> str:
    return f"SELECT {', '.join(model.COLUMNS)} FROM {model.TABLE} ORDER BY RANDOM() LIMIT 1"


def sample_random(store: StoreClient, model: type[T]) -> Sample[T]:
    """
    Pick one row of model's table uniformly at random.

    Returns Sample.missing when the table is empty. BackendError (connection
    failure, pool exhausted) propagates.
    """
    try:
        row = store.query_one(random_row_query(model))
    except NotFoundError:
        logger.debug(f"Sampled empty table {model.TABLE}")
        return Sample.missing(model.TABLE)
    return Sample.found(model.from_row(row), model.TABLE)
