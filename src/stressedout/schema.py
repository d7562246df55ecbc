"""
Schema creation for the users/products/orders/reviews tables.

Issued once through the /firstrun endpoint or `stressedout-seed --setup-schema`.
Each statement is executed on its own and failures are logged, so a partially
existing schema does not stop the remaining tables from being created.
"""

import logging

from stressedout.config import BACKEND_SQLITE
from stressedout.errors import StoreError
from stressedout.models import RATING_MAX, RATING_MIN
from stressedout.store import StoreClient

logger = logging.getLogger(__name__)


# =============================================================================
# DDL
# =============================================================================

POSTGRES_SCHEMA = [
    ("uuid-ossp extension", 'CREATE EXTENSION IF NOT EXISTS "uuid-ossp"'),
    ("users table", """
        CREATE TABLE IF NOT EXISTS users (
            id UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            name TEXT NOT NULL,
            address TEXT NOT NULL
        )
    """),
    ("products table", """
        CREATE TABLE IF NOT EXISTS products (
            id UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            name TEXT NOT NULL,
            description TEXT NOT NULL,
            price NUMERIC(10, 2) NOT NULL
        )
    """),
    ("orders table", """
        CREATE TABLE IF NOT EXISTS orders (
            id UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            user_id UUID NOT NULL REFERENCES users(id),
            product_id UUID NOT NULL REFERENCES products(id),
            quantity INTEGER NOT NULL,
            total_price NUMERIC(10, 2) NOT NULL,
            date TIMESTAMP WITH TIME ZONE NOT NULL
        )
    """),
    ("reviews table", f"""
        CREATE TABLE IF NOT EXISTS reviews (
            id UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            product_id UUID NOT NULL REFERENCES products(id),
            user_id UUID NOT NULL REFERENCES users(id),
            rating INTEGER NOT NULL CHECK (rating >= {RATING_MIN} AND rating <= {RATING_MAX}),
            content TEXT NOT NULL
        )
    """),
]

# SQLite: ids are generated client-side, decimals and timestamps stored as text
SQLITE_SCHEMA = [
    ("users table", """
        CREATE TABLE IF NOT EXISTS users (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            address TEXT NOT NULL
        )
    """),
    ("products table", """
        CREATE TABLE IF NOT EXISTS products (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            description TEXT NOT NULL,
            price NUMERIC NOT NULL
        )
    """),
    ("orders table", """
        CREATE TABLE IF NOT EXISTS orders (
            id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL REFERENCES users(id),
            product_id TEXT NOT NULL REFERENCES products(id),
            quantity INTEGER NOT NULL,
            total_price NUMERIC NOT NULL,
            date TEXT NOT NULL
        )
    """),
    ("reviews table", f"""
        CREATE TABLE IF NOT EXISTS reviews (
            id TEXT PRIMARY KEY,
            product_id TEXT NOT NULL REFERENCES products(id),
            user_id TEXT NOT NULL REFERENCES users(id),
            rating INTEGER NOT NULL CHECK (rating >= {RATING_MIN} AND rating <= {RATING_MAX}),
            content TEXT NOT NULL
        )
    """),
    ("orders product index", "CREATE INDEX IF NOT EXISTS idx_orders_product ON orders (product_id)"),
    ("reviews product index", "CREATE INDEX IF NOT EXISTS idx_reviews_product ON reviews (product_id)"),
]


def schema_for(dialect_name: str) -> list[tuple[str, str]]:
    return SQLITE_SCHEMA if dialect_name == BACKEND_SQLITE else POSTGRES_SCHEMA


def setup_database(store: StoreClient) -> list[str]:
    """
    Create every table that does not exist yet.

    Returns:
        Names of the statements that failed (empty on success)
    """
    failed = []
    for name, statement in schema_for(store.dialect.name):
        try:
            store.exec(statement)
        except StoreError as e:
            logger.error(f"Error creating {name}: {e}")
            failed.append(name)
    if failed:
        logger.error(f"Schema setup incomplete, failed: {', '.join(failed)}")
    else:
        logger.info("Database schema created successfully")
    return failed
