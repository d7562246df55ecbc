"""
Randomized read and write workloads.

Both handlers run concurrently on request threads and share only the
StoreClient. Neither wraps its queries in a transaction: concurrent writers
may change counts between the read queries, and the two writes of a purchase
are independent. Both are accepted as workload noise.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone

from stressedout.content import ContentSource
from stressedout.errors import NotFoundError
from stressedout.models import RATING_MAX, RATING_MIN, Order, Product, Review, User
from stressedout.sampler import sample_random
from stressedout.store import StoreClient

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

WRITE_QUANTITY_MIN = 1
WRITE_QUANTITY_MAX = 5

ORDER_COUNT_SQL = "SELECT COUNT(*) AS count FROM orders WHERE product_id = ?"
UNIQUE_USER_COUNT_SQL = "SELECT COUNT(DISTINCT user_id) AS count FROM orders WHERE product_id = ?"
PRODUCT_REVIEWS_SQL = """
    SELECT u.name AS username, r.rating, r.content
    FROM reviews r
    JOIN users u ON r.user_id = u.id
    WHERE r.product_id = ?
"""


# =============================================================================
# Results
# =============================================================================

@dataclass
class ReviewLine:
    username: str
    rating: int
    content: str


@dataclass
class ProductSummary:
    """What the read workload reports about one random product."""
    product: Product
    order_count: int = 0
    unique_user_count: int = 0
    reviews: list[ReviewLine] = field(default_factory=list)


@dataclass
class PurchaseReceipt:
    """In-memory values of one write workload, as persisted."""
    product: Product
    user: User
    order: Order
    review: Review


# =============================================================================
# Read Workload
# =============================================================================

def read_product_summary(store: StoreClient) -> ProductSummary:
    """
    Sample one product, then count its orders and distinct buyers and list
    its reviews with reviewer names.

    All dependent queries use the sampled product's id. If the sample is
    empty, NotFoundError is raised before any dependent query is issued.

    Raises:
        NotFoundError: the products table is empty
        BackendError: any query failed at the backend
    """
    product = sample_random(store, Product).unwrap()
    product_id = str(product.id)

    order_count = store.query_one(ORDER_COUNT_SQL, (product_id,))["count"]
    unique_user_count = store.query_one(UNIQUE_USER_COUNT_SQL, (product_id,))["count"]
    reviews = [
        ReviewLine(username=row["username"], rating=int(row["rating"]), content=row["content"])
        for row in store.query_many(PRODUCT_REVIEWS_SQL, (product_id,))
    ]

    return ProductSummary(
        product=product,
        order_count=int(order_count),
        unique_user_count=int(unique_user_count),
        reviews=reviews,
    )


# =============================================================================
# Write Workload
# =============================================================================

def write_purchase(store: StoreClient, content: ContentSource) -> PurchaseReceipt:
    """
    Simulate a purchase-and-review event for a random user and product.

    Both samples are unwrapped before anything is written: an empty sample
    (table empty, or the query came back with nothing under pool pressure)
    aborts with NotFoundError and no insert is attempted. There is no retry.

    The order is inserted before the review. If the order insert fails the
    review is not attempted; if the review insert fails the order stays.

    Raises:
        NotFoundError: a sample came back empty
        ConstraintError: the backend rejected the order or review
        BackendError: connection, timeout or protocol failure
    """
    product_sample = sample_random(store, Product)
    user_sample = sample_random(store, User)
    try:
        product = product_sample.unwrap()
        user = user_sample.unwrap()
    except NotFoundError as e:
        logger.warning(f"Write aborted before insert, sample unavailable "
                       f"(pool exhausted or table empty): {e}")
        raise

    quantity = content.number(WRITE_QUANTITY_MIN, WRITE_QUANTITY_MAX)
    order = Order.for_product(user, product, quantity, datetime.now(timezone.utc))
    store.insert(order)

    review = Review(
        product_id=product.id,
        user_id=user.id,
        rating=content.number(RATING_MIN, RATING_MAX),
        content=content.paragraph(),
    )
    store.insert(review)

    return PurchaseReceipt(product=product, user=user, order=order, review=review)
