"""
Locust stress test for the stressedout server with both read and write traffic.

Every simulated user hits /read (summary of a random product) and /write
(random order + review) in the ratio given by READ_WRITE_RATIO. Each request
on the server samples the database and goes through its connection pool, so
raising the user count is how pool saturation is reproduced.

A 500 from /write whose body starts with "not_found" means a sample came back
empty and the write was aborted before any insert; "constraint" and "backend"
point at the datastore itself. The failure message carries the kind, so the
locust failures table lists each kind on its own row.

Usage:
    locust -f locust/read_and_write.py --host=http://localhost:8080

    # Seed first (201 expected) when pointing at an empty database
    SEED_ON_START=1 locust -f locust/read_and_write.py --host=http://localhost:8080
"""

import os

from locust import constant, events, task
from locust.clients import HttpSession
from locust.contrib.fasthttp import FastHttpUser


# =============================================================================
# Configuration
# =============================================================================

# Logging level: DEBUG, INFO, WARNING, ERROR, or NONE (to disable all debug logs)
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Read/Write task ratio (0.0 to 1.0, where 1.0 = 100% reads)
READ_WRITE_RATIO = float(os.getenv("READ_WRITE_RATIO", "0.6"))

# Seed the database once before the test starts
SEED_ON_START = os.getenv("SEED_ON_START", "0") == "1"

# Error kinds the server puts at the start of a 500 body
ERROR_KINDS = ("not_found", "constraint", "backend", "internal")


# =============================================================================
# Logging Helper
# =============================================================================

def debug_log(message: str) -> None:
    """Print debug message if LOG_LEVEL is DEBUG."""
    if LOG_LEVEL == "DEBUG":
        print(message)


def error_kind(body: str | None) -> str:
    """Error kind from a 500 body such as "not_found: write workload failed"."""
    if body:
        prefix = body.split(":", 1)[0].strip()
        if prefix in ERROR_KINDS:
            return prefix
    return "unknown"


# =============================================================================
# Locust User Class
# =============================================================================

class ShopReadWriteUser(FastHttpUser):
    """
    Locust user issuing random product reads and random purchase writes.

    Task weights follow READ_WRITE_RATIO.
    """
    wait_time = constant(1)

    @task(max(1, int(READ_WRITE_RATIO * 100)))
    def read_product(self):
        """Summary of one random product."""
        with self.client.get("/read", catch_response=True, name="read") as response:
            if response.status_code == 200:
                debug_log("[DEBUG] read: SUCCESS")
                response.success()
            else:
                kind = error_kind(response.text)
                debug_log(f"[DEBUG] read: FAILED - status={response.status_code}, kind={kind}")
                response.failure(f"read failed: status={response.status_code} kind={kind}")

    @task(max(1, int((1.0 - READ_WRITE_RATIO) * 100)))
    def write_purchase(self):
        """One order plus one review for a random user and product."""
        with self.client.get("/write", catch_response=True, name="write") as response:
            if response.status_code == 200:
                debug_log("[DEBUG] write: SUCCESS")
                response.success()
            else:
                kind = error_kind(response.text)
                debug_log(f"[DEBUG] write: FAILED - status={response.status_code}, kind={kind}")
                response.failure(f"write failed: status={response.status_code} kind={kind}")


# =============================================================================
# Test Initialization Hook
# =============================================================================

@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    """Optionally create the schema and seed the database once."""
    print("=" * 60)
    print("Initializing read-and-write stress test")
    print("=" * 60)
    print(f"Host: {environment.host}")
    print(f"Read/Write ratio: {READ_WRITE_RATIO:.1%} reads, {1.0 - READ_WRITE_RATIO:.1%} writes")
    print()

    if not SEED_ON_START:
        return

    session = HttpSession(base_url=environment.host, request_event=environment.events.request, user=None)
    response = session.get("/firstrun", name="firstrun")
    print(f"Schema setup: status={response.status_code}")
    response = session.get("/seed", name="seed")
    if response.status_code == 201:
        print("Database seeded successfully")
    else:
        print(f"Warning: seeding failed with status {response.status_code}")
    print()
