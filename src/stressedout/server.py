"""
HTTP surface for the seeding and workload handlers.

Each request runs on its own thread (ThreadingHTTPServer). The store client,
views and content source are built once in main() and passed to every request
through the App; there is no module-level mutable state.

Routes:
    GET /          static index page
    GET /dynamic   server-rendered time
    GET /firstrun  create the schema                 200 / 500
    GET /seed      seed the default volume            201 / 500
    GET /read      summary of a random product        200 / 500
    GET /write     random order + review              200 / 500

Usage:
    STRESSEDOUT_BACKEND=sqlite SQLITE_PATH=data/shop.db \
        uv run python -m stressedout.server

    POSTGRES_ADDR=localhost:5432 POSTGRES_USER=app POSTGRES_PASSWORD=secret \
    POSTGRES_DB=shop POOL_SIZE=200 uv run python -m stressedout.server
"""

import logging
import sys
from dataclasses import dataclass, field
from datetime import datetime, timezone
from http import HTTPStatus
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from urllib.parse import urlsplit

from stressedout.config import configure_logging, load_settings
from stressedout.content import ContentSource, FakerContent
from stressedout.errors import BackendError, ConfigMissingError, ConstraintError, NotFoundError
from stressedout.schema import setup_database
from stressedout.seed import DEFAULT_BATCH_SIZE, SeedCounts, Seeder
from stressedout.store import StoreClient
from stressedout.views import Views
from stressedout.workload import read_product_summary, write_purchase

logger = logging.getLogger(__name__)

HTML = "text/html; charset=utf-8"
TEXT = "text/plain; charset=utf-8"


@dataclass
class Response:
    status: int
    body: bytes
    content_type: str = TEXT


def text_response(status: int, message: str) -> Response:
    return Response(status, message.encode("utf-8"), TEXT)


def html_response(page: str) -> Response:
    return Response(HTTPStatus.OK, page.encode("utf-8"), HTML)


def error_response(action: str, error: Exception) -> Response:
    """Log a handler failure by kind and turn it into a 500."""
    if isinstance(error, NotFoundError):
        logger.warning(f"{action}: sample unavailable (pool exhausted or table empty): {error}")
    elif isinstance(error, ConstraintError):
        logger.error(f"{action}: constraint violation: {error}")
    elif isinstance(error, BackendError):
        logger.error(f"{action}: backend failure: {error}")
    else:
        logger.exception(f"{action}: unexpected error")
    kind = getattr(error, "kind", "internal")
    return text_response(HTTPStatus.INTERNAL_SERVER_ERROR, f"{kind}: {action} failed")


# =============================================================================
# Application
# =============================================================================

@dataclass
class App:
    """Handlers plus the collaborators they share."""
    store: StoreClient
    views: Views
    content: ContentSource
    seed_counts: SeedCounts = field(default_factory=SeedCounts)
    seed_batch_size: int | None = DEFAULT_BATCH_SIZE

    def routes(self) -> dict:
        return {
            "/": self.handle_static_page,
            "/dynamic": self.handle_dynamic_page,
            "/firstrun": self.handle_first_run,
            "/seed": self.handle_seed,
            "/read": self.handle_read,
            "/write": self.handle_write,
        }

    def dispatch(self, path: str) -> Response:
        handler = self.routes().get(urlsplit(path).path)
        if handler is None:
            return text_response(HTTPStatus.NOT_FOUND, "not found")
        try:
            return handler()
        except Exception as e:
            return error_response(f"GET {path}", e)

    def handle_static_page(self) -> Response:
        return Response(HTTPStatus.OK, self.views.static_page(), HTML)

    def handle_dynamic_page(self) -> Response:
        return html_response(self.views.dynamic_page(datetime.now(timezone.utc)))

    def handle_first_run(self) -> Response:
        failed = setup_database(self.store)
        if failed:
            return text_response(
                HTTPStatus.INTERNAL_SERVER_ERROR,
                f"Schema setup failed: {', '.join(failed)}",
            )
        return text_response(HTTPStatus.OK, "Database created successfully")

    def handle_seed(self) -> Response:
        report = Seeder(self.store, self.content, batch_size=self.seed_batch_size).run(self.seed_counts)
        if not report.ok:
            return text_response(
                HTTPStatus.INTERNAL_SERVER_ERROR,
                "Database seeding failed\n" + report.summary(),
            )
        return text_response(HTTPStatus.CREATED, "Database seeded successfully\n" + report.summary())

    def handle_read(self) -> Response:
        try:
            summary = read_product_summary(self.store)
        except Exception as e:
            return error_response("read workload", e)
        return html_response(self.views.read_page(summary))

    def handle_write(self) -> Response:
        try:
            receipt = write_purchase(self.store, self.content)
        except Exception as e:
            return error_response("write workload", e)
        return html_response(self.views.write_page(receipt))


# =============================================================================
# HTTP Plumbing
# =============================================================================

class AppServer(ThreadingHTTPServer):
    """Threaded HTTP server carrying the App its handlers dispatch to."""

    daemon_threads = True

    def __init__(self, address: tuple[str, int], app: App):
        super().__init__(address, RequestHandler)
        self.app = app


class RequestHandler(BaseHTTPRequestHandler):
    server: AppServer

    def do_GET(self):
        response = self.server.app.dispatch(self.path)
        try:
            self.send_response(response.status)
            self.send_header("Content-Type", response.content_type)
            self.send_header("Content-Length", str(len(response.body)))
            self.end_headers()
            self.wfile.write(response.body)
        except (BrokenPipeError, ConnectionResetError) as e:
            # client went away; the work is done, the result is discarded
            logger.debug(f"Client disconnected before response was written: {e}")

    def log_message(self, format, *args):
        logger.debug(f"{self.address_string()} - {format % args}")


# =============================================================================
# Main Entry Point
# =============================================================================

def main() -> int:
    try:
        settings = load_settings()
    except (ConfigMissingError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    configure_logging(settings.log_level)

    store = StoreClient.from_settings(settings)
    app = App(store=store, views=Views(), content=FakerContent())
    host, port = settings.listen_host_port
    server = AppServer((host, port), app)

    logger.info(f"Server starting on {settings.listen_addr}")
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        logger.info("Shutting down")
    finally:
        server.server_close()
        store.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
