"""Page rendering for the HTTP surface."""

from dataclasses import asdict
from datetime import datetime
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape

from stressedout.workload import ProductSummary, PurchaseReceipt

PACKAGE_DIR = Path(__file__).parent
TEMPLATE_DIR = PACKAGE_DIR / "templates"
STATIC_DIR = PACKAGE_DIR / "static"


class Views:
    """Template set loaded once at startup and shared by all request threads."""

    def __init__(self, template_dir: Path = TEMPLATE_DIR, static_dir: Path = STATIC_DIR):
        self.env = Environment(
            loader=FileSystemLoader(str(template_dir)),
            autoescape=select_autoescape(["html"]),
        )
        self.static_dir = static_dir

    def render(self, name: str, **context) -> str:
        return self.env.get_template(name).render(**context)

    def read_page(self, summary: ProductSummary) -> str:
        return self.render("read.html", **asdict(summary))

    def write_page(self, receipt: PurchaseReceipt) -> str:
        return self.render("write.html", **asdict(receipt))

    def dynamic_page(self, now: datetime) -> str:
        # RFC822-style, e.g. "02 Jan 06 15:04 UTC"
        return self.render("dynamic.html", title="Dynamic Page", time=now.strftime("%d %b %y %H:%M %Z"))

    def static_page(self, name: str = "index.html") -> bytes:
        return (self.static_dir / name).read_bytes()
