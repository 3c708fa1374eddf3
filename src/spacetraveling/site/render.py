from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Optional
from urllib.parse import quote

from jinja2 import Environment, FileSystemLoader, TemplateError

from ..config import DOCUMENT_TYPE
from ..feed.accumulator import FeedState
from ..prismic.richtext import as_html
from ..prismic.types import FullDocument
from ..utils.format_date import format_date
from ..utils.reading_time import reading_time

TEMPLATE_DIR = Path(__file__).parent / "templates"
SITE_NAME = "spacetraveling"
LOAD_MORE_LABEL = "Carregar mais posts"


class RenderError(Exception):
    """A template failed to load or render."""


def listing_path(page_number: int) -> str:
    """Output path of a listing page relative to the site root."""
    return "index.html" if page_number <= 1 else f"page/{page_number}/index.html"


def post_path(uid: str) -> str:
    return f"post/{uid}/index.html"


class SiteRenderer:
    """Renders listing and post pages with Jinja2."""

    def __init__(self, template_dir: Optional[str] = None, base_url: str = "/") -> None:
        self.base_url = base_url if base_url.endswith("/") else base_url + "/"
        try:
            self.env = Environment(
                loader=FileSystemLoader(str(template_dir or TEMPLATE_DIR)),
                autoescape=True,
                trim_blocks=True,
                lstrip_blocks=True,
            )
        except Exception as e:  # noqa: BLE001
            raise RenderError(f"Failed to initialize Jinja2 environment: {e}") from e

        self.env.filters["format_date"] = format_date
        self.env.filters["reading_time"] = reading_time
        self.env.filters["richtext"] = lambda blocks: as_html(blocks, self.resolve_link)
        self.env.globals.update(site_name=SITE_NAME, base_url=self.base_url)

    def url_for_listing(self, page_number: int) -> str:
        return self.base_url if page_number <= 1 else f"{self.base_url}page/{page_number}/"

    def url_for_post(self, uid: str) -> str:
        return f"{self.base_url}post/{quote(uid)}/"

    def resolve_link(self, data: Dict[str, Any]) -> Optional[str]:
        """Link resolver for document links inside post bodies."""
        if data.get("type") == DOCUMENT_TYPE and data.get("uid"):
            return self.url_for_post(data["uid"])
        return None

    def render_listing(
        self,
        state: FeedState,
        page_number: int = 1,
        has_next: Optional[bool] = None,
    ) -> str:
        if has_next is None:
            has_next = state.has_more
        next_href = self.url_for_listing(page_number + 1) if has_next else None
        return self._render(
            "index.html",
            posts=state.items,
            next_href=next_href,
            load_more_label=LOAD_MORE_LABEL,
            post_url=self.url_for_post,
        )

    def render_post(self, doc: FullDocument) -> str:
        return self._render("post.html", post=doc)

    def _render(self, name: str, **context) -> str:
        try:
            return self.env.get_template(name).render(**context)
        except TemplateError as e:
            raise RenderError(f"rendering {name} failed: {e}") from e
