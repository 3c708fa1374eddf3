from __future__ import annotations

import logging
import shutil
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Protocol, Sequence

from tqdm import tqdm

from ..config import DOCUMENT_TYPE, LISTING_FIELDS
from ..feed.accumulator import Feed, FeedState, FetchError
from ..prismic.predicates import at
from ..prismic.types import FullDocument, Page
from ..utils.io_utils import write_json
from .render import SiteRenderer, listing_path, post_path

logger = logging.getLogger(__name__)

STATIC_DIR = Path(__file__).parent / "static"


class ContentSource(Protocol):
    def query_first_page(self, predicates, *, fields=(), page_size=20, orderings=None) -> Page: ...

    def fetch_page(self, token: str) -> Page: ...

    def get_by_uid(self, doc_type: str, uid: str) -> FullDocument: ...


@dataclass
class BuildResult:
    out_dir: Path
    listing_pages: List[Path] = field(default_factory=list)
    posts: List[Path] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed


def first_page(source: ContentSource, page_size: int) -> Page:
    return source.query_first_page(
        [at("document.type", DOCUMENT_TYPE)],
        fields=LISTING_FIELDS,
        page_size=page_size,
    )


def _write(out_dir: Path, rel: str, html: str) -> Path:
    path = out_dir / rel
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(html, encoding="utf-8")
    return path


def _is_safe_post_path(out_dir: Path, uid: str) -> bool:
    """The post page must land in its own directory under out_dir/post."""
    root = (out_dir / "post").resolve()
    target = (out_dir / post_path(uid)).resolve()
    return root in target.parents and target.parent != root


def _fetch_documents(
    source: ContentSource,
    uids: Sequence[str],
    max_workers: int,
) -> Dict[str, object]:
    """Fetch full documents in parallel. Values are FullDocument or the FetchError raised."""
    out: Dict[str, object] = {}
    with ThreadPoolExecutor(max_workers=max_workers) as ex:
        futures = {ex.submit(source.get_by_uid, DOCUMENT_TYPE, uid): uid for uid in uids}
        for fut in tqdm(as_completed(futures), total=len(futures), desc="posts", disable=None):
            uid = futures[fut]
            try:
                out[uid] = fut.result()
            except FetchError as e:
                out[uid] = e
    return out


def build_site(
    source: ContentSource,
    out_dir: str,
    *,
    page_size: int = 4,
    max_pages: Optional[int] = None,
    max_workers: int = 8,
    timeout: Optional[float] = 10.0,
    renderer: Optional[SiteRenderer] = None,
) -> BuildResult:
    """
    Build the static site into out_dir.

    Listing page N shows the feed after N-1 loads, so each page repeats the
    posts of the previous one and adds the next batch. Every post that shows
    up in the feed gets its own page.
    """
    renderer = renderer or SiteRenderer()
    out = Path(out_dir)
    out.mkdir(parents=True, exist_ok=True)
    result = BuildResult(out_dir=out)

    with Feed(first_page(source, page_size), source.fetch_page, timeout=timeout) as feed:
        page_number = 1
        while True:
            state: FeedState = feed.state
            last = not state.has_more or (max_pages is not None and page_number >= max_pages)
            html = renderer.render_listing(state, page_number, has_next=not last)
            result.listing_pages.append(_write(out, listing_path(page_number), html))
            logger.info("listing page %d written with %d posts", page_number, len(state.items))
            if last:
                break
            feed.load_more()
            page_number += 1
        state = feed.state

    uids: List[str] = []
    for item in state.items:
        if item.id and item.id not in uids:
            if not _is_safe_post_path(out, item.id):
                logger.error("post %r skipped: uid escapes the post directory", item.id)
                result.failed[item.id] = "unsafe uid"
                continue
            uids.append(item.id)

    docs = _fetch_documents(source, uids, max_workers=max_workers)
    for uid in uids:
        doc = docs.get(uid)
        if isinstance(doc, FullDocument):
            result.posts.append(_write(out, post_path(uid), renderer.render_post(doc)))
        else:
            logger.error("post %s skipped: %s", uid, doc)
            result.failed[uid] = str(doc)

    if STATIC_DIR.is_dir():
        shutil.copytree(STATIC_DIR, out / "static", dirs_exist_ok=True)

    write_json(out / "feed.json", {
        "pages": page_number,
        "has_more": state.has_more,
        "items": [item.to_dict() for item in state.items],
    })

    logger.info(
        "build done: %d listing pages, %d posts, %d failed",
        len(result.listing_pages), len(result.posts), len(result.failed),
    )
    return result
