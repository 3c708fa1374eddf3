from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

PRISMIC_DATE_FORMATS = ("%Y-%m-%dT%H:%M:%S%z", "%Y-%m-%dT%H:%M:%S.%f%z")


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse a Prismic publication date such as 2021-03-25T19:25:28+0000.
    Returns None for missing or unreadable values.
    """
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    raw = value.strip()
    for fmt in PRISMIC_DATE_FORMATS:
        try:
            return datetime.strptime(raw, fmt)
        except ValueError:
            continue
    try:
        return datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        return None


def _text(data: Dict[str, Any], key: str) -> str:
    value = data.get(key)
    return value if isinstance(value, str) else ""


@dataclass(frozen=True)
class PostSummary:
    """One entry of the listing page."""
    id: str
    published_at: Optional[datetime]
    title: str
    subtitle: str
    author: str

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "PostSummary":
        data = doc.get("data") or {}
        return cls(
            id=doc.get("uid") or doc.get("id") or "",
            published_at=parse_timestamp(doc.get("first_publication_date")),
            title=_text(data, "title"),
            subtitle=_text(data, "subtitle"),
            author=_text(data, "author"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "published_at": self.published_at.isoformat() if self.published_at else None,
            "title": self.title,
            "subtitle": self.subtitle,
            "author": self.author,
        }


@dataclass(frozen=True)
class Page:
    items: Tuple[PostSummary, ...]
    next_page_token: Optional[str] = None
    total_results: Optional[int] = None

    @classmethod
    def from_response(cls, resp: Dict[str, Any]) -> "Page":
        """
        Build a Page from a documents/search response.
        Expected shape: {"results": [...], "next_page": url or null, "total_results_size": n}
        """
        results = resp.get("results")
        if not isinstance(results, list):
            raise ValueError("search response has no results list")
        next_page = resp.get("next_page")
        total = resp.get("total_results_size")
        return cls(
            items=tuple(PostSummary.from_document(doc) for doc in results if isinstance(doc, dict)),
            next_page_token=next_page if isinstance(next_page, str) and next_page else None,
            total_results=total if isinstance(total, int) else None,
        )


@dataclass(frozen=True)
class PostContent:
    heading: str
    body: List[Dict[str, Any]] = field(default_factory=list)


@dataclass(frozen=True)
class FullDocument:
    """A post with its rich text body, as shown on the post page."""
    uid: str
    published_at: Optional[datetime]
    title: str
    subtitle: str
    author: str
    banner_url: str
    content: Tuple[PostContent, ...] = ()

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "FullDocument":
        data = doc.get("data") or {}
        banner = data.get("banner") or {}
        content = []
        for item in data.get("content") or []:
            if not isinstance(item, dict):
                continue
            body = item.get("body")
            content.append(PostContent(
                heading=_text(item, "heading"),
                body=[b for b in body if isinstance(b, dict)] if isinstance(body, list) else [],
            ))
        return cls(
            uid=doc.get("uid") or doc.get("id") or "",
            published_at=parse_timestamp(doc.get("first_publication_date")),
            title=_text(data, "title"),
            subtitle=_text(data, "subtitle"),
            author=_text(data, "author"),
            banner_url=(banner.get("url") or "") if isinstance(banner, dict) else "",
            content=tuple(content),
        )
