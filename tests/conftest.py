from datetime import datetime, timezone

import pytest

from spacetraveling.feed.accumulator import FetchError
from spacetraveling.prismic.types import FullDocument, Page, PostContent, PostSummary


def make_post(uid, title=None):
    return PostSummary(
        id=uid,
        published_at=datetime(2021, 3, 25, 19, 25, tzinfo=timezone.utc),
        title=title or f"Post {uid}",
        subtitle=f"Sub {uid}",
        author="Joseph Oliveira",
    )


class FakeSource:
    """In-memory content source: pages chained by token p1 -> p2 -> ..."""

    def __init__(self, pages, documents=None, failing=()):
        self.pages = pages
        self.documents = documents or {}
        self.failing = set(failing)
        self.fetched = []
        self.first_page_calls = []

    def query_first_page(self, predicates, *, fields=(), page_size=20, orderings=None):
        self.first_page_calls.append((list(predicates), tuple(fields), page_size))
        return self.pages["first"]

    def fetch_page(self, token):
        self.fetched.append(token)
        if token in self.failing:
            raise FetchError(f"boom on {token}")
        return self.pages[token]

    def get_by_uid(self, doc_type, uid):
        if uid in self.failing:
            raise FetchError(f"no post {uid}")
        return self.documents.get(uid) or FullDocument(
            uid=uid,
            published_at=datetime(2021, 3, 25, tzinfo=timezone.utc),
            title=f"Post {uid}",
            subtitle="",
            author="Danilo Vieira",
            banner_url=f"https://images.prismic.io/{uid}.png",
            content=(PostContent(heading="Intro", body=[{"type": "paragraph", "text": "lorem ipsum", "spans": []}]),),
        )


@pytest.fixture
def two_page_source():
    a, b, c, d, e, f = (make_post(x) for x in "abcdef")
    return FakeSource({
        "first": Page(items=(a, b, c, d), next_page_token="p2"),
        "p2": Page(items=(e, f), next_page_token=None),
    })
