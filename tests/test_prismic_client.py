import io
from urllib.error import HTTPError, URLError
from urllib.parse import parse_qs, urlparse

import orjson
import pytest

from spacetraveling.feed.accumulator import FetchError
from spacetraveling.prismic import client as client_mod
from spacetraveling.prismic.client import DocumentNotFound, PrismicClient
from spacetraveling.prismic.predicates import at

ENDPOINT = "https://spacetraveling.cdn.prismic.io/api/v2"

API = {"refs": [{"id": "master", "ref": "YF1x", "isMasterRef": True}]}

SEARCH = {
    "page": 1,
    "results_per_page": 2,
    "total_results_size": 3,
    "next_page": f"{ENDPOINT}/documents/search?ref=YF1x&page=2&pageSize=2",
    "results": [
        {
            "uid": "como-utilizar-hooks",
            "first_publication_date": "2021-03-15T19:25:28+0000",
            "data": {"title": "Como utilizar Hooks", "subtitle": "Pensando em sincronização", "author": "Joseph Oliveira"},
        },
        {
            "uid": "criando-um-app-cra-do-zero",
            "first_publication_date": None,
            "data": {"title": "Criando um app CRA do zero", "author": "Danilo Vieira"},
        },
    ],
}


class FakeResponse(io.BytesIO):
    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()


@pytest.fixture
def http(monkeypatch):
    """Route urlopen to a dict of url prefix -> payload, recording requested urls."""
    routes = {}
    seen = []

    def fake_urlopen(req, timeout=None):
        url = req.full_url
        seen.append(url)
        for prefix, payload in routes.items():
            if url.startswith(prefix):
                if isinstance(payload, Exception):
                    raise payload
                body = payload if isinstance(payload, bytes) else orjson.dumps(payload)
                return FakeResponse(body)
        raise AssertionError(f"unexpected url {url}")

    monkeypatch.setattr(client_mod, "urlopen", fake_urlopen)
    return routes, seen


def test_query_first_page_builds_search_url(http):
    routes, seen = http
    routes[f"{ENDPOINT}/documents/search"] = SEARCH
    routes[ENDPOINT] = API

    page = PrismicClient(ENDPOINT + "/").query_first_page(
        [at("document.type", "posts")],
        fields=["posts.title", "posts.subtitle", "posts.author"],
        page_size=2,
    )

    assert seen[0] == ENDPOINT
    qs = parse_qs(urlparse(seen[1]).query)
    assert qs["ref"] == ["YF1x"]
    assert qs["q"] == ['[[at(document.type, "posts")]]']
    assert qs["fetch"] == ["posts.title,posts.subtitle,posts.author"]
    assert qs["pageSize"] == ["2"]

    assert [p.id for p in page.items] == ["como-utilizar-hooks", "criando-um-app-cra-do-zero"]
    assert page.items[0].published_at.year == 2021
    assert page.items[1].published_at is None
    assert page.items[1].subtitle == ""
    assert page.next_page_token == SEARCH["next_page"]
    assert page.total_results == 3


def test_master_ref_is_cached_and_token_sent(http):
    routes, seen = http
    routes[f"{ENDPOINT}/documents/search"] = dict(SEARCH, next_page=None)
    routes[ENDPOINT] = API

    client = PrismicClient(ENDPOINT, access_token="secret")
    client.query_first_page([at("document.type", "posts")])
    page = client.query_first_page([at("document.type", "posts")])

    assert sum(1 for u in seen if "/documents/search" not in u) == 1
    assert "access_token=secret" in seen[0]
    assert parse_qs(urlparse(seen[-1]).query)["access_token"] == ["secret"]
    assert page.next_page_token is None


def test_fetch_page_follows_token(http):
    routes, seen = http
    token = SEARCH["next_page"]
    routes[token] = {"results": [], "next_page": None}

    page = PrismicClient(ENDPOINT, ref="YF1x").fetch_page(token)
    assert seen == [token]
    assert page.items == ()
    assert page.next_page_token is None


def test_get_by_uid(http):
    routes, seen = http
    routes[f"{ENDPOINT}/documents/search"] = {
        "results": [{
            "uid": "como-utilizar-hooks",
            "first_publication_date": "2021-03-15T19:25:28+0000",
            "data": {
                "title": "Como utilizar Hooks",
                "author": "Joseph Oliveira",
                "banner": {"url": "https://images.prismic.io/banner.png"},
                "content": [{"heading": "Proin et varius", "body": [{"type": "paragraph", "text": "Nullam", "spans": []}]}],
            },
        }],
        "next_page": None,
    }

    doc = PrismicClient(ENDPOINT, ref="YF1x").get_by_uid("posts", "como-utilizar-hooks")
    assert parse_qs(urlparse(seen[0]).query)["q"] == ['[[at(my.posts.uid, "como-utilizar-hooks")]]']
    assert doc.banner_url == "https://images.prismic.io/banner.png"
    assert doc.content[0].heading == "Proin et varius"
    assert doc.content[0].body[0]["text"] == "Nullam"


def test_get_by_uid_not_found(http):
    routes, _ = http
    routes[f"{ENDPOINT}/documents/search"] = {"results": [], "next_page": None}
    with pytest.raises(DocumentNotFound):
        PrismicClient(ENDPOINT, ref="YF1x").get_by_uid("posts", "missing")


def test_list_uids(http):
    routes, seen = http
    routes[f"{ENDPOINT}/documents/search"] = SEARCH
    uids = PrismicClient(ENDPOINT, ref="YF1x").list_uids("posts", page_size=2)
    assert uids == ["como-utilizar-hooks", "criando-um-app-cra-do-zero"]
    assert parse_qs(urlparse(seen[0]).query)["fetch"] == ["posts.uid"]


@pytest.mark.parametrize("payload, message", [
    (URLError("connection refused"), "prismic_url_error"),
    (HTTPError("u", 404, "Not Found", {}, io.BytesIO(b"no such ref")), "prismic_http_error 404: no such ref"),
    (b"<html>", "prismic_bad_json"),
    (b"[]", "prismic_bad_json"),
    ({"unexpected": True}, "prismic_bad_response"),
])
def test_transport_errors_become_fetch_errors(http, payload, message):
    routes, _ = http
    routes["https://next"] = payload
    with pytest.raises(FetchError, match=message):
        PrismicClient(ENDPOINT, ref="YF1x").fetch_page("https://next/page2")


def test_missing_master_ref(http):
    routes, _ = http
    routes[ENDPOINT] = {"refs": []}
    with pytest.raises(FetchError, match="no master ref"):
        PrismicClient(ENDPOINT).master_ref()
