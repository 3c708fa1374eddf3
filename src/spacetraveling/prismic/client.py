from __future__ import annotations

import logging
import socket
from typing import Any, Dict, Iterable, List, Optional
from urllib.error import HTTPError, URLError
from urllib.parse import urlencode
from urllib.request import Request, urlopen

import orjson

from ..feed.accumulator import FetchError
from .predicates import at, build_query
from .types import FullDocument, Page

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0


class DocumentNotFound(FetchError):
    """No document matched the requested type and uid."""


class PrismicClient:
    """
    Minimal client for the Prismic REST API v2.

    Only the calls the blog needs:
    - query_first_page for the listing
    - fetch_page to follow next_page links
    - get_by_uid for a single post

    Notes
    - endpoint is the API root, e.g. https://my-repo.cdn.prismic.io/api/v2
    - the master ref is looked up once and reused unless `ref` is given
    - every transport or parse failure raises FetchError
    """

    def __init__(
        self,
        endpoint: str,
        *,
        access_token: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
        ref: Optional[str] = None,
    ) -> None:
        self.endpoint = endpoint.rstrip("/")
        self.access_token = access_token
        self.timeout = timeout
        self._ref = ref

    # -----------------------------
    # Public interface
    # -----------------------------
    def master_ref(self) -> str:
        if self._ref:
            return self._ref
        url = self.endpoint
        if self.access_token:
            url += "?" + urlencode({"access_token": self.access_token})
        api = self._get_json(url)
        refs = api.get("refs")
        if isinstance(refs, list):
            for r in refs:
                if isinstance(r, dict) and r.get("isMasterRef") and r.get("ref"):
                    self._ref = r["ref"]
                    return self._ref
        raise FetchError("prismic_bad_response: no master ref")

    def query_first_page(
        self,
        predicates: Iterable[str],
        *,
        fields: Iterable[str] = (),
        page_size: int = 20,
        orderings: Optional[str] = None,
    ) -> Page:
        resp = self._search(predicates, fields=fields, page_size=page_size, orderings=orderings)
        page = self._to_page(resp)
        logger.info(
            "first page: %d posts of %s, next_page=%s",
            len(page.items), page.total_results, bool(page.next_page_token),
        )
        return page

    def fetch_page(self, token: str) -> Page:
        """Follow a next_page URL. It already carries ref, query and token."""
        if not token:
            raise FetchError("empty page token")
        return self._to_page(self._get_json(token))

    def get_by_uid(self, doc_type: str, uid: str) -> FullDocument:
        resp = self._search([at(f"my.{doc_type}.uid", uid)], page_size=1)
        results = resp.get("results")
        if not isinstance(results, list) or not results or not isinstance(results[0], dict):
            raise DocumentNotFound(f"no {doc_type} document with uid {uid!r}")
        return FullDocument.from_document(results[0])

    def list_uids(self, doc_type: str, page_size: int = 20) -> List[str]:
        resp = self._search([at("document.type", doc_type)], fields=[f"{doc_type}.uid"], page_size=page_size)
        return [d["uid"] for d in resp.get("results") or [] if isinstance(d, dict) and d.get("uid")]

    # -----------------------------
    # Internals
    # -----------------------------
    def _search(
        self,
        predicates: Iterable[str],
        *,
        fields: Iterable[str] = (),
        page_size: int = 20,
        orderings: Optional[str] = None,
    ) -> Dict[str, Any]:
        params: Dict[str, Any] = {
            "ref": self.master_ref(),
            "q": build_query(predicates),
            "pageSize": int(page_size),
        }
        fields = list(fields)
        if fields:
            params["fetch"] = ",".join(fields)
        if orderings:
            params["orderings"] = orderings
        if self.access_token:
            params["access_token"] = self.access_token
        url = f"{self.endpoint}/documents/search?{urlencode(params)}"
        return self._get_json(url)

    def _to_page(self, resp: Dict[str, Any]) -> Page:
        try:
            return Page.from_response(resp)
        except ValueError as e:
            raise FetchError(f"prismic_bad_response: {e}") from e

    def _get_json(self, url: str) -> Dict[str, Any]:
        req = Request(url=url, method="GET", headers={"Accept": "application/json"})
        logger.debug("GET %s", url)
        try:
            with urlopen(req, timeout=self.timeout) as resp:
                raw = resp.read()
        except HTTPError as he:
            try:
                body = he.read().decode("utf-8", errors="replace")
            except Exception:
                body = ""
            raise FetchError(f"prismic_http_error {he.code}: {body}") from he
        except URLError as ue:
            raise FetchError(f"prismic_url_error: {ue.reason}") from ue
        except (socket.timeout, TimeoutError) as te:
            raise FetchError(f"prismic_timeout after {self.timeout}s") from te

        try:
            data = orjson.loads(raw)
        except orjson.JSONDecodeError as je:
            raise FetchError(f"prismic_bad_json: {je}") from je
        if not isinstance(data, dict):
            raise FetchError("prismic_bad_json: expected an object")
        return data
