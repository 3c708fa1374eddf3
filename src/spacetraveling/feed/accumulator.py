from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

from ..prismic.types import Page, PostSummary

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0

FetchPage = Callable[[str], Page]


class FeedError(Exception):
    """Base class for feed related errors."""


class FetchError(FeedError):
    """The content source could not deliver a page. The feed state is unchanged."""


class PreconditionError(FeedError):
    """load_more was called on an exhausted feed or while a load is in flight."""


@dataclass(frozen=True)
class FeedState:
    """
    Cumulative list of posts shown on a listing view.

    has_more is derived from the token of the last fetched page, so it can
    never disagree with it.
    """
    items: Tuple[PostSummary, ...] = ()
    next_page_token: Optional[str] = None

    @property
    def has_more(self) -> bool:
        return self.next_page_token is not None


def initialize(page: Page) -> FeedState:
    return FeedState(items=tuple(page.items), next_page_token=page.next_page_token)


def load_more(state: FeedState, fetch_page: FetchPage) -> FeedState:
    """
    Fetch the page after `state` and return a new state with its items appended.

    Items are appended in arrival order, duplicates included. Raises
    PreconditionError without fetching when the feed is exhausted, and
    FetchError when fetch_page fails; `state` is never modified.
    """
    if not state.has_more:
        raise PreconditionError("feed has no more pages")

    token = state.next_page_token
    try:
        page = fetch_page(token)
    except FetchError:
        raise
    except Exception as e:
        raise FetchError(f"fetch_page failed: {e}") from e

    logger.debug("loaded %d posts from %s", len(page.items), token)
    return FeedState(
        items=state.items + tuple(page.items),
        next_page_token=page.next_page_token,
    )


class Feed:
    """
    Owns the FeedState of one listing view.

    Only one load runs at a time: a second call while a fetch is outstanding
    raises PreconditionError instead of queueing, so pages are never appended
    out of order. Each fetch is bounded by `timeout` seconds.
    """

    def __init__(
        self,
        first_page: Page,
        fetch_page: FetchPage,
        *,
        timeout: Optional[float] = DEFAULT_TIMEOUT,
    ) -> None:
        self._state = initialize(first_page)
        self._fetch_page = fetch_page
        self.timeout = timeout
        self._in_flight = threading.Lock()
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="feed-fetch")
        self.pages_loaded = 1

    @property
    def state(self) -> FeedState:
        return self._state

    @property
    def has_more(self) -> bool:
        return self._state.has_more

    def load_more(self) -> FeedState:
        if not self._in_flight.acquire(blocking=False):
            raise PreconditionError("a load is already in flight")
        try:
            before = self._state
            future = self._executor.submit(load_more, before, self._fetch_page)
            try:
                new_state = future.result(timeout=self.timeout)
            except FutureTimeout as e:
                # the worker may still finish; its result is dropped
                future.cancel()
                logger.warning("loading %s timed out after %ss", before.next_page_token, self.timeout)
                raise FetchError(f"fetch timed out after {self.timeout}s") from e
            except FetchError as e:
                logger.warning("loading %s failed: %s", before.next_page_token, e)
                raise
            self._state = new_state
            self.pages_loaded += 1
            logger.info(
                "feed page %d loaded, %d posts total, has_more=%s",
                self.pages_loaded, len(new_state.items), new_state.has_more,
            )
            return new_state
        finally:
            self._in_flight.release()

    def load_all(self, max_pages: Optional[int] = None) -> FeedState:
        """Load until the feed is exhausted or max_pages more pages were loaded."""
        loaded = 0
        while self._state.has_more and (max_pages is None or loaded < max_pages):
            self.load_more()
            loaded += 1
        return self._state

    def close(self) -> None:
        self._executor.shutdown(wait=False)

    def __enter__(self) -> "Feed":
        return self

    def __exit__(self, *exc) -> None:
        self.close()
