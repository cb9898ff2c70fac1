"""Router collaborator: the committed URL and the single way to change it."""

from __future__ import annotations

import logging
from typing import Callable, List, Protocol

from .url_codec import HOME_URL, Params, parse_query_string

logger = logging.getLogger(__name__)


class Router(Protocol):
    def replace(self, url: str) -> None:
        """Commit a new URL without adding a history entry."""
        ...

    def current_params(self) -> Params:
        """Snapshot of the currently committed query parameters."""
        ...


Subscriber = Callable[[str], None]


class InMemoryRouter:
    """Router holding the location in memory.

    `replace` updates the committed location immediately, like
    history.replaceState; subscribers (the "render") are notified on `flush`,
    or straight away when `auto_flush` is set.
    """

    def __init__(self, url: str = HOME_URL, auto_flush: bool = False) -> None:
        self.url = url or HOME_URL
        self.auto_flush = auto_flush
        self.commits: List[str] = []
        self._subscribers: List[Subscriber] = []
        self._dirty = False

    @property
    def commit_count(self) -> int:
        return len(self.commits)

    def replace(self, url: str) -> None:
        logger.debug("router.replace %s", url)
        self.url = url
        self.commits.append(url)
        self._dirty = True
        if self.auto_flush:
            self.flush()

    def current_params(self) -> Params:
        return parse_query_string(self.url)

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return _unsubscribe

    def flush(self) -> None:
        """Deliver the latest committed URL to subscribers once."""
        if not self._dirty:
            return
        self._dirty = False
        for callback in list(self._subscribers):
            callback(self.url)
