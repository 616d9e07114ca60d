"""Change feed fan-out shared by the in-process backends."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from shopboard.core.models.enums import ChangeKind

if TYPE_CHECKING:
    from collections.abc import Callable

    from shopboard.adapters.backend.protocol import ChangeCallback, ChangeEvent, Record

log = logging.getLogger(__name__)


class LocalChangeFeed:
    """Change feed handle for one entity."""

    def __init__(
        self,
        hub: FeedHub,
        entity: str,
        predicate: Callable[[Record], bool] | None,
    ) -> None:
        self._hub = hub
        self.entity = entity
        self._predicate = predicate
        self._callbacks: list[ChangeCallback] = []
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def on_change(self, callback: ChangeCallback) -> None:
        self._callbacks.append(callback)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._callbacks.clear()
        self._hub.detach(self)

    def deliver(self, event: ChangeEvent) -> None:
        if self._closed:
            return
        subject = event.old_record if event.kind == ChangeKind.DELETE else event.record
        if self._predicate is not None and not self._predicate(subject):
            return
        for callback in list(self._callbacks):
            if self._closed:
                return
            callback(event)


class FeedHub:
    """Registry of open feeds; publishes committed writes to matching feeds."""

    def __init__(self) -> None:
        self._feeds: list[LocalChangeFeed] = []

    def __len__(self) -> int:
        return len(self._feeds)

    def open(
        self,
        entity: str,
        predicate: Callable[[Record], bool] | None = None,
    ) -> LocalChangeFeed:
        feed = LocalChangeFeed(self, entity, predicate)
        self._feeds.append(feed)
        return feed

    def detach(self, feed: LocalChangeFeed) -> None:
        self._feeds = [f for f in self._feeds if f is not feed]

    def publish(self, event: ChangeEvent) -> None:
        for feed in list(self._feeds):
            if feed.entity != event.entity:
                continue
            try:
                feed.deliver(event)
            except Exception:
                log.exception("Change feed subscriber failed", extra={"entity": event.entity})

    def close_all(self) -> None:
        for feed in list(self._feeds):
            feed.close()
