# SPDX-License-Identifier: Apache-2.0
"""In-process publish/subscribe used between the orchestrator and its consumers."""

from __future__ import annotations

import logging
from typing import Any, Callable

LOGGER = logging.getLogger(__name__)

VARINFO = "varinfo"
BUFFERS = "buffers"
LOADING = "loading"
FETCH_FAILED = "fetch_failed"

Listener = Callable[[Any], None]


class EventBus:
    """Synchronous topic -> listeners dispatch.

    Listeners run in subscription order on the publishing task. A failing
    listener is logged and does not stop delivery to the others.
    """

    def __init__(self) -> None:
        self._subscribers: dict[str, list[Listener]] = {}

    def subscribe(self, topic: str, listener: Listener) -> Callable[[], None]:
        """Register ``listener`` for ``topic``; returns an unsubscribe callable."""
        self._subscribers.setdefault(topic, []).append(listener)
        return lambda: self.unsubscribe(topic, listener)

    def unsubscribe(self, topic: str, listener: Listener) -> None:
        lst = self._subscribers.get(topic)
        if not lst:
            return
        try:
            lst.remove(listener)
        except ValueError:
            pass
        if not lst:
            self._subscribers.pop(topic, None)

    def publish(self, topic: str, payload: Any = None) -> None:
        for listener in list(self._subscribers.get(topic, ())):
            try:
                listener(payload)
            except Exception:
                LOGGER.exception("listener for %r failed", topic)

    def clear(self) -> None:
        self._subscribers.clear()

    def listener_count(self, topic: str) -> int:
        return len(self._subscribers.get(topic, ()))
