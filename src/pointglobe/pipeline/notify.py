# SPDX-License-Identifier: Apache-2.0
"""User-visible notification collaborator."""

from __future__ import annotations

import logging
from typing import Protocol, runtime_checkable

from pointglobe.utils.env import env_int

LOGGER = logging.getLogger(__name__)

DEFAULT_DURATION_MS = 5000


def default_duration_ms() -> int:
    return max(0, env_int("NOTIFY_DURATION_MS", DEFAULT_DURATION_MS))


@runtime_checkable
class Notifier(Protocol):
    def notify(self, message: str, duration_ms: int) -> None:
        ...


class LoggingNotifier:
    """Fallback notifier for headless use: writes notifications to the log."""

    def notify(self, message: str, duration_ms: int) -> None:
        LOGGER.warning("%s (shown for %d ms)", message, duration_ms)
