# SPDX-License-Identifier: Apache-2.0
"""Environment lookups under the ``POINTGLOBE_`` prefix."""

from __future__ import annotations

import os

PREFIX = "POINTGLOBE_"


def env(name: str, default: str | None = None) -> str | None:
    """Return ``POINTGLOBE_<name>`` or ``default`` when unset or blank."""
    value = os.environ.get(PREFIX + name)
    if value is None or not value.strip():
        return default
    return value.strip()


def env_int(name: str, default: int) -> int:
    value = env(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def env_float(name: str, default: float) -> float:
    value = env(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default
