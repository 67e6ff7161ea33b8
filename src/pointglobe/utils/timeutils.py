# SPDX-License-Identifier: Apache-2.0
"""Decode CF-style numeric time axes into display-ready values.

Time arrays in chunked stores are usually numbers with ``units`` such as
``"hours since 2000-01-01"`` and an optional ``calendar`` attribute. Decoding
uses ``cftime`` so non-standard calendars (``noleap``, ``360_day``...) work;
standard calendars come back as plain ``datetime`` objects.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Mapping, Sequence

import cftime
import numpy as np

DEFAULT_CALENDAR = "standard"


def _is_cf_units(units: object) -> bool:
    return isinstance(units, str) and " since " in units


def decode_times(raw_values: Sequence[Any] | np.ndarray, attrs: Mapping[str, Any]) -> list[Any]:
    """Decode an ordered sequence of raw time values using ``attrs``.

    Values without CF ``units`` are returned unchanged (``datetime64`` values
    are converted to timezone-aware ``datetime``).
    """
    values = np.asarray(raw_values)
    if values.size == 0:
        return []
    if np.issubdtype(values.dtype, np.datetime64):
        return [_datetime64_to_datetime(v) for v in values.ravel()]
    units = attrs.get("units")
    if not _is_cf_units(units):
        return [v.item() if isinstance(v, np.generic) else v for v in values.ravel()]
    calendar = str(attrs.get("calendar") or DEFAULT_CALENDAR)
    decoded = cftime.num2date(
        values.ravel(), units, calendar=calendar, only_use_cftime_datetimes=False
    )
    return list(np.atleast_1d(decoded))


def decode_time(raw_value: Any, attrs: Mapping[str, Any]) -> Any:
    """Decode a single raw time value; see :func:`decode_times`."""
    return decode_times([raw_value], attrs)[0]


def _datetime64_to_datetime(value: np.datetime64) -> datetime:
    # Use nanosecond precision to preserve sub-second detail when present
    ts = value.astype("datetime64[ns]").astype("int64")
    return datetime.fromtimestamp(ts / 1_000_000_000, tz=timezone.utc)


def format_display_time(value: Any) -> str:
    """Render a display-friendly label for a decoded time value."""
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.strftime("%Y-%m-%d %H:%M:%S UTC")
    strftime = getattr(value, "strftime", None)
    if callable(strftime):
        # cftime datetimes carry their own calendar
        label = strftime("%Y-%m-%d %H:%M:%S")
        calendar = getattr(value, "calendar", "")
        return f"{label} ({calendar})" if calendar else label
    return str(value)


class CFTimeDecoder:
    """Default time-decoding collaborator backed by :mod:`cftime`."""

    def decode(self, raw_value: Any, attrs: Mapping[str, Any]) -> Any:
        return decode_time(raw_value, attrs)

    def decode_many(self, raw_values: Sequence[Any] | np.ndarray, attrs: Mapping[str, Any]) -> list[Any]:
        return decode_times(raw_values, attrs)
