# SPDX-License-Identifier: Apache-2.0
"""Zarr-backed array store.

Locations are paths or URLs understood by ``zarr.open`` (local directories,
``https://`` via fsspec, ``s3://`` with the matching fsspec backend). zarr's
synchronous API runs in a worker thread so awaiting callers never block the
event loop.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Mapping

import numpy as np
import zarr

from pointglobe.connectors.base import ArraySlice, Selector, to_index
from pointglobe.errors import RetrievalError

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class ZarrArrayHandle:
    location: str
    array: Any = field(repr=False)
    shape: tuple[int, ...]
    attrs: Mapping[str, Any]


@dataclass(frozen=True)
class ZarrGroupHandle:
    location: str
    attrs: Mapping[str, Any]
    names: tuple[str, ...]


class ZarrStore:
    """:class:`~pointglobe.connectors.base.ArrayStore` over zarr-python."""

    def __init__(self, *, storage_options: dict[str, Any] | None = None) -> None:
        self._storage_options = dict(storage_options or {})

    async def open(self, location: str) -> ZarrArrayHandle | ZarrGroupHandle:
        return await asyncio.to_thread(self._open_sync, location)

    async def get(self, handle: ZarrArrayHandle, selector: Selector) -> ArraySlice:
        return await asyncio.to_thread(self._get_sync, handle, selector)

    def _open_sync(self, location: str) -> ZarrArrayHandle | ZarrGroupHandle:
        kwargs: dict[str, Any] = {}
        if self._storage_options:
            kwargs["storage_options"] = self._storage_options
        LOGGER.debug("opening %s", location)
        try:
            node = zarr.open(store=location, mode="r", **kwargs)
            attrs = dict(node.attrs)
            if isinstance(node, zarr.Array):
                return ZarrArrayHandle(
                    location=location,
                    array=node,
                    shape=tuple(int(s) for s in node.shape),
                    attrs=attrs,
                )
            names = tuple(sorted(node.array_keys()))
        except Exception as exc:
            raise RetrievalError(f"Unable to open {location}: {exc}") from exc
        return ZarrGroupHandle(location=location, attrs=attrs, names=names)

    def _get_sync(self, handle: ZarrArrayHandle, selector: Selector) -> ArraySlice:
        if not isinstance(handle, ZarrArrayHandle):
            raise RetrievalError(f"{getattr(handle, 'location', handle)} is not an array")
        try:
            index = to_index(selector, handle.shape)
            data = np.asarray(handle.array[index])
        except Exception as exc:
            raise RetrievalError(f"Unable to read {handle.location}: {exc}") from exc
        return ArraySlice(data=data, shape=tuple(data.shape))
