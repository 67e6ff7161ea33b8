# SPDX-License-Identifier: Apache-2.0
"""Chunked-array store protocols.

The pipeline only needs two awaitable operations from a store: ``open`` a
location (yielding an array or a group handle) and ``get`` a slice of an
array. Selectors hold one entry per dimension: an ``int`` picks a fixed
index, ``None`` keeps the whole axis.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Protocol, Sequence, Union, runtime_checkable

import numpy as np

Selector = Sequence[Union[int, None]]


@dataclass(frozen=True, slots=True)
class ArraySlice:
    data: np.ndarray
    shape: tuple[int, ...]


@runtime_checkable
class ArrayHandle(Protocol):
    @property
    def shape(self) -> tuple[int, ...]:
        ...

    @property
    def attrs(self) -> Mapping[str, Any]:
        ...


@runtime_checkable
class GroupHandle(Protocol):
    @property
    def attrs(self) -> Mapping[str, Any]:
        ...

    @property
    def names(self) -> Sequence[str]:
        """Names of the arrays directly inside the group."""
        ...


@runtime_checkable
class ArrayStore(Protocol):
    async def open(self, location: str) -> ArrayHandle | GroupHandle:
        ...

    async def get(self, handle: ArrayHandle, selector: Selector) -> ArraySlice:
        ...


def all_of(ndim: int) -> tuple[None, ...]:
    """Selector keeping every axis of an ``ndim`` array."""
    return (None,) * ndim


def to_index(selector: Selector, shape: Sequence[int]) -> tuple[int | slice, ...]:
    """Translate a selector into a numpy/zarr index tuple.

    Raises ``IndexError`` when the selector rank or a fixed index does not
    fit ``shape``.
    """
    if len(selector) != len(shape):
        raise IndexError(
            f"selector has {len(selector)} entries for an array of rank {len(shape)}"
        )
    index: list[int | slice] = []
    for axis, (item, size) in enumerate(zip(selector, shape)):
        if item is None:
            index.append(slice(None))
            continue
        if not -size <= item < size:
            raise IndexError(f"index {item} out of range for axis {axis} of size {size}")
        index.append(int(item))
    return tuple(index)
