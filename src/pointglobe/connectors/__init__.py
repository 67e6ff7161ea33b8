# SPDX-License-Identifier: Apache-2.0
"""Array-store connectors."""

from __future__ import annotations

from .base import (
    ArrayHandle,
    ArraySlice,
    ArrayStore,
    GroupHandle,
    Selector,
    all_of,
    to_index,
)

__all__ = [
    "ArrayHandle",
    "ArraySlice",
    "ArrayStore",
    "GroupHandle",
    "Selector",
    "all_of",
    "to_index",
]
