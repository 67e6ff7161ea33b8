# SPDX-License-Identifier: Apache-2.0
"""Lightweight serializers for pipeline objects (dataclasses, numpy, times).

Turns ``VarInfo`` and friends into plain containers that ``json.dumps`` can
write, without requiring consumers to import ``dataclasses`` or ``numpy``.
"""

from __future__ import annotations

from dataclasses import fields, is_dataclass
from typing import Any, Iterable

import numpy as np


def to_obj(x: Any) -> Any:
    """Convert a value to a JSON-serializable object when possible.

    - Dataclasses -> dict of converted fields
    - numpy arrays -> lists, numpy scalars -> Python scalars
    - datetime-like objects (including cftime) -> ISO strings
    - Mappings and sequences are converted recursively
    - Primitives are returned as-is
    """
    if is_dataclass(x) and not isinstance(x, type):
        return {f.name: to_obj(getattr(x, f.name)) for f in fields(x)}
    if isinstance(x, dict):
        return {str(k): to_obj(v) for k, v in x.items()}
    if isinstance(x, (list, tuple)):
        return [to_obj(v) for v in x]
    if isinstance(x, np.ndarray):
        return [to_obj(v) for v in x.tolist()]
    if isinstance(x, np.generic):
        return x.item()
    if isinstance(x, (str, int, float, bool)) or x is None:
        return x
    isoformat = getattr(x, "isoformat", None)
    if callable(isoformat):
        return isoformat()
    d = getattr(x, "__dict__", None)
    if isinstance(d, dict):
        return to_obj(d)
    return str(x)


def to_list(items: Iterable[Any]) -> list[Any]:
    """Convert an iterable of values via to_obj, returning a list."""
    return [to_obj(i) for i in items]
