# SPDX-License-Identifier: Apache-2.0
"""Cheap point-spacing estimate used by the level-of-detail sizer."""

from __future__ import annotations

from typing import Any

import numpy as np

DEFAULT_SAMPLE_PAIRS = 10


def estimate_spacing(positions: Any, *, max_pairs: int = DEFAULT_SAMPLE_PAIRS) -> float:
    """Return the mean distance between the first consecutive point pairs.

    Samples points ``i`` and ``i + 1`` for ``i`` in ``0..min(max_pairs, N-1)``
    of a flat ``xyz`` buffer. This is a local proxy for point density and is
    only meaningful when neighbouring points in buffer order are also
    neighbours in space. Returns ``0.0`` for fewer than two points.
    """
    xyz = np.asarray(positions, dtype=np.float64).reshape(-1, 3)
    n_pairs = min(max_pairs, xyz.shape[0] - 1)
    if n_pairs < 1:
        return 0.0
    deltas = xyz[1 : n_pairs + 1] - xyz[:n_pairs]
    return float(np.linalg.norm(deltas, axis=1).mean())
