# SPDX-License-Identifier: Apache-2.0
"""Camera-distance based point sizing.

This is an approximate heuristic, not a proof-backed LOD scheme: the point
size grows with the estimated spacing between points and shrinks as the
camera moves away, clamped to a fixed pixel range.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from pointglobe.utils.env import env_float

DEFAULT_K = 70000.0
DEFAULT_MIN_SIZE = 0.5
DEFAULT_MAX_SIZE = 30.0


@dataclass(frozen=True, slots=True)
class LodSizer:
    """Compute ``clamp(k * spacing / distance, min_size, max_size)``."""

    k: float = DEFAULT_K
    min_size: float = DEFAULT_MIN_SIZE
    max_size: float = DEFAULT_MAX_SIZE

    def __post_init__(self) -> None:
        if self.k <= 0:
            raise ValueError("k must be positive")
        if self.min_size > self.max_size:
            raise ValueError(
                f"min_size ({self.min_size}) must not exceed max_size ({self.max_size})"
            )

    @classmethod
    def from_env(cls) -> LodSizer:
        """Build a sizer from ``POINTGLOBE_LOD_*`` overrides."""
        return cls(
            k=env_float("LOD_K", DEFAULT_K),
            min_size=env_float("LOD_MIN_SIZE", DEFAULT_MIN_SIZE),
            max_size=env_float("LOD_MAX_SIZE", DEFAULT_MAX_SIZE),
        )

    def size(self, distance: float, spacing: float) -> float:
        if math.isnan(distance):
            raise ValueError("camera distance is NaN")
        # camera at (or behind) the origin sees points at full size
        if distance <= 0:
            return self.max_size
        if not math.isfinite(spacing) or spacing <= 0:
            return self.min_size
        raw = self.k * spacing / distance
        return min(max(raw, self.min_size), self.max_size)


def point_size(
    distance: float,
    spacing: float,
    *,
    k: float = DEFAULT_K,
    min_size: float = DEFAULT_MIN_SIZE,
    max_size: float = DEFAULT_MAX_SIZE,
) -> float:
    """Functional form of :meth:`LodSizer.size`."""
    return LodSizer(k=k, min_size=min_size, max_size=max_size).size(distance, spacing)
