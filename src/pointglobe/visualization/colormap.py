# SPDX-License-Identifier: Apache-2.0
"""Map a value range onto shader-ready colormap parameters.

The color-mapping stage evaluates ``value * scaleFactor + addOffset`` and
looks the result up in a ``[0, 1]`` colormap texture. This module computes
those two uniforms and builds the lookup table from matplotlib colormaps.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

import matplotlib
import numpy as np

DEFAULT_CMAP = "viridis"
DEFAULT_LUT_SIZE = 256


@dataclass(frozen=True, slots=True)
class ColormapParams:
    scale_factor: float
    add_offset: float

    def apply(self, value):
        return value * self.scale_factor + self.add_offset

    def as_uniforms(self) -> dict[str, float]:
        return {"scaleFactor": self.scale_factor, "addOffset": self.add_offset}


def colormap_params(low: float, high: float, invert: bool = False) -> ColormapParams:
    """Return the affine transform mapping ``low -> 0`` and ``high -> 1``.

    With ``invert`` the mapping is mirrored (``low -> 1``, ``high -> 0``):
    the scale is negated and the offset becomes ``1 - offset``. A zero-width
    range maps every value to ``0.5``.

    Raises
    ------
    ValueError
        If either bound is not finite (e.g. the all-NaN sentinels).
    """
    if not (math.isfinite(low) and math.isfinite(high)):
        raise ValueError(f"colormap bounds must be finite (low={low}, high={high})")
    span = float(high) - float(low)
    if span == 0.0:
        scale, offset = 0.0, 0.5
    else:
        scale = 1.0 / span
        offset = -float(low) * scale
    if invert:
        return ColormapParams(scale_factor=-scale, add_offset=1.0 - offset)
    return ColormapParams(scale_factor=scale, add_offset=offset)


def available_colormaps() -> list[str]:
    """Return the names of all registered matplotlib colormaps."""
    return sorted(matplotlib.colormaps)


def colormap_lut(name: str = DEFAULT_CMAP, size: int = DEFAULT_LUT_SIZE) -> np.ndarray:
    """Return an ``(size, 4)`` RGBA ``uint8`` lookup table for ``name``."""
    try:
        cmap = matplotlib.colormaps[name]
    except KeyError as exc:
        raise ValueError(f"unknown colormap: {name}") from exc
    if size < 2:
        raise ValueError("colormap lookup table needs at least 2 entries")
    return np.asarray(cmap(np.linspace(0.0, 1.0, size), bytes=True), dtype=np.uint8)
