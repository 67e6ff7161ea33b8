# SPDX-License-Identifier: Apache-2.0
"""Colormap, level-of-detail and scene helpers for point-cloud rendering."""

from __future__ import annotations

from .colormap import (
    DEFAULT_CMAP,
    ColormapParams,
    available_colormaps,
    colormap_lut,
    colormap_params,
)
from .lod import LodSizer, point_size
from .scene import InMemoryScene, Scene, SceneSnapshot
from .view import LodState, PointCloudView

__all__ = [
    "DEFAULT_CMAP",
    "ColormapParams",
    "InMemoryScene",
    "LodSizer",
    "LodState",
    "PointCloudView",
    "Scene",
    "SceneSnapshot",
    "available_colormaps",
    "colormap_lut",
    "colormap_params",
    "point_size",
]
