# SPDX-License-Identifier: Apache-2.0
"""Pure transforms from geographic grids to point-cloud buffers."""

from __future__ import annotations

from .projection import PointCloudBuffers, build_point_cloud, project_lat_lon
from .spacing import DEFAULT_SAMPLE_PAIRS, estimate_spacing

__all__ = [
    "DEFAULT_SAMPLE_PAIRS",
    "PointCloudBuffers",
    "build_point_cloud",
    "estimate_spacing",
    "project_lat_lon",
]
