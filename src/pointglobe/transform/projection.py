# SPDX-License-Identifier: Apache-2.0
"""Project latitude/longitude grids onto a sphere and build point buffers."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import numpy as np

from pointglobe.errors import ShapeMismatchError

BUFFER_DTYPE = np.float32


@dataclass(frozen=True, slots=True)
class PointCloudBuffers:
    """Flat, parallel buffers ready for upload as vertex attributes.

    ``positions`` holds three components per point, ``values`` one. A new
    instance is built on every load; instances are never mutated.
    """

    positions: np.ndarray
    values: np.ndarray

    def __post_init__(self) -> None:
        if self.positions.size != 3 * self.values.size:
            raise ValueError(
                f"positions must hold 3 components per value "
                f"(positions={self.positions.size}, values={self.values.size})"
            )

    @property
    def count(self) -> int:
        return int(self.values.size)

    def to_npz(self, path: str | Path) -> Path:
        """Write both buffers to a compressed ``.npz`` archive."""
        path = Path(path)
        if path.parent:
            path.parent.mkdir(parents=True, exist_ok=True)
        np.savez_compressed(path, positions=self.positions, values=self.values)
        return path


def project_lat_lon(lat: Any, lon: Any, radius: float = 1.0) -> np.ndarray:
    """Return an ``(N, 3)`` array of Cartesian coordinates on a sphere.

    ``lat`` and ``lon`` are in degrees::

        x = r cos(lat) cos(lon)
        y = r cos(lat) sin(lon)
        z = r sin(lat)
    """
    lat_rad = np.deg2rad(np.asarray(lat, dtype=np.float64).ravel())
    lon_rad = np.deg2rad(np.asarray(lon, dtype=np.float64).ravel())
    if lat_rad.size != lon_rad.size:
        raise ShapeMismatchError(lat_rad.size, lon_rad.size)
    cos_lat = np.cos(lat_rad)
    xyz = np.empty((lat_rad.size, 3), dtype=np.float64)
    xyz[:, 0] = radius * cos_lat * np.cos(lon_rad)
    xyz[:, 1] = radius * cos_lat * np.sin(lon_rad)
    xyz[:, 2] = radius * np.sin(lat_rad)
    return xyz


def build_point_cloud(
    lat: Any, lon: Any, values: Any, *, radius: float = 1.0
) -> PointCloudBuffers:
    """Build :class:`PointCloudBuffers` from parallel lat/lon/value arrays.

    Raises
    ------
    ShapeMismatchError
        When the three arrays do not share one length.
    """
    lat_arr = np.asarray(lat).ravel()
    lon_arr = np.asarray(lon).ravel()
    val_arr = np.asarray(values).ravel()
    if not (lat_arr.size == lon_arr.size == val_arr.size):
        raise ShapeMismatchError(lat_arr.size, lon_arr.size, val_arr.size)
    positions = project_lat_lon(lat_arr, lon_arr, radius=radius)
    return PointCloudBuffers(
        positions=positions.astype(BUFFER_DTYPE).ravel(),
        values=val_arr.astype(BUFFER_DTYPE, copy=True),
    )
