# SPDX-License-Identifier: Apache-2.0
"""Stream chunked geospatial arrays into camera-adaptive point clouds."""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pointglobe")
except PackageNotFoundError:  # during editable installs without metadata
    __version__ = "0.0.0"

__all__ = ["__version__"]
