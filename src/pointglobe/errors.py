# SPDX-License-Identifier: Apache-2.0
"""Exception and warning types shared across the pipeline."""

from __future__ import annotations


class PointGlobeError(Exception):
    """Base class for pipeline errors."""


class ShapeMismatchError(PointGlobeError, ValueError):
    """Raised when latitude, longitude and value arrays differ in length.

    Fatal to the current fetch attempt and never retried automatically.
    """

    def __init__(self, n_lat: int, n_lon: int, n_values: int | None = None) -> None:
        self.n_lat = n_lat
        self.n_lon = n_lon
        self.n_values = n_values
        if n_values is None:
            message = (
                "latitude and longitude arrays must have equal length "
                f"(lat={n_lat}, lon={n_lon})"
            )
        else:
            message = (
                "latitude, longitude and value arrays must have equal length "
                f"(lat={n_lat}, lon={n_lon}, values={n_values})"
            )
        super().__init__(message)


class RetrievalError(PointGlobeError, RuntimeError):
    """Raised when the array store cannot be reached, read, or parsed."""


class NotConfiguredError(PointGlobeError, RuntimeError):
    """Raised when an operation needs a data source that was never configured."""


class AllNaNDataWarning(UserWarning):
    """Issued when a data slice holds no numeric values.

    Bounds stay at their infinite sentinels; colormaps must not be applied
    until finite bounds arrive.
    """
