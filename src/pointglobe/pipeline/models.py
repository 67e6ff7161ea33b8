# SPDX-License-Identifier: Apache-2.0
"""Data-source descriptors and the summaries published after each fetch."""

from __future__ import annotations

import json
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Sequence

import numpy as np
import yaml
from pydantic import BaseModel, ConfigDict, Field, model_validator

DEFAULT_TIME_ARRAY = "time"


class ArrayLocation(BaseModel):
    """A store (URL or path) plus a dataset path inside it."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    store: str = Field(..., min_length=1, description="Store URL or local path")
    dataset: str = Field(default="", description="Group path inside the store")

    @property
    def path(self) -> str:
        base = self.store.rstrip("/")
        inner = self.dataset.strip("/")
        return f"{base}/{inner}" if inner else base

    def child(self, name: str) -> str:
        return f"{self.path}/{name.strip('/')}"


class TimeSource(ArrayLocation):
    name: str = Field(default=DEFAULT_TIME_ARRAY, description="Time array name")

    @property
    def array_path(self) -> str:
        return self.child(self.name)


class GridSource(ArrayLocation):
    """Group holding 1-D latitude/longitude arrays (names detected if unset)."""

    lat: str | None = None
    lon: str | None = None


class VariableSource(ArrayLocation):
    grid: GridSource
    array: str | None = Field(
        default=None, description="Array name when it differs from the variable name"
    )

    def array_path(self, varname: str) -> str:
        return self.child(self.array or varname)


class LevelSource(BaseModel):
    """Every variable available at one detail level, plus its time axis."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    time: TimeSource | None = None
    datasources: dict[str, VariableSource] = Field(..., min_length=1)

    def variable(self, varname: str) -> VariableSource:
        try:
            return self.datasources[varname]
        except KeyError as exc:
            known = ", ".join(sorted(self.datasources))
            raise KeyError(f"unknown variable {varname!r} (available: {known})") from exc


class DataSourceDescriptor(BaseModel):
    """Where each variable and its grid live, grouped by detail level.

    Immutable once built; a new descriptor replaces the old one wholesale.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str | None = None
    levels: list[LevelSource] = Field(..., min_length=1)

    @model_validator(mode="before")
    @classmethod
    def _single_level_shorthand(cls, data: Any) -> Any:
        # {"time": ..., "datasources": ...} at top level means one level
        if isinstance(data, dict) and "levels" not in data and "datasources" in data:
            data = dict(data)
            level = {k: data.pop(k) for k in ("time", "datasources") if k in data}
            data["levels"] = [level]
        return data

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> DataSourceDescriptor:
        return cls.model_validate(dict(data))

    @classmethod
    def from_file(cls, path: str | Path) -> DataSourceDescriptor:
        """Load a descriptor from a JSON or YAML file."""
        path = Path(path)
        text = path.read_text(encoding="utf-8")
        if path.suffix.lower() in {".yaml", ".yml"}:
            data = yaml.safe_load(text)
        else:
            data = json.loads(text)
        if not isinstance(data, dict):
            raise ValueError(f"descriptor file must hold a mapping: {path}")
        return cls.from_mapping(data)

    def level(self, index: int) -> LevelSource:
        if not 0 <= index < len(self.levels):
            raise IndexError(
                f"level {index} out of range (descriptor has {len(self.levels)})"
            )
        return self.levels[index]

    def varnames(self, level: int = 0) -> list[str]:
        return list(self.level(level).datasources)


@dataclass(frozen=True, slots=True)
class Bounds:
    """``{low, high}`` of a data slice; ``(+inf, -inf)`` when nothing is numeric."""

    low: float = math.inf
    high: float = -math.inf

    @property
    def is_finite(self) -> bool:
        return math.isfinite(self.low) and math.isfinite(self.high)

    @property
    def is_empty(self) -> bool:
        """True for the ``(+inf, -inf)`` sentinel: no numeric values seen."""
        return self.low == math.inf and self.high == -math.inf

    @classmethod
    def from_data(cls, data: Any) -> Bounds:
        """Scan ``data`` for its extremes, ignoring NaN entries."""
        arr = np.asarray(data, dtype=np.float64).ravel()
        valid = arr[~np.isnan(arr)]
        if valid.size == 0:
            return cls()
        return cls(low=float(valid.min()), high=float(valid.max()))


@dataclass(frozen=True, slots=True)
class TimeSeriesInfo:
    attrs: Mapping[str, Any] = field(default_factory=dict)
    values: Sequence[Any] = ()
    current: Any = None


@dataclass(frozen=True, slots=True)
class VarInfo:
    """Summary of a loaded variable, published once per successful fetch."""

    varname: str
    attrs: Mapping[str, Any]
    timeinfo: TimeSeriesInfo
    time_range: tuple[int, int]
    bounds: Bounds
    time_index: int = 0
    level: int = 0
