# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Callable

import numpy as np
import pytest

from pointglobe.connectors.base import ArraySlice, to_index
from pointglobe.errors import RetrievalError
from pointglobe.pipeline import DataSourceDescriptor

DATA = "mem://data"
GRID = "mem://grid"
TIME_UNITS = "hours since 2000-01-01 00:00:00"


@dataclass
class FakeArray:
    location: str
    data: np.ndarray
    attrs: dict[str, Any] = field(default_factory=dict)

    @property
    def shape(self) -> tuple[int, ...]:
        return tuple(self.data.shape)


@dataclass
class FakeGroup:
    location: str
    names: tuple[str, ...]
    attrs: dict[str, Any] = field(default_factory=dict)


class FakeStore:
    """In-memory array store that records every open/read.

    ``gate`` (an ``asyncio.Event``) holds variable reads until set;
    ``failing`` lists locations whose reads raise ``RetrievalError``.
    """

    def __init__(self, nodes: dict[str, FakeArray | FakeGroup]) -> None:
        self.nodes = nodes
        self.opened: list[str] = []
        self.reads: list[tuple[str, tuple[Any, ...]]] = []
        self.gate: asyncio.Event | None = None
        self.gated: set[str] = set()
        self.failing: set[str] = set()

    async def open(self, location: str) -> FakeArray | FakeGroup:
        self.opened.append(location)
        await asyncio.sleep(0)
        try:
            return self.nodes[location]
        except KeyError:
            raise RetrievalError(f"no such node: {location}") from None

    async def get(self, handle: FakeArray, selector) -> ArraySlice:
        self.reads.append((handle.location, tuple(selector)))
        if self.gate is not None and handle.location in self.gated:
            await self.gate.wait()
        await asyncio.sleep(0)
        if handle.location in self.failing:
            raise RetrievalError(f"read of {handle.location} failed")
        try:
            data = np.asarray(handle.data[to_index(selector, handle.shape)])
        except IndexError as exc:
            raise RetrievalError(str(exc)) from exc
        return ArraySlice(data=data, shape=tuple(data.shape))

    def add_array(self, location: str, data: Any, attrs: dict[str, Any] | None = None) -> None:
        self.nodes[location] = FakeArray(location, np.asarray(data), dict(attrs or {}))

    def data_reads(self, location: str) -> list[tuple[Any, ...]]:
        return [sel for loc, sel in self.reads if loc == location]


class RecordingNotifier:
    def __init__(self) -> None:
        self.messages: list[tuple[str, int]] = []

    def notify(self, message: str, duration_ms: int) -> None:
        self.messages.append((message, duration_ms))


def build_nodes(
    n_times: int = 8,
    n_cells: int = 6,
    *,
    values: np.ndarray | None = None,
    lat_name: str = "lat",
    lon_name: str = "lon",
    coord_units: str = "degrees",
    n_grid: int | None = None,
) -> dict[str, FakeArray | FakeGroup]:
    if values is None:
        values = np.arange(n_times, dtype=np.float64)[:, None] * 10.0 + np.arange(n_cells)
    n_grid = n_cells if n_grid is None else n_grid
    lat = np.linspace(-60.0, 60.0, n_grid)
    lon = np.linspace(0.0, 300.0, n_grid)
    if coord_units.startswith("rad"):
        lat, lon = np.deg2rad(lat), np.deg2rad(lon)
    nodes: dict[str, FakeArray | FakeGroup] = {
        f"{DATA}/time": FakeArray(
            f"{DATA}/time",
            np.arange(n_times, dtype=np.float64) * 6.0,
            {"units": TIME_UNITS, "calendar": "standard"},
        ),
        f"{DATA}/temp": FakeArray(f"{DATA}/temp", values, {"units": "K"}),
        f"{DATA}/rain": FakeArray(f"{DATA}/rain", values * 0.5, {"units": "mm"}),
        GRID: FakeGroup(GRID, (lat_name, lon_name)),
        f"{GRID}/{lat_name}": FakeArray(f"{GRID}/{lat_name}", lat, {"units": coord_units}),
        f"{GRID}/{lon_name}": FakeArray(f"{GRID}/{lon_name}", lon, {"units": coord_units}),
    }
    return nodes


def descriptor_mapping() -> dict[str, Any]:
    grid = {"store": GRID}
    return {
        "name": "fake",
        "time": {"store": DATA, "name": "time"},
        "datasources": {
            "temp": {"store": DATA, "grid": grid},
            "rain": {"store": DATA, "grid": grid},
        },
    }


@pytest.fixture
def make_store() -> Callable[..., FakeStore]:
    def _make(**kwargs: Any) -> FakeStore:
        return FakeStore(build_nodes(**kwargs))

    return _make


@pytest.fixture
def descriptor() -> DataSourceDescriptor:
    return DataSourceDescriptor.from_mapping(descriptor_mapping())


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()
