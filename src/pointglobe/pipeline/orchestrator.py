# SPDX-License-Identifier: Apache-2.0
"""Fetch orchestration: time axis, data slice and grid -> published point cloud.

:class:`FetchOrchestrator` is the only stateful, concurrent component of the
pipeline. It is driven by discrete events (``select`` + ``request_update``)
and stays correct under rapid repeated triggering, e.g. a user dragging a
time slider:

* every trigger bumps a generation counter;
* at most one fetch runs at a time (single flight); triggers arriving while a
  fetch is in flight return immediately;
* when a fetch completes and the generation moved on, exactly one trailing
  fetch runs with the parameters current at that moment.

The last published :class:`VarInfo` and buffers therefore always match the
most recently requested variable/time index, however many triggers arrived
in between.
"""

from __future__ import annotations

import asyncio
import logging
import time
import warnings
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Mapping, Protocol, Sequence

import numpy as np

from pointglobe.connectors.base import ArrayStore, all_of
from pointglobe.errors import (
    AllNaNDataWarning,
    NotConfiguredError,
    RetrievalError,
    ShapeMismatchError,
)
from pointglobe.transform.projection import PointCloudBuffers, build_point_cloud
from pointglobe.utils.env import env_int
from pointglobe.utils.timeutils import CFTimeDecoder

from .events import BUFFERS, FETCH_FAILED, LOADING, VARINFO, EventBus
from .models import (
    Bounds,
    DataSourceDescriptor,
    GridSource,
    TimeSeriesInfo,
    TimeSource,
    VariableSource,
    VarInfo,
)
from .notify import LoggingNotifier, Notifier, default_duration_ms

LOGGER = logging.getLogger(__name__)

LAT_NAMES = ("lat", "latitude", "clat", "nav_lat", "ylat")
LON_NAMES = ("lon", "longitude", "clon", "nav_lon", "xlon")
RADIAN_UNITS = {"radian", "radians", "rad"}
DEFAULT_GRID_CACHE_SIZE = 4


class TimeDecoder(Protocol):
    def decode(self, raw_value: Any, attrs: Mapping[str, Any]) -> Any:
        ...

    def decode_many(self, raw_values: Sequence[Any], attrs: Mapping[str, Any]) -> list[Any]:
        ...


@dataclass(frozen=True, slots=True)
class FetchRequest:
    """Parameters captured when an attempt starts."""

    descriptor: DataSourceDescriptor
    varname: str
    time_index: int
    level: int


@dataclass(frozen=True, slots=True)
class AppliedState:
    varname: str
    time_index: int
    level: int


class FetchOrchestrator:
    """Coordinate retrieval and publication of point clouds from an array store.

    Lifecycle: construct once, :meth:`configure` with a descriptor (again on
    every data-source change), trigger with :meth:`request_update`, and
    :meth:`close` once. Operations before ``configure`` raise
    :class:`~pointglobe.errors.NotConfiguredError`.

    Events published on :attr:`events`:

    ``loading``
        ``True`` when an outer :meth:`request_update` call starts and
        ``False`` exactly once when it returns.
    ``buffers``
        New :class:`PointCloudBuffers` after each successful fetch.
    ``varinfo``
        New :class:`VarInfo` after each successful fetch.
    ``fetch_failed``
        The exception that aborted an attempt.
    """

    def __init__(
        self,
        store: ArrayStore,
        *,
        events: EventBus | None = None,
        notifier: Notifier | None = None,
        time_decoder: TimeDecoder | None = None,
        radius: float = 1.0,
        grid_cache_size: int | None = None,
        notify_duration_ms: int | None = None,
    ) -> None:
        self._store = store
        self.events = events or EventBus()
        self._notifier = notifier or LoggingNotifier()
        self._decoder = time_decoder or CFTimeDecoder()
        self._radius = float(radius)
        if grid_cache_size is None:
            grid_cache_size = env_int("GRID_CACHE_SIZE", DEFAULT_GRID_CACHE_SIZE)
        self._grid_cache_size = max(0, grid_cache_size)
        self._notify_duration_ms = (
            default_duration_ms() if notify_duration_ms is None else notify_duration_ms
        )

        self._descriptor: DataSourceDescriptor | None = None
        self._varname: str | None = None
        self._time_index = 0
        self._level = 0

        self._generation = 0
        self._in_flight = False
        self._last_applied: AppliedState | None = None
        self._buffers: PointCloudBuffers | None = None
        self._varinfo: VarInfo | None = None
        self._grids: OrderedDict[
            tuple[str, str | None, str | None], tuple[np.ndarray, np.ndarray]
        ] = OrderedDict()
        self._closed = False

    # -- configuration ------------------------------------------------------

    def configure(
        self,
        descriptor: DataSourceDescriptor,
        *,
        varname: str | None = None,
        level: int = 0,
    ) -> None:
        """Install ``descriptor``, replacing any previous one wholesale.

        Keeps the current variable when the new descriptor still offers it,
        otherwise falls back to ``varname`` or the level's first variable.
        """
        if self._closed:
            raise NotConfiguredError("orchestrator is closed")
        level_source = descriptor.level(level)
        if varname is not None:
            level_source.variable(varname)
        elif self._varname in level_source.datasources:
            varname = self._varname
        else:
            varname = next(iter(level_source.datasources))
        self._descriptor = descriptor
        self._level = level
        self._varname = varname
        self._grids.clear()
        LOGGER.info(
            "configured data source %s (level %d, variable %s)",
            descriptor.name or "<unnamed>",
            level,
            varname,
        )

    @property
    def is_configured(self) -> bool:
        return self._descriptor is not None and not self._closed

    def _require_configured(self) -> DataSourceDescriptor:
        if self._closed:
            raise NotConfiguredError("orchestrator is closed")
        if self._descriptor is None:
            raise NotConfiguredError(
                "no data source configured; call configure() before fetching"
            )
        return self._descriptor

    def select(
        self,
        *,
        varname: str | None = None,
        time_index: int | None = None,
        level: int | None = None,
    ) -> None:
        """Change the requested parameters; takes effect on the next attempt."""
        descriptor = self._require_configured()
        new_level = self._level if level is None else level
        level_source = descriptor.level(new_level)
        new_varname = self._varname if varname is None else varname
        if new_varname is None:
            new_varname = next(iter(level_source.datasources))
        level_source.variable(new_varname)
        if time_index is not None:
            if time_index < 0:
                raise ValueError(f"time index must be non-negative, got {time_index}")
            self._time_index = int(time_index)
        self._level = new_level
        self._varname = new_varname

    async def update(
        self,
        *,
        varname: str | None = None,
        time_index: int | None = None,
        level: int | None = None,
    ) -> None:
        """:meth:`select` then :meth:`request_update`."""
        self.select(varname=varname, time_index=time_index, level=level)
        await self.request_update()

    # -- read-only state ----------------------------------------------------

    @property
    def descriptor(self) -> DataSourceDescriptor | None:
        return self._descriptor

    @property
    def varname(self) -> str | None:
        return self._varname

    @property
    def time_index(self) -> int:
        return self._time_index

    @property
    def level(self) -> int:
        return self._level

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    @property
    def last_applied(self) -> AppliedState | None:
        return self._last_applied

    @property
    def buffers(self) -> PointCloudBuffers | None:
        return self._buffers

    @property
    def varinfo(self) -> VarInfo | None:
        return self._varinfo

    # -- triggering -----------------------------------------------------------

    async def request_update(self) -> None:
        """Trigger a fetch of the currently selected variable and time index.

        Returns immediately when a fetch is already in flight; that fetch
        re-runs once with the newest parameters when it completes.
        """
        self._require_configured()
        self._generation += 1
        self.events.publish(LOADING, True)
        try:
            if self._in_flight:
                LOGGER.debug(
                    "fetch in flight; coalescing trigger (generation %d)",
                    self._generation,
                )
                return
            await self._run_coalesced()
        finally:
            self.events.publish(LOADING, False)

    async def _run_coalesced(self) -> None:
        while True:
            self._in_flight = True
            started = self._generation
            try:
                await self._attempt()
            finally:
                self._in_flight = False
            if started == self._generation or self._closed:
                return
            LOGGER.debug(
                "generation moved from %d to %d during fetch; refetching",
                started,
                self._generation,
            )

    async def _attempt(self) -> bool:
        descriptor = self._require_configured()
        if self._varname is None:
            raise NotConfiguredError("no variable selected; call configure() first")
        request = FetchRequest(
            descriptor=descriptor,
            varname=self._varname,
            time_index=self._time_index,
            level=self._level,
        )
        LOGGER.debug(
            "fetching %s at time index %d (level %d, generation %d)",
            request.varname,
            request.time_index,
            request.level,
            self._generation,
        )
        started_at = time.time()
        try:
            varinfo, buffers = await self._fetch(request)
        except Exception as exc:
            self._report_failure(request, exc, started_at)
            return False
        if self._closed:
            return False
        self._buffers = buffers
        self._varinfo = varinfo
        self._last_applied = AppliedState(request.varname, request.time_index, request.level)
        _log_fetch(request, "ok", started_at, points=buffers.count)
        self.events.publish(BUFFERS, buffers)
        self.events.publish(VARINFO, varinfo)
        return True

    def _report_failure(self, request: FetchRequest, exc: Exception, started_at: float) -> None:
        if isinstance(exc, ShapeMismatchError):
            message = f"Grid and data for '{request.varname}' do not match: {exc}"
        elif isinstance(exc, RetrievalError):
            message = (
                f"Could not load '{request.varname}' at time index "
                f"{request.time_index}: {exc}"
            )
        else:
            message = f"Failed to load '{request.varname}': {exc}"
        LOGGER.error("%s", message, exc_info=exc)
        _log_fetch(request, "error", started_at, error=type(exc).__name__)
        self._notifier.notify(message, self._notify_duration_ms)
        self.events.publish(FETCH_FAILED, exc)

    # -- fetch sequence -----------------------------------------------------

    async def _fetch(self, request: FetchRequest) -> tuple[VarInfo, PointCloudBuffers]:
        level = request.descriptor.level(request.level)
        try:
            source = level.variable(request.varname)
        except KeyError as exc:
            raise RetrievalError(str(exc)) from exc

        (time_attrs, raw_times), (attrs, data) = await asyncio.gather(
            self._load_time(level.time),
            self._load_slice(source, request, has_time=level.time is not None),
        )

        timeinfo = self._decode_timeinfo(time_attrs, raw_times, request.time_index)
        last_index = max(0, int(raw_times.size) - 1)

        bounds = Bounds.from_data(data)
        if bounds.is_empty:
            LOGGER.warning(
                "no numeric values in %s at time index %d",
                request.varname,
                request.time_index,
            )
            warnings.warn(
                f"data slice of {request.varname!r} holds no numeric values",
                AllNaNDataWarning,
                stacklevel=2,
            )

        lat, lon = await self._load_grid(source.grid)
        buffers = build_point_cloud(lat, lon, data, radius=self._radius)

        varinfo = VarInfo(
            varname=request.varname,
            attrs=attrs,
            timeinfo=timeinfo,
            time_range=(0, last_index),
            bounds=bounds,
            time_index=request.time_index,
            level=request.level,
        )
        return varinfo, buffers

    async def _load_time(self, source: TimeSource | None) -> tuple[dict[str, Any], np.ndarray]:
        if source is None:
            return {}, np.empty(0)
        handle = await self._store.open(source.array_path)
        result = await self._store.get(handle, all_of(len(handle.shape)))
        return dict(handle.attrs), np.asarray(result.data).ravel()

    async def _load_slice(
        self, source: VariableSource, request: FetchRequest, *, has_time: bool
    ) -> tuple[dict[str, Any], np.ndarray]:
        handle = await self._store.open(source.array_path(request.varname))
        shape = tuple(handle.shape)
        if has_time and shape:
            selector = (request.time_index, *all_of(len(shape) - 1))
        else:
            selector = all_of(len(shape))
        result = await self._store.get(handle, selector)
        return dict(handle.attrs), np.asarray(result.data).ravel()

    def _decode_timeinfo(
        self, attrs: dict[str, Any], raw_times: np.ndarray, time_index: int
    ) -> TimeSeriesInfo:
        if raw_times.size == 0:
            return TimeSeriesInfo(attrs=attrs)
        if time_index >= raw_times.size:
            raise RetrievalError(
                f"time index {time_index} out of range (last index {raw_times.size - 1})"
            )
        return TimeSeriesInfo(
            attrs=attrs,
            values=tuple(self._decoder.decode_many(raw_times, attrs)),
            current=self._decoder.decode(raw_times[time_index], attrs),
        )

    async def _load_grid(self, source: GridSource) -> tuple[np.ndarray, np.ndarray]:
        # two variables may share a group but name different coordinate arrays
        key = (source.path, source.lat, source.lon)
        cached = self._grids.get(key)
        if cached is not None:
            self._grids.move_to_end(key)
            return cached

        lat_name, lon_name = source.lat, source.lon
        if lat_name is None or lon_name is None:
            group = await self._store.open(source.path)
            names = list(getattr(group, "names", ()))
            lat_name = lat_name or _pick_name(names, LAT_NAMES, "latitude", source.path)
            lon_name = lon_name or _pick_name(names, LON_NAMES, "longitude", source.path)

        lat, lon = await asyncio.gather(
            self._load_coordinate(source.child(lat_name)),
            self._load_coordinate(source.child(lon_name)),
        )
        if self._grid_cache_size:
            self._grids[key] = (lat, lon)
            while len(self._grids) > self._grid_cache_size:
                self._grids.popitem(last=False)
        return lat, lon

    async def _load_coordinate(self, location: str) -> np.ndarray:
        handle = await self._store.open(location)
        result = await self._store.get(handle, all_of(len(handle.shape)))
        values = np.asarray(result.data, dtype=np.float64).ravel()
        units = str(handle.attrs.get("units", "")).strip().lower()
        if units in RADIAN_UNITS:
            values = np.rad2deg(values)
        return values

    # -- teardown -------------------------------------------------------------

    def close(self) -> None:
        """Drop published state and subscriptions; the instance is unusable after."""
        self._closed = True
        self._buffers = None
        self._varinfo = None
        self._grids.clear()
        self.events.clear()


def _pick_name(names: Sequence[str], candidates: Sequence[str], label: str, where: str) -> str:
    lowered = {name.lower(): name for name in names}
    for candidate in candidates:
        if candidate in lowered:
            return lowered[candidate]
    raise RetrievalError(f"Unable to identify {label} array in grid {where} (found: {list(names)})")


def _log_fetch(request: FetchRequest, status: str, started_at: float, **extra: Any) -> None:
    payload = {
        "event": "fetch",
        "status": status,
        "variable": request.varname,
        "time_index": request.time_index,
        "level": request.level,
        "duration_ms": int((time.time() - started_at) * 1000),
        **extra,
    }
    LOGGER.info("%s", payload)
