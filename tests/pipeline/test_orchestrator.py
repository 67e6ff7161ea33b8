# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

import asyncio
import math
import warnings

import numpy as np
import pytest

from pointglobe.errors import (
    AllNaNDataWarning,
    NotConfiguredError,
    RetrievalError,
    ShapeMismatchError,
)
from pointglobe.pipeline import (
    BUFFERS,
    FETCH_FAILED,
    LOADING,
    VARINFO,
    AppliedState,
    DataSourceDescriptor,
    FetchOrchestrator,
)
from pointglobe.transform import build_point_cloud

TEMP = "mem://data/temp"


def _record(orch: FetchOrchestrator, topic: str) -> list:
    seen: list = []
    orch.events.subscribe(topic, seen.append)
    return seen


def test_single_fetch_publishes_buffers_and_varinfo(make_store, descriptor, notifier) -> None:
    store = make_store()
    orch = FetchOrchestrator(store, notifier=notifier)
    buffers_seen = _record(orch, BUFFERS)
    infos = _record(orch, VARINFO)
    orch.configure(descriptor)

    asyncio.run(orch.update(time_index=2))

    assert orch.varname == "temp"
    assert len(buffers_seen) == 1 and len(infos) == 1
    info = infos[0]
    assert info.varname == "temp"
    assert info.time_index == 2
    assert info.time_range == (0, 7)
    assert info.attrs == {"units": "K"}
    assert (info.bounds.low, info.bounds.high) == (20.0, 25.0)
    current = info.timeinfo.current
    assert (current.year, current.month, current.day, current.hour) == (2000, 1, 1, 12)
    assert len(info.timeinfo.values) == 8

    buffers = buffers_seen[0]
    assert buffers.positions.dtype == np.float32
    assert buffers.count == 6
    assert buffers.positions.size == 18
    np.testing.assert_allclose(buffers.values, np.arange(6) + 20.0)
    assert orch.last_applied == AppliedState("temp", 2, 0)
    assert store.data_reads(TEMP) == [(2, None)]
    assert notifier.messages == []


def test_rapid_triggers_coalesce_into_one_trailing_fetch(make_store, descriptor, notifier) -> None:
    store = make_store()
    store.gated.add(TEMP)
    orch = FetchOrchestrator(store, notifier=notifier)
    loading = _record(orch, LOADING)
    infos = _record(orch, VARINFO)
    orch.configure(descriptor)

    async def scenario() -> None:
        store.gate = asyncio.Event()
        first = asyncio.create_task(orch.update(time_index=0))
        while not orch.in_flight:
            await asyncio.sleep(0)
        for t in range(1, 6):
            # returns at once; the running fetch picks up the newest index
            await orch.update(time_index=t)
            assert orch.in_flight
        store.gate.set()
        await first

    asyncio.run(scenario())

    assert store.data_reads(TEMP) == [(0, None), (5, None)]
    assert [info.time_index for info in infos] == [0, 5]
    current = infos[-1].timeinfo.current
    assert (current.day, current.hour) == (2, 6)
    assert orch.last_applied == AppliedState("temp", 5, 0)
    assert not orch.in_flight
    # every short-circuited trigger still reports True then False
    assert loading == [True] + [True, False] * 5 + [False]


def test_variable_change_during_fetch_is_honoured(make_store, descriptor) -> None:
    store = make_store()
    store.gated.add(TEMP)
    orch = FetchOrchestrator(store)
    infos = _record(orch, VARINFO)
    orch.configure(descriptor)

    async def scenario() -> None:
        store.gate = asyncio.Event()
        first = asyncio.create_task(orch.update(time_index=1))
        while not orch.in_flight:
            await asyncio.sleep(0)
        await orch.update(varname="rain", time_index=3)
        store.gate.set()
        await first

    asyncio.run(scenario())

    assert [(i.varname, i.time_index) for i in infos] == [("temp", 1), ("rain", 3)]
    assert orch.last_applied == AppliedState("rain", 3, 0)


def test_failed_fetch_notifies_and_keeps_last_state(make_store, descriptor, notifier) -> None:
    store = make_store()
    orch = FetchOrchestrator(store, notifier=notifier, notify_duration_ms=1234)
    failures = _record(orch, FETCH_FAILED)
    infos = _record(orch, VARINFO)
    loading = _record(orch, LOADING)
    orch.configure(descriptor)

    asyncio.run(orch.update(time_index=0))
    applied = orch.last_applied
    published = orch.varinfo

    store.failing.add(TEMP)
    asyncio.run(orch.update(time_index=1))

    assert len(notifier.messages) == 1
    message, duration = notifier.messages[0]
    assert "temp" in message and "time index 1" in message
    assert duration == 1234
    assert isinstance(failures[0], RetrievalError)
    assert orch.last_applied == applied
    assert orch.varinfo is published
    assert not orch.in_flight
    assert len(infos) == 1
    assert loading[-1] is False

    store.failing.clear()
    asyncio.run(orch.update(time_index=2))
    assert orch.last_applied == AppliedState("temp", 2, 0)
    assert len(infos) == 2


def test_time_index_out_of_range_is_reported(make_store, descriptor, notifier) -> None:
    orch = FetchOrchestrator(make_store(n_times=3), notifier=notifier)
    failures = _record(orch, FETCH_FAILED)
    orch.configure(descriptor)

    asyncio.run(orch.update(time_index=3))

    assert isinstance(failures[0], RetrievalError)
    assert orch.last_applied is None
    assert len(notifier.messages) == 1


def test_shape_mismatch_is_reported(make_store, descriptor, notifier) -> None:
    orch = FetchOrchestrator(make_store(n_grid=5), notifier=notifier)
    failures = _record(orch, FETCH_FAILED)
    buffers_seen = _record(orch, BUFFERS)
    orch.configure(descriptor)

    asyncio.run(orch.update(time_index=0))

    assert isinstance(failures[0], ShapeMismatchError)
    assert "do not match" in notifier.messages[0][0]
    assert buffers_seen == []
    assert orch.buffers is None


def test_all_nan_slice_keeps_infinite_bounds(make_store, descriptor) -> None:
    values = np.full((2, 4), np.nan)
    orch = FetchOrchestrator(make_store(n_times=2, n_cells=4, values=values))
    infos = _record(orch, VARINFO)
    orch.configure(descriptor)

    with pytest.warns(AllNaNDataWarning):
        asyncio.run(orch.update(time_index=1))

    bounds = infos[0].bounds
    assert bounds.low == math.inf and bounds.high == -math.inf
    assert not bounds.is_finite
    assert orch.buffers is not None and orch.buffers.count == 4


def test_bounds_ignore_nan_entries(make_store, descriptor) -> None:
    values = np.array([[np.nan, 3.0, -1.0, np.nan]])
    orch = FetchOrchestrator(make_store(n_times=1, n_cells=4, values=values))
    orch.configure(descriptor)

    asyncio.run(orch.update(time_index=0))

    assert (orch.varinfo.bounds.low, orch.varinfo.bounds.high) == (-1.0, 3.0)


def test_requires_configuration() -> None:
    orch = FetchOrchestrator(store=None)  # type: ignore[arg-type]
    assert not orch.is_configured
    with pytest.raises(NotConfiguredError):
        asyncio.run(orch.request_update())
    with pytest.raises(NotConfiguredError):
        orch.select(time_index=1)


def test_configure_validates_and_keeps_variable(make_store, descriptor) -> None:
    orch = FetchOrchestrator(make_store())
    with pytest.raises(KeyError):
        orch.configure(descriptor, varname="missing")
    orch.configure(descriptor, varname="rain")
    assert orch.varname == "rain"

    orch.configure(DataSourceDescriptor.from_mapping(descriptor.model_dump()))
    assert orch.varname == "rain"

    with pytest.raises(ValueError):
        orch.select(time_index=-1)
    with pytest.raises(IndexError):
        orch.select(level=2)


def test_grid_is_fetched_once_per_configuration(make_store, descriptor) -> None:
    store = make_store()
    orch = FetchOrchestrator(store, grid_cache_size=2)
    orch.configure(descriptor)

    asyncio.run(orch.update(time_index=0))
    asyncio.run(orch.update(time_index=1))
    assert store.opened.count("mem://grid/lat") == 1

    orch.configure(descriptor)
    asyncio.run(orch.update(time_index=2))
    assert store.opened.count("mem://grid/lat") == 2


def test_grid_names_detected_and_radians_converted(make_store, descriptor) -> None:
    degrees = FetchOrchestrator(make_store())
    degrees.configure(descriptor)
    asyncio.run(degrees.update(time_index=0))

    radians = FetchOrchestrator(
        make_store(lat_name="clat", lon_name="clon", coord_units="radian")
    )
    radians.configure(descriptor)
    asyncio.run(radians.update(time_index=0))

    np.testing.assert_allclose(
        radians.buffers.positions, degrees.buffers.positions, atol=1e-6
    )


def test_level_without_time_reads_whole_array(make_store) -> None:
    store = make_store(n_times=1, n_cells=3, values=np.array([1.0, 2.0, 3.0]))
    descriptor = DataSourceDescriptor.from_mapping(
        {"datasources": {"temp": {"store": "mem://data", "grid": {"store": "mem://grid"}}}}
    )
    orch = FetchOrchestrator(store)
    orch.configure(descriptor)

    asyncio.run(orch.request_update())

    info = orch.varinfo
    assert info.time_range == (0, 0)
    assert info.timeinfo.current is None
    assert store.data_reads(TEMP) == [(None,)]


def test_close_drops_state_and_subscriptions(make_store, descriptor) -> None:
    orch = FetchOrchestrator(make_store())
    _record(orch, VARINFO)
    orch.configure(descriptor)
    asyncio.run(orch.update(time_index=0))

    orch.close()

    assert orch.buffers is None and orch.varinfo is None
    assert orch.events.listener_count(VARINFO) == 0
    with pytest.raises(NotConfiguredError):
        asyncio.run(orch.request_update())


def test_grid_cache_distinguishes_coordinate_names(make_store) -> None:
    store = make_store()
    lat2 = np.linspace(-10.0, 50.0, 6)
    lon2 = np.linspace(100.0, 200.0, 6)
    store.add_array("mem://grid/lat2", lat2, {"units": "degrees"})
    store.add_array("mem://grid/lon2", lon2, {"units": "degrees"})
    descriptor = DataSourceDescriptor.from_mapping(
        {
            "time": {"store": "mem://data"},
            "datasources": {
                "temp": {
                    "store": "mem://data",
                    "grid": {"store": "mem://grid", "lat": "lat", "lon": "lon"},
                },
                "rain": {
                    "store": "mem://data",
                    "grid": {"store": "mem://grid", "lat": "lat2", "lon": "lon2"},
                },
            },
        }
    )
    orch = FetchOrchestrator(store, grid_cache_size=4)
    orch.configure(descriptor)

    asyncio.run(orch.update(time_index=0))
    asyncio.run(orch.update(varname="rain", time_index=0))

    expected = build_point_cloud(lat2, lon2, orch.buffers.values)
    np.testing.assert_allclose(orch.buffers.positions, expected.positions, atol=1e-6)
    assert store.opened.count("mem://grid/lat2") == 1

    asyncio.run(orch.update(varname="temp", time_index=1))
    assert store.opened.count("mem://grid/lat") == 1


def test_infinite_values_are_not_reported_as_all_nan(make_store, descriptor) -> None:
    values = np.array([[1.0, np.inf, -2.0, np.nan]])
    orch = FetchOrchestrator(make_store(n_times=1, n_cells=4, values=values))
    orch.configure(descriptor)

    with warnings.catch_warnings():
        warnings.simplefilter("error", AllNaNDataWarning)
        asyncio.run(orch.update(time_index=0))

    bounds = orch.varinfo.bounds
    assert (bounds.low, bounds.high) == (-2.0, math.inf)
    assert not bounds.is_finite and not bounds.is_empty


def test_attempt_without_variable_raises_not_configured(make_store, descriptor) -> None:
    orch = FetchOrchestrator(make_store())
    orch.configure(descriptor)
    orch._varname = None

    with pytest.raises(NotConfiguredError):
        asyncio.run(orch.request_update())
    assert not orch.in_flight
