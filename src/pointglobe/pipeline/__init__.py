# SPDX-License-Identifier: Apache-2.0
"""Stateful fetch orchestration and the models it publishes."""

from __future__ import annotations

from .events import BUFFERS, FETCH_FAILED, LOADING, VARINFO, EventBus
from .models import (
    ArrayLocation,
    Bounds,
    DataSourceDescriptor,
    GridSource,
    LevelSource,
    TimeSeriesInfo,
    TimeSource,
    VariableSource,
    VarInfo,
)
from .notify import LoggingNotifier, Notifier
from .orchestrator import AppliedState, FetchOrchestrator

__all__ = [
    "BUFFERS",
    "FETCH_FAILED",
    "LOADING",
    "VARINFO",
    "AppliedState",
    "ArrayLocation",
    "Bounds",
    "DataSourceDescriptor",
    "EventBus",
    "FetchOrchestrator",
    "GridSource",
    "LevelSource",
    "LoggingNotifier",
    "Notifier",
    "TimeSeriesInfo",
    "TimeSource",
    "VarInfo",
    "VariableSource",
]
