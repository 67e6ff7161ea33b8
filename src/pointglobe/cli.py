# SPDX-License-Identifier: Apache-2.0
"""Command-line entry point: ``pointglobe fetch`` and ``pointglobe colormaps``."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any

from pointglobe.connectors.backends.zarr_store import ZarrStore
from pointglobe.errors import PointGlobeError
from pointglobe.pipeline import FETCH_FAILED, DataSourceDescriptor, FetchOrchestrator
from pointglobe.utils.cli_helpers import configure_logging_from_env
from pointglobe.utils.serialize import to_obj
from pointglobe.visualization import (
    DEFAULT_CMAP,
    InMemoryScene,
    PointCloudView,
    available_colormaps,
)

LOGGER = logging.getLogger(__name__)


def _apply_verbosity(ns: argparse.Namespace) -> None:
    if getattr(ns, "verbose", False):
        os.environ["POINTGLOBE_VERBOSITY"] = "debug"
    elif getattr(ns, "quiet", False):
        os.environ["POINTGLOBE_VERBOSITY"] = "quiet"
    configure_logging_from_env()


async def _fetch_once(ns: argparse.Namespace) -> dict[str, Any] | None:
    descriptor = DataSourceDescriptor.from_file(ns.descriptor)
    orchestrator = FetchOrchestrator(ZarrStore())
    scene = InMemoryScene(distance=ns.camera_distance)
    view = PointCloudView(scene, colormap=ns.colormap, invert=ns.invert)
    view.attach(orchestrator.events)
    failures: list[BaseException] = []
    orchestrator.events.subscribe(FETCH_FAILED, failures.append)
    try:
        orchestrator.configure(descriptor, varname=ns.variable, level=ns.level)
        await orchestrator.update(time_index=ns.time_index)
        varinfo, buffers = orchestrator.varinfo, orchestrator.buffers
        if varinfo is None or buffers is None or failures:
            return None
        if ns.output:
            out = Path(ns.output)
            buffers.to_npz(out)
            LOGGER.info("wrote %d points to %s", buffers.count, out)
        snapshot = scene.snapshot()
        return {
            "varinfo": to_obj(varinfo),
            "points": buffers.count,
            "lod": to_obj(view.lod_state),
            "scene": {
                "camera_distance": snapshot.camera_distance,
                "attributes": sorted(snapshot.attributes),
                "uniforms": sorted(snapshot.uniforms),
                "redraws": snapshot.redraws,
            },
            "colormap": {
                "name": view.colormap,
                "invert": view.invert,
                "params": to_obj(view.colormap_params),
            },
        }
    finally:
        orchestrator.close()


def _cmd_fetch(ns: argparse.Namespace) -> int:
    """CLI: fetch one variable/time slice and print its summary as JSON."""
    _apply_verbosity(ns)
    try:
        summary = asyncio.run(_fetch_once(ns))
    except (PointGlobeError, KeyError, IndexError, ValueError, OSError) as exc:
        LOGGER.error("fetch failed: %s", exc)
        return 2
    if summary is None:
        return 1
    sys.stdout.write(json.dumps(summary, indent=2) + "\n")
    return 0


def _cmd_colormaps(ns: argparse.Namespace) -> int:
    """CLI: list colormap names usable with --colormap."""
    _apply_verbosity(ns)
    for name in available_colormaps():
        sys.stdout.write(name + "\n")
    return 0


def _add_logging_flags(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--verbose", action="store_true", help="Verbose logging for this command"
    )
    parser.add_argument(
        "--quiet", action="store_true", help="Quiet logging for this command"
    )


def register_cli(subparsers: Any) -> None:
    """Register ``fetch`` and ``colormaps`` subcommands."""

    p = subparsers.add_parser(
        "fetch",
        help="Fetch a variable slice and summarize it as JSON",
        description=(
            "Load one time slice of a variable described by a JSON/YAML data-source "
            "descriptor, project it onto the sphere and print its VarInfo, point "
            "size and colormap parameters."
        ),
    )
    p.add_argument("descriptor", help="Path to a JSON or YAML data-source descriptor")
    p.add_argument("--variable", help="Variable name (default: first in the level)")
    p.add_argument(
        "--time-index", type=int, default=0, help="Time index to load (default: 0)"
    )
    p.add_argument("--level", type=int, default=0, help="Detail level (default: 0)")
    p.add_argument(
        "--camera-distance",
        type=float,
        default=3.0,
        help="Camera distance from the globe centre used for point sizing",
    )
    p.add_argument(
        "--colormap", default=DEFAULT_CMAP, help=f"Colormap name (default: {DEFAULT_CMAP})"
    )
    p.add_argument("--invert", action="store_true", help="Invert the colormap")
    p.add_argument("-o", "--output", help="Write position/value buffers to an .npz file")
    _add_logging_flags(p)
    p.set_defaults(func=_cmd_fetch)

    p_cm = subparsers.add_parser("colormaps", help="List available colormap names")
    _add_logging_flags(p_cm)
    p_cm.set_defaults(func=_cmd_colormaps)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="pointglobe",
        description="Fetch gridded variables from chunked array stores as globe point clouds.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)
    register_cli(subparsers)
    ns = parser.parse_args(argv)
    return int(ns.func(ns))


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
