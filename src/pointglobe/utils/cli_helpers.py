# SPDX-License-Identifier: Apache-2.0
"""Logging setup shared by CLI entry points."""

from __future__ import annotations

import logging

from .env import env

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "quiet": logging.ERROR,
}


def configure_logging_from_env(default: str = "info") -> int:
    """Configure root logging from ``POINTGLOBE_VERBOSITY``.

    Accepts ``debug``, ``info`` or ``quiet``; unknown values fall back to
    ``default``. Returns the applied level.
    """
    verbosity = (env("VERBOSITY") or default).lower()
    level = _LEVELS.get(verbosity, _LEVELS.get(default, logging.INFO))
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
        force=True,
    )
    # zarr's fsspec/aiohttp stack is chatty at DEBUG
    for noisy in ("fsspec", "aiohttp", "asyncio"):
        logging.getLogger(noisy).setLevel(max(level, logging.WARNING))
    return level
