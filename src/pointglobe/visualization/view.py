# SPDX-License-Identifier: Apache-2.0
"""Push orchestrator output, LOD and colormap state into a scene."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

from pointglobe.pipeline.events import BUFFERS, VARINFO, EventBus
from pointglobe.pipeline.models import Bounds, VarInfo
from pointglobe.transform.projection import PointCloudBuffers
from pointglobe.transform.spacing import estimate_spacing

from .colormap import DEFAULT_CMAP, ColormapParams, colormap_lut, colormap_params
from .lod import LodSizer
from .scene import POSITION_ATTRIBUTE, VALUE_ATTRIBUTE, Scene

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class LodState:
    estimated_spacing: float = 0.0
    point_size: float = 1.0


class PointCloudView:
    """Keep a :class:`Scene` in sync with the pipeline.

    * new buffers -> ``position``/``data_value`` attributes, fresh spacing
      estimate and point size;
    * camera movement -> ``pointSize`` uniform;
    * bounds, colormap or invert changes -> ``colormap``, ``scaleFactor`` and
      ``addOffset`` uniforms.

    Bounds follow each published :class:`VarInfo` unless fixed with
    :meth:`set_bounds`. Colormap uniforms are withheld while the bounds are
    not finite (all-NaN data).
    """

    def __init__(
        self,
        scene: Scene,
        *,
        lod: LodSizer | None = None,
        colormap: str = DEFAULT_CMAP,
        invert: bool = False,
    ) -> None:
        self.scene = scene
        self.lod = lod or LodSizer.from_env()
        self._colormap = colormap
        self._lut = colormap_lut(colormap)
        self._invert = bool(invert)
        self._auto_bounds = True
        self._bounds = Bounds()
        self.lod_state = LodState()
        self.colormap_params: ColormapParams | None = None
        self._unsubscribe: list[Callable[[], None]] = []

    # -- event wiring -------------------------------------------------------

    def attach(self, events: EventBus) -> None:
        self.detach()
        self._unsubscribe = [
            events.subscribe(BUFFERS, self.on_buffers),
            events.subscribe(VARINFO, self.on_varinfo),
        ]

    def detach(self) -> None:
        for unsubscribe in self._unsubscribe:
            unsubscribe()
        self._unsubscribe = []

    def on_buffers(self, buffers: PointCloudBuffers) -> None:
        self.scene.set_attribute(POSITION_ATTRIBUTE, buffers.positions, 3)
        self.scene.set_attribute(VALUE_ATTRIBUTE, buffers.values, 1)
        spacing = estimate_spacing(buffers.positions)
        self.lod_state = LodState(estimated_spacing=spacing, point_size=self.lod_state.point_size)
        self.camera_changed()

    def on_varinfo(self, info: VarInfo) -> None:
        if self._auto_bounds:
            self._bounds = info.bounds
            self._apply_colormap()

    # -- parameter changes ----------------------------------------------------

    @property
    def bounds(self) -> Bounds:
        return self._bounds

    @property
    def colormap(self) -> str:
        return self._colormap

    @property
    def invert(self) -> bool:
        return self._invert

    def camera_changed(self, distance: float | None = None) -> float:
        """Recompute the point size for ``distance`` (default: the scene's)."""
        if distance is None:
            distance = self.scene.camera_distance()
        size = self.lod.size(distance, self.lod_state.estimated_spacing)
        self.lod_state = LodState(
            estimated_spacing=self.lod_state.estimated_spacing, point_size=size
        )
        self.scene.set_uniforms(pointSize=size)
        self.scene.redraw()
        return size

    def set_colormap(self, name: str | None = None, *, invert: bool | None = None) -> None:
        if name is not None and name != self._colormap:
            self._lut = colormap_lut(name)
            self._colormap = name
        if invert is not None:
            self._invert = bool(invert)
        self._apply_colormap()

    def set_bounds(self, low: float, high: float) -> None:
        """Fix the colormap range; published bounds no longer override it."""
        self._auto_bounds = False
        self._bounds = Bounds(low=float(low), high=float(high))
        self._apply_colormap()

    def clear_bounds(self, fallback: VarInfo | None = None) -> None:
        """Return to following published bounds."""
        self._auto_bounds = True
        if fallback is not None:
            self._bounds = fallback.bounds
        self._apply_colormap()

    def _apply_colormap(self) -> None:
        if not self._bounds.is_finite:
            LOGGER.debug("bounds %s not finite; colormap not applied", self._bounds)
            self.colormap_params = None
            return
        params = colormap_params(self._bounds.low, self._bounds.high, self._invert)
        self.colormap_params = params
        self.scene.set_uniforms(colormap=self._lut, **params.as_uniforms())
        self.scene.redraw()
