# SPDX-License-Identifier: Apache-2.0
"""Scene collaborator contract and a headless in-memory implementation."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Protocol, runtime_checkable

import numpy as np

POSITION_ATTRIBUTE = "position"
VALUE_ATTRIBUTE = "data_value"


@runtime_checkable
class Scene(Protocol):
    """What the pipeline needs from a 3-D scene/renderer."""

    def camera_distance(self) -> float:
        ...

    def set_attribute(self, name: str, array: np.ndarray, item_size: int) -> None:
        ...

    def set_uniforms(self, **uniforms: Any) -> None:
        ...

    def redraw(self) -> None:
        ...


@dataclass(frozen=True, slots=True)
class SceneSnapshot:
    """Consistent view of an :class:`InMemoryScene` at one instant."""

    camera_distance: float
    attributes: Mapping[str, tuple[np.ndarray, int]]
    uniforms: Mapping[str, Any]
    redraws: int


@dataclass
class InMemoryScene:
    """Scene that records attribute/uniform updates instead of drawing.

    Used for headless runs (the CLI) and tests. Attribute arrays are stored
    by reference; callers hand over freshly built buffers.
    """

    distance: float = 3.0
    attributes: dict[str, tuple[np.ndarray, int]] = field(default_factory=dict)
    uniforms: dict[str, Any] = field(default_factory=dict)
    redraws: int = 0

    def camera_distance(self) -> float:
        return self.distance

    def move_camera(self, distance: float) -> None:
        self.distance = float(distance)

    def set_attribute(self, name: str, array: np.ndarray, item_size: int) -> None:
        if item_size <= 0 or array.size % item_size:
            raise ValueError(
                f"attribute {name!r} of size {array.size} is not a multiple of {item_size}"
            )
        self.attributes[name] = (array, item_size)

    def set_uniforms(self, **uniforms: Any) -> None:
        self.uniforms.update(uniforms)

    def redraw(self) -> None:
        self.redraws += 1

    def snapshot(self) -> SceneSnapshot:
        return SceneSnapshot(
            camera_distance=self.distance,
            attributes=dict(self.attributes),
            uniforms=dict(self.uniforms),
            redraws=self.redraws,
        )
