"""
Canvas <-> graph coordinate transform.

The graph origin sits at the canvas midpoint; one graph unit is
``world_scale * zoom`` pixels. Pick radii are given in screen pixels and
converted, so hit targets keep their on-screen size under zoom.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

from springnet.config import HIT_RADIUS_PX, MAX_ZOOM_PERCENT, MIN_ZOOM_PERCENT, WORLD_SCALE


@dataclass
class Viewport:
    width: float = 800.0
    height: float = 600.0
    zoom_percent: float = 100.0
    world_scale: float = WORLD_SCALE
    hit_radius_px: float = HIT_RADIUS_PX

    @property
    def zoom(self) -> float:
        return self.zoom_percent / 100.0

    @property
    def pixels_per_unit(self) -> float:
        return self.world_scale * self.zoom

    def resize(self, width: float, height: float) -> None:
        self.width = max(1.0, float(width))
        self.height = max(1.0, float(height))

    def set_zoom_percent(self, percent: float) -> None:
        self.zoom_percent = min(MAX_ZOOM_PERCENT, max(MIN_ZOOM_PERCENT, float(percent)))

    def to_graph(self, px: float, py: float) -> Tuple[float, float]:
        a = self.pixels_per_unit
        return (px - self.width / 2.0) / a, (py - self.height / 2.0) / a

    def to_canvas(self, x: float, y: float) -> Tuple[float, float]:
        a = self.pixels_per_unit
        return x * a + self.width / 2.0, y * a + self.height / 2.0

    def px(self, n: float) -> float:
        """Length of ``n`` screen pixels in graph units."""
        return n / self.pixels_per_unit

    @property
    def hit_radius(self) -> float:
        return self.px(self.hit_radius_px)
