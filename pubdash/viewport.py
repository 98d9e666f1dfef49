"""Pan/zoom state for the tree map."""

from dataclasses import dataclass, replace
from typing import Optional, Tuple

from .config import MAX_SCALE, MIN_SCALE, ZOOM_IN_FACTOR, ZOOM_OUT_FACTOR


def clamp_scale(scale: float) -> float:
    return min(max(MIN_SCALE, scale), MAX_SCALE)


@dataclass(frozen=True)
class Viewport:
    x: float = 0.0
    y: float = 0.0
    scale: float = 1.0
    # Pointer offset captured at drag start; None while not dragging
    drag_origin: Optional[Tuple[float, float]] = None

    @property
    def is_dragging(self) -> bool:
        return self.drag_origin is not None

    def wheel(self, delta: float) -> "Viewport":
        """Scroll down (positive delta) zooms out, scroll up zooms in."""
        factor = ZOOM_OUT_FACTOR if delta > 0 else ZOOM_IN_FACTOR
        return replace(self, scale=clamp_scale(self.scale * factor))

    def zoom_to(self, scale: float) -> "Viewport":
        return replace(self, scale=clamp_scale(scale))

    def start_drag(self, pointer_x: float, pointer_y: float) -> "Viewport":
        return replace(self, drag_origin=(pointer_x - self.x, pointer_y - self.y))

    def drag_to(self, pointer_x: float, pointer_y: float) -> "Viewport":
        if self.drag_origin is None:
            return self
        ox, oy = self.drag_origin
        return replace(self, x=pointer_x - ox, y=pointer_y - oy)

    def end_drag(self) -> "Viewport":
        return replace(self, drag_origin=None)

    def pointer(self, kind: str, pointer_x: float = 0.0, pointer_y: float = 0.0) -> "Viewport":
        """Apply one browser pointer event: ``down``, ``move`` or ``up``."""
        if kind == "down":
            return self.start_drag(pointer_x, pointer_y)
        if kind == "move":
            return self.drag_to(pointer_x, pointer_y)
        if kind == "up":
            return self.end_drag()
        raise ValueError(f"Unknown pointer event: {kind!r}")

    def pan_by(self, dx: float, dy: float) -> "Viewport":
        return replace(self, x=self.x + dx, y=self.y + dy)

    def reset(self) -> "Viewport":
        return Viewport()

    def css_transform(self) -> str:
        """CSS ``transform`` for the tree map container, origin top-left."""
        return f"translate({self.x:g}px, {self.y:g}px) scale({self.scale:g})"
