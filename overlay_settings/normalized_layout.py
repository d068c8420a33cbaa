"""Monitor-relative 0-1000 layout model and its clamping rules.

Positions and sizes are stored per-mille of the target monitor so a profile keeps
its placement when the monitor resolution changes. Device pixels are derived for
display only and never written back.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional, Tuple

if TYPE_CHECKING:
    from overlay_settings.model import CharacterProfile, Monitor, State

SCALE = 1000
MIN_SIZE = 20

PixelBox = Tuple[int, int, int, int]


@dataclass(frozen=True)
class Layout:
    x: int
    y: int
    width: int
    height: int

    def as_tuple(self) -> Tuple[int, int, int, int]:
        return (self.x, self.y, self.width, self.height)


def round_half_up(value: object) -> int:
    """Round like the editor surface does (0.5 goes up); junk input becomes 0."""

    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return 0
    if not math.isfinite(number):
        return 0
    return int(math.floor(number + 0.5))


def _bound(value: int, low: int, high: int) -> int:
    if value < low:
        return low
    if value > high:
        return high
    return value


def clamp_size(value: object) -> int:
    return _bound(round_half_up(value), MIN_SIZE, SCALE)


def clamp(x: object, y: object, width: object, height: object) -> Layout:
    """Return the nearest valid layout; size is bounded first, then position."""

    w = clamp_size(width)
    h = clamp_size(height)
    nx = _bound(round_half_up(x), 0, SCALE - w)
    ny = _bound(round_half_up(y), 0, SCALE - h)
    return Layout(nx, ny, w, h)


def clamp_layout(layout: Layout) -> Layout:
    return clamp(layout.x, layout.y, layout.width, layout.height)


def is_valid(layout: Layout) -> bool:
    return clamp_layout(layout) == layout


def to_pixels(normalized: float, monitor_dimension: float) -> int:
    if not monitor_dimension:
        return 0
    return round_half_up(normalized / SCALE * monitor_dimension)


def layout_to_pixels(layout: Layout, monitor: "Monitor") -> PixelBox:
    return (
        to_pixels(layout.x, monitor.width),
        to_pixels(layout.y, monitor.height),
        to_pixels(layout.width, monitor.width),
        to_pixels(layout.height, monitor.height),
    )


def pointer_delta(
    dx_px: float,
    dy_px: float,
    surface_width: float,
    surface_height: float,
) -> Tuple[float, float]:
    """Scale a raw pointer movement on the editing surface into layout units."""

    dx = (dx_px / surface_width) * SCALE if surface_width > 0 else 0.0
    dy = (dy_px / surface_height) * SCALE if surface_height > 0 else 0.0
    return dx, dy


def drag(snapshot: Layout, dx: float, dy: float) -> Layout:
    """Move the box; the size from the gesture snapshot is kept."""

    return clamp(snapshot.x + dx, snapshot.y + dy, snapshot.width, snapshot.height)


def resize(snapshot: Layout, dx: float, dy: float) -> Layout:
    """Grow or shrink from the bottom-right corner; the origin is kept."""

    width = _bound(round_half_up(snapshot.width + dx), MIN_SIZE, SCALE - snapshot.x)
    height = _bound(round_half_up(snapshot.height + dy), MIN_SIZE, SCALE - snapshot.y)
    return clamp(snapshot.x, snapshot.y, width, height)


def _pick(override: Optional[int], fallback: int) -> int:
    return fallback if override is None else override


def resolve_state_layout(profile: "CharacterProfile", state: Optional["State"]) -> Layout:
    """Effective box for a state: each unset override field falls back to the profile."""

    if state is None:
        return clamp(profile.x, profile.y, profile.width, profile.height)
    return clamp(
        _pick(state.x, profile.x),
        _pick(state.y, profile.y),
        _pick(state.width, profile.width),
        _pick(state.height, profile.height),
    )
