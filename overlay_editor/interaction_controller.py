from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, Optional, Tuple

from overlay_settings.normalized_layout import Layout, drag, pointer_delta, resize

_LOGGER = logging.getLogger("RunAnime.Editor")

BODY_TARGET = "body"
HANDLE_TARGET = "handle"


class GestureState(str, Enum):
    IDLE = "idle"
    DRAGGING = "dragging"
    RESIZING = "resizing"


class InteractionController:
    """Turns pointer gestures on the editing surface into clamped layout updates.

    Every move is recomputed from the snapshot taken at pointer-down, so lost or
    coalesced move events never accumulate error. The controller does not
    persist anything; results go to ``apply_layout_fn``.
    """

    def __init__(
        self,
        *,
        surface_size_fn: Callable[[], Tuple[float, float]],
        apply_layout_fn: Callable[[Layout], None],
        on_state_change: Optional[Callable[[GestureState, GestureState], None]] = None,
    ) -> None:
        self._surface_size = surface_size_fn
        self._apply_layout = apply_layout_fn
        self._on_state_change = on_state_change
        self._acquire_listener: Optional[Callable[[], None]] = None
        self._release_listener: Optional[Callable[[], None]] = None
        self._state = GestureState.IDLE
        self._origin: Optional[Tuple[float, float]] = None
        self._snapshot: Optional[Layout] = None
        self._listener_held = False

    def configure_listener_hooks(
        self,
        *,
        acquire_listener: Callable[[], None],
        release_listener: Callable[[], None],
    ) -> None:
        """Install the callbacks that grab and drop window-wide pointer tracking."""

        self._acquire_listener = acquire_listener
        self._release_listener = release_listener

    @property
    def state(self) -> GestureState:
        return self._state

    @property
    def active(self) -> bool:
        return self._state is not GestureState.IDLE

    @property
    def snapshot(self) -> Optional[Layout]:
        return self._snapshot

    def on_pointer_down(self, x: float, y: float, target: str, layout: Layout) -> bool:
        if self._state is not GestureState.IDLE:
            _LOGGER.debug("Ignoring pointer down on %s while %s", target, self._state.value)
            return False
        if target == BODY_TARGET:
            next_state = GestureState.DRAGGING
        elif target == HANDLE_TARGET:
            next_state = GestureState.RESIZING
        else:
            raise ValueError(f"unknown pointer target {target!r}")
        self._origin = (float(x), float(y))
        self._snapshot = layout
        self._set_state(next_state)
        try:
            if self._acquire_listener is not None:
                self._acquire_listener()
                self._listener_held = True
        except Exception:
            self._reset("acquire_failed")
            raise
        return True

    def on_pointer_move(self, x: float, y: float) -> Optional[Layout]:
        if self._state is GestureState.IDLE:
            return None
        layout = self._compute(x, y)
        self._apply_layout(layout)
        return layout

    def on_pointer_up(self, x: Optional[float] = None, y: Optional[float] = None) -> Optional[Layout]:
        if self._state is GestureState.IDLE:
            return None
        try:
            if x is None or y is None:
                return None
            layout = self._compute(x, y)
            self._apply_layout(layout)
            return layout
        finally:
            self._reset("pointer_up")

    def cancel(self, reason: str = "") -> None:
        """End the gesture without a final update (pointer left the window, focus lost)."""

        if self._state is GestureState.IDLE and not self._listener_held:
            return
        _LOGGER.debug("Gesture cancelled while %s (reason=%s)", self._state.value, reason or "unspecified")
        self._reset(reason or "cancel")

    def _compute(self, x: float, y: float) -> Layout:
        if self._origin is None or self._snapshot is None:
            raise RuntimeError(f"no pointer origin recorded while {self._state.value}")
        width, height = self._surface_size()
        dx, dy = pointer_delta(float(x) - self._origin[0], float(y) - self._origin[1], width, height)
        if self._state is GestureState.RESIZING:
            return resize(self._snapshot, dx, dy)
        return drag(self._snapshot, dx, dy)

    def _reset(self, reason: str) -> None:
        held = self._listener_held
        self._listener_held = False
        self._origin = None
        self._snapshot = None
        self._set_state(GestureState.IDLE)
        if held and self._release_listener is not None:
            _LOGGER.debug("Releasing pointer listener (reason=%s)", reason)
            self._release_listener()

    def _set_state(self, state: GestureState) -> None:
        previous = self._state
        self._state = state
        if previous is not state and self._on_state_change is not None:
            self._on_state_change(previous, state)
