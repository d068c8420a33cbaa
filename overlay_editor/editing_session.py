"""Transient per-profile edit buffer; nothing reaches the store until :meth:`EditingSession.commit`."""
from __future__ import annotations

import logging
import time
from dataclasses import replace
from typing import Callable, Iterable, Optional, Tuple

from overlay_editor.interaction_controller import InteractionController
from overlay_settings import frame_grid
from overlay_settings.config_store import ConfigStore
from overlay_settings.defaults import new_state
from overlay_settings.model import CharacterProfile, Monitor, OverlaySettings, State
from overlay_settings.normalized_layout import Layout, PixelBox, clamp, layout_to_pixels, resolve_state_layout

_LOGGER = logging.getLogger("RunAnime.Editor")


class EditingSession:
    def __init__(
        self,
        store: ConfigStore,
        profile: CharacterProfile,
        *,
        time_source: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._profile = profile.copy()
        self._time = time_source
        self._active_state_id: Optional[str] = profile.states[0].id if profile.states else None
        self._dirty = False

    @classmethod
    def for_profile(cls, store: ConfigStore, profile_id: str) -> "EditingSession":
        profile = store.profile_by_id(profile_id)
        if profile is None:
            raise KeyError(profile_id)
        return cls(store, profile)

    @property
    def profile(self) -> CharacterProfile:
        return self._profile

    @property
    def dirty(self) -> bool:
        return self._dirty

    @property
    def active_state_id(self) -> Optional[str]:
        return self._active_state_id

    @property
    def active_state(self) -> Optional[State]:
        return self._profile.state_by_id(self._active_state_id)

    @property
    def monitor(self) -> Optional[Monitor]:
        """Target monitor, or the first monitor when the target is unknown."""

        monitor = self._store.monitor_by_id(self._profile.monitor_id)
        if monitor is not None:
            return monitor
        monitors = self._store.monitors
        return monitors[0] if monitors else None

    # States -------------------------------------------------------------------

    def select_state(self, state_id: str) -> State:
        state = self._require_state(state_id)
        self._active_state_id = state.id
        return state

    def add_state(self, name: str) -> State:
        existing = {state.id for state in self._profile.states}
        state_id = f"state-{int(self._time() * 1000)}"
        suffix = 2
        candidate = state_id
        while candidate in existing:
            candidate = f"{state_id}-{suffix}"
            suffix += 1
        state = new_state(candidate, name)
        self._profile.states.append(state)
        self._active_state_id = state.id
        self._mark_dirty()
        return state

    def remove_state(self, state_id: str) -> None:
        self._require_state(state_id)
        if len(self._profile.states) <= 1:
            raise ValueError("a profile needs at least one state")
        self._profile.states = [state for state in self._profile.states if state.id != state_id]
        if self._active_state_id == state_id:
            self._active_state_id = self._profile.states[0].id
        self._mark_dirty()

    def rename_state(self, state_id: str, name: str) -> State:
        return self._update_state(state_id, lambda state: replace(state, name=name))

    def set_chats(self, state_id: str, chats: Iterable[str]) -> State:
        lines = [line for line in chats if line]
        return self._update_state(state_id, lambda state: replace(state, chats=lines))

    # Layout -------------------------------------------------------------------

    def active_layout(self) -> Layout:
        return resolve_state_layout(self._profile, self.active_state)

    def pixel_layout(self) -> Optional[PixelBox]:
        monitor = self.monitor
        if monitor is None:
            return None
        return layout_to_pixels(self.active_layout(), monitor)

    def set_layout(self, layout: Layout) -> Layout:
        """Clamp and store the box on the active state (or the profile when it has no states)."""

        clamped = clamp(layout.x, layout.y, layout.width, layout.height)
        state = self.active_state
        if state is None:
            self._profile = replace(
                self._profile,
                x=clamped.x,
                y=clamped.y,
                width=clamped.width,
                height=clamped.height,
            )
            self._mark_dirty()
            return clamped
        self._update_state(
            state.id,
            lambda current: replace(
                current,
                x=clamped.x,
                y=clamped.y,
                width=clamped.width,
                height=clamped.height,
            ),
        )
        return clamped

    def set_position(self, x: object, y: object) -> Layout:
        current = self.active_layout()
        return self.set_layout(clamp(x, y, current.width, current.height))

    def set_size(self, width: object, height: object) -> Layout:
        current = self.active_layout()
        return self.set_layout(clamp(current.x, current.y, width, height))

    def set_monitor(self, monitor_id: str) -> None:
        if self._store.monitor_by_id(monitor_id) is None:
            raise KeyError(monitor_id)
        if self._profile.monitor_id == monitor_id:
            return
        # Normalized coordinates carry over unchanged; only the pixel projection moves.
        self._profile = replace(self._profile, monitor_id=monitor_id)
        self._mark_dirty()

    def interaction(
        self,
        surface_size_fn: Callable[[], Tuple[float, float]],
    ) -> InteractionController:
        return InteractionController(surface_size_fn=surface_size_fn, apply_layout_fn=self.set_layout)

    # Frames -------------------------------------------------------------------

    def set_grid(self, rows: int, cols: int) -> State:
        return self._update_active(lambda state: frame_grid.resize_grid(state, rows, cols))

    def set_frame_duration(self, index: int, duration_ms: int) -> State:
        return self._update_active(lambda state: frame_grid.set_frame_duration(state, index, duration_ms))

    def set_default_duration(self, duration_ms: int) -> State:
        return self._update_active(lambda state: frame_grid.set_default_duration(state, duration_ms))

    def attach_sprite(self, reference: str, mime_type: Optional[str] = None) -> State:
        return self._update_active(lambda state: frame_grid.attach_sprite(state, reference, mime_type))

    def set_disposal_method(self, method: int) -> State:
        return self._update_active(lambda state: frame_grid.apply_disposal_method(state, method))

    # Commit -------------------------------------------------------------------

    async def commit(self) -> OverlaySettings:
        """Save the buffered profile; on failure the buffer is kept for another attempt."""

        result = await self._store.save_profile(self._profile.copy())
        committed = self._store.profile_by_id(self._profile.id)
        if committed is not None:
            self._profile = committed.copy()
            if self._profile.state_by_id(self._active_state_id) is None:
                self._active_state_id = self._profile.states[0].id if self._profile.states else None
        self._dirty = False
        _LOGGER.debug("Committed profile %s", self._profile.id)
        return result

    # Internals ----------------------------------------------------------------

    def _require_state(self, state_id: Optional[str]) -> State:
        state = self._profile.state_by_id(state_id)
        if state is None:
            raise KeyError(state_id)
        return state

    def _update_state(self, state_id: str, change: Callable[[State], State]) -> State:
        result = change(self._require_state(state_id))
        self._profile.states = [result if state.id == state_id else state for state in self._profile.states]
        self._mark_dirty()
        return result

    def _update_active(self, change: Callable[[State], State]) -> State:
        if self._active_state_id is None:
            raise LookupError("profile has no states to edit")
        return self._update_state(self._active_state_id, change)

    def _mark_dirty(self) -> None:
        self._dirty = True
