"""Canonical in-memory configuration and its load/save lifecycle."""
from __future__ import annotations

import logging
import time
from dataclasses import replace
from typing import Any, Callable, Iterable, List, Mapping, Optional, Sequence

from overlay_settings.collaborators import DisplayService, ImageDecoder, SettingsService
from overlay_settings.defaults import DEFAULT_STATE_NAMES, default_settings, fill_missing, new_profile
from overlay_settings.display_reconciler import reconcile_settings
from overlay_settings.errors import (
    DisplayEnumerationError,
    ImageDecodeError,
    PersistenceLoadFailed,
    PersistenceSaveFailed,
    SettingsServiceError,
)
from overlay_settings.frame_grid import apply_decoded_frame_count, heal_frame_durations, needs_frame_count
from overlay_settings.model import (
    DEFAULT_MONITOR_HEIGHT,
    DEFAULT_MONITOR_WIDTH,
    CharacterProfile,
    Display,
    Monitor,
    OverlaySettings,
    State,
    replace_profile,
)
from overlay_settings.normalized_layout import clamp, resolve_state_layout

_LOGGER = logging.getLogger("RunAnime.Settings.Store")


def _normalize_state(profile: CharacterProfile, state: State) -> State:
    state = heal_frame_durations(state)
    if not state.has_layout_override:
        return state
    effective = resolve_state_layout(profile, state)
    # Only fields the state actually overrides are written back.
    return replace(
        state,
        x=effective.x if state.x is not None else None,
        y=effective.y if state.y is not None else None,
        width=effective.width if state.width is not None else None,
        height=effective.height if state.height is not None else None,
    )


def normalize_profile(profile: CharacterProfile) -> CharacterProfile:
    layout = clamp(profile.x, profile.y, profile.width, profile.height)
    clamped = replace(profile, x=layout.x, y=layout.y, width=layout.width, height=layout.height, states=[])
    clamped.states = [_normalize_state(clamped, state.copy()) for state in profile.states]
    return clamped


def normalize_settings(settings: OverlaySettings) -> OverlaySettings:
    """Clamp every stored layout and size every frame-duration array to its grid."""

    return OverlaySettings(
        monitors=[replace(monitor) for monitor in settings.monitors],
        profiles=[normalize_profile(profile) for profile in settings.profiles],
        language=settings.language,
        dark_mode=settings.dark_mode,
    )


class ConfigStore:
    """Owns the committed configuration; every change goes through :meth:`save`.

    Runs on a single event loop. Overlapping saves are not ordered: whichever
    response arrives last becomes the committed state.
    """

    def __init__(
        self,
        settings_service: SettingsService,
        display_service: DisplayService,
        *,
        image_decoder: Optional[ImageDecoder] = None,
        time_source: Callable[[], float] = time.time,
    ) -> None:
        self._settings_service = settings_service
        self._display_service = display_service
        self._image_decoder = image_decoder
        self._time = time_source
        self._settings: OverlaySettings = normalize_settings(default_settings())
        self._displays: List[Display] = []
        self._loaded = False
        self.last_error: Optional[str] = None

    # Read access --------------------------------------------------------------

    @property
    def settings(self) -> OverlaySettings:
        return self._settings

    @property
    def monitors(self) -> List[Monitor]:
        return list(self._settings.monitors)

    @property
    def profiles(self) -> List[CharacterProfile]:
        return list(self._settings.profiles)

    @property
    def displays(self) -> List[Display]:
        return list(self._displays)

    @property
    def loaded(self) -> bool:
        return self._loaded

    def monitor_by_id(self, monitor_id: Optional[str]) -> Optional[Monitor]:
        for monitor in self._settings.monitors:
            if monitor.id == monitor_id:
                return monitor
        return None

    def profile_by_id(self, profile_id: Optional[str]) -> Optional[CharacterProfile]:
        for profile in self._settings.profiles:
            if profile.id == profile_id:
                return profile
        return None

    def is_connected(self, monitor_id: str) -> bool:
        return any(display.id == monitor_id for display in self._displays)

    # Lifecycle ----------------------------------------------------------------

    async def load(self) -> OverlaySettings:
        """Fetch, reconcile against the live displays and replace the committed state.

        On a persistence failure the built-in defaults are installed and
        :class:`PersistenceLoadFailed` is raised; there is no retry.
        """

        failure: Optional[SettingsServiceError] = None
        try:
            payload = await self._settings_service.fetch()
        except SettingsServiceError as exc:
            failure = exc
            payload = None
        displays = await self._list_displays()

        if failure is not None:
            _LOGGER.warning("Settings load failed; using built-in defaults: %s", failure)
            self._install(self._prepare(default_settings(), displays), displays)
            self.last_error = str(failure)
            raise PersistenceLoadFailed(str(failure)) from failure

        document = fill_missing(OverlaySettings.from_payload(payload or {}))
        prepared = self._prepare(document, displays)
        self._install(prepared, displays)
        self.last_error = None
        _LOGGER.debug(
            "Settings loaded: monitors=%d profiles=%d displays=%d",
            len(prepared.monitors),
            len(prepared.profiles),
            len(displays),
        )
        return prepared

    async def save(
        self,
        *,
        monitors: Optional[Sequence[Monitor]] = None,
        profiles: Optional[Sequence[CharacterProfile]] = None,
        language: Optional[str] = None,
        dark_mode: Optional[bool] = None,
    ) -> OverlaySettings:
        """Merge the given fields onto the committed state and persist the whole document.

        The committed state only changes once the collaborator accepts the
        write; on failure :class:`PersistenceSaveFailed` carries its message.
        """

        current = self._settings
        merged = normalize_settings(
            OverlaySettings(
                monitors=list(monitors) if monitors is not None else current.monitors,
                profiles=list(profiles) if profiles is not None else current.profiles,
                language=language if language is not None else current.language,
                dark_mode=dark_mode if dark_mode is not None else current.dark_mode,
            )
        )
        merged = await self._resolve_gif_frames(merged)
        try:
            response = await self._settings_service.store(merged.to_payload())
        except SettingsServiceError as exc:
            self.last_error = str(exc)
            _LOGGER.warning("Settings save failed: %s", exc)
            raise PersistenceSaveFailed(str(exc), cause=exc) from exc

        document = self._document_from_response(response, merged)
        prepared = self._prepare(document, self._displays)
        self._settings = prepared
        self.last_error = None
        _LOGGER.debug("Settings saved: monitors=%d profiles=%d", len(prepared.monitors), len(prepared.profiles))
        return prepared

    # Convenience edits --------------------------------------------------------

    async def save_profile(self, profile: CharacterProfile) -> OverlaySettings:
        return await self.save(profiles=replace_profile(self._settings.profiles, profile))

    async def remove_profile(self, profile_id: str) -> OverlaySettings:
        remaining = [profile for profile in self._settings.profiles if profile.id != profile_id]
        if len(remaining) == len(self._settings.profiles):
            raise KeyError(profile_id)
        return await self.save(profiles=remaining)

    def draft_profile(self, name: str, *, state_names: Optional[Sequence[str]] = None) -> CharacterProfile:
        """Build a new, unsaved profile on the first monitor; commit it with :meth:`save_profile`."""

        names = list(state_names or DEFAULT_STATE_NAMES)
        stamp = self._stamp()
        profile_id = self._unique_id(str(stamp), (profile.id for profile in self._settings.profiles))
        monitor_id = self._settings.monitors[0].id if self._settings.monitors else "mon-1"
        return new_profile(
            profile_id,
            name,
            monitor_id,
            state_ids=[f"state-{stamp}-{index}" for index in range(len(names))],
            state_names=names,
        )

    async def create_profile(self, name: str) -> CharacterProfile:
        profile = self.draft_profile(name)
        await self.save_profile(profile)
        return self.profile_by_id(profile.id) or profile

    async def add_monitor(self, name: Optional[str] = None) -> Monitor:
        current = self._settings.monitors
        monitor = Monitor(
            id=self._unique_id(f"mon-{self._stamp()}", (existing.id for existing in current)),
            name=name or f"Display {len(current) + 1}",
            width=DEFAULT_MONITOR_WIDTH,
            height=DEFAULT_MONITOR_HEIGHT,
            background_image="",
        )
        await self.save(monitors=[*current, monitor])
        return self.monitor_by_id(monitor.id) or monitor

    async def update_monitor(self, monitor_id: str, **fields: Any) -> Monitor:
        allowed = {"name", "width", "height", "background_image"}
        unknown = set(fields) - allowed
        if unknown:
            raise TypeError(f"unknown monitor fields: {', '.join(sorted(unknown))}")
        updated: List[Monitor] = []
        target: Optional[Monitor] = None
        for monitor in self._settings.monitors:
            if monitor.id == monitor_id:
                target = replace(monitor, **{key: value for key, value in fields.items() if value is not None})
                updated.append(target)
            else:
                updated.append(monitor)
        if target is None:
            raise KeyError(monitor_id)
        await self.save(monitors=updated)
        return self.monitor_by_id(monitor_id) or target

    async def remove_monitor(self, monitor_id: str) -> OverlaySettings:
        """Delete a monitor and move its profiles to the first remaining one."""

        current = self._settings
        if self.monitor_by_id(monitor_id) is None:
            raise KeyError(monitor_id)
        remaining = [monitor for monitor in current.monitors if monitor.id != monitor_id]
        if not remaining:
            raise ValueError("cannot remove the last monitor")
        fallback_id = remaining[0].id
        profiles = [
            replace(profile, monitor_id=fallback_id) if profile.monitor_id == monitor_id else profile
            for profile in current.profiles
        ]
        return await self.save(monitors=remaining, profiles=profiles)

    # Internals ----------------------------------------------------------------

    def _install(self, settings: OverlaySettings, displays: List[Display]) -> None:
        # Single assignment each: readers never see a half-reconciled document.
        self._displays = displays
        self._settings = settings
        self._loaded = True

    def _prepare(self, settings: OverlaySettings, displays: Sequence[Display]) -> OverlaySettings:
        return normalize_settings(reconcile_settings(settings, displays))

    async def _list_displays(self) -> List[Display]:
        try:
            return list(await self._display_service.list_displays())
        except DisplayEnumerationError as exc:
            _LOGGER.warning("Display enumeration failed; reconciling against no displays: %s", exc)
            return []

    async def _resolve_gif_frames(self, settings: OverlaySettings) -> OverlaySettings:
        decoder = self._image_decoder
        if decoder is None:
            return settings
        for profile in settings.profiles:
            for index, state in enumerate(profile.states):
                if not needs_frame_count(state):
                    continue
                try:
                    count = await decoder.frame_count(state.sprite_path)
                except ImageDecodeError as exc:
                    _LOGGER.warning("Could not read frame count for state %s/%s: %s", profile.id, state.id, exc)
                    continue
                profile.states[index] = apply_decoded_frame_count(state, count)
        return settings

    @staticmethod
    def _document_from_response(response: Mapping[str, Any], sent: OverlaySettings) -> OverlaySettings:
        if not isinstance(response, Mapping):
            return sent
        document = OverlaySettings.from_payload(response)
        has_profiles = "profiles" in response or "animes" in response
        return OverlaySettings(
            monitors=document.monitors if "monitors" in response else sent.monitors,
            profiles=document.profiles if has_profiles else sent.profiles,
            language=document.language if "language" in response else sent.language,
            dark_mode=document.dark_mode if "darkMode" in response else sent.dark_mode,
        )

    def _stamp(self) -> int:
        return int(self._time() * 1000)

    @staticmethod
    def _unique_id(candidate: str, existing: Iterable[str]) -> str:
        taken = set(existing)
        if candidate not in taken:
            return candidate
        suffix = 2
        while f"{candidate}-{suffix}" in taken:
            suffix += 1
        return f"{candidate}-{suffix}"
