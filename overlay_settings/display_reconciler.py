"""Merge persisted monitors with the displays detected in this session.

Display ids come from the enumeration service and are not guaranteed to be
stable between sessions, so a stored monitor is matched by exact id first and by
its conventional positional id (``mon-1`` for the primary display, ...) second.
Profiles that referenced a rematched monitor are moved to the new id.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Sequence

from overlay_settings.model import (
    DEFAULT_MONITOR_HEIGHT,
    DEFAULT_MONITOR_WIDTH,
    CharacterProfile,
    Display,
    Monitor,
    OverlaySettings,
)

_LOGGER = logging.getLogger("RunAnime.Settings.Reconciler")


@dataclass(frozen=True)
class ReconcileResult:
    monitors: List[Monitor]
    id_remap: Dict[str, str] = field(default_factory=dict)
    skipped: bool = False


def default_monitor_id(index: int) -> str:
    return f"mon-{index + 1}"


def default_display_name(index: int) -> str:
    return f"Display {index + 1}"


def reconcile(stored_monitors: Sequence[Monitor], live_displays: Sequence[Display]) -> ReconcileResult:
    """Return one monitor per live display (in enumeration order) followed by the disconnected ones."""

    if not live_displays:
        _LOGGER.debug("Reconciliation skipped: no live displays reported (%d stored monitors kept)", len(stored_monitors))
        return ReconcileResult(monitors=list(stored_monitors), id_remap={}, skipped=True)

    by_id: Dict[str, int] = {}
    for position, monitor in enumerate(stored_monitors):
        by_id.setdefault(monitor.id, position)

    claimed: Dict[int, int] = {}
    matches: List[Optional[int]] = [None] * len(live_displays)

    # Exact ids win over positional ids for every display before any positional claim.
    for index, display in enumerate(live_displays):
        position = by_id.get(display.id)
        if position is not None and position not in claimed:
            claimed[position] = index
            matches[index] = position
    for index, display in enumerate(live_displays):
        if matches[index] is not None:
            continue
        position = by_id.get(default_monitor_id(index))
        if position is not None and position not in claimed:
            claimed[position] = index
            matches[index] = position

    id_remap: Dict[str, str] = {}
    monitors: List[Monitor] = []
    for index, display in enumerate(live_displays):
        position = matches[index]
        existing = stored_monitors[position] if position is not None else None
        if existing is not None and existing.id != display.id:
            id_remap[existing.id] = display.id
        monitors.append(
            Monitor(
                id=display.id,
                name=existing.name if existing is not None else default_display_name(index),
                width=display.width,
                height=display.height,
                background_image=existing.background_image if existing is not None else "",
            )
        )

    live_ids = {display.id for display in live_displays}
    for position, monitor in enumerate(stored_monitors):
        if position in claimed or monitor.id in live_ids:
            continue
        monitors.append(monitor)

    if id_remap:
        _LOGGER.debug(
            "Reconciled %d live displays with %d stored monitors; remapped %s",
            len(live_displays),
            len(stored_monitors),
            ", ".join(f"{old}->{new}" for old, new in id_remap.items()),
        )
    return ReconcileResult(monitors=monitors, id_remap=id_remap)


def apply_remap(profiles: Sequence[CharacterProfile], id_remap: Dict[str, str]) -> List[CharacterProfile]:
    if not id_remap:
        return list(profiles)
    updated: List[CharacterProfile] = []
    for profile in profiles:
        new_id = id_remap.get(profile.monitor_id)
        if new_id is not None:
            updated.append(replace(profile, monitor_id=new_id))
        else:
            updated.append(profile)
    return updated


def placeholder_monitor(monitor_id: str) -> Monitor:
    return Monitor(
        id=monitor_id,
        name=monitor_id or "Display",
        width=DEFAULT_MONITOR_WIDTH,
        height=DEFAULT_MONITOR_HEIGHT,
        background_image="",
    )


def repair_references(monitors: Sequence[Monitor], profiles: Sequence[CharacterProfile]) -> List[Monitor]:
    """Append a disconnected placeholder for every monitor id a profile references but nothing defines."""

    repaired = list(monitors)
    known = {monitor.id for monitor in repaired}
    for profile in profiles:
        if profile.monitor_id in known:
            continue
        _LOGGER.warning(
            "Profile %s references unknown monitor %r; keeping it on a disconnected placeholder",
            profile.id,
            profile.monitor_id,
        )
        repaired.append(placeholder_monitor(profile.monitor_id))
        known.add(profile.monitor_id)
    return repaired


def reconcile_settings(settings: OverlaySettings, live_displays: Sequence[Display]) -> OverlaySettings:
    result = reconcile(settings.monitors, live_displays)
    profiles = apply_remap(settings.profiles, result.id_remap)
    monitors = repair_references(result.monitors, profiles)
    return OverlaySettings(
        monitors=monitors,
        profiles=profiles,
        language=settings.language,
        dark_mode=settings.dark_mode,
    )
