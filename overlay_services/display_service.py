from __future__ import annotations

import logging
from typing import Iterable, List, Sequence

from PyQt6.QtGui import QGuiApplication

from overlay_settings.errors import DisplayEnumerationError
from overlay_settings.model import DEFAULT_MONITOR_HEIGHT, DEFAULT_MONITOR_WIDTH, Display

_LOGGER = logging.getLogger("RunAnime.Services")


def display_id(index: int) -> str:
    return f"display-{index}"


def _physical(size: int, ratio: float, fallback: int) -> int:
    try:
        value = int(round(size * (ratio or 1.0)))
    except (TypeError, ValueError):
        return fallback
    return value if value > 0 else fallback


class QtDisplayService:
    """Enumerate screens through Qt; the primary screen is always index 0."""

    async def list_displays(self) -> List[Display]:
        if QGuiApplication.instance() is None:
            raise DisplayEnumerationError("QGuiApplication has not been created")
        screens = list(QGuiApplication.screens())
        primary = QGuiApplication.primaryScreen()
        if primary is not None and primary in screens:
            screens.remove(primary)
            screens.insert(0, primary)
        displays: List[Display] = []
        for index, screen in enumerate(screens):
            geometry = screen.geometry()
            ratio = screen.devicePixelRatio()
            displays.append(
                Display(
                    id=display_id(index),
                    index=index,
                    width=_physical(geometry.width(), ratio, DEFAULT_MONITOR_WIDTH),
                    height=_physical(geometry.height(), ratio, DEFAULT_MONITOR_HEIGHT),
                    primary=index == 0,
                )
            )
        _LOGGER.debug(
            "Enumerated %d screens: %s",
            len(displays),
            ", ".join(f"{d.id}={d.width}x{d.height}" for d in displays) or "none",
        )
        return displays


class StaticDisplayService:
    """Fixed display list for headless runs and offline editing."""

    def __init__(self, displays: Iterable[Display] = ()) -> None:
        self._displays: Sequence[Display] = tuple(displays)

    async def list_displays(self) -> List[Display]:
        return list(self._displays)
