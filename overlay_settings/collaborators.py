"""Interfaces the settings core expects from its external collaborators."""
from __future__ import annotations

from typing import Any, Mapping, Protocol, Sequence

from overlay_settings.model import Display


class SettingsService(Protocol):
    async def fetch(self) -> Mapping[str, Any]:
        """Return the persisted settings document. Raises SettingsServiceError."""
        ...

    async def store(self, document: Mapping[str, Any]) -> Mapping[str, Any]:
        """Persist the whole document and return the authoritative copy. Raises SettingsServiceError."""
        ...


class DisplayService(Protocol):
    async def list_displays(self) -> Sequence[Display]:
        """Return currently connected displays, primary first. Raises DisplayEnumerationError."""
        ...


class ImageDecoder(Protocol):
    async def frame_count(self, reference: str) -> int:
        """Return the true frame count of an animated image. Raises ImageDecodeError."""
        ...
