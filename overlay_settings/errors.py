"""Error kinds raised by the settings core and its collaborators."""
from __future__ import annotations

from typing import Optional


class OverlaySettingsError(Exception):
    """Base class for settings-core failures."""


class SettingsServiceError(OverlaySettingsError):
    """Raised by persistence adapters when a fetch or store request fails."""


class DisplayEnumerationError(OverlaySettingsError):
    """Raised by display adapters when the connected displays cannot be listed."""


class ImageDecodeError(OverlaySettingsError):
    """Raised by image decoders when a sprite cannot be inspected."""


class PersistenceLoadFailed(OverlaySettingsError):
    """Loading failed; the store has fallen back to the built-in defaults."""


class PersistenceSaveFailed(OverlaySettingsError):
    """Saving failed; the committed configuration was left untouched.

    ``message`` carries the collaborator's text verbatim so the caller can show
    it as a blocking notice.
    """

    def __init__(self, message: str, *, cause: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.message = message
        self.cause = cause
