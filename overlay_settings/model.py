"""Settings document model: monitors, displays, character profiles and their states."""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Mapping, Optional, Sequence

DEFAULT_MONITOR_WIDTH = 1920
DEFAULT_MONITOR_HEIGHT = 1080
DEFAULT_FRAME_DURATION_MS = 150
DEFAULT_LANGUAGE = "ko"

JsonDict = Dict[str, Any]


def _str(value: Any, fallback: str = "") -> str:
    if value is None:
        return fallback
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return fallback


def _int(value: Any, fallback: int) -> int:
    if value is None or isinstance(value, bool):
        return fallback
    try:
        return int(value)
    except (TypeError, ValueError):
        return fallback


def _optional_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _int_list(value: Any) -> List[int]:
    if not isinstance(value, (list, tuple)):
        return []
    cleaned: List[int] = []
    for item in value:
        number = _optional_int(item)
        if number is not None:
            cleaned.append(number)
    return cleaned


def _str_list(value: Any) -> List[str]:
    if not isinstance(value, (list, tuple)):
        return []
    return [item for item in value if isinstance(item, str)]


def _mapping_list(value: Any) -> List[Mapping[str, Any]]:
    if not isinstance(value, (list, tuple)):
        return []
    return [item for item in value if isinstance(item, Mapping)]


@dataclass
class Monitor:
    """Persisted display profile; ``id`` is owned by this system."""

    id: str
    name: str
    width: int = DEFAULT_MONITOR_WIDTH
    height: int = DEFAULT_MONITOR_HEIGHT
    background_image: str = ""

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "Monitor":
        monitor_id = _str(payload.get("id"))
        return cls(
            id=monitor_id,
            name=_str(payload.get("name"), monitor_id),
            width=_int(payload.get("width"), DEFAULT_MONITOR_WIDTH),
            height=_int(payload.get("height"), DEFAULT_MONITOR_HEIGHT),
            background_image=_str(payload.get("backgroundImage")),
        )

    def to_payload(self) -> JsonDict:
        return {
            "id": self.id,
            "name": self.name,
            "width": self.width,
            "height": self.height,
            "backgroundImage": self.background_image,
        }


@dataclass(frozen=True)
class Display:
    """Hardware display reported for the current session only."""

    id: str
    index: int
    width: int
    height: int
    primary: bool = False

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "Display":
        index = _int(payload.get("index"), 0)
        primary = payload.get("primary")
        return cls(
            id=_str(payload.get("id"), f"display-{index}"),
            index=index,
            width=_int(payload.get("width"), DEFAULT_MONITOR_WIDTH),
            height=_int(payload.get("height"), DEFAULT_MONITOR_HEIGHT),
            primary=bool(primary) if primary is not None else index == 0,
        )

    def to_payload(self) -> JsonDict:
        return {
            "id": self.id,
            "index": self.index,
            "width": self.width,
            "height": self.height,
            "primary": self.primary,
        }


@dataclass
class State:
    """One animation state of a character."""

    id: str
    name: str
    sprite_path: str = ""
    rows: int = 1
    cols: int = 1
    duration: int = DEFAULT_FRAME_DURATION_MS
    frame_durations: List[int] = field(default_factory=list)
    gif_disposal: List[int] = field(default_factory=list)
    x: Optional[int] = None
    y: Optional[int] = None
    width: Optional[int] = None
    height: Optional[int] = None
    chats: List[str] = field(default_factory=list)

    @property
    def frame_count(self) -> int:
        return self.rows * self.cols

    @property
    def has_layout_override(self) -> bool:
        return any(value is not None for value in (self.x, self.y, self.width, self.height))

    def copy(self) -> "State":
        return replace(
            self,
            frame_durations=list(self.frame_durations),
            gif_disposal=list(self.gif_disposal),
            chats=list(self.chats),
        )

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "State":
        state_id = _str(payload.get("id"))
        duration = _int(payload.get("duration"), DEFAULT_FRAME_DURATION_MS)
        rows = max(1, _int(payload.get("rows"), 1))
        cols = max(1, _int(payload.get("cols"), 1))
        frame_durations = _int_list(payload.get("frameDurations"))
        if not frame_durations:
            frame_durations = [duration] * (rows * cols)
        return cls(
            id=state_id,
            name=_str(payload.get("name"), state_id),
            sprite_path=_str(payload.get("spritePath")),
            rows=rows,
            cols=cols,
            duration=duration,
            frame_durations=frame_durations,
            gif_disposal=_int_list(payload.get("gifDisposal")),
            x=_optional_int(payload.get("x")),
            y=_optional_int(payload.get("y")),
            width=_optional_int(payload.get("width")),
            height=_optional_int(payload.get("height")),
            chats=_str_list(payload.get("chats")),
        )

    def to_payload(self) -> JsonDict:
        payload: JsonDict = {
            "id": self.id,
            "name": self.name,
            "spritePath": self.sprite_path,
            "rows": self.rows,
            "cols": self.cols,
            "duration": self.duration,
            "frameDurations": list(self.frame_durations),
            "chats": list(self.chats),
        }
        if self.gif_disposal:
            payload["gifDisposal"] = list(self.gif_disposal)
        for key in ("x", "y", "width", "height"):
            value = getattr(self, key)
            if value is not None:
                payload[key] = value
        return payload


@dataclass
class CharacterProfile:
    """A configured character and the monitor it is shown on."""

    id: str
    name: str
    monitor_id: str
    x: int = 100
    y: int = 100
    width: int = 120
    height: int = 120
    states: List[State] = field(default_factory=list)

    def state_by_id(self, state_id: Optional[str]) -> Optional[State]:
        for state in self.states:
            if state.id == state_id:
                return state
        return None

    def copy(self) -> "CharacterProfile":
        return replace(self, states=[state.copy() for state in self.states])

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "CharacterProfile":
        profile_id = _str(payload.get("id"))
        return cls(
            id=profile_id,
            name=_str(payload.get("name"), profile_id),
            monitor_id=_str(payload.get("monitorId")),
            x=_int(payload.get("x"), 100),
            y=_int(payload.get("y"), 100),
            width=_int(payload.get("width"), 120),
            height=_int(payload.get("height"), 120),
            states=[State.from_payload(item) for item in _mapping_list(payload.get("states"))],
        )

    def to_payload(self) -> JsonDict:
        return {
            "id": self.id,
            "name": self.name,
            "monitorId": self.monitor_id,
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
            "states": [state.to_payload() for state in self.states],
        }


@dataclass
class OverlaySettings:
    """The full persisted document, always written as a whole."""

    monitors: List[Monitor] = field(default_factory=list)
    profiles: List[CharacterProfile] = field(default_factory=list)
    language: str = DEFAULT_LANGUAGE
    dark_mode: bool = True

    def copy(self) -> "OverlaySettings":
        return OverlaySettings(
            monitors=[replace(monitor) for monitor in self.monitors],
            profiles=[profile.copy() for profile in self.profiles],
            language=self.language,
            dark_mode=self.dark_mode,
        )

    def monitor_ids(self) -> List[str]:
        return [monitor.id for monitor in self.monitors]

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "OverlaySettings":
        raw_profiles = payload.get("profiles")
        if raw_profiles is None:
            raw_profiles = payload.get("animes")
        language = _str(payload.get("language"))
        dark_mode = payload.get("darkMode")
        if not language:
            # Documents written before UI preferences existed carry neither field.
            language = DEFAULT_LANGUAGE
            dark_mode = True if dark_mode is None else dark_mode
        return cls(
            monitors=[Monitor.from_payload(item) for item in _mapping_list(payload.get("monitors"))],
            profiles=[CharacterProfile.from_payload(item) for item in _mapping_list(raw_profiles)],
            language=language,
            dark_mode=True if dark_mode is None else bool(dark_mode),
        )

    def to_payload(self) -> JsonDict:
        return {
            "monitors": [monitor.to_payload() for monitor in self.monitors],
            "profiles": [profile.to_payload() for profile in self.profiles],
            "language": self.language,
            "darkMode": self.dark_mode,
        }


def displays_from_payload(items: Any) -> List[Display]:
    return [Display.from_payload(item) for item in _mapping_list(items)]


def replace_profile(profiles: Sequence[CharacterProfile], profile: CharacterProfile) -> List[CharacterProfile]:
    """Return ``profiles`` with the entry sharing ``profile.id`` swapped out (or appended)."""

    updated: List[CharacterProfile] = []
    found = False
    for existing in profiles:
        if existing.id == profile.id:
            updated.append(profile)
            found = True
        else:
            updated.append(existing)
    if not found:
        updated.append(profile)
    return updated
