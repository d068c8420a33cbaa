"""Built-in configuration used when nothing has been persisted yet or loading fails."""
from __future__ import annotations

from typing import Iterable, List, Optional, Sequence

from overlay_settings.model import (
    DEFAULT_FRAME_DURATION_MS,
    DEFAULT_LANGUAGE,
    CharacterProfile,
    Monitor,
    OverlaySettings,
    State,
)

DEFAULT_MONITOR_ID = "mon-1"
DEFAULT_STATE_NAMES = ("기본", "기쁨", "슬픔", "분노")

NEW_PROFILE_X = 425
NEW_PROFILE_Y = 425
NEW_PROFILE_SIZE = 150


def default_monitors() -> List[Monitor]:
    return [Monitor(id=DEFAULT_MONITOR_ID, name="Display 1", width=1920, height=1080, background_image="")]


def _state(state_id: str, name: str, duration: int = DEFAULT_FRAME_DURATION_MS, chats: Iterable[str] = ()) -> State:
    return State(
        id=state_id,
        name=name,
        duration=duration,
        frame_durations=[duration],
        chats=list(chats),
    )


def default_profiles() -> List[CharacterProfile]:
    return [
        CharacterProfile(
            id="1",
            name="기본 캐릭터",
            monitor_id=DEFAULT_MONITOR_ID,
            x=100,
            y=100,
            width=120,
            height=120,
            states=[
                _state("s1", "기본", chats=("안녕!", "반가워.")),
                _state("s2", "기쁨", duration=100, chats=("히히!", "오늘 기분 좋아!")),
                _state("s3", "슬픔"),
                _state("s4", "분노"),
            ],
        )
    ]


def default_settings() -> OverlaySettings:
    return OverlaySettings(
        monitors=default_monitors(),
        profiles=default_profiles(),
        language=DEFAULT_LANGUAGE,
        dark_mode=True,
    )


def fill_missing(settings: OverlaySettings) -> OverlaySettings:
    """Documents with no monitors or no profiles get the built-in ones for that list."""

    monitors = settings.monitors or default_monitors()
    profiles = settings.profiles or default_profiles()
    if monitors is settings.monitors and profiles is settings.profiles:
        return settings
    return OverlaySettings(
        monitors=monitors,
        profiles=profiles,
        language=settings.language,
        dark_mode=settings.dark_mode,
    )


def new_state(state_id: str, name: str) -> State:
    return _state(state_id, name)


def new_profile(
    profile_id: str,
    name: str,
    monitor_id: str,
    *,
    state_ids: Sequence[str],
    state_names: Optional[Sequence[str]] = None,
) -> CharacterProfile:
    names = list(state_names or DEFAULT_STATE_NAMES)
    return CharacterProfile(
        id=profile_id,
        name=name,
        monitor_id=monitor_id,
        x=NEW_PROFILE_X,
        y=NEW_PROFILE_Y,
        width=NEW_PROFILE_SIZE,
        height=NEW_PROFILE_SIZE,
        states=[new_state(state_id, state_name) for state_id, state_name in zip(state_ids, names)],
    )
