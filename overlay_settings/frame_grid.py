"""Sprite-sheet grid sizing and the per-frame arrays tied to it."""
from __future__ import annotations

from dataclasses import replace
from enum import IntEnum
from typing import List, Optional, Sequence

from overlay_settings.model import State

MIN_FRAME_DURATION_MS = 1


class DisposalMethod(IntEnum):
    NONE = 0
    BACKGROUND = 1
    PREVIOUS = 2


def fit_frame_durations(durations: Sequence[int], count: int, default: int) -> List[int]:
    """Truncate or extend at the tail so exactly ``count`` entries remain.

    Existing entries keep their index even when the grid shape changes, so a
    2x2 -> 1x4 reshape does not follow the sprite cells. Consumers rely on
    this ordering.
    """

    count = max(0, count)
    fitted = list(durations[:count])
    if len(fitted) < count:
        fitted.extend([default] * (count - len(fitted)))
    return fitted


def resize_grid(state: State, new_rows: int, new_cols: int) -> State:
    rows = max(1, int(new_rows))
    cols = max(1, int(new_cols))
    return replace(
        state,
        rows=rows,
        cols=cols,
        frame_durations=fit_frame_durations(state.frame_durations, rows * cols, state.duration),
        gif_disposal=list(state.gif_disposal),
        chats=list(state.chats),
    )


def heal_frame_durations(state: State) -> State:
    if len(state.frame_durations) == state.frame_count:
        return state
    return resize_grid(state, state.rows, state.cols)


def set_frame_duration(state: State, index: int, duration_ms: int) -> State:
    if index < 0 or index >= len(state.frame_durations):
        raise IndexError(f"frame index {index} outside 0..{len(state.frame_durations) - 1}")
    durations = list(state.frame_durations)
    durations[index] = max(MIN_FRAME_DURATION_MS, int(duration_ms))
    return replace(state, frame_durations=durations)


def set_default_duration(state: State, duration_ms: int) -> State:
    """Change the fallback duration; frames that already have a value keep it."""

    return replace(state, duration=max(MIN_FRAME_DURATION_MS, int(duration_ms)))


def is_gif_sprite(reference: Optional[str], mime_type: Optional[str] = None) -> bool:
    if mime_type and mime_type.strip().lower() == "image/gif":
        return True
    if not reference:
        return False
    lower = reference.strip().lower()
    if lower.startswith("data:image/gif"):
        return True
    if lower.endswith(".gif"):
        return True
    if "/gif" in lower or "\\gif" in lower:
        return True
    return "image/gif" in lower


def attach_sprite(state: State, reference: str, mime_type: Optional[str] = None) -> State:
    """Point the state at a new sprite.

    A different GIF shrinks the disposal array back to a one-entry placeholder
    holding the chosen method, so its frames are counted on the next save.
    """

    disposal = list(state.gif_disposal)
    if is_gif_sprite(reference, mime_type):
        if not disposal:
            disposal = [int(DisposalMethod.NONE)]
        elif reference != state.sprite_path:
            disposal = disposal[:1]
    return replace(state, sprite_path=reference, gif_disposal=disposal)


def apply_disposal_method(state: State, method: int) -> State:
    """Broadcast one disposal method over the array at its current length.

    While the array is still a placeholder the real frame count is unknown;
    the fan-out to every frame happens in :func:`apply_decoded_frame_count`.
    """

    code = int(DisposalMethod(int(method)))
    length = max(1, len(state.gif_disposal))
    return replace(state, gif_disposal=[code] * length)


def apply_decoded_frame_count(state: State, frame_count: int) -> State:
    if frame_count <= 0:
        return state
    if len(state.gif_disposal) == frame_count:
        return state
    chosen = state.gif_disposal[0] if state.gif_disposal else int(DisposalMethod.NONE)
    return replace(state, gif_disposal=[chosen] * frame_count)


def needs_frame_count(state: State) -> bool:
    """True while the disposal array is only a placeholder for a GIF sprite."""

    return is_gif_sprite(state.sprite_path) and len(state.gif_disposal) <= 1
