import pytest

from overlay_settings import frame_grid
from overlay_settings.frame_grid import DisposalMethod
from overlay_settings.model import State


def _state(**kwargs) -> State:
    base = dict(id="s1", name="idle", rows=2, cols=2, duration=150, frame_durations=[1, 2, 3, 4])
    base.update(kwargs)
    return State(**base)


def test_grow_appends_default_duration_at_tail():
    grown = frame_grid.resize_grid(_state(duration=99), 2, 3)
    assert (grown.rows, grown.cols) == (2, 3)
    assert grown.frame_durations == [1, 2, 3, 4, 99, 99]


def test_shrink_truncates_tail():
    shrunk = frame_grid.resize_grid(_state(), 1, 2)
    assert shrunk.frame_durations == [1, 2]


def test_reshape_keeps_prefix_order():
    reshaped = frame_grid.resize_grid(_state(), 1, 4)
    assert reshaped.frame_durations == [1, 2, 3, 4]


def test_resize_grid_does_not_mutate_input():
    original = _state()
    frame_grid.resize_grid(original, 3, 3)
    assert original.frame_durations == [1, 2, 3, 4]


def test_resize_grid_clamps_rows_and_cols():
    state = frame_grid.resize_grid(_state(), 0, -2)
    assert (state.rows, state.cols) == (1, 1)
    assert state.frame_durations == [1]


def test_heal_frame_durations_fills_missing_entries():
    healed = frame_grid.heal_frame_durations(_state(frame_durations=[5]))
    assert healed.frame_durations == [5, 150, 150, 150]


def test_set_frame_duration_updates_one_entry():
    state = frame_grid.set_frame_duration(_state(), 2, 40)
    assert state.frame_durations == [1, 2, 40, 4]
    assert frame_grid.set_frame_duration(state, 0, 0).frame_durations[0] == 1


def test_set_frame_duration_rejects_out_of_range():
    with pytest.raises(IndexError):
        frame_grid.set_frame_duration(_state(), 4, 10)


def test_set_default_duration_keeps_existing_frames():
    state = frame_grid.set_default_duration(_state(), 80)
    assert state.duration == 80
    assert state.frame_durations == [1, 2, 3, 4]
    assert frame_grid.resize_grid(state, 1, 5).frame_durations == [1, 2, 3, 4, 80]


@pytest.mark.parametrize(
    "reference, mime, expected",
    [
        ("walk.gif", None, True),
        ("data:image/gif;base64,R0lG", None, True),
        ("/api/uploads/gif/cat", None, True),
        ("sheet.png", "image/gif", True),
        ("sheet.png", None, False),
        ("", None, False),
    ],
)
def test_is_gif_sprite(reference, mime, expected):
    assert frame_grid.is_gif_sprite(reference, mime) is expected


def test_first_gif_attach_creates_placeholder():
    state = frame_grid.attach_sprite(_state(), "cat.gif")
    assert state.sprite_path == "cat.gif"
    assert state.gif_disposal == [0]


def test_reattaching_same_gif_keeps_disposal_array():
    state = frame_grid.attach_sprite(_state(sprite_path="cat.gif", gif_disposal=[2, 2, 2]), "cat.gif")
    assert state.gif_disposal == [2, 2, 2]


def test_swapping_gif_resets_disposal_to_placeholder():
    state = frame_grid.attach_sprite(_state(sprite_path="cat.gif", gif_disposal=[2, 2, 2]), "other.gif")
    assert state.gif_disposal == [2]
    assert frame_grid.needs_frame_count(state)


def test_png_attach_leaves_disposal_empty():
    assert frame_grid.attach_sprite(_state(), "sheet.png").gif_disposal == []


def test_disposal_method_broadcast_at_current_length():
    assert frame_grid.apply_disposal_method(_state(gif_disposal=[0]), 2).gif_disposal == [2]
    assert frame_grid.apply_disposal_method(_state(gif_disposal=[]), 1).gif_disposal == [1]
    assert frame_grid.apply_disposal_method(_state(gif_disposal=[0, 0, 0]), 1).gif_disposal == [1, 1, 1]


def test_disposal_method_rejects_unknown_code():
    with pytest.raises(ValueError):
        frame_grid.apply_disposal_method(_state(), 7)


def test_decoded_frame_count_fans_out_chosen_method():
    placeholder = frame_grid.apply_disposal_method(frame_grid.attach_sprite(_state(), "cat.gif"), DisposalMethod.PREVIOUS)
    assert frame_grid.needs_frame_count(placeholder)
    decoded = frame_grid.apply_decoded_frame_count(placeholder, 5)
    assert decoded.gif_disposal == [2, 2, 2, 2, 2]
    assert not frame_grid.needs_frame_count(decoded)


def test_decoded_frame_count_ignores_non_positive():
    state = _state(gif_disposal=[1])
    assert frame_grid.apply_decoded_frame_count(state, 0) is state
