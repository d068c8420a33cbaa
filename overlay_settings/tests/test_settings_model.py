from overlay_settings.defaults import default_settings, fill_missing, new_profile
from overlay_settings.model import CharacterProfile, OverlaySettings, State, replace_profile


def test_legacy_animes_key_is_accepted():
    payload = {
        "monitors": [{"id": "mon-1", "name": "Main", "width": 1920, "height": 1080}],
        "animes": [{"id": "7", "name": "cat", "monitorId": "mon-1", "states": [{"id": "s1", "name": "idle"}]}],
    }
    settings = OverlaySettings.from_payload(payload)
    assert [p.id for p in settings.profiles] == ["7"]
    assert settings.language == "ko"
    assert settings.dark_mode is True


def test_missing_frame_durations_filled_from_duration():
    state = State.from_payload({"id": "s", "name": "s", "rows": 2, "cols": 3, "duration": 90})
    assert state.frame_durations == [90] * 6


def test_wrong_typed_fields_fall_back_to_defaults():
    profile = CharacterProfile.from_payload({"id": 3, "x": "left", "width": None, "states": "nope"})
    assert profile.id == "3"
    assert (profile.x, profile.width) == (100, 120)
    assert profile.states == []


def test_state_payload_omits_unset_overrides_and_keeps_zero():
    state = State(id="s", name="s", x=0, frame_durations=[150])
    payload = state.to_payload()
    assert payload["x"] == 0
    assert "y" not in payload and "width" not in payload
    assert "gifDisposal" not in payload
    assert State.from_payload(payload).x == 0


def test_settings_payload_uses_wire_keys():
    payload = default_settings().to_payload()
    assert set(payload) == {"monitors", "profiles", "language", "darkMode"}
    assert payload["profiles"][0]["monitorId"] == "mon-1"
    assert payload["profiles"][0]["states"][0]["frameDurations"] == [150]


def test_explicit_language_keeps_dark_mode_value():
    settings = OverlaySettings.from_payload({"language": "en", "darkMode": False})
    assert (settings.language, settings.dark_mode) == ("en", False)


def test_fill_missing_only_replaces_empty_lists():
    settings = fill_missing(OverlaySettings(monitors=[], profiles=[], language="en", dark_mode=False))
    assert [m.id for m in settings.monitors] == ["mon-1"]
    assert [p.id for p in settings.profiles] == ["1"]
    assert settings.language == "en"


def test_new_profile_uses_dashboard_defaults():
    profile = new_profile("42", "dog", "mon-1", state_ids=["a", "b", "c", "d"])
    assert (profile.x, profile.y, profile.width, profile.height) == (425, 425, 150, 150)
    assert len(profile.states) == 4
    assert all(state.frame_durations == [150] for state in profile.states)


def test_replace_profile_swaps_or_appends():
    first = CharacterProfile(id="1", name="a", monitor_id="mon-1")
    second = CharacterProfile(id="2", name="b", monitor_id="mon-1")
    renamed = CharacterProfile(id="1", name="z", monitor_id="mon-1")
    assert [p.name for p in replace_profile([first, second], renamed)] == ["z", "b"]
    assert [p.id for p in replace_profile([first], second)] == ["1", "2"]
