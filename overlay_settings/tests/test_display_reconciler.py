import logging

from overlay_settings.display_reconciler import apply_remap, reconcile, reconcile_settings
from overlay_settings.model import CharacterProfile, Display, Monitor, OverlaySettings


def _monitor(monitor_id: str, name: str = "", width: int = 1920, height: int = 1080, background: str = "") -> Monitor:
    return Monitor(id=monitor_id, name=name or monitor_id, width=width, height=height, background_image=background)


def _display(display_id: str, index: int, width: int = 1920, height: int = 1080) -> Display:
    return Display(id=display_id, index=index, width=width, height=height, primary=index == 0)


def _profile(profile_id: str, monitor_id: str) -> CharacterProfile:
    return CharacterProfile(id=profile_id, name=profile_id, monitor_id=monitor_id)


def test_positional_default_id_is_remapped_to_live_display():
    stored = [_monitor("mon-1", "Main", background="/api/uploads/bg.png")]
    live = [_display("disp-abc", 0, 2560, 1440)]

    result = reconcile(stored, live)

    assert result.id_remap == {"mon-1": "disp-abc"}
    assert len(result.monitors) == 1
    monitor = result.monitors[0]
    assert (monitor.id, monitor.name, monitor.width, monitor.height) == ("disp-abc", "Main", 2560, 1440)
    assert monitor.background_image == "/api/uploads/bg.png"
    profiles = apply_remap([_profile("1", "mon-1")], result.id_remap)
    assert profiles[0].monitor_id == "disp-abc"


def test_no_live_displays_returns_stored_unchanged(caplog):
    stored = [_monitor("mon-1"), _monitor("display-7")]
    with caplog.at_level(logging.DEBUG, logger="RunAnime.Settings.Reconciler"):
        result = reconcile(stored, [])
    assert result.skipped
    assert result.monitors == stored
    assert result.id_remap == {}
    assert "skipped" in caplog.text


def test_exact_id_match_keeps_id_and_refreshes_size():
    stored = [_monitor("display-0", "Desk", 1280, 720)]
    result = reconcile(stored, [_display("display-0", 0, 3840, 2160)])
    assert result.id_remap == {}
    assert result.monitors[0].name == "Desk"
    assert (result.monitors[0].width, result.monitors[0].height) == (3840, 2160)


def test_unmatched_display_gets_default_name():
    result = reconcile([_monitor("display-0", "Desk")], [_display("display-0", 0), _display("display-1", 1)])
    assert [m.id for m in result.monitors] == ["display-0", "display-1"]
    assert result.monitors[1].name == "Display 2"
    assert result.monitors[1].background_image == ""


def test_disconnected_monitors_appended_in_original_order():
    stored = [_monitor("virtual-b"), _monitor("display-0"), _monitor("virtual-a")]
    result = reconcile(stored, [_display("display-0", 0)])
    assert [m.id for m in result.monitors] == ["display-0", "virtual-b", "virtual-a"]


def test_stored_monitor_is_claimed_once():
    # mon-2 would positionally match display index 1, but exact ids are resolved first.
    stored = [_monitor("mon-1", "First"), _monitor("mon-2", "Second")]
    live = [_display("mon-2", 0), _display("display-1", 1)]
    result = reconcile(stored, live)
    assert [m.id for m in result.monitors] == ["mon-2", "display-1", "mon-1"]
    assert result.monitors[0].name == "Second"
    assert result.monitors[1].name == "Display 2"
    assert result.id_remap == {}


def test_reconcile_is_deterministic():
    stored = [_monitor("mon-1"), _monitor("mon-2")]
    live = [_display("display-0", 0), _display("display-1", 1)]
    assert reconcile(stored, live) == reconcile(stored, live)


def test_reconcile_settings_repairs_dangling_reference(caplog):
    settings = OverlaySettings(monitors=[_monitor("mon-1")], profiles=[_profile("1", "mon-1"), _profile("2", "gone")])
    with caplog.at_level(logging.WARNING, logger="RunAnime.Settings.Reconciler"):
        result = reconcile_settings(settings, [_display("display-0", 0)])
    ids = [m.id for m in result.monitors]
    assert ids == ["display-0", "gone"]
    assert [p.monitor_id for p in result.profiles] == ["display-0", "gone"]
    assert "gone" in caplog.text
