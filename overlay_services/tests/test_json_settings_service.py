import asyncio
import json
from pathlib import Path

import pytest

from overlay_services.settings_service import JsonSettingsService
from overlay_settings.errors import SettingsServiceError


def test_missing_file_returns_defaults(tmp_path: Path) -> None:
    service = JsonSettingsService(tmp_path / "settings.json")
    document = asyncio.run(service.fetch())
    assert [m["id"] for m in document["monitors"]] == ["mon-1"]
    assert document["profiles"][0]["name"] == "기본 캐릭터"
    assert document["language"] == "ko"


def test_store_writes_atomically_and_round_trips(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "settings.json"
    service = JsonSettingsService(path)
    document = {
        "monitors": [{"id": "mon-1", "name": "Main", "width": 2560, "height": 1440, "backgroundImage": ""}],
        "profiles": [{"id": "1", "name": "cat", "monitorId": "mon-1", "states": []}],
        "language": "en",
        "darkMode": False,
    }

    response = asyncio.run(service.store(document))

    assert path.exists()
    assert not path.with_suffix(".json.tmp").exists()
    on_disk = json.loads(path.read_text(encoding="utf-8"))
    assert on_disk["monitors"][0]["width"] == 2560
    assert response["language"] == "en"
    assert response["profiles"][0]["name"] == "cat"


def test_legacy_document_is_upgraded_on_read(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    path.write_text(
        json.dumps({"monitors": [], "animes": [{"id": "9", "name": "old", "monitorId": "mon-1"}]}),
        encoding="utf-8",
    )
    document = asyncio.run(JsonSettingsService(path).fetch())
    assert [m["id"] for m in document["monitors"]] == ["mon-1"]
    assert [p["id"] for p in document["profiles"]] == ["9"]
    assert document["darkMode"] is True


def test_corrupt_file_raises_service_error(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(SettingsServiceError):
        asyncio.run(JsonSettingsService(path).fetch())


def test_non_object_document_raises(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    path.write_text("[1, 2]", encoding="utf-8")
    with pytest.raises(SettingsServiceError):
        asyncio.run(JsonSettingsService(path).fetch())
