"""Persistence collaborators: a local JSON document and the companion HTTP server."""
from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

import requests

from overlay_settings.defaults import default_settings, fill_missing
from overlay_settings.errors import DisplayEnumerationError, SettingsServiceError
from overlay_settings.model import Display, OverlaySettings, displays_from_payload

_LOGGER = logging.getLogger("RunAnime.Services")

SETTINGS_ENDPOINT = "/api/settings"
DEFAULT_TIMEOUT_SECONDS = 10.0


class JsonSettingsService:
    """Settings stored as one pretty-printed JSON file, replaced atomically on every write."""

    def __init__(self, path: Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    async def fetch(self) -> Dict[str, Any]:
        return self._read()

    async def store(self, document: Mapping[str, Any]) -> Dict[str, Any]:
        payload = dict(document)
        self._write(payload)
        return self._read()

    def _read(self) -> Dict[str, Any]:
        if not self._path.exists():
            _LOGGER.debug("Settings file %s not found; using built-in defaults", self._path)
            return default_settings().to_payload()
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise SettingsServiceError(f"Failed to read {self._path}: {exc}") from exc
        if not isinstance(raw, dict):
            raise SettingsServiceError(f"Settings file {self._path} does not hold a JSON object")
        document = fill_missing(OverlaySettings.from_payload(raw))
        return document.to_payload()

    def _write(self, payload: Mapping[str, Any]) -> None:
        tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(payload, indent=2, sort_keys=True, ensure_ascii=False), encoding="utf-8")
            tmp_path.replace(self._path)
        except (OSError, TypeError, ValueError) as exc:
            raise SettingsServiceError(f"Failed to write {self._path}: {exc}") from exc


class HttpSettingsService:
    """Client for the settings endpoint served by the desktop app.

    ``requests`` is blocking, so each call runs in a worker thread; the store
    that awaits it stays on the event loop.

    The server keeps characters under ``animes`` and decodes each state into a
    fixed struct: frame-grid fields are not kept and zero-valued layout
    overrides are omitted from the echo. Values the echo leaves out are taken
    back from the document that was sent.
    """

    def __init__(
        self,
        base_url: str,
        *,
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout
        self._displays: Optional[List[Any]] = None

    @property
    def url(self) -> str:
        return f"{self.base_url}{SETTINGS_ENDPOINT}"

    async def fetch(self) -> Dict[str, Any]:
        payload = await asyncio.to_thread(self._get)
        displays = payload.get("displays")
        self._displays = list(displays) if isinstance(displays, list) else []
        return _from_wire(payload)

    async def store(self, document: Mapping[str, Any]) -> Dict[str, Any]:
        wire = _to_wire(document)
        response = await asyncio.to_thread(self._post, wire)
        return _from_wire(response, sent=wire.get("animes"))

    async def list_displays(self) -> List[Display]:
        """Displays reported alongside the settings document by the server.

        The report cached by the last :meth:`fetch` is used once; later calls
        ask the server again.
        """

        if self._displays is not None:
            cached, self._displays = self._displays, None
            return displays_from_payload(cached)
        try:
            payload = await asyncio.to_thread(self._get)
        except SettingsServiceError as exc:
            raise DisplayEnumerationError(str(exc)) from exc
        return displays_from_payload(payload.get("displays"))

    def _get(self) -> Dict[str, Any]:
        try:
            response = self.session.get(self.url, timeout=self.timeout)
        except requests.RequestException as exc:
            raise SettingsServiceError(f"GET {self.url} failed: {exc}") from exc
        return self._decode(response)

    def _post(self, document: Dict[str, Any]) -> Dict[str, Any]:
        try:
            response = self.session.post(self.url, json=document, timeout=self.timeout)
        except requests.RequestException as exc:
            raise SettingsServiceError(f"POST {self.url} failed: {exc}") from exc
        return self._decode(response)

    def _decode(self, response: requests.Response) -> Dict[str, Any]:
        if not response.ok:
            message = response.text.strip() or f"HTTP {response.status_code}"
            _LOGGER.warning("Settings request to %s failed: %s %s", self.url, response.status_code, message)
            raise SettingsServiceError(message)
        try:
            payload = response.json()
        except ValueError as exc:
            raise SettingsServiceError(f"Invalid JSON from {self.url}: {exc}") from exc
        if not isinstance(payload, dict):
            raise SettingsServiceError(f"Unexpected response from {self.url}")
        return payload


def _to_wire(document: Mapping[str, Any]) -> Dict[str, Any]:
    payload = dict(document)
    profiles = payload.pop("profiles", None)
    if profiles is not None:
        payload["animes"] = profiles
    payload.setdefault("animes", [])
    return payload


def _from_wire(payload: Mapping[str, Any], sent: Optional[List[Any]] = None) -> Dict[str, Any]:
    document = dict(payload)
    document.pop("displays", None)
    profiles = document.pop("animes", None)
    if "profiles" in document:
        return document
    if profiles is None:
        # The server writes an empty character list as null.
        profiles = list(sent) if sent is not None else []
    if sent is not None:
        profiles = _restore_omitted(profiles, sent)
    document["profiles"] = profiles
    return document


def _restore_omitted(profiles: List[Any], sent: List[Any]) -> List[Any]:
    sent_states: Dict[Tuple[Any, Any], Mapping[str, Any]] = {}
    for profile in sent:
        if not isinstance(profile, Mapping):
            continue
        for state in profile.get("states") or []:
            if isinstance(state, Mapping):
                sent_states[(profile.get("id"), state.get("id"))] = state
    restored = []
    for profile in profiles:
        if not isinstance(profile, Mapping):
            restored.append(profile)
            continue
        states = []
        for state in profile.get("states") or []:
            original = sent_states.get((profile.get("id"), state.get("id"))) if isinstance(state, Mapping) else None
            if original is None:
                states.append(state)
                continue
            merged = dict(state)
            for key, value in original.items():
                merged.setdefault(key, value)
            states.append(merged)
        restored.append({**profile, "states": states})
    return restored
