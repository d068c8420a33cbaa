"""Process configuration resolved from the environment."""
from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

CONFIG_DIR_ENV_VAR = "RUNANIME_CONFIG_DIR"
SERVER_URL_ENV_VAR = "RUNANIME_SERVER_URL"
DEBUG_ENV_VAR = "RUNANIME_DEBUG"
LOG_RETENTION_ENV_VAR = "RUNANIME_LOG_RETENTION"

LOG_RETENTION_DEFAULT = 5
LOG_RETENTION_MIN = 1
LOG_RETENTION_MAX = 20

SETTINGS_FILENAME = "settings.json"
UPLOADS_DIRNAME = "uploads"


@dataclass(frozen=True)
class RuntimeConfig:
    config_dir: Path
    settings_path: Path
    uploads_dir: Path
    server_url: Optional[str] = None
    debug: bool = False
    log_retention: int = LOG_RETENTION_DEFAULT


def parse_flag(value: Optional[str]) -> bool:
    if value is None:
        return False
    token = value.strip().lower()
    if token in {"1", "true", "yes", "on"}:
        return True
    return False


def _coerce_log_retention(value: Optional[str]) -> int:
    if value is None:
        return LOG_RETENTION_DEFAULT
    try:
        numeric = int(value)
    except (TypeError, ValueError):
        return LOG_RETENTION_DEFAULT
    if numeric < LOG_RETENTION_MIN:
        return LOG_RETENTION_MIN
    if numeric > LOG_RETENTION_MAX:
        return LOG_RETENTION_MAX
    return numeric


def user_config_root(env: Mapping[str, str]) -> Path:
    """Platform user configuration directory (the same place the desktop app keeps its files)."""

    home = Path(env.get("HOME") or Path.home())
    if sys.platform == "win32":
        appdata = env.get("APPDATA")
        return Path(appdata) if appdata else home / "AppData" / "Roaming"
    if sys.platform == "darwin":
        return home / "Library" / "Application Support"
    xdg = env.get("XDG_CONFIG_HOME")
    return Path(xdg) if xdg else home / ".config"


def load_runtime_config(env: Optional[Mapping[str, str]] = None) -> RuntimeConfig:
    source = os.environ if env is None else env
    override = source.get(CONFIG_DIR_ENV_VAR)
    if override:
        config_dir = Path(override).expanduser()
    else:
        config_dir = user_config_root(source) / "runanime"
    server_url = (source.get(SERVER_URL_ENV_VAR) or "").strip() or None
    return RuntimeConfig(
        config_dir=config_dir,
        settings_path=config_dir / SETTINGS_FILENAME,
        uploads_dir=config_dir / UPLOADS_DIRNAME,
        server_url=server_url.rstrip("/") if server_url else None,
        debug=parse_flag(source.get(DEBUG_ENV_VAR)),
        log_retention=_coerce_log_retention(source.get(LOG_RETENTION_ENV_VAR)),
    )
