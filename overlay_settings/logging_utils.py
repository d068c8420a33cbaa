from __future__ import annotations

import logging
import os
import tempfile
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

ROOT_LOGGER_NAME = "RunAnime"
LOG_FILENAME = "runanime.log"
_HANDLER_MARKER = "_runanime_handler"


def resolve_logs_dir(log_dir_name: str = "runanime") -> Path:
    """
    Resolve the directory to store logs.

    Strategy:
    - Use RUNANIME_LOG_DIR if set.
    - Fall back to XDG state/cache locations, then `cwd/logs/<log_dir_name>`.
    - Final fallback: tempdir/<log_dir_name>.
    """
    candidates = []

    env_override = os.environ.get("RUNANIME_LOG_DIR")
    if env_override:
        try:
            candidates.append(Path(env_override).expanduser())
        except Exception:
            pass

    state_home = Path(os.environ.get("XDG_STATE_HOME", Path.home() / ".local" / "state"))
    cache_home = Path(os.environ.get("XDG_CACHE_HOME", Path.home() / ".cache"))
    candidates.append(state_home / log_dir_name / "logs")
    candidates.append(cache_home / log_dir_name / "logs")
    candidates.append(Path.cwd() / "logs" / log_dir_name)

    for target in candidates:
        try:
            target.mkdir(parents=True, exist_ok=True)
            return target
        except Exception:
            continue

    temp_fallback = Path(tempfile.gettempdir()) / log_dir_name
    temp_fallback.mkdir(parents=True, exist_ok=True)
    return temp_fallback


def build_rotating_file_handler(
    log_dir: Path,
    filename: str = LOG_FILENAME,
    *,
    retention: int = 5,
    max_bytes: int = 512 * 1024,
    formatter: Optional[logging.Formatter] = None,
) -> logging.Handler:
    """Construct a rotating file handler with sane defaults."""
    retention = max(1, retention)
    backup_count = max(0, retention - 1)
    log_dir.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        log_dir / filename,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )
    if formatter is not None:
        handler.setFormatter(formatter)
    return handler


def resolve_log_level(debug_enabled: bool) -> int:
    return logging.DEBUG if debug_enabled else logging.INFO


def configure_logging(
    *,
    debug: bool = False,
    log_dir: Optional[Path] = None,
    retention: int = 5,
) -> logging.Logger:
    """Attach a single rotating file handler to the RunAnime logger tree.

    Calling this again replaces the previously attached handler rather than stacking a second one.
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(resolve_log_level(debug))
    for existing in list(logger.handlers):
        if getattr(existing, _HANDLER_MARKER, False):
            logger.removeHandler(existing)
            existing.close()
    target_dir = log_dir if log_dir is not None else resolve_logs_dir()
    formatter = logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s")
    handler = build_rotating_file_handler(target_dir, retention=retention, formatter=formatter)
    setattr(handler, _HANDLER_MARKER, True)
    logger.addHandler(handler)
    return logger
