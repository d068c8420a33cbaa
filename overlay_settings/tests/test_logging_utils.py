import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from overlay_settings import logging_utils


def _owned_handlers(logger: logging.Logger):
    return [h for h in logger.handlers if getattr(h, "_runanime_handler", False)]


def test_configure_logging_replaces_previous_handler(tmp_path: Path) -> None:
    logger = logging_utils.configure_logging(debug=True, log_dir=tmp_path)
    try:
        logging_utils.configure_logging(debug=False, log_dir=tmp_path, retention=3)
        handlers = _owned_handlers(logger)
        assert len(handlers) == 1
        assert isinstance(handlers[0], RotatingFileHandler)
        assert handlers[0].backupCount == 2
        assert logger.level == logging.INFO
    finally:
        for handler in _owned_handlers(logger):
            logger.removeHandler(handler)
            handler.close()


def test_child_loggers_write_to_file(tmp_path: Path) -> None:
    logger = logging_utils.configure_logging(debug=True, log_dir=tmp_path)
    try:
        logging.getLogger("RunAnime.Settings.Store").debug("store ready: %d monitors", 2)
        for handler in _owned_handlers(logger):
            handler.flush()
        text = (tmp_path / logging_utils.LOG_FILENAME).read_text(encoding="utf-8")
        assert "store ready: 2 monitors" in text
        assert "[RunAnime.Settings.Store]" in text
    finally:
        for handler in _owned_handlers(logger):
            logger.removeHandler(handler)
            handler.close()


def test_resolve_logs_dir_prefers_env(monkeypatch, tmp_path: Path) -> None:
    target = tmp_path / "logs"
    monkeypatch.setenv("RUNANIME_LOG_DIR", str(target))
    assert logging_utils.resolve_logs_dir() == target
    assert target.is_dir()


def test_resolve_log_level() -> None:
    assert logging_utils.resolve_log_level(True) == logging.DEBUG
    assert logging_utils.resolve_log_level(False) == logging.INFO
