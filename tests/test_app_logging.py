import logging
from logging.handlers import RotatingFileHandler

from app_logging import setup_logging


def _snapshot(*names):
    root = logging.getLogger()
    levels = {n: logging.getLogger(n).level for n in names}
    return list(root.handlers), root.level, levels


def _restore(snapshot):
    handlers, level, levels = snapshot
    root = logging.getLogger()
    for handler in root.handlers:
        handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
    for name, lvl in levels.items():
        logging.getLogger(name).setLevel(lvl)


def test_setup_logging_reads_env(tmp_path, monkeypatch):
    saved = _snapshot("scroll_orchestrator", "scroll_trace")
    log_file = tmp_path / "logs" / "sync.log"
    monkeypatch.setenv("LYRICSYNC_LOG_LEVEL", "warning")
    monkeypatch.setenv("LYRICSYNC_LOG_FILE", str(log_file))
    monkeypatch.setenv("LYRICSYNC_LOG_BACKUP_COUNT", "0")
    monkeypatch.setenv("LYRICSYNC_LOG_MODULE_LEVELS", "scroll_orchestrator=DEBUG,broken")
    monkeypatch.delenv("LYRICSYNC_TRACE", raising=False)
    try:
        setup_logging()
        root = logging.getLogger()
        assert root.level == logging.WARNING
        file_handlers = [h for h in root.handlers if isinstance(h, RotatingFileHandler)]
        assert len(file_handlers) == 1
        assert file_handlers[0].backupCount == 3
        assert log_file.parent.is_dir()
        assert logging.getLogger("scroll_orchestrator").level == logging.DEBUG
        assert logging.getLogger("scroll_trace").level == logging.NOTSET
    finally:
        _restore(saved)


def test_trace_switch_enables_scroll_trace_logger(monkeypatch):
    saved = _snapshot("scroll_trace")
    monkeypatch.delenv("LYRICSYNC_LOG_FILE", raising=False)
    monkeypatch.delenv("LYRICSYNC_LOG_MODULE_LEVELS", raising=False)
    monkeypatch.setenv("LYRICSYNC_TRACE", "1")
    try:
        setup_logging()
        assert logging.getLogger("scroll_trace").level == logging.DEBUG
        assert not any(isinstance(h, RotatingFileHandler) for h in logging.getLogger().handlers)
    finally:
        _restore(saved)
