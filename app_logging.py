import logging
import os
from pathlib import Path
from logging.handlers import RotatingFileHandler

ENV_PREFIX = "LYRICSYNC_"
DEFAULT_ROTATE_BYTES = 2 * 1024 * 1024
DEFAULT_BACKUP_COUNT = 3
# Frame-level sync decisions are logged here; see scroll_trace.LoggingTraceSink.
TRACE_LOGGER = "scroll_trace"


def _env(name: str, default: str = "") -> str:
    return os.getenv(f"{ENV_PREFIX}{name}", default).strip()


def _env_positive_int(name: str, default: int) -> int:
    try:
        val = int(_env(name) or default)
    except ValueError:
        return default
    return val if val >= 1 else default


def _level(name: str, fallback: int) -> int:
    level = logging.getLevelName(name.strip().upper())
    return level if isinstance(level, int) else fallback


def _module_levels(fallback: int) -> dict[str, int]:
    """
    Parse per-module overrides:
    LYRICSYNC_LOG_MODULE_LEVELS="scroll_orchestrator=DEBUG,event_dispatcher=INFO"
    Broken entries are reported and skipped.
    """
    levels = {}
    for entry in filter(None, (e.strip() for e in _env("LOG_MODULE_LEVELS").split(","))):
        module_name, sep, level_name = entry.partition("=")
        if not sep or not module_name.strip() or not level_name.strip():
            logging.getLogger(__name__).warning("Ignoring log level override: %s", entry)
            continue
        levels[module_name.strip()] = _level(level_name, fallback)
    return levels


def _file_handler(formatter: logging.Formatter):
    log_file = _env("LOG_FILE")
    if not log_file:
        return None
    path = Path(log_file).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        path,
        maxBytes=_env_positive_int("LOG_ROTATE_BYTES", DEFAULT_ROTATE_BYTES),
        backupCount=_env_positive_int("LOG_BACKUP_COUNT", DEFAULT_BACKUP_COUNT),
        encoding="utf-8",
    )
    handler.setFormatter(formatter)
    return handler


def setup_logging() -> None:
    """
    Configure logging for the lyric sync engine. Safe to call again; handlers
    from a previous call are replaced.

    Env vars:
    - LYRICSYNC_LOG_LEVEL: DEBUG/INFO/WARNING/ERROR (default: INFO)
    - LYRICSYNC_LOG_FILE: optional path to a rotating log file
    - LYRICSYNC_LOG_ROTATE_BYTES / LYRICSYNC_LOG_BACKUP_COUNT: rotation limits
    - LYRICSYNC_LOG_MODULE_LEVELS: comma-separated module=LEVEL overrides
    - LYRICSYNC_TRACE: "1" logs every scroll decision at DEBUG
    """
    level = _level(_env("LOG_LEVEL", "INFO"), logging.INFO)
    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()

    # Millisecond timestamps: sync problems are a matter of frames.
    formatter = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d | %(levelname)-7s | %(name)s | %(message)s",
        datefmt="%H:%M:%S",
    )
    handlers = [logging.StreamHandler(), _file_handler(formatter)]
    for handler in filter(None, handlers):
        handler.setFormatter(formatter)
        root.addHandler(handler)

    overrides = _module_levels(level)
    if _env("TRACE") in ("1", "true", "yes"):
        overrides.setdefault(TRACE_LOGGER, logging.DEBUG)
    for module_name, module_level in overrides.items():
        logging.getLogger(module_name).setLevel(module_level)
        root.info("Log level override: %s=%s", module_name, logging.getLevelName(module_level))
