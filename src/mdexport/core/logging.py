"""Logging helpers for the mdexport library and CLI.

Library modules log through children of the ``mdexport`` logger and never
install handlers themselves. The CLI calls :func:`configure_logger` once per
run; records are written as JSON lines so conversions can be traced by
``stage`` and ``format`` after the fact.
"""

from __future__ import annotations

import json
import logging
import sys
import tempfile
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Callable, Optional

__all__ = [
    "LOGGER_NAME",
    "JsonLogFormatter",
    "configure_logger",
    "get_logger",
]

LOGGER_NAME = "mdexport"
_FALLBACK_DIR_NAME = "mdexport-logs"

_FILE_MARKER = "_mdexport_file"
_CONSOLE_MARKER = "_mdexport_console"

_HandlerFilter = Callable[[logging.Handler], bool]

# Pipeline fields promoted from ``extra`` to the top level of each line.
_PROMOTED_FIELDS = ("stage", "format")


class JsonLogFormatter(logging.Formatter):
    """Emit log records as structured JSON lines."""

    _RESERVED = frozenset(
        logging.LogRecord("", logging.INFO, "", 0, "", None, None).__dict__
    ) | {"message", "asctime", "taskName"}

    def format(self, record: logging.LogRecord) -> str:  # noqa: D401
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        extras: dict[str, Any] = {}
        for key, value in record.__dict__.items():
            if key in self._RESERVED:
                continue
            if key in _PROMOTED_FIELDS:
                payload[key] = _jsonable(value)
            else:
                extras[key] = _jsonable(value)
        if extras:
            payload["extra"] = extras
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        if record.stack_info:
            payload["stack"] = record.stack_info
        return json.dumps(payload, ensure_ascii=True)


def get_logger(suffix: Optional[str] = None) -> logging.Logger:
    """Return the package logger or one of its children."""

    if not suffix:
        return logging.getLogger(LOGGER_NAME)
    return logging.getLogger(f"{LOGGER_NAME}.{suffix}")


def configure_logger(
    name: str = LOGGER_NAME,
    *,
    log_dir: Optional[Path] = None,
    level: str = "INFO",
    verbose: bool = False,
    max_bytes: int = 5 * 1024 * 1024,
    backup_count: int = 3,
    filename: Optional[str] = None,
) -> tuple[logging.Logger, Optional[Path]]:
    """Attach mdexport's handlers to ``name`` and return the logger.

    A rotating JSON-lines file handler is installed when ``log_dir`` is
    given; ``verbose`` adds a plain stderr handler. Calling this again for
    the same logger reuses the existing handlers instead of stacking them.
    The second item of the result is the log file actually written to,
    which may sit in a temp directory when ``log_dir`` is not writable.
    """

    logger = logging.getLogger(name)
    logger.propagate = False
    logger.setLevel(logging.DEBUG)
    _drop_handlers(logger, lambda h: isinstance(h, logging.NullHandler))

    file_path: Optional[Path] = None
    if log_dir is None:
        _drop_handlers(logger, _marked(_FILE_MARKER))
    else:
        log_name = filename or f"{name.rsplit('.', 1)[-1]}.log"
        handler, file_path = _file_handler(
            logger,
            _touch(_writable_dir(Path(log_dir)) / log_name),
            max_bytes=max_bytes,
            backup_count=backup_count,
        )
        handler.setLevel(logging.DEBUG if verbose else _coerce_level(level))

    if verbose:
        _console_handler(logger)
    else:
        _drop_handlers(logger, _marked(_CONSOLE_MARKER))

    if not logger.handlers:
        logger.addHandler(logging.NullHandler())
    return logger, file_path


def _coerce_level(level: str) -> int:
    numeric = logging.getLevelName(str(level).upper())
    return numeric if isinstance(numeric, int) else logging.INFO


def _marked(marker: str) -> _HandlerFilter:
    return lambda handler: getattr(handler, marker, False)


def _find_handler(
    logger: logging.Logger, marker: str
) -> Optional[logging.Handler]:
    matches = (h for h in logger.handlers if getattr(h, marker, False))
    return next(matches, None)


def _drop_handlers(logger: logging.Logger, predicate: _HandlerFilter) -> None:
    for handler in [h for h in logger.handlers if predicate(h)]:
        logger.removeHandler(handler)
        handler.close()


def _file_handler(
    logger: logging.Logger,
    path: Path,
    *,
    max_bytes: int,
    backup_count: int,
) -> tuple[logging.Handler, Path]:
    existing = _find_handler(logger, _FILE_MARKER)
    if existing is not None:
        current = Path(existing.baseFilename)  # type: ignore[attr-defined]
        if current.resolve() == path.resolve():
            return existing, current
        _drop_handlers(logger, _marked(_FILE_MARKER))

    try:
        handler = RotatingFileHandler(
            path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
    except PermissionError:
        path = _touch(_writable_dir(_fallback_log_dir()) / path.name)
        handler = RotatingFileHandler(
            path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
    handler.setFormatter(JsonLogFormatter())
    setattr(handler, _FILE_MARKER, True)
    logger.addHandler(handler)
    return handler, Path(path)


def _console_handler(logger: logging.Logger) -> None:
    console = _find_handler(logger, _CONSOLE_MARKER)
    if console is None:
        console = logging.StreamHandler(stream=sys.stderr)
        console.setFormatter(
            logging.Formatter("%(levelname)s %(name)s: %(message)s")
        )
        setattr(console, _CONSOLE_MARKER, True)
        logger.addHandler(console)
    console.setLevel(logging.DEBUG)


def _jsonable(value: Any) -> Any:
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, dict):
        return {str(key): _jsonable(val) for key, val in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_jsonable(item) for item in value]
    value_attr = getattr(value, "value", None)
    if isinstance(value_attr, str):
        # Enum members such as OutputFormat.PDF.
        return value_attr
    return repr(value)


def _writable_dir(log_dir: Path) -> Path:
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
    except PermissionError:
        log_dir = _fallback_log_dir()
        log_dir.mkdir(parents=True, exist_ok=True)
    return log_dir


def _touch(path: Path) -> Path:
    try:
        path.touch(exist_ok=True)
    except PermissionError:  # pragma: no cover - depends on filesystem
        path = _writable_dir(_fallback_log_dir()) / path.name
        path.touch(exist_ok=True)
    return path


def _fallback_log_dir() -> Path:
    return Path(tempfile.gettempdir()) / _FALLBACK_DIR_NAME
