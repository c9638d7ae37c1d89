"""Logging utilities for tabwright.

Console output goes to stderr at ``TABWRIGHT_LOG_LEVEL`` (WARNING by
default). ``init_logger(log_dir)`` adds a daily debug file whose lines carry
the record's ``extra`` fields as JSON. Credential-looking values are masked
before anything is written.
"""

import json
import logging
import os
import re
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

# Attributes every LogRecord has; anything else came in through ``extra``.
_STANDARD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}

_SECRET_FIELDS = frozenset(
    {"api_key", "apikey", "credential", "authorization", "x-api-key", "token", "key"}
)
_SECRET_QUERY_RE = re.compile(r"([?&](?:key|api_key|token)=)[^&\s]+", re.IGNORECASE)
_BEARER_RE = re.compile(r"(Bearer\s+)[A-Za-z0-9._\-]+")
MASK = "***"


def redact(text: str) -> str:
    """Mask credentials embedded in URLs and auth headers."""
    text = _SECRET_QUERY_RE.sub(rf"\1{MASK}", text)
    return _BEARER_RE.sub(rf"\1{MASK}", text)


def _context_fields(record: logging.LogRecord) -> Dict[str, Any]:
    fields: Dict[str, Any] = {}
    for name, value in record.__dict__.items():
        if name in _STANDARD_ATTRS or name.startswith("_"):
            continue
        if name.lower() in _SECRET_FIELDS:
            value = MASK
        elif isinstance(value, str):
            value = redact(value)
        fields[name] = value
    return fields


class StructuredFormatter(logging.Formatter):
    """File formatter: UTC timestamp, level, message, then ``extra`` as JSON."""

    def formatTime(self, record: logging.LogRecord, datefmt: Optional[str] = None) -> str:
        stamp = datetime.fromtimestamp(record.created, tz=timezone.utc)
        return stamp.strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"

    def format(self, record: logging.LogRecord) -> str:
        line = redact(super().format(record))
        fields = _context_fields(record)
        if not fields:
            return line
        try:
            payload = json.dumps(fields, sort_keys=True, ensure_ascii=True, default=str)
        except (TypeError, ValueError):
            payload = str(fields)
        return f"{line} | {payload}"


class ConsoleFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        return redact(super().format(record))


class TabwrightLogger:
    """Thin wrapper over the ``tabwright`` stdlib logger."""

    def __init__(self, name: str = "tabwright", log_dir: Optional[Path] = None):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(logging.DEBUG)
        self.logger.propagate = False
        self.log_file: Optional[Path] = None

        if not any(getattr(h, "_tabwright_console", False) for h in self.logger.handlers):
            level_name = os.getenv("TABWRIGHT_LOG_LEVEL", "WARNING").upper()
            console = logging.StreamHandler(sys.stderr)
            console.setLevel(getattr(logging, level_name, logging.WARNING))
            console.setFormatter(ConsoleFormatter("%(levelname)s: %(message)s"))
            console._tabwright_console = True  # type: ignore[attr-defined]
            self.logger.addHandler(console)

        if log_dir:
            self.log_file = self._open_log_file(log_dir)

    def _open_log_file(self, log_dir: Path) -> Path:
        log_dir.mkdir(parents=True, exist_ok=True)
        log_file = log_dir / f"tabwright_{datetime.now().strftime('%Y%m%d')}.log"
        for handler in list(self.logger.handlers):
            if isinstance(handler, logging.FileHandler):
                if Path(handler.baseFilename) == log_file.resolve():
                    return log_file
                self.logger.removeHandler(handler)
                handler.close()
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(StructuredFormatter("%(asctime)s [%(levelname)s] %(message)s"))
        self.logger.addHandler(file_handler)
        return log_file

    def debug(self, message: str, *args: Any, **kwargs: Any) -> None:
        self.logger.debug(message, *args, **kwargs)

    def info(self, message: str, *args: Any, **kwargs: Any) -> None:
        self.logger.info(message, *args, **kwargs)

    def warning(self, message: str, *args: Any, **kwargs: Any) -> None:
        self.logger.warning(message, *args, **kwargs)


_logger: Optional[TabwrightLogger] = None


def get_logger() -> TabwrightLogger:
    """Get the process-wide logger, creating a console-only one on first use."""
    global _logger
    if _logger is None:
        _logger = TabwrightLogger()
    return _logger


def init_logger(log_dir: Optional[Path] = None) -> TabwrightLogger:
    """Reconfigure the process-wide logger, optionally adding a daily log file."""
    global _logger
    _logger = TabwrightLogger(log_dir=log_dir)
    return _logger


def default_log_dir() -> Path:
    return Path.home() / ".tabwright" / "logs"
