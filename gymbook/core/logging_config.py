"""Logging setup for the booking backend.

Handlers and levels come from ``gymbook.core.config``; modules obtain
loggers through :func:`get_logger` so everything lives under ``gymbook.*``.
"""
import logging
import logging.handlers
import re
import sys
from pathlib import Path
from typing import List, Optional

from gymbook.core import config

_MASKS = [
    (re.compile(r'eyJ[\w-]*\.[\w-]*\.[\w-]*'), '[JWT]'),
    (re.compile(r'Bearer\s+[\w.-]+', re.IGNORECASE), 'Bearer [TOKEN]'),
    (re.compile(r'(\+98|0098|0)9\d{9}'), '[PHONE]'),
    (re.compile(r'(reference_number|referenceNumber)(["\s]*[:=]["\s]*)[^,}\s]+'), r'\1\2[HIDDEN]'),
]

_TEXT_FORMAT = '%(asctime)s %(levelname)-7s [%(name)s] %(message)s'
_JSON_FORMAT = (
    '{"ts": "%(asctime)s", "level": "%(levelname)s", "logger": "%(name)s", '
    '"func": "%(funcName)s", "line": %(lineno)d, "msg": "%(message)s"}'
)

_MAX_LOG_BYTES = 10 * 1024 * 1024


def mask_sensitive(text: str) -> str:
    for pattern, replacement in _MASKS:
        text = pattern.sub(replacement, text)
    return text


class SecurityFilter(logging.Filter):
    """Rewrites records so tokens, phones and payment references never reach a handler."""

    def filter(self, record: logging.LogRecord) -> bool:
        # Render first so values passed as %-args are masked too
        record.msg = mask_sensitive(record.getMessage())
        record.args = None
        return True


def _level(name: str, fallback: int) -> int:
    return getattr(logging, name.upper(), fallback)


def _build_handlers(formatter: logging.Formatter, level: int) -> List[logging.Handler]:
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]

    if config.LOG_FILE_PATH:
        path = Path(config.LOG_FILE_PATH)
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            logging.handlers.RotatingFileHandler(path, maxBytes=_MAX_LOG_BYTES, backupCount=5)
        )

    security_filter = SecurityFilter() if config.ENABLE_SECURITY_FILTER else None
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        if security_filter:
            handler.addFilter(security_filter)
    return handlers


def setup_logging() -> logging.Logger:
    """Install stdout (and optional rotating file) handlers on the root logger."""
    level = _level(config.LOG_LEVEL, logging.INFO)
    formatter = logging.Formatter(_JSON_FORMAT if config.LOG_FORMAT == "json" else _TEXT_FORMAT)

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    for handler in _build_handlers(formatter, level):
        root.addHandler(handler)

    logging.getLogger("sqlalchemy.engine").setLevel(_level(config.SQL_LOG_LEVEL, logging.WARNING))
    logging.getLogger("gymbook").setLevel(level)

    root.info(
        "Logging ready level=%s sql=%s format=%s file=%s",
        config.LOG_LEVEL,
        config.SQL_LOG_LEVEL,
        config.LOG_FORMAT,
        config.LOG_FILE_PATH or "-",
    )
    return root


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(f"gymbook.{name}")


def log_security_event(event_type: str, details: str, level: str = "WARNING", user_id: Optional[int] = None):
    """Forbidden access, rejected tokens and similar go to ``gymbook.security``."""
    who = f" user={user_id}" if user_id is not None else ""
    get_logger("security").log(
        _level(level, logging.WARNING), "%s%s: %s", event_type, who, details
    )
