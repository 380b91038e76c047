"""Logging setup: captured-content redaction and config-driven verbosity.

Captured activity such as selected text or typed characters flows
through events and debug logs.  :class:`SanitizingFilter` redacts those
values before they reach any handler, and :func:`apply_log_level` maps the
``logLevel`` general setting onto the ``redeye`` logger hierarchy.
"""

from __future__ import annotations

import logging
import re
from typing import Final

from redeye.core.types import TRACE, LogLevel

APP_LOGGER_NAME: Final[str] = "redeye"

_SENSITIVE_KEYS: Final[tuple[str, ...]] = (
    "contextText",
    "context_text",
    "keyboard_character",
    "selected_text",
    "clipboard_content",
    "typed_text",
    "browser_url",
    "url",
)

_REDACTED: Final[str] = "[REDACTED]"

_SENSITIVE_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"(?P<key>\b(?:"
    + "|".join(re.escape(k) for k in _SENSITIVE_KEYS)
    + r"))\"?\s*[=:]\s*(?P<value>\"(?:[^\"\\]|\\.)*\"|'[^']*'|[^\s,}]+)",
    re.IGNORECASE,
)

_LOG_FORMAT: Final[str] = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"

logging.addLevelName(TRACE, "TRACE")


def redact_message(message: str) -> str:
    """Replace sensitive ``key=value``, ``key: value`` or ``"key": value`` values.

    Args:
        message: Raw log message string.

    Returns:
        Message with sensitive values replaced by ``[REDACTED]``.
    """

    def _sub(m: re.Match[str]) -> str:
        prefix = m.group(0)[: m.start("value") - m.start()]
        return f"{prefix}{_REDACTED}"

    return _SENSITIVE_PATTERN.sub(_sub, message)


class SanitizingFilter(logging.Filter):
    """A :class:`logging.Filter` that rewrites log records to strip captured content.

    Attach to any logger or handler via :func:`install_sanitizing_filter`
    to ensure sensitive key/value pairs never reach log output.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        if record.args:
            record.msg = redact_message(record.getMessage())
            record.args = None
        else:
            record.msg = redact_message(str(record.msg))
        return True


def install_sanitizing_filter(
    logger: logging.Logger | None = None,
    *,
    handler_level: bool = False,
) -> SanitizingFilter:
    """Attach a :class:`SanitizingFilter` to *logger* (or the root logger).

    Args:
        logger: Target logger.  Defaults to the root logger if ``None``.
        handler_level: If ``True``, install on each handler of *logger*
            instead of the logger itself.

    Returns:
        The filter instance that was installed (useful for later removal).
    """
    filt = SanitizingFilter()
    target = logger or logging.getLogger()

    if handler_level:
        for handler in target.handlers:
            handler.addFilter(filt)
    else:
        target.addFilter(filt)

    return filt


def configure_logging(level: LogLevel | str = LogLevel.info) -> None:
    """Install a stderr handler on the root logger with redaction enabled.

    Filters attached to a logger do not see records propagated from child
    loggers, so the filter is installed at handler level.
    """
    if isinstance(level, str):
        level = LogLevel[level.lower()]
    logging.basicConfig(format=_LOG_FORMAT, level=level.to_logging_level())
    install_sanitizing_filter(handler_level=True)
    apply_log_level(level)


def apply_log_level(level: LogLevel | None) -> bool:
    """Set the ``redeye`` logger threshold from a configured :class:`LogLevel`.

    ``None`` leaves the current level untouched.

    Returns:
        ``True`` if the effective level changed.
    """
    if level is None:
        return False
    app_logger = logging.getLogger(APP_LOGGER_NAME)
    new_level = level.to_logging_level()
    if app_logger.level == new_level:
        return False
    app_logger.setLevel(new_level)
    app_logger.info("Log level set to %s", level.name)
    return True
