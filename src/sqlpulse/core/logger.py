"""
Structured logging with key=value and JSON output support.

Wraps the standard library ``logging`` module so that every pipeline event
is a short snake_case message followed by structured fields:

    info sqlpulse.loader target_completed server=db1.internal database=demo

Two output modes are supported: human-readable key=value pairs (default)
and one JSON object per line for log aggregators.

Fields named ``password``, ``secret``, ``token`` or ``credential`` (or ending
in ``_password`` and the like) are replaced with ``[redacted]`` before they
reach any handler. Pipelines log the target server and database, never the
resolved credentials.

Examples:
    ```python
    from sqlpulse.core.logger import Logger

    logger = Logger("loader")
    logger.info("target_started", server="db1", database="demo")
    # Output: target_started server=db1 database=demo
    ```
"""

import datetime
import json
import logging
from typing import Any, ClassVar


REDACTED = "[redacted]"

_SENSITIVE_NAMES = frozenset({"password", "passwd", "secret", "token", "credential", "credentials"})


def is_sensitive_key(key: str) -> bool:
    """Return True if a field name carries credential material.

    Matches ``_SENSITIVE_NAMES`` either whole or as the last ``_``-separated
    part (``db_password``, ``api_token``). References to a secret, such as
    ``credential_ref``, are not sensitive.
    """
    lowered = key.lower()
    return lowered in _SENSITIVE_NAMES or lowered.rsplit("_", 1)[-1] in _SENSITIVE_NAMES


def format_kv_pairs(
    kwargs: dict[str, Any],
    max_value_length: int | None = 1000,
    prefix: str = " ",
) -> str:
    """Format a dictionary as space-separated key=value pairs.

    Values are truncated to ``max_value_length`` characters, and values
    containing whitespace, equals signs, or quotes are escaped and quoted.

    Args:
        kwargs: Key-value pairs to format.
        max_value_length: Maximum characters per value before truncation.
            Pass None to disable truncation.
        prefix: String prepended to the output (default: single space).

    Returns:
        Formatted string, e.g. ' key1=value1 key2="value with spaces"'.
        Returns empty string if kwargs is empty.
    """
    if not kwargs:
        return ""

    parts = []
    for k, v in kwargs.items():
        s = REDACTED if is_sensitive_key(k) else str(v)
        if max_value_length and len(s) > max_value_length:
            s = s[:max_value_length] + f"...<truncated {len(s) - max_value_length} chars>"
        if not s or " " in s or "=" in s or '"' in s or "'" in s:
            escaped = s.replace("\\", "\\\\").replace('"', '\\"')
            parts.append(f'{k}="{escaped}"')
        else:
            parts.append(f"{k}={s}")

    return prefix + " ".join(parts) if parts else ""


class StructuredFormatter(logging.Formatter):
    """Formats all log records as ``level name message key=value ...``.

    Reads structured data from the ``structured_kv`` extra field attached
    by [Logger][sqlpulse.core.logger.Logger]. Records from plain
    ``logging.getLogger()`` calls are emitted with the same prefix.
    """

    def format(self, record: logging.LogRecord) -> str:
        base = f"{record.levelname.lower()} {record.name} {record.getMessage()}"
        extra: dict[str, Any] = getattr(record, "structured_kv", {})
        if extra:
            base += format_kv_pairs(extra)
        if record.exc_info:
            base += "\n" + self.formatException(record.exc_info)
        return base


class Logger:
    """Structured logger that appends keyword arguments as extra fields.

    All public methods mirror the standard logging API with an added
    ``**kwargs`` parameter.

    Examples:
        ```python
        logger = Logger("sampler")
        logger.info("cycle_completed", targets=3, failed=0)
        # Output: cycle_completed targets=3 failed=0
        ```
    """

    _DEFAULT_MAX_VALUE_LENGTH: ClassVar[int] = 1000

    def __init__(
        self,
        name: str,
        *,
        json_output: bool = False,
        max_value_length: int | None = None,
    ) -> None:
        """Initialize a structured logger.

        Args:
            name: Logger name, typically the service name. Prefixed with
                ``sqlpulse.`` unless already qualified.
            json_output: If True, emit JSON objects instead of key=value pairs.
            max_value_length: Maximum character length for individual values
                before truncation. Defaults to 1000.
        """
        if max_value_length is None:
            max_value_length = self._DEFAULT_MAX_VALUE_LENGTH
        qualified = name if name.startswith("sqlpulse") else f"sqlpulse.{name}"
        self._logger = logging.getLogger(qualified)
        self._json_output = json_output
        self._max_value_length = max_value_length

    @property
    def name(self) -> str:
        return self._logger.name

    def _sanitize(self, kwargs: dict[str, Any]) -> dict[str, Any]:
        """Redact sensitive keys and truncate long values."""
        clean: dict[str, Any] = {}
        for k, v in kwargs.items():
            if is_sensitive_key(k):
                clean[k] = REDACTED
                continue
            s = str(v)
            if self._max_value_length and len(s) > self._max_value_length:
                clean[k] = (
                    s[: self._max_value_length]
                    + f"...<truncated {len(s) - self._max_value_length} chars>"
                )
            else:
                clean[k] = v
        return clean

    def _format_json(self, msg: str, level: str, kwargs: dict[str, Any]) -> str:
        """Format message and kwargs as a JSON string for cloud logging."""
        record = {
            "timestamp": datetime.datetime.now(datetime.UTC).isoformat(),
            "level": level,
            "service": self._logger.name,
            "message": msg,
            **self._sanitize(kwargs),
        }
        return json.dumps(record, default=str)

    def _make_extra(self, kwargs: dict[str, Any]) -> dict[str, Any]:
        if not kwargs:
            return {}
        return {"structured_kv": self._sanitize(kwargs)}

    def _log(self, level: int, level_name: str, msg: str, kwargs: dict[str, Any]) -> None:
        if self._json_output:
            self._logger.log(level, self._format_json(msg, level_name, kwargs))
        else:
            self._logger.log(level, msg, extra=self._make_extra(kwargs))

    def debug(self, msg: str, **kwargs: Any) -> None:
        """Log a DEBUG level message with optional key=value pairs."""
        self._log(logging.DEBUG, "debug", msg, kwargs)

    def info(self, msg: str, **kwargs: Any) -> None:
        """Log an INFO level message with optional key=value pairs."""
        self._log(logging.INFO, "info", msg, kwargs)

    def warning(self, msg: str, **kwargs: Any) -> None:
        """Log a WARNING level message with optional key=value pairs."""
        self._log(logging.WARNING, "warning", msg, kwargs)

    def error(self, msg: str, **kwargs: Any) -> None:
        """Log an ERROR level message with optional key=value pairs."""
        self._log(logging.ERROR, "error", msg, kwargs)

    def critical(self, msg: str, **kwargs: Any) -> None:
        """Log a CRITICAL level message with optional key=value pairs."""
        self._log(logging.CRITICAL, "critical", msg, kwargs)

    def exception(self, msg: str, **kwargs: Any) -> None:
        """Log an ERROR level message with exception traceback."""
        if self._json_output:
            self._logger.exception(self._format_json(msg, "error", kwargs))
        else:
            self._logger.exception(msg, extra=self._make_extra(kwargs))
