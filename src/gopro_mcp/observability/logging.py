"""Structured logging for gopro-mcp.

Thin layer over the standard logging module that lets every log call carry
key-value data alongside the message:

    logger = get_logger(__name__)
    logger.info("Camera connected", address="10.5.5.9", model="HD3.02")

Key-value data is rendered as ``key=value`` pairs by StructuredFormatter or
as top-level fields by JSONFormatter. LogContext attaches ambient values
(for example the camera address) to every record emitted inside a block.

Untrusted values (device responses, user-supplied option values) should be
passed as keyword data, never interpolated into the message, so a hostile
string cannot forge extra log lines.
"""

from __future__ import annotations

import contextvars
import json
import logging
import sys
import threading
from collections.abc import MutableMapping
from datetime import UTC, datetime
from typing import Any, cast

#: Name of the package root logger. All module loggers hang below it.
ROOT_LOGGER_NAME = "gopro_mcp"

_log_context: contextvars.ContextVar[dict[str, Any]] = contextvars.ContextVar(
    "gopro_log_context", default={}
)


# =============================================================================
# Logger
# =============================================================================


class StructuredLogger(logging.Logger):
    """Logger whose log methods accept arbitrary keyword data.

    The standard ``Logger.info(msg, *args, **kwargs)`` family forwards its
    keyword arguments straight to ``_log``; overriding ``_log`` is therefore
    enough to turn unknown keywords into structured data.

    Example:
        logger.warning("Poll failed", address="10.5.5.9", error="timeout")
    """

    def _log(
        self,
        level: int,
        msg: object,
        args: tuple[Any, ...] | MutableMapping[str, Any] | None = None,
        exc_info: Any = None,
        extra: dict[str, Any] | None = None,
        stack_info: bool = False,
        stacklevel: int = 1,
        **kwargs: Any,
    ) -> None:
        """Merge ambient context and keyword data into the record.

        Args:
            level: Numeric log level.
            msg: Log message (may contain % placeholders).
            args: % formatting arguments.
            exc_info: Exception info, True to capture the current one.
            extra: Extra record attributes; ``structured_data`` is set here.
            stack_info: Include the current stack in the record.
            stacklevel: Caller frames to skip. One is added for this frame.
            **kwargs: Structured key-value data. Explicit keys override
                values with the same name from an active LogContext.
        """
        structured_data = {**_log_context.get(), **kwargs}
        extra = dict(extra) if extra else {}
        extra["structured_data"] = structured_data
        super()._log(
            level,
            msg,
            args,
            exc_info=exc_info,
            extra=extra,
            stack_info=stack_info,
            stacklevel=stacklevel + 1,
        )


# =============================================================================
# Formatters
# =============================================================================


class StructuredFormatter(logging.Formatter):
    """Human-readable formatter: ``<base format> | key=value key=value``."""

    def __init__(
        self,
        fmt: str | None = None,
        datefmt: str | None = None,
        include_structured: bool = True,
    ) -> None:
        """Create the formatter.

        Args:
            fmt: Base format string. Defaults to
                ``%(asctime)s - %(name)s - %(levelname)s - %(message)s``.
            datefmt: Date format for ``%(asctime)s``.
            include_structured: Append key=value data after the message.
        """
        if fmt is None:
            fmt = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        super().__init__(fmt, datefmt)
        self.include_structured = include_structured

    def format(self, record: logging.LogRecord) -> str:
        """Format the record, appending structured data when present."""
        base = super().format(record)
        if not self.include_structured:
            return base

        structured = getattr(record, "structured_data", {})
        if not structured:
            return base

        pairs = " ".join(f"{k}={_format_value(v)}" for k, v in structured.items())
        return f"{base} | {pairs}"


class JSONFormatter(logging.Formatter):
    """One JSON object per line, structured data merged at top level.

    Fields: ``timestamp`` (ISO 8601, UTC), ``level``, ``logger``,
    ``message``, ``exception`` (only when exc_info is set), then every
    structured key. Values that json cannot encode fall back to ``str()``.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Serialize the record as a single JSON line."""
        log_dict: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        log_dict.update(getattr(record, "structured_data", {}))

        if record.exc_info:
            log_dict["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_dict, default=str)


def _format_value(value: Any) -> str:
    """Render one structured value for StructuredFormatter.

    None becomes ``null``, strings containing spaces are quoted, dicts and
    lists are JSON encoded, anything else goes through ``str()``.

    Example:
        >>> _format_value("HERO3 Black Edition")
        '"HERO3 Black Edition"'
        >>> _format_value({"CameraMode": "Video"})
        '{"CameraMode": "Video"}'
    """
    if value is None:
        return "null"
    if isinstance(value, str):
        if " " in value:
            return f'"{value}"'
        return value
    if isinstance(value, dict | list):
        return json.dumps(value, default=str)
    return str(value)


# =============================================================================
# Context Management
# =============================================================================


class LogContext:
    """Attach key-value pairs to every record logged inside a ``with`` block.

    Backed by contextvars so nested blocks merge (inner wins) and threads or
    tasks do not see each other's values.

    Example:
        with LogContext(address="10.5.5.9"):
            logger.info("Handshake started")  # includes address
    """

    def __init__(self, **kwargs: Any) -> None:
        self._kwargs = kwargs
        self._token: contextvars.Token[dict[str, Any]] | None = None

    def __repr__(self) -> str:
        return f"LogContext({self._kwargs!r})"

    def __enter__(self) -> LogContext:
        self._token = _log_context.set({**_log_context.get(), **self._kwargs})
        return self

    def __exit__(self, *args: Any) -> None:
        if self._token is not None:
            _log_context.reset(self._token)
            self._token = None


# =============================================================================
# Configuration
# =============================================================================

_configured = False
_config_lock = threading.Lock()


def configure_logging(
    level: int | str = logging.INFO,
    json_format: bool = False,
    stream: Any = None,
    include_structured: bool = True,
    force: bool = False,
) -> None:
    """Configure the ``gopro_mcp`` logger hierarchy.

    Installs a single stream handler on the package root logger and stops
    propagation to the interpreter root logger. Subsequent calls are no-ops
    unless ``force`` is set, which tears down the previous handler first.

    Args:
        level: Minimum level, as int or name ("DEBUG", "INFO", ...).
        json_format: Emit NDJSON instead of human-readable lines.
        stream: Destination stream. Defaults to sys.stderr, which keeps
            stdout free for the MCP stdio transport.
        include_structured: Append key=value data in text mode.
        force: Reconfigure even if already configured.

    Example:
        >>> import io
        >>> buffer = io.StringIO()
        >>> configure_logging(level="DEBUG", stream=buffer, force=True)
    """
    with _config_lock:
        if force:
            _reset_logging_impl()
        _configure_logging_impl(level, json_format, stream, include_structured)


def _configure_logging_impl(
    level: int | str = logging.INFO,
    json_format: bool = False,
    stream: Any = None,
    include_structured: bool = True,
) -> None:
    """Configure logging. Caller holds ``_config_lock``."""
    global _configured

    if _configured:
        return

    logging.setLoggerClass(StructuredLogger)

    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    formatter: logging.Formatter
    if json_format:
        formatter = JSONFormatter()
    else:
        formatter = StructuredFormatter(include_structured=include_structured)
    handler.setFormatter(formatter)

    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.setLevel(level)
    root.addHandler(handler)
    root.propagate = False

    _configured = True


def _reset_logging_impl() -> None:
    """Drop package handlers. Caller holds ``_config_lock``."""
    global _configured

    root = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()

    _configured = False


def reset_logging() -> None:
    """Return logging to the unconfigured state. Intended for tests."""
    with _config_lock:
        _reset_logging_impl()


def get_logger(name: str) -> StructuredLogger:
    """Return a StructuredLogger for ``name``, configuring defaults lazily.

    Loggers created before ``configure_logging()`` ran would be plain
    ``logging.Logger`` instances, so the first call configures logging with
    defaults (INFO, text, stderr) before fetching the logger.

    Args:
        name: Logger name, normally ``__name__``.

    Returns:
        Logger accepting keyword data on every log method.
    """
    if not _configured:
        with _config_lock:
            if not _configured:  # pragma: no branch
                _configure_logging_impl()

    return cast(StructuredLogger, logging.getLogger(name))
