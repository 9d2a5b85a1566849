"""Logging setup: readable console output in dev, JSON lines in production.

Every record carries the correlation id of the update-check run (or other
operation) it belongs to, so interleaved lines of concurrent fetches can be
grouped again.
"""

import contextvars
import logging
import sys
import traceback
import uuid
from pathlib import Path
from typing import Any

from pythonjsonlogger import jsonlogger

from addonsync.config import Settings

# httpx logs one INFO line per request; an update check would drown in them.
QUIET_LOGGERS = ("httpx", "httpcore", "hpack", "asyncio")

# Hey future me, contextvars are copied into tasks created by asyncio.gather(), so
# setting the id once at the start of a run tags every fetch that run spawns.
correlation_id_var: contextvars.ContextVar[str] = contextvars.ContextVar(
    "correlation_id", default=""
)


def get_correlation_id() -> str:
    """Correlation id of the current context ("" outside any run)."""
    return correlation_id_var.get()


def set_correlation_id(correlation_id: str | None = None) -> str:
    """Bind a correlation id to the current context.

    Args:
        correlation_id: Id to bind; a new UUID4 when None

    Returns:
        The bound id
    """
    value = correlation_id if correlation_id is not None else str(uuid.uuid4())
    correlation_id_var.set(value)
    return value


class CorrelationIdFilter(logging.Filter):
    """Stamps record.correlation_id on every record passing the handler."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_correlation_id()
        return True


class CompactExceptionFormatter(logging.Formatter):
    """Console formatter that prints exception chains root-cause first.

    A failed fetch is typically httpx.ConnectError -> ManifestUnreachableError ->
    ReinstallAbortedError. Each link gets one line plus our own frames only;
    httpx/httpcore internals are dropped.
    """

    def formatException(self, ei: Any) -> str:
        exc_value = ei[1]
        if exc_value is None:
            return ""

        chain: list[BaseException] = []
        link: BaseException | None = exc_value
        while link is not None and link not in chain:
            chain.insert(0, link)
            link = link.__cause__ or link.__context__

        lines: list[str] = []
        for exc in chain:
            lines.append(f"╰─► {type(exc).__name__}: {exc}")
            lines.extend(self._own_frames(exc))
        return "\n".join(lines)

    @staticmethod
    def _own_frames(exc: BaseException) -> list[str]:
        if exc.__traceback__ is None:
            return []
        frames: list[str] = []
        for frame in traceback.extract_tb(exc.__traceback__):
            if "site-packages" in frame.filename or "addonsync" not in frame.filename:
                continue
            frames.append(f"    {Path(frame.filename).name}:{frame.lineno} in {frame.name}")
            if frame.line:
                frames.append(f"      {frame.line.strip()}")
        return frames


class CustomJsonFormatter(jsonlogger.JsonFormatter):  # type: ignore[misc]
    """One JSON object per line with stable top-level keys."""

    def add_fields(
        self,
        log_record: dict[str, Any],
        record: logging.LogRecord,
        message_dict: dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record.update(
            timestamp=self.formatTime(record, self.datefmt),
            level=record.levelname,
            logger=record.name,
            location=f"{record.module}:{record.lineno}",
        )
        correlation_id = getattr(record, "correlation_id", "")
        if correlation_id:
            log_record["correlation_id"] = correlation_id
        if record.exc_info:
            log_record["exc_info"] = self.formatException(record.exc_info)


def _build_formatter(json_format: bool) -> logging.Formatter:
    if json_format:
        return CustomJsonFormatter("%(message)s", datefmt="%Y-%m-%dT%H:%M:%S")
    return CompactExceptionFormatter(
        fmt="%(asctime)s │ %(levelname)-7s │ %(name)s │ %(message)s",
        datefmt="%H:%M:%S",
    )


def configure_logging(
    log_level: str = "INFO",
    json_format: bool = False,
    app_name: str = "addonsync",
) -> None:
    """Install a single stdout handler on the root logger.

    Safe to call more than once: existing root handlers are replaced.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL
        json_format: JSON lines instead of the console format
        app_name: Reported in the startup record
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.addFilter(CorrelationIdFilter())
    handler.setFormatter(_build_formatter(json_format))

    root_logger = logging.getLogger()
    for existing in list(root_logger.handlers):
        root_logger.removeHandler(existing)
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).info(
        "Logging configured for %s (level=%s, json=%s)",
        app_name,
        logging.getLevelName(level),
        json_format,
    )


def configure_logging_from_settings(settings: Settings) -> None:
    """configure_logging() with the values from Settings."""
    configure_logging(
        log_level=settings.log_level,
        json_format=settings.log_json,
        app_name=settings.app_name,
    )
