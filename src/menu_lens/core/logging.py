"""Structured logging configuration for the menu analysis service.

JSON lines for log aggregation carry the analysis fields that
``log_event`` attaches; the colored formatter is for local runs.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from typing import Any


class JSONFormatter(logging.Formatter):
    """One JSON object per record, tagged with the service name."""

    # Analysis fields copied from ``extra`` when present and not None
    EXTRA_KEYS = (
        "event",
        "item_name",
        "items_count",
        "images_found",
        "failure_kind",
        "duration_ms",
        "status_code",
    )

    def __init__(self, service: str = "menu-lens"):
        super().__init__()
        self.service = service

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(UTC).isoformat(),
            "service": self.service,
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for key in self.EXTRA_KEYS:
            value = getattr(record, key, None)
            if value is not None:
                log_data[key] = value

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, ensure_ascii=False, default=str)


class PrettyFormatter(logging.Formatter):
    """Colored single-line records for local runs of the CLI and server."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, "")
        timestamp = datetime.now(UTC).strftime("%H:%M:%S")
        level = f"{color}{record.levelname:8}{self.RESET}"
        logger_name = record.name.removeprefix("menu_lens.")[:20].ljust(20)
        output = f"{timestamp} | {level} | {logger_name} | {record.getMessage()}"

        if record.exc_info:
            output += f"\n{self.formatException(record.exc_info)}"

        return output


# Third-party loggers capped at these levels
NOISY_LOGGERS = {"httpx": logging.WARNING, "httpcore": logging.WARNING, "openai": logging.WARNING, "PIL": logging.INFO}


def setup_logging(*, level: str = "INFO", json_format: bool = False) -> None:
    """Install a single stdout handler on the root logger.

    Args:
        level: Minimum log level name (DEBUG, INFO, WARNING, ...)
        json_format: JSON lines when True, colored lines otherwise
    """
    numeric_level = getattr(logging, level.upper())
    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(numeric_level)
    handler.setFormatter(JSONFormatter() if json_format else PrettyFormatter())
    root_logger.addHandler(handler)

    for name, noisy_level in NOISY_LOGGERS.items():
        logging.getLogger(name).setLevel(noisy_level)


LOG_EVENT_TITLES: dict[str, str] = {
    "analysis_request_received": "📩 Analysis: request received",
    "analysis_upstream_ok": "🧠 Analysis: model answered",
    "analysis_parse_failed": "🧾 Analysis: no usable item list",
    "analysis_done": "🏁 Analysis: done",
    "preprocess_done": "🗜️ Preprocess: image encoded",
    "enrichment_started": "🔎 Enrichment: fetching images",
    "enrichment_item_found": "✓ Enrichment: image found",
    "enrichment_item_missing": "✗ Enrichment: no image",
    "enrichment_item_error": "✗ Enrichment: lookup failed",
    "enrichment_done": "🖼️ Enrichment: complete",
}


def log_event(
    logger: logging.Logger,
    *,
    event: str,
    level: str | None = None,
    **kwargs: Any,
) -> None:
    """Structured event logging helper with emoji formatting.

    The message is the emoji title from LOG_EVENT_TITLES followed by the
    context fields as ``key=value`` pairs; the same fields go to ``extra``.
    """
    lvl = (level or "info").lower()
    log_fn = getattr(logger, lvl, logger.info)

    title = LOG_EVENT_TITLES.get(event, event)
    details = " ".join(f"{key}={value}" for key, value in kwargs.items() if value is not None)
    message = f"{title} | {details}" if details else title

    log_fn(message, extra={"event": event, **kwargs})


def safe_preview(value: Any, max_len: int = 120) -> str:
    """Return a safe string preview of value."""
    if value is None:
        return ""
    text = str(value)
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."
