"""
Structured JSON logging for the exporter.

Every record is written as one JSON line. Besides ``timestamp``,
``level``, ``logger`` and ``message``, each line names the ``thread``
it came from, which tells the poll thread apart from the ``hub-fetch``
workers and the scrape handlers. A formatted traceback is added as
``exc_info`` when one is attached.

Prometheus scrapes every few seconds, so uvicorn's per-request access
log is only let through at DEBUG.

CHANGELOG:
- 2026-10-19: Initial creation
- 2026-10-19: Thread name and traceback fields, uvicorn access log gating

TODO:
- None
"""

import json
import logging
from datetime import UTC, datetime

# Loggers that emit one line per scrape request.
_ACCESS_LOGGERS: tuple[str, ...] = ("uvicorn.access",)


class JSONFormatter(logging.Formatter):
    """Render a log record as a single-line JSON object."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "thread": record.threadName,
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def setup_logging(level: int = logging.INFO) -> None:
    """Install a single JSON ``StreamHandler`` on the root logger.

    Existing root handlers are removed. Scrape access logs are raised to
    WARNING unless *level* is ``logging.DEBUG``.

    Args:
        level: Root logging level; DEBUG turns on fetch and cycle traces.
    """
    root = logging.getLogger()
    root.setLevel(level)
    for existing in root.handlers[:]:
        root.removeHandler(existing)

    handler = logging.StreamHandler()
    handler.setFormatter(JSONFormatter())
    root.addHandler(handler)

    access_level = logging.DEBUG if level <= logging.DEBUG else logging.WARNING
    for name in _ACCESS_LOGGERS:
        logging.getLogger(name).setLevel(access_level)
