"""Module entrypoint for python -m site_publisher."""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime

from site_publisher.cli import app

_RESERVED_ATTRS = frozenset(logging.makeLogRecord({}).__dict__) | {"message", "asctime"}


class JsonLogFormatter(logging.Formatter):
    """Format log records as JSON objects, including ``extra`` fields."""

    def format(self, record: logging.LogRecord) -> str:
        """Serialize a log record in JSON format."""
        payload = {
            "timestamp": datetime.now(tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and key not in payload:
                payload[key] = value
        return json.dumps(payload, default=str)


def _configure_json_logging() -> None:
    """Configure root logger to use JSON formatter when module is invoked directly."""
    root = logging.getLogger()
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(JsonLogFormatter())
        root.addHandler(handler)
        root.setLevel(logging.INFO)


if __name__ == "__main__":
    _configure_json_logging()
    app(prog_name="site-publisher")
