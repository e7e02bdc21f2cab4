"""
Structured JSON logging.

Logs go to stdout, one JSON object per line, so CloudWatch Logs Insights
(or any other collector) can filter on subject, decision, reason, etc.
Structured fields are attached with `extra={"auth_data": {...}}`:

    logger.warning("Request rejected", extra={"auth_data": {"request_id": "1f2e3d4c",
                   "decision": "denied", "reason": "no_matching_permission"}})

    {"timestamp": "2026-10-19 10:30:00,123", "level": "WARNING", "logger": "edge-authorizer",
     "message": "Request rejected", "request_id": "1f2e3d4c", "decision": "denied",
     "reason": "no_matching_permission"}
"""

import json
import logging
import sys


class JSONLogFormatter(logging.Formatter):
    """Formats log records as single-line JSON objects."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if hasattr(record, "auth_data"):
            log_entry.update(record.auth_data)
        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry, default=str)


def configure_logging(level: str = "info") -> None:
    """
    Route all logging through the JSON formatter on stdout.

    `force` is needed on Lambda, where the runtime installs its own root
    handler before our code is imported.
    """
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONLogFormatter())
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        handlers=[handler],
        force=True,
    )
