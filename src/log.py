"""
Structured JSON logging.

Every log line is a single JSON object so that log collectors can parse and
index the fields (event, status, request_id, tool, ...). Example output:

    {"timestamp": "2026-02-06 10:30:00,123", "level": "INFO", "logger": "legifrance.auth",
     "message": "OAuth token obtained", "event": "oauth_response", "status": 200}

Logs go to stderr, never stdout: with the stdio transport, stdout carries the
MCP protocol messages and anything else written there corrupts the stream.

Structured fields are attached with the `log_data` extra:

    logger.info("Search succeeded", extra={"log_data": {"event": "api_response"}})
"""

import json
import logging
import sys

LOGGER_NAME = "legifrance"


class JSONLogFormatter(logging.Formatter):
    """Formats log records as single-line JSON objects."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        # Merge any extra fields passed via logger.info("msg", extra={"log_data": {...}})
        if hasattr(record, "log_data"):
            log_entry.update(record.log_data)
        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)
        # default=str keeps non-JSON values (e.g. httpx headers) loggable
        return json.dumps(log_entry, ensure_ascii=False, default=str)


def configure_logging(level: str = "info") -> logging.Logger:
    """
    Install the JSON formatter on a stderr handler and return the app logger.

    Calling it again replaces the previous handler instead of stacking a
    second one.
    """
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JSONLogFormatter())

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        handlers=[handler],
        force=True,
    )
    return logging.getLogger(LOGGER_NAME)


def get_logger(name: str) -> logging.Logger:
    """Return a child of the application logger, e.g. get_logger("auth")."""
    return logging.getLogger(f"{LOGGER_NAME}.{name}")
