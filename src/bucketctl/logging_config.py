"""Structured logging configuration for bucketctl.

Logs always go to stderr; stdout is reserved for command results.
"""

import json
import logging
import sys
from datetime import datetime, timezone

# bucketctl context attached via ``extra=``; copied into JSON lines when present
_EXTRA_FIELDS = (
    "command",
    "operation",
    "bucket",
    "prefix",
    "key",
    "path",
    "size",
    "batch_index",
    "deleted_count",
    "upload_id",
    "part_count",
    "duration_ms",
)


class JSONFormatter(logging.Formatter):
    """Formats log records as single-line JSON objects.

    Fields: timestamp, level, logger, message, plus any extras.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info and record.exc_info[1] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        for key in _EXTRA_FIELDS:
            val = getattr(record, key, None)
            if val is not None:
                entry[key] = val
        return json.dumps(entry, default=str)


def configure_logging(level: str = "WARNING", fmt: str = "text") -> None:
    """Configure root logging with the specified level and format.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        fmt: 'text' for human-readable lines, 'json' for structured output.
    """
    numeric_level = getattr(logging, level.upper(), logging.WARNING)
    root = logging.getLogger()
    root.setLevel(numeric_level)

    for handler in root.handlers[:]:
        root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(numeric_level)

    if fmt == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )

    root.addHandler(handler)

    # botocore is chatty at INFO
    if numeric_level > logging.DEBUG:
        logging.getLogger("botocore").setLevel(max(numeric_level, logging.WARNING))
        logging.getLogger("aiobotocore").setLevel(max(numeric_level, logging.WARNING))
