import json
import logging
import sys
from datetime import datetime, timezone

_RESERVED_KEYS = ("time", "level", "logger")


def _structured_fields(record: logging.LogRecord):
    """Return the fields of a dict or JSON-object message, or None for plain text."""
    if isinstance(record.msg, dict) and not record.args:
        return dict(record.msg)
    message = record.getMessage()
    if not message.startswith("{"):
        return None
    try:
        fields = json.loads(message)
    except ValueError:
        return None
    return fields if isinstance(fields, dict) else None


class JsonLineFormatter(logging.Formatter):
    """
    Render each record as one JSON object.

    Structured messages (the `json.dumps({...})` audit events) are merged into
    the top level instead of being nested as an escaped string.
    """

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "time": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
        }
        fields = _structured_fields(record)
        if fields is None:
            payload["message"] = record.getMessage()
        else:
            for key, value in fields.items():
                payload[f"field_{key}" if key in _RESERVED_KEYS else key] = value
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def configure_logging(level: str = "INFO") -> None:
    """Send every record to stdout as one JSON object per line."""
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonLineFormatter())
    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(level.upper())
