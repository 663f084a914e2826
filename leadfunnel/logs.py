"""
Logging setup
=============
Every module logs through logging.getLogger(__name__).
install_logging() decides how records leave the process.
"""

import datetime
import json
import logging
import sys
import traceback

from .config import LoggingSettings

# Attributes every LogRecord carries; anything else came in through `extra=`.
_RESERVED = set(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


def _safe_to_json(obj) -> str:
    try:
        return json.dumps(obj, ensure_ascii=False, default=str)
    except (TypeError, ValueError):
        return json.dumps({"unserializable": str(obj)}, ensure_ascii=False)


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        base = {
            "timestamp": datetime.datetime.fromtimestamp(record.created, datetime.timezone.utc)
            .isoformat(timespec="milliseconds")
            .replace("+00:00", "Z"),
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "funcName": record.funcName,
            "lineno": record.lineno,
        }
        for k, v in record.__dict__.items():
            if k.startswith("_") or k in base or k in _RESERVED:
                continue
            base[k] = v
        if record.exc_info:
            base["exc_info"] = "".join(traceback.format_exception(*record.exc_info))
        return _safe_to_json(base)


def install_logging(settings: LoggingSettings | None = None) -> logging.Logger:
    """Replace the root handlers with a single stderr handler."""
    settings = settings or LoggingSettings()
    root = logging.getLogger()
    root.setLevel(settings.level.upper())
    handler = logging.StreamHandler(stream=sys.stderr)
    if settings.structured:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)-7s %(name)s: %(message)s"))
    root.handlers[:] = [handler]
    logging.getLogger("httpx").setLevel(logging.WARNING)
    return root
