import contextvars
import json
import os
from datetime import datetime, timezone
from typing import Optional, Any

# Context variable to hold the requestId, accessible throughout the call stack
REQUEST_ID_CTX: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "request_id", default=None
)

LEVELS = {"DEBUG": 10, "INFO": 20, "WARNING": 30, "ERROR": 40}

_threshold = LEVELS.get(os.getenv("LOG_LEVEL", "INFO").upper(), 20)


def get_request_id() -> Optional[str]:
    """Retrieves the current request ID from context."""
    return REQUEST_ID_CTX.get()


def set_log_level(level: str) -> None:
    """Sets the minimum level written by audit_log."""
    global _threshold
    _threshold = LEVELS.get(level.upper(), LEVELS["INFO"])


def audit_log(level: str = "INFO", **kwargs: Any) -> None:
    """Prints a structured log line to stdout."""
    if LEVELS.get(level, LEVELS["INFO"]) < _threshold:
        return

    log_entry = {
        "requestId": get_request_id() or kwargs.pop("request_id", "N/A"),
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "level": level,
    }
    kwargs.pop("request_id", None)
    log_entry.update(kwargs)
    print(json.dumps(log_entry, default=str))
