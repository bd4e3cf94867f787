"""
Logging setup for the orangerides namespace.

- One handler on the "orangerides" logger: JSON lines in production,
  a single readable line elsewhere.
- request_id lives in a ContextVar set by RequestIdMiddleware and is stamped
  onto every record by RequestIdFilter.
- log_event() is the helper used by the payment, subscription and listing
  services. Values under secret-looking keys are masked before they reach
  a handler.
"""

import json
import logging
import os
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional

LOGGER_NAME = "orangerides"

request_id_ctx_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

# Copied from the record into JSON output when set
_CONTEXT_FIELDS = (
    "request_id",
    "owner_id",
    "event_type",
    "error_code",
    "reference",
    "plan_key",
    "amount",
    "status",
    "method",
    "path",
    "latency_bucket",
)

_SECRET_MARKERS = ("secret", "password", "authorization", "signature", "api_key", "admin_key")

_MAX_VALUE_LEN = 500


def get_request_id(default: Optional[str] = None) -> Optional[str]:
    rid = request_id_ctx_var.get()
    return default if rid is None else rid


def latency_bucket_ms(latency_ms: Optional[float]) -> str:
    """Coarse latency label so request logs group well."""
    if latency_ms is None:
        return "unknown"
    for upper, label in ((10, "<10ms"), (100, "10-100ms"), (500, "100-500ms"), (1000, "500-1000ms")):
        if latency_ms < upper:
            return label
    return ">=1000ms"


def _utc_iso(record: logging.LogRecord) -> str:
    stamp = datetime.fromtimestamp(record.created, timezone.utc)
    return stamp.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class RequestIdFilter(logging.Filter):
    """Stamp the current request_id onto records that do not carry one."""

    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "request_id", None) is None:
            record.request_id = get_request_id()
        return True


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "ts": _utc_iso(record),
            "level": record.levelname.lower(),
            "logger": record.name,
            "msg": record.getMessage(),
        }
        for name in _CONTEXT_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                entry[name] = value
        if record.exc_info:
            entry["exc"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class PrettyFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        tags = []
        for name, label in (("request_id", "rid"), ("owner_id", "owner"), ("error_code", "err")):
            value = getattr(record, name, None)
            if value:
                tags.append(f"[{label}={value}]")
        line = f"{_utc_iso(record)} {record.levelname:<7} {record.name} {' '.join(tags)} {record.getMessage()}"
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def configure_logging(env: str = "development", level: Optional[str] = None) -> None:
    """Install the orangerides handler. Safe to call more than once."""
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel((level or os.getenv("LOG_LEVEL") or "INFO").upper())

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter() if env.lower() == "production" else PrettyFormatter())
    handler.addFilter(RequestIdFilter())
    logger.handlers = [handler]
    logger.propagate = True


def _is_secret(key: str) -> bool:
    lowered = key.lower()
    return any(marker in lowered for marker in _SECRET_MARKERS)


def _clean(key: str, value: Any) -> Any:
    if _is_secret(key):
        return "***"
    if value is None or isinstance(value, (bool, int, float)):
        return value
    text = str(value)
    if len(text) > _MAX_VALUE_LEN:
        return text[:_MAX_VALUE_LEN] + "...<truncated>"
    return text


def log_event(
    level: str,
    msg: str,
    *,
    request_id: Optional[str] = None,
    owner_id: Optional[str] = None,
    event_type: Optional[str] = None,
    error_code: Optional[str] = None,
    extra: Optional[Dict[str, Any]] = None,
) -> None:
    """Emit one structured record on the orangerides logger."""
    logger = logging.getLogger(LOGGER_NAME)
    if not logger.handlers:
        configure_logging(os.getenv("ENV", "development"))

    fields: Dict[str, Any] = {"request_id": request_id or get_request_id(), "owner_id": owner_id}
    if event_type:
        fields["event_type"] = event_type
    if error_code:
        fields["error_code"] = error_code
    for key, value in (extra or {}).items():
        fields[key] = _clean(key, value)

    logger.log(logging.getLevelName(level.upper()), msg, extra=fields)
