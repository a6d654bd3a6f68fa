"""Structured logging for the admin API.

- request_id correlation through a ContextVar, set by the request middleware
- redaction of credentials before a record reaches any handler: passwords,
  service keys and session tokens are replaced by ``[REDACTED]`` whether they
  appear under a sensitive key or as a bare token-shaped value
- JSON output for log shipping, plain output for local debugging
- stdout or rotating file destination
"""

from __future__ import annotations

import json
import logging
import re
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from logging import LogRecord
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Iterable, Mapping

from portfolio_api.core.config import LogSettings, settings

REDACTED = "[REDACTED]"

_request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)

# Exact (case-insensitive) field names that are always redacted
SENSITIVE_KEYS_DEFAULT: set[str] = {
    "authorization",
    "x-admin-token",
    "admin_token",
    "token",
    "session_token",
    "apikey",
    "service_role_key",
    "supabase_service_role_key",
    "cookie",
    "set-cookie",
}

# Any field whose name contains one of these is redacted as well
_SENSITIVE_FRAGMENTS = ("password", "secret")

# Derived values that are safe to log even though their names look sensitive
_SAFE_KEYS = {"token_hash"}

# Opaque session tokens and bearer credentials, wherever they show up
_TOKEN_VALUE = re.compile(r"\b[0-9a-f]{64}\b")
_BEARER_VALUE = re.compile(r"(?i)\bbearer\s+\S+")

_EXCLUDED_ATTRS = {
    "name",
    "msg",
    "args",
    "levelname",
    "levelno",
    "pathname",
    "filename",
    "module",
    "exc_info",
    "exc_text",
    "stack_info",
    "lineno",
    "funcName",
    "created",
    "msecs",
    "relativeCreated",
    "thread",
    "threadName",
    "processName",
    "process",
    "taskName",
    "stack",
}


def set_request_id(request_id: str | None) -> None:
    _request_id_var.set(request_id)


def get_request_id() -> str | None:
    """Return the correlation id of the request being handled, if any."""

    return _request_id_var.get()


def clear_request_id() -> None:
    _request_id_var.set(None)


def is_sensitive_key(key: str, sensitive_keys: set[str] = SENSITIVE_KEYS_DEFAULT) -> bool:
    """Return True when a field named ``key`` must never be logged verbatim."""

    lowered = key.lower()
    if lowered in _SAFE_KEYS:
        return False
    if lowered in sensitive_keys:
        return True
    return any(fragment in lowered for fragment in _SENSITIVE_FRAGMENTS)


def mask_secrets(text: str) -> str:
    """Replace session tokens and bearer credentials inside free text."""

    text = _BEARER_VALUE.sub(f"Bearer {REDACTED}", text)
    return _TOKEN_VALUE.sub(REDACTED, text)


def _redact_value(value: Any, sensitive_keys: set[str]) -> Any:
    if isinstance(value, Mapping):
        return {
            k: REDACTED if is_sensitive_key(str(k), sensitive_keys) else _redact_value(v, sensitive_keys)
            for k, v in value.items()
        }
    if isinstance(value, (list, tuple)):
        return type(value)(_redact_value(v, sensitive_keys) for v in value)
    if isinstance(value, str):
        return mask_secrets(value)
    return value


def _sanitize_record(record: LogRecord, sensitive_keys: set[str]) -> dict[str, Any]:
    """Collect the structured extras of ``record`` with secrets removed."""

    data: dict[str, Any] = {}

    for key, value in record.__dict__.items():
        if key in _EXCLUDED_ATTRS or key.startswith("_"):
            continue
        if is_sensitive_key(key, sensitive_keys):
            data[key] = REDACTED
            continue
        data[key] = _redact_value(value, sensitive_keys)

    return data


class RequestIdFilter(logging.Filter):
    """Attach the current request_id to records that lack one."""

    def filter(self, record: LogRecord) -> bool:  # noqa: D401
        if getattr(record, "request_id", None) is None:
            request_id = get_request_id()
            if request_id:
                record.request_id = request_id
        return True


class SensitiveDataFilter(logging.Filter):
    """Scrub credentials from the record itself, so every formatter sees clean data."""

    def __init__(self, sensitive_keys: Iterable[str] | None = None) -> None:
        super().__init__()
        self.sensitive_keys = set(sensitive_keys or SENSITIVE_KEYS_DEFAULT)

    def filter(self, record: LogRecord) -> bool:  # noqa: D401
        for key, value in _sanitize_record(record, self.sensitive_keys).items():
            setattr(record, key, value)
        if isinstance(record.msg, str) and not record.args:
            record.msg = mask_secrets(record.msg)
        return True


class JsonFormatter(logging.Formatter):
    """One JSON object per line: timestamp, level, logger, event and extras."""

    def __init__(
        self,
        *,
        sensitive_keys: Iterable[str] | None = None,
        ensure_ascii: bool = True,
    ) -> None:
        super().__init__()
        self.sensitive_keys = set(sensitive_keys or SENSITIVE_KEYS_DEFAULT)
        self.ensure_ascii = ensure_ascii

    def format(self, record: LogRecord) -> str:  # noqa: D401
        payload: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": mask_secrets(record.getMessage()),
        }

        request_id = getattr(record, "request_id", None) or get_request_id()
        if request_id:
            payload["request_id"] = request_id

        payload.update(_sanitize_record(record, self.sensitive_keys))

        if record.exc_info:
            payload["exception"] = mask_secrets(self.formatException(record.exc_info))

        return json.dumps(payload, default=str, ensure_ascii=self.ensure_ascii)


def _build_handler(log_settings: LogSettings) -> logging.Handler:
    if log_settings.output == "file":
        file_path = Path(log_settings.file_path or "logs/portfolio_api.log")
        file_path.parent.mkdir(parents=True, exist_ok=True)
        if log_settings.max_bytes:
            return RotatingFileHandler(
                file_path,
                maxBytes=log_settings.max_bytes,
                backupCount=log_settings.backup_count,
                encoding="utf-8",
            )
        return logging.FileHandler(file_path, encoding="utf-8")

    return logging.StreamHandler(sys.stdout)


def configure_logging(log_settings: LogSettings | None = None) -> None:
    """Install a single redacting handler on the root logger.

    Args:
        log_settings: Logging settings; the environment-loaded ones when omitted.
    """

    cfg = log_settings or settings.log

    handler = _build_handler(cfg)
    handler.addFilter(RequestIdFilter())
    handler.addFilter(SensitiveDataFilter())

    if cfg.format == "plain":
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
    else:
        handler.setFormatter(JsonFormatter())

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, cfg.level.upper(), logging.INFO))

    # uvicorn installs its own handlers; keep its records from being emitted twice
    logging.getLogger("uvicorn").propagate = False
    logging.getLogger("uvicorn.access").propagate = False
    # httpx logs full request URLs at INFO, which include PostgREST filters on keys
    logging.getLogger("httpx").setLevel(logging.WARNING)
