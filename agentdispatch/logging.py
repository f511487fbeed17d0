"""
Agent dispatch logging utilities.

Provides configurable logging for HTTP traffic to the automation engine and
datastore, and for execution state transitions. Ensures no credentials
(API keys, service-role keys, bearer tokens) are logged.
"""

import logging
import re
from typing import Any

# Package loggers
_root_logger = logging.getLogger("agentdispatch")
_http_logger = logging.getLogger("agentdispatch.http")
_dispatch_logger = logging.getLogger("agentdispatch.dispatch")

# Patterns for sensitive data that should be masked
_SENSITIVE_PATTERNS = [
    # Bearer tokens in Authorization headers
    (re.compile(r"(Bearer\s+)[A-Za-z0-9\-._~+/]+=*", re.IGNORECASE), r"\1[REDACTED]"),
    # JWTs (service-role keys for the datastore are JWTs)
    (re.compile(r"eyJ[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+"), "[JWT_REDACTED]"),
    # Secret/token patterns
    (re.compile(r"(secret|token|password|api_key|apikey)['\"]?\s*[:=]\s*['\"][^'\"]+['\"]", re.IGNORECASE), r"\1: [REDACTED]"),
]

_DEFAULT_SENSITIVE_KEYS = {
    "authorization",
    "apikey",
    "api_key",
    "x-n8n-api-key",
    "secret",
    "token",
    "password",
}

_DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(
    level: int = logging.INFO,
    http_level: int | None = None,
    dispatch_level: int | None = None,
    handler: logging.Handler | None = None,
    format_string: str | None = None,
) -> None:
    """
    Configure agent dispatch logging.

    Args:
        level: Default log level for all package loggers (default: INFO)
        http_level: Log level for HTTP request/response logging (default: same as level)
        dispatch_level: Log level for state transitions (default: same as level)
        handler: Custom handler to use (default: StreamHandler to stderr)
        format_string: Custom format string (default: includes timestamp, level, logger name)

    Example:
        ```python
        import logging
        from agentdispatch.logging import configure_logging

        # Trace every call to the automation engine
        configure_logging(level=logging.INFO, http_level=logging.DEBUG)
        ```
    """
    handler = handler or logging.StreamHandler()
    handler.setFormatter(logging.Formatter(format_string or _DEFAULT_FORMAT))

    _root_logger.setLevel(level)
    _root_logger.addHandler(handler)
    _http_logger.setLevel(level if http_level is None else http_level)
    _dispatch_logger.setLevel(level if dispatch_level is None else dispatch_level)


def get_logger(name: str | None = None) -> logging.Logger:
    """
    Get a package logger.

    Args:
        name: Logger name suffix (e.g., "http", "dispatch"). If None, returns the root package logger.

    Returns:
        Logger instance
    """
    if name is None:
        return _root_logger
    return logging.getLogger(f"agentdispatch.{name}")


def mask_sensitive_data(text: str) -> str:
    """
    Mask sensitive data in a string.

    Args:
        text: Text that may contain sensitive data

    Returns:
        Text with tokens, keys and secrets masked
    """
    result = text
    for pattern, replacement in _SENSITIVE_PATTERNS:
        result = pattern.sub(replacement, result)
    return result


def safe_log_dict(data: dict[str, Any], sensitive_keys: set[str] | None = None) -> dict[str, Any]:
    """
    Copy a mapping with credential-like values replaced by ``[REDACTED]``.

    A key is sensitive when it contains any of ``sensitive_keys``
    (case-insensitive). Nested dicts, and dicts inside lists, are masked too;
    the input is never modified.
    """
    keys = _DEFAULT_SENSITIVE_KEYS if sensitive_keys is None else sensitive_keys

    def redact(value: Any) -> Any:
        if isinstance(value, dict):
            return {
                k: "[REDACTED]" if any(s in str(k).lower() for s in keys) else redact(v)
                for k, v in value.items()
            }
        if isinstance(value, list):
            return [redact(item) if isinstance(item, dict) else item for item in value]
        return value

    return redact(data)


def _emit_http(parts: list[str], body: dict[str, Any] | None) -> None:
    if body:
        parts.append(f"body={safe_log_dict(body)}")
    _http_logger.debug(mask_sensitive_data(" | ".join(parts)))


def log_http_request(
    method: str,
    url: str,
    headers: dict[str, str] | None = None,
    body: dict[str, Any] | None = None,
) -> None:
    """Log an outgoing request at DEBUG with headers and body masked."""
    if not _http_logger.isEnabledFor(logging.DEBUG):
        return
    parts = [f"{method} {url}"]
    if headers:
        parts.append(f"headers={safe_log_dict(dict(headers))}")
    _emit_http(parts, body)


def log_http_response(
    status_code: int,
    url: str,
    body: dict[str, Any] | None = None,
    elapsed_ms: float | None = None,
) -> None:
    """Log a response at DEBUG; ``elapsed_ms`` is rendered to two decimals."""
    if not _http_logger.isEnabledFor(logging.DEBUG):
        return
    parts = [f"Response {status_code} from {url}"]
    if elapsed_ms is not None:
        parts.append(f"elapsed={elapsed_ms:.2f}ms")
    _emit_http(parts, body)


_TRANSITION_LEVELS = {
    "webhook_failed": logging.WARNING,
    "critical_failure": logging.ERROR,
}


def log_transition(
    record_id: str | None,
    agent_id: str,
    from_status: str,
    to_status: str,
    message: str | None = None,
) -> None:
    """
    Log an execution record state transition.

    webhook_failed is logged at WARNING, critical_failure at ERROR and
    everything else at INFO. ``message`` is masked before it is written.
    """
    level = _TRANSITION_LEVELS.get(to_status, logging.INFO)
    if not _dispatch_logger.isEnabledFor(level):
        return

    line = f"record={record_id} agent={agent_id} {from_status} -> {to_status}"
    if message:
        line = f"{line} | {mask_sensitive_data(message)}"
    _dispatch_logger.log(level, line)


__all__ = [
    "configure_logging",
    "get_logger",
    "mask_sensitive_data",
    "safe_log_dict",
    "log_http_request",
    "log_http_response",
    "log_transition",
]
