"""
HTTP transport shared by the workflow client and the REST record store.

Both the automation engine and the hosted datastore speak JSON over HTTP
with static key headers. This module sends those requests, retries the
transient failures and turns error responses into typed exceptions.
"""

import random
import time
from dataclasses import dataclass, field
from typing import Any

import httpx

from agentdispatch.exceptions import (
    AgentDispatchError,
    NotFoundError,
    RateLimitedError,
    ServerError,
    WorkflowError,
)
from agentdispatch.logging import get_logger, log_http_request, log_http_response

logger = get_logger("http")

DEFAULT_RATE_LIMIT_RETRY_AFTER = 60


@dataclass
class RetryConfig:
    """Retry policy for one transport."""

    max_retries: int = 3
    backoff_factor: float = 2.0
    retry_on: list[int] = field(default_factory=lambda: [429, 500, 502, 503])
    respect_retry_after: bool = True
    max_backoff: float = 60.0  # seconds
    jitter: float = 0.1  # fraction of the base wait, applied both ways


class HTTPTransport:
    """
    JSON-over-HTTP transport with retries.

    Timeouts, connection failures and the statuses in
    ``RetryConfig.retry_on`` are retried with exponential backoff, or after
    the server's ``Retry-After`` when it sends one. Everything else fails
    on the first attempt.

    Example:
        ```python
        transport = HTTPTransport(
            "https://n8n.example.com",
            headers={"X-N8N-API-KEY": api_key},
            timeout=10.0,
            retry_config=RetryConfig(max_retries=1),
        )
        run = transport.request("POST", "/webhook/branding-workflow", body=envelope)
        ```
    """

    def __init__(
        self,
        base_url: str,
        headers: dict[str, str] | None = None,
        timeout: float = 30.0,
        retry_config: RetryConfig | None = None,
        http_client: httpx.Client | None = None,
    ) -> None:
        """
        Initialize HTTP transport.

        Args:
            base_url: Base URL for requests (e.g., "https://n8n.example.com")
            headers: Extra headers sent with every request (auth keys etc.)
            timeout: Request timeout in seconds
            retry_config: Configuration for retry behavior
            http_client: Preconfigured httpx client (tests inject a MockTransport here)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.retry_config = retry_config or RetryConfig()
        self.headers = {"Content-Type": "application/json", **(headers or {})}
        self._client = http_client or httpx.Client(
            base_url=self.base_url,
            timeout=timeout,
            headers=self.headers,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "HTTPTransport":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        body: Any = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """
        Send a request, retrying transient failures.

        Args:
            method: HTTP method
            path: Path relative to base_url
            params: Query parameters
            body: JSON request body (for POST/PATCH)
            headers: Per-request headers, merged over the defaults

        Returns:
            Parsed JSON response, ``{"raw": text}`` for non-JSON bodies,
            or None for empty bodies

        Raises:
            NotFoundError: On 404
            RateLimitedError: On 429 once retries are used up
            ServerError: On 5xx, timeouts and connection failures once retries are used up
            WorkflowError: On any other 4xx
        """
        request_headers = {**self.headers, **(headers or {})}
        attempt = 0

        while True:
            status_code: int | None = None
            retry_after: str | None = None
            cause: Exception | None = None
            try:
                response, data = self._send(method, path, params, body, request_headers)
            except httpx.TimeoutException as e:
                failure: AgentDispatchError = ServerError(
                    "TIMEOUT", f"Request timed out after {self.timeout}s"
                )
                cause = e
            except httpx.RequestError as e:
                failure = ServerError("CONNECTION_ERROR", str(e))
                cause = e
            else:
                if response.status_code < 400:
                    return data
                failure = self._parse_error_response(response)
                status_code = response.status_code
                retry_after = response.headers.get("Retry-After")

            if not self._should_retry(status_code, attempt):
                raise failure from cause

            wait = self._get_backoff_time(attempt, retry_after)
            logger.debug("Retrying %s %s in %.2fs after %s", method, path, wait, failure.code)
            time.sleep(wait)
            attempt += 1

    def _send(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None,
        body: Any,
        headers: dict[str, str],
    ) -> tuple[httpx.Response, Any]:
        """One attempt. Returns the response and, for successes, its parsed body."""
        url = f"{self.base_url}{path}"
        log_http_request(method, url, headers, body if isinstance(body, dict) else None)

        started = time.monotonic()
        response = self._client.request(method, path, params=params, json=body, headers=headers)
        elapsed_ms = (time.monotonic() - started) * 1000

        data = self._parse_body(response) if response.status_code < 400 else None
        log_http_response(
            response.status_code,
            url,
            data if isinstance(data, dict) else None,
            elapsed_ms,
        )
        return response, data

    @staticmethod
    def _parse_body(response: httpx.Response) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return {"raw": response.text}

    def _should_retry(self, status_code: int | None, attempt: int) -> bool:
        """
        Decide whether another attempt is allowed.

        Args:
            status_code: HTTP status, or None for a timeout or connection failure
            attempt: Current attempt number (0-indexed)
        """
        if attempt >= self.retry_config.max_retries:
            return False
        return status_code is None or status_code in self.retry_config.retry_on

    def _get_backoff_time(self, attempt: int, retry_after: str | None) -> float:
        """
        Seconds to wait before the next attempt.

        A numeric ``Retry-After`` wins when the config respects it. Otherwise
        the wait is ``backoff_factor ** attempt`` with jitter, capped at
        ``max_backoff``.
        """
        if retry_after and self.retry_config.respect_retry_after:
            try:
                return float(retry_after)
            except ValueError:
                logger.debug("Ignoring non-numeric Retry-After %r", retry_after)

        config = self.retry_config
        base = config.backoff_factor ** attempt
        spread = base * config.jitter
        return min(base + random.uniform(-spread, spread), config.max_backoff)

    def _parse_error_response(self, response: httpx.Response) -> AgentDispatchError:
        """
        Parse an error response into a typed exception.

        Understands the engine's ``{"error": {...}, "meta": {...}}`` envelope
        as well as flat ``{"code", "message", "hint"}`` bodies from the
        datastore and bare ``{"message": ...}`` bodies from webhooks.

        Args:
            response: HTTP response with error status

        Returns:
            NotFoundError (404), RateLimitedError (429), ServerError (5xx)
            or WorkflowError (other 4xx)
        """
        try:
            data = response.json()
        except ValueError:
            data = None
        if not isinstance(data, dict):
            data = {}

        detail = data.get("error")
        if not isinstance(detail, dict):
            detail = data
        code = str(detail.get("code") or "UNKNOWN_ERROR")
        message = detail.get("message") or f"HTTP {response.status_code}"
        meta = data.get("meta")
        request_id = meta.get("requestId") if isinstance(meta, dict) else None

        status = response.status_code
        if status == 404:
            return NotFoundError(code, message, request_id)
        if status == 429:
            return RateLimitedError(code, message, _retry_after_seconds(response), request_id)
        if status >= 500:
            return ServerError(code, message, request_id)
        return WorkflowError(code, message, request_id)


def _retry_after_seconds(response: httpx.Response) -> int:
    try:
        return int(response.headers.get("Retry-After", DEFAULT_RATE_LIMIT_RETRY_AFTER))
    except (TypeError, ValueError):
        return DEFAULT_RATE_LIMIT_RETRY_AFTER
