"""
Property-based tests for agent dispatch logging.

Feature: agent-dispatch
"""

import io
import logging

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from agentdispatch.logging import (
    configure_logging,
    get_logger,
    log_http_request,
    log_http_response,
    log_transition,
    mask_sensitive_data,
    safe_log_dict,
)

# Strategies for generating test data
token_strategy = st.text(
    alphabet=st.sampled_from("ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789"),
    min_size=16,
    max_size=64,
)

jwt_segment_strategy = st.text(
    alphabet=st.sampled_from("ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789_-"),
    min_size=8,
    max_size=40,
)

URL = "https://n8n.example.test/webhook/branding-workflow"


def capture_http_logs() -> tuple[io.StringIO, logging.Logger, list[logging.Handler], int]:
    log_buffer = io.StringIO()
    handler = logging.StreamHandler(log_buffer)
    handler.setLevel(logging.DEBUG)

    http_logger = logging.getLogger("agentdispatch.http")
    saved = (http_logger.handlers, http_logger.level)
    http_logger.setLevel(logging.DEBUG)
    http_logger.handlers = [handler]
    return log_buffer, http_logger, saved[0], saved[1]


@given(token=token_strategy)
@settings(max_examples=100)
def test_property_bearer_tokens_masked(token: str) -> None:
    """
    Property 13: No credentials in logs

    For any bearer token, mask_sensitive_data SHALL NOT return the token.
    """
    masked = mask_sensitive_data(f"Authorization: Bearer {token}")

    assert token not in masked
    assert "Bearer [REDACTED]" in masked


@given(header=jwt_segment_strategy, claims=jwt_segment_strategy, signature=jwt_segment_strategy)
@settings(max_examples=100)
def test_property_service_keys_masked(header: str, claims: str, signature: str) -> None:
    """
    Property 13: No credentials in logs

    Datastore service-role keys are JWTs; any JWT in a message SHALL be masked.
    """
    jwt = f"eyJ{header}.{claims}.{signature}"

    masked = mask_sensitive_data(f"connecting with key {jwt}")

    assert jwt not in masked
    assert "[JWT_REDACTED]" in masked


@given(token=token_strategy)
@settings(max_examples=100)
def test_property_log_http_request_hides_credentials(token: str) -> None:
    """
    Property 13: No credentials in logs

    For any request to the engine or datastore, the logged headers SHALL NOT
    contain the API key or service key.
    """
    log_buffer, http_logger, handlers, level = capture_http_logs()
    try:
        log_http_request(
            "POST",
            URL,
            headers={"X-N8N-API-KEY": token, "apikey": token, "Authorization": f"Bearer {token}"},
            body={"launchId": "abc", "password": token},
        )
    finally:
        http_logger.handlers = handlers
        http_logger.setLevel(level)

    log_output = log_buffer.getvalue()
    assert log_output.startswith(f"POST {URL}")
    assert token not in log_output
    assert "launchId" in log_output


@given(token=token_strategy, status_code=st.integers(min_value=200, max_value=599))
@settings(max_examples=100)
def test_property_log_http_response_hides_credentials(token: str, status_code: int) -> None:
    """
    Property 13: No credentials in logs

    For any response body echoing a secret, the log output SHALL mask it.
    """
    log_buffer, http_logger, handlers, level = capture_http_logs()
    try:
        log_http_response(status_code, URL, body={"data": {"token": token}}, elapsed_ms=12.5)
    finally:
        http_logger.handlers = handlers
        http_logger.setLevel(level)

    log_output = log_buffer.getvalue()
    assert f"Response {status_code} from {URL}" in log_output
    assert "elapsed=12.50ms" in log_output
    assert token not in log_output


def test_http_logging_silent_above_debug() -> None:
    log_buffer, http_logger, handlers, level = capture_http_logs()
    http_logger.setLevel(logging.INFO)
    try:
        log_http_request("GET", URL)
    finally:
        http_logger.handlers = handlers
        http_logger.setLevel(level)

    assert log_buffer.getvalue() == ""


@pytest.mark.parametrize(
    ("to_status", "expected_level"),
    [
        ("initiated", logging.INFO),
        ("success", logging.INFO),
        ("failed", logging.INFO),
        ("webhook_failed", logging.WARNING),
        ("critical_failure", logging.ERROR),
    ],
)
def test_log_transition_levels(caplog: pytest.LogCaptureFixture, to_status: str, expected_level: int) -> None:
    caplog.set_level(logging.INFO, logger="agentdispatch.dispatch")

    log_transition("42", "branding", "initiated", to_status)

    record = caplog.records[-1]
    assert record.name == "agentdispatch.dispatch"
    assert record.levelno == expected_level
    assert record.getMessage() == f"record=42 agent=branding initiated -> {to_status}"


def test_log_transition_masks_message(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.INFO, logger="agentdispatch.dispatch")

    log_transition("42", "branding", "success", "webhook_failed", "rejected Bearer abcdefghijklmnop")

    message = caplog.records[-1].getMessage()
    assert message.endswith("| rejected Bearer [REDACTED]")


def test_configure_logging_sets_levels() -> None:
    """Test that configure_logging properly sets log levels."""
    package_logger = get_logger()
    http_logger = get_logger("http")
    dispatch_logger = get_logger("dispatch")
    saved = [(logger, logger.level) for logger in (package_logger, http_logger, dispatch_logger)]
    handler = logging.StreamHandler(io.StringIO())

    try:
        configure_logging(
            level=logging.WARNING,
            http_level=logging.DEBUG,
            dispatch_level=logging.ERROR,
            handler=handler,
        )

        assert package_logger.level == logging.WARNING
        assert http_logger.level == logging.DEBUG
        assert dispatch_logger.level == logging.ERROR
        assert handler in package_logger.handlers
    finally:
        package_logger.removeHandler(handler)
        for logger, level in saved:
            logger.setLevel(level)


def test_get_logger_returns_correct_loggers() -> None:
    """Test that get_logger returns the correct logger instances."""
    assert get_logger().name == "agentdispatch"
    assert get_logger("http").name == "agentdispatch.http"
    assert get_logger("dispatch").name == "agentdispatch.dispatch"
    assert get_logger("notifications").name == "agentdispatch.notifications"


def test_mask_sensitive_data_preserves_non_sensitive() -> None:
    """Test that mask_sensitive_data preserves non-sensitive content."""
    text = "record=7 agent=branding initiated -> success"
    assert mask_sensitive_data(text) == text


def test_safe_log_dict_handles_nested_structures() -> None:
    """Test that safe_log_dict properly handles nested dictionaries and lists."""
    data = {
        "headers": {"X-N8N-API-KEY": "engine-key", "Prefer": "return=representation"},
        "items": [{"apikey": "service-key", "id": 1}, "plain"],
        "agentId": "branding",
    }

    safe_data = safe_log_dict(data)

    assert safe_data["headers"]["X-N8N-API-KEY"] == "[REDACTED]"
    assert safe_data["headers"]["Prefer"] == "return=representation"
    assert safe_data["items"] == [{"apikey": "[REDACTED]", "id": 1}, "plain"]
    assert safe_data["agentId"] == "branding"
    # The input is left untouched
    assert data["headers"]["X-N8N-API-KEY"] == "engine-key"
