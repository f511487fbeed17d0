"""
Tests for the automation engine workflow client.

Feature: agent-dispatch
"""

import json

import httpx
import pytest

from agentdispatch.exceptions import NotFoundError
from agentdispatch.transport import HTTPTransport, RetryConfig
from agentdispatch.workflow import WorkflowClient

BASE_URL = "https://n8n.example.test"


def make_client(handler) -> WorkflowClient:
    http_client = httpx.Client(base_url=BASE_URL, transport=httpx.MockTransport(handler))
    transport = HTTPTransport(
        base_url=BASE_URL,
        headers={WorkflowClient.API_KEY_HEADER: "engine-key"},
        retry_config=RetryConfig(max_retries=0),
        http_client=http_client,
    )
    return WorkflowClient(transport)


def test_trigger_posts_to_webhook_path() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"executionId": 981, "status": "running"})

    client = make_client(handler)
    run = client.trigger("branding-workflow", {"launchId": "abc"})

    request = seen[0]
    assert request.method == "POST"
    assert request.url.path == "/webhook/branding-workflow"
    assert request.headers["X-N8N-API-KEY"] == "engine-key"
    assert json.loads(request.content) == {"launchId": "abc"}

    assert run.execution_id == "981"
    assert run.status == "running"
    assert run.success


def test_trigger_with_empty_response() -> None:
    """Webhooks configured to respond immediately may return nothing."""
    client = make_client(lambda request: httpx.Response(200))

    run = client.trigger("x", {})

    assert run.execution_id is None
    assert run.status == "running"
    assert run.success


def test_trigger_reports_failed_run() -> None:
    client = make_client(lambda request: httpx.Response(
        200, json={"id": "7", "status": "error", "error": {"message": "node failed"}}
    ))

    run = client.trigger("x", {})

    assert run.execution_id == "7"
    assert not run.success
    assert run.error == "node failed"


def test_trigger_explicit_success_flag_wins() -> None:
    client = make_client(lambda request: httpx.Response(
        200, json={"success": False, "status": "running", "error": "rejected"}
    ))

    run = client.trigger("x", {})

    assert not run.success
    assert run.error == "rejected"


def test_trigger_unknown_webhook() -> None:
    client = make_client(lambda request: httpx.Response(
        404, json={"code": 404, "message": "The requested webhook \"x\" is not registered."}
    ))

    with pytest.raises(NotFoundError):
        client.trigger("x", {})


def test_poll_status_requests_execution_data() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={
            "id": "981",
            "finished": True,
            "status": "success",
            "data": {"resultData": {"runData": {}}},
        })

    client = make_client(handler)
    status = client.poll_status("981")

    request = seen[0]
    assert request.method == "GET"
    assert request.url.path == "/api/v1/executions/981"
    assert request.url.params["includeData"] == "true"

    assert status.status == "success"
    assert status.success
    assert status.data == {"resultData": {"runData": {}}}
    assert status.error is None


@pytest.mark.parametrize(
    ("body", "expected_status", "expected_success"),
    [
        ({"finished": True}, "success", True),
        ({"finished": False}, "running", True),
        ({"status": "crashed"}, "crashed", False),
        ({"status": "canceled"}, "canceled", False),
    ],
)
def test_poll_status_derives_state(body: dict, expected_status: str, expected_success: bool) -> None:
    client = make_client(lambda request: httpx.Response(200, json=body))

    status = client.poll_status("1")

    assert status.status == expected_status
    assert status.success == expected_success


def test_poll_status_extracts_nested_error() -> None:
    client = make_client(lambda request: httpx.Response(200, json={
        "status": "error",
        "data": {"resultData": {"error": {"message": "Missing credentials"}}},
    }))

    status = client.poll_status("1")

    assert not status.success
    assert status.error == "Missing credentials"


def test_connect_sets_api_key_header() -> None:
    client = WorkflowClient.connect(BASE_URL, api_key="k", timeout=3.0)
    try:
        assert client.transport.headers[WorkflowClient.API_KEY_HEADER] == "k"
        assert client.transport.timeout == 3.0
    finally:
        client.close()


def test_connect_without_api_key() -> None:
    client = WorkflowClient.connect(BASE_URL)
    try:
        assert WorkflowClient.API_KEY_HEADER not in client.transport.headers
    finally:
        client.close()
