"""Agent dispatch exception classes."""


class AgentDispatchError(Exception):
    """Base exception for all agent dispatch errors."""

    http_status = 500

    def __init__(
        self, code: str, message: str, request_id: str | None = None
    ) -> None:
        self.code = code
        self.message = message
        self.request_id = request_id
        super().__init__(f"[{code}] {message}")


class ConfigurationError(AgentDispatchError):
    """Raised when configuration is invalid or missing."""

    def __init__(self, message: str) -> None:
        super().__init__("CONFIGURATION_ERROR", message)


class CallerError(AgentDispatchError):
    """Raised when the caller's request cannot be served as given."""

    http_status = 400


class NotFoundError(CallerError):
    """Raised when an agent or execution is not found."""

    http_status = 404


class ValidationError(CallerError):
    """Raised on malformed payloads or parameters."""

    pass


class RateLimitedError(CallerError):
    """Raised when rate limited."""

    http_status = 429

    def __init__(
        self,
        code: str,
        message: str,
        retry_after: int,
        request_id: str | None = None,
    ) -> None:
        super().__init__(code, message, request_id)
        self.retry_after = retry_after


class AccessDeniedError(AgentDispatchError):
    """Raised when the caller is not entitled to run an agent.

    Kept apart from CallerError so a UI can offer an upgrade path.
    """

    http_status = 403

    def __init__(
        self,
        code: str,
        message: str,
        reason: str,
        upgrade_required: str | None = None,
        request_id: str | None = None,
    ) -> None:
        super().__init__(code, message, request_id)
        self.reason = reason
        self.upgrade_required = upgrade_required


class InternalDefectError(AgentDispatchError):
    """Raised when processing broke; carries no internal detail."""

    def __init__(self, execution_id: str | None = None) -> None:
        super().__init__("INTERNAL_ERROR", "Failed to run agent workflow")
        self.execution_id = execution_id


class DownstreamNotificationError(AgentDispatchError):
    """A notification to the automation engine failed.

    Never raised to callers of dispatch; recorded as webhook_failed.
    """

    pass


class WorkflowError(AgentDispatchError):
    """Raised when the automation engine or datastore rejects a request."""

    pass


class ServerError(WorkflowError):
    """Raised on server errors (5xx), timeouts and connection failures."""

    pass
