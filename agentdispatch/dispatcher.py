"""
Agent dispatcher.

Resolves an agent, applies the access gate, chooses the execution path and
drives the execution record through its state machine:

    initiated -> success | failed | webhook_failed | critical_failure
    success   -> webhook_failed   (notification failed after business success)

The record is created before any other work, so every accepted attempt
leaves an audit row. Every write out of ``initiated`` is conditional on the
record still being ``initiated``.
"""

from datetime import datetime, timezone
from typing import Any

from agentdispatch.access import check_access
from agentdispatch.envelope import (
    EnvelopeBuilder,
    mock_execution_id,
    new_execution_id,
)
from agentdispatch.exceptions import (
    AccessDeniedError,
    AgentDispatchError,
    InternalDefectError,
    NotFoundError,
    ServerError,
    ValidationError,
)
from agentdispatch.handlers import HandlerRegistry, simulated_result
from agentdispatch.logging import get_logger, log_transition, safe_log_dict
from agentdispatch.notifications import Notification, NotificationQueue
from agentdispatch.registry import AgentRegistry
from agentdispatch.store import ExecutionStore
from agentdispatch.types.agents import AgentDescriptor, Caller
from agentdispatch.types.executions import (
    DispatchResult,
    ExecutionRecord,
    ExecutionStatus,
    ExecutionStatusReport,
)
from agentdispatch.workflow import WorkflowClient

logger = get_logger("dispatch")


class Dispatcher:
    """
    Runs agents on behalf of callers.

    Example:
        ```python
        dispatcher = Dispatcher(
            registry=AgentRegistry.default(),
            store=InMemoryExecutionStore(),
            notifier=NotificationQueue(workflow_client, store),
        )
        result = dispatcher.dispatch("branding", payload, caller)
        ```
    """

    def __init__(
        self,
        registry: AgentRegistry,
        store: ExecutionStore,
        notifier: NotificationQueue | None = None,
        handlers: HandlerRegistry | None = None,
        workflow_client: WorkflowClient | None = None,
        envelope_builder: EnvelopeBuilder | None = None,
    ) -> None:
        """
        Initialize the dispatcher.

        Args:
            registry: Agent catalog
            store: Execution record store
            notifier: Outbound notification queue; None disables notifications
            handlers: Internal handlers (default: built-in handlers)
            workflow_client: Client used to poll engine executions
            envelope_builder: Builder for notification bodies
        """
        self.registry = registry
        self.store = store
        self.notifier = notifier
        self.handlers = handlers or HandlerRegistry.builtin()
        self.workflow_client = workflow_client
        self.envelope_builder = envelope_builder or EnvelopeBuilder()

    def dispatch(
        self,
        agent_ref: str,
        payload: dict[str, Any] | None,
        caller: Caller,
    ) -> DispatchResult:
        """
        Run an agent for a caller.

        Args:
            agent_ref: Agent id, display-name slug or suffixed id
            payload: Opaque JSON object handed to the agent
            caller: Validated caller identity and entitlement

        Returns:
            DispatchResult; ``status`` is success or failed

        Raises:
            ValidationError: If the payload is not a JSON object (no record is written)
            NotFoundError: If no agent matches ``agent_ref`` (record marked failed)
            AccessDeniedError: If the caller is not entitled (record marked failed)
            InternalDefectError: If processing broke (record marked critical_failure)
        """
        if payload is None:
            payload = {}
        if not isinstance(payload, dict):
            raise ValidationError("INVALID_PAYLOAD", "Payload must be a JSON object")

        record = ExecutionRecord(
            agent_id=agent_ref,
            caller_id=caller.caller_id,
            execution_id=new_execution_id(),
            payload=payload,
        )
        try:
            record_id = self.store.insert(record)
        except AgentDispatchError as e:
            logger.error("Failed to log agent initiation for %s: %s", agent_ref, e)
            raise InternalDefectError() from e
        record.id = record_id
        log_transition(record_id, agent_ref, "new", ExecutionStatus.INITIATED.value)
        logger.debug("Dispatch %s payload=%s", record_id, safe_log_dict(payload))

        try:
            agent = self._resolve(record, agent_ref)
            self._authorize(record, agent, caller)

            if agent.external_workflow_ref is None:
                return self._run_simulated(record, agent)
            return self._run_workflow(record, agent, payload, caller)

        except Exception as e:
            # Resolve and gate failures have already written ``failed``
            caller_error = isinstance(e, (NotFoundError, AccessDeniedError))
            if caller_error and record.status is not ExecutionStatus.INITIATED:
                raise
            logger.exception("Agent %s failed while processing record %s", agent_ref, record_id)
            self._mark_critical(record, e)
            raise InternalDefectError(record.execution_id) from e

    def execution_status(self, execution_id: str) -> ExecutionStatusReport:
        """
        Report the state of a dispatch.

        Polls the automation engine when the record carries an engine
        execution id; otherwise, or when polling fails, reports the
        persisted record status.

        Raises:
            NotFoundError: If no record has this execution id
        """
        record = self.store.find_by_execution_id(execution_id)
        if record is None:
            raise NotFoundError("EXECUTION_NOT_FOUND", f"Execution not found: {execution_id}")

        poll_error: str | None = None
        if record.workflow_execution_id and self.workflow_client is not None:
            try:
                engine = self.workflow_client.poll_status(record.workflow_execution_id)
            except AgentDispatchError as e:
                logger.warning("Status poll failed for %s: %s", execution_id, e)
                poll_error = e.message
            else:
                return ExecutionStatusReport(
                    execution_id=execution_id,
                    status=engine.status,
                    data=engine.data,
                    error=engine.error,
                    source="engine",
                )

        data = {"result": record.result_summary} if record.result_summary else None
        return ExecutionStatusReport(
            execution_id=execution_id,
            status=record.status.value,
            data=data,
            error=record.error_message or poll_error,
        )

    def _resolve(self, record: ExecutionRecord, agent_ref: str) -> AgentDescriptor:
        try:
            return self.registry.lookup(agent_ref)
        except NotFoundError as e:
            self._finish(record, ExecutionStatus.FAILED, error_message=e.message)
            raise

    def _authorize(self, record: ExecutionRecord, agent: AgentDescriptor, caller: Caller) -> None:
        decision = check_access(caller, agent)
        if decision.allowed:
            return
        self._finish(
            record,
            ExecutionStatus.FAILED,
            agent_id=agent.id,
            error_message=decision.message,
        )
        raise AccessDeniedError(
            "ACCESS_DENIED",
            decision.message,
            reason=decision.reason,
            upgrade_required=decision.upgrade_required,
        )

    def _run_simulated(self, record: ExecutionRecord, agent: AgentDescriptor) -> DispatchResult:
        now = datetime.now(timezone.utc)
        execution_id = mock_execution_id(agent.id, now)
        summary = f"{agent.name} executed successfully (mock mode)"
        logger.info("Agent %s has no workflow configured, using mock mode", agent.id)

        self._finish(
            record,
            ExecutionStatus.SUCCESS,
            agent_id=agent.id,
            execution_id=execution_id,
            result_summary=summary,
        )
        return DispatchResult(
            execution_id=execution_id,
            record_id=record.id or "",
            agent_id=agent.id,
            status=ExecutionStatus.SUCCESS,
            result_summary=summary,
            data=simulated_result(agent, now),
            mode="mock",
        )

    def _run_workflow(
        self,
        record: ExecutionRecord,
        agent: AgentDescriptor,
        payload: dict[str, Any],
        caller: Caller,
    ) -> DispatchResult:
        handler = self.handlers.get(agent.id)
        result = handler(agent, payload, caller)

        if not result.succeeded:
            self._finish(
                record,
                ExecutionStatus.FAILED,
                agent_id=agent.id,
                error_message=result.result,
            )
            return DispatchResult(
                execution_id=record.execution_id,
                record_id=record.id or "",
                agent_id=agent.id,
                status=ExecutionStatus.FAILED,
                result_summary=result.result,
                data=result.data,
            )

        self._finish(
            record,
            ExecutionStatus.SUCCESS,
            agent_id=agent.id,
            result_summary=result.result,
        )

        # Only after the success write has returned
        if self.notifier is not None and agent.external_workflow_ref:
            envelope = self.envelope_builder.build(
                launch_id=record.execution_id,
                agent=agent,
                caller=caller,
                trigger_payload=payload,
                workflow_result=result,
            )
            self.notifier.submit(Notification(
                record_id=record.id or "",
                agent_id=agent.id,
                workflow_ref=agent.external_workflow_ref,
                body=envelope.to_dict(),
            ))

        return DispatchResult(
            execution_id=record.execution_id,
            record_id=record.id or "",
            agent_id=agent.id,
            status=ExecutionStatus.SUCCESS,
            result_summary=result.result,
            data=result.data,
        )

    def _finish(self, record: ExecutionRecord, status: ExecutionStatus, **fields: Any) -> None:
        """Move the record out of ``initiated``. Raises if it already left."""
        updated = self.store.update_if(
            record.id or "",
            {"status": status, **fields},
            ExecutionStatus.INITIATED,
        )
        if not updated:
            raise ServerError(
                "RECORD_CONFLICT",
                f"Execution record {record.id} is no longer initiated",
            )
        if "execution_id" in fields:
            record.execution_id = fields["execution_id"]
        record.status = status
        log_transition(
            record.id,
            fields.get("agent_id", record.agent_id),
            ExecutionStatus.INITIATED.value,
            status.value,
            fields.get("error_message"),
        )

    def _mark_critical(self, record: ExecutionRecord, error: Exception) -> None:
        try:
            self._finish(
                record,
                ExecutionStatus.CRITICAL_FAILURE,
                error_message=str(error) or type(error).__name__,
            )
        except AgentDispatchError:
            logger.exception("Could not record critical failure for record %s", record.id)
