"""
Bounded outbound notification queue.

Notifications to the automation engine are fire-and-forget from the
caller's point of view. Jobs go onto a bounded queue drained by a fixed
pool of worker threads, so a flood of slow or failing notifications cannot
grow in-flight work without limit. Every failure, including a full queue,
ends up on the record as ``webhook_failed``.
"""

import queue
import threading
from dataclasses import dataclass
from typing import Any

from agentdispatch.exceptions import AgentDispatchError, DownstreamNotificationError
from agentdispatch.logging import get_logger, log_transition
from agentdispatch.store import ExecutionStore
from agentdispatch.types.executions import ExecutionStatus
from agentdispatch.workflow import WorkflowClient

logger = get_logger("notifications")


@dataclass
class Notification:
    """One pending notification for a successful dispatch."""

    record_id: str
    agent_id: str
    workflow_ref: str
    body: dict[str, Any]


class NotificationQueue:
    """
    Worker pool delivering notifications to the automation engine.

    The dispatcher submits a job only after the record's ``success`` write
    has returned, and failures are written with a conditional update that
    only matches a record still in ``success``. A late failure can never
    overwrite any other status.

    Example:
        ```python
        notifier = NotificationQueue(workflow_client, store, maxsize=100, workers=2)
        notifier.start()
        ...
        notifier.close()
        ```
    """

    def __init__(
        self,
        workflow_client: WorkflowClient,
        store: ExecutionStore,
        maxsize: int = 100,
        workers: int = 2,
    ) -> None:
        self.workflow_client = workflow_client
        self.store = store
        self.workers = workers
        self._queue: queue.Queue[Notification | None] = queue.Queue(maxsize=maxsize)
        self._threads: list[threading.Thread] = []
        self._lock = threading.Lock()
        self._closed = False

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def start(self) -> None:
        """Start the worker threads. Safe to call more than once."""
        with self._lock:
            if self._threads or self._closed:
                return
            for index in range(self.workers):
                thread = threading.Thread(
                    target=self._run,
                    name=f"agentdispatch-notifier-{index}",
                    daemon=True,
                )
                thread.start()
                self._threads.append(thread)

    def submit(self, notification: Notification) -> bool:
        """
        Enqueue a notification without blocking.

        Returns:
            True if queued; False if it was rejected and recorded as failed
        """
        if self._closed:
            self._record_failure(notification, "notification queue closed")
            return False

        self.start()
        try:
            self._queue.put_nowait(notification)
        except queue.Full:
            self._record_failure(notification, "notification queue full")
            return False
        return True

    def join(self) -> None:
        """Block until every queued notification has been processed."""
        self._queue.join()

    def close(self, timeout: float | None = 5.0) -> None:
        """Drain the queue and stop the workers."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            threads = list(self._threads)
        for _ in threads:
            self._queue.put(None)
        for thread in threads:
            thread.join(timeout)

    def _run(self) -> None:
        while True:
            notification = self._queue.get()
            try:
                if notification is None:
                    return
                self.deliver(notification)
            except Exception:
                logger.exception("Notification worker error for record %s", notification.record_id)
            finally:
                self._queue.task_done()

    def deliver(self, notification: Notification) -> None:
        """Send one notification and record the outcome."""
        try:
            run = self.workflow_client.trigger(notification.workflow_ref, notification.body)
            if not run.success:
                raise DownstreamNotificationError(
                    "WORKFLOW_FAILED",
                    run.error or f"workflow reported status {run.status}",
                )
        except AgentDispatchError as e:
            self._record_failure(notification, e.message)
            return
        except Exception as e:
            logger.exception("Unexpected error notifying %s", notification.workflow_ref)
            self._record_failure(notification, str(e) or type(e).__name__)
            return

        if run.execution_id:
            self.store.update_if(
                notification.record_id,
                {"workflow_execution_id": run.execution_id},
                ExecutionStatus.SUCCESS,
            )
        logger.debug(
            "Notified %s for record %s (engine execution %s)",
            notification.workflow_ref,
            notification.record_id,
            run.execution_id,
        )

    def _record_failure(self, notification: Notification, reason: str) -> None:
        message = f"Workflow trigger failed: {reason}"
        try:
            updated = self.store.update_if(
                notification.record_id,
                {"status": ExecutionStatus.WEBHOOK_FAILED, "error_message": message},
                ExecutionStatus.SUCCESS,
            )
        except AgentDispatchError:
            logger.exception(
                "Could not record webhook failure for record %s", notification.record_id
            )
            return

        if updated:
            log_transition(
                notification.record_id,
                notification.agent_id,
                ExecutionStatus.SUCCESS.value,
                ExecutionStatus.WEBHOOK_FAILED.value,
                message,
            )
        else:
            logger.warning(
                "Record %s was not in success; webhook failure not recorded: %s",
                notification.record_id,
                message,
            )
