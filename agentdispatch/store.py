"""
Execution record stores.

The datastore is consumed as a row-oriented persistence API with simple
predicate filters. Single-row read-modify-write is all the dispatcher
needs; ``update_if`` gives it an atomic conditional update.
"""

import copy
import itertools
import threading
from abc import ABC, abstractmethod
from typing import Any

from agentdispatch.exceptions import NotFoundError, ServerError
from agentdispatch.transport import HTTPTransport
from agentdispatch.types.executions import ExecutionRecord, ExecutionStatus, can_transition, utcnow

# Record attribute -> datastore column
COLUMNS: dict[str, str] = {
    "agent_id": "agent_id",
    "execution_id": "execution_id",
    "status": "status",
    "result_summary": "result",
    "error_message": "error_message",
    "workflow_execution_id": "workflow_execution_id",
    "payload": "payload",
    "updated_at": "updated_at",
}


class ExecutionStore(ABC):
    """Abstract persistence interface for execution records."""

    @abstractmethod
    def insert(self, record: ExecutionRecord) -> str:
        """Persist a new record and return its store-assigned id."""
        pass

    @abstractmethod
    def update(self, record_id: str, fields: dict[str, Any]) -> None:
        """Update fields on a record. Raises NotFoundError if missing."""
        pass

    @abstractmethod
    def update_if(
        self,
        record_id: str,
        fields: dict[str, Any],
        expected_status: ExecutionStatus,
    ) -> bool:
        """Update only while the record is in ``expected_status``.

        Returns True if the row was updated.
        """
        pass

    @abstractmethod
    def get(self, record_id: str) -> ExecutionRecord | None:
        """Fetch a record by store id."""
        pass

    @abstractmethod
    def find_by_execution_id(self, execution_id: str) -> ExecutionRecord | None:
        """Fetch a record by its dispatcher-assigned execution id."""
        pass


def _check_fields(fields: dict[str, Any]) -> None:
    unknown = set(fields) - set(COLUMNS)
    if unknown:
        raise ValueError(f"Unknown execution record fields: {sorted(unknown)}")


def _check_transition(fields: dict[str, Any], expected_status: ExecutionStatus) -> None:
    if fields.get("status") is None:
        return
    target = ExecutionStatus(fields["status"])
    if target is not expected_status and not can_transition(expected_status, target):
        raise ValueError(f"Illegal status transition: {expected_status.value} -> {target.value}")


class InMemoryExecutionStore(ExecutionStore):
    """Process-local store, for development and tests."""

    def __init__(self) -> None:
        self._rows: dict[str, ExecutionRecord] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._rows)

    def insert(self, record: ExecutionRecord) -> str:
        with self._lock:
            record_id = str(next(self._ids))
            stored = copy.deepcopy(record)
            stored.id = record_id
            self._rows[record_id] = stored
        return record_id

    def update(self, record_id: str, fields: dict[str, Any]) -> None:
        _check_fields(fields)
        with self._lock:
            row = self._rows.get(record_id)
            if row is None:
                raise NotFoundError("RECORD_NOT_FOUND", f"Execution record not found: {record_id}")
            self._apply(row, fields)

    def update_if(
        self,
        record_id: str,
        fields: dict[str, Any],
        expected_status: ExecutionStatus,
    ) -> bool:
        _check_transition(fields, expected_status)
        _check_fields(fields)
        with self._lock:
            row = self._rows.get(record_id)
            if row is None or row.status is not expected_status:
                return False
            self._apply(row, fields)
            return True

    def get(self, record_id: str) -> ExecutionRecord | None:
        with self._lock:
            row = self._rows.get(record_id)
            return copy.deepcopy(row) if row is not None else None

    def find_by_execution_id(self, execution_id: str) -> ExecutionRecord | None:
        with self._lock:
            for row in self._rows.values():
                if row.execution_id == execution_id:
                    return copy.deepcopy(row)
        return None

    def all(self) -> list[ExecutionRecord]:
        with self._lock:
            return [copy.deepcopy(row) for row in self._rows.values()]

    @staticmethod
    def _apply(row: ExecutionRecord, fields: dict[str, Any]) -> None:
        for name, value in fields.items():
            setattr(row, name, value)
        if "updated_at" not in fields:
            row.updated_at = utcnow()


class RestExecutionStore(ExecutionStore):
    """
    Store backed by the hosted datastore's REST (PostgREST) API.

    Predicates use the ``column=eq.value`` filter form; writes ask for
    ``return=representation`` so a conditional update can tell whether it
    matched a row.
    """

    DEFAULT_TABLE = "agent_launches"

    def __init__(self, transport: HTTPTransport, table: str = DEFAULT_TABLE) -> None:
        """
        Initialize the store.

        Args:
            transport: HTTP transport pointed at the datastore base URL
            table: Table holding execution rows
        """
        self.transport = transport
        self.table = table
        self._path = f"/rest/v1/{table}"

    @classmethod
    def connect(
        cls,
        base_url: str,
        service_key: str,
        table: str = DEFAULT_TABLE,
        timeout: float = 10.0,
    ) -> "RestExecutionStore":
        """Build a store with its own transport and service-role credentials."""
        transport = HTTPTransport(
            base_url=base_url,
            headers={
                "apikey": service_key,
                "Authorization": f"Bearer {service_key}",
            },
            timeout=timeout,
        )
        return cls(transport, table=table)

    def close(self) -> None:
        self.transport.close()

    def insert(self, record: ExecutionRecord) -> str:
        rows = self.transport.request(
            "POST",
            self._path,
            body=record.to_row(),
            headers={"Prefer": "return=representation"},
        )
        if not rows:
            raise ServerError("INSERT_FAILED", f"Datastore returned no row for insert into {self.table}")
        return str(rows[0]["id"])

    def update(self, record_id: str, fields: dict[str, Any]) -> None:
        rows = self._patch({"id": f"eq.{record_id}"}, fields)
        if not rows:
            raise NotFoundError("RECORD_NOT_FOUND", f"Execution record not found: {record_id}")

    def update_if(
        self,
        record_id: str,
        fields: dict[str, Any],
        expected_status: ExecutionStatus,
    ) -> bool:
        _check_transition(fields, expected_status)
        rows = self._patch(
            {"id": f"eq.{record_id}", "status": f"eq.{expected_status.value}"},
            fields,
        )
        return bool(rows)

    def get(self, record_id: str) -> ExecutionRecord | None:
        return self._select_one({"id": f"eq.{record_id}"})

    def find_by_execution_id(self, execution_id: str) -> ExecutionRecord | None:
        return self._select_one({"execution_id": f"eq.{execution_id}"})

    def _patch(self, filters: dict[str, str], fields: dict[str, Any]) -> list[dict[str, Any]]:
        _check_fields(fields)
        body = {COLUMNS[name]: _to_column_value(value) for name, value in fields.items()}
        body.setdefault("updated_at", utcnow().isoformat())
        rows = self.transport.request(
            "PATCH",
            self._path,
            params=filters,
            body=body,
            headers={"Prefer": "return=representation"},
        )
        return rows or []

    def _select_one(self, filters: dict[str, str]) -> ExecutionRecord | None:
        rows = self.transport.request(
            "GET",
            self._path,
            params={**filters, "select": "*", "limit": "1"},
        )
        if not rows:
            return None
        return ExecutionRecord.from_row(rows[0])


def _to_column_value(value: Any) -> Any:
    if isinstance(value, ExecutionStatus):
        return value.value
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return value
