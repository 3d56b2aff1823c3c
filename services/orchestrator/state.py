from __future__ import annotations

from threading import RLock
from typing import Any

from contracts.events import RunEvent
from contracts.models import EventLog, RunRecord, RunStatus, to_primitive, utcnow_iso


class RunStateStore:
    """Run records shared between worker threads and the read API.

    Every mutation goes through the store lock so a record is never serialised
    half-updated. A run that reached a terminal status cannot move again,
    which keeps the outcome of a run to a single decision.
    """

    def __init__(self) -> None:
        self._records: dict[str, RunRecord] = {}
        self._lock = RLock()

    def create(self, record: RunRecord) -> None:
        with self._lock:
            if record.run_id in self._records:
                raise ValueError(f"Run already exists: {record.run_id}")
            self._records[record.run_id] = record

    def get(self, run_id: str) -> RunRecord | None:
        with self._lock:
            return self._records.get(run_id)

    def list_all(self) -> list[RunRecord]:
        with self._lock:
            return list(self._records.values())

    def transition(self, run_id: str, status: RunStatus, **changes: Any) -> RunRecord:
        with self._lock:
            record = self._records[run_id]
            if record.is_terminal:
                raise ValueError(f"Run {run_id} already finished as {record.status.value}")
            for name, value in changes.items():
                setattr(record, name, value)
            record.status = status
            record.stage = status.value
            if record.is_terminal:
                record.finished_at = utcnow_iso()
            record.mark_updated()
            return record

    def update(self, run_id: str, **changes: Any) -> RunRecord:
        with self._lock:
            record = self._records[run_id]
            for name, value in changes.items():
                setattr(record, name, value)
            record.mark_updated()
            return record

    def append_event(
        self,
        run_id: str,
        event: RunEvent,
        payload: dict | None = None,
    ) -> EventLog:
        with self._lock:
            record = self._records[run_id]
            event_entry = EventLog(event=event, payload=payload or {})
            record.events.append(event_entry)
            record.mark_updated()
            return event_entry

    def snapshot(self, run_id: str) -> dict | None:
        with self._lock:
            record = self._records.get(run_id)
            return to_primitive(record) if record else None

    def snapshot_all(self) -> list[dict]:
        with self._lock:
            return [to_primitive(record) for record in self._records.values()]
