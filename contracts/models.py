from __future__ import annotations

from dataclasses import dataclass, field, is_dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from contracts.errors import UnknownStrategyError
from contracts.events import KeptnEventType, RunEvent


def utcnow_iso() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat()


def to_primitive(value: Any) -> Any:
    if is_dataclass(value):
        return {key: to_primitive(val) for key, val in value.__dict__.items()}
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {key: to_primitive(val) for key, val in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_primitive(item) for item in value]
    return value


class DeploymentStrategy(str, Enum):
    DIRECT = "direct"
    BLUE_GREEN = "blue_green"

    @classmethod
    def parse(cls, raw: str) -> "DeploymentStrategy":
        value = (raw or "").strip().lower()
        if value == "blue_green_service":
            return cls.BLUE_GREEN
        try:
            return cls(value)
        except ValueError:
            raise UnknownStrategyError("deployment", raw) from None


class TestStrategy(str, Enum):
    __test__ = False

    NONE = "none"
    FUNCTIONAL = "functional"
    PERFORMANCE = "performance"

    @classmethod
    def parse(cls, raw: str) -> "TestStrategy":
        value = (raw or "").strip().lower()
        if not value:
            return cls.NONE
        try:
            return cls(value)
        except ValueError:
            raise UnknownStrategyError("test", raw) from None


class RunStatus(str, Enum):
    RECEIVED = "received"
    AWAITING_READINESS = "awaiting_readiness"
    RUNNING_HEALTH_CHECK = "running_health_check"
    RUNNING_STRATEGY_TEST = "running_strategy_test"
    NOTIFIED_SUCCESS = "notified_success"
    NOTIFIED_FAILURE = "notified_failure"
    COMPLETED_WITHOUT_NOTIFICATION = "completed_without_notification"
    ABORTED = "aborted"


TERMINAL_STATUSES = {
    RunStatus.NOTIFIED_SUCCESS,
    RunStatus.NOTIFIED_FAILURE,
    RunStatus.COMPLETED_WITHOUT_NOTIFICATION,
    RunStatus.ABORTED,
}


@dataclass(frozen=True)
class DeploymentFinishedTrigger:
    keptn_context: str
    event_id: str
    github_org: str
    project: str
    stage: str
    service: str
    image: str
    tag: str
    deployment_strategy: str
    test_strategy: str
    payload: dict[str, Any]

    @property
    def namespace(self) -> str:
        return f"{self.project}-{self.stage}"

    @property
    def internal_host(self) -> str:
        return f"{self.service}.{self.namespace}"

    @classmethod
    def from_cloudevent(cls, event: dict[str, Any]) -> "DeploymentFinishedTrigger":
        event_type = event.get("type")
        if event_type != KeptnEventType.DEPLOYMENT_FINISHED.value:
            raise ValueError(f"Received unexpected keptn event type: {event_type}")
        data = event.get("data")
        if not isinstance(data, dict):
            raise ValueError("Event data must be a JSON object.")
        required = ("project", "stage", "service")
        missing = [key for key in required if not data.get(key)]
        if missing:
            raise ValueError(f"Missing required event data fields: {', '.join(missing)}")
        return cls(
            keptn_context=str(event.get("shkeptncontext", "")),
            event_id=str(event.get("id", "")),
            github_org=str(data.get("githuborg", "")),
            project=str(data["project"]),
            stage=str(data["stage"]),
            service=str(data["service"]),
            image=str(data.get("image", "")),
            tag=str(data.get("tag", "")),
            deployment_strategy=str(data.get("deploymentstrategy", "")),
            test_strategy=str(data.get("teststrategy", "")),
            payload=dict(data),
        )


@dataclass(frozen=True)
class TestRunRequest:
    __test__ = False

    script_path: str
    results_dir: str
    server_url: str
    server_port: int
    check_path: str
    vu_count: int
    loop_count: int
    think_time: int
    run_label: str
    functional_validation: bool
    avg_rt_ceiling: int = 0


@dataclass(frozen=True)
class ReportSummary:
    runs: int
    average_ms: int
    errors: int

    @property
    def error_rate(self) -> float:
        if self.runs == 0:
            return 0.0
        return self.errors / self.runs


@dataclass(frozen=True)
class Verdict:
    passed: bool
    reason: str


@dataclass
class EventLog:
    event: RunEvent
    timestamp: str = field(default_factory=utcnow_iso)
    payload: dict[str, Any] = field(default_factory=dict)


@dataclass
class RunRecord:
    run_id: str
    trigger: DeploymentFinishedTrigger
    status: RunStatus = RunStatus.RECEIVED
    stage: str = "received"
    health_check: Verdict | None = None
    strategy_test: Verdict | None = None
    outcome_event_type: KeptnEventType | None = None
    last_error: str | None = None
    events: list[EventLog] = field(default_factory=list)
    created_at: str = field(default_factory=utcnow_iso)
    updated_at: str = field(default_factory=utcnow_iso)
    finished_at: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def mark_updated(self) -> None:
        self.updated_at = utcnow_iso()
