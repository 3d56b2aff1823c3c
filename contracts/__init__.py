from contracts.errors import (
    CheckoutError,
    ExecutionError,
    GatewayLookupError,
    OrchestrationError,
    ParseError,
    PublishError,
    ReadinessTimeoutError,
    UnknownStrategyError,
)
from contracts.events import KeptnEventType, RunEvent
from contracts.models import (
    DeploymentFinishedTrigger,
    DeploymentStrategy,
    EventLog,
    ReportSummary,
    RunRecord,
    RunStatus,
    TestRunRequest,
    TestStrategy,
    Verdict,
    to_primitive,
    utcnow_iso,
)

__all__ = [
    "CheckoutError",
    "DeploymentFinishedTrigger",
    "DeploymentStrategy",
    "EventLog",
    "ExecutionError",
    "GatewayLookupError",
    "KeptnEventType",
    "OrchestrationError",
    "ParseError",
    "PublishError",
    "ReadinessTimeoutError",
    "ReportSummary",
    "RunEvent",
    "RunRecord",
    "RunStatus",
    "TestRunRequest",
    "TestStrategy",
    "UnknownStrategyError",
    "Verdict",
    "to_primitive",
    "utcnow_iso",
]
