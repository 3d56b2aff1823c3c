from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from contracts.events import KeptnEventType
from contracts.models import DeploymentFinishedTrigger
from services.orchestrator.telemetry import SERVICE_NAME
from services.tools.event_broker import EventBrokerClient


def build_cloudevent(
    event_type: KeptnEventType,
    trigger: DeploymentFinishedTrigger,
    data: dict[str, Any],
) -> dict[str, Any]:
    return {
        "specversion": "0.2",
        "id": str(uuid.uuid4()),
        "type": event_type.value,
        "source": SERVICE_NAME,
        "contenttype": "application/json",
        "shkeptncontext": trigger.keptn_context,
        "data": data,
    }


class NotificationDispatcher:
    """Publishes the terminal event of a test run.

    Both events echo the trigger's data unchanged apart from the one field
    that tells them apart. PublishError is raised to the caller and never
    retried.
    """

    def __init__(self, broker: EventBrokerClient) -> None:
        self.broker = broker

    def notify_success(self, trigger: DeploymentFinishedTrigger, started_at: datetime) -> dict[str, Any]:
        data = dict(trigger.payload)
        data["startedat"] = started_at.isoformat()
        event = build_cloudevent(KeptnEventType.TESTS_FINISHED, trigger, data)
        self.broker.publish(event)
        return event

    def notify_failure(self, trigger: DeploymentFinishedTrigger) -> dict[str, Any]:
        data = dict(trigger.payload)
        data["evaluationpassed"] = False
        event = build_cloudevent(KeptnEventType.EVALUATION_DONE, trigger, data)
        self.broker.publish(event)
        return event
