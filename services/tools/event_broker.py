from __future__ import annotations

import http.client
import json
import urllib.error
import urllib.request
from typing import Any

from contracts.errors import PublishError

DEFAULT_BROKER_URL = "http://event-broker.keptn.svc.cluster.local/keptn"


class EventBrokerClient:
    def __init__(
        self,
        url: str = DEFAULT_BROKER_URL,
        mode: str = "real",
        timeout: float = 10.0,
        fail_publishes: bool = False,
    ) -> None:
        self.url = url
        self.mode = mode
        self.timeout = timeout
        self.fail_publishes = fail_publishes
        self.published: list[dict[str, Any]] = []

    def publish(self, event: dict[str, Any]) -> None:
        if self.mode == "real":
            self._post(event)
        elif self.fail_publishes:
            raise PublishError(f"Failed to send cloudevent: broker {self.url} unavailable")
        self.published.append(event)

    def _post(self, event: dict[str, Any]) -> None:
        request = urllib.request.Request(
            url=self.url,
            data=json.dumps(event).encode("utf-8"),
            headers={
                "Content-Type": "application/cloudevents+json",
                "User-Agent": "jmeter-service",
            },
            method="POST",
        )
        try:
            with urllib.request.urlopen(request, timeout=self.timeout) as response:
                response.read()
        except urllib.error.HTTPError as exc:
            body_text = exc.read().decode("utf-8", errors="ignore")
            raise PublishError(f"Failed to send cloudevent ({exc.code}): {body_text}") from exc
        except urllib.error.URLError as exc:
            raise PublishError(f"Failed to send cloudevent: {exc.reason}") from exc
        except (OSError, http.client.HTTPException) as exc:
            raise PublishError(f"Failed to send cloudevent: {exc}") from exc

    def published_of_type(self, event_type: str) -> list[dict[str, Any]]:
        return [event for event in self.published if event.get("type") == event_type]
