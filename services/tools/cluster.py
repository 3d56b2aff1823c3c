from __future__ import annotations

import logging
import subprocess

from contracts.errors import GatewayLookupError, ReadinessTimeoutError

logger = logging.getLogger(__name__)


class ClusterClient:
    def wait_for_rollout(self, deployment: str, namespace: str) -> None:
        raise NotImplementedError

    def get_config_value(self, namespace: str, config_map: str, key: str) -> str:
        raise NotImplementedError


class KubectlClusterClient(ClusterClient):
    def __init__(self, binary: str = "kubectl", rollout_timeout_seconds: int = 300) -> None:
        self.binary = binary
        self.rollout_timeout_seconds = rollout_timeout_seconds

    def _run(self, args: list[str]) -> subprocess.CompletedProcess[str]:
        return subprocess.run(
            [self.binary, *args],
            capture_output=True,
            text=True,
            check=False,
        )

    def wait_for_rollout(self, deployment: str, namespace: str) -> None:
        logger.debug("Waiting for deployment %s in namespace %s", deployment, namespace)
        try:
            result = self._run(
                [
                    "rollout",
                    "status",
                    f"deployment/{deployment}",
                    "-n",
                    namespace,
                    f"--timeout={self.rollout_timeout_seconds}s",
                ]
            )
        except OSError as exc:
            raise ReadinessTimeoutError(f"Failed to run {self.binary}: {exc}") from exc
        if result.returncode != 0:
            raise ReadinessTimeoutError(
                f"Deployment {deployment} in namespace {namespace} is not available: "
                f"{result.stderr.strip() or result.stdout.strip()}"
            )

    def get_config_value(self, namespace: str, config_map: str, key: str) -> str:
        try:
            result = self._run(
                [
                    "get",
                    "configmap",
                    config_map,
                    "-n",
                    namespace,
                    "-o",
                    f"jsonpath={{.data.{key}}}",
                ]
            )
        except OSError as exc:
            raise GatewayLookupError(f"Failed to run {self.binary}: {exc}") from exc
        if result.returncode != 0:
            raise GatewayLookupError(
                f"Cannot read {key} from config map {namespace}/{config_map}: {result.stderr.strip()}"
            )
        return result.stdout.strip()


class MockClusterClient(ClusterClient):
    def __init__(
        self,
        unavailable: set[str] | None = None,
        config: dict[tuple[str, str, str], str] | None = None,
    ) -> None:
        self.unavailable = unavailable or set()
        self.config = config if config is not None else {("keptn", "keptn-domain", "app_domain"): "10.0.0.1.xip.io"}
        self.waited: list[tuple[str, str]] = []

    def wait_for_rollout(self, deployment: str, namespace: str) -> None:
        self.waited.append((deployment, namespace))
        if deployment in self.unavailable:
            raise ReadinessTimeoutError(
                f"Deployment {deployment} in namespace {namespace} did not become available"
            )

    def get_config_value(self, namespace: str, config_map: str, key: str) -> str:
        try:
            return self.config[(namespace, config_map, key)]
        except KeyError:
            raise GatewayLookupError(f"Config map {namespace}/{config_map} has no key {key}") from None
