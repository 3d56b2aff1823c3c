from __future__ import annotations

import logging

from contracts.models import DeploymentStrategy
from services.tools.cluster import ClusterClient

logger = logging.getLogger(__name__)


def rollout_targets(strategy: DeploymentStrategy, service: str) -> list[str]:
    if strategy == DeploymentStrategy.BLUE_GREEN:
        return [f"{service}-blue", f"{service}-green"]
    return [service]


class ReadinessGate:
    def __init__(self, cluster: ClusterClient) -> None:
        self.cluster = cluster

    def await_ready(self, strategy: DeploymentStrategy | str, service: str, namespace: str) -> None:
        """Blocks until every rollout of the strategy is available.

        Raises UnknownStrategyError for an unrecognised strategy tag and lets
        the cluster client's ReadinessTimeoutError through. Rollouts are
        waited on in order; the first failure stops the wait.
        """
        if not isinstance(strategy, DeploymentStrategy):
            strategy = DeploymentStrategy.parse(strategy)
        for deployment in rollout_targets(strategy, service):
            logger.debug("Awaiting rollout of %s in %s", deployment, namespace)
            self.cluster.wait_for_rollout(deployment, namespace)
