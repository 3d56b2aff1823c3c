from __future__ import annotations

from pathlib import Path

from contracts.models import DeploymentFinishedTrigger, TestRunRequest
from storage.results import ResultsWorkspace

HEALTH_CHECK = "HealthCheck"
FUNCTIONAL_CHECK = "FuncCheck"
PERFORMANCE_CHECK = "PerfCheck"

SERVER_PORT = 80
CHECK_PATH = "/health"
THINK_TIME_MS = 250
HEALTH_SCRIPT = "basiccheck.jmx"


class CheckPlanner:
    """Builds the JMeter requests for the health, functional and performance checks."""

    def __init__(self, workspace: ResultsWorkspace) -> None:
        self.workspace = workspace

    @staticmethod
    def load_script(service: str) -> str:
        return f"{service}_load.jmx"

    def _request(
        self,
        phase: str,
        trigger: DeploymentFinishedTrigger,
        checkout_dir: Path,
        script: str,
        server_url: str,
        run_id: str,
        vu_count: int,
        loop_count: int,
        functional_validation: bool,
    ) -> TestRunRequest:
        return TestRunRequest(
            script_path=str(checkout_dir / "jmeter" / script),
            results_dir=str(self.workspace.results_dir(phase, trigger.service)),
            server_url=server_url,
            server_port=SERVER_PORT,
            check_path=CHECK_PATH,
            vu_count=vu_count,
            loop_count=loop_count,
            think_time=THINK_TIME_MS,
            run_label=f"{phase}_{run_id}",
            functional_validation=functional_validation,
            avg_rt_ceiling=0,
        )

    def health_check(self, trigger: DeploymentFinishedTrigger, checkout_dir: Path, run_id: str) -> TestRunRequest:
        return self._request(
            HEALTH_CHECK,
            trigger,
            checkout_dir,
            HEALTH_SCRIPT,
            trigger.internal_host,
            run_id,
            vu_count=1,
            loop_count=1,
            functional_validation=True,
        )

    def functional_check(
        self,
        trigger: DeploymentFinishedTrigger,
        checkout_dir: Path,
        run_id: str,
    ) -> TestRunRequest:
        return self._request(
            FUNCTIONAL_CHECK,
            trigger,
            checkout_dir,
            self.load_script(trigger.service),
            trigger.internal_host,
            run_id,
            vu_count=1,
            loop_count=1,
            functional_validation=True,
        )

    def performance_check(
        self,
        trigger: DeploymentFinishedTrigger,
        checkout_dir: Path,
        run_id: str,
        gateway: str,
    ) -> TestRunRequest:
        return self._request(
            PERFORMANCE_CHECK,
            trigger,
            checkout_dir,
            self.load_script(trigger.service),
            f"{trigger.internal_host}.{gateway}",
            run_id,
            vu_count=10,
            loop_count=500,
            functional_validation=False,
        )
