from __future__ import annotations

import logging
import subprocess

from contracts.errors import ExecutionError
from services.tools.synthetic_data import jmeter_output

logger = logging.getLogger(__name__)

LABEL_ARG_PREFIX = "-JDT_LTN="


class JMeterExecutor:
    """Runs the JMeter CLI in non-GUI mode and returns its combined output."""

    def __init__(self, binary: str = "jmeter", cwd: str | None = None) -> None:
        self.binary = binary
        self.cwd = cwd

    def execute(self, args: list[str]) -> str:
        command = [self.binary, *args]
        logger.debug("Starting JMeter: %s", " ".join(command))
        try:
            result = subprocess.run(
                command,
                cwd=self.cwd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                check=False,
            )
        except OSError as exc:
            raise ExecutionError(f"Failed to start {self.binary}: {exc}") from exc

        output = result.stdout or ""
        logger.debug("JMeter output:\n%s", output)
        if result.returncode != 0:
            raise ExecutionError(
                f"{self.binary} exited with status {result.returncode}",
                output=output,
            )
        return output


def run_phase(args: list[str]) -> str:
    """Returns the check phase encoded in the run label, e.g. ``HealthCheck``."""
    for arg in args:
        if arg.startswith(LABEL_ARG_PREFIX):
            return arg[len(LABEL_ARG_PREFIX):].split("_", 1)[0]
    return ""


class ScriptedJMeterExecutor(JMeterExecutor):
    def __init__(
        self,
        outputs: dict[str, str] | None = None,
        failing_phases: set[str] | None = None,
    ) -> None:
        super().__init__(binary="jmeter")
        self.outputs = outputs or {}
        self.failing_phases = failing_phases or set()
        self.calls: list[list[str]] = []

    def execute(self, args: list[str]) -> str:
        self.calls.append(list(args))
        phase = run_phase(args)
        if phase in self.failing_phases:
            raise ExecutionError(f"jmeter exited with status 1 during {phase}")
        return self.outputs.get(phase, jmeter_output(runs=1, average_ms=12, errors=0))

    @property
    def phases(self) -> list[str]:
        return [run_phase(args) for args in self.calls]
