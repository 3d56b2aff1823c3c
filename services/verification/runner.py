from __future__ import annotations

import logging

from contracts.models import TestRunRequest, Verdict
from services.tools.jmeter import JMeterExecutor
from services.verification.summary import parse_summary
from services.verification.verdict import evaluate
from storage.results import ResultsWorkspace

logger = logging.getLogger(__name__)


def build_jmeter_args(request: TestRunRequest, result_log: str) -> list[str]:
    return [
        "-n",
        "-t",
        request.script_path,
        "-l",
        result_log,
        f"-JSERVER_URL={request.server_url}",
        f"-JDT_LTN={request.run_label}",
        f"-JVUCount={request.vu_count}",
        f"-JLoopCount={request.loop_count}",
        f"-JCHECK_PATH={request.check_path}",
        f"-JSERVER_PORT={request.server_port}",
        f"-JThinkTime={request.think_time}",
        f"-JFUNC_VALIDATION={str(request.functional_validation).lower()}",
        f"-JAVG_RT_VALIDATION={request.avg_rt_ceiling}",
    ]


class JMeterRunner:
    def __init__(self, executor: JMeterExecutor, workspace: ResultsWorkspace) -> None:
        self.executor = executor
        self.workspace = workspace

    def run(self, request: TestRunRequest) -> Verdict:
        """Runs one JMeter test and judges its summary.

        Raises ExecutionError when JMeter cannot run and ParseError when its
        output has no usable summary; neither is a failed verdict.
        """
        results_dir = self.workspace.reset(request.results_dir)
        result_log = ResultsWorkspace.result_log(results_dir)

        logger.debug("Starting JMeter test %s against %s", request.run_label, request.server_url)
        output = self.executor.execute(build_jmeter_args(request, str(result_log)))

        summary = parse_summary(output)
        verdict = evaluate(
            summary,
            functional_validation=request.functional_validation,
            avg_rt_ceiling=request.avg_rt_ceiling,
        )
        logger.debug(
            "JMeter test %s: runs=%d avg=%dms errors=%d -> %s",
            request.run_label,
            summary.runs,
            summary.average_ms,
            summary.errors,
            verdict.reason,
        )
        return verdict
