from __future__ import annotations

from contracts.models import ReportSummary, Verdict

MAX_ACCEPTED_ERROR_RATE = 0.1


def evaluate(summary: ReportSummary, functional_validation: bool, avg_rt_ceiling: int = 0) -> Verdict:
    if functional_validation:
        if summary.errors > 0:
            return Verdict(
                passed=False,
                reason=f"Function validation failed because we got {summary.errors} errors.",
            )
    else:
        max_accepted_errors = int(MAX_ACCEPTED_ERROR_RATE * summary.runs)
        if summary.errors > max_accepted_errors:
            return Verdict(
                passed=False,
                reason=f"JMeter test failed because we got a too high error rate of {summary.error_rate:.2f}.",
            )

    if avg_rt_ceiling > 0 and summary.average_ms > avg_rt_ceiling:
        return Verdict(
            passed=False,
            reason=(
                f"Avg rt validation failed because we got an avg rt of {summary.average_ms} ms "
                f"(limit {avg_rt_ceiling} ms)."
            ),
        )

    return Verdict(passed=True, reason="Successfully executed JMeter test.")
