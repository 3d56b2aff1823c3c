from __future__ import annotations


def _summary_line(prefix: str, runs: int, elapsed: str, average_ms: int, errors: int) -> str:
    throughput = runs / 5.0
    error_pct = (errors / runs * 100.0) if runs else 0.0
    return (
        f"{prefix} {runs:6d} in {elapsed} = {throughput:6.1f}/s "
        f"Avg: {average_ms:5d} Min: {max(0, average_ms - 8):5d} Max: {average_ms + 90:5d} "
        f"Err: {errors:5d} ({error_pct:.2f}%)"
    )


def jmeter_output(runs: int, average_ms: int, errors: int, interim: bool = False) -> str:
    """Console output shaped like a ``jmeter -n`` run."""
    lines = [
        "Creating summariser <summary>",
        "Created the tree successfully using ./carts/jmeter/carts_load.jmx",
        "Starting standalone test @ Mon Oct 14 11:42:05 UTC 2026 (1760442125000)",
        "Waiting for possible Shutdown/StopTestNow/HeapDump/ThreadDump message on port 4445",
    ]
    if interim:
        lines.append(_summary_line("summary +", max(1, runs // 2), "00:00:03", average_ms, 0))
        lines.append(_summary_line("summary =", max(1, runs // 2), "00:00:03", average_ms, 0))
    lines.extend(
        [
            _summary_line("summary +", runs, "00:00:05", average_ms, errors),
            _summary_line("summary =", runs, "00:00:05", average_ms, errors),
            "Tidying up ...    @ Mon Oct 14 11:42:10 UTC 2026 (1760442130000)",
            "... end of run",
        ]
    )
    return "\n".join(lines) + "\n"


def truncated_output() -> str:
    return "\n".join(
        [
            "Creating summariser <summary>",
            "summary =     12 in 00:00:01 =   12.0/s Avg:",
            "... end of run",
        ]
    ) + "\n"


def deployment_finished_event(
    service: str = "carts",
    deployment_strategy: str = "direct",
    test_strategy: str = "functional",
    keptn_context: str = "ctx-123",
) -> dict:
    return {
        "specversion": "0.2",
        "type": "sh.keptn.events.deployment-finished",
        "source": "helm-service",
        "id": "evt-2b1c",
        "time": "2026-10-14T11:40:00Z",
        "contenttype": "application/json",
        "shkeptncontext": keptn_context,
        "data": {
            "githuborg": "sockshop-org",
            "project": "sockshop",
            "teststrategy": test_strategy,
            "deploymentstrategy": deployment_strategy,
            "stage": "dev",
            "service": service,
            "image": f"docker.io/keptnexamples/{service}",
            "tag": "0.8.2",
        },
    }
