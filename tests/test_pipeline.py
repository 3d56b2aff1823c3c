from __future__ import annotations

import socket
import threading
from pathlib import Path
from typing import Iterator

import pytest

from contracts import (
    CheckoutError,
    DeploymentFinishedTrigger,
    KeptnEventType,
    PublishError,
    RunEvent,
    RunStatus,
)
from services.orchestrator.config import Settings
from services.orchestrator.engine import JMeterServiceEngine
from services.tools import (
    EventBrokerClient,
    GitCheckout,
    MockClusterClient,
    ScriptedJMeterExecutor,
    deployment_finished_event,
    jmeter_output,
    truncated_output,
)

TESTS_FINISHED = KeptnEventType.TESTS_FINISHED.value
EVALUATION_DONE = KeptnEventType.EVALUATION_DONE.value


def build_trigger(
    deployment_strategy: str = "direct",
    test_strategy: str = "functional",
    service: str = "carts",
) -> DeploymentFinishedTrigger:
    return DeploymentFinishedTrigger.from_cloudevent(
        deployment_finished_event(
            service=service,
            deployment_strategy=deployment_strategy,
            test_strategy=test_strategy,
        )
    )


def build_engine(
    tmp_path: Path,
    *,
    executor: ScriptedJMeterExecutor | None = None,
    cluster: MockClusterClient | None = None,
    checkout: GitCheckout | None = None,
    broker: EventBrokerClient | None = None,
) -> JMeterServiceEngine:
    settings = Settings(mode="mock", workdir=str(tmp_path), max_workers=2)
    return JMeterServiceEngine(
        settings=settings,
        executor=executor or ScriptedJMeterExecutor(),
        cluster=cluster or MockClusterClient(),
        checkout=checkout,
        broker=broker or EventBrokerClient(mode="mock"),
    )


def test_functional_pass_publishes_tests_finished(tmp_path: Path) -> None:
    executor = ScriptedJMeterExecutor()
    engine = build_engine(tmp_path, executor=executor)
    trigger = build_trigger(test_strategy="functional")

    record = engine.run(trigger)

    assert record.status == RunStatus.NOTIFIED_SUCCESS
    assert executor.phases == ["HealthCheck", "FuncCheck"]
    published = engine.broker.published
    assert len(published) == 1
    event = published[0]
    assert event["type"] == TESTS_FINISHED
    assert event["shkeptncontext"] == "ctx-123"
    assert event["source"] == "jmeter-service"
    assert "startedat" in event["data"]
    echoed = {key: value for key, value in event["data"].items() if key != "startedat"}
    assert echoed == trigger.payload
    assert "startedat" not in trigger.payload


def test_functional_check_targets_internal_address(tmp_path: Path) -> None:
    executor = ScriptedJMeterExecutor()
    engine = build_engine(tmp_path, executor=executor)

    engine.run(build_trigger(test_strategy="functional"))

    health_args, functional_args = executor.calls
    assert str(tmp_path / "repos" / "carts" / "jmeter" / "basiccheck.jmx") in health_args
    assert str(tmp_path / "repos" / "carts" / "jmeter" / "carts_load.jmx") in functional_args
    assert "-JSERVER_URL=carts.sockshop-dev" in functional_args
    assert "-JVUCount=1" in functional_args
    assert "-JLoopCount=1" in functional_args
    assert "-JFUNC_VALIDATION=true" in functional_args


def test_blue_green_with_unready_green_aborts_before_testing(tmp_path: Path) -> None:
    executor = ScriptedJMeterExecutor()
    cluster = MockClusterClient(unavailable={"carts-green"})
    engine = build_engine(tmp_path, executor=executor, cluster=cluster)

    record = engine.run(build_trigger(deployment_strategy="blue_green", test_strategy="performance"))

    assert record.status == RunStatus.ABORTED
    assert [name for name, _ in cluster.waited] == ["carts-blue", "carts-green"]
    assert executor.calls == []
    assert engine.broker.published == []


def test_unknown_deployment_strategy_aborts(tmp_path: Path) -> None:
    executor = ScriptedJMeterExecutor()
    engine = build_engine(tmp_path, executor=executor)

    record = engine.run(build_trigger(deployment_strategy="canary"))

    assert record.status == RunStatus.ABORTED
    assert "unknown deployment strategy 'canary'" in (record.last_error or "").lower()
    assert executor.calls == []
    assert engine.broker.published == []


@pytest.mark.parametrize("test_strategy", ["", "none", "None"])
def test_no_test_strategy_emits_nothing(tmp_path: Path, test_strategy: str) -> None:
    executor = ScriptedJMeterExecutor()
    engine = build_engine(tmp_path, executor=executor)

    record = engine.run(build_trigger(test_strategy=test_strategy))

    assert record.status == RunStatus.COMPLETED_WITHOUT_NOTIFICATION
    assert record.health_check is not None and record.health_check.passed
    assert executor.phases == ["HealthCheck"]
    assert engine.broker.published == []
    assert record.last_error is None
    health_args = executor.calls[0]
    assert "-JVUCount=1" in health_args
    assert "-JLoopCount=1" in health_args
    assert "-JFUNC_VALIDATION=true" in health_args
    assert "-JCHECK_PATH=/health" in health_args
    assert "-JSERVER_URL=carts.sockshop-dev" in health_args


def test_unknown_test_strategy_is_skipped_not_aborted(tmp_path: Path) -> None:
    executor = ScriptedJMeterExecutor()
    engine = build_engine(tmp_path, executor=executor)

    record = engine.run(build_trigger(test_strategy="soak"))

    assert record.status == RunStatus.COMPLETED_WITHOUT_NOTIFICATION
    assert "unknown test strategy 'soak'" in (record.last_error or "").lower()
    assert executor.phases == ["HealthCheck"]
    assert engine.broker.published == []


def test_failing_health_check_short_circuits(tmp_path: Path) -> None:
    executor = ScriptedJMeterExecutor(outputs={"HealthCheck": jmeter_output(runs=1, average_ms=15, errors=1)})
    engine = build_engine(tmp_path, executor=executor)

    record = engine.run(build_trigger(test_strategy="performance"))

    assert record.status == RunStatus.NOTIFIED_FAILURE
    assert executor.phases == ["HealthCheck"]
    assert record.strategy_test is None
    published = engine.broker.published
    assert len(published) == 1
    assert published[0]["type"] == EVALUATION_DONE
    assert published[0]["data"]["evaluationpassed"] is False


def test_performance_failure_emits_single_evaluation_done(tmp_path: Path) -> None:
    executor = ScriptedJMeterExecutor(outputs={"PerfCheck": jmeter_output(runs=5000, average_ms=80, errors=600)})
    engine = build_engine(tmp_path, executor=executor)

    record = engine.run(build_trigger(deployment_strategy="direct", test_strategy="performance"))

    assert record.status == RunStatus.NOTIFIED_FAILURE
    assert record.outcome_event_type == KeptnEventType.EVALUATION_DONE
    assert len(engine.broker.published_of_type(EVALUATION_DONE)) == 1
    assert engine.broker.published_of_type(TESTS_FINISHED) == []
    assert engine.broker.published[0]["data"]["evaluationpassed"] is False


def test_performance_check_routes_through_gateway(tmp_path: Path) -> None:
    executor = ScriptedJMeterExecutor()
    cluster = MockClusterClient(config={("keptn", "keptn-domain", "app_domain"): "34.77.1.2.xip.io"})
    engine = build_engine(tmp_path, executor=executor, cluster=cluster)

    record = engine.run(build_trigger(test_strategy="performance"))

    assert record.status == RunStatus.NOTIFIED_SUCCESS
    performance_args = executor.calls[-1]
    assert "-JSERVER_URL=carts.sockshop-dev.34.77.1.2.xip.io" in performance_args
    assert "-JVUCount=10" in performance_args
    assert "-JLoopCount=500" in performance_args
    assert "-JFUNC_VALIDATION=false" in performance_args
    assert "-JAVG_RT_VALIDATION=0" in performance_args


def test_missing_gateway_aborts_performance_check(tmp_path: Path) -> None:
    executor = ScriptedJMeterExecutor()
    engine = build_engine(tmp_path, executor=executor, cluster=MockClusterClient(config={}))

    record = engine.run(build_trigger(test_strategy="performance"))

    assert record.status == RunStatus.ABORTED
    assert executor.phases == ["HealthCheck"]
    assert engine.broker.published == []


def test_execution_failure_aborts_without_notification(tmp_path: Path) -> None:
    executor = ScriptedJMeterExecutor(failing_phases={"FuncCheck"})
    engine = build_engine(tmp_path, executor=executor)

    record = engine.run(build_trigger(test_strategy="functional"))

    assert record.status == RunStatus.ABORTED
    assert record.health_check is not None
    assert record.strategy_test is None
    assert engine.broker.published == []


def test_unparseable_health_check_aborts(tmp_path: Path) -> None:
    executor = ScriptedJMeterExecutor(outputs={"HealthCheck": truncated_output()})
    engine = build_engine(tmp_path, executor=executor)

    record = engine.run(build_trigger(test_strategy="functional"))

    assert record.status == RunStatus.ABORTED
    assert "cannot parse jmeter-result" in (record.last_error or "").lower()
    assert executor.phases == ["HealthCheck"]
    assert engine.broker.published == []


def test_checkout_failure_aborts_before_readiness(tmp_path: Path) -> None:
    class FailingCheckout(GitCheckout):
        def checkout(self, org: str, repo: str, branch: str | None = None) -> Path:
            raise CheckoutError("repository not found")

    cluster = MockClusterClient()
    engine = build_engine(tmp_path, cluster=cluster, checkout=FailingCheckout(workdir=str(tmp_path)))

    record = engine.run(build_trigger())

    assert record.status == RunStatus.ABORTED
    assert "checking out" in (record.last_error or "").lower()
    assert cluster.waited == []
    assert engine.broker.published == []


def test_publish_failure_keeps_terminal_decision(tmp_path: Path) -> None:
    broker = EventBrokerClient(mode="mock", fail_publishes=True)
    engine = build_engine(tmp_path, broker=broker)

    record = engine.run(build_trigger(test_strategy="functional"))

    assert record.status == RunStatus.NOTIFIED_SUCCESS
    assert broker.published == []
    failures = [event for event in record.events if event.event == RunEvent.OUTCOME_PUBLISH_FAILED]
    assert len(failures) == 1
    assert failures[0].payload["type"] == TESTS_FINISHED


@pytest.fixture
def hanging_broker_url() -> Iterator[str]:
    server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    server.bind(("127.0.0.1", 0))
    server.listen()
    server.settimeout(0.1)
    host, port = server.getsockname()
    stopped = threading.Event()

    def hang_up() -> None:
        while not stopped.is_set():
            try:
                conn, _ = server.accept()
            except socket.timeout:
                continue
            with conn:
                conn.recv(65536)

    thread = threading.Thread(target=hang_up, daemon=True)
    thread.start()
    yield f"http://{host}:{port}/keptn"
    stopped.set()
    thread.join(timeout=5)
    server.close()


def test_broker_hang_up_is_a_publish_error(hanging_broker_url: str) -> None:
    broker = EventBrokerClient(url=hanging_broker_url, mode="real", timeout=5.0)

    with pytest.raises(PublishError, match="Failed to send cloudevent"):
        broker.publish({"type": TESTS_FINISHED, "id": "evt-1"})

    assert broker.published == []


def test_broker_hang_up_keeps_notified_status(tmp_path: Path, hanging_broker_url: str) -> None:
    broker = EventBrokerClient(url=hanging_broker_url, mode="real", timeout=5.0)
    engine = build_engine(tmp_path, broker=broker)

    record = engine.run(build_trigger(test_strategy="functional"))

    assert record.status == RunStatus.NOTIFIED_SUCCESS
    assert record.outcome_event_type == KeptnEventType.TESTS_FINISHED
    assert not any(event.event == RunEvent.RUN_ABORTED for event in record.events)
    failures = [event for event in record.events if event.event == RunEvent.OUTCOME_PUBLISH_FAILED]
    assert len(failures) == 1
    assert failures[0].payload["type"] == TESTS_FINISHED


def test_submitted_runs_execute_independently(tmp_path: Path) -> None:
    executor = ScriptedJMeterExecutor()
    cluster = MockClusterClient(unavailable={"orders"})
    engine = build_engine(tmp_path, executor=executor, cluster=cluster)

    carts = engine.submit(build_trigger(service="carts"))
    orders = engine.submit(build_trigger(service="orders"))
    carts = engine.wait(carts.run_id, timeout=10)
    orders = engine.wait(orders.run_id, timeout=10)
    engine.shutdown()

    assert carts.is_terminal and orders.is_terminal
    assert carts.status == RunStatus.NOTIFIED_SUCCESS
    assert orders.status == RunStatus.ABORTED
    assert len(engine.broker.published) == 1
    assert engine.broker.published[0]["data"]["service"] == "carts"
    assert {record.run_id for record in engine.list_runs()} == {carts.run_id, orders.run_id}
    assert engine.pending_run_ids == []
