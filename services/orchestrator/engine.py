from __future__ import annotations

import uuid
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime, timezone
from pathlib import Path

import structlog

from contracts import (
    CheckoutError,
    DeploymentFinishedTrigger,
    ExecutionError,
    GatewayLookupError,
    KeptnEventType,
    ParseError,
    PublishError,
    ReadinessTimeoutError,
    RunEvent,
    RunRecord,
    RunStatus,
    TestRunRequest,
    TestStrategy,
    UnknownStrategyError,
)
from services.orchestrator.checks import CheckPlanner
from services.orchestrator.config import Settings
from services.orchestrator.notifications import NotificationDispatcher
from services.orchestrator.readiness import ReadinessGate
from services.orchestrator.state import RunStateStore
from services.orchestrator.telemetry import get_logger, traced_span
from services.orchestrator.tooling import detect_tool_status
from services.tools import (
    ClusterClient,
    EventBrokerClient,
    GitCheckout,
    JMeterExecutor,
    KubectlClusterClient,
    MockClusterClient,
    ScriptedJMeterExecutor,
)
from services.verification import JMeterRunner
from storage import ResultsWorkspace

logger = get_logger(__name__)


class JMeterServiceEngine:
    def __init__(
        self,
        settings: Settings | None = None,
        executor: JMeterExecutor | None = None,
        cluster: ClusterClient | None = None,
        checkout: GitCheckout | None = None,
        broker: EventBrokerClient | None = None,
        workspace: ResultsWorkspace | None = None,
    ) -> None:
        self.settings = settings or Settings.from_env()
        self.tool_status = detect_tool_status(self.settings)
        self.state_store = RunStateStore()
        self.workspace = workspace or ResultsWorkspace(self.settings.results_root)

        mock_mode = self.settings.mode == "mock"
        if executor is None:
            executor = ScriptedJMeterExecutor() if mock_mode else JMeterExecutor(self.settings.jmeter_binary)
        if cluster is None:
            cluster = (
                MockClusterClient()
                if mock_mode
                else KubectlClusterClient(
                    binary=self.settings.kubectl_binary,
                    rollout_timeout_seconds=self.settings.rollout_timeout_seconds,
                )
            )
        self.cluster = cluster
        self.checkout = checkout or GitCheckout(
            workdir=str(Path(self.settings.workdir) / "repos"),
            base_url=self.settings.github_base_url,
            branch=self.settings.checkout_branch,
            mode=self.settings.mode,
            binary=self.settings.git_binary,
        )
        self.broker = broker or EventBrokerClient(url=self.settings.event_broker_url, mode=self.settings.mode)

        self.runner = JMeterRunner(executor, self.workspace)
        self.readiness_gate = ReadinessGate(self.cluster)
        self.planner = CheckPlanner(self.workspace)
        self.dispatcher = NotificationDispatcher(self.broker)

        self._pool = ThreadPoolExecutor(max_workers=self.settings.max_workers, thread_name_prefix="jmeter-run")
        # Only runs still executing; finished futures drop out.
        self._futures: dict[str, Future] = {}

    def submit(self, trigger: DeploymentFinishedTrigger) -> RunRecord:
        """Records the trigger and runs its tests on a worker thread."""
        record = self._create_run(trigger)
        run_id = record.run_id
        future = self._pool.submit(self._execute, run_id)
        self._futures[run_id] = future
        future.add_done_callback(lambda _: self._futures.pop(run_id, None))
        return record

    def run(self, trigger: DeploymentFinishedTrigger) -> RunRecord:
        record = self._create_run(trigger)
        self._execute(record.run_id)
        return record

    def wait(self, run_id: str, timeout: float | None = None) -> RunRecord:
        future = self._futures.get(run_id)
        if future is not None:
            future.result(timeout=timeout)
        return self.require_run(run_id)

    @property
    def pending_run_ids(self) -> list[str]:
        return list(self._futures)

    def shutdown(self, wait: bool = True) -> None:
        self._pool.shutdown(wait=wait)

    def get_run(self, run_id: str) -> RunRecord | None:
        return self.state_store.get(run_id)

    def require_run(self, run_id: str) -> RunRecord:
        record = self.state_store.get(run_id)
        if not record:
            raise KeyError(f"Run not found: {run_id}")
        return record

    def list_runs(self) -> list[RunRecord]:
        return self.state_store.list_all()

    def snapshot(self, run_id: str) -> dict | None:
        return self.state_store.snapshot(run_id)

    def snapshot_all(self) -> list[dict]:
        return self.state_store.snapshot_all()

    def _create_run(self, trigger: DeploymentFinishedTrigger) -> RunRecord:
        record = RunRecord(run_id=str(uuid.uuid4()), trigger=trigger)
        self.state_store.create(record)
        self.state_store.append_event(
            record.run_id,
            RunEvent.TRIGGER_RECEIVED,
            payload={
                "service": trigger.service,
                "deployment_strategy": trigger.deployment_strategy,
                "test_strategy": trigger.test_strategy,
            },
        )
        return record

    def _execute(self, run_id: str) -> None:
        record = self.require_run(run_id)
        with structlog.contextvars.bound_contextvars(keptn_context=record.trigger.keptn_context, run_id=run_id):
            try:
                self._run_pipeline(record)
            except Exception as exc:  # pragma: no cover - worker guardrail
                logger.exception("Test run failed unexpectedly")
                if not record.is_terminal:
                    self._abort(record, f"Unexpected error: {exc}")

    def _run_pipeline(self, record: RunRecord) -> None:
        trigger = record.trigger
        run_id = record.run_id

        with traced_span("checkout", {"run_id": run_id, "service": trigger.service}):
            try:
                checkout_dir = self.checkout.checkout(trigger.github_org, trigger.service)
            except CheckoutError as exc:
                self._abort(record, f"Error when checking out from GitHub: {exc}")
                return
            self.state_store.append_event(run_id, RunEvent.CHECKOUT_COMPLETED, payload={"path": str(checkout_dir)})

        logger.info("Running tests with jmeter")

        with traced_span("readiness", {"run_id": run_id, "namespace": trigger.namespace}):
            self.state_store.transition(run_id, RunStatus.AWAITING_READINESS)
            try:
                self.readiness_gate.await_ready(trigger.deployment_strategy, trigger.service, trigger.namespace)
            except (UnknownStrategyError, ReadinessTimeoutError) as exc:
                self._abort(record, str(exc))
                return
            self.state_store.append_event(
                run_id,
                RunEvent.READINESS_CONFIRMED,
                payload={"deployment_strategy": trigger.deployment_strategy},
            )

        with traced_span("health_check", {"run_id": run_id}):
            self.state_store.transition(run_id, RunStatus.RUNNING_HEALTH_CHECK)
            request = self.planner.health_check(trigger, checkout_dir, run_id)
            try:
                verdict = self.runner.run(request)
            except (ExecutionError, ParseError) as exc:
                self._abort(record, f"Health check could not be evaluated: {exc}")
                return
            self.state_store.update(run_id, health_check=verdict)
            self.state_store.append_event(
                run_id,
                RunEvent.HEALTH_CHECK_COMPLETED,
                payload={"passed": verdict.passed, "reason": verdict.reason},
            )
            if not verdict.passed:
                logger.info("Health check failed: %s", verdict.reason)
                self._notify_failure(record)
                return

        started_at = datetime.now(timezone.utc)
        with traced_span("strategy_test", {"run_id": run_id, "test_strategy": trigger.test_strategy}):
            self.state_store.transition(run_id, RunStatus.RUNNING_STRATEGY_TEST)
            try:
                strategy = TestStrategy.parse(trigger.test_strategy)
            except UnknownStrategyError as exc:
                logger.error(str(exc))
                self._complete_without_notification(record, reason=str(exc))
                return

            if strategy == TestStrategy.NONE:
                logger.info("No test strategy specified, hence no tests are triggered.")
                self._complete_without_notification(record, reason=None)
                return

            try:
                request = self._strategy_request(strategy, trigger, checkout_dir, run_id)
                verdict = self.runner.run(request)
            except (GatewayLookupError, ExecutionError, ParseError) as exc:
                self._abort(record, f"{strategy.value.capitalize()} test could not be evaluated: {exc}")
                return
            self.state_store.update(run_id, strategy_test=verdict)
            self.state_store.append_event(
                run_id,
                RunEvent.STRATEGY_TEST_COMPLETED,
                payload={"strategy": strategy.value, "passed": verdict.passed, "reason": verdict.reason},
            )
            logger.info("%s test result = %s", strategy.value.capitalize(), verdict.passed)

        if verdict.passed:
            self._notify_success(record, started_at)
        else:
            self._notify_failure(record)

    def _strategy_request(
        self,
        strategy: TestStrategy,
        trigger: DeploymentFinishedTrigger,
        checkout_dir: Path,
        run_id: str,
    ) -> TestRunRequest:
        if strategy == TestStrategy.FUNCTIONAL:
            return self.planner.functional_check(trigger, checkout_dir, run_id)
        gateway = self.cluster.get_config_value(
            self.settings.domain_configmap_namespace,
            self.settings.domain_configmap_name,
            self.settings.domain_configmap_key,
        )
        if not gateway:
            raise GatewayLookupError(
                f"Config map {self.settings.domain_configmap_name} has an empty "
                f"{self.settings.domain_configmap_key} value"
            )
        return self.planner.performance_check(trigger, checkout_dir, run_id, gateway)

    def _notify_success(self, record: RunRecord, started_at: datetime) -> None:
        try:
            event = self.dispatcher.notify_success(record.trigger, started_at)
        except PublishError as exc:
            logger.error("Error sending test finished event: %s", exc)
            self._record_publish_failure(record, KeptnEventType.TESTS_FINISHED, exc)
        else:
            self._record_publish(record, event)
        self.state_store.transition(
            record.run_id,
            RunStatus.NOTIFIED_SUCCESS,
            outcome_event_type=KeptnEventType.TESTS_FINISHED,
        )

    def _notify_failure(self, record: RunRecord) -> None:
        try:
            event = self.dispatcher.notify_failure(record.trigger)
        except PublishError as exc:
            logger.error("Error sending evaluation done event: %s", exc)
            self._record_publish_failure(record, KeptnEventType.EVALUATION_DONE, exc)
        else:
            self._record_publish(record, event)
        self.state_store.transition(
            record.run_id,
            RunStatus.NOTIFIED_FAILURE,
            outcome_event_type=KeptnEventType.EVALUATION_DONE,
        )

    def _record_publish(self, record: RunRecord, event: dict) -> None:
        self.state_store.append_event(
            record.run_id,
            RunEvent.OUTCOME_PUBLISHED,
            payload={"type": event["type"], "id": event["id"]},
        )

    def _record_publish_failure(self, record: RunRecord, event_type: KeptnEventType, exc: PublishError) -> None:
        self.state_store.update(record.run_id, last_error=str(exc))
        self.state_store.append_event(
            record.run_id,
            RunEvent.OUTCOME_PUBLISH_FAILED,
            payload={"type": event_type.value, "error": str(exc)},
        )

    def _complete_without_notification(self, record: RunRecord, reason: str | None) -> None:
        self.state_store.append_event(
            record.run_id,
            RunEvent.STRATEGY_TEST_SKIPPED,
            payload={"test_strategy": record.trigger.test_strategy, "reason": reason},
        )
        self.state_store.transition(record.run_id, RunStatus.COMPLETED_WITHOUT_NOTIFICATION, last_error=reason)

    def _abort(self, record: RunRecord, reason: str) -> None:
        logger.error(reason)
        self.state_store.append_event(record.run_id, RunEvent.RUN_ABORTED, payload={"reason": reason})
        self.state_store.transition(record.run_id, RunStatus.ABORTED, last_error=reason)
