from enum import Enum


class KeptnEventType(str, Enum):
    DEPLOYMENT_FINISHED = "sh.keptn.events.deployment-finished"
    TESTS_FINISHED = "sh.keptn.events.tests-finished"
    EVALUATION_DONE = "sh.keptn.events.evaluation-done"


class RunEvent(str, Enum):
    TRIGGER_RECEIVED = "TriggerReceived"
    CHECKOUT_COMPLETED = "CheckoutCompleted"
    READINESS_CONFIRMED = "ReadinessConfirmed"
    HEALTH_CHECK_COMPLETED = "HealthCheckCompleted"
    STRATEGY_TEST_COMPLETED = "StrategyTestCompleted"
    STRATEGY_TEST_SKIPPED = "StrategyTestSkipped"
    OUTCOME_PUBLISHED = "OutcomePublished"
    OUTCOME_PUBLISH_FAILED = "OutcomePublishFailed"
    RUN_ABORTED = "RunAborted"
