from __future__ import annotations


class OrchestrationError(Exception):
    """Base class for failures that end a test run."""


class ParseError(OrchestrationError):
    pass


class ExecutionError(OrchestrationError):
    def __init__(self, message: str, output: str = "") -> None:
        super().__init__(message)
        self.output = output


class UnknownStrategyError(OrchestrationError, ValueError):
    def __init__(self, kind: str, value: str) -> None:
        super().__init__(f"Unknown {kind} strategy '{value}'")
        self.kind = kind
        self.value = value


class ReadinessTimeoutError(OrchestrationError):
    pass


class CheckoutError(OrchestrationError):
    pass


class GatewayLookupError(OrchestrationError):
    pass


class PublishError(OrchestrationError):
    pass
