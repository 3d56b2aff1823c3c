from services.verification.runner import JMeterRunner, build_jmeter_args
from services.verification.summary import parse_summary
from services.verification.verdict import MAX_ACCEPTED_ERROR_RATE, evaluate

__all__ = [
    "MAX_ACCEPTED_ERROR_RATE",
    "JMeterRunner",
    "build_jmeter_args",
    "evaluate",
    "parse_summary",
]
