"""Parser for the ``summary =`` lines JMeter prints to stdout.

A final summary line looks like::

    summary =    100 in 00:00:05 =   20.0/s Avg:    45 Min:    10 Max:   120 Err:     0 (0.00%)

JMeter may print interim summaries while a test runs, so only the last one
counts. The field positions below describe the line after whitespace has been
collapsed; they are the only place the report format is assumed.
"""

from __future__ import annotations

import re

from contracts.errors import ParseError
from contracts.models import ReportSummary

SUMMARY_MARKER = "summary ="

RUNS_FIELD = 2
AVERAGE_FIELD = 8
ERRORS_FIELD = 14

_WHITESPACE = re.compile(r"\s+")
_NON_NEGATIVE_INT = re.compile(r"\d+")


def find_last_summary_line(output: str) -> str | None:
    for line in reversed(output.splitlines()):
        if line.startswith(SUMMARY_MARKER):
            return line
    return None


def _read_int(fields: list[str], index: int, name: str) -> int:
    if index >= len(fields):
        raise ParseError(f"Cannot parse jmeter-result: missing {name} field")
    token = fields[index]
    if not _NON_NEGATIVE_INT.fullmatch(token):
        raise ParseError(f"Cannot parse jmeter-result: {name} field is not an integer ({token!r})")
    return int(token)


def parse_summary(output: str) -> ReportSummary:
    line = find_last_summary_line(output)
    if line is None:
        raise ParseError("Cannot parse jmeter-result: no summary line found")

    fields = _WHITESPACE.sub(" ", line).split(" ")
    return ReportSummary(
        runs=_read_int(fields, RUNS_FIELD, "run count"),
        average_ms=_read_int(fields, AVERAGE_FIELD, "average response time"),
        errors=_read_int(fields, ERRORS_FIELD, "error count"),
    )
