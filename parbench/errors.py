"""Exception taxonomy for benchmark execution failures.

Every failure that reaches the caller carries a category so the outer layer
can tell which stage broke:

- ``invocation``: the worker could not be started, exited non-zero or ran
  past its deadline
- ``decode``: the worker's structured output was malformed even after
  sanitization
- ``validation``: the request parameters were out of bounds

Extraction shortfalls on text output are not errors; they degrade the result
instead (see ``parbench.run.parsers``).
"""

from __future__ import annotations

from typing import Any


class BenchmarkError(Exception):
    """Base class for all failures surfaced by the engine."""

    category = "benchmark"
    summary = "Benchmark failed"

    def __init__(
        self,
        detail: str,
        *,
        worker: str | None = None,
        output: str | None = None,
    ):
        super().__init__(detail)
        self.detail = detail
        self.worker = worker
        self.output = output

    def to_dict(self) -> dict[str, Any]:
        """Return the structured failure handed to the outer layer."""
        payload: dict[str, Any] = {
            "category": self.category,
            "error": self.summary,
            "details": self.detail,
        }
        if self.worker:
            payload["worker"] = self.worker
        if self.output is not None:
            payload["output"] = self.output
        return payload


class WorkerInvocationError(BenchmarkError):
    """Worker process failed to start, exited non-zero or timed out."""

    category = "invocation"
    summary = "Failed to execute worker program"

    def __init__(
        self,
        detail: str,
        *,
        worker: str | None = None,
        output: str | None = None,
        returncode: int | None = None,
        timed_out: bool = False,
    ):
        super().__init__(detail, worker=worker, output=output)
        self.returncode = returncode
        self.timed_out = timed_out


class OutputDecodeError(BenchmarkError):
    """Structured worker output could not be decoded."""

    category = "decode"
    summary = "Failed to parse worker output"


class RequestValidationError(BenchmarkError):
    """Request parameters fall outside the accepted bounds."""

    category = "validation"
    summary = "Invalid request"
