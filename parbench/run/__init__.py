"""Benchmark execution modules."""

from .invoker import WorkerOutcome, WorkerRequest, invoke_worker
from .parsers import extract_text_metrics, normalize_runs
from .runner import BenchmarkRunner, run_benchmark
from .sanitize import sanitize_numeric_tokens
from .timing import normalize_sample, normalize_variant_timings

__all__ = [
    "run_benchmark",
    "BenchmarkRunner",
    "WorkerRequest",
    "WorkerOutcome",
    "invoke_worker",
    "extract_text_metrics",
    "normalize_runs",
    "normalize_sample",
    "normalize_variant_timings",
    "sanitize_numeric_tokens",
]
