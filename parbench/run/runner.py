"""Benchmark execution runner."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from ..common.enums import BenchmarkKind, FibonacciMode, Variant
from ..config import BILINEAR_WORKER, EngineConfig, default_config
from ..errors import BenchmarkError, WorkerInvocationError
from ..models import (
    CILK_SAMPLE_KEYS,
    BenchmarkRequest,
    BilinearResult,
    FibonacciResult,
)
from .invoker import WorkerOutcome, WorkerRequest, invoke_worker
from .parallel_executor import ParallelExecutor
from .parsers import (
    build_bilinear_result,
    decode_structured_output,
    degraded_bilinear_result,
    extract_text_metrics,
)
from .timing import normalize_variant_timings

logger = logging.getLogger(__name__)

# Reported when the secondary worker failed without a usable message
CILK_UNAVAILABLE = "OpenCilk binary not available"


class BenchmarkRunner:
    """Runs benchmark workers and turns their output into one result.

    Holds configuration only; every call builds its own requests, child
    processes and result objects.
    """

    def __init__(self, config: EngineConfig | None = None):
        self.config = config or default_config()

    # -------------------------------------------------------------------------
    # Worker plumbing
    # -------------------------------------------------------------------------

    def _worker_request(
        self, worker: str, *args: str, cwd: Path | None = None
    ) -> WorkerRequest:
        worker_config = self.config.workers[worker]
        return WorkerRequest(
            worker=worker,
            executable=self.config.worker_path(worker),
            args=tuple(args),
            timeout_s=worker_config.timeout_s,
            cwd=cwd,
        )

    def _run_fibonacci_worker(self, variant: Variant, n: int) -> FibonacciResult:
        """Invoke one Fibonacci worker and decode its JSON document."""
        outcome = invoke_worker(self._worker_request(variant.value, str(n)))
        return decode_structured_output(outcome.stdout, variant.value)

    # -------------------------------------------------------------------------
    # Fibonacci
    # -------------------------------------------------------------------------

    def run_fibonacci(
        self, n: int, mode: FibonacciMode | str = FibonacciMode.OPENMP
    ) -> FibonacciResult:
        """
        Run the Fibonacci benchmark.

        Args:
            n: Validated Fibonacci index
            mode: ``openmp`` or ``cilk`` for one worker, ``both`` to compare them

        Returns:
            Result whose samples all share one baseline

        Raises:
            WorkerInvocationError: The (primary) worker failed to run
            OutputDecodeError: The (primary) worker's output was malformed
        """
        mode = FibonacciMode(mode)
        if mode.is_combined:
            return self._run_fibonacci_combined(n)

        variant = Variant(mode.value)
        result = self._run_fibonacci_worker(variant, n)
        if variant is Variant.CILK:
            normalize_variant_timings(result, result.baseline_time)
        return result

    def _run_fibonacci_combined(self, n: int) -> FibonacciResult:
        """Run the OpenMP and Cilk workers concurrently and merge their results."""
        primary, secondary = Variant.OPENMP, Variant.CILK
        executor = ParallelExecutor(max_workers=self.config.max_workers)
        outcomes = executor.execute_parallel(
            {
                primary.value: lambda: self._run_fibonacci_worker(primary, n),
                secondary.value: lambda: self._run_fibonacci_worker(secondary, n),
            },
            phase_name=f"fibonacci n={n}",
        )

        primary_outcome = outcomes[primary.value]
        if not primary_outcome.ok:
            error = primary_outcome.error
            if isinstance(error, BenchmarkError):
                raise error
            raise WorkerInvocationError(
                f"[{primary.value}] {primary_outcome.error_message}",
                worker=primary.value,
            ) from error

        merged: FibonacciResult = primary_outcome.value
        secondary_outcome = outcomes[secondary.value]

        if secondary_outcome.ok:
            merged.adopt_samples(secondary_outcome.value, CILK_SAMPLE_KEYS)
            merged.mark_available(secondary)
            # The primary's sequential run is the only baseline in the response
            normalize_variant_timings(merged, merged.baseline_time)
        else:
            reason = secondary_outcome.error_message or CILK_UNAVAILABLE
            logger.warning("Secondary worker unavailable: %s", reason)
            if secondary_outcome.traceback:
                logger.debug("[%s] %s", secondary.value, secondary_outcome.traceback)
            merged.mark_unavailable(secondary, reason)

        return merged

    # -------------------------------------------------------------------------
    # Bilinear interpolation
    # -------------------------------------------------------------------------

    def run_bilinear(
        self, image: str | None = None, scaling: float | None = None
    ) -> BilinearResult:
        """
        Run the bilinear interpolation benchmark on an image.

        The worker only prints free-form text; when that text cannot be used
        a degraded ``completed`` result is returned instead of failing.

        Raises:
            WorkerInvocationError: The worker failed to run
        """
        image = image or self.config.default_image
        if scaling is None:
            scaling = self.config.limits.default_scaling

        # The worker resolves the image and writes its outputs relative to cwd
        workdir = self.config.worker_path(BILINEAR_WORKER).parent
        outcome = invoke_worker(
            self._worker_request(BILINEAR_WORKER, image, cwd=workdir)
        )
        return self._parse_bilinear(outcome, image, scaling)

    def _parse_bilinear(
        self, outcome: WorkerOutcome, image: str, scaling: float
    ) -> BilinearResult:
        metrics = extract_text_metrics(outcome.stdout, self.config.markers)
        if not metrics.usable:
            logger.warning(
                "[%s] Could not extract image dimensions from output:\n%s",
                outcome.worker,
                outcome.stdout,
            )
            return degraded_bilinear_result(image)
        return build_bilinear_result(metrics, image, requested_scaling=scaling)

    # -------------------------------------------------------------------------
    # Dispatch
    # -------------------------------------------------------------------------

    def run(self, request: BenchmarkRequest) -> FibonacciResult | BilinearResult:
        """Dispatch a validated request to the matching benchmark."""
        if request.kind is BenchmarkKind.FIBONACCI:
            assert request.n is not None
            return self.run_fibonacci(request.n, request.mode)
        return self.run_bilinear(request.image, request.scaling)


def run_benchmark(
    request: BenchmarkRequest, config: EngineConfig | None = None
) -> dict[str, Any]:
    """
    Run one benchmark request and return its response body.

    Args:
        request: Validated request descriptor
        config: Engine configuration, defaults to ``default_config()``

    Returns:
        The normalized result as a plain dictionary
    """
    runner = BenchmarkRunner(config)
    return runner.run(request).to_dict()
