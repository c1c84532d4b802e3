"""Timing normalization and derived metrics."""

from __future__ import annotations

import math
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ..models import FibonacciResult

# Smallest time ever used as a denominator
MIN_TIME_S = 1e-9
# Below this the worker's timer most likely registered nothing at all
RELIABLE_TIME_S = 1e-6

_CENTS = Decimal("0.01")


def clamp_time(value: Any) -> float:
    """Return ``value`` as a strictly positive float, ``MIN_TIME_S`` if unusable."""
    try:
        t = float(value)
    except (TypeError, ValueError):
        return MIN_TIME_S
    if not math.isfinite(t) or t <= 0:
        return MIN_TIME_S
    return t


def round2(value: float) -> float:
    """Round half away from zero to 2 decimals, like printf's ``%.2f``."""
    # Past 1e15 a double has no fractional digits left to round
    if not math.isfinite(value) or abs(value) >= 1e15:
        return value
    # Adding 0.0 folds -0.0 into 0.0
    return float(Decimal(value).quantize(_CENTS, rounding=ROUND_HALF_UP)) + 0.0


def normalize_sample(
    time_s: Any, baseline_s: Any, with_overhead: bool = False
) -> tuple[float, float, float | None]:
    """
    Correct a raw time sample and derive its metrics against a baseline.

    Args:
        time_s: Raw time reported for the candidate run
        baseline_s: Raw baseline time
        with_overhead: Also compute the overhead percentage

    Returns:
        Tuple of (corrected time, speedup, overhead percent or None)
    """
    base = clamp_time(baseline_s)
    t = clamp_time(time_s)
    if t < RELIABLE_TIME_S:
        t = base

    speedup = round2(base / t)
    overhead = round2((t - base) / base * 100) if with_overhead else None
    return t, speedup, overhead


def normalize_variant_timings(result: FibonacciResult, baseline_s: Any) -> FibonacciResult:
    """
    Re-derive the Cilk samples of ``result`` against ``baseline_s``.

    The serial Cilk run is the serial variant under test and also gets an
    overhead percentage; the parallel run only gets a speedup.
    """
    serial = result.sample("cilk_serial")
    if serial is not None:
        serial.time, serial.speedup, serial.overhead = normalize_sample(
            serial.time, baseline_s, with_overhead=True
        )

    parallel = result.sample("cilk_parallel")
    if parallel is not None:
        parallel.time, parallel.speedup, _ = normalize_sample(
            parallel.time, baseline_s
        )

    return result
