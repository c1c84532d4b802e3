"""Worker output decoding, text metrics extraction and result normalization."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any

import pandas as pd

from ..common.enums import ResultStatus
from ..config import TextMarkersConfig
from ..errors import OutputDecodeError
from ..models import BilinearResult, FibonacciResult, ParallelRun
from .sanitize import sanitize_numeric_tokens

_DIMENSIONS = re.compile(r"(\d+)x(\d+)")
_THREADS = re.compile(r"(\d+)\s*threads")

# Reported when the image worker's output cannot be used
DEGRADED_NOTE = "Could not fully parse output"
DEGRADED_SERIAL_TIME = 0.01
RESULT_FILE_PPM = "result_serial.ppm"
RESULT_FILE_PNG = "result_serial.png"


# =============================================================================
# Structured output
# =============================================================================


def decode_structured_output(stdout: str, worker: str) -> FibonacciResult:
    """
    Sanitize and decode the JSON document printed by a Fibonacci worker.

    Raises:
        OutputDecodeError: If the output is not a JSON object after sanitization
    """
    sanitized = sanitize_numeric_tokens(stdout)
    try:
        document = json.loads(sanitized)
    except json.JSONDecodeError as e:
        raise OutputDecodeError(
            f"[{worker}] Failed to parse worker output: {e}",
            worker=worker,
            output=stdout,
        ) from e

    if not isinstance(document, dict):
        raise OutputDecodeError(
            f"[{worker}] Failed to parse worker output: expected a JSON object, "
            f"got {type(document).__name__}",
            worker=worker,
            output=stdout,
        )

    return FibonacciResult.from_document(document)


# =============================================================================
# Text output
# =============================================================================


@dataclass
class TextMetrics:
    """Measurements recovered from free-form worker output.

    Every field keeps its zero default when its marker was not found.
    """

    original_width: int = 0
    original_height: int = 0
    new_width: int = 0
    new_height: int = 0
    serial_time: float = 0.0
    parallel_results: list[ParallelRun] = field(default_factory=list)

    @property
    def usable(self) -> bool:
        """True when the original size is known, so a scaling ratio exists."""
        return self.original_width > 0


def _dimensions(line: str, order: str) -> tuple[int, int] | None:
    """Return (width, height) from the first ``AxB`` token of ``line``."""
    match = _DIMENSIONS.search(line)
    if not match:
        return None
    first, second = int(match.group(1)), int(match.group(2))
    if order == "hw":
        return second, first
    return first, second


def extract_text_metrics(
    text: str, markers: TextMarkersConfig | None = None
) -> TextMetrics:
    """
    Scan worker output line by line for the known markers.

    A thread count line only produces a parallel result when the line right
    after it carries a time; otherwise that count is dropped.

    Args:
        text: Worker stdout
        markers: Marker vocabulary, defaults to the bilinear worker's

    Returns:
        Extracted metrics, with zero defaults for anything not found
    """
    markers = markers or TextMarkersConfig()
    time_pattern = re.compile(rf"(\d+\.\d+)\s*{re.escape(markers.time_unit)}")

    metrics = TextMetrics()
    lines = text.split("\n")

    for i, line in enumerate(lines):
        if markers.loaded in line:
            dims = _dimensions(line, markers.loaded_order)
            if dims:
                metrics.original_width, metrics.original_height = dims

        if markers.source_size in line:
            dims = _dimensions(line, markers.source_size_order)
            if dims:
                metrics.original_width, metrics.original_height = dims

        if markers.result_size in line:
            dims = _dimensions(line, markers.result_size_order)
            if dims:
                metrics.new_width, metrics.new_height = dims

        if markers.serial_time in line:
            match = time_pattern.search(line)
            if match:
                metrics.serial_time = float(match.group(1))

        if markers.thread_run in line:
            thread_match = _THREADS.search(line)
            time_match = time_pattern.search(lines[i + 1]) if i + 1 < len(lines) else None
            if thread_match and time_match:
                metrics.parallel_results.append(
                    ParallelRun(
                        threads=int(thread_match.group(1)),
                        time=float(time_match.group(1)),
                    )
                )

    return metrics


def build_bilinear_result(
    metrics: TextMetrics, image: str, requested_scaling: float | None = None
) -> BilinearResult:
    """Build the full result from usable metrics."""
    actual_scaling = metrics.new_width / metrics.original_width
    return BilinearResult(
        status=ResultStatus.SUCCESS,
        original_width=metrics.original_width,
        original_height=metrics.original_height,
        new_width=metrics.new_width,
        new_height=metrics.new_height,
        scaling=f"{actual_scaling:.2f}",
        requested_scaling=requested_scaling,
        serial_time=metrics.serial_time,
        parallel_results=list(metrics.parallel_results),
        output_file=RESULT_FILE_PPM,
        output_file_serial=RESULT_FILE_PNG,
        # Serial and parallel runs produce the same image
        output_file_parallel=RESULT_FILE_PNG,
        original_file=image,
        algorithm="Bilinear Interpolation (RGB)",
        implementation="C + OpenMP",
    )


def degraded_bilinear_result(image: str) -> BilinearResult:
    """Build the placeholder result used when the output could not be parsed."""
    return BilinearResult(
        status=ResultStatus.COMPLETED,
        output_file=RESULT_FILE_PNG,
        original_file=image,
        serial_time=DEGRADED_SERIAL_TIME,
        parallel_results=[],
        error=DEGRADED_NOTE,
    )


# =============================================================================
# Tabular views
# =============================================================================


def fibonacci_rows(result: FibonacciResult) -> list[dict[str, Any]]:
    """Flatten the timing samples of a Fibonacci result."""
    return [
        {
            "variant": sample.key,
            "name": sample.name,
            "time": sample.time,
            "speedup": sample.speedup,
            "overhead": sample.overhead,
            "efficiency": sample.fields.get("efficiency"),
        }
        for sample in result.samples
    ]


def bilinear_rows(result: BilinearResult) -> list[dict[str, Any]]:
    """Flatten the serial and per-thread runs of a bilinear result."""
    rows: list[dict[str, Any]] = [
        {"variant": "serial", "threads": 1, "time": result.serial_time}
    ]
    for run in result.parallel_results:
        rows.append(
            {"variant": f"parallel_{run.threads}", "threads": run.threads, "time": run.time}
        )
    return rows


def normalize_runs(rows: list[dict[str, Any]]) -> pd.DataFrame:
    """
    Normalize timing rows into a standard DataFrame format.

    Args:
        rows: Flattened timing rows

    Returns:
        Normalized DataFrame with standardized columns
    """
    if not rows:
        return pd.DataFrame()

    df = pd.DataFrame(rows)

    # Ensure required columns exist
    for col in ("variant", "time"):
        if col not in df.columns:
            df[col] = None

    # Add derived columns
    df["time"] = pd.to_numeric(df["time"], errors="coerce")
    df["time_ms"] = (df["time"] * 1000).round(3)

    final_columns = ["variant", "time", "time_ms"]

    # Add optional columns if they exist
    optional_columns = ["name", "threads", "speedup", "overhead", "efficiency"]
    for col in optional_columns:
        if col in df.columns and not df[col].isna().all():
            final_columns.append(col)

    return df[final_columns]
