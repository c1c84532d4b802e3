"""Request and result models exchanged with the outer layer."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ValidationError, field_validator

from .common.enums import BenchmarkKind, FibonacciMode, ResultStatus, Variant
from .config import LimitsConfig
from .errors import RequestValidationError

# Keys of the timing samples a Fibonacci worker may emit, baseline first
BASELINE_KEY = "sequential"
SAMPLE_KEYS = (
    BASELINE_KEY,
    "openmp_serial",
    "openmp_parallel",
    "cilk_serial",
    "cilk_parallel",
)
CILK_SAMPLE_KEYS = ("cilk_serial", "cilk_parallel")


# =============================================================================
# Requests
# =============================================================================


class BenchmarkRequest(BaseModel):
    """A benchmark request descriptor supplied by the outer layer."""

    kind: BenchmarkKind
    n: int | None = None
    mode: FibonacciMode = FibonacciMode.OPENMP
    image: str | None = None
    scaling: float | None = None

    @field_validator("image")
    @classmethod
    def validate_image(cls, v: str | None) -> str | None:
        """Only bare file names inside the workers directory are accepted."""
        if v is None:
            return v
        if not v or "/" in v or "\\" in v or v in (".", ".."):
            raise ValueError(f"Image must be a plain file name (got {v!r})")
        return v

    def check_limits(self, limits: LimitsConfig) -> BenchmarkRequest:
        """Check numeric parameters against the configured ranges."""
        if self.kind is BenchmarkKind.FIBONACCI:
            if self.n is None or not limits.n_min <= self.n <= limits.n_max:
                raise RequestValidationError(
                    f"Invalid input. N must be between {limits.n_min} and {limits.n_max}"
                )
        elif self.scaling is not None and not (
            limits.scaling_min <= self.scaling <= limits.scaling_max
        ):
            raise RequestValidationError(
                f"Invalid scaling factor. Must be between "
                f"{limits.scaling_min} and {limits.scaling_max}"
            )
        return self


def make_request(
    kind: str | BenchmarkKind, limits: LimitsConfig, **params: Any
) -> BenchmarkRequest:
    """
    Build and validate a request descriptor.

    Raises:
        RequestValidationError: If any parameter is malformed or out of bounds
    """
    try:
        request = BenchmarkRequest(kind=kind, **params)
    except ValidationError as e:
        raise RequestValidationError(_describe_validation_error(e)) from e
    return request.check_limits(limits)


def _describe_validation_error(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        location = ".".join(str(p) for p in item.get("loc", ())) or "request"
        parts.append(f"{location}: {item.get('msg', 'invalid value')}")
    return "; ".join(parts)


# =============================================================================
# Fibonacci results (structured worker output)
# =============================================================================


@dataclass
class TimingSample:
    """One timed run inside a worker document.

    Wraps the worker's own mapping so that normalization writes straight
    back into the document and unknown fields pass through untouched.
    """

    key: str
    fields: dict[str, Any] = field(default_factory=dict)

    @property
    def name(self) -> str:
        return str(self.fields.get("name", self.key))

    @property
    def time(self) -> Any:
        return self.fields.get("time")

    @time.setter
    def time(self, value: float) -> None:
        self.fields["time"] = value

    @property
    def speedup(self) -> Any:
        return self.fields.get("speedup")

    @speedup.setter
    def speedup(self, value: float) -> None:
        self.fields["speedup"] = value

    @property
    def overhead(self) -> Any:
        return self.fields.get("overhead")

    @overhead.setter
    def overhead(self, value: float) -> None:
        self.fields["overhead"] = value


@dataclass
class FibonacciResult:
    """Result document of one or two Fibonacci workers."""

    document: dict[str, Any]

    @classmethod
    def from_document(cls, document: dict[str, Any]) -> FibonacciResult:
        return cls(document=document)

    @property
    def n(self) -> Any:
        return self.document.get("n")

    @property
    def baseline(self) -> TimingSample | None:
        return self.sample(BASELINE_KEY)

    @property
    def baseline_time(self) -> Any:
        """Baseline time as reported, 0 when the worker did not report one."""
        baseline = self.baseline
        if baseline is None or baseline.time is None:
            return 0
        return baseline.time

    def sample(self, key: str) -> TimingSample | None:
        """Return the sample stored under ``key`` if the worker emitted it."""
        fields = self.document.get(key)
        if isinstance(fields, dict):
            return TimingSample(key=key, fields=fields)
        return None

    @property
    def samples(self) -> list[TimingSample]:
        """All timing samples present, baseline first."""
        found = (self.sample(key) for key in SAMPLE_KEYS)
        return [s for s in found if s is not None]

    @property
    def variants(self) -> list[TimingSample]:
        return [s for s in self.samples if s.key != BASELINE_KEY]

    @property
    def cilk_available(self) -> bool | None:
        return self.document.get("cilk_available")

    @property
    def cilk_error(self) -> str | None:
        return self.document.get("cilk_error")

    def adopt_samples(self, other: FibonacciResult, keys: tuple[str, ...]) -> None:
        """Copy the given samples from another result; its baseline is ignored."""
        for key in keys:
            sample = other.sample(key)
            if sample is not None:
                self.document[key] = copy.deepcopy(sample.fields)

    def mark_available(self, variant: Variant) -> None:
        self.document[f"{variant.value}_available"] = True
        self.document.pop(f"{variant.value}_error", None)

    def mark_unavailable(self, variant: Variant, reason: str) -> None:
        self.document[f"{variant.value}_available"] = False
        self.document[f"{variant.value}_error"] = reason

    def to_dict(self) -> dict[str, Any]:
        """Return the response body."""
        return copy.deepcopy(self.document)


# =============================================================================
# Bilinear results (text worker output)
# =============================================================================


@dataclass(frozen=True)
class ParallelRun:
    """Execution time measured with a given thread count."""

    threads: int
    time: float

    def to_dict(self) -> dict[str, Any]:
        return {"threads": self.threads, "time": self.time}


@dataclass
class BilinearResult:
    """Result of the bilinear interpolation worker."""

    status: ResultStatus
    original_file: str
    serial_time: float
    parallel_results: list[ParallelRun] = field(default_factory=list)
    output_file: str = "result_serial.png"
    original_width: int | None = None
    original_height: int | None = None
    new_width: int | None = None
    new_height: int | None = None
    scaling: str | None = None
    requested_scaling: float | None = None
    output_file_serial: str | None = None
    output_file_parallel: str | None = None
    algorithm: str | None = None
    implementation: str | None = None
    error: str | None = None

    @property
    def degraded(self) -> bool:
        return self.status is ResultStatus.COMPLETED

    def to_dict(self) -> dict[str, Any]:
        """Return the response body; unset optional fields are omitted."""
        if self.degraded:
            return {
                "status": self.status.value,
                "output_file": self.output_file,
                "original_file": self.original_file,
                "serial_time": self.serial_time,
                "parallel_results": [run.to_dict() for run in self.parallel_results],
                "error": self.error,
            }
        body: dict[str, Any] = {
            "status": self.status.value,
            "original_width": self.original_width,
            "original_height": self.original_height,
            "new_width": self.new_width,
            "new_height": self.new_height,
            "scaling": self.scaling,
            "requested_scaling": self.requested_scaling,
            "serial_time": self.serial_time,
            "parallel_results": [run.to_dict() for run in self.parallel_results],
            "output_file": self.output_file,
            "output_file_serial": self.output_file_serial,
            "output_file_parallel": self.output_file_parallel,
            "original_file": self.original_file,
            "algorithm": self.algorithm,
            "implementation": self.implementation,
        }
        return {k: v for k, v in body.items() if v is not None}
