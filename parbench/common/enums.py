"""Common enums used across the parbench framework."""

from enum import Enum


class Variant(str, Enum):
    """Algorithm variant being compared.

    - SEQUENTIAL: Pure sequential baseline every speedup is measured against
    - OPENMP: Parallel variant built on OpenMP tasking (primary worker)
    - CILK: Parallel variant built on the OpenCilk work-stealing runtime
    """

    SEQUENTIAL = "sequential"
    OPENMP = "openmp"
    CILK = "cilk"

    def __str__(self) -> str:
        return self.value


class FibonacciMode(str, Enum):
    """Mode selector for the Fibonacci benchmark.

    OPENMP and CILK run a single worker; BOTH runs the two workers side by
    side and merges their results into one response.
    """

    OPENMP = "openmp"
    CILK = "cilk"
    BOTH = "both"

    @property
    def is_combined(self) -> bool:
        """Return True when two workers are run together."""
        return self is FibonacciMode.BOTH

    def __str__(self) -> str:
        return self.value


class BenchmarkKind(str, Enum):
    """Benchmark families the engine knows how to run."""

    FIBONACCI = "fibonacci"
    BILINEAR = "bilinear"

    def __str__(self) -> str:
        return self.value


class ResultStatus(str, Enum):
    """Status reported by text-parsed benchmark results."""

    SUCCESS = "success"
    COMPLETED = "completed"  # Worker ran but its output could not be fully parsed

    def __str__(self) -> str:
        return self.value
