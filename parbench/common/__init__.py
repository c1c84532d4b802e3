"""Shared building blocks."""

from .enums import BenchmarkKind, FibonacciMode, ResultStatus, Variant

__all__ = ["BenchmarkKind", "FibonacciMode", "ResultStatus", "Variant"]
