"""Benchmark engine for sequential vs. parallel algorithm workers."""

__version__ = "0.1.0"
