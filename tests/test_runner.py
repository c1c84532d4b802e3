"""Tests for the benchmark orchestrator."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest
from conftest import (
    BILINEAR_OUTPUT,
    FAILING_WORKER,
    MALFORMED_WORKER,
    SLEEPING_WORKER,
    install_worker,
    make_config,
    text_worker,
)

from parbench.common.enums import BenchmarkKind, FibonacciMode
from parbench.config import EngineConfig
from parbench.errors import OutputDecodeError, WorkerInvocationError
from parbench.models import make_request
from parbench.run.runner import BenchmarkRunner, run_benchmark

# =============================================================================
# Single mode
# =============================================================================


class TestSingleMode:
    """One worker per request."""

    def test_openmp_result_passes_through(self, engine_config, openmp_worker):
        result = BenchmarkRunner(engine_config).run_fibonacci(30, "openmp")
        body = result.to_dict()

        assert body["n"] == 30
        assert body["num_threads"] == 8
        assert body["openmp_parallel"]["speedup"] == 4.0
        assert body["openmp_serial"]["overhead"] == 5.0
        assert body["cilk_available"] is False

    def test_cilk_is_normalized_against_its_own_baseline(
        self, engine_config, cilk_worker
    ):
        result = BenchmarkRunner(engine_config).run_fibonacci(30, FibonacciMode.CILK)

        serial = result.sample("cilk_serial")
        assert serial.time == 0.25
        assert serial.speedup == 1.6
        assert serial.overhead == -37.5

        # Reported time 0.000000 is unreliable, the baseline stands in for it
        parallel = result.sample("cilk_parallel")
        assert parallel.time == 0.4
        assert parallel.speedup == 1.0
        assert "overhead" not in parallel.fields

    def test_missing_worker_is_fatal(self, engine_config):
        with pytest.raises(WorkerInvocationError, match=r"^\[openmp\]"):
            BenchmarkRunner(engine_config).run_fibonacci(30, "openmp")

    def test_malformed_output_is_a_decode_failure(self, engine_config, workers_dir):
        install_worker(workers_dir, "fib_json_cilk", MALFORMED_WORKER)
        with pytest.raises(OutputDecodeError) as exc_info:
            BenchmarkRunner(engine_config).run_fibonacci(10, "cilk")

        error = exc_info.value
        assert error.worker == "cilk"
        assert error.to_dict()["category"] == "decode"
        assert error.to_dict()["output"].startswith('{"n": 10')

    def test_unknown_mode(self, engine_config):
        with pytest.raises(ValueError):
            BenchmarkRunner(engine_config).run_fibonacci(30, "gpu")


# =============================================================================
# Combined mode
# =============================================================================


class TestCombinedMode:
    """Both workers run together and are merged into one result."""

    def test_merge_uses_primary_baseline(
        self, engine_config, openmp_worker, cilk_worker
    ):
        result = BenchmarkRunner(engine_config).run_fibonacci(30, "both")
        body = result.to_dict()

        assert body["cilk_available"] is True
        assert "cilk_error" not in body
        # The Cilk worker's own baseline (0.4) is discarded
        assert body["sequential"]["time"] == 0.2
        assert body["cilk_serial"]["time"] == 0.25
        assert body["cilk_serial"]["speedup"] == 0.8
        assert body["cilk_serial"]["overhead"] == 25.0
        assert body["cilk_parallel"]["time"] == 0.2
        assert body["cilk_parallel"]["speedup"] == 1.0
        assert body["cilk_parallel"]["model"] == "Work-Stealing Scheduler"

    def test_primary_fields_are_kept(self, engine_config, openmp_worker, cilk_worker):
        runner = BenchmarkRunner(engine_config)
        single = runner.run_fibonacci(30, "openmp").to_dict()
        merged = runner.run_fibonacci(30, "both").to_dict()

        for key in ("n", "sequential", "num_threads", "openmp_serial", "openmp_parallel"):
            assert merged[key] == single[key]

    def test_missing_secondary_is_not_fatal(self, engine_config, openmp_worker):
        runner = BenchmarkRunner(engine_config)
        single = runner.run_fibonacci(30, "openmp").to_dict()
        merged = runner.run_fibonacci(30, "both").to_dict()

        assert merged["cilk_available"] is False
        assert merged["cilk_error"].startswith("[cilk] Failed to launch")
        assert "cilk_serial" not in merged
        assert {k: v for k, v in merged.items() if k != "cilk_error"} == single

    def test_crashing_secondary_is_not_fatal(
        self, engine_config, openmp_worker, workers_dir
    ):
        install_worker(workers_dir, "fib_json_cilk", FAILING_WORKER)
        body = BenchmarkRunner(engine_config).run_fibonacci(30, "both").to_dict()

        assert body["cilk_available"] is False
        assert "exit code 3" in body["cilk_error"]

    def test_malformed_secondary_is_not_fatal(
        self, engine_config, openmp_worker, workers_dir
    ):
        install_worker(workers_dir, "fib_json_cilk", MALFORMED_WORKER)
        body = BenchmarkRunner(engine_config).run_fibonacci(30, "both").to_dict()

        assert body["cilk_available"] is False
        assert body["cilk_error"].startswith("[cilk] Failed to parse worker output")

    def test_missing_primary_is_fatal(self, engine_config, cilk_worker):
        with pytest.raises(WorkerInvocationError) as exc_info:
            BenchmarkRunner(engine_config).run_fibonacci(30, "both")

        assert exc_info.value.worker == "openmp"
        assert str(exc_info.value).startswith("[openmp]")

    @pytest.mark.parametrize("secondary", [None, FAILING_WORKER, MALFORMED_WORKER])
    def test_primary_failure_is_fatal_when_secondary_fails_too(
        self, engine_config, workers_dir, secondary
    ):
        install_worker(workers_dir, "fib_omp_json", FAILING_WORKER)
        if secondary is not None:
            install_worker(workers_dir, "fib_json_cilk", secondary)

        with pytest.raises(WorkerInvocationError) as exc_info:
            BenchmarkRunner(engine_config).run_fibonacci(30, "both")

        assert exc_info.value.worker == "openmp"
        assert str(exc_info.value).startswith("[openmp] Command failed with exit code 3")

    def test_secondary_failure_traceback_is_logged(
        self, engine_config, openmp_worker, workers_dir, caplog
    ):
        install_worker(workers_dir, "fib_json_cilk", FAILING_WORKER)
        with caplog.at_level(logging.DEBUG, logger="parbench.run.runner"):
            BenchmarkRunner(engine_config).run_fibonacci(30, "both")

        tracebacks = [
            r.getMessage() for r in caplog.records if r.levelno == logging.DEBUG
        ]
        assert any(
            msg.startswith("[cilk] Traceback") and "WorkerInvocationError" in msg
            for msg in tracebacks
        )

    def test_malformed_primary_is_fatal(self, engine_config, cilk_worker, workers_dir):
        install_worker(workers_dir, "fib_omp_json", MALFORMED_WORKER)
        with pytest.raises(OutputDecodeError, match=r"^\[openmp\]"):
            BenchmarkRunner(engine_config).run_fibonacci(30, "both")

    def test_secondary_timeout_does_not_stop_primary(
        self, workers_dir: Path, openmp_worker
    ):
        config = make_config(workers_dir, timeout_s=2.0)
        install_worker(workers_dir, "fib_json_cilk", SLEEPING_WORKER)

        body = BenchmarkRunner(config).run_fibonacci(30, "both").to_dict()

        assert body["cilk_available"] is False
        assert "timed out" in body["cilk_error"]
        assert body["sequential"]["time"] == 0.2

    def test_repeated_runs_are_identical(self, engine_config, openmp_worker, cilk_worker):
        runner = BenchmarkRunner(engine_config)
        first = json.dumps(runner.run_fibonacci(30, "both").to_dict())
        second = json.dumps(runner.run_fibonacci(30, "both").to_dict())
        assert first == second


# =============================================================================
# Bilinear
# =============================================================================


class TestBilinear:
    """Text worker path."""

    def test_success(self, engine_config, bilinear_worker):
        result = BenchmarkRunner(engine_config).run_bilinear("gantrycrane.png", 2.5)
        body = result.to_dict()

        assert body["status"] == "success"
        assert body["original_width"] == 400
        assert body["new_height"] == 528
        assert body["scaling"] == "2.00"
        assert body["requested_scaling"] == 2.5
        assert body["serial_time"] == 0.0123
        assert len(body["parallel_results"]) == 2

    def test_defaults_from_config(self, engine_config, bilinear_worker):
        result = BenchmarkRunner(engine_config).run_bilinear()
        assert result.original_file == "gantrycrane.png"
        assert result.requested_scaling == 2.0

    def test_worker_receives_image_and_runs_in_workers_dir(self, engine_config, workers_dir):
        expected_cwd = str(workers_dir.resolve())
        install_worker(
            workers_dir,
            "bilinear",
            f"""
            import os, sys
            if sys.argv[1:] != ["photo.png"] or os.path.realpath(os.getcwd()) != {expected_cwd!r}:
                sys.exit(5)
            print("Berhasil membaca PNG: 10x20")
            print("Ukuran gambar hasil: 40x20")
            """,
        )
        result = BenchmarkRunner(engine_config).run_bilinear("photo.png")
        assert result.original_file == "photo.png"
        assert (result.original_width, result.new_width) == (10, 20)
        assert result.scaling == "2.00"

    def test_unparseable_output_degrades(self, engine_config, workers_dir):
        install_worker(workers_dir, "bilinear", text_worker("Gagal membaca gambar\n"))
        result = BenchmarkRunner(engine_config).run_bilinear("missing.png")

        assert result.degraded
        assert result.to_dict()["status"] == "completed"
        assert result.to_dict()["error"] == "Could not fully parse output"

    def test_partial_output_keeps_zero_defaults(self, engine_config, workers_dir):
        text = BILINEAR_OUTPUT.split("--- EKSEKUSI SERIAL ---")[0]
        install_worker(workers_dir, "bilinear", text_worker(text))
        body = BenchmarkRunner(engine_config).run_bilinear().to_dict()

        assert body["status"] == "success"
        assert body["serial_time"] == 0.0
        assert body["parallel_results"] == []

    def test_failure_is_fatal(self, engine_config, workers_dir):
        install_worker(workers_dir, "bilinear", FAILING_WORKER)
        with pytest.raises(WorkerInvocationError, match=r"^\[bilinear\]"):
            BenchmarkRunner(engine_config).run_bilinear()


# =============================================================================
# Dispatch
# =============================================================================


def test_run_benchmark_dispatches_requests(
    engine_config: EngineConfig, openmp_worker, bilinear_worker
):
    fib = make_request(BenchmarkKind.FIBONACCI, engine_config.limits, n=20)
    image = make_request("bilinear", engine_config.limits, scaling=3.0)

    assert run_benchmark(fib, engine_config)["n"] == 20
    assert run_benchmark(image, engine_config)["requested_scaling"] == 3.0

