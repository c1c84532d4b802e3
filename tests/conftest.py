"""Shared fixtures: executable stub workers and engine configs pointing at them."""

from __future__ import annotations

import stat
import sys
import textwrap
from pathlib import Path

import pytest

from parbench.config import EngineConfig, WorkerConfig

# Documents printed the way the C workers print them, non-finite tokens included
OPENMP_DOCUMENT = """{
  "n": __N__,
  "sequential": {
    "name": "Pure Sequential",
    "result": 832040,
    "time": 0.200000,
    "speedup": 1.00,
    "efficiency": 100.00
  },
  "num_threads": 8,
  "openmp_serial": {
    "name": "OpenMP Serial",
    "result": 832040,
    "time": 0.210000,
    "speedup": 0.95,
    "overhead": 5.00
  },
  "openmp_parallel": {
    "name": "OpenMP Parallel",
    "result": 832040,
    "time": 0.050000,
    "speedup": 4.00,
    "efficiency": 50.00,
    "cutoff": 20,
    "model": "Fork-Join with Task Dependency"
  },
  "cilk_available": false
}"""

CILK_DOCUMENT = """{
  "n": __N__,
  "sequential": {
    "name": "Pure Sequential",
    "result": 832040,
    "time": 0.400000,
    "speedup": 1.00,
    "efficiency": 100.00
  },
  "cilk_available": true,
  "cilk_serial": {
    "name": "Cilk Serial",
    "result": 832040,
    "time": 0.250000,
    "speedup": nan,
    "overhead": -inf
  },
  "cilk_parallel": {
    "name": "Cilk Parallel",
    "result": 832040,
    "time": 0.000000,
    "speedup": inf,
    "cutoff": 20,
    "model": "Work-Stealing Scheduler"
  }
}"""

BILINEAR_OUTPUT = """=================================================================
  INTERPOLASI BILINEAR: SERIAL vs PARALEL (OpenMP)
  Input: Real PNG Image (RGB COLOR)
=================================================================

Membaca PNG: gantrycrane.png (KEEP COLOR)
✅ Berhasil membaca PNG: 400x264 (RGB Color)
Ukuran gambar sumber: 264x400 (RGB)
Ukuran gambar hasil: 528x800 (RGB)
Faktor scaling: 2.0x

--- EKSEKUSI SERIAL ---
Waktu eksekusi SERIAL: 0.0123 detik

--- EKSEKUSI PARALEL (OpenMP) ---
Jumlah core tersedia: 8

Testing dengan 2 threads:
  Waktu eksekusi: 0.0070 detik
  Speedup: 1.76x
  Efficiency: 87.86%
  Verifikasi: BENAR

Testing dengan 4 threads:
  Waktu eksekusi: 0.0041 detik
  Speedup: 3.00x
  Efficiency: 75.00%
  Verifikasi: BENAR
"""


def _script(body: str) -> str:
    return f"#!{sys.executable}\n" + textwrap.dedent(body).lstrip()


def install_worker(directory: Path, name: str, body: str) -> Path:
    """Write an executable Python stub worker."""
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / name
    path.write_text(_script(body), encoding="utf-8")
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


def document_worker(document: str) -> str:
    """Stub body printing ``document`` with ``__N__`` replaced by argv[1]."""
    return f"""
        import sys
        DOCUMENT = {document!r}
        print(DOCUMENT.replace("__N__", sys.argv[1]))
    """


def text_worker(text: str, stderr: str = "") -> str:
    return f"""
        import sys
        sys.stdout.buffer.write({text!r}.encode("utf-8"))
        sys.stderr.write({stderr!r})
    """


FAILING_WORKER = """
    import sys
    sys.stderr.write("boom: worker crashed\\n")
    sys.exit(3)
"""

SLEEPING_WORKER = """
    import time
    time.sleep(10)
"""

MALFORMED_WORKER = """
    print('{"n": 10, "sequential": {"time": 0.1')
"""


def make_config(workers_dir: Path, timeout_s: float = 10.0, **overrides) -> EngineConfig:
    """Config whose workers live in ``workers_dir`` under short deadlines."""
    workers = {
        "openmp": WorkerConfig(executable="fib_omp_json", timeout_s=timeout_s),
        "cilk": WorkerConfig(executable="fib_json_cilk", timeout_s=timeout_s),
        "bilinear": WorkerConfig(executable="bilinear", timeout_s=timeout_s),
    }
    return EngineConfig(workers_dir=str(workers_dir), workers=workers, **overrides)


@pytest.fixture
def workers_dir(tmp_path: Path) -> Path:
    path = tmp_path / "workers"
    path.mkdir()
    return path


@pytest.fixture
def engine_config(workers_dir: Path) -> EngineConfig:
    return make_config(workers_dir)


@pytest.fixture
def openmp_worker(workers_dir: Path) -> Path:
    return install_worker(workers_dir, "fib_omp_json", document_worker(OPENMP_DOCUMENT))


@pytest.fixture
def cilk_worker(workers_dir: Path) -> Path:
    return install_worker(workers_dir, "fib_json_cilk", document_worker(CILK_DOCUMENT))


@pytest.fixture
def bilinear_worker(workers_dir: Path) -> Path:
    return install_worker(
        workers_dir, "bilinear", text_worker(BILINEAR_OUTPUT, stderr="convert: warning\n")
    )
