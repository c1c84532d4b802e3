"""Utility functions for the benchmark engine."""

import os
import signal
import subprocess
import time
from pathlib import Path
from typing import Any


class Timer:
    """Context manager for timing operations."""

    def __init__(self, description: str = "Operation"):
        self.description = description
        self.start_time: float = 0.0
        self.end_time: float = 0.0

    def __enter__(self) -> "Timer":
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.end_time = time.perf_counter()

    @property
    def elapsed(self) -> float:
        """Return elapsed time in seconds."""
        if self.end_time == 0.0 and self.start_time > 0.0:
            return time.perf_counter() - self.start_time
        return self.end_time - self.start_time


def safe_command(
    cmd: list[str],
    timeout: float | None = None,
    cwd: str | Path | None = None,
) -> dict[str, Any]:
    """
    Execute a command without a shell and return structured result.

    The command runs in its own session. When ``timeout`` expires the whole
    process group is killed, so anything the command spawned goes with it.

    Returns:
        Dict with keys: success, stdout, stderr, returncode, elapsed_s,
        timed_out, launch_error, command
    """
    command = " ".join(cmd)
    timer = Timer(command)

    try:
        with timer:
            process = subprocess.Popen(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                errors="replace",
                cwd=cwd,
                start_new_session=True,
            )
            try:
                stdout, stderr = process.communicate(timeout=timeout)
            except subprocess.TimeoutExpired:
                _kill_process_group(process)
                # Reap the child and collect whatever it printed before the kill
                stdout, _ = process.communicate()
                return {
                    "success": False,
                    "stdout": _as_text(stdout),
                    "stderr": f"Command timed out after {timeout}s",
                    "returncode": -1,
                    "elapsed_s": timer.elapsed,
                    "timed_out": True,
                    "launch_error": None,
                    "command": command,
                }

        return {
            "success": process.returncode == 0,
            "stdout": stdout,
            "stderr": stderr,
            "returncode": process.returncode,
            "elapsed_s": timer.elapsed,
            "timed_out": False,
            "launch_error": None,
            "command": command,
        }

    except OSError as e:
        return {
            "success": False,
            "stdout": "",
            "stderr": str(e),
            "returncode": -1,
            "elapsed_s": timer.elapsed,
            "timed_out": False,
            "launch_error": str(e),
            "command": command,
        }


def _kill_process_group(process: subprocess.Popen) -> None:
    """SIGKILL every process in the child's group; the child leads the group."""
    try:
        os.killpg(process.pid, signal.SIGKILL)
    except ProcessLookupError:
        # Group already gone
        pass


def _as_text(data: str | bytes | None) -> str:
    """Partial output captured before a timeout may come back as bytes."""
    if data is None:
        return ""
    if isinstance(data, bytes):
        return data.decode("utf-8", errors="replace")
    return data
