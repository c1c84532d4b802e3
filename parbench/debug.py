"""Debug and logging utilities for the benchmark engine."""

import logging
import os

# Global debug state
_debug_enabled = False


def setup_logging(level: int = logging.INFO) -> None:
    """Configure logging for a benchmark run."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def set_debug(enabled: bool) -> None:
    """Set global debug state."""
    global _debug_enabled
    _debug_enabled = enabled

    # Also set environment variable for child processes
    if enabled:
        os.environ["PARBENCH_DEBUG"] = "1"
    else:
        os.environ.pop("PARBENCH_DEBUG", None)


def is_debug_enabled() -> bool:
    """Check if debug mode is enabled."""
    global _debug_enabled

    # Check environment variable if not set via set_debug()
    if not _debug_enabled and os.getenv("PARBENCH_DEBUG", "").lower() in (
        "1",
        "true",
        "yes",
    ):
        _debug_enabled = True

    return _debug_enabled


def _get_task_prefix() -> str:
    """
    Get the task name prefix for output tagging during parallel execution.

    Returns:
        "[task_name] " prefix if running in a parallel task, empty string otherwise.
    """
    # Import here to avoid circular import at module load time
    from .run.parallel_executor import get_current_task_name

    task_name = get_current_task_name()
    if task_name:
        return f"[{task_name}] "
    return ""


def debug_log_command(command: str, timeout: float | None = None) -> None:
    """Log command execution details if debug mode is enabled."""
    if is_debug_enabled():
        prefix = _get_task_prefix()
        if timeout:
            print(f"{prefix}[DEBUG] Command ({timeout:g}s): {command}")
        else:
            print(f"{prefix}[DEBUG] Command: {command}")


def debug_log_result(
    success: bool, stdout: str | None = None, stderr: str | None = None
) -> None:
    """Log command result details if debug mode is enabled."""
    if is_debug_enabled():
        prefix = _get_task_prefix()
        print(f"{prefix}[DEBUG] Command success: {success}")
        if stdout:
            print(f"{prefix}[DEBUG] Stdout: {stdout}")
        if stderr:
            print(f"{prefix}[DEBUG] Stderr: {stderr}")
