"""External worker invocation."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from ..debug import debug_log_command, debug_log_result
from ..errors import WorkerInvocationError
from ..util import safe_command

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WorkerRequest:
    """Everything needed to launch one worker process."""

    worker: str
    executable: Path
    args: tuple[str, ...] = ()
    timeout_s: float = 30.0
    cwd: Path | None = None

    @property
    def command(self) -> list[str]:
        return [str(self.executable), *self.args]


@dataclass(frozen=True)
class WorkerOutcome:
    """Captured output of a finished worker process."""

    worker: str
    stdout: str
    stderr: str
    returncode: int
    elapsed_s: float


def invoke_worker(request: WorkerRequest) -> WorkerOutcome:
    """
    Run a worker to completion under its deadline.

    Anything the worker writes to stderr is logged but does not fail the
    invocation; only a launch error, a non-zero exit or a timeout does.

    Raises:
        WorkerInvocationError: Message prefixed with ``[worker]``
    """
    name = request.worker
    debug_log_command(" ".join(request.command), timeout=request.timeout_s)
    logger.debug("[%s] Launching %s", name, request.command)

    result = safe_command(request.command, timeout=request.timeout_s, cwd=request.cwd)
    debug_log_result(result["success"], result["stdout"], result["stderr"])

    if result["launch_error"]:
        raise WorkerInvocationError(
            f"[{name}] Failed to launch {request.executable}: {result['launch_error']}",
            worker=name,
        )

    if result["timed_out"]:
        raise WorkerInvocationError(
            f"[{name}] Worker timed out after {request.timeout_s:g}s and was terminated",
            worker=name,
            output=result["stdout"] or None,
            timed_out=True,
        )

    if not result["success"]:
        detail = result["stderr"].strip() or result["stdout"].strip()
        message = f"[{name}] Command failed with exit code {result['returncode']}"
        if detail:
            message = f"{message}: {detail}"
        raise WorkerInvocationError(
            message,
            worker=name,
            output=result["stdout"] or None,
            returncode=result["returncode"],
        )

    if result["stderr"]:
        logger.warning("[%s] stderr: %s", name, result["stderr"].rstrip())

    logger.debug("[%s] Finished in %.3fs", name, result["elapsed_s"])
    return WorkerOutcome(
        worker=name,
        stdout=result["stdout"],
        stderr=result["stderr"],
        returncode=result["returncode"],
        elapsed_s=result["elapsed_s"],
    )
