"""Run one Durham program in a resource-limited child process.

The worker is started as `python -m backend.durham._subprocess_worker` from
the project root and receives `{"code", "max_loop"}` as JSON on stdin. Durham
has no recursion guard, so unbounded recursion is contained here by the
wall-clock timeout and the POSIX CPU and memory rlimits.
"""

import json
import logging
import os
import subprocess
import sys
from pathlib import Path
from typing import Optional, Tuple

logger = logging.getLogger(__name__)

# directory that contains the `backend` package; the worker runs with `-m`
PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
WORKER_MODULE = "backend.durham._subprocess_worker"


def _make_posix_preexec(cpu_seconds: Optional[int], mem_limit_mb: Optional[int]):
    """Return a preexec_fn that applies resource limits on POSIX systems.

    If the `resource` module is unavailable the function becomes a no-op.
    """
    def preexec():
        try:
            import resource

            if cpu_seconds is not None:
                resource.setrlimit(resource.RLIMIT_CPU, (int(cpu_seconds), int(cpu_seconds)))

            if mem_limit_mb is not None:
                mem_bytes = int(mem_limit_mb) * 1024 * 1024
                resource.setrlimit(resource.RLIMIT_AS, (mem_bytes, mem_bytes))

            # Start a new session to isolate signals
            try:
                os.setsid()
            except OSError:
                pass
        except (ImportError, ValueError, OSError):
            return

    return preexec


def run_code_in_subprocess(
    code: str,
    timeout_s: int = 2,
    *,
    max_loop: Optional[int] = None,
    cpu_seconds: Optional[int] = 2,
    mem_limit_mb: Optional[int] = 256,
) -> Tuple[int, str, str]:
    """Run Durham `code` in the worker and return (returncode, stdout, stderr).

    Parameters:
      - code: Durham source text sent to the worker via JSON on stdin.
      - timeout_s: wall-clock timeout for the whole operation (seconds).
      - max_loop: optional loop ceiling forwarded to the worker's interpreter.
      - cpu_seconds: optional RLIMIT_CPU (seconds) applied on POSIX.
      - mem_limit_mb: optional RLIMIT_AS (MB) applied on POSIX.

    On timeout the process is killed and (-1, "", "TIMEOUT") is returned.
    """
    env = {"PATH": os.environ.get("PATH", "")}

    popen_kwargs = dict(
        args=[sys.executable, "-m", WORKER_MODULE],
        stdin=subprocess.PIPE,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
        env=env,
        cwd=str(PROJECT_ROOT),
        close_fds=True,
    )

    if os.name != "nt":
        popen_kwargs["preexec_fn"] = _make_posix_preexec(cpu_seconds, mem_limit_mb)

    proc = subprocess.Popen(**popen_kwargs)

    request = {"code": code}
    if max_loop is not None:
        request["max_loop"] = max_loop
    try:
        out, err = proc.communicate(json.dumps(request), timeout=timeout_s)
    except subprocess.TimeoutExpired:
        logger.warning("durham worker timed out after %ss", timeout_s)
        try:
            proc.kill()
        except OSError:
            pass
        proc.communicate()
        return -1, "", "TIMEOUT"

    return proc.returncode, out or "", err or ""
