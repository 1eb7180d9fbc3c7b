"""Subprocess wrapper used by check adapters."""

from __future__ import annotations

import logging
import os
import subprocess
from dataclasses import dataclass
from typing import Dict, Optional, Sequence

logger = logging.getLogger(__name__)

TIMEOUT_EXIT_CODE = 124
SPAWN_FAILURE_EXIT_CODE = -1


@dataclass
class CommandResult:
    code: int
    stdout: str
    stderr: str
    timed_out: bool = False


def _ensure_text(data: str | bytes | None) -> str:
    if isinstance(data, bytes):
        return data.decode("utf-8", errors="replace")
    return data or ""


def run_command(
    cmd: Sequence[str],
    cwd: Optional[str] = None,
    timeout_ms: Optional[int] = None,
    env: Optional[Dict[str, str]] = None,
) -> CommandResult:
    """Run a command to completion and collect its output.

    The child is killed once ``timeout_ms`` elapses; whatever it wrote before
    that is kept. A missing executable is reported through ``stderr`` with
    code -1 instead of raising.
    """
    full_env: Optional[Dict[str, str]] = None
    if env:
        full_env = os.environ.copy()
        full_env.update(env)

    timeout = timeout_ms / 1000 if timeout_ms and timeout_ms > 0 else None
    try:
        completed = subprocess.run(  # nosec B603 - fixed tool invocations
            list(cmd),
            cwd=cwd or None,
            env=full_env,
            capture_output=True,
            check=False,
            stdin=subprocess.DEVNULL,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as exc:
        stderr_base = _ensure_text(exc.stderr).strip()
        timeout_msg = f"Command timed out after {timeout:.1f}s"
        logger.warning("Command timed out", extra={"command": cmd[0], "timeout_ms": timeout_ms})
        return CommandResult(
            code=TIMEOUT_EXIT_CODE,
            stdout=_ensure_text(exc.stdout),
            stderr=f"{stderr_base}\n{timeout_msg}" if stderr_base else timeout_msg,
            timed_out=True,
        )
    except OSError as exc:
        logger.debug("Command could not be started", extra={"command": cmd[0], "error": str(exc)})
        return CommandResult(code=SPAWN_FAILURE_EXIT_CODE, stdout="", stderr=str(exc))

    return CommandResult(
        code=completed.returncode,
        stdout=_ensure_text(completed.stdout),
        stderr=_ensure_text(completed.stderr),
    )
