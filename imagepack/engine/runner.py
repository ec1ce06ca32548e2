"""Subprocess execution for container engine commands.

This module handles:
- Executing engine commands with subprocess
- Optionally capturing stdout/stderr to a log file
- Translating launch failures into EngineCommandError

No timeouts are applied; commands run until they exit or the operator
interrupts the process.
"""

from __future__ import annotations

import logging
import shlex
import subprocess
from datetime import datetime, timezone
from pathlib import Path

from imagepack.errors import EngineCommandError

logger = logging.getLogger(__name__)


def run_command(
    cmd: list[str],
    *,
    capture_output: bool = False,
    check: bool = False,
    log_path: Path | None = None,
    cwd: Path | None = None,
) -> subprocess.CompletedProcess[str]:
    """Execute a command and return the completed process.

    Args:
        cmd: Command as list of strings.
        capture_output: Capture stdout/stderr as text instead of inheriting
            the terminal.
        check: Raise EngineCommandError on a non-zero exit code.
        log_path: Append combined stdout/stderr to this file instead of the
            terminal. Ignored when capture_output is set.
        cwd: Working directory.

    Returns:
        The completed process.

    Raises:
        EngineCommandError: If the command cannot be started, or exits
            non-zero while check is set.
    """
    cmd_str = shlex.join(cmd)
    logger.debug("Executing: %s", cmd_str)

    try:
        if capture_output or log_path is None:
            result = subprocess.run(
                cmd,
                cwd=cwd,
                capture_output=capture_output,
                text=True,
                check=False,
            )
        else:
            log_path.parent.mkdir(parents=True, exist_ok=True)
            with log_path.open("a", encoding="utf-8") as log_file:
                log_file.write(f"# Command: {cmd_str}\n")
                log_file.write(
                    f"# Started: {datetime.now(timezone.utc).isoformat()}\n"
                )
                log_file.flush()
                result = subprocess.run(
                    cmd,
                    cwd=cwd,
                    stdout=log_file,
                    stderr=subprocess.STDOUT,
                    text=True,
                    check=False,
                )
                log_file.write(f"# Exit code: {result.returncode}\n\n")
    except OSError as e:
        message = f"Failed to execute {cmd[0]}: {e}"
        logger.error(message)
        raise EngineCommandError(message, code="execution_error") from e

    if result.returncode != 0:
        logger.debug("Command exited with %d: %s", result.returncode, cmd_str)
        if check:
            stderr = (result.stderr or "").strip() if capture_output else ""
            message = f"{cmd_str} failed with exit code {result.returncode}"
            if stderr:
                message = f"{message}: {stderr}"
            raise EngineCommandError(message, exit_code=result.returncode)

    return result


def probe(cmd: list[str]) -> bool:
    """Run a command silently and report whether it succeeded.

    A missing executable counts as failure rather than an error.
    """
    try:
        result = subprocess.run(
            cmd,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            check=False,
        )
    except OSError as e:
        logger.debug("Probe %s could not start: %s", shlex.join(cmd), e)
        return False
    return result.returncode == 0


__all__ = ["probe", "run_command"]
