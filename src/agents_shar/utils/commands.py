"""Thin wrapper around the external tools the build shells out to."""

import subprocess
from pathlib import Path
from typing import Callable, List, Optional, Union

import structlog

from agents_shar.core.exceptions import ToolError

logger = structlog.get_logger()

# run_command and any test double share this signature
CommandRunner = Callable[..., bytes]


def run_command(cmd: List[str], cwd: Optional[Union[str, Path]] = None) -> bytes:
    """Run a command to completion and return its stdout.

    Args:
        cmd: argv of the command
        cwd: working directory, defaults to the current one

    Returns:
        Raw stdout bytes

    Raises:
        ToolError: when the command is missing or exits non-zero
    """
    logger.debug("Running command", cmd=cmd, cwd=str(cwd) if cwd else None)
    try:
        result = subprocess.run(
            cmd,
            cwd=str(cwd) if cwd else None,
            capture_output=True,
            check=False,
        )
    except FileNotFoundError:
        raise ToolError(cmd, 127, f"{cmd[0]}: command not found")

    if result.returncode != 0:
        stderr = result.stderr.decode("utf-8", errors="replace")
        logger.error("Command failed",
                     cmd=cmd,
                     returncode=result.returncode,
                     stderr=stderr[:500])
        raise ToolError(cmd, result.returncode, stderr)

    return result.stdout
