"""Self-extracting archive generation on top of GNU shar."""

import os
import stat
from pathlib import Path

import structlog

from agents_shar.utils.commands import CommandRunner, run_command

logger = structlog.get_logger()

EXTRACT_ROOT = "/var/tmp"
ARCHIVE_NAME = "agents"
INSTALL_SCRIPT = "install.sh"


def strip_default_exit(body: bytes) -> bytes:
    """Drop shar's trailing ``exit 0`` lines so the postamble decides the status."""
    lines = body.splitlines(keepends=True)
    return b"".join(line for line in lines if not line.startswith(b"exit 0"))


def render_shar(body: bytes, stage_name: str, extract_root: str = EXTRACT_ROOT) -> bytes:
    """Wrap raw shar output with the extraction preamble and install postamble."""
    preamble = (
        "#!/bin/sh\n"
        f"cd {extract_root}\n"
    )
    postamble = (
        f"if [ -f {stage_name}/{INSTALL_SCRIPT} ]; then\n"
        f"    (cd {stage_name} && /bin/bash ./{INSTALL_SCRIPT})\n"
        "fi\n"
        f"cd {extract_root}\n"
        f"rm -rf {extract_root}/{stage_name}\n"
        "exit 0\n"
    )
    trimmed = strip_default_exit(body)
    if trimmed and not trimmed.endswith(b"\n"):
        trimmed += b"\n"
    return preamble.encode("utf-8") + trimmed + postamble.encode("utf-8")


def build_shar(staging_dir: Path, dest: Path, runner: CommandRunner = run_command) -> Path:
    """Archive staging_dir into an executable self-extracting file at dest."""
    staging_dir = Path(staging_dir)
    logger.info("Creating shar", staging_dir=str(staging_dir), dest=str(dest))

    body = runner(
        ["shar", "-D", "-n", ARCHIVE_NAME, staging_dir.name],
        cwd=staging_dir.parent,
    )
    dest.write_bytes(render_shar(body, staging_dir.name))

    st = os.stat(dest)
    os.chmod(dest, st.st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    logger.info("Created shar", dest=str(dest), size=dest.stat().st_size)
    return dest
