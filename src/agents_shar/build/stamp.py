"""Build stamp: UTC timestamp plus git commit descriptor."""

from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import structlog

from agents_shar.core.models import BuildStamp
from agents_shar.utils.commands import CommandRunner, run_command

logger = structlog.get_logger()

TIMESTAMP_FORMAT = "%Y%m%dT%H%M%SZ"


def utc_timestamp(now: Optional[datetime] = None) -> str:
    if now is None:
        now = datetime.now(timezone.utc)
    return now.astimezone(timezone.utc).strftime(TIMESTAMP_FORMAT)


def parse_describe(output: str) -> str:
    """Keep what follows the last '-g' of `git describe --all --long --dirty`.

    heads/master-0-gabc1234-dirty -> abc1234-dirty
    """
    return output.strip().split("-g")[-1]


def git_commit_descriptor(runner: CommandRunner = run_command, cwd: Optional[Path] = None) -> str:
    out = runner(["git", "describe", "--all", "--long", "--dirty"], cwd=cwd)
    return parse_describe(out.decode("utf-8"))


def make_build_stamp(
    build_name: str,
    runner: CommandRunner = run_command,
    now: Optional[datetime] = None,
    cwd: Optional[Path] = None,
) -> BuildStamp:
    """Compute the stamp once; every artifact of the run reuses it."""
    stamp = BuildStamp(
        build_name=build_name,
        timestamp=utc_timestamp(now),
        commit=git_commit_descriptor(runner, cwd=cwd),
    )
    logger.info("Computed build stamp", stamp=stamp.stamp)
    return stamp
