"""CLI entrypoint: build the agents shar, checksum and manifest."""

from __future__ import annotations

import argparse
import os
import shutil
import sys
from datetime import datetime
from pathlib import Path
from typing import List, Optional

import structlog
from pydantic import ValidationError

from agents_shar import __version__
from agents_shar.build.manifest import write_build_outputs
from agents_shar.build.shar import INSTALL_SCRIPT, build_shar
from agents_shar.build.stamp import make_build_stamp
from agents_shar.core.config import (
    DEFAULT_BUILD_NAMES,
    DEFAULT_OUTPUT_DIR,
    Settings,
    load_project_spec,
)
from agents_shar.core.exceptions import AgentsSharError, BuildOutputError
from agents_shar.core.models import BuildArtifacts
from agents_shar.fetch import fetch_agents, open_source
from agents_shar.utils.commands import CommandRunner, run_command
from agents_shar.utils.logging import bind_build_context, setup_logging

logger = structlog.get_logger()

PROG = "mk-agents-shar"
DATA_DIR = Path(__file__).resolve().parent / "data"


class _ArgumentParser(argparse.ArgumentParser):
    """argparse exits 2 on bad usage; this tool exits 1 for every fatal error."""

    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


def build_parser() -> argparse.ArgumentParser:
    parser = _ArgumentParser(
        prog=PROG,
        description="Bundle the latest agent packages into a self-extracting shar.",
    )
    parser.add_argument(
        "-b",
        dest="build_names",
        metavar="NAMES",
        help="space-separated build names, tried in order (default: %s)" % " ".join(DEFAULT_BUILD_NAMES),
    )
    parser.add_argument(
        "-d",
        dest="source",
        metavar="DIR_OR_URL",
        help="local directory or s3:// location to take packages from",
    )
    parser.add_argument(
        "-o",
        dest="output_dir",
        metavar="DIR",
        default=DEFAULT_OUTPUT_DIR,
        help="output directory (default: %(default)s)",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("agents", nargs="*", metavar="AGENT", help="agents to bundle (default: all)")
    return parser


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.build_names is None:
        args.build_names = list(DEFAULT_BUILD_NAMES)
    else:
        args.build_names = args.build_names.split()
        if not args.build_names:
            parser.error("-b needs at least one build name")

    args.agents = [agent.strip("/") for agent in args.agents]
    return args


def run_build(
    args: argparse.Namespace,
    settings: Settings,
    runner: CommandRunner = run_command,
    now: Optional[datetime] = None,
) -> BuildArtifacts:
    """Fetch packages and write the shar, checksum and manifest.

    Any failure aborts the run; the staging directory is left behind.
    """
    settings.require_store_credentials()

    spec = load_project_spec(Path(settings.agents_shar_spec))
    agents = args.agents or spec.agents
    if not agents:
        raise AgentsSharError("no agents given and none listed in the project config")

    source_location = args.source or settings.agents_shar_source
    source = open_source(source_location, settings)

    stamp = make_build_stamp(args.build_names[0], runner=runner, now=now)
    bind_build_context(stamp=stamp.stamp, source=str(source))
    logger.info("Building agents shar",
                agents=agents,
                build_names=args.build_names,
                version=__version__)

    output_dir = Path(args.output_dir)
    staging_dir = output_dir / stamp.timestamp
    try:
        output_dir.mkdir(parents=True, exist_ok=True)
        if staging_dir.exists():
            shutil.rmtree(staging_dir)
        staging_dir.mkdir()
    except OSError as e:
        raise BuildOutputError(f"cannot create staging directory {staging_dir}: {e}")

    fetch_agents(source, agents, args.build_names, staging_dir)

    try:
        shutil.copy2(DATA_DIR / INSTALL_SCRIPT, staging_dir / INSTALL_SCRIPT)
        shar_path = build_shar(staging_dir, output_dir / stamp.artifact_name("sh"), runner=runner)
        checksum_path, manifest_path = write_build_outputs(shar_path, stamp, spec.name, output_dir)
    except OSError as e:
        raise BuildOutputError(f"cannot write build output in {output_dir}: {e}")

    logger.info("Build complete",
                shar=str(shar_path),
                checksum=str(checksum_path),
                manifest=str(manifest_path))
    return BuildArtifacts(shar=shar_path, checksum=checksum_path, manifest=manifest_path)


def _fail(message: str) -> int:
    print(f"{PROG}: error: {message}", file=sys.stderr)
    return 1


def main(argv: Optional[List[str]] = None, runner: CommandRunner = run_command) -> int:
    args = parse_args(argv)

    try:
        settings = Settings()
    except ValidationError as e:
        return _fail(f"invalid configuration: {e}")

    setup_logging(settings.log_level, settings.log_format)

    try:
        artifacts = run_build(args, settings, runner=runner)
    except AgentsSharError as e:
        logger.error("Build failed", error=str(e), code=e.code)
        return _fail(str(e))

    for path in (artifacts.shar, artifacts.checksum, artifacts.manifest):
        print(os.fspath(path))
    return 0


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
