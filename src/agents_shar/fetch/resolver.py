"""Pick the newest package of an agent across a fallback chain of build names."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

import structlog

from agents_shar.core.exceptions import PackageNotFoundError
from agents_shar.core.models import PackageMatch, Resolution, ResolveAttempt
from agents_shar.fetch.fetch import agent_basename

logger = structlog.get_logger()


def select_latest(filenames: Iterable[str], basename: str, build_name: str) -> Optional[str]:
    """Return the greatest filename matching ``^<basename>-<build_name>-.*``.

    Filenames embed an ISO-8601 basic timestamp right after the build name,
    so plain string order is build order.
    """
    pattern = re.compile(f"^{re.escape(basename)}-{re.escape(build_name)}-.*")
    matches = sorted(name for name in filenames if pattern.match(name))
    if not matches:
        return None
    return matches[-1]


def resolve_agent(source, agent: str, build_names: Sequence[str]) -> Resolution:
    """Try each build name in order until one has a package for the agent.

    A build name without a match is logged as a warning and the next one is
    tried. The returned Resolution has ``match`` unset when none matched.
    """
    basename = agent_basename(agent)
    resolution = Resolution(agent=agent)

    for build_name in build_names:
        candidates = source.list_candidates(agent, build_name)
        filename = select_latest(candidates, basename, build_name)
        resolution.attempts.append(ResolveAttempt(build_name=build_name, filename=filename))

        if filename is None:
            logger.warning("No package found for build name",
                           agent=agent,
                           build_name=build_name,
                           source=str(source))
            continue

        resolution.match = PackageMatch(
            agent=agent,
            build_name=build_name,
            filename=filename,
            location=candidates[filename],
        )
        logger.info("Selected package", agent=agent, build_name=build_name, filename=filename)
        break

    return resolution


def fetch_agent(source, agent: str, build_names: Sequence[str], dest_dir: Path) -> Path:
    """Resolve an agent and place its package in dest_dir.

    Raises:
        PackageNotFoundError: if no build name yields a package
    """
    resolution = resolve_agent(source, agent, build_names)
    if resolution.match is None:
        raise PackageNotFoundError(agent, build_names)
    return source.fetch(resolution.match, dest_dir)


def fetch_agents(source, agents: Sequence[str], build_names: Sequence[str], dest_dir: Path) -> List[Path]:
    """Fetch every agent in order, stopping at the first failure."""
    return [fetch_agent(source, agent, build_names, dest_dir) for agent in agents]
