"""Locating and fetching agent packages."""

from .fetch import LocalSource, ObjectStoreSource, agent_basename, open_source
from .resolver import fetch_agent, fetch_agents, resolve_agent, select_latest

__all__ = [
    "LocalSource",
    "ObjectStoreSource",
    "agent_basename",
    "open_source",
    "fetch_agent",
    "fetch_agents",
    "resolve_agent",
    "select_latest",
]
