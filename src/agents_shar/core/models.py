"""Core data models for agents-shar."""

from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field


class BuildStamp(BaseModel):
    """Name parts shared by every artifact of one run."""

    model_config = {"frozen": True}

    build_name: str = Field(..., description="First requested build name")
    timestamp: str = Field(..., pattern=r"^\d{8}T\d{6}Z$", description="UTC build time")
    commit: str = Field(..., description="Commit descriptor without the 'g' prefix")

    @property
    def stamp(self) -> str:
        return f"{self.build_name}-{self.timestamp}-g{self.commit}"

    def artifact_name(self, ext: str) -> str:
        return f"agents-{self.stamp}.{ext}"


class PackageMatch(BaseModel):
    """The package picked for an agent."""

    agent: str
    build_name: str
    filename: str
    location: str = Field(..., description="Local path or s3:// URL of the package")


class ResolveAttempt(BaseModel):
    """Outcome of looking up one build name."""

    build_name: str
    filename: Optional[str] = None

    @property
    def found(self) -> bool:
        return self.filename is not None


class Resolution(BaseModel):
    """All attempts made for an agent and the winning match, if any."""

    agent: str
    attempts: List[ResolveAttempt] = Field(default_factory=list)
    match: Optional[PackageMatch] = None

    @property
    def missed(self) -> List[str]:
        return [a.build_name for a in self.attempts if not a.found]


class BuildArtifacts(BaseModel):
    """Files written by a successful run."""

    shar: Path
    checksum: Path
    manifest: Path
