"""Configuration management for agents-shar."""

from pathlib import Path
from typing import List, Optional

import structlog
import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from agents_shar.core.exceptions import ConfigurationError

logger = structlog.get_logger()

DEFAULT_SOURCE = "s3://agent-builds/builds"
DEFAULT_BUILD_NAMES = ["master"]
DEFAULT_OUTPUT_DIR = "build"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

# Object store identity, credentials and location, in the order they are reported.
REQUIRED_STORE_ENV = (
    "aws_access_key_id",
    "aws_secret_access_key",
    "s3_endpoint_url",
)


class Settings(BaseSettings):
    """Build configuration settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Object store
    aws_access_key_id: Optional[str] = Field(None, description="Object store access key")
    aws_secret_access_key: Optional[str] = Field(None, description="Object store secret key")
    s3_endpoint_url: Optional[str] = Field(None, description="Object store endpoint URL")
    aws_region: str = Field("us-east-1", description="Object store region")

    # Build inputs
    agents_shar_source: str = Field(DEFAULT_SOURCE, description="Default package source")
    agents_shar_spec: str = Field("build.yaml", description="Project config file")
    max_package_size_mb: int = Field(1024, description="Largest package accepted from the store")

    # Observability
    log_level: str = Field("INFO")
    log_format: str = Field("console")

    @field_validator("log_level")
    @classmethod
    def check_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(LOG_LEVELS)}")
        return level

    @field_validator("log_format")
    @classmethod
    def check_log_format(cls, v: str) -> str:
        if v not in ("console", "json"):
            raise ValueError("log_format must be 'console' or 'json'")
        return v

    def require_store_credentials(self) -> None:
        """Fail unless every object store value is set and non-empty.

        Raises:
            ConfigurationError: naming all missing environment variables
        """
        errors = []
        for name in REQUIRED_STORE_ENV:
            value = getattr(self, name)
            if value is None or not value.strip():
                errors.append(name.upper())

        if errors:
            for env_name in errors:
                logger.error("Configuration validation error", variable=env_name)
            raise ConfigurationError(
                f"required environment variable(s) not set: {', '.join(errors)}",
                code="missing_env",
            )


class ProjectSpec(BaseModel):
    """Static project config (build.yaml)."""

    name: str = Field(
        ...,
        pattern=r"^[A-Za-z0-9][A-Za-z0-9._+-]*$",
        description="Package name written to the manifest",
    )
    agents: List[str] = Field(default_factory=list, description="Default agents to bundle")

    @field_validator("agents")
    @classmethod
    def check_agents(cls, v: List[str]) -> List[str]:
        cleaned = [agent.strip().strip("/") for agent in v]
        if any(not agent for agent in cleaned):
            raise ValueError("agent identifiers cannot be empty")
        return cleaned


def load_project_spec(path: Path) -> ProjectSpec:
    """Load and validate the project config file."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except FileNotFoundError:
        raise ConfigurationError(f"project config not found: {path}", code="missing_project_config")
    except OSError as e:
        raise ConfigurationError(f"cannot read project config {path}: {e}", code="invalid_project_config")
    except yaml.YAMLError as e:
        raise ConfigurationError(f"invalid YAML in {path}: {e}", code="invalid_project_config")

    if not isinstance(data, dict):
        raise ConfigurationError(f"project config must be a mapping: {path}", code="invalid_project_config")

    try:
        spec = ProjectSpec(**data)
    except ValidationError as e:
        raise ConfigurationError(f"invalid project config {path}: {e}", code="invalid_project_config")

    logger.debug("Loaded project config", path=str(path), agent_count=len(spec.agents))
    return spec
