"""Custom exceptions for agents-shar."""

from typing import Optional


class AgentsSharError(Exception):
    """Base exception for all build errors."""

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.code = code


class ConfigurationError(AgentsSharError):
    """Configuration error."""
    pass


class PackageError(AgentsSharError):
    """Package-related errors."""
    pass


class PackageNotFoundError(PackageError):
    """No package matched any of the requested build names."""

    def __init__(self, agent: str, build_names):
        self.agent = agent
        self.build_names = list(build_names)
        super().__init__(
            f"could not find a package for {agent} with build names: "
            f"{' '.join(self.build_names)}",
            code="package_not_found",
        )


class PackageFetchError(PackageError):
    """Failed to copy or download a package."""
    pass


class ToolError(AgentsSharError):
    """An external command exited non-zero."""

    def __init__(self, cmd, returncode: int, stderr: str = ""):
        self.cmd = list(cmd)
        self.returncode = returncode
        self.stderr = stderr
        message = f"'{' '.join(self.cmd)}' failed with exit status {returncode}"
        if stderr:
            message += f": {stderr.strip()}"
        super().__init__(message, code="tool_failed")


class BuildOutputError(AgentsSharError):
    """Failed to write the staging directory or an output artifact."""
    pass
