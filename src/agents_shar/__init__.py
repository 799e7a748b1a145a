"""agents-shar - Bundle pre-built agent packages into a self-extracting installer."""

__version__ = "0.1.0"
__author__ = "Agents Build Team"

from agents_shar.core.config import Settings
from agents_shar.core.models import BuildArtifacts, BuildStamp

__all__ = ["Settings", "BuildArtifacts", "BuildStamp", "__version__"]
