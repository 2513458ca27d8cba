# -----------------------------------------------------------------------------
# INFRASTRUCTURE LAYER
# -----------------------------------------------------------------------------
# Contains low-level infrastructure wrappers:
# - DockerProvider: Lazily connected Docker SDK client
# - RepositoryProvider: GitHub contents API client
# -----------------------------------------------------------------------------

from .docker_client import DockerProvider, DockerProviderError
from .github_client import RepositoryProvider

__all__ = ["DockerProvider", "DockerProviderError", "RepositoryProvider"]
