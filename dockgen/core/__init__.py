# -----------------------------------------------------------------------------
# CORE LAYER
# -----------------------------------------------------------------------------
# The business logic of DockGen:
# - DockerfileValidator: Static Dockerfile gate
# - WorkspaceManager: Per-attempt build contexts
# - BuildExecutor: docker build runner + verdict
# - FallbackStrategy: Known-good minimal build
# - ImageRegistry: Inspect / list / delete built images
# - Foundry: The build pipeline tying them together
# - GenerationManager: Job orchestrator
# -----------------------------------------------------------------------------

from .executor import BuildExecutor, BuildTimeout, BuildToolFailure, BuildVerificationError
from .fallback import FallbackExhausted, FallbackStrategy
from .foundry import Foundry, FoundryOutcome
from .registry import ImageRegistry
from .validator import DockerfileValidator, ValidationFailure
from .workspace import WorkspaceIOError, WorkspaceManager

__all__ = [
    "BuildExecutor", "BuildTimeout", "BuildToolFailure", "BuildVerificationError",
    "FallbackExhausted", "FallbackStrategy",
    "Foundry", "FoundryOutcome",
    "ImageRegistry",
    "DockerfileValidator", "ValidationFailure",
    "WorkspaceIOError", "WorkspaceManager",
]
