# -----------------------------------------------------------------------------
# DOMAIN LAYER
# -----------------------------------------------------------------------------
# Contains the Pydantic models that define the contract between callers
# and the build pipeline.
# -----------------------------------------------------------------------------

from .models import (
    BuildResult,
    ExecutionReport,
    ProcessingState,
    ProjectBuild,
    RepoFile,
    RepositoryData,
    ValidationVerdict,
)

__all__ = [
    "BuildResult",
    "ExecutionReport",
    "ProcessingState",
    "ProjectBuild",
    "RepoFile",
    "RepositoryData",
    "ValidationVerdict",
]
