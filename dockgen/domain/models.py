# Copyright 2026 Pramod Kumar Voola
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

# -----------------------------------------------------------------------------
# DOMAIN MODELS - BUILD CONTRACTS
# -----------------------------------------------------------------------------
# These Pydantic models define the contract between the callers (API, job
# orchestrator) and the build pipeline (Foundry).
#
# BuildResult is the sole return shape of the pipeline. Its validator makes
# the two legal shapes (success + artifact, failure + message) the only
# constructible ones.
# -----------------------------------------------------------------------------

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field, model_validator


class ValidationVerdict(BaseModel):
    """
    Outcome of static Dockerfile analysis.

    Only errors block the primary build. Warnings and suggestions are
    logged and otherwise ignored.
    """

    is_valid: bool
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    suggestions: list[str] = Field(default_factory=list)


class BuildResult(BaseModel):
    """
    Result of one build_image invocation.

    Invariant:
    - success is True  <=> artifact_id is a non-empty string
    - success is False <=> error_message is a non-empty string
    """

    success: bool
    artifact_id: str | None = None
    error_message: str | None = None

    @model_validator(mode="after")
    def _check_shape(self) -> "BuildResult":
        if self.success:
            if not self.artifact_id:
                raise ValueError("successful BuildResult requires artifact_id")
            if self.error_message:
                raise ValueError("successful BuildResult cannot carry error_message")
        else:
            if not self.error_message:
                raise ValueError("failed BuildResult requires error_message")
            if self.artifact_id:
                raise ValueError("failed BuildResult cannot carry artifact_id")
        return self

    @classmethod
    def ok(cls, artifact_id: str) -> "BuildResult":
        return cls(success=True, artifact_id=artifact_id)

    @classmethod
    def failed(cls, message: str) -> "BuildResult":
        return cls(success=False, error_message=message or "Unknown Docker build error")


class ExecutionReport(BaseModel):
    """Raw output of one builder invocation."""

    stdout: str = ""
    stderr: str = ""
    exit_status: int = 0


class RepoFile(BaseModel):
    """A single file (or directory entry) fetched from the source repository."""

    name: str
    path: str
    content: str = ""
    type: Literal["file", "dir"] = "file"


class RepositoryData(BaseModel):
    """
    Repository descriptor handed to the pipeline.

    Every field has a default so an empty descriptor still yields a runnable
    minimal project. package_json is opaque: when present it is written to
    the workspace exactly as given.
    """

    name: str = "app"
    full_name: str = ""
    description: str = ""
    language: str = "JavaScript"
    default_branch: str = "main"
    files: list[RepoFile] = Field(default_factory=list)
    package_json: dict[str, Any] | None = None
    dependencies: list[str] = Field(default_factory=list)
    dev_dependencies: list[str] = Field(default_factory=list)
    scripts: dict[str, str] = Field(default_factory=dict)

    def file_names(self) -> set[str]:
        return {f.name for f in self.files if f.type == "file"}


class ProcessingState(str, Enum):
    """Lifecycle of a generation job."""

    QUEUED = "queued"
    ANALYZING = "analyzing"
    BUILDING = "building"
    COMPLETED = "completed"
    FAILED = "failed"


def _utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


class ProjectBuild(BaseModel):
    """
    In-process record of a generation job.

    The repository access token is passed through to the fetch phase and
    never stored on the record.
    """

    id: str
    repository_url: str
    detected_technologies: list[str] = Field(default_factory=list)
    generated_dockerfile: str = ""
    processing_state: ProcessingState = ProcessingState.QUEUED
    container_image_id: str | None = None
    failure_reason: str | None = None
    created_at: str = Field(default_factory=_utcnow)
    updated_at: str = Field(default_factory=_utcnow)

    class Config:
        """Pydantic configuration."""

        use_enum_values = True
