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
# THE FOUNDRY - BUILD & VALIDATE PIPELINE
# -----------------------------------------------------------------------------
# Responsibility: Turn candidate Dockerfile text into a built image, or a
# safely reported failure.
#
# Flow:
#   validate -> (invalid) -> fallback
#            -> (valid)   -> workspace -> docker build -> verify
#                                      -> (any build failure) -> fallback
#
# Guarantees:
# - build_image never raises; callers only ever see a BuildResult
# - every workspace is removed before build_image returns
# - the original text is never written to disk when validation rejects it
# -----------------------------------------------------------------------------

import subprocess
from dataclasses import dataclass
from typing import Callable

from rich.console import Console

from dockgen.config import Settings
from dockgen.core.executor import BuildExecutor, BuildTimeout, BuildToolFailure
from dockgen.core.fallback import FALLBACK_DOCKERFILE, FallbackStrategy
from dockgen.core.registry import ImageRegistry
from dockgen.core.validator import DockerfileValidator, ValidationFailure
from dockgen.core.workspace import WorkspaceIOError, WorkspaceManager
from dockgen.domain.models import BuildResult, RepositoryData
from dockgen.infra.docker_client import DockerProvider

console = Console()


@dataclass
class FoundryOutcome:
    """A BuildResult plus the Dockerfile text the image was actually built from."""

    result: BuildResult
    dockerfile: str
    used_fallback: bool = False


class Foundry:
    """
    The build pipeline.

    One Foundry serves the whole process. It holds no per-build state, so
    concurrent build_image calls are isolated by their workspace names and
    image tags alone.
    """

    def __init__(
        self,
        settings: Settings,
        registry: ImageRegistry | None = None,
        runner: Callable[..., subprocess.CompletedProcess] = subprocess.run,
    ) -> None:
        self._settings = settings
        self._runner = runner
        self._registry = registry or ImageRegistry(DockerProvider(), settings.image_prefix)
        self._validator = DockerfileValidator()
        self._workspaces = WorkspaceManager(settings.build_root)
        self._executor = BuildExecutor(
            self._registry,
            docker_binary=settings.docker_binary,
            timeout_seconds=settings.build_timeout_seconds,
            no_cache=settings.no_cache,
            runner=runner,
        )
        self._fallback = FallbackStrategy(
            self._workspaces, self._executor, settings.image_prefix
        )

    @property
    def registry(self) -> ImageRegistry:
        return self._registry

    @property
    def validator(self) -> DockerfileValidator:
        return self._validator

    def build_image(
        self,
        dockerfile_text: str,
        build_id: str,
        repo_data: RepositoryData | None = None,
    ) -> BuildResult:
        """
        Validate, build and verify an image for a generated Dockerfile.

        Args:
            dockerfile_text: Untrusted Dockerfile content.
            build_id: Caller-supplied id; the image is tagged
                <prefix>-<build_id>:latest.
            repo_data: Optional repository descriptor for the build context.

        Returns:
            BuildResult with the artifact tag, or an error message naming
            every failure that led to it.
        """
        return self.run(dockerfile_text, build_id, repo_data).result

    def run(
        self,
        dockerfile_text: str,
        build_id: str,
        repo_data: RepositoryData | None = None,
    ) -> FoundryOutcome:
        """Same pipeline as build_image, also reporting which Dockerfile was built."""
        tag = self._settings.image_tag(build_id)
        console.print(f"[cyan][FOUNDRY] Build {build_id} -> {tag}[/cyan]")

        # Phase 1: Static validation
        verdict = self._validator.validate(dockerfile_text)
        if not verdict.is_valid:
            failure = ValidationFailure(verdict)
            console.print(f"[yellow][FOUNDRY] Dockerfile rejected: {verdict.errors}[/yellow]")
            return self._run_fallback(build_id, repo_data, str(failure))

        for warning in verdict.warnings:
            console.print(f"[yellow][FOUNDRY] Warning: {warning}[/yellow]")
        for suggestion in verdict.suggestions:
            console.print(f"[dim][FOUNDRY] Suggestion: {suggestion}[/dim]")

        # Phase 2: Workspace + build + verify
        try:
            with self._workspaces.attempt() as workspace:
                self._workspaces.materialize(workspace, dockerfile_text, repo_data)
                artifact = self._executor.build(workspace, tag)

        except WorkspaceIOError as e:
            console.print(f"[red][FOUNDRY] Workspace error, aborting attempt: {e}[/red]")
            return FoundryOutcome(BuildResult.failed(str(e)), dockerfile_text)

        except BuildTimeout as e:
            console.print(f"[yellow][FOUNDRY] {e}; switching to fallback[/yellow]")
            return self._run_fallback(build_id, repo_data, str(e))

        except BuildToolFailure as e:
            # Also covers BuildVerificationError
            console.print(f"[yellow][FOUNDRY] {type(e).__name__}; switching to fallback[/yellow]")
            return self._run_fallback(build_id, repo_data, str(e))

        except Exception as e:
            console.print(f"[red][FOUNDRY] Unexpected build error: {e}[/red]")
            return FoundryOutcome(
                BuildResult.failed(f"Unexpected Docker build error: {e}"), dockerfile_text
            )

        console.print(f"[green][FOUNDRY] Build complete: {artifact}[/green]")
        return FoundryOutcome(BuildResult.ok(artifact), dockerfile_text)

    def _run_fallback(
        self, build_id: str, repo_data: RepositoryData | None, original_error: str
    ) -> FoundryOutcome:
        result = self._fallback.run_fallback(build_id, repo_data, original_error)
        return FoundryOutcome(result, FALLBACK_DOCKERFILE, used_fallback=True)

    def is_docker_available(self) -> bool:
        """Check that the docker CLI can be executed."""
        try:
            completed = self._runner(
                [self._settings.docker_binary, "--version"],
                capture_output=True,
                text=True,
                timeout=10,
            )
        except (OSError, subprocess.SubprocessError) as e:
            console.print(f"[red][FOUNDRY] Docker is not available: {e}[/red]")
            return False
        return completed.returncode == 0
