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
# FALLBACK STRATEGY - KNOWN-GOOD MINIMAL BUILD
# -----------------------------------------------------------------------------
# Responsibility: Produce an image when the generated Dockerfile is rejected
# or fails to build.
#
# The fallback never repairs the original text. It builds a fixed,
# hand-written Dockerfile in its own fresh workspace, with the same timeout
# and classification rules as the primary build.
# -----------------------------------------------------------------------------

from rich.console import Console

from dockgen.core.executor import BuildExecutor, BuildTimeout, BuildToolFailure
from dockgen.core.workspace import WorkspaceIOError, WorkspaceManager
from dockgen.domain.models import BuildResult, RepositoryData

console = Console()

FALLBACK_DOCKERFILE = """# Simple Node.js Application
FROM node:18-alpine

WORKDIR /app

# Copy package files
COPY package.json ./

# Install dependencies
RUN npm install

# Copy source files
COPY . .

# Expose port (numeric, not an environment variable)
EXPOSE 3000

# Start the application
CMD ["npm", "start"]
"""


class FallbackExhausted(Exception):
    """Raised (or reported) when both the primary and the fallback build failed."""

    def __init__(self, original_error: str, fallback_error: str) -> None:
        super().__init__(
            "Both original and fallback builds failed. "
            f"Original: {original_error}; Fallback: {fallback_error}"
        )
        self.original_error = original_error
        self.fallback_error = fallback_error


class FallbackStrategy:
    """Deterministic recovery path shared by every failure of the primary build."""

    def __init__(
        self,
        workspaces: WorkspaceManager,
        executor: BuildExecutor,
        image_prefix: str = "dockgen-ai",
    ) -> None:
        self._workspaces = workspaces
        self._executor = executor
        self._image_prefix = image_prefix

    def run_fallback(
        self,
        build_id: str,
        repo_data: RepositoryData | None = None,
        original_error: str | None = None,
    ) -> BuildResult:
        """
        Build the fixed fallback Dockerfile for a build id.

        Args:
            build_id: Caller-supplied job id, used verbatim in the image tag.
            repo_data: Accepted for interface symmetry with the primary path.
                The fallback always uses the default manifest and entry point.
            original_error: Why the primary path was abandoned, for the
                terminal message if the fallback fails too.

        Returns:
            BuildResult. Never raises.
        """
        tag = f"{self._image_prefix}-{build_id}:latest"
        original = original_error or "primary build not attempted"
        console.print(f"[yellow][FALLBACK] Building fallback image: {tag}[/yellow]")
        if repo_data is not None:
            console.print(
                f"[dim][FALLBACK] Ignoring repository data for {repo_data.name}; "
                "using the minimal project[/dim]"
            )

        try:
            with self._workspaces.attempt() as workspace:
                self._workspaces.materialize_minimal(workspace, FALLBACK_DOCKERFILE)
                artifact = self._executor.build(workspace, tag)
        except (BuildToolFailure, BuildTimeout, WorkspaceIOError) as e:
            error = FallbackExhausted(original, str(e))
            console.print(f"[red][FALLBACK] Fallback build also failed: {e}[/red]")
            return BuildResult.failed(str(error))
        except Exception as e:
            error = FallbackExhausted(original, f"Unexpected error: {e}")
            console.print(f"[red][FALLBACK] Unexpected fallback error: {e}[/red]")
            return BuildResult.failed(str(error))

        console.print(f"[green][FALLBACK] Fallback build successful: {artifact}[/green]")
        return BuildResult.ok(artifact)
