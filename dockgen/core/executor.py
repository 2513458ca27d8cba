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
# BUILD EXECUTOR - DOCKER CLI RUNNER
# -----------------------------------------------------------------------------
# Responsibility: Run `docker build` against a workspace and decide whether
# it produced an image.
#
# Safety Features:
# - Dead Man's Switch: hard wall-clock timeout (default 300 seconds)
# - Two-phase verdict: the tool's own report, then an independent lookup of
#   the tag in the image store. The tool's success signal alone is not trusted.
# -----------------------------------------------------------------------------

import subprocess
from pathlib import Path
from typing import Callable

from rich.console import Console

from dockgen.core.registry import ImageRegistry
from dockgen.domain.models import ExecutionReport

console = Console()

BUILD_TIMEOUT_SECONDS = 300

ERROR_MARKER = "ERROR"
SUCCESS_MARKER = "Successfully built"

# Keep failure messages readable; the full stream is logged
MAX_ERROR_OUTPUT = 2000


class BuildToolFailure(Exception):
    """Raised when docker build reports (or exits with) a failure."""

    def __init__(self, message: str, output: str = "", exit_status: int | None = None) -> None:
        super().__init__(message)
        self.output = output
        self.exit_status = exit_status


class BuildTimeout(Exception):
    """Raised when docker build exceeds the Dead Man's Switch timeout."""

    def __init__(self, timeout_seconds: float) -> None:
        super().__init__(f"Docker build timed out after {timeout_seconds}s")
        self.timeout_seconds = timeout_seconds


class BuildVerificationError(BuildToolFailure):
    """Raised when the build claimed success but no image exists for the tag."""

    pass


class BuildExecutor:
    """
    Invokes the external builder and classifies its output.

    runner has the subprocess.run signature; tests pass a fake.
    """

    def __init__(
        self,
        registry: ImageRegistry,
        docker_binary: str = "docker",
        timeout_seconds: int = BUILD_TIMEOUT_SECONDS,
        no_cache: bool = True,
        runner: Callable[..., subprocess.CompletedProcess] = subprocess.run,
    ) -> None:
        self._registry = registry
        self._docker_binary = docker_binary
        self._timeout = timeout_seconds
        self._no_cache = no_cache
        self._runner = runner

    @property
    def timeout_seconds(self) -> int:
        return self._timeout

    def command(self, image_tag: str) -> list[str]:
        cmd = [self._docker_binary, "build"]
        if self._no_cache:
            cmd.append("--no-cache")
        cmd += ["--progress=plain", "-t", image_tag, "."]
        return cmd

    def execute(self, workspace: Path, image_tag: str) -> ExecutionReport:
        """
        Run docker build with the workspace as build context.

        Args:
            workspace: Materialized build context.
            image_tag: Tag to apply to the resulting image.

        Returns:
            ExecutionReport with stdout, stderr and exit status.

        Raises:
            BuildTimeout: Dead Man's Switch triggered.
            BuildToolFailure: The builder binary could not be started.
        """
        cmd = self.command(image_tag)
        console.print(
            f"[cyan][EXECUTOR] Building {image_tag} (TTL: {self._timeout}s): {' '.join(cmd)}[/cyan]"
        )

        try:
            completed = self._runner(
                cmd,
                cwd=str(workspace),
                capture_output=True,
                text=True,
                timeout=self._timeout,
            )
        except subprocess.TimeoutExpired as e:
            console.print(f"[red][EXECUTOR] TIMEOUT! Build exceeded {self._timeout}s[/red]")
            raise BuildTimeout(self._timeout) from e
        except OSError as e:
            console.print(f"[red][EXECUTOR] Cannot start {self._docker_binary}: {e}[/red]")
            raise BuildToolFailure(f"Cannot start {self._docker_binary}: {e}") from e

        report = ExecutionReport(
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
            exit_status=completed.returncode,
        )
        if report.stdout:
            console.print(f"[dim][EXECUTOR] stdout:\n{report.stdout}[/dim]")
        if report.stderr:
            console.print(f"[dim][EXECUTOR] stderr:\n{report.stderr}[/dim]")
        return report

    @staticmethod
    def classify_stream(stderr: str) -> bool:
        """
        Heuristic verdict on the builder's diagnostic stream.

        A non-empty stream is not a failure: BuildKit writes progress there.
        Failure requires an error marker with no success marker; when both
        appear the success marker wins.

        Returns:
            True if the stream indicates success.
        """
        return not (ERROR_MARKER in stderr and SUCCESS_MARKER not in stderr)

    @classmethod
    def classify(cls, report: ExecutionReport) -> bool:
        """Overall verdict: a non-zero exit is a failure, otherwise the stream decides."""
        if report.exit_status != 0:
            return False
        return cls.classify_stream(report.stderr)

    def build(self, workspace: Path, image_tag: str) -> str:
        """
        Execute, classify and verify one build.

        Returns:
            The verified image tag.

        Raises:
            BuildTimeout: Dead Man's Switch triggered.
            BuildToolFailure: The builder reported a failure.
            BuildVerificationError: The builder reported success but the tag is missing.
        """
        report = self.execute(workspace, image_tag)

        if not self.classify(report):
            diagnostics = (report.stderr or report.stdout).strip()
            console.print(f"[red][EXECUTOR] Build FAILED (exit: {report.exit_status})[/red]")
            raise BuildToolFailure(
                f"Docker build failed (exit {report.exit_status}): {diagnostics[-MAX_ERROR_OUTPUT:]}",
                output=diagnostics,
                exit_status=report.exit_status,
            )

        image_id = self._registry.image_id(image_tag)
        if not image_id:
            console.print(f"[red][EXECUTOR] Verification FAILED: no image for {image_tag}[/red]")
            raise BuildVerificationError(
                "Docker image was not created successfully",
                output=report.stderr,
                exit_status=report.exit_status,
            )

        console.print(f"[green][EXECUTOR] Image verified: {image_tag} ({image_id})[/green]")
        return image_tag
