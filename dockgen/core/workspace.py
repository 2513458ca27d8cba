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
# WORKSPACE MANAGER - BUILD CONTEXTS
# -----------------------------------------------------------------------------
# Responsibility: One disposable directory per build attempt.
#
# Each attempt gets build_root/<uuid4>, never build_root/<build_id>, so a
# retry or fallback of the same job cannot collide with a previous attempt.
# The manager owns everything inside the workspace and removes it when the
# attempt ends, pass or fail.
# -----------------------------------------------------------------------------

import json
import shutil
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from rich.console import Console

from dockgen.domain.models import RepositoryData

console = Console()

DOCKERFILE_NAME = "Dockerfile"
DOCKERIGNORE_NAME = ".dockerignore"
MANIFEST_NAME = "package.json"
ENTRYPOINT_NAME = "index.js"

# Owned by the pipeline; repository copies of these are never written
RESERVED_NAMES = frozenset({DOCKERFILE_NAME, DOCKERIGNORE_NAME, MANIFEST_NAME})

DOCKERIGNORE = """node_modules
npm-debug.log*
yarn-debug.log*
yarn-error.log*
.git
.gitignore
README.md
.env
.nyc_output
coverage
.coverage
.cache
.parcel-cache
.next
.nuxt
dist
build
.tmp
.temp
*.log
*.pid
*.seed
*.pid.lock
.DS_Store
Thumbs.db
.vscode
.idea
*.swp
*.swo
*~"""

FALLBACK_PACKAGE_JSON = {
    "name": "dockgen-test",
    "version": "1.0.0",
    "description": "Generated by DockGen AI",
    "main": "index.js",
    "scripts": {
        "start": "node index.js",
        "dev": "node index.js",
        "build": 'echo "Build completed"',
    },
    "dependencies": {"express": "^4.18.2"},
    "engines": {"node": ">=18.0.0"},
}

FALLBACK_INDEX_JS = """const express = require('express');
const app = express();
const port = process.env.PORT || 3000;

// Health check endpoint
app.get('/health', (req, res) => {
  res.status(200).json({ status: 'healthy', timestamp: new Date().toISOString() });
});

// Basic route
app.get('/', (req, res) => {
  res.json({
    message: 'Hello from DockGen AI!',
    timestamp: new Date().toISOString(),
    version: '1.0.0'
  });
});

// Start server
app.listen(port, '0.0.0.0', () => {
  console.log(`Server is running on port ${port}`);
  console.log(`Health check available at http://localhost:${port}/health`);
});

// Graceful shutdown
process.on('SIGTERM', () => {
  console.log('SIGTERM received, shutting down gracefully');
  process.exit(0);
});

process.on('SIGINT', () => {
  console.log('SIGINT received, shutting down gracefully');
  process.exit(0);
});
"""


class WorkspaceIOError(OSError):
    """Raised when a workspace cannot be created or written. Fatal to the attempt."""

    pass


class WorkspaceManager:
    """
    Creates, fills and destroys per-attempt build contexts.

    build_root is injected once and never changes; concurrent attempts only
    ever touch their own uniquely named subdirectory.
    """

    def __init__(self, build_root: Path) -> None:
        self._build_root = Path(build_root)

    @property
    def build_root(self) -> Path:
        return self._build_root

    def create_workspace(self) -> Path:
        """
        Create a fresh, uniquely named workspace directory.

        Returns:
            Path of the new directory.

        Raises:
            WorkspaceIOError: If the directory cannot be created.
        """
        workspace = self._build_root / uuid.uuid4().hex
        try:
            workspace.mkdir(parents=True, exist_ok=False)
        except OSError as e:
            console.print(f"[red][WORKSPACE] Cannot create {workspace}: {e}[/red]")
            raise WorkspaceIOError(f"Cannot create build workspace {workspace}: {e}") from e

        console.print(f"[cyan][WORKSPACE] Created: {workspace.name}[/cyan]")
        return workspace

    def materialize(
        self,
        workspace: Path,
        dockerfile_text: str,
        repo_data: RepositoryData | None = None,
    ) -> None:
        """
        Assemble a self-sufficient build context.

        The Dockerfile and .dockerignore are always (re)written. package.json,
        repository source files and index.js are written only if absent, so a
        second call never replaces content already present in the workspace.

        Args:
            workspace: Directory returned by create_workspace.
            dockerfile_text: Dockerfile content for this attempt.
            repo_data: Optional repository descriptor. Its package_json, when
                present, is serialized verbatim.

        Raises:
            WorkspaceIOError: If any file cannot be written.
        """
        manifest = repo_data.package_json if repo_data is not None else None

        self._write(workspace / DOCKERFILE_NAME, dockerfile_text)
        self._write(workspace / DOCKERIGNORE_NAME, DOCKERIGNORE)
        self._write_if_absent(
            workspace / MANIFEST_NAME,
            json.dumps(manifest if manifest is not None else FALLBACK_PACKAGE_JSON, indent=2),
        )
        if repo_data is not None:
            self._write_sources(workspace, repo_data)
        self._write_if_absent(workspace / ENTRYPOINT_NAME, FALLBACK_INDEX_JS)

        console.print(
            f"[cyan][WORKSPACE] Materialized {workspace.name}: "
            f"{sorted(p.name for p in workspace.iterdir())}[/cyan]"
        )

    def materialize_minimal(self, workspace: Path, dockerfile_text: str) -> None:
        """Write the minimal file set used by the fallback path (default manifest)."""
        self.materialize(workspace, dockerfile_text, repo_data=None)

    def destroy(self, workspace: Path) -> bool:
        """
        Recursively delete a workspace.

        Failures are logged and reported through the return value, never raised:
        cleanup must not change the outcome of a build that already finished.

        Returns:
            True if the directory is gone afterwards.
        """
        try:
            shutil.rmtree(workspace)
        except FileNotFoundError:
            return True
        except OSError as e:
            console.print(f"[yellow][WORKSPACE] Cleanup failed for {workspace}: {e}[/yellow]")
            return False

        console.print(f"[dim][WORKSPACE] Removed: {workspace.name}[/dim]")
        return True

    @contextmanager
    def attempt(self) -> Iterator[Path]:
        """
        Yield a new workspace and destroy it on exit.

        Cleanup runs on every exit path, including timeouts and exceptions.
        """
        workspace = self.create_workspace()
        try:
            yield workspace
        finally:
            self.destroy(workspace)

    def _write_sources(self, workspace: Path, repo_data: RepositoryData) -> None:
        """Copy fetched repository files into the context (only-if-absent, inside the workspace)."""
        root = workspace.resolve()
        for repo_file in repo_data.files:
            if repo_file.type != "file" or repo_file.name in RESERVED_NAMES:
                continue

            target = (workspace / repo_file.path).resolve()
            if root not in target.parents:
                console.print(f"[yellow][WORKSPACE] Skipping unsafe path: {repo_file.path}[/yellow]")
                continue

            try:
                target.parent.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise WorkspaceIOError(f"Cannot create directory for {repo_file.path}: {e}") from e
            self._write_if_absent(target, repo_file.content)

    def _write(self, path: Path, content: str) -> None:
        try:
            path.write_text(content, encoding="utf-8")
        except OSError as e:
            raise WorkspaceIOError(f"Cannot write {path.name}: {e}") from e

    def _write_if_absent(self, path: Path, content: str) -> None:
        if path.exists():
            console.print(f"[dim][WORKSPACE] Keeping existing {path.name}[/dim]")
            return
        self._write(path, content)
