"""
Pytest configuration and fixtures for DockGen tests.
"""

import os
import subprocess
import sys
from pathlib import Path
from unittest.mock import MagicMock

import pytest

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from dockgen.config import Settings
from dockgen.core.registry import ImageRegistry

# Keep tests independent of the developer's environment
os.environ.pop("DOCKGEN_CONFIG", None)


VALID_DOCKERFILE = """FROM node:18-alpine
WORKDIR /app
COPY package.json ./
RUN npm install
COPY . .
EXPOSE 3000
USER node
HEALTHCHECK CMD wget -qO- http://localhost:3000/health || exit 1
CMD ["npm", "start"]
"""


def completed(returncode: int = 0, stdout: str = "", stderr: str = "") -> subprocess.CompletedProcess:
    """Build a CompletedProcess as subprocess.run would return it."""
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout, stderr=stderr)


class FakeRunner:
    """
    Stand-in for subprocess.run.

    Returns (or raises) the given outcomes in order; the last one repeats.
    Snapshots the workspace files at call time so tests can check what the
    builder would have seen.
    """

    def __init__(self, *outcomes) -> None:
        self.outcomes = list(outcomes) or [completed()]
        self.calls: list[dict] = []
        self.snapshots: list[dict[str, str]] = []
        self.workspaces: list[Path] = []

    def __call__(self, cmd, cwd=None, **kwargs):
        self.calls.append({"cmd": list(cmd), "cwd": cwd, **kwargs})

        if cwd is not None:
            workspace = Path(cwd)
            self.workspaces.append(workspace)
            self.snapshots.append(
                {p.name: p.read_text() for p in workspace.iterdir() if p.is_file()}
            )

        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


@pytest.fixture
def settings(tmp_path):
    """Settings with the build root inside the test's tmp_path."""
    return Settings(build_root=tmp_path / "builds", build_timeout_seconds=5)


@pytest.fixture
def mock_registry():
    """ImageRegistry double that reports every tag as present."""
    registry = MagicMock(spec=ImageRegistry)
    registry.prefix = "dockgen-ai"
    registry.image_id.return_value = "sha256:abc123"
    registry.inspect.return_value = None
    registry.list_all.return_value = []
    registry.delete.return_value = False
    return registry


@pytest.fixture
def valid_dockerfile():
    return VALID_DOCKERFILE


@pytest.fixture
def mock_docker_client():
    """Mock Docker SDK client for registry tests."""
    client = MagicMock()
    client.ping.return_value = True

    image = MagicMock()
    image.short_id = "sha256:abc123"
    image.id = "sha256:abc123def456"
    image.attrs = {"Id": "sha256:abc123def456", "RepoTags": ["dockgen-ai-job1:latest"]}
    image.tags = ["dockgen-ai-job1:latest"]
    client.images.get.return_value = image

    return client
