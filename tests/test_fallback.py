"""
Tests for the fallback build path.
"""

import json
import subprocess

import pytest

from conftest import FakeRunner, completed
from dockgen.core.executor import BuildExecutor
from dockgen.core.fallback import FALLBACK_DOCKERFILE, FallbackExhausted, FallbackStrategy
from dockgen.core.validator import DockerfileValidator
from dockgen.core.workspace import FALLBACK_PACKAGE_JSON, WorkspaceManager
from dockgen.domain.models import RepositoryData


def make_strategy(tmp_path, registry, runner):
    workspaces = WorkspaceManager(tmp_path / "builds")
    executor = BuildExecutor(registry, runner=runner)
    return FallbackStrategy(workspaces, executor, "dockgen-ai"), workspaces


class TestFallbackDockerfile:
    """The fixed fallback build file."""

    def test_passes_validation(self):
        assert DockerfileValidator().validate(FALLBACK_DOCKERFILE).is_valid is True

    def test_contents(self):
        assert "FROM node:18-alpine" in FALLBACK_DOCKERFILE
        assert "EXPOSE 3000" in FALLBACK_DOCKERFILE
        assert 'CMD ["npm", "start"]' in FALLBACK_DOCKERFILE


class TestRunFallback:
    """run_fallback never raises and always cleans up."""

    def test_success_returns_artifact(self, tmp_path, mock_registry):
        runner = FakeRunner(completed())
        strategy, workspaces = make_strategy(tmp_path, mock_registry, runner)

        result = strategy.run_fallback("job42")

        assert result.success is True
        assert result.artifact_id == "dockgen-ai-job42:latest"
        assert result.error_message is None
        assert list(workspaces.build_root.iterdir()) == []

    def test_builds_minimal_project(self, tmp_path, mock_registry):
        runner = FakeRunner(completed())
        strategy, _ = make_strategy(tmp_path, mock_registry, runner)

        strategy.run_fallback("job42")

        files = runner.snapshots[0]
        assert files["Dockerfile"] == FALLBACK_DOCKERFILE
        assert json.loads(files["package.json"]) == FALLBACK_PACKAGE_JSON
        assert "index.js" in files
        assert ".dockerignore" in files

    def test_repository_data_ignored(self, tmp_path, mock_registry):
        runner = FakeRunner(completed())
        strategy, _ = make_strategy(tmp_path, mock_registry, runner)

        strategy.run_fallback("job42", RepositoryData(package_json={"name": "theirs"}))

        assert json.loads(runner.snapshots[0]["package.json"]) == FALLBACK_PACKAGE_JSON

    def test_failure_names_both_errors(self, tmp_path, mock_registry):
        runner = FakeRunner(completed(returncode=1, stderr="ERROR: registry unreachable"))
        strategy, workspaces = make_strategy(tmp_path, mock_registry, runner)

        result = strategy.run_fallback("job42", original_error="Missing FROM instruction")

        assert result.success is False
        assert result.artifact_id is None
        assert result.error_message.startswith("Both original and fallback builds failed.")
        assert "Original: Missing FROM instruction" in result.error_message
        assert "registry unreachable" in result.error_message
        assert list(workspaces.build_root.iterdir()) == []

    def test_timeout_is_reported(self, tmp_path, mock_registry):
        runner = FakeRunner(subprocess.TimeoutExpired(cmd="docker", timeout=300))
        strategy, _ = make_strategy(tmp_path, mock_registry, runner)

        result = strategy.run_fallback("job42", original_error="boom")

        assert result.success is False
        assert "timed out" in result.error_message

    def test_unexpected_error_captured(self, tmp_path, mock_registry):
        mock_registry.image_id.side_effect = RuntimeError("daemon gone")
        strategy, _ = make_strategy(tmp_path, mock_registry, FakeRunner(completed()))

        result = strategy.run_fallback("job42", original_error="boom")

        assert result.success is False
        assert "Unexpected error: daemon gone" in result.error_message

    def test_missing_original_error_has_placeholder(self, tmp_path, mock_registry):
        runner = FakeRunner(completed(returncode=1, stderr="ERROR: x"))
        strategy, _ = make_strategy(tmp_path, mock_registry, runner)

        result = strategy.run_fallback("job42")

        assert "Original: primary build not attempted" in result.error_message


class TestFallbackExhausted:
    def test_message_format(self):
        error = FallbackExhausted("A", "B")
        assert str(error) == "Both original and fallback builds failed. Original: A; Fallback: B"
        assert error.original_error == "A"
        assert error.fallback_error == "B"


@pytest.mark.parametrize("build_id", ["abc", "123e4567"])
def test_tag_uses_build_id_verbatim(tmp_path, mock_registry, build_id):
    runner = FakeRunner(completed())
    strategy, _ = make_strategy(tmp_path, mock_registry, runner)

    result = strategy.run_fallback(build_id)

    assert result.artifact_id == f"dockgen-ai-{build_id}:latest"
    assert f"dockgen-ai-{build_id}:latest" in runner.calls[0]["cmd"]
