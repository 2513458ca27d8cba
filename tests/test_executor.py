"""
Tests for the build executor: invocation, classification and verification.
"""

import subprocess

import pytest

from conftest import FakeRunner, completed
from dockgen.core.executor import (
    BuildExecutor,
    BuildTimeout,
    BuildToolFailure,
    BuildVerificationError,
)
from dockgen.domain.models import ExecutionReport


@pytest.fixture
def workspace(tmp_path):
    path = tmp_path / "ws"
    path.mkdir()
    (path / "Dockerfile").write_text("FROM node:18\n")
    return path


class TestCommand:
    """The builder is invoked with the workspace as context."""

    def test_command_with_no_cache(self, mock_registry):
        """Test the default build command."""
        executor = BuildExecutor(mock_registry)
        assert executor.command("dockgen-ai-j1:latest") == [
            "docker", "build", "--no-cache", "--progress=plain", "-t", "dockgen-ai-j1:latest", ".",
        ]

    def test_command_without_no_cache(self, mock_registry):
        """Test that the binary and cache flag follow the settings."""
        executor = BuildExecutor(mock_registry, docker_binary="/usr/bin/docker", no_cache=False)
        cmd = executor.command("t:latest")
        assert cmd[0] == "/usr/bin/docker"
        assert "--no-cache" not in cmd

    def test_execute_passes_cwd_and_timeout(self, mock_registry, workspace):
        """Test that the build runs in the workspace with the configured timeout."""
        runner = FakeRunner(completed(stdout="ok"))
        executor = BuildExecutor(mock_registry, timeout_seconds=42, runner=runner)

        report = executor.execute(workspace, "t:latest")

        call = runner.calls[0]
        assert call["cwd"] == str(workspace)
        assert call["timeout"] == 42
        assert call["capture_output"] is True
        assert report == ExecutionReport(stdout="ok", stderr="", exit_status=0)


class TestClassification:
    """Output heuristics: stderr alone does not mean failure."""

    def test_empty_stream_is_success(self):
        """Test that an empty stream counts as success."""
        assert BuildExecutor.classify_stream("") is True

    def test_progress_output_is_success(self):
        """BuildKit progress on stderr is not a failure."""
        assert BuildExecutor.classify_stream("#1 [internal] load build definition\n#1 DONE 0.1s") is True

    def test_error_marker_is_failure(self):
        """Test that an ERROR marker fails the build."""
        assert BuildExecutor.classify_stream("ERROR: no such file") is False

    def test_success_marker_wins_over_error_marker(self):
        """Test that the success marker outranks an ERROR marker."""
        assert BuildExecutor.classify_stream("ERROR: deprecated flag\nSuccessfully built abc123") is True

    def test_nonzero_exit_is_failure(self):
        """Test that a non-zero exit status is always a failure."""
        report = ExecutionReport(stderr="", exit_status=1)
        assert BuildExecutor.classify(report) is False

    def test_zero_exit_defers_to_stream(self):
        """Test that exit 0 leaves the verdict to the output markers."""
        assert BuildExecutor.classify(ExecutionReport(stderr="ERROR: x", exit_status=0)) is False
        assert BuildExecutor.classify(ExecutionReport(stderr="step 1/3", exit_status=0)) is True


class TestBuild:
    """Execute, classify, verify."""

    def test_successful_build_returns_tag(self, mock_registry, workspace):
        """Test that a verified build returns its tag."""
        runner = FakeRunner(completed(stderr="#5 DONE\nnaming to docker.io/library/t:latest"))
        executor = BuildExecutor(mock_registry, runner=runner)

        assert executor.build(workspace, "t:latest") == "t:latest"
        mock_registry.image_id.assert_called_once_with("t:latest")

    def test_reported_failure_raises_with_diagnostics(self, mock_registry, workspace):
        """Test that a failed build raises with the builder output."""
        runner = FakeRunner(completed(returncode=1, stderr="ERROR: failed to solve: node:99"))
        executor = BuildExecutor(mock_registry, runner=runner)

        with pytest.raises(BuildToolFailure) as exc_info:
            executor.build(workspace, "t:latest")

        assert "failed to solve" in str(exc_info.value)
        assert exc_info.value.exit_status == 1
        mock_registry.image_id.assert_not_called()

    def test_missing_image_after_success_raises_verification_error(self, mock_registry, workspace):
        """A build reported as successful must still produce the image."""
        mock_registry.image_id.return_value = None
        executor = BuildExecutor(mock_registry, runner=FakeRunner(completed()))

        with pytest.raises(BuildVerificationError, match="not created successfully"):
            executor.build(workspace, "t:latest")

    def test_verification_error_is_a_tool_failure(self):
        """BuildVerificationError should subclass BuildToolFailure."""
        assert issubclass(BuildVerificationError, BuildToolFailure)

    def test_timeout_raises_build_timeout(self, mock_registry, workspace):
        """Test that a hung build raises BuildTimeout."""
        runner = FakeRunner(subprocess.TimeoutExpired(cmd="docker build", timeout=5))
        executor = BuildExecutor(mock_registry, timeout_seconds=5, runner=runner)

        with pytest.raises(BuildTimeout) as exc_info:
            executor.build(workspace, "t:latest")

        assert exc_info.value.timeout_seconds == 5
        assert "timed out after 5s" in str(exc_info.value)

    def test_missing_binary_raises_tool_failure(self, mock_registry, workspace):
        """Test that a missing docker binary raises BuildToolFailure."""
        runner = FakeRunner(FileNotFoundError("docker"))
        executor = BuildExecutor(mock_registry, runner=runner)

        with pytest.raises(BuildToolFailure, match="Cannot start docker"):
            executor.build(workspace, "t:latest")
