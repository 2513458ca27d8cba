"""
Tests for Pydantic domain models.
"""

import pytest
from pydantic import ValidationError

from dockgen.domain.models import (
    BuildResult,
    ProcessingState,
    ProjectBuild,
    RepoFile,
    RepositoryData,
    ValidationVerdict,
)


class TestBuildResult:
    """Exactly one of artifact_id and error_message is set."""

    def test_ok(self):
        result = BuildResult.ok("dockgen-ai-1:latest")
        assert result.success is True
        assert result.artifact_id == "dockgen-ai-1:latest"
        assert result.error_message is None

    def test_failed(self):
        result = BuildResult.failed("boom")
        assert result.success is False
        assert result.artifact_id is None
        assert result.error_message == "boom"

    def test_failed_with_empty_message_gets_default(self):
        """A failure always carries a non-empty message."""
        assert BuildResult.failed("").error_message == "Unknown Docker build error"

    def test_success_without_artifact_rejected(self):
        with pytest.raises(ValidationError):
            BuildResult(success=True)

    def test_success_with_error_rejected(self):
        with pytest.raises(ValidationError):
            BuildResult(success=True, artifact_id="a", error_message="b")

    def test_failure_without_message_rejected(self):
        with pytest.raises(ValidationError):
            BuildResult(success=False)

    def test_failure_with_artifact_rejected(self):
        with pytest.raises(ValidationError):
            BuildResult(success=False, artifact_id="a", error_message="b")


class TestValidationVerdict:
    def test_defaults(self):
        verdict = ValidationVerdict(is_valid=True)
        assert verdict.errors == []
        assert verdict.warnings == []
        assert verdict.suggestions == []


class TestRepositoryData:
    """An empty descriptor is still usable."""

    def test_defaults(self):
        data = RepositoryData()
        assert data.name == "app"
        assert data.package_json is None
        assert data.files == []

    def test_file_names_skip_directories(self):
        data = RepositoryData(
            files=[
                RepoFile(name="package.json", path="package.json"),
                RepoFile(name="src", path="src", type="dir"),
            ]
        )
        assert data.file_names() == {"package.json"}

    def test_invalid_file_type_rejected(self):
        with pytest.raises(ValidationError):
            RepoFile(name="x", path="x", type="symlink")


class TestProjectBuild:
    def test_defaults(self):
        job = ProjectBuild(id="abc", repository_url="https://github.com/o/r")
        assert job.processing_state == "queued"
        assert job.container_image_id is None
        assert job.created_at

    def test_enum_values_stored(self):
        job = ProjectBuild(
            id="abc",
            repository_url="https://github.com/o/r",
            processing_state=ProcessingState.COMPLETED,
        )
        assert job.processing_state == "completed"
        assert job.model_dump()["processing_state"] == "completed"

    def test_unknown_state_rejected(self):
        with pytest.raises(ValidationError):
            ProjectBuild(id="a", repository_url="u", processing_state="exploded")
