"""
Tests for the GitHub repository provider.
"""

import base64
import json
from unittest.mock import MagicMock, patch

import pytest
import requests

from dockgen.infra.github_client import (
    CommitError,
    RepositoryFetchError,
    RepositoryProvider,
    parse_repository_url,
)

API = "https://api.github.com"


def response(status_code=200, payload=None, text=""):
    resp = MagicMock()
    resp.status_code = status_code
    resp.json.return_value = payload
    resp.text = text
    if status_code >= 400:
        resp.raise_for_status.side_effect = requests.HTTPError(f"{status_code} error")
    return resp


def routed(routes):
    """requests.get side effect dispatching on URL."""

    def fake_get(url, headers=None, timeout=None):
        if url not in routes:
            return response(404)
        return routes[url]

    return fake_get


class TestParseRepositoryUrl:
    @pytest.mark.parametrize(
        "url",
        [
            "https://github.com/octo/hello",
            "https://github.com/octo/hello.git",
            "github.com/octo/hello",
            "https://www.github.com/octo/hello/tree/main",
        ],
    )
    def test_valid_urls(self, url):
        assert parse_repository_url(url) == ("octo", "hello")

    @pytest.mark.parametrize("url", ["https://gitlab.com/a/b", "not a url", "https://github.com/only"])
    def test_invalid_urls(self, url):
        with pytest.raises(RepositoryFetchError, match="Invalid GitHub URL format"):
            parse_repository_url(url)


class TestFetchRepository:
    """Metadata, file collection and manifest parsing."""

    @patch("dockgen.infra.github_client.requests.get")
    def test_fetch_collects_important_files(self, mock_get):
        manifest = {"name": "hello", "scripts": {"start": "node index.js"}, "dependencies": {"express": "^4"}}
        mock_get.side_effect = routed(
            {
                f"{API}/repos/octo/hello": response(
                    payload={"name": "hello", "full_name": "octo/hello", "language": "JavaScript"}
                ),
                f"{API}/repos/octo/hello/contents": response(
                    payload=[
                        {"type": "file", "name": "package.json", "path": "package.json",
                         "download_url": "https://raw/package.json"},
                        {"type": "file", "name": "logo.png", "path": "logo.png",
                         "download_url": "https://raw/logo.png"},
                        {"type": "dir", "name": "src", "path": "src"},
                    ]
                ),
                f"{API}/repos/octo/hello/contents/src": response(
                    payload=[
                        {"type": "file", "name": "app.js", "path": "src/app.js",
                         "download_url": "https://raw/src/app.js"},
                    ]
                ),
                "https://raw/package.json": response(text=json.dumps(manifest)),
                "https://raw/src/app.js": response(text="// app"),
            }
        )

        data = RepositoryProvider("tok").fetch_repository("https://github.com/octo/hello")

        assert data.full_name == "octo/hello"
        assert {f.path for f in data.files} == {"package.json", "src/app.js"}
        assert data.package_json == manifest
        assert data.dependencies == ["express"]
        assert data.scripts == {"start": "node index.js"}

    @patch("dockgen.infra.github_client.requests.get")
    def test_sends_token_header(self, mock_get):
        mock_get.return_value = response(404)
        with pytest.raises(RepositoryFetchError):
            RepositoryProvider("secret-token").fetch_repository("https://github.com/octo/hello")

        headers = mock_get.call_args.kwargs["headers"]
        assert headers["Authorization"] == "token secret-token"

    @patch("dockgen.infra.github_client.requests.get")
    def test_not_found(self, mock_get):
        mock_get.return_value = response(404)
        with pytest.raises(RepositoryFetchError, match="not found or access denied"):
            RepositoryProvider("tok").fetch_repository("https://github.com/octo/missing")

    @patch("dockgen.infra.github_client.requests.get")
    def test_bad_token(self, mock_get):
        mock_get.return_value = response(401)
        with pytest.raises(RepositoryFetchError, match="Invalid GitHub token"):
            RepositoryProvider("tok").fetch_repository("https://github.com/octo/hello")

    @patch("dockgen.infra.github_client.requests.get")
    def test_transport_error_redacts_token(self, mock_get):
        mock_get.side_effect = requests.ConnectionError("failed for token s3cr3t")
        with pytest.raises(RepositoryFetchError) as exc_info:
            RepositoryProvider("s3cr3t").fetch_repository("https://github.com/octo/hello")

        assert "s3cr3t" not in str(exc_info.value)
        assert "[REDACTED]" in str(exc_info.value)

    @patch("dockgen.infra.github_client.requests.get")
    def test_unreadable_manifest_ignored(self, mock_get):
        mock_get.side_effect = routed(
            {
                f"{API}/repos/octo/hello": response(payload={"name": "hello"}),
                f"{API}/repos/octo/hello/contents": response(
                    payload=[{"type": "file", "name": "package.json", "path": "package.json",
                              "download_url": "https://raw/package.json"}]
                ),
                "https://raw/package.json": response(text="{not json"),
            }
        )

        data = RepositoryProvider("tok").fetch_repository("https://github.com/octo/hello")

        assert data.package_json is None
        assert len(data.files) == 1


class TestFallbackRepositoryData:
    def test_express_descriptor(self):
        data = RepositoryProvider("tok").fallback_repository_data("https://github.com/octo/hello")
        assert data.name == "hello"
        assert data.dependencies == ["express"]
        assert data.package_json["scripts"]["start"] == "node index.js"

    def test_invalid_url_still_returns_data(self):
        data = RepositoryProvider("tok").fallback_repository_data("nonsense")
        assert data.full_name == "unknown/app"


class TestCommitDockerfile:
    URL = f"{API}/repos/octo/hello/contents/Dockerfile"

    @patch("dockgen.infra.github_client.requests.put")
    @patch("dockgen.infra.github_client.requests.get")
    def test_creates_file(self, mock_get, mock_put):
        mock_get.return_value = response(404)
        mock_put.return_value = response(201)

        ok = RepositoryProvider("tok").commit_dockerfile("https://github.com/octo/hello", "FROM node:18\n")

        assert ok is True
        payload = mock_put.call_args.kwargs["json"]
        assert mock_put.call_args.args[0] == self.URL
        assert base64.b64decode(payload["content"]).decode() == "FROM node:18\n"
        assert "sha" not in payload

    @patch("dockgen.infra.github_client.requests.put")
    @patch("dockgen.infra.github_client.requests.get")
    def test_updates_existing_file_with_sha(self, mock_get, mock_put):
        mock_get.return_value = response(payload={"sha": "abc"})
        mock_put.return_value = response(200)

        RepositoryProvider("tok").commit_dockerfile("https://github.com/octo/hello", "FROM x\n")

        assert mock_put.call_args.kwargs["json"]["sha"] == "abc"

    @patch("dockgen.infra.github_client.requests.put")
    @patch("dockgen.infra.github_client.requests.get")
    def test_permission_denied(self, mock_get, mock_put):
        mock_get.return_value = response(404)
        mock_put.return_value = response(403)

        with pytest.raises(CommitError, match="write permissions"):
            RepositoryProvider("tok").commit_dockerfile("https://github.com/octo/hello", "FROM x\n")

    @patch("dockgen.infra.github_client.requests.put")
    @patch("dockgen.infra.github_client.requests.get")
    def test_other_rejection_returns_false(self, mock_get, mock_put):
        mock_get.return_value = response(404)
        mock_put.return_value = response(422)

        assert RepositoryProvider("tok").commit_dockerfile("https://github.com/octo/hello", "x") is False
