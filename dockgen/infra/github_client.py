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
# GITHUB INFRASTRUCTURE - Repository Contents API
# -----------------------------------------------------------------------------
# Responsibility: Fetch the files that matter for stack detection from a
# GitHub repository, and commit the generated Dockerfile back.
#
# Security:
# - Tokens are sent only in the Authorization header
# - Tokens are NEVER logged in plain text
# -----------------------------------------------------------------------------

import base64
import json
import re

import requests
from rich.console import Console

from dockgen.domain.models import RepoFile, RepositoryData

console = Console()

GITHUB_API_URL = "https://api.github.com"
REQUEST_TIMEOUT = 30

# Directory recursion limit (path segments)
MAX_DEPTH = 3

IMPORTANT_FILES = frozenset(
    {
        "package.json",
        "package-lock.json",
        "yarn.lock",
        "Dockerfile",
        "docker-compose.yml",
        "README.md",
        "index.js",
        "index.ts",
        "app.js",
        "app.ts",
        "server.js",
        "server.ts",
        "main.js",
        "main.ts",
        "requirements.txt",
        "pyproject.toml",
        "go.mod",
        "Cargo.toml",
        "Gemfile",
        "pom.xml",
    }
)
IMPORTANT_SUFFIXES = (".json", ".js", ".ts", ".py")

URL_PATTERN = re.compile(r"^(?:https?://)?(?:www\.)?github\.com/([^/\s]+)/([^/\s#?]+)")


class RepositoryFetchError(Exception):
    """Raised when repository metadata or contents cannot be fetched."""

    pass


class CommitError(Exception):
    """Raised when the Dockerfile cannot be committed back to the repository."""

    pass


def parse_repository_url(repository_url: str) -> tuple[str, str]:
    """
    Split a GitHub URL into (owner, repo).

    Raises:
        RepositoryFetchError: If the URL is not a github.com repository URL.
    """
    match = URL_PATTERN.match(repository_url.strip())
    if not match:
        raise RepositoryFetchError("Invalid GitHub URL format")

    owner, repo = match.group(1), match.group(2)
    if repo.endswith(".git"):
        repo = repo[: -len(".git")]
    if not owner or not repo:
        raise RepositoryFetchError("Invalid GitHub URL format")
    return owner, repo


class RepositoryProvider:
    """
    Read repository contents and write the generated Dockerfile via the
    GitHub REST API.
    """

    def __init__(self, token: str, api_url: str = GITHUB_API_URL) -> None:
        self._token = token
        self._api_url = api_url.rstrip("/")

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"token {self._token}",
            "Accept": "application/vnd.github.v3+json",
        }

    def _sanitize(self, text: str) -> str:
        """Remove the token from text before it is logged or raised."""
        if self._token and self._token in text:
            text = text.replace(self._token, "[REDACTED]")
        return text

    def _get(self, url: str) -> requests.Response:
        return requests.get(url, headers=self._headers(), timeout=REQUEST_TIMEOUT)

    def fetch_repository(self, repository_url: str) -> RepositoryData:
        """
        Fetch repository metadata and the files relevant for analysis.

        Args:
            repository_url: https://github.com/<owner>/<repo>

        Returns:
            RepositoryData with files and parsed package.json (if any).

        Raises:
            RepositoryFetchError: On invalid URL, 404, 401 or transport errors.
        """
        owner, repo = parse_repository_url(repository_url)
        console.print(f"[cyan][GITHUB API] Fetching repository: {owner}/{repo}[/cyan]")

        try:
            response = self._get(f"{self._api_url}/repos/{owner}/{repo}")
            self._raise_for_fetch(response)
            metadata = response.json()

            contents = self._get(f"{self._api_url}/repos/{owner}/{repo}/contents")
            self._raise_for_fetch(contents)
            files = self._collect_files(owner, repo, contents.json())

        except requests.RequestException as e:
            raise RepositoryFetchError(
                f"Failed to fetch repository: {self._sanitize(str(e))}"
            ) from e

        data = RepositoryData(
            name=metadata.get("name") or repo,
            full_name=metadata.get("full_name") or f"{owner}/{repo}",
            description=metadata.get("description") or "",
            language=metadata.get("language") or "JavaScript",
            default_branch=metadata.get("default_branch") or "main",
            files=files,
        )
        self._apply_package_json(data)

        console.print(
            f"[green][GITHUB API] Fetched {len(files)} files from {data.full_name}[/green]"
        )
        return data

    def _raise_for_fetch(self, response: requests.Response) -> None:
        if response.status_code == 200:
            return
        if response.status_code == 404:
            raise RepositoryFetchError("Repository not found or access denied")
        if response.status_code == 401:
            raise RepositoryFetchError("Invalid GitHub token")
        raise RepositoryFetchError(
            f"Failed to fetch repository: GitHub API error {response.status_code}"
        )

    def _collect_files(self, owner: str, repo: str, contents: list) -> list[RepoFile]:
        """Fetch important files, recursing into directories up to MAX_DEPTH."""
        files: list[RepoFile] = []

        for item in contents:
            item_type = item.get("type")
            name = item.get("name", "")
            path = item.get("path", name)

            if item_type == "file":
                if name not in IMPORTANT_FILES and not name.endswith(IMPORTANT_SUFFIXES):
                    continue
                download_url = item.get("download_url")
                if not download_url:
                    continue
                try:
                    response = self._get(download_url)
                    response.raise_for_status()
                except requests.RequestException as e:
                    console.print(
                        f"[yellow][GITHUB API] Failed to fetch file {name}: "
                        f"{self._sanitize(str(e))}[/yellow]"
                    )
                    continue
                files.append(RepoFile(name=name, path=path, content=response.text, type="file"))

            elif item_type == "dir" and len(path.split("/")) <= MAX_DEPTH:
                try:
                    response = self._get(f"{self._api_url}/repos/{owner}/{repo}/contents/{path}")
                    response.raise_for_status()
                except requests.RequestException as e:
                    console.print(
                        f"[yellow][GITHUB API] Failed to fetch directory {path}: "
                        f"{self._sanitize(str(e))}[/yellow]"
                    )
                    continue
                files.extend(self._collect_files(owner, repo, response.json()))

        return files

    def _apply_package_json(self, data: RepositoryData) -> None:
        """Parse the root package.json into dependencies and scripts."""
        manifest_file = next((f for f in data.files if f.path == "package.json"), None)
        if manifest_file is None:
            return

        try:
            manifest = json.loads(manifest_file.content)
        except json.JSONDecodeError as e:
            console.print(f"[yellow][GITHUB API] Failed to parse package.json: {e}[/yellow]")
            return
        if not isinstance(manifest, dict):
            return

        data.package_json = manifest
        data.dependencies = list((manifest.get("dependencies") or {}).keys())
        data.dev_dependencies = list((manifest.get("devDependencies") or {}).keys())
        data.scripts = dict(manifest.get("scripts") or {})

    def fallback_repository_data(self, repository_url: str) -> RepositoryData:
        """
        Minimal descriptor used when the repository cannot be fetched.

        Returns:
            RepositoryData describing a small Express application.
        """
        try:
            owner, repo = parse_repository_url(repository_url)
        except RepositoryFetchError:
            owner, repo = "unknown", "app"
        console.print(f"[yellow][GITHUB API] Using fallback repository data for {owner}/{repo}[/yellow]")

        manifest = {
            "name": repo,
            "version": "1.0.0",
            "description": "Generated application",
            "main": "index.js",
            "scripts": {"start": "node index.js", "dev": "node index.js"},
            "dependencies": {"express": "^4.18.0"},
            "devDependencies": {"nodemon": "^2.0.0"},
        }
        return RepositoryData(
            name=repo,
            full_name=f"{owner}/{repo}",
            description="Fallback repository data",
            language="JavaScript",
            default_branch="main",
            files=[
                RepoFile(name="package.json", path="package.json", content=json.dumps(manifest, indent=2)),
                RepoFile(name="index.js", path="index.js", content='console.log("Hello World");'),
            ],
            package_json=manifest,
            dependencies=["express"],
            dev_dependencies=["nodemon"],
            scripts=dict(manifest["scripts"]),
        )

    def commit_dockerfile(
        self,
        repository_url: str,
        dockerfile_text: str,
        message: str = "Add Dockerfile generated by DockGen AI",
        branch: str = "main",
    ) -> bool:
        """
        Create or update the Dockerfile at the repository root.

        Returns:
            True if GitHub accepted the commit.

        Raises:
            CommitError: On invalid URL, auth/permission errors or transport errors.
        """
        try:
            owner, repo = parse_repository_url(repository_url)
        except RepositoryFetchError as e:
            raise CommitError(str(e)) from e

        url = f"{self._api_url}/repos/{owner}/{repo}/contents/Dockerfile"
        payload = {
            "message": message,
            "content": base64.b64encode(dockerfile_text.encode("utf-8")).decode("ascii"),
            "branch": branch,
        }

        console.print(f"[cyan][GITHUB API] Committing Dockerfile to {owner}/{repo}@{branch}[/cyan]")

        try:
            existing = self._get(url)
            if existing.status_code == 200:
                payload["sha"] = existing.json().get("sha")

            response = requests.put(
                url, headers=self._headers(), json=payload, timeout=REQUEST_TIMEOUT
            )
        except requests.RequestException as e:
            raise CommitError(f"Failed to push Dockerfile: {self._sanitize(str(e))}") from e

        if response.status_code in (200, 201):
            console.print(f"[green][GITHUB API] Dockerfile committed to {owner}/{repo}[/green]")
            return True
        if response.status_code == 401:
            raise CommitError("Invalid GitHub token or insufficient permissions")
        if response.status_code == 403:
            raise CommitError("Repository access denied or token lacks write permissions")

        console.print(
            f"[yellow][GITHUB API] Commit rejected: {response.status_code}[/yellow]"
        )
        return False
