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
# DOCKER PROVIDER
# -----------------------------------------------------------------------------
# Responsibility: A thin wrapper around the Docker SDK with lazy connection
# and connection validation.
#
# This is part of the Infrastructure layer - the image registry queries go
# through it; the build itself is run through the docker CLI.
# -----------------------------------------------------------------------------

import os
import threading

import docker
from docker import DockerClient
from docker.errors import DockerException
from requests.exceptions import RequestException
from rich.console import Console

console = Console()

# docker-py surfaces transport failures as requests errors, not DockerException
DOCKER_ERRORS = (DockerException, RequestException)


class DockerProviderError(Exception):
    """Raised when the Docker daemon cannot be reached."""

    pass


class DockerProvider:
    """
    Lazily connected Docker SDK client.

    Connects via DOCKER_HOST when set (e.g. a socket proxy), otherwise from
    the local environment. The connection is opened on first use; the API
    starts even while the daemon is down.
    """

    def __init__(self, docker_host: str | None = None) -> None:
        self._docker_host = docker_host or os.getenv("DOCKER_HOST")
        self._client: DockerClient | None = None
        self._lock = threading.Lock()

    def _connect(self) -> DockerClient:
        """
        Establish connection to the Docker daemon.

        Raises:
            DockerProviderError: If the daemon does not answer a ping.
        """
        try:
            if self._docker_host:
                client = docker.DockerClient(base_url=self._docker_host)
            else:
                client = docker.from_env()
            client.ping()
        except DOCKER_ERRORS as e:
            console.print(f"[red][DOCKER] Engine unavailable: {e}[/red]")
            raise DockerProviderError(f"Docker Engine is not available: {e}") from e

        target = self._docker_host or "local socket"
        console.print(f"[green][DOCKER] Connected to Docker Engine ({target})[/green]")
        return client

    def get_client(self) -> DockerClient:
        """
        Get the Docker client, connecting or reconnecting as needed.

        Returns:
            Active DockerClient instance.

        Raises:
            DockerProviderError: If Docker is unreachable.
        """
        with self._lock:
            if self._client is not None:
                try:
                    self._client.ping()
                    return self._client
                except DOCKER_ERRORS as e:
                    console.print(f"[yellow][DOCKER] Connection lost, reconnecting: {e}[/yellow]")
                    self._client = None

            self._client = self._connect()
            return self._client

    def is_connected(self) -> bool:
        """
        Check if Docker is currently reachable.

        Returns:
            True if Docker is connected and responsive.
        """
        try:
            self.get_client()
            return True
        except DockerProviderError:
            return False
