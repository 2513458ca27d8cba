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
# IMAGE REGISTRY - READ/DELETE QUERIES
# -----------------------------------------------------------------------------
# Responsibility: Inspect, list and delete images produced by this system.
#
# The only link between an image and this system is its name:
# <prefix>-<build_id>:latest. Every query returns an empty value on failure
# (None / [] / False) instead of raising.
# -----------------------------------------------------------------------------

from typing import Any

from rich.console import Console

from dockgen.infra.docker_client import DOCKER_ERRORS, DockerProvider, DockerProviderError

console = Console()

DEFAULT_PREFIX = "dockgen-ai"

REGISTRY_ERRORS = (*DOCKER_ERRORS, DockerProviderError)


class ImageRegistry:
    """Queries against the builder's local image store, scoped by name prefix."""

    def __init__(self, provider: DockerProvider, prefix: str = DEFAULT_PREFIX) -> None:
        self._provider = provider
        self._prefix = prefix

    @property
    def prefix(self) -> str:
        return self._prefix

    def tag_for(self, build_id: str) -> str:
        """Image tag for a build id."""
        return f"{self._prefix}-{build_id}:latest"

    def inspect(self, tag: str) -> dict[str, Any] | None:
        """
        Full image metadata (as `docker inspect` returns it).

        Returns:
            The attrs dict, or None if the image is missing or Docker is down.
        """
        try:
            image = self._provider.get_client().images.get(tag)
            return image.attrs
        except REGISTRY_ERRORS as e:
            console.print(f"[yellow][REGISTRY] Inspect failed for {tag}: {e}[/yellow]")
            return None

    def image_id(self, tag: str) -> str | None:
        """Short image id for a tag, or None if no such image exists."""
        try:
            image = self._provider.get_client().images.get(tag)
        except REGISTRY_ERRORS as e:
            console.print(f"[dim][REGISTRY] No image for {tag}: {e}[/dim]")
            return None
        return image.short_id or image.id or None

    def list_all(self) -> list[str]:
        """
        All repo:tag names belonging to this system.

        Returns:
            Sorted tags whose repository starts with the prefix, or [] on failure.
        """
        try:
            images = self._provider.get_client().images.list()
        except REGISTRY_ERRORS as e:
            console.print(f"[yellow][REGISTRY] Listing failed: {e}[/yellow]")
            return []

        tags = {
            tag
            for image in images
            for tag in (image.tags or [])
            if tag.startswith(f"{self._prefix}-")
        }
        return sorted(tags)

    def delete(self, tag: str) -> bool:
        """
        Remove an image by tag.

        Returns:
            True if Docker accepted the removal, False otherwise.
        """
        try:
            self._provider.get_client().images.remove(tag)
        except REGISTRY_ERRORS as e:
            console.print(f"[yellow][REGISTRY] Delete failed for {tag}: {e}[/yellow]")
            return False

        console.print(f"[green][REGISTRY] Deleted: {tag}[/green]")
        return True
