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
# CONFIGURATION
# -----------------------------------------------------------------------------
# Responsibility: Resolve process-wide settings once at startup.
#
# Resolution order: defaults -> dockgen.yaml (optional) -> environment.
# The resulting Settings object is injected into the Foundry; nothing in the
# build pipeline mutates it afterwards.
# -----------------------------------------------------------------------------

import os
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, ValidationError
from rich.console import Console

console = Console()

CONFIG_PATH = Path(os.getenv("DOCKGEN_CONFIG", "dockgen.yaml"))

# Environment variable -> Settings field
ENV_OVERRIDES = {
    "DOCKGEN_BUILD_ROOT": "build_root",
    "DOCKGEN_IMAGE_PREFIX": "image_prefix",
    "DOCKGEN_BUILD_TIMEOUT": "build_timeout_seconds",
    "DOCKGEN_DOCKER_BINARY": "docker_binary",
    "DOCKGEN_NO_CACHE": "no_cache",
    "GITHUB_API_URL": "github_api_url",
    "DOCKGEN_COMMIT_DOCKERFILE": "commit_dockerfile",
    "PORT": "port",
}


class ConfigError(Exception):
    """Raised when the configuration file or environment holds invalid values."""

    pass


class Settings(BaseModel):
    """
    Process-wide settings for the build pipeline and API.

    build_root is the parent of every per-attempt workspace. Isolation between
    attempts comes from unique subdirectory names, not from this value.
    """

    build_root: Path = Field(default_factory=lambda: Path.cwd() / "temp")
    image_prefix: str = Field("dockgen-ai", min_length=1, pattern=r"^[a-z0-9][a-z0-9._-]*$")
    build_timeout_seconds: int = Field(300, gt=0)
    docker_binary: str = Field("docker", min_length=1)
    no_cache: bool = True
    github_api_url: str = "https://api.github.com"
    commit_dockerfile: bool = False
    port: int = Field(3001, gt=0, lt=65536)

    def image_tag(self, build_id: str) -> str:
        """Tag every artifact of this system: <prefix>-<build_id>:latest."""
        return f"{self.image_prefix}-{build_id}:latest"


def _read_file(path: Path) -> dict:
    """Load raw settings from YAML, or {} if the file does not exist."""
    if not path.exists():
        console.print(f"[yellow][CONFIG] {path} not found, using defaults[/yellow]")
        return {}

    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")
    return data


def _read_env() -> dict:
    """Collect overrides from the environment (empty values are ignored)."""
    values = {}
    for env_name, field in ENV_OVERRIDES.items():
        raw = os.getenv(env_name)
        if raw:
            values[field] = raw
    return values


def load_settings(path: Path | None = None) -> Settings:
    """
    Build Settings from defaults, the optional YAML file and the environment.

    Args:
        path: Config file location. Defaults to DOCKGEN_CONFIG or ./dockgen.yaml.

    Returns:
        Validated Settings.

    Raises:
        ConfigError: If any value fails validation.
    """
    data = _read_file(path or CONFIG_PATH)
    data.update(_read_env())

    try:
        settings = Settings(**data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e

    console.print(
        f"[green][CONFIG] Build root: {settings.build_root} "
        f"(timeout: {settings.build_timeout_seconds}s, prefix: {settings.image_prefix})[/green]"
    )
    return settings
