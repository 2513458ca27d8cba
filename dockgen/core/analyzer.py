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
# THE ANALYZER - STACK DETECTION & DOCKERFILE DRAFTING
# -----------------------------------------------------------------------------
# Responsibility: Infer the technology stack of a repository and draft a
# Dockerfile for it from fixed per-stack templates.
#
# Deterministic: no model calls. Output still goes through the validator
# before it is built, like any other candidate Dockerfile.
# -----------------------------------------------------------------------------

import re

from rich.console import Console

from dockgen.domain.models import RepositoryData

console = Console()

DEFAULT_PORT = 3000

# Marker file -> technology
FILE_MARKERS = {
    "requirements.txt": "Python",
    "pyproject.toml": "Python",
    "Pipfile": "Python",
    "setup.py": "Python",
    "go.mod": "Go",
    "Cargo.toml": "Rust",
    "pom.xml": "Java",
    "build.gradle": "Java",
    "Gemfile": "Ruby",
    "composer.json": "PHP",
    "yarn.lock": "Yarn",
    "tsconfig.json": "TypeScript",
    "docker-compose.yml": "Docker Compose",
}

# package.json dependency -> technology
PACKAGE_MARKERS = {
    "express": "Express",
    "react": "React",
    "next": "Next.js",
    "vue": "Vue",
    "@angular/core": "Angular",
    "svelte": "Svelte",
    "fastify": "Fastify",
    "koa": "Koa",
    "@nestjs/core": "NestJS",
    "typescript": "TypeScript",
    "mongoose": "MongoDB",
    "pg": "PostgreSQL",
    "redis": "Redis",
}

LANGUAGE_MARKERS = {
    "javascript": "Node.js",
    "typescript": "TypeScript",
    "python": "Python",
    "go": "Go",
    "rust": "Rust",
    "java": "Java",
    "ruby": "Ruby",
    "php": "PHP",
}

NODE_TEMPLATE = """FROM node:18-alpine

WORKDIR /app

COPY package*.json ./
{install}

COPY . .
{build}
ENV NODE_ENV=production
EXPOSE {port}

USER node

CMD {command}
"""

PYTHON_TEMPLATE = """FROM python:3.11-slim

WORKDIR /app

COPY requirements.txt ./
RUN pip install --no-cache-dir -r requirements.txt

COPY . .

EXPOSE {port}

CMD {command}
"""

GO_TEMPLATE = """FROM golang:1.22-alpine AS build

WORKDIR /src
COPY go.mod ./
RUN go mod download
COPY . .
RUN CGO_ENABLED=0 go build -o /out/app .

FROM alpine:3.19
WORKDIR /app
COPY --from=build /out/app ./app
EXPOSE {port}
CMD ["./app"]
"""

FENCE_PATTERN = re.compile(r"^```[\w-]*\s*$", re.MULTILINE)
ENV_EXPOSE_PATTERN = re.compile(r"^(\s*EXPOSE\s+)\$\{?\w+\}?(.*)$", re.MULTILINE | re.IGNORECASE)
INSTRUCTION_START = re.compile(r"^\s*(FROM|ARG|#\s*syntax=)", re.IGNORECASE | re.MULTILINE)


def detect_technologies(repo_data: RepositoryData) -> list[str]:
    """
    Infer the technologies used by a repository.

    Args:
        repo_data: Fetched repository descriptor.

    Returns:
        Ordered, de-duplicated technology names. Never empty; defaults to Node.js.
    """
    found: list[str] = []

    def add(name: str) -> None:
        if name not in found:
            found.append(name)

    language = LANGUAGE_MARKERS.get((repo_data.language or "").lower())
    if language:
        add(language)

    names = repo_data.file_names()
    if "package.json" in names or repo_data.package_json is not None:
        add("Node.js")

    for marker, tech in FILE_MARKERS.items():
        if marker in names:
            add(tech)

    manifest = repo_data.package_json or {}
    declared = set(repo_data.dependencies) | set(repo_data.dev_dependencies)
    declared |= set(manifest.get("dependencies", {}) or {})
    declared |= set(manifest.get("devDependencies", {}) or {})
    for package, tech in PACKAGE_MARKERS.items():
        if package in declared:
            add(tech)

    if not found:
        add("Node.js")

    console.print(f"[cyan][ANALYZER] Detected: {', '.join(found)}[/cyan]")
    return found


def _primary_stack(technologies: list[str], repo_data: RepositoryData) -> str:
    names = repo_data.file_names()
    if "Node.js" in technologies or "package.json" in names:
        return "node"
    if "Python" in technologies and "requirements.txt" in names:
        return "python"
    if "Go" in technologies and "go.mod" in names:
        return "go"
    return "node"


def _python_command(repo_data: RepositoryData) -> str:
    names = repo_data.file_names()
    for entry in ("app.py", "main.py", "server.py"):
        if entry in names:
            return f'["python", "{entry}"]'
    return '["python", "app.py"]'


def generate_dockerfile(repo_data: RepositoryData, technologies: list[str]) -> str:
    """
    Draft a Dockerfile for the detected stack.

    Args:
        repo_data: Repository descriptor (scripts, files, manifest).
        technologies: Output of detect_technologies.

    Returns:
        Dockerfile text.
    """
    stack = _primary_stack(technologies, repo_data)
    console.print(f"[cyan][ANALYZER] Drafting Dockerfile for stack: {stack}[/cyan]")

    if stack == "python":
        return PYTHON_TEMPLATE.format(port=DEFAULT_PORT, command=_python_command(repo_data))
    if stack == "go":
        return GO_TEMPLATE.format(port=DEFAULT_PORT)

    scripts = dict(repo_data.scripts)
    if repo_data.package_json:
        scripts.update(repo_data.package_json.get("scripts", {}) or {})
    names = repo_data.file_names()

    if "yarn.lock" in names:
        install = "RUN yarn install --frozen-lockfile"
        run = "yarn"
    elif "package-lock.json" in names:
        install = "RUN npm ci"
        run = "npm"
    else:
        install = "RUN npm install"
        run = "npm"

    build = f"RUN {run} run build\n" if "build" in scripts else ""
    command = f'["{run}", "start"]' if "start" in scripts or not scripts else '["node", "index.js"]'

    return NODE_TEMPLATE.format(install=install, build=build, port=DEFAULT_PORT, command=command)


def contains_invalid_syntax(text: str) -> bool:
    """Quick check for the two mistakes generators make most: fences and EXPOSE $VAR."""
    return bool(FENCE_PATTERN.search(text) or ENV_EXPOSE_PATTERN.search(text))


def sanitize_dockerfile(text: str) -> str:
    """
    Clean generated Dockerfile text.

    - drops prose before the first FROM / ARG / syntax directive
    - removes markdown code fences
    - replaces EXPOSE $VAR with the default numeric port

    Returns:
        Cleaned text ending in a single newline.
    """
    start = INSTRUCTION_START.search(text)
    if start:
        text = text[start.start():]

    text = FENCE_PATTERN.sub("", text)
    text = ENV_EXPOSE_PATTERN.sub(rf"\g<1>{DEFAULT_PORT}\g<2>", text)

    return text.strip() + "\n"
