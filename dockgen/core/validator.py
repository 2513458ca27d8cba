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
# THE GATEKEEPER - DOCKERFILE VALIDATOR
# -----------------------------------------------------------------------------
# Responsibility: Static analysis of untrusted Dockerfile text before any
# workspace is created or any builder is invoked.
#
# Errors block the primary build (the Foundry switches to the fallback).
# Warnings and suggestions are advisory only.
#
# Pure: no I/O, no logging, never raises for malformed input.
# -----------------------------------------------------------------------------

import json
import re
from dataclasses import dataclass

from dockgen.domain.models import ValidationVerdict

KNOWN_INSTRUCTIONS = frozenset(
    {
        "FROM", "RUN", "CMD", "LABEL", "MAINTAINER", "EXPOSE", "ENV", "ADD",
        "COPY", "ENTRYPOINT", "VOLUME", "USER", "WORKDIR", "ARG", "ONBUILD",
        "STOPSIGNAL", "HEALTHCHECK", "SHELL",
    }
)

# Instructions whose arguments may be written in exec (JSON array) form
EXEC_FORM_INSTRUCTIONS = frozenset({"RUN", "CMD", "ENTRYPOINT", "SHELL"})

PORT_PATTERN = re.compile(r"^(\d+)(?:-(\d+))?(?:/(tcp|udp|sctp))?$", re.IGNORECASE)
ARCHIVE_SUFFIXES = (".tar", ".tar.gz", ".tgz", ".tar.bz2", ".tar.xz")


class ValidationFailure(Exception):
    """Raised by callers that need to carry a rejected verdict as an error."""

    def __init__(self, verdict: ValidationVerdict) -> None:
        super().__init__("Dockerfile validation failed: " + "; ".join(verdict.errors))
        self.verdict = verdict


@dataclass
class Instruction:
    """One logical Dockerfile instruction (continuations already joined)."""

    line: int
    keyword: str
    args: str


class DockerfileValidator:
    """
    Static Dockerfile checker.

    Generated build files are untrusted; anything obviously broken is
    rejected here, before docker build ever sees it.
    """

    def validate(self, text: str) -> ValidationVerdict:
        """
        Validate Dockerfile text.

        Args:
            text: The candidate Dockerfile content.

        Returns:
            ValidationVerdict. is_valid is False iff errors is non-empty.
        """
        errors: list[str] = []
        warnings: list[str] = []
        suggestions: list[str] = []

        if not isinstance(text, str) or not text.strip():
            return ValidationVerdict(is_valid=False, errors=["Dockerfile is empty"])

        instructions = self._parse(text, errors)

        # Rule 1: Structure (FROM first, a start command present)
        self._check_structure(instructions, errors, warnings)

        # Rule 2: Per-instruction syntax
        for instruction in instructions:
            if instruction.keyword == "EXPOSE":
                self._check_expose(instruction, errors)
            if instruction.keyword in EXEC_FORM_INSTRUCTIONS:
                self._check_exec_form(instruction, errors)

        # Rule 3: Anti-patterns
        self._check_base_image(instructions, warnings)
        self._check_run_steps(instructions, warnings, suggestions)
        self._check_best_practices(instructions, warnings, suggestions)

        return ValidationVerdict(
            is_valid=not errors,
            errors=errors,
            warnings=warnings,
            suggestions=suggestions,
        )

    def _parse(self, text: str, errors: list[str]) -> list[Instruction]:
        """Join continuation lines, drop comments, and tokenize instructions."""
        instructions: list[Instruction] = []
        buffer: list[str] = []
        start_line = 0

        for number, raw in enumerate(text.splitlines(), start=1):
            stripped = raw.strip()

            if not buffer:
                if not stripped or stripped.startswith("#"):
                    continue
                start_line = number
            elif stripped.startswith("#"):
                # Comment lines inside a continuation are ignored by Docker
                continue

            if stripped.endswith("\\"):
                buffer.append(stripped[:-1].strip())
                continue

            buffer.append(stripped)
            logical = " ".join(part for part in buffer if part)
            buffer = []
            self._tokenize(logical, start_line, instructions, errors)

        if buffer:
            errors.append(f"Line {start_line}: line continuation at end of file")
            logical = " ".join(part for part in buffer if part)
            if logical:
                self._tokenize(logical, start_line, instructions, errors)

        return instructions

    def _tokenize(
        self, logical: str, line: int, instructions: list[Instruction], errors: list[str]
    ) -> None:
        if logical.startswith("```"):
            errors.append(f"Line {line}: markdown code fence found in Dockerfile")
            return

        parts = logical.split(None, 1)
        keyword = parts[0].upper()
        args = parts[1].strip() if len(parts) > 1 else ""

        if keyword not in KNOWN_INSTRUCTIONS:
            errors.append(f"Line {line}: unknown instruction '{parts[0]}'")
            return

        if not args:
            errors.append(f"Line {line}: {keyword} requires at least one argument")
            return

        instructions.append(Instruction(line=line, keyword=keyword, args=args))

    def _check_structure(
        self, instructions: list[Instruction], errors: list[str], warnings: list[str]
    ) -> None:
        keywords = [i.keyword for i in instructions]

        if "FROM" not in keywords:
            errors.append("Missing FROM instruction (base image)")
        else:
            first = next(i for i in instructions if i.keyword != "ARG")
            if first.keyword != "FROM":
                errors.append(
                    f"Line {first.line}: {first.keyword} appears before FROM; "
                    "only ARG may precede the first FROM"
                )

        if "CMD" not in keywords and "ENTRYPOINT" not in keywords:
            errors.append("Missing CMD or ENTRYPOINT instruction (start command)")

        if keywords.count("CMD") > 1:
            warnings.append("Multiple CMD instructions found; only the last one takes effect")

    def _check_expose(self, instruction: Instruction, errors: list[str]) -> None:
        """EXPOSE takes numeric ports; a variable here usually means a generator mistake."""
        for token in instruction.args.split():
            if "$" in token:
                errors.append(
                    f"Line {instruction.line}: EXPOSE uses environment variable '{token}'; "
                    "use a numeric port (e.g. EXPOSE 3000)"
                )
                continue

            match = PORT_PATTERN.match(token)
            if not match:
                errors.append(f"Line {instruction.line}: invalid port '{token}' in EXPOSE")
                continue

            ports = [int(p) for p in match.group(1, 2) if p]
            if any(p < 1 or p > 65535 for p in ports):
                errors.append(f"Line {instruction.line}: port out of range in EXPOSE '{token}'")

    def _check_exec_form(self, instruction: Instruction, errors: list[str]) -> None:
        if not instruction.args.startswith("["):
            return

        try:
            value = json.loads(instruction.args)
        except json.JSONDecodeError:
            errors.append(
                f"Line {instruction.line}: {instruction.keyword} exec form is not a valid JSON array"
            )
            return

        if not isinstance(value, list) or not value or not all(isinstance(v, str) for v in value):
            errors.append(
                f"Line {instruction.line}: {instruction.keyword} exec form must be "
                "a non-empty JSON array of strings"
            )

    def _check_base_image(self, instructions: list[Instruction], warnings: list[str]) -> None:
        for instruction in instructions:
            if instruction.keyword != "FROM":
                continue

            tokens = [t for t in instruction.args.split() if not t.startswith("--")]
            if not tokens:
                continue
            image = tokens[0]

            if image.lower() == "scratch" or "$" in image or "@" in image:
                continue

            name = image.rsplit("/", 1)[-1]
            if ":" not in name:
                warnings.append(
                    f"Line {instruction.line}: base image '{image}' has no tag (implies :latest); "
                    "pin a version"
                )
            elif name.endswith(":latest"):
                warnings.append(
                    f"Line {instruction.line}: base image '{image}' uses :latest; pin a version"
                )

    def _check_run_steps(
        self, instructions: list[Instruction], warnings: list[str], suggestions: list[str]
    ) -> None:
        for instruction in instructions:
            if instruction.keyword != "RUN":
                continue
            command = instruction.args

            if re.search(r"\bapt-get\s+install\b", command) and not re.search(
                r"(\s-y\b|--yes\b|--assume-yes\b|\s-\w*y)", command
            ):
                warnings.append(
                    f"Line {instruction.line}: apt-get install without -y will hang on prompts"
                )

            if re.search(r"\bsudo\b", command):
                warnings.append(f"Line {instruction.line}: avoid sudo inside RUN")

            if re.match(r"cd\s", command):
                warnings.append(f"Line {instruction.line}: use WORKDIR instead of 'cd' in RUN")

            if re.search(r"\bapt-get\s+update\b", command) and "/var/lib/apt/lists" not in command:
                suggestions.append(
                    f"Line {instruction.line}: clean /var/lib/apt/lists after apt-get to shrink the image"
                )

            if re.search(r"\bnpm\s+install\b", command):
                suggestions.append(
                    f"Line {instruction.line}: consider 'npm ci' for reproducible installs"
                )

    def _check_best_practices(
        self, instructions: list[Instruction], warnings: list[str], suggestions: list[str]
    ) -> None:
        keywords = {i.keyword for i in instructions}

        for instruction in instructions:
            if instruction.keyword == "MAINTAINER":
                warnings.append(
                    f"Line {instruction.line}: MAINTAINER is deprecated; use LABEL maintainer=..."
                )
            elif instruction.keyword == "ADD":
                sources = instruction.args.split()[:-1]
                if sources and not any(
                    s.startswith(("http://", "https://", "git@")) or s.endswith(ARCHIVE_SUFFIXES)
                    for s in sources
                ):
                    warnings.append(
                        f"Line {instruction.line}: prefer COPY over ADD for local files"
                    )

        if "EXPOSE" not in keywords:
            suggestions.append("No EXPOSE instruction; document the port the app listens on")
        if "WORKDIR" not in keywords:
            suggestions.append("No WORKDIR instruction; set an explicit working directory")
        if "USER" not in keywords:
            suggestions.append("No USER instruction; the container will run as root")
        if "HEALTHCHECK" not in keywords:
            suggestions.append("No HEALTHCHECK instruction; consider adding one")
