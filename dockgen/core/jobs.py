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
# JOB STORE
# -----------------------------------------------------------------------------
# Responsibility: Track generation jobs for the lifetime of the process.
#
# Jobs are updated from build worker threads and read from the API, so every
# access goes through one lock. Records handed out are copies.
# -----------------------------------------------------------------------------

import threading
import uuid
from datetime import datetime, timezone

from rich.console import Console

from dockgen.domain.models import ProjectBuild

console = Console()


class JobNotFound(Exception):
    """Raised when a job id is unknown."""

    pass


class JobStore:
    """In-memory job registry."""

    def __init__(self) -> None:
        self._jobs: dict[str, ProjectBuild] = {}
        self._lock = threading.Lock()

    def create(self, repository_url: str) -> ProjectBuild:
        """
        Register a new job in the QUEUED state.

        Returns:
            The created record. Its id doubles as the image build id.
        """
        job = ProjectBuild(id=uuid.uuid4().hex[:12], repository_url=repository_url)
        with self._lock:
            self._jobs[job.id] = job
        console.print(f"[cyan][JOBS] Created job {job.id} for {repository_url}[/cyan]")
        return job.model_copy()

    def get(self, job_id: str) -> ProjectBuild | None:
        with self._lock:
            job = self._jobs.get(job_id)
            return job.model_copy() if job else None

    def update(self, job_id: str, **fields) -> ProjectBuild:
        """
        Update fields of a job and bump updated_at.

        Raises:
            JobNotFound: If job_id is unknown.
        """
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                raise JobNotFound(f"Job not found: {job_id}")

            data = job.model_dump()
            data.update(fields)
            data["updated_at"] = datetime.now(timezone.utc).isoformat()
            updated = ProjectBuild(**data)
            self._jobs[job_id] = updated
            return updated.model_copy()

    def list_jobs(self, limit: int = 20) -> list[ProjectBuild]:
        """Most recent jobs first."""
        with self._lock:
            jobs = sorted(self._jobs.values(), key=lambda j: j.created_at, reverse=True)
            return [j.model_copy() for j in jobs[:limit]]
