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
# THE FLEET MANAGER - GENERATION JOB ORCHESTRATOR
# -----------------------------------------------------------------------------
# Orchestrates one generation job end to end.
#
# Phases:
# - _phase_fetch: Repository contents (fallback descriptor on failure)
# - _phase_analyze: Stack detection + Dockerfile draft
# - _phase_build: Foundry pipeline (runs in a worker thread)
# - _phase_commit: Optional Dockerfile commit back to the repository
# -----------------------------------------------------------------------------

import asyncio
import traceback
from typing import Callable

from rich.console import Console

from dockgen.config import Settings
from dockgen.core.analyzer import (
    contains_invalid_syntax,
    detect_technologies,
    generate_dockerfile,
    sanitize_dockerfile,
)
from dockgen.core.foundry import Foundry, FoundryOutcome
from dockgen.core.jobs import JobStore
from dockgen.domain.models import ProcessingState, RepositoryData
from dockgen.infra.github_client import CommitError, RepositoryFetchError, RepositoryProvider

console = Console()


class GenerationManager:
    """
    The job orchestrator.

    Pipeline: URL -> JobStore -> fetch -> analyze -> Foundry -> JobStore
    Each job runs as its own asyncio task; the blocking build runs in a thread.
    """

    def __init__(
        self,
        settings: Settings,
        foundry: Foundry,
        store: JobStore,
        provider_factory: Callable[[str], RepositoryProvider] | None = None,
    ) -> None:
        self._settings = settings
        self._foundry = foundry
        self._store = store
        self._provider_factory = provider_factory or (
            lambda token: RepositoryProvider(token, settings.github_api_url)
        )
        # Strong references so running tasks are not garbage collected
        self._tasks: set[asyncio.Task] = set()

        console.print("[green][FLEET] Generation manager online[/green]")

    # =========================================================================
    # PUBLIC API
    # =========================================================================

    async def dispatch(self, repository_url: str, access_token: str) -> str:
        """
        Queue a generation job and spawn its task.

        Returns:
            The job id (also used as the image build id).
        """
        job = self._store.create(repository_url)
        console.print(f"[cyan][FLEET] Job queued: {job.id}[/cyan]")

        task = asyncio.create_task(self.run_job(job.id, repository_url, access_token))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

        return job.id

    async def run_job(self, job_id: str, repository_url: str, access_token: str) -> None:
        """
        Execute the complete job pipeline. Never raises.

        Flow: Fetch -> Analyze -> Build (with fallback) -> Commit
        """
        try:
            provider = self._provider_factory(access_token)

            repo_data = await self._phase_fetch(job_id, provider, repository_url)
            dockerfile = await self._phase_analyze(job_id, repo_data)
            outcome = await self._phase_build(job_id, dockerfile, repo_data)
            result = outcome.result

            if not result.success:
                self._store.update(
                    job_id,
                    processing_state=ProcessingState.FAILED,
                    failure_reason=result.error_message,
                )
                console.print(f"[red][Job {job_id}] FAILED: {result.error_message}[/red]")
                return

            if outcome.used_fallback:
                # Record the Dockerfile the image was built from; the draft is never committed
                self._store.update(job_id, generated_dockerfile=outcome.dockerfile)
                console.print(
                    f"[yellow][Job {job_id}] Built from the fallback Dockerfile; "
                    "nothing to commit[/yellow]"
                )
            else:
                await self._phase_commit(job_id, provider, repository_url, outcome.dockerfile)

            self._store.update(
                job_id,
                processing_state=ProcessingState.COMPLETED,
                container_image_id=result.artifact_id,
            )
            console.print(f"[green][Job {job_id}] COMPLETE: {result.artifact_id}[/green]")

        except Exception as e:
            console.print(f"[red][Job {job_id}] Critical error: {e}[/red]")
            console.print(f"[dim]{traceback.format_exc()}[/dim]")
            self._store.update(
                job_id,
                processing_state=ProcessingState.FAILED,
                failure_reason=f"Job aborted: {str(e)[:200]}",
            )

    # =========================================================================
    # PHASE 1: FETCH
    # =========================================================================

    async def _phase_fetch(
        self, job_id: str, provider: RepositoryProvider, repository_url: str
    ) -> RepositoryData:
        console.print(f"[cyan][Job {job_id}] Fetching repository...[/cyan]")
        self._store.update(job_id, processing_state=ProcessingState.ANALYZING)

        try:
            return await asyncio.to_thread(provider.fetch_repository, repository_url)
        except RepositoryFetchError as e:
            console.print(f"[yellow][Job {job_id}] Fetch failed ({e}); using fallback data[/yellow]")
            return provider.fallback_repository_data(repository_url)

    # =========================================================================
    # PHASE 2: ANALYZE
    # =========================================================================

    async def _phase_analyze(self, job_id: str, repo_data: RepositoryData) -> str:
        technologies = detect_technologies(repo_data)
        dockerfile = generate_dockerfile(repo_data, technologies)
        if contains_invalid_syntax(dockerfile):
            dockerfile = sanitize_dockerfile(dockerfile)

        self._store.update(
            job_id,
            detected_technologies=technologies,
            generated_dockerfile=dockerfile,
        )
        return dockerfile

    # =========================================================================
    # PHASE 3: BUILD
    # =========================================================================

    async def _phase_build(
        self, job_id: str, dockerfile: str, repo_data: RepositoryData
    ) -> FoundryOutcome:
        console.print(f"[cyan][Job {job_id}] Building image...[/cyan]")
        self._store.update(job_id, processing_state=ProcessingState.BUILDING)

        return await asyncio.to_thread(self._foundry.run, dockerfile, job_id, repo_data)

    # =========================================================================
    # PHASE 4: COMMIT
    # =========================================================================

    async def _phase_commit(
        self,
        job_id: str,
        provider: RepositoryProvider,
        repository_url: str,
        dockerfile: str,
    ) -> bool:
        """Commit the Dockerfile back if enabled. Failures never fail the job."""
        if not self._settings.commit_dockerfile:
            return False

        try:
            return await asyncio.to_thread(provider.commit_dockerfile, repository_url, dockerfile)
        except CommitError as e:
            console.print(f"[yellow][Job {job_id}] Commit skipped: {e}[/yellow]")
            return False
