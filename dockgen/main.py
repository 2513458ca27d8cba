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
# DOCKGEN - FASTAPI INTERFACE
# -----------------------------------------------------------------------------
# Endpoints:
# - GET    /health                    : Health check
# - POST   /api/generation            : Dispatch a generation job
# - GET    /api/generation            : Recent jobs
# - GET    /api/generation/{job_id}   : Job status
# - GET    /api/images                : Images built by this system
# - GET    /api/images/{tag}          : Inspect an image
# - DELETE /api/images/{tag}          : Delete an image
# - POST   /api/dockerfile/validate   : Static Dockerfile check
# -----------------------------------------------------------------------------

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException, Query, status
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field
from rich.console import Console
from rich.panel import Panel

from dockgen.config import Settings, load_settings
from dockgen.core.fleet import GenerationManager
from dockgen.core.foundry import Foundry
from dockgen.core.jobs import JobStore
from dockgen.domain.models import ProjectBuild, ValidationVerdict

PROJECT_ROOT = Path(__file__).parent.parent

load_dotenv(PROJECT_ROOT / ".env")

console = Console()

SERVICE_NAME = "DockGen AI Backend"
VERSION = "1.0.0"

# Lazily built collaborators (one per process)
_settings: Settings | None = None
_foundry: Foundry | None = None
_store: JobStore | None = None
_manager: GenerationManager | None = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings


def get_foundry() -> Foundry:
    global _foundry
    if _foundry is None:
        _foundry = Foundry(get_settings())
    return _foundry


def get_store() -> JobStore:
    global _store
    if _store is None:
        _store = JobStore()
    return _store


def get_manager() -> GenerationManager:
    global _manager
    if _manager is None:
        _manager = GenerationManager(get_settings(), get_foundry(), get_store())
    return _manager


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    print_banner()
    settings = get_settings()
    settings.build_root.mkdir(parents=True, exist_ok=True)

    if not get_foundry().is_docker_available():
        console.print("[yellow][API] docker CLI not available - builds will fail[/yellow]")

    console.print("[green]DOCKGEN ONLINE[/green]")

    yield

    console.print("[yellow]DOCKGEN SHUTTING DOWN[/yellow]")


app = FastAPI(
    title="DockGen AI",
    description="Dockerfile generation and image build service",
    version=VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Requested-With"],
)


# =============================================================================
# REQUEST/RESPONSE MODELS
# =============================================================================


class GenerationRequest(BaseModel):
    repository_url: str = Field(..., min_length=1)
    access_token: str = Field(..., min_length=1)


class GenerationResponse(BaseModel):
    id: str
    status: str


class ValidateRequest(BaseModel):
    dockerfile: str


class DeleteResponse(BaseModel):
    tag: str
    deleted: bool


# =============================================================================
# ENDPOINTS
# =============================================================================


@app.get("/health")
async def health_check():
    """Health check for load balancers."""
    return {
        "status": "OK",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "service": SERVICE_NAME,
    }


@app.post(
    "/api/generation",
    response_model=GenerationResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def create_generation(request: GenerationRequest):
    """Dispatch a generation job for a GitHub repository."""
    if not request.repository_url.strip().startswith(("https://github.com/", "github.com/")):
        raise HTTPException(status_code=400, detail="repository_url must be a GitHub URL")

    job_id = await get_manager().dispatch(request.repository_url.strip(), request.access_token)
    return GenerationResponse(id=job_id, status="queued")


@app.get("/api/generation")
async def list_generations(limit: int = Query(20, ge=1, le=100)):
    """List recent jobs."""
    jobs = get_store().list_jobs(limit=limit)
    return {"count": len(jobs), "jobs": [j.model_dump() for j in jobs]}


@app.get("/api/generation/{job_id}", response_model=ProjectBuild)
async def get_generation(job_id: str):
    """Get job status."""
    job = get_store().get(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail="Job not found")
    return job


@app.get("/api/images")
async def list_images():
    """List images built by this system."""
    images = get_foundry().registry.list_all()
    return {"count": len(images), "images": images}


@app.get("/api/images/{tag}")
async def inspect_image(tag: str):
    """Inspect an image by tag."""
    info = get_foundry().registry.inspect(tag)
    if info is None:
        raise HTTPException(status_code=404, detail="Image not found")
    return info


@app.delete("/api/images/{tag}", response_model=DeleteResponse)
async def delete_image(tag: str):
    """Delete an image by tag."""
    registry = get_foundry().registry
    if not tag.startswith(f"{registry.prefix}-"):
        raise HTTPException(status_code=400, detail="Only images built by DockGen can be deleted")
    return DeleteResponse(tag=tag, deleted=registry.delete(tag))


@app.post("/api/dockerfile/validate", response_model=ValidationVerdict)
async def validate_dockerfile(request: ValidateRequest):
    """Run the static Dockerfile check without building."""
    return get_foundry().validator.validate(request.dockerfile)


# =============================================================================
# BANNER
# =============================================================================


def print_banner() -> None:
    """Print the startup banner."""
    banner = f"""
    ╔═══════════════════════════════════════════════════╗
    ║              DOCKGEN AI v{VERSION:<25}║
    ║  • Stack detection + Dockerfile generation        ║
    ║  • Validated builds with fallback                 ║
    ╚═══════════════════════════════════════════════════╝
    """
    console.print(Panel(banner, border_style="cyan"))


# =============================================================================
# MAIN
# =============================================================================


def main() -> None:
    """Console entry point: run the API with uvicorn."""
    import uvicorn

    port = get_settings().port
    uvicorn.run(app, host="0.0.0.0", port=port)


if __name__ == "__main__":
    main()
