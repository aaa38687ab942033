"""Liveness and auth configuration endpoints.

Unauthenticated; used by load balancers and for checking provider setup.
"""

from fastapi import APIRouter, Request
from pydantic import BaseModel, Field

from portico.version import __version__

router = APIRouter(tags=["Health"])


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(description='Always "ok" while the process serves requests')
    version: str = Field(description="Application version")


class StatusResponse(BaseModel):
    """Configuration status response."""

    status: str = Field(description='"ok", or "degraded" with no provider registered')
    version: str = Field(description="Application version")
    providers: list[str] = Field(description="Registered provider names")
    session_backend: str = Field(description="Auth attempt storage backend")


@router.get("/health")
async def health() -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(status="ok", version=__version__)


@router.get("/status")
async def status(request: Request) -> StatusResponse:
    """Registered providers and session backend.

    Status is "degraded" when no provider is registered.
    """
    registry = request.app.state.orchestrator.config.registry
    return StatusResponse(
        status="ok" if len(registry) else "degraded",
        version=__version__,
        providers=registry.names(),
        session_backend=request.app.state.settings.session.backend,
    )
