"""portico API server - FastAPI application hosting the auth endpoints.

Running the Server
------------------

Development:
    PORTICO_DEV_PROVIDER_ENABLED=true uvicorn portico.api.main:app --reload

Configure real providers through the environment:
    PORTICO_PROVIDERS__GITHUB__CLIENT_ID=...
    PORTICO_PROVIDERS__GITHUB__CLIENT_SECRET=...

Endpoints
---------
- /auth/{provider}            : Begin authentication (307 to provider)
- /auth/{provider}/callback   : Provider callback (GET or form POST)
- /auth/begin?provider=...    : Begin, provider from query string
- /auth/callback?provider=... : Callback, provider from query string
- /auth/logout                : Clear in-flight auth attempts
- /oauth/dev/*                : Dev identity provider (when enabled)
- /health, /status            : Health and configuration
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.middleware.sessions import SessionMiddleware

from portico.api.routers.auth import router as auth_router
from portico.api.routers.health import router as health_router
from portico.api.routers.oauth_dev import router as oauth_dev_router
from portico.auth.orchestrator import AuthConfig, AuthOrchestrator
from portico.auth.provider_registry import build_registry
from portico.auth.session_store_factory import get_session_store
from portico.errors import AuthError, ErrorKind
from portico.settings import Settings, settings as default_settings
from portico.version import __version__

ERROR_STATUS: dict[ErrorKind, int] = {
    ErrorKind.PROVIDER_NOT_FOUND: 404,
    ErrorKind.PROVIDER_NAME_MISSING: 400,
    ErrorKind.NO_SESSION_DATA: 400,
    ErrorKind.SESSION_DECODE: 400,
    ErrorKind.STATE_MISMATCH: 403,
    ErrorKind.REAUTHORIZATION: 401,
    ErrorKind.SESSION_PERSIST: 500,
    ErrorKind.USER_FETCH: 502,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    providers = app.state.orchestrator.config.registry.names()
    logger.info(f"Starting portico API (providers: {', '.join(providers) or 'none'})")
    yield
    logger.info("Shutting down portico API")


async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
    """Map auth flow errors to JSON responses."""
    status_code = ERROR_STATUS.get(exc.kind, 400)
    log = logger.error if status_code >= 500 else logger.info
    log(f"Auth flow failed at {exc.step.value if exc.step else 'unknown'}: {exc.kind.value} ({exc.message})")
    return JSONResponse(status_code=status_code, content=exc.to_dict())


def create_app(settings: Settings | None = None, orchestrator: AuthOrchestrator | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Configuration (defaults to environment settings)
        orchestrator: Prebuilt orchestrator (defaults to one built from settings)
    """
    settings = settings or default_settings

    if orchestrator is None:
        orchestrator = AuthOrchestrator(
            AuthConfig(
                registry=build_registry(settings),
                session_store=get_session_store(settings.session),
                debug=settings.debug,
            )
        )

    app = FastAPI(
        title="portico",
        description="Third-party OAuth login for web applications",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.orchestrator = orchestrator

    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.session.secret_key,
        session_cookie=settings.session.cookie_name,
        max_age=settings.session.max_age,
        same_site=settings.session.same_site,
        https_only=settings.session.https_only,
    )
    app.add_exception_handler(AuthError, auth_error_handler)

    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(oauth_dev_router)

    return app


# Create application instance
app = create_app()


# Main entry point for uvicorn
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "portico.api.main:app",
        host=default_settings.api_host,
        port=default_settings.api_port,
        reload=True,
    )
