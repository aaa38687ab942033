"""portico - third-party OAuth login for FastAPI / Starlette applications."""

from portico.auth import (
    AuthConfig,
    AuthOrchestrator,
    CookieSessionStore,
    MemorySessionStore,
    Provider,
    ProviderRegistry,
    StateCodec,
    User,
)
from portico.errors import AuthError, ErrorKind, FlowStep
from portico.version import __version__

__all__ = [
    "AuthConfig",
    "AuthError",
    "AuthOrchestrator",
    "CookieSessionStore",
    "ErrorKind",
    "FlowStep",
    "MemorySessionStore",
    "Provider",
    "ProviderRegistry",
    "StateCodec",
    "User",
    "__version__",
]
