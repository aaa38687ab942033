"""Third-party authentication for portico.

This module provides:
- Begin/complete orchestration of OAuth2 callbacks
- Anti-CSRF state tokens
- Pluggable provider registry and session stores
- FastAPI dependencies for completed callbacks

Supported providers:
- OAuth2: GitHub, Google, GitLab, Discord, or custom endpoints
- Dev: in-process click-to-confirm provider for testing
"""

from portico.auth.dependencies import CompletedUser, Orchestrator, get_orchestrator
from portico.auth.orchestrator import AuthConfig, AuthOrchestrator
from portico.auth.provider_registry import ProviderRegistry, build_registry
from portico.auth.providers import BaseSession, Provider, ProviderSession, User
from portico.auth.resolver import NameResolver, default_provider_name
from portico.auth.session_store import SessionStore
from portico.auth.session_store_cookie import CookieSessionStore
from portico.auth.session_store_factory import get_session_store
from portico.auth.session_store_memory import MemorySessionStore
from portico.auth.state import StateCodec

__all__ = [
    "AuthConfig",
    "AuthOrchestrator",
    "BaseSession",
    "CompletedUser",
    "CookieSessionStore",
    "MemorySessionStore",
    "NameResolver",
    "Orchestrator",
    "Provider",
    "ProviderRegistry",
    "ProviderSession",
    "SessionStore",
    "StateCodec",
    "User",
    "build_registry",
    "default_provider_name",
    "get_orchestrator",
    "get_session_store",
]
