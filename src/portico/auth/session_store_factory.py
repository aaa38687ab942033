"""Factory for auth-attempt session stores.

Creates the SessionStore implementation selected by configuration.
"""

from loguru import logger

from portico.auth.session_store import SessionStore
from portico.auth.session_store_cookie import CookieSessionStore
from portico.auth.session_store_memory import MemorySessionStore
from portico.settings import SessionSettings


def get_session_store(session_settings: SessionSettings) -> SessionStore:
    """Create a session store.

    Returns:
        SessionStore implementation based on SESSION__BACKEND

    Raises:
        ValueError: If the backend is invalid
    """
    backend = session_settings.backend.lower()

    if backend == "cookie":
        logger.info("Initializing CookieSessionStore")
        return CookieSessionStore(session_name=session_settings.auth_session_name)

    if backend == "memory":
        logger.info("Initializing MemorySessionStore")
        return MemorySessionStore(ttl_seconds=session_settings.memory_ttl_seconds)

    raise ValueError(
        f"Invalid session store backend: {backend}. Valid options: cookie, memory"
    )
