"""Abstract auth-attempt storage interface.

Holds the marshaled provider session between the begin and the callback
request. Implementations:
- CookieSessionStore: compressed values inside the signed session cookie
- MemorySessionStore: server-side values keyed by a session id (dev/testing)
"""

from abc import ABC, abstractmethod

from starlette.requests import Request


class SessionStore(ABC):
    """Per-request key-value storage for in-flight auth attempts.

    Every operation is scoped to the browser session of the given request.
    Keys are provider names, values are opaque strings.
    """

    @abstractmethod
    async def get(self, request: Request, key: str) -> str | None:
        """Get the value stored under key.

        Returns:
            Value if found, None otherwise

        Raises:
            SessionDecodeError: Stored value is corrupt
        """

    @abstractmethod
    async def set(self, request: Request, key: str, value: str) -> None:
        """Store value under key, replacing any previous value."""

    @abstractmethod
    async def delete(self, request: Request) -> None:
        """Remove every auth attempt of this session.

        Idempotent: deleting an empty session is a no-op.
        """
