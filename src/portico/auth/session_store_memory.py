"""In-memory auth-attempt storage for development."""

import secrets
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from loguru import logger
from starlette.requests import Request

from portico.auth.session_store import SessionStore


@dataclass
class _Entry:
    created_at: datetime
    values: dict[str, str] = field(default_factory=dict)


class MemorySessionStore(SessionStore):
    """Server-side session store.

    Only a random session id travels in the cookie (request.session);
    values stay in process memory and expire after ttl_seconds.

    Warning:
        Not suitable for multi-process or distributed deployments.
    """

    def __init__(self, ttl_seconds: int = 600, sid_key: str = "_portico_sid"):
        """Initialize memory session store.

        Args:
            ttl_seconds: Lifetime of an auth attempt in seconds
            sid_key: Key inside request.session holding the session id
        """
        self._entries: dict[str, _Entry] = {}
        self._ttl = timedelta(seconds=ttl_seconds)
        self.sid_key = sid_key
        logger.info(f"MemorySessionStore initialized (ttl={ttl_seconds}s)")

    async def get(self, request: Request, key: str) -> str | None:
        self._cleanup_expired()
        sid = request.session.get(self.sid_key)
        entry = self._entries.get(sid) if sid else None
        if entry is None:
            return None
        return entry.values.get(key)

    async def set(self, request: Request, key: str, value: str) -> None:
        self._cleanup_expired()
        sid = request.session.get(self.sid_key)
        entry = self._entries.get(sid) if sid else None
        if entry is None:
            sid = secrets.token_urlsafe(32)
            entry = self._entries[sid] = _Entry(created_at=datetime.now(timezone.utc))
            request.session[self.sid_key] = sid
        entry.values[key] = value

    async def delete(self, request: Request) -> None:
        sid = request.session.pop(self.sid_key, None)
        if sid:
            self._entries.pop(sid, None)

    def __len__(self) -> int:
        return len(self._entries)

    def _cleanup_expired(self) -> None:
        now = datetime.now(timezone.utc)
        expired = [sid for sid, entry in self._entries.items() if now - entry.created_at > self._ttl]
        for sid in expired:
            del self._entries[sid]
