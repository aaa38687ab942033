"""Cookie-backed auth-attempt storage.

Values live inside the signed session cookie managed by Starlette's
SessionMiddleware. Each value is gzip-compressed and base64-encoded to
stay under browser cookie size limits.
"""

import base64
import binascii
import gzip
import zlib

from starlette.requests import Request

from portico.auth.session_store import SessionStore
from portico.errors import SessionDecodeError


def compress(value: str) -> str:
    return base64.urlsafe_b64encode(gzip.compress(value.encode("utf-8"))).decode("ascii")


def decompress(value: str) -> str:
    try:
        return gzip.decompress(base64.urlsafe_b64decode(value.encode("ascii"))).decode("utf-8")
    except (binascii.Error, OSError, EOFError, UnicodeError, zlib.error) as e:
        raise SessionDecodeError("stored session value is not valid compressed data") from e


class CookieSessionStore(SessionStore):
    """Session store on top of request.session.

    Requires SessionMiddleware. All attempts of one browser session live
    under a single session key, so delete() clears them together.
    """

    def __init__(self, session_name: str = "_portico_auth"):
        """Initialize cookie session store.

        Args:
            session_name: Key inside request.session holding auth attempts
        """
        self.session_name = session_name

    async def get(self, request: Request, key: str) -> str | None:
        value = request.session.get(self.session_name, {}).get(key)
        if value is None:
            return None
        return decompress(value)

    async def set(self, request: Request, key: str, value: str) -> None:
        attempts = dict(request.session.get(self.session_name, {}))
        attempts[key] = compress(value)
        request.session[self.session_name] = attempts

    async def delete(self, request: Request) -> None:
        request.session.pop(self.session_name, None)
