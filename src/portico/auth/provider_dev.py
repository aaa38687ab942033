"""Dev identity provider served by portico itself.

The authorization page lives at /oauth/dev/authorize (see
portico.api.routers.oauth_dev), so the full begin -> callback round trip can
run without network access or a registered OAuth app.
NOT FOR PRODUCTION - nobody is authenticated, every confirmation succeeds.
"""

import secrets
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

import httpx
import jwt as pyjwt
from loguru import logger

from portico.auth.jwt_simple import JWTManager
from portico.auth.providers import BaseSession, Provider, ProviderSession, User
from portico.errors import UserFetchError

DEV_CLIENT_ID = "portico-dev"
DEV_SCOPES = ["read", "write"]
AUTHORIZATION_TTL = timedelta(minutes=10)


@dataclass
class PendingAuthorization:
    """Authorization code waiting for the user's confirmation."""

    code: str
    redirect_uri: str
    state: str | None
    scopes: list[str]
    expires_at: datetime
    approved: bool = False

    def expired(self, now: datetime | None = None) -> bool:
        return (now or datetime.now(timezone.utc)) > self.expires_at


@dataclass
class DevToken:
    access_token: str
    expires_at: datetime
    scopes: list[str] = field(default_factory=list)


class DevSession(BaseSession):
    """Session of a dev provider handshake."""

    async def authorize(self, provider: Provider, params: Mapping[str, str]) -> str:
        if not isinstance(provider, DevProvider):
            raise TypeError(f"DevSession cannot be authorized by {type(provider).__name__}")

        code = params.get("code")
        if not code:
            raise ValueError("dev callback carried no authorization code")

        token = provider.redeem(code)
        if token is None:
            raise ValueError("invalid, unapproved or expired authorization code")

        self.access_token = token.access_token
        self.token_type = "Bearer"
        self.scope = " ".join(token.scopes)
        self.expires_at = token.expires_at
        return self.access_token


class DevProvider(Provider):
    """Click-to-confirm provider for local login flows.

    begin_auth points at the local confirmation page; confirming approves a
    single-use code that the callback redeems for a signed dev token.
    """

    name = "dev"

    def __init__(
        self,
        callback_url: str,
        base_url: str = "http://localhost:8000",
        jwt_manager: JWTManager | None = None,
        token_ttl: timedelta = timedelta(hours=1),
    ):
        """Initialize dev provider.

        Args:
            callback_url: Redirect URI the confirmation page sends the user to
            base_url: Base URL serving /oauth/dev/*
            jwt_manager: Token signer (defaults to an ephemeral keypair)
            token_ttl: Access token lifetime
        """
        self.callback_url = callback_url
        self.base_url = base_url.rstrip("/")
        self.jwt_manager = jwt_manager or JWTManager.ephemeral()
        self.token_ttl = token_ttl
        self._pending: dict[str, PendingAuthorization] = {}
        logger.warning("Dev provider initialized - NOT FOR PRODUCTION USE")

    async def begin_auth(self, state: str) -> DevSession:
        url = httpx.URL(
            f"{self.base_url}/oauth/dev/authorize",
            params={
                "client_id": DEV_CLIENT_ID,
                "redirect_uri": self.callback_url,
                "response_type": "code",
                "scope": " ".join(DEV_SCOPES),
                "state": state,
            },
        )
        return DevSession(auth_url=str(url))

    def unmarshal_session(self, data: str) -> DevSession:
        return DevSession.unmarshal(data)

    async def fetch_user(self, session: ProviderSession) -> User:
        if not isinstance(session, DevSession) or not session.access_token:
            raise UserFetchError(
                "dev cannot get user information without accessToken", provider=self.name
            )

        try:
            claims = self.jwt_manager.verify(session.access_token)
        except pyjwt.InvalidTokenError as e:
            raise UserFetchError(f"dev token rejected: {e}", provider=self.name) from e

        return User(
            provider=self.name,
            user_id=claims["sub"],
            email=claims.get("email"),
            name=claims.get("name"),
            nick_name=claims.get("preferred_username"),
            access_token=session.access_token,
            expires_at=session.expires_at,
            raw_data=claims,
        )

    # -----------------------------------------------------------------
    # Confirmation page support
    # -----------------------------------------------------------------

    def create_authorization(
        self,
        redirect_uri: str,
        state: str | None = None,
        scopes: list[str] | None = None,
    ) -> PendingAuthorization:
        """Register a code for the confirmation page to approve."""
        self._discard_expired()
        pending = PendingAuthorization(
            code=secrets.token_urlsafe(32),
            redirect_uri=redirect_uri,
            state=state,
            scopes=scopes or list(DEV_SCOPES),
            expires_at=datetime.now(timezone.utc) + AUTHORIZATION_TTL,
        )
        self._pending[pending.code] = pending
        logger.info(f"Created dev authorization: code={pending.code[:8]}...")
        return pending

    def approve_authorization(self, code: str) -> PendingAuthorization | None:
        """Mark a code approved.

        Returns:
            The approved authorization, or None if unknown or expired
        """
        pending = self._pending.get(code)
        if pending is None or pending.expired():
            self._pending.pop(code, None)
            return None

        pending.approved = True
        logger.info(f"Approved dev authorization: code={code[:8]}...")
        return pending

    def redeem(self, code: str) -> DevToken | None:
        """Exchange an approved code for a token. Codes are single-use."""
        pending = self._pending.pop(code, None)
        if pending is None or not pending.approved or pending.expired():
            return None

        access_token = self.jwt_manager.issue(
            "dev-user",
            self.token_ttl,
            email="dev@example.com",
            name="Dev User",
            preferred_username="dev",
            scope=pending.scopes,
        )
        logger.info("Issued dev access token")
        return DevToken(
            access_token=access_token,
            expires_at=datetime.now(timezone.utc) + self.token_ttl,
            scopes=pending.scopes,
        )

    def _discard_expired(self) -> None:
        now = datetime.now(timezone.utc)
        for code in [c for c, p in self._pending.items() if p.expired(now)]:
            del self._pending[code]
