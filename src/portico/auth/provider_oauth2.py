"""Generic OAuth2 authorization-code provider (GitHub, Google, GitLab, Discord, ...).

Uses authlib's httpx integration for the authorization URL and the token
exchange. portico never talks to token endpoints directly.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

import httpx
from authlib.integrations.httpx_client import AsyncOAuth2Client
from loguru import logger

from portico.auth.providers import BaseSession, Provider, ProviderSession, User
from portico.errors import UserFetchError
from portico.settings import ProviderSettings


@dataclass(frozen=True)
class ProfileMapping:
    """Profile payload keys for each User field (None = not provided)."""

    user_id: str = "id"
    email: str | None = "email"
    name: str | None = "name"
    first_name: str | None = None
    last_name: str | None = None
    nick_name: str | None = None
    description: str | None = None
    avatar_url: str | None = None
    location: str | None = None

    def to_user(self, provider: str, data: dict[str, Any], session: "OAuth2Session") -> User:
        def pick(key: str | None) -> str | None:
            if key is None or data.get(key) in (None, ""):
                return None
            return str(data[key])

        user_id = pick(self.user_id)
        if user_id is None:
            raise UserFetchError(
                f"{provider} profile has no '{self.user_id}' field", provider=provider
            )

        return User(
            provider=provider,
            user_id=user_id,
            email=pick(self.email),
            name=pick(self.name),
            first_name=pick(self.first_name),
            last_name=pick(self.last_name),
            nick_name=pick(self.nick_name),
            description=pick(self.description),
            avatar_url=pick(self.avatar_url),
            location=pick(self.location),
            access_token=session.access_token,
            refresh_token=session.refresh_token,
            expires_at=session.expires_at,
            id_token=session.id_token,
            raw_data=data,
        )


@dataclass(frozen=True)
class OAuth2Preset:
    """Endpoints, default scopes and profile mapping of a known provider."""

    authorize_url: str
    token_url: str
    profile_url: str
    scopes: list[str]
    mapping: ProfileMapping = field(default_factory=ProfileMapping)
    authorize_params: dict[str, str] = field(default_factory=dict)


PRESETS: dict[str, OAuth2Preset] = {
    "github": OAuth2Preset(
        authorize_url="https://github.com/login/oauth/authorize",
        token_url="https://github.com/login/oauth/access_token",
        profile_url="https://api.github.com/user",
        scopes=["read:user", "user:email"],
        mapping=ProfileMapping(
            nick_name="login",
            description="bio",
            avatar_url="avatar_url",
            location="location",
        ),
    ),
    "google": OAuth2Preset(
        authorize_url="https://accounts.google.com/o/oauth2/v2/auth",
        token_url="https://oauth2.googleapis.com/token",
        profile_url="https://openidconnect.googleapis.com/v1/userinfo",
        scopes=["openid", "email", "profile"],
        mapping=ProfileMapping(
            user_id="sub",
            first_name="given_name",
            last_name="family_name",
            avatar_url="picture",
        ),
        authorize_params={"access_type": "offline"},
    ),
    "gitlab": OAuth2Preset(
        authorize_url="https://gitlab.com/oauth/authorize",
        token_url="https://gitlab.com/oauth/token",
        profile_url="https://gitlab.com/api/v4/user",
        scopes=["read_user"],
        mapping=ProfileMapping(
            nick_name="username",
            description="bio",
            avatar_url="avatar_url",
            location="location",
        ),
    ),
    "discord": OAuth2Preset(
        authorize_url="https://discord.com/api/oauth2/authorize",
        token_url="https://discord.com/api/oauth2/token",
        profile_url="https://discord.com/api/users/@me",
        scopes=["identify", "email"],
        mapping=ProfileMapping(name="global_name", nick_name="username"),
    ),
}


class OAuth2Session(BaseSession):
    """Session of an OAuth2 authorization-code handshake."""

    async def authorize(self, provider: Provider, params: Mapping[str, str]) -> str:
        if not isinstance(provider, OAuth2Provider):
            raise TypeError(f"OAuth2Session cannot be authorized by {type(provider).__name__}")
        return await provider.exchange_code(self, params)


class OAuth2Provider(Provider):
    """OAuth2 authorization-code provider.

    Configuration:
    - PORTICO_PROVIDERS__<NAME>__CLIENT_ID
    - PORTICO_PROVIDERS__<NAME>__CLIENT_SECRET
    - PORTICO_PROVIDERS__<NAME>__PRESET (defaults to NAME)
    - endpoint and scope overrides (see ProviderSettings)

    Examples:
        >>> github = OAuth2Provider(
        ...     "github",
        ...     client_id="abc",
        ...     client_secret="s3cret",
        ...     callback_url="https://app.example.com/auth/github/callback",
        ...     preset=PRESETS["github"],
        ... )
    """

    def __init__(
        self,
        name: str,
        client_id: str,
        client_secret: str,
        callback_url: str,
        preset: OAuth2Preset,
        scopes: list[str] | None = None,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize OAuth2 provider.

        Args:
            name: Provider name used in routes and session keys
            client_id: OAuth client ID
            client_secret: OAuth client secret
            callback_url: Redirect URI registered with the provider
            preset: Endpoints and profile mapping
            scopes: Scopes to request (defaults to preset scopes)
            timeout: HTTP timeout in seconds
            transport: Optional httpx transport (testing)
        """
        if not client_id:
            raise ValueError(f"OAuth2 provider '{name}' requires a client_id")

        self.name = name
        self.client_id = client_id
        self.client_secret = client_secret
        self.callback_url = callback_url
        self.preset = preset
        self.scopes = scopes if scopes is not None else list(preset.scopes)
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(
        cls,
        name: str,
        provider_settings: ProviderSettings,
        callback_url: str,
    ) -> "OAuth2Provider":
        """Build a provider from settings, merging preset and overrides.

        Raises:
            ValueError: No preset found and endpoints incomplete
        """
        base = PRESETS.get(provider_settings.preset or name)
        authorize_url = provider_settings.authorize_url or (base.authorize_url if base else None)
        token_url = provider_settings.token_url or (base.token_url if base else None)
        profile_url = provider_settings.profile_url or (base.profile_url if base else None)

        if not (authorize_url and token_url and profile_url):
            raise ValueError(
                f"Provider '{name}' has no preset; set authorize_url, token_url and profile_url"
            )

        preset = OAuth2Preset(
            authorize_url=authorize_url,
            token_url=token_url,
            profile_url=profile_url,
            scopes=base.scopes if base else [],
            mapping=base.mapping if base else ProfileMapping(),
            authorize_params=base.authorize_params if base else {},
        )
        return cls(
            name=name,
            client_id=provider_settings.client_id,
            client_secret=provider_settings.client_secret,
            callback_url=callback_url,
            preset=preset,
            scopes=provider_settings.scopes,
        )

    def _client(self, token: dict[str, Any] | None = None) -> AsyncOAuth2Client:
        kwargs: dict[str, Any] = {"timeout": self.timeout}
        if self._transport is not None:
            kwargs["transport"] = self._transport
        return AsyncOAuth2Client(
            client_id=self.client_id,
            client_secret=self.client_secret,
            scope=" ".join(self.scopes),
            redirect_uri=self.callback_url,
            token=token,
            **kwargs,
        )

    async def begin_auth(self, state: str) -> OAuth2Session:
        async with self._client() as client:
            url, _ = client.create_authorization_url(
                self.preset.authorize_url,
                state=state,
                **self.preset.authorize_params,
            )
        return OAuth2Session(auth_url=url)

    def unmarshal_session(self, data: str) -> OAuth2Session:
        return OAuth2Session.unmarshal(data)

    async def exchange_code(self, session: OAuth2Session, params: Mapping[str, str]) -> str:
        """Exchange the authorization code for tokens.

        Args:
            session: Session to update in place
            params: Callback parameters (code, state, error, ...)

        Returns:
            Access token

        Raises:
            ValueError: Provider returned an error or no code
            authlib OAuthError / httpx.HTTPError: Token endpoint failure
        """
        if error := params.get("error"):
            description = params.get("error_description") or error
            raise ValueError(f"{self.name} returned an error: {description}")

        code = params.get("code")
        if not code:
            raise ValueError(f"{self.name} callback carried no authorization code")

        async with self._client() as client:
            token = await client.fetch_token(self.preset.token_url, code=code)

        access_token = token.get("access_token")
        if not access_token:
            raise ValueError(f"{self.name} token response has no access_token")

        expires_at = token.get("expires_at")
        session.access_token = access_token
        session.refresh_token = token.get("refresh_token")
        session.token_type = token.get("token_type")
        session.id_token = token.get("id_token")
        session.scope = token.get("scope")
        session.expires_at = (
            datetime.fromtimestamp(expires_at, tz=timezone.utc) if expires_at else None
        )
        logger.debug(f"Exchanged authorization code with {self.name}")
        return access_token

    async def fetch_user(self, session: ProviderSession) -> User:
        if not isinstance(session, OAuth2Session) or not session.access_token:
            raise UserFetchError(
                f"{self.name} cannot get user information without accessToken",
                provider=self.name,
            )
        if session.is_expired(datetime.now(timezone.utc)):
            raise UserFetchError(f"{self.name} access token expired", provider=self.name)

        token = {"access_token": session.access_token, "token_type": "Bearer"}
        async with self._client(token=token) as client:
            response = await client.get(
                self.preset.profile_url, headers={"Accept": "application/json"}
            )

        if response.status_code >= 400:
            raise UserFetchError(
                f"{self.name} responded with a {response.status_code} trying to fetch user information",
                provider=self.name,
            )

        return self.preset.mapping.to_user(self.name, response.json(), session)
