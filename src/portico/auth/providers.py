"""Provider interfaces and the normalized user profile.

A provider knows how to start an authorization handshake, rebuild its
session state from the opaque string kept in the session store, and fetch
the user once it holds valid credentials. Orchestration lives in
portico.auth.orchestrator; providers never touch the session store.
"""

from abc import ABC, abstractmethod
from collections.abc import Mapping
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from portico.errors import SessionDecodeError


class User(BaseModel):
    """Authenticated user returned by a completed callback.

    Providers map their profile payload to this common model.
    """

    model_config = ConfigDict(frozen=True)

    provider: str = Field(description="Provider name")
    user_id: str = Field(description="Provider-scoped user identifier")
    email: str | None = Field(default=None, description="User email")
    name: str | None = Field(default=None, description="User display name")
    first_name: str | None = Field(default=None)
    last_name: str | None = Field(default=None)
    nick_name: str | None = Field(default=None, description="Login or handle")
    description: str | None = Field(default=None)
    avatar_url: str | None = Field(default=None)
    location: str | None = Field(default=None)
    access_token: str | None = Field(default=None)
    access_token_secret: str | None = Field(default=None)
    refresh_token: str | None = Field(default=None)
    expires_at: datetime | None = Field(default=None)
    id_token: str | None = Field(default=None)
    raw_data: dict[str, Any] = Field(
        default_factory=dict,
        description="Provider-specific profile payload",
    )


class ProviderSession(ABC):
    """Provider-specific state of one authorization handshake."""

    @abstractmethod
    def get_auth_url(self) -> str:
        """Return the authorization URL this session was created with.

        Raises:
            ValueError: No authorization URL has been set
        """

    @abstractmethod
    def marshal(self) -> str:
        """Serialize the session to an opaque string.

        Provider.unmarshal_session must accept the result and produce an
        equal session.
        """

    @abstractmethod
    async def authorize(self, provider: "Provider", params: Mapping[str, str]) -> str:
        """Exchange callback parameters for credentials.

        Updates the session in place.

        Args:
            provider: Provider that created this session
            params: Callback query or form parameters

        Returns:
            New access token
        """


class Provider(ABC):
    """Abstract identity provider client."""

    name: str

    @abstractmethod
    async def begin_auth(self, state: str) -> ProviderSession:
        """Start a handshake bound to the given state token."""

    @abstractmethod
    def unmarshal_session(self, data: str) -> ProviderSession:
        """Rebuild a session from ProviderSession.marshal() output.

        Raises:
            SessionDecodeError: Data is malformed
        """

    @abstractmethod
    async def fetch_user(self, session: ProviderSession) -> User:
        """Fetch the user profile with the session's credentials.

        Raises:
            UserFetchError: Session holds no usable credentials or the
                provider refused the request
        """

    def get_provider_name(self) -> str:
        return self.name


class BaseSession(BaseModel, ProviderSession):
    """Pydantic session shared by the bundled providers.

    Marshals to JSON. Equality is field equality, so a marshal/unmarshal
    round-trip yields an equal session.
    """

    auth_url: str = ""
    access_token: str | None = None
    refresh_token: str | None = None
    token_type: str | None = None
    expires_at: datetime | None = None
    id_token: str | None = None
    scope: str | None = None

    def get_auth_url(self) -> str:
        if not self.auth_url:
            raise ValueError("an AuthURL has not been set")
        return self.auth_url

    def marshal(self) -> str:
        return self.model_dump_json()

    @classmethod
    def unmarshal(cls, data: str) -> "BaseSession":
        try:
            return cls.model_validate_json(data)
        except ValidationError as e:
            raise SessionDecodeError(f"invalid session data: {e.error_count()} error(s)") from e

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at is not None and self.expires_at <= now
