"""Shared fixtures: ASGI request builder and an in-memory fake provider."""

from collections.abc import Mapping

import pytest
from starlette.requests import Request

from portico.auth import AuthConfig, AuthOrchestrator, CookieSessionStore, ProviderRegistry
from portico.auth.providers import BaseSession, Provider, ProviderSession, User
from portico.errors import UserFetchError

GITHUB_AUTH_URL = "https://github.com/login/oauth/authorize?state={state}&client_id=abc"


def make_request(
    method: str = "GET",
    path: str = "/",
    query: str = "",
    body: bytes = b"",
    path_params: dict[str, str] | None = None,
    session: dict | None = None,
    headers: dict[str, str] | None = None,
) -> Request:
    """Build a Starlette request with a session, as SessionMiddleware would."""
    raw_headers = [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()]
    if body:
        raw_headers.append((b"content-type", b"application/x-www-form-urlencoded"))
    scope = {
        "type": "http",
        "method": method,
        "path": path,
        "query_string": query.encode(),
        "headers": raw_headers,
        "path_params": path_params or {},
        "session": session if session is not None else {},
    }

    async def receive():
        return {"type": "http.request", "body": body, "more_body": False}

    return Request(scope, receive)


class FakeSession(BaseSession):
    """Session whose authorize() hands out 'fresh-token'."""

    async def authorize(self, provider: Provider, params: Mapping[str, str]) -> str:
        provider.authorize_calls.append(dict(params))
        if provider.authorize_error is not None:
            raise provider.authorize_error
        self.access_token = "fresh-token"
        return self.access_token


class FakeProvider(Provider):
    """Provider that accepts a fixed set of access tokens."""

    def __init__(
        self,
        name: str = "github",
        auth_url: str = GITHUB_AUTH_URL,
        user_id: str = "42",
        cached_token: str | None = None,
        valid_tokens: tuple[str, ...] = ("fresh-token",),
    ):
        self.name = name
        self.auth_url = auth_url
        self.user_id = user_id
        self.cached_token = cached_token
        self.valid_tokens = valid_tokens
        self.begin_states: list[str] = []
        self.authorize_calls: list[dict[str, str]] = []
        self.authorize_error: Exception | None = None
        self.fetch_calls = 0

    async def begin_auth(self, state: str) -> FakeSession:
        self.begin_states.append(state)
        return FakeSession(auth_url=self.auth_url.format(state=state), access_token=self.cached_token)

    def unmarshal_session(self, data: str) -> FakeSession:
        return FakeSession.unmarshal(data)

    async def fetch_user(self, session: ProviderSession) -> User:
        self.fetch_calls += 1
        if session.access_token not in self.valid_tokens:
            raise UserFetchError("token expired", provider=self.name)
        return User(provider=self.name, user_id=self.user_id, access_token=session.access_token)


@pytest.fixture
def provider():
    """Fake github provider."""
    return FakeProvider()


@pytest.fixture
def store():
    """Cookie session store."""
    return CookieSessionStore()


@pytest.fixture
def orchestrator(provider, store):
    """Orchestrator wired to the fake provider and cookie store."""
    return AuthOrchestrator(AuthConfig(registry=ProviderRegistry([provider]), session_store=store))
