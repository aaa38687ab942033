"""Begin and complete third-party authentication.

The begin flow sends the user to the provider and remembers the marshaled
provider session. The complete flow reconciles the provider callback with
that session:

    resolve -> load -> unmarshal -> validate state -> fast fetch
        -> (on failure) recover params -> re-authorize -> persist -> final fetch

Every completion attempt ends with a logout of the stored auth attempt,
whatever the outcome.
"""

from collections.abc import AsyncIterator, Iterator, Mapping
from contextlib import asynccontextmanager, contextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from loguru import logger as default_logger
from starlette.requests import Request
from starlette.responses import RedirectResponse

from portico.auth.provider_registry import ProviderRegistry
from portico.auth.providers import Provider, ProviderSession, User
from portico.auth.resolver import NameResolver, default_provider_name
from portico.auth.session_store import SessionStore
from portico.auth.state import POST_METHOD, StateCodec
from portico.errors import (
    AuthError,
    FlowStep,
    NoSessionDataError,
    ReauthorizationError,
    SessionDecodeError,
    SessionPersistError,
    UserFetchError,
)

if TYPE_CHECKING:
    from loguru import Logger


@dataclass
class AuthConfig:
    """Collaborators and strategies of an AuthOrchestrator.

    Set once at startup; treated as read-only afterwards.
    """

    registry: ProviderRegistry
    session_store: SessionStore
    state_codec: StateCodec = field(default_factory=StateCodec)
    resolve_provider_name: NameResolver = default_provider_name
    debug: bool = False
    logger: "Logger | None" = None


class AuthOrchestrator:
    """Drives the begin-auth and complete-auth flows.

    Example:
        >>> orchestrator = AuthOrchestrator(
        ...     AuthConfig(registry=ProviderRegistry([github]), session_store=CookieSessionStore())
        ... )
        >>> @app.get("/auth/{provider}")
        ... async def begin(request: Request):
        ...     return await orchestrator.begin_auth(request)
    """

    def __init__(self, config: AuthConfig):
        self.config = config
        self.logger = config.logger or default_logger.bind(component="portico.auth")

    def _trace(self, message: str) -> None:
        if self.config.debug:
            self.logger.debug(message)

    # -----------------------------------------------------------------
    # Begin
    # -----------------------------------------------------------------

    async def get_auth_url(self, request: Request) -> str:
        """Start authentication and return the provider's authorization URL.

        Stores the marshaled provider session under the provider name.

        Raises:
            ProviderNameMissingError: No provider in the request
            ProviderNotFoundError: Provider not registered
            SessionPersistError: Session store write failed
        """
        provider_name, provider = self._resolve(request)

        self._trace("Beginning authentication process by setting state")
        state = self.config.state_codec.issue(request)
        with self._step(FlowStep.BEGIN, None, provider_name):
            session = await provider.begin_auth(state)

        self._trace("Getting auth URL")
        url = session.get_auth_url()
        self._trace(f"Auth URL: {url}")

        with self._step(FlowStep.PERSIST, SessionPersistError, provider_name):
            await self.store_in_session(request, provider_name, session.marshal())
        self._trace("Session data stored")

        return url

    async def begin_auth(self, request: Request) -> RedirectResponse:
        """Redirect (307) the user to the provider's authorization URL."""
        url = await self.get_auth_url(request)
        return RedirectResponse(url, status_code=307)

    # -----------------------------------------------------------------
    # Complete
    # -----------------------------------------------------------------

    async def complete_user_auth(self, request: Request) -> User:
        """Complete authentication and fetch the user from the provider.

        Tries the stored session first; if that cannot yield a user, the
        callback parameters are exchanged for fresh credentials and the
        fetch is retried once.

        Raises:
            ProviderNameMissingError, ProviderNotFoundError, NoSessionDataError,
            SessionDecodeError, StateMismatchError, ReauthorizationError,
            SessionPersistError, UserFetchError
        """
        async with self.auth_attempt(request):
            provider_name, provider = self._resolve(request)

            self._trace("Getting session data")
            with self._step(FlowStep.LOAD, None, provider_name):
                value = await self.get_from_session(request, provider_name)

            self._trace("Unmarshalling session data")
            with self._step(FlowStep.UNMARSHAL, SessionDecodeError, provider_name):
                session = provider.unmarshal_session(value)

            self._trace("Validating state token")
            await self._validate_state(request, session, provider_name)

            self._trace("Fetching user")
            try:
                return await provider.fetch_user(session)
            except Exception as e:
                self._trace(f"User not available from stored session ({e}), re-authorizing")

            params = await self.callback_params(request)
            self._trace(f"Callback parameters: {sorted(params)}")

            with self._step(FlowStep.REAUTHORIZE, ReauthorizationError, provider_name):
                await session.authorize(provider, params)
            self._trace("New token obtained")

            with self._step(FlowStep.PERSIST, SessionPersistError, provider_name):
                await self.store_in_session(request, provider_name, session.marshal())
            self._trace("New session data stored")

            with self._step(FlowStep.FINAL_FETCH, UserFetchError, provider_name):
                user = await provider.fetch_user(session)
            self._trace(f"User fetched: {user.provider}/{user.user_id}")
            return user

    @asynccontextmanager
    async def auth_attempt(self, request: Request) -> AsyncIterator[None]:
        """Scope of one completion attempt; always logs out on exit."""
        try:
            yield
        finally:
            try:
                await self.logout(request)
            except Exception as e:
                self.logger.warning(f"Failed to clear auth session: {e}")

    async def callback_params(self, request: Request) -> Mapping[str, str]:
        """Callback parameters: query string, or form body for POST callbacks."""
        if not request.query_params and request.method == POST_METHOD:
            form = await request.form()
            return {key: value for key, value in form.items() if isinstance(value, str)}
        return request.query_params

    async def _validate_state(
        self, request: Request, session: ProviderSession, provider_name: str
    ) -> None:
        with self._step(FlowStep.VALIDATE_STATE, SessionDecodeError, provider_name):
            auth_url = session.get_auth_url()
        try:
            self.config.state_codec.validate(auth_url, await self.config.state_codec.current(request))
        except AuthError as e:
            e.step, e.provider = FlowStep.VALIDATE_STATE, provider_name
            self.logger.warning(f"Rejected {provider_name} callback: {e}")
            raise

    # -----------------------------------------------------------------
    # Session helpers
    # -----------------------------------------------------------------

    async def logout(self, request: Request) -> None:
        """Invalidate every stored auth attempt of the request's session."""
        await self.config.session_store.delete(request)

    async def store_in_session(self, request: Request, key: str, value: str) -> None:
        await self.config.session_store.set(request, key, value)

    async def get_from_session(self, request: Request, key: str) -> str:
        """Get a previously stored value.

        Raises:
            NoSessionDataError: Nothing stored under key
        """
        value = await self.config.session_store.get(request, key)
        if value is None:
            raise NoSessionDataError(provider=key, step=FlowStep.LOAD)
        return value

    # -----------------------------------------------------------------
    # Internals
    # -----------------------------------------------------------------

    def _resolve(self, request: Request) -> tuple[str, Provider]:
        self._trace("Getting provider name")
        with self._step(FlowStep.RESOLVE, None):
            provider_name = self.config.resolve_provider_name(request)
        self._trace(f"Provider name: {provider_name}")

        with self._step(FlowStep.RESOLVE, None, provider_name):
            provider = self.config.registry.get(provider_name)
        self._trace("Provider found")
        return provider_name, provider

    @contextmanager
    def _step(
        self,
        step: FlowStep,
        error_cls: type[AuthError] | None,
        provider_name: str | None = None,
    ) -> Iterator[None]:
        """Tag AuthErrors with the step; convert other exceptions to error_cls.

        With error_cls None, foreign exceptions propagate unchanged.
        """
        try:
            yield
        except AuthError as e:
            e.step = e.step or step
            e.provider = e.provider or provider_name
            raise
        except Exception as e:
            if error_cls is None:
                raise
            raise error_cls(str(e) or None, provider=provider_name, step=step) from e
