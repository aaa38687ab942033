"""Typed errors raised by the authentication flows.

Every error carries its kind, the flow step that produced it and the
provider involved, so callers can map failures to HTTP responses and
diagnostics without parsing messages.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Error classification for auth flow failures."""

    PROVIDER_NOT_FOUND = "provider_not_found"
    PROVIDER_NAME_MISSING = "provider_name_missing"
    NO_SESSION_DATA = "no_session_data"
    SESSION_DECODE = "session_decode"
    STATE_MISMATCH = "state_mismatch"
    REAUTHORIZATION = "reauthorization"
    SESSION_PERSIST = "session_persist"
    USER_FETCH = "user_fetch"


class FlowStep(str, Enum):
    """Steps of the begin and complete flows."""

    RESOLVE = "resolve"
    BEGIN = "begin"
    LOAD = "load"
    UNMARSHAL = "unmarshal"
    VALIDATE_STATE = "validate_state"
    REAUTHORIZE = "reauthorize"
    PERSIST = "persist"
    FINAL_FETCH = "final_fetch"


class AuthError(Exception):
    """Base class for auth flow errors."""

    kind: ErrorKind
    default_message = "authentication failed"

    def __init__(
        self,
        message: str | None = None,
        *,
        provider: str | None = None,
        step: FlowStep | None = None,
    ):
        self.message = message or self.default_message
        self.provider = provider
        self.step = step
        super().__init__(self.message)

    def to_dict(self) -> dict[str, str | None]:
        return {
            "error": self.kind.value,
            "message": self.message,
            "step": self.step.value if self.step else None,
            "provider": self.provider,
        }


class ProviderNotFoundError(AuthError):
    kind = ErrorKind.PROVIDER_NOT_FOUND
    default_message = "provider not found"


class ProviderNameMissingError(AuthError):
    kind = ErrorKind.PROVIDER_NAME_MISSING
    default_message = "you must select a provider"


class NoSessionDataError(AuthError):
    kind = ErrorKind.NO_SESSION_DATA
    default_message = "could not find a matching session for this request"


class SessionDecodeError(AuthError):
    kind = ErrorKind.SESSION_DECODE
    default_message = "stored session data is malformed"


class StateMismatchError(AuthError):
    kind = ErrorKind.STATE_MISMATCH
    default_message = "state token mismatch"


class ReauthorizationError(AuthError):
    kind = ErrorKind.REAUTHORIZATION
    default_message = "provider rejected the callback parameters"


class SessionPersistError(AuthError):
    kind = ErrorKind.SESSION_PERSIST
    default_message = "could not store session data"


class UserFetchError(AuthError):
    kind = ErrorKind.USER_FETCH
    default_message = "could not fetch user from provider"
