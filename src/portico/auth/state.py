"""Anti-CSRF state tokens.

The token is embedded in the authorization URL at begin time and must come
back unchanged on the callback. See http://tools.ietf.org/html/rfc6749#section-10.12
"""

import secrets

import httpx
from starlette.exceptions import HTTPException
from starlette.formparsers import MultiPartException
from starlette.requests import Request

from portico.errors import StateMismatchError

STATE_PARAM = "state"
POST_METHOD = "POST"


class StateCodec:
    """Issues, retrieves and validates state tokens.

    Subclass to change issuance or retrieval, and pass the instance to
    AuthConfig.
    """

    token_bytes = 64

    def issue(self, request: Request) -> str:
        """Return the state token for a new auth attempt.

        A state already present in the begin request's query string is
        reused; otherwise a random token is generated.
        """
        state = request.query_params.get(STATE_PARAM) or secrets.token_urlsafe(self.token_bytes)
        request.state.oauth_state = state
        return state

    async def current(self, request: Request) -> str:
        """Return the state token of the current request.

        Reads the query string, or the form body of a POST callback with an
        empty query string, and falls back to the token issued earlier in
        this request.

        Raises:
            StateMismatchError: The POST body cannot be parsed
        """
        if request.query_params:
            return request.query_params.get(STATE_PARAM, "")
        if request.method == POST_METHOD:
            try:
                form = await request.form()
            except (HTTPException, MultiPartException) as e:
                raise StateMismatchError("callback body is not a valid form") from e
            value = form.get(STATE_PARAM)
            return value if isinstance(value, str) else ""
        return getattr(request.state, "oauth_state", "")

    def validate(self, original_auth_url: str, callback_token: str) -> None:
        """Check the callback token against the original authorization URL.

        Passes when the URL carries no state.

        Raises:
            StateMismatchError: Tokens differ or the URL cannot be parsed
        """
        try:
            original = httpx.URL(original_auth_url).params.get(STATE_PARAM, "")
        except httpx.InvalidURL as e:
            raise StateMismatchError("original authorization URL is invalid") from e

        if original and not secrets.compare_digest(
            original.encode("utf-8"), callback_token.encode("utf-8")
        ):
            raise StateMismatchError()
