"""Begin, callback and logout endpoints.

The begin endpoints redirect (307) to the provider. The callback endpoints
accept GET (query string) and POST (form_post providers) and return the
authenticated profile without credential material.
"""

import re

from fastapi import APIRouter, Query, Request
from fastapi.responses import RedirectResponse, Response
from pydantic import BaseModel, Field

from portico.api.redirect import redirect
from portico.auth import CompletedUser, Orchestrator, User

router = APIRouter(prefix="/auth", tags=["Auth"])


class UserProfile(BaseModel):
    """Public view of an authenticated user."""

    provider: str = Field(description="Provider name")
    user_id: str = Field(description="Provider-scoped user ID")
    email: str | None = Field(default=None, description="User email")
    name: str | None = Field(default=None, description="User display name")
    nick_name: str | None = Field(default=None, description="Login or handle")
    avatar_url: str | None = Field(default=None, description="Avatar image URL")

    @classmethod
    def from_user(cls, user: User) -> "UserProfile":
        return cls(
            provider=user.provider,
            user_id=user.user_id,
            email=user.email,
            name=user.name,
            nick_name=user.nick_name,
            avatar_url=user.avatar_url,
        )


UNSAFE_NEXT = re.compile(r"[\x00-\x1f\x7f\\]")


def _safe_next(next_url: str) -> str:
    # Only same-origin paths; browsers drop control characters and treat backslashes as slashes
    if not next_url.startswith("/") or next_url.startswith("//") or UNSAFE_NEXT.search(next_url):
        return "/"
    return next_url


@router.get("/logout")
async def logout(
    request: Request,
    orchestrator: Orchestrator,
    next: str = Query(default="/", description="Path to return to"),
) -> Response:
    """Drop any in-flight auth attempt and redirect."""
    await orchestrator.logout(request)
    return redirect(
        request,
        _safe_next(next),
        force_html=request.app.state.settings.force_html_redirect,
        debug=orchestrator.config.debug,
    )


@router.get("/begin")
async def begin_auth_by_query(request: Request, orchestrator: Orchestrator) -> RedirectResponse:
    """Start authentication for ?provider=<name>."""
    return await orchestrator.begin_auth(request)


@router.api_route("/callback", methods=["GET", "POST"])
async def callback_by_query(user: CompletedUser) -> UserProfile:
    """Provider callback for ?provider=<name>."""
    return UserProfile.from_user(user)


@router.get("/{provider}")
async def begin_auth(provider: str, request: Request, orchestrator: Orchestrator) -> RedirectResponse:
    """Start authentication with a provider.

    Redirects (307) to the provider's authorization URL.
    """
    return await orchestrator.begin_auth(request)


@router.api_route("/{provider}/callback", methods=["GET", "POST"])
async def callback(provider: str, user: CompletedUser) -> UserProfile:
    """Provider callback.

    Validates state, exchanges the code if needed and returns the profile.
    """
    return UserProfile.from_user(user)
