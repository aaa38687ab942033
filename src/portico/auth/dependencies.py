"""FastAPI authentication dependencies.

The orchestrator is built once by create_app() and kept on app.state.
"""

from typing import Annotated

from fastapi import Depends, Request

from portico.auth.orchestrator import AuthOrchestrator
from portico.auth.providers import User


def get_orchestrator(request: Request) -> AuthOrchestrator:
    """Return the application's AuthOrchestrator.

    Raises:
        RuntimeError: create_app() did not configure one
    """
    orchestrator = getattr(request.app.state, "orchestrator", None)
    if orchestrator is None:
        raise RuntimeError("AuthOrchestrator accessed before initialization")
    return orchestrator


async def complete_user(
    request: Request,
    orchestrator: Annotated[AuthOrchestrator, Depends(get_orchestrator)],
) -> User:
    """Complete the provider callback of this request.

    AuthError propagates to the application's exception handler.

    Example:
        >>> @router.get("/auth/{provider}/callback")
        >>> async def callback(user: CompletedUser):
        ...     return {"user_id": user.user_id}
    """
    return await orchestrator.complete_user_auth(request)


# Type aliases for convenience
Orchestrator = Annotated[AuthOrchestrator, Depends(get_orchestrator)]
CompletedUser = Annotated[User, Depends(complete_user)]
