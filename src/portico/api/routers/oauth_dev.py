"""Endpoints of the dev identity provider.

Stand in for a real provider's authorization server: a confirmation page
and the form target that sends the browser back to portico's callback.
Only active when the dev provider is registered. NOT FOR PRODUCTION.
"""

import html

import httpx
from fastapi import APIRouter, Form, Query, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from loguru import logger

from portico.auth.provider_dev import DEV_SCOPES, DevProvider

router = APIRouter(prefix="/oauth/dev", tags=["OAuth Dev Provider"])

CONFIRM_PAGE = """<!DOCTYPE html>
<html>
<head>
    <title>portico dev login</title>
    <style>
        body {{ font-family: system-ui, sans-serif; max-width: 32rem; margin: 6rem auto; text-align: center; }}
        .warning {{ background: #fff3cd; color: #856404; padding: 0.6rem; }}
        .scope {{ background: #e3f2fd; padding: 0.2rem 0.5rem; margin: 0.1rem; }}
    </style>
</head>
<body>
    <h1>portico dev login</h1>
    <p class="warning">Dev provider: anyone who clicks confirm is signed in.</p>
    <p>Application <strong>{client_id}</strong> requests {scopes}</p>
    <form method="post" action="{confirm_url}">
        <input type="hidden" name="code" value="{code}">
        <input type="hidden" name="redirect_uri" value="{redirect_uri}">
        <input type="hidden" name="state" value="{state}">
        <button type="submit">Confirm</button>
    </form>
</body>
</html>
"""


def _dev_provider(request: Request) -> DevProvider | None:
    registry = request.app.state.orchestrator.config.registry
    provider = registry.get(DevProvider.name) if DevProvider.name in registry else None
    return provider if isinstance(provider, DevProvider) else None


def _back_to_client(redirect_uri: str, **params: str) -> RedirectResponse:
    url = httpx.URL(redirect_uri).copy_merge_params(params)
    return RedirectResponse(url=str(url), status_code=302)


@router.get("/authorize")
async def dev_authorize(
    request: Request,
    client_id: str = Query(...),
    redirect_uri: str = Query(...),
    response_type: str = Query(default="code"),
    state: str | None = Query(default=None),
    scope: str | None = Query(default=None),
) -> HTMLResponse:
    """Show the confirmation page for a new authorization code."""
    provider = _dev_provider(request)
    if provider is None:
        return HTMLResponse("<h1>Error</h1><p>Dev provider not configured</p>", status_code=400)

    scopes = scope.split() if scope else list(DEV_SCOPES)
    pending = provider.create_authorization(redirect_uri=redirect_uri, state=state, scopes=scopes)
    logger.info(f"Dev authorization requested: client={client_id}, redirect={redirect_uri}")

    page = CONFIRM_PAGE.format(
        client_id=html.escape(client_id),
        scopes=" ".join(f'<span class="scope">{html.escape(s)}</span>' for s in scopes),
        confirm_url=request.url_for("dev_confirm").path,
        code=pending.code,
        redirect_uri=html.escape(redirect_uri),
        state=html.escape(state or ""),
    )
    return HTMLResponse(page)


@router.post("/confirm", name="dev_confirm")
async def dev_confirm(
    request: Request,
    code: str = Form(...),
    redirect_uri: str = Form(...),
    state: str = Form(default=""),
) -> RedirectResponse:
    """Approve the code and return the browser to redirect_uri."""
    provider = _dev_provider(request)
    if provider is None:
        return _back_to_client(
            redirect_uri, error="server_error", error_description="Dev provider not configured"
        )

    if provider.approve_authorization(code) is None:
        return _back_to_client(
            redirect_uri, error="invalid_request", error_description="Invalid or expired code"
        )

    logger.info(f"Dev authorization confirmed: code={code[:8]}...")
    if state:
        return _back_to_client(redirect_uri, code=code, state=state)
    return _back_to_client(redirect_uri, code=code)
