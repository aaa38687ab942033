"""End-to-end auth flows through the ASGI app with the dev provider.

Drives the browser side with TestClient: begin, the dev confirmation page,
the provider redirect back and the callback.
"""

import re

import httpx
import pytest
from fastapi.testclient import TestClient

from portico.api.main import create_app
from portico.settings import SessionSettings, Settings

pytestmark = pytest.mark.integration


def _settings(backend: str = "cookie", **kwargs) -> Settings:
    return Settings(
        public_base_url="http://testserver",
        dev_provider_enabled=True,
        session=SessionSettings(backend=backend, secret_key="test-secret"),
        **kwargs,
    )


@pytest.fixture(params=["cookie", "memory"])
def client(request):
    with TestClient(create_app(_settings(request.param))) as client:
        yield client


def _hidden(page: str, name: str) -> str:
    match = re.search(rf'name="{name}" value="([^"]*)"', page)
    assert match, f"no hidden input {name}"
    return match.group(1)


def _confirm(client: TestClient, begin_path: str = "/auth/dev") -> str:
    """Begin, confirm on the dev page and return the provider's redirect back."""
    begin = client.get(begin_path, follow_redirects=False)
    assert begin.status_code == 307

    page = client.get(begin.headers["location"])
    assert page.status_code == 200

    confirm = client.post(
        "/oauth/dev/confirm",
        data={
            "code": _hidden(page.text, "code"),
            "redirect_uri": _hidden(page.text, "redirect_uri"),
            "state": _hidden(page.text, "state"),
        },
        follow_redirects=False,
    )
    assert confirm.status_code == 302
    return confirm.headers["location"]


def test_dev_login(client):
    callback_url = _confirm(client)
    assert callback_url.startswith("http://testserver/auth/dev/callback?")

    response = client.get(callback_url)

    assert response.status_code == 200
    assert response.json() == {
        "provider": "dev",
        "user_id": "dev-user",
        "email": "dev@example.com",
        "name": "Dev User",
        "nick_name": "dev",
        "avatar_url": None,
    }


def test_callback_replay_is_rejected(client):
    callback_url = _confirm(client)
    assert client.get(callback_url).status_code == 200

    response = client.get(callback_url)

    assert response.status_code == 400
    assert response.json()["error"] == "no_session_data"
    assert response.json()["step"] == "load"


def test_begin_with_client_state(client):
    begin = client.get("/auth/dev?state=client-chosen", follow_redirects=False)

    assert httpx.URL(begin.headers["location"]).params["state"] == "client-chosen"


def test_state_mismatch(client):
    begin = client.get("/auth/dev", follow_redirects=False)
    assert begin.status_code == 307

    response = client.get("/auth/dev/callback?state=forged&code=whatever")

    assert response.status_code == 403
    assert response.json() == {
        "error": "state_mismatch",
        "message": "state token mismatch",
        "step": "validate_state",
        "provider": "dev",
    }


def test_invalid_code_fails_reauthorization(client):
    begin = client.get("/auth/dev", follow_redirects=False)
    state = httpx.URL(begin.headers["location"]).params["state"]

    response = client.get(f"/auth/dev/callback?state={state}&code=bogus")

    assert response.status_code == 401
    assert response.json()["error"] == "reauthorization"
    assert response.json()["step"] == "reauthorize"


def test_form_post_callback(client):
    callback = httpx.URL(_confirm(client))

    response = client.post(
        "/auth/dev/callback",
        data={"code": callback.params["code"], "state": callback.params["state"]},
    )

    assert response.status_code == 200
    assert response.json()["user_id"] == "dev-user"


def test_malformed_form_post_callback(client):
    begin = client.get("/auth/dev", follow_redirects=False)
    assert begin.status_code == 307

    response = client.post(
        "/auth/dev/callback",
        content=b"garbage",
        headers={"Content-Type": "multipart/form-data"},
    )

    assert response.status_code == 403
    assert response.json()["error"] == "state_mismatch"
    assert response.json()["step"] == "validate_state"


def test_provider_from_query_string(client):
    callback = httpx.URL(_confirm(client, begin_path="/auth/begin?provider=dev"))

    response = client.get(
        "/auth/callback",
        params={"provider": "dev", "code": callback.params["code"], "state": callback.params["state"]},
    )

    assert response.status_code == 200
    assert response.json()["provider"] == "dev"


def test_unknown_provider(client):
    response = client.get("/auth/myspace", follow_redirects=False)

    assert response.status_code == 404
    assert response.json()["error"] == "provider_not_found"
    assert response.json()["provider"] == "myspace"


def test_missing_provider_name(client):
    response = client.get("/auth/begin", follow_redirects=False)

    assert response.status_code == 400
    assert response.json()["error"] == "provider_name_missing"


def test_callback_without_begin(client):
    response = client.get("/auth/dev/callback?state=abc&code=xyz")

    assert response.status_code == 400
    assert response.json()["error"] == "no_session_data"


def test_confirm_with_unknown_code(client):
    response = client.post(
        "/oauth/dev/confirm",
        data={"code": "unknown", "redirect_uri": "http://testserver/auth/dev/callback", "state": "S1"},
        follow_redirects=False,
    )

    assert response.status_code == 302
    params = httpx.URL(response.headers["location"]).params
    assert params["error"] == "invalid_request"


def test_logout_redirects(client):
    _confirm(client)

    response = client.get("/auth/logout?next=/home", follow_redirects=False)

    assert response.status_code == 303
    assert response.headers["location"] == "/home"
    assert response.headers["cache-control"].startswith("no-store")


def test_logout_rejects_foreign_next(client):
    response = client.get("/auth/logout?next=https://evil.example.com", follow_redirects=False)

    assert response.headers["location"] == "/"


@pytest.mark.parametrize(
    "next_url",
    ["//evil.example.com", "/%09/evil.example.com", "/%0A/evil.example.com", "/%5Cevil.example.com"],
)
def test_logout_rejects_disguised_foreign_next(client, next_url):
    response = client.get(f"/auth/logout?next={next_url}", follow_redirects=False)

    assert response.status_code == 303
    assert response.headers["location"] == "/"
    assert "evil.example.com" not in response.text


def test_logout_html_redirect():
    with TestClient(create_app(_settings(force_html_redirect=True))) as client:
        response = client.get("/auth/logout", follow_redirects=False)

    assert response.status_code == 200
    assert 'content="0;url=/"' in response.text


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_status(client):
    body = client.get("/status").json()

    assert body["status"] == "ok"
    assert body["providers"] == ["dev"]
    assert body["session_backend"] in ("cookie", "memory")


def test_status_without_providers():
    settings = Settings(session=SessionSettings(secret_key="test-secret"), dev_provider_enabled=False)
    with TestClient(create_app(settings)) as client:
        body = client.get("/status").json()
        page = client.get("/oauth/dev/authorize?client_id=x&redirect_uri=http://testserver/cb")

    assert body["status"] == "degraded"
    assert body["providers"] == []
    assert page.status_code == 400
