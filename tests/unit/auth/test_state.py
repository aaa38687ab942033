"""Test StateCodec issuance, retrieval and validation."""

import pytest

from conftest import make_request
from portico.auth.state import StateCodec
from portico.errors import StateMismatchError

AUTH_URL = "https://github.com/login/oauth/authorize?client_id=abc&state={state}"


@pytest.fixture
def codec():
    return StateCodec()


def test_issue_reuses_query_state(codec):
    request = make_request(query="state=S1")

    assert codec.issue(request) == "S1"
    assert request.state.oauth_state == "S1"


def test_issue_generates_random_tokens(codec):
    first = codec.issue(make_request())
    second = codec.issue(make_request())

    assert first != second
    assert len(first) >= 86
    assert "=" not in first and "+" not in first and "/" not in first


@pytest.mark.asyncio
async def test_current_reads_query(codec):
    assert await codec.current(make_request(query="code=c&state=abc")) == "abc"


@pytest.mark.asyncio
async def test_current_query_without_state_is_empty(codec):
    """A non-empty query string without state yields an empty token."""
    request = make_request(method="POST", query="code=c", body=b"state=from-body")

    assert await codec.current(request) == ""


@pytest.mark.asyncio
async def test_current_reads_post_body(codec):
    request = make_request(method="POST", body=b"code=c&state=posted")

    assert await codec.current(request) == "posted"


@pytest.mark.asyncio
async def test_current_malformed_post_body(codec):
    """An unparseable POST body is a state mismatch."""
    request = make_request(
        method="POST",
        body=b"garbage",
        headers={"Content-Type": "multipart/form-data"},
    )

    with pytest.raises(StateMismatchError):
        await codec.current(request)


@pytest.mark.asyncio
async def test_current_falls_back_to_issued_state(codec):
    request = make_request()
    request.state.oauth_state = "issued"

    assert await codec.current(request) == "issued"


@pytest.mark.asyncio
async def test_current_empty_without_any_source(codec):
    assert await codec.current(make_request()) == ""


def test_validate_matching_state(codec):
    codec.validate(AUTH_URL.format(state="abc"), "abc")


def test_validate_mismatch(codec):
    with pytest.raises(StateMismatchError):
        codec.validate(AUTH_URL.format(state="abc"), "xyz")


def test_validate_missing_callback_state(codec):
    with pytest.raises(StateMismatchError):
        codec.validate(AUTH_URL.format(state="abc"), "")


def test_validate_url_without_state_passes(codec):
    """Providers that do not use state accept any callback token."""
    codec.validate("https://github.com/login/oauth/authorize?client_id=abc", "anything")
    codec.validate("https://github.com/login/oauth/authorize", "")


def test_validate_decodes_url_escapes(codec):
    codec.validate(AUTH_URL.format(state="a%2Bb"), "a+b")


def test_validate_unparseable_url(codec):
    with pytest.raises(StateMismatchError):
        codec.validate("https://example.com/\x00?state=abc", "abc")
