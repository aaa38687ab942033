"""Test redirect delivery: 303, HTML fallback and empty URLs."""

from conftest import make_request
from portico.api.redirect import (
    EMPTY_URL_MESSAGE,
    FORCE_HTML_HEADER,
    MINIFIED_REDIRECT_HTML,
    minify_template,
    redirect,
)


def _assert_no_cache(response):
    assert response.headers["cache-control"] == "no-store, no-cache, must-revalidate, max-age=0"
    assert response.headers["pragma"] == "no-cache"
    assert response.headers["expires"] == "0"


def test_server_redirect():
    response = redirect(make_request(), "https://example.com")

    assert response.status_code == 303
    assert response.headers["location"] == "https://example.com"
    _assert_no_cache(response)


def test_relative_url():
    response = redirect(make_request(), "/dashboard")

    assert response.status_code == 303
    assert response.headers["location"] == "/dashboard"


def test_empty_url():
    response = redirect(make_request(), "")

    assert response.status_code == 400
    assert response.body.decode() == EMPTY_URL_MESSAGE
    assert "location" not in response.headers
    _assert_no_cache(response)


def test_html_forced_by_header():
    request = make_request(headers={FORCE_HTML_HEADER: "true"})

    response = redirect(request, "https://example.com")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/html")
    body = response.body.decode()
    assert body.startswith('<html><head><meta http-equiv="refresh" content="0;url=https://example.com">')
    assert 'window.location.href = "https://example.com";' in body
    assert '<a href="https://example.com">click here</a>' in body
    _assert_no_cache(response)


def test_header_must_be_true():
    request = make_request(headers={FORCE_HTML_HEADER: "yes"})

    assert redirect(request, "https://example.com").status_code == 303


def test_html_forced_by_argument():
    response = redirect(make_request(), "/home", force_html=True)

    assert response.status_code == 200
    assert 'content="0;url=/home"' in response.body.decode()


def test_html_escapes_url():
    response = redirect(make_request(), '/search?q="><script>alert(1)</script>', force_html=True)

    body = response.body.decode()
    assert "<script>alert(1)</script>" not in body
    assert "&quot;&gt;&lt;script&gt;" in body


def test_control_characters_fall_back_to_html():
    response = redirect(make_request(), "https://example.com/\r\nSet-Cookie: x=1")

    assert response.status_code == 200
    assert "location" not in response.headers


def test_minified_template():
    assert "\n" not in MINIFIED_REDIRECT_HTML
    assert "\t" not in MINIFIED_REDIRECT_HTML
    assert "><" in MINIFIED_REDIRECT_HTML
    assert minify_template("<p>\n\t<b>x</b>\n</p>") == "<p><b>x</b></p>"
