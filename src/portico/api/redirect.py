"""Redirect delivery.

Sends a 303 with cache-busting headers, or an HTML page that redirects via
meta refresh and script when a server-side redirect cannot be used.
"""

import html
import re

from loguru import logger
from starlette.requests import Request
from starlette.responses import HTMLResponse, PlainTextResponse, RedirectResponse, Response

FORCE_HTML_HEADER = "X-Force-HTML-Redirect"
EMPTY_URL_MESSAGE = "Empty URL provided for redirect"

NO_CACHE_HEADERS = {
    "Cache-Control": "no-store, no-cache, must-revalidate, max-age=0",
    "Pragma": "no-cache",
    "Expires": "0",
}

REDIRECT_HTML_TEMPLATE = """
<html>
	<head>
		<meta http-equiv="refresh" content="0;url={url}">
		<script type="text/javascript">
			window.location.href = "{url}";
		</script>
	</head>
	<body>
		<p>If you are not redirected automatically, please <a href="{url}">click here</a>.</p>
	</body>
</html>
"""


def minify_template(template: str) -> str:
    minified = template.replace("\n", "").replace("\t", "")
    minified = re.sub(r"\s+", " ", minified)
    minified = re.sub(r">\s+<", "><", minified)
    return minified.strip()


MINIFIED_REDIRECT_HTML = minify_template(REDIRECT_HTML_TEMPLATE)

_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")


def _wants_html(request: Request, url: str, force_html: bool) -> bool:
    if force_html:
        return True
    if request.headers.get(FORCE_HTML_HEADER, "").lower() == "true":
        return True
    # Header values cannot carry control characters
    return bool(_CONTROL_CHARS.search(url))


def redirect(
    request: Request,
    url: str,
    *,
    force_html: bool = False,
    debug: bool = False,
) -> Response:
    """Redirect the browser to url.

    Args:
        request: Current request (checked for X-Force-HTML-Redirect)
        url: Target URL, absolute or relative
        force_html: Always deliver the HTML fallback page
        debug: Log the chosen delivery

    Returns:
        400 for an empty URL, 303 redirect, or 200 HTML fallback page.
        All carry no-cache headers.
    """
    if not url:
        return PlainTextResponse(EMPTY_URL_MESSAGE, status_code=400, headers=NO_CACHE_HEADERS)

    if not _wants_html(request, url, force_html):
        if debug:
            logger.debug(f"Redirecting to '{url}'")
        return RedirectResponse(url, status_code=303, headers=NO_CACHE_HEADERS)

    if debug:
        logger.debug(f"Sending JavaScript redirect to '{url}'")
    escaped = html.escape(url, quote=True)
    return HTMLResponse(
        MINIFIED_REDIRECT_HTML.format(url=escaped),
        status_code=200,
        headers=NO_CACHE_HEADERS,
    )
