"""Provider name resolution.

The default strategy reads the route's `provider` path parameter and falls
back to the query string. Replace it through AuthConfig.resolve_provider_name
for header- or tenant-based routing.
"""

from typing import Protocol

from starlette.requests import Request

from portico.errors import ProviderNameMissingError

PROVIDER_PARAM = "provider"


class NameResolver(Protocol):
    def __call__(self, request: Request) -> str: ...


def default_provider_name(request: Request) -> str:
    """Resolve the provider name of a request.

    Checks, in order: path parameter `provider`, query parameter `provider`,
    query parameter `:provider`, and `request.state.provider` set by
    upstream middleware.

    Raises:
        ProviderNameMissingError: No source yields a name
    """
    name = (
        request.path_params.get(PROVIDER_PARAM)
        or request.query_params.get(PROVIDER_PARAM)
        or request.query_params.get(f":{PROVIDER_PARAM}")
        or getattr(request.state, PROVIDER_PARAM, None)
    )
    if not name:
        raise ProviderNameMissingError()
    return name
