"""Provider registry.

Maps provider names to provider clients and builds the registry from
configuration.
"""

from collections.abc import Iterable

from loguru import logger

from portico.auth.providers import Provider
from portico.errors import ProviderNotFoundError
from portico.settings import Settings


class ProviderRegistry:
    """Name -> provider lookup.

    Populated once at startup and read-only afterwards.

    Example:
        >>> registry = ProviderRegistry([github])
        >>> registry.get("github") is github
        True
    """

    def __init__(self, providers: Iterable[Provider] = ()):
        self._providers: dict[str, Provider] = {}
        self.use(*providers)

    def use(self, *providers: Provider) -> None:
        """Register providers, replacing any with the same name."""
        for provider in providers:
            self._providers[provider.name] = provider

    def get(self, name: str) -> Provider:
        """Look up a provider by name.

        Raises:
            ProviderNotFoundError: No provider registered under name
        """
        provider = self._providers.get(name)
        if provider is None:
            raise ProviderNotFoundError(f"no provider for {name} exists", provider=name)
        return provider

    def names(self) -> list[str]:
        return sorted(self._providers)

    def clear(self) -> None:
        self._providers.clear()

    def __contains__(self, name: object) -> bool:
        return name in self._providers

    def __len__(self) -> int:
        return len(self._providers)


def build_registry(settings: Settings) -> ProviderRegistry:
    """Create a registry from settings.

    Registers an OAuth2Provider for every configured provider with a
    client_id, plus the dev provider when enabled.

    Raises:
        ValueError: A provider has no preset and incomplete endpoints
    """
    from portico.auth.provider_oauth2 import OAuth2Provider

    registry = ProviderRegistry()

    for name, provider_settings in settings.providers.items():
        if not provider_settings.client_id:
            logger.warning(f"Skipping provider '{name}': no client_id configured")
            continue
        registry.use(
            OAuth2Provider.from_settings(
                name=name,
                provider_settings=provider_settings,
                callback_url=provider_settings.callback_url or settings.callback_url(name),
            )
        )
        logger.info(f"Registered OAuth2 provider '{name}'")

    if settings.dev_provider_enabled:
        from portico.auth.jwt_simple import JWTManager
        from portico.auth.provider_dev import DevProvider

        signer = JWTManager.from_pem(settings.dev_signing_key) if settings.dev_signing_key else None
        registry.use(
            DevProvider(
                callback_url=settings.callback_url("dev"),
                base_url=settings.public_base_url,
                jwt_manager=signer,
            )
        )

    return registry
