"""Application settings using Pydantic Settings."""

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class SessionSettings(BaseSettings):
    """Browser session and auth-attempt storage settings."""

    model_config = SettingsConfigDict(
        env_prefix="SESSION__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    secret_key: str = Field(
        default="portico-dev-secret-change-me",
        description="Secret used to sign the session cookie - CHANGE IN PRODUCTION",
    )
    cookie_name: str = Field(default="portico_session", description="Session cookie name")
    auth_session_name: str = Field(
        default="_portico_auth",
        description="Key inside the session that holds in-flight auth attempts",
    )
    backend: str = Field(
        default="cookie",
        description="Auth attempt storage backend: cookie | memory",
    )
    max_age: int = Field(
        default=86400 * 30, description="Session cookie lifetime in seconds"
    )
    same_site: str = Field(
        default="lax",
        description="SameSite policy (use 'none' with https_only for form_post providers)",
    )
    https_only: bool = Field(default=False, description="Mark session cookie Secure")
    memory_ttl_seconds: int = Field(
        default=600, description="Lifetime of auth attempts in the memory backend"
    )


class ProviderSettings(BaseModel):
    """Credentials and endpoint overrides for one OAuth2 provider."""

    client_id: str = Field(default="", description="OAuth client ID")
    client_secret: str = Field(default="", description="OAuth client secret")
    preset: str | None = Field(
        default=None,
        description="Preset to build on (defaults to the provider name: github, google, gitlab, discord)",
    )
    scopes: list[str] | None = Field(default=None, description="Override preset scopes")
    callback_url: str | None = Field(
        default=None, description="Override the derived callback URL"
    )
    authorize_url: str | None = Field(default=None, description="Authorization endpoint")
    token_url: str | None = Field(default=None, description="Token endpoint")
    profile_url: str | None = Field(default=None, description="User profile endpoint")


class Settings(BaseSettings):
    """Application configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="PORTICO_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    # API
    api_host: str = Field(default="0.0.0.0", description="API server host")
    api_port: int = Field(default=8000, description="API server port")
    public_base_url: str = Field(
        default="http://localhost:8000",
        description="Externally visible base URL used to build callback URLs",
    )
    callback_path_template: str = Field(
        default="/auth/{provider}/callback",
        description="Callback path registered with providers",
    )

    # Auth flow
    debug: bool = Field(default=False, description="Trace every auth flow step")
    force_html_redirect: bool = Field(
        default=False, description="Always deliver redirects as an HTML page"
    )
    dev_provider_enabled: bool = Field(
        default=False, description="Register the in-process dev provider - NOT FOR PRODUCTION"
    )
    dev_signing_key: str | None = Field(
        default=None,
        description="PEM EC private key for dev tokens (generated per process when unset)",
    )

    # Session storage (nested)
    session: SessionSettings = Field(default_factory=SessionSettings)

    # Providers keyed by name, e.g. PORTICO_PROVIDERS__GITHUB__CLIENT_ID
    providers: dict[str, ProviderSettings] = Field(default_factory=dict)

    def callback_url(self, provider: str) -> str:
        """Build the callback URL for a provider.

        Examples:
            >>> Settings(public_base_url="https://app.example.com").callback_url("github")
            'https://app.example.com/auth/github/callback'
        """
        path = self.callback_path_template.format(provider=provider)
        return f"{self.public_base_url.rstrip('/')}{path}"


settings = Settings()
