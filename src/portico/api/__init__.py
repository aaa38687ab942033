"""portico API module."""


def __getattr__(name: str):
    """Lazy load app to avoid building it on import of portico.api.redirect."""
    if name == "app":
        from portico.api.main import app
        return app
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = ["app"]
