"""FastAPI dependency utilities."""

from app.config import Settings, get_settings


def get_app_settings() -> Settings:
    """Return the cached application settings.

    Routes depend on this function so tests can override configuration
    through ``app.dependency_overrides``.
    """

    return get_settings()
