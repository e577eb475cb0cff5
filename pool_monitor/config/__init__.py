from .settings import (
    APIConfig,
    DatabaseConfig,
    HeliusConfig,
    ServerConfig,
    Settings,
    WebhookConfig,
    get_settings,
    reload_settings,
)

__all__ = [
    "APIConfig",
    "DatabaseConfig",
    "HeliusConfig",
    "ServerConfig",
    "Settings",
    "WebhookConfig",
    "get_settings",
    "reload_settings",
]
