"""
Settings and configuration management for the Solana pool monitor.
Loads configuration from YAML files and environment variables.
"""

import os
import yaml
import logging
from typing import Dict, Any, List, Optional
from dataclasses import dataclass, field

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

RAYDIUM_AMM_PROGRAM = "675kPX9MHTjS2zt1qfr1NYHuzeLXfQM9H24wFSUt1Mp8"


@dataclass(frozen=True)
class DatabaseConfig:
    """Database configuration settings."""
    url: str = ""
    pool_size: int = 5
    max_overflow: int = 10
    pool_recycle_hours: int = 1
    connection_timeout_seconds: int = 30


@dataclass(frozen=True)
class APIConfig:
    """External API configuration settings."""
    defillama_base_url: str = "https://yields.llama.fi"
    jupiter_base_url: str = "https://lite-api.jup.ag"
    timeout_seconds: float = 30.0
    max_retries: int = 3
    rate_limit_delay_ms: int = 2000
    chain: str = "Solana"


@dataclass(frozen=True)
class ServerConfig:
    """HTTP server configuration settings."""
    host: str = "0.0.0.0"
    port: int = 3000
    pools_limit: int = 50
    apy_pools_limit: int = 25
    log_level: str = "INFO"


@dataclass(frozen=True)
class WebhookConfig:
    """Webhook ingestion configuration."""
    accepted_types: List[str] = field(default_factory=lambda: ["ENHANCED_TRANSACTION", "CREATE_POOL"])
    archive_dir: Optional[str] = None


@dataclass(frozen=True)
class HeliusConfig:
    """Helius webhook registration configuration."""
    api_key: Optional[str] = None
    webhook_base_url: Optional[str] = None
    base_url: str = "https://api.helius.xyz/v0"
    transaction_types: List[str] = field(default_factory=lambda: ["CREATE_POOL"])
    account_addresses: List[str] = field(default_factory=lambda: [RAYDIUM_AMM_PROGRAM])
    webhook_type: str = "enhanced"
    auth_header: Optional[str] = None

    @property
    def registration_enabled(self) -> bool:
        return bool(self.api_key and self.webhook_base_url)


class Settings:
    """Main settings class that loads and manages all configuration."""

    def __init__(self, config_path: Optional[str] = None, environ: Optional[Dict[str, str]] = None):
        """Initialize settings.

        Args:
            config_path: Path to YAML configuration file. If None, uses default path.
            environ: Environment mapping used for overrides. Defaults to os.environ.
        """
        self.environ = os.environ if environ is None else environ
        self.config_path = config_path or self.environ.get("POOL_MONITOR_CONFIG") or self._get_default_config_path()
        self.config_data: Dict[str, Any] = {}
        self.load_config()

        self.database = self._load_database_config()
        self.api = self._load_api_config()
        self.server = self._load_server_config()
        self.webhook = self._load_webhook_config()
        self.helius = self._load_helius_config()

    def _get_default_config_path(self) -> str:
        """Get default configuration file path."""
        possible_paths = [
            "/app/config/pool_monitor.yaml",  # Docker path
            "config/pool_monitor.yaml",       # Relative path
            os.path.join(os.path.dirname(__file__), "..", "..", "config", "pool_monitor.yaml")
        ]

        for path in possible_paths:
            if os.path.exists(path):
                return path

        return possible_paths[0]

    def load_config(self):
        """Load configuration from YAML file."""
        try:
            if os.path.exists(self.config_path):
                with open(self.config_path, 'r') as file:
                    self.config_data = yaml.safe_load(file) or {}
                logger.debug(f"Loaded configuration from {self.config_path}")
            else:
                logger.debug(f"Configuration file not found at {self.config_path}, using defaults")
                self.config_data = {}
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Failed to load configuration from {self.config_path}: {e}")
            self.config_data = {}

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value by key.

        Args:
            key: Configuration key (supports dot notation like 'api.max_retries')
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        env_key = key.upper().replace('.', '_')
        env_value = self.environ.get(env_key)
        if env_value is not None:
            return _coerce(env_value, default)

        keys = key.split('.')
        value = self.config_data

        for k in keys:
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default

        return value

    def _load_database_config(self) -> DatabaseConfig:
        """Load database configuration."""
        url = self.environ.get("DATABASE_URL") or self.get("database.url") or self._build_database_url()
        return DatabaseConfig(
            url=url,
            pool_size=self.get("database.pool_size", 5),
            max_overflow=self.get("database.max_overflow", 10),
            pool_recycle_hours=self.get("database.pool_recycle_hours", 1),
            connection_timeout_seconds=self.get("database.connection_timeout_seconds", 30)
        )

    def _build_database_url(self) -> str:
        """Build database URL from POSTGRES_* environment variables."""
        user = self.environ.get('POSTGRES_USER', 'monitor')
        password = self.environ.get('POSTGRES_PASSWORD', 'monitor_password')
        host = self.environ.get('POSTGRES_HOST', 'localhost')
        port = self.environ.get('POSTGRES_PORT', '5432')
        database = self.environ.get('POSTGRES_DB', 'solana-pool-monitor')

        return f"postgresql+psycopg2://{user}:{password}@{host}:{port}/{database}"

    def _load_api_config(self) -> APIConfig:
        """Load API configuration."""
        delay = self.environ.get("RATE_LIMIT_DELAY_MS")
        return APIConfig(
            defillama_base_url=self.get("api.defillama_base_url", "https://yields.llama.fi"),
            jupiter_base_url=self.get("api.jupiter_base_url", "https://lite-api.jup.ag"),
            timeout_seconds=self.get("api.timeout_seconds", 30.0),
            max_retries=self.get("api.max_retries", 3),
            rate_limit_delay_ms=int(delay) if delay else self.get("api.rate_limit_delay_ms", 2000),
            chain=self.get("api.chain", "Solana")
        )

    def _load_server_config(self) -> ServerConfig:
        """Load HTTP server configuration."""
        port = self.environ.get("PORT")
        return ServerConfig(
            host=self.get("server.host", "0.0.0.0"),
            port=int(port) if port else self.get("server.port", 3000),
            pools_limit=self.get("server.pools_limit", 50),
            apy_pools_limit=self.get("server.apy_pools_limit", 25),
            log_level=str(self.get("server.log_level", "INFO")).upper()
        )

    def _load_webhook_config(self) -> WebhookConfig:
        """Load webhook ingestion configuration."""
        return WebhookConfig(
            accepted_types=_as_list(self.get("webhook.accepted_types", ["ENHANCED_TRANSACTION", "CREATE_POOL"])),
            archive_dir=self.get("webhook.archive_dir", None)
        )

    def _load_helius_config(self) -> HeliusConfig:
        """Load Helius registration configuration."""
        return HeliusConfig(
            api_key=self.get("helius.api_key", None),
            webhook_base_url=self.environ.get("WEBHOOK_BASE_URL") or self.get("helius.webhook_base_url", None),
            base_url=self.get("helius.base_url", "https://api.helius.xyz/v0"),
            transaction_types=_as_list(self.get("helius.transaction_types", ["CREATE_POOL"])),
            account_addresses=_as_list(self.get("helius.account_addresses", [RAYDIUM_AMM_PROGRAM])),
            webhook_type=self.get("helius.webhook_type", "enhanced"),
            auth_header=self.get("helius.auth_header", None)
        )


def _coerce(env_value: str, default: Any) -> Any:
    """Convert an environment string to the type of the default value."""
    if isinstance(default, bool):
        return env_value.lower() in ('true', '1', 'yes', 'on')
    elif isinstance(default, int):
        try:
            return int(env_value)
        except ValueError:
            pass
    elif isinstance(default, float):
        try:
            return float(env_value)
        except ValueError:
            pass
    elif isinstance(default, list):
        return [item.strip() for item in env_value.split(",") if item.strip()]
    return env_value


def _as_list(value: Any) -> List[str]:
    if isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    return list(value or [])


# Global settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the global settings instance.

    Returns:
        Settings instance
    """
    global _settings
    if _settings is None:
        load_dotenv()
        _settings = Settings()
    return _settings


def reload_settings() -> Settings:
    """Reload settings from configuration file."""
    global _settings
    load_dotenv()
    _settings = Settings()
    logger.info("Settings reloaded")
    return _settings
