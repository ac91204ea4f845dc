"""
Pydantic Settings Configuration
===============================

Type-safe configuration management using Pydantic.
Validates all configuration values at startup and fails fast with clear
error messages.
"""

from importlib import metadata
from pathlib import Path
from typing import Dict, Optional

import yaml
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from serginho.core.exceptions import ConfigurationError

TEST_ENVIRONMENT = "test"
PLACEHOLDER_API_KEY = "test-key"


def _project_version() -> str:
    """Resolve the project version from package metadata."""
    try:
        return metadata.version("serginho")
    except metadata.PackageNotFoundError:
        return "0.0.0-dev"


def _default_models() -> Dict[str, str]:
    # 120B is not served by Groq yet; the genius tier runs on the 70B model
    # until it is.
    return {
        "llama-120b": "llama-3.3-70b-versatile",
        "llama-70b": "llama-3.3-70b-versatile",
        "llama-8b": "llama-3.1-8b-instant",
        "groq-fallback": "mixtral-8x7b-32768",
    }


class ProvidersConfig(BaseModel):
    """Upstream chat-completions endpoint configuration"""
    base_url: str = Field("https://api.groq.com/openai/v1", description="OpenAI-compatible API base URL")
    timeout_seconds: float = Field(8.0, gt=0, le=300, description="Per-call upstream timeout")
    models: Dict[str, str] = Field(default_factory=_default_models, description="Provider id -> upstream model name")
    default_temperature: float = Field(0.7, ge=0.0, le=2.0)
    default_max_tokens: int = Field(2000, ge=1, le=32768)

    model_config = ConfigDict(extra='allow')


class RoutingConfig(BaseModel):
    """Orchestrator behaviour switches"""
    circuit_breaker_enabled: bool = Field(True, description="Skip providers whose circuit is open")
    circuit_breaker_threshold: int = Field(3, ge=1, description="Failures before a circuit opens")
    circuit_breaker_timeout: float = Field(60.0, gt=0, description="Seconds before an open circuit is retried")
    circuit_breaker_half_open_calls: int = Field(1, ge=1)
    cancel_race_losers: bool = Field(True, description="Cancel slower calls once a hybrid race has a winner")

    model_config = ConfigDict(extra='allow')


class SessionsConfig(BaseModel):
    """Session retention (None = unbounded)"""
    max_sessions: Optional[int] = Field(None, ge=1, description="Evict least recently used sessions past this count")
    max_age_seconds: Optional[float] = Field(None, gt=0, description="Evict sessions idle for longer than this")

    model_config = ConfigDict(extra='allow')


class CacheConfig(BaseModel):
    """Response cache for bare prompts"""
    enabled: bool = Field(True, description="Reuse a provider's recent answer to the same prompt")
    ttl_seconds: float = Field(3600.0, gt=0, description="How long a cached answer stays valid")
    max_entries: Optional[int] = Field(1000, ge=1, description="Evict the oldest answers past this count")

    model_config = ConfigDict(extra='allow')


class LoggingConfig(BaseModel):
    """Logging configuration"""
    level: str = Field("INFO", description="Log level (DEBUG, INFO, WARNING, ERROR)")
    format: str = Field("json", description="Log format (json, text)")

    @field_validator('level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        valid_levels = {'DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'}
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Log level must be one of: {', '.join(sorted(valid_levels))}")
        return v_upper

    @field_validator('format')
    @classmethod
    def validate_format(cls, v: str) -> str:
        if v not in {"json", "text"}:
            raise ValueError("Log format must be 'json' or 'text'")
        return v

    model_config = ConfigDict(extra='allow')


class WebConfig(BaseModel):
    """Web interface configuration"""
    host: str = Field("0.0.0.0", description="Host to bind to")
    port: int = Field(8081, ge=1, le=65535, description="Port to bind to")
    specialists_file: Optional[Path] = Field(None, description="YAML file with specialist personas")

    model_config = ConfigDict(extra='allow')


class Settings(BaseSettings):
    """
    Main application settings with type validation.

    Configuration is loaded from:
    1. YAML config file (if provided)
    2. Environment variables with SERGINHO_ prefix (override)
    3. Default values (fallback)

    Environment variable mapping uses double-underscore nesting:
      SERGINHO_PROVIDERS__TIMEOUT_SECONDS
      SERGINHO_ROUTING__CIRCUIT_BREAKER_ENABLED
      SERGINHO_SESSIONS__MAX_SESSIONS
      SERGINHO_CACHE__TTL_SECONDS

    The upstream credential is read from GROQ_API_KEY.
    """

    groq_api_key: Optional[SecretStr] = Field(
        None,
        validation_alias=AliasChoices("GROQ_API_KEY", "SERGINHO_GROQ_API_KEY"),
        description="Credential shared by all tiered providers",
    )
    environment: str = Field("production", description="Runtime environment (production, development, test)")

    providers: ProvidersConfig = Field(default_factory=ProvidersConfig)
    routing: RoutingConfig = Field(default_factory=RoutingConfig)
    sessions: SessionsConfig = Field(default_factory=SessionsConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    web: WebConfig = Field(default_factory=WebConfig)

    project_name: str = Field("Serginho", description="Project name")
    version: str = Field(default_factory=_project_version, description="Project version")

    model_config = SettingsConfigDict(
        env_prefix='SERGINHO_',
        env_nested_delimiter='__',
        extra='allow',
        validate_assignment=True,
        populate_by_name=True,
    )

    @property
    def is_test(self) -> bool:
        return self.environment.lower() == TEST_ENVIRONMENT

    def require_api_key(self) -> str:
        """
        Return the upstream credential.

        Raises:
            ConfigurationError: If GROQ_API_KEY is missing outside the test
                environment. Under tests a placeholder is returned so unit
                tests stay hermetic.
        """
        if self.groq_api_key is not None and self.groq_api_key.get_secret_value():
            return self.groq_api_key.get_secret_value()
        if self.is_test:
            return PLACEHOLDER_API_KEY
        raise ConfigurationError(
            "GROQ_API_KEY environment variable is required",
            details={"environment": self.environment},
        )

    @classmethod
    def from_yaml(cls, config_path: str | Path) -> "Settings":
        """
        Load settings from a YAML file.

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If configuration is invalid
        """
        config_path = Path(config_path)
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(config_path) as f:
            config_data = yaml.safe_load(f) or {}

        return cls(**config_data)

    @classmethod
    def from_env(cls) -> "Settings":
        return cls()


def load_settings(config_path: Optional[str | Path] = None) -> Settings:
    """Load and validate application settings."""
    if config_path:
        return Settings.from_yaml(config_path)
    return Settings.from_env()


__all__ = [
    'CacheConfig',
    'LoggingConfig',
    'ProvidersConfig',
    'RoutingConfig',
    'SessionsConfig',
    'Settings',
    'WebConfig',
    'load_settings',
]
