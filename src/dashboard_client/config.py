"""
Configuration for dashboard_client.
"""
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
from urllib.parse import urlparse
import json
import logging
import os

import yaml
from pydantic import BaseModel, Field

from .types import Serializer

logger = logging.getLogger("dashboard_client.config")

ENV_BASE_URL = "API_BASE_URL"
ENV_TIMEOUT_MS = "API_TIMEOUT_MS"
ENV_WITH_CREDENTIALS = "API_WITH_CREDENTIALS"
ENV_TRACE = "API_TRACE"

SUPPORTED_METHODS = ("GET", "POST", "PUT", "PATCH", "DELETE")

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass
class TimeoutConfig:
    """Timeout configuration in seconds."""

    connect: float = 5.0
    read: float = 30.0
    write: float = 10.0


@dataclass
class ClientConfig:
    """Client configuration."""

    base_url: str
    timeout: Union[TimeoutConfig, float, None] = None
    with_credentials: bool = True
    headers: Dict[str, str] = field(default_factory=dict)
    content_type: str = "application/json"
    dedupe_methods: List[str] = field(default_factory=lambda: ["GET", "DELETE"])
    trace: bool = False
    serializer: Optional[Serializer] = None


# Default values
DEFAULT_TIMEOUT = TimeoutConfig()
DEFAULT_CONTENT_TYPE = "application/json"


class DefaultSerializer:
    """Default JSON serializer."""

    def serialize(self, data: Any) -> str:
        """Serialize data to JSON string."""
        return json.dumps(data)

    def deserialize(self, text: str) -> Any:
        """Deserialize JSON string to data."""
        return json.loads(text)


default_serializer = DefaultSerializer()


def normalize_timeout(timeout: Union[TimeoutConfig, float, None]) -> TimeoutConfig:
    """Normalize timeout config."""
    if timeout is None:
        return DEFAULT_TIMEOUT
    if isinstance(timeout, (int, float)):
        return TimeoutConfig(connect=timeout, read=timeout, write=timeout)
    return timeout


def validate_config(config: ClientConfig) -> None:
    """Validate client configuration."""
    if not config.base_url:
        raise ValueError("base_url is required")

    parsed = urlparse(config.base_url)
    if not parsed.scheme or not parsed.netloc:
        raise ValueError(f"Invalid base_url: {config.base_url}")

    unknown = [m for m in config.dedupe_methods if m.upper() not in SUPPORTED_METHODS]
    if unknown:
        raise ValueError(
            f"Invalid dedupe_methods: {unknown}. Must be within: {list(SUPPORTED_METHODS)}"
        )


@dataclass
class ResolvedConfig:
    """Resolved client configuration with defaults applied."""

    base_url: str
    timeout: TimeoutConfig
    with_credentials: bool
    headers: Dict[str, str]
    content_type: str
    dedupe_methods: frozenset
    trace: bool
    serializer: Serializer


def resolve_config(config: ClientConfig) -> ResolvedConfig:
    """Resolve client configuration with defaults."""
    validate_config(config)

    return ResolvedConfig(
        base_url=config.base_url,
        timeout=normalize_timeout(config.timeout),
        with_credentials=config.with_credentials,
        headers=dict(config.headers),
        content_type=config.content_type or DEFAULT_CONTENT_TYPE,
        dedupe_methods=frozenset(m.upper() for m in config.dedupe_methods),
        trace=config.trace,
        serializer=config.serializer or default_serializer,
    )


# =============================================================================
# Environment and YAML loading
# =============================================================================


class ApiClientSettings(BaseModel):
    """``api_client`` section of server.{APP_ENV}.yaml."""

    base_url: Optional[str] = None
    timeout_ms: Optional[int] = Field(default=None, ge=0)
    with_credentials: bool = True
    headers: Dict[str, str] = Field(default_factory=dict)
    dedupe_methods: List[str] = Field(default_factory=lambda: ["GET", "DELETE"])
    trace: bool = False


def _env_flag(value: str) -> bool:
    return value.strip().lower() in _TRUTHY


def _apply_env(settings: ApiClientSettings, environ: Dict[str, str]) -> ApiClientSettings:
    """Environment variables override file values."""
    updates: Dict[str, Any] = {}
    if environ.get(ENV_BASE_URL):
        updates["base_url"] = environ[ENV_BASE_URL]
    if environ.get(ENV_TIMEOUT_MS):
        try:
            updates["timeout_ms"] = int(environ[ENV_TIMEOUT_MS])
        except ValueError as e:
            raise ValueError(
                f"{ENV_TIMEOUT_MS} must be an integer, got: {environ[ENV_TIMEOUT_MS]!r}"
            ) from e
    if environ.get(ENV_WITH_CREDENTIALS):
        updates["with_credentials"] = _env_flag(environ[ENV_WITH_CREDENTIALS])
    if environ.get(ENV_TRACE):
        updates["trace"] = _env_flag(environ[ENV_TRACE])
    return settings.model_copy(update=updates) if updates else settings


def settings_to_config(settings: ApiClientSettings) -> ClientConfig:
    """Build a ClientConfig from validated settings."""
    timeout = settings.timeout_ms / 1000 if settings.timeout_ms is not None else None
    return ClientConfig(
        base_url=settings.base_url or "",
        timeout=timeout,
        with_credentials=settings.with_credentials,
        headers=dict(settings.headers),
        dedupe_methods=list(settings.dedupe_methods),
        trace=settings.trace,
    )


def config_from_env(environ: Optional[Dict[str, str]] = None) -> ClientConfig:
    """
    Build a ClientConfig from environment variables.

    Recognized: API_BASE_URL, API_TIMEOUT_MS, API_WITH_CREDENTIALS, API_TRACE.
    """
    env = dict(os.environ) if environ is None else environ
    return settings_to_config(_apply_env(ApiClientSettings(), env))


def _find_config_path(base_path: Path, app_env: str) -> Optional[Path]:
    """Find the configuration file based on APP_ENV."""
    env_specific = base_path / f"server.{app_env}.yaml"
    if env_specific.exists():
        logger.debug(f"Using environment-specific config: {env_specific}")
        return env_specific

    default = base_path / "server.yaml"
    if default.exists():
        logger.debug(f"Using default config: {default}")
        return default

    return None


def load_config(
    config_dir: Union[str, Path],
    app_env: Optional[str] = None,
    environ: Optional[Dict[str, str]] = None,
) -> ClientConfig:
    """
    Load client configuration from YAML, then apply environment overrides.

    Args:
        config_dir: Directory holding server.{APP_ENV}.yaml or server.yaml
        app_env: Environment name (default: from APP_ENV env var or 'dev')
        environ: Environment mapping (default: os.environ)

    Raises:
        yaml.YAMLError: The file is not valid YAML.
        pydantic.ValidationError: The api_client section is invalid.
    """
    env = dict(os.environ) if environ is None else environ
    app_env = app_env or env.get("APP_ENV", "dev")

    config_path = _find_config_path(Path(config_dir), app_env)
    raw: Dict[str, Any] = {}
    if config_path is None:
        logger.info(f"No server config found in {config_dir} for APP_ENV={app_env}, using env only")
    else:
        raw = yaml.safe_load(config_path.read_text()) or {}
        logger.info(f"Loaded api_client config from: {config_path}")

    settings = ApiClientSettings.model_validate(raw.get("api_client") or {})
    return settings_to_config(_apply_env(settings, env))
