from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field

from meet import CONFIG_PATH, PROJECT_ROOT

logger = logging.getLogger(__name__)


# =============================================================================
# MeetConfig (args/meet.yaml)
# =============================================================================

class AppConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    name: str = Field(default="Meet Service")
    env: str = Field(default="development")
    version: str = Field(default="0.1.0")
    url: str = Field(default="http://localhost")
    host: str = Field(default="127.0.0.1")
    port: int = Field(default=8080, ge=1, le=65535)
    rest_prefix: str = Field(default="/api/v1")
    allowed_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:3000", "http://127.0.0.1:3000"]
    )


class AuthConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    service_url: str = Field(default="http://localhost:8082")
    timeout_seconds: float = Field(default=5.0, gt=0)
    require_auth: bool = Field(default=True)
    trust_gateway_headers: bool = Field(default=False)
    elevated_roles: list[str] = Field(default_factory=lambda: ["Programmer"])


class StorageConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    db_path: str = Field(default="data/meets.db")
    timeout_seconds: float = Field(default=5.0, gt=0)

    def resolved_db_path(self) -> Path:
        path = Path(self.db_path)
        if not path.is_absolute():
            path = PROJECT_ROOT / path
        return path


class AvailabilityConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    default_days: int = Field(default=6, ge=0)


class LoggingConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    level: str = Field(default="debug")
    format: str = Field(default="console")


class MeetConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    app: AppConfig = Field(default_factory=AppConfig)
    auth: AuthConfig = Field(default_factory=AuthConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    availability: AvailabilityConfig = Field(default_factory=AvailabilityConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


# =============================================================================
# Environment overrides
# =============================================================================

# env var -> (section, key)
ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "APP_NAME": ("app", "name"),
    "APP_ENV": ("app", "env"),
    "APP_VERSION": ("app", "version"),
    "APP_URL": ("app", "url"),
    "APP_HOST": ("app", "host"),
    "APP_PORT": ("app", "port"),
    "REST_PREFIX": ("app", "rest_prefix"),
    "AUTH_SERVICE": ("auth", "service_url"),
    "AUTH_TIMEOUT": ("auth", "timeout_seconds"),
    "DB_PATH": ("storage", "db_path"),
    "DB_TIMEOUT": ("storage", "timeout_seconds"),
    "LOG_LEVEL": ("logging", "level"),
    "LOG_FORMAT": ("logging", "format"),
}


def apply_env_overrides(raw: dict[str, Any], environ: dict[str, str] | None = None) -> dict[str, Any]:
    """Overlay environment variables onto raw config data. Returns a new dict."""
    environ = os.environ if environ is None else environ
    merged = {section: dict(values or {}) for section, values in raw.items()}

    for env_name, (section, key) in ENV_OVERRIDES.items():
        value = environ.get(env_name)
        if value:
            merged.setdefault(section, {})[key] = value

    return merged


# =============================================================================
# load_config
# =============================================================================

def load_config(path: Path | None = None, environ: dict[str, str] | None = None) -> MeetConfig:
    """
    Load and validate the service configuration.

    Reads YAML from `path` (default: $MEET_CONFIG or args/meet.yaml), overlays
    environment variables, and validates. Invalid configuration is logged and
    replaced by defaults.
    """
    environ = os.environ if environ is None else environ
    if path is None:
        path = Path(environ["MEET_CONFIG"]) if environ.get("MEET_CONFIG") else CONFIG_PATH

    try:
        if path.exists():
            with open(path) as f:
                raw = yaml.safe_load(f) or {}
        else:
            raw = {}

        return MeetConfig.model_validate(apply_env_overrides(raw, environ))
    except Exception as e:
        logger.warning(f"Config validation failed for {path}: {e}, using defaults")
        return MeetConfig()
