"""
Configuration management with schema validation.
Single source of truth for request desk settings.

Values come from an optional YAML file, then environment variables
(loaded through python-dotenv) override individual keys.
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError

from .exceptions import ConfigError

# Load environment variables
load_dotenv()

DEFAULT_CONFIG_FILE = Path("config") / "settings.yaml"

# Published in this repository, so never acceptable in production
PUBLIC_SECRET_KEYS = frozenset({"change-me"})
PUBLIC_ADMIN_PASSWORDS = frozenset({"admin123"})


class AppSettings(BaseModel):
    name: str = "Request Desk"
    version: str = "1.0.0"
    environment: str = "development"


class SessionSettings(BaseModel):
    secret_key: str = ""  # required; REQUEST_DESK_SECRET_KEY
    expiry_days: int = Field(default=7, ge=1)
    bcrypt_rounds: int = Field(default=12, ge=4, le=31)
    admin_username: str = "admin"
    admin_password: str = "admin123"


class RequestSettings(BaseModel):
    sla_days: int = Field(default=30, ge=1)
    latency_seconds: float = Field(default=1.0, ge=0)
    categories_file: Optional[str] = None
    snapshot_file: Optional[str] = None


class LoggingSettings(BaseModel):
    level: str = "INFO"
    format: str = "json"
    file_path: Optional[str] = None
    max_bytes: int = 10485760
    backup_count: int = 5


class Settings(BaseModel):
    """Main configuration model"""
    app: AppSettings = Field(default_factory=AppSettings)
    data_dir: str = "data"
    session: SessionSettings = Field(default_factory=SessionSettings)
    requests: RequestSettings = Field(default_factory=RequestSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @property
    def data_path(self) -> Path:
        return Path(self.data_dir)

    @property
    def is_production(self) -> bool:
        return self.app.environment.strip().lower() == "production"

    @property
    def snapshot_path(self) -> Optional[Path]:
        """Request snapshot location; relative paths live under data_dir."""
        if not self.requests.snapshot_file:
            return None
        path = Path(self.requests.snapshot_file)
        return path if path.is_absolute() else self.data_path / path


# env var -> (section, key); section None means top level
_ENV_OVERRIDES = {
    "REQUEST_DESK_DATA_DIR": (None, "data_dir"),
    "REQUEST_DESK_SECRET_KEY": ("session", "secret_key"),
    "REQUEST_DESK_ADMIN_USERNAME": ("session", "admin_username"),
    "REQUEST_DESK_ADMIN_PASSWORD": ("session", "admin_password"),
    "REQUEST_DESK_BCRYPT_ROUNDS": ("session", "bcrypt_rounds"),
    "REQUEST_DESK_LATENCY_SECONDS": ("requests", "latency_seconds"),
    "REQUEST_DESK_CATEGORIES_FILE": ("requests", "categories_file"),
    "REQUEST_DESK_SNAPSHOT_FILE": ("requests", "snapshot_file"),
    "LOG_LEVEL": ("logging", "level"),
    "ENVIRONMENT": ("app", "environment"),
}


def _read_yaml(path: Path) -> Dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
    except (yaml.YAMLError, OSError) as e:
        raise ConfigError(f"Failed to load config from {path}: {str(e)}")
    if not isinstance(raw, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")
    return raw


def load_settings(config_path: Optional[Path] = None) -> Settings:
    """
    Build Settings from YAML (if present) plus environment overrides.

    config_path defaults to $REQUEST_DESK_CONFIG or config/settings.yaml.
    A missing file is not an error; a malformed one is.
    """
    path = config_path or Path(os.getenv("REQUEST_DESK_CONFIG", str(DEFAULT_CONFIG_FILE)))
    data: Dict[str, Any] = _read_yaml(path) if path.exists() else {}

    for env_name, (section, key) in _ENV_OVERRIDES.items():
        value = os.getenv(env_name)
        if value is None or value == "":
            continue
        if section is None:
            data[key] = value
        else:
            data.setdefault(section, {})[key] = value

    try:
        return Settings(**data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}")


def check_secrets(settings: Settings) -> None:
    """
    Refuse to start without a session signing key or admin password.

    In production the values published with this repository are rejected too.
    """
    session = settings.session
    if not session.secret_key:
        raise ConfigError("session.secret_key must be set (REQUEST_DESK_SECRET_KEY)")
    if not session.admin_password:
        raise ConfigError("session.admin_password must be set (REQUEST_DESK_ADMIN_PASSWORD)")
    if not settings.is_production:
        return
    if session.secret_key in PUBLIC_SECRET_KEYS:
        raise ConfigError("Refusing to run in production with the published session.secret_key")
    if session.admin_password in PUBLIC_ADMIN_PASSWORDS:
        raise ConfigError("Refusing to run in production with the published session.admin_password")
