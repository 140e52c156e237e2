"""
Configuration management and loading.

Handles application settings from a YAML file and environment variables.
"""

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml


ENV_CONFIG_PATH = "CAKECRAFT_CONFIG"


@dataclass(frozen=True)
class StorageConfig:
    """Locations of the pricing document, its backups and the order database."""
    pricing_path: str = "data/pricing-structure.json"
    backup_dir: str = "data/pricing-backups"
    db_path: str = "data/cakecraft.db"

    def __post_init__(self):
        """Validate paths are not empty."""
        for name in ("pricing_path", "backup_dir", "db_path"):
            if not str(getattr(self, name)).strip():
                raise ValueError(f"storage.{name} must not be empty")


@dataclass(frozen=True)
class AdminConfig:
    """Admin credentials and session lifetime."""
    username: str = "admin"
    password: str = "admin123"
    session_ttl_hours: float = 24
    sweep_interval_seconds: float = 3600

    def __post_init__(self):
        """Validate admin settings."""
        if not self.username:
            raise ValueError("admin.username must not be empty")
        if not self.password:
            raise ValueError("admin.password must not be empty")
        if self.session_ttl_hours <= 0:
            raise ValueError("admin.session_ttl_hours must be > 0")
        if self.sweep_interval_seconds <= 0:
            raise ValueError("admin.sweep_interval_seconds must be > 0")


@dataclass(frozen=True)
class EmailConfig:
    """SMTP relay used for order notifications."""
    host: str = "smtp-relay.brevo.com"
    port: int = 587
    user: Optional[str] = None
    password: Optional[str] = None
    from_address: str = "orders@cakecraftpro.com"
    admin_address: Optional[str] = None
    use_tls: bool = True

    def __post_init__(self):
        """Validate SMTP port."""
        if not 0 < self.port < 65536:
            raise ValueError("email.port must be between 1 and 65535")

    @property
    def enabled(self) -> bool:
        """Whether enough is configured to send notifications."""
        return bool(self.admin_address and self.user and self.password)


@dataclass(frozen=True)
class AppSettings:
    """Complete application configuration."""
    storage: StorageConfig = field(default_factory=StorageConfig)
    admin: AdminConfig = field(default_factory=AdminConfig)
    email: EmailConfig = field(default_factory=EmailConfig)


_SECTION_KEYS = {
    "storage": {"pricing_path", "backup_dir", "db_path"},
    "admin": {"username", "password", "session_ttl_hours", "sweep_interval_seconds"},
    "email": {"host", "port", "user", "password", "from_address", "admin_address", "use_tls"},
}

# environment variable -> (section, key)
_ENV_OVERRIDES = {
    "CAKECRAFT_PRICING_PATH": ("storage", "pricing_path"),
    "CAKECRAFT_BACKUP_DIR": ("storage", "backup_dir"),
    "CAKECRAFT_DB_PATH": ("storage", "db_path"),
    "ADMIN_USERNAME": ("admin", "username"),
    "ADMIN_PASSWORD": ("admin", "password"),
    "CAKECRAFT_SESSION_TTL_HOURS": ("admin", "session_ttl_hours"),
    "SMTP_HOST": ("email", "host"),
    "SMTP_PORT": ("email", "port"),
    "SMTP_USER": ("email", "user"),
    "SMTP_PASS": ("email", "password"),
    "FROM_EMAIL": ("email", "from_address"),
    "ADMIN_EMAIL": ("email", "admin_address"),
}


def load_settings(path: Optional[str] = None, env: Optional[Mapping[str, str]] = None) -> AppSettings:
    """Load and validate application settings.

    Values come from the YAML file (if any) and are then overridden by
    environment variables. Strict validation rejects unknown keys so a
    typo never silently falls back to a default.

    Args:
        path: Path to a YAML configuration file. Defaults to $CAKECRAFT_CONFIG.
        env: Environment mapping (defaults to os.environ)

    Returns:
        Validated AppSettings object

    Raises:
        FileNotFoundError: If an explicit config file doesn't exist
        yaml.YAMLError: If YAML is invalid
        ValueError: If configuration is invalid
    """
    env = os.environ if env is None else env
    path = path or env.get(ENV_CONFIG_PATH)

    raw_config: Dict[str, Any] = {}
    if path:
        raw_config = _read_yaml(path)

    sections: Dict[str, Dict[str, Any]] = {name: {} for name in _SECTION_KEYS}
    for name, data in raw_config.items():
        sections[name] = dict(data)

    for var, (section, key) in _ENV_OVERRIDES.items():
        value = env.get(var)
        if value not in (None, ""):
            sections[section][key] = value

    return AppSettings(
        storage=StorageConfig(**{k: str(v) for k, v in sections["storage"].items()}),
        admin=_parse_admin(sections["admin"]),
        email=_parse_email(sections["email"]),
    )


def _read_yaml(path: str) -> Dict[str, Any]:
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(config_path, 'r', encoding='utf-8') as f:
        try:
            raw_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise yaml.YAMLError(f"Invalid YAML in config file {path}: {e}")

    if raw_config is None:
        return {}
    if not isinstance(raw_config, dict):
        raise ValueError("Configuration must be a mapping")

    unknown_keys = set(raw_config.keys()) - set(_SECTION_KEYS)
    if unknown_keys:
        raise ValueError(f"Unknown configuration keys: {unknown_keys}")

    for name, data in raw_config.items():
        if data is None:
            raw_config[name] = {}
            continue
        if not isinstance(data, dict):
            raise ValueError(f"'{name}' must be a dictionary")
        unknown = set(data.keys()) - _SECTION_KEYS[name]
        if unknown:
            raise ValueError(f"Unknown {name} keys: {unknown}")

    return raw_config


def _parse_admin(data: Dict[str, Any]) -> AdminConfig:
    admin = AdminConfig()
    values: Dict[str, Any] = {}
    if "username" in data:
        values["username"] = str(data["username"])
    if "password" in data:
        values["password"] = str(data["password"])
    if "session_ttl_hours" in data:
        values["session_ttl_hours"] = _to_number(data["session_ttl_hours"], "admin.session_ttl_hours")
    if "sweep_interval_seconds" in data:
        values["sweep_interval_seconds"] = _to_number(
            data["sweep_interval_seconds"], "admin.sweep_interval_seconds"
        )
    return replace(admin, **values)


def _parse_email(data: Dict[str, Any]) -> EmailConfig:
    values: Dict[str, Any] = {}
    for key in ("host", "user", "password", "from_address", "admin_address"):
        if key in data and data[key] is not None:
            values[key] = str(data[key])
    if "port" in data:
        port = _to_number(data["port"], "email.port")
        if port != int(port):
            raise ValueError("'email.port' must be an integer")
        values["port"] = int(port)
    if "use_tls" in data:
        values["use_tls"] = _to_bool(data["use_tls"], "email.use_tls")
    return EmailConfig(**values)


def _to_number(value: Any, path: str) -> float:
    if isinstance(value, bool):
        raise ValueError(f"'{path}' must be a number")
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValueError(f"'{path}' must be a number")


def _to_bool(value: Any, path: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.lower() in ("true", "1", "yes"):
        return True
    if isinstance(value, str) and value.lower() in ("false", "0", "no"):
        return False
    raise ValueError(f"'{path}' must be a boolean")
