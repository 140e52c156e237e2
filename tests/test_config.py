"""
Unit tests for configuration loading and validation.

Tests strict validation and environment overrides.
"""

import os
import tempfile

import pytest
import yaml

from cakecraft.config.loader import (
    AdminConfig,
    AppSettings,
    EmailConfig,
    StorageConfig,
    load_settings,
)


class TestConfigLoading:
    """Test configuration loading and validation."""

    def setup_method(self):
        """Set up test environment."""
        self.temp_dir = tempfile.mkdtemp()

    def teardown_method(self):
        """Clean up test environment."""
        import shutil
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def _write_config(self, config_data, filename: str = "config.yaml") -> str:
        """Write configuration data to temporary file."""
        config_path = os.path.join(self.temp_dir, filename)
        with open(config_path, 'w', encoding='utf-8') as f:
            yaml.dump(config_data, f)
        return config_path

    def test_defaults_without_file(self):
        settings = load_settings(env={})
        assert settings == AppSettings()
        assert settings.admin.session_ttl_hours == 24
        assert settings.admin.sweep_interval_seconds == 3600
        assert settings.email.enabled is False

    def test_valid_config_loads_correctly(self):
        config_path = self._write_config({
            "storage": {
                "pricing_path": "/srv/cakes/pricing.json",
                "backup_dir": "/srv/cakes/backups",
                "db_path": "/srv/cakes/orders.db",
            },
            "admin": {"username": "baker", "password": "flour", "session_ttl_hours": 12},
            "email": {
                "host": "smtp.example.com",
                "port": 2525,
                "user": "mailer",
                "password": "pw",
                "admin_address": "shop@example.com",
                "use_tls": False,
            },
        })
        settings = load_settings(config_path, env={})

        assert settings.storage.pricing_path == "/srv/cakes/pricing.json"
        assert settings.storage.backup_dir == "/srv/cakes/backups"
        assert settings.admin.username == "baker"
        assert settings.admin.session_ttl_hours == 12.0
        assert settings.email.port == 2525
        assert settings.email.use_tls is False
        assert settings.email.enabled is True

    def test_env_overrides_file(self):
        config_path = self._write_config({"admin": {"username": "baker", "password": "flour"}})
        settings = load_settings(config_path, env={
            "ADMIN_PASSWORD": "from-env",
            "CAKECRAFT_PRICING_PATH": "/tmp/pricing.json",
            "SMTP_PORT": "465",
        })
        assert settings.admin.username == "baker"
        assert settings.admin.password == "from-env"
        assert settings.storage.pricing_path == "/tmp/pricing.json"
        assert settings.email.port == 465

    def test_config_path_from_env(self):
        config_path = self._write_config({"admin": {"username": "baker"}})
        settings = load_settings(env={"CAKECRAFT_CONFIG": config_path})
        assert settings.admin.username == "baker"

    def test_empty_file_uses_defaults(self):
        config_path = os.path.join(self.temp_dir, "empty.yaml")
        open(config_path, "w").close()
        assert load_settings(config_path, env={}) == AppSettings()

    def test_missing_file_raises(self):
        with pytest.raises(FileNotFoundError):
            load_settings(os.path.join(self.temp_dir, "nope.yaml"), env={})

    def test_invalid_yaml_raises(self):
        config_path = os.path.join(self.temp_dir, "bad.yaml")
        with open(config_path, "w", encoding="utf-8") as f:
            f.write("admin: [unclosed")
        with pytest.raises(yaml.YAMLError):
            load_settings(config_path, env={})

    def test_unknown_top_level_key(self):
        config_path = self._write_config({"payments": {}})
        with pytest.raises(ValueError, match="Unknown configuration keys"):
            load_settings(config_path, env={})

    def test_unknown_section_key(self):
        config_path = self._write_config({"admin": {"usrname": "typo"}})
        with pytest.raises(ValueError, match="Unknown admin keys"):
            load_settings(config_path, env={})

    def test_section_must_be_mapping(self):
        config_path = self._write_config({"storage": "data/"})
        with pytest.raises(ValueError, match="'storage' must be a dictionary"):
            load_settings(config_path, env={})

    def test_non_numeric_ttl(self):
        config_path = self._write_config({"admin": {"session_ttl_hours": "forever"}})
        with pytest.raises(ValueError, match="must be a number"):
            load_settings(config_path, env={})

    def test_non_positive_ttl(self):
        config_path = self._write_config({"admin": {"session_ttl_hours": 0}})
        with pytest.raises(ValueError, match="session_ttl_hours must be > 0"):
            load_settings(config_path, env={})

    def test_invalid_port(self):
        config_path = self._write_config({"email": {"port": 70000}})
        with pytest.raises(ValueError, match="email.port"):
            load_settings(config_path, env={})


class TestConfigDataclasses:
    """Test direct construction validation."""

    def test_empty_storage_path(self):
        with pytest.raises(ValueError, match="storage.db_path"):
            StorageConfig(db_path=" ")

    def test_empty_admin_password(self):
        with pytest.raises(ValueError, match="admin.password"):
            AdminConfig(password="")

    def test_email_enabled_requires_all(self):
        assert not EmailConfig(user="u", password="p").enabled
        assert EmailConfig(user="u", password="p", admin_address="a@b.c").enabled
