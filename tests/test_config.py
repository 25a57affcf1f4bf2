"""
Unit tests for the configuration module.

Tests cover Pydantic model validation, environment variable substitution,
and YAML configuration loading.
"""

from pathlib import Path
from typing import Any

import pytest
from pydantic import ValidationError

from rss_webhook.config import (
    AppConfig,
    DefaultsConfig,
    ServerConfig,
    StorageConfig,
    TargetConfig,
    _substitute_env_vars,
    load_config,
)


class TestTargetConfig:
    """Tests for TargetConfig Pydantic model."""

    def test_minimal_target(self) -> None:
        """Test TargetConfig with required fields only."""
        target = TargetConfig(
            name="Feed",
            feed_url="https://example.com/feed.xml",
            webhook_url="https://discord.example/hook",
        )

        assert target.name == "Feed"
        assert target.enabled is True

    def test_empty_name_raises(self) -> None:
        """Test that an empty display name is rejected."""
        with pytest.raises(ValidationError):
            TargetConfig(
                name="",
                feed_url="https://example.com/feed.xml",
                webhook_url="https://discord.example/hook",
            )

    def test_whitespace_webhook_raises(self) -> None:
        """Test that a whitespace-only webhook URL is rejected."""
        with pytest.raises(ValidationError):
            TargetConfig(
                name="Feed",
                feed_url="https://example.com/feed.xml",
                webhook_url="   ",
            )

    def test_is_immutable(self, test_target: TargetConfig) -> None:
        """Test that targets cannot be modified after creation."""
        with pytest.raises(ValidationError):
            test_target.name = "Other"


class TestDefaultsConfig:
    """Tests for DefaultsConfig Pydantic model."""

    def test_default_values(self) -> None:
        """Test DefaultsConfig default values."""
        defaults = DefaultsConfig()

        assert defaults.check_interval == 300
        assert defaults.request_timeout == 30
        assert defaults.fetch_max_attempts == 3
        assert defaults.webhook_max_attempts == 3
        assert defaults.max_retry_after == 60.0
        assert defaults.proxy is None

    def test_zero_attempts_raises(self) -> None:
        """Test that at least one attempt is required."""
        with pytest.raises(ValidationError):
            DefaultsConfig(fetch_max_attempts=0)


class TestStorageConfig:
    """Tests for StorageConfig Pydantic model."""

    def test_default_ttl_is_ten_days(self) -> None:
        """Test the default seen-record lifetime."""
        storage = StorageConfig()

        assert storage.ttl_days == 10
        assert storage.ttl_seconds == 10 * 24 * 60 * 60

    def test_non_positive_ttl_raises(self) -> None:
        """Test that TTL must be positive."""
        with pytest.raises(ValidationError):
            StorageConfig(ttl_days=0)


class TestServerConfig:
    """Tests for ServerConfig Pydantic model."""

    def test_disabled_by_default(self) -> None:
        """Test that HTTP requests are disabled by default."""
        assert ServerConfig().enable_http_request is False

    def test_flag_from_string(self) -> None:
        """Test that the flag accepts the strings env substitution produces."""
        assert ServerConfig(enable_http_request="true").enable_http_request is True


class TestAppConfig:
    """Tests for AppConfig Pydantic model."""

    def test_empty_targets_raises(self) -> None:
        """Test that at least one target is required."""
        with pytest.raises(ValidationError) as exc_info:
            AppConfig(targets=[])

        assert "At least one target" in str(exc_info.value)

    def test_duplicate_names_raise(self, minimal_config_dict: dict[str, Any]) -> None:
        """Test that target names must be unique."""
        minimal_config_dict["targets"].append(dict(minimal_config_dict["targets"][0]))

        with pytest.raises(ValidationError) as exc_info:
            AppConfig.model_validate(minimal_config_dict)

        assert "Duplicate target names" in str(exc_info.value)

    def test_minimal_valid(self, minimal_app_config: AppConfig) -> None:
        """Test minimal configuration uses defaults."""
        assert len(minimal_app_config.targets) == 1
        assert minimal_app_config.server is None
        assert minimal_app_config.storage.database_path == "data/rss_webhook.db"


class TestEnvVarSubstitution:
    """Tests for environment variable substitution."""

    def test_simple_substitution(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test simple ${VAR} substitution."""
        monkeypatch.setenv("TEST_VAR", "test_value")

        result = _substitute_env_vars("${TEST_VAR}")

        assert result == "test_value"

    def test_default_value(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test ${VAR:-default} substitution when var is not set."""
        monkeypatch.delenv("NONEXISTENT_VAR", raising=False)

        result = _substitute_env_vars("${NONEXISTENT_VAR:-default_value}")

        assert result == "default_value"

    def test_missing_var_no_default(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that missing var without default returns original placeholder."""
        monkeypatch.delenv("MISSING_VAR", raising=False)

        result = _substitute_env_vars("${MISSING_VAR}")

        assert result == "${MISSING_VAR}"

    def test_nested_structures(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test substitution in nested dictionaries and lists."""
        monkeypatch.setenv("DISCORD_WEBHOOK_URL_IT", "https://discord.example/it")

        data = {"targets": [{"webhook_url": "${DISCORD_WEBHOOK_URL_IT}", "enabled": True}]}

        result = _substitute_env_vars(data)

        assert result["targets"][0]["webhook_url"] == "https://discord.example/it"
        assert result["targets"][0]["enabled"] is True


class TestLoadConfig:
    """Tests for load_config function."""

    def test_file_not_found(self, tmp_path: Path) -> None:
        """Test that FileNotFoundError is raised for missing file."""
        with pytest.raises(FileNotFoundError) as exc_info:
            load_config(tmp_path / "nonexistent.yaml")

        assert "Configuration file not found" in str(exc_info.value)

    def test_empty_file(self, tmp_path: Path) -> None:
        """Test that ValueError is raised for empty config file."""
        config_file = tmp_path / "empty.yaml"
        config_file.write_text("")

        with pytest.raises(ValueError) as exc_info:
            load_config(config_file)

        assert "empty" in str(exc_info.value).lower()

    def test_valid_config(
        self, sample_config_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test loading a valid configuration file."""
        monkeypatch.delenv("TEST_WEBHOOK_URL", raising=False)

        config = load_config(sample_config_path)

        assert isinstance(config, AppConfig)
        assert [t.name for t in config.targets] == ["Test Feed", "Atom Feed"]
        assert config.targets[1].webhook_url == "https://discord.example/api/webhooks/2/def"
        assert config.storage.ttl_days == 5
        assert config.defaults.check_interval == 600

    def test_config_with_env_vars(
        self, sample_config_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test loading config with environment variable substitution."""
        monkeypatch.setenv("TEST_WEBHOOK_URL", "https://discord.example/from-env")

        config = load_config(str(sample_config_path))

        assert config.targets[1].webhook_url == "https://discord.example/from-env"

    def test_validation_error_on_invalid_config(self, tmp_path: Path) -> None:
        """Test that ValidationError is raised for invalid config structure."""
        config_file = tmp_path / "invalid.yaml"
        config_file.write_text(
            """
targets:
  - name: "Test"
    feed_url: "https://example.com/feed.xml"
"""
        )

        with pytest.raises(ValidationError):
            load_config(config_file)
