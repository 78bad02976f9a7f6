"""Tests for settings loading."""

import pytest

from app_signing.config.settings import AppSigningSettings
from app_signing.enums import FlowMode
from app_signing.exceptions import ConfigurationError


@pytest.fixture
def home(tmp_path, monkeypatch):
    """Isolated home directory without a settings file."""
    monkeypatch.setenv("HOME", str(tmp_path))
    for name in ("APPSIGN_SERVICE__BASE_URL", "APPSIGN_BUILD__IOS_FLOW", "APPSIGN_ACCOUNT__USERNAME"):
        monkeypatch.delenv(name, raising=False)
    return tmp_path


class TestDefaults:
    def test_defaults(self, home):
        settings = AppSigningSettings.load()

        assert str(settings.service.base_url).startswith("https://builds.example.com/api/v2")
        assert settings.service.api_token == "@keyring:appsign/api_token"
        assert settings.build.ios_flow == FlowMode.BATCH
        assert settings.account.username is None

    def test_default_file_used_when_present(self, home):
        (home / ".appsign").mkdir()
        (home / ".appsign" / "config.yaml").write_text("account:\n  username: jdoe\n")

        assert AppSigningSettings.load().account.username == "jdoe"

    def test_environment_override(self, home, monkeypatch):
        monkeypatch.setenv("APPSIGN_BUILD__IOS_FLOW", "legacy")
        assert AppSigningSettings.load().build.ios_flow == FlowMode.LEGACY


class TestFromYaml:
    """Tests for AppSigningSettings.from_yaml."""

    def test_full_file(self, home, tmp_path, monkeypatch):
        monkeypatch.delenv("APPSIGN_TOKEN_REF", raising=False)
        config = tmp_path / "config.yaml"
        config.write_text(
            "service:\n"
            "  base_url: https://builds.test/api/v2\n"
            '  api_token: "${APPSIGN_TOKEN_REF:-@keyring:appsign/ci}"\n'
            "  timeout: 10\n"
            "build:\n"
            "  ios_flow: legacy\n"
        )

        settings = AppSigningSettings.from_yaml(str(config))

        assert settings.service.api_token == "@keyring:appsign/ci"
        assert settings.service.timeout == 10
        assert settings.build.ios_flow == FlowMode.LEGACY

    def test_interpolates_environment(self, home, tmp_path, monkeypatch):
        monkeypatch.setenv("CI_USER", "robot")
        config = tmp_path / "config.yaml"
        config.write_text("account:\n  username: ${CI_USER}\n")

        assert AppSigningSettings.from_yaml(str(config)).account.username == "robot"

    def test_comment_lines_not_interpolated(self, home, tmp_path):
        config = tmp_path / "config.yaml"
        config.write_text("# username: ${NOT_SET_ANYWHERE}\naccount: {}\n")

        assert AppSigningSettings.from_yaml(str(config)).account.username is None

    def test_empty_file(self, home, tmp_path):
        config = tmp_path / "config.yaml"
        config.write_text("")

        assert AppSigningSettings.from_yaml(str(config)).build.project_dir == "."

    def test_missing_file(self, home):
        with pytest.raises(ConfigurationError, match="not found"):
            AppSigningSettings.load("/nonexistent/config.yaml")

    def test_unset_variable(self, home, tmp_path, monkeypatch):
        monkeypatch.delenv("APPSIGN_MISSING_VAR", raising=False)
        config = tmp_path / "config.yaml"
        config.write_text("account:\n  username: ${APPSIGN_MISSING_VAR}\n")

        with pytest.raises(ConfigurationError, match="APPSIGN_MISSING_VAR"):
            AppSigningSettings.from_yaml(str(config))

    def test_invalid_yaml(self, home, tmp_path):
        config = tmp_path / "config.yaml"
        config.write_text("service: [unclosed\n")

        with pytest.raises(ConfigurationError, match="Invalid YAML"):
            AppSigningSettings.from_yaml(str(config))

    def test_not_a_mapping(self, home, tmp_path):
        config = tmp_path / "config.yaml"
        config.write_text("- a\n- b\n")

        with pytest.raises(ConfigurationError, match="YAML object"):
            AppSigningSettings.from_yaml(str(config))

    def test_invalid_value(self, home, tmp_path):
        config = tmp_path / "config.yaml"
        config.write_text("build:\n  ios_flow: sometimes\n")

        with pytest.raises(ConfigurationError, match="Failed to validate"):
            AppSigningSettings.from_yaml(str(config))
