"""Tests for app.json project metadata."""

import json

import pytest

from app_signing.config.project import ProjectConfig
from app_signing.enums import Platform
from app_signing.exceptions import ConfigurationError


def write_app_json(directory, content):
    (directory / "app.json").write_text(json.dumps(content))


class TestProjectConfig:
    """Tests for ProjectConfig."""

    def test_load_expo_section(self, tmp_path):
        write_app_json(
            tmp_path,
            {
                "expo": {
                    "slug": "weather",
                    "owner": "jdoe",
                    "ios": {"bundleIdentifier": "com.jdoe.weather"},
                    "android": {"package": "com.jdoe.weather.android"},
                }
            },
        )

        project = ProjectConfig.load(tmp_path)

        assert project.slug == "weather"
        assert project.ios_bundle_identifier == "com.jdoe.weather"
        assert project.android_package == "com.jdoe.weather.android"

    def test_load_top_level(self, tmp_path):
        write_app_json(tmp_path, {"slug": "weather"})
        assert ProjectConfig.load(tmp_path).slug == "weather"

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="No app.json"):
            ProjectConfig.load(tmp_path)

    def test_invalid_json(self, tmp_path):
        (tmp_path / "app.json").write_text("{not json")
        with pytest.raises(ConfigurationError, match="Cannot read"):
            ProjectConfig.load(tmp_path)

    def test_not_an_object(self, tmp_path):
        write_app_json(tmp_path, ["weather"])
        with pytest.raises(ConfigurationError, match="JSON object"):
            ProjectConfig.load(tmp_path)

    def test_missing_slug(self, tmp_path):
        write_app_json(tmp_path, {"expo": {"owner": "jdoe"}})
        with pytest.raises(ConfigurationError, match="slug"):
            ProjectConfig.load(tmp_path)

    def test_identity_per_platform(self):
        project = ProjectConfig(
            slug="weather", owner="jdoe", ios_bundle_identifier="com.jdoe.ios", android_package="com.jdoe.android"
        )

        ios = project.identity(Platform.IOS)
        android = project.identity(Platform.ANDROID)

        assert ios.experience_name == "@jdoe/weather"
        assert ios.bundle_identifier == "com.jdoe.ios"
        assert android.bundle_identifier == "com.jdoe.android"

    def test_owner_beats_username(self):
        project = ProjectConfig(slug="weather", owner="team")
        assert project.identity(Platform.IOS, username="jdoe").owner == "team"

    def test_username_fallback(self):
        identity = ProjectConfig(slug="weather").identity(Platform.ANDROID, username="jdoe")
        assert identity.experience_name == "@jdoe/weather"

    def test_no_owner(self):
        with pytest.raises(ConfigurationError, match="owns this app"):
            ProjectConfig(slug="weather").identity(Platform.IOS)
