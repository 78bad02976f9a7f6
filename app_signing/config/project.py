"""Project metadata read from the app's ``app.json``."""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from app_signing.enums import Platform
from app_signing.exceptions import ConfigurationError
from app_signing.models.domain import CredentialIdentity

APP_CONFIG_FILE = "app.json"


@dataclass(frozen=True)
class ProjectConfig:
    """The subset of ``app.json`` needed to address the build service."""

    slug: str
    owner: str | None = None
    ios_bundle_identifier: str | None = None
    android_package: str | None = None

    @classmethod
    def load(cls, project_dir: Path) -> "ProjectConfig":
        """Read ``app.json`` from ``project_dir``.

        The app config may be nested under an ``expo`` key or sit at the top
        level.

        Raises:
            ConfigurationError: Missing or unreadable file, or no slug
        """
        config_file = Path(project_dir) / APP_CONFIG_FILE
        if not config_file.is_file():
            raise ConfigurationError(f"No {APP_CONFIG_FILE} found in {project_dir}")

        try:
            with open(config_file) as f:
                raw = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Cannot read {config_file}: {e}") from e

        if not isinstance(raw, dict):
            raise ConfigurationError(f"{config_file} must contain a JSON object")

        app: dict[str, Any] = raw.get("expo", raw)
        slug = app.get("slug")
        if not slug:
            raise ConfigurationError(f"Your {APP_CONFIG_FILE} must define a slug")

        return cls(
            slug=slug,
            owner=app.get("owner"),
            ios_bundle_identifier=(app.get("ios") or {}).get("bundleIdentifier"),
            android_package=(app.get("android") or {}).get("package"),
        )

    def identity(self, platform: Platform, username: str | None = None) -> CredentialIdentity:
        """Build the credential identity for ``platform``.

        The ``owner`` from app.json takes precedence over ``username``.

        Raises:
            ConfigurationError: Neither an owner nor a username is known
        """
        owner = self.owner or username
        if not owner:
            raise ConfigurationError(
                "Cannot tell which account owns this app. Set 'owner' in app.json "
                "or account.username in the configuration file."
            )

        bundle_identifier = self.ios_bundle_identifier if platform == Platform.IOS else self.android_package
        return CredentialIdentity(
            owner=owner,
            experience_name=f"@{owner}/{self.slug}",
            platform=platform,
            bundle_identifier=bundle_identifier,
        )
