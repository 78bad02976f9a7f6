"""
Abstract base classes for the remote build service.

This module defines the interfaces credential resolution depends on. The
concrete REST implementation lives in ``app_signing.providers.rest``; tests
substitute in-memory fakes.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from app_signing.enums import Platform
from app_signing.models.domain import CredentialIdentity


@dataclass
class ValidationResult:
    """Outcome of a remote credential validation.

    Attributes:
        ok: Whether the service accepted the credentials
        reason: Service reason code when rejected
        message: Human-readable explanation when rejected
        payload: Raw diagnostic payload returned by the service
    """

    ok: bool
    reason: str | None = None
    message: str | None = None
    payload: dict[str, Any] = field(default_factory=dict)


class CredentialService(ABC):
    """Remote store and generator of signing credentials.

    Every call is keyed by a ``CredentialIdentity``. Failures are raised as
    ``ServiceError`` subclasses: ``RetryableServiceError`` when the service
    names a recoverable precondition, ``TerminalServiceError`` otherwise.
    """

    @abstractmethod
    async def fetch_credentials(self, identity: CredentialIdentity) -> dict[str, Any] | None:
        """Fetch the stored credential payload.

        Returns:
            Flat payload (e.g. ``{"certP12": "...", "teamId": "..."}``) or
            None when nothing is stored for the identity.
        """
        pass

    @abstractmethod
    async def upsert_credentials(
        self,
        platform: Platform,
        payload: dict[str, Any],
        identity: CredentialIdentity,
    ) -> None:
        """Create or update stored credentials for ``identity``.

        Keys in ``payload`` overwrite stored keys; keys not in ``payload``
        are left untouched.
        """
        pass

    @abstractmethod
    async def delete_credentials(self, platform: Platform, identity: CredentialIdentity) -> None:
        """Permanently delete every stored credential for ``identity``."""
        pass

    @abstractmethod
    async def validate_credentials(
        self,
        platform: Platform,
        kind: str,
        payload: dict[str, Any] | None,
        identity: CredentialIdentity,
    ) -> ValidationResult:
        """Validate credentials remotely.

        Args:
            platform: Signing platform
            kind: What to validate ("appleId", "cert", "push",
                "provisioningProfile" or "bundle")
            payload: Credentials to validate, or None to validate what the
                service already stores
            identity: App identity
        """
        pass

    @abstractmethod
    async def generate_managed_certificate(
        self,
        kind: str,
        identity: CredentialIdentity,
        team_id: str | None,
        resolved: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Have the service generate a credential on the operator's behalf.

        Args:
            kind: "cert", "push", "provisioningProfile" or "keystore"
            identity: App identity
            team_id: Apple team id resolved earlier in the run
            resolved: Values resolved so far in this run (e.g. Apple ID
                credentials not committed yet)

        Returns:
            Payload of the generated slot (e.g. ``{"certP12": ..., "certPassword": ...}``)
        """
        pass

    @abstractmethod
    async def ensure_remote_app_registered(self, identity: CredentialIdentity, team_id: str | None) -> None:
        """Make sure the app id exists in the developer account."""
        pass


class BuildService(ABC):
    """Remote build dispatcher; only the calls that surround credential resolution."""

    @abstractmethod
    async def get_build_status(self, identity: CredentialIdentity) -> list[dict[str, Any]]:
        """Return the builds currently in flight for ``identity``."""
        pass

    @abstractmethod
    async def publish(self, identity: CredentialIdentity) -> list[str]:
        """Publish the current app state and return the published ids."""
        pass

    @abstractmethod
    async def start_build(
        self,
        identity: CredentialIdentity,
        published_ids: list[str],
        build_type: str,
    ) -> dict[str, Any]:
        """Queue a build of the published app."""
        pass
