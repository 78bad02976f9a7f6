"""OS-level keyring storage for the build service token.

Platform Support:
- Linux: Secret Service API (GNOME Keyring, KWallet)
- macOS: Keychain
- Windows: Windows Credential Locker
"""

import logging
from typing import cast

import keyring
from keyring.errors import KeyringError, PasswordDeleteError

from app_signing.exceptions import BackendNotAvailableError, CredentialError

logger = logging.getLogger(__name__)

NAMESPACE = "appsign"


class KeyringBackend:
    """Store secrets in the system keyring under the ``appsign/`` namespace.

    Example:
        >>> backend = KeyringBackend()
        >>> backend.set("appsign", "api_token", "tok_abc123")
        >>> backend.get("appsign", "api_token")
        'tok_abc123'
        >>> backend.delete("appsign", "api_token")
        True
    """

    @property
    def name(self) -> str:
        return "keyring"

    @property
    def available(self) -> bool:
        """False on headless systems without a usable keyring backend."""
        try:
            backend = keyring.get_keyring()
        except Exception as e:
            logger.debug(f"Keyring not available: {e}")
            return False
        # The fail backend is what keyring falls back to when nothing is configured
        return getattr(backend, "priority", 1) > 0

    def _require(self) -> None:
        if not self.available:
            raise BackendNotAvailableError(
                "Keyring backend is not available",
                suggestion="Configure a system keyring, or set the token with ${APPSIGN_TOKEN}",
            )

    def get(self, service: str, key: str) -> str | None:
        """Retrieve a secret.

        Returns:
            The secret, or None if not stored

        Raises:
            BackendNotAvailableError: If keyring is not available
            CredentialError: If the keyring operation fails
        """
        self._require()
        try:
            secret = cast(str | None, keyring.get_password(f"{NAMESPACE}/{service}", key))
        except KeyringError as e:
            raise CredentialError(f"Keyring operation failed: {e}", reference=f"@keyring:{service}/{key}") from e

        if secret is not None:
            logger.debug(f"Retrieved credential from keyring: {service}/{key}")
        return secret

    def set(self, service: str, key: str, value: str) -> None:
        """Store a secret.

        Raises:
            BackendNotAvailableError: If keyring is not available
            CredentialError: If the keyring operation fails
            ValueError: If ``value`` is empty
        """
        self._require()
        if not value:
            raise ValueError("Credential value cannot be empty")

        try:
            keyring.set_password(f"{NAMESPACE}/{service}", key, value)
        except KeyringError as e:
            raise CredentialError(f"Failed to store credential: {e}", reference=f"@keyring:{service}/{key}") from e
        logger.info(f"Stored credential in keyring: {service}/{key}")

    def delete(self, service: str, key: str) -> bool:
        """Delete a secret.

        Returns:
            True if deleted, False if it was not stored
        """
        self._require()
        try:
            keyring.delete_password(f"{NAMESPACE}/{service}", key)
        except PasswordDeleteError:
            return False
        except KeyringError as e:
            raise CredentialError(f"Failed to delete credential: {e}", reference=f"@keyring:{service}/{key}") from e

        logger.info(f"Deleted credential from keyring: {service}/{key}")
        return True
