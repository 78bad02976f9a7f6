"""Resolution of the build service API token reference."""

import logging
import re

from app_signing.credentials.environment_backend import EnvironmentBackend
from app_signing.credentials.keyring_backend import KeyringBackend
from app_signing.exceptions import CredentialError

logger = logging.getLogger(__name__)

TOKEN_SERVICE = "appsign"
TOKEN_KEY = "api_token"
DEFAULT_TOKEN_REFERENCE = f"@keyring:{TOKEN_SERVICE}/{TOKEN_KEY}"


class ServiceTokenResolver:
    """Resolve a token reference to the actual token.

    Supports three reference formats:
    1. @keyring:service/key - OS keyring
    2. ${VAR_NAME} - Environment variable
    3. Direct value - Returned as-is (not recommended)

    Example:
        >>> resolver = ServiceTokenResolver()
        >>> token = resolver.resolve("@keyring:appsign/api_token")
        >>> token = resolver.resolve("${APPSIGN_TOKEN}")
    """

    KEYRING_PATTERN = re.compile(r"^@keyring:([^/]+)/(.+)$")
    ENV_PATTERN = re.compile(r"^\$\{([A-Z_][A-Z0-9_]*)\}$")

    def __init__(
        self,
        keyring_backend: KeyringBackend | None = None,
        environment_backend: EnvironmentBackend | None = None,
    ) -> None:
        self.keyring_backend = keyring_backend or KeyringBackend()
        self.environment_backend = environment_backend or EnvironmentBackend()

    def resolve(self, reference: str) -> str:
        """Resolve ``reference``.

        Raises:
            CredentialError: Referenced token is not stored or not set
            BackendNotAvailableError: Keyring reference without a keyring
        """
        keyring_match = self.KEYRING_PATTERN.match(reference)
        if keyring_match:
            service, key = keyring_match.groups()
            token = self.keyring_backend.get(service, key)
            if not token:
                raise CredentialError(
                    f"Credential not found in keyring: {service}/{key}",
                    reference=reference,
                    suggestion="Log in first with:\n  appsign login",
                )
            return token

        env_match = self.ENV_PATTERN.match(reference)
        if env_match:
            var_name = env_match.group(1)
            token = self.environment_backend.get(var_name)
            if not token:
                raise CredentialError(
                    f"Environment variable not set: {var_name}",
                    reference=reference,
                    suggestion=f"Set the environment variable:\n  export {var_name}='your-token-here'",
                )
            return token

        if not reference:
            raise CredentialError("No API token configured", suggestion="Log in first with:\n  appsign login")

        logger.warning("API token appears to be a direct value. Consider using @keyring: or ${ENV_VAR} instead.")
        return reference

    def store(self, token: str) -> None:
        """Store ``token`` under the default keyring reference."""
        self.keyring_backend.set(TOKEN_SERVICE, TOKEN_KEY, token)

    def forget(self) -> bool:
        """Remove the stored token. Returns False when none was stored."""
        return self.keyring_backend.delete(TOKEN_SERVICE, TOKEN_KEY)
