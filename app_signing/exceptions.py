"""Custom exception hierarchy for app-signing credential resolution.

This module defines a structured exception hierarchy that lets callers tell
apart configuration mistakes, per-slot resolution failures and remote service
failures, and show actionable guidance for each.

Exception Hierarchy:
    AppSigningError (base)
    ├── ConfigurationError
    │   └── IncompleteEnvironmentError
    ├── CredentialError
    │   ├── SlotResolutionError
    │   │   └── CredentialValidationError
    │   └── BackendNotAvailableError
    ├── ServiceError
    │   ├── RetryableServiceError
    │   └── TerminalServiceError
    ├── BuildInProgressError
    └── UserDeclined

Example Usage:
    >>> from app_signing.exceptions import ConfigurationError
    >>> if not identity.bundle_identifier:
    ...     raise ConfigurationError("Your project must have a bundleIdentifier set in app.json")
"""

from typing import Any


class AppSigningError(Exception):
    """Base exception for all app-signing errors.

    Attributes:
        message: Human-readable error description
    """

    def __init__(self, message: str) -> None:
        """Initialize exception.

        Args:
            message: Error message
        """
        self.message = message
        super().__init__(message)


class ConfigurationError(AppSigningError):
    """Required static configuration is missing or invalid.

    Raised before any network call is attempted.

    Examples:
        - No bundle identifier in app.json
        - Invalid YAML in the settings file
        - CI mode without a complete environment mapping for a slot
    """

    pass


class IncompleteEnvironmentError(ConfigurationError):
    """Some, but not all, environment variables of a slot are set.

    Attributes:
        slot: Name of the credential slot
        missing: Environment variables that still need a value
    """

    def __init__(self, slot: str, missing: list[str]) -> None:
        self.slot = slot
        self.missing = list(missing)
        super().__init__(f"Incomplete environment for credential '{slot}': missing {', '.join(self.missing)}")


class CredentialError(AppSigningError):
    """Credential-related errors.

    Attributes:
        message: Human-readable error description
        slot: Credential slot that failed (e.g., "certP12")
        reference: Credential reference that failed (e.g., "@keyring:appsign/token")
        suggestion: Optional suggestion for resolution
    """

    def __init__(
        self,
        message: str,
        slot: str | None = None,
        reference: str | None = None,
        suggestion: str | None = None,
    ) -> None:
        """Initialize exception.

        Args:
            message: Error message
            slot: Credential slot that failed
            reference: The credential reference that failed
            suggestion: Optional suggestion for resolution
        """
        self.slot = slot
        self.reference = reference
        self.suggestion = suggestion

        full_message = message
        if slot:
            full_message = f"{message} (credential: {slot})"
        if reference:
            full_message = f"{full_message} (reference: {reference})"
        if suggestion:
            full_message = f"{full_message}\nSuggestion: {suggestion}"

        super().__init__(full_message)
        # Preserve original message (super sets self.message to full_message)
        self.message = message


class SlotResolutionError(CredentialError):
    """A specific slot could not be resolved.

    Examples:
        - Certificate file does not exist
        - Empty answer for a required field
    """

    pass


class CredentialValidationError(SlotResolutionError):
    """The remote service rejected a credential during validation.

    Attributes:
        reason: Service reason code, if any
        payload: Raw diagnostic payload returned by the service
    """

    def __init__(
        self,
        message: str,
        slot: str | None = None,
        reason: str | None = None,
        payload: Any = None,
        suggestion: str | None = None,
    ) -> None:
        self.reason = reason
        self.payload = payload
        super().__init__(message, slot=slot, suggestion=suggestion)


class BackendNotAvailableError(CredentialError):
    """Requested secret backend is not available on this system."""

    pass


class ServiceError(AppSigningError):
    """Failure reported by the remote credentials/build service.

    Attributes:
        reason: Service reason code (e.g., "NO_BUNDLE_ID")
        payload: Raw diagnostic payload returned by the service
        status_code: HTTP status code (if applicable)
        slot: Credential slot being resolved when the call failed, if any
    """

    def __init__(
        self,
        message: str,
        reason: str | None = None,
        payload: Any = None,
        status_code: int | None = None,
        slot: str | None = None,
    ) -> None:
        self.reason = reason
        self.payload = payload
        self.status_code = status_code
        self.slot = slot

        full_message = message
        if reason:
            full_message = f"{message} (reason: {reason})"
        if status_code:
            full_message = f"{full_message} (HTTP {status_code})"

        super().__init__(full_message)
        self.message = message


class RetryableServiceError(ServiceError):
    """The service signalled a recoverable precondition.

    Examples:
        - App id not registered yet (NO_BUNDLE_ID)
        - Multiple provisioning profiles exist (MULTIPLE_PROFILES)
    """

    pass


class TerminalServiceError(ServiceError):
    """Any service failure that must not be retried."""

    pass


class BuildInProgressError(AppSigningError):
    """Another build for the same app is already in flight."""

    pass


class UserDeclined(AppSigningError):
    """The operator declined a destructive confirmation.

    Not a failure: callers treat it as a no-op.
    """

    pass
