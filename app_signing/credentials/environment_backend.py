"""Environment variable backend for CI/CD and containerized builds."""

import logging
import os
from collections.abc import Iterable, Mapping
from types import MappingProxyType

logger = logging.getLogger(__name__)

# Prefix shared by every recognized credential override
OVERRIDE_PREFIX = "EXP_"


class EnvironmentBackend:
    """Environment variable credential source.

    Resolution never reads ``os.environ`` directly: ``snapshot`` captures the
    relevant variables once at invocation start, and every later decision is
    made against that frozen copy. Prompting may take minutes, and nothing
    that changes the process environment in the meantime should change the
    outcome.

    Example:
        >>> backend = EnvironmentBackend()
        >>> env = backend.snapshot()
        >>> env.get("EXP_APPLE_ID")
        'jdoe@example.com'
    """

    def __init__(self, environ: Mapping[str, str] | None = None) -> None:
        self._environ = environ if environ is not None else os.environ

    @property
    def name(self) -> str:
        """Get backend identifier.

        Returns:
            Backend name constant "environment"
        """
        return "environment"

    @property
    def available(self) -> bool:
        """Environment backend is always available."""
        return True

    def get(self, var_name: str) -> str | None:
        """Retrieve a single variable from the live environment.

        Args:
            var_name: Environment variable name (e.g., 'APPSIGN_TOKEN')

        Returns:
            Value or None if not set
        """
        value = self._environ.get(var_name)

        if value is not None:
            logger.debug(f"Retrieved credential from environment: {var_name}")

        return value

    def snapshot(self, names: Iterable[str] | None = None) -> Mapping[str, str]:
        """Capture a read-only copy of the credential overrides.

        Args:
            names: Variables to capture. Defaults to every variable starting
                with ``EXP_``.

        Returns:
            Read-only mapping of the captured, non-empty variables
        """
        if names is None:
            captured = {k: v for k, v in self._environ.items() if k.startswith(OVERRIDE_PREFIX) and v}
        else:
            captured = {k: self._environ[k] for k in names if self._environ.get(k)}

        logger.debug(f"Captured environment snapshot: {sorted(captured)}")
        return MappingProxyType(captured)
