"""Enumerations for platforms, slot provenance and resolution flow."""

from enum import Enum


class Platform(str, Enum):
    """Signing platforms supported by the remote build service."""

    ANDROID = "android"
    IOS = "ios"

    def __str__(self) -> str:
        return self.value


class SlotSource(str, Enum):
    """Where the value of a credential slot came from.

    Kept on every slot for diagnostics only; it never changes what gets
    persisted.
    """

    CACHED = "cached"
    ENVIRONMENT = "environment"
    OPERATOR_SUPPLIED = "operator-supplied"
    MANAGED_GENERATED = "managed-generated"

    def __str__(self) -> str:
        return self.value


class FlowMode(str, Enum):
    """Orchestrator configurations.

    - batch: collect every slot, validate the aggregate bundle, upsert once
    - legacy: validate cached slots one by one and commit each new slot as
      soon as it is validated
    """

    BATCH = "batch"
    LEGACY = "legacy"

    def __str__(self) -> str:
        return self.value


class NextAction(str, Enum):
    """Declarative decision for one slot, computed from a ResolutionContext."""

    USE_ENVIRONMENT = "use-environment"
    REUSE_CACHED = "reuse-cached"
    ASK_STRATEGY = "ask-strategy"
    ASK_OPERATOR = "ask-operator"
    FAIL_INCOMPLETE = "fail-incomplete"

    def __str__(self) -> str:
        return self.value
