"""
Domain models for signing-credential resolution.

This module contains the data classes that represent the app identity used as
the key for every remote call, the per-platform slot definitions, the resolved
slots and bundles, and the immutable context the resolver decides from.

Example:
    Building a bundle from what the service has stored::

        identity = CredentialIdentity(
            owner="jdoe",
            experience_name="@jdoe/weather",
            platform=Platform.IOS,
            bundle_identifier="com.jdoe.weather",
        )
        bundle = CredentialBundle.from_stored(identity, stored, IOS_SLOTS)
        if not bundle.is_present("pushP12"):
            ...
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from enum import Enum
from types import MappingProxyType
from typing import Any

from app_signing.enums import FlowMode, Platform, SlotSource


@dataclass(frozen=True)
class CredentialIdentity:
    """Identity of the app whose credentials are being resolved.

    Constructed once per invocation from project metadata and never mutated.
    """

    owner: str
    """Account that owns the app on the build service."""

    experience_name: str
    """Fully qualified app name, ``@owner/slug``."""

    platform: Platform
    """Signing platform this identity is scoped to."""

    bundle_identifier: str | None = None
    """iOS bundle identifier or Android package name, when configured."""

    def to_metadata(self) -> dict[str, str]:
        """Serialize to the metadata object the service keys credentials by."""
        metadata = {
            "username": self.owner,
            "experienceName": self.experience_name,
            "platform": self.platform.value,
        }
        if self.bundle_identifier:
            metadata["bundleIdentifier"] = self.bundle_identifier
        return metadata


class FieldKind(str, Enum):
    """How a slot field is asked for and stored."""

    TEXT = "text"
    SECRET = "secret"
    FILE = "file"
    """Value is a path; the file contents are stored base64-encoded."""


@dataclass(frozen=True)
class SlotField:
    """One payload field of a credential slot."""

    key: str
    message: str
    kind: FieldKind = FieldKind.TEXT
    env_var: str | None = None
    optional: bool = False


@dataclass(frozen=True)
class SlotSpec:
    """Static definition of a credential slot for one platform.

    The first field is the primary payload: the slot counts as present when
    the stored bundle has a non-empty value under its key.
    """

    name: str
    label: str
    platform: Platform
    fields: tuple[SlotField, ...]
    managed_kind: str | None = None
    validation_kind: str | None = None
    strategy_message: str | None = None

    @property
    def presence_key(self) -> str:
        return self.fields[0].key

    @property
    def payload_keys(self) -> tuple[str, ...]:
        return tuple(f.key for f in self.fields)

    @property
    def env_vars(self) -> tuple[str, ...]:
        return tuple(f.env_var for f in self.fields if f.env_var)

    @property
    def supports_managed(self) -> bool:
        return self.managed_kind is not None


@dataclass
class CredentialSlot:
    """A credential slot and its current value.

    ``value`` maps payload keys to stored strings (binary payloads are
    base64). It only travels in memory; the service persists it.
    """

    name: str
    present: bool = False
    required: bool = True
    source: SlotSource | None = None
    value: dict[str, str] = field(default_factory=dict)

    def __repr__(self) -> str:
        # Never render secret values
        return (
            f"CredentialSlot(name={self.name!r}, present={self.present}, "
            f"required={self.required}, source={self.source}, keys={sorted(self.value)})"
        )


@dataclass
class CredentialBundle:
    """All credential slots for one identity.

    Stored keys that no known slot owns (``extra``) are carried through
    unchanged so an upsert never drops data the service keeps for us.
    """

    identity: CredentialIdentity
    slots: dict[str, CredentialSlot] = field(default_factory=dict)
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def empty(cls, identity: CredentialIdentity) -> "CredentialBundle":
        return cls(identity=identity)

    @classmethod
    def from_stored(
        cls,
        identity: CredentialIdentity,
        stored: Mapping[str, Any] | None,
        specs: Iterable[SlotSpec],
    ) -> "CredentialBundle":
        """Build a bundle from the flat payload returned by the service."""
        bundle = cls(identity=identity)
        if not stored:
            return bundle

        owned: set[str] = set()
        for spec in specs:
            owned.update(spec.payload_keys)
            value = {key: str(stored[key]) for key in spec.payload_keys if stored.get(key) is not None}
            present = bool(stored.get(spec.presence_key))
            bundle.slots[spec.name] = CredentialSlot(
                name=spec.name,
                present=present,
                source=SlotSource.CACHED if present else None,
                value=value,
            )

        bundle.extra = {key: val for key, val in stored.items() if key not in owned}
        return bundle

    def get(self, name: str) -> CredentialSlot | None:
        return self.slots.get(name)

    def is_present(self, name: str) -> bool:
        slot = self.slots.get(name)
        return slot is not None and slot.present

    def put(self, slot: CredentialSlot) -> None:
        self.slots[slot.name] = slot

    def missing(self, required: Iterable[str]) -> list[str]:
        """Names of required slots that are not present."""
        return [name for name in required if not self.is_present(name)]

    def to_payload(self) -> dict[str, Any]:
        """Flatten to the payload the service stores."""
        payload: dict[str, Any] = dict(self.extra)
        for slot in self.slots.values():
            if slot.present:
                payload.update(slot.value)
        return payload

    def sources(self) -> dict[str, str]:
        """Provenance of every present slot, for diagnostics."""
        return {name: str(slot.source) for name, slot in self.slots.items() if slot.present}


@dataclass(frozen=True)
class ResolutionContext:
    """Everything the resolver may look at when deciding about a slot.

    Frozen: moving on to the next slot produces a new context through
    ``with_resolved`` instead of mutating shared state.
    """

    identity: CredentialIdentity
    environment: Mapping[str, str]
    cached: CredentialBundle
    resolved: Mapping[str, str] = field(default_factory=dict)
    force_refresh: bool = False
    non_interactive: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "environment", MappingProxyType(dict(self.environment)))
        object.__setattr__(self, "resolved", MappingProxyType(dict(self.resolved)))

    def env(self, var_name: str | None) -> str | None:
        """Non-empty environment value for ``var_name``, else None."""
        if not var_name:
            return None
        return self.environment.get(var_name) or None

    def with_resolved(self, values: Mapping[str, str]) -> "ResolutionContext":
        merged = dict(self.resolved)
        merged.update(values)
        return replace(self, resolved=merged)

    @property
    def team_id(self) -> str | None:
        """Apple team id from this run, falling back to the cached bundle."""
        if self.resolved.get("teamId"):
            return self.resolved["teamId"]
        apple = self.cached.get("appleId")
        if apple is not None and apple.present:
            return apple.value.get("teamId") or None
        return None


@dataclass
class BuildOptions:
    """Options for one credential resolution run.

    Attributes:
        clear_credentials: Delete stored credentials and resolve from scratch
        non_interactive: CI mode; every missing slot must come from the environment
        simulator_only: Simulator build, no signing credentials needed
        diagnostics: Verbose logging and raw service payloads in error output
        ios_flow: Which orchestrator configuration iOS uses
    """

    clear_credentials: bool = False
    non_interactive: bool = False
    simulator_only: bool = False
    diagnostics: bool = False
    ios_flow: FlowMode = FlowMode.BATCH
