"""Interchangeable ways of obtaining the value of a credential slot.

- ``EnvironmentSource``: environment overrides captured at invocation start
- ``OperatorSuppliedSource``: answers and files provided at the prompt
- ``ManagedGenerationSource``: generation by the remote service

Each source returns the payload of one slot (``{payload_key: str}``) or raises
an error naming the slot.
"""

from collections.abc import Mapping
from typing import Any, Protocol

import structlog

from app_signing.enums import SlotSource
from app_signing.exceptions import (
    IncompleteEnvironmentError,
    RetryableServiceError,
    ServiceError,
    SlotResolutionError,
    TerminalServiceError,
)
from app_signing.models.domain import FieldKind, ResolutionContext, SlotField, SlotSpec
from app_signing.providers.base import CredentialService
from app_signing.utils.files import LocalFileSystem
from app_signing.utils.prompts import Prompter, PromptField, PromptKind

log = structlog.get_logger(__name__)

NO_BUNDLE_ID = "NO_BUNDLE_ID"
MULTIPLE_PROFILES = "MULTIPLE_PROFILES"

REMEDIATION_HINTS = {
    NO_BUNDLE_ID: "The app id is not registered in your Apple Developer account yet.",
    MULTIPLE_PROFILES: (
        "More than one provisioning profile matches this bundle identifier. "
        "Remove the extra profiles in the Apple Developer portal, or upload the one "
        "to use with EXP_PROVISIONING_PROFILE_PATH."
    ),
}


class ValueSource(Protocol):
    """Common interface of the three sources."""

    source: SlotSource

    async def obtain(self, spec: SlotSpec, context: ResolutionContext) -> dict[str, str]:
        """Return the payload of ``spec`` for ``context``."""
        ...


def missing_environment(spec: SlotSpec, context: ResolutionContext) -> list[str]:
    """Environment variables of required fields that are not set."""
    return [f.env_var for f in spec.fields if f.env_var and not f.optional and context.env(f.env_var) is None]


def has_environment(spec: SlotSpec, context: ResolutionContext) -> bool:
    """True when any variable mapped to ``spec`` is set."""
    return any(context.env(var) is not None for var in spec.env_vars)


def _load_file(files: LocalFileSystem, spec: SlotSpec, field: SlotField, raw_path: str) -> str:
    path = files.clean_path(raw_path)
    if not files.file_exists(path):
        raise SlotResolutionError(
            f"File does not exist: {path}",
            slot=spec.name,
            suggestion=f"Check the path of your {spec.label}.",
        )
    try:
        return files.read_base64(path)
    except OSError as e:
        raise SlotResolutionError(f"Cannot read {path}: {e}", slot=spec.name) from e


class EnvironmentSource:
    """Build a slot entirely from environment overrides."""

    source = SlotSource.ENVIRONMENT

    def __init__(self, files: LocalFileSystem) -> None:
        self.files = files

    async def obtain(self, spec: SlotSpec, context: ResolutionContext) -> dict[str, str]:
        missing = missing_environment(spec, context)
        if missing:
            raise IncompleteEnvironmentError(spec.name, missing)

        value: dict[str, str] = {}
        for field in spec.fields:
            raw = context.env(field.env_var)
            if raw is None:
                value[field.key] = ""
            elif field.kind == FieldKind.FILE:
                value[field.key] = _load_file(self.files, spec, field, raw)
            else:
                value[field.key] = raw

        log.info("slot_from_environment", slot=spec.name, variables=list(spec.env_vars))
        return value


class OperatorSuppliedSource:
    """Ask the operator for every field of a slot."""

    source = SlotSource.OPERATOR_SUPPLIED

    def __init__(self, prompter: Prompter, files: LocalFileSystem) -> None:
        self.prompter = prompter
        self.files = files

    def schema(self, spec: SlotSpec) -> list[PromptField]:
        """Prompt schema for the fields of ``spec``."""
        fields = []
        for field in spec.fields:
            if field.kind == FieldKind.FILE:
                fields.append(
                    PromptField(
                        name=field.key,
                        kind=PromptKind.PATH,
                        message=field.message,
                        transform=lambda raw: str(self.files.clean_path(raw)),
                        validator=lambda path: self.files.file_exists(path) or "File does not exist.",
                        optional=field.optional,
                    )
                )
            else:
                kind = PromptKind.SECRET if field.kind == FieldKind.SECRET else PromptKind.TEXT
                fields.append(PromptField(field.key, kind, field.message, optional=field.optional))
        return fields

    async def obtain(self, spec: SlotSpec, context: ResolutionContext) -> dict[str, str]:
        answers: Mapping[str, Any] = self.prompter.ask(self.schema(spec))

        value: dict[str, str] = {}
        for field in spec.fields:
            answer = answers.get(field.key)
            if answer in (None, ""):
                if not field.optional:
                    raise SlotResolutionError(f"No value given for {field.key}", slot=spec.name)
                value[field.key] = ""
            elif field.kind == FieldKind.FILE:
                value[field.key] = _load_file(self.files, spec, field, str(answer))
            else:
                value[field.key] = str(answer)

        log.info("slot_from_operator", slot=spec.name)
        return value


class ManagedGenerationSource:
    """Delegate generation of a slot to the remote service.

    A retryable failure with a known corrective action (registering a missing
    app id) is corrected and the generation retried exactly once. Any other
    retryable failure, and a second consecutive one, is terminal.
    """

    source = SlotSource.MANAGED_GENERATED

    def __init__(self, service: CredentialService) -> None:
        self.service = service

    async def obtain(self, spec: SlotSpec, context: ResolutionContext) -> dict[str, str]:
        if spec.managed_kind is None:
            raise SlotResolutionError(f"The service cannot generate {spec.label}", slot=spec.name)

        try:
            return await self._generate(spec, context)
        except RetryableServiceError as e:
            first_failure = e

        await self._correct(spec, context, first_failure)

        try:
            return await self._generate(spec, context)
        except RetryableServiceError as e:
            log.error("managed_generation_retry_failed", slot=spec.name, reason=e.reason)
            raise TerminalServiceError(
                f"Could not generate {spec.label} after registering the app id",
                reason=e.reason,
                payload=e.payload,
                status_code=e.status_code,
                slot=spec.name,
            ) from e

    async def _generate(self, spec: SlotSpec, context: ResolutionContext) -> dict[str, str]:
        log.info("managed_generation_started", slot=spec.name, kind=spec.managed_kind)
        payload = await self.service.generate_managed_certificate(
            spec.managed_kind or spec.name,
            context.identity,
            context.team_id,
            dict(context.resolved),
        )
        return {key: str(val) for key, val in payload.items() if val is not None}

    async def _correct(self, spec: SlotSpec, context: ResolutionContext, failure: RetryableServiceError) -> None:
        hint = REMEDIATION_HINTS.get(failure.reason or "")

        if failure.reason != NO_BUNDLE_ID:
            log.warning("managed_generation_unrecoverable", slot=spec.name, reason=failure.reason, hint=hint)
            raise TerminalServiceError(
                failure.message if not hint else f"{failure.message}. {hint}",
                reason=failure.reason,
                payload=failure.payload,
                status_code=failure.status_code,
                slot=spec.name,
            ) from failure

        log.info("registering_app_id", slot=spec.name, bundle_identifier=context.identity.bundle_identifier)
        try:
            await self.service.ensure_remote_app_registered(context.identity, context.team_id)
        except ServiceError as e:
            raise TerminalServiceError(
                f"Could not register the app id {context.identity.bundle_identifier}",
                reason=e.reason,
                payload=e.payload,
                status_code=e.status_code,
                slot=spec.name,
            ) from e
