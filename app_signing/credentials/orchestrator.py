"""Resolution of a platform's complete credential bundle.

The orchestrator loads what the service has stored for an identity, works out
which slots still need a value, resolves them in order through
``CredentialSlotResolver`` and commits the result. Two configurations exist:

- batch (default): resolve every slot, validate the aggregate bundle when the
  platform defines a validation, then upsert once. Nothing is written unless
  every required slot is present.
- legacy: validate each cached slot remotely, and validate then upsert each
  newly resolved slot on its own as soon as it is known.

Example:
    >>> orchestrator = PlatformCredentialOrchestrator(service, ClickPrompter())
    >>> bundle = await orchestrator.run(identity, BuildOptions())
    >>> bundle.sources()
    {'appleId': 'cached', 'certP12': 'environment', ...}
"""

from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

import structlog

from app_signing.credentials.clear import ClearCredentialsFlow
from app_signing.credentials.environment_backend import EnvironmentBackend
from app_signing.credentials.resolver import CredentialSlotResolver, next_action
from app_signing.credentials.slots import slots_for
from app_signing.credentials.sources import has_environment, missing_environment
from app_signing.enums import FlowMode, NextAction, Platform, SlotSource
from app_signing.exceptions import (
    AppSigningError,
    ConfigurationError,
    CredentialError,
    CredentialValidationError,
    IncompleteEnvironmentError,
    ServiceError,
    SlotResolutionError,
)
from app_signing.models.domain import (
    BuildOptions,
    CredentialBundle,
    CredentialIdentity,
    ResolutionContext,
    SlotSpec,
)
from app_signing.providers.base import CredentialService
from app_signing.utils.files import LocalFileSystem
from app_signing.utils.prompts import Prompter

log = structlog.get_logger(__name__)

CLEAR_SUGGESTION = "You may need to clear the stored credentials (with --clear-credentials) and try again."


@dataclass(frozen=True)
class PlatformPolicy:
    """Per-platform differences in how a bundle is resolved.

    Attributes:
        slots: Slot specs in resolution order
        stop_after_clear: Return right after clearing instead of resolving a
            new bundle in the same run
        aggregate_validation_kind: Validation kind for the whole bundle, or
            None when the platform defines no aggregate validation
        ensure_app_after: Slot after which the app id must exist remotely
        requires_bundle_identifier: Missing bundle identifier is fatal
    """

    slots: tuple[SlotSpec, ...]
    stop_after_clear: bool = False
    aggregate_validation_kind: str | None = None
    ensure_app_after: str | None = None
    requires_bundle_identifier: bool = False


POLICIES: dict[Platform, PlatformPolicy] = {
    Platform.ANDROID: PlatformPolicy(
        slots=slots_for(Platform.ANDROID),
        stop_after_clear=True,
    ),
    Platform.IOS: PlatformPolicy(
        slots=slots_for(Platform.IOS),
        aggregate_validation_kind="bundle",
        ensure_app_after="certP12",
        requires_bundle_identifier=True,
    ),
}


class PlatformCredentialOrchestrator:
    """Drive slot resolution across a platform's full credential set."""

    def __init__(
        self,
        service: CredentialService,
        prompter: Prompter,
        environment: Mapping[str, str] | None = None,
        files: LocalFileSystem | None = None,
        project_dir: Path | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            service: Remote credential store and generator
            prompter: Interactive collaborator (NonInteractivePrompter in CI)
            environment: Environment snapshot; captured from the process
                environment now when omitted
            files: Local file access
            project_dir: Project directory (used for local keystore backups)
        """
        self.service = service
        self.prompter = prompter
        self.environment = environment if environment is not None else EnvironmentBackend().snapshot()
        self.project_dir = project_dir or Path.cwd()
        self.files = files or LocalFileSystem(self.project_dir)
        self.resolver = CredentialSlotResolver(service, prompter, self.files)

    async def run(self, identity: CredentialIdentity, options: BuildOptions) -> CredentialBundle:
        """Resolve, validate and commit the credential bundle of ``identity``.

        Raises:
            ConfigurationError: Missing bundle identifier, or CI mode without a
                complete environment mapping for a slot
            SlotResolutionError: A slot could not be resolved or was rejected
            ServiceError: The service failed
        """
        if options.simulator_only:
            log.info("credentials_skipped_for_simulator", platform=str(identity.platform))
            return CredentialBundle.empty(identity)

        policy = POLICIES[identity.platform]
        if policy.requires_bundle_identifier and not identity.bundle_identifier:
            raise ConfigurationError(
                "Your project must have a bundleIdentifier set in app.json "
                "(expo.ios.bundleIdentifier) before credentials can be resolved."
            )

        log.info("checking_existing_credentials", platform=str(identity.platform))
        stored = await self.service.fetch_credentials(identity)
        cached = CredentialBundle.from_stored(identity, stored, policy.slots)

        if options.clear_credentials and options.non_interactive:
            # Unattended clear: the post-clear view must resolve before anything is deleted
            after_clear = ResolutionContext(
                identity=identity,
                environment=self.environment,
                cached=CredentialBundle.empty(identity),
                force_refresh=True,
                non_interactive=True,
            )
            if not self._stops_after_clear(policy, after_clear):
                self._preflight(policy, after_clear)

        cleared = False
        if options.clear_credentials:
            cleared = await ClearCredentialsFlow(
                self.service,
                self.prompter,
                project_dir=self.project_dir,
                non_interactive=options.non_interactive,
                files=self.files,
            ).run(identity)
            if cleared:
                cached = CredentialBundle.empty(identity)

        context = ResolutionContext(
            identity=identity,
            environment=self.environment,
            cached=cached,
            force_refresh=cleared,
            non_interactive=options.non_interactive,
        )

        if options.clear_credentials and self._stops_after_clear(policy, context):
            log.info("stopping_after_clear", platform=str(identity.platform), cleared=cleared)
            return cached

        if options.non_interactive:
            self._preflight(policy, context)

        flow = options.ios_flow if identity.platform == Platform.IOS else FlowMode.LEGACY
        return await self._resolve_all(policy, context, flow)

    @staticmethod
    def _stops_after_clear(policy: PlatformPolicy, context: ResolutionContext) -> bool:
        if not policy.stop_after_clear:
            return False
        return not any(has_environment(spec, context) for spec in policy.slots)

    def _preflight(self, policy: PlatformPolicy, context: ResolutionContext) -> None:
        """Fail before any prompt or remote generation when CI cannot succeed."""
        unresolvable = []
        for spec in policy.slots:
            action = next_action(spec, context)
            if action == NextAction.FAIL_INCOMPLETE:
                unresolvable.append(f"{spec.label} ({', '.join(spec.env_vars)})")
            elif action == NextAction.USE_ENVIRONMENT:
                missing = missing_environment(spec, context)
                if missing:
                    raise IncompleteEnvironmentError(spec.name, missing)

        if unresolvable:
            raise ConfigurationError(
                "Cannot resolve credentials in non-interactive mode. Missing environment "
                f"variables for: {'; '.join(unresolvable)}"
            )

    async def _resolve_all(
        self,
        policy: PlatformPolicy,
        context: ResolutionContext,
        flow: FlowMode,
    ) -> CredentialBundle:
        identity = context.identity
        bundle = CredentialBundle(
            identity=identity,
            slots=dict(context.cached.slots),
            extra=dict(context.cached.extra),
        )
        changed: list[str] = []

        for index, spec in enumerate(policy.slots):
            try:
                slot = await self.resolver.resolve_spec(spec, context)
                if slot.source == SlotSource.CACHED:
                    if flow == FlowMode.LEGACY and spec.validation_kind:
                        log.info("validating_cached_credential", slot=spec.name)
                        await self._validate(identity, spec.validation_kind, None, spec.name)
                else:
                    if flow == FlowMode.LEGACY:
                        if spec.validation_kind:
                            await self._validate(identity, spec.validation_kind, slot.value, spec.name)
                        await self.service.upsert_credentials(identity.platform, slot.value, identity)
                    changed.append(spec.name)
            except AppSigningError as e:
                log.error("slot_resolution_failed", slot=spec.name, error=e.message)
                raise

            bundle.put(slot)
            context = context.with_resolved(slot.value)

            if spec.name == policy.ensure_app_after:
                # Legacy always registers the app id; batch only when later slots need work
                remaining = policy.slots[index + 1 :]
                if flow == FlowMode.LEGACY or any(
                    next_action(later, context) != NextAction.REUSE_CACHED for later in remaining
                ):
                    await self._ensure_app(context)

        missing = bundle.missing(spec.name for spec in policy.slots)
        if missing:
            raise SlotResolutionError(f"Credentials incomplete: {', '.join(missing)}", slot=missing[0])

        if not changed:
            log.info("credentials_unchanged", platform=str(identity.platform))
            return bundle

        if flow == FlowMode.BATCH:
            payload = bundle.to_payload()
            if policy.aggregate_validation_kind:
                await self._validate(identity, policy.aggregate_validation_kind, payload, "bundle")
            await self.service.upsert_credentials(identity.platform, payload, identity)

        log.info("credentials_committed", platform=str(identity.platform), changed=changed, flow=str(flow))
        return bundle

    async def _validate(
        self,
        identity: CredentialIdentity,
        kind: str,
        payload: dict[str, str] | None,
        slot_name: str,
    ) -> None:
        result = await self.service.validate_credentials(identity.platform, kind, payload, identity)
        if result.ok:
            log.debug("credential_valid", slot=slot_name, kind=kind)
            return

        log.warning("credential_rejected", slot=slot_name, kind=kind, reason=result.reason)
        raise CredentialValidationError(
            result.message or f"The build service rejected the {kind} credentials",
            slot=slot_name,
            reason=result.reason,
            payload=result.payload,
            suggestion=CLEAR_SUGGESTION,
        )

    async def _ensure_app(self, context: ResolutionContext) -> None:
        identity = context.identity
        log.info("validating_app_id", bundle_identifier=identity.bundle_identifier)
        try:
            await self.service.ensure_remote_app_registered(identity, context.team_id)
        except ServiceError as e:
            raise CredentialError(
                "It seems like we can't create an app on the Apple developer center with this "
                f"app id: {identity.bundle_identifier}. Please change your bundle identifier "
                "to something else.",
                slot="appId",
            ) from e
