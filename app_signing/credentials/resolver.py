"""Resolution of a single credential slot.

Precedence, evaluated per slot:

1. Any environment variable mapped to the slot is set: the slot comes from
   the environment, and nobody is asked anything.
2. The cached bundle already has the slot and no refresh was forced: reuse it.
3. Otherwise ask the operator whether the service should manage it or
   whether they will provide it (slots without a managed variant skip the
   question and go straight to the operator).

The decision is made by ``next_action``, a pure function of the slot spec and
the immutable ``ResolutionContext``. ``CredentialSlotResolver`` carries it out.
"""

import structlog

from app_signing.credentials.slots import MANAGE_CHOICE, PROVIDE_CHOICE, get_slot
from app_signing.credentials.sources import (
    EnvironmentSource,
    ManagedGenerationSource,
    OperatorSuppliedSource,
    ValueSource,
    has_environment,
)
from app_signing.enums import NextAction
from app_signing.exceptions import ConfigurationError, ServiceError, SlotResolutionError
from app_signing.models.domain import CredentialSlot, ResolutionContext, SlotSpec
from app_signing.providers.base import CredentialService
from app_signing.utils.files import LocalFileSystem
from app_signing.utils.prompts import Choice, Prompter, PromptField, PromptKind

log = structlog.get_logger(__name__)


def next_action(spec: SlotSpec, context: ResolutionContext) -> NextAction:
    """Decide how ``spec`` gets its value, without side effects."""
    if has_environment(spec, context):
        return NextAction.USE_ENVIRONMENT
    if not context.force_refresh and context.cached.is_present(spec.name):
        return NextAction.REUSE_CACHED
    if context.non_interactive:
        return NextAction.FAIL_INCOMPLETE
    if spec.supports_managed:
        return NextAction.ASK_STRATEGY
    return NextAction.ASK_OPERATOR


def strategy_schema(spec: SlotSpec) -> list[PromptField]:
    """The "manage it for me / I will provide it" question for ``spec``."""
    return [
        PromptField(
            name="manage",
            kind=PromptKind.CHOICE,
            message=spec.strategy_message or f"How do you want to provide your {spec.label}?",
            choices=(Choice(MANAGE_CHOICE, True), Choice(PROVIDE_CHOICE, False)),
        )
    ]


class CredentialSlotResolver:
    """Resolve one named credential slot.

    Example:
        >>> resolver = CredentialSlotResolver(service, ClickPrompter())
        >>> context = ResolutionContext(identity, EnvironmentBackend().snapshot(), cached)
        >>> slot = await resolver.resolve("certP12", context)
        >>> slot.source
        <SlotSource.ENVIRONMENT: 'environment'>
    """

    def __init__(
        self,
        service: CredentialService,
        prompter: Prompter,
        files: LocalFileSystem | None = None,
    ) -> None:
        files = files or LocalFileSystem()
        self.prompter = prompter
        self.environment_source = EnvironmentSource(files)
        self.operator_source = OperatorSuppliedSource(prompter, files)
        self.managed_source = ManagedGenerationSource(service)

    async def resolve(self, slot_name: str, context: ResolutionContext) -> CredentialSlot:
        """Resolve ``slot_name`` for the identity in ``context``.

        Returns:
            A slot with ``present=True`` and a populated value

        Raises:
            ConfigurationError: Incomplete environment, or CI mode with
                nothing to resolve the slot from
            SlotResolutionError: File missing or required answer empty
            ServiceError: Managed generation failed
        """
        return await self.resolve_spec(get_slot(context.identity.platform, slot_name), context)

    async def resolve_spec(self, spec: SlotSpec, context: ResolutionContext) -> CredentialSlot:
        action = next_action(spec, context)
        log.debug("slot_action", slot=spec.name, action=str(action))

        if action == NextAction.REUSE_CACHED:
            cached = context.cached.get(spec.name)
            if cached is None:
                raise SlotResolutionError(f"No cached {spec.label} to reuse", slot=spec.name)
            return CredentialSlot(
                name=spec.name,
                present=True,
                required=True,
                source=cached.source,
                value=dict(cached.value),
            )

        if action == NextAction.FAIL_INCOMPLETE:
            raise ConfigurationError(
                f"No {spec.label} available in non-interactive mode. Set {', '.join(spec.env_vars)}."
            )

        source = self._select_source(action, spec)
        try:
            value = await source.obtain(spec, context)
        except ServiceError as e:
            if e.slot is None:
                e.slot = spec.name
            raise

        if not value.get(spec.presence_key):
            raise SlotResolutionError(f"No {spec.label} was produced", slot=spec.name)

        log.info("slot_resolved", slot=spec.name, source=str(source.source))
        return CredentialSlot(name=spec.name, present=True, required=True, source=source.source, value=value)

    def _select_source(self, action: NextAction, spec: SlotSpec) -> ValueSource:
        if action == NextAction.USE_ENVIRONMENT:
            self.prompter.info(
                f"{' and/or '.join(spec.env_vars)} is set in the environment, "
                f"not going to ask for your {spec.label}."
            )
            return self.environment_source

        if action == NextAction.ASK_OPERATOR:
            return self.operator_source

        answers = self.prompter.ask(strategy_schema(spec))
        if answers.get("manage", True):
            return self.managed_source
        return self.operator_source
