"""
Build runner tying the gates and credential resolution together.

Sequence for one ``appsign build`` invocation:

1. Check the project metadata needed to address the service
2. Refuse to start while a build of the same app is in flight
3. Resolve signing credentials (skipped for simulator builds)
4. Publish the current app state
5. Queue the build

Example:
    >>> runner = BuildRunner(service, service, ClickPrompter(), project_dir=Path("."))
    >>> build = await runner.run(identity, BuildOptions(non_interactive=True))
    >>> build["id"]
    'b7f1c0de'
"""

from collections.abc import Mapping
from pathlib import Path
from typing import Any

import structlog

from app_signing.credentials.orchestrator import PlatformCredentialOrchestrator
from app_signing.engine.gates import BuildStatusGate, PublishGate
from app_signing.enums import Platform
from app_signing.exceptions import ConfigurationError, CredentialError
from app_signing.models.domain import BuildOptions, CredentialIdentity
from app_signing.providers.base import BuildService, CredentialService
from app_signing.utils.prompts import Prompter

log = structlog.get_logger(__name__)

SIMULATOR = "simulator"
ARCHIVE = "archive"

IOS_CLEAR_HINT = (
    "Our apologies! An unexpected error occurred while validating your iOS credentials. "
    "You may need to clear them (with `-c`) and try again."
)


class BuildRunner:
    """Run one remote build from the status check to the queued build.

    Attributes:
        build_service: Status, publish and start calls
        status_gate: In-flight build check
        publish_gate: App publishing
        orchestrator: Credential resolution for the target platform
    """

    def __init__(
        self,
        credential_service: CredentialService,
        build_service: BuildService,
        prompter: Prompter,
        environment: Mapping[str, str] | None = None,
        project_dir: Path | None = None,
    ) -> None:
        self.build_service = build_service
        self.prompter = prompter
        self.status_gate = BuildStatusGate(build_service)
        self.publish_gate = PublishGate(build_service)
        self.orchestrator = PlatformCredentialOrchestrator(
            credential_service,
            prompter,
            environment=environment,
            project_dir=project_dir,
        )

    async def run(self, identity: CredentialIdentity, options: BuildOptions) -> dict[str, Any]:
        """Resolve credentials and start a build of ``identity``.

        Returns:
            The build record returned by the service

        Raises:
            ConfigurationError: Project metadata incomplete
            BuildInProgressError: Another build is in flight
            AppSigningError: Credential resolution or a service call failed
        """
        self._check_metadata(identity)
        build_type = SIMULATOR if options.simulator_only else ARCHIVE
        log.info(
            "build_requested",
            experience=identity.experience_name,
            platform=str(identity.platform),
            build_type=build_type,
        )

        await self.status_gate.check(identity)

        if not options.simulator_only:
            try:
                bundle = await self.orchestrator.run(identity, options)
            except CredentialError:
                if identity.platform == Platform.IOS:
                    self.prompter.warn(IOS_CLEAR_HINT)
                raise
            log.info("credentials_ready", sources=bundle.sources())

        published_ids = await self.publish_gate.publish(identity)
        build = await self.build_service.start_build(identity, published_ids, build_type)
        log.info("build_started", experience=identity.experience_name, build=build.get("id"))
        return build

    @staticmethod
    def _check_metadata(identity: CredentialIdentity) -> None:
        owner, _, slug = identity.experience_name.lstrip("@").partition("/")
        if not owner or not slug:
            raise ConfigurationError(
                f"Invalid experience name {identity.experience_name!r}. "
                "Make sure your app.json has a slug and you are logged in."
            )
