"""Checks that surround credential resolution in a build.

Both gates are thin passthroughs to ``BuildService``: the status gate refuses
to start while another build of the same app is in flight, and the publish
gate makes sure there is a published app state to build from.
"""

import structlog

from app_signing.exceptions import BuildInProgressError
from app_signing.models.domain import CredentialIdentity
from app_signing.providers.base import BuildService

log = structlog.get_logger(__name__)


class BuildStatusGate:
    """Refuse to start a build while one is already running."""

    def __init__(self, service: BuildService) -> None:
        self.service = service

    async def check(self, identity: CredentialIdentity) -> None:
        """Raise ``BuildInProgressError`` when a build is in flight.

        Raises:
            BuildInProgressError: The service reports an in-flight build
            ServiceError: The status could not be fetched
        """
        in_flight = await self.service.get_build_status(identity)
        if in_flight:
            log.warning(
                "build_in_progress",
                experience=identity.experience_name,
                platform=str(identity.platform),
                builds=len(in_flight),
            )
            raise BuildInProgressError("Cannot start new build, as there is a build in progress.")

        log.debug("no_build_in_progress", experience=identity.experience_name)


class PublishGate:
    """Publish the current app state before a build."""

    def __init__(self, service: BuildService) -> None:
        self.service = service

    async def publish(self, identity: CredentialIdentity) -> list[str]:
        log.info("publishing_app", experience=identity.experience_name)
        ids = await self.service.publish(identity)
        log.info("app_published", experience=identity.experience_name, ids=ids)
        return ids
