"""Factory for the build service client."""

import structlog

from app_signing.config.settings import AppSigningSettings
from app_signing.credentials.token import ServiceTokenResolver
from app_signing.providers.rest import RestBuildService

log = structlog.get_logger(__name__)


def create_build_service(
    settings: AppSigningSettings,
    token_resolver: ServiceTokenResolver | None = None,
) -> RestBuildService:
    """Create the REST client for the configured build service.

    Args:
        settings: Loaded settings
        token_resolver: Resolver for the ``api_token`` reference

    Raises:
        CredentialError: The token reference cannot be resolved
    """
    resolver = token_resolver or ServiceTokenResolver()
    token = resolver.resolve(settings.service.api_token)

    base_url = str(settings.service.base_url)
    log.debug("build_service_created", base_url=base_url)
    return RestBuildService(base_url=base_url, token=token, timeout=settings.service.timeout)
