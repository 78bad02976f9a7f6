"""Build service implementation using direct REST API calls."""

from typing import Any

import httpx
import structlog

from app_signing.enums import Platform
from app_signing.exceptions import RetryableServiceError, ServiceError, TerminalServiceError
from app_signing.models.domain import CredentialIdentity
from app_signing.providers.base import BuildService, CredentialService, ValidationResult
from app_signing.utils.connection_pool import ServiceSession
from app_signing.utils.retry import bounded_retry

log = structlog.get_logger(__name__)

# Reason codes the service uses for recoverable preconditions
RETRYABLE_REASONS = frozenset({"NO_BUNDLE_ID", "MULTIPLE_PROFILES"})

TRANSPORT_ERROR = "TRANSPORT_ERROR"


def _is_transport_error(error: Exception) -> bool:
    return isinstance(error, ServiceError) and error.reason == TRANSPORT_ERROR


class RestBuildService(CredentialService, BuildService):
    """Credentials and build endpoints of the remote build service.

    Every endpoint takes a JSON body and answers either
    ``{"data": ...}`` or ``{"error": {"code": ..., "message": ..., "details": ...}}``.
    """

    def __init__(
        self,
        base_url: str,
        token: str | None,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the service client.

        Args:
            base_url: API base URL (e.g., https://builds.example.com/api/v2)
            token: Session token, or None for anonymous calls
            timeout: Request timeout in seconds
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.base_url = base_url.rstrip("/")
        headers = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token.strip()}"
        self._session = ServiceSession(
            base_url=self.base_url,
            timeout=timeout,
            headers=headers,
            transport=transport,
        )

    async def close(self) -> None:
        await self._session.close()

    async def __aenter__(self) -> "RestBuildService":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    # Credentials

    @bounded_retry(max_attempts=2, exceptions=(TerminalServiceError,), retry_if=_is_transport_error)
    async def fetch_credentials(self, identity: CredentialIdentity) -> dict[str, Any] | None:
        log.info("fetch_credentials", platform=str(identity.platform), experience=identity.experience_name)
        data = await self._call("credentials/fetch", {"credentialMetadata": identity.to_metadata()})
        credentials = (data or {}).get("credentials")
        return credentials or None

    async def upsert_credentials(
        self,
        platform: Platform,
        payload: dict[str, Any],
        identity: CredentialIdentity,
    ) -> None:
        log.info("upsert_credentials", platform=str(platform), keys=sorted(payload))
        await self._call(
            "credentials/update",
            {
                "platform": platform.value,
                "credentials": payload,
                "credentialMetadata": identity.to_metadata(),
            },
        )

    async def delete_credentials(self, platform: Platform, identity: CredentialIdentity) -> None:
        log.info("delete_credentials", platform=str(platform), experience=identity.experience_name)
        await self._call(
            "credentials/delete",
            {"platform": platform.value, "credentialMetadata": identity.to_metadata()},
        )

    async def validate_credentials(
        self,
        platform: Platform,
        kind: str,
        payload: dict[str, Any] | None,
        identity: CredentialIdentity,
    ) -> ValidationResult:
        log.info("validate_credentials", platform=str(platform), kind=kind, stored=payload is None)
        try:
            data = await self._call(
                "credentials/validate",
                {
                    "platform": platform.value,
                    "type": kind,
                    "credentials": payload,
                    "credentialMetadata": identity.to_metadata(),
                },
            )
        except ServiceError as e:
            if e.reason == TRANSPORT_ERROR:
                raise
            return ValidationResult(ok=False, reason=e.reason, message=e.message, payload=_as_dict(e.payload))

        data = data or {}
        if data.get("isValid", True):
            return ValidationResult(ok=True, payload=data)
        return ValidationResult(
            ok=False,
            reason=data.get("reason"),
            message=data.get("message"),
            payload=data,
        )

    async def generate_managed_certificate(
        self,
        kind: str,
        identity: CredentialIdentity,
        team_id: str | None,
        resolved: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        log.info("generate_managed_certificate", kind=kind, team_id=team_id)
        data = await self._call(
            "credentials/generate",
            {
                "type": kind,
                "teamId": team_id,
                "credentials": resolved or {},
                "credentialMetadata": identity.to_metadata(),
            },
        )
        credentials = (data or {}).get("credentials")
        if not credentials:
            raise TerminalServiceError(
                f"Service returned no {kind} credentials",
                reason="EMPTY_RESPONSE",
                payload=data,
            )
        return dict(credentials)

    async def ensure_remote_app_registered(self, identity: CredentialIdentity, team_id: str | None) -> None:
        log.info("ensure_app_id", bundle_identifier=identity.bundle_identifier, team_id=team_id)
        await self._call(
            "credentials/ensure-app-id",
            {"teamId": team_id, "credentialMetadata": identity.to_metadata()},
        )

    # Builds

    @bounded_retry(max_attempts=2, exceptions=(TerminalServiceError,), retry_if=_is_transport_error)
    async def get_build_status(self, identity: CredentialIdentity) -> list[dict[str, Any]]:
        data = await self._call("build/status", {"credentialMetadata": identity.to_metadata()})
        return list((data or {}).get("inFlight", []))

    async def publish(self, identity: CredentialIdentity) -> list[str]:
        data = await self._call("publish", {"credentialMetadata": identity.to_metadata()})
        return [str(item) for item in (data or {}).get("ids", [])]

    async def start_build(
        self,
        identity: CredentialIdentity,
        published_ids: list[str],
        build_type: str,
    ) -> dict[str, Any]:
        data = await self._call(
            "build/start",
            {
                "platform": identity.platform.value,
                "type": build_type,
                "publishedIds": published_ids,
                "credentialMetadata": identity.to_metadata(),
            },
        )
        return dict(data or {})

    async def _call(self, path: str, body: dict[str, Any]) -> Any:
        """POST ``body`` to ``path`` and unwrap the ``data`` member.

        Raises:
            RetryableServiceError: Error code names a recoverable precondition
            TerminalServiceError: Any other error response, or the service
                could not be reached (reason ``TRANSPORT_ERROR``)
        """
        try:
            response = await self._session.post_json(f"/{path}", body)
        except httpx.HTTPError as e:
            log.warning("service_unreachable", path=path, error=str(e))
            raise TerminalServiceError(
                f"Could not reach the build service ({path}): {e}",
                reason=TRANSPORT_ERROR,
            ) from e

        try:
            document = response.json()
        except ValueError:
            document = None

        error = document.get("error") if isinstance(document, dict) else None
        if error or response.status_code >= 400:
            raise _to_service_error(path, response, error)

        return document.get("data") if isinstance(document, dict) else None


def _to_service_error(path: str, response: httpx.Response, error: Any) -> ServiceError:
    if isinstance(error, dict):
        reason = error.get("code")
        message = error.get("message") or f"Request to {path} failed"
        payload: Any = error.get("details", error)
    else:
        reason = None
        message = f"Request to {path} failed"
        payload = response.text

    status_code = response.status_code if response.status_code >= 400 else None
    log.debug("service_error", path=path, reason=reason, status_code=status_code)

    error_class = RetryableServiceError if reason in RETRYABLE_REASONS else TerminalServiceError
    return error_class(message, reason=reason, payload=payload, status_code=status_code)


def _as_dict(value: Any) -> dict[str, Any]:
    if isinstance(value, dict):
        return value
    return {"raw": value} if value is not None else {}
