"""Tests for the REST build service client."""

import json
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from app_signing.enums import Platform
from app_signing.exceptions import AppSigningError, RetryableServiceError, TerminalServiceError
from app_signing.providers.rest import RestBuildService

BASE_URL = "https://builds.test/api/v2"


class Recorder:
    """MockTransport handler answering from a per-path script."""

    def __init__(self, responses):
        self.responses = responses
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path.removeprefix("/api/v2/")
        answer = self.responses[path]
        if isinstance(answer, list):
            answer = answer.pop(0)
        if isinstance(answer, Exception):
            raise answer
        return answer

    def body(self, index: int = -1):
        return json.loads(self.requests[index].content)


def make_service(responses, token="tok_abc"):
    recorder = Recorder(responses)
    service = RestBuildService(BASE_URL, token, transport=httpx.MockTransport(recorder))
    return service, recorder


def ok(data):
    return httpx.Response(200, json={"data": data})


def error(code, message="Failed", status=400, details=None):
    body = {"code": code, "message": message}
    if details is not None:
        body["details"] = details
    return httpx.Response(status, json={"error": body})


class TestRequests:
    """Tests for request shape."""

    @pytest.mark.asyncio
    async def test_fetch_credentials(self, ios_identity):
        """Test credentials are fetched with the identity metadata."""
        service, recorder = make_service({"credentials/fetch": ok({"credentials": {"teamId": "TEAM123"}})})

        async with service:
            stored = await service.fetch_credentials(ios_identity)

        assert stored == {"teamId": "TEAM123"}
        request = recorder.requests[0]
        assert request.method == "POST"
        assert str(request.url) == f"{BASE_URL}/credentials/fetch"
        assert request.headers["Authorization"] == "Bearer tok_abc"
        assert recorder.body()["credentialMetadata"]["bundleIdentifier"] == "com.jdoe.weather"

    @pytest.mark.asyncio
    async def test_fetch_nothing_stored(self, ios_identity):
        service, _ = make_service({"credentials/fetch": ok({"credentials": None})})

        async with service:
            assert await service.fetch_credentials(ios_identity) is None

    @pytest.mark.asyncio
    async def test_anonymous_client(self, ios_identity):
        service, recorder = make_service({"credentials/fetch": ok({})}, token=None)

        async with service:
            await service.fetch_credentials(ios_identity)

        assert "Authorization" not in recorder.requests[0].headers

    @pytest.mark.asyncio
    async def test_upsert(self, ios_identity):
        service, recorder = make_service({"credentials/update": ok({})})

        async with service:
            await service.upsert_credentials(Platform.IOS, {"pushP12": "cHVzaA=="}, ios_identity)

        body = recorder.body()
        assert body["platform"] == "ios"
        assert body["credentials"] == {"pushP12": "cHVzaA=="}

    @pytest.mark.asyncio
    async def test_start_build(self, ios_identity):
        service, recorder = make_service({"build/start": ok({"id": "b1", "url": "https://builds.test/b1"})})

        async with service:
            build = await service.start_build(ios_identity, ["release-1"], "archive")

        assert build["id"] == "b1"
        assert recorder.body()["publishedIds"] == ["release-1"]
        assert recorder.body()["type"] == "archive"


class TestErrors:
    """Tests for mapping error responses to service errors."""

    @pytest.mark.asyncio
    async def test_retryable_reason(self, ios_identity):
        service, _ = make_service({"credentials/generate": error("NO_BUNDLE_ID", "App id missing", 409)})

        async with service:
            with pytest.raises(RetryableServiceError) as exc_info:
                await service.generate_managed_certificate("push", ios_identity, "TEAM123")

        assert exc_info.value.reason == "NO_BUNDLE_ID"
        assert exc_info.value.status_code == 409

    @pytest.mark.asyncio
    async def test_other_reason_is_terminal(self, ios_identity):
        service, _ = make_service({"credentials/delete": error("FORBIDDEN", "Not your app", 403, {"owner": "x"})})

        async with service:
            with pytest.raises(TerminalServiceError) as exc_info:
                await service.delete_credentials(Platform.IOS, ios_identity)

        assert exc_info.value.message == "Not your app"
        assert exc_info.value.payload == {"owner": "x"}

    @pytest.mark.asyncio
    async def test_non_json_server_error(self, ios_identity):
        """Test an HTML error page still becomes a service error."""
        service, _ = make_service({"publish": httpx.Response(502, text="<html>Bad gateway</html>")})

        async with service:
            with pytest.raises(TerminalServiceError) as exc_info:
                await service.publish(ios_identity)

        assert exc_info.value.status_code == 502
        assert "Bad gateway" in exc_info.value.payload

    @pytest.mark.asyncio
    async def test_error_body_with_ok_status(self, ios_identity):
        service, _ = make_service({"credentials/ensure-app-id": httpx.Response(200, json={"error": {"code": "X"}})})

        async with service:
            with pytest.raises(TerminalServiceError):
                await service.ensure_remote_app_registered(ios_identity, "TEAM123")

    @pytest.mark.asyncio
    async def test_generate_empty_response(self, ios_identity):
        service, _ = make_service({"credentials/generate": ok({"credentials": {}})})

        async with service:
            with pytest.raises(TerminalServiceError) as exc_info:
                await service.generate_managed_certificate("cert", ios_identity, "TEAM123")

        assert exc_info.value.reason == "EMPTY_RESPONSE"


class TestValidation:
    """Tests for validate_credentials."""

    @pytest.mark.asyncio
    async def test_valid(self, ios_identity):
        service, recorder = make_service({"credentials/validate": ok({"isValid": True})})

        async with service:
            result = await service.validate_credentials(Platform.IOS, "bundle", {"certP12": "x"}, ios_identity)

        assert result.ok is True
        assert recorder.body()["type"] == "bundle"

    @pytest.mark.asyncio
    async def test_stored_credentials_sent_as_null(self, ios_identity):
        service, recorder = make_service({"credentials/validate": ok({"isValid": True})})

        async with service:
            await service.validate_credentials(Platform.IOS, "cert", None, ios_identity)

        assert recorder.body()["credentials"] is None

    @pytest.mark.asyncio
    async def test_invalid(self, ios_identity):
        service, _ = make_service(
            {"credentials/validate": ok({"isValid": False, "reason": "CERT_REVOKED", "message": "Revoked"})}
        )

        async with service:
            result = await service.validate_credentials(Platform.IOS, "cert", None, ios_identity)

        assert result.ok is False
        assert result.reason == "CERT_REVOKED"
        assert result.message == "Revoked"

    @pytest.mark.asyncio
    async def test_error_response_is_rejection(self, ios_identity):
        """Test an error answer is reported as a failed validation, not raised."""
        service, _ = make_service({"credentials/validate": error("BAD_PASSWORD", "Wrong password")})

        async with service:
            result = await service.validate_credentials(Platform.IOS, "appleId", None, ios_identity)

        assert result.ok is False
        assert result.reason == "BAD_PASSWORD"


class TestTransportRetry:
    """Tests for the bounded retry of read calls."""

    @pytest.mark.asyncio
    async def test_read_retried_once(self, ios_identity):
        service, recorder = make_service(
            {"build/status": [httpx.ConnectError("refused"), ok({"inFlight": [{"id": "b0"}]})]}
        )

        with patch("app_signing.utils.retry.asyncio.sleep", new=AsyncMock()):
            async with service:
                in_flight = await service.get_build_status(ios_identity)

        assert in_flight == [{"id": "b0"}]
        assert len(recorder.requests) == 2

    @pytest.mark.asyncio
    async def test_read_gives_up_after_two_attempts(self, ios_identity):
        service, recorder = make_service(
            {"credentials/fetch": [httpx.ConnectError("refused"), httpx.ConnectError("refused")]}
        )

        with patch("app_signing.utils.retry.asyncio.sleep", new=AsyncMock()):
            async with service:
                with pytest.raises(TerminalServiceError) as exc_info:
                    await service.fetch_credentials(ios_identity)

        assert exc_info.value.reason == "TRANSPORT_ERROR"
        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)
        assert len(recorder.requests) == 2

    @pytest.mark.asyncio
    async def test_writes_not_retried(self, ios_identity):
        """Test a failed upsert is not sent twice."""
        service, recorder = make_service({"credentials/update": [httpx.ConnectError("refused"), ok({})]})

        async with service:
            with pytest.raises(TerminalServiceError) as exc_info:
                await service.upsert_credentials(Platform.IOS, {"certP12": "x"}, ios_identity)

        assert exc_info.value.reason == "TRANSPORT_ERROR"
        assert isinstance(exc_info.value, AppSigningError)
        assert len(recorder.requests) == 1

    @pytest.mark.asyncio
    async def test_timeout_becomes_service_error(self, ios_identity):
        service, _ = make_service({"publish": httpx.ReadTimeout("timed out")})

        async with service:
            with pytest.raises(TerminalServiceError) as exc_info:
                await service.publish(ios_identity)

        assert exc_info.value.reason == "TRANSPORT_ERROR"
        assert "Could not reach the build service (publish)" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_validation_does_not_mask_unreachable_service(self, ios_identity):
        """Test a network failure is raised rather than reported as a rejected credential."""
        service, _ = make_service({"credentials/validate": httpx.ConnectError("refused")})

        async with service:
            with pytest.raises(TerminalServiceError) as exc_info:
                await service.validate_credentials(Platform.IOS, "cert", None, ios_identity)

        assert exc_info.value.reason == "TRANSPORT_ERROR"

    @pytest.mark.asyncio
    async def test_error_response_on_read_not_retried(self, ios_identity):
        service, recorder = make_service({"build/status": [error("FORBIDDEN", "No access", 403), ok({"inFlight": []})]})

        async with service:
            with pytest.raises(TerminalServiceError):
                await service.get_build_status(ios_identity)

        assert len(recorder.requests) == 1


class TestSession:
    @pytest.mark.asyncio
    async def test_opened_on_first_call_and_closed_on_exit(self, ios_identity):
        """Test one client serves every call until the service is closed."""
        service, recorder = make_service({"publish": ok({"ids": ["r1"]}), "build/status": ok({"inFlight": []})})

        async with service:
            assert service._session.is_open is False
            await service.publish(ios_identity)
            await service.get_build_status(ios_identity)
            assert service._session.is_open is True

        assert service._session.is_open is False
        assert len(recorder.requests) == 2
