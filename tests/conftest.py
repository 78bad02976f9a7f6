"""Pytest configuration and shared fixtures."""

import base64
from collections.abc import Sequence
from pathlib import Path
from typing import Any

import pytest
import structlog

from app_signing.enums import Platform
from app_signing.models.domain import CredentialBundle, CredentialIdentity, ResolutionContext
from app_signing.providers.base import BuildService, CredentialService, ValidationResult
from app_signing.utils.prompts import PromptField

GENERATED = {
    "keystore": {
        "keystore": base64.b64encode(b"generated-keystore").decode(),
        "keystoreAlias": "generated-alias",
        "keystorePassword": "store-secret",
        "keyPassword": "key-secret",
    },
    "cert": {"certP12": base64.b64encode(b"generated-cert").decode(), "certPassword": "cert-secret"},
    "push": {"pushP12": base64.b64encode(b"generated-push").decode(), "pushPassword": "push-secret"},
    "provisioningProfile": {"provisioningProfile": base64.b64encode(b"generated-profile").decode()},
}

MUTATIONS = (
    "upsert_credentials",
    "delete_credentials",
    "generate_managed_certificate",
    "ensure_remote_app_registered",
)


class FakeBuildService(CredentialService, BuildService):
    """In-memory build service that records every call.

    ``generate_results`` maps a managed kind to a queue of results; an
    exception in the queue is raised instead of returned.
    """

    def __init__(self, stored: dict[str, Any] | None = None) -> None:
        self.stored = dict(stored) if stored else None
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.generate_results: dict[str, list[Any]] = {}
        self.validation: dict[str, ValidationResult] = {}
        self.ensure_error: Exception | None = None
        self.in_flight: list[dict[str, Any]] = []
        self.published_ids = ["release-1"]
        self.closed = False

    def calls_to(self, name: str) -> list[dict[str, Any]]:
        return [args for call, args in self.calls if call == name]

    @property
    def mutations(self) -> list[str]:
        return [call for call, _ in self.calls if call in MUTATIONS]

    async def __aenter__(self) -> "FakeBuildService":
        return self

    async def __aexit__(self, *args: Any) -> None:
        self.closed = True

    async def fetch_credentials(self, identity):
        self.calls.append(("fetch_credentials", {"identity": identity}))
        return dict(self.stored) if self.stored else None

    async def upsert_credentials(self, platform, payload, identity):
        self.calls.append(("upsert_credentials", {"platform": platform, "payload": dict(payload)}))
        self.stored = {**(self.stored or {}), **payload}

    async def delete_credentials(self, platform, identity):
        self.calls.append(("delete_credentials", {"platform": platform}))
        self.stored = None

    async def validate_credentials(self, platform, kind, payload, identity):
        self.calls.append(("validate_credentials", {"kind": kind, "payload": payload}))
        return self.validation.get(kind, ValidationResult(ok=True))

    async def generate_managed_certificate(self, kind, identity, team_id, resolved=None):
        self.calls.append(("generate_managed_certificate", {"kind": kind, "team_id": team_id}))
        queue = self.generate_results.get(kind)
        if queue:
            result = queue.pop(0)
            if isinstance(result, Exception):
                raise result
            return dict(result)
        return dict(GENERATED[kind])

    async def ensure_remote_app_registered(self, identity, team_id):
        self.calls.append(("ensure_remote_app_registered", {"team_id": team_id}))
        if self.ensure_error is not None:
            raise self.ensure_error

    async def get_build_status(self, identity):
        self.calls.append(("get_build_status", {}))
        return list(self.in_flight)

    async def publish(self, identity):
        self.calls.append(("publish", {}))
        return list(self.published_ids)

    async def start_build(self, identity, published_ids, build_type):
        self.calls.append(("start_build", {"published_ids": published_ids, "build_type": build_type}))
        return {"id": "build-1", "type": build_type}


class ScriptedPrompter:
    """Prompter answering from a script keyed by field name.

    A list value is consumed one answer per question, so the same field
    (e.g. "manage") can get different answers for different slots. Any
    question without a scripted answer fails the test.
    """

    def __init__(self, answers: dict[str, Any] | None = None) -> None:
        self.answers = dict(answers or {})
        self.asked: list[str] = []
        self.infos: list[str] = []
        self.warnings: list[str] = []

    def ask(self, schema: Sequence[PromptField]) -> dict[str, Any]:
        result: dict[str, Any] = {}
        for field in schema:
            if field.skip_if is not None and field.skip_if(result):
                continue
            self.asked.append(field.name)
            if field.name not in self.answers:
                raise AssertionError(f"Unexpected question: {field.name}")
            value = self.answers[field.name]
            if isinstance(value, list):
                value = value.pop(0)
            if field.transform is not None and value:
                value = field.transform(value)
            result[field.name] = value
        return result

    def info(self, message: str) -> None:
        self.infos.append(message)

    def warn(self, message: str) -> None:
        self.warnings.append(message)


@pytest.fixture(autouse=True)
def reset_structlog():
    """Drop logging configuration made by CLI tests (it binds their streams)."""
    yield
    structlog.reset_defaults()


@pytest.fixture
def ios_identity() -> CredentialIdentity:
    return CredentialIdentity(
        owner="jdoe",
        experience_name="@jdoe/weather",
        platform=Platform.IOS,
        bundle_identifier="com.jdoe.weather",
    )


@pytest.fixture
def android_identity() -> CredentialIdentity:
    return CredentialIdentity(
        owner="jdoe",
        experience_name="@jdoe/weather",
        platform=Platform.ANDROID,
        bundle_identifier="com.jdoe.weather",
    )


@pytest.fixture
def service() -> FakeBuildService:
    return FakeBuildService()


@pytest.fixture
def prompter() -> ScriptedPrompter:
    return ScriptedPrompter()


@pytest.fixture
def cert_file(tmp_path: Path) -> Path:
    """A distribution certificate on disk."""
    path = tmp_path / "dist.p12"
    path.write_bytes(b"p12-bytes")
    return path


@pytest.fixture
def stored_ios() -> dict[str, Any]:
    """A complete iOS bundle as the service stores it."""
    return {
        "appleId": "jdoe@example.com",
        "password": "apple-secret",
        "teamId": "TEAM123",
        "certP12": "c3RvcmVkLWNlcnQ=",
        "certPassword": "stored-cert-secret",
        "pushP12": "c3RvcmVkLXB1c2g=",
        "pushPassword": "",
        "provisioningProfile": "c3RvcmVkLXByb2ZpbGU=",
    }


def _make_context(
    identity: CredentialIdentity,
    environment: dict[str, str] | None = None,
    cached: CredentialBundle | None = None,
    **kwargs: Any,
) -> ResolutionContext:
    """Build a resolution context with sensible defaults."""
    return ResolutionContext(
        identity=identity,
        environment=environment or {},
        cached=cached or CredentialBundle.empty(identity),
        **kwargs,
    )


@pytest.fixture
def make_context():
    """Factory for resolution contexts."""
    return _make_context
