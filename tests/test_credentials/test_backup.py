"""Tests for downloading the stored Android keystore."""

import base64

import pytest

from app_signing.credentials.backup import KeystoreBackup, local_keystore_path
from app_signing.exceptions import ConfigurationError, CredentialError

STORED_KEYSTORE = {
    "keystore": base64.b64encode(b"stored-keystore").decode(),
    "keystoreAlias": "release",
    "keystorePassword": "store-secret",
    "keyPassword": "key-secret",
}


class TestLocalKeystorePath:
    def test_named_after_slug(self, android_identity, tmp_path):
        assert local_keystore_path(tmp_path, android_identity) == tmp_path / "weather.jks"


class TestKeystoreBackup:
    """Tests for KeystoreBackup.fetch."""

    @pytest.mark.asyncio
    async def test_writes_keystore_and_returns_secrets(self, service, android_identity, tmp_path):
        """Test the decoded keystore lands in the project directory."""
        service.stored = STORED_KEYSTORE

        result = await KeystoreBackup(service, project_dir=tmp_path).fetch(android_identity)

        assert result.path == tmp_path / "weather.jks"
        assert result.path.read_bytes() == b"stored-keystore"
        assert result.alias == "release"
        assert result.keystore_password == "store-secret"
        assert result.key_password == "key-secret"
        assert service.mutations == []

    @pytest.mark.asyncio
    async def test_existing_file_needs_overwrite(self, service, android_identity, tmp_path):
        """Test an existing backup is not replaced silently."""
        service.stored = STORED_KEYSTORE
        (tmp_path / "weather.jks").write_bytes(b"old")

        with pytest.raises(ConfigurationError, match="--overwrite"):
            await KeystoreBackup(service, project_dir=tmp_path).fetch(android_identity)

        assert (tmp_path / "weather.jks").read_bytes() == b"old"
        assert service.calls == []

    @pytest.mark.asyncio
    async def test_overwrite_replaces_file(self, service, android_identity, tmp_path):
        service.stored = STORED_KEYSTORE
        (tmp_path / "weather.jks").write_bytes(b"old")

        await KeystoreBackup(service, project_dir=tmp_path).fetch(android_identity, overwrite=True)

        assert (tmp_path / "weather.jks").read_bytes() == b"stored-keystore"

    @pytest.mark.asyncio
    async def test_nothing_stored(self, service, android_identity, tmp_path):
        """Test a missing keystore names the slot."""
        with pytest.raises(CredentialError) as exc_info:
            await KeystoreBackup(service, project_dir=tmp_path).fetch(android_identity)

        assert exc_info.value.slot == "keystore"
        assert not (tmp_path / "weather.jks").exists()

    @pytest.mark.asyncio
    async def test_ios_rejected(self, service, ios_identity, tmp_path):
        with pytest.raises(ConfigurationError, match="Only Android"):
            await KeystoreBackup(service, project_dir=tmp_path).fetch(ios_identity)
