"""Local backup of the Android keystore stored by the build service."""

from dataclasses import dataclass
from pathlib import Path

import structlog

from app_signing.credentials.slots import ANDROID_KEYSTORE
from app_signing.enums import Platform
from app_signing.exceptions import ConfigurationError, CredentialError
from app_signing.models.domain import CredentialBundle, CredentialIdentity
from app_signing.providers.base import CredentialService
from app_signing.utils.files import LocalFileSystem

log = structlog.get_logger(__name__)


def local_keystore_path(project_dir: Path, identity: CredentialIdentity) -> Path:
    """Where the backup of ``identity``'s keystore lives: ``<slug>.jks``."""
    slug = identity.experience_name.rsplit("/", 1)[-1]
    return Path(project_dir) / f"{slug}.jks"


@dataclass
class KeystoreBackupResult:
    path: Path
    alias: str
    keystore_password: str
    key_password: str


class KeystoreBackup:
    """Download the stored keystore into the project directory."""

    def __init__(
        self,
        service: CredentialService,
        project_dir: Path | None = None,
        files: LocalFileSystem | None = None,
    ) -> None:
        self.service = service
        self.project_dir = project_dir or Path.cwd()
        self.files = files or LocalFileSystem(self.project_dir)

    async def fetch(self, identity: CredentialIdentity, overwrite: bool = False) -> KeystoreBackupResult:
        """Write the stored keystore to ``<slug>.jks``.

        Raises:
            ConfigurationError: Not an Android identity, or the backup file
                exists and ``overwrite`` is False
            CredentialError: Nothing is stored for the identity
        """
        if identity.platform != Platform.ANDROID:
            raise ConfigurationError("Only Android keystores can be fetched")

        path = local_keystore_path(self.project_dir, identity)
        if self.files.file_exists(path) and not overwrite:
            raise ConfigurationError(f"{path} already exists. Use --overwrite to replace it.")

        stored = await self.service.fetch_credentials(identity)
        bundle = CredentialBundle.from_stored(identity, stored, (ANDROID_KEYSTORE,))
        slot = bundle.get(ANDROID_KEYSTORE.name)
        if slot is None or not slot.present:
            raise CredentialError(
                f"There is no keystore stored for {identity.experience_name}",
                slot=ANDROID_KEYSTORE.name,
            )

        self.files.write_base64(path, slot.value["keystore"])
        log.info("keystore_backup_written", path=str(path))
        return KeystoreBackupResult(
            path=path,
            alias=slot.value.get("keystoreAlias", ""),
            keystore_password=slot.value.get("keystorePassword", ""),
            key_password=slot.value.get("keyPassword", ""),
        )
