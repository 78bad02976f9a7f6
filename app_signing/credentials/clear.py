"""Permanent deletion of stored build credentials.

Deletion cannot be undone: the service holds the only copy of a generated
keystore, and a Play Store app can never change its signing key. The flow
therefore always warns first and only deletes after an explicit "yes".
"""

from pathlib import Path

import structlog

from app_signing.credentials.backup import local_keystore_path
from app_signing.enums import Platform
from app_signing.exceptions import UserDeclined
from app_signing.models.domain import CredentialIdentity
from app_signing.providers.base import CredentialService
from app_signing.utils.files import LocalFileSystem
from app_signing.utils.prompts import Prompter, PromptField, PromptKind

log = structlog.get_logger(__name__)

_PLATFORM_LABELS = {Platform.ANDROID: "Android", Platform.IOS: "iOS"}


class ClearCredentialsFlow:
    """Warn, confirm, delete.

    Used standalone (``appsign credentials clear``) and embedded in the
    orchestrator when a build runs with ``--clear-credentials``. In
    non-interactive mode nobody can answer, so the explicit clear request is
    taken as the confirmation.
    """

    def __init__(
        self,
        service: CredentialService,
        prompter: Prompter,
        project_dir: Path | None = None,
        non_interactive: bool = False,
        files: LocalFileSystem | None = None,
    ) -> None:
        self.service = service
        self.prompter = prompter
        self.project_dir = project_dir or Path.cwd()
        self.non_interactive = non_interactive
        self.files = files or LocalFileSystem(self.project_dir)

    async def run(self, identity: CredentialIdentity) -> bool:
        """Delete the stored credentials of ``identity`` once confirmed.

        Returns:
            True when the credentials were deleted, False when the operator
            declined (nothing is changed in that case)
        """
        self._warn(identity)

        try:
            self._confirm(identity)
        except UserDeclined:
            log.info("clear_credentials_declined", platform=str(identity.platform))
            return False

        await self.service.delete_credentials(identity.platform, identity)
        log.info("credentials_cleared", platform=str(identity.platform), experience=identity.experience_name)
        return True

    def _warn(self, identity: CredentialIdentity) -> None:
        label = _PLATFORM_LABELS[identity.platform]

        if identity.platform == Platform.ANDROID:
            if self.files.file_exists(local_keystore_path(self.project_dir, identity)):
                self.prompter.warn(
                    "Detected a local copy of an Android keystore. Please double check that the "
                    "keystore is up to date so it can be used as a backup."
                )
            else:
                self.prompter.warn("Cannot find a local keystore in the current project directory.")
                self.prompter.warn("Can you make sure you have a local backup of your keystore?")
                self.prompter.warn(
                    "You can fetch an updated version from our servers with "
                    "`appsign credentials fetch android [PROJECT_DIR]`."
                )
        else:
            self.prompter.warn(
                "Make sure you have local backups of your distribution and push certificates "
                "and provisioning profile before continuing."
            )

        self.prompter.warn(
            f"Clearing your {label} build credentials from our build servers is a "
            "PERMANENT and IRREVERSIBLE action."
        )
        if identity.platform == Platform.ANDROID:
            self.prompter.warn(
                "Android keystores must be identical to the one previously used to submit "
                "your app to the Google Play Store."
            )

    def _confirm(self, identity: CredentialIdentity) -> None:
        """Raise ``UserDeclined`` unless the operator confirms."""
        if self.non_interactive:
            log.info("clear_credentials_confirmed_by_flag", platform=str(identity.platform))
            return

        label = _PLATFORM_LABELS[identity.platform]
        answers = self.prompter.ask(
            [
                PromptField(
                    name="confirm",
                    kind=PromptKind.CONFIRM,
                    message=f"Permanently delete the {label} build credentials from our servers?",
                )
            ]
        )
        if not answers.get("confirm"):
            raise UserDeclined(f"Keeping the stored {label} credentials")
