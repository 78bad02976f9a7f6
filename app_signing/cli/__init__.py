"""CLI commands for app-signing.

The CLI is built using Click with the main entry point ``appsign``.

Key Commands:
    build (app_signing.cli.build):
        Resolve signing credentials and start a remote Android or iOS build.

    credentials (app_signing.cli.credentials):
        Command group for stored credentials: ``clear`` deletes them,
        ``fetch`` downloads the Android keystore as a local backup.

    login / logout (app_signing.cli.auth):
        Store or remove the build service API token in the system keyring.

Usage Examples:
    Build in CI with credentials from the environment::

        $ EXP_ANDROID_KEYSTORE_PATH=release.jks ... appsign build android --non-interactive

    Start over with new iOS credentials::

        $ appsign build ios --clear-credentials
"""

from app_signing.cli.auth import login_command, logout_command
from app_signing.cli.build import build_command
from app_signing.cli.credentials import credentials_group

__all__ = ["build_command", "credentials_group", "login_command", "logout_command"]
