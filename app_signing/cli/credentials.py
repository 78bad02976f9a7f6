"""CLI commands for stored build credentials.

This module provides the ``appsign credentials`` command group:

Commands:
    - clear: Permanently delete the credentials stored for an app
    - fetch: Download the stored Android keystore as a local backup

Example:
    Back up the keystore before clearing it::

        $ appsign credentials fetch android ./my-app
        $ appsign credentials clear android ./my-app
"""

import asyncio
import sys
from pathlib import Path

import click

from app_signing.cli.output import echo_error
from app_signing.config.project import ProjectConfig
from app_signing.config.settings import AppSigningSettings
from app_signing.credentials.backup import KeystoreBackup, KeystoreBackupResult
from app_signing.credentials.clear import ClearCredentialsFlow
from app_signing.enums import Platform
from app_signing.exceptions import AppSigningError
from app_signing.models.domain import CredentialIdentity
from app_signing.providers.factory import create_build_service
from app_signing.utils.prompts import ClickPrompter, NonInteractivePrompter


@click.group(name="credentials")
def credentials_group() -> None:
    """Manage the build credentials stored by the build service.

    Examples:

        # Save a local copy of the Android keystore
        appsign credentials fetch android

        # Delete the stored iOS credentials
        appsign credentials clear ios
    """
    pass


@credentials_group.command(name="clear")
@click.argument("platform", type=click.Choice([p.value for p in Platform]))
@click.argument("project_dir", required=False, type=click.Path(file_okay=False, path_type=Path))
@click.option(
    "--non-interactive",
    is_flag=True,
    help="Do not ask for confirmation (the command itself is the confirmation)",
)
@click.pass_context
def clear_credentials(ctx: click.Context, platform: str, project_dir: Path | None, non_interactive: bool) -> None:
    """Permanently delete the build credentials stored for an app.

    This cannot be undone. Make sure you have local backups first.
    """
    settings: AppSigningSettings = ctx.obj["settings"]
    project_dir = project_dir or settings.project_path

    try:
        identity = _identity(settings, project_dir, Platform(platform))
        cleared = asyncio.run(_clear(settings, identity, project_dir, non_interactive))
    except AppSigningError as e:
        echo_error(e, ctx.obj["debug"])
        sys.exit(1)

    if cleared:
        click.echo(click.style("Credentials cleared", fg="green"))
    else:
        click.echo("Nothing was deleted.")


@credentials_group.command(name="fetch")
@click.argument("platform", type=click.Choice([Platform.ANDROID.value]))
@click.argument("project_dir", required=False, type=click.Path(file_okay=False, path_type=Path))
@click.option("--overwrite", is_flag=True, help="Replace an existing local keystore")
@click.pass_context
def fetch_credentials(ctx: click.Context, platform: str, project_dir: Path | None, overwrite: bool) -> None:
    """Download the stored Android keystore into <slug>.jks.

    Prints the keystore alias and passwords; keep them with the file.
    """
    settings: AppSigningSettings = ctx.obj["settings"]
    project_dir = project_dir or settings.project_path

    try:
        identity = _identity(settings, project_dir, Platform(platform))
        result = asyncio.run(_fetch(settings, identity, project_dir, overwrite))
    except AppSigningError as e:
        echo_error(e, ctx.obj["debug"])
        sys.exit(1)

    click.echo(click.style(f"Keystore saved to {result.path}", fg="green"))
    click.echo(f"Keystore alias: {result.alias}")
    click.echo(f"Keystore password: {result.keystore_password}")
    click.echo(f"Key password: {result.key_password}")
    click.echo(click.style("Store these passwords somewhere safe.", fg="yellow"))


def _identity(settings: AppSigningSettings, project_dir: Path, platform: Platform) -> CredentialIdentity:
    return ProjectConfig.load(project_dir).identity(platform, settings.account.username)


async def _clear(
    settings: AppSigningSettings,
    identity: CredentialIdentity,
    project_dir: Path,
    non_interactive: bool,
) -> bool:
    prompter = NonInteractivePrompter() if non_interactive else ClickPrompter()
    async with create_build_service(settings) as service:
        flow = ClearCredentialsFlow(service, prompter, project_dir=project_dir, non_interactive=non_interactive)
        return await flow.run(identity)


async def _fetch(
    settings: AppSigningSettings,
    identity: CredentialIdentity,
    project_dir: Path,
    overwrite: bool,
) -> KeystoreBackupResult:
    async with create_build_service(settings) as service:
        return await KeystoreBackup(service, project_dir=project_dir).fetch(identity, overwrite=overwrite)
