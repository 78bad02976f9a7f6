"""CLI command starting a remote build: ``appsign build android|ios``."""

import asyncio
import sys
from pathlib import Path
from typing import Any

import click
import structlog

from app_signing.cli.output import echo_error
from app_signing.config.project import ProjectConfig
from app_signing.config.settings import AppSigningSettings
from app_signing.credentials.environment_backend import EnvironmentBackend
from app_signing.engine.runner import ARCHIVE, SIMULATOR, BuildRunner
from app_signing.enums import FlowMode, Platform
from app_signing.exceptions import AppSigningError
from app_signing.models.domain import BuildOptions, CredentialIdentity
from app_signing.providers.factory import create_build_service
from app_signing.utils.prompts import ClickPrompter, NonInteractivePrompter

log = structlog.get_logger(__name__)


@click.command(name="build")
@click.argument("platform", type=click.Choice([p.value for p in Platform]))
@click.argument("project_dir", required=False, type=click.Path(file_okay=False, path_type=Path))
@click.option(
    "-c",
    "--clear-credentials",
    is_flag=True,
    help="Permanently delete the stored credentials and provide new ones",
)
@click.option(
    "--non-interactive",
    is_flag=True,
    help="Never prompt; missing credentials must come from EXP_* environment variables",
)
@click.option(
    "-t",
    "--type",
    "build_type",
    type=click.Choice([ARCHIVE, SIMULATOR]),
    default=ARCHIVE,
    help="iOS build type: archive (signed, default) or simulator (no credentials)",
)
@click.option("--legacy-flow", is_flag=True, help="Validate and upload each iOS credential on its own")
@click.pass_context
def build_command(
    ctx: click.Context,
    platform: str,
    project_dir: Path | None,
    clear_credentials: bool,
    non_interactive: bool,
    build_type: str,
    legacy_flow: bool,
) -> None:
    """Resolve signing credentials and start a remote build.

    Credentials are taken, per credential, from EXP_* environment variables
    first, then from what the build service already stores, and are asked
    for otherwise.

    Examples:

        appsign build ios

        appsign build android ./my-app --non-interactive

        appsign build ios -t simulator
    """
    settings: AppSigningSettings = ctx.obj["settings"]
    debug: bool = ctx.obj["debug"]

    if build_type == SIMULATOR and platform != Platform.IOS.value:
        raise click.UsageError("Simulator builds are only available for iOS")

    project_dir = project_dir or settings.project_path
    options = BuildOptions(
        clear_credentials=clear_credentials,
        non_interactive=non_interactive,
        simulator_only=build_type == SIMULATOR,
        diagnostics=debug,
        ios_flow=FlowMode.LEGACY if legacy_flow else settings.build.ios_flow,
    )

    try:
        project = ProjectConfig.load(project_dir)
        identity = project.identity(Platform(platform), settings.account.username)
        build = asyncio.run(_run_build(settings, identity, options, project_dir))
    except AppSigningError as e:
        echo_error(e, options.diagnostics)
        log.debug("build_error", exc_info=True)
        sys.exit(1)
    except KeyboardInterrupt:
        click.echo("\nInterrupted by user", err=True)
        sys.exit(130)

    click.echo(click.style("Build started", fg="green"))
    if build.get("id"):
        click.echo(f"Build ID: {build['id']}")
    if build.get("url"):
        click.echo(f"Follow it at: {build['url']}")


async def _run_build(
    settings: AppSigningSettings,
    identity: CredentialIdentity,
    options: BuildOptions,
    project_dir: Path,
) -> dict[str, Any]:
    prompter = NonInteractivePrompter() if options.non_interactive else ClickPrompter()
    async with create_build_service(settings) as service:
        runner = BuildRunner(
            service,
            service,
            prompter,
            environment=EnvironmentBackend().snapshot(),
            project_dir=project_dir,
        )
        return await runner.run(identity, options)
