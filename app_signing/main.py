"""CLI entry point for app-signing."""

import sys

import click
import structlog

from app_signing.cli.auth import login_command, logout_command
from app_signing.cli.build import build_command
from app_signing.cli.credentials import credentials_group
from app_signing.config.settings import AppSigningSettings
from app_signing.exceptions import ConfigurationError
from app_signing.utils.logging_config import configure_logging

log = structlog.get_logger(__name__)

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


@click.group()
@click.option(
    "--config",
    default=None,
    help="Path to configuration file (default: ~/.appsign/config.yaml when present)",
)
@click.option(
    "--log-level",
    default="WARNING",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    help="Logging level",
)
@click.option("--debug", is_flag=True, help="Verbose logs and raw service responses in errors")
@click.pass_context
def cli(ctx: click.Context, config: str | None, log_level: str, debug: bool) -> None:
    """appsign: signing credentials for remote mobile builds."""
    configure_logging(log_level, diagnostics=debug)

    # login/logout only touch the keyring
    commands_without_config = ["login", "logout"]
    if ctx.invoked_subcommand in commands_without_config:
        ctx.obj = {"settings": None, "debug": debug}
        return

    try:
        settings = AppSigningSettings.load(config)
    except ConfigurationError as e:
        click.echo(f"Error: {e.message}", err=True)
        log.debug("config_error", exc_info=True)
        sys.exit(1)

    ctx.obj = {"settings": settings, "debug": debug}


cli.add_command(build_command)
cli.add_command(credentials_group)
cli.add_command(login_command)
cli.add_command(logout_command)


if __name__ == "__main__":
    cli()
