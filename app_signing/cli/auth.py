"""CLI commands storing the build service token: ``appsign login`` / ``appsign logout``."""

import sys

import click

from app_signing.credentials.token import DEFAULT_TOKEN_REFERENCE, ServiceTokenResolver
from app_signing.exceptions import CredentialError


@click.command(name="login")
@click.option(
    "--token",
    prompt="API token",
    hide_input=True,
    help="Build service API token (will prompt if not provided)",
)
def login_command(token: str) -> None:
    """Store the build service API token in the system keyring."""
    try:
        ServiceTokenResolver().store(token.strip())
    except CredentialError as e:
        click.echo(click.style(f"Error: {e.message}", fg="red"), err=True)
        if e.suggestion:
            click.echo(click.style(f"Suggestion: {e.suggestion}", fg="yellow"), err=True)
        sys.exit(1)
    except ValueError as e:
        click.echo(click.style(f"Error: {e}", fg="red"), err=True)
        sys.exit(1)

    click.echo(click.style("Logged in", fg="green"))
    click.echo(f"Token stored as {DEFAULT_TOKEN_REFERENCE}")


@click.command(name="logout")
def logout_command() -> None:
    """Remove the stored build service API token."""
    try:
        removed = ServiceTokenResolver().forget()
    except CredentialError as e:
        click.echo(click.style(f"Error: {e.message}", fg="red"), err=True)
        sys.exit(1)

    if removed:
        click.echo(click.style("Logged out", fg="green"))
    else:
        click.echo("Not logged in")
