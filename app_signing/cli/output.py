"""Error output shared by the CLI commands."""

import json

import click

from app_signing.exceptions import AppSigningError


def echo_error(error: AppSigningError, debug: bool = False) -> None:
    """Print ``error`` to stderr with the failing credential and any suggestion.

    With ``debug`` the raw payload the service returned is printed as well.
    """
    click.echo(click.style(f"Error: {error.message}", fg="red"), err=True)

    slot = getattr(error, "slot", None)
    if slot:
        click.echo(f"Failed credential: {slot}", err=True)

    reason = getattr(error, "reason", None)
    if reason:
        click.echo(f"Reason: {reason}", err=True)

    suggestion = getattr(error, "suggestion", None)
    if suggestion:
        click.echo(click.style(f"Suggestion: {suggestion}", fg="yellow"), err=True)

    payload = getattr(error, "payload", None)
    if payload is None:
        return
    if debug:
        click.echo(f"Service response:\n{json.dumps(payload, indent=2, default=str)}", err=True)
    else:
        click.echo("Run with --debug to see the full service response.", err=True)
