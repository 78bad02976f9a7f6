"""Interactive question/answer exchange with the operator.

Resolution code never talks to the terminal directly. It describes what it
needs as a schema (a sequence of ``PromptField``) and hands it to a
``Prompter``. ``ClickPrompter`` renders the schema with Click; tests use an
in-memory implementation, and CI runs use ``NonInteractivePrompter`` which
refuses to ask anything.

Example:
    >>> prompter = ClickPrompter()
    >>> answers = prompter.ask(
    ...     [
    ...         PromptField("appleId", PromptKind.TEXT, "What's your Apple ID?"),
    ...         PromptField("password", PromptKind.SECRET, "Password?"),
    ...     ]
    ... )
    >>> answers["appleId"]
    'jdoe@example.com'
"""

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol

import click
import structlog

from app_signing.exceptions import ConfigurationError

log = structlog.get_logger(__name__)

# A validator returns True when the answer is acceptable, otherwise False or
# a message explaining what is wrong.
Validator = Callable[[Any], bool | str]


class PromptKind(str, Enum):
    """Kinds of questions a schema can contain."""

    TEXT = "text"
    SECRET = "secret"
    PATH = "path"
    CHOICE = "choice"
    CONFIRM = "confirm"


@dataclass(frozen=True)
class Choice:
    """One option of a CHOICE question."""

    label: str
    value: Any


@dataclass(frozen=True)
class PromptField:
    """A single question in a prompt schema.

    Attributes:
        name: Key of the answer in the returned mapping
        kind: How the question is asked
        message: Question text
        validator: Optional check applied to the (transformed) answer
        choices: Options for CHOICE questions
        skip_if: Predicate over the answers so far; when it returns True the
            question is not asked
        optional: Accept an empty answer for text/secret/path questions
        transform: Applied to the raw answer before validation
    """

    name: str
    kind: PromptKind
    message: str
    validator: Validator | None = None
    choices: tuple[Choice, ...] = ()
    skip_if: Callable[[Mapping[str, Any]], bool] | None = None
    optional: bool = False
    transform: Callable[[str], Any] | None = None


class Prompter(Protocol):
    """Interface of the interactive collaborator."""

    def ask(self, schema: Sequence[PromptField]) -> dict[str, Any]:
        """Ask every non-skipped question of ``schema`` in order."""
        ...

    def info(self, message: str) -> None:
        """Show an informational line."""
        ...

    def warn(self, message: str) -> None:
        """Show a warning line."""
        ...


def check_answer(field: PromptField, value: Any) -> str | None:
    """Return an error message when ``value`` is not acceptable for ``field``."""
    if field.kind in (PromptKind.TEXT, PromptKind.SECRET, PromptKind.PATH):
        if value in (None, "") and not field.optional:
            return "A value is required."
    if field.validator is not None and value not in (None, ""):
        verdict = field.validator(value)
        if verdict is not True:
            return verdict if isinstance(verdict, str) else "Invalid value."
    return None


class ClickPrompter:
    """Render prompt schemas on the terminal with Click."""

    def ask(self, schema: Sequence[PromptField]) -> dict[str, Any]:
        answers: dict[str, Any] = {}
        for field in schema:
            if field.skip_if is not None and field.skip_if(answers):
                log.debug("prompt_skipped", field=field.name)
                continue
            answers[field.name] = self._ask_one(field)
        return answers

    def info(self, message: str) -> None:
        click.echo(message)

    def warn(self, message: str) -> None:
        click.echo(click.style(message, fg="yellow"), err=True)

    def _ask_one(self, field: PromptField) -> Any:
        if field.kind == PromptKind.CONFIRM:
            return click.confirm(field.message, default=False)

        if field.kind == PromptKind.CHOICE:
            return self._ask_choice(field)

        while True:
            raw = click.prompt(
                field.message,
                default="" if field.optional else None,
                show_default=False,
                hide_input=field.kind == PromptKind.SECRET,
                type=str,
            )
            value = field.transform(raw) if field.transform and raw else raw
            error = check_answer(field, value)
            if error is None:
                return value
            click.echo(click.style(error, fg="red"), err=True)

    def _ask_choice(self, field: PromptField) -> Any:
        click.echo(field.message)
        for index, choice in enumerate(field.choices, start=1):
            click.echo(f"  {index}) {choice.label}")
        selected = click.prompt(
            "Answer",
            type=click.IntRange(1, len(field.choices)),
            default=1,
        )
        return field.choices[selected - 1].value


class NonInteractivePrompter:
    """Prompter for CI runs: any question is a configuration error."""

    def ask(self, schema: Sequence[PromptField]) -> dict[str, Any]:
        pending = [field.name for field in schema if field.skip_if is None or not field.skip_if({})]
        if not pending:
            return {}
        raise ConfigurationError(
            f"Cannot prompt for {', '.join(pending)} in non-interactive mode. "
            "Provide the values through environment variables."
        )

    def info(self, message: str) -> None:
        log.info("prompt_info", message=message)

    def warn(self, message: str) -> None:
        log.warning("prompt_warning", message=message)
