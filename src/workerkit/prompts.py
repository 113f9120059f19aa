"""
Interactive questions asked during setup.

Steps only see the ``Prompter`` interface. ``ClickPrompter`` asks on the
terminal; ``NonInteractivePrompter`` answers every question with its
default, for CI and scripted runs.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Optional, Sequence

import click

from workerkit.errors import UserAbort


@dataclass(frozen=True)
class Choice:
    value: Any
    label: str
    hint: Optional[str] = None


class Prompter:
    """Interface for asking the user questions."""

    interactive = True

    def text(self, message: str, default: str = "") -> str:
        raise NotImplementedError

    def select(self, message: str, choices: Sequence[Choice]) -> Any:
        raise NotImplementedError

    def confirm(self, message: str, default: bool = False) -> bool:
        raise NotImplementedError

    def info(self, message: str) -> None:
        click.echo(message)


class ClickPrompter(Prompter):
    """Ask on the terminal with click. Ctrl+C raises ``UserAbort``."""

    def text(self, message: str, default: str = "") -> str:
        try:
            value = click.prompt(message, default=default, show_default=bool(default))
        except click.Abort:
            raise UserAbort()
        return str(value).strip()

    def select(self, message: str, choices: Sequence[Choice]) -> Any:
        click.echo(message)
        for index, choice in enumerate(choices, start=1):
            hint = f"  ({choice.hint})" if choice.hint else ""
            click.echo(f"  {index}. {choice.label}{hint}")
        try:
            index = click.prompt(
                "  Choice",
                type=click.IntRange(1, len(choices)),
                default=1,
            )
        except click.Abort:
            raise UserAbort()
        return choices[index - 1].value

    def confirm(self, message: str, default: bool = False) -> bool:
        try:
            return click.confirm(message, default=default)
        except click.Abort:
            raise UserAbort()


class NonInteractivePrompter(Prompter):
    """
    Answer every question without asking.

    Text questions take their default. A selection cannot be guessed, so it
    aborts the run; callers avoid selections by configuring the answer up
    front (e.g. the account id environment variable).
    """

    interactive = False

    def text(self, message: str, default: str = "") -> str:
        return default

    def select(self, message: str, choices: Sequence[Choice]) -> Any:
        raise UserAbort(f"{message} requires an interactive choice")

    def confirm(self, message: str, default: bool = False) -> bool:
        return default
