"""CLI command for ``workerkit migrate`` - migrations without the rest of setup."""

import sys
from typing import Optional

import click

from workerkit.config import get_config
from workerkit.orchestrator import SetupContext, StepOutcome
from workerkit.prompts import NonInteractivePrompter
from workerkit.runner import CommandRunner
from workerkit.steps import apply_migrations


@click.command()
@click.argument("database_name")
@click.option(
    "--project-dir",
    type=click.Path(exists=True, file_okay=False),
    default=None,
    help="Application root containing the migrations directory.",
)
def migrate(database_name: str, project_dir: Optional[str]):
    """Generate migrations and apply them to DATABASE_NAME, locally then remotely."""
    config = get_config(project_dir=project_dir) if project_dir else get_config()
    context = SetupContext(
        config=config,
        runner=CommandRunner(config.command_locale),
        prompter=NonInteractivePrompter(),
    )

    result = apply_migrations(context, database_name)

    if result.outcome == StepOutcome.SUCCESS:
        click.echo(click.style(result.message, fg="green"))
        return

    color = "red" if result.is_fatal else "yellow"
    click.echo(click.style(result.message, fg=color), err=True)
    if result.output:
        click.echo(result.output, err=True)
    if result.is_fatal:
        sys.exit(1)
