"""CLI command for ``workerkit accounts`` - list parsed accounts."""

import json
import sys

import click

from workerkit.config import get_config
from workerkit.parsing import extract_accounts, reports_no_account
from workerkit.runner import CommandErr, CommandRunner


@click.command()
@click.option("--format", "output_format", type=click.Choice(["text", "json"]), default="text")
def accounts(output_format: str):
    """List the accounts visible to the current login."""
    config = get_config()
    outcome = CommandRunner(config.command_locale).run(config.wrangler("whoami"))
    if isinstance(outcome, CommandErr):
        click.echo(click.style("Could not read account info. Are you logged in?", fg="red"), err=True)
        click.echo(outcome.message, err=True)
        sys.exit(1)

    found = extract_accounts(outcome.stdout)

    if output_format == "json":
        click.echo(json.dumps(
            [{"name": a.display_name, "id": a.account_id} for a in found],
            indent=2,
        ))
        return

    if not found:
        if reports_no_account(outcome.stdout):
            click.echo("The current login is not associated with an account.")
        else:
            click.echo("No accounts found in the account listing.")
        return

    for account in found:
        click.echo(f"{account.account_id}  {account.display_name}")
