"""CLI command for ``workerkit show`` - print the managed configuration."""

import json
from typing import Optional

import click
import yaml

from workerkit.config import get_config
from workerkit.document import BUCKETS_KEY, DATABASES_KEY, load_document
from workerkit.errors import PersistenceFailure

MANAGED_KEYS = (
    "name",
    "main",
    "compatibility_date",
    "compatibility_flags",
    "placement",
    "assets",
    DATABASES_KEY,
    BUCKETS_KEY,
)


@click.command()
@click.option(
    "--project-dir",
    type=click.Path(exists=True, file_okay=False),
    default=None,
    help="Application root containing wrangler.toml.",
)
@click.option("--output", "-o", type=click.Choice(["yaml", "json"]), default="yaml")
def show(project_dir: Optional[str], output: str):
    """Show the settings and bindings that setup manages."""
    config = get_config(project_dir=project_dir) if project_dir else get_config()
    try:
        doc = load_document(config.config_path)
    except PersistenceFailure as e:
        raise click.ClickException(str(e))

    managed = {key: doc.get(key) for key in MANAGED_KEYS if key in doc}

    if output == "json":
        click.echo(json.dumps(managed, indent=2, default=str))
    else:
        click.echo(yaml.safe_dump(managed, default_flow_style=False, sort_keys=False), nl=False)
