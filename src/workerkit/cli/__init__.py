"""
workerkit CLI - Set up and inspect a Workers deployment.

Commands:
    workerkit setup      Run the full, re-runnable setup
    workerkit accounts   List the accounts of the current login
    workerkit show       Show the settings and bindings workerkit manages
    workerkit migrate    Generate and apply database migrations
"""

import click

from .accounts import accounts
from .migrate import migrate
from .setup import setup
from .show import show


@click.group()
@click.version_option(package_name="workerkit")
def main():
    """workerkit - Next.js on Cloudflare Workers setup."""
    pass


main.add_command(setup)
main.add_command(accounts)
main.add_command(show)
main.add_command(migrate)


if __name__ == "__main__":
    main()
