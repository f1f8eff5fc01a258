"""
Administrative commands run outside the HTTP API.

Roles can only be changed here: no public route accepts a role.
"""

import click

from storefront import config, users
from storefront.errors import NotFoundError
from storefront.database import ensure_indexes, get_db


@click.group()
def cli():
    """Storefront administration."""


@cli.command("init-db")
def init_db():
    """Create the unique indexes the API relies on."""
    ensure_indexes(get_db())
    click.echo(f"Indexes ensured on {config.DATABASE_NAME}")


@cli.command("set-role")
@click.argument("email")
@click.argument("role", type=click.Choice(["admin", "user"]))
def set_role(email, role):
    """Grant ROLE to the account registered with EMAIL."""
    try:
        user = users.set_role(get_db(), email, role)
    except NotFoundError as e:
        raise click.ClickException(e.message)
    click.echo(f"{user['email']} is now {user['role']}")


def main():
    cli()


if __name__ == "__main__":
    main()
