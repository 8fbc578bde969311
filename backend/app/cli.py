"""
cli.py — Flask CLI commands.

    flask --app "backend.app:create_app('development')" seed-super

Creates the SUPER account from SUPER_NAME / SUPER_USERNAME / SUPER_EMAIL /
SUPER_PASSWORD. Running it again reports the existing account and exits 0.
"""

from __future__ import annotations

import os

import click
from flask import Flask, current_app
from flask.cli import with_appcontext

from backend.app.container import get_services
from backend.app.extensions import db
from backend.app.models.user import Role


@click.command("seed-super")
@with_appcontext
def seed_super_command() -> None:
    """Create the initial SUPER user."""
    name = os.getenv("SUPER_NAME", "super")
    username = os.getenv("SUPER_USERNAME", "super")
    email = os.getenv("SUPER_EMAIL", "super@gmail.com")
    password = os.getenv("SUPER_PASSWORD", "12345678")

    users = get_services().users
    existing = users.get_by_username(username, db.session)
    if existing is not None:
        click.echo(f"Super user '{username}' already exists ({existing.id}).")
        return

    user = users.create(
        name=name,
        username=username,
        email=email,
        password=password,
        role=Role.SUPER,
        session=db.session,
    )
    db.session.commit()
    current_app.logger.info("Seeded super user %s", user.id)
    click.echo(f"Created super user '{username}' ({user.id}).")


def register_commands(app: Flask) -> None:
    app.cli.add_command(seed_super_command)
