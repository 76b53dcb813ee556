from datetime import timedelta

import click
from flask import current_app
from flask.cli import AppGroup

from .services import voting_links
from .utils.clock import utcnow

links_cli = AppGroup("voting-links", help="Voting link maintenance.")


@links_cli.command("expire")
def expire_overdue():
    """Mark open links past their deadline as expired."""
    count = voting_links.store.expire_overdue(utcnow())
    current_app.logger.info("Expired %s overdue voting links", count)
    click.echo(f"Expired {count} voting link(s)")


@links_cli.command("purge")
@click.option("--days", type=int, default=None, help="Delete links whose deadline passed more than N days ago.")
def purge(days):
    """Delete links that expired long ago."""
    if days is None:
        days = current_app.config.get("VOTE_LINK_PURGE_AFTER_DAYS", 30)
    if days < 0:
        raise click.BadParameter("--days must be zero or positive")

    count = voting_links.store.purge_overdue(utcnow() - timedelta(days=days))
    current_app.logger.info("Purged %s voting links older than %s days", count, days)
    click.echo(f"Purged {count} voting link(s)")
