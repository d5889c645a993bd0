"""CLI commands for schema setup and manual aggregation.

Usage:
    flask --app tally.wsgi ensure-schema
    flask --app tally.wsgi aggregate
    flask --app tally.wsgi counter-status
"""

from __future__ import annotations

import click
from flask import current_app
from flask.cli import with_appcontext

from tally.core.storage import StorageError
from tally.core.utils.timestamps import format_rfc3339


@click.command("ensure-schema")
@with_appcontext
def ensure_schema_command():
    """Create the counter tables if they do not exist."""
    from tally.counter.services import ensure_schema
    from tally.extensions import db

    try:
        ensure_schema(db.engine, timeout=current_app.config["SCHEMA_TIMEOUT_SECONDS"])
    except StorageError as e:
        raise click.ClickException(f"schema setup failed: {e}")
    click.echo("Counter schema ready")


@click.command("aggregate")
@with_appcontext
def aggregate_command():
    """Recompute the counter total now and append a snapshot."""
    from tally.counter.services import compute_aggregate
    from tally.extensions import db

    try:
        snapshot = compute_aggregate(
            db.engine,
            timeout=current_app.config["AGGREGATION_TIMEOUT_SECONDS"],
            bus=current_app.extensions.get("event_bus"),
        )
    except StorageError as e:
        raise click.ClickException(f"aggregation failed: {e}")
    click.echo(f"Aggregate created: {snapshot.counts} at {format_rfc3339(snapshot.created_at)}")


@click.command("counter-status")
@with_appcontext
def counter_status_command():
    """Print the latest aggregate."""
    from tally.counter.services import get_latest_aggregate
    from tally.extensions import db

    try:
        latest = get_latest_aggregate(db.engine, timeout=current_app.config["READ_TIMEOUT_SECONDS"])
    except StorageError as e:
        raise click.ClickException(f"read failed: {e}")
    last = format_rfc3339(latest.last_time) if latest.found else "never"
    click.echo(f"Counter: {latest.counts} (last aggregated: {last})")


def register_commands(app):
    """Register CLI commands with the app."""
    app.cli.add_command(ensure_schema_command)
    app.cli.add_command(aggregate_command)
    app.cli.add_command(counter_status_command)
