"""Typer CLI for OpenHaus."""

from __future__ import annotations

import json
from dataclasses import asdict
from pathlib import Path

from sqlalchemy.exc import OperationalError
import typer
import uvicorn

from .catalog import ALL_CATEGORIES, categories, filter_events, load_catalog
from .config import (
    DEFAULTS,
    load_settings,
    settings,
    settings_as_dict,
    update_config_file,
)
from .seed import seed_fake_data
from .storage import init_db, upgrade_database

app = typer.Typer(help="OpenHaus command-line interface")


@app.callback(invoke_without_command=True)
def main(ctx: typer.Context) -> None:
    """Show help when no subcommand is provided."""
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()


@app.command("upgrade-db")
def upgrade_db(
    no_backup: bool = typer.Option(
        False,
        "--no-backup",
        help="Skip creating a .bak copy of the database before upgrading",
    ),
) -> None:
    """Upgrade the SQLite database schema if needed."""
    try:
        actions = upgrade_database(make_backup=not no_backup)
    except OperationalError as exc:
        message = str(getattr(exc, "orig", exc)).lower()
        if "readonly" in message or "read-only" in message:
            typer.secho(
                "Unable to upgrade because the database is read-only. "
                f"Ensure write access to {settings.database_path}.",
                err=True,
                fg=typer.colors.RED,
            )
            raise typer.Exit(code=1)
        raise

    if not actions:
        typer.echo("Database already up to date.")
        return

    typer.echo("Database upgrade complete:")
    for action in actions:
        typer.echo(f"- {action}")


@app.command("runserver")
def runserver(
    host: str = typer.Option(settings.app_host, "--host", help="Host to bind"),
    port: int = typer.Option(settings.app_port, "--port", help="Port to bind"),
):
    """Start the FastAPI application."""
    init_db()
    config = uvicorn.Config(
        "openhaus.api:app",
        host=host,
        port=port,
        reload=False,
        proxy_headers=True,
        forwarded_allow_ips="*",
    )
    server = uvicorn.Server(config)
    typer.echo(f"Starting OpenHaus on {host}:{port}")
    server.run()


@app.command("events")
def list_events(
    query: str = typer.Option("", "--query", "-q", help="Match title or location"),
    category: str = typer.Option(
        ALL_CATEGORIES, "--category", "-c", help="Only events with this tag"
    ),
    catalog_path: Path | None = typer.Option(
        None, "--catalog", help="JSON catalog file (default: built-in catalog)"
    ),
    as_json: bool = typer.Option(False, "--json", help="Print events as JSON"),
) -> None:
    """Search the event catalog the same way the home page does."""
    catalog = load_catalog(catalog_path or settings.catalog_path)
    if category not in categories(catalog):
        typer.secho(
            f"Unknown category {category!r}. "
            f"Choose from: {', '.join(categories(catalog))}",
            err=True,
            fg=typer.colors.RED,
        )
        raise typer.Exit(code=1)
    events = filter_events(catalog, query, category)
    if as_json:
        typer.echo(
            json.dumps(
                [asdict(event) for event in events], indent=2, ensure_ascii=False
            )
        )
        return
    if not events:
        typer.echo("No events found.")
        return
    for event in events:
        typer.echo(
            f"{event.id}\t{event.date} {event.time}\t{event.title} "
            f"@ {event.location} [{', '.join(event.tags)}]"
        )


@app.command("seed-data")
def seed_data(
    users: int = typer.Option(
        settings.seed_users, "--users", min=0, help="Number of users to create"
    ),
    max_events: int = typer.Option(
        settings.seed_events_per_user,
        "--max-events",
        min=0,
        help="Maximum hosted events to create per user",
    ),
):
    """Populate the database with fake users and hosted events for testing."""
    stats = seed_fake_data(user_count=users, max_events_per_user=max_events)
    typer.echo(
        f"Seed complete: {stats['users']} users, {stats['events']} hosted events created."
    )


@app.command("config")
def configure(
    show: bool = typer.Option(
        False, "--show", help="Show the current effective configuration"
    ),
    set_values: list[str] = typer.Option(
        None,
        "--set",
        help="KEY=VALUE pair to persist (repeatable), e.g. --set toast_seconds=5",
    ),
    config_path: Path | None = typer.Option(
        None, "--config-path", help="Path to openhaus.toml (default: ./openhaus.toml)"
    ),
):
    """View or update the persistent configuration file."""
    updates: dict[str, str] = {}
    for item in set_values or []:
        key, sep, value = item.partition("=")
        key = key.strip()
        if not sep or key not in DEFAULTS:
            typer.secho(
                f"Invalid setting {item!r}. Known keys: {', '.join(sorted(DEFAULTS))}",
                err=True,
                fg=typer.colors.RED,
            )
            raise typer.Exit(code=1)
        updates[key] = value.strip()

    target_path = config_path or settings.config_path
    if updates:
        try:
            settings_ref = update_config_file(updates, path=target_path)
        except ValueError as exc:
            typer.secho(f"Invalid value: {exc}", err=True, fg=typer.colors.RED)
            raise typer.Exit(code=1)
        typer.echo(f"Updated configuration in {target_path}")
    else:
        settings_ref = load_settings(target_path)
    if show or not updates:
        effective = settings_as_dict(settings_ref)
        effective["config_path"] = str(target_path)
        typer.echo(json.dumps(effective, indent=2))


if __name__ == "__main__":
    app()
