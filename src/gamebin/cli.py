"""Command-line interface for GameBin.

This module provides the CLI commands for running the API server and for
moving collection data in and out of the remote document store.
"""

import asyncio
import json
import sys
from pathlib import Path
from typing import NoReturn

import click

from gamebin import __version__
from gamebin.core.config import get_settings
from gamebin.core.logging import LoggingContext, configure_logging, get_logger
from gamebin.domain.exceptions import GameBinError
from gamebin.domain.services import DEFAULT_COLLECTIONS
from gamebin.infrastructure.services import build_services

COLLECTION_NAMES = [definition.name for definition in DEFAULT_COLLECTIONS]


@click.group()
@click.version_option(version=__version__, prog_name="GameBin")
def cli() -> None:
    """GameBin - CRUD service for game-data collections.

    Collections live in JSONBin; configuration comes from GAMEBIN_*
    environment variables or a .env file.
    """


@cli.command()
@click.option(
    "--host",
    type=str,
    default=None,
    help="Host to bind to (overrides config)",
)
@click.option(
    "--port",
    type=int,
    default=None,
    help="Port to bind to (overrides config)",
)
@click.option(
    "--reload",
    is_flag=True,
    default=False,
    help="Enable auto-reload for development",
)
def serve(host: str | None, port: int | None, reload: bool) -> None:
    """Start the GameBin API server."""
    import uvicorn

    settings = get_settings()

    bind_host = host or settings.host
    bind_port = port or settings.port

    configure_logging(settings)

    logger = get_logger(__name__)
    logger.info(
        "Starting GameBin server",
        host=bind_host,
        port=bind_port,
        reload=reload,
        environment=settings.environment,
    )

    uvicorn.run(
        "gamebin.infrastructure.api.app:app",
        host=bind_host,
        port=bind_port,
        reload=reload,
        log_level=settings.log_level.lower(),
        access_log=True,
    )


@cli.command()
def info() -> None:
    """Display GameBin configuration."""
    settings = get_settings()

    click.echo(f"""
GameBin v{settings.app_version}
{'=' * 40}

Configuration:
  Environment:  {settings.environment}
  Debug:        {settings.debug}
  API Prefix:   {settings.api_prefix}

Server:
  Host:         {settings.host}
  Port:         {settings.port}

Remote Store:
  Endpoint:     {settings.api_endpoint}
  Timeout:      {settings.request_timeout_seconds}s
  Call Limit:   {settings.rate_limit_per_hour}/hour
  Overrides:    {', '.join(sorted(settings.bin_ids)) or 'none'}

Cache:
  TTL:          {settings.cache_ttl_seconds}s
  File:         {settings.cache_file if settings.cache_persist_enabled else 'disabled'}

Security:
  Permissions:  {', '.join(settings.permissions)}
  Encryption:   {'enabled' if settings.encryption_enabled else 'disabled'}

Logging:
  Level:        {settings.log_level}
  Format:       {settings.log_format}
""")


@cli.command()
@click.argument("name", type=click.Choice(COLLECTION_NAMES))
@click.option(
    "--format",
    "fmt",
    type=click.Choice(["json", "csv"]),
    default="json",
    show_default=True,
    help="Export format",
)
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, writable=True),
    default=None,
    help="Write to a file instead of stdout",
)
def export(name: str, fmt: str, output: str | None) -> None:
    """Export collection NAME as JSON or CSV."""
    settings = get_settings()
    configure_logging(settings, stream=sys.stderr)

    async def run() -> str:
        store = build_services(settings).store
        await store.load(name)
        return store.export_as(name, fmt)

    try:
        with LoggingContext(command="export", collection=name):
            content = asyncio.run(run())
    except GameBinError as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)

    if output:
        Path(output).write_text(content, encoding="utf-8")
        click.echo(f"Exported {name} to {output}")
    else:
        click.echo(content)


@cli.command(name="import")
@click.argument("name", type=click.Choice(COLLECTION_NAMES))
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--merge",
    is_flag=True,
    default=False,
    help="Keep existing records and add only records with new ids",
)
@click.option(
    "--validate/--no-validate",
    default=True,
    help="Log type mismatches against the collection schema",
)
def import_(name: str, file: str, merge: bool, validate: bool) -> None:
    """Import records from FILE into collection NAME."""
    settings = get_settings()
    configure_logging(settings, stream=sys.stderr)
    payload = Path(file).read_bytes()

    async def run() -> int:
        store = build_services(settings).store
        records = await store.import_into(name, payload, merge=merge, validate=validate)
        return len(records)

    try:
        with LoggingContext(command="import", collection=name):
            count = asyncio.run(run())
    except GameBinError as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)

    click.echo(f"Imported {name}: {count} records {'after merge' if merge else 'saved'}")


@cli.command()
@click.argument("directory", type=click.Path(exists=True, file_okay=False))
@click.option(
    "--prefix",
    default="game_",
    show_default=True,
    help="Prefix for the created bin names",
)
@click.option(
    "--delay",
    type=float,
    default=1.0,
    show_default=True,
    help="Seconds to wait between uploads",
)
def upload(directory: str, prefix: str, delay: float) -> None:
    """Create one remote bin per <collection>.json file in DIRECTORY.

    Prints the new bin ids as a GAMEBIN_BIN_IDS setting.
    """
    settings = get_settings()
    configure_logging(settings, stream=sys.stderr)
    logger = get_logger(__name__)
    client = build_services(settings).client

    async def run() -> dict[str, str]:
        created: dict[str, str] = {}
        for definition in DEFAULT_COLLECTIONS:
            path = Path(directory) / f"{definition.name}.json"
            if not path.exists():
                click.echo(f"Skipping {definition.title}: {path.name} not found")
                continue

            try:
                data = json.loads(path.read_text(encoding="utf-8"))
            except ValueError as e:
                click.echo(f"Failed to read {path.name}: {e}", err=True)
                continue

            size_kb = len(json.dumps(data).encode("utf-8")) / 1024
            try:
                bin_id = await client.create_bin(f"{prefix}{definition.name}", data)
            except GameBinError as e:
                click.echo(f"Failed to upload {definition.title}: {e}", err=True)
                logger.error("Upload failed", collection=definition.name, error=str(e))
                continue

            created[definition.name] = bin_id
            click.echo(f"Uploaded {definition.title} ({size_kb:.2f} KB): {bin_id}")
            if delay > 0:
                await asyncio.sleep(delay)
        return created

    with LoggingContext(command="upload"):
        created = asyncio.run(run())
    if not created:
        click.echo("No collections uploaded.", err=True)
        raise SystemExit(1)

    click.echo(f"\nGAMEBIN_BIN_IDS='{json.dumps(created)}'")


def main() -> NoReturn:
    """Console script entry point (`gamebin` and `python -m gamebin`)."""
    cli()


if __name__ == "__main__":
    main()
