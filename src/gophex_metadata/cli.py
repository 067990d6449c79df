"""gophex-meta CLI: inspect and update a project's ``gophex.md``."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

import click

from gophex_metadata import __version__
from gophex_metadata.hierarchy import ScanError
from gophex_metadata.store import MetadataError

_PROJECT_OPTION = click.option(
    "--project",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=None,
    help="Project root (default: current directory).",
)


@click.group()
@click.version_option(version=__version__, prog_name="gophex-meta")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Minimal output (errors only).")
@click.pass_context
def main(ctx: click.Context, *, verbose: bool, quiet: bool) -> None:
    """Gophex project metadata - generation state and activity tracking."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    level = logging.DEBUG if verbose else logging.ERROR if quiet else logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


@main.command()
@click.argument("name")
@click.option(
    "--kind",
    default="api",
    show_default=True,
    help="Project kind (api, cli, webapp, microservice, ...).",
)
@click.option("--db-type", default=None, help="Database engine (mysql, postgresql, mongodb).")
@click.option(
    "--db-config-type",
    default="single",
    show_default=True,
    help="Database topology (single, read-write, cluster).",
)
@click.option("--db-ssl-mode", default="", help="Database SSL mode.")
@click.option("--redis/--no-redis", "use_redis", default=False, help="Redis configured.")
@click.option("--gophex-version", default="", help="Generator version to record.")
@_PROJECT_OPTION
@click.pass_context
def generate(
    ctx: click.Context,
    name: str,
    *,
    kind: str,
    db_type: str | None,
    db_config_type: str,
    db_ssl_mode: str,
    use_redis: bool,
    gophex_version: str,
    project: Path | None,
) -> None:
    """Scan the project and (re)write gophex.md."""
    from gophex_metadata.models import DatabaseConfig, RedisConfig
    from gophex_metadata.store import create_metadata, metadata_path

    project_root = project or Path.cwd()
    database = (
        DatabaseConfig(type=db_type, config_type=db_config_type, ssl_mode=db_ssl_mode)
        if db_type
        else None
    )
    redis = RedisConfig(enabled=True) if use_redis else None

    try:
        metadata = create_metadata(
            project_root,
            name,
            kind,
            database=database,
            redis=redis,
            gophex_version=gophex_version,
        )
    except (MetadataError, ScanError, ValueError) as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)

    if not ctx.obj.get("quiet"):
        click.echo(f"Wrote {metadata_path(project_root)}")
        click.echo(f"Files:     {metadata.hierarchy.count_files()}")
        click.echo(f"Features:  {len(metadata.features)}")
        if metadata.endpoints is not None:
            click.echo(f"Endpoints: {len(metadata.endpoints)}")
        if metadata.commands is not None:
            click.echo(f"Commands:  {len(metadata.commands)}")


@main.command()
@_PROJECT_OPTION
@click.option("--json", "output_json", is_flag=True, help="Output as JSON.")
def status(*, project: Path | None, output_json: bool) -> None:
    """Show project info, activities and features."""
    from gophex_metadata.models import format_time_ago
    from gophex_metadata.store import load_metadata

    project_root = project or Path.cwd()
    try:
        metadata = load_metadata(project_root)
    except MetadataError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)

    if output_json:
        click.echo(json.dumps(metadata.to_dict(), ensure_ascii=False, indent=2))
        return

    from rich.console import Console
    from rich.panel import Panel
    from rich.table import Table

    console = Console()
    info = metadata.project
    console.print(
        Panel(
            f"Generated: {info.generated_at}\n"
            f"Last updated: {format_time_ago(info.last_updated)}",
            title=f"{info.name} ({info.type}) v{info.version}",
            border_style="blue",
        )
    )

    activity_table = Table(title="Activities", show_header=False, box=None, padding=(0, 1))
    activity_table.add_column("activity", style="cyan")
    activity_table.add_column("done")
    activity_table.add_column("when")
    for name, act in sorted(metadata.activities.items()):
        mark = "[green]yes[/]" if act.completed else "[dim]no[/]"
        when = format_time_ago(act.timestamp) if act.timestamp else ""
        activity_table.add_row(name, mark, when)
    console.print(activity_table)
    console.print()

    db = metadata.database
    if db.configured:
        console.print(
            f"  Database: [bold]{db.type}[/] ({db.config_type or 'single'})   "
            f"Migrations: {'yes' if db.migrations_executed else 'no'}   "
            f"Schema: {'yes' if db.schema_initialized else 'no'}"
        )
    if metadata.redis.configured:
        console.print(f"  Redis: {'enabled' if metadata.redis.enabled else 'disabled'}")

    if metadata.features:
        console.print(f"  Features: {', '.join(sorted(metadata.features))}")


@main.command()
@click.argument("name")
@click.option("--undo", is_flag=True, help="Mark the activity as not completed.")
@_PROJECT_OPTION
def activity(name: str, *, undo: bool, project: Path | None) -> None:
    """Mark activity NAME as completed (or not, with --undo)."""
    from gophex_metadata.store import activity_prefix, update_activity

    project_root = project or Path.cwd()
    prefix = activity_prefix(project_root, name)
    try:
        update_activity(project_root, name, completed=not undo)
    except MetadataError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)

    if undo:
        click.echo(f"{name}: marked as not completed")
    else:
        click.echo(f"{name}: {prefix}completed")


@main.command("db-status")
@click.option("--migrations/--no-migrations", default=False, help="Migrations executed.")
@click.option("--schema/--no-schema", default=False, help="Schema initialized.")
@_PROJECT_OPTION
def db_status(*, migrations: bool, schema: bool, project: Path | None) -> None:
    """Record database migration and schema state."""
    from gophex_metadata.store import update_database_status

    project_root = project or Path.cwd()
    try:
        update_database_status(
            project_root, migrations_executed=migrations, schema_initialized=schema
        )
    except MetadataError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)
    click.echo(f"Migrations: {'yes' if migrations else 'no'}  Schema: {'yes' if schema else 'no'}")
