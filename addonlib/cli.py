"""CLI commands for managing addons.

Usage:
    addonlib list
    addonlib catalog
    addonlib status
    addonlib enable <name>
    addonlib disable <name>
    addonlib reconcile [--upgrade/--no-upgrade]
    addonlib auto-upgrade on|off
"""

import logging
from pathlib import Path
from typing import Optional

import click
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from addonlib import __version__
from addonlib.config import AddonLibConfig
from addonlib.exceptions import AddonError
from addonlib.manager import AddonManager
from addonlib.resolver import best_compatible_version
from addonlib.store import DesiredStateStore

console = Console()


def _manager(ctx: click.Context) -> AddonManager:
    return AddonManager(config=ctx.obj)


@click.group()
@click.version_option(version=__version__, prog_name="addonlib")
@click.option("--data-dir", type=click.Path(file_okay=False, path_type=Path),
              help="Directory holding addons.json")
@click.option("--artifact-dir", type=click.Path(file_okay=False, path_type=Path),
              help="Directory holding addon artifacts")
@click.option("--host-version", help="Version of the host application")
@click.option("--catalog-url", help="Primary catalog URL")
@click.option("--backup-url", "backup_catalog_url", help="Backup catalog URL")
@click.pass_context
def cli(ctx, data_dir, artifact_dir, host_version, catalog_url, backup_catalog_url):
    """Reconcile addons against a published catalog."""
    overrides = {
        "data_dir": data_dir,
        "artifact_dir": artifact_dir,
        "host_version": host_version,
        "catalog_url": catalog_url,
        "backup_catalog_url": backup_catalog_url,
    }
    try:
        config = AddonLibConfig(**{k: v for k, v in overrides.items() if v is not None})
    except ValidationError as e:
        raise click.UsageError(f"Invalid configuration: {e}")
    logging.basicConfig(
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)]
    )
    config.configure_logging()
    ctx.obj = config


@cli.command(name="list")
@click.pass_obj
def list_cmd(config: AddonLibConfig):
    """List addons recorded in the desired-state file."""
    state = DesiredStateStore(config.state_file).load()

    if not state.addons:
        console.print("No addons known yet. Run 'addonlib catalog' to fetch the catalog.")
        return

    table = Table(title=f"Addons ({len(state.addons)})")
    table.add_column("Name", style="cyan")
    table.add_column("Enabled")
    table.add_column("Version")
    table.add_column("Description")

    for name in sorted(state.addons):
        entry = state.addons[name]
        table.add_row(
            name,
            "[green]yes[/green]" if entry.enabled else "[dim]no[/dim]",
            entry.installed_version or "-",
            entry.description or "",
        )

    console.print(table)
    console.print(f"Auto-upgrade: {'on' if state.settings.auto_upgrade else 'off'}")


@cli.command(name="catalog")
@click.pass_context
def catalog_cmd(ctx):
    """Fetch the catalog and merge newly published addons."""
    with _manager(ctx) as manager:
        result = manager.fetch_catalog()

    if result is None or result.catalog is None:
        ctx.exit(1)

    table = Table(title=f"Catalog ({len(result.catalog.extensions)})")
    table.add_column("Name", style="cyan")
    table.add_column("Versions")
    table.add_column("Best for host")
    table.add_column("Description")

    for name in sorted(result.catalog.extensions):
        info = result.catalog.extensions[name]
        table.add_row(
            name,
            ", ".join(sorted(info.versions)),
            best_compatible_version(info.versions, ctx.obj.host_version) or "[red]none[/red]",
            info.description or "",
        )

    console.print(table)
    if result.aborted:
        ctx.exit(1)


@cli.command(name="status")
@click.pass_context
def status_cmd(ctx):
    """Show the derived state of every addon."""
    with _manager(ctx) as manager:
        result = manager.fetch_catalog()
        states = manager.status()

    if result is None or result.aborted:
        ctx.exit(1)

    table = Table(title="Addon status")
    table.add_column("Name", style="cyan")
    table.add_column("State")
    for name, addon_state in states.items():
        table.add_row(name, addon_state.value)
    console.print(table)


@cli.command(name="enable")
@click.argument("name")
@click.pass_context
def enable_cmd(ctx, name: str):
    """Mark an addon as enabled (installed on the next reconcile)."""
    _set_enabled(ctx, name, True)


@cli.command(name="disable")
@click.argument("name")
@click.pass_context
def disable_cmd(ctx, name: str):
    """Mark an addon as disabled (removed on the next reconcile)."""
    _set_enabled(ctx, name, False)


def _set_enabled(ctx: click.Context, name: str, enabled: bool) -> None:
    with _manager(ctx) as manager:
        try:
            manager.set_enabled(name, enabled)
        except AddonError as e:
            console.print(f"[red]Error:[/red] {e}")
            ctx.exit(1)


@cli.command(name="reconcile")
@click.option("--upgrade/--no-upgrade", default=None,
              help="Upgrade to newer compatible versions (default: autoUpgrade setting)")
@click.pass_context
def reconcile_cmd(ctx, upgrade: Optional[bool]):
    """Run one full reconciliation pass."""
    with _manager(ctx) as manager:
        result = manager.reconcile(upgrade)

    if result is None or result.aborted:
        ctx.exit(1)

    if not result.changed:
        console.print("Addons are up to date.")
        return

    for action in result.actions:
        versions = " -> ".join(v for v in (action.from_version, action.to_version) if v)
        console.print(f"  {action.kind.value:<22} {action.name} {versions}".rstrip())


@cli.command(name="auto-upgrade")
@click.argument("mode", type=click.Choice(["on", "off"]))
@click.pass_obj
def auto_upgrade_cmd(config: AddonLibConfig, mode: str):
    """Turn the autoUpgrade setting on or off."""
    DesiredStateStore(config.state_file).set_auto_upgrade(mode == "on")
    console.print(f"Auto-upgrade {mode}")


def main():
    cli()


if __name__ == "__main__":
    main()
