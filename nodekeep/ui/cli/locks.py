"""
CLI commands for lock maintenance.
"""

from __future__ import annotations

import click

from nodekeep.ui.cli._common import get_services


@click.group()
def locks() -> None:
    """Locks — inspect and clean up lock markers."""


@locks.command()
@click.option(
    "--max-age-hours",
    type=float,
    default=24.0,
    show_default=True,
    help="Only remove markers older than this.",
)
@click.pass_context
def cleanup(ctx: click.Context, max_age_hours: float) -> None:
    """Remove stale lock markers left by crashed processes."""
    from nodekeep.core.use_cases.runtimes import cleanup_locks

    removed = cleanup_locks(get_services(ctx), max_age_hours)
    if not removed:
        click.echo("No stale locks.")
        return
    for name in removed:
        click.echo(f"🧹 Removed stale lock '{name}'")


@locks.command()
@click.argument("name", default="state")
@click.pass_context
def status(ctx: click.Context, name: str) -> None:
    """Show whether lock NAME is currently held."""
    services = get_services(ctx)
    try:
        held = services.locks.is_held(name)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="NAME") from e
    click.echo(f"{name}: {'held' if held else 'free'}")
