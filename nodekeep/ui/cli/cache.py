"""
CLI commands for the download cache.
"""

from __future__ import annotations

import click

from nodekeep.core.services.runtime_install.data.constants import DEFAULT_CACHE_MAX_AGE_DAYS
from nodekeep.core.services.runtime_install.domain.download_helpers import fmt_size
from nodekeep.ui.cli._common import fail, get_services


@click.group()
def cache() -> None:
    """Cache — inspect and prune downloaded artifacts."""


@cache.command(name="list")
@click.pass_context
def list_cmd(ctx: click.Context) -> None:
    """Show cached artifacts, newest first."""
    from nodekeep.core.use_cases.cache import list_cache

    entries = list_cache(get_services(ctx))
    if not entries:
        click.echo("Cache is empty.")
        return

    for e in entries:
        click.echo(f"  {e.file_name:<40} {fmt_size(e.size_bytes):>10}  {e.modified_at:%Y-%m-%d %H:%M}")
    total = sum(e.size_bytes for e in entries)
    click.echo(f"\n→ {len(entries)} file(s), {fmt_size(total)}")


@cache.command()
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation.")
@click.pass_context
def clear(ctx: click.Context, yes: bool) -> None:
    """Delete every cached artifact."""
    from nodekeep.core.use_cases.cache import clear_cache, list_cache

    services = get_services(ctx)
    entries = list_cache(services)
    if not entries:
        click.echo("Cache is already empty.")
        return
    if not yes:
        total = fmt_size(sum(e.size_bytes for e in entries))
        click.confirm(f"Delete all {len(entries)} cached file(s) ({total})?", abort=True)

    result = clear_cache(services)
    if not result.ok:
        fail(result)
    click.secho(f"🧹 Cache cleared, {fmt_size(result.freed_bytes)} freed", fg="green")


@cache.command()
@click.option(
    "--older-than-days",
    type=click.FloatRange(min=0),
    default=DEFAULT_CACHE_MAX_AGE_DAYS,
    show_default=True,
    help="Only delete artifacts not modified for this many days.",
)
@click.pass_context
def clean(ctx: click.Context, older_than_days: float) -> None:
    """Delete artifacts that have not been used recently."""
    from nodekeep.core.use_cases.cache import clean_cache

    result = clean_cache(get_services(ctx), older_than_days)
    if not result.ok:
        fail(result)
    if not result.removed:
        click.echo("No outdated cache files.")
        return
    click.secho(
        f"🧹 Removed {len(result.removed)} outdated file(s), {fmt_size(result.freed_bytes)} freed",
        fg="green",
    )
