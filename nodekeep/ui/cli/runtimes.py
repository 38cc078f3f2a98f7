"""
CLI commands for runtime installations.

Thin wrappers over ``nodekeep.core.use_cases.runtimes``.
"""

from __future__ import annotations

import json
from pathlib import Path

import click

from nodekeep.core.cancellation import CancelToken, cancel_on_interrupt
from nodekeep.core.errors import ErrorKind
from nodekeep.core.models.outcome import DownloadProgress
from nodekeep.core.services.runtime_install.domain.download_helpers import fmt_size
from nodekeep.ui.cli._common import fail, get_services


def _progress_printer(quiet: bool):
    if quiet:
        return None
    last = {"step": -1}

    def show(p: DownloadProgress) -> None:
        step = int(p.percent // 10)
        if step > last["step"]:
            last["step"] = step
            click.echo(
                f"   ⬇ {p.percent:5.1f}%  ({fmt_size(p.bytes_downloaded)} / {fmt_size(p.total_bytes)})",
                err=True,
            )

    return show


# ── Install ─────────────────────────────────────────────────────


@click.command()
@click.argument("version", required=False)
@click.option("--alias", "-a", default=None, help="Installation name (default: the version).")
@click.option("--force", "-f", is_flag=True, help="Reinstall if the alias already exists.")
@click.option(
    "--project-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=".",
    show_default=True,
    help="Where to look for .nvmrc / .node-version / package.json when VERSION is omitted.",
)
@click.pass_context
def install(
    ctx: click.Context,
    version: str | None,
    alias: str | None,
    force: bool,
    project_dir: Path,
) -> None:
    """Install a Node.js VERSION (e.g. 20.11.0, 20, lts, iron, latest).

    Without VERSION, the project's version file decides.
    """
    from nodekeep.core.use_cases.runtimes import install_from_version_file, install_runtime

    services = get_services(ctx)
    quiet = ctx.find_root().obj.get("quiet", False)
    options = {"alias": alias, "force": force, "progress": _progress_printer(quiet)}

    # Ctrl-C cancels the token; the pipeline then cleans up and reports CANCELLED.
    with cancel_on_interrupt(CancelToken()) as cancel:
        if version is None:
            result = install_from_version_file(services, project_dir, cancel=cancel, **options)
        else:
            result = install_runtime(services, version, cancel=cancel, **options)

    if not result.ok:
        if result.error_kind is ErrorKind.CANCELLED:
            click.secho("\n⚠️  Installation interrupted", fg="yellow", err=True)
        fail(result)
    click.secho(f"✅ Installed Node.js {result.version} as '{result.alias}'", fg="green")
    if not quiet:
        click.echo(f"   📁 {result.path}")
        click.echo(f"   Activate it with: nodekeep use {result.alias}")


# ── Resolve ─────────────────────────────────────────────────────


@click.command()
@click.argument("expression")
@click.pass_context
def resolve(ctx: click.Context, expression: str) -> None:
    """Print the concrete version EXPRESSION resolves to."""
    from nodekeep.core.use_cases.runtimes import resolve_version

    result = resolve_version(get_services(ctx), expression)
    if not result.ok:
        fail(result)
    click.echo(result.version)


# ── Use / remove ────────────────────────────────────────────────


@click.command()
@click.argument("alias")
@click.pass_context
def use(ctx: click.Context, alias: str) -> None:
    """Make ALIAS the active installation."""
    from nodekeep.core.use_cases.runtimes import use_runtime

    result = use_runtime(get_services(ctx), alias)
    if not result.ok:
        fail(result)
    inst = result.installation
    assert inst is not None
    click.secho(f"✅ Using '{inst.alias}' (Node.js {inst.version})", fg="green")


@click.command()
@click.argument("alias")
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation.")
@click.pass_context
def remove(ctx: click.Context, alias: str, yes: bool) -> None:
    """Delete the installation ALIAS."""
    from nodekeep.core.use_cases.runtimes import remove_runtime

    if not yes:
        click.confirm(f"Remove installation '{alias}'?", abort=True)

    result = remove_runtime(get_services(ctx), alias)
    if not result.ok:
        fail(result)
    click.secho(f"🗑  Removed '{alias}'", fg="green")


# ── List ────────────────────────────────────────────────────────


@click.command(name="list")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def list_cmd(ctx: click.Context, as_json: bool) -> None:
    """List installed runtimes."""
    from nodekeep.core.use_cases.runtimes import list_runtimes

    installations = list_runtimes(get_services(ctx))

    if as_json:
        click.echo(json.dumps([i.model_dump(mode="json") for i in installations], indent=2))
        return

    if not installations:
        click.echo("No runtimes installed.")
        return

    for inst in installations:
        marker = "*" if inst.active else " "
        click.echo(f" {marker} {inst.alias:<20} {inst.version:<12} {inst.path}")


@click.command(name="list-remote")
@click.option("--lts", "lts_only", is_flag=True, help="Only LTS releases.")
@click.option("--all", "show_all", is_flag=True, help="Show every release (no limit).")
@click.option("--limit", type=click.IntRange(min=1), default=None, help="Show at most N releases (default: 20).")
@click.option("--refresh", is_flag=True, help="Ignore the cached catalog.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def list_remote_cmd(
    ctx: click.Context,
    lts_only: bool,
    show_all: bool,
    limit: int | None,
    refresh: bool,
    as_json: bool,
) -> None:
    """List Node.js releases published upstream, newest first."""
    from nodekeep.core.use_cases.runtimes import list_remote

    if show_all and limit is not None:
        raise click.UsageError("Use either --all or --limit, not both.")

    result = list_remote(get_services(ctx), lts_only=lts_only, force_refresh=refresh)
    if not result.ok:
        fail(result)

    releases = result.releases if show_all else result.releases[: limit or 20]

    if as_json:
        click.echo(json.dumps([r.model_dump(mode="json") for r in releases], indent=2))
        return

    if not releases:
        click.echo("No releases available.")
        return

    for r in releases:
        line = f"  v{r.version:<12} {r.lts_codename or '-':<10} {r.release_date}"
        click.secho(line, fg="green" if r.is_lts else None)

    hidden = len(result.releases) - len(releases)
    if hidden > 0:
        click.echo(f"\n… and {hidden} more. Use --all or --limit N to see them.")
