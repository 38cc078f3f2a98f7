"""
nodekeep — CLI entrypoint.

Usage:
    nodekeep --help
    nodekeep install lts
    nodekeep use 20.11.0
    python -m nodekeep.main resolve iron
"""

from __future__ import annotations

import os
from pathlib import Path

import click

from nodekeep import __version__
from nodekeep.core.observability.logging_config import (
    FILE_ENV_VAR,
    FILE_LEVEL_ENV_VAR,
    level_from_flags,
    setup_logging,
)


@click.group()
@click.version_option(version=__version__, prog_name="nodekeep")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--home",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="nodekeep home directory (default: $NODEKEEP_HOME or ~/.nodekeep).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    home: Path | None,
) -> None:
    """nodekeep — install and switch Node.js versions side by side."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["home"] = home

    # ── Logging setup (once, at process start) ──────────────────
    setup_logging(
        level=level_from_flags(debug=debug, verbose=verbose, quiet=quiet),
        log_file=os.environ.get(FILE_ENV_VAR),
        log_file_level=os.environ.get(FILE_LEVEL_ENV_VAR),
        quiet_third_party=not debug,
    )


# ── Register command groups ─────────────────────────────────────

from nodekeep.ui.cli.cache import cache  # noqa: E402
from nodekeep.ui.cli.locks import locks  # noqa: E402
from nodekeep.ui.cli.runtimes import (  # noqa: E402
    install,
    list_cmd,
    list_remote_cmd,
    remove,
    resolve,
    use,
)

cli.add_command(install)
cli.add_command(resolve)
cli.add_command(use)
cli.add_command(remove)
cli.add_command(list_cmd)
cli.add_command(list_remote_cmd)
cli.add_command(cache)
cli.add_command(locks)


if __name__ == "__main__":
    cli()
