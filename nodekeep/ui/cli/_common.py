"""
Shared CLI helpers — service wiring and failure reporting.
"""

from __future__ import annotations

import sys
from typing import NoReturn

import click

from nodekeep.core.config.settings import ConfigError, load_config
from nodekeep.core.errors import code_string_for
from nodekeep.core.models.outcome import Outcome
from nodekeep.core.use_cases.runtimes import Services, build_services


def get_services(ctx: click.Context) -> Services:
    """Build (once per invocation) the services for ``--home``."""
    obj = ctx.find_root().obj
    services = obj.get("services")
    if services is None:
        try:
            config = load_config(obj.get("home"))
        except ConfigError as e:
            click.secho(f"❌ {e}", fg="red", err=True)
            sys.exit(2)
        services = build_services(config)
        obj["services"] = services
    return services


def fail(outcome: Outcome) -> NoReturn:
    """Print a failed outcome and exit with its kind's exit code."""
    assert outcome.error_kind is not None
    click.secho(f"❌ [{code_string_for(outcome.error_kind)}] {outcome.error}", fg="red", err=True)
    if outcome.hint:
        click.echo(f"   {outcome.hint}", err=True)
    sys.exit(outcome.exit_code)
