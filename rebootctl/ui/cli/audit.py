"""
CLI commands for the audit log.

Thin wrappers over ``rebootctl.core.use_cases.audit``.

Usage::

    rebootctl audit show
    rebootctl audit show --last 5 --resource after_install
    rebootctl audit show --json
"""

from __future__ import annotations

import json
import sys

import click

_STATUS_COLOR = {
    "scheduled": "cyan",
    "already_scheduled": "yellow",
    "denied": "red",
    "failed": "red",
    "invalid": "red",
    "in_sync": "green",
}


@click.group()
def audit() -> None:
    """Audit — decisions recorded by earlier runs."""


@audit.command("show")
@click.option("--last", "last", type=click.IntRange(min=1), default=20, show_default=True,
              help="Number of entries to show.")
@click.option("--resource", default=None, help="Only entries for this reboot resource.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def show(ctx: click.Context, last: int, resource: str | None, as_json: bool) -> None:
    """List recent audit entries, oldest first."""
    from rebootctl.core.use_cases.audit import show_audit

    result = show_audit(
        config_path=ctx.obj.get("config_path"),
        state_dir=ctx.obj.get("state_dir"),
        last=last,
        resource=resource,
    )

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(1 if result.error else 0)

    if result.error:
        click.secho(f"❌ {result.error}", fg="red")
        sys.exit(1)

    click.secho(f"\n📜 Audit log: {result.path}", fg="cyan", bold=True)
    if not result.entries:
        click.echo("   No entries.")
        click.echo()
        return

    click.echo()
    for entry in result.entries:
        flag = " [dry-run]" if entry.dry_run else ""
        trigger = f"[{entry.trigger}] " if entry.trigger else ""
        click.echo(f"   {entry.timestamp}  {entry.resource} {trigger}", nl=False)
        click.secho(f"{entry.status}{flag}", fg=_STATUS_COLOR.get(entry.status, "white"))
        if entry.error:
            click.echo(f"     │ {entry.error}")
    click.echo()
