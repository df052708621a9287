"""
CLI commands for the retry ledger.

Thin wrappers over ``rebootctl.core.use_cases.ledger``.
"""

from __future__ import annotations

import json
import sys

import click


@click.group()
def ledger() -> None:
    """Retry ledger — recorded reboots and compaction."""


@ledger.command("show")
@click.option("--window-hours", type=click.IntRange(min=1), default=None, help="Count entries in this window.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def show(ctx: click.Context, window_hours: int | None, as_json: bool) -> None:
    """List recorded reboots, oldest first."""
    from rebootctl.core.use_cases.ledger import show_ledger

    result = show_ledger(
        config_path=ctx.obj.get("config_path"),
        state_dir=ctx.obj.get("state_dir"),
        window_hours=window_hours,
    )

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(1 if result.error else 0)

    if result.error:
        click.secho(f"❌ {result.error}", fg="red")
        sys.exit(1)

    click.secho(f"\n📒 Retry ledger: {result.path}", fg="cyan", bold=True)
    click.echo(f"   Entries: {len(result.entries)}")
    if result.window_hours is not None:
        click.echo(f"   In last {result.window_hours}h: {result.in_window}")
    click.echo()
    for ts in result.entries:
        click.echo(f"     • {ts.isoformat()}")
    if result.entries:
        click.echo()


@ledger.command("compact")
@click.option(
    "--window-hours",
    type=click.IntRange(min=1),
    default=None,
    help="Keep entries newer than this (default: widest retries_interval in the manifest).",
)
@click.pass_context
def compact(ctx: click.Context, window_hours: int | None) -> None:
    """Drop entries that can no longer affect a decision."""
    from rebootctl.core.use_cases.ledger import compact_ledger

    result = compact_ledger(
        window_hours=window_hours,
        config_path=ctx.obj.get("config_path"),
        state_dir=ctx.obj.get("state_dir"),
    )

    if result.error:
        click.secho(f"❌ {result.error}", fg="red")
        sys.exit(1)

    click.secho(
        f"🧹 Removed {result.removed} entries older than {result.window_hours}h "
        f"({len(result.entries)} kept)",
        fg="green",
    )
