"""
rebootctl — CLI entrypoint.

Usage:
    rebootctl --help
    rebootctl config check
    rebootctl pending
    rebootctl apply --refresh after_install
    rebootctl audit show --last 5
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click

from rebootctl import __version__
from rebootctl.core.models.policy import ReasonCode
from rebootctl.core.observability.logging_config import setup_cli_logging

REASON_CHOICE = click.Choice([r.value for r in ReasonCode])

_STATUS_STYLE = {
    "scheduled": ("⚡", "cyan"),
    "already_scheduled": ("⊘", "yellow"),
    "skipped": ("⊘", "white"),
    "in_sync": ("✓", "green"),
    "denied": ("✗", "red"),
}


@click.group()
@click.version_option(version=__version__, prog_name="rebootctl")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to reboot.yml (default: auto-detect).",
)
@click.option(
    "--state-dir",
    type=click.Path(file_okay=False),
    default=None,
    help="Directory for the retry ledger and audit log.",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
    state_dir: str | None,
) -> None:
    """rebootctl — decide, rate-limit and perform host reboots."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = Path(config_path) if config_path else None
    ctx.obj["state_dir"] = Path(state_dir) if state_dir else None

    setup_cli_logging(debug=debug, verbose=verbose, quiet=quiet)


@cli.group()
def config() -> None:
    """Manifest configuration commands."""


@config.command("check")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def config_check(ctx: click.Context, as_json: bool) -> None:
    """Validate reboot.yml."""
    from rebootctl.core.use_cases.config_check import check_config

    result = check_config(config_path=ctx.obj.get("config_path"))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(0 if result.valid else 1)

    if result.valid:
        assert result.manifest is not None  # guaranteed when valid
        click.secho("✅ Configuration is valid", fg="green", bold=True)
        click.echo(f"   Manifest: {result.config_path}")
        click.echo(f"   Reboot resources: {len(result.manifest.reboots)}")
        for policy in result.manifest.reboots:
            limit = (
                f", ≤{policy.max_retries} per {policy.retry_window_hours}h"
                if policy.rate_limited
                else ""
            )
            click.echo(
                f"     • {policy.name} (when={policy.trigger_mode.value}, "
                f"apply={policy.apply_timing.value}{limit})"
            )
    else:
        click.secho("❌ Configuration errors:", fg="red", bold=True)
        for err in result.errors:
            click.echo(f"   • {err}")

    if result.warnings:
        click.echo()
        click.secho("⚠️  Warnings:", fg="yellow")
        for warn in result.warnings:
            click.echo(f"   • {warn}")

    if not result.valid:
        click.echo()
        sys.exit(1)

    click.echo()


@cli.command()
@click.option("--only", "only", multiple=True, type=REASON_CHOICE, help="Only check this reason.")
@click.option("--except", "excluded", multiple=True, type=REASON_CHOICE, help="Ignore this reason.")
@click.option("--mock", is_flag=True, help="Use a mock probe (no real checks).")
@click.option(
    "--mock-reason",
    "mock_reasons",
    multiple=True,
    type=REASON_CHOICE,
    help="Reason the mock probe reports as pending (implies --mock).",
)
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
def pending(
    only: tuple[str, ...],
    excluded: tuple[str, ...],
    mock: bool,
    mock_reasons: tuple[str, ...],
    as_json: bool,
) -> None:
    """Check whether a reboot is pending on this host.

    Exits 0 when nothing is pending, 3 when a reboot is pending.
    """
    from rebootctl.core.use_cases.pending import check_pending

    result = check_pending(
        include=[ReasonCode(r) for r in only],
        exclude=[ReasonCode(r) for r in excluded],
        mock_mode=mock or bool(mock_reasons),
        mock_reasons=[ReasonCode(r) for r in mock_reasons],
    )
    exit_code = 3 if result.pending.is_pending else 0

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(exit_code)

    click.secho(f"\n🔍 Pending reboot check ({result.probe})", fg="cyan", bold=True)
    reboot = result.adapters.get("reboot")
    if reboot:
        state = "available" if reboot["available"] else "unavailable"
        click.echo(f"   Reboot adapter: {reboot['name']} ({state})")
    if not result.pending.checked_reasons:
        click.echo("   No reasons to check on this platform.")
    for reason in result.supported:
        if reason not in result.pending.checked_reasons:
            continue
        if reason in result.pending.matched_reasons:
            click.secho(f"   ✗ {reason.value}", fg="red")
        else:
            click.secho(f"   ✓ {reason.value}", fg="green")

    click.echo()
    if result.pending.is_pending:
        click.secho("   Reboot pending", fg="yellow", bold=True)
    else:
        click.secho("   No reboot pending", fg="green", bold=True)
    click.echo()
    sys.exit(exit_code)


@cli.command()
@click.option(
    "--refresh",
    "refresh",
    multiple=True,
    help="Deliver a refresh event to this resource (repeatable).",
)
@click.option("--dry-run", is_flag=True, help="Decide but don't record or reboot.")
@click.option("--mock", is_flag=True, help="Use mock adapters (no real reboot).")
@click.option(
    "--mock-reason",
    "mock_reasons",
    multiple=True,
    type=REASON_CHOICE,
    help="Reason the mock probe reports as pending (implies --mock).",
)
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def apply(
    ctx: click.Context,
    refresh: tuple[str, ...],
    dry_run: bool,
    mock: bool,
    mock_reasons: tuple[str, ...],
    as_json: bool,
) -> None:
    """Converge every reboot resource in the manifest.

    Examples:

        rebootctl apply

        rebootctl apply --refresh after_install

        rebootctl apply --dry-run --mock-reason pending_file_rename_operations
    """
    from rebootctl.core.use_cases.apply import apply_manifest

    mock_mode = mock or bool(mock_reasons)
    result = apply_manifest(
        config_path=ctx.obj.get("config_path"),
        refresh=refresh,
        state_dir=ctx.obj.get("state_dir"),
        dry_run=dry_run,
        mock_mode=mock_mode,
        mock_reasons=[ReasonCode(r) for r in mock_reasons],
    )

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(result.exit_code)

    mode_label = "[dry-run] " if dry_run else "[mock] " if mock_mode else ""
    if not ctx.obj.get("quiet"):
        click.secho(f"\n⚡ {mode_label}apply — run {result.run_id or '-'}", fg="cyan", bold=True)
        if result.state_dir:
            click.echo(f"   State: {result.state_dir}")
        click.echo()

    for outcome in result.outcomes:
        icon, color = _STATUS_STYLE.get(outcome.status, ("•", "white"))
        click.secho(f"   {icon} {outcome.resource} ", fg=color, nl=False)
        click.echo(f"[{outcome.trigger}] {outcome.status}")
        if outcome.matched_reasons:
            click.echo(f"     │ pending: {', '.join(r.value for r in outcome.matched_reasons)}")
        if ctx.obj.get("verbose") and outcome.message:
            click.echo(f"     │ {outcome.message}")

    if result.not_applied:
        click.echo()
        click.secho(f"   Not applied: {', '.join(result.not_applied)}", fg="yellow")

    if result.invalid:
        click.echo()
        click.secho("❌ Invalid reboot declarations (not applied):", fg="red", bold=True)
        for err in result.invalid:
            click.echo(f"   • {err}")

    if result.error:
        click.echo()
        click.secho(f"❌ {result.error}", fg="red")

    click.echo()
    if result.exit_code:
        sys.exit(result.exit_code)


# ── Register sub-command groups from rebootctl/ui/cli/ ──────────

from rebootctl.ui.cli.audit import audit
from rebootctl.ui.cli.ledger import ledger

cli.add_command(audit)
cli.add_command(ledger)


if __name__ == "__main__":
    cli()
