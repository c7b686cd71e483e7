"""
Provisioner — CLI entrypoint.

Usage:
    provision --help
    provision run --dry
    provision run zsh --force
    provision detect
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path

import click

from provisioner import __version__
from provisioner.core.observability.logging_config import setup_logging


@click.group()
@click.version_option(version=__version__, prog_name="provision")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Only show errors.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to provision.yml (default: auto-detect).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """Provision a development machine — packages, dotfiles, tools."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    # ── Logging setup (once, at process start) ──────────────────
    if debug:
        level = "DEBUG"
    elif verbose:
        level = "INFO"
    elif quiet:
        level = "ERROR"
    else:
        level = os.environ.get("PROVISION_LOG_LEVEL", "INFO")

    setup_logging(
        level=level,
        log_file=os.environ.get("PROVISION_LOG_FILE"),
        log_file_level=os.environ.get("PROVISION_LOG_FILE_LEVEL"),
        quiet_third_party=not debug,
    )


@cli.command()
@click.argument("filter_text", metavar="[FILTER]", required=False)
@click.option("--dry", "--dry-run", "dry_run", is_flag=True, help="Log every action, change nothing.")
@click.option("--force", is_flag=True, help="Reinstall packages that are already present.")
@click.option("--mock", is_flag=True, help="Simulate external commands (no real execution).")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def run(
    ctx: click.Context,
    filter_text: str | None,
    dry_run: bool,
    force: bool,
    mock: bool,
    as_json: bool,
) -> None:
    """Run every recipe whose name contains FILTER (default: all).

    Examples:

        provision run

        provision run zsh --dry

        provision run --force
    """
    from provisioner.core.use_cases.run import run_provisioning

    result = run_provisioning(
        filter_text=filter_text,
        config_path=ctx.obj.get("config_path"),
        dry_run=dry_run,
        force_install=force,
        mock_mode=mock,
    )

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(result.exit_code)

    if result.error:
        click.secho(f"❌ {result.error}", fg="red", err=True)
        sys.exit(result.exit_code)

    report = result.report
    assert report is not None
    assert result.platform is not None and result.context is not None
    quiet = ctx.obj.get("quiet", False)

    dry = result.context.dry_run
    mode_label = "[dry-run] " if dry else "[mock] " if mock else ""
    if not quiet:
        click.secho(
            f"\n⚡ {mode_label}provision — {result.platform.os.value}/{result.platform.arch.value}",
            fg="cyan",
            bold=True,
        )
        managers = ", ".join(result.platform.package_managers) or "none"
        click.echo(f"   Managers: {managers} | Recipes: {report.total}")
        click.echo()

    for outcome in report.outcomes:
        res = outcome.result
        timing = f" ({outcome.duration_ms}ms)" if outcome.duration_ms else ""
        if res.skipped:
            if not quiet:
                click.secho(f"   ⊘ {outcome.name} ", fg="yellow", nl=False)
                click.echo(f"({res.reason}){timing}")
        elif res.ok:
            if not quiet:
                click.secho(f"   ✓ {outcome.name}", fg="green", nl=False)
                click.echo(timing)
        else:
            marker = " [critical]" if outcome.critical else ""
            click.secho(f"   ✗ {outcome.name}{marker}", fg="red", nl=False)
            click.echo(timing)
            if res.reason:
                for line in res.reason.split("\n")[:5]:
                    click.echo(f"     │ {line}")

    if report.filtered and ctx.obj.get("verbose"):
        click.echo(f"   Filtered: {', '.join(report.filtered)}")

    if not quiet:
        click.echo()
        status_color = {"ok": "green", "partial": "yellow", "aborted": "red"}.get(
            report.status, "white"
        )
        click.secho(
            f"   Result: {report.succeeded}/{report.total} succeeded",
            fg=status_color,
            bold=True,
        )
        if report.aborted_by:
            click.secho(f"   Aborted: critical recipe '{report.aborted_by}' failed", fg="red")
        if result.backups:
            click.secho(
                f"   💾 {len(result.backups)} backup(s) under {result.context.backup_root}",
                fg="cyan",
            )
        click.echo()

    sys.exit(result.exit_code)


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def detect(ctx: click.Context, as_json: bool) -> None:
    """Show the detected OS, architecture and package managers."""
    from provisioner.core.use_cases.inspect import run_detect
    from provisioner.core.use_cases.run import EXIT_CONFIG_ERROR

    result = run_detect(config_path=ctx.obj.get("config_path"))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        if result.error:
            sys.exit(EXIT_CONFIG_ERROR)
        return

    if result.error:
        click.secho(f"❌ {result.error}", fg="red", err=True)
        sys.exit(EXIT_CONFIG_ERROR)

    info = result.platform
    assert info is not None

    color = "green" if info.supported else "red"
    click.secho(f"\n🖥️  {info.system or 'unknown'} ({info.machine or '?'})", fg="cyan", bold=True)
    click.secho(f"   OS: {info.os.value}", fg=color)
    click.echo(f"   Arch: {info.arch.value}")
    if info.distro:
        click.echo(f"   Distro: {info.distro}")
    if info.package_managers:
        click.echo(f"   Managers: {', '.join(info.package_managers)}")
        click.echo(f"   Primary: {info.primary_manager}")
    else:
        click.secho("   ⚠️  No package manager found", fg="yellow")
    if not info.supported:
        click.secho("   ❌ This platform cannot be provisioned", fg="red")
    click.echo()


@cli.command("list")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def list_cmd(ctx: click.Context, as_json: bool) -> None:
    """List recipes in execution order."""
    from provisioner.core.use_cases.inspect import list_recipes
    from provisioner.core.use_cases.run import EXIT_CONFIG_ERROR

    result = list_recipes(config_path=ctx.obj.get("config_path"))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        if result.error:
            sys.exit(EXIT_CONFIG_ERROR)
        return

    if result.error:
        click.secho(f"❌ {result.error}", fg="red", err=True)
        sys.exit(EXIT_CONFIG_ERROR)

    source = "built-in" if result.builtin else str(result.config_path)
    click.secho(f"\n📋 Recipes ({source})", fg="cyan", bold=True)
    for spec in result.specs:
        marker = click.style(" [critical]", fg="red") if spec.critical else ""
        requires = f"  ← {', '.join(spec.requires)}" if spec.requires else ""
        click.echo(f"   • {spec.name}{marker}{requires}")
        if spec.description and ctx.obj.get("verbose"):
            click.echo(f"     {spec.description}")
    click.echo()


@cli.command()
@click.option("-n", "limit", default=20, show_default=True, help="Number of entries to show.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def backups(ctx: click.Context, limit: int, as_json: bool) -> None:
    """Show recent backups and runs."""
    from provisioner.core.use_cases.inspect import recent_history
    from provisioner.core.use_cases.run import EXIT_CONFIG_ERROR

    result = recent_history(config_path=ctx.obj.get("config_path"), n=limit)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        if result.error:
            sys.exit(EXIT_CONFIG_ERROR)
        return

    if result.error:
        click.secho(f"❌ {result.error}", fg="red", err=True)
        sys.exit(EXIT_CONFIG_ERROR)

    click.secho(f"\n💾 Backups ({result.backup_root})", fg="cyan", bold=True)
    if not result.backups:
        click.echo("   (none)")
    for record in result.backups:
        scope = f"[{record.scope}] " if record.scope else ""
        click.echo(f"   • {record.timestamp}  {scope}{record.original_path}")
        click.echo(f"     → {record.backup_path}")

    if result.runs:
        click.echo()
        click.secho("   Recent runs:", fg="white", bold=True)
        for entry in result.runs:
            color = "green" if entry.exit_code == 0 else "red"
            click.echo(f"     {entry.timestamp}  {entry.run_id} — ", nl=False)
            click.secho(entry.state, fg=color)
    click.echo()


if __name__ == "__main__":
    cli()
