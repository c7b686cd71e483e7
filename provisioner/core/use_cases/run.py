"""
Run use case — provision this machine.

This is the top-level orchestrator: it loads config, detects the
platform, builds the recipe registry, runs the engine, and records
a manifest of the run.  The full vertical slice from ``provision run``
to an audited result.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from provisioner.adapters.mock import MockCommandRunner
from provisioner.adapters.shell.command import CommandRunner, SubprocessRunner
from provisioner.core.config.loader import (
    build_context,
    build_names,
    build_registry,
    default_base_dir,
    load_config,
    resolve_config_path,
)
from provisioner.core.detection.platform import detect
from provisioner.core.engine.executor import (
    EXIT_OK,
    EXIT_UNSUPPORTED_PLATFORM,
    Engine,
    RunReport,
    generate_run_id,
)
from provisioner.core.errors import ConfigError, PlatformUnsupported, RecipeOrderError
from provisioner.core.models.context import ExecutionContext
from provisioner.core.models.platform import PlatformInfo
from provisioner.core.persistence.audit import BackupLedger, RunEntry, RunLedger

logger = logging.getLogger(__name__)

EXIT_CONFIG_ERROR = 3


@dataclass
class RunResult:
    """Result of a provisioning run."""

    report: RunReport | None = None
    platform: PlatformInfo | None = None
    context: ExecutionContext | None = None
    config_path: Path | None = None
    error: str | None = None
    exit_code: int = EXIT_OK
    backups: list[dict] = field(default_factory=list)

    def to_dict(self) -> dict:
        result: dict = {"exit_code": self.exit_code}
        if self.error:
            result["error"] = self.error
        if self.platform:
            result["platform"] = self.platform.to_dict()
        if self.context:
            result["context"] = self.context.to_dict()
        if self.config_path:
            result["config"] = str(self.config_path)
        if self.report:
            result["report"] = self.report.to_dict()
        if self.backups:
            result["backups"] = list(self.backups)
        return result


def run_provisioning(
    filter_text: str | None = None,
    config_path: Path | None = None,
    base_dir: Path | None = None,
    dry_run: bool = False,
    force_install: bool = False,
    mock_mode: bool = False,
    runner: CommandRunner | None = None,
    platform: PlatformInfo | None = None,
) -> RunResult:
    """Provision the host.

    Args:
        filter_text: Only run recipes whose name contains this substring.
        config_path: Optional explicit path to provision.yml.
        base_dir: Dotfiles checkout (default: PROVISION_BASE_DIR or cwd).
        dry_run: Log every action instead of performing it.
        force_install: Reinstall packages that are already present.
        mock_mode: Simulate every external command.
        runner: Optional pre-configured command runner.
        platform: Optional pre-detected platform.

    Returns:
        RunResult with the engine report and exit code.
    """
    result = RunResult()

    # ── Load config ──────────────────────────────────────────────
    base_dir = base_dir or default_base_dir()
    try:
        path = resolve_config_path(config_path, base_dir)
        config = load_config(path)
    except ConfigError as e:
        result.error = str(e)
        result.exit_code = EXIT_CONFIG_ERROR
        return result
    result.config_path = config.source

    run_id = generate_run_id()
    context = build_context(
        config,
        dry_run=dry_run,
        force_install=force_install,
        filter_text=filter_text,
        base_dir=base_dir,
        run_id=run_id,
    )
    result.context = context

    # ── Detect platform ──────────────────────────────────────────
    if runner is None:
        runner = MockCommandRunner() if mock_mode else SubprocessRunner()
    if platform is None:
        platform = detect(priority=config.settings.manager_priority)
    result.platform = platform

    backup_ledger = BackupLedger.for_backup_root(context.backup_root)
    backups_before = backup_ledger.entry_count()

    # ── Run ──────────────────────────────────────────────────────
    try:
        registry = build_registry(config, runner=runner, names=build_names(config))
        engine = Engine(registry, platform)
        report = engine.run(context)
    except PlatformUnsupported as e:
        result.error = str(e)
        result.exit_code = EXIT_UNSUPPORTED_PLATFORM
        return result
    except RecipeOrderError as e:
        result.error = str(e)
        result.exit_code = EXIT_CONFIG_ERROR
        return result

    result.report = report
    result.exit_code = report.exit_code

    # ── Record manifest ──────────────────────────────────────────
    if context.dry_run:
        return result

    backups = [b.model_dump(mode="json") for b in backup_ledger.read_all()[backups_before:]]
    result.backups = backups

    RunLedger.for_state_dir(context.state_dir).append(
        RunEntry(
            run_id=run_id,
            state=report.state.value,
            exit_code=report.exit_code,
            duration_ms=report.duration_ms,
            dry_run=context.dry_run,
            force_install=context.force_install,
            filter=context.filter,
            platform=platform.to_dict(),
            outcomes=[o.to_dict() for o in report.outcomes],
            filtered=list(report.filtered),
            backups=backups,
        )
    )
    return result
