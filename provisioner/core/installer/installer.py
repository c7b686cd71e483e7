"""
Installer — install a package with the primary manager, then fall back.

The fallback chain is an explicit ordered list of managers tried one
after the other; each attempt is recorded and the first success wins.
No state survives between ``install()`` calls: package state can
change mid-run (a recipe may have just installed a manager), so every
call starts from the platform description again.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable

from provisioner.adapters.shell.command import CommandRunner, SubprocessRunner
from provisioner.core.errors import InstallFailed
from provisioner.core.installer.managers import PackageManager, get_manager
from provisioner.core.installer.names import PackageNameMap
from provisioner.core.models.context import ExecutionContext
from provisioner.core.models.platform import PlatformInfo
from provisioner.core.models.result import InstallResult
from provisioner.core.observability.logging_config import DRY, SUCCESS

logger = logging.getLogger(__name__)


class Installer:
    """Capability-polymorphic package installer.

    Args:
        platform: Detected host description.
        context: Run switches (dry-run, force, timeout).
        runner: Command runner (default: real subprocesses).
        names: Logical → concrete package name map.
        elevate: Prefix root-only manager commands with ``sudo``.
            Default: when not root and ``sudo`` is on PATH.
    """

    def __init__(
        self,
        platform: PlatformInfo,
        context: ExecutionContext,
        runner: CommandRunner | None = None,
        names: PackageNameMap | None = None,
        elevate: bool | None = None,
    ):
        self.platform = platform
        self.context = context
        self.runner = runner or SubprocessRunner()
        self.names = names or PackageNameMap()
        self._elevate = elevate

    # ── Fallback chain ──────────────────────────────────────────

    def candidates(self) -> list[PackageManager]:
        """Managers to try, in order: primary, then (Linux only) fallbacks.

        Fallbacks are the remaining detected system managers in the
        platform's priority order.  Homebrew is never a fallback.
        """
        primary = self.platform.primary_manager
        if primary is None:
            return []
        chain = [get_manager(primary)]
        if self.platform.is_linux:
            chain.extend(
                get_manager(m)
                for m in self.platform.package_managers[1:]
                if m != "brew"
            )
        return chain

    # ── Presence ────────────────────────────────────────────────

    def is_present(self, package: str) -> bool:
        """Check the primary manager's database, then the search path."""
        primary = self.platform.primary_manager
        if primary is not None:
            manager = get_manager(primary)
            concrete = self.names.resolve(package, primary)
            result = self.runner.run(
                manager.query_command(concrete),
                timeout=self.context.command_timeout,
            )
            if manager.is_installed(result):
                logger.debug("%s is installed (%s)", package, primary)
                return True

        for binary in self.names.binaries(package):
            if self.runner.which(binary):
                logger.debug("%s found on PATH as %s", package, binary)
                return True
        return False

    # ── Install ─────────────────────────────────────────────────

    def install(self, package: str, *, skip_if_present: bool = True) -> InstallResult:
        """Install one logical package.

        Returns:
            ``skipped_already_installed`` if present (unless forced),
            ``success`` from the first manager that worked, or
            ``failed_fallback_exhausted`` carrying the last error.
        """
        if skip_if_present and not self.context.force_install and self.is_present(package):
            logger.info("%s is already installed", package)
            return InstallResult.skip()

        chain = self.candidates()
        if not chain:
            logger.error("Cannot install %s: no package manager available", package)
            return InstallResult.exhausted("no package manager available")

        verb = "Reinstalling" if self.context.force_install else "Installing"
        attempts: list[str] = []
        last_error = ""

        for manager in chain:
            concrete = self.names.resolve(package, manager.name)
            cmd = self._with_elevation(
                manager, manager.install_command(concrete, force=self.context.force_install),
            )
            attempts.append(manager.name)

            if self.context.dry_run:
                logger.log(DRY, "%s %s via %s: %s", verb, concrete, manager.name, " ".join(cmd))
                return InstallResult.success(
                    manager.name, attempts=tuple(attempts), dry_run=True,
                )

            logger.info("%s %s via %s: %s", verb, concrete, manager.name, " ".join(cmd))
            result = self.runner.run(cmd, timeout=self.context.command_timeout)
            if result.ok:
                logger.log(SUCCESS, "Installed %s via %s", concrete, manager.name)
                return InstallResult.success(manager.name, attempts=tuple(attempts))

            last_error = f"{manager.name}: {result.summary}"
            logger.warning("%s could not install %s: %s", manager.name, concrete, result.summary)

        logger.error("Failed to install %s after trying %s", package, ", ".join(attempts))
        return InstallResult.exhausted(last_error, attempts=tuple(attempts))

    def install_many(self, packages: Iterable[str], *, skip_if_present: bool = True) -> InstallResult:
        """Install several packages; stop at the first failure.

        The combined result is skipped only if every package was.
        """
        managers: list[str] = []
        all_skipped = True
        dry_run = False
        for package in packages:
            result = self.install(package, skip_if_present=skip_if_present)
            if result.failed:
                return result.model_copy(
                    update={"reason": f"{package}: {result.reason}"},
                )
            if not result.skipped:
                all_skipped = False
            if result.manager and result.manager not in managers:
                managers.append(result.manager)
            dry_run = dry_run or result.dry_run

        if all_skipped:
            return InstallResult.skip()
        return InstallResult.success(
            managers[0] if managers else None,
            attempts=tuple(managers),
            dry_run=dry_run,
        )

    def require(self, package: str, *, skip_if_present: bool = True) -> InstallResult:
        """Like ``install()`` but raise ``InstallFailed`` on failure."""
        result = self.install(package, skip_if_present=skip_if_present)
        if result.failed:
            raise InstallFailed(package, result)
        return result

    # ── Helpers ─────────────────────────────────────────────────

    def _with_elevation(self, manager: PackageManager, cmd: list[str]) -> list[str]:
        if not manager.needs_root:
            return cmd
        elevate = self._elevate
        if elevate is None:
            elevate = os.geteuid() != 0 and self.runner.which("sudo") is not None
        return ["sudo", *cmd] if elevate else cmd
