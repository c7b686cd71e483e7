"""
Declarative recipes — a recipe described as data.

A ``RecipeSpec`` lists what a tool needs (packages, directories,
links, copied trees, whole files, shell-profile lines, commands).
``build_recipe()`` turns it into a ``Recipe`` whose action runs those
steps in a fixed order through a fresh ``Installer`` and
``MutationGuard``:

    packages → directories → links → copies → files → lines → commands

The first failing step ends the recipe.  A recipe where every step
was already satisfied reports ``skipped_already_installed``.
"""

from __future__ import annotations

import logging
import shlex
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator

from provisioner.adapters.shell.command import CommandRunner, SubprocessRunner
from provisioner.core.engine.substeps import run_substeps
from provisioner.core.errors import FilesystemMutationFailed, InstallFailed
from provisioner.core.guard.mutation import MutationGuard
from provisioner.core.installer.installer import Installer
from provisioner.core.installer.names import PackageNameMap
from provisioner.core.models.context import ExecutionContext
from provisioner.core.models.platform import OSFamily, PlatformInfo
from provisioner.core.models.recipe import Recipe
from provisioner.core.models.result import InstallResult, MutationResult
from provisioner.core.observability.logging_config import DRY, SUCCESS

logger = logging.getLogger(__name__)


# ── Recipe spec models ─────────────────────────────────────────────────


class LinkSpec(BaseModel):
    """Symlink ``destination`` → ``source`` (source relative to the base dir)."""

    model_config = ConfigDict(extra="forbid")

    source: str
    destination: str
    optional: bool = False      # skip quietly when the source is missing


class CopySpec(BaseModel):
    """Copy the ``source`` tree to ``destination``."""

    model_config = ConfigDict(extra="forbid")

    source: str
    destination: str
    optional: bool = False


class CommandSpec(BaseModel):
    """An external command, optionally guarded by an ``unless`` probe.

    When ``unless`` exits 0 the command is considered already done.
    """

    model_config = ConfigDict(extra="forbid")

    run: list[str]
    unless: list[str] | None = None
    description: str = ""

    @field_validator("run", "unless", mode="before")
    @classmethod
    def _split(cls, value: object) -> object:
        if isinstance(value, str):
            return shlex.split(value)
        return value

    @field_validator("run")
    @classmethod
    def _not_empty(cls, value: list[str]) -> list[str]:
        if not value:
            raise ValueError("command must not be empty")
        return value

    @property
    def label(self) -> str:
        return self.description or " ".join(self.run)


class RecipeSpec(BaseModel):
    """Data description of a recipe (one entry under ``recipes:``)."""

    model_config = ConfigDict(extra="forbid")

    name: str
    description: str = ""
    critical: bool = False
    requires: list[str] = Field(default_factory=list)
    os: list[OSFamily] = Field(default_factory=list)    # empty = any

    packages: list[str] = Field(default_factory=list)
    directories: list[str] = Field(default_factory=list)
    links: list[LinkSpec] = Field(default_factory=list)
    copies: list[CopySpec] = Field(default_factory=list)
    files: dict[str, str] = Field(default_factory=dict)          # destination → content
    lines: dict[str, list[str]] = Field(default_factory=dict)    # destination → lines
    commands: list[CommandSpec] = Field(default_factory=list)

    @field_validator("name")
    @classmethod
    def _valid_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("recipe name must not be empty")
        return value


# ── Builder ─────────────────────────────────────────────────────


def build_recipe(
    spec: RecipeSpec,
    *,
    runner: CommandRunner | None = None,
    names: PackageNameMap | None = None,
) -> Recipe:
    """Turn a ``RecipeSpec`` into a runnable ``Recipe``."""

    def action(platform: PlatformInfo, context: ExecutionContext) -> InstallResult:
        return _SpecRun(spec, platform, context, runner or SubprocessRunner(), names).execute()

    return Recipe(
        name=spec.name,
        action=action,
        critical=spec.critical,
        description=spec.description,
        requires=tuple(spec.requires),
    )


class _SpecRun:
    """One execution of a spec; lives only for the duration of the action."""

    def __init__(
        self,
        spec: RecipeSpec,
        platform: PlatformInfo,
        context: ExecutionContext,
        runner: CommandRunner,
        names: PackageNameMap | None,
    ):
        self.spec = spec
        self.platform = platform
        self.context = context
        self.runner = runner
        self.installer = Installer(platform, context, runner=runner, names=names)
        self.guard = MutationGuard(context, scope=spec.name)
        self.changed = False

    def execute(self) -> InstallResult:
        spec = self.spec
        if spec.os and self.platform.os not in spec.os:
            logger.info("%s does not apply to %s", spec.name, self.platform.os.value)
            return InstallResult.skip(f"not applicable on {self.platform.os.value}")

        try:
            if spec.packages:
                self._note(self._require_packages(spec.packages))
            if spec.directories:
                self._directories(spec.directories)
            for link in spec.links:
                self._link(link)
            for copy in spec.copies:
                self._copy(copy)
            for destination, content in spec.files.items():
                self._check(self.guard.ensure_file(content, destination))
            for destination, lines in spec.lines.items():
                for line in lines:
                    self._check(self.guard.ensure_line(line, destination))
            for command in spec.commands:
                self._command(command)
        except InstallFailed as e:
            return InstallResult.exhausted(str(e), attempts=e.result.attempts)
        except FilesystemMutationFailed as e:
            return InstallResult.failure(str(e))

        if not self.changed:
            return InstallResult.skip("already provisioned")
        return InstallResult.success(dry_run=self.context.dry_run)

    # ── Steps ───────────────────────────────────────────────────

    def _require_packages(self, packages: list[str]) -> InstallResult:
        result = self.installer.install_many(packages)
        if result.failed:
            package = result.reason.split(":", 1)[0]
            raise InstallFailed(package, result)
        return result

    def _directories(self, directories: list[str]) -> None:
        # Unrelated trees run concurrently; nested entries share one
        # sub-step and are created parents first.
        steps = {
            ", ".join(group): (lambda g=group: self._directory_chain(g))
            for group in nested_groups(directories, self.context)
        }
        result = run_substeps(steps)
        if result.failed:
            raise FilesystemMutationFailed(", ".join(directories), result.reason)
        self._note(result)

    def _directory_chain(self, paths: list[str]) -> InstallResult:
        results = [_as_install_result(self.guard.ensure_directory(p)) for p in paths]
        for result in results:
            if result.failed:
                return result
        if all(r.skipped for r in results):
            return InstallResult.skip()
        return InstallResult.success(dry_run=self.context.dry_run)

    def _link(self, link: LinkSpec) -> None:
        source = self.context.expand(link.source, relative_to=self.context.base_dir)
        if link.optional and not (source.exists() or source.is_symlink()):
            logger.info("Skipping link %s: %s not present", link.destination, source)
            return
        self._check(self.guard.ensure_symlink(source, link.destination))

    def _copy(self, copy: CopySpec) -> None:
        source = self.context.expand(copy.source, relative_to=self.context.base_dir)
        if copy.optional and not source.is_dir():
            logger.info("Skipping copy to %s: %s not present", copy.destination, source)
            return
        self._check(self.guard.copy_tree(source, copy.destination))

    def _command(self, command: CommandSpec) -> None:
        timeout = self.context.command_timeout
        cwd = self.context.base_dir

        if self.context.dry_run:
            logger.log(DRY, "Run %s", command.label)
            self.changed = True
            return

        if command.unless:
            probe = self.runner.run(command.unless, timeout=timeout, cwd=cwd)
            if probe.ok:
                logger.info("Skipping %s: already done", command.label)
                return

        logger.info("Run %s", command.label)
        result = self.runner.run(command.run, timeout=timeout, cwd=cwd)
        if not result.ok:
            raise FilesystemMutationFailed(command.label, f"command failed: {result.summary}")
        logger.log(SUCCESS, "Ran %s", command.label)
        self.changed = True

    # ── Helpers ─────────────────────────────────────────────────

    def _check(self, result: MutationResult) -> None:
        if not result.ok:
            raise FilesystemMutationFailed(result.path, result.message)
        if result.changed:
            self.changed = True

    def _note(self, result: InstallResult) -> None:
        if not result.skipped:
            self.changed = True


def _as_install_result(result: MutationResult) -> InstallResult:
    if not result.ok:
        return InstallResult.failure(result.message)
    if not result.changed:
        return InstallResult.skip(result.message)
    return InstallResult.success(dry_run=result.status == "dry_run")


def nested_groups(directories: list[str], context: ExecutionContext) -> list[list[str]]:
    """Group directory entries so each group is one independent tree.

    Entries are grouped under their shallowest listed ancestor and each
    group is ordered parents first.  Groups keep declaration order.
    """
    expanded = [(context.expand(d), d) for d in directories]
    by_depth = sorted(expanded, key=lambda entry: len(entry[0].parts))
    groups: dict[Path, list[str]] = {}
    for path, raw in by_depth:
        root = next((r for r in groups if r == path or r in path.parents), path)
        groups.setdefault(root, []).append(raw)
    order = {raw: i for i, (_, raw) in enumerate(expanded)}
    return sorted(groups.values(), key=lambda group: min(order[raw] for raw in group))


def spec_paths(spec: RecipeSpec, context: ExecutionContext) -> list[Path]:
    """Every destination a spec may touch (for listing / dry-run review)."""
    paths = [context.expand(d) for d in spec.directories]
    paths += [context.expand(link.destination) for link in spec.links]
    paths += [context.expand(copy.destination) for copy in spec.copies]
    paths += [context.expand(d) for d in spec.files]
    paths += [context.expand(d) for d in spec.lines]
    return paths
