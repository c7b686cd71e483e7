"""
Mutation Guard — idempotent, backed-up filesystem changes.

Every operation follows the same three steps:

1. Already in the desired state?  Return ``unchanged``, touch nothing.
2. Destination exists?  Copy it to the backup root first.  A failed
   backup raises ``BackupFailed`` and the destination is left alone.
3. Apply the change.  A failure here is returned as ``failed`` with
   the backup record attached, so the previous state is recoverable.

In dry-run mode steps 2 and 3 are only logged (DRY), with the same
message text a real run would print.
"""

from __future__ import annotations

import filecmp
import logging
import os
import shutil
from collections.abc import Callable
from datetime import datetime
from pathlib import Path

from provisioner.core.errors import BackupFailed
from provisioner.core.guard.backup import backup_path_for, copy_for_backup
from provisioner.core.models.context import ExecutionContext
from provisioner.core.models.result import BackupRecord, MutationResult
from provisioner.core.observability.logging_config import DRY, SUCCESS
from provisioner.core.persistence.audit import BackupLedger

logger = logging.getLogger(__name__)


class MutationGuard:
    """Guarded filesystem operations for one recipe.

    Args:
        context: Run switches and directories.
        scope: Name of the caller (usually the recipe); backups land in
            ``<backup_root>/<scope>/``.
        ledger: Where backup records are appended
            (default: ``<backup_root>/backups.ndjson``).
        clock: Timestamp source for backup names.
    """

    def __init__(
        self,
        context: ExecutionContext,
        scope: str = "",
        ledger: BackupLedger | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.context = context
        self.scope = scope
        self.ledger = ledger or BackupLedger.for_backup_root(context.backup_root)
        self._clock = clock
        self._backup_dir = context.backup_root / scope if scope else context.backup_root
        self.backups: list[BackupRecord] = []

    # ── Operations ──────────────────────────────────────────────

    def ensure_file(self, content: str, destination: str | Path) -> MutationResult:
        """Make ``destination`` a regular file containing exactly ``content``."""
        dest = self.context.expand(destination)
        if _is_regular_file(dest) and _read_text(dest) == content:
            return MutationResult.unchanged(str(dest))

        def apply() -> None:
            _clear(dest)
            dest.parent.mkdir(parents=True, exist_ok=True)
            dest.write_text(content, encoding="utf-8")

        return self._mutate(dest, f"Write {len(content)} bytes to {dest}", apply)

    def ensure_line(self, line: str, destination: str | Path) -> MutationResult:
        """Make sure ``line`` appears in ``destination``, appending it if needed.

        A multi-line value (a YAML block scalar) counts as present only
        when all of its lines appear consecutively.  A symlinked
        destination is edited through the link.
        """
        dest = self.context.expand(destination)
        if dest.is_symlink() and dest.is_file():
            dest = dest.resolve()
        block = line.rstrip("\n")
        existing = _read_text(dest) if _is_regular_file(dest) else None
        if existing is not None and contains_block(existing, block):
            return MutationResult.unchanged(str(dest))

        def apply() -> None:
            current = existing or ""
            sep = "" if not current or current.endswith("\n") else "\n"
            if existing is None:
                _clear(dest)
            dest.parent.mkdir(parents=True, exist_ok=True)
            dest.write_text(f"{current}{sep}{block}\n", encoding="utf-8")

        label = block if "\n" not in block else f"{len(block.splitlines())} lines"
        return self._mutate(dest, f"Append '{label}' to {dest}", apply)

    def ensure_symlink(self, source: str | Path, destination: str | Path) -> MutationResult:
        """Make ``destination`` a symlink pointing at ``source``."""
        src = self.context.expand(source, relative_to=self.context.base_dir)
        dest = self.context.expand(destination)

        if dest.is_symlink() and os.readlink(dest) == str(src):
            return MutationResult.unchanged(str(dest))
        if not (src.exists() or src.is_symlink()):
            logger.error("Cannot link %s: source %s does not exist", dest, src)
            return MutationResult.failure(str(dest), f"source does not exist: {src}")

        def apply() -> None:
            _clear(dest)
            dest.parent.mkdir(parents=True, exist_ok=True)
            dest.symlink_to(src)

        return self._mutate(dest, f"Link {dest} → {src}", apply)

    def ensure_directory(self, path: str | Path) -> MutationResult:
        """Make ``path`` an existing directory."""
        dest = self.context.expand(path)
        if dest.is_dir():
            return MutationResult.unchanged(str(dest))

        def apply() -> None:
            _clear(dest)
            dest.mkdir(parents=True, exist_ok=True)

        return self._mutate(dest, f"Create directory {dest}", apply)

    def copy_tree(self, source: str | Path, destination: str | Path) -> MutationResult:
        """Make ``destination`` an identical copy of the ``source`` tree."""
        src = self.context.expand(source, relative_to=self.context.base_dir)
        dest = self.context.expand(destination)

        if not src.is_dir():
            logger.error("Cannot copy %s: source %s is not a directory", dest, src)
            return MutationResult.failure(str(dest), f"source is not a directory: {src}")
        if dest.is_dir() and not dest.is_symlink() and trees_equal(src, dest):
            return MutationResult.unchanged(str(dest))

        def apply() -> None:
            _clear(dest)
            dest.parent.mkdir(parents=True, exist_ok=True)
            shutil.copytree(src, dest, symlinks=True)

        return self._mutate(dest, f"Copy {src} → {dest}", apply)

    # ── Core ────────────────────────────────────────────────────

    def _mutate(self, dest: Path, description: str, apply: Callable[[], None]) -> MutationResult:
        exists = dest.exists() or dest.is_symlink()

        if self.context.dry_run:
            if exists:
                logger.log(DRY, "Back up %s to %s", dest, self._backup_dir)
            logger.log(DRY, description)
            return MutationResult.planned(str(dest), description)

        backup = self._backup(dest) if exists else None

        try:
            apply()
        except OSError as e:
            logger.error("%s failed: %s", description, e)
            return MutationResult.failure(str(dest), f"{description} failed: {e}", backup=backup)

        logger.log(SUCCESS, description)
        return MutationResult.applied(str(dest), description, backup=backup)

    def _backup(self, original: Path) -> BackupRecord:
        """Copy ``original`` aside; raise ``BackupFailed`` if impossible."""
        when = self._clock()
        target = backup_path_for(original, self._backup_dir, when)
        logger.info("Back up %s to %s", original, self._backup_dir)
        try:
            copy_for_backup(original, target)
        except OSError as e:
            logger.error("Backup of %s failed: %s", original, e)
            raise BackupFailed(str(original), str(e)) from e

        record = BackupRecord(
            original_path=str(original),
            backup_path=str(target),
            timestamp=when.isoformat(),
            scope=self.scope,
        )
        self.backups.append(record)
        self.ledger.append(record)
        return record


def contains_block(text: str, block: str) -> bool:
    """Whether every line of ``block`` appears in ``text``, consecutively."""
    wanted = block.splitlines() or [""]
    lines = text.splitlines()
    size = len(wanted)
    return any(lines[i:i + size] == wanted for i in range(len(lines) - size + 1))


def trees_equal(left: Path, right: Path) -> bool:
    """Whether two directory trees have the same names, link targets and file contents.

    Symlinks are compared by target, never followed, so dangling links
    compare equal when both sides point at the same place.
    """
    cmp = filecmp.dircmp(left, right, ignore=[])
    if cmp.left_only or cmp.right_only:
        return False

    links = set()
    for name in cmp.common:
        lhs, rhs = left / name, right / name
        if lhs.is_symlink() or rhs.is_symlink():
            if not (lhs.is_symlink() and rhs.is_symlink()):
                return False
            if os.readlink(lhs) != os.readlink(rhs):
                return False
            links.add(name)

    if any(name not in links for name in cmp.common_funny):
        return False
    files = [f for f in cmp.common_files if f not in links]
    _, mismatch, errors = filecmp.cmpfiles(left, right, files, shallow=False)
    if mismatch or errors:
        return False
    return all(trees_equal(left / d, right / d) for d in cmp.common_dirs if d not in links)


def _is_regular_file(path: Path) -> bool:
    return path.is_file() and not path.is_symlink()


def _read_text(path: Path) -> str | None:
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        return None


def _clear(path: Path) -> None:
    """Remove whatever sits at ``path`` (it has already been backed up)."""
    if path.is_symlink() or path.is_file():
        path.unlink()
    elif path.is_dir():
        shutil.rmtree(path)
