"""
Pre-mutation backup.

Copies a path (file, directory or symlink) into a timestamped
location before the Mutation Guard replaces it.  Symlinks are copied
as links, directories recursively with attributes preserved.
"""

from __future__ import annotations

import logging
import os
import shutil
from datetime import datetime
from pathlib import Path

logger = logging.getLogger(__name__)

STAMP_FORMAT = "%Y%m%d-%H%M%S-%f"


def backup_path_for(original: Path, backup_dir: Path, when: datetime) -> Path:
    """Pick a free ``<backup_dir>/<basename>.<stamp>[.N]`` path."""
    stamp = when.strftime(STAMP_FORMAT)
    name = original.name or "root"
    candidate = backup_dir / f"{name}.{stamp}"
    counter = 1
    while candidate.exists() or candidate.is_symlink():
        candidate = backup_dir / f"{name}.{stamp}.{counter}"
        counter += 1
    return candidate


def copy_for_backup(original: Path, target: Path) -> None:
    """Copy ``original`` to ``target`` without following a top-level symlink.

    Raises:
        OSError: If anything could not be copied.
    """
    target.parent.mkdir(parents=True, exist_ok=True)
    if original.is_symlink():
        os.symlink(os.readlink(original), target)
    elif original.is_dir():
        shutil.copytree(original, target, symlinks=True)
    else:
        shutil.copy2(original, target)
    logger.debug("Copied %s → %s", original, target)
