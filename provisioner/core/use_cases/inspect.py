"""
Read-only use cases — detect, list recipes, show backups.

None of these change the host.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from provisioner.core.config.loader import (
    build_context,
    default_base_dir,
    load_config,
    resolve_config_path,
)
from provisioner.core.detection.platform import detect
from provisioner.core.engine.ordering import order_recipes
from provisioner.core.errors import ConfigError, RecipeOrderError
from provisioner.core.models.platform import PlatformInfo
from provisioner.core.models.result import BackupRecord
from provisioner.core.persistence.audit import BackupLedger, RunEntry, RunLedger
from provisioner.core.recipes.declarative import RecipeSpec, build_recipe

logger = logging.getLogger(__name__)


@dataclass
class DetectResult:
    platform: PlatformInfo | None = None
    error: str | None = None

    def to_dict(self) -> dict:
        if self.error:
            return {"error": self.error}
        assert self.platform is not None
        return self.platform.to_dict()


def run_detect(config_path: Path | None = None) -> DetectResult:
    """Detect the host, honouring the configured manager priority."""
    try:
        config = load_config(resolve_config_path(config_path, default_base_dir()))
    except ConfigError as e:
        return DetectResult(error=str(e))
    return DetectResult(platform=detect(priority=config.settings.manager_priority))


@dataclass
class RecipeListing:
    """Recipes in execution order."""

    specs: list[RecipeSpec] = field(default_factory=list)
    config_path: Path | None = None
    builtin: bool = False
    error: str | None = None

    def to_dict(self) -> dict:
        if self.error:
            return {"error": self.error}
        return {
            "config": str(self.config_path) if self.config_path else None,
            "builtin": self.builtin,
            "recipes": [
                {
                    "name": s.name,
                    "description": s.description,
                    "critical": s.critical,
                    "requires": list(s.requires),
                    "packages": list(s.packages),
                }
                for s in self.specs
            ],
        }


def list_recipes(config_path: Path | None = None) -> RecipeListing:
    """Load the configured (or built-in) recipes in execution order."""
    try:
        config = load_config(resolve_config_path(config_path, default_base_dir()))
    except ConfigError as e:
        return RecipeListing(error=str(e))

    specs = {s.name: s for s in config.recipe_specs()}
    try:
        ordered = order_recipes(build_recipe(s) for s in specs.values())
    except RecipeOrderError as e:
        return RecipeListing(error=str(e))

    return RecipeListing(
        specs=[specs[r.name] for r in ordered],
        config_path=config.source,
        builtin=not config.recipes,
    )


@dataclass
class HistoryResult:
    """Recent backups and runs from the ledgers."""

    backups: list[BackupRecord] = field(default_factory=list)
    runs: list[RunEntry] = field(default_factory=list)
    backup_root: Path | None = None
    error: str | None = None

    def to_dict(self) -> dict:
        if self.error:
            return {"error": self.error}
        return {
            "backup_root": str(self.backup_root),
            "backups": [b.model_dump(mode="json") for b in self.backups],
            "runs": [
                {
                    "run_id": r.run_id,
                    "timestamp": r.timestamp,
                    "state": r.state,
                    "exit_code": r.exit_code,
                }
                for r in self.runs
            ],
        }


def recent_history(config_path: Path | None = None, n: int = 20) -> HistoryResult:
    """Read the last ``n`` backups and runs."""
    base_dir = default_base_dir()
    try:
        config = load_config(resolve_config_path(config_path, base_dir))
    except ConfigError as e:
        return HistoryResult(error=str(e))

    context = build_context(config, base_dir=base_dir)
    return HistoryResult(
        backups=BackupLedger.for_backup_root(context.backup_root).read_recent(n),
        runs=RunLedger.for_state_dir(context.state_dir).read_recent(n),
        backup_root=context.backup_root,
    )
