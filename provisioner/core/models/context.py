"""
Execution context — the per-invocation switches every recipe sees.

Built once by ``provisioner.core.config.loader.build_context`` from
CLI flags, environment variables and provision.yml, then passed
read-only to every recipe.  Nothing downstream reads the process
environment again.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field


class ExecutionContext(BaseModel):
    """Read-only run configuration."""

    model_config = ConfigDict(frozen=True)

    dry_run: bool = False
    force_install: bool = False
    filter: str | None = None

    base_dir: Path = Field(default_factory=Path.cwd)      # dotfiles checkout
    home_dir: Path = Field(default_factory=Path.home)
    config_home: Path = Field(default_factory=lambda: Path.home() / ".config")
    backup_root: Path = Field(
        default_factory=lambda: Path.home() / ".local" / "state" / "provision" / "backups"
    )
    state_dir: Path = Field(
        default_factory=lambda: Path.home() / ".local" / "state" / "provision"
    )

    run_id: str = ""
    command_timeout: int | None = None    # seconds; None = wait forever

    def matches(self, recipe_name: str) -> bool:
        """Whether a recipe name passes the substring filter."""
        return not self.filter or self.filter in recipe_name

    def expand(self, path: str | Path, *, relative_to: Path | None = None) -> Path:
        """Expand ``~``, ``${HOME}``, ``${CONFIG_HOME}`` and ``${BASE_DIR}``.

        Uses this context's directories, never the process environment.
        Relative results are anchored at ``relative_to`` (default: home).
        """
        text = str(path)
        for token, value in (
            ("${HOME}", self.home_dir),
            ("${CONFIG_HOME}", self.config_home),
            ("${BASE_DIR}", self.base_dir),
        ):
            text = text.replace(token, str(value))
        if text == "~" or text.startswith("~/"):
            text = str(self.home_dir) + text[1:]

        result = Path(text)
        if not result.is_absolute():
            result = (relative_to or self.home_dir) / result
        return result

    def to_dict(self) -> dict:
        return {
            "run_id": self.run_id,
            "dry_run": self.dry_run,
            "force_install": self.force_install,
            "filter": self.filter,
            "base_dir": str(self.base_dir),
            "config_home": str(self.config_home),
            "backup_root": str(self.backup_root),
            "state_dir": str(self.state_dir),
            "command_timeout": self.command_timeout,
        }
