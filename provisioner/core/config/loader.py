"""
Configuration loader — reads provision.yml into typed settings.

provision.yml is optional.  Without one the provisioner runs the
built-in recipes with default settings.  With one, three top-level
keys are recognised:

    settings:        backup_root, state_dir, command_timeout, manager_priority
    package_names:   logical name → {manager: concrete name}
    recipes:         list of declarative recipe specs

The loader also turns CLI flags + environment + config into the single
``ExecutionContext`` of a run.  Precedence, highest first:

    CLI flag  >  PROVISION_* environment variable  >  provision.yml  >  default
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from provisioner.adapters.shell.command import CommandRunner
from provisioner.core.detection.platform import KNOWN_MANAGERS, SYSTEM_MANAGER_PRIORITY
from provisioner.core.engine.registry import RecipeRegistry
from provisioner.core.errors import ConfigError
from provisioner.core.installer.names import PackageNameMap
from provisioner.core.models.context import ExecutionContext
from provisioner.core.recipes.builtin import default_recipe_specs
from provisioner.core.recipes.declarative import RecipeSpec, build_recipe

logger = logging.getLogger(__name__)

# Default config filename
CONFIG_FILE = "provision.yml"

_TRUTHY = {"1", "true", "yes", "on"}


# ── Models ──────────────────────────────────────────────────────


class Settings(BaseModel):
    """The ``settings:`` block of provision.yml."""

    model_config = ConfigDict(extra="forbid")

    backup_root: str | None = None
    state_dir: str | None = None
    command_timeout: int | None = Field(default=None, gt=0)
    manager_priority: list[str] = Field(default_factory=lambda: list(SYSTEM_MANAGER_PRIORITY))

    @field_validator("manager_priority")
    @classmethod
    def _known_managers(cls, value: list[str]) -> list[str]:
        unknown = [m for m in value if m not in KNOWN_MANAGERS or m == "brew"]
        if unknown:
            raise ValueError(f"unknown system package manager(s): {', '.join(unknown)}")
        return value


class ProvisionConfig(BaseModel):
    """Validated provision.yml."""

    model_config = ConfigDict(extra="forbid")

    settings: Settings = Field(default_factory=Settings)
    package_names: dict[str, dict[str, str]] = Field(default_factory=dict)
    recipes: list[RecipeSpec] = Field(default_factory=list)

    # Not part of the file; where it was read from.
    source: Path | None = Field(default=None, exclude=True)

    @field_validator("recipes")
    @classmethod
    def _unique_names(cls, value: list[RecipeSpec]) -> list[RecipeSpec]:
        seen: set[str] = set()
        for spec in value:
            if spec.name in seen:
                raise ValueError(f"duplicate recipe name: {spec.name}")
            seen.add(spec.name)
        return value

    def recipe_specs(self) -> list[RecipeSpec]:
        """Configured recipes, or the built-in set when none are declared."""
        return list(self.recipes) if self.recipes else default_recipe_specs()


# ── Discovery & loading ─────────────────────────────────────────


def env_flag(name: str, env: Mapping[str, str] | None = None) -> bool:
    """Whether an environment variable is set to a truthy value."""
    value = (os.environ if env is None else env).get(name, "")
    return value.strip().lower() in _TRUTHY


def find_config_file(start_dir: Path | None = None) -> Path | None:
    """Search for provision.yml starting from the given directory, walking up.

    Args:
        start_dir: Directory to start searching from (default: cwd).

    Returns:
        Path to provision.yml, or None if not found.
    """
    current = (start_dir or Path.cwd()).resolve()

    for _ in range(20):  # safety limit
        candidate = current / CONFIG_FILE
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            break  # filesystem root
        current = parent

    return None


def resolve_config_path(
    explicit: Path | None,
    base_dir: Path,
    env: Mapping[str, str] | None = None,
) -> Path | None:
    """``--config``, then ``PROVISION_CONFIG``, then upward search from ``base_dir``."""
    env = os.environ if env is None else env
    if explicit is not None:
        return explicit
    if env.get("PROVISION_CONFIG"):
        return Path(env["PROVISION_CONFIG"])
    return find_config_file(base_dir)


def load_config(path: Path | None) -> ProvisionConfig:
    """Load and validate provision.yml.

    Args:
        path: Config file path, or None for built-in defaults.

    Raises:
        ConfigError: If an explicitly named file is missing or invalid.
    """
    if path is None:
        logger.debug("No %s found, using built-in recipes", CONFIG_FILE)
        return ProvisionConfig()

    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    logger.debug("Loading config from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    try:
        config = ProvisionConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {path}: {e}") from e

    config = config.model_copy(update={"source": path})
    logger.info("Loaded %s with %d recipes", path, len(config.recipes))
    return config


# ── Assembly ────────────────────────────────────────────────────


def default_base_dir(env: Mapping[str, str] | None = None) -> Path:
    env = os.environ if env is None else env
    return Path(env["PROVISION_BASE_DIR"]).expanduser() if env.get("PROVISION_BASE_DIR") else Path.cwd()


def build_context(
    config: ProvisionConfig,
    *,
    dry_run: bool = False,
    force_install: bool = False,
    filter_text: str | None = None,
    base_dir: Path | None = None,
    run_id: str = "",
    env: Mapping[str, str] | None = None,
) -> ExecutionContext:
    """Combine CLI flags, environment and config into an ``ExecutionContext``."""
    env = os.environ if env is None else env
    home = Path.home()

    if base_dir is None:
        base_dir = default_base_dir(env)

    if env.get("PROVISION_CONFIG_HOME"):
        config_home = Path(env["PROVISION_CONFIG_HOME"]).expanduser()
    elif env.get("XDG_CONFIG_HOME"):
        config_home = Path(env["XDG_CONFIG_HOME"]).expanduser()
    else:
        config_home = home / ".config"

    settings = config.settings
    state_dir = (
        Path(settings.state_dir).expanduser()
        if settings.state_dir
        else home / ".local" / "state" / "provision"
    )
    if env.get("PROVISION_BACKUP_ROOT"):
        backup_root = Path(env["PROVISION_BACKUP_ROOT"]).expanduser()
    elif settings.backup_root:
        backup_root = Path(settings.backup_root).expanduser()
    else:
        backup_root = state_dir / "backups"

    return ExecutionContext(
        dry_run=dry_run or env_flag("PROVISION_DRY_RUN", env),
        force_install=force_install,
        filter=filter_text or None,
        base_dir=base_dir.resolve(),
        home_dir=home,
        config_home=config_home,
        backup_root=backup_root,
        state_dir=state_dir,
        run_id=run_id,
        command_timeout=settings.command_timeout,
    )


def build_names(config: ProvisionConfig) -> PackageNameMap:
    return PackageNameMap(config.package_names)


def build_registry(
    config: ProvisionConfig,
    runner: CommandRunner | None = None,
    names: PackageNameMap | None = None,
) -> RecipeRegistry:
    """Registry of every configured (or built-in) recipe."""
    names = names or build_names(config)
    return RecipeRegistry(
        build_recipe(spec, runner=runner, names=names) for spec in config.recipe_specs()
    )
