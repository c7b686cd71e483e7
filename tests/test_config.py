"""
Tests for config loading — provision.yml, discovery, context assembly.
"""

import textwrap
from pathlib import Path

import pytest

from provisioner.core.config.loader import (
    ProvisionConfig,
    build_context,
    build_registry,
    env_flag,
    find_config_file,
    load_config,
    resolve_config_path,
)
from provisioner.core.errors import ConfigError


def _write(path: Path, text: str) -> Path:
    path.write_text(textwrap.dedent(text))
    return path


class TestLoadConfig:
    def test_none_gives_defaults(self):
        config = load_config(None)
        assert config.recipes == []
        assert config.source is None
        assert {s.name for s in config.recipe_specs()} >= {"libs", "zsh"}

    def test_full_file(self, tmp_path: Path):
        path = _write(tmp_path / "provision.yml", """\
            settings:
              backup_root: ~/backups
              command_timeout: 600
              manager_priority: [dnf, apt]
            package_names:
              bat:
                apt: batcat
            recipes:
              - name: libs
                critical: true
                packages: [curl, git]
              - name: bat
                requires: [libs]
                packages: [bat]
                commands:
                  - run: bat cache --build
        """)
        config = load_config(path)
        assert config.source == path
        assert config.settings.command_timeout == 600
        assert config.settings.manager_priority == ["dnf", "apt"]
        assert config.package_names == {"bat": {"apt": "batcat"}}
        assert [s.name for s in config.recipe_specs()] == ["libs", "bat"]
        assert config.recipes[1].commands[0].run == ["bat", "cache", "--build"]

    def test_empty_file(self, tmp_path: Path):
        path = tmp_path / "provision.yml"
        path.write_text("")
        assert load_config(path).recipes == []

    def test_missing_explicit_file(self, tmp_path: Path):
        with pytest.raises(ConfigError, match="not found"):
            load_config(tmp_path / "nope.yml")

    def test_invalid_yaml(self, tmp_path: Path):
        path = tmp_path / "provision.yml"
        path.write_text("recipes: [unclosed")
        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_config(path)

    def test_not_a_mapping(self, tmp_path: Path):
        path = tmp_path / "provision.yml"
        path.write_text("- just\n- a list\n")
        with pytest.raises(ConfigError, match="mapping"):
            load_config(path)

    def test_unknown_key(self, tmp_path: Path):
        path = _write(tmp_path / "provision.yml", "setings: {}\n")
        with pytest.raises(ConfigError):
            load_config(path)

    def test_duplicate_recipes(self, tmp_path: Path):
        path = _write(tmp_path / "provision.yml", """\
            recipes:
              - name: zsh
              - name: zsh
        """)
        with pytest.raises(ConfigError, match="duplicate"):
            load_config(path)

    def test_unknown_manager(self, tmp_path: Path):
        path = _write(tmp_path / "provision.yml", """\
            settings:
              manager_priority: [apt, emerge]
        """)
        with pytest.raises(ConfigError, match="emerge"):
            load_config(path)

    def test_non_positive_timeout(self, tmp_path: Path):
        path = _write(tmp_path / "provision.yml", "settings: {command_timeout: 0}\n")
        with pytest.raises(ConfigError):
            load_config(path)


class TestDiscovery:
    def test_walks_up(self, tmp_path: Path):
        config = tmp_path / "provision.yml"
        config.write_text("{}")
        nested = tmp_path / "a" / "b"
        nested.mkdir(parents=True)
        assert find_config_file(nested) == config.resolve()

    def test_explicit_wins(self, tmp_path: Path):
        explicit = tmp_path / "custom.yml"
        env = {"PROVISION_CONFIG": str(tmp_path / "env.yml")}
        assert resolve_config_path(explicit, tmp_path, env) == explicit

    def test_env_before_search(self, tmp_path: Path):
        (tmp_path / "provision.yml").write_text("{}")
        env = {"PROVISION_CONFIG": str(tmp_path / "env.yml")}
        assert resolve_config_path(None, tmp_path, env) == tmp_path / "env.yml"

    def test_search_from_base_dir(self, tmp_path: Path):
        (tmp_path / "provision.yml").write_text("{}")
        assert resolve_config_path(None, tmp_path, {}) == (tmp_path / "provision.yml").resolve()


class TestEnvFlag:
    @pytest.mark.parametrize("value", ["1", "true", "YES", "on"])
    def test_truthy(self, value):
        assert env_flag("X", {"X": value})

    @pytest.mark.parametrize("value", ["", "0", "false", "no"])
    def test_falsy(self, value):
        assert not env_flag("X", {"X": value})


class TestBuildContext:
    def test_defaults(self, tmp_path: Path):
        ctx = build_context(ProvisionConfig(), base_dir=tmp_path, env={})
        assert ctx.dry_run is False
        assert ctx.base_dir == tmp_path.resolve()
        assert ctx.config_home == Path.home() / ".config"
        assert ctx.backup_root == ctx.state_dir / "backups"
        assert ctx.command_timeout is None

    def test_env_dry_run(self, tmp_path: Path):
        ctx = build_context(ProvisionConfig(), base_dir=tmp_path, env={"PROVISION_DRY_RUN": "1"})
        assert ctx.dry_run is True

    def test_env_directories(self, tmp_path: Path):
        env = {
            "PROVISION_BASE_DIR": str(tmp_path / "dots"),
            "PROVISION_CONFIG_HOME": str(tmp_path / "cfg"),
            "PROVISION_BACKUP_ROOT": str(tmp_path / "bk"),
        }
        ctx = build_context(ProvisionConfig(), env=env)
        assert ctx.base_dir == (tmp_path / "dots").resolve()
        assert ctx.config_home == tmp_path / "cfg"
        assert ctx.backup_root == tmp_path / "bk"

    def test_xdg_config_home(self, tmp_path: Path):
        ctx = build_context(ProvisionConfig(), base_dir=tmp_path, env={"XDG_CONFIG_HOME": str(tmp_path / "xdg")})
        assert ctx.config_home == tmp_path / "xdg"

    def test_env_backup_root_beats_config(self, tmp_path: Path):
        config = ProvisionConfig.model_validate({"settings": {"backup_root": str(tmp_path / "cfg-bk")}})
        ctx = build_context(config, base_dir=tmp_path, env={})
        assert ctx.backup_root == tmp_path / "cfg-bk"
        ctx = build_context(config, base_dir=tmp_path, env={"PROVISION_BACKUP_ROOT": str(tmp_path / "env-bk")})
        assert ctx.backup_root == tmp_path / "env-bk"

    def test_flags(self, tmp_path: Path):
        ctx = build_context(
            ProvisionConfig(),
            dry_run=True,
            force_install=True,
            filter_text="zsh",
            base_dir=tmp_path,
            run_id="run-x",
            env={},
        )
        assert ctx.dry_run and ctx.force_install
        assert ctx.filter == "zsh"
        assert ctx.run_id == "run-x"


class TestBuildRegistry:
    def test_builtin_when_no_recipes(self):
        registry = build_registry(ProvisionConfig())
        assert "libs" in registry
        assert registry.get("libs").critical

    def test_configured_recipes_replace_builtin(self):
        config = ProvisionConfig.model_validate({"recipes": [{"name": "only"}]})
        assert build_registry(config).names() == ["only"]
