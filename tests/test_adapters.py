"""
Tests for command runners — mock and subprocess — and the execution context.
"""

import sys
from pathlib import Path

import pytest
from pydantic import ValidationError

from provisioner.adapters.mock import MockCommandRunner
from provisioner.adapters.shell.command import CommandResult, SubprocessRunner
from provisioner.core.models.context import ExecutionContext


class TestExecutionContext:
    def test_matches(self):
        assert ExecutionContext().matches("zsh")
        ctx = ExecutionContext(filter="zs")
        assert ctx.matches("zsh")
        assert not ctx.matches("go")

    def test_expand(self, tmp_path: Path):
        ctx = ExecutionContext(
            home_dir=tmp_path / "home",
            config_home=tmp_path / "cfg",
            base_dir=tmp_path / "dots",
        )
        assert ctx.expand("~/.zshrc") == tmp_path / "home" / ".zshrc"
        assert ctx.expand("~") == tmp_path / "home"
        assert ctx.expand("${CONFIG_HOME}/nvim") == tmp_path / "cfg" / "nvim"
        assert ctx.expand("${BASE_DIR}/zsh") == tmp_path / "dots" / "zsh"
        assert ctx.expand(".tmux.conf") == tmp_path / "home" / ".tmux.conf"
        assert ctx.expand("zsh/zshrc", relative_to=ctx.base_dir) == tmp_path / "dots" / "zsh" / "zshrc"

    def test_frozen(self):
        ctx = ExecutionContext()
        with pytest.raises(ValidationError):
            ctx.dry_run = True


class TestMockRunner:
    def test_default_success(self):
        runner = MockCommandRunner()
        result = runner.run(["brew", "install", "git"])
        assert result.ok
        assert result.stdout == "[mock] executed"
        assert result.command == ["brew", "install", "git"]

    def test_custom_response(self):
        runner = MockCommandRunner()
        runner.set_response(["dpkg-query"], CommandResult(stdout="install ok installed"))
        assert runner.run(["dpkg-query", "-W", "git"]).stdout == "install ok installed"

    def test_longest_prefix_wins(self):
        runner = MockCommandRunner()
        runner.set_failure(["apt-get"])
        runner.set_response(["apt-get", "install", "-y", "git"], CommandResult())
        assert runner.run(["apt-get", "install", "-y", "git"]).ok
        assert not runner.run(["apt-get", "install", "-y", "zsh"]).ok

    def test_set_failure(self):
        runner = MockCommandRunner()
        runner.set_failure(["dnf"], stderr="No match", returncode=2)
        result = runner.run(["dnf", "install", "-y", "fd-find"])
        assert not result.ok
        assert result.returncode == 2
        assert result.summary == "No match"

    def test_call_log_and_reset(self):
        runner = MockCommandRunner()
        runner.run(["a"])
        runner.run(["b", "c"])
        assert runner.call_log == [["a"], ["b", "c"]]
        assert runner.calls_starting_with("b") == [["b", "c"]]
        runner.reset()
        assert runner.call_count == 0

    def test_which(self):
        runner = MockCommandRunner(available=["brew"])
        assert runner.which("brew") == "/usr/bin/brew"
        assert runner.which("apt-get") is None
        runner.set_available("apt-get")
        assert runner.which("apt-get")


class TestSubprocessRunner:
    def test_success(self):
        result = SubprocessRunner().run([sys.executable, "-c", "print('hi')"])
        assert result.ok
        assert result.stdout.strip() == "hi"

    def test_non_zero_exit(self):
        result = SubprocessRunner().run(
            [sys.executable, "-c", "import sys; sys.stderr.write('bad\\n'); sys.exit(3)"],
        )
        assert not result.ok
        assert result.returncode == 3
        assert result.summary == "bad"

    def test_missing_binary(self):
        result = SubprocessRunner().run(["definitely-not-a-real-binary-xyz"])
        assert not result.ok
        assert result.returncode == 127
        assert "not found" in result.summary

    def test_timeout(self):
        result = SubprocessRunner().run(
            [sys.executable, "-c", "import time; time.sleep(5)"], timeout=1,
        )
        assert not result.ok
        assert "timed out" in result.error

    def test_cwd(self, tmp_path: Path):
        result = SubprocessRunner().run(
            [sys.executable, "-c", "import os; print(os.getcwd())"], cwd=tmp_path,
        )
        assert Path(result.stdout.strip()).resolve() == tmp_path.resolve()

    def test_env_overrides(self):
        result = SubprocessRunner().run(
            [sys.executable, "-c", "import os; print(os.environ['PROVISION_TEST'])"],
            env_overrides={"PROVISION_TEST": "yes"},
        )
        assert result.stdout.strip() == "yes"
