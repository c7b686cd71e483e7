"""
Shared test fixtures and configuration.
"""

from pathlib import Path

import pytest

from provisioner.adapters.mock import MockCommandRunner
from provisioner.core.models.context import ExecutionContext
from provisioner.core.models.platform import Arch, OSFamily, PlatformInfo

_PROVISION_ENV = (
    "PROVISION_BASE_DIR",
    "PROVISION_CONFIG_HOME",
    "PROVISION_DRY_RUN",
    "PROVISION_CONFIG",
    "PROVISION_BACKUP_ROOT",
    "PROVISION_LOG_LEVEL",
    "PROVISION_LOG_FILE",
    "PROVISION_LOG_FILE_LEVEL",
    "XDG_CONFIG_HOME",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the developer's PROVISION_* variables out of every test."""
    for name in _PROVISION_ENV:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def home(tmp_path: Path) -> Path:
    path = tmp_path / "home"
    path.mkdir()
    return path


@pytest.fixture
def dotfiles(tmp_path: Path) -> Path:
    """A dotfiles checkout used as the base directory."""
    path = tmp_path / "dotfiles"
    path.mkdir()
    return path


@pytest.fixture
def context(tmp_path: Path, home: Path, dotfiles: Path) -> ExecutionContext:
    """A real-run context with every directory inside tmp_path."""
    return ExecutionContext(
        base_dir=dotfiles,
        home_dir=home,
        config_home=home / ".config",
        backup_root=tmp_path / "state" / "backups",
        state_dir=tmp_path / "state",
        run_id="run-test",
    )


@pytest.fixture
def dry_context(context: ExecutionContext) -> ExecutionContext:
    return context.model_copy(update={"dry_run": True})


@pytest.fixture
def linux_apt() -> PlatformInfo:
    """Debian-like host with apt primary and dnf as a second manager."""
    return PlatformInfo(
        os=OSFamily.LINUX,
        arch=Arch.X86_64,
        package_managers=("apt", "dnf"),
        distro="debian",
        system="Linux",
        machine="x86_64",
    )


@pytest.fixture
def darwin_brew() -> PlatformInfo:
    return PlatformInfo(
        os=OSFamily.DARWIN,
        arch=Arch.ARM64,
        package_managers=("brew",),
        system="Darwin",
        machine="arm64",
    )


@pytest.fixture
def mock_runner() -> MockCommandRunner:
    return MockCommandRunner()


def _snapshot(root: Path) -> dict[str, object]:
    """Every path under ``root`` with its content or link target."""
    state: dict[str, object] = {}
    for path in sorted(root.rglob("*")):
        rel = str(path.relative_to(root))
        if path.is_symlink():
            state[rel] = ("link", str(path.readlink()))
        elif path.is_file():
            state[rel] = ("file", path.read_bytes())
        else:
            state[rel] = ("dir",)
    return state


@pytest.fixture
def snapshot():
    """Capture a directory tree so tests can assert nothing changed."""
    return _snapshot


@pytest.fixture
def tmp_state_dir(tmp_path: Path) -> Path:
    """Return a temporary directory for state files."""
    state_dir = tmp_path / "state"
    state_dir.mkdir()
    return state_dir
