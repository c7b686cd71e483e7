"""
Package manager command tables.

Pure data plus command builders.  No subprocess calls here — the
installer hands the built commands to a ``CommandRunner``.
"""

from __future__ import annotations

from dataclasses import dataclass

from provisioner.adapters.shell.command import CommandResult


@dataclass(frozen=True)
class PackageManager:
    """How to install, reinstall and query packages with one manager."""

    name: str
    install: tuple[str, ...]
    reinstall: tuple[str, ...]
    query: tuple[str, ...]
    needs_root: bool = False
    # For query commands that exit 0 even for missing packages
    # (dpkg-query), the stdout marker that means "installed".
    installed_marker: str | None = None

    def install_command(self, package: str, *, force: bool = False) -> list[str]:
        """Build the install (or reinstall) command for one package."""
        base = self.reinstall if force else self.install
        return [*base, package]

    def query_command(self, package: str) -> list[str]:
        """Build the read-only "is it installed?" command."""
        return [*self.query, package]

    def is_installed(self, result: CommandResult) -> bool:
        """Interpret the result of ``query_command``."""
        if not result.ok:
            return False
        if self.installed_marker is not None:
            return self.installed_marker in result.stdout
        return True


MANAGERS: dict[str, PackageManager] = {
    "brew": PackageManager(
        name="brew",
        install=("brew", "install"),
        reinstall=("brew", "reinstall"),
        query=("brew", "ls", "--versions"),
    ),
    "apt": PackageManager(
        name="apt",
        install=("apt-get", "install", "-y"),
        reinstall=("apt-get", "install", "-y", "--reinstall"),
        query=("dpkg-query", "-W", "-f=${Status}"),
        needs_root=True,
        installed_marker="install ok installed",
    ),
    "pacman": PackageManager(
        name="pacman",
        install=("pacman", "-S", "--noconfirm", "--needed"),
        reinstall=("pacman", "-S", "--noconfirm"),
        query=("pacman", "-Q"),
        needs_root=True,
    ),
    "dnf": PackageManager(
        name="dnf",
        install=("dnf", "install", "-y"),
        reinstall=("dnf", "reinstall", "-y"),
        query=("rpm", "-q"),
        needs_root=True,
    ),
    "yum": PackageManager(
        name="yum",
        install=("yum", "install", "-y"),
        reinstall=("yum", "reinstall", "-y"),
        query=("rpm", "-q"),
        needs_root=True,
    ),
    "apk": PackageManager(
        name="apk",
        install=("apk", "add"),
        reinstall=("apk", "fix"),
        query=("apk", "info", "-e"),
        needs_root=True,
    ),
    "zypper": PackageManager(
        name="zypper",
        install=("zypper", "--non-interactive", "install"),
        reinstall=("zypper", "--non-interactive", "install", "--force"),
        query=("rpm", "-q"),
        needs_root=True,
    ),
}


def get_manager(name: str) -> PackageManager:
    """Look up a manager by id.

    Raises:
        KeyError: If the manager is unknown.
    """
    try:
        return MANAGERS[name]
    except KeyError:
        raise KeyError(f"Unknown package manager: {name}") from None
