"""
Package name mapping — one logical tool, many concrete package names.

The same tool ships under different names depending on the manager
(``fd`` is ``fd-find`` on Debian and Fedora).  Recipes always speak
logical names; the installer resolves them per manager right before
each install call.
"""

from __future__ import annotations

from collections.abc import Mapping

# logical name → {manager: concrete name}
DEFAULT_PACKAGE_NAMES: dict[str, dict[str, str]] = {
    "fd": {"apt": "fd-find", "dnf": "fd-find", "yum": "fd-find"},
    "go": {"apt": "golang-go", "dnf": "golang", "yum": "golang"},
    "python3-pip": {"pacman": "python-pip", "apk": "py3-pip", "brew": "python"},
    "build-essential": {
        "pacman": "base-devel",
        "dnf": "gcc-c++",
        "yum": "gcc-c++",
        "apk": "build-base",
        "zypper": "gcc-c++",
    },
}

# logical name → executables it may be installed as
DEFAULT_BINARIES: dict[str, tuple[str, ...]] = {
    "fd": ("fd", "fdfind"),
    "neovim": ("nvim",),
    "ripgrep": ("rg",),
    "python3-pip": ("pip3",),
}


class PackageNameMap:
    """Resolve ``(logical name, manager)`` to a concrete package name.

    Overrides from provision.yml are merged on top of the defaults,
    per logical name and per manager.
    """

    def __init__(
        self,
        overrides: Mapping[str, Mapping[str, str]] | None = None,
        *,
        include_defaults: bool = True,
    ):
        self._names: dict[str, dict[str, str]] = {}
        if include_defaults:
            for logical, per_manager in DEFAULT_PACKAGE_NAMES.items():
                self._names[logical] = dict(per_manager)
        for logical, per_manager in (overrides or {}).items():
            self._names.setdefault(logical, {}).update(per_manager)

    def resolve(self, logical: str, manager: str) -> str:
        """Concrete package name for ``manager`` (the logical name if unmapped)."""
        return self._names.get(logical, {}).get(manager, logical)

    def binaries(self, logical: str) -> tuple[str, ...]:
        """Executables that prove ``logical`` is present on PATH."""
        return DEFAULT_BINARIES.get(logical, (logical,))

    def to_dict(self) -> dict[str, dict[str, str]]:
        return {k: dict(v) for k, v in self._names.items()}
