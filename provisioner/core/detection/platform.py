"""
Platform detection — OS, architecture, and package managers.

Read-only probes of the live host, run once at process start.  The
keyword hooks on ``detect()`` exist so tests can simulate any host;
production callers pass nothing.
"""

from __future__ import annotations

import logging
import platform
import shutil
from collections.abc import Callable, Iterable
from pathlib import Path

from provisioner.core.models.platform import Arch, OSFamily, PlatformInfo

logger = logging.getLogger(__name__)

# Manager id → executable that proves it is installed.
KNOWN_MANAGERS: dict[str, str] = {
    "brew": "brew",
    "apt": "apt-get",
    "pacman": "pacman",
    "dnf": "dnf",
    "yum": "yum",
    "apk": "apk",
    "zypper": "zypper",
}

# Fallback order for system managers.  Some hosts have more than one
# partially installed; the first available one wins.
SYSTEM_MANAGER_PRIORITY: tuple[str, ...] = ("apt", "pacman", "dnf", "yum", "apk", "zypper")

_ARCH_MAP: dict[str, Arch] = {
    "x86_64": Arch.X86_64,
    "amd64": Arch.X86_64,
    "AMD64": Arch.X86_64,      # Windows / WSL2
    "arm64": Arch.ARM64,       # macOS (Darwin reports arm64)
    "aarch64": Arch.ARM64,
    "ARM64": Arch.ARM64,
}

_OS_MAP: dict[str, OSFamily] = {
    "Darwin": OSFamily.DARWIN,
    "Linux": OSFamily.LINUX,
}

OS_RELEASE = Path("/etc/os-release")


def normalize_arch(machine: str) -> Arch:
    """Map a raw ``uname -m`` string onto the ``Arch`` enum."""
    return _ARCH_MAP.get(machine.strip(), Arch.UNKNOWN)


def classify_os(system: str) -> OSFamily:
    """Map ``platform.system()`` onto the ``OSFamily`` enum."""
    return _OS_MAP.get(system.strip(), OSFamily.UNSUPPORTED)


def available_managers(
    which: Callable[[str], str | None] = shutil.which,
    priority: Iterable[str] = SYSTEM_MANAGER_PRIORITY,
) -> tuple[str, ...]:
    """Return installed package managers, primary first.

    Homebrew always leads when present (it is the primary manager on
    macOS and, when installed, on Linux too).  System managers follow
    in ``priority`` order.
    """
    found: list[str] = []
    for manager in ("brew", *priority):
        if manager in found:
            continue
        binary = KNOWN_MANAGERS.get(manager)
        if binary is None:
            logger.warning("Ignoring unknown package manager in priority list: %s", manager)
            continue
        if which(binary):
            found.append(manager)
    return tuple(found)


def read_distro_id(path: Path = OS_RELEASE) -> str:
    """Read the ``ID=`` field from an os-release file ("" if unavailable)."""
    try:
        with open(path, encoding="utf-8") as f:
            for line in f:
                if line.startswith("ID="):
                    return line.strip().split("=", 1)[1].strip('"')
    except OSError:
        pass
    return ""


def detect(
    *,
    system: str | None = None,
    machine: str | None = None,
    which: Callable[[str], str | None] | None = None,
    os_release: Path | None = None,
    priority: Iterable[str] | None = None,
) -> PlatformInfo:
    """Describe the host as a ``PlatformInfo``.

    Never fails: an unknown OS is reported as ``OSFamily.UNSUPPORTED``
    and it is up to the engine to refuse to run.

    Args:
        system: Override for ``platform.system()``.
        machine: Override for ``platform.machine()``.
        which: Override for ``shutil.which``.
        os_release: Override for ``/etc/os-release``.
        priority: System manager fallback order (default: apt, pacman,
            dnf, yum, apk, zypper).
    """
    system = platform.system() if system is None else system
    machine = platform.machine() if machine is None else machine

    os_family = classify_os(system)
    arch = normalize_arch(machine)

    managers: tuple[str, ...] = ()
    distro = ""
    if os_family is not OSFamily.UNSUPPORTED:
        managers = available_managers(
            which or shutil.which,
            SYSTEM_MANAGER_PRIORITY if priority is None else priority,
        )
    if os_family is OSFamily.LINUX:
        distro = read_distro_id(os_release or OS_RELEASE)

    info = PlatformInfo(
        os=os_family,
        arch=arch,
        package_managers=managers,
        distro=distro,
        system=system,
        machine=machine,
    )
    logger.debug(
        "Detected platform: %s/%s, managers=%s, distro=%s",
        info.os.value, info.arch.value, ",".join(managers) or "none", distro or "-",
    )
    return info
