"""
Platform model — what machine are we provisioning.

Computed once by the platform detector at process start and passed
down to every recipe.  Recipes branch on the enums here, never on
raw ``uname`` strings.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict


class OSFamily(str, Enum):
    """Operating system families the provisioner knows about."""

    DARWIN = "Darwin"
    LINUX = "Linux"
    UNSUPPORTED = "Unsupported"


class Arch(str, Enum):
    """Normalized CPU architecture."""

    X86_64 = "x86_64"
    ARM64 = "arm64"
    UNKNOWN = "unknown"


class PlatformInfo(BaseModel):
    """Immutable description of the host.

    ``package_managers`` is ordered: the first entry is the primary
    manager, the rest are fallbacks in priority order.
    """

    model_config = ConfigDict(frozen=True)

    os: OSFamily
    arch: Arch
    package_managers: tuple[str, ...] = ()
    distro: str = ""        # /etc/os-release ID on Linux, informational
    system: str = ""        # raw platform.system()
    machine: str = ""       # raw platform.machine()

    @property
    def supported(self) -> bool:
        return self.os is not OSFamily.UNSUPPORTED

    @property
    def is_darwin(self) -> bool:
        return self.os is OSFamily.DARWIN

    @property
    def is_linux(self) -> bool:
        return self.os is OSFamily.LINUX

    @property
    def primary_manager(self) -> str | None:
        """The preferred package manager, or None if none was found."""
        return self.package_managers[0] if self.package_managers else None

    def has_manager(self, name: str) -> bool:
        return name in self.package_managers

    def to_dict(self) -> dict:
        return {
            "os": self.os.value,
            "arch": self.arch.value,
            "package_managers": list(self.package_managers),
            "primary_manager": self.primary_manager,
            "distro": self.distro,
            "system": self.system,
            "machine": self.machine,
            "supported": self.supported,
        }
