"""
Tests for platform detection — OS, architecture, package managers.
"""

from pathlib import Path

import pytest

from provisioner.core.detection.platform import (
    available_managers,
    classify_os,
    detect,
    normalize_arch,
    read_distro_id,
)
from provisioner.core.models.platform import Arch, OSFamily, PlatformInfo


def _which(*present: str):
    return lambda binary: f"/usr/bin/{binary}" if binary in present else None


class TestNormalization:
    @pytest.mark.parametrize(
        "machine, expected",
        [
            ("x86_64", Arch.X86_64),
            ("amd64", Arch.X86_64),
            ("arm64", Arch.ARM64),
            ("aarch64", Arch.ARM64),
            ("riscv64", Arch.UNKNOWN),
            ("", Arch.UNKNOWN),
        ],
    )
    def test_arch(self, machine, expected):
        assert normalize_arch(machine) is expected

    def test_os(self):
        assert classify_os("Darwin") is OSFamily.DARWIN
        assert classify_os("Linux") is OSFamily.LINUX
        assert classify_os("Windows") is OSFamily.UNSUPPORTED
        assert classify_os("FreeBSD") is OSFamily.UNSUPPORTED


class TestAvailableManagers:
    def test_priority_order(self):
        found = available_managers(_which("yum", "apt-get", "pacman"))
        assert found == ("apt", "pacman", "yum")

    def test_brew_first(self):
        found = available_managers(_which("apt-get", "brew"))
        assert found == ("brew", "apt")

    def test_none(self):
        assert available_managers(_which()) == ()

    def test_custom_priority(self):
        found = available_managers(_which("apt-get", "dnf"), priority=("dnf", "apt"))
        assert found == ("dnf", "apt")

    def test_unknown_priority_entry_ignored(self):
        found = available_managers(_which("apt-get"), priority=("emerge", "apt"))
        assert found == ("apt",)


class TestDistro:
    def test_reads_id(self, tmp_path: Path):
        path = tmp_path / "os-release"
        path.write_text('NAME="Ubuntu"\nID=ubuntu\nVERSION_ID="24.04"\n')
        assert read_distro_id(path) == "ubuntu"

    def test_quoted_id(self, tmp_path: Path):
        path = tmp_path / "os-release"
        path.write_text('ID="fedora"\n')
        assert read_distro_id(path) == "fedora"

    def test_missing_file(self, tmp_path: Path):
        assert read_distro_id(tmp_path / "nope") == ""


class TestDetect:
    def test_darwin(self):
        info = detect(system="Darwin", machine="arm64", which=_which("brew"))
        assert info.is_darwin
        assert info.arch is Arch.ARM64
        assert info.package_managers == ("brew",)
        assert info.primary_manager == "brew"
        assert info.distro == ""

    def test_linux_with_fallbacks(self, tmp_path: Path):
        release = tmp_path / "os-release"
        release.write_text("ID=debian\n")
        info = detect(
            system="Linux",
            machine="aarch64",
            which=_which("apt-get", "dnf"),
            os_release=release,
        )
        assert info.is_linux
        assert info.arch is Arch.ARM64
        assert info.package_managers == ("apt", "dnf")
        assert info.distro == "debian"

    def test_unsupported_does_not_probe(self):
        probed: list[str] = []

        def which(binary: str):
            probed.append(binary)
            return None

        info = detect(system="Windows", machine="AMD64", which=which)
        assert info.os is OSFamily.UNSUPPORTED
        assert not info.supported
        assert info.package_managers == ()
        assert probed == []

    def test_no_managers(self):
        info = detect(system="Linux", machine="x86_64", which=_which())
        assert info.primary_manager is None


class TestPlatformInfo:
    def test_frozen(self):
        info = PlatformInfo(os=OSFamily.LINUX, arch=Arch.X86_64)
        with pytest.raises(Exception):
            info.os = OSFamily.DARWIN

    def test_to_dict(self):
        info = PlatformInfo(os=OSFamily.LINUX, arch=Arch.X86_64, package_managers=("apt",))
        d = info.to_dict()
        assert d["os"] == "Linux"
        assert d["primary_manager"] == "apt"
        assert d["supported"] is True
        assert info.has_manager("apt")
        assert not info.has_manager("brew")
