"""
Installer abstraction — package managers, name mapping, fallback chain.
"""

from provisioner.core.installer.installer import Installer  # noqa: F401
from provisioner.core.installer.managers import MANAGERS, PackageManager, get_manager  # noqa: F401
from provisioner.core.installer.names import PackageNameMap  # noqa: F401
