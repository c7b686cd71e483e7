"""
Error taxonomy — every failure the provisioner can surface.

Low-level failures (one package, one file) are absorbed into
``InstallResult`` / ``MutationResult`` values.  These exceptions are
raised only at the seams where a caller has to decide what happens
next: the engine (critical vs. non-critical), the CLI (exit codes),
and declarative recipes (translating a failed step into a result).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from provisioner.core.models.result import InstallResult


class ProvisionError(Exception):
    """Base class for all provisioner errors."""


class ConfigError(ProvisionError):
    """Raised when provision.yml is invalid or unreadable."""


class PlatformUnsupported(ProvisionError):
    """The host OS is neither Darwin nor Linux. Aborts the whole run."""

    def __init__(self, system: str):
        self.system = system
        super().__init__(
            f"Unsupported platform '{system or 'unknown'}': "
            "only Darwin and Linux can be provisioned"
        )


class InstallFailed(ProvisionError):
    """A package could not be installed by any available manager."""

    def __init__(self, package: str, result: InstallResult):
        self.package = package
        self.result = result
        super().__init__(f"Failed to install {package}: {result.reason or result.status}")


class FilesystemMutationFailed(ProvisionError):
    """A guarded filesystem mutation did not reach its desired state."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"{path}: {reason}")


class BackupFailed(FilesystemMutationFailed):
    """The backup preceding a mutation could not be created.

    Always fatal for the operation: the destination is left untouched.
    """

    def __init__(self, path: str, reason: str):
        super().__init__(path, f"backup failed, refusing to overwrite ({reason})")


class RecipeFailed(ProvisionError):
    """A recipe finished with a failed result."""

    def __init__(self, recipe: str, result: InstallResult):
        self.recipe = recipe
        self.result = result
        super().__init__(f"Recipe '{recipe}' failed: {result.reason or result.status}")


class CriticalRecipeFailed(RecipeFailed):
    """A critical recipe failed — the run stops here."""


class NonCriticalRecipeFailed(RecipeFailed):
    """A non-critical recipe failed — logged, the run continues."""


class DuplicateRecipeError(ProvisionError):
    """Two recipes were registered under the same name."""


class RecipeOrderError(ProvisionError):
    """Declared recipe dependencies are unknown or cyclic."""
