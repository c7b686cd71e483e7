"""
Domain models for the provisioner.

All models are re-exported here for convenient access:

    from provisioner.core.models import PlatformInfo, ExecutionContext, InstallResult
"""

from provisioner.core.models.context import ExecutionContext
from provisioner.core.models.platform import Arch, OSFamily, PlatformInfo
from provisioner.core.models.recipe import Recipe, RecipeAction
from provisioner.core.models.result import (
    BackupRecord,
    InstallResult,
    MutationResult,
)

__all__ = [
    "Arch",
    # result.py
    "BackupRecord",
    # context.py
    "ExecutionContext",
    "InstallResult",
    "MutationResult",
    "OSFamily",
    # platform.py
    "PlatformInfo",
    # recipe.py
    "Recipe",
    "RecipeAction",
]
