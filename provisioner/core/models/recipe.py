"""
Recipe model — one named, idempotent provisioning unit.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from provisioner.core.models.context import ExecutionContext
from provisioner.core.models.platform import PlatformInfo
from provisioner.core.models.result import InstallResult

RecipeAction = Callable[[PlatformInfo, ExecutionContext], InstallResult]


@dataclass(frozen=True)
class Recipe:
    """A named provisioning unit owned by the recipe registry.

    ``critical`` recipes abort the whole run when they fail.
    ``requires`` lists recipe names that must run first.
    """

    name: str
    action: RecipeAction
    critical: bool = False
    description: str = ""
    requires: tuple[str, ...] = ()

    def __repr__(self) -> str:
        flag = " critical" if self.critical else ""
        return f"<Recipe {self.name!r}{flag}>"
