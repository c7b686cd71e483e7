"""
Recipe registry — the ordered collection of provisioning units.

The registry owns recipes by name.  The engine never keeps its own
list; it always asks the registry for the execution order.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator

from provisioner.core.engine.ordering import order_recipes
from provisioner.core.errors import DuplicateRecipeError
from provisioner.core.models.recipe import Recipe

logger = logging.getLogger(__name__)


class RecipeRegistry:
    """Named recipes with a deterministic execution order."""

    def __init__(self, recipes: Iterable[Recipe] = ()):
        self._recipes: dict[str, Recipe] = {}
        for recipe in recipes:
            self.register(recipe)

    def register(self, recipe: Recipe) -> None:
        """Add a recipe.

        Raises:
            DuplicateRecipeError: If the name is already registered.
        """
        if not recipe.name:
            raise ValueError("Recipe name must not be empty")
        if recipe.name in self._recipes:
            raise DuplicateRecipeError(f"Recipe already registered: {recipe.name}")
        self._recipes[recipe.name] = recipe
        logger.debug("Registered recipe: %s%s", recipe.name, " (critical)" if recipe.critical else "")

    def unregister(self, name: str) -> None:
        self._recipes.pop(name, None)

    def get(self, name: str) -> Recipe | None:
        return self._recipes.get(name)

    def names(self) -> list[str]:
        """Recipe names in execution order."""
        return [r.name for r in self.ordered()]

    def ordered(self) -> list[Recipe]:
        """Recipes in execution order (see ``ordering.order_recipes``)."""
        return order_recipes(self._recipes.values())

    def select(self, filter_text: str | None) -> tuple[list[Recipe], list[Recipe]]:
        """Split the ordered recipes into (selected, filtered out)."""
        selected: list[Recipe] = []
        filtered: list[Recipe] = []
        for recipe in self.ordered():
            if not filter_text or filter_text in recipe.name:
                selected.append(recipe)
            else:
                filtered.append(recipe)
        return selected, filtered

    def __len__(self) -> int:
        return len(self._recipes)

    def __contains__(self, name: object) -> bool:
        return name in self._recipes

    def __iter__(self) -> Iterator[Recipe]:
        return iter(self.ordered())
