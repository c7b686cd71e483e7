"""
Recipe ordering (pure).

Recipes run lexicographically by name.  When recipes declare
``requires``, a topological order is used instead, still breaking
ties by name so the order stays deterministic.
No I/O.
"""

from __future__ import annotations

import heapq
from collections.abc import Iterable

from provisioner.core.errors import RecipeOrderError
from provisioner.core.models.recipe import Recipe


def validate_requirements(recipes: Iterable[Recipe]) -> list[str]:
    """Return error strings for dependencies on unknown recipes."""
    recipes = list(recipes)
    names = {r.name for r in recipes}
    errors: list[str] = []
    for recipe in recipes:
        for dep in recipe.requires:
            if dep not in names:
                errors.append(f"Recipe '{recipe.name}' requires unknown recipe '{dep}'")
            elif dep == recipe.name:
                errors.append(f"Recipe '{recipe.name}' requires itself")
    return errors


def order_recipes(recipes: Iterable[Recipe]) -> list[Recipe]:
    """Return recipes in execution order (Kahn's algorithm, name tie-breaks).

    Raises:
        RecipeOrderError: On unknown dependencies or a cycle.
    """
    recipes = list(recipes)
    errors = validate_requirements(recipes)
    if errors:
        raise RecipeOrderError("; ".join(errors))

    by_name = {r.name: r for r in recipes}
    in_degree: dict[str, int] = {r.name: len(set(r.requires)) for r in recipes}
    dependents: dict[str, list[str]] = {r.name: [] for r in recipes}
    for recipe in recipes:
        for dep in set(recipe.requires):
            dependents[dep].append(recipe.name)

    ready = [name for name, degree in in_degree.items() if degree == 0]
    heapq.heapify(ready)
    ordered: list[Recipe] = []

    while ready:
        name = heapq.heappop(ready)
        ordered.append(by_name[name])
        for successor in dependents[name]:
            in_degree[successor] -= 1
            if in_degree[successor] == 0:
                heapq.heappush(ready, successor)

    if len(ordered) < len(recipes):
        stuck = sorted(n for n, d in in_degree.items() if d > 0)
        raise RecipeOrderError(f"Dependency cycle between recipes: {', '.join(stuck)}")

    return ordered
