"""
Recipes — declarative recipe specs and the built-in default set.
"""

from provisioner.core.recipes.builtin import DEFAULT_RECIPES, default_recipe_specs  # noqa: F401
from provisioner.core.recipes.declarative import (  # noqa: F401
    CommandSpec,
    CopySpec,
    LinkSpec,
    RecipeSpec,
    build_recipe,
)
