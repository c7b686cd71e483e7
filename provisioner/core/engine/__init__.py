"""
Execution engine — recipe registry, ordering, and the run loop.
"""

from provisioner.core.engine.executor import (  # noqa: F401
    EXIT_CRITICAL_FAILURE,
    EXIT_OK,
    EXIT_UNSUPPORTED_PLATFORM,
    Engine,
    RecipeOutcome,
    RunReport,
    RunState,
    generate_run_id,
)
from provisioner.core.engine.registry import RecipeRegistry  # noqa: F401
from provisioner.core.engine.substeps import run_substeps  # noqa: F401
