"""
Mutation Guard — backup-before-mutate filesystem operations.
"""

from provisioner.core.guard.mutation import MutationGuard, trees_equal  # noqa: F401
