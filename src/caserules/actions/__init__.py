"""
Built-in rule actions.

Importing this package registers all built-in actions in ACTION_REGISTRY and
freezes it.
"""

from caserules.actions import available, build, compare, inputs, relation, validate  # noqa: F401
from caserules.registry import ACTION_REGISTRY

ACTION_REGISTRY.freeze()
