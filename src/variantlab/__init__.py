"""variantlab

Explore AI-generated text variations along structured axes:
 - grid (features/grid.py): 121-point adjective plane, generated ring by ring
 - bridge (features/bridge.py): 11-step recursive blend between two texts
 - filters (features/filters.py): ordered, cacheable filter-stack pipeline

All three share the planner/executor in ``variantlab.pipeline`` and the
session cache in ``variantlab.session``.
"""

__version__ = "0.4.0"

__all__ = ["__version__"]
