"""Generation planning and execution."""

from variantlab.pipeline.batching import gather_bounded, is_connectivity_error, run_in_batches
from variantlab.pipeline.executor import GenerationExecutor
from variantlab.pipeline.planner import (
    plan_bridge,
    plan_bridge_position,
    plan_filter_chain,
    plan_grid,
    plan_grid_on_demand,
)
from variantlab.pipeline.retry import RetryPolicy
from variantlab.pipeline.tasks import (
    BatchTiming,
    GenerationPlan,
    GenerationTask,
    RunHandle,
    RunReport,
    StatusBoard,
    TaskStatus,
)

__all__ = [
    "BatchTiming",
    "GenerationExecutor",
    "GenerationPlan",
    "GenerationTask",
    "RetryPolicy",
    "RunHandle",
    "RunReport",
    "StatusBoard",
    "TaskStatus",
    "gather_bounded",
    "is_connectivity_error",
    "plan_bridge",
    "plan_bridge_position",
    "plan_filter_chain",
    "plan_grid",
    "plan_grid_on_demand",
    "run_in_batches",
]
