"""Cross-project utilities (execution context, console output)."""

from utilities.parallel import BlockDecomposition, ExecutionContext, run_parallel_region  # noqa: F401

__all__ = [
    "BlockDecomposition",
    "ExecutionContext",
    "run_parallel_region",
]
