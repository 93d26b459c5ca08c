"""Explicit execution context for data-parallel regions.

Workers never rely on ambient state: every function that touches shared
arrays receives an ``ExecutionContext`` saying which worker it is and which
index range it owns. ``run_parallel_region`` executes one callable per
worker on a thread pool and only returns once every worker has finished,
which is the synchronisation point between parallel and serial regions.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, List

import numpy as np

from fem.exceptions import ConfigurationError

log = logging.getLogger(__name__)


def _split(n: int, nparts: int, part: int) -> range:
    """Contiguous block ``part`` of ``range(n)`` split into ``nparts`` near-equal pieces."""
    base, extra = divmod(n, nparts)
    start = part * base + min(part, extra)
    stop = start + base + (1 if part < extra else 0)
    return range(start, stop)


@dataclass(frozen=True)
class ExecutionContext:
    """Worker ``rank`` of ``nranks``."""

    rank: int = 0
    nranks: int = 1

    def __post_init__(self):
        if self.nranks < 1 or not 0 <= self.rank < self.nranks:
            raise ConfigurationError(f"Invalid execution context rank={self.rank}, nranks={self.nranks}")

    @classmethod
    def serial(cls) -> "ExecutionContext":
        return cls(0, 1)

    @property
    def is_serial(self) -> bool:
        return self.nranks == 1

    def partition(self, n: int) -> range:
        """Indices of ``range(n)`` owned by this worker."""
        return _split(n, self.nranks, self.rank)


@dataclass(frozen=True)
class BlockDecomposition:
    """2D block decomposition of an (n1, n2) grid over ``nranks`` workers.

    The worker grid ``nblocks1 x nblocks2`` is the most square factorisation
    of ``nranks`` with ``nblocks1 <= n1`` and ``nblocks2 <= n2``.
    """

    n1: int
    n2: int
    nranks: int

    @property
    def shape(self) -> tuple[int, int]:
        candidates = [
            (nb1, self.nranks // nb1)
            for nb1 in range(1, self.nranks + 1)
            if self.nranks % nb1 == 0
            and nb1 <= self.n1
            and self.nranks // nb1 <= self.n2
        ]
        if not candidates:
            # more workers than points: some blocks are empty
            return (1, self.nranks)
        return min(candidates, key=lambda nb: abs(nb[0] - nb[1]))

    def block(self, rank: int) -> tuple[slice, slice]:
        """Index slices (vpa, vperp) owned by worker ``rank``."""
        nb1, nb2 = self.shape
        r1, r2 = divmod(rank, nb2)
        range1 = _split(self.n1, nb1, r1)
        range2 = _split(self.n2, nb2, r2)
        return slice(range1.start, range1.stop), slice(range2.start, range2.stop)

    def blocks(self) -> List[tuple[slice, slice]]:
        return [self.block(rank) for rank in range(self.nranks)]

    def for_context(self, context: ExecutionContext) -> tuple[slice, slice]:
        return self.block(context.rank)


def run_parallel_region(worker: Callable[[ExecutionContext], object], nranks: int = 1) -> list:
    """Run ``worker(context)`` for every rank and return the results in rank order.

    With ``nranks == 1`` the worker runs inline. Exceptions raised by any
    worker propagate to the caller after all workers have stopped.
    """
    contexts = [ExecutionContext(rank, nranks) for rank in range(nranks)]
    if nranks == 1:
        return [worker(contexts[0])]
    with ThreadPoolExecutor(max_workers=nranks) as pool:
        futures = [pool.submit(worker, context) for context in contexts]
        return [future.result() for future in futures]


def fill_by_blocks(out: np.ndarray, values: np.ndarray, nranks: int = 1) -> np.ndarray:
    """Copy ``values`` into ``out`` with each worker writing only its own 2D block."""
    decomposition = BlockDecomposition(out.shape[0], out.shape[1], nranks)

    def write_block(context: ExecutionContext):
        block = decomposition.for_context(context)
        out[block] = values[block]

    run_parallel_region(write_block, nranks)
    return out
