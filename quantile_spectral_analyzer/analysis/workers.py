"""Caller-owned worker pool for the frequency (or series) loop.

The pool is a scoped handle: the caller opens it once, passes it into as many
engine calls as needed, and closes it. Work items are mapped in order and the
results are returned as a list aligned with the input, so callers assemble
their output by index after all items completed. Workers never write into a
shared result buffer.

A pool of size 1 runs everything inline in the calling thread.

Example::

    with WorkerPool(n_workers=4) as pool:
        for y in series:
            quantile_periodogram(y, freqs, taus, pool=pool)
"""

from __future__ import annotations

from concurrent.futures import Executor, ProcessPoolExecutor, ThreadPoolExecutor
from typing import Callable, Iterable, List, Literal, Optional, TypeVar

from quantile_spectral_analyzer.errors import ContractViolation


PoolKind = Literal["thread", "process"]

T = TypeVar("T")
R = TypeVar("R")


class WorkerPool:
    """Thread or process pool with explicit open/close.

    Parameters
    ----------
    n_workers:
        Number of workers. ``1`` means serial, inline execution.
    kind:
        ``"thread"`` or ``"process"``. Process pools require the mapped function
        and its arguments to be picklable.
    """

    def __init__(self, n_workers: int = 1, kind: PoolKind = "thread") -> None:
        n = int(n_workers)
        if n < 1:
            raise ContractViolation(f"n_workers must be >= 1, got {n_workers!r}")
        if kind not in ("thread", "process"):
            raise ContractViolation(f"pool kind must be 'thread' or 'process', got {kind!r}")
        self.n_workers = n
        self.kind: PoolKind = kind
        self._executor: Optional[Executor] = None

    def open(self) -> "WorkerPool":
        if self.n_workers > 1 and self._executor is None:
            if self.kind == "process":
                self._executor = ProcessPoolExecutor(max_workers=self.n_workers)
            else:
                self._executor = ThreadPoolExecutor(
                    max_workers=self.n_workers, thread_name_prefix="qspec"
                )
        return self

    def close(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    def __enter__(self) -> "WorkerPool":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def map(self, fn: Callable[[T], R], items: Iterable[T]) -> List[R]:
        """Apply ``fn`` to every item; results keep the input order."""
        items = list(items)
        if self._executor is None:
            if self.n_workers > 1:
                raise RuntimeError("WorkerPool is not open; use it as a context manager or call open()")
            return [fn(x) for x in items]
        return list(self._executor.map(fn, items))

    def __repr__(self) -> str:
        state = "open" if self._executor is not None else "closed"
        return f"WorkerPool(n_workers={self.n_workers}, kind={self.kind!r}, {state})"


def serial_pool() -> WorkerPool:
    return WorkerPool(n_workers=1)
