from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from contextlib import contextmanager
from typing import Callable, Iterable, Iterator, List, Optional, TypeVar

logger = logging.getLogger(__name__)

A = TypeVar("A")
R = TypeVar("R")


class GenerationContext:
    """
    Worker pool shared by tile generation runs.

    run() executes one task per item and returns the results in completion
    order; callers must not depend on that order. A failing task fails the
    whole run.
    """

    def __init__(self, max_workers: int = 8, reduce_partitions: Optional[int] = None):
        if max_workers <= 0:
            raise ValueError(f"max_workers must be positive, got {max_workers}")
        if reduce_partitions is not None and reduce_partitions <= 0:
            raise ValueError(f"reduce_partitions must be positive, got {reduce_partitions}")
        self.max_workers = max_workers
        self.reduce_partitions = reduce_partitions or max_workers
        self._executor: Optional[ThreadPoolExecutor] = None

    def _pool(self) -> ThreadPoolExecutor:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=self.max_workers, thread_name_prefix="tilegen"
            )
        return self._executor

    def run(self, fn: Callable[[A], R], items: Iterable[A]) -> List[R]:
        items = list(items)
        if not items:
            return []
        if len(items) == 1 or self.max_workers == 1:
            return [fn(a) for a in items]

        ex = self._pool()
        futures = [ex.submit(fn, a) for a in items]
        results = []
        try:
            for f in as_completed(futures):
                results.append(f.result())
        except BaseException:
            for f in futures:
                f.cancel()
            raise
        return results

    def shutdown(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    def __enter__(self) -> "GenerationContext":
        return self

    def __exit__(self, *exc) -> None:
        self.shutdown()

    def __repr__(self) -> str:
        return f"GenerationContext(max_workers={self.max_workers}, reduce_partitions={self.reduce_partitions})"


@contextmanager
def scoped_context(context: Optional[GenerationContext]) -> Iterator[GenerationContext]:
    """
    Yield the caller's context untouched, or a fresh one that is shut down
    when the block exits.
    """
    if context is not None:
        yield context
        return
    ctx = GenerationContext()
    try:
        yield ctx
    finally:
        ctx.shutdown()
