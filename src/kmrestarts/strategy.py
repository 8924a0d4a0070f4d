from __future__ import annotations
import os
import threading
from contextlib import nullcontext
from multiprocessing.pool import ThreadPool

from .errors import ConfigurationError

METHODS = ("serial", "parallel")


def chunk_bounds(n: int, parts: int) -> list[tuple[int, int]]:
    """
    Split range(n) into at most `parts` contiguous (start, stop) pieces.
    The first n % parts pieces get one extra element, like np.array_split.
    """
    n = int(n)
    parts = max(1, min(int(parts), n)) if n > 0 else 1
    q, r = divmod(n, parts)
    bounds = []
    start = 0
    for i in range(parts):
        stop = start + q + (1 if i < r else 0)
        bounds.append((start, stop))
        start = stop
    return bounds


class SequentialStrategy:
    """Single-threaded baseline: one chunk covering every point."""

    name = "serial"

    def __init__(self):
        self.num_workers = 1
        self.lock = nullcontext()

    def map_chunks(self, fn, n: int) -> list:
        return [fn(0, int(n))]

    def reduce_sum(self, fn, n: int):
        return sum(self.map_chunks(fn, n))

    def close(self):
        pass

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
        return False


class ThreadStrategy(SequentialStrategy):
    """
    Shared-memory thread team. Points are statically partitioned by index,
    one contiguous chunk per worker, so every label slot has exactly one
    writer per step. `lock` guards the accumulator merge.
    """

    name = "parallel"

    def __init__(self, num_threads: int | None = None):
        n = int(num_threads) if num_threads else (os.cpu_count() or 1)
        if n < 1:
            raise ConfigurationError(f"num_threads must be >= 1, got {n}")
        self.num_workers = n
        self.lock = threading.Lock()
        self._pool = None

    def open(self):
        if self._pool is None:
            self._pool = ThreadPool(self.num_workers)
        return self

    def map_chunks(self, fn, n: int) -> list:
        bounds = chunk_bounds(n, self.num_workers)
        if len(bounds) == 1:
            return [fn(*bounds[0])]
        if self._pool is not None:
            return self._pool.starmap(fn, bounds)
        with ThreadPool(self.num_workers) as pool:
            return pool.starmap(fn, bounds)

    def close(self):
        if self._pool is not None:
            self._pool.close()
            self._pool.join()
            self._pool = None

    def __enter__(self):
        return self.open()


def make_strategy(method: str = "parallel", num_threads: int | None = None):
    if method == "serial":
        return SequentialStrategy()
    if method == "parallel":
        return ThreadStrategy(num_threads)
    raise ConfigurationError(f"Unknown method '{method}' (expected one of {', '.join(METHODS)})")
