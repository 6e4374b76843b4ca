from __future__ import annotations

import os
from contextlib import contextmanager
from typing import Iterator

import numba
import numpy as np


Array = np.ndarray

MAX_NUM_THREADS = 8
NUM_THREADS_ENV = "M3F_NUM_THREADS"


def resolve_num_threads(num_threads: int | None = None) -> int:
    """
    Worker count from the argument, then ``M3F_NUM_THREADS``, then the CPU count.

    Only the CPU-count default is capped at ``MAX_NUM_THREADS``; explicit
    values are honoured as given.
    """
    if num_threads is None:
        env_value = os.environ.get(NUM_THREADS_ENV, "").strip()
        if env_value:
            try:
                num_threads = int(env_value)
            except ValueError:
                raise ValueError(f"{NUM_THREADS_ENV} must be an integer, got {env_value!r}.") from None
        else:
            num_threads = min(os.cpu_count() or 1, MAX_NUM_THREADS)
    if num_threads <= 0:
        raise ValueError("num_threads must be positive.")
    return num_threads


@contextmanager
def numba_threads(num_threads: int) -> Iterator[int]:
    """Run parallel kernels with ``num_threads`` workers, bounded by numba's launched pool."""
    launched = min(num_threads, numba.config.NUMBA_NUM_THREADS)
    previous = numba.get_num_threads()
    numba.set_num_threads(launched)
    try:
        yield launched
    finally:
        numba.set_num_threads(previous)


def as_index_array(values: Array, name: str, index_base: int = 1) -> Array:
    indices = np.asarray(values)
    if indices.ndim != 1:
        raise ValueError(f"{name} must be 1D.")
    return indices.astype(np.intp, copy=False) - index_base
