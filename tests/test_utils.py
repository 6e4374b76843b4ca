import os

import numba
import numpy as np
import pytest

from m3f._utils import MAX_NUM_THREADS, as_index_array, numba_threads, resolve_num_threads
from m3f.data import generate_synthetic_dyads, generate_synthetic_samples
from m3f.predict import predict


# ---------------------------------------------------------------------------
# resolve_num_threads
# ---------------------------------------------------------------------------

def test_resolve_num_threads_explicit() -> None:
    assert resolve_num_threads(3) == 3


def test_explicit_num_threads_above_default_cap_is_honoured() -> None:
    assert resolve_num_threads(MAX_NUM_THREADS + 24) == MAX_NUM_THREADS + 24


def test_env_num_threads_above_default_cap_is_honoured(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("M3F_NUM_THREADS", "32")
    assert resolve_num_threads() == 32


def test_cpu_count_default_is_capped(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("M3F_NUM_THREADS", raising=False)
    monkeypatch.setattr(os, "cpu_count", lambda: MAX_NUM_THREADS * 4)
    assert resolve_num_threads() == MAX_NUM_THREADS


def test_cpu_count_default_below_cap(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("M3F_NUM_THREADS", raising=False)
    monkeypatch.setattr(os, "cpu_count", lambda: 2)
    assert resolve_num_threads() == 2


def test_resolve_num_threads_bad_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("M3F_NUM_THREADS", "many")
    with pytest.raises(ValueError, match="M3F_NUM_THREADS"):
        resolve_num_threads()


def test_resolve_num_threads_rejects_zero() -> None:
    with pytest.raises(ValueError, match="positive"):
        resolve_num_threads(0)


# ---------------------------------------------------------------------------
# numba_threads
# ---------------------------------------------------------------------------

def test_numba_threads_restores_previous_count() -> None:
    before = numba.get_num_threads()
    with numba_threads(1) as launched:
        assert launched == 1
        assert numba.get_num_threads() == 1
    assert numba.get_num_threads() == before


def test_numba_threads_bounded_by_launched_pool() -> None:
    with numba_threads(numba.config.NUMBA_NUM_THREADS + 100) as launched:
        assert launched == numba.config.NUMBA_NUM_THREADS


def test_predict_leaves_thread_count_unchanged() -> None:
    samples = generate_synthetic_samples(num_rows=5, num_cols=4, num_samples=2)
    dyads = generate_synthetic_dyads(5, 4, 20)
    before = numba.get_num_threads()
    predict(dyads.rows, dyads.cols, samples, num_threads=1)
    assert numba.get_num_threads() == before


# ---------------------------------------------------------------------------
# as_index_array
# ---------------------------------------------------------------------------

def test_as_index_array_shifts_to_zero_based() -> None:
    idx = as_index_array(np.array([1, 3], dtype=np.uint32), "rows")
    assert idx.dtype == np.intp
    assert np.array_equal(idx, [0, 2])


def test_as_index_array_rejects_2d() -> None:
    with pytest.raises(ValueError, match="rows must be 1D"):
        as_index_array(np.ones((2, 2)), "rows")
