from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

import numpy as np
from numba import njit, prange

from m3f._utils import as_index_array, numba_threads, resolve_num_threads
from m3f.offsets import add_offsets
from m3f.samples import ModelDimensions, PosteriorSample, model_dimensions


Array = np.ndarray
_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Contributions:
    factorization: Array
    row_offsets: Array
    col_offsets: Array

    def total(self) -> Array:
        return self.factorization + self.row_offsets + self.col_offsets


def predict(
    rows: Array,
    cols: Array,
    samples: Sequence[PosteriorSample],
    z_row: Array | None = None,
    z_col: Array | None = None,
    include_factorization: bool = True,
    include_row_offsets: bool = True,
    include_col_offsets: bool = True,
    index_base: int = 1,
    num_threads: int | None = None,
) -> Array:
    """
    Posterior-averaged MMMF predictions for a batch of dyads.

    For every sample the enabled contributions are added into one
    accumulator: row-topic offsets ``d``, column-topic offsets ``c`` and the
    factorization term ``chi + <a[:, row], b[:, col]>``. The sum is divided
    by the number of samples at the end.

    ``z_row`` / ``z_col`` fix the topic of every example for all samples;
    when absent, topics are integrated out. Disabling contributions turns
    this into a partial prediction, which is how residuals are computed
    during Gibbs sampling. Index ranges are not checked.
    """
    if index_base not in (0, 1):
        raise ValueError("index_base must be 0 or 1.")

    row_idx = as_index_array(rows, "rows", index_base)
    col_idx = as_index_array(cols, "cols", index_base)
    num_examples = len(row_idx)
    if len(col_idx) != num_examples:
        raise ValueError("cols must have the same length as rows.")
    z_row_idx = _optional_topics(z_row, "z_row", num_examples, index_base)
    z_col_idx = _optional_topics(z_col, "z_col", num_examples, index_base)

    dims = model_dimensions(samples)
    workers = resolve_num_threads(num_threads)
    _logger.debug(
        "predicting %d dyads from %d samples (KR=%d, KC=%d, F=%d, factorization=%s, row_offsets=%s, col_offsets=%s)",
        num_examples,
        len(samples),
        dims.num_row_topics,
        dims.num_col_topics,
        dims.num_factors,
        include_factorization,
        include_row_offsets,
        include_col_offsets,
    )

    preds = np.zeros(num_examples, dtype=np.float64)
    with numba_threads(workers):
        _accumulate_samples(
            preds, row_idx, col_idx, samples, dims, z_row_idx, z_col_idx,
            include_factorization, include_row_offsets, include_col_offsets,
        )

    if len(samples) > 1:
        preds /= len(samples)

    _logger.debug("finished predicting %d dyads", num_examples)
    return preds


def predict_contributions(
    rows: Array,
    cols: Array,
    samples: Sequence[PosteriorSample],
    z_row: Array | None = None,
    z_col: Array | None = None,
    index_base: int = 1,
    num_threads: int | None = None,
) -> Contributions:
    """Each contribution averaged over samples on its own; ``total()`` equals ``predict``."""
    common = dict(z_row=z_row, z_col=z_col, index_base=index_base, num_threads=num_threads)
    return Contributions(
        factorization=predict(
            rows, cols, samples,
            include_factorization=True, include_row_offsets=False, include_col_offsets=False, **common,
        ),
        row_offsets=predict(
            rows, cols, samples,
            include_factorization=False, include_row_offsets=True, include_col_offsets=False, **common,
        ),
        col_offsets=predict(
            rows, cols, samples,
            include_factorization=False, include_row_offsets=False, include_col_offsets=True, **common,
        ),
    )


def _accumulate_samples(
    preds: Array,
    row_idx: Array,
    col_idx: Array,
    samples: Sequence[PosteriorSample],
    dims: ModelDimensions,
    z_row: Array | None,
    z_col: Array | None,
    include_factorization: bool,
    include_row_offsets: bool,
    include_col_offsets: bool,
) -> None:
    # samples run one after another; each parallel kernel returns only when every example is done
    for sample in samples:
        if dims.num_row_topics > 0 and include_row_offsets:
            add_offsets(
                primary=row_idx,
                secondary=col_idx,
                log_theta=sample.log_theta_row,
                offset=sample.d,
                preds=preds,
                z=z_row,
            )
        if dims.num_col_topics > 0 and include_col_offsets:
            add_offsets(
                primary=col_idx,
                secondary=row_idx,
                log_theta=sample.log_theta_col,
                offset=sample.c,
                preds=preds,
                z=z_col,
            )
        if include_factorization:
            if dims.num_factors > 0:
                _add_factorization(
                    row_idx,
                    col_idx,
                    float(sample.chi),
                    np.ascontiguousarray(sample.a, dtype=np.float64),
                    np.ascontiguousarray(sample.b, dtype=np.float64),
                    preds,
                )
            else:
                preds += float(sample.chi)


@njit(parallel=True, nogil=True)
def _add_factorization(row_idx, col_idx, chi, a, b, preds):
    num_factors = a.shape[0]
    for e in prange(preds.shape[0]):
        r = row_idx[e]
        c = col_idx[e]
        dot = 0.0
        for f in range(num_factors):
            dot += a[f, r] * b[f, c]
        preds[e] += chi + dot


def _optional_topics(z: Array | None, name: str, num_examples: int, index_base: int) -> Array | None:
    if z is None:
        return None
    topics = as_index_array(z, name, index_base)
    if topics.size == 0:
        return None
    if len(topics) != num_examples:
        raise ValueError(f"{name} must have the same length as rows.")
    return topics
