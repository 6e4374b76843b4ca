from __future__ import annotations

from typing import Sequence

import numpy as np

from m3f.predict import predict
from m3f.samples import PosteriorSample


Array = np.ndarray


def partial_residuals(
    ratings: Array,
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
    Ratings minus the partial prediction built from the enabled contributions.

    A Gibbs sweep that resamples one parameter block works on the residual of
    every other block, e.g. ``include_factorization=False`` leaves the part of
    each rating the factorization still has to explain.
    """
    y = np.asarray(ratings, dtype=float)
    if y.ndim != 1:
        raise ValueError("ratings must be 1D.")
    if len(y) != len(np.asarray(rows)):
        raise ValueError("ratings must have the same length as rows.")

    preds = predict(
        rows,
        cols,
        samples,
        z_row=z_row,
        z_col=z_col,
        include_factorization=include_factorization,
        include_row_offsets=include_row_offsets,
        include_col_offsets=include_col_offsets,
        index_base=index_base,
        num_threads=num_threads,
    )
    return y - preds


def clip_predictions(predictions: Array, low: float, high: float) -> Array:
    if low > high:
        raise ValueError("low must not exceed high.")
    return np.clip(np.asarray(predictions, dtype=float), low, high)


def rmse(predictions: Array, targets: Array) -> float:
    residual = _residual(predictions, targets)
    return float(np.sqrt(np.mean(residual**2)))


def mae(predictions: Array, targets: Array) -> float:
    residual = _residual(predictions, targets)
    return float(np.mean(np.abs(residual)))


def _residual(predictions: Array, targets: Array) -> Array:
    preds = np.asarray(predictions, dtype=float)
    y = np.asarray(targets, dtype=float)
    if preds.shape != y.shape:
        raise ValueError("predictions and targets must have the same shape.")
    if preds.size == 0:
        raise ValueError("predictions must not be empty.")
    return preds - y
