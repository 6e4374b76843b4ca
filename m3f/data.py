from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from m3f.samples import PosteriorSample


Array = np.ndarray


@dataclass(frozen=True)
class DyadBatch:
    rows: Array
    cols: Array


def generate_synthetic_samples(
    num_rows: int = 40,
    num_cols: int = 30,
    num_samples: int = 5,
    num_factors: int = 3,
    num_row_topics: int = 2,
    num_col_topics: int = 2,
    seed: int = 0,
) -> list[PosteriorSample]:
    """Generate posterior samples with normalised log topic probabilities."""
    if num_samples <= 0:
        raise ValueError("num_samples must be positive.")
    if num_rows <= 0 or num_cols <= 0:
        raise ValueError("num_rows and num_cols must be positive.")
    if min(num_factors, num_row_topics, num_col_topics) < 0:
        raise ValueError("num_factors and topic counts must be non-negative.")

    rng = np.random.default_rng(seed)
    samples = []
    for _ in range(num_samples):
        samples.append(
            PosteriorSample(
                chi=float(rng.normal(loc=3.0, scale=0.1)),
                a=_normal_or_none(rng, num_factors, num_rows),
                b=_normal_or_none(rng, num_factors, num_cols),
                c=_normal_or_none(rng, num_col_topics, num_rows, scale=0.5),
                d=_normal_or_none(rng, num_row_topics, num_cols, scale=0.5),
                log_theta_row=_log_topic_probabilities(rng, num_row_topics, num_rows),
                log_theta_col=_log_topic_probabilities(rng, num_col_topics, num_cols),
            )
        )
    return samples


def generate_synthetic_dyads(num_rows: int, num_cols: int, num_dyads: int, seed: int = 0) -> DyadBatch:
    """Draw 1-based (row, col) dyads uniformly at random."""
    if num_dyads < 0:
        raise ValueError("num_dyads must be non-negative.")
    rng = np.random.default_rng(seed)
    rows = rng.integers(1, num_rows + 1, size=num_dyads, dtype=np.uint32)
    cols = rng.integers(1, num_cols + 1, size=num_dyads, dtype=np.uint32)
    return DyadBatch(rows=rows, cols=cols)


def _normal_or_none(rng: np.random.Generator, k: int, n: int, scale: float = 1.0) -> Array | None:
    if k == 0:
        return None
    return rng.normal(loc=0.0, scale=scale, size=(k, n))


def _log_topic_probabilities(rng: np.random.Generator, k: int, n: int) -> Array | None:
    if k == 0:
        return None
    theta = rng.dirichlet(np.ones(k), size=n).T
    return np.log(theta)
