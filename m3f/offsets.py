from __future__ import annotations

import math

import numpy as np
from numba import njit, prange


Array = np.ndarray

KNOWN_TOPICS = "known"
INTEGRATED_TOPICS = "integrated"
SINGLE_TOPIC = "single"


def offset_mode(num_topics: int, z: Array | None) -> str:
    """Which of the three offset cases applies to a whole call."""
    if z is not None:
        return KNOWN_TOPICS
    if num_topics > 1:
        return INTEGRATED_TOPICS
    return SINGLE_TOPIC


def add_offsets(
    primary: Array,
    secondary: Array,
    log_theta: Array | None,
    offset: Array,
    preds: Array,
    z: Array | None = None,
) -> None:
    """
    Add one topic-indexed offset table to ``preds`` in place.

    ``primary`` holds the entities whose topics drive the offset and
    ``secondary`` the entities that index the offset table, both 0-based.
    ``offset`` has shape (K, |secondary space|) and ``log_theta`` shape
    (K, |primary space|). With ``z`` (0-based topics, one per example) the
    given topics are used; otherwise topics are integrated out with
    ``exp(log_theta)``, which is assumed to be normalised already.

    Written from the row-topic point of view: pass columns as ``primary``
    and rows as ``secondary`` for the column-topic offsets.
    """
    table = np.ascontiguousarray(offset, dtype=np.float64)
    mode = offset_mode(table.shape[0], z)

    if mode == KNOWN_TOPICS:
        _add_known_topic_offsets(secondary, table, z, preds)
    elif mode == INTEGRATED_TOPICS:
        weights = np.ascontiguousarray(log_theta, dtype=np.float64)
        _add_integrated_offsets(primary, secondary, weights, table, preds)
    else:
        _add_single_topic_offsets(secondary, table, preds)


@njit(parallel=True, nogil=True)
def _add_known_topic_offsets(secondary, offset, z, preds):
    for e in prange(preds.shape[0]):
        preds[e] += offset[z[e], secondary[e]]


@njit(parallel=True, nogil=True)
def _add_integrated_offsets(primary, secondary, log_theta, offset, preds):
    num_topics = offset.shape[0]
    for e in prange(preds.shape[0]):
        p = primary[e]
        s = secondary[e]
        for k in range(num_topics):
            preds[e] += offset[k, s] * math.exp(log_theta[k, p])


@njit(parallel=True, nogil=True)
def _add_single_topic_offsets(secondary, offset, preds):
    # every entity sits in the only topic with probability one
    for e in prange(preds.shape[0]):
        preds[e] += offset[0, secondary[e]]
