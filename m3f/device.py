from __future__ import annotations

import logging
from typing import Sequence

import numpy as np
import torch

from m3f._utils import as_index_array
from m3f.offsets import INTEGRATED_TOPICS, KNOWN_TOPICS, offset_mode
from m3f.samples import PosteriorSample, model_dimensions


Array = np.ndarray
_logger = logging.getLogger(__name__)


def predict_torch(
    rows: Array,
    cols: Array,
    samples: Sequence[PosteriorSample],
    z_row: Array | None = None,
    z_col: Array | None = None,
    include_factorization: bool = True,
    include_row_offsets: bool = True,
    include_col_offsets: bool = True,
    index_base: int = 1,
    device: str | None = None,
) -> Array:
    """
    Mirror of ``m3f.predict.predict`` evaluated with torch tensors on ``device``.

    Sample order, flag gating and the offset case choice (``offset_mode``) are
    the same as the numba kernels; only the per-example arithmetic is
    expressed as tensor gathers. Results agree to floating point tolerance.
    """
    if index_base not in (0, 1):
        raise ValueError("index_base must be 0 or 1.")

    device_name = _resolve_device(device)
    row_np = as_index_array(rows, "rows", index_base)
    col_np = as_index_array(cols, "cols", index_base)
    if len(col_np) != len(row_np):
        raise ValueError("cols must have the same length as rows.")

    dims = model_dimensions(samples)
    row_idx = _index_tensor(row_np, device_name)
    col_idx = _index_tensor(col_np, device_name)
    z_row_idx = _optional_topics(z_row, "z_row", len(row_np), index_base, device_name)
    z_col_idx = _optional_topics(z_col, "z_col", len(row_np), index_base, device_name)
    _logger.debug("predicting %d dyads from %d samples on %s", len(row_np), len(samples), device_name)

    preds = torch.zeros(len(row_np), dtype=torch.float64, device=device_name)
    for sample in samples:
        if dims.num_row_topics > 0 and include_row_offsets:
            preds += _offsets(row_idx, col_idx, sample.log_theta_row, sample.d, z_row_idx, device_name)
        if dims.num_col_topics > 0 and include_col_offsets:
            preds += _offsets(col_idx, row_idx, sample.log_theta_col, sample.c, z_col_idx, device_name)
        if include_factorization:
            preds += float(sample.chi)
            if dims.num_factors > 0:
                a = _table(sample.a, device_name)
                b = _table(sample.b, device_name)
                preds += (a[:, row_idx] * b[:, col_idx]).sum(dim=0)

    if len(samples) > 1:
        preds /= len(samples)
    return preds.cpu().numpy()


def _offsets(
    primary: torch.Tensor,
    secondary: torch.Tensor,
    log_theta: Array | None,
    offset: Array,
    z: torch.Tensor | None,
    device: str,
) -> torch.Tensor:
    table = _table(offset, device)
    mode = offset_mode(table.shape[0], z)
    if mode == KNOWN_TOPICS:
        return table[z, secondary]
    if mode == INTEGRATED_TOPICS:
        weights = torch.exp(_table(log_theta, device)[:, primary])
        return (table[:, secondary] * weights).sum(dim=0)
    return table[0, secondary]


def _table(values: Array, device: str) -> torch.Tensor:
    return torch.as_tensor(np.asarray(values, dtype=float), dtype=torch.float64, device=device)


def _index_tensor(indices: Array, device: str) -> torch.Tensor:
    return torch.as_tensor(indices, dtype=torch.long, device=device)


def _optional_topics(z: Array | None, name: str, num_examples: int, index_base: int, device: str) -> torch.Tensor | None:
    if z is None:
        return None
    topics = as_index_array(z, name, index_base)
    if topics.size == 0:
        return None
    if len(topics) != num_examples:
        raise ValueError(f"{name} must have the same length as rows.")
    return _index_tensor(topics, device)


def _resolve_device(device: str | None) -> str:
    if device is None:
        return "cuda" if torch.cuda.is_available() else "cpu"
    if device.startswith("cuda") and not torch.cuda.is_available():
        return "cpu"
    return device
