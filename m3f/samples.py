from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Sequence

import numpy as np


Array = np.ndarray

# Gibbs sampler field names -> PosteriorSample field names
_FIELD_ALIASES = {
    "logthetaU": "log_theta_row",
    "logthetaM": "log_theta_col",
    "logtheta_row": "log_theta_row",
    "logtheta_col": "log_theta_col",
}
_TABLE_FIELDS = ("a", "b", "c", "d", "log_theta_row", "log_theta_col")


@dataclass(frozen=True)
class PosteriorSample:
    """One Gibbs draw of the MMMF parameters.

    Tables are stored topic/factor-major: column ``j`` of a table belongs to
    entity ``j``.

        a: (F, R) row factors           b: (F, C) column factors
        d: (KR, C) row-topic offsets    c: (KC, R) column-topic offsets
        log_theta_row: (KR, R)          log_theta_col: (KC, C)
    """

    chi: float
    a: Array | None = None
    b: Array | None = None
    c: Array | None = None
    d: Array | None = None
    log_theta_row: Array | None = None
    log_theta_col: Array | None = None

    @property
    def num_row_topics(self) -> int:
        return _leading_dim(self.log_theta_row)

    @property
    def num_col_topics(self) -> int:
        return _leading_dim(self.log_theta_col)

    @property
    def num_factors(self) -> int:
        return _leading_dim(self.a)


@dataclass(frozen=True)
class ModelDimensions:
    num_row_topics: int
    num_col_topics: int
    num_factors: int


def model_dimensions(samples: Sequence[PosteriorSample]) -> ModelDimensions:
    """Read KR, KC and F from the first sample and require every other sample to agree."""
    if len(samples) == 0:
        raise ValueError("samples must contain at least one posterior sample.")

    first = _dimensions_of(samples[0])
    for t, sample in enumerate(samples[1:], start=1):
        dims = _dimensions_of(sample)
        if dims != first:
            raise ValueError(
                f"sample {t} has dimensions {dims}, expected {first}; "
                "KR, KC and F must be uniform across samples."
            )
    return first


def sample_from_mapping(record: Mapping[str, Any]) -> PosteriorSample:
    """Build a PosteriorSample from a field mapping such as a loaded sampler struct.

    Missing or empty fields are treated as absent tables.
    """
    fields: dict[str, Any] = {}
    for key, value in record.items():
        name = _FIELD_ALIASES.get(key, key)
        if name == "chi" or name in _TABLE_FIELDS:
            fields[name] = value

    if "chi" not in fields:
        raise ValueError("record must contain a 'chi' field.")

    tables = {name: _as_table(fields.get(name)) for name in _TABLE_FIELDS}
    return PosteriorSample(chi=float(np.asarray(fields["chi"]).reshape(-1)[0]), **tables)


def _dimensions_of(sample: PosteriorSample) -> ModelDimensions:
    return ModelDimensions(
        num_row_topics=sample.num_row_topics,
        num_col_topics=sample.num_col_topics,
        num_factors=sample.num_factors,
    )


def _leading_dim(table: Array | None) -> int:
    if table is None or table.size == 0:
        return 0
    return int(table.shape[0])


def _as_table(value: Any) -> Array | None:
    if value is None:
        return None
    table = np.asarray(value, dtype=float)
    if table.size == 0:
        return None
    if table.ndim == 1:
        table = table.reshape(1, -1)
    if table.ndim != 2:
        raise ValueError("sample tables must be 2D.")
    return np.ascontiguousarray(table)
