"""m3f package."""

from m3f.data import DyadBatch, generate_synthetic_dyads, generate_synthetic_samples
from m3f.device import predict_torch
from m3f.evaluation import clip_predictions, mae, partial_residuals, rmse
from m3f.offsets import add_offsets, offset_mode
from m3f.predict import Contributions, predict, predict_contributions
from m3f.samples import ModelDimensions, PosteriorSample, model_dimensions, sample_from_mapping

__all__ = [
    "Contributions",
    "DyadBatch",
    "ModelDimensions",
    "PosteriorSample",
    "add_offsets",
    "clip_predictions",
    "generate_synthetic_dyads",
    "generate_synthetic_samples",
    "mae",
    "model_dimensions",
    "offset_mode",
    "partial_residuals",
    "predict",
    "predict_contributions",
    "predict_torch",
    "rmse",
    "sample_from_mapping",
]
