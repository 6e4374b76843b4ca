import numpy as np
import pytest

from m3f.evaluation import clip_predictions, mae, partial_residuals, rmse
from m3f.samples import PosteriorSample


def test_partial_residuals_without_factorization() -> None:
    sample = PosteriorSample(
        chi=1.0,
        a=np.array([[2.0, 3.0]]),
        b=np.array([[5.0]]),
        d=np.array([[0.5]]),
        log_theta_row=np.zeros((1, 2)),
    )
    ratings = np.array([4.0, 5.0])
    residuals = partial_residuals(ratings, np.array([1, 2]), np.array([1, 1]), [sample], include_factorization=False)
    assert np.allclose(residuals, [3.5, 4.5])

    full = partial_residuals(ratings, np.array([1, 2]), np.array([1, 1]), [sample])
    assert np.allclose(full, [4.0 - 11.5, 5.0 - 16.5])


def test_partial_residuals_length_mismatch() -> None:
    with pytest.raises(ValueError, match="ratings"):
        partial_residuals(np.array([1.0]), np.array([1, 2]), np.array([1, 1]), [PosteriorSample(chi=0.0)])


def test_rmse_and_mae() -> None:
    preds = np.array([1.0, 2.0, 3.0])
    y = np.array([1.0, 4.0, 2.0])
    assert rmse(preds, y) == pytest.approx(np.sqrt(5.0 / 3.0))
    assert mae(preds, y) == pytest.approx(1.0)


def test_metrics_shape_mismatch() -> None:
    with pytest.raises(ValueError, match="same shape"):
        rmse(np.zeros(2), np.zeros(3))


def test_clip_predictions() -> None:
    clipped = clip_predictions(np.array([0.2, 3.0, 7.5]), 1.0, 5.0)
    assert np.array_equal(clipped, [1.0, 3.0, 5.0])
    with pytest.raises(ValueError, match="low"):
        clip_predictions(np.zeros(1), 2.0, 1.0)
