"""Spectral analysis package.

Design principle:
  - Ingest produces standardised :class:`~quantile_spectral_analyzer.models.frames.SeriesMatrix` objects.
  - Analysis consumes plain arrays and produces spectra, features and fitted models.

Layering (leaves first): check loss -> solver -> harmonic regression ->
periodogram engine -> flattening -> PCA -> classifier ensemble.
"""

from .check_loss import check_loss, intercept_quantile
from .harmonic import FrequencyClass, HarmonicFit, classify_frequency, fit_harmonic, fit_harmonic_detailed
from .periodogram import (
    Estimator,
    QuantilePeriodogram,
    compute_quantile_periodogram,
    compute_spectral_stack,
    fourier_frequencies,
    quantile_grid,
    quantile_periodogram,
)
from .flatten import flatten, unflatten
from .pca import PcaModel, fit_pca, project, reconstruct
from .ensemble import EnsembleModel, EnsemblePrediction, predict_ensemble, train_ensemble
from .split import split_train_test
from .workers import WorkerPool

__all__ = [
    "check_loss",
    "intercept_quantile",
    "FrequencyClass",
    "HarmonicFit",
    "classify_frequency",
    "fit_harmonic",
    "fit_harmonic_detailed",
    "Estimator",
    "QuantilePeriodogram",
    "compute_quantile_periodogram",
    "compute_spectral_stack",
    "fourier_frequencies",
    "quantile_grid",
    "quantile_periodogram",
    "flatten",
    "unflatten",
    "PcaModel",
    "fit_pca",
    "project",
    "reconstruct",
    "EnsembleModel",
    "EnsemblePrediction",
    "predict_ensemble",
    "train_ensemble",
    "split_train_test",
    "WorkerPool",
]
