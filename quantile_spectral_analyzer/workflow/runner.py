"""End-to-end classification runner.

Pipeline per call:

1. Quantile periodograms for every series of every class (one shared grid).
2. Seeded per-class train/test split of the series.
3. Flattening (frequency fastest) with the profile's frequency/tau selection.
4. PCA fitted on the training features only; both splits projected on the
   profile's components.
5. Classifier ensemble trained on the training scores and evaluated on both
   splits.

The runner accepts an open :class:`WorkerPool`; when none is given it opens
one sized by the profile for the duration of the call.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Tuple, Union

import numpy as np
import pandas as pd

from quantile_spectral_analyzer.errors import ContractViolation
from quantile_spectral_analyzer.analysis.ensemble import (
    EnsembleModel,
    EnsemblePrediction,
    predict_ensemble,
    train_ensemble,
)
from quantile_spectral_analyzer.analysis.flatten import flatten
from quantile_spectral_analyzer.analysis.pca import PcaModel, fit_pca, project
from quantile_spectral_analyzer.analysis.periodogram import compute_spectral_stack
from quantile_spectral_analyzer.analysis.split import split_train_test
from quantile_spectral_analyzer.analysis.workers import WorkerPool
from quantile_spectral_analyzer.ingest.readers_sensor import SensorReaderConfig, load_series_matrix
from quantile_spectral_analyzer.models.frames import SeriesMatrix
from quantile_spectral_analyzer.models.profile import SpectralProfile
from quantile_spectral_analyzer.models.results import SpectralStack


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClassificationRun:
    """Everything produced by :func:`run_classification`."""

    profile: SpectralProfile
    classes: Tuple[str, ...]
    stacks: Mapping[str, SpectralStack]
    train_index: Mapping[str, np.ndarray]
    test_index: Mapping[str, np.ndarray]
    pca: PcaModel
    train_scores: np.ndarray
    train_labels: np.ndarray
    test_scores: np.ndarray
    test_labels: np.ndarray
    ensemble: EnsembleModel
    train_prediction: EnsemblePrediction
    test_prediction: EnsemblePrediction
    warnings: Tuple[str, ...] = ()

    def accuracy_table(self) -> pd.DataFrame:
        """Rows = methods, columns = ``train`` / ``test`` accuracy."""
        return pd.DataFrame(
            {
                "train": self.train_prediction.accuracy,
                "test": self.test_prediction.accuracy,
            }
        ).reindex(list(self.ensemble.methods))


def _as_series_matrix(label: str, data: Union[SeriesMatrix, np.ndarray]) -> SeriesMatrix:
    if isinstance(data, SeriesMatrix):
        return data
    values = np.asarray(data, dtype=float)
    if values.ndim != 2:
        raise ContractViolation(f"class {label!r}: series matrix must be 2D (n, m), got shape {values.shape}")
    return SeriesMatrix(values=values, label=label)


def _features(stack: SpectralStack, idx: np.ndarray, profile: SpectralProfile) -> np.ndarray:
    return flatten(stack.values[idx], profile.freq_sel, profile.tau_sel)


def _run(
    matrices: Dict[str, SeriesMatrix],
    profile: SpectralProfile,
    pool: WorkerPool,
) -> ClassificationRun:
    classes = tuple(matrices)
    warnings: List[str] = []

    stacks: Dict[str, SpectralStack] = {}
    for label, sm in matrices.items():
        warnings.extend(f"[{label}] {w}" for w in sm.warnings)
        stack = compute_spectral_stack(
            sm.values,
            profile.freqs,
            profile.taus,
            with_intercept=profile.with_intercept,
            estimator=profile.estimator,
            pool=pool,
            granularity=profile.granularity,
            solver_method=profile.solver_method,
            label=label,
        )
        warnings.extend(f"[{label}] {w}" for w in stack.warnings)
        stacks[label] = stack

    train_index: Dict[str, np.ndarray] = {}
    test_index: Dict[str, np.ndarray] = {}
    train_parts: List[np.ndarray] = []
    test_parts: List[np.ndarray] = []
    train_labels: List[str] = []
    test_labels: List[str] = []
    for i, label in enumerate(classes):
        tr, te = split_train_test(stacks[label].n_series, profile.train_fraction, seed=profile.seed + i)
        train_index[label] = tr
        test_index[label] = te
        train_parts.append(_features(stacks[label], tr, profile))
        test_parts.append(_features(stacks[label], te, profile))
        train_labels.extend([label] * tr.size)
        test_labels.extend([label] * te.size)

    X_train = np.vstack(train_parts)
    X_test = np.vstack(test_parts)
    y_train = np.asarray(train_labels, dtype=object)
    y_test = np.asarray(test_labels, dtype=object)

    logger.info("PCA on %d training rows x %d features", X_train.shape[0], X_train.shape[1])
    pca = fit_pca(X_train)
    components = tuple(profile.components)
    train_scores = project(pca, X_train, components)
    test_scores = project(pca, X_test, components) if X_test.shape[0] else np.zeros((0, len(components)))

    logger.info("training classifiers %s on %d components", list(profile.methods), len(components))
    ensemble = train_ensemble(train_scores, y_train, profile.methods)
    warnings.extend(ensemble.warnings)

    train_pred = predict_ensemble(ensemble, train_scores, y_train)
    test_pred = predict_ensemble(ensemble, test_scores, y_test)
    logger.info("test accuracy: %s", test_pred.accuracy.round(3).to_dict())

    return ClassificationRun(
        profile=profile,
        classes=classes,
        stacks=stacks,
        train_index=train_index,
        test_index=test_index,
        pca=pca,
        train_scores=train_scores,
        train_labels=y_train,
        test_scores=test_scores,
        test_labels=y_test,
        ensemble=ensemble,
        train_prediction=train_pred,
        test_prediction=test_pred,
        warnings=tuple(warnings),
    )


def run_classification(
    series_by_class: Mapping[str, Union[SeriesMatrix, np.ndarray]],
    profile: Optional[SpectralProfile] = None,
    *,
    pool: Optional[WorkerPool] = None,
) -> ClassificationRun:
    """Classify series of several classes from their quantile spectra.

    Parameters
    ----------
    series_by_class:
        ``{label: (n, m_label) matrix}``; all classes must share the series length ``n``.
        Plain arrays are used as given (no standardisation).
    profile:
        Analysis configuration. Default: :class:`SpectralProfile` defaults.
    pool:
        Open worker pool. When None, a pool sized by the profile is opened and closed here.
    """
    profile = (profile or SpectralProfile()).validate()
    if len(series_by_class) < 2:
        raise ContractViolation("at least two classes are required")

    matrices = {str(k): _as_series_matrix(str(k), v) for k, v in series_by_class.items()}
    lengths = {k: sm.series_length for k, sm in matrices.items()}
    if len(set(lengths.values())) != 1:
        raise ContractViolation(f"all classes must share one series length, got {lengths}")

    if pool is not None:
        return _run(matrices, profile, pool)
    with WorkerPool(profile.n_workers, profile.pool_kind) as own_pool:
        return _run(matrices, profile, own_pool)


def run_classification_files(
    paths_by_class: Mapping[str, Union[str, Path]],
    n_series: int,
    series_length: int,
    profile: Optional[SpectralProfile] = None,
    *,
    pool: Optional[WorkerPool] = None,
    reader_config: Optional[SensorReaderConfig] = None,
) -> ClassificationRun:
    """Load one sensor-log file per class, then run :func:`run_classification`."""
    matrices: Dict[str, SeriesMatrix] = {}
    for label, path in paths_by_class.items():
        logger.info("loading class %s from %s", label, path)
        matrices[str(label)] = load_series_matrix(
            path, n_series, series_length, label=str(label), config=reader_config
        )
    return run_classification(matrices, profile, pool=pool)
