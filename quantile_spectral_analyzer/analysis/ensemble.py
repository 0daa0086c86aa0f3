"""Small classifier ensemble over projected spectral features.

Supported methods
-----------------
``lda``
    :class:`sklearn.discriminant_analysis.LinearDiscriminantAnalysis`
``qda``
    :class:`sklearn.discriminant_analysis.QuadraticDiscriminantAnalysis`
``linear_svm``
    :class:`sklearn.svm.SVC` with a linear kernel

Each method is trained independently. A method that cannot be fitted (e.g. a
class with a single sample for QDA, or a singular covariance for LDA) is
recorded as unavailable: its predictions are all missing and its accuracy is
NaN, while the remaining methods proceed.

The trained ensemble is read-only; prediction never refits.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from sklearn.discriminant_analysis import (
    LinearDiscriminantAnalysis,
    QuadraticDiscriminantAnalysis,
)
from sklearn.svm import SVC

from quantile_spectral_analyzer.errors import ClassifierFitFailure, ContractViolation


logger = logging.getLogger(__name__)

METHODS: Tuple[str, ...] = ("lda", "qda", "linear_svm")


@dataclass(frozen=True)
class EnsembleModel:
    """Trained classifiers keyed by method name.

    ``models[method]`` is None when the method failed to train.
    """

    methods: Tuple[str, ...]
    models: Mapping[str, Any]
    classes: np.ndarray
    n_features: int
    train_accuracy: pd.Series
    warnings: Tuple[str, ...] = ()

    @property
    def available(self) -> Tuple[str, ...]:
        return tuple(m for m in self.methods if self.models[m] is not None)


@dataclass(frozen=True)
class EnsemblePrediction:
    """Predictions of every method.

    Attributes
    ----------
    labels:
        ``(M, n_methods)`` DataFrame; failed methods hold missing values.
    probabilities:
        Per-method ``(M, n_classes)`` DataFrame for methods exposing
        ``predict_proba``; None otherwise.
    accuracy:
        Per-method accuracy when true labels were given.
    """

    labels: pd.DataFrame
    probabilities: Mapping[str, Optional[pd.DataFrame]]
    accuracy: Optional[pd.Series] = None


def make_classifier(method: str):
    if method == "lda":
        return LinearDiscriminantAnalysis()
    if method == "qda":
        return QuadraticDiscriminantAnalysis()
    if method == "linear_svm":
        return SVC(kernel="linear")
    raise ContractViolation(f"unknown classification method {method!r}; expected one of {METHODS}")


def _validate_features(features: np.ndarray) -> np.ndarray:
    X = np.asarray(features, dtype=float)
    if X.ndim == 1:
        X = X[:, None]
    if X.ndim != 2:
        raise ContractViolation(f"features must be 2D (N, K), got shape {X.shape}")
    if not np.all(np.isfinite(X)):
        raise ContractViolation("features contain NaN/inf")
    return X


def _fit_method(method: str, X: np.ndarray, y: np.ndarray):
    clf = make_classifier(method)
    try:
        clf.fit(X, y)
    except (ValueError, np.linalg.LinAlgError) as e:
        raise ClassifierFitFailure(method, str(e)) from e
    return clf


def _accuracy(pred: np.ndarray, truth: np.ndarray) -> float:
    return float(np.mean(pred == truth)) if truth.size else float("nan")


def train_ensemble(
    features: np.ndarray,
    labels: Sequence[Any],
    methods: Sequence[str] = METHODS,
) -> EnsembleModel:
    """Train every requested method on ``(N, K)`` features and ``(N,)`` labels."""
    X = _validate_features(features)
    y = np.asarray(labels)
    if y.ndim != 1 or y.size != X.shape[0]:
        raise ContractViolation(f"labels must be 1D of length {X.shape[0]}, got shape {y.shape}")
    methods = tuple(dict.fromkeys(methods))
    for m in methods:
        make_classifier(m)

    models: Dict[str, Any] = {}
    acc: Dict[str, float] = {}
    warnings = []

    for m in methods:
        try:
            clf = _fit_method(m, X, y)
        except ClassifierFitFailure as e:
            logger.warning("classifier %s unavailable: %s", m, e.reason)
            warnings.append(f"{m}: fit failed ({e.reason})")
            models[m] = None
            acc[m] = float("nan")
            continue
        models[m] = clf
        acc[m] = _accuracy(clf.predict(X), y)

    return EnsembleModel(
        methods=methods,
        models=MappingProxyType(models),
        classes=np.unique(y),
        n_features=int(X.shape[1]),
        train_accuracy=pd.Series(acc, name="train_accuracy", dtype=float),
        warnings=tuple(warnings),
    )


def predict_ensemble(
    model: EnsembleModel,
    features: np.ndarray,
    true_labels: Optional[Sequence[Any]] = None,
) -> EnsemblePrediction:
    """Predict labels with every method of ``model``.

    Parameters
    ----------
    model:
        Trained ensemble.
    features:
        ``(M, K)`` matrix with ``K`` equal to the training dimension.
    true_labels:
        Optional ``(M,)`` labels; when given, per-method accuracy is returned.
    """
    X = _validate_features(features)
    if X.shape[1] != model.n_features:
        raise ContractViolation(
            f"feature dimension mismatch: ensemble trained on K={model.n_features}, got {X.shape[1]}"
        )
    M = X.shape[0]

    truth = None
    if true_labels is not None:
        truth = np.asarray(true_labels)
        if truth.ndim != 1 or truth.size != M:
            raise ContractViolation(f"true_labels must be 1D of length {M}, got shape {truth.shape}")

    columns: Dict[str, np.ndarray] = {}
    probabilities: Dict[str, Optional[pd.DataFrame]] = {}
    acc: Dict[str, float] = {}

    for m in model.methods:
        clf = model.models[m]
        if clf is None:
            columns[m] = np.full(M, np.nan, dtype=object)
            probabilities[m] = None
            acc[m] = float("nan")
            continue

        pred = clf.predict(X)
        columns[m] = np.asarray(pred, dtype=object)
        if hasattr(clf, "predict_proba"):
            probabilities[m] = pd.DataFrame(clf.predict_proba(X), columns=list(clf.classes_))
        else:
            probabilities[m] = None
        if truth is not None:
            acc[m] = _accuracy(np.asarray(pred), truth)

    labels = pd.DataFrame(columns, index=pd.RangeIndex(M), columns=list(model.methods))
    accuracy = pd.Series(acc, name="accuracy", dtype=float) if truth is not None else None

    return EnsemblePrediction(
        labels=labels,
        probabilities=MappingProxyType(probabilities),
        accuracy=accuracy,
    )
