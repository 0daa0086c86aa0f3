"""Principal component projection of spectral features.

The model is the column mean of the training features plus the right
singular vectors of the centred training matrix (equivalently the
eigenvectors of its sample covariance), ordered by decreasing variance.
Projection never refits: training and test matrices go through the same
``center`` and ``rotation``.

Eigenvectors carry an arbitrary sign. Each component is oriented so that its
largest-magnitude loading is positive, which makes refits on the same data
reproducible.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np

from quantile_spectral_analyzer.errors import ContractViolation


@dataclass(frozen=True)
class PcaModel:
    """Mean-centred orthogonal projection.

    Attributes
    ----------
    center:
        Column means of the training matrix, shape ``(D,)``.
    rotation:
        Orthonormal components as columns, shape ``(D, D)``. When ``N <= D`` the
        trailing columns complete the basis of the null space of the training data.
    explained_variance:
        Variance along each component (``N - 1`` denominator), shape ``(D,)``,
        non-increasing and zero beyond the rank of the centred data.
    n_train:
        Number of training rows.
    """

    center: np.ndarray
    rotation: np.ndarray
    explained_variance: np.ndarray
    n_train: int

    @property
    def n_features(self) -> int:
        return int(self.center.size)

    @property
    def n_components(self) -> int:
        return int(self.rotation.shape[1])

    @property
    def explained_ratio(self) -> np.ndarray:
        total = float(np.sum(self.explained_variance))
        if total <= 0.0:
            return np.zeros_like(self.explained_variance)
        return self.explained_variance / total


def fit_pca(train: np.ndarray) -> PcaModel:
    """Fit the projection on an ``(N, D)`` training matrix."""
    X = np.asarray(train, dtype=float)
    if X.ndim != 2:
        raise ContractViolation(f"training matrix must be 2D (N, D), got shape {X.shape}")
    N, D = X.shape
    if N < 1 or D < 1:
        raise ContractViolation(f"training matrix must be non-empty, got shape {X.shape}")
    if not np.all(np.isfinite(X)):
        raise ContractViolation("training matrix contains NaN/inf")

    center = X.mean(axis=0)
    Xc = X - center

    # Full basis: D components even when N < D.
    _, s, vt = np.linalg.svd(Xc, full_matrices=True)
    rotation = vt.T

    # Sign convention: largest |loading| positive.
    lead = np.argmax(np.abs(rotation), axis=0)
    signs = np.sign(rotation[lead, np.arange(rotation.shape[1])])
    signs[signs == 0] = 1.0
    rotation = rotation * signs

    denom = float(max(N - 1, 1))
    explained = np.zeros(D, dtype=float)
    explained[: s.size] = (s * s) / denom

    return PcaModel(center=center, rotation=rotation, explained_variance=explained, n_train=int(N))


def _components(model: PcaModel, components: Optional[Sequence[int]]) -> np.ndarray:
    if components is None:
        return np.arange(model.n_components, dtype=int)
    idx = np.atleast_1d(np.asarray(components, dtype=int))
    if idx.ndim != 1:
        raise ContractViolation(f"components must be 1D, got shape {idx.shape}")
    if idx.size and (idx.min() < 0 or idx.max() >= model.n_components):
        raise ContractViolation(
            f"component indices out of range [0, {model.n_components}): {idx.tolist()}"
        )
    return idx


def project(
    model: PcaModel,
    data: np.ndarray,
    components: Optional[Sequence[int]] = (0, 1),
) -> np.ndarray:
    """Scores ``(data - center) @ rotation[:, components]``.

    Parameters
    ----------
    model:
        Fitted :class:`PcaModel`.
    data:
        ``(M, D)`` matrix (or a single ``(D,)`` vector).
    components:
        Component indices; ``None`` keeps all of them. Default: first two.

    Returns
    -------
    np.ndarray
        ``(M, len(components))`` (``(len(components),)`` for a vector input).
    """
    X = np.asarray(data, dtype=float)
    single = X.ndim == 1
    if single:
        X = X[None, :]
    if X.ndim != 2 or X.shape[1] != model.n_features:
        raise ContractViolation(
            f"feature dimension mismatch: model has D={model.n_features}, data has shape {np.shape(data)}"
        )
    idx = _components(model, components)
    scores = (X - model.center) @ model.rotation[:, idx]
    return scores[0] if single else scores


def reconstruct(
    model: PcaModel,
    scores: np.ndarray,
    components: Optional[Sequence[int]] = None,
) -> np.ndarray:
    """Map scores back to feature space: ``center + scores @ rotation[:, components].T``."""
    idx = _components(model, components)
    S = np.asarray(scores, dtype=float)
    single = S.ndim == 1
    if single:
        S = S[None, :]
    if S.ndim != 2 or S.shape[1] != idx.size:
        raise ContractViolation(f"scores must have {idx.size} columns, got shape {np.shape(scores)}")
    X = model.center + S @ model.rotation[:, idx].T
    return X[0] if single else X
