"""Periodogram to feature-vector reshaping.

Ordering convention: **frequency varies fastest**. For a periodogram of shape
``(F, T)`` restricted to ``freq_sel`` and ``tau_sel``, feature ``k`` holds

    P[freq_sel[k % F'], tau_sel[k // F']],   F' = len(freq_sel)

i.e. the column-major flattening of the selected sub-matrix. The same
convention is used for training and projection, so PCA rotation vectors line
up with matching (frequency, tau) cells.
"""

from __future__ import annotations

from typing import Optional, Sequence

import numpy as np

from quantile_spectral_analyzer.errors import ContractViolation


def _selection(sel: Optional[Sequence[int]], size: int, name: str) -> np.ndarray:
    if sel is None:
        return np.arange(size, dtype=int)
    idx = np.atleast_1d(np.asarray(sel))
    if idx.dtype == bool:
        if idx.size != size:
            raise ContractViolation(f"{name} mask must have length {size}, got {idx.size}")
        return np.flatnonzero(idx)
    idx = idx.astype(int)
    if idx.ndim != 1:
        raise ContractViolation(f"{name} must be 1D, got shape {idx.shape}")
    if idx.size and (idx.min() < 0 or idx.max() >= size):
        raise ContractViolation(f"{name} indices out of range [0, {size}): {idx.tolist()}")
    return idx


def flatten(
    periodogram: np.ndarray,
    freq_sel: Optional[Sequence[int]] = None,
    tau_sel: Optional[Sequence[int]] = None,
) -> np.ndarray:
    """Flatten a periodogram ``(F, T)`` or a stack ``(N, F, T)`` into features.

    Parameters
    ----------
    periodogram:
        A single ``(F, T)`` matrix or an ``(N, F, T)`` stack.
    freq_sel, tau_sel:
        Index arrays (or boolean masks) selecting frequencies and quantiles.
        Default: all.

    Returns
    -------
    np.ndarray
        ``(F'*T',)`` for a single periodogram, ``(N, F'*T')`` for a stack.
    """
    P = np.asarray(periodogram, dtype=float)
    single = P.ndim == 2
    if single:
        P = P[None, :, :]
    if P.ndim != 3:
        raise ContractViolation(f"expected (F, T) or (N, F, T) array, got shape {np.shape(periodogram)}")

    N, F, T = P.shape
    fi = _selection(freq_sel, F, "freq_sel")
    ti = _selection(tau_sel, T, "tau_sel")

    sub = P[:, fi, :][:, :, ti]
    # (N, F', T') -> (N, T', F') so that the frequency index is innermost
    feats = np.ascontiguousarray(sub.transpose(0, 2, 1)).reshape(N, fi.size * ti.size)
    return feats[0] if single else feats


def unflatten(features: np.ndarray, n_freqs: int, n_taus: int) -> np.ndarray:
    """Inverse of :func:`flatten` for a given selection shape.

    Returns ``(n_freqs, n_taus)`` for a 1D input and ``(N, n_freqs, n_taus)``
    for a 2D input.
    """
    X = np.asarray(features, dtype=float)
    single = X.ndim == 1
    if single:
        X = X[None, :]
    if X.ndim != 2:
        raise ContractViolation(f"features must be 1D or 2D, got shape {np.shape(features)}")
    F = int(n_freqs)
    T = int(n_taus)
    if X.shape[1] != F * T:
        raise ContractViolation(f"feature length {X.shape[1]} does not match {F} x {T}")

    P = X.reshape(X.shape[0], T, F).transpose(0, 2, 1)
    return P[0].copy() if single else np.ascontiguousarray(P)
