"""Quantile (check / pinball) loss.

The check loss at quantile level ``tau`` is

    rho_tau(u) = tau * u          if u >= 0
               = (tau - 1) * u    if u < 0

and a weighted sample of residuals is scored as ``sum_i w_i * rho_tau(u_i)``.
Non-finite residuals contribute nothing to the sum.

This module also provides the intercept-only minimiser of that loss (a
weighted lower quantile). It is the exact solution of the regression on a
constant, so the periodogram baseline and the zero-frequency harmonic fit use
it directly instead of calling the solver.
"""

from __future__ import annotations

from typing import Optional

import numpy as np

from quantile_spectral_analyzer.errors import ContractViolation


def validate_tau(tau: float) -> float:
    t = float(tau)
    if not (0.0 < t < 1.0):
        raise ContractViolation(f"tau must be in (0, 1), got {tau!r}")
    return t


def resolve_weights(weights: Optional[np.ndarray], n: int) -> np.ndarray:
    """Return a float weight vector of length ``n`` (all ones when ``weights`` is None)."""
    if weights is None:
        return np.ones(n, dtype=float)
    w = np.asarray(weights, dtype=float)
    if w.ndim != 1 or w.size != n:
        raise ContractViolation(f"weights must be 1D of length {n}, got shape {w.shape}")
    if not np.all(np.isfinite(w)) or np.any(w < 0.0):
        raise ContractViolation("weights must be finite and non-negative")
    return w


def rho(u: np.ndarray, tau: float) -> np.ndarray:
    """Element-wise check function ``rho_tau(u)``."""
    u = np.asarray(u, dtype=float)
    return np.where(u >= 0.0, tau * u, (tau - 1.0) * u)


def check_loss(
    residuals: np.ndarray,
    tau: float,
    weights: Optional[np.ndarray] = None,
) -> float:
    """Weighted check loss of a residual vector.

    Parameters
    ----------
    residuals:
        1D residual vector. NaN/inf entries are excluded from the sum.
    tau:
        Quantile level in (0, 1).
    weights:
        Optional non-negative weights, same length as ``residuals``.

    Returns
    -------
    float
        ``sum(w_i * rho_tau(u_i))`` over the finite residuals.
    """
    u = np.asarray(residuals, dtype=float)
    if u.ndim != 1:
        raise ContractViolation(f"residuals must be 1D, got shape {u.shape}")
    t = validate_tau(tau)
    w = resolve_weights(weights, u.size)

    ok = np.isfinite(u)
    if not np.any(ok):
        return 0.0
    return float(np.sum(w[ok] * rho(u[ok], t)))


def intercept_quantile(
    y: np.ndarray,
    tau: float,
    weights: Optional[np.ndarray] = None,
) -> float:
    """Minimiser of ``sum w_i * rho_tau(y_i - q)`` over constants ``q``.

    Returns the weighted lower ``tau``-quantile: the smallest order statistic
    whose cumulative weight reaches ``tau * sum(w)``. Non-finite samples and
    zero weights are ignored. Returns NaN when nothing is left.
    """
    y = np.asarray(y, dtype=float)
    t = validate_tau(tau)
    w = resolve_weights(weights, y.size)

    ok = np.isfinite(y) & (w > 0.0)
    if not np.any(ok):
        return float("nan")

    ys = y[ok]
    ws = w[ok]
    order = np.argsort(ys, kind="stable")
    ys = ys[order]
    cw = np.cumsum(ws[order])

    k = int(np.searchsorted(cw, t * cw[-1], side="left"))
    k = min(k, ys.size - 1)
    return float(ys[k])
