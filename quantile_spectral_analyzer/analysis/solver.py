"""Exact quantile-regression fit by linear programming.

The weighted check-loss regression

    min_beta  sum_i w_i * rho_tau(y_i - x_i' beta)

is solved as the standard linear programme with split residuals
``y - X beta = u - v``, ``u, v >= 0``:

    min  tau * w'u + (1 - tau) * w'v
    s.t. X beta + u - v = y,   beta free,   u, v >= 0

HiGHS (through :func:`scipy.optimize.linprog`) returns a vertex solution, i.e.
the exact-fit estimate that interpolates ``p`` observations, which is the
classical choice for small-to-moderate samples.

The solver holds no state between calls, so concurrent fits from worker
threads do not interfere.
"""

from __future__ import annotations

from typing import Optional

import numpy as np
from scipy import sparse
from scipy.optimize import linprog

from quantile_spectral_analyzer.errors import ContractViolation, SolverNonConvergence
from quantile_spectral_analyzer.analysis.check_loss import resolve_weights, validate_tau


SOLVER_METHODS = ("highs", "highs-ds", "highs-ipm")


def fit_quantile_regression(
    X: np.ndarray,
    y: np.ndarray,
    tau: float,
    weights: Optional[np.ndarray] = None,
    *,
    method: str = "highs",
) -> np.ndarray:
    """Coefficients minimising the weighted check loss for one ``tau``.

    Parameters
    ----------
    X:
        Design matrix of shape ``(n, p)``. No intercept column is added.
    y:
        Response of shape ``(n,)``. Rows with non-finite ``y`` are dropped.
    tau:
        Quantile level in (0, 1).
    weights:
        Optional non-negative observation weights of shape ``(n,)``.
    method:
        HiGHS variant passed to :func:`scipy.optimize.linprog`.

    Returns
    -------
    np.ndarray
        Coefficient vector of shape ``(p,)``.

    Raises
    ------
    SolverNonConvergence
        If the LP does not terminate with an optimal solution.
    """
    X = np.asarray(X, dtype=float)
    y = np.asarray(y, dtype=float)
    if X.ndim != 2 or y.ndim != 1 or X.shape[0] != y.size:
        raise ContractViolation(f"design/response mismatch: X{X.shape}, y{y.shape}")
    if method not in SOLVER_METHODS:
        raise ContractViolation(f"unknown solver method {method!r}; expected one of {SOLVER_METHODS}")
    t = validate_tau(tau)
    w = resolve_weights(weights, y.size)

    ok = np.isfinite(y) & np.all(np.isfinite(X), axis=1)
    X = X[ok]
    y = y[ok]
    w = w[ok]

    n, p = X.shape
    if p == 0:
        return np.zeros(0, dtype=float)
    if n == 0:
        raise SolverNonConvergence("no finite observations to fit")

    c = np.concatenate([np.zeros(p), t * w, (1.0 - t) * w])
    eye = sparse.identity(n, format="csc")
    A_eq = sparse.hstack([sparse.csc_matrix(X), eye, -eye], format="csc")
    bounds = [(None, None)] * p + [(0.0, None)] * (2 * n)

    res = linprog(c, A_eq=A_eq, b_eq=y, bounds=bounds, method=method)
    if res.status != 0 or res.x is None:
        raise SolverNonConvergence(f"linprog status={res.status}: {res.message}")

    beta = np.asarray(res.x[:p], dtype=float)
    if not np.all(np.isfinite(beta)):
        raise SolverNonConvergence("non-finite coefficients returned by the solver")
    return beta
