"""Tests for the linear-programming quantile regression fit."""

from __future__ import annotations

import numpy as np
import pytest

from quantile_spectral_analyzer.analysis.check_loss import check_loss
from quantile_spectral_analyzer.analysis.solver import SOLVER_METHODS, fit_quantile_regression
from quantile_spectral_analyzer.errors import ContractViolation, SolverNonConvergence


def _design(n: int) -> np.ndarray:
    x = np.linspace(-2.0, 3.0, n)
    return np.column_stack([np.ones(n), x])


# -----------------------------------------------------------------------
# Exact fits
# -----------------------------------------------------------------------


@pytest.mark.parametrize("method", SOLVER_METHODS)
@pytest.mark.parametrize("tau", [0.1, 0.5, 0.9])
def test_recovers_noiseless_linear_model(method: str, tau: float) -> None:
    X = _design(25)
    y = X @ np.array([2.0, -3.0])

    beta = fit_quantile_regression(X, y, tau, method=method)
    assert beta.shape == (2,)
    assert np.allclose(beta, [2.0, -3.0], atol=1e-7)


def test_fit_minimises_weighted_check_loss() -> None:
    rng = np.random.default_rng(0)
    X = _design(40)
    y = X @ np.array([1.0, 0.5]) + rng.standard_t(df=3, size=40)
    w = rng.uniform(0.5, 2.0, size=40)

    beta = fit_quantile_regression(X, y, 0.3, w)
    best = check_loss(y - X @ beta, 0.3, w)
    for delta in ([0.05, 0.0], [0.0, 0.05], [-0.05, 0.0], [0.0, -0.05]):
        assert best <= check_loss(y - X @ (beta + np.array(delta)), 0.3, w) + 1e-7


def test_non_finite_rows_are_dropped() -> None:
    X = _design(12)
    y = X @ np.array([0.5, 1.5])
    y[[2, 7]] = np.nan

    assert np.allclose(fit_quantile_regression(X, y, 0.5), [0.5, 1.5], atol=1e-7)


def test_empty_design_gives_empty_coefficients() -> None:
    assert fit_quantile_regression(np.zeros((5, 0)), np.arange(5.0), 0.5).shape == (0,)


# -----------------------------------------------------------------------
# Failures
# -----------------------------------------------------------------------


def test_all_nan_response_raises_non_convergence() -> None:
    y = np.full(10, np.nan)
    with pytest.raises(SolverNonConvergence, match="no finite observations"):
        fit_quantile_regression(_design(10), y, 0.5)


def test_solver_contract() -> None:
    X = _design(6)
    with pytest.raises(ContractViolation):
        fit_quantile_regression(X, np.ones(5), 0.5)
    with pytest.raises(ContractViolation):
        fit_quantile_regression(X, np.ones(6), 1.5)
    with pytest.raises(ContractViolation):
        fit_quantile_regression(X, np.ones(6), 0.5, method="simplex")
