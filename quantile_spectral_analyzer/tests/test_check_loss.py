from __future__ import annotations

import numpy as np
import pytest

from quantile_spectral_analyzer.analysis.check_loss import check_loss, intercept_quantile, rho
from quantile_spectral_analyzer.errors import ContractViolation


def test_rho_is_asymmetric_piecewise_linear() -> None:
    u = np.array([2.0, 0.0, -1.0])
    assert np.allclose(rho(u, 0.3), [0.6, 0.0, 0.7])


def test_check_loss_unweighted_and_weighted() -> None:
    u = np.array([2.0, -1.0])
    assert check_loss(u, 0.3) == pytest.approx(1.3)
    assert check_loss(u, 0.3, weights=np.array([1.0, 2.0])) == pytest.approx(2.0)


def test_check_loss_excludes_nan_residuals() -> None:
    u = np.array([2.0, np.nan, -1.0])
    assert check_loss(u, 0.3) == pytest.approx(1.3)
    assert check_loss(np.array([np.nan, np.nan]), 0.5) == 0.0


def test_check_loss_contract() -> None:
    with pytest.raises(ContractViolation):
        check_loss(np.ones(3), 0.5, weights=np.ones(2))
    with pytest.raises(ContractViolation):
        check_loss(np.ones(2), 0.5, weights=np.array([1.0, -1.0]))
    with pytest.raises(ContractViolation):
        check_loss(np.ones(2), 0.0)
    with pytest.raises(ContractViolation):
        check_loss(np.ones(2), 1.0)


def test_intercept_quantile_median_of_odd_sample() -> None:
    assert intercept_quantile(np.array([3.0, 1.0, 2.0]), 0.5) == 2.0


@pytest.mark.parametrize("tau", [0.1, 0.37, 0.5, 0.9])
def test_intercept_quantile_minimises_weighted_check_loss(tau: float) -> None:
    rng = np.random.default_rng(3)
    y = rng.normal(size=41)
    w = rng.uniform(0.2, 2.0, size=y.size)

    q = intercept_quantile(y, tau, w)
    best = check_loss(y - q, tau, w)

    # The check loss is piecewise linear in q with kinks at the samples, so
    # the sample values are the only candidates for a minimum.
    for c in y:
        assert best <= check_loss(y - c, tau, w) + 1e-12


def test_intercept_quantile_ignores_nan_and_zero_weights() -> None:
    y = np.array([1.0, np.nan, 100.0, 2.0, 3.0])
    w = np.array([1.0, 1.0, 0.0, 1.0, 1.0])
    assert intercept_quantile(y, 0.5, w) == 2.0
