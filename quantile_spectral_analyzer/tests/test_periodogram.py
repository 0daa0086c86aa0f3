from __future__ import annotations

import numpy as np
import pytest

from quantile_spectral_analyzer.analysis import harmonic, periodogram
from quantile_spectral_analyzer.analysis.harmonic import fit_harmonic
from quantile_spectral_analyzer.analysis.periodogram import (
    Estimator,
    compute_quantile_periodogram,
    compute_spectral_stack,
    fourier_frequencies,
    quantile_grid,
    quantile_periodogram,
)
from quantile_spectral_analyzer.analysis.workers import WorkerPool
from quantile_spectral_analyzer.errors import ContractViolation, SolverNonConvergence


def _t(n: int) -> np.ndarray:
    return np.arange(1, n + 1, dtype=float)


def _noise(n: int, seed: int = 0) -> np.ndarray:
    return np.random.default_rng(seed).standard_t(df=4, size=n)


# -----------------------------------------------------------------------
# Grids
# -----------------------------------------------------------------------


def test_fourier_frequencies_stay_below_nyquist() -> None:
    f64 = fourier_frequencies(64)
    assert f64.size == 31
    assert f64[0] == 1 / 64 and f64[-1] == 31 / 64

    f65 = fourier_frequencies(65)
    assert f65.size == 32
    assert f65[-1] < 0.5


def test_quantile_grid_default() -> None:
    taus = quantile_grid()
    assert taus.size == 45
    assert taus[0] == pytest.approx(0.06)
    assert taus[-1] == pytest.approx(0.94)
    assert np.all(np.diff(taus) > 0)


# -----------------------------------------------------------------------
# Properties of the estimates
# -----------------------------------------------------------------------


@pytest.mark.parametrize("estimator", ["cost_diff", "coef_norm"])
@pytest.mark.parametrize("with_intercept", [True, False])
def test_entries_are_non_negative(estimator: str, with_intercept: bool) -> None:
    y = _noise(40)
    freqs = np.concatenate([[0.0], fourier_frequencies(40), [0.5]])
    P = quantile_periodogram(
        y, freqs, [0.25, 0.5, 0.75], with_intercept=with_intercept, estimator=estimator
    )
    assert P.shape == (freqs.size, 3)
    assert np.all(P >= 0.0)


def test_zero_frequency_cost_diff_is_exactly_zero() -> None:
    y = _noise(30, seed=4)
    P = quantile_periodogram(y, [0.0, 0.1, 0.3], [0.1, 0.5, 0.9])
    assert np.all(P[0, :] == 0.0)


def test_nyquist_coef_norm_doubles_cosine_amplitude() -> None:
    n = 64
    y = np.cos(np.pi * _t(n))  # pure cosine at the Nyquist rate

    est = quantile_periodogram(y, [0.5], [0.5], estimator="coef_norm")
    a = fit_harmonic(y, 0.5, [0.5])[1, 0]
    without_doubling = 0.25 * n * a**2

    assert est.shape == (1,)
    assert est[0] == pytest.approx(4.0 * without_doubling, rel=1e-12)
    assert est[0] == pytest.approx(n, rel=1e-6)


def test_sinusoid_peak_at_its_frequency() -> None:
    y = np.cos(2 * np.pi * 0.1 * np.arange(64))
    P = quantile_periodogram(y, [0.05, 0.1, 0.15], [0.5], estimator=Estimator.COST_DIFF)

    assert P.shape == (3,)
    assert P[1] > 2.0 * P[0]
    assert P[1] > 2.0 * P[2]


def test_coef_norm_matches_squared_coefficients() -> None:
    n = 48
    y = 2.0 * np.sin(2 * np.pi * 0.25 * _t(n)) + 0.1 * _noise(n, seed=7)
    P = quantile_periodogram(y, [0.25], [0.5], estimator="coef_norm")
    coef = fit_harmonic(y, 0.25, [0.5])[:, 0]
    assert P[0] == pytest.approx(0.25 * n * (coef[1] ** 2 + coef[2] ** 2))


# -----------------------------------------------------------------------
# Determinism and parallelism
# -----------------------------------------------------------------------


def test_pool_size_does_not_change_result() -> None:
    y = _noise(40, seed=2)
    freqs = fourier_frequencies(40)
    taus = [0.3, 0.7]

    serial = quantile_periodogram(y, freqs, taus, pool=WorkerPool(1))
    with WorkerPool(n_workers=4) as pool:
        threaded = quantile_periodogram(y, freqs, taus, pool=pool)

    assert np.array_equal(serial, threaded)


def test_process_pool_matches_serial() -> None:
    y = _noise(24, seed=5)
    freqs = [0.1, 0.2, 0.3]
    serial = quantile_periodogram(y, freqs, [0.5], with_intercept=False)
    with WorkerPool(n_workers=2, kind="process") as pool:
        parallel = quantile_periodogram(y, freqs, [0.5], with_intercept=False, pool=pool)
    assert np.allclose(serial, parallel, atol=1e-10, rtol=0.0)


def test_closed_pool_is_rejected() -> None:
    with pytest.raises(RuntimeError):
        WorkerPool(n_workers=2).map(abs, [1, 2])


# -----------------------------------------------------------------------
# Contract and failure handling
# -----------------------------------------------------------------------


def test_baseline_is_computed_once_per_call(monkeypatch) -> None:
    calls = []
    original = periodogram._baseline_costs

    def counting(*args, **kwargs):
        calls.append(1)
        return original(*args, **kwargs)

    monkeypatch.setattr(periodogram, "_baseline_costs", counting)
    quantile_periodogram(_noise(20), [0.1, 0.2, 0.3, 0.4, 0.45], [0.2, 0.8])
    assert len(calls) == 1


def test_empty_grids_give_empty_results() -> None:
    y = _noise(16)
    assert quantile_periodogram(y, [], [0.2, 0.8]).shape == (0, 2)
    assert quantile_periodogram(y, [0.1, 0.2], []).shape == (2, 0)


@pytest.mark.parametrize("freqs", [[0.1, 0.6], [-0.01], [np.nan]])
def test_out_of_range_frequency_raises(freqs) -> None:
    with pytest.raises(ContractViolation):
        quantile_periodogram(_noise(16), freqs, [0.5])


def test_bad_tau_and_estimator_raise() -> None:
    with pytest.raises(ContractViolation):
        quantile_periodogram(_noise(16), [0.1], [1.2])
    with pytest.raises(ContractViolation):
        quantile_periodogram(_noise(16), [0.1], [0.5], estimator="ratio")


def test_solver_failure_is_absorbed(monkeypatch) -> None:
    def failing(*args, **kwargs):
        raise SolverNonConvergence("forced")

    monkeypatch.setattr(harmonic, "fit_quantile_regression", failing)
    res = compute_quantile_periodogram(_noise(20), [0.1, 0.2, 0.3], [0.25, 0.75])

    # fallback = quantile-only fit, whose cost equals the baseline
    assert res.n_fallback == 6
    assert np.all(res.values == 0.0)


# -----------------------------------------------------------------------
# Stacks
# -----------------------------------------------------------------------


def test_spectral_stack_shapes_and_granularity() -> None:
    rng = np.random.default_rng(9)
    Y = rng.normal(size=(32, 3))

    serial = compute_spectral_stack(Y, taus=[0.5], label="A")
    assert serial.values.shape == (3, 15, 1)
    assert serial.series_length == 32
    assert serial.n_series == 3
    assert serial.label == "A"
    assert serial.warnings == ()

    with WorkerPool(n_workers=3) as pool:
        by_freq = compute_spectral_stack(Y, taus=[0.5], pool=pool, granularity="frequency")
        by_series = compute_spectral_stack(Y, taus=[0.5], pool=pool, granularity="series")

    assert np.array_equal(serial.values, by_freq.values)
    assert np.array_equal(serial.values, by_series.values)
    assert serial.same_grid(by_series)


def test_spectral_stack_records_fallbacks(monkeypatch) -> None:
    def failing(*args, **kwargs):
        raise SolverNonConvergence("forced")

    monkeypatch.setattr(harmonic, "fit_quantile_regression", failing)
    stack = compute_spectral_stack(np.ones((8, 2)) * np.arange(8)[:, None], [0.25], [0.5])
    assert len(stack.warnings) == 1
    assert "2 of 2" in stack.warnings[0]
