"""Quantile periodogram engine.

For every frequency ``f`` of the grid and every quantile level ``tau`` the
series is fitted with the harmonic quantile regression of
:mod:`~quantile_spectral_analyzer.analysis.harmonic` and the fit is turned into
a spectral value by one of two estimators:

- ``COEF_NORM``:  ``0.25 * n * (a^2 + b^2)`` with ``a, b`` the cos/sin
  coefficients. At the Nyquist frequency the sampled cosine has half the true
  amplitude, so ``a`` is doubled before squaring.
- ``COST_DIFF``:  ``cost0(tau) - cost(f, tau)``, the reduction in check loss
  achieved by adding the oscillation to a quantile-only baseline. ``cost0`` is
  computed once per call and shared by every frequency.

Entries below zero are clamped to zero. The frequency loop is a pure map over
independent tasks; with a :class:`~quantile_spectral_analyzer.analysis.workers.WorkerPool`
the rows are computed concurrently and assembled by index afterwards, so the
result does not depend on the pool size.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import List, Literal, Optional, Sequence, Tuple, Union

import numpy as np

from quantile_spectral_analyzer.errors import ContractViolation
from quantile_spectral_analyzer.analysis.check_loss import (
    check_loss,
    intercept_quantile,
    resolve_weights,
    validate_tau,
)
from quantile_spectral_analyzer.analysis.harmonic import (
    FrequencyClass,
    fit_harmonic_detailed,
    harmonic_fitted_values,
    validate_frequencies,
)
from quantile_spectral_analyzer.analysis.workers import WorkerPool
from quantile_spectral_analyzer.models.results import SpectralStack


logger = logging.getLogger(__name__)


class Estimator(str, Enum):
    COST_DIFF = "cost_diff"
    COEF_NORM = "coef_norm"


Granularity = Literal["frequency", "series"]


def parse_estimator(value: Union[str, Estimator]) -> Estimator:
    if isinstance(value, Estimator):
        return value
    try:
        return Estimator(str(value).lower())
    except ValueError as e:
        valid = [m.value for m in Estimator]
        raise ContractViolation(f"unknown estimator {value!r}; expected one of {valid}") from e


# =====================================================================
#  Grids
# =====================================================================

def fourier_frequencies(n: int) -> np.ndarray:
    """Fourier frequencies ``k/n`` for ``k = 1..ceil(n/2)-1`` (strictly below 0.5)."""
    n = int(n)
    if n < 2:
        raise ContractViolation(f"series length must be >= 2, got {n}")
    k_max = int(math.ceil(n / 2.0)) - 1
    return np.arange(1, k_max + 1, dtype=float) / float(n)


def quantile_grid(start: float = 0.06, stop: float = 0.94, step: float = 0.02) -> np.ndarray:
    """Evenly spaced quantile levels ``start, start+step, ..., stop`` (inclusive)."""
    if step <= 0:
        raise ContractViolation(f"step must be > 0, got {step!r}")
    count = int(round((float(stop) - float(start)) / float(step))) + 1
    if count < 1:
        raise ContractViolation(f"empty quantile grid: start={start!r}, stop={stop!r}")
    taus = np.round(float(start) + float(step) * np.arange(count), 10)
    for t in taus:
        validate_tau(t)
    return taus


def _validate_taus(taus: Sequence[float]) -> np.ndarray:
    t = np.atleast_1d(np.asarray(taus, dtype=float))
    if t.ndim != 1:
        raise ContractViolation(f"quantile grid must be 1D, got shape {t.shape}")
    for v in t:
        validate_tau(v)
    return t


# =====================================================================
#  Single series
# =====================================================================

@dataclass(frozen=True)
class QuantilePeriodogram:
    """Quantile periodogram of one series.

    ``values`` has shape ``(F, T)`` and is non-negative. ``n_fallback`` counts
    the (frequency, tau) fits that used the solver fallback.
    """

    freqs: np.ndarray
    taus: np.ndarray
    series_length: int
    values: np.ndarray
    estimator: Estimator
    with_intercept: bool
    n_fallback: int = 0


@dataclass(frozen=True)
class _FrequencyTask:
    y: np.ndarray
    freq: float
    taus: np.ndarray
    weights: np.ndarray
    cost0: Optional[np.ndarray]
    with_intercept: bool
    estimator: Estimator
    solver_method: str


def _baseline_costs(
    y: np.ndarray, taus: np.ndarray, weights: np.ndarray, with_intercept: bool
) -> np.ndarray:
    """Check loss of the quantile-only model, one value per tau."""
    cost0 = np.empty(taus.size, dtype=float)
    finite = y[np.isfinite(y)]
    for j, tau in enumerate(taus):
        if with_intercept:
            q = intercept_quantile(y, tau, weights)
        else:
            q = float(np.quantile(finite, tau)) if finite.size else float("nan")
        cost0[j] = check_loss(y - q, tau, weights)
    return cost0


def _coef_norm(n: int, coef: np.ndarray, fclass: FrequencyClass) -> np.ndarray:
    a = coef[1]
    b = coef[2]
    if fclass is FrequencyClass.NYQUIST:
        a = 2.0 * a
    return 0.25 * n * (a * a + b * b)


def _frequency_row(task: _FrequencyTask) -> Tuple[np.ndarray, int]:
    """Spectral values at one frequency for every tau, plus the fallback count."""
    y = task.y
    n = y.size
    taus = task.taus
    row = np.empty(taus.size, dtype=float)
    n_fallback = 0

    if task.with_intercept:
        fits = [
            fit_harmonic_detailed(
                y,
                task.freq,
                taus,
                with_intercept=True,
                weights=task.weights,
                solver_method=task.solver_method,
            )
        ]
        columns = [(fits[0], j) for j in range(taus.size)]
    else:
        fits = [
            fit_harmonic_detailed(
                y,
                task.freq,
                tau,
                with_intercept=False,
                weights=task.weights,
                solver_method=task.solver_method,
            )
            for tau in taus
        ]
        columns = [(fits[j], 0) for j in range(taus.size)]

    for fit in fits:
        n_fallback += fit.n_fallback

    for j, (fit, col) in enumerate(columns):
        coef = fit.coef[:, col]
        if task.estimator is Estimator.COEF_NORM:
            row[j] = _coef_norm(n, coef, fit.fclass)
        else:
            resid = y - harmonic_fitted_values(n, task.freq, coef)
            row[j] = task.cost0[j] - check_loss(resid, taus[j], task.weights)

    return row, n_fallback


def compute_quantile_periodogram(
    y: np.ndarray,
    freqs: Sequence[float],
    taus: Sequence[float],
    *,
    with_intercept: bool = True,
    estimator: Union[str, Estimator] = Estimator.COST_DIFF,
    weights: Optional[np.ndarray] = None,
    pool: Optional[WorkerPool] = None,
    solver_method: str = "highs",
) -> QuantilePeriodogram:
    """Quantile periodogram of one series as a ``(F, T)`` matrix.

    Parameters
    ----------
    y:
        1D series of length ``n`` (ideally standardised).
    freqs:
        Frequencies in [0, 0.5]. Values outside raise :class:`ContractViolation`.
    taus:
        Quantile levels in (0, 1).
    with_intercept:
        Whether the harmonic regression carries an intercept.
    estimator:
        ``"cost_diff"`` (default) or ``"coef_norm"``.
    weights:
        Optional non-negative observation weights.
    pool:
        Optional open :class:`WorkerPool`; the frequency loop is mapped on it.
    solver_method:
        HiGHS variant used for the regression fits.

    Returns
    -------
    QuantilePeriodogram
        Empty grids give an empty ``values`` matrix.
    """
    y = np.asarray(y, dtype=float)
    if y.ndim != 1:
        raise ContractViolation(f"y must be 1D, got shape {y.shape}")
    f = validate_frequencies(freqs) if np.size(freqs) else np.zeros(0, dtype=float)
    t = _validate_taus(taus) if np.size(taus) else np.zeros(0, dtype=float)
    est = parse_estimator(estimator)
    w = resolve_weights(weights, y.size)
    with_intercept = bool(with_intercept)

    if f.size == 0 or t.size == 0:
        return QuantilePeriodogram(
            freqs=f,
            taus=t,
            series_length=int(y.size),
            values=np.zeros((f.size, t.size), dtype=float),
            estimator=est,
            with_intercept=with_intercept,
        )

    cost0 = _baseline_costs(y, t, w, with_intercept) if est is Estimator.COST_DIFF else None

    logger.debug(
        "quantile periodogram: n=%d, n_freq=%d, n_tau=%d, estimator=%s, intercept=%s, pool=%r",
        y.size, f.size, t.size, est.value, with_intercept, pool,
    )

    tasks = [
        _FrequencyTask(
            y=y,
            freq=float(fi),
            taus=t,
            weights=w,
            cost0=cost0,
            with_intercept=with_intercept,
            estimator=est,
            solver_method=solver_method,
        )
        for fi in f
    ]
    if pool is None:
        rows = [_frequency_row(task) for task in tasks]
    else:
        rows = pool.map(_frequency_row, tasks)

    values = np.empty((f.size, t.size), dtype=float)
    n_fallback = 0
    for i, (row, nf) in enumerate(rows):
        values[i, :] = row
        n_fallback += nf

    values = np.maximum(values, 0.0)

    return QuantilePeriodogram(
        freqs=f,
        taus=t,
        series_length=int(y.size),
        values=values,
        estimator=est,
        with_intercept=with_intercept,
        n_fallback=n_fallback,
    )


def quantile_periodogram(
    y: np.ndarray,
    freqs: Sequence[float],
    taus: Sequence[float],
    *,
    with_intercept: bool = True,
    estimator: Union[str, Estimator] = Estimator.COST_DIFF,
    weights: Optional[np.ndarray] = None,
    pool: Optional[WorkerPool] = None,
    solver_method: str = "highs",
) -> np.ndarray:
    """Quantile periodogram values, ``(F, T)``, or ``(F,)`` when there is a single tau.

    See :func:`compute_quantile_periodogram` for the parameters.
    """
    res = compute_quantile_periodogram(
        y,
        freqs,
        taus,
        with_intercept=with_intercept,
        estimator=estimator,
        weights=weights,
        pool=pool,
        solver_method=solver_method,
    )
    if res.values.shape[1] == 1:
        return res.values[:, 0]
    return res.values


# =====================================================================
#  Many series
# =====================================================================

@dataclass(frozen=True)
class _SeriesTask:
    y: np.ndarray
    freqs: np.ndarray
    taus: np.ndarray
    with_intercept: bool
    estimator: Estimator
    weights: Optional[np.ndarray]
    solver_method: str


def _series_periodogram(task: _SeriesTask) -> QuantilePeriodogram:
    return compute_quantile_periodogram(
        task.y,
        task.freqs,
        task.taus,
        with_intercept=task.with_intercept,
        estimator=task.estimator,
        weights=task.weights,
        solver_method=task.solver_method,
    )


def compute_spectral_stack(
    series_matrix: np.ndarray,
    freqs: Optional[Sequence[float]] = None,
    taus: Optional[Sequence[float]] = None,
    *,
    with_intercept: bool = True,
    estimator: Union[str, Estimator] = Estimator.COST_DIFF,
    weights: Optional[np.ndarray] = None,
    pool: Optional[WorkerPool] = None,
    granularity: Granularity = "frequency",
    solver_method: str = "highs",
    label: Optional[str] = None,
) -> SpectralStack:
    """Quantile periodograms for every column of an ``(n, m)`` series matrix.

    Parameters
    ----------
    series_matrix:
        Shape ``(n, m)``: ``m`` series of length ``n`` stored as columns.
    freqs:
        Frequency grid. Default: :func:`fourier_frequencies` of ``n``.
    taus:
        Quantile grid. Default: :func:`quantile_grid`.
    pool:
        Optional open worker pool.
    granularity:
        ``"frequency"`` maps the frequency loop of each series on the pool
        (series are processed one after another). ``"series"`` maps whole
        series on the pool and runs each frequency loop serially.

    Returns
    -------
    SpectralStack
        ``values`` of shape ``(m, F, T)``.
    """
    Y = np.asarray(series_matrix, dtype=float)
    if Y.ndim == 1:
        Y = Y[:, None]
    if Y.ndim != 2:
        raise ContractViolation(f"series_matrix must be 2D (n, m), got shape {Y.shape}")
    if granularity not in ("frequency", "series"):
        raise ContractViolation(f"granularity must be 'frequency' or 'series', got {granularity!r}")

    n, m = Y.shape
    f = fourier_frequencies(n) if freqs is None else np.asarray(freqs, dtype=float)
    t = quantile_grid() if taus is None else np.asarray(taus, dtype=float)
    est = parse_estimator(estimator)

    logger.info(
        "spectral stack%s: %d series of length %d, %d frequencies x %d quantiles",
        f" [{label}]" if label is not None else "", m, n, f.size, t.size,
    )

    if granularity == "series" and pool is not None:
        tasks = [
            _SeriesTask(
                y=Y[:, k].copy(),
                freqs=f,
                taus=t,
                with_intercept=with_intercept,
                estimator=est,
                weights=weights,
                solver_method=solver_method,
            )
            for k in range(m)
        ]
        results: List[QuantilePeriodogram] = pool.map(_series_periodogram, tasks)
    else:
        results = [
            compute_quantile_periodogram(
                Y[:, k],
                f,
                t,
                with_intercept=with_intercept,
                estimator=est,
                weights=weights,
                pool=pool,
                solver_method=solver_method,
            )
            for k in range(m)
        ]

    values = np.zeros((m, f.size, t.size), dtype=float)
    for k, res in enumerate(results):
        values[k] = res.values

    warnings: List[str] = []
    n_fallback = sum(res.n_fallback for res in results)
    if n_fallback:
        warnings.append(
            f"solver fallback used for {n_fallback} of {m * f.size * t.size} (series, frequency, tau) fits"
        )

    return SpectralStack(
        freqs=f,
        taus=t,
        series_length=int(n),
        values=values,
        label=label,
        warnings=tuple(warnings),
    )
