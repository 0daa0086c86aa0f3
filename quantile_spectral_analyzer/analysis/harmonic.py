"""Single-frequency trigonometric quantile regression.

A series ``y_t`` (``t = 1..n``) is regressed at quantile level ``tau`` on

    [1,] cos(2 pi f t), sin(2 pi f t)

The frequency is classified once into a :class:`FrequencyClass`, which fixes
the design and the fallback:

==========  ========================  ==================================
class       oscillation columns       fallback / degenerate coefficients
==========  ========================  ==================================
ZERO        none                      intercept = tau-quantile of y
NYQUIST     cos only (sin == 0)       intercept = tau-quantile of y
INTERIOR    cos, sin                  intercept = tau-quantile of y
==========  ========================  ==================================

Without an intercept the fallback is the zero pair. A fit that the solver
cannot bring to an optimum is replaced by the fallback and logged; it never
interrupts the caller's loop over frequencies.

Coefficients are reported as rows ``[intercept, cos, sin]``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence, Union

import numpy as np

from quantile_spectral_analyzer.errors import ContractViolation, SolverNonConvergence
from quantile_spectral_analyzer.analysis.check_loss import (
    intercept_quantile,
    resolve_weights,
    validate_tau,
)
from quantile_spectral_analyzer.analysis.solver import fit_quantile_regression


logger = logging.getLogger(__name__)

NYQUIST_FREQ = 0.5


class FrequencyClass(Enum):
    ZERO = "zero"
    NYQUIST = "nyquist"
    INTERIOR = "interior"


@dataclass(frozen=True)
class HarmonicFit:
    """Harmonic regression coefficients at one frequency.

    Attributes
    ----------
    freq:
        Frequency in cycles per sample.
    fclass:
        Frequency class driving the design.
    taus:
        Quantile levels, shape ``(n_tau,)``.
    coef:
        Shape ``(3, n_tau)``; rows ``[intercept, cos, sin]``. The intercept row
        is zero when the fit was made without intercept.
    fallback:
        Shape ``(n_tau,)``; True where the solver failed and the fallback was used.
    """

    freq: float
    fclass: FrequencyClass
    taus: np.ndarray
    coef: np.ndarray
    fallback: np.ndarray

    @property
    def n_fallback(self) -> int:
        return int(np.count_nonzero(self.fallback))


def classify_frequency(freq: float) -> FrequencyClass:
    f = float(freq)
    if not np.isfinite(f) or f < 0.0 or f > NYQUIST_FREQ:
        raise ContractViolation(f"frequency must be in [0, 0.5], got {freq!r}")
    if f == 0.0:
        return FrequencyClass.ZERO
    if f == NYQUIST_FREQ:
        return FrequencyClass.NYQUIST
    return FrequencyClass.INTERIOR


def validate_frequencies(freqs: Sequence[float]) -> np.ndarray:
    """Return ``freqs`` as a 1D float array, raising if any value is outside [0, 0.5]."""
    f = np.atleast_1d(np.asarray(freqs, dtype=float))
    if f.ndim != 1:
        raise ContractViolation(f"frequency grid must be 1D, got shape {f.shape}")
    for v in f:
        classify_frequency(v)
    return f


def time_index(n: int) -> np.ndarray:
    return np.arange(1, int(n) + 1, dtype=float)


def oscillation_design(n: int, freq: float, fclass: Optional[FrequencyClass] = None) -> np.ndarray:
    """Oscillation columns for ``freq``: ``(n, 2)``, ``(n, 1)`` or ``(n, 0)``."""
    if fclass is None:
        fclass = classify_frequency(freq)
    if fclass is FrequencyClass.ZERO:
        return np.zeros((int(n), 0), dtype=float)

    arg = 2.0 * np.pi * float(freq) * time_index(n)
    if fclass is FrequencyClass.NYQUIST:
        return np.cos(arg)[:, None]
    return np.column_stack([np.cos(arg), np.sin(arg)])


def harmonic_fitted_values(n: int, freq: float, coef: np.ndarray) -> np.ndarray:
    """Fitted values ``b0 + a cos + b sin`` for coefficient columns ``(3,)`` or ``(3, n_tau)``.

    Returns shape ``(n,)`` or ``(n, n_tau)`` accordingly.
    """
    c = np.asarray(coef, dtype=float)
    arg = 2.0 * np.pi * float(freq) * time_index(n)
    basis = np.column_stack([np.ones(int(n)), np.cos(arg), np.sin(arg)])
    if classify_frequency(freq) is not FrequencyClass.INTERIOR:
        # sin(2 pi f t) is identically zero at f = 0 and f = 0.5 on the integer grid
        basis[:, 2] = 0.0
    return basis @ c


def _fit_harmonic(
    y: np.ndarray,
    freq: float,
    taus: np.ndarray,
    with_intercept: bool,
    weights: np.ndarray,
    solver_method: str,
) -> HarmonicFit:
    fclass = classify_frequency(freq)
    n = y.size
    n_tau = taus.size

    coef = np.zeros((3, n_tau), dtype=float)
    fallback = np.zeros(n_tau, dtype=bool)

    if fclass is FrequencyClass.ZERO:
        if with_intercept:
            for j, tau in enumerate(taus):
                coef[0, j] = intercept_quantile(y, tau, weights)
        return HarmonicFit(freq=float(freq), fclass=fclass, taus=taus, coef=coef, fallback=fallback)

    X = oscillation_design(n, freq, fclass)
    if with_intercept:
        X = np.column_stack([np.ones(n), X])
    n_osc = 2 if fclass is FrequencyClass.INTERIOR else 1

    for j, tau in enumerate(taus):
        try:
            beta = fit_quantile_regression(X, y, tau, weights, method=solver_method)
        except SolverNonConvergence as e:
            logger.warning("solver fallback at freq=%.6g tau=%.4g: %s", freq, tau, e)
            fallback[j] = True
            if with_intercept:
                coef[0, j] = intercept_quantile(y, tau, weights)
            continue

        if with_intercept:
            coef[0, j] = beta[0]
            coef[1 : 1 + n_osc, j] = beta[1:]
        else:
            coef[1 : 1 + n_osc, j] = beta

    return HarmonicFit(freq=float(freq), fclass=fclass, taus=taus, coef=coef, fallback=fallback)


def fit_harmonic_detailed(
    y: np.ndarray,
    freq: float,
    tau: Union[float, Sequence[float]],
    *,
    with_intercept: bool = True,
    weights: Optional[np.ndarray] = None,
    solver_method: str = "highs",
) -> HarmonicFit:
    """Fit the harmonic model at ``freq`` and return coefficients with fallback flags.

    Without intercept only a single ``tau`` is accepted per call.
    """
    y = np.asarray(y, dtype=float)
    if y.ndim != 1:
        raise ContractViolation(f"y must be 1D, got shape {y.shape}")
    taus = np.atleast_1d(np.asarray(tau, dtype=float))
    if taus.ndim != 1:
        raise ContractViolation(f"tau must be a scalar or 1D, got shape {taus.shape}")
    for t in taus:
        validate_tau(t)
    if not with_intercept and taus.size != 1:
        raise ContractViolation("fits without intercept take one tau at a time")
    w = resolve_weights(weights, y.size)

    return _fit_harmonic(y, freq, taus, bool(with_intercept), w, solver_method)


def fit_harmonic(
    y: np.ndarray,
    freq: float,
    tau: Union[float, Sequence[float]],
    *,
    with_intercept: bool = True,
    weights: Optional[np.ndarray] = None,
    solver_method: str = "highs",
) -> np.ndarray:
    """Harmonic quantile-regression coefficients.

    Returns
    -------
    np.ndarray
        With intercept: shape ``(3, n_tau)``, rows ``[intercept, cos, sin]``.
        Without intercept: shape ``(2,)``, ``[cos, sin]`` for the single ``tau``.
    """
    fit = fit_harmonic_detailed(
        y,
        freq,
        tau,
        with_intercept=with_intercept,
        weights=weights,
        solver_method=solver_method,
    )
    if with_intercept:
        return fit.coef
    return fit.coef[1:, 0].copy()
