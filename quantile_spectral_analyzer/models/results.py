from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np


@dataclass(frozen=True)
class SpectralStack:
    """Quantile periodograms of many series sharing one frequency/quantile grid.

    Attributes
    ----------
    freqs:
        Frequency grid, shape ``(F,)``.
    taus:
        Quantile grid, shape ``(T,)``.
    series_length:
        Length ``n`` of every series in the stack.
    values:
        Non-negative spectra of shape ``(N, F, T)``.
    label:
        Optional class label shared by all series.
    warnings:
        Diagnostic messages (e.g. solver fallback counts).
    """

    freqs: np.ndarray
    taus: np.ndarray
    series_length: int
    values: np.ndarray
    label: Optional[str] = None
    warnings: Tuple[str, ...] = ()

    @property
    def n_series(self) -> int:
        return int(self.values.shape[0])

    def same_grid(self, other: "SpectralStack") -> bool:
        return (
            self.series_length == other.series_length
            and self.freqs.shape == other.freqs.shape
            and self.taus.shape == other.taus.shape
            and bool(np.array_equal(self.freqs, other.freqs))
            and bool(np.array_equal(self.taus, other.taus))
        )
