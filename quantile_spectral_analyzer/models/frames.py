from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

import numpy as np


@dataclass(frozen=True)
class SeriesMatrix:
    """
    In-memory representation of one class file after loading and standardisation.

    Notes
    - values has shape (series_length, n_series): one series per column.
    - When standardised, every column has zero mean and unit variance (ddof=1).
    """
    values: np.ndarray
    label: Optional[str] = None
    source_path: Optional[Path] = None
    standardized: bool = False
    warnings: Tuple[str, ...] = ()

    @property
    def series_length(self) -> int:
        return int(self.values.shape[0])

    @property
    def n_series(self) -> int:
        return int(self.values.shape[1])

    def series(self, k: int) -> np.ndarray:
        return self.values[:, int(k)]

    def select(self, idx: np.ndarray) -> "SeriesMatrix":
        """Sub-matrix with the given series (columns)."""
        return SeriesMatrix(
            values=self.values[:, np.asarray(idx, dtype=int)],
            label=self.label,
            source_path=self.source_path,
            standardized=self.standardized,
            warnings=self.warnings,
        )
