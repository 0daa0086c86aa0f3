from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple

import numpy as np

from quantile_spectral_analyzer.models.frames import SeriesMatrix


@dataclass(frozen=True)
class SensorReaderConfig:
    """
    Reader configuration for sensor-log sample files.

    header_fields:
      Number of leading values (tokens for text, samples for binary) skipped before the data.
    binary_dtype:
      numpy dtype of binary files (anything that is not .txt/.csv/.dat-as-text).
    text_suffixes:
      Suffixes parsed as whitespace/comma separated text.
    standardize:
      Standardise every series to zero mean and unit variance (ddof=1).
    """
    header_fields: int = 2
    binary_dtype: np.dtype = np.dtype("<f8")
    text_suffixes: Tuple[str, ...] = (".txt", ".csv", ".dat", ".log")
    standardize: bool = True


def standardize_columns(values: np.ndarray) -> Tuple[np.ndarray, List[str]]:
    """Zero-mean, unit-variance columns (ddof=1). Constant columns are only centred."""
    x = np.asarray(values, dtype=float)
    mean = x.mean(axis=0)
    std = x.std(axis=0, ddof=1) if x.shape[0] > 1 else np.zeros(x.shape[1])
    warnings: List[str] = []
    flat = ~(std > 0.0)
    if np.any(flat):
        warnings.append(f"constant series left unscaled: columns {np.flatnonzero(flat)[:20].tolist()}")
        std = np.where(flat, 1.0, std)
    return (x - mean) / std, warnings


class SensorLogReader:
    """
    Reader for sensor-log sample streams (one file per class).

    Layout:
      - a header of ``header_fields`` values, skipped
      - interleaved (index, sample) pairs; the first field of each pair is discarded
      - the kept samples are folded column-wise into ``series_length x n_series``
        (series k = samples[k*n : (k+1)*n])
    """

    def __init__(self, config: Optional[SensorReaderConfig] = None):
        self.config = config or SensorReaderConfig()

    def read(
        self,
        file_path: str | Path,
        *,
        n_series: int,
        series_length: int,
        label: Optional[str] = None,
    ) -> SeriesMatrix:
        path = Path(file_path).expanduser().resolve()
        if not path.exists():
            raise FileNotFoundError(str(path))

        m = int(n_series)
        n = int(series_length)
        if m <= 0 or n <= 0:
            raise ValueError(f"n_series and series_length must be > 0, got {m}, {n}")

        warnings: List[str] = []
        raw = self._load_raw(path)
        h = int(self.config.header_fields)
        if raw.size < h:
            raise ValueError(f"file too small for its {h}-field header: {path}")
        data = raw[h:]

        if data.size % 2 != 0:
            warnings.append(f"odd number of data fields ({data.size}); dropped the trailing value")
            data = data[:-1]
        samples = data.reshape(-1, 2)[:, 1]

        need = n * m
        if samples.size < need:
            raise ValueError(
                f"not enough samples in {path.name}: have {samples.size}, need {n} x {m} = {need}"
            )
        if samples.size > need:
            warnings.append(f"ignored {samples.size - need} trailing samples")

        values = samples[:need].reshape(m, n).T.astype(np.float64, copy=True)
        if not np.all(np.isfinite(values)):
            raise ValueError(f"non-finite samples in {path.name}")

        if self.config.standardize:
            values, w_std = standardize_columns(values)
            warnings.extend(w_std)

        return SeriesMatrix(
            values=values,
            label=label,
            source_path=path,
            standardized=bool(self.config.standardize),
            warnings=tuple(warnings),
        )

    def _load_raw(self, path: Path) -> np.ndarray:
        if path.suffix.lower() in self.config.text_suffixes:
            tokens = path.read_text(encoding="utf-8", errors="replace").replace(",", " ").split()
            h = int(self.config.header_fields)
            # Header tokens may be non-numeric.
            head = [np.nan] * min(h, len(tokens))
            try:
                body = [float(tok) for tok in tokens[h:]]
            except ValueError as e:
                raise ValueError(f"invalid numeric field in {path.name}: {e}") from e
            return np.asarray(head + body, dtype=np.float64)
        return np.fromfile(path, dtype=self.config.binary_dtype).astype(np.float64, copy=False)


def load_series_matrix(
    path: str | Path,
    n_series: int,
    series_length: int,
    *,
    label: Optional[str] = None,
    config: Optional[SensorReaderConfig] = None,
) -> SeriesMatrix:
    """Load one class file as a standardised ``series_length x n_series`` matrix."""
    return SensorLogReader(config).read(
        path, n_series=n_series, series_length=series_length, label=label
    )
