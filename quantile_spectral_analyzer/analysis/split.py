from __future__ import annotations

from typing import Tuple

import numpy as np

from quantile_spectral_analyzer.errors import ContractViolation


def split_train_test(
    n_series: int,
    train_fraction: float = 0.5,
    *,
    seed: int = 0,
) -> Tuple[np.ndarray, np.ndarray]:
    """Seeded random split of series indices ``0..n_series-1``.

    The training part holds ``round(train_fraction * n_series)`` indices, kept
    between 1 and ``n_series - 1`` when ``n_series >= 2``. Both index arrays
    are returned sorted.
    """
    n = int(n_series)
    if n < 1:
        raise ContractViolation(f"n_series must be >= 1, got {n_series!r}")
    frac = float(train_fraction)
    if not (0.0 < frac < 1.0):
        raise ContractViolation(f"train_fraction must be in (0, 1), got {train_fraction!r}")

    n_train = int(round(frac * n))
    if n >= 2:
        n_train = min(max(n_train, 1), n - 1)
    else:
        n_train = 1

    rng = np.random.default_rng(seed)
    perm = rng.permutation(n)
    return np.sort(perm[:n_train]), np.sort(perm[n_train:])
