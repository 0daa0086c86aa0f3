"""Spectral profile -- bundles all pipeline-relevant configuration.

A SpectralProfile groups every parameter that affects the analysis output
into one frozen dataclass.  It can be:

- Constructed with defaults and overridden via ``dataclasses.replace()``
- Serialized to/from a dict or JSON file for provenance
- Validated up front, before any spectrum is computed
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import numpy as np

from quantile_spectral_analyzer.errors import ContractViolation


_TUPLE_FIELDS = ("freqs", "taus", "freq_sel", "tau_sel", "components", "methods")


def _default_taus() -> Tuple[float, ...]:
    return tuple(float(x) for x in np.round(0.06 + 0.02 * np.arange(45), 10))


@dataclass(frozen=True)
class SpectralProfile:
    """Frozen configuration for the full classification pipeline.

    Spectral fields
    ---------------
    freqs : tuple of float or None
        Frequency grid in [0, 0.5]. None selects the Fourier frequencies of
        the series length.
    taus : tuple of float
        Quantile grid in (0, 1). Default 0.06, 0.08, ..., 0.94.
    with_intercept : bool
        Harmonic regression with intercept.
    estimator : str
        "cost_diff" or "coef_norm".
    solver_method : str
        HiGHS variant for the regression LP.

    Execution fields
    ----------------
    n_workers : int
        Worker pool size (1 = serial).
    pool_kind : str
        "thread" or "process".
    granularity : str
        "frequency" or "series" -- which loop the pool feeds.

    Feature / classifier fields
    ---------------------------
    freq_sel, tau_sel : tuple of int or None
        Indices kept when flattening (None = all).
    components : tuple of int
        PCA components used as classifier features.
    methods : tuple of str
        Subset of {"lda", "qda", "linear_svm"}.
    train_fraction : float
        Fraction of each class used for training.
    seed : int
        Seed of the train/test split.
    """

    freqs: Optional[Tuple[float, ...]] = None
    taus: Tuple[float, ...] = _default_taus()
    with_intercept: bool = True
    estimator: str = "cost_diff"
    solver_method: str = "highs"

    n_workers: int = 1
    pool_kind: str = "thread"
    granularity: str = "frequency"

    freq_sel: Optional[Tuple[int, ...]] = None
    tau_sel: Optional[Tuple[int, ...]] = None
    components: Tuple[int, ...] = (0, 1)
    methods: Tuple[str, ...] = ("lda", "qda", "linear_svm")
    train_fraction: float = 0.5
    seed: int = 0

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate(self) -> "SpectralProfile":
        """Raise :class:`ContractViolation` on any invalid value; return self."""
        if self.freqs is not None:
            for f in self.freqs:
                if not (0.0 <= float(f) <= 0.5):
                    raise ContractViolation(f"frequency {f!r} outside [0, 0.5]")
        for t in self.taus:
            if not (0.0 < float(t) < 1.0):
                raise ContractViolation(f"quantile level {t!r} outside (0, 1)")
        if self.estimator not in ("cost_diff", "coef_norm"):
            raise ContractViolation(f"unknown estimator {self.estimator!r}")
        if int(self.n_workers) < 1:
            raise ContractViolation("n_workers must be >= 1")
        if self.pool_kind not in ("thread", "process"):
            raise ContractViolation(f"unknown pool kind {self.pool_kind!r}")
        if self.granularity not in ("frequency", "series"):
            raise ContractViolation(f"unknown granularity {self.granularity!r}")
        if not self.components or min(self.components) < 0:
            raise ContractViolation("components must be a non-empty tuple of indices >= 0")
        unknown = [m for m in self.methods if m not in ("lda", "qda", "linear_svm")]
        if not self.methods or unknown:
            raise ContractViolation(f"invalid classification methods: {list(self.methods)!r}")
        if not (0.0 < float(self.train_fraction) < 1.0):
            raise ContractViolation("train_fraction must be in (0, 1)")
        return self

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        """Return a JSON-friendly dict (tuples become lists)."""
        d = asdict(self)
        for k in _TUPLE_FIELDS:
            if d[k] is not None:
                d[k] = list(d[k])
        return d

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "SpectralProfile":
        """Reconstruct from a dict (e.g. loaded from JSON). Unknown keys are rejected."""
        d = dict(d)  # shallow copy
        known = set(cls.__dataclass_fields__)
        extra = sorted(set(d) - known)
        if extra:
            raise ContractViolation(f"unknown profile keys: {extra}")
        for k in _TUPLE_FIELDS:
            if k in d and d[k] is not None and not isinstance(d[k], tuple):
                d[k] = tuple(d[k])
        return cls(**d)

    def to_json(self, path: str | Path) -> Path:
        p = Path(path)
        p.write_text(json.dumps(self.to_dict(), indent=2), encoding="utf-8")
        return p

    @classmethod
    def from_json(cls, path: str | Path) -> "SpectralProfile":
        p = Path(path).expanduser()
        if not p.exists():
            raise FileNotFoundError(str(p))
        return cls.from_dict(json.loads(p.read_text(encoding="utf-8")))
