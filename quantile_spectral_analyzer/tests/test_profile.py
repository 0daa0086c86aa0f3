"""Tests for SpectralProfile."""

from __future__ import annotations

import dataclasses
import json
from pathlib import Path

import pytest

from quantile_spectral_analyzer.errors import ContractViolation
from quantile_spectral_analyzer.models.profile import SpectralProfile


# -----------------------------------------------------------------------
# Basic construction
# -----------------------------------------------------------------------


def test_profile_defaults() -> None:
    p = SpectralProfile()
    assert p.freqs is None
    assert len(p.taus) == 45
    assert p.taus[0] == 0.06 and p.taus[-1] == 0.94
    assert p.with_intercept is True
    assert p.estimator == "cost_diff"
    assert p.n_workers == 1
    assert p.components == (0, 1)
    assert p.methods == ("lda", "qda", "linear_svm")
    assert p.validate() is p


def test_profile_frozen() -> None:
    p = SpectralProfile()
    with pytest.raises(dataclasses.FrozenInstanceError):
        p.n_workers = 4  # type: ignore[misc]


def test_profile_replace() -> None:
    p = SpectralProfile()
    p2 = dataclasses.replace(p, estimator="coef_norm")
    assert p2.estimator == "coef_norm"
    assert p2.taus == p.taus  # unchanged


# -----------------------------------------------------------------------
# Validation
# -----------------------------------------------------------------------


@pytest.mark.parametrize(
    "override",
    [
        {"freqs": (0.1, 0.7)},
        {"taus": (0.0, 0.5)},
        {"estimator": "periodogram"},
        {"n_workers": 0},
        {"pool_kind": "gpu"},
        {"granularity": "tau"},
        {"components": ()},
        {"methods": ("lda", "rf")},
        {"train_fraction": 1.0},
    ],
)
def test_profile_validate_rejects(override) -> None:
    with pytest.raises(ContractViolation):
        dataclasses.replace(SpectralProfile(), **override).validate()


# -----------------------------------------------------------------------
# Serialization
# -----------------------------------------------------------------------


def test_profile_dict_roundtrip() -> None:
    p = SpectralProfile(freqs=(0.1, 0.25), taus=(0.25, 0.75), tau_sel=(1,), n_workers=2)
    d = p.to_dict()
    assert d["freqs"] == [0.1, 0.25]
    assert d["tau_sel"] == [1]
    assert d["freq_sel"] is None
    assert SpectralProfile.from_dict(d) == p


def test_profile_json_roundtrip(tmp_path: Path) -> None:
    p = SpectralProfile(taus=(0.5,), methods=("lda",), seed=11)
    path = p.to_json(tmp_path / "profile.json")
    assert json.loads(path.read_text(encoding="utf-8"))["seed"] == 11
    assert SpectralProfile.from_json(path) == p


def test_profile_from_dict_rejects_unknown_keys() -> None:
    with pytest.raises(ContractViolation, match="unknown profile keys"):
        SpectralProfile.from_dict({"taus": [0.5], "bandwidth": 3})


def test_profile_from_json_missing(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        SpectralProfile.from_json(tmp_path / "missing.json")
