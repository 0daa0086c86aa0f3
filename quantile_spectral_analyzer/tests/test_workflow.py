"""End-to-end tests for the classification runner and its CLI."""

from __future__ import annotations

import json
from pathlib import Path

import numpy as np
import pandas as pd
import pytest

from quantile_spectral_analyzer.analysis.workers import WorkerPool
from quantile_spectral_analyzer.errors import ContractViolation
from quantile_spectral_analyzer.models.profile import SpectralProfile
from quantile_spectral_analyzer.workflow.cli import main
from quantile_spectral_analyzer.workflow.runner import run_classification


def _small_profile(**kw) -> SpectralProfile:
    base = dict(taus=(0.25, 0.5, 0.75), methods=("lda", "qda", "linear_svm"))
    base.update(kw)
    return SpectralProfile(**base)


def _variance_classes(seed: int = 0):
    rng = np.random.default_rng(seed)
    return {
        "quiet": rng.normal(scale=1.0, size=(32, 16)),
        "loud": rng.normal(scale=5.0, size=(32, 16)),
    }


# -----------------------------------------------------------------------
# Runner
# -----------------------------------------------------------------------


def test_variance_separated_classes() -> None:
    run = run_classification(_variance_classes(), _small_profile())

    assert run.classes == ("quiet", "loud")
    assert run.stacks["quiet"].values.shape == (16, 15, 3)
    assert run.pca.n_features == 45
    assert run.train_scores.shape == (16, 2)
    assert run.test_scores.shape == (16, 2)
    assert sorted(np.concatenate([run.train_index["loud"], run.test_index["loud"]]).tolist()) == list(range(16))

    table = run.accuracy_table()
    assert isinstance(table, pd.DataFrame)
    assert list(table.index) == ["lda", "qda", "linear_svm"]
    assert list(table.columns) == ["train", "test"]
    assert table.loc["lda", "test"] >= 0.9
    assert table.loc["linear_svm", "test"] >= 0.9


def test_run_is_reproducible_across_pools() -> None:
    data = _variance_classes(seed=3)
    profile = _small_profile(methods=("lda",), freqs=(0.125, 0.25, 0.375))
    serial = run_classification(data, profile)
    with WorkerPool(n_workers=3) as pool:
        threaded = run_classification(data, profile, pool=pool)

    assert np.array_equal(serial.train_scores, threaded.train_scores)
    assert serial.test_prediction.labels.equals(threaded.test_prediction.labels)


def test_runner_contract() -> None:
    rng = np.random.default_rng(1)
    with pytest.raises(ContractViolation):
        run_classification({"only": rng.normal(size=(16, 4))}, _small_profile())
    with pytest.raises(ContractViolation):
        run_classification(
            {"a": rng.normal(size=(16, 4)), "b": rng.normal(size=(20, 4))}, _small_profile()
        )
    with pytest.raises(ContractViolation):
        run_classification(_variance_classes(), _small_profile(estimator="bogus"))


# -----------------------------------------------------------------------
# CLI
# -----------------------------------------------------------------------


def _write_class_file(path: Path, values: np.ndarray) -> Path:
    # header, then (index, sample) pairs; series stored one after another
    samples = values.T.ravel()
    fields = ["QSPEC", "1"]
    for i, s in enumerate(samples):
        fields.extend([str(i), f"{s:.9f}"])
    path.write_text("\n".join(fields) + "\n", encoding="utf-8")
    return path


def test_cli_writes_outputs(tmp_path: Path, capsys) -> None:
    rng = np.random.default_rng(5)
    t = np.arange(1, 25)[:, None]
    tone = np.cos(2 * np.pi * 0.25 * t) + 0.3 * rng.normal(size=(24, 6))
    noise = rng.standard_t(df=3, size=(24, 6))

    a = _write_class_file(tmp_path / "tone.txt", tone)
    b = _write_class_file(tmp_path / "noise.txt", noise)
    profile = tmp_path / "profile.json"
    profile.write_text(json.dumps({"taus": [0.25, 0.5, 0.75], "methods": ["lda", "linear_svm"]}))
    out = tmp_path / "out"

    rc = main(
        [
            "--class", f"tone={a}",
            "--class", f"noise={b}",
            "--n-series", "6",
            "--length", "24",
            "--profile", str(profile),
            "--workers", "2",
            "--out-dir", str(out),
            "--plots",
        ]
    )
    assert rc == 0

    pred = pd.read_csv(out / "predictions_test.csv")
    assert list(pred.columns) == ["true_label", "lda", "linear_svm"]
    assert len(pred) == 6

    acc = pd.read_csv(out / "accuracy.csv", index_col="method")
    assert list(acc.index) == ["lda", "linear_svm"]

    saved = SpectralProfile.from_json(out / "profile.json")
    assert saved.n_workers == 2
    assert saved.methods == ("lda", "linear_svm")

    assert (out / "projection_train.png").stat().st_size > 0
    assert "wrote predictions" in capsys.readouterr().out


def test_cli_rejects_malformed_class_argument(tmp_path: Path) -> None:
    with pytest.raises(SystemExit):
        main(["--class", "no-equals-sign", "--n-series", "2", "--length", "8", "--out-dir", str(tmp_path)])
