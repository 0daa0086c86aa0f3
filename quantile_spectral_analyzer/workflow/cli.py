from __future__ import annotations

import logging
from dataclasses import replace
from pathlib import Path
from typing import Dict, Optional, Sequence

from quantile_spectral_analyzer.models.profile import SpectralProfile
from quantile_spectral_analyzer.workflow.runner import ClassificationRun, run_classification_files


def _parse_class_args(items: Sequence[str]) -> Dict[str, Path]:
    out: Dict[str, Path] = {}
    for item in items:
        label, sep, path = item.partition("=")
        if not sep or not label.strip() or not path.strip():
            raise SystemExit(f"--class expects LABEL=PATH, got {item!r}")
        out[label.strip()] = Path(path.strip())
    return out


def write_outputs(run: ClassificationRun, out_dir: Path, *, plots: bool = False) -> Dict[str, Path]:
    """Write predictions, accuracy table and profile into ``out_dir``."""
    out_dir.mkdir(parents=True, exist_ok=True)
    written: Dict[str, Path] = {}

    pred = run.test_prediction.labels.copy()
    pred.insert(0, "true_label", run.test_labels)
    written["predictions"] = out_dir / "predictions_test.csv"
    pred.to_csv(written["predictions"], index=False)

    written["accuracy"] = out_dir / "accuracy.csv"
    run.accuracy_table().to_csv(written["accuracy"], index_label="method")

    written["profile"] = run.profile.to_json(out_dir / "profile.json")

    if plots:
        import matplotlib

        matplotlib.use("Agg")
        import matplotlib.pyplot as plt

        from quantile_spectral_analyzer.presentation.plots import plot_projection

        if run.train_scores.shape[1] >= 2:
            fig, ax = plt.subplots(figsize=(6, 5))
            plot_projection(ax, run.train_scores, run.train_labels)
            ax.set_title("training set, PCA scores")
            written["projection"] = out_dir / "projection_train.png"
            fig.savefig(written["projection"], dpi=120, bbox_inches="tight")
            plt.close(fig)

    return written


def main(argv: Optional[Sequence[str]] = None) -> int:
    import argparse
    import textwrap

    p = argparse.ArgumentParser(
        prog="python -m quantile_spectral_analyzer.workflow.cli",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        description=textwrap.dedent(
            """\
            Classify sensor series from their quantile periodograms.

            Each class is one sensor-log file holding n-series x length samples.
            Spectra are reduced by PCA (fitted on the training split) and fed to
            LDA / QDA / linear SVM classifiers.
            """
        ),
    )
    p.add_argument(
        "--class", dest="classes", action="append", required=True, metavar="LABEL=PATH",
        help="Class label and its sensor-log file (repeat for every class)",
    )
    p.add_argument("--n-series", type=int, required=True, help="Number of series per class file")
    p.add_argument("--length", type=int, required=True, help="Length of every series")
    p.add_argument("--profile", default=None, help="Optional JSON profile (see SpectralProfile)")
    p.add_argument("--workers", type=int, default=None, help="Override the profile's worker count")
    p.add_argument("--estimator", choices=("cost_diff", "coef_norm"), default=None)
    p.add_argument("--out-dir", default="qspec_out", help="Output directory (default: ./qspec_out)")
    p.add_argument("--plots", action="store_true", help="Also write a PCA scatter plot (PNG)")
    p.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    ns = p.parse_args(list(argv) if argv is not None else None)

    logging.basicConfig(
        level=logging.DEBUG if ns.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    profile = SpectralProfile.from_json(ns.profile) if ns.profile else SpectralProfile()
    if ns.workers is not None:
        profile = replace(profile, n_workers=int(ns.workers))
    if ns.estimator is not None:
        profile = replace(profile, estimator=ns.estimator)

    run = run_classification_files(
        _parse_class_args(ns.classes),
        n_series=ns.n_series,
        series_length=ns.length,
        profile=profile,
    )
    written = write_outputs(run, Path(ns.out_dir), plots=bool(ns.plots))

    print(run.accuracy_table().to_string(float_format=lambda x: f"{x:.3f}"))
    for w in run.warnings:
        print(f"[warn] {w}")
    for key, path in written.items():
        print(f"[info] wrote {key}: {path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
