"""Quantile Spectral Analyzer -- quantile periodograms and spectral classification of time series.

This package provides tools for:
- Computing quantile periodograms (harmonic quantile regression across a
  frequency x quantile grid), by squared-coefficient norm or check-loss reduction
- Flattening stacks of periodograms into feature vectors
- Mean-centred PCA fitted on training spectra and reused for any projection
- Training and evaluating a small LDA / QDA / linear-SVM ensemble on the scores
- Loading sensor-log class files into standardised series matrices

Key principles:
- Spectra are non-negative: negative estimates are clamped to zero
- A failed regression fit falls back locally and is logged, never aborts a run
- Caller errors (bad grids, mismatched dimensions) raise ContractViolation
- Parallel and serial runs give identical numbers

Main subpackages:
- analysis: Check loss, solver, harmonic regression, periodogram engine, flattening, PCA, ensemble
- ingest: Sensor-log readers
- models: Data models (SeriesMatrix, SpectralStack, SpectralProfile)
- workflow: End-to-end runner and command-line entry point
- presentation: Matplotlib figures
"""

__all__ = []
