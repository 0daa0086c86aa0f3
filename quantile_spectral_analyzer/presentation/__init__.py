"""Figures for quantile spectra and PCA projections."""
