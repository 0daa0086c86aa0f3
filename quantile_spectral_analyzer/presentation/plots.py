"""Matplotlib figures for quantile spectra and their PCA projections.

All helpers draw on a caller-provided ``Axes`` and return the artist they
created, so notebooks and the CLI can compose them freely.
"""

from __future__ import annotations

from typing import Optional, Sequence

import numpy as np

from quantile_spectral_analyzer.errors import ContractViolation


def plot_periodogram(
    ax,
    freqs: np.ndarray,
    taus: np.ndarray,
    values: np.ndarray,
    *,
    cmap: str = "viridis",
    colorbar: bool = True,
):
    """Heatmap of one ``(F, T)`` quantile periodogram (frequency on x, tau on y).

    Parameters
    ----------
    ax : matplotlib Axes
    freqs, taus : ndarray
        Grids of length F and T.
    values : ndarray, shape (F, T)
    cmap : str
        Matplotlib colormap name.
    colorbar : bool
        Attach a colorbar to the axes' figure.
    """
    f = np.asarray(freqs, dtype=float)
    t = np.asarray(taus, dtype=float)
    v = np.asarray(values, dtype=float)
    if v.shape != (f.size, t.size):
        raise ContractViolation(f"values shape {v.shape} does not match grids ({f.size}, {t.size})")

    mesh = ax.pcolormesh(f, t, v.T, shading="nearest", cmap=cmap)
    ax.set_xlabel("frequency (cycles/sample)")
    ax.set_ylabel("quantile level")
    if colorbar:
        ax.figure.colorbar(mesh, ax=ax)
    return mesh


def plot_projection(
    ax,
    scores: np.ndarray,
    labels: Sequence,
    *,
    components: Sequence[int] = (0, 1),
    markers: Optional[dict] = None,
):
    """Scatter of PCA scores coloured by class label.

    ``scores`` holds the projected components as columns; ``components`` are
    the two column positions to draw.
    """
    s = np.asarray(scores, dtype=float)
    y = np.asarray(labels)
    if s.ndim != 2 or s.shape[0] != y.size:
        raise ContractViolation(f"scores {s.shape} and labels {y.shape} do not match")
    cx, cy = int(components[0]), int(components[1])
    if max(cx, cy) >= s.shape[1]:
        raise ContractViolation(f"components {cx}, {cy} not available in scores with {s.shape[1]} columns")

    markers = markers or {}
    handles = []
    for lab in np.unique(y):
        sel = y == lab
        handles.append(
            ax.scatter(s[sel, cx], s[sel, cy], marker=markers.get(lab, "o"), s=18, label=str(lab))
        )
    ax.set_xlabel(f"PC{cx + 1}")
    ax.set_ylabel(f"PC{cy + 1}")
    ax.legend(loc="best", fontsize="small")
    return handles
