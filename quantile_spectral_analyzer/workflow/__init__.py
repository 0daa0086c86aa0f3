"""Workflow utilities.

This package contains *non-interactive* tooling that runs the whole
classification pipeline end to end.

Design goals
------------
1) Keep orchestration out of the numerical modules.
2) Make runs reproducible and scriptable (CLI-style entry point, JSON profile).
3) Record every absorbed failure (solver fallbacks, unavailable classifiers).
"""

from .runner import ClassificationRun, run_classification, run_classification_files

__all__ = [
    "ClassificationRun",
    "run_classification",
    "run_classification_files",
]
