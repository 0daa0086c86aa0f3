"""Error taxonomy shared by the analysis, ingest and workflow layers.

Local numerical failures (a single regression fit, a single classifier) are
absorbed where they happen and recorded. Structural problems with the
caller's inputs surface immediately as :class:`ContractViolation`.
"""

from __future__ import annotations


class ContractViolation(ValueError):
    """Caller error: out-of-range frequency/tau, shape or dimension mismatch."""


class SolverNonConvergence(RuntimeError):
    """A single quantile-regression fit did not reach an optimal solution."""


class ClassifierFitFailure(RuntimeError):
    """One classification method could not be trained on the given features."""

    def __init__(self, method: str, reason: str) -> None:
        super().__init__(f"{method}: {reason}")
        self.method = method
        self.reason = reason
