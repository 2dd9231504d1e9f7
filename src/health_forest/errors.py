"""Error taxonomy for the model-selection workflow.

Every error carries a ``context`` dict (grid point, fold id, field name, ...)
so a failing unit can be reproduced from the message alone.
"""

from typing import Any, Optional


class HealthForestError(Exception):
    """Base class for all package errors."""

    def __init__(self, message: str, context: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context = dict(context or {})

    def __reduce__(self):
        # keep context when errors travel back from worker processes
        return (self.__class__, (self.message, self.context))

    def __str__(self) -> str:
        if not self.context:
            return self.message
        ctx = ", ".join(f"{k}={v}" for k, v in self.context.items())
        return f"{self.message} ({ctx})"


class InvalidFraction(HealthForestError, ValueError):
    """A fraction or ratio argument is outside its allowed interval."""


class EmptyStratum(HealthForestError, ValueError):
    """A label value has no observations, so it cannot be stratified."""


class EmptyGrid(HealthForestError, ValueError):
    """A grid search was asked to run (or select from) zero grid points."""


class SchemaMismatch(HealthForestError, ValueError):
    """A dataset does not match the schema it is expected to follow."""


class InsufficientNeighbors(HealthForestError):
    """A class to oversample has fewer than k + 1 members."""


class InsufficientDataForBalancing(HealthForestError):
    """Balancing failed on the majority of cross-validation folds."""


class UndefinedMetric(HealthForestError, ArithmeticError):
    """A metric has a zero denominator; recorded as undefined, not raised further."""


class DegenerateLabels(HealthForestError, ValueError):
    """True labels contain a single class, so ROC/AUC are not defined."""


class UnknownMetric(HealthForestError, ValueError):
    """A target metric name is not produced by the search."""
