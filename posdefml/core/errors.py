"""
Exception taxonomy for posdefml.

All exceptions derive from PosDefMLError, and each one also derives from
the builtin that matches its nature, so ``except ValueError`` keeps
working for callers that do not know this package.
"""
from __future__ import annotations


class PosDefMLError(Exception):
    """Base class for all errors raised by posdefml."""


class DimensionMismatch(PosDefMLError, ValueError):
    """Lengths or matrix sizes of co-indexed inputs disagree."""


class InvalidArgument(PosDefMLError, ValueError):
    """An argument has an unsupported value (mode, metric, labels, folds)."""


class UnfittedModelError(PosDefMLError, RuntimeError):
    """A model was used for prediction before being fitted."""


class ConvergenceError(PosDefMLError, RuntimeError):
    """
    An iterative mean did not reach the requested tolerance.

    Attributes:
        metric: Name of the metric whose mean failed
        tolerance: Effective tolerance the residual was compared against
        user_tolerance: True if the tolerance was passed by the caller
        iterations: Iterations performed by the solver
        residual: Final convergence residual
    """

    def __init__(self,
                 metric: str,
                 tolerance: float,
                 user_tolerance: bool,
                 iterations: int,
                 residual: float):
        self.metric = metric
        self.tolerance = tolerance
        self.user_tolerance = user_tolerance
        self.iterations = iterations
        self.residual = residual
        toltype = "chosen" if user_tolerance else "default"
        super().__init__(
            f"The iterative algorithm computing the {metric} mean did not "
            f"converge using the {toltype} tolerance ({tolerance:.3g}); "
            f"residual {residual:.3g} after {iterations} iterations. "
            f"Check your data and try a higher tolerance (tol=...)."
        )


__all__ = [
    'PosDefMLError',
    'DimensionMismatch',
    'InvalidArgument',
    'UnfittedModelError',
    'ConvergenceError',
]
