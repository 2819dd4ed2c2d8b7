"""
Core type system for PD-matrix classification.

This module provides:
- Metric: Closed enumeration of supported manifold metrics
- PredictMode: labels / probabilities / functions
- Scoring: balanced / plain accuracy
- The posdefml exception hierarchy
"""
from .errors import (
    PosDefMLError,
    DimensionMismatch,
    InvalidArgument,
    UnfittedModelError,
    ConvergenceError,
)
from .types import (
    Metric,
    PredictMode,
    Scoring,
)

__all__ = [
    'PosDefMLError',
    'DimensionMismatch',
    'InvalidArgument',
    'UnfittedModelError',
    'ConvergenceError',
    'Metric',
    'PredictMode',
    'Scoring',
]
