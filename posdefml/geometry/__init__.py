"""
Manifold primitives for positive-definite matrices.

This module provides:
- Matrix functions: sqrtm, invsqrtm, logm, expm, powm, geodesic
- Squared distances under every supported Metric
- Closed-form and iterative (Fisher, logdet0, Wasserstein) means
- METRIC_TABLE: the metric -> operations dispatch table

See Also:
    posdefml.mdm: Minimum-distance-to-mean classifier built on these
"""
from .spd import (
    symmetrize,
    sqrtm,
    invsqrtm,
    logm,
    expm,
    powm,
    geodesic,
    as_collection,
    check_weights,
)

from .means import (
    DEFAULT_MAX_ITER,
    fisher_mean,
    logdet0_mean,
    wasserstein_mean,
)

from .metrics import (
    MetricOps,
    METRIC_TABLE,
    metric_ops,
    distances_squared,
    distance_squared,
    closed_form_mean,
    iterative_mean,
    default_tolerance,
)

__all__ = [
    # Matrix functions
    'symmetrize',
    'sqrtm',
    'invsqrtm',
    'logm',
    'expm',
    'powm',
    'geodesic',
    # Input handling
    'as_collection',
    'check_weights',
    # Iterative solvers
    'DEFAULT_MAX_ITER',
    'fisher_mean',
    'logdet0_mean',
    'wasserstein_mean',
    # Dispatch
    'MetricOps',
    'METRIC_TABLE',
    'metric_ops',
    'distances_squared',
    'distance_squared',
    'closed_form_mean',
    'iterative_mean',
    'default_tolerance',
]
