"""
Metric dispatch table.

Each Metric maps to exactly one MetricOps entry holding its squared
distance and its mean solver. The table is the only place where a metric
tag is turned into code, and it covers every member of the enum.

Boundary calls used by the classifier:
- distance_squared / distances_squared: d²(A, B) under a metric
- closed_form_mean: weighted mean for non-iterative metrics
- iterative_mean: (mean, iterations, residual) for Fisher, logdet0, Wasserstein
"""
from __future__ import annotations

import jax.numpy as jnp
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Union

from ..core import Metric, DimensionMismatch, InvalidArgument
from . import spd
from .means import (
    MeanResult, DEFAULT_MAX_ITER,
    fisher_mean, logdet0_mean, wasserstein_mean,
)
from .spd import ArrayLike, as_collection, check_weights, real_dtype


@dataclass(frozen=True)
class MetricOps:
    """
    Operations attached to one metric.

    Attributes:
        distance_squared: f(A, B) with A of shape (n, n) and B of shape
            (n, n) or (k, n, n), returning squared distances
        mean: f(X, w) for closed-form metrics, f(X, w, tol, max_iter)
            returning (mean, iterations, residual) for iterative ones
        iterative: Whether ``mean`` is a fixed-point solver
    """
    distance_squared: Callable[[jnp.ndarray, jnp.ndarray], jnp.ndarray]
    mean: Callable[..., Union[jnp.ndarray, MeanResult]]
    iterative: bool = False


METRIC_TABLE: Dict[Metric, MetricOps] = {
    Metric.EUCLIDEAN: MetricOps(spd.dist2_euclidean, spd.mean_euclidean),
    Metric.INV_EUCLIDEAN: MetricOps(spd.dist2_inv_euclidean, spd.mean_harmonic),
    Metric.CHO_EUCLIDEAN: MetricOps(spd.dist2_cho_euclidean, spd.mean_cho_euclidean),
    Metric.LOG_EUCLIDEAN: MetricOps(spd.dist2_log_euclidean, spd.mean_log_euclidean),
    Metric.LOG_CHOLESKY: MetricOps(spd.dist2_log_cholesky, spd.mean_log_cholesky),
    Metric.FISHER: MetricOps(spd.dist2_fisher, fisher_mean, iterative=True),
    Metric.LOGDET0: MetricOps(spd.dist2_logdet0, logdet0_mean, iterative=True),
    Metric.JEFFREY: MetricOps(spd.dist2_jeffrey, spd.mean_jeffrey),
    Metric.WASSERSTEIN: MetricOps(spd.dist2_wasserstein, wasserstein_mean, iterative=True),
}


def metric_ops(metric: Union[Metric, str]) -> MetricOps:
    """Look up the operations of a metric (name or enum member)."""
    return METRIC_TABLE[Metric.parse(metric)]


def distances_squared(metric: Union[Metric, str],
                      A: jnp.ndarray,
                      B: ArrayLike) -> jnp.ndarray:
    """
    Squared distances from A to every matrix of the collection B.

    Returns a real array of shape (k,). Round-off negatives are clipped to 0.
    """
    ops = metric_ops(metric)
    A = jnp.asarray(A)
    B = as_collection(B)
    if A.shape != B.shape[1:]:
        raise DimensionMismatch(
            f"Cannot compare a {A.shape} matrix with {B.shape[1:]} matrices"
        )
    return jnp.maximum(jnp.real(ops.distance_squared(A, B)), 0.0)


def distance_squared(metric: Union[Metric, str],
                     A: jnp.ndarray,
                     B: jnp.ndarray) -> float:
    """Squared distance between two PD matrices under the given metric."""
    B = jnp.asarray(B)
    if B.ndim != 2:
        raise DimensionMismatch(f"Expected a single matrix, got shape {B.shape}")
    return float(distances_squared(metric, A, B[None])[0])


def closed_form_mean(metric: Union[Metric, str],
                     matrices: ArrayLike,
                     weights: Optional[ArrayLike] = None,
                     check: bool = True) -> jnp.ndarray:
    """Weighted mean for the metrics that have a closed form."""
    metric = Metric.parse(metric)
    ops = METRIC_TABLE[metric]
    if ops.iterative:
        raise InvalidArgument(
            f"The {metric.value} mean has no closed form; use iterative_mean"
        )
    X = as_collection(matrices)
    w = check_weights(weights, X.shape[0], check, dtype=real_dtype(X))
    return ops.mean(X, w)


def iterative_mean(metric: Union[Metric, str],
                   matrices: ArrayLike,
                   weights: Optional[ArrayLike] = None,
                   check: bool = True,
                   tol: Optional[float] = None,
                   max_iter: int = DEFAULT_MAX_ITER) -> MeanResult:
    """
    Run the fixed-point solver of an iterative metric.

    Returns (mean, iterations, residual). ``tol`` defaults to the square
    root of the machine epsilon of the matrices' precision. Convergence is
    not enforced here.
    """
    metric = Metric.parse(metric)
    ops = METRIC_TABLE[metric]
    if not ops.iterative:
        raise InvalidArgument(
            f"The {metric.value} mean is closed-form; use closed_form_mean"
        )
    X = as_collection(matrices)
    w = check_weights(weights, X.shape[0], check, dtype=real_dtype(X))
    if not tol:
        tol = default_tolerance(X)
    return ops.mean(X, w, tol, max_iter)


def default_tolerance(X: jnp.ndarray) -> float:
    """Square root of the machine epsilon for the precision of X."""
    return float(jnp.sqrt(jnp.finfo(real_dtype(jnp.asarray(X))).eps))


__all__ = [
    'MetricOps',
    'METRIC_TABLE',
    'metric_ops',
    'distances_squared',
    'distance_squared',
    'closed_form_mean',
    'iterative_mean',
    'default_tolerance',
]
