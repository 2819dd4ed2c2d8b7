"""
Iterative means on the PD manifold.

Three metrics have no closed-form mean and are solved by fixed-point
iteration, each starting from the weighted arithmetic mean:

- Fisher (Karcher mean):
    M ← M^{1/2} exp(Σ w_i log(M^{-1/2} P_i M^{-1/2})) M^{1/2}
- logdet0 (S-mean, Chebbi & Moakher 2012):
    M ← (Σ w_i (½(P_i + M))^{-1})^{-1}
- Wasserstein (Álvarez-Esteban et al. 2016):
    M ← M^{-1/2} (Σ w_i (M^{1/2} P_i M^{1/2})^{1/2})² M^{-1/2}

Every solver returns ``(mean, iterations, residual)``. The residual is
‖T‖_F / n for Fisher, with T the weighted tangent mean (an affine-invariant
step size), and ‖M_new - M‖_F / ‖M‖_F for the other two. Solvers stop as
soon as the residual is at most ``tol`` or after ``max_iter`` iterations;
deciding whether the result is acceptable is left to the caller.
"""
from __future__ import annotations

import jax.numpy as jnp
from typing import Tuple

from .spd import (
    symmetrize, sqrtm, invsqrtm, logm, expm,
    mean_euclidean, weighted_sum,
)

MeanResult = Tuple[jnp.ndarray, int, float]

DEFAULT_MAX_ITER = 500


def _relative_change(M_new: jnp.ndarray, M: jnp.ndarray) -> float:
    return float(jnp.linalg.norm(M_new - M) / jnp.linalg.norm(M))


def fisher_mean(X: jnp.ndarray,
                w: jnp.ndarray,
                tol: float,
                max_iter: int = DEFAULT_MAX_ITER) -> MeanResult:
    """
    Weighted Fréchet (Karcher) mean under the affine-invariant metric.

    M* = argmin_M Σ w_i d²(M, P_i)

    Each step averages the data in the tangent space at the current
    estimate and maps the average back with the exponential map.
    """
    if X.shape[0] == 1:
        return X[0], 0, 0.0
    n = X.shape[-1]
    M = mean_euclidean(X, w)
    residual = float("inf")
    iteration = 0
    for iteration in range(1, max_iter + 1):
        M_sqrt = sqrtm(M)
        M_inv_sqrt = invsqrtm(M)
        T = weighted_sum(w, logm(M_inv_sqrt @ X @ M_inv_sqrt))
        M = symmetrize(M_sqrt @ expm(T) @ M_sqrt)
        residual = float(jnp.linalg.norm(T) / n)
        if residual <= tol:
            break
    return M, iteration, residual


def logdet0_mean(X: jnp.ndarray,
                 w: jnp.ndarray,
                 tol: float,
                 max_iter: int = DEFAULT_MAX_ITER) -> MeanResult:
    """Weighted mean under the root log-determinant (S) divergence."""
    if X.shape[0] == 1:
        return X[0], 0, 0.0
    M = mean_euclidean(X, w)
    residual = float("inf")
    iteration = 0
    for iteration in range(1, max_iter + 1):
        M_new = symmetrize(jnp.linalg.inv(weighted_sum(w, jnp.linalg.inv((X + M) / 2))))
        residual = _relative_change(M_new, M)
        M = M_new
        if residual <= tol:
            break
    return M, iteration, residual


def wasserstein_mean(X: jnp.ndarray,
                     w: jnp.ndarray,
                     tol: float,
                     max_iter: int = DEFAULT_MAX_ITER) -> MeanResult:
    """Weighted Bures-Wasserstein barycenter."""
    if X.shape[0] == 1:
        return X[0], 0, 0.0
    M = mean_euclidean(X, w)
    residual = float("inf")
    iteration = 0
    for iteration in range(1, max_iter + 1):
        M_sqrt = sqrtm(M)
        M_inv_sqrt = invsqrtm(M)
        S = weighted_sum(w, sqrtm(M_sqrt @ X @ M_sqrt))
        M_new = symmetrize(M_inv_sqrt @ S @ S @ M_inv_sqrt)
        residual = _relative_change(M_new, M)
        M = M_new
        if residual <= tol:
            break
    return M, iteration, residual


__all__ = [
    'MeanResult',
    'DEFAULT_MAX_ITER',
    'fisher_mean',
    'logdet0_mean',
    'wasserstein_mean',
]
