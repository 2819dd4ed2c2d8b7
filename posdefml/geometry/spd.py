"""
Positive-Definite (PD) Matrix Primitives

Matrix functions, squared distances and closed-form means on the manifold
of symmetric (or Hermitian) positive-definite matrices. These are the only
numerical routines the classifier calls into.

All functions work on batches: a collection of k matrices of size n×n is
an array of shape (k, n, n), and matrix functions are applied through a
single batched eigendecomposition.

The squared distance between A and B depends on the metric:
- Fisher: d²(A, B) = Σ log²(λ_i), λ_i eigenvalues of A^{-1/2} B A^{-1/2}
- logdet0: d²(A, B) = log det ½(A+B) - ½ log det(AB)
- Wasserstein: d²(A, B) = tr A + tr B - 2 tr (A^{1/2} B A^{1/2})^{1/2}
- ... and the Euclidean family, which compares A and B after a fixed
  transformation (inverse, Cholesky factor, logarithm).

Reference: Pennec, X. et al. (2006). "A Riemannian Framework for Tensor Computing"
"""
from __future__ import annotations

import jax.numpy as jnp
import numpy as np
from typing import Optional, Sequence, Union

from ..core import DimensionMismatch, InvalidArgument

ArrayLike = Union[jnp.ndarray, Sequence[jnp.ndarray]]

def _conj_t(A: jnp.ndarray) -> jnp.ndarray:
    """Conjugate transpose over the last two axes."""
    return jnp.conj(jnp.swapaxes(A, -1, -2))


def symmetrize(A: jnp.ndarray) -> jnp.ndarray:
    """Return the Hermitian part (A + A^H) / 2."""
    return (A + _conj_t(A)) / 2


def _floor_eigvals(eigvals: jnp.ndarray) -> jnp.ndarray:
    """
    Clamp round-off eigenvalues of a PD matrix from below.

    The floor is eps times the largest eigenvalue magnitude of each matrix,
    so it commutes with rescaling: c·A is floored exactly like A.
    """
    eps = jnp.finfo(eigvals.dtype).eps
    floor = eps * jnp.max(jnp.abs(eigvals), axis=-1, keepdims=True)
    return jnp.maximum(eigvals, floor)


def _eig_apply(A: jnp.ndarray, fn, floor: bool = True) -> jnp.ndarray:
    """Apply a scalar function to the eigenvalues of (a batch of) A."""
    eigvals, eigvecs = jnp.linalg.eigh(symmetrize(A))
    if floor:
        eigvals = _floor_eigvals(eigvals)
    return (eigvecs * fn(eigvals)[..., None, :]) @ _conj_t(eigvecs)


def sqrtm(A: jnp.ndarray) -> jnp.ndarray:
    """Matrix square root via eigendecomposition."""
    return _eig_apply(A, jnp.sqrt)


def invsqrtm(A: jnp.ndarray) -> jnp.ndarray:
    """Inverse matrix square root."""
    return _eig_apply(A, lambda w: 1.0 / jnp.sqrt(w))


def logm(A: jnp.ndarray) -> jnp.ndarray:
    """Principal matrix logarithm of a PD matrix."""
    return _eig_apply(A, jnp.log)


def expm(A: jnp.ndarray) -> jnp.ndarray:
    """Matrix exponential of a symmetric/Hermitian matrix."""
    return _eig_apply(A, jnp.exp, floor=False)


def powm(A: jnp.ndarray, t: float) -> jnp.ndarray:
    """Compute A^t for PD matrix A."""
    return _eig_apply(A, lambda w: jnp.power(w, t))


def geodesic(A: jnp.ndarray, B: jnp.ndarray, t: float) -> jnp.ndarray:
    """
    Point at time t ∈ [0, 1] on the Fisher geodesic from A to B.

    γ(t) = A^{1/2} (A^{-1/2} B A^{-1/2})^t A^{1/2}

    γ(½) is the geometric mean A # B of two matrices.
    """
    A_sqrt = sqrtm(A)
    A_inv_sqrt = invsqrtm(A)
    return symmetrize(A_sqrt @ powm(A_inv_sqrt @ B @ A_inv_sqrt, t) @ A_sqrt)


# =============================================================================
# Input handling
# =============================================================================

def as_collection(matrices: ArrayLike) -> jnp.ndarray:
    """
    Stack a list (or array) of PD matrices into shape (k, n, n).

    A single (n, n) matrix becomes a collection of one. Matrices must all be
    square and of the same size; positive-definiteness is not checked.
    """
    if isinstance(matrices, (list, tuple)):
        if len(matrices) == 0:
            raise InvalidArgument("Empty matrix collection")
        shapes = {np.shape(P) for P in matrices}
        if len(shapes) != 1:
            raise DimensionMismatch(
                f"Matrices in a collection must share one size, got {sorted(shapes)}"
            )
        X = jnp.stack([jnp.asarray(P) for P in matrices])
    else:
        X = jnp.asarray(matrices)
        if X.ndim == 2:
            X = X[None]
    if X.ndim != 3 or X.shape[-1] != X.shape[-2]:
        raise DimensionMismatch(
            f"Expected a collection of square matrices (k, n, n), got shape {X.shape}"
        )
    if X.shape[0] == 0:
        raise InvalidArgument("Empty matrix collection")
    return X


def check_weights(weights: Optional[ArrayLike],
                  k: int,
                  check: bool = True,
                  dtype=None) -> jnp.ndarray:
    """
    Return the weight vector for a collection of k matrices.

    None gives uniform weights 1/k. When ``check`` is set, weights must have
    length k, be non-negative with a positive sum, and are normalized to
    sum to 1; otherwise they are used as given.
    """
    if weights is None:
        return jnp.full((k,), 1.0 / k, dtype=dtype)
    w = jnp.asarray(weights, dtype=dtype).reshape(-1)
    if w.shape[0] != k:
        raise DimensionMismatch(
            f"Got {w.shape[0]} weights for {k} matrices"
        )
    if not check:
        return w
    if bool(jnp.any(w < 0)):
        raise InvalidArgument("Weights must be non-negative")
    total = jnp.sum(w)
    if not bool(total > 0):
        raise InvalidArgument("Weights must have a positive sum")
    return w / total


def real_dtype(X: jnp.ndarray):
    return jnp.real(X[..., :1, :1]).dtype


def weighted_sum(w: jnp.ndarray, X: jnp.ndarray) -> jnp.ndarray:
    """Σ_i w_i X_i over the leading axis."""
    return jnp.tensordot(w.astype(X.dtype), X, axes=1)


# =============================================================================
# Squared distances (A single, B single or batched)
# =============================================================================

def _frobenius_sq(D: jnp.ndarray) -> jnp.ndarray:
    return jnp.sum(jnp.abs(D) ** 2, axis=(-2, -1))


def _trace(A: jnp.ndarray) -> jnp.ndarray:
    return jnp.real(jnp.trace(A, axis1=-2, axis2=-1))


def _logdet(A: jnp.ndarray) -> jnp.ndarray:
    return jnp.linalg.slogdet(A)[1]


def dist2_euclidean(A, B):
    return _frobenius_sq(A - B)


def dist2_inv_euclidean(A, B):
    return _frobenius_sq(jnp.linalg.inv(A) - jnp.linalg.inv(B))


def dist2_cho_euclidean(A, B):
    return _frobenius_sq(jnp.linalg.cholesky(A) - jnp.linalg.cholesky(B))


def dist2_log_euclidean(A, B):
    return _frobenius_sq(logm(A) - logm(B))


def dist2_log_cholesky(A, B):
    L_A = jnp.linalg.cholesky(A)
    L_B = jnp.linalg.cholesky(B)
    strict = _frobenius_sq(jnp.tril(L_A, -1) - jnp.tril(L_B, -1))
    diag_A = jnp.real(jnp.diagonal(L_A, axis1=-2, axis2=-1))
    diag_B = jnp.real(jnp.diagonal(L_B, axis1=-2, axis2=-1))
    return strict + jnp.sum((jnp.log(diag_A) - jnp.log(diag_B)) ** 2, axis=-1)


def dist2_fisher(A, B):
    A_inv_sqrt = invsqrtm(A)
    eigvals = jnp.linalg.eigvalsh(symmetrize(A_inv_sqrt @ B @ A_inv_sqrt))
    eigvals = _floor_eigvals(eigvals)
    return jnp.sum(jnp.log(eigvals) ** 2, axis=-1)


def dist2_logdet0(A, B):
    return _logdet((A + B) / 2) - 0.5 * _logdet(A) - 0.5 * _logdet(B)


def dist2_jeffrey(A, B):
    n = A.shape[-1]
    return 0.5 * _trace(jnp.linalg.inv(A) @ B) + 0.5 * _trace(jnp.linalg.inv(B) @ A) - n


def dist2_wasserstein(A, B):
    A_sqrt = sqrtm(A)
    eigvals = jnp.linalg.eigvalsh(symmetrize(A_sqrt @ B @ A_sqrt))
    cross = jnp.sum(jnp.sqrt(jnp.maximum(eigvals, 0.0)), axis=-1)
    return _trace(A) + _trace(B) - 2 * cross


# =============================================================================
# Closed-form means
# =============================================================================

def mean_euclidean(X: jnp.ndarray, w: jnp.ndarray) -> jnp.ndarray:
    """Weighted arithmetic mean Σ w_i P_i."""
    return symmetrize(weighted_sum(w, X))


def mean_harmonic(X: jnp.ndarray, w: jnp.ndarray) -> jnp.ndarray:
    """Weighted harmonic mean (Σ w_i P_i^{-1})^{-1}."""
    return symmetrize(jnp.linalg.inv(weighted_sum(w, jnp.linalg.inv(X))))


def mean_cho_euclidean(X, w):
    L = weighted_sum(w, jnp.linalg.cholesky(X))
    return symmetrize(L @ _conj_t(L))


def mean_log_euclidean(X, w):
    return symmetrize(expm(weighted_sum(w, logm(X))))


def mean_log_cholesky(X, w):
    L = jnp.linalg.cholesky(X)
    strict = weighted_sum(w, jnp.tril(L, -1))
    log_diag = jnp.log(jnp.real(jnp.diagonal(L, axis1=-2, axis2=-1)))
    diag = jnp.exp(weighted_sum(w, log_diag))
    M = strict + jnp.diag(diag).astype(strict.dtype)
    return symmetrize(M @ _conj_t(M))


def mean_jeffrey(X, w):
    # Minimizer of Σ w_i J(M, P_i) solves M H^{-1} M = A: the geometric mean A # H
    return geodesic(mean_euclidean(X, w), mean_harmonic(X, w), 0.5)


__all__ = [
    'symmetrize',
    'sqrtm',
    'invsqrtm',
    'logm',
    'expm',
    'powm',
    'geodesic',
    'as_collection',
    'check_weights',
    'real_dtype',
    'weighted_sum',
    'dist2_euclidean',
    'dist2_inv_euclidean',
    'dist2_cho_euclidean',
    'dist2_log_euclidean',
    'dist2_log_cholesky',
    'dist2_fisher',
    'dist2_logdet0',
    'dist2_jeffrey',
    'dist2_wasserstein',
    'mean_euclidean',
    'mean_harmonic',
    'mean_cho_euclidean',
    'mean_log_euclidean',
    'mean_log_cholesky',
    'mean_jeffrey',
]
