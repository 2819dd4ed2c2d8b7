"""
Minimum Distance to Mean (MDM) classifier for PD matrices.

An MDM model summarizes each class by the mean of its training matrices
under a chosen metric and assigns a new matrix to the class whose mean is
nearest. Used on covariance matrices this is the classic Riemannian
classifier for EEG/BCI data.

Pipeline:
1. Group training matrices by class label (1..z)
2. get_means: one mean per class (iterative for Fisher, logdet0, Wasserstein)
3. get_distances: z×k squared distances from test matrices to class means
4. Read off labels, probabilities or output functions

Reference: Barachant, A. et al. (2012). "Multiclass Brain-Computer Interface
Classification by Riemannian Geometry"
"""
from __future__ import annotations

import jax
import jax.numpy as jnp
import numpy as np
from dataclasses import dataclass
from typing import List, Optional, Sequence, Union

from joblib import Parallel, delayed

from .core import (
    Metric, PredictMode,
    DimensionMismatch, InvalidArgument, UnfittedModelError, ConvergenceError,
)
from .geometry import (
    DEFAULT_MAX_ITER,
    as_collection,
    metric_ops,
    distances_squared,
    closed_form_mean,
    iterative_mean,
    default_tolerance,
)
from .geometry.spd import ArrayLike
from .log import get_logger

logger = get_logger(__name__)


# =============================================================================
# Mean Estimator
# =============================================================================

def get_means(metric: Union[Metric, str],
              matrices: ArrayLike,
              weights: Optional[ArrayLike] = None,
              check_weights: bool = True,
              tol: float = 0.0,
              max_iter: int = DEFAULT_MAX_ITER) -> jnp.ndarray:
    """
    Weighted mean of a collection of PD matrices under ``metric``.

    Closed-form metrics delegate directly. For Fisher, logdet0 and
    Wasserstein the fixed-point solver must reach the tolerance, which is
    ``tol`` if positive and otherwise the square root of the machine
    epsilon of the matrices' precision.

    Raises:
        ConvergenceError: If the solver's residual exceeds the tolerance
    """
    metric = Metric.parse(metric)
    X = as_collection(matrices)
    if not metric_ops(metric).iterative:
        return closed_form_mean(metric, X, weights, check_weights)

    tolerance = tol if tol > 0 else default_tolerance(X)
    G, iterations, residual = iterative_mean(
        metric, X, weights, check_weights, tolerance, max_iter
    )
    if not residual <= tolerance:
        logger.error(
            "%s mean did not converge: residual %.3g > tolerance %.3g after %d iterations",
            metric.value, residual, tolerance, iterations,
        )
        raise ConvergenceError(metric.value, tolerance, tol > 0, iterations, residual)
    logger.debug("%s mean of %d matrices converged in %d iterations (residual %.3g)",
                 metric.value, X.shape[0], iterations, residual)
    return G


# =============================================================================
# Distance Evaluator
# =============================================================================

def get_distances(metric: Union[Metric, str],
                  means: ArrayLike,
                  matrices: ArrayLike) -> jnp.ndarray:
    """
    Squared distances of each matrix to each class mean.

    Returns D of shape (z, k) with D[i, j] = d²(matrices[j], means[i]).
    """
    means = as_collection(means)
    X = as_collection(matrices)
    if means.shape[1:] != X.shape[1:]:
        raise DimensionMismatch(
            f"Matrices of size {X.shape[1:]} do not match means of size {means.shape[1:]}"
        )
    return jnp.stack([distances_squared(metric, M, X) for M in means])


def geometric_mean(values: jnp.ndarray, axis: int = 0) -> jnp.ndarray:
    """
    Geometric mean of positive scalars, exp(mean(log x)).

    Equal to the Fisher mean of 1×1 PD matrices. Values are floored at the
    smallest normal number of their dtype so that zeros stay finite.
    """
    values = jnp.asarray(values)
    floored = jnp.maximum(values, jnp.finfo(values.dtype).tiny)
    return jnp.exp(jnp.mean(jnp.log(floored), axis=axis))


def output_functions(D: jnp.ndarray) -> jnp.ndarray:
    """Ratio of each squared distance to the geometric mean of its column."""
    floored = jnp.maximum(D, jnp.finfo(D.dtype).tiny)
    return (floored / geometric_mean(floored, axis=0)).T


# =============================================================================
# Labels
# =============================================================================

def check_labels(labels: Sequence[int], k: int) -> np.ndarray:
    """
    Validate a label vector for k matrices and return it as int array.

    Labels are class serials 1..z and must be positive integers.
    """
    y = np.asarray(labels)
    if y.ndim != 1:
        raise DimensionMismatch(f"Labels must be a vector, got shape {y.shape}")
    if y.shape[0] != k:
        raise DimensionMismatch(
            f"The lengths of the data ({k}) and label ({y.shape[0]}) vectors do not match"
        )
    if not np.issubdtype(y.dtype, np.integer):
        if not np.issubdtype(y.dtype, np.number) or not np.all(np.mod(y, 1) == 0):
            raise InvalidArgument("Labels must be integer class serials 1..z")
    y = y.astype(int)
    if np.any(y < 1):
        raise InvalidArgument(f"Labels must be >= 1, got minimum {y.min()}")
    return y


def class_indices(labels: np.ndarray) -> List[np.ndarray]:
    """
    Indices of the matrices of each class 1..z, z = max(labels).

    Raises:
        InvalidArgument: If some class serial has no matrix
    """
    n_classes = int(labels.max())
    groups = [np.flatnonzero(labels == c) for c in range(1, n_classes + 1)]
    empty = [c for c, idx in enumerate(groups, start=1) if idx.size == 0]
    if empty:
        raise InvalidArgument(
            f"Classes {empty} have no matrices; labels must be dense serials 1..{n_classes}"
        )
    return groups


# =============================================================================
# Model
# =============================================================================

@dataclass(frozen=True)
class Unfitted:
    """Model state before fit: no class means."""


@dataclass(frozen=True, eq=False)
class Fitted:
    """Model state after fit: one mean per class, shape (z, n, n)."""
    means: jnp.ndarray


class MDM:
    """
    Minimum Distance to Mean classifier.

    The metric is fixed at construction. The model starts Unfitted and
    becomes Fitted when ``fit`` computes one mean per class; fitting again
    replaces the means. Prediction never modifies the model.

    Example:
        model = MDM("fisher").fit(X_train, y_train)
        labels = model.predict(X_test)
        proba = model.predict(X_test, "probabilities")
    """

    def __init__(self, metric: Union[Metric, str] = Metric.FISHER):
        self._metric = Metric.parse(metric)
        self.state: Union[Unfitted, Fitted] = Unfitted()

    @property
    def metric(self) -> Metric:
        return self._metric

    @property
    def is_fitted(self) -> bool:
        return isinstance(self.state, Fitted)

    @property
    def means(self) -> Optional[jnp.ndarray]:
        """Class means (z, n, n), or None before fit."""
        return self.state.means if isinstance(self.state, Fitted) else None

    @property
    def n_classes(self) -> int:
        return 0 if self.means is None else int(self.means.shape[0])

    @classmethod
    def from_data(cls,
                  metric: Union[Metric, str],
                  matrices: ArrayLike,
                  labels: Sequence[int],
                  weights: Optional[ArrayLike] = None,
                  check_weights: bool = True,
                  tol: float = 0.0,
                  n_jobs: int = 1) -> 'MDM':
        """Create and fit a model in one call."""
        return cls(metric).fit(matrices, labels, weights=weights,
                               check_weights=check_weights, tol=tol, n_jobs=n_jobs)

    def fit(self,
            matrices: ArrayLike,
            labels: Sequence[int],
            weights: Optional[ArrayLike] = None,
            check_weights: bool = True,
            tol: float = 0.0,
            max_iter: int = DEFAULT_MAX_ITER,
            n_jobs: int = 1) -> 'MDM':
        """
        Compute one mean per class and store them.

        Weights, if given, are co-indexed with the matrices and split by
        class the same way. On any error the previous state is kept.

        Args:
            matrices: k PD matrices, array (k, n, n) or list of (n, n)
            labels: k class serials in 1..z
            weights: Optional non-negative weight per matrix
            check_weights: Validate and normalize the weights of each class
            tol: Convergence tolerance for iterative means (0 = default)
            n_jobs: Number of classes whose means are computed in parallel
        """
        X = as_collection(matrices)
        k = X.shape[0]
        y = check_labels(labels, k)
        w = None
        if weights is not None:
            w = np.asarray(weights).reshape(-1)
            if w.shape[0] != k:
                raise DimensionMismatch(f"Got {w.shape[0]} weights for {k} matrices")
        groups = class_indices(y)

        means = Parallel(n_jobs=n_jobs, prefer="threads")(
            delayed(get_means)(self.metric, X[idx],
                               None if w is None else w[idx],
                               check_weights, tol, max_iter)
            for idx in groups
        )
        self.state = Fitted(jnp.stack(means))
        logger.debug("Fitted %s MDM model: %d classes, %dx%d matrices",
                     self.metric.value, len(groups), X.shape[1], X.shape[2])
        return self

    def predict(self,
                matrices: ArrayLike,
                what: Union[PredictMode, str] = PredictMode.LABELS) -> jnp.ndarray:
        """
        Classify PD matrices by their distance to the class means.

        Args:
            matrices: k PD matrices of the size the model was fitted on
            what: 'labels' (k,) ints in 1..z; 'probabilities' (k, z) softmax
                of minus the squared distances; 'functions' (k, z) squared
                distances over their geometric mean

        Raises:
            InvalidArgument: Unknown ``what``
            UnfittedModelError: The model has not been fitted
        """
        mode = PredictMode.parse(what)
        if not isinstance(self.state, Fitted):
            raise UnfittedModelError(
                "The MDM model has been created but not fitted; call fit first"
            )
        D = get_distances(self.metric, self.state.means, matrices)
        if mode is PredictMode.LABELS:
            return jnp.argmin(D, axis=0) + 1
        if mode is PredictMode.PROBABILITIES:
            return jax.nn.softmax(-D, axis=0).T
        return output_functions(D)

    def save(self, path) -> None:
        """Write metric and means to an ``.npz`` file."""
        if not isinstance(self.state, Fitted):
            raise UnfittedModelError("Only a fitted MDM model can be saved")
        np.savez(path, metric=np.array(self.metric.value),
                 means=np.asarray(self.state.means))

    @classmethod
    def load(cls, path) -> 'MDM':
        """Restore a model written by :meth:`save`."""
        with np.load(path) as data:
            model = cls(str(data["metric"]))
            model.state = Fitted(jnp.asarray(data["means"]))
        return model

    def __repr__(self) -> str:
        if not isinstance(self.state, Fitted):
            return f"MDM(metric={self.metric.value}, unfitted)"
        n = self.state.means.shape[-1]
        return f"MDM(metric={self.metric.value}, classes={self.n_classes}, features={n}x{n})"


def fit(model: MDM,
        matrices: ArrayLike,
        labels: Sequence[int],
        **kwargs) -> MDM:
    """Fit ``model`` in place and return it."""
    return model.fit(matrices, labels, **kwargs)


def predict(model: MDM,
            matrices: ArrayLike,
            what: Union[PredictMode, str] = PredictMode.LABELS) -> jnp.ndarray:
    """Predict with a fitted ``model``."""
    return model.predict(matrices, what)


__all__ = [
    'get_means',
    'get_distances',
    'geometric_mean',
    'output_functions',
    'check_labels',
    'class_indices',
    'Unfitted',
    'Fitted',
    'MDM',
    'fit',
    'predict',
]
